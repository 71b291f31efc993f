"""Lists of nix systems, and flakes that define them."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any

from omnix.nix.command import NixCmd, NixCmdError
from omnix.nix.flake_url import FlakeUrl
from omnix.nix.system import System


def nix_systems() -> dict[str, FlakeUrl]:
    """Known system-list flakes, keyed by system, from ``$NIX_SYSTEMS`` (JSON)."""
    raw = os.environ.get("NIX_SYSTEMS")
    if not raw:
        return {}
    return {name: FlakeUrl(url) for name, url in json.loads(raw).items()}


@dataclass(frozen=True)
class SystemsListFlakeRef:
    """A flake whose import yields a list of systems."""

    url: FlakeUrl

    @classmethod
    def from_known_system(cls, system: System) -> SystemsListFlakeRef | None:
        """The known flake for ``system``, needing no network access."""
        url = nix_systems().get(str(system))
        return cls(url) if url is not None else None

    @classmethod
    def parse(cls, s: str) -> SystemsListFlakeRef:
        """A known system name, or else any flake URL."""
        known = cls.from_known_system(System.parse(s))
        return known if known is not None else cls(FlakeUrl(s))


@dataclass
class SystemsList:
    """A list of systems."""

    systems: list[System]

    @classmethod
    def from_flake(cls, cmd: NixCmd, url: SystemsListFlakeRef) -> SystemsList:
        """Load the systems defined by ``url``, evaluating it if it is not known."""
        for name, known_url in nix_systems().items():
            if known_url == url.url:
                return cls([System.parse(name)])
        value = nix_import_flake(cmd, url.url)
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise NixCmdError(
                f"Failed to decode command stdout (json error): expected a list of systems, got {value!r}"
            )
        return cls([System.parse(v) for v in value])


def nix_eval_impure_expr(cmd: NixCmd, expr: str) -> Any:
    """Evaluate ``expr`` impurely and return the decoded JSON."""
    return cmd.run_with_args_expecting_json(["eval", "--impure", "--json", "--expr", expr])


def nix_import_flake(cmd: NixCmd, url: FlakeUrl) -> Any:
    """Evaluate ``import <flake>`` and return the decoded JSON."""
    flake_path = nix_eval_impure_expr(cmd, f'builtins.getFlake "{url}"')
    if not isinstance(flake_path, str):
        raise NixCmdError(
            f"Failed to decode command stdout (json error): expected a path, got {flake_path!r}"
        )
    return nix_eval_impure_expr(cmd, f"import {flake_path}")