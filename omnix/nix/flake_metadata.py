"""Flake metadata from ``nix flake metadata``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from omnix.nix.command import NixCmd, NixCmdError
from omnix.nix.flake_url import FlakeUrl


@dataclass(frozen=True)
class FlakeMetadata:
    """The original URL of a flake and its locally cached path."""

    original_url: FlakeUrl
    path: Path

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> FlakeMetadata:
        """Build from the decoded JSON of ``nix flake metadata --json``."""
        try:
            original_url = data["originalUrl"]
            path = data["path"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid flake metadata: {exc!r}") from exc
        if not isinstance(original_url, str) or not isinstance(path, str):
            raise ValueError("invalid flake metadata: expected strings")
        return cls(original_url=FlakeUrl(original_url), path=Path(path))

    @classmethod
    def from_nix(cls, cmd: NixCmd, flake_url: FlakeUrl) -> FlakeMetadata:
        """Run ``nix flake metadata --json`` for ``flake_url``."""
        data = cmd.run_with_args_expecting_json(
            ["flake", "metadata", "--json", str(flake_url)]
        )
        try:
            return cls.from_json(data)
        except ValueError as exc:
            raise NixCmdError(
                f"Failed to decode command stdout (json error): {exc}"
            ) from exc