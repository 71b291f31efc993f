"""The ``ci run`` command: its arguments and its results."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from omnix.ci.flake_ref import FlakeRef
from omnix.ci.steps import StepsArgs, StepsResult
from omnix.nix.command import NixCmd
from omnix.nix.flake_url import FlakeUrl
from omnix.nix.store_path import StorePath
from omnix.nix.store_uri import StoreURI
from omnix.nix.system import System
from omnix.nix.system_list import SystemsList, SystemsListFlakeRef


def _default_flake_ref() -> FlakeRef:
    return FlakeRef.parse(".")


@dataclass
class RunCommand:
    """Run all CI steps for all or the given subflakes."""

    on: Optional[StoreURI] = None
    systems: Optional[SystemsListFlakeRef] = None
    out_link: Optional[Path] = field(default_factory=lambda: Path("result"))
    no_out_link: bool = False
    flake_ref: FlakeRef = field(default_factory=_default_flake_ref)
    steps_args: StepsArgs = field(default_factory=StepsArgs)

    def __post_init__(self) -> None:
        if self.no_out_link and self.out_link is not None and self.out_link != Path("result"):
            raise ValueError("--out-link conflicts with --no-out-link")

    def preprocess(self) -> None:
        """Adjust the build arguments to what devour-flake expects."""
        self.steps_args.build_step_args.preprocess()

    def get_out_link(self) -> Optional[Path]:
        """The out-link path, unless out-links are disabled."""
        return None if self.no_out_link else self.out_link

    def local_with(self, flake_ref: FlakeRef, out_link: Optional[Path]) -> RunCommand:
        """A copy that builds ``flake_ref`` locally, with the given out-link."""
        new = copy.deepcopy(self)
        new.on = None
        new.flake_ref = flake_ref
        new.no_out_link = out_link is None
        new.out_link = out_link
        return new

    def get_systems(self, cmd: NixCmd, nix_config: Any) -> list[System]:
        """The systems to build for; the current system when none are given."""
        if self.systems is None:
            return [nix_config.system.value]
        return SystemsList.from_flake(cmd, self.systems).systems

    def to_cli_args(self) -> list[str]:
        """This command as it would be given on the command line."""
        args: list[str] = []
        if self.on is not None:
            args += ["--on", str(self.on)]
        if self.systems is not None:
            args += ["--systems", str(self.systems.url)]
        if self.out_link is not None:
            args += ["--out-link", str(self.out_link)]
        if self.no_out_link:
            args.append("--no-out-link")
        args.append(str(self.flake_ref))
        args += self.steps_args.to_cli_args()
        return args


@dataclass
class RunResult:
    """The results of ``ci run``."""

    systems: list[System]
    flake: FlakeUrl
    result: dict[str, StepsResult] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Any) -> RunResult:
        """Build from ``{"systems": [...], "flake": ..., "result": {...}}``."""
        if not isinstance(data, dict):
            raise ValueError("run result must be a mapping")
        try:
            systems = data["systems"]
            flake = data["flake"]
            result = data["result"]
        except KeyError as exc:
            raise ValueError(f"invalid run result: missing {exc}") from exc
        if not isinstance(systems, list) or not all(isinstance(s, str) for s in systems):
            raise ValueError("run result 'systems' must be a list of strings")
        if not isinstance(flake, str):
            raise ValueError("run result 'flake' must be a string")
        if not isinstance(result, dict):
            raise ValueError("run result 'result' must be a mapping")
        return cls(
            systems=[System.parse(s) for s in systems],
            flake=FlakeUrl(flake),
            result={str(k): StepsResult.from_json(v) for k, v in result.items()},
        )

    def to_json(self) -> dict[str, Any]:
        """The JSON form written to the results file."""
        return {
            "systems": [str(s) for s in self.systems],
            "flake": str(self.flake),
            "result": {k: v.to_json() for k, v in self.result.items()},
        }

    def all_out_paths(self) -> list[StorePath]:
        """Every out path built across all subflakes."""
        return [
            path
            for steps in self.result.values()
            if steps.build_step is not None
            for path in steps.build_step.devour_flake_output.out_paths
        ]