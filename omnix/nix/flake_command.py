"""Nix commands for working with flakes."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from omnix.nix.command import NixCmd, NixCmdError
from omnix.nix.flake_url import FlakeUrl


@dataclass
class FlakeOptions:
    """Nix command-line options used when working with a flake."""

    override_inputs: dict[str, FlakeUrl] = field(default_factory=dict)
    no_write_lock_file: bool = False
    refresh: bool = False
    accept_flake_config: bool = True
    current_dir: Optional[Path] = None

    def args(self) -> list[str]:
        """The options as arguments; inputs are overridden in name order."""
        args: list[str] = []
        for name in sorted(self.override_inputs):
            args += ["--override-input", name, str(self.override_inputs[name])]
        if self.no_write_lock_file:
            args.append("--no-write-lock-file")
        if self.refresh:
            args.append("--refresh")
        if self.accept_flake_config:
            args.append("--accept-flake-config")
        return args


@dataclass
class OutPath:
    """A path built by nix, as reported by ``nix build --json``."""

    drv_path: Path
    outputs: dict[str, Path]

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> OutPath:
        """Build from one entry of ``nix build --json``."""
        try:
            return cls(
                drv_path=Path(data["drvPath"]),
                outputs={k: Path(v) for k, v in data["outputs"].items()},
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"invalid build output: {exc!r}") from exc

    def first_output(self) -> Optional[Path]:
        """The first build output, if any."""
        return next(iter(self.outputs.values()), None)


def run(nixcmd: NixCmd, opts: FlakeOptions, url: FlakeUrl, args: Sequence[str]) -> None:
    """Run ``nix run`` on a flake app."""
    nixcmd.run_with(["run", *opts.args(), str(url), "--", *args], cwd=opts.current_dir)


def develop(
    nixcmd: NixCmd, opts: FlakeOptions, url: FlakeUrl, command: Sequence[str]
) -> None:
    """Run a command inside a flake devshell with ``nix develop -c``."""
    if not command:
        raise ValueError("command must not be empty")
    nixcmd.run_with(
        [*opts.args(), "develop", str(url), "-c", *command], cwd=opts.current_dir
    )


def build(cmd: NixCmd, opts: FlakeOptions, url: FlakeUrl) -> list[OutPath]:
    """Run ``nix build --no-link --json`` and return what was built."""
    stdout = cmd.run_with_returning_stdout(
        [*opts.args(), "build", "--no-link", "--json", str(url)], cwd=opts.current_dir
    )
    try:
        return [OutPath.from_json(entry) for entry in json.loads(stdout)]
    except (ValueError, TypeError) as exc:
        raise NixCmdError(f"Failed to decode command stdout (json error): {exc}") from exc


def lock(cmd: NixCmd, opts: FlakeOptions, args: Sequence[str], url: FlakeUrl) -> None:
    """Run ``nix flake lock``."""
    cmd.run_with(["flake", "lock", str(url), *opts.args(), *args], cwd=opts.current_dir)


def check(cmd: NixCmd, opts: FlakeOptions, url: FlakeUrl) -> None:
    """Run ``nix flake check``."""
    cmd.run_with(["flake", "check", str(url), *opts.args()], cwd=opts.current_dir)