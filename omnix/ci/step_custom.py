"""User-defined CI steps: flake apps and devshell commands."""

from __future__ import annotations

import logging
import os
import shutil
import stat
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Literal, Optional, Sequence, TypeVar

from omnix.nix import flake_command
from omnix.nix.command import NixCmd
from omnix.nix.flake_command import FlakeOptions
from omnix.nix.flake_metadata import FlakeMetadata
from omnix.nix.flake_url import FlakeAttr, FlakeUrl
from omnix.nix.system import System

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _str_list(value: Any, what: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{what} must be a list of strings")
    return value


@dataclass
class CustomStep:
    """A flake app to run, or a command to run inside a devshell.

    Both run in the directory of the subflake.
    """

    kind: Literal["app", "devshell"]
    name: FlakeAttr = field(default_factory=FlakeAttr.none)
    args: list[str] = field(default_factory=list)
    command: list[str] = field(default_factory=list)
    systems: Optional[list[System]] = None

    def __post_init__(self) -> None:
        if self.kind not in ("app", "devshell"):
            raise ValueError(f"unknown custom step type: {self.kind!r}")
        if self.kind == "devshell" and not self.command:
            raise ValueError("a devshell step needs a non-empty command")

    @classmethod
    def from_json(cls, data: Any) -> CustomStep:
        """Build from ``{"type": "app" | "devshell", ...}``."""
        if not isinstance(data, dict):
            raise ValueError(f"invalid custom step: {data!r}")
        kind = data.get("type")
        name = data.get("name")
        if name is not None and not isinstance(name, str):
            raise ValueError("custom step name must be a string")
        systems = data.get("systems")
        parsed_systems = (
            None if systems is None else [System.parse(s) for s in _str_list(systems, "systems")]
        )
        if kind == "app":
            return cls(
                kind="app",
                name=FlakeAttr(name),
                args=list(_str_list(data.get("args", []), "args")),
                systems=parsed_systems,
            )
        if kind == "devshell":
            if "command" not in data:
                raise ValueError("a devshell step needs a command")
            return cls(
                kind="devshell",
                name=FlakeAttr(name),
                command=list(_str_list(data["command"], "command")),
                systems=parsed_systems,
            )
        raise ValueError(f"unknown custom step type: {kind!r}")

    def run(self, nixcmd: NixCmd, url: FlakeUrl, subflake: Any) -> None:
        """Run this step on a writeable local copy of the flake."""
        with_writeable_flake_dir(
            nixcmd, url, lambda path: self._run_on_local_path(nixcmd, path, subflake)
        )

    def _run_on_local_path(self, nixcmd: NixCmd, flake_path: Path, subflake: Any) -> None:
        path = flake_path / subflake.dir
        logger.info("Running custom step under: %s", path)
        pwd_flake = FlakeUrl.from_path(".")
        opts = FlakeOptions(
            override_inputs=dict(subflake.override_inputs),
            current_dir=path,
            no_write_lock_file=False,
        )
        target = pwd_flake.with_attr(self.name.get_name())
        if self.kind == "app":
            flake_command.run(nixcmd, opts, target, list(self.args))
        else:
            flake_command.develop(nixcmd, opts, target, list(self.command))

    def can_run_on(self, systems: Sequence[System]) -> bool:
        """Whether any of ``systems`` is whitelisted (all are, with no whitelist)."""
        if self.systems is None:
            return True
        return any(s in systems for s in self.systems)


@dataclass
class CustomSteps:
    """Custom steps by name, run in name order."""

    steps: dict[str, CustomStep] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Any) -> CustomSteps:
        """Build from a mapping of step name to step."""
        if not isinstance(data, dict):
            raise ValueError("custom steps must be a mapping")
        return cls({str(k): CustomStep.from_json(v) for k, v in data.items()})

    def run(
        self, nixcmd: NixCmd, systems: Sequence[System], url: FlakeUrl, subflake: Any
    ) -> None:
        """Run every step whitelisted for ``systems``."""
        for name, step in sorted(self.steps.items()):
            if step.can_run_on(systems):
                logger.info("🏗  Running custom step: %s", name)
                step.run(nixcmd, url, subflake)
            else:
                logger.info(
                    "🏗  Skipping custom step %s because it's not whitelisted "
                    "for the current system: %s",
                    name,
                    [str(s) for s in systems],
                )


def _make_writeable(root: Path) -> None:
    for dirpath, dirnames, filenames in os.walk(root):
        for entry in [dirpath, *(os.path.join(dirpath, n) for n in dirnames + filenames)]:
            if not os.path.islink(entry):
                os.chmod(entry, os.stat(entry).st_mode | stat.S_IWUSR)


def with_writeable_flake_dir(
    nixcmd: NixCmd, url: FlakeUrl, f: Callable[[Path], T]
) -> T:
    """Call ``f`` with a writeable local directory holding the flake at ``url``.

    Read-only flakes (such as store paths) are copied to a temporary directory,
    since ``nix run`` and ``nix develop`` do not work reliably on them.
    """
    local = url.as_local_path()
    if local is None:
        local = FlakeMetadata.from_nix(nixcmd, url).path
    local = Path(local)
    if os.stat(local).st_mode & 0o222:
        return f(local)
    with tempfile.TemporaryDirectory(prefix="om-ci-") as tmp:
        target = Path(tmp) / "flake"
        shutil.copytree(local, target, symlinks=True)
        _make_writeable(target)
        return f(target)