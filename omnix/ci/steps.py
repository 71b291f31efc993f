"""The CI steps run for each subflake."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from omnix.ci.lock import nix_flake_lock_check
from omnix.ci.step_build import BuildStep, BuildStepArgs, BuildStepResult
from omnix.ci.step_custom import CustomSteps
from omnix.nix import flake_command
from omnix.nix.command import NixCmd
from omnix.nix.flake_command import FlakeOptions
from omnix.nix.flake_url import FlakeUrl
from omnix.nix.system import System

logger = logging.getLogger(__name__)


@dataclass
class LockfileStep:
    """Check that ``flake.lock`` is not out of date."""

    enable: bool = True

    def run(self, nixcmd: NixCmd, url: FlakeUrl, subflake: Any) -> None:
        """Check the lock file, unless the subflake overrides inputs."""
        if subflake.override_inputs:
            return
        logger.info("🫀 Checking that %s/flake.lock is up-to-date", subflake.dir)
        nix_flake_lock_check(nixcmd, url.sub_flake_url(subflake.dir))


@dataclass
class FlakeCheckStep:
    """Run ``nix flake check``, which evaluates checks ``nix build`` does not."""

    enable: bool = True

    def run(self, nixcmd: NixCmd, url: FlakeUrl, subflake: Any) -> None:
        """Run ``nix flake check`` on the subflake."""
        logger.info("🩺 Running flake check on: %s", subflake.dir)
        opts = FlakeOptions(override_inputs=dict(subflake.override_inputs))
        flake_command.check(nixcmd, opts, url.sub_flake_url(subflake.dir))


def _enable(data: Any, key: str) -> bool:
    step = data[key]
    if not isinstance(step, dict) or not isinstance(step.get("enable"), bool):
        raise ValueError(f"step {key!r} needs a boolean 'enable'")
    return step["enable"]


@dataclass
class Steps:
    """The builtin steps, plus the user's custom steps."""

    lockfile_step: LockfileStep = field(default_factory=LockfileStep)
    build_step: BuildStep = field(default_factory=BuildStep)
    flake_check_step: FlakeCheckStep = field(default_factory=FlakeCheckStep)
    custom_steps: CustomSteps = field(default_factory=CustomSteps)

    @classmethod
    def from_json(cls, data: Any) -> Steps:
        """Build from the ``steps`` configuration; ``custom`` is required."""
        if not isinstance(data, dict):
            raise ValueError("steps must be a mapping")
        if "custom" not in data:
            raise ValueError("steps need a 'custom' mapping")
        steps = cls(custom_steps=CustomSteps.from_json(data["custom"]))
        if "lockfile" in data:
            steps.lockfile_step = LockfileStep(_enable(data, "lockfile"))
        if "build" in data:
            steps.build_step = BuildStep(_enable(data, "build"))
        if "flake-check" in data:
            steps.flake_check_step = FlakeCheckStep(_enable(data, "flake-check"))
        return steps

    def run(
        self,
        cmd: NixCmd,
        verbose: bool,
        run_cmd: Any,
        systems: Sequence[System],
        url: FlakeUrl,
        subflake: Any,
    ) -> StepsResult:
        """Run the enabled steps in order: lockfile, build, flake check, custom."""
        result = StepsResult()
        if self.lockfile_step.enable:
            self.lockfile_step.run(cmd, url, subflake)
        if self.build_step.enable:
            build_result = self.build_step.run(cmd, verbose, run_cmd, url, subflake)
            build_result.print()
            result.build_step = build_result
        if self.flake_check_step.enable:
            self.flake_check_step.run(cmd, url, subflake)
        self.custom_steps.run(cmd, systems, url, subflake)
        return result


@dataclass
class StepsArgs:
    """Command-line arguments for the steps."""

    build_step_args: BuildStepArgs = field(default_factory=BuildStepArgs)

    def to_cli_args(self) -> list[str]:
        """These arguments as they would be given on the command line."""
        return self.build_step_args.to_cli_args()


@dataclass
class StepsResult:
    """The results of the steps."""

    build_step: Optional[BuildStepResult] = None

    @classmethod
    def from_json(cls, data: Any) -> StepsResult:
        """Build from ``{"build": ...}``."""
        if not isinstance(data, dict):
            raise ValueError("steps result must be a mapping")
        build = data.get("build")
        return cls(None if build is None else BuildStepResult.from_json(build))

    def to_json(self) -> dict[str, Any]:
        """The JSON form."""
        return {"build": None if self.build_step is None else self.build_step.to_json()}