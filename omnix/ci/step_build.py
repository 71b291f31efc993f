"""The build step: build every output of a flake."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from omnix.ci.devour_flake import (
    DevourFlakeInput,
    DevourFlakeOutput,
    devour_flake,
    transform_override_inputs,
)
from omnix.nix.command import NixCmd
from omnix.nix.flake_url import FlakeUrl
from omnix.nix.store_command import NixStoreCmd
from omnix.nix.store_path import StorePath

logger = logging.getLogger(__name__)

_DEFAULT_EXTRA_NIX_BUILD_ARGS = ("--refresh", "-j", "auto")


@dataclass
class BuildStepArgs:
    """Command-line arguments of the build step."""

    print_all_dependencies: bool = False
    extra_nix_build_args: list[str] = field(
        default_factory=lambda: list(_DEFAULT_EXTRA_NIX_BUILD_ARGS)
    )

    def preprocess(self) -> None:
        """Adjust ``--override-input`` names to what devour-flake expects."""
        self.extra_nix_build_args = transform_override_inputs(self.extra_nix_build_args)

    def to_cli_args(self) -> list[str]:
        """These arguments as they would be given on the command line."""
        args: list[str] = []
        if self.print_all_dependencies:
            args.append("--print-all-dependencies")
        if self.extra_nix_build_args:
            args += ["--", *self.extra_nix_build_args]
        return args


@dataclass
class BuildStepResult:
    """The outcome of the build step."""

    devour_flake_output: DevourFlakeOutput = field(default_factory=DevourFlakeOutput)
    all_deps: Optional[list[StorePath]] = None

    @classmethod
    def from_json(cls, data: Any) -> BuildStepResult:
        """Build from the JSON form, devour-flake keys flattened in."""
        output = DevourFlakeOutput.from_json(data)
        deps = data.get("allDeps")
        if deps is None:
            return cls(output, None)
        if not isinstance(deps, list) or not all(isinstance(d, str) for d in deps):
            raise ValueError("allDeps must be a list of strings")
        return cls(output, [StorePath(d) for d in deps])

    def to_json(self) -> dict[str, Any]:
        """The JSON form; ``allDeps`` is left out when unknown."""
        data = self.devour_flake_output.to_json()
        if self.all_deps is not None:
            data["allDeps"] = [str(p) for p in self.all_deps]
        return data

    def print(self) -> None:
        """Print all dependencies if known, else the out paths, one per line."""
        paths = self.all_deps if self.all_deps is not None else self.devour_flake_output.out_paths
        for path in paths:
            print(path.as_path())


def subflake_extra_args(subflake: Any, build_step_args: BuildStepArgs) -> list[str]:
    """Extra nix arguments for devour-flake: overridden inputs, then user arguments."""
    args: list[str] = []
    for name in sorted(subflake.override_inputs):
        args += ["--override-input", f"flake/{name}", str(subflake.override_inputs[name])]
    args += build_step_args.extra_nix_build_args
    return args


@dataclass
class BuildStep:
    """Build all outputs of the flake."""

    enable: bool = True

    def run(
        self,
        nixcmd: NixCmd,
        verbose: bool,
        run_cmd: Any,
        url: FlakeUrl,
        subflake: Any,
    ) -> BuildStepResult:
        """Build the subflake, collecting all dependencies when asked to."""
        logger.info("⚒️  Building subflake: %s", subflake.dir)
        build_args = run_cmd.steps_args.build_step_args
        systems = run_cmd.systems.url if run_cmd.systems is not None else None
        flake_input = DevourFlakeInput(flake=url.sub_flake_url(subflake.dir), systems=systems)
        output = devour_flake(
            nixcmd, verbose, flake_input, subflake_extra_args(subflake, build_args)
        )
        result = BuildStepResult(devour_flake_output=output)
        if build_args.print_all_dependencies:
            result.all_deps = NixStoreCmd().fetch_all_deps(output.out_paths)
        return result