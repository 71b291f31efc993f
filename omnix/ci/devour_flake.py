"""Building every output of a flake with devour-flake."""

from __future__ import annotations

import io
import json
import os
import subprocess
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Iterable, Iterator, Optional, Union

from omnix.nix.command import NixCmd, trace_cmd
from omnix.nix.flake_url import FlakeUrl
from omnix.nix.store_path import StorePath


def devour_flake_path() -> str:
    """The devour-flake flake source, from ``$DEVOUR_FLAKE``."""
    value = os.environ.get("DEVOUR_FLAKE")
    if not value:
        raise LookupError("environment variable DEVOUR_FLAKE is not set")
    return value


@dataclass(frozen=True)
class DevourFlakeInput:
    """What devour-flake builds, and for which systems (``None`` for the default)."""

    flake: FlakeUrl
    systems: Optional[FlakeUrl] = None


@dataclass
class DevourFlakeOutput:
    """The store paths built by devour-flake."""

    out_paths: list[StorePath] = field(default_factory=list)
    by_name: dict[str, StorePath] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Any) -> DevourFlakeOutput:
        """Build from ``{"outPaths": [...], "byName": {...}}``."""
        try:
            out_paths = data["outPaths"]
            by_name = data["byName"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid devour-flake output: {exc!r}") from exc
        if not isinstance(out_paths, list) or not all(isinstance(p, str) for p in out_paths):
            raise ValueError("invalid devour-flake output: outPaths must be a list of strings")
        if not isinstance(by_name, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in by_name.items()
        ):
            raise ValueError("invalid devour-flake output: byName must map strings to strings")
        return cls(
            out_paths=[StorePath(p) for p in out_paths],
            by_name={k: StorePath(v) for k, v in by_name.items()},
        )

    @classmethod
    def from_drv(cls, drv_out: Union[str, os.PathLike]) -> DevourFlakeOutput:
        """Read the JSON file devour-flake built; out paths come sorted and unique."""
        with open(drv_out, encoding="utf-8") as f:
            try:
                out = cls.from_json(json.load(f))
            except ValueError as exc:
                raise ValueError(f"Failed to parse devour-flake output: {exc}") from exc
        # A flake may expose the same package under several names.
        out.out_paths = sorted(set(out.out_paths))
        return out

    def to_json(self) -> dict[str, Any]:
        """The JSON form, as devour-flake writes it."""
        return {
            "outPaths": [str(p) for p in self.out_paths],
            "byName": {k: str(v) for k, v in self.by_name.items()},
        }


def _relevant_stderr(lines: Iterator[str], verbose: bool) -> Iterator[str]:
    for line in lines:
        if not verbose:
            if line.startswith("• Added input"):
                next(lines, None)  # the line naming the input
                continue
            if line.startswith("warning: not writing modified lock file of flake"):
                continue
        yield line


def _forward_stderr(stream: IO[str], verbose: bool) -> None:
    lines = (line.rstrip("\n") for line in stream)
    for line in _relevant_stderr(lines, verbose):
        print(line, file=sys.stderr)


def devour_flake(
    nixcmd: NixCmd,
    verbose: bool,
    flake_input: DevourFlakeInput,
    extra_args: Iterable[str],
) -> DevourFlakeOutput:
    """Build all outputs of a flake with devour-flake."""
    argv = [
        *nixcmd.command(),
        "build",
        f"{devour_flake_path()}#json",
        "-L",
        "--no-link",
        "--print-out-paths",
        "--override-input",
        "flake",
        str(flake_input.flake),
    ]
    if flake_input.systems is not None:
        argv += ["--override-input", "systems", str(flake_input.systems)]
    argv += list(extra_args)

    trace_cmd(argv)
    try:
        proc = subprocess.Popen(argv, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    except OSError as exc:
        raise RuntimeError("Unable to spawn devour-flake process") from exc
    with proc:
        stderr = io.TextIOWrapper(proc.stderr, encoding="utf-8", errors="replace")
        forwarder = threading.Thread(
            target=_forward_stderr, args=(stderr, verbose), daemon=True
        )
        forwarder.start()
        stdout = proc.stdout.read()
        returncode = proc.wait()
        forwarder.join()

    if returncode != 0:
        exit_code = returncode if returncode >= 0 else 1
        raise RuntimeError(f"devour-flake failed to run (exited: {exit_code})")
    return DevourFlakeOutput.from_drv(Path(os.fsdecode(stdout.rstrip())))


def transform_override_inputs(args: Iterable[str]) -> list[str]:
    """Prefix the input named after each ``--override-input`` with ``flake/``."""
    result: list[str] = []
    it = iter(args)
    for arg in it:
        result.append(arg)
        if arg == "--override-input":
            name = next(it, None)
            if name is not None:
                result.append(f"flake/{name}")
    return result