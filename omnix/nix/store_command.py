"""Running ``nix-store``."""

from __future__ import annotations

import os
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from omnix.nix.command import CommandError, NixCmdError, ProcessFailed, trace_cmd
from omnix.nix.store_path import StorePath

PathLike = Union[str, os.PathLike]


class NixStoreCmdError(NixCmdError):
    """A ``nix-store`` command failed."""


class UnknownDeriver(NixStoreCmdError):
    """``nix-store`` reported ``unknown-deriver``."""

    def __init__(self) -> None:
        super().__init__("Unknown deriver")


def _run(argv: Sequence[str], cwd: Optional[PathLike] = None) -> bytes:
    trace_cmd(argv)
    try:
        proc = subprocess.run(list(argv), cwd=cwd, capture_output=True)
    except OSError as exc:
        raise CommandError(f"Child process error: {exc}") from exc
    if proc.returncode != 0:
        stderr = (proc.stderr or b"").decode("utf-8", errors="replace")
        exit_code = proc.returncode if proc.returncode >= 0 else None
        raise ProcessFailed(stderr=stderr, exit_code=exit_code)
    return proc.stdout or b""


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CommandError(f"Failed to decode command output: {exc}") from exc


@dataclass(frozen=True)
class NixStoreCmd:
    """The ``nix-store`` command."""

    def command(self, args: Iterable[PathLike] = ()) -> list[str]:
        """The argument vector for ``nix-store`` with ``args``."""
        return ["nix-store", *(os.fspath(a) for a in args)]

    def fetch_all_deps(self, out_paths: Sequence[StorePath]) -> list[StorePath]:
        """All build and runtime dependencies of the given outputs."""
        drvs = self.nix_store_query_deriver(out_paths)
        return self.nix_store_query_requisites_with_outputs(drvs)

    def nix_store_query_deriver(self, out_paths: Sequence[StorePath]) -> list[Path]:
        """The derivations that built the given outputs."""
        argv = self.command(["--query", "--valid-derivers", *out_paths])
        lines = _decode(_run(argv)).splitlines()
        if "unknown-deriver" in lines:
            raise UnknownDeriver()
        return [Path(line) for line in lines]

    def nix_store_query_requisites_with_outputs(
        self, drv_paths: Sequence[PathLike]
    ) -> list[StorePath]:
        """All store dependencies of the given derivations, outputs included."""
        argv = self.command(["--query", "--requisites", "--include-outputs", *drv_paths])
        return [StorePath(line) for line in _decode(_run(argv)).splitlines()]

    def add_file_permanently(self, symlink: PathLike, contents: str) -> StorePath:
        """Add ``contents`` to the store as a GC root at ``symlink``."""
        with tempfile.TemporaryDirectory(prefix="omnix-ci-") as tmp:
            temp_file = Path(tmp) / "om.json"
            temp_file.write_text(contents)
            path = self.nix_store_add(temp_file)
            self.nix_store_add_root(symlink, [path])
        return path

    def nix_store_add(self, path: PathLike) -> StorePath:
        """Run ``nix-store --add`` on ``path`` and return the store path."""
        path = Path(path)
        # Passing the file name from its directory avoids trouble with symlinked parents.
        if path.name:
            argv, cwd = self.command(["--add", path.name]), path.parent
        else:
            argv, cwd = self.command(["--add", path]), None
        return StorePath(_decode(_run(argv, cwd=cwd)).rstrip())

    def nix_store_add_root(self, symlink: PathLike, paths: Sequence[StorePath]) -> None:
        """Run ``nix-store --add-root`` for ``paths`` at ``symlink``."""
        _run(self.command(["--add-root", symlink, "--realise", *paths]))