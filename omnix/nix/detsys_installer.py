"""Detection of the DetSys nix-installer."""

from __future__ import annotations

import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

NIX_INSTALLER_PATH = Path("/nix/nix-installer")

_VERSION_RE = re.compile(r"(\d+)\.(\d+)\.(\d+)")
_U32_MAX = 2**32 - 1


class BadInstallerVersion(Exception):
    """The installer version could not be determined."""


@dataclass(frozen=True, order=True)
class InstallerVersion:
    """The version of the DetSys nix-installer."""

    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, s: str) -> InstallerVersion:
        """Find the first ``X.Y.Z`` in ``s``."""
        match = _VERSION_RE.search(s)
        if match is None:
            raise BadInstallerVersion(
                "Failed to fetch installer version: Failed to capture regex"
            )
        parts = [int(g) for g in match.groups()]
        if any(p > _U32_MAX for p in parts):
            raise BadInstallerVersion(
                f"Failed to parse installer version: number too large in {s!r}"
            )
        return cls(*parts)

    @classmethod
    def get_version(cls, executable_path: Union[str, os.PathLike]) -> InstallerVersion:
        """Run ``<executable> --version`` and parse its output."""
        try:
            proc = subprocess.run(
                [os.fspath(executable_path), "--version"], capture_output=True
            )
        except OSError as exc:
            raise BadInstallerVersion(
                f"Failed to fetch installer version: {exc}"
            ) from exc
        try:
            text = (proc.stdout or b"").decode("utf-8")
        except UnicodeDecodeError as exc:
            raise BadInstallerVersion(
                f"Failed to decode installer output: {exc}"
            ) from exc
        return cls.parse(text)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True)
class DetSysNixInstaller:
    """The DetSys nix-installer, with its version."""

    version: InstallerVersion

    @classmethod
    def detect(cls) -> Optional[DetSysNixInstaller]:
        """The installer if it is present, else ``None``."""
        path = Path(NIX_INSTALLER_PATH)
        if not path.exists():
            return None
        return cls(version=InstallerVersion.get_version(path))

    def __str__(self) -> str:
        return f"DetSys nix-installer ({self.version})"