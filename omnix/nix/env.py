"""Information about the environment in which nix runs."""

from __future__ import annotations

import enum
import getpass
import logging
import os
import platform
import subprocess
from dataclasses import dataclass
from typing import Literal, Optional

import psutil

from omnix.nix.detsys_installer import BadInstallerVersion, DetSysNixInstaller

logger = logging.getLogger(__name__)


class NixEnvError(Exception):
    """The nix environment could not be determined."""


class AppleEmulation(enum.Enum):
    """Apple emulation mode of the current process."""

    NONE = "none"
    ROSETTA = "rosetta"

    @classmethod
    def detect(cls) -> AppleEmulation:
        """Whether this process runs under Rosetta."""
        try:
            proc = subprocess.run(
                ["sysctl", "-n", "sysctl.proc_translated"],
                capture_output=True,
            )
        except OSError:
            return cls.NONE
        out = (proc.stdout or b"").decode("utf-8", errors="replace").strip()
        return cls.ROSETTA if out == "1" else cls.NONE


@dataclass(frozen=True)
class MacOSArch:
    """macOS CPU architecture; on Apple Silicon, with its emulation mode."""

    name: Optional[str]
    emulation: Optional[AppleEmulation] = None

    @property
    def is_arm64(self) -> bool:
        return self.name == "arm64"

    @classmethod
    def from_arch(cls, os_arch: Optional[str]) -> MacOSArch:
        """Build from an OS architecture string."""
        if os_arch == "arm64":
            return cls("arm64", AppleEmulation.detect())
        return cls(os_arch)


@dataclass(frozen=True)
class OS:
    """The system under which nix is installed."""

    kind: Literal["macos", "nixos", "other"]
    nix_darwin: bool = False
    arch: Optional[MacOSArch] = None
    os_type: str = ""

    @classmethod
    def detect(cls) -> OS:
        """Detect the running operating system."""
        system = platform.system()
        if system == "Darwin":
            arch = MacOSArch.from_arch(platform.machine() or None)
            # nix-darwin manages /etc/nix/nix.conf as a symlink, like NixOS.
            return cls("macos", nix_darwin=os.path.islink("/etc/nix/nix.conf"), arch=arch)
        try:
            release = platform.freedesktop_os_release()
        except OSError:
            release = {}
        if release.get("ID") == "nixos":
            return cls("nixos")
        return cls("other", os_type=release.get("NAME") or system or "Unknown")

    def nix_system_config_label(self) -> Optional[str]:
        """The label for a nix-darwin or NixOS system configuration."""
        if self.kind == "macos" and self.nix_darwin:
            return "nix-darwin configuration"
        if self.kind == "nixos":
            return "nixos configuration"
        return None

    def nix_config_label(self) -> str:
        """The label for where nix is configured."""
        return self.nix_system_config_label() or "/etc/nix/nix.conf"

    def __str__(self) -> str:
        if self.kind == "macos":
            return "macOS (nix-darwin)" if self.nix_darwin else "macOS"
        if self.kind == "nixos":
            return "NixOS"
        return self.os_type


@dataclass(frozen=True)
class NixInstaller:
    """The installer used to install nix; ``detsys`` is None when unknown."""

    detsys: Optional[DetSysNixInstaller] = None

    @classmethod
    def detect(cls) -> NixInstaller:
        """Detect the nix installer."""
        try:
            return cls(DetSysNixInstaller.detect())
        except BadInstallerVersion as exc:
            raise NixEnvError(f"Failed to detect Nix installer: {exc}") from exc

    def __str__(self) -> str:
        return str(self.detsys) if self.detsys is not None else "Unknown installer"


def get_current_user_groups() -> list[str]:
    """The groups of the current user, as printed by ``groups``."""
    try:
        proc = subprocess.run(["groups"], capture_output=True)
    except OSError as exc:
        raise NixEnvError(f"Failed to fetch groups: {exc}") from exc
    return (proc.stdout or b"").decode("utf-8", errors="replace").split()


def _nix_disk_total() -> int:
    mounts = {p.mountpoint for p in psutil.disk_partitions(all=True)}
    for candidate in ("/nix", "/"):
        if candidate in mounts:
            return psutil.disk_usage(candidate).total
    raise NixEnvError("Unable to find root disk or /nix volume")


def to_bytesize(num_bytes: int) -> int:
    """Round down to the largest whole GiB, MiB or KiB unit that fits."""
    kb = num_bytes // 1024
    mb = kb // 1024
    gb = mb // 1024
    if gb > 0:
        return gb * 1024**3
    if mb > 0:
        return mb * 1024**2
    if kb > 0:
        return kb * 1024
    return num_bytes


@dataclass(frozen=True)
class NixEnv:
    """The environment in which nix operates."""

    current_user: str
    current_user_groups: list[str]
    os: OS
    total_disk_space: int
    total_memory: int
    installer: NixInstaller

    @classmethod
    def detect(cls) -> NixEnv:
        """Determine the environment on this machine."""
        logger.debug("Detecting Nix environment")
        detected_os = OS.detect()
        current_user = getpass.getuser()
        total_disk_space = to_bytesize(_nix_disk_total())
        total_memory = to_bytesize(psutil.virtual_memory().total)
        groups = get_current_user_groups()
        installer = NixInstaller.detect()
        return cls(
            current_user=current_user,
            current_user_groups=groups,
            os=detected_os,
            total_disk_space=total_disk_space,
            total_memory=total_memory,
            installer=installer,
        )