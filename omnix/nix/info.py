"""Everything known about the user's nix installation."""

from __future__ import annotations

import threading
from dataclasses import dataclass

from omnix.nix.command import NixCmdError
from omnix.nix.config import NixConfig
from omnix.nix.env import NixEnv, NixEnvError
from omnix.nix.version import NixVersion

RELEASE_HISTORY = "https://nixos.org/manual/nix/stable/release-notes/release-notes.html"


class NixInfoError(Exception):
    """Information about the nix installation could not be gathered."""


@dataclass
class NixInfo:
    """The nix version, configuration and environment."""

    nix_version: NixVersion
    nix_config: NixConfig
    nix_env: NixEnv

    @classmethod
    def new(cls, nix_version: NixVersion, nix_config: NixConfig) -> NixInfo:
        """Detect the environment and combine it with the given version and config."""
        try:
            nix_env = NixEnv.detect()
        except NixEnvError as exc:
            raise NixInfoError(f"Nix environment error: {exc}") from exc
        return cls(nix_version=nix_version, nix_config=nix_config, nix_env=nix_env)

    @classmethod
    def get(cls) -> NixInfo:
        """Return information about the installed nix, computed once."""
        global _cached
        with _lock:
            if _cached is None:
                try:
                    _cached = cls.new(NixVersion.get(), NixConfig.get())
                except NixInfoError as exc:
                    _cached = exc
                except NixCmdError as exc:
                    _cached = NixInfoError(f"Nix command error: {exc}")
                    _cached.__cause__ = exc
            if isinstance(_cached, NixInfoError):
                raise _cached
            return _cached


_cached: NixInfo | NixInfoError | None = None
_lock = threading.Lock()