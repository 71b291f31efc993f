"""Parsing of ``nix --version``."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass

from omnix.nix.command import NixCmd, NixCmdError

_VERSION_RE = re.compile(r"(?:nix \(Nix\) )?(\d+)\.(\d+)\.(\d+)")
_U32_MAX = 2**32 - 1


class BadNixVersion(ValueError):
    """The output of ``nix --version`` could not be parsed."""


@dataclass(frozen=True, order=True)
class NixVersion:
    """Nix version as parsed from ``nix --version``."""

    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, s: str) -> NixVersion:
        """Parse ``nix (Nix) X.Y.Z`` or a bare ``X.Y.Z``."""
        match = _VERSION_RE.search(s)
        if match is None:
            raise BadNixVersion(f"`nix --version` cannot be parsed: {s!r}")
        parts = [int(g) for g in match.groups()]
        if any(p > _U32_MAX for p in parts):
            raise BadNixVersion(f"`nix --version` cannot be parsed: {s!r}")
        return cls(*parts)

    @classmethod
    def from_nix(cls, cmd: NixCmd) -> NixVersion:
        """Run ``nix --version`` and parse its output."""
        return cmd.run_with_args_expecting_fromstr(["--version"], cls.parse)

    @classmethod
    def get(cls) -> NixVersion:
        """Return the version of the installed nix, computed once."""
        global _cached
        with _lock:
            if _cached is None:
                try:
                    _cached = cls.from_nix(NixCmd())
                except NixCmdError as exc:
                    _cached = exc
            if isinstance(_cached, NixCmdError):
                raise _cached
            return _cached

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


_cached: NixVersion | NixCmdError | None = None
_lock = threading.Lock()