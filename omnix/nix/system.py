"""Nix system types: the platform a derivation is built for."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Arch(Enum):
    """CPU architecture of a system."""

    AARCH64 = "aarch64"
    X86_64 = "x86_64"

    def human_readable(self) -> str:
        """A human readable title for the architecture."""
        return "ARM" if self is Arch.AARCH64 else "Intel"


_KNOWN: dict[str, tuple[str, Arch]] = {
    "aarch64-linux": ("linux", Arch.AARCH64),
    "x86_64-linux": ("linux", Arch.X86_64),
    "x86_64-darwin": ("darwin", Arch.X86_64),
    "aarch64-darwin": ("darwin", Arch.AARCH64),
}
_KERNEL_ORDER = {"darwin": 0, "linux": 1}
_ARCH_ORDER = {Arch.AARCH64: 0, Arch.X86_64: 1}


@functools.total_ordering
@dataclass(frozen=True)
class System:
    """A Nix system string such as ``x86_64-linux``.

    The four standard systems are recognised; anything else is kept verbatim.
    """

    name: str

    @classmethod
    def parse(cls, s: str) -> System:
        """Build a system from its Nix name; never fails."""
        return cls(s)

    @property
    def kernel(self) -> Optional[str]:
        """``darwin`` or ``linux`` for standard systems, else ``None``."""
        known = _KNOWN.get(self.name)
        return known[0] if known else None

    @property
    def arch(self) -> Optional[Arch]:
        """The architecture of a standard system, else ``None``."""
        known = _KNOWN.get(self.name)
        return known[1] if known else None

    def _sort_key(self) -> tuple[int, int, str]:
        known = _KNOWN.get(self.name)
        if known is None:
            return (2, 0, self.name)
        kernel, arch = known
        return (_KERNEL_ORDER[kernel], _ARCH_ORDER[arch], "")

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, System):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def human_readable(self) -> str:
        """A human readable title, e.g. ``Linux (ARM)``."""
        known = _KNOWN.get(self.name)
        if known is None:
            return self.name
        kernel, arch = known
        label = "Linux" if kernel == "linux" else "macOS"
        return f"{label} ({arch.human_readable()})"

    def __str__(self) -> str:
        return self.name