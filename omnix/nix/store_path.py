"""Paths in the Nix store."""

from __future__ import annotations

import functools
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union


@functools.total_ordering
@dataclass(frozen=True)
class StorePath:
    """A path in the Nix store: either a derivation or some other path."""

    path: Path

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        object.__setattr__(self, "path", Path(path))

    def is_drv(self) -> bool:
        """Whether this is a derivation path (final component matches ``.drv``)."""
        return self.path.name == ".drv"

    def as_path(self) -> Path:
        """The underlying path, without the derivation distinction."""
        return self.path

    def _sort_key(self) -> tuple[int, Path]:
        return (0 if self.is_drv() else 1, self.path)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, StorePath):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        return str(self.path)

    def __fspath__(self) -> str:
        return str(self.path)