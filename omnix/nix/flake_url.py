"""Flake URLs and their attribute part."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


@dataclass(frozen=True)
class FlakeAttr:
    """The optional attribute part of a flake URL, e.g. ``foo`` in ``.#foo``."""

    value: Optional[str] = None

    @classmethod
    def none(cls) -> FlakeAttr:
        """A missing flake attribute."""
        return cls(None)

    def get_name(self) -> str:
        """The attribute name, or ``default`` when none is set."""
        return self.value if self.value is not None else "default"

    def is_none(self) -> bool:
        """Whether no explicit attribute is set."""
        return self.value is None

    def as_list(self) -> list[str]:
        """The attribute split on ``.`` into nested names."""
        return self.value.split(".") if self.value is not None else []


@dataclass(frozen=True, order=True)
class FlakeUrl:
    """A flake URL, as understood by nix commands."""

    url: str

    @classmethod
    def parse(cls, s: str) -> FlakeUrl:
        """Parse a flake URL, rejecting blank input."""
        s = s.strip()
        if not s:
            raise ValueError("Empty string is not a valid Flake URL")
        return cls(s)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> FlakeUrl:
        """A flake URL for a local path (without ``path:``, to avoid store copies)."""
        return cls(str(path))

    def _local_path_str(self) -> Optional[str]:
        s = self.url[len("path:"):] if self.url.startswith("path:") else self.url
        if not s.startswith((".", "/")):
            return None
        return s.split("?", 1)[0].split("#", 1)[0]

    def as_local_path(self) -> Optional[Path]:
        """The local path, if this URL uses the path-like syntax."""
        s = self._local_path_str()
        return Path(s) if s is not None else None

    def split_attr(self) -> tuple[FlakeUrl, FlakeAttr]:
        """Split off the ``#attr`` part."""
        url, sep, attr = self.url.partition("#")
        if not sep:
            return self, FlakeAttr(None)
        return FlakeUrl(url), FlakeAttr(attr)

    def get_attr(self) -> FlakeAttr:
        """The attribute part of this URL."""
        return self.split_attr()[1]

    def without_attr(self) -> FlakeUrl:
        """This URL with the attribute part removed."""
        return self.split_attr()[0]

    def with_attr(self, attr: str) -> FlakeUrl:
        """This URL with its attribute replaced by ``attr``."""
        return FlakeUrl(f"{self.without_attr().url}#{attr}")

    def sub_flake_url(self, dir: str) -> FlakeUrl:
        """The URL of the flake living in subdirectory ``dir``."""
        if dir == ".":
            return self
        local = self._local_path_str()
        if local is not None:
            return FlakeUrl.from_path(posixpath.join(local, dir))
        sep = "&dir=" if "?" in self.url else "?dir="
        return FlakeUrl(f"{self.url}{sep}{dir}")

    def __str__(self) -> str:
        return self.url