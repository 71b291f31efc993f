"""Nix store URIs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class StoreURIParseError(ValueError):
    """A store URI could not be parsed."""


@dataclass(frozen=True)
class SSHStoreURI:
    """A remote store reached over SSH."""

    host: str
    user: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.user}@{self.host}" if self.user is not None else self.host


@dataclass(frozen=True)
class StoreURI:
    """A Nix store URI; only the ``ssh`` scheme is supported."""

    ssh: SSHStoreURI

    @classmethod
    def parse(cls, uri: str) -> StoreURI:
        """Parse ``ssh://[user@]host``."""
        scheme, sep, rest = uri.partition("://")
        if not sep:
            raise StoreURIParseError("Invalid URI format")
        if scheme != "ssh":
            raise StoreURIParseError(f"Unsupported scheme: {scheme}")
        user, at, host = rest.partition("@")
        if not at:
            user, host = None, rest
        if not host:
            raise StoreURIParseError("Missing host")
        return cls(SSHStoreURI(host=host, user=user))

    def __str__(self) -> str:
        return f"ssh://{self.ssh}"