"""Checking ``flake.lock`` with ``nix flake lock``."""

from __future__ import annotations

from omnix.nix import flake_command
from omnix.nix.command import NixCmd
from omnix.nix.flake_command import FlakeOptions
from omnix.nix.flake_url import FlakeUrl


def nix_flake_lock_check(nixcmd: NixCmd, url: FlakeUrl) -> None:
    """Fail unless the flake's ``flake.lock`` is in sync."""
    flake_command.lock(nixcmd, FlakeOptions(), ["--no-update-lock-file"], url)