"""Information about a nix flake."""

from __future__ import annotations

from dataclasses import dataclass

from omnix.nix.command import NixCmd
from omnix.nix.config import NixConfig
from omnix.nix.flake_schema import FlakeOutputs, FlakeSchemas
from omnix.nix.flake_url import FlakeUrl


@dataclass
class Flake:
    """A flake URL together with the outputs it provides."""

    url: FlakeUrl
    output: FlakeOutputs

    @classmethod
    def from_nix(cls, nix_cmd: NixCmd, nix_config: NixConfig, url: FlakeUrl) -> Flake:
        """Inspect the flake at ``url`` for the configured system."""
        schemas = FlakeSchemas.from_nix(nix_cmd, url, nix_config.system.value)
        return cls(url=url, output=schemas.to_flake_outputs())