"""GitHub Actions matrix of systems and subflakes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from omnix.ci.subflake import SubflakesConfig
from omnix.nix.system import System


@dataclass(frozen=True)
class GitHubMatrixRow:
    """One row of the matrix: a subflake built on a system."""

    system: System
    subflake: str


@dataclass
class GitHubMatrix:
    """A GitHub Actions matrix configuration."""

    include: list[GitHubMatrixRow] = field(default_factory=list)

    @classmethod
    def build(cls, systems: Sequence[System], subflakes: SubflakesConfig) -> GitHubMatrix:
        """One row per system and subflake that can run on it."""
        return cls(
            [
                GitHubMatrixRow(system=system, subflake=name)
                for system in systems
                for name, cfg in subflakes.items()
                if cfg.can_run_on([system])
            ]
        )

    def to_json(self) -> dict[str, Any]:
        """The JSON form GitHub Actions expects."""
        return {
            "include": [
                {"system": str(row.system), "subflake": row.subflake} for row in self.include
            ]
        }