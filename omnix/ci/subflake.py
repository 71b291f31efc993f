"""Configuration of the subflakes that CI runs on."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Sequence

from omnix.ci.steps import Steps
from omnix.nix.flake_url import FlakeUrl
from omnix.nix.system import System


@dataclass
class SubflakeConfig:
    """A sub-flake look-alike, whose inputs may need ``--override-input``.

    The default is the root flake.
    """

    skip: bool = False
    dir: str = "."
    override_inputs: dict[str, FlakeUrl] = field(default_factory=dict)
    systems: Optional[list[System]] = None
    steps: Steps = field(default_factory=Steps)

    @classmethod
    def from_json(cls, data: Any) -> SubflakeConfig:
        """Build from the configuration of one subflake; ``dir`` is required."""
        if not isinstance(data, dict):
            raise ValueError(f"invalid subflake configuration: {data!r}")
        if "dir" not in data:
            raise ValueError("subflake configuration needs a 'dir'")
        directory = data["dir"]
        if not isinstance(directory, str):
            raise ValueError("subflake 'dir' must be a string")
        skip = data.get("skip", False)
        if not isinstance(skip, bool):
            raise ValueError("subflake 'skip' must be a boolean")
        inputs = data.get("overrideInputs", {})
        if not isinstance(inputs, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in inputs.items()
        ):
            raise ValueError("subflake 'overrideInputs' must map names to flake URLs")
        systems = data.get("systems")
        if systems is not None:
            if not isinstance(systems, list) or not all(isinstance(s, str) for s in systems):
                raise ValueError("subflake 'systems' must be a list of strings")
            systems = [System.parse(s) for s in systems]
        steps = Steps.from_json(data["steps"]) if "steps" in data else Steps()
        return cls(
            skip=skip,
            dir=directory,
            override_inputs={k: FlakeUrl(inputs[k]) for k in sorted(inputs)},
            systems=systems,
            steps=steps,
        )

    def can_run_on(self, systems: Sequence[System]) -> bool:
        """Whether CI for this subflake can run on any of ``systems``."""
        if self.systems is None:
            return True
        return any(s in systems for s in self.systems)


def _default_subflakes() -> dict[str, SubflakeConfig]:
    return {"ROOT": SubflakeConfig()}


@dataclass
class SubflakesConfig:
    """The subflakes by name; iterated in name order."""

    subflakes: dict[str, SubflakeConfig] = field(default_factory=_default_subflakes)

    @classmethod
    def from_json(cls, data: Any) -> SubflakesConfig:
        """Build from a mapping of subflake name to configuration."""
        if not isinstance(data, dict):
            raise ValueError("subflakes configuration must be a mapping")
        return cls({str(k): SubflakeConfig.from_json(data[k]) for k in sorted(data)})

    def items(self) -> list[tuple[str, SubflakeConfig]]:
        """The subflakes with their names, in name order."""
        return sorted(self.subflakes.items(), key=lambda kv: kv[0])

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.subflakes))

    def __len__(self) -> int:
        return len(self.subflakes)