"""Flake schemas, as evaluated by the inspect flake, and the outputs they describe."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from omnix.nix.command import NixCmd, NixCmdError
from omnix.nix.flake_command import FlakeOptions
from omnix.nix.flake_eval import nix_eval
from omnix.nix.flake_url import FlakeUrl
from omnix.nix.system import System
from omnix.nix.system_list import SystemsListFlakeRef


def _flake_from_env(name: str) -> FlakeUrl:
    value = os.environ.get(name)
    if not value:
        raise LookupError(f"environment variable {name} is not set")
    return FlakeUrl.from_path(value)


def default_flake_schemas() -> FlakeUrl:
    """The flake of the default flake schemas, from ``$DEFAULT_FLAKE_SCHEMAS``."""
    return _flake_from_env("DEFAULT_FLAKE_SCHEMAS")


def inspect_flake() -> FlakeUrl:
    """The flake defining functions to inspect flake outputs, from ``$INSPECT_FLAKE``."""
    return _flake_from_env("INSPECT_FLAKE")


class Type(enum.Enum):
    """The type of a flake output value; unrecognised names become ``UNKNOWN``."""

    NIXOS_MODULE = "NixOS module"
    NIXOS_CONFIGURATION = "NixOS configuration"
    DARWIN_CONFIGURATION = "nix-darwin configuration"
    PACKAGE = "package"
    DEV_SHELL = "development environment"
    CHECK = "CI test"
    APP = "app"
    TEMPLATE = "template"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> Type:
        return cls.UNKNOWN

    def to_icon(self) -> str:
        """An icon for this type."""
        return _ICONS[self]

    def __str__(self) -> str:
        return _NAMES[self]


_ICONS = {
    Type.NIXOS_MODULE: "❄️",
    Type.NIXOS_CONFIGURATION: "🔧",
    Type.DARWIN_CONFIGURATION: "🍎",
    Type.PACKAGE: "📦",
    Type.DEV_SHELL: "🐚",
    Type.CHECK: "🧪",
    Type.APP: "📱",
    Type.TEMPLATE: "🏗️",
    Type.UNKNOWN: "❓",
}

_NAMES = {
    Type.NIXOS_MODULE: "NixosModule",
    Type.NIXOS_CONFIGURATION: "NixosConfiguration",
    Type.DARWIN_CONFIGURATION: "DarwinConfiguration",
    Type.PACKAGE: "Package",
    Type.DEV_SHELL: "DevShell",
    Type.CHECK: "Check",
    Type.APP: "App",
    Type.TEMPLATE: "Template",
    Type.UNKNOWN: "Unknown",
}


@dataclass(frozen=True)
class Val:
    """A terminal value of a flake output."""

    type_: Type = Type.UNKNOWN
    derivation_name: Optional[str] = None
    short_description: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any) -> Val:
        """Build from ``{"what": ..., "derivationName": ..., "shortDescription": ...}``."""
        val = _parse_val(data)
        if val is None:
            raise ValueError(f"not a flake output value: {data!r}")
        return val


def _optional_str(data: Mapping[str, Any], key: str) -> tuple[bool, Optional[str]]:
    value = data.get(key)
    return (value is None or isinstance(value, str)), value


def _parse_val(data: Any) -> Optional[Val]:
    if not isinstance(data, dict) or not isinstance(data.get("what"), str):
        return None
    ok_name, name = _optional_str(data, "derivationName")
    ok_desc, desc = _optional_str(data, "shortDescription")
    if not (ok_name and ok_desc):
        return None
    return Val(Type(data["what"]), name, desc)


# An inventory item is a value, a documentation string, or a nested mapping.
_InventoryItem = Union[Val, str, dict]


def _parse_item(data: Any) -> _InventoryItem:
    val = _parse_val(data)
    if val is not None:
        return val
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        return {str(k): _parse_item(v) for k, v in data.items()}
    raise ValueError(f"invalid inventory item: {data!r}")


@dataclass(frozen=True)
class FlakeOutputs:
    """Flake outputs: either a terminal value or a mapping of nested outputs."""

    val: Optional[Val] = None
    attrset: Optional[dict[str, FlakeOutputs]] = None

    def __post_init__(self) -> None:
        if (self.val is None) == (self.attrset is None):
            raise ValueError("FlakeOutputs holds exactly one of val or attrset")

    def get_val(self) -> Optional[Val]:
        """The terminal value, if this is one."""
        return self.val

    def get_attrset(self) -> Optional[dict[str, FlakeOutputs]]:
        """The nested outputs, if this is a mapping."""
        return self.attrset

    def get_attrset_of_val(self) -> list[tuple[str, Val]]:
        """The terminal values directly inside this mapping, with their names."""
        if self.attrset is None:
            return []
        return [(k, v.val) for k, v in self.attrset.items() if v.val is not None]

    def get_by_path(self, path: Sequence[str]) -> Optional[FlakeOutputs]:
        """Follow ``path`` through nested mappings."""
        current: FlakeOutputs = self
        for key in path:
            if current.attrset is None or key not in current.attrset:
                return None
            current = current.attrset[key]
        return current


def _item_to_outputs(item: _InventoryItem) -> Optional[FlakeOutputs]:
    if isinstance(item, Val):
        return FlakeOutputs(val=item)
    if isinstance(item, str):
        return None
    if "children" in item:
        return _item_to_outputs(item["children"])
    converted = {k: _item_to_outputs(v) for k, v in item.items()}
    filtered = {k: v for k, v in converted.items() if v is not None}
    return FlakeOutputs(attrset=filtered) if filtered else None


@dataclass
class FlakeSchemas:
    """The schema of a flake, keyed by top-level output or metadata name."""

    inventory: dict[str, _InventoryItem]

    @classmethod
    def from_json(cls, data: Any) -> FlakeSchemas:
        """Build from the decoded JSON of the inspect flake."""
        if not isinstance(data, dict) or not isinstance(data.get("inventory"), dict):
            raise ValueError("flake schemas must hold an 'inventory' mapping")
        return cls({str(k): _parse_item(v) for k, v in data["inventory"].items()})

    @classmethod
    def from_nix(cls, nix_cmd: NixCmd, flake_url: FlakeUrl, system: System) -> FlakeSchemas:
        """Evaluate the schemas of ``flake_url`` for ``system``."""
        # excludingOutputPaths is much faster than includingOutputPaths.
        inspect = inspect_flake().with_attr("contents.excludingOutputPaths")
        systems = SystemsListFlakeRef.from_known_system(system)
        if systems is None:
            raise ValueError(f"no known systems flake for {system}")
        opts = FlakeOptions(
            no_write_lock_file=True,
            override_inputs={
                "flake-schemas": default_flake_schemas(),
                "flake": flake_url,
                "systems": systems.url,
            },
        )
        data = nix_eval(nix_cmd, opts, inspect)
        try:
            return cls.from_json(data)
        except ValueError as exc:
            raise NixCmdError(
                f"Failed to decode command stdout (json error): {exc}"
            ) from exc

    def to_flake_outputs(self) -> FlakeOutputs:
        """The flake outputs described by this schema."""
        converted = {k: _item_to_outputs(v) for k, v in self.inventory.items()}
        return FlakeOutputs(attrset={k: v for k, v in converted.items() if v is not None})