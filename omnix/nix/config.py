"""The nix configuration, as reported by ``nix show-config --json``."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Literal, Mapping, TypeVar
from urllib.parse import urlsplit

from omnix.nix.command import NixCmd, NixCmdError
from omnix.nix.system import System
from omnix.nix.version import NixVersion

T = TypeVar("T")

_NIX_2_20_0 = NixVersion(2, 20, 0)


class NixConfigError(NixCmdError):
    """The nix configuration could not be obtained or decoded."""


@dataclass
class ConfigVal(Generic[T]):
    """One configuration entry: its value, nix's default and a description."""

    value: T
    default_value: T
    description: str


@dataclass(frozen=True)
class TrustedUserValue:
    """One entry of ``trusted-users``: everyone, a user, or a group."""

    kind: Literal["all", "user", "group"]
    name: str = ""

    @classmethod
    def parse(cls, s: str) -> TrustedUserValue:
        """Parse a nix.conf entry: ``*`` for all, ``@name`` for a group."""
        if s == "*":
            return cls("all")
        if s.startswith("@"):
            return cls("group", s[1:])
        return cls("user", s)

    @classmethod
    def display_original(cls, values: Iterable[TrustedUserValue]) -> str:
        """Render values as they appear in nix.conf."""
        return " ".join(str(v) for v in values)

    def __str__(self) -> str:
        if self.kind == "all":
            return "*"
        if self.kind == "group":
            return f"@{self.name}"
        return self.name


def _int(v: Any) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueError(f"expected an integer, got {v!r}")
    return v


def _str(v: Any) -> str:
    if not isinstance(v, str):
        raise ValueError(f"expected a string, got {v!r}")
    return v


def _str_list(v: Any) -> list[str]:
    if not isinstance(v, list):
        raise ValueError(f"expected a list, got {v!r}")
    return [_str(x) for x in v]


def _url(v: Any) -> str:
    s = _str(v)
    if not urlsplit(s).scheme:
        raise ValueError(f"invalid URL: {s!r}")
    return s


def _config_val(data: Mapping[str, Any], key: str, convert: Callable[[Any], T]) -> ConfigVal[T]:
    entry = data[key]
    return ConfigVal(
        value=convert(entry["value"]),
        default_value=convert(entry["defaultValue"]),
        description=_str(entry["description"]),
    )


@dataclass
class NixConfig:
    """The subset of nix configuration this package uses."""

    cores: ConfigVal[int]
    experimental_features: ConfigVal[list[str]]
    extra_platforms: ConfigVal[list[str]]
    flake_registry: ConfigVal[str]
    max_jobs: ConfigVal[int]
    substituters: ConfigVal[list[str]]
    system: ConfigVal[System]
    trusted_users: ConfigVal[list[TrustedUserValue]]

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> NixConfig:
        """Build from the decoded JSON of ``nix show-config --json``."""
        try:
            return cls(
                cores=_config_val(data, "cores", _int),
                experimental_features=_config_val(data, "experimental-features", _str_list),
                extra_platforms=_config_val(data, "extra-platforms", _str_list),
                flake_registry=_config_val(data, "flake-registry", _str),
                max_jobs=_config_val(data, "max-jobs", _int),
                substituters=_config_val(
                    data, "substituters", lambda v: [_url(x) for x in _str_list(v)]
                ),
                system=_config_val(data, "system", lambda v: System.parse(_str(v))),
                trusted_users=_config_val(
                    data,
                    "trusted-users",
                    lambda v: [TrustedUserValue.parse(x) for x in _str_list(v)],
                ),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise NixConfigError(
                f"Failed to decode command stdout (json error): {exc!r}"
            ) from exc

    @classmethod
    def from_nix(cls, nix_cmd: NixCmd, nix_version: NixVersion) -> NixConfig:
        """Run the config-showing nix command suited to ``nix_version``."""
        if nix_version >= _NIX_2_20_0:
            args = ["config", "show", "--json"]
        else:
            args = ["show-config", "--json"]
        return cls.from_json(nix_cmd.run_with_args_expecting_json(args))

    @classmethod
    def get(cls) -> NixConfig:
        """Return the configuration of the installed nix, computed once."""
        global _cached
        with _lock:
            if _cached is None:
                cmd = NixCmd()
                # nix-command may not be enabled yet.
                cmd.with_nix_command()
                try:
                    _cached = cls.from_nix(cmd, NixVersion.get())
                except NixConfigError as exc:
                    _cached = exc
                except NixCmdError as exc:
                    _cached = NixConfigError(f"Nix command error: {exc}")
                    _cached.__cause__ = exc
            if isinstance(_cached, NixConfigError):
                raise _cached
            return _cached

    def is_flakes_enabled(self) -> bool:
        """Whether both ``nix-command`` and ``flakes`` are enabled."""
        features = self.experimental_features.value
        return "nix-command" in features and "flakes" in features


_cached: NixConfig | NixConfigError | None = None
_lock = threading.Lock()