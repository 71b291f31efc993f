import json
import subprocess
from unittest import mock

import pytest

from omnix.nix.command import NixCmd
from omnix.nix.config import NixConfig, NixConfigError, TrustedUserValue
from omnix.nix.system import System
from omnix.nix.version import NixVersion


def _entry(value, default=None):
    return {"value": value, "defaultValue": value if default is None else default, "description": "d"}


def _sample(features=("nix-command", "flakes")):
    return {
        "cores": _entry(4, 0),
        "experimental-features": _entry(list(features), []),
        "extra-platforms": _entry([]),
        "flake-registry": _entry("https://example.com/registry.json"),
        "max-jobs": _entry(2, 1),
        "substituters": _entry(["https://cache.example.com"]),
        "system": _entry("x86_64-linux"),
        "trusted-users": _entry(["root", "@wheel", "*"], ["root"]),
        "unrelated-key": _entry("ignored"),
    }


def test_from_json():
    cfg = NixConfig.from_json(_sample())
    assert cfg.cores.value == 4
    assert cfg.cores.default_value == 0
    assert cfg.max_jobs.value == 2
    assert cfg.system.value == System.parse("x86_64-linux")
    assert cfg.substituters.value == ["https://cache.example.com"]
    assert cfg.trusted_users.value == [
        TrustedUserValue("user", "root"),
        TrustedUserValue("group", "wheel"),
        TrustedUserValue("all"),
    ]


def test_is_flakes_enabled():
    assert NixConfig.from_json(_sample()).is_flakes_enabled() is True
    assert NixConfig.from_json(_sample(["nix-command"])).is_flakes_enabled() is False


def test_missing_key():
    data = _sample()
    del data["cores"]
    with pytest.raises(NixConfigError):
        NixConfig.from_json(data)


def test_bad_value_type():
    data = _sample()
    data["cores"] = _entry("four")
    with pytest.raises(NixConfigError):
        NixConfig.from_json(data)


def test_bad_substituter_url():
    data = _sample()
    data["substituters"] = _entry(["not a url"])
    with pytest.raises(NixConfigError):
        NixConfig.from_json(data)


def test_trusted_user_parse():
    assert TrustedUserValue.parse("*") == TrustedUserValue("all")
    assert TrustedUserValue.parse("@wheel") == TrustedUserValue("group", "wheel")
    assert TrustedUserValue.parse("alice") == TrustedUserValue("user", "alice")


def test_display_original_round_trip():
    original = "root @wheel *"
    values = [TrustedUserValue.parse(s) for s in original.split()]
    assert TrustedUserValue.display_original(values) == original


@pytest.mark.parametrize(
    "version,args",
    [
        (NixVersion(2, 20, 0), ["config", "show", "--json"]),
        (NixVersion(2, 19, 3), ["show-config", "--json"]),
    ],
)
def test_from_nix_args(version, args):
    stdout = json.dumps(_sample()).encode()
    with mock.patch("omnix.nix.command.subprocess.run") as run:
        run.return_value = subprocess.CompletedProcess([], 0, stdout=stdout, stderr=b"")
        cfg = NixConfig.from_nix(NixCmd(), version)
    assert run.call_args[0][0] == ["nix", *args]
    assert cfg.is_flakes_enabled() is True