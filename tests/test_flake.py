import json
import subprocess
from unittest import mock

import pytest

from omnix.nix.command import NixCmd, ProcessFailed
from omnix.nix.config import NixConfig
from omnix.nix.flake import Flake
from omnix.nix.flake_schema import FlakeSchemas, Type
from omnix.nix.flake_url import FlakeUrl


def _entry(value):
    return {"value": value, "defaultValue": value, "description": "d"}


CONFIG = {
    "cores": _entry(4),
    "experimental-features": _entry(["nix-command", "flakes"]),
    "extra-platforms": _entry([]),
    "flake-registry": _entry("https://example.com/registry.json"),
    "max-jobs": _entry(1),
    "substituters": _entry(["https://cache.example.com"]),
    "system": _entry("x86_64-linux"),
    "trusted-users": _entry(["root"]),
}
SAMPLE = {
    "inventory": {
        "apps": {"children": {"x86_64-linux": {"children": {"default": {"what": "app"}}}}},
    }
}


def _done(stdout=b"", returncode=0, stderr=b""):
    return subprocess.CompletedProcess([], returncode, stdout, stderr)


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setenv("DEFAULT_FLAKE_SCHEMAS", "/store/schemas")
    monkeypatch.setenv("INSPECT_FLAKE", "/store/inspect")
    monkeypatch.setenv("NIX_SYSTEMS", json.dumps({"x86_64-linux": "/store/systems"}))


def test_from_nix(env):
    url = FlakeUrl("github:o/r")
    with mock.patch("subprocess.run", return_value=_done(json.dumps(SAMPLE).encode())):
        flake = Flake.from_nix(NixCmd(), NixConfig.from_json(CONFIG), url)
    assert flake.url == url
    assert flake.output == FlakeSchemas.from_json(SAMPLE).to_flake_outputs()
    app = flake.output.get_by_path(["apps", "x86_64-linux", "default"])
    assert app.get_val().type_ is Type.APP


def test_from_nix_failure(env):
    failed = _done(returncode=1, stderr=b"boom")
    with mock.patch("subprocess.run", return_value=failed):
        with pytest.raises(ProcessFailed):
            Flake.from_nix(NixCmd(), NixConfig.from_json(CONFIG), FlakeUrl("."))