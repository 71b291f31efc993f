import pytest

from omnix.ci.subflake import SubflakeConfig, SubflakesConfig
from omnix.nix.system import System

LINUX = System.parse("x86_64-linux")
DARWIN = System.parse("aarch64-darwin")


def test_default_is_root_flake():
    cfg = SubflakeConfig()
    assert cfg.dir == "."
    assert cfg.skip is False
    assert cfg.override_inputs == {}
    assert cfg.systems is None


def test_can_run_on_without_whitelist():
    assert SubflakeConfig().can_run_on([LINUX]) is True
    assert SubflakeConfig().can_run_on([]) is True


def test_can_run_on_with_whitelist():
    cfg = SubflakeConfig(systems=[LINUX])
    assert cfg.can_run_on([LINUX, DARWIN]) is True
    assert cfg.can_run_on([DARWIN]) is False
    assert cfg.can_run_on([]) is False


def test_from_json_minimal():
    cfg = SubflakeConfig.from_json({"dir": "dev"})
    assert cfg.dir == "dev"
    assert cfg.skip is False
    assert cfg.systems is None
    assert cfg.steps.build_step.enable is True


def test_from_json_full():
    cfg = SubflakeConfig.from_json(
        {
            "dir": "sub",
            "skip": True,
            "overrideInputs": {"b": "github:srid/nixci", "a": "."},
            "systems": ["x86_64-linux"],
            "steps": {"custom": {}, "build": {"enable": False}},
        }
    )
    assert cfg.skip is True
    assert list(cfg.override_inputs) == ["a", "b"]
    assert str(cfg.override_inputs["b"]) == "github:srid/nixci"
    assert cfg.systems == [LINUX]
    assert cfg.steps.build_step.enable is False


def test_from_json_requires_dir():
    with pytest.raises(ValueError):
        SubflakeConfig.from_json({"skip": True})


def test_from_json_rejects_bad_systems():
    with pytest.raises(ValueError):
        SubflakeConfig.from_json({"dir": ".", "systems": "x86_64-linux"})


def test_subflakes_default_has_root():
    cfg = SubflakesConfig()
    assert list(cfg) == ["ROOT"]
    assert cfg.subflakes["ROOT"].dir == "."


def test_subflakes_from_json_sorted():
    cfg = SubflakesConfig.from_json({"zeta": {"dir": "z"}, "alpha": {"dir": "a"}})
    assert [name for name, _ in cfg.items()] == ["alpha", "zeta"]
    assert len(cfg) == 2


def test_subflakes_from_json_rejects_non_mapping():
    with pytest.raises(ValueError):
        SubflakesConfig.from_json(["ROOT"])