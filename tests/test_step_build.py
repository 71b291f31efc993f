import json
import os
from dataclasses import dataclass, field
from types import SimpleNamespace

import pytest

from omnix.ci.devour_flake import DevourFlakeOutput
from omnix.ci.step_build import (
    BuildStep,
    BuildStepArgs,
    BuildStepResult,
    subflake_extra_args,
)
from omnix.nix.command import NixCmd
from omnix.nix.flake_url import FlakeUrl
from omnix.nix.store_path import StorePath

_FAKE_NIX = """#!/bin/sh
{ pwd -P; printf '%s\\n' "$@"; echo ---; } >> "$FAKE_NIX_LOG"
if [ -n "$FAKE_NIX_PRINT" ]; then printf '%s\\n' "$FAKE_NIX_PRINT"; fi
exit 0
"""


@dataclass
class _Subflake:
    dir: str = "."
    override_inputs: dict = field(default_factory=dict)


@pytest.fixture
def fake_nix(tmp_path, monkeypatch):
    bindir = tmp_path / "bin"
    bindir.mkdir()
    script = bindir / "nix"
    script.write_text(_FAKE_NIX)
    script.chmod(0o755)
    log = tmp_path / "nix.log"
    result = tmp_path / "result.json"
    result.write_text(json.dumps({"outPaths": ["/nix/store/a-hello"], "byName": {}}))
    monkeypatch.setenv("PATH", f"{bindir}{os.pathsep}{os.environ.get('PATH', '')}")
    monkeypatch.setenv("FAKE_NIX_LOG", str(log))
    monkeypatch.setenv("FAKE_NIX_PRINT", str(result))
    monkeypatch.setenv("DEVOUR_FLAKE", "/devour")

    def invocations():
        if not log.exists():
            return []
        return [chunk.splitlines() for chunk in log.read_text().split("---\n") if chunk]

    return invocations


def test_default_cli_args():
    assert BuildStepArgs().to_cli_args() == ["--", "--refresh", "-j", "auto"]


def test_cli_args_with_dependencies_and_no_extras():
    args = BuildStepArgs(print_all_dependencies=True, extra_nix_build_args=[])
    assert args.to_cli_args() == ["--print-all-dependencies"]


def test_cli_args_empty():
    assert BuildStepArgs(extra_nix_build_args=[]).to_cli_args() == []


def test_preprocess_prefixes_override_inputs():
    args = BuildStepArgs(extra_nix_build_args=["--override-input", "dep", "github:o/dep"])
    args.preprocess()
    assert args.extra_nix_build_args == ["--override-input", "flake/dep", "github:o/dep"]


def test_subflake_extra_args_sorted_overrides_then_extras():
    subflake = _Subflake(
        override_inputs={"b": FlakeUrl("github:o/b"), "a": FlakeUrl("github:o/a")}
    )
    args = subflake_extra_args(subflake, BuildStepArgs(extra_nix_build_args=["-L"]))
    assert args == [
        "--override-input",
        "flake/a",
        "github:o/a",
        "--override-input",
        "flake/b",
        "github:o/b",
        "-L",
    ]


def test_result_round_trip_without_deps():
    data = {"outPaths": ["/nix/store/a-x"], "byName": {"x": "/nix/store/a-x"}}
    result = BuildStepResult.from_json(data)
    assert result.all_deps is None
    assert result.to_json() == data


def test_result_round_trip_with_deps():
    data = {"outPaths": ["/nix/store/a-x"], "byName": {}, "allDeps": ["/nix/store/b-y"]}
    result = BuildStepResult.from_json(data)
    assert result.all_deps == [StorePath("/nix/store/b-y")]
    assert result.to_json() == data


def test_result_from_json_requires_out_paths():
    with pytest.raises(ValueError):
        BuildStepResult.from_json({"byName": {}})


def test_print_prefers_all_deps(capsys):
    output = DevourFlakeOutput(out_paths=[StorePath("/nix/store/a-out")])
    BuildStepResult(output, [StorePath("/nix/store/b-dep")]).print()
    assert capsys.readouterr().out.splitlines() == ["/nix/store/b-dep"]


def test_print_out_paths(capsys):
    output = DevourFlakeOutput(out_paths=[StorePath("/nix/store/a-out")])
    BuildStepResult(output).print()
    assert capsys.readouterr().out.splitlines() == ["/nix/store/a-out"]


def test_build_step_defaults_enabled():
    assert BuildStep().enable is True


def test_build_step_run(fake_nix):
    url = FlakeUrl("github:o/r")
    run_cmd = SimpleNamespace(
        steps_args=SimpleNamespace(build_step_args=BuildStepArgs(extra_nix_build_args=[])),
        systems=None,
    )
    result = BuildStep().run(NixCmd(), True, run_cmd, url, _Subflake(dir="sub"))
    assert result.devour_flake_output.out_paths == [StorePath("/nix/store/a-hello")]
    assert result.all_deps is None
    (call,) = fake_nix()
    assert call[-3:] == ["--override-input", "flake", str(url.sub_flake_url("sub"))]