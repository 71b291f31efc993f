import json
import subprocess
from pathlib import Path
from unittest import mock

import pytest

from omnix.nix.command import NixCmd, NixCmdError, ProcessFailed
from omnix.nix.flake_command import FlakeOptions
from omnix.nix.flake_eval import error_is_missing_attribute, nix_eval, nix_eval_maybe
from omnix.nix.flake_url import FlakeUrl

MISSING = "error: flake 'path:/x' does not provide attribute 'packages.x86_64-linux.foo'"


def _done(stdout=b"", returncode=0, stderr=b""):
    return subprocess.CompletedProcess([], returncode, stdout, stderr)


def test_missing_attribute_detected():
    assert error_is_missing_attribute(ProcessFailed(stderr=MISSING, exit_code=1)) is True


def test_other_failure_not_missing_attribute():
    assert error_is_missing_attribute(ProcessFailed(stderr="boom", exit_code=1)) is False


def test_non_process_error_not_missing_attribute():
    assert error_is_missing_attribute(NixCmdError(MISSING)) is False


def test_nix_eval_parses_json_and_builds_argv():
    payload = {"a": [1, 2]}
    with mock.patch("subprocess.run", return_value=_done(json.dumps(payload).encode())) as run:
        result = nix_eval(NixCmd(), FlakeOptions(), FlakeUrl(".#foo"))
    assert result == payload
    argv = run.call_args.args[0]
    assert argv == [
        "nix", "eval", "--json", "--accept-flake-config", ".#foo", "--quiet", "--quiet",
    ]
    assert run.call_args.kwargs["stdout"] == subprocess.PIPE
    assert run.call_args.kwargs["stderr"] is None


def test_nix_eval_passes_overrides_and_cwd():
    opts = FlakeOptions(
        override_inputs={"flake": FlakeUrl("github:o/r")},
        current_dir=Path("/tmp/work"),
    )
    with mock.patch("subprocess.run", return_value=_done(b"1")) as run:
        assert nix_eval(NixCmd(), opts, FlakeUrl(".")) == 1
    argv = run.call_args.args[0]
    idx = argv.index("--override-input")
    assert argv[idx : idx + 3] == ["--override-input", "flake", "github:o/r"]
    assert run.call_args.kwargs["cwd"] == Path("/tmp/work")


def test_nix_eval_bad_json_raises():
    with mock.patch("subprocess.run", return_value=_done(b"not json")):
        with pytest.raises(NixCmdError):
            nix_eval(NixCmd(), FlakeOptions(), FlakeUrl("."))


def test_nix_eval_maybe_returns_value():
    with mock.patch("subprocess.run", return_value=_done(b'"hello"')) as run:
        assert nix_eval_maybe(NixCmd(), FlakeOptions(), FlakeUrl(".")) == "hello"
    assert run.call_args.kwargs["stderr"] == subprocess.PIPE


def test_nix_eval_maybe_missing_attribute_is_none():
    failed = _done(returncode=1, stderr=MISSING.encode())
    with mock.patch("subprocess.run", return_value=failed):
        assert nix_eval_maybe(NixCmd(), FlakeOptions(), FlakeUrl(".#foo")) is None


def test_nix_eval_maybe_other_failure_raises():
    failed = _done(returncode=1, stderr=b"boom")
    with mock.patch("subprocess.run", return_value=failed):
        with pytest.raises(ProcessFailed) as info:
            nix_eval_maybe(NixCmd(), FlakeOptions(), FlakeUrl(".#foo"))
    assert info.value.exit_code == 1
    assert info.value.stderr == "boom"