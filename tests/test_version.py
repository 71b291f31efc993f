import subprocess
from unittest.mock import patch

import pytest

from omnix.nix.command import FromStrError, NixCmd
from omnix.nix.version import BadNixVersion, NixVersion


def test_parse_nix_version():
    assert NixVersion.parse("nix (Nix) 2.13.0") == NixVersion(major=2, minor=13, patch=0)


def test_parse_simple_nix_version():
    assert NixVersion.parse("2.13.0") == NixVersion(major=2, minor=13, patch=0)


def test_str_round_trip():
    v = NixVersion(2, 20, 5)
    assert NixVersion.parse(str(v)) == v


def test_ordering():
    assert NixVersion(2, 20, 0) >= NixVersion(2, 20, 0)
    assert NixVersion(2, 19, 9) < NixVersion(2, 20, 0)
    assert NixVersion(3, 0, 0) > NixVersion(2, 99, 99)


@pytest.mark.parametrize("text", ["", "nix (Nix) two", "2.13"])
def test_parse_error(text):
    with pytest.raises(BadNixVersion):
        NixVersion.parse(text)


def test_from_nix():
    done = subprocess.CompletedProcess([], 0, b"nix (Nix) 2.13.0\n", b"")
    with patch("omnix.nix.command.subprocess.run", return_value=done) as run:
        v = NixVersion.from_nix(NixCmd())
    assert v == NixVersion(2, 13, 0)
    assert run.call_args.args[0] == ["nix", "--version"]


def test_from_nix_unparsable():
    done = subprocess.CompletedProcess([], 0, b"garbage", b"")
    with patch("omnix.nix.command.subprocess.run", return_value=done):
        with pytest.raises(FromStrError):
            NixVersion.from_nix(NixCmd())