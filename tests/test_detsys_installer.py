import stat

import pytest

from omnix.nix import detsys_installer
from omnix.nix.detsys_installer import (
    BadInstallerVersion,
    DetSysNixInstaller,
    InstallerVersion,
)


def _script(tmp_path, output):
    path = tmp_path / "nix-installer"
    path.write_text(f"#!/bin/sh\necho '{output}'\n")
    path.chmod(path.stat().st_mode | stat.S_IEXEC | stat.S_IXGRP | stat.S_IXOTH)
    return path


def test_parse_finds_version():
    assert InstallerVersion.parse("nix-installer 0.16.1") == InstallerVersion(0, 16, 1)


def test_parse_without_version_fails():
    with pytest.raises(BadInstallerVersion):
        InstallerVersion.parse("no version here")


def test_parse_overflow_fails():
    with pytest.raises(BadInstallerVersion):
        InstallerVersion.parse("99999999999.1.2")


def test_str_round_trips():
    version = InstallerVersion(3, 4, 5)
    assert InstallerVersion.parse(str(version)) == version


def test_installer_display():
    installer = DetSysNixInstaller(version=InstallerVersion(1, 2, 3))
    assert str(installer) == "DetSys nix-installer (1.2.3)"


def test_get_version_runs_executable(tmp_path):
    path = _script(tmp_path, "nix-installer 0.16.1")
    assert InstallerVersion.get_version(path) == InstallerVersion(0, 16, 1)


def test_get_version_missing_executable(tmp_path):
    with pytest.raises(BadInstallerVersion):
        InstallerVersion.get_version(tmp_path / "absent")


def test_detect_absent(tmp_path, monkeypatch):
    monkeypatch.setattr(detsys_installer, "NIX_INSTALLER_PATH", tmp_path / "absent")
    assert DetSysNixInstaller.detect() is None


def test_detect_present(tmp_path, monkeypatch):
    path = _script(tmp_path, "nix-installer 2.7.9")
    monkeypatch.setattr(detsys_installer, "NIX_INSTALLER_PATH", path)
    assert DetSysNixInstaller.detect() == DetSysNixInstaller(InstallerVersion(2, 7, 9))