import os
from pathlib import Path

from omnix.nix.store_path import StorePath


def test_str_and_fspath_round_trip():
    p = StorePath("/nix/store/abc-hello")
    assert str(p) == "/nix/store/abc-hello"
    assert os.fspath(p) == "/nix/store/abc-hello"
    assert p.as_path() == Path("/nix/store/abc-hello")


def test_regular_path_is_not_drv():
    assert StorePath("/nix/store/abc-hello").is_drv() is False


def test_drv_component_is_drv():
    assert StorePath("/nix/store/.drv").is_drv() is True


def test_equality_from_str_and_path():
    assert StorePath("/nix/store/x") == StorePath(Path("/nix/store/x"))
    assert len({StorePath("/nix/store/x"), StorePath(Path("/nix/store/x"))}) == 1


def test_drv_sorts_before_other():
    drv = StorePath("/z/.drv")
    other = StorePath("/a/b")
    assert sorted([other, drv]) == [drv, other]


def test_other_paths_sort_by_path():
    a, b = StorePath("/nix/store/a"), StorePath("/nix/store/b")
    assert sorted([b, a]) == [a, b]