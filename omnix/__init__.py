"""Tools for inspecting Nix installations and flakes and for running CI steps on them."""

__version__ = "0.1.0"