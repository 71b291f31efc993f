"""Types and commands for interacting with Nix, its store and its flakes."""