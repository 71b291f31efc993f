"""CI for Nix flake projects: sub-flake configuration, steps, run results and GitHub helpers."""