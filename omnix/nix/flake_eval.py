"""Evaluating flake attributes with ``nix eval``."""

from __future__ import annotations

import json
from typing import Any, Optional

from omnix.nix.command import NixCmd, NixCmdError, ProcessFailed
from omnix.nix.flake_command import FlakeOptions
from omnix.nix.flake_url import FlakeUrl

_MISSING_ATTRIBUTE = "does not provide attribute"


def _nix_eval(
    nixcmd: NixCmd, opts: FlakeOptions, url: FlakeUrl, capture_stderr: bool
) -> Any:
    # Nix logs about `--override-input` use are silenced only by a double `--quiet`.
    args = ["eval", "--json", *opts.args(), str(url), "--quiet", "--quiet"]
    stdout = nixcmd.run_with(
        args,
        cwd=opts.current_dir,
        capture_stdout=True,
        capture_stderr=capture_stderr,
    )
    try:
        return json.loads(stdout)
    except ValueError as exc:
        raise NixCmdError(
            f"Failed to decode command stdout (json error): {exc}"
        ) from exc


def nix_eval(nixcmd: NixCmd, opts: FlakeOptions, url: FlakeUrl) -> Any:
    """Run ``nix eval <url> --json`` and return the decoded JSON."""
    return _nix_eval(nixcmd, opts, url, capture_stderr=False)


def nix_eval_maybe(cmd: NixCmd, opts: FlakeOptions, url: FlakeUrl) -> Optional[Any]:
    """Like :func:`nix_eval`, but return ``None`` if the attribute is missing."""
    try:
        return _nix_eval(cmd, opts, url, capture_stderr=True)
    except NixCmdError as exc:
        if error_is_missing_attribute(exc):
            return None
        raise


def error_is_missing_attribute(err: BaseException) -> bool:
    """Whether ``err`` is nix complaining about a missing flake attribute."""
    return isinstance(err, ProcessFailed) and _MISSING_ATTRIBUTE in err.stderr