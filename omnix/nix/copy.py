"""``nix copy`` between stores."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from omnix.nix.command import NixCmd
from omnix.nix.store_uri import StoreURI


@dataclass
class NixCopyOptions:
    """Options for ``nix copy``."""

    from_: Optional[StoreURI] = None
    to: Optional[StoreURI] = None
    no_check_sigs: bool = False


def nix_copy(
    cmd: NixCmd,
    options: NixCopyOptions,
    paths: Iterable[Union[str, os.PathLike]],
) -> None:
    """Copy ``paths`` between stores with ``nix copy``."""
    args = ["copy"]
    if options.from_ is not None:
        args += ["--from", str(options.from_)]
    if options.to is not None:
        args += ["--to", str(options.to)]
    if options.no_check_sigs:
        args.append("--no-check-sigs")
    args.extend(os.fspath(p) for p in paths)
    cmd.run_with(args)