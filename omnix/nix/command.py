"""The ``nix`` command's global options and helpers to run it."""

from __future__ import annotations

import json
import logging
import shlex
import subprocess
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NixCmdError(Exception):
    """Running a nix command or interpreting its output failed."""


class CommandError(NixCmdError):
    """Running a command failed."""


class ProcessFailed(CommandError):
    """The child process exited unsuccessfully."""

    def __init__(self, stderr: str, exit_code: int | None) -> None:
        self.stderr = stderr
        self.exit_code = exit_code
        super().__init__(
            f"Process exited unsuccessfully. exit_code={exit_code} stderr={stderr}"
        )


class FromStrError(NixCmdError):
    """The output of a command could not be parsed from a string."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Failed to parse string: {message}")


def to_cli(argv: Sequence[str]) -> str:
    """Render an argument vector as a user-copyable shell command line."""
    return shlex.join(str(a) for a in argv)


def trace_cmd_with(icon: str, argv: Sequence[str]) -> None:
    """Log the command line being run, prefixed with ``icon``."""
    logger.info("%s %s", icon, to_cli(argv))


def trace_cmd(argv: Sequence[str]) -> None:
    """Log the command line being run."""
    trace_cmd_with("❄️ ", argv)


def _check(proc: subprocess.CompletedProcess) -> bytes:
    if proc.returncode == 0:
        return proc.stdout or b""
    stderr = (proc.stderr or b"").decode("utf-8", errors="replace")
    exit_code = proc.returncode if proc.returncode >= 0 else None
    raise ProcessFailed(stderr=stderr, exit_code=exit_code)


_global_cmd: NixCmd | None = None
_global_lock = threading.Lock()


@dataclass
class NixCmd:
    """Global options passed to every ``nix`` invocation."""

    extra_experimental_features: list[str] = field(default_factory=list)
    extra_access_tokens: list[str] = field(default_factory=list)
    refresh: bool = False

    @classmethod
    def get(cls) -> NixCmd:
        """Return a shared instance with flakes enabled if the config lacks them."""
        global _global_cmd
        with _global_lock:
            if _global_cmd is None:
                from omnix.nix.config import NixConfig

                cmd = cls()
                if not NixConfig.get().is_flakes_enabled():
                    cmd.with_flakes()
                _global_cmd = cmd
            return _global_cmd

    def with_flakes(self) -> None:
        """Enable the ``nix-command`` and ``flakes`` features."""
        self.extra_experimental_features.extend(["nix-command", "flakes"])

    def with_nix_command(self) -> None:
        """Enable the ``nix-command`` feature."""
        self.extra_experimental_features.append("nix-command")

    def args(self) -> list[str]:
        """The global options as command-line arguments."""
        args: list[str] = []
        if self.extra_experimental_features:
            args += [
                "--extra-experimental-features",
                " ".join(self.extra_experimental_features),
            ]
        if self.extra_access_tokens:
            args += ["--extra-access-tokens", " ".join(self.extra_access_tokens)]
        if self.refresh:
            args.append("--refresh")
        return args

    def command(self) -> list[str]:
        """The base argument vector: ``nix`` followed by the global options."""
        return ["nix", *self.args()]

    def _spawn(self, argv: list[str], cwd: Any, stdout: Any, stderr: Any):
        trace_cmd(argv)
        try:
            return subprocess.run(argv, cwd=cwd, stdout=stdout, stderr=stderr)
        except OSError as exc:
            raise CommandError(f"Child process error: {exc}") from exc

    def run_with_returning_stdout(self, args: Sequence[str], cwd: Any = None) -> bytes:
        """Run nix with ``args``, capturing and returning stdout."""
        argv = self.command() + [str(a) for a in args]
        proc = self._spawn(argv, cwd, subprocess.PIPE, subprocess.PIPE)
        return _check(proc)

    def run_with(
        self,
        args: Sequence[str],
        cwd: Any = None,
        capture_stdout: bool = False,
        capture_stderr: bool = False,
    ) -> bytes:
        """Run nix with ``args``; stdout is returned only when captured."""
        argv = self.command() + [str(a) for a in args]
        proc = self._spawn(
            argv,
            cwd,
            subprocess.PIPE if capture_stdout else None,
            subprocess.PIPE if capture_stderr else None,
        )
        return _check(proc)

    def run_with_args_expecting_json(self, args: Sequence[str]) -> Any:
        """Run nix with ``args`` and parse stdout as JSON."""
        stdout = self.run_with_returning_stdout(args)
        try:
            return json.loads(stdout)
        except ValueError as exc:
            raise NixCmdError(
                f"Failed to decode command stdout (json error): {exc}"
            ) from exc

    def run_with_args_expecting_fromstr(
        self, args: Sequence[str], parse: Callable[[str], T]
    ) -> T:
        """Run nix with ``args`` and parse the trimmed stdout with ``parse``."""
        stdout = self.run_with_returning_stdout(args)
        text = stdout.decode("utf-8", errors="replace").strip()
        try:
            return parse(text)
        except ValueError as exc:
            raise FromStrError(str(exc)) from exc