"""Command execution for external CLI tools.

``CommandExecutor`` runs one external command synchronously and returns a
``CommandOutcome`` with the exit code and merged stdout/stderr. It never
raises for a failing command: a non-zero exit, a timeout, or a binary that
cannot be launched all come back as an outcome so the Retry Policy can decide
what to do.

Key Concepts:
    CommandOutcome: Frozen record of one invocation, consumed immediately by
        the caller and discarded.
    CommandExecutor: Subprocess wrapper. Accepts an argv sequence or a
        command string (split with ``shlex``; no shell involved).

Architecture Decisions:
    - subprocess without ``shell=True``: Quoting in command strings is
      handled by ``shlex`` so identifiers never get shell-expanded.
    - stderr merged into stdout: Success markers from the Solana tooling
      appear on either stream.
    - Output decoded as UTF-8 with replacement: stray bytes from a tool
      never turn into an exception.
    - ``on_execute`` hook: Lets the audit log record every command without
      the executor knowing about files.

Tags:
    executor, subprocess, command, localnet
"""

from __future__ import annotations

import os
import shlex
import subprocess
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from localnet.core.logging import get_logger

logger = get_logger(__name__)

Command = str | Sequence[str]

# Exit code reported when the binary itself cannot be started
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = -1


@dataclass(frozen=True)
class CommandOutcome:
    """Result of a single external command invocation."""

    command: str
    exit_code: int
    output: str
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


def to_argv(command: Command) -> list[str]:
    """Normalise a command string or sequence to an argv list."""
    if isinstance(command, str):
        return shlex.split(command)
    return [str(part) for part in command]


def render(command: Command) -> str:
    """Render a command the way it would be typed in a shell."""
    if isinstance(command, str):
        return command
    return shlex.join(str(part) for part in command)


class CommandExecutor:
    """Runs external commands and captures their outcome.

    Parameters
    ----------
    cwd
        Working directory for every command (defaults to the process cwd).
    env
        Extra environment variables merged over ``os.environ``.
    timeout
        Per-command timeout in seconds; ``None`` waits indefinitely.
    on_execute
        Callback invoked with every ``CommandOutcome``.
    """

    def __init__(
        self,
        cwd: Path | str | None = None,
        env: dict[str, str] | None = None,
        timeout: float | None = None,
        on_execute: Callable[[CommandOutcome], None] | None = None,
    ) -> None:
        self.cwd = Path(cwd) if cwd is not None else None
        self.env = env
        self.timeout = timeout
        self.on_execute = on_execute

    def execute(self, command: Command) -> CommandOutcome:
        """Run ``command`` to completion and return its outcome."""
        argv = to_argv(command)
        rendered = render(command)
        full_env = {**os.environ, **(self.env or {})}
        start = time.monotonic()

        logger.debug("command.exec", command=rendered)
        try:
            proc = subprocess.run(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                cwd=str(self.cwd) if self.cwd is not None else None,
                env=full_env,
            )
            outcome = CommandOutcome(
                command=rendered,
                exit_code=proc.returncode,
                output=proc.stdout or "",
                duration_seconds=time.monotonic() - start,
            )
        except subprocess.TimeoutExpired as exc:
            partial = exc.output or ""
            if isinstance(partial, bytes):
                partial = partial.decode("utf-8", errors="replace")
            outcome = CommandOutcome(
                command=rendered,
                exit_code=EXIT_TIMEOUT,
                output=f"{partial}Command timed out after {self.timeout}s",
                duration_seconds=time.monotonic() - start,
            )
        except OSError as exc:
            outcome = CommandOutcome(
                command=rendered,
                exit_code=EXIT_NOT_FOUND,
                output=str(exc),
                duration_seconds=time.monotonic() - start,
            )

        if self.on_execute is not None:
            self.on_execute(outcome)
        return outcome


__all__ = ["Command", "CommandExecutor", "CommandOutcome", "render", "to_argv"]
