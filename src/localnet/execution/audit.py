"""Append-only audit logs under ``logs/``.

Two files are maintained:

``commands.log``
    One block per executed external command: timestamp, command, exit code
    and captured output. Fed by ``CommandExecutor.on_execute``.
``error.log``
    One block per fatal pipeline error: timestamp, working directory,
    stage, exit code, error type/message and captured output.

Output Structure::

    logs/
    ├── commands.log
    ├── error.log
    └── validator.log     (written by ValidatorProcess when detached)
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from localnet.core.errors import LocalnetError
from localnet.core.logging import get_logger
from localnet.execution.executor import CommandOutcome

logger = get_logger(__name__)

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class AuditLog:
    """Writes command and error blocks to files in ``logs_dir``."""

    def __init__(self, logs_dir: Path, workdir: Path | None = None) -> None:
        self.logs_dir = logs_dir
        self.workdir = workdir or Path.cwd()

    @property
    def commands_path(self) -> Path:
        return self.logs_dir / "commands.log"

    @property
    def errors_path(self) -> Path:
        return self.logs_dir / "error.log"

    def record_command(self, outcome: CommandOutcome) -> None:
        """Append one executed command to ``commands.log``."""
        block = (
            "===== COMMAND LOG =====\n"
            f"Timestamp: {_now()}\n"
            f"Command: {outcome.command}\n"
            f"Exit code: {outcome.exit_code}\n"
            f"Duration: {outcome.duration_seconds:.2f}s\n"
            "Output:\n"
            f"{outcome.output.rstrip()}\n"
            "======================\n\n"
        )
        self._append(self.commands_path, block)

    def record_failure(self, error: LocalnetError, stage: str | None = None) -> Path:
        """Append a fatal error with full context to ``error.log``."""
        context = {k: v for k, v in error.context.items() if k != "output"}
        block = (
            "===== SETUP ERROR LOG =====\n"
            f"Timestamp: {_now()}\n"
            f"Working directory: {self.workdir}\n"
            f"Stage: {stage or '-'}\n"
            f"Exit code: {error.exit_code}\n"
            f"Error type: {type(error).__name__}\n"
            f"Message: {error.message}\n"
            f"Context: {json.dumps(context, default=str, sort_keys=True)}\n"
            "Captured output:\n"
            f"{error.output.rstrip()}\n"
            "===========================\n\n"
        )
        self._append(self.errors_path, block)
        logger.error("audit.failure_recorded", path=str(self.errors_path), stage=stage)
        return self.errors_path

    def _append(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(text)


def _now() -> str:
    return datetime.now().strftime(_TIMESTAMP_FORMAT)


__all__ = ["AuditLog"]
