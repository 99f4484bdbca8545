"""Local test validator lifecycle.

Manages ``solana-test-validator`` through its CLI: build the launch command
from the configured program set, start it detached or in the foreground,
poll until it answers RPC, stop it, and query its current slot.

Key Concepts:
    ValidatorProcess: ``start()``, ``stop()``, ``wait_until_ready()``,
        ``current_slot()``.
    Detached start: ``subprocess.Popen`` in a new session with output
        appended to ``logs/validator.log``; the process outlives the CLI.

Architecture Decisions:
    - Status queries go through ``CommandExecutor`` so they land in
      ``logs/commands.log`` like every other external call.
    - Readiness polling counts elapsed sleeps instead of wall-clock time, so
      a recording sleeper drives it deterministically.
    - A detached process that exits while being polled fails fast with the
      tail of its log.

Launch command::

    solana-test-validator --url <clone_url>
        --bpf-program <id> programs/<so> ...   (one per program)
        --clone <id> ...                       (one per program)
        --account-dir accounts
        [--reset] [--warp-slot N]

Tags:
    validator, subprocess, lifecycle, health, localnet
"""

from __future__ import annotations

import re
import subprocess
from pathlib import Path
from typing import IO

from localnet.core.errors import InvalidPositionResponse, ValidatorNotReady
from localnet.core.logging import get_logger
from localnet.core.settings import LocalnetSettings
from localnet.execution.executor import CommandExecutor
from localnet.execution.retry import Sleeper

logger = get_logger(__name__)

_SLOT = re.compile(r"[0-9]+")
_LOG_TAIL_LINES = 20
_STOP_TIMEOUT = 10.0


class ValidatorProcess:
    """Start, stop and query the local test validator.

    Parameters
    ----------
    settings
        Supplies the binary, program table, RPC URL and readiness timings.
    executor
        Runs status queries; defaults to an executor in ``settings.workdir``.
    sleeper
        Wait implementation for the readiness poll.
    """

    def __init__(
        self,
        settings: LocalnetSettings,
        executor: CommandExecutor | None = None,
        sleeper: Sleeper | None = None,
    ) -> None:
        self.settings = settings
        self.executor = executor or CommandExecutor(cwd=settings.workdir)
        self.sleeper = sleeper or Sleeper()
        self.process: subprocess.Popen[bytes] | None = None
        self._log_handle: IO[bytes] | None = None

    @property
    def log_path(self) -> Path:
        return self.settings.logs_path / "validator.log"

    def build_command(self, warp_slot: int | None = None, reset: bool = True) -> list[str]:
        s = self.settings
        argv = [s.validator_binary, "--url", s.validator_clone_url]
        for program in s.programs:
            argv += ["--bpf-program", program.program_id, f"{s.program_dir}/{program.so_file}"]
        for program in s.programs:
            argv += ["--clone", program.program_id]
        argv += ["--account-dir", s.account_dir]
        if reset:
            argv.append("--reset")
        if warp_slot is not None:
            argv += ["--warp-slot", str(warp_slot)]
        return argv

    def start(
        self,
        warp_slot: int | None = None,
        reset: bool = True,
        detach: bool = True,
        argv: list[str] | None = None,
    ) -> subprocess.Popen[bytes] | None:
        """Launch the validator.

        Detached: returns the running ``Popen`` handle immediately.
        Foreground: blocks until the validator exits and returns ``None``.
        """
        argv = argv or self.build_command(warp_slot=warp_slot, reset=reset)
        cwd = str(self.settings.workdir)

        if not detach:
            logger.info("validator.starting", mode="foreground", command=" ".join(argv))
            completed = subprocess.run(argv, cwd=cwd, check=False)
            logger.info("validator.exited", exit_code=completed.returncode)
            return None

        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._log_handle = self.log_path.open("ab")
        self.process = subprocess.Popen(
            argv,
            cwd=cwd,
            stdout=self._log_handle,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            start_new_session=True,
        )
        logger.info(
            "validator.started",
            mode="detached",
            pid=self.process.pid,
            log=str(self.log_path),
            warp_slot=warp_slot,
        )
        return self.process

    def stop(self) -> bool:
        """Signal every running validator; True if one was found."""
        outcome = self.executor.execute(["pkill", "-f", self.settings.validator_binary])
        stopped = outcome.exit_code == 0
        logger.info("validator.stopped" if stopped else "validator.not_running", binary=self.settings.validator_binary)
        if self.process is not None:
            try:
                self.process.wait(timeout=_STOP_TIMEOUT)
            except subprocess.TimeoutExpired:
                logger.warning("validator.kill", pid=self.process.pid, timeout=_STOP_TIMEOUT)
                self.process.kill()
                self.process.wait()
        self._close_log()
        self.process = None
        return stopped

    def is_running(self) -> bool:
        return self.executor.execute(["pgrep", "-f", self.settings.validator_binary]).succeeded

    def is_responsive(self) -> bool:
        return self.executor.execute(["solana", "cluster-version", self.settings.rpc_flag]).succeeded

    def wait_until_ready(self, timeout: float | None = None, interval: float | None = None) -> float:
        """Poll the RPC endpoint until it answers; return the seconds waited.

        Raises:
            ValidatorNotReady: timeout elapsed, or the detached process exited.
        """
        timeout = self.settings.ready_timeout if timeout is None else timeout
        interval = self.settings.ready_interval if interval is None else interval
        waited = 0.0

        while True:
            if self.is_responsive():
                logger.info("validator.ready", waited_seconds=waited)
                return waited
            if self.process is not None and self.process.poll() is not None:
                raise ValidatorNotReady(
                    f"Validator exited with code {self.process.returncode} before becoming ready",
                    output=self._log_tail(),
                    log=str(self.log_path),
                )
            if waited >= timeout:
                break
            logger.debug("validator.waiting", waited_seconds=waited, timeout=timeout)
            self.sleeper.sleep(interval)
            waited += interval

        raise ValidatorNotReady(
            f"Validator did not become ready within {timeout:g}s",
            timeout=timeout,
            output=self._log_tail(),
        )

    def current_slot(self) -> int:
        """Query the current slot.

        Raises:
            InvalidPositionResponse: the query failed or printed something
                other than a non-negative integer.
        """
        outcome = self.executor.execute(["solana", "slot", self.settings.rpc_flag])
        text = outcome.output.strip()
        if not outcome.succeeded or not _SLOT.fullmatch(text):
            raise InvalidPositionResponse(
                "Could not get a valid current slot from the validator",
                command=outcome.command,
                query_exit_code=outcome.exit_code,
                output=outcome.output,
            )
        return int(text)

    def _log_tail(self) -> str:
        if not self.log_path.is_file():
            return ""
        lines = self.log_path.read_text(encoding="utf-8", errors="replace").splitlines()
        return "\n".join(lines[-_LOG_TAIL_LINES:])

    def _close_log(self) -> None:
        if self._log_handle is not None:
            self._log_handle.close()
            self._log_handle = None


__all__ = ["ValidatorProcess"]
