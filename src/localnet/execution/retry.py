"""Retry Policy with exponential backoff for flaky external commands.

External RPC calls against a freshly started validator fail transiently:
rate limits, blockhashes not yet available, transactions not yet confirmed.
``RetryPolicy`` re-runs a command until it exits zero *and* its output
matches the expected success marker, doubling the wait after every failure.

Example:
    >>> from localnet.execution.retry import RetryPolicy, ExponentialBackoff
    >>>
    >>> policy = RetryPolicy(executor, ExponentialBackoff(max_attempts=5, base_delay=5.0))
    >>> output = policy.run("solana airdrop 100", success_pattern="SOL")

Timing contract (defaults):
    attempt 1 → wait 5s → attempt 2 → wait 10s → attempt 3 → wait 20s
    → attempt 4 → wait 40s → attempt 5 → CommandExhaustedRetries

Waits go through a ``Sleeper`` backed by ``threading.Event`` so another
thread can cancel a pending backoff; ``run_async`` offers the same contract
on top of ``asyncio.sleep`` for callers that must not block a thread.
"""

from __future__ import annotations

import asyncio
import re
import threading
from dataclasses import dataclass, field

from localnet.core.errors import CommandExhaustedRetries, OperationCancelled
from localnet.core.logging import get_logger
from localnet.execution.executor import Command, CommandExecutor, CommandOutcome, render

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY = 5.0


@dataclass
class ExponentialBackoff:
    """Exponential backoff schedule.

    Delay = min(base_delay * (multiplier ** retry_index), max_delay)

    Attributes:
        max_attempts: Total number of attempts, including the first
        base_delay: Delay after the first failure, in seconds
        multiplier: Growth factor between consecutive delays
        max_delay: Optional cap; ``None`` leaves delays uncapped
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY
    multiplier: float = 2.0
    max_delay: float | None = None

    def next_delay(self, retry_index: int) -> float:
        """Delay before retry number ``retry_index`` (0 = first retry)."""
        delay = self.base_delay * (self.multiplier ** retry_index)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    def should_retry(self, attempt: int) -> bool:
        """True if another attempt is allowed after ``attempt`` attempts."""
        return attempt < self.max_attempts


class Sleeper:
    """Cancellable blocking wait.

    ``sleep`` returns after the timeout unless ``cancel`` is called from
    another thread, in which case it raises ``OperationCancelled``.
    """

    def __init__(self) -> None:
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def sleep(self, seconds: float) -> None:
        if self._cancelled.wait(max(seconds, 0.0)):
            raise OperationCancelled(f"Wait of {seconds}s cancelled")

    def cancel(self) -> None:
        self._cancelled.set()

    def reset(self) -> None:
        self._cancelled.clear()


@dataclass
class RetryState:
    """Attempt bookkeeping for one ``RetryPolicy.run`` call."""

    attempt: int = 0
    current_delay: float = 0.0
    delays: list[float] = field(default_factory=list)
    last_outcome: CommandOutcome | None = None


def matches(outcome: CommandOutcome, success_pattern: str | None) -> bool:
    """Success rule: zero exit code and, if given, a pattern match in the output."""
    if not outcome.succeeded:
        return False
    if success_pattern is None:
        return True
    return re.search(success_pattern, outcome.output) is not None


class RetryPolicy:
    """Bounded retries with exponential backoff around a ``CommandExecutor``.

    Parameters
    ----------
    executor
        Runs each attempt.
    backoff
        Attempt budget and delay schedule.
    sleeper
        Wait implementation; swap in a recording sleeper for tests.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        backoff: ExponentialBackoff | None = None,
        sleeper: Sleeper | None = None,
    ) -> None:
        self.executor = executor
        self.backoff = backoff or ExponentialBackoff()
        self.sleeper = sleeper or Sleeper()

    def run(self, command: Command, success_pattern: str | None = None) -> str:
        """Run ``command`` until it succeeds; return its captured output.

        Raises:
            CommandExhaustedRetries: every attempt failed.
            OperationCancelled: the sleeper was cancelled during a backoff wait.
        """
        state = RetryState(current_delay=self.backoff.base_delay)
        rendered = render(command)

        while True:
            state.attempt += 1
            logger.info(
                "retry.attempt",
                attempt=state.attempt,
                max_attempts=self.backoff.max_attempts,
                command=rendered,
            )
            outcome = self.executor.execute(command)
            state.last_outcome = outcome

            if matches(outcome, success_pattern):
                logger.info("retry.succeeded", attempt=state.attempt, command=rendered)
                return outcome.output

            self._log_failure(outcome, success_pattern, state)

            if not self.backoff.should_retry(state.attempt):
                raise self._exhausted(rendered, state)

            state.current_delay = self.backoff.next_delay(state.attempt - 1)
            logger.warning(
                "retry.backoff",
                attempt=state.attempt,
                delay_seconds=state.current_delay,
                command=rendered,
            )
            state.delays.append(state.current_delay)
            self.sleeper.sleep(state.current_delay)

    async def run_async(self, command: Command, success_pattern: str | None = None) -> str:
        """Async variant of ``run`` with the same attempt and delay contract.

        Each attempt runs the executor in a worker thread; backoff waits are
        ``asyncio.sleep`` so cancelling the task cancels the pending wait.
        """
        state = RetryState(current_delay=self.backoff.base_delay)
        rendered = render(command)

        while True:
            state.attempt += 1
            outcome = await asyncio.to_thread(self.executor.execute, command)
            state.last_outcome = outcome

            if matches(outcome, success_pattern):
                return outcome.output

            self._log_failure(outcome, success_pattern, state)

            if not self.backoff.should_retry(state.attempt):
                raise self._exhausted(rendered, state)

            state.current_delay = self.backoff.next_delay(state.attempt - 1)
            state.delays.append(state.current_delay)
            await asyncio.sleep(state.current_delay)

    def _log_failure(
        self, outcome: CommandOutcome, success_pattern: str | None, state: RetryState
    ) -> None:
        if outcome.succeeded:
            logger.error(
                "retry.pattern_mismatch",
                attempt=state.attempt,
                pattern=success_pattern,
                output=outcome.output,
            )
        else:
            logger.error(
                "retry.command_failed",
                attempt=state.attempt,
                exit_code=outcome.exit_code,
                output=outcome.output,
            )

    def _exhausted(self, rendered: str, state: RetryState) -> CommandExhaustedRetries:
        last = state.last_outcome
        logger.error("retry.exhausted", attempts=state.attempt, command=rendered)
        return CommandExhaustedRetries(
            rendered,
            state.attempt,
            last_exit_code=last.exit_code if last else None,
            last_output=last.output if last else "",
            delays=state.delays,
        )


__all__ = [
    "DEFAULT_BASE_DELAY",
    "DEFAULT_MAX_ATTEMPTS",
    "ExponentialBackoff",
    "RetryPolicy",
    "RetryState",
    "Sleeper",
    "matches",
]
