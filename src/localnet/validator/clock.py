"""Clock Advancer: move the validator forward by restarting it at a later slot."""

from __future__ import annotations

from localnet.core.logging import get_logger
from localnet.execution.retry import Sleeper
from localnet.validator.process import ValidatorProcess

logger = get_logger(__name__)


class ClockAdvancer:
    """Restarts the validator with ``--warp-slot current + delta``.

    The restart keeps the ledger (no ``--reset``) so accounts created by
    setup survive the jump.
    """

    def __init__(self, validator: ValidatorProcess, sleeper: Sleeper | None = None, settle: float = 1.0) -> None:
        self.validator = validator
        self.sleeper = sleeper or validator.sleeper
        self.settle = settle

    def advance(self, slot_delta: int, detach: bool = False) -> int:
        """Warp forward by ``slot_delta`` slots and return the target slot.

        Raises:
            ValueError: ``slot_delta`` is negative.
            InvalidPositionResponse: the current slot could not be read;
                the validator is left untouched.
        """
        if slot_delta < 0:
            raise ValueError(f"slot_delta must be >= 0, got: {slot_delta}")

        current = self.validator.current_slot()
        target = current + slot_delta
        logger.info("clock.advancing", current_slot=current, slot_delta=slot_delta, target_slot=target)

        self.validator.stop()
        self.sleeper.sleep(self.settle)
        self.validator.start(
            argv=[self.validator.settings.validator_binary, "--warp-slot", str(target)],
            detach=detach,
        )
        logger.info("clock.advanced", target_slot=target, detached=detach)
        return target


__all__ = ["ClockAdvancer"]
