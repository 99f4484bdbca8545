"""Full local-network run: fresh validator, setup, then two epochs forward.

Phases::

    1. stop any running validator
    2. start a detached validator with the program set (ledger reset)
    3. startup grace, then poll until RPC answers
    4. Setup Orchestrator (abort with its exit code on failure)
    5. stabilization wait
    6. Clock Advancer: warp by ``slots_per_epoch * 2`` in the foreground
"""

from __future__ import annotations

from localnet.bootstrap.orchestrator import SetupOrchestrator
from localnet.bootstrap.results import LocalnetRunResult
from localnet.core.logging import get_logger
from localnet.core.settings import LocalnetSettings
from localnet.execution.retry import Sleeper
from localnet.validator.clock import ClockAdvancer
from localnet.validator.process import ValidatorProcess

logger = get_logger(__name__)


class LocalnetRunner:
    """Drives the validator and the bootstrap pipeline end to end."""

    def __init__(
        self,
        settings: LocalnetSettings,
        validator: ValidatorProcess | None = None,
        orchestrator: SetupOrchestrator | None = None,
        sleeper: Sleeper | None = None,
    ) -> None:
        self.settings = settings
        self.sleeper = sleeper or Sleeper()
        self.validator = validator or ValidatorProcess(settings, sleeper=self.sleeper)
        self.orchestrator = orchestrator or SetupOrchestrator(settings, sleeper=self.sleeper)
        self.clock = ClockAdvancer(self.validator, self.sleeper, settings.clock_settle)

    def run(self) -> LocalnetRunResult:
        s = self.settings
        result = LocalnetRunResult()

        logger.info("run.phase", phase="stop_validator")
        self.validator.stop()

        logger.info("run.phase", phase="start_validator")
        self.validator.start(reset=True, detach=True)
        self.sleeper.sleep(s.startup_grace)
        self.validator.wait_until_ready(s.ready_timeout, s.ready_interval)

        logger.info("run.phase", phase="setup")
        result.setup = self.orchestrator.run()
        if not result.setup.success:
            result.exit_code = result.setup.exit_code
            logger.error("run.setup_failed", stage=result.setup.failed_stage, exit_code=result.exit_code)
            return result

        logger.info("run.phase", phase="stabilize", seconds=s.stabilization_wait)
        self.sleeper.sleep(s.stabilization_wait)

        logger.info("run.phase", phase="advance_clock")
        result.target_slot = self.clock.advance(s.slots_per_epoch * 2, detach=False)
        logger.info("run.complete", target_slot=result.target_slot)
        return result


__all__ = ["LocalnetRunner"]
