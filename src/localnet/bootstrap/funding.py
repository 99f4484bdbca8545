"""Funding Guard: top up an account only when it is below the threshold."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path

from localnet.bootstrap.commands import CommandCatalog
from localnet.core.logging import get_logger
from localnet.execution.executor import CommandExecutor
from localnet.execution.retry import RetryPolicy

logger = get_logger(__name__)


def parse_balance(text: str) -> Decimal | None:
    """Parse ``solana balance`` output (``"4.5 SOL"``) into a Decimal.

    Returns ``None`` when the first field is not a number.
    """
    fields = text.split()
    if not fields:
        return None
    try:
        value = Decimal(fields[0])
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


class FundingGuard:
    """Ensures an account holds at least ``min_balance`` SOL.

    The balance query goes straight to the executor (logged, not retried);
    the airdrop goes through the Retry Policy. An unreadable balance counts
    as zero, so the guard errs toward funding rather than skipping.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        retry: RetryPolicy,
        catalog: CommandCatalog,
        min_balance: int = 10,
    ) -> None:
        self.executor = executor
        self.retry = retry
        self.catalog = catalog
        self.min_balance = min_balance

    def balance(self, keypair: Path | None = None, label: str = "default wallet") -> Decimal:
        outcome = self.executor.execute(self.catalog.balance(keypair).argv)
        if not outcome.succeeded:
            logger.error("funding.balance_query_failed", account=label, exit_code=outcome.exit_code, output=outcome.output)
            return Decimal(0)
        value = parse_balance(outcome.output)
        if value is None:
            logger.error("funding.balance_unparseable", account=label, output=outcome.output)
            return Decimal(0)
        return value

    def ensure_funded(self, keypair: Path | None = None, label: str = "default wallet") -> Decimal:
        """Request an airdrop if the account is below threshold; return the final balance."""
        balance = self.balance(keypair, label)

        if int(balance) >= self.min_balance:
            logger.info("funding.sufficient", account=label, balance=str(balance), threshold=self.min_balance)
            return balance

        logger.info("funding.requesting_airdrop", account=label, balance=str(balance), threshold=self.min_balance)
        airdrop = self.catalog.airdrop(keypair)
        self.retry.run(airdrop.argv, airdrop.rule.success_pattern)

        new_balance = self.balance(keypair, label)
        logger.info("funding.funded", account=label, balance=str(new_balance))
        return new_balance


__all__ = ["FundingGuard", "parse_balance"]
