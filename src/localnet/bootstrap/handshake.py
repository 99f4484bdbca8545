"""Handshake Sequencer: the opt-in relationships between NCN, operators and vault.

Every relationship is established in two phases, an *initialize* call
followed by a *warm-up* call, separated by a fixed settle delay so the
initializing transaction is confirmed before the activation references it.

Sequence::

    1. NCN ↔ operator (each)   init-state ─settle─ ncn-warmup ─settle─ operator-warmup
    2. NCN ↔ vault             init-ticket ─settle─ warmup
    3. operator ↔ vault (each) init-ticket ─settle─ warmup
    4. vault → NCN             init-ticket ─settle─ warmup
    5. asset infrastructure    create-account, mint, mint-vrt, update-vault-balance
    6. vault → operator (each) initialize-delegation, delegate

Every command, and every settle delay, is also appended to an executable
replay script (``handshake_commands.sh``) for debugging.
"""

from __future__ import annotations

import stat
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from localnet.bootstrap.commands import CommandCatalog
from localnet.core.logging import get_logger
from localnet.execution.outcome import Invocation
from localnet.execution.retry import RetryPolicy, Sleeper

logger = get_logger(__name__)


@dataclass(frozen=True)
class NetworkIdentifiers:
    """Identifiers the handshake wires together."""

    ncn: str
    vault: str
    token: str
    operators: tuple[str, ...]


class ReplayScript:
    """Append-only bash script mirroring the executed handshake commands."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def start(self, ids: NetworkIdentifiers) -> None:
        header = [
            "#!/bin/bash",
            "",
            "# Restaking network handshake commands",
            f"# Generated and executed on: {datetime.now().isoformat(timespec='seconds')}",
            "#",
            f"# NCN Address: {ids.ncn}",
            f"# Vault Address: {ids.vault}",
            f"# Token Address: {ids.token}",
            "",
            "set -e",
            "",
        ]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("\n".join(header) + "\n", encoding="utf-8")

    def section(self, title: str) -> None:
        self._append(f"\n# {title}")

    def command(self, command: str) -> None:
        self._append(command)

    def sleep(self, seconds: float) -> None:
        self._append(f"sleep {seconds:g}")

    def finish(self) -> None:
        self._append('\necho "All handshake commands completed successfully!"')
        mode = self.path.stat().st_mode
        self.path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    def _append(self, line: str) -> None:
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")


class HandshakeSequencer:
    """Runs the fixed opt-in sequence through the Retry Policy."""

    def __init__(
        self,
        retry: RetryPolicy,
        catalog: CommandCatalog,
        sleeper: Sleeper,
        replay: ReplayScript,
        settle_delay: float = 4.0,
    ) -> None:
        self.retry = retry
        self.catalog = catalog
        self.sleeper = sleeper
        self.replay = replay
        self.settle_delay = settle_delay
        self.executed: list[str] = []

    def run(self, ids: NetworkIdentifiers) -> list[str]:
        """Execute the full sequence; return the commands in execution order."""
        c = self.catalog
        self.executed = []
        self.replay.start(ids)

        for index, operator in enumerate(ids.operators, start=1):
            self._begin(f"NCN to Operator {index} connection")
            self._call(c.ncn_operator_state(ids.ncn, operator))
            self._settle()
            self._call(c.ncn_warmup_operator(ids.ncn, operator))
            self._settle()
            self._call(c.operator_warmup_ncn(operator, ids.ncn, index))
            logger.info("handshake.ncn_operator_connected", operator=index)

        self._begin("NCN to Vault connection")
        self._call(c.ncn_vault_ticket(ids.ncn, ids.vault))
        self._settle()
        self._call(c.ncn_vault_ticket_warmup(ids.ncn, ids.vault))
        logger.info("handshake.ncn_vault_connected")

        for index, operator in enumerate(ids.operators, start=1):
            self._begin(f"Operator {index} to Vault connection")
            self._call(c.operator_vault_ticket(operator, ids.vault, index))
            self._settle()
            self._call(c.operator_vault_ticket_warmup(operator, ids.vault, index))
            logger.info("handshake.operator_vault_connected", operator=index)

        self._begin("Vault to NCN connection")
        self._call(c.vault_ncn_ticket(ids.vault, ids.ncn))
        self._settle()
        self._call(c.vault_ncn_ticket_warmup(ids.vault, ids.ncn))
        logger.info("handshake.vault_ncn_connected")

        self._begin("Token infrastructure")
        self._call(c.create_token_account(ids.token))
        self._call(c.mint(ids.token, c.settings.extra_mint_amount))
        self._call(c.mint_vrt(ids.vault))
        self._call(c.update_vault_balance(ids.vault))
        logger.info("handshake.vault_balance_updated")

        for index, operator in enumerate(ids.operators, start=1):
            self._begin(f"Delegation to Operator {index}")
            self._call(c.initialize_operator_delegation(ids.vault, operator))
            self._call(c.delegate_to_operator(ids.vault, operator))
            logger.info("handshake.delegated", operator=index, amount=c.settings.delegation_amount)

        self.replay.finish()
        logger.info("handshake.complete", commands=len(self.executed), replay_script=str(self.replay.path))
        return list(self.executed)

    def _begin(self, title: str) -> None:
        logger.info("handshake.step", step=title)
        self.replay.section(title)

    def _call(self, invocation: Invocation) -> str:
        self.replay.command(invocation.command)
        output = self.retry.run(invocation.argv, invocation.rule.success_pattern)
        self.executed.append(invocation.command)
        return output

    def _settle(self) -> None:
        self.replay.sleep(self.settle_delay)
        logger.debug("handshake.settle", seconds=self.settle_delay)
        self.sleeper.sleep(self.settle_delay)


__all__ = ["HandshakeSequencer", "NetworkIdentifiers", "ReplayScript"]
