"""Catalog of every external call the bootstrap issues.

Each method returns an ``Invocation``: the argv plus the ``OutputRule``
that decides success and, where relevant, which line and field carry the
new identifier. Keeping the rules here makes the text-matching contract
one table instead of a pattern buried in every stage.

Keypair paths are rendered relative to the working directory (commands run
with ``cwd=workdir``) so the replay script stays portable.
"""

from __future__ import annotations

from pathlib import Path

from localnet.core.settings import LocalnetSettings
from localnet.execution.outcome import TRANSACTION_CONFIRMED, Invocation, OutputRule
from localnet.state.store import KeyLayout

RESTAKING_CLI = "jito-restaking-cli"

CONFIRMED = OutputRule(success_pattern=TRANSACTION_CONFIRMED)
KEYPAIR_WRITTEN = OutputRule(success_pattern="Wrote new keypair")
AIRDROP = OutputRule(success_pattern="SOL")
TOKEN_CREATED = OutputRule(success_pattern="Creating token", extract_marker="Address:", field_index=1)
ACCOUNT_CREATED = OutputRule(success_pattern="Creating account")
TOKENS_MINTED = OutputRule(success_pattern="Signature:")
NCN_CREATED = OutputRule(success_pattern="Initializing NCN:", extract_marker="Initializing NCN:")
OPERATOR_CREATED = OutputRule(success_pattern="Initializing Operator:", extract_marker="Initializing Operator:")
VAULT_CREATED = OutputRule(
    success_pattern="Initializing Vault at address:",
    extract_marker="Initializing Vault at address:",
)
ANY_OUTPUT = OutputRule(success_pattern=None)


class CommandCatalog:
    """Builds the ``Invocation`` for each step of the bootstrap."""

    def __init__(self, settings: LocalnetSettings, layout: KeyLayout) -> None:
        self.settings = settings
        self.layout = layout

    def path(self, path: Path) -> str:
        """Render ``path`` relative to the working directory when possible."""
        try:
            return f"./{path.relative_to(self.settings.workdir).as_posix()}"
        except ValueError:
            return str(path)

    # ── Environment / funding ────────────────────────────────────

    def config_set_url(self) -> Invocation:
        return Invocation(("solana", "config", "set", "--url", self.settings.rpc_url), ANY_OUTPUT, "Point solana CLI at the RPC endpoint")

    def balance(self, keypair: Path | None = None) -> Invocation:
        argv = ("solana", "balance") + (("--keypair", self.path(keypair)) if keypair else ())
        return Invocation(argv, ANY_OUTPUT, "Query balance")

    def airdrop(self, keypair: Path | None = None) -> Invocation:
        argv = ("solana", "airdrop", str(self.settings.airdrop_amount))
        if keypair is not None:
            argv += ("--keypair", self.path(keypair))
        return Invocation(argv, AIRDROP, "Request airdrop")

    def keygen(self, outfile: Path) -> Invocation:
        return Invocation(
            ("solana-keygen", "new", "--outfile", self.path(outfile), "--no-bip39-passphrase", "--force"),
            KEYPAIR_WRITTEN,
            "Generate keypair",
        )

    # ── Program configuration ────────────────────────────────────

    def restaking_config_initialize(self) -> Invocation:
        return Invocation((RESTAKING_CLI, "restaking", "config", "initialize"), CONFIRMED, "Initialize restaking config")

    def vault_config_initialize(self) -> Invocation:
        return Invocation(
            (RESTAKING_CLI, "vault", "config", "initialize", str(self.settings.vault_config_fee_bps), self.settings.fee_wallet),
            CONFIRMED,
            "Initialize vault config",
        )

    # ── Account creation ─────────────────────────────────────────

    def ncn_initialize(self) -> Invocation:
        return Invocation(
            (RESTAKING_CLI, "restaking", "ncn", "initialize", "--signer", self.path(self.layout.ncn_admin)),
            NCN_CREATED,
            "Create NCN",
        )

    def operator_initialize(self, index: int) -> Invocation:
        return Invocation(
            (
                RESTAKING_CLI, "restaking", "operator", "initialize", str(self.settings.operator_fee_bps),
                "--signer", self.path(self.layout.operator_admin(index)),
            ),
            OPERATOR_CREATED,
            f"Create operator {index}",
        )

    def create_token(self) -> Invocation:
        return Invocation(("spl-token", "create-token"), TOKEN_CREATED, "Create SPL token")

    def create_token_account(self, token: str, owner: Path | None = None) -> Invocation:
        argv = ("spl-token", "create-account", token)
        if owner is not None:
            argv += ("--owner", self.path(owner))
        return Invocation(argv, ACCOUNT_CREATED, "Create token account")

    def mint_to_owner(self, token: str, amount: int, owner: Path) -> Invocation:
        return Invocation(
            ("spl-token", "mint", token, str(amount), "--recipient-owner", self.path(owner)),
            TOKENS_MINTED,
            "Mint tokens to owner",
        )

    def mint(self, token: str, amount: int) -> Invocation:
        return Invocation(("spl-token", "mint", token, str(amount)), TOKENS_MINTED, "Mint tokens")

    def vault_initialize(self, token: str) -> Invocation:
        s = self.settings
        return Invocation(
            (
                RESTAKING_CLI, "--signer", self.path(self.layout.vault_admin), "vault", "vault", "initialize",
                token, str(s.deposit_fee_bps), str(s.withdrawal_fee_bps), str(s.reward_fee_bps),
                str(s.decimals), str(s.initial_vault_amount),
            ),
            VAULT_CREATED,
            "Create vault",
        )

    # ── Handshake: NCN ↔ operator ────────────────────────────────

    def ncn_operator_state(self, ncn: str, operator: str) -> Invocation:
        return self._restaking("ncn", "initialize-ncn-operator-state", ncn, operator, signer=self.layout.ncn_admin)

    def ncn_warmup_operator(self, ncn: str, operator: str) -> Invocation:
        return self._restaking("ncn", "ncn-warmup-operator", ncn, operator, signer=self.layout.ncn_admin)

    def operator_warmup_ncn(self, operator: str, ncn: str, index: int) -> Invocation:
        return self._restaking(
            "operator", "operator-warmup-ncn", operator, ncn, signer=self.layout.operator_admin(index)
        )

    # ── Handshake: NCN ↔ vault ───────────────────────────────────

    def ncn_vault_ticket(self, ncn: str, vault: str) -> Invocation:
        return self._restaking("ncn", "initialize-ncn-vault-ticket", ncn, vault, signer=self.layout.ncn_admin)

    def ncn_vault_ticket_warmup(self, ncn: str, vault: str) -> Invocation:
        return self._restaking("ncn", "warmup-ncn-vault-ticket", ncn, vault, signer=self.layout.ncn_admin)

    # ── Handshake: operator ↔ vault ──────────────────────────────

    def operator_vault_ticket(self, operator: str, vault: str, index: int) -> Invocation:
        return self._restaking(
            "operator", "initialize-operator-vault-ticket", operator, vault, signer=self.layout.operator_admin(index)
        )

    def operator_vault_ticket_warmup(self, operator: str, vault: str, index: int) -> Invocation:
        return self._restaking(
            "operator", "warmup-operator-vault-ticket", operator, vault, signer=self.layout.operator_admin(index)
        )

    # ── Handshake: vault → NCN, vault accounting, delegation ─────

    def vault_ncn_ticket(self, vault: str, ncn: str) -> Invocation:
        return self._vault("initialize-vault-ncn-ticket", vault, ncn, signer=True)

    def vault_ncn_ticket_warmup(self, vault: str, ncn: str) -> Invocation:
        return self._vault("warmup-vault-ncn-ticket", vault, ncn, signer=True)

    def mint_vrt(self, vault: str) -> Invocation:
        return self._vault("mint-vrt", vault, str(self.settings.vrt_amount), "0", signer=False)

    def update_vault_balance(self, vault: str) -> Invocation:
        return self._vault("update-vault-balance", vault, signer=True)

    def initialize_operator_delegation(self, vault: str, operator: str) -> Invocation:
        return self._vault("initialize-operator-delegation", vault, operator, signer=True)

    def delegate_to_operator(self, vault: str, operator: str) -> Invocation:
        return self._vault("delegate-to-operator", vault, operator, str(self.settings.delegation_amount), signer=True)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _restaking(self, group: str, action: str, *args: str, signer: Path) -> Invocation:
        return Invocation(
            (RESTAKING_CLI, "restaking", group, action, *args, "--signer", self.path(signer)),
            CONFIRMED,
            f"{group} {action}",
        )

    def _vault(self, action: str, *args: str, signer: bool) -> Invocation:
        argv: tuple[str, ...] = (RESTAKING_CLI, "vault", "vault", action, *args)
        if signer:
            argv += ("--signer", self.path(self.layout.vault_admin))
        return Invocation(argv, CONFIRMED, f"vault {action}")


__all__ = ["CommandCatalog", "RESTAKING_CLI"]
