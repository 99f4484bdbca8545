"""Runtime settings for localnet bootstrap.

Every tunable of the bootstrap (retry budget, funding threshold, token
amounts, validator program set) lives on ``LocalnetSettings`` so the
pipeline code only reads named values. Fields are overridable through
``LOCALNET_*`` environment variables or a ``.env`` file in the working
directory.

Examples:
    >>> from localnet.core.settings import LocalnetSettings
    >>> settings = LocalnetSettings(max_attempts=3, retry_base_delay=0.1)
    >>> settings.keys_path.name
    'keys'

Tags:
    settings, configuration, pydantic, environment, localnet
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProgramSpec(BaseModel):
    """An on-chain program preloaded into the test validator."""

    program_id: str
    so_file: str


DEFAULT_PROGRAMS: list[ProgramSpec] = [
    ProgramSpec(program_id="cmtDvXumGCrqC1Age74AVPhSRVXJMd8PJS91L8KbNCK", so_file="spl_account_compression.so"),
    ProgramSpec(program_id="noopb9bkMVfRPU8AsbpTUg8AQkHtKwMYZiFUjNRtMmV", so_file="spl_noop.so"),
    ProgramSpec(program_id="ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL", so_file="spl_associated_token_account.so"),
    ProgramSpec(program_id="RestkWeAVL8fRGgzhfeoqFhsqKRchg6aa1XrcH96z4Q", so_file="jito_restaking.so"),
    ProgramSpec(program_id="Vau1t6sLNxnzB7ZDsef8TLbPLfyZMYXH8WTNqUdm9g8", so_file="jito_vault.so"),
]

DEFAULT_REQUIRED_TOOLS: list[str] = [
    "rustc",
    "cargo",
    "solana",
    "spl-token",
    "solana-keygen",
    "jito-restaking-cli",
]


class LocalnetSettings(BaseSettings):
    """Settings shared by every bootstrap component.

    Fields
    ──────
    workdir            : Directory all relative paths resolve against
    max_attempts       : Retry Policy attempt budget
    retry_base_delay   : First backoff delay in seconds (doubles per failure)
    min_balance        : Funding Guard threshold in SOL (integer part compared)
    settle_delay       : Pause between handshake initialize and warm-up calls
    provider_count     : Number of operator accounts to create
    """

    model_config = SettingsConfigDict(
        env_prefix="LOCALNET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Layout ───────────────────────────────────────────────────
    workdir: Path = Field(default_factory=Path.cwd)
    keys_dir: str = "keys"
    logs_dir: str = "logs"
    replay_script: str = "handshake_commands.sh"
    summary_file: str = "setup_summary.txt"

    # ── Retry / funding ──────────────────────────────────────────
    max_attempts: int = 5
    retry_base_delay: float = 5.0
    command_timeout: float | None = None
    min_balance: int = 10
    airdrop_amount: int = 100

    # ── Handshake ────────────────────────────────────────────────
    settle_delay: float = 4.0

    # ── Network parameters ───────────────────────────────────────
    rpc_url: str = "l"
    provider_count: int = 3
    operator_fee_bps: int = 1000
    vault_config_fee_bps: int = 100
    fee_wallet: str = "3ogGQ7nFX6nCa9bkkZ6hwud6VaEQCekCCmNj6ZoWh8MF"
    deposit_fee_bps: int = 1000
    withdrawal_fee_bps: int = 1000
    reward_fee_bps: int = 1000
    decimals: int = 9
    initial_vault_amount: int = 1_000_000_000
    mint_amount: int = 1_000_000
    extra_mint_amount: int = 3000
    vrt_amount: int = 3_000_000_000_000
    delegation_amount: int = 500_000_000_000

    # ── Prerequisites ────────────────────────────────────────────
    required_tools: list[str] = Field(default_factory=lambda: list(DEFAULT_REQUIRED_TOOLS))

    # ── Validator ────────────────────────────────────────────────
    validator_binary: str = "solana-test-validator"
    validator_clone_url: str = "https://api.mainnet-beta.solana.com"
    program_dir: str = "programs"
    account_dir: str = "accounts"
    programs: list[ProgramSpec] = Field(default_factory=lambda: list(DEFAULT_PROGRAMS))
    ready_timeout: float = 60.0
    ready_interval: float = 2.0
    startup_grace: float = 5.0
    stabilization_wait: float = 40.0
    slots_per_epoch: int = 432_000
    clock_settle: float = 1.0

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None

    @field_validator("workdir")
    @classmethod
    def _absolute_workdir(cls, value: Path) -> Path:
        return Path(value).expanduser().resolve()

    @field_validator("max_attempts", "provider_count", "slots_per_epoch")
    @classmethod
    def _positive_int(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"must be >= 1, got: {value}")
        return value

    @field_validator("retry_base_delay", "settle_delay", "ready_timeout", "ready_interval", "clock_settle")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError(f"must be >= 0, got: {value}")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value!r}")
        return level

    @property
    def keys_path(self) -> Path:
        return self.resolve(self.keys_dir)

    @property
    def logs_path(self) -> Path:
        return self.resolve(self.logs_dir)

    @property
    def rpc_flag(self) -> str:
        """``-u`` flag for solana CLI queries (``-ul`` for localhost)."""
        return f"-u{self.rpc_url}"

    def resolve(self, path: str | Path) -> Path:
        """Resolve ``path`` against the working directory."""
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self.workdir / candidate


__all__ = ["LocalnetSettings", "ProgramSpec", "DEFAULT_PROGRAMS", "DEFAULT_REQUIRED_TOOLS"]
