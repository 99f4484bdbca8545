"""Setup Orchestrator: the linear bootstrap pipeline.

Runs a fixed list of stages in declaration order and halts on the first
failed stage. Identifiers flow between stages through an explicit
``SetupContext`` and the State Store rather than process globals; a stage
whose Artifact Record already exists is skipped, so re-running after a
partial failure resumes where the previous run stopped.

Stages::

    prerequisites → environment → directories → keypairs → configs
    → coordinator → providers → asset → pool → handshake → validation

Failure semantics:
    - The failing stage is recorded on ``SetupRunResult`` (``failed_stage``,
      ``error``, ``exit_code``) and appended to ``logs/error.log``.
    - No rollback: records already written stay on disk.

Example::

    from localnet.bootstrap import SetupOrchestrator
    from localnet.core.settings import LocalnetSettings

    result = SetupOrchestrator(LocalnetSettings()).run()
    print(result.summary)
"""

from __future__ import annotations

import shutil
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from localnet.bootstrap.commands import CommandCatalog
from localnet.bootstrap.funding import FundingGuard
from localnet.bootstrap.handshake import HandshakeSequencer, NetworkIdentifiers, ReplayScript
from localnet.bootstrap.results import SetupRunResult, StageResult, StageStatus
from localnet.core.errors import ErrorCategory, LocalnetError, MissingPrerequisite, ValidationFailure
from localnet.core.logging import LogContext, get_logger
from localnet.core.settings import LocalnetSettings
from localnet.execution.audit import AuditLog
from localnet.execution.executor import CommandExecutor
from localnet.execution.outcome import Invocation, extract_identifier
from localnet.execution.retry import ExponentialBackoff, RetryPolicy, Sleeper
from localnet.state.store import (
    NCN_PUBKEY,
    TOKEN_ADDRESS,
    VAULT_ADDRESS,
    KeyLayout,
    StateStore,
    operator_record,
)

logger = get_logger(__name__)


@dataclass
class StageReport:
    """What a stage handler reports back to the pipeline."""

    status: StageStatus = StageStatus.PASSED
    detail: str = ""


@dataclass(frozen=True)
class Stage:
    """A named unit of the pipeline."""

    name: str
    handler: Callable[[], StageReport]


@dataclass
class SetupContext:
    """Collaborators and identifiers threaded through the stages."""

    settings: LocalnetSettings
    layout: KeyLayout
    store: StateStore
    catalog: CommandCatalog
    retry: RetryPolicy
    funding: FundingGuard
    sleeper: Sleeper
    audit: AuditLog
    coordinator: str | None = None
    providers: dict[int, str] = field(default_factory=dict)
    asset: str | None = None
    pool: str | None = None

    def collected(self) -> dict[str, str]:
        """Every identifier known so far, keyed by record name."""
        return {
            name: value
            for name, value in self.store.snapshot(self.layout.record_names).items()
            if value is not None
        }

    def network_identifiers(self) -> NetworkIdentifiers:
        """Reload the identifiers the handshake needs from the State Store."""
        missing = self.store.missing(self.layout.record_names)
        if missing:
            raise ValidationFailure(
                f"Cannot run handshake, missing records: {', '.join(missing)}",
                missing=missing,
            )
        get = self.store.get
        return NetworkIdentifiers(
            ncn=get(NCN_PUBKEY) or "",
            vault=get(VAULT_ADDRESS) or "",
            token=get(TOKEN_ADDRESS) or "",
            operators=tuple(get(operator_record(i)) or "" for i in self.layout.provider_indexes),
        )


class SetupOrchestrator:
    """Runs the bootstrap stages strictly in order.

    Parameters
    ----------
    settings
        Runtime settings; ``workdir`` anchors every relative path.
    executor
        Command executor; defaults to a subprocess executor in ``workdir``
        whose outcomes are appended to ``logs/commands.log``.
    sleeper
        Shared wait implementation for backoff and settle delays.
    which
        Tool resolver used by the prerequisite check.
    """

    def __init__(
        self,
        settings: LocalnetSettings,
        executor: CommandExecutor | None = None,
        sleeper: Sleeper | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.settings = settings
        self.which = which
        audit = AuditLog(settings.logs_path, settings.workdir)
        if executor is None:
            executor = CommandExecutor(
                cwd=settings.workdir,
                timeout=settings.command_timeout,
                on_execute=audit.record_command,
            )
        self.executor = executor
        sleeper = sleeper or Sleeper()
        layout = KeyLayout(settings.keys_path, settings.provider_count)
        catalog = CommandCatalog(settings, layout)
        retry = RetryPolicy(
            executor,
            ExponentialBackoff(max_attempts=settings.max_attempts, base_delay=settings.retry_base_delay),
            sleeper,
        )
        self.context = SetupContext(
            settings=settings,
            layout=layout,
            store=StateStore.for_layout(layout),
            catalog=catalog,
            retry=retry,
            funding=FundingGuard(executor, retry, catalog, settings.min_balance),
            sleeper=sleeper,
            audit=audit,
        )
        self.handshake = HandshakeSequencer(
            retry,
            catalog,
            sleeper,
            ReplayScript(settings.resolve(settings.replay_script)),
            settings.settle_delay,
        )
        self.stages: list[Stage] = [
            Stage("prerequisites", self.check_prerequisites),
            Stage("environment", self.configure_environment),
            Stage("directories", self.create_directories),
            Stage("keypairs", self.generate_keypairs),
            Stage("configs", self.initialize_configs),
            Stage("coordinator", self.initialize_coordinator),
            Stage("providers", self.initialize_providers),
            Stage("asset", self.create_asset),
            Stage("pool", self.initialize_pool),
            Stage("handshake", self.perform_handshake),
            Stage("validation", self.validate),
        ]

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def run(self) -> SetupRunResult:
        """Execute every stage; stop at the first failure."""
        result = SetupRunResult(run_id=uuid.uuid4().hex[:12], workdir=str(self.settings.workdir))

        with LogContext(run_id=result.run_id):
            logger.info("setup.started", workdir=result.workdir, stages=len(self.stages))
            for stage in self.stages:
                stage_result = self._run_stage(stage)
                result.stages.append(stage_result)
                if stage_result.status == StageStatus.FAILED:
                    result.failed_stage = stage.name
                    result.error = stage_result.detail
                    result.exit_code = (stage_result.error or {}).get("exit_code", 1)
                    break

            result.identifiers = self.context.collected()
            result.mark_complete()
            logger.info("setup.complete", summary=result.summary, duration_seconds=result.duration_seconds)
        return result

    def _run_stage(self, stage: Stage) -> StageResult:
        start = time.monotonic()
        with LogContext(stage=stage.name):
            logger.info("stage.started")
            try:
                report = stage.handler()
            except LocalnetError as exc:
                self.context.audit.record_failure(exc, stage.name)
                logger.error("stage.failed", error=exc.message, error_type=type(exc).__name__)
                return StageResult(
                    name=stage.name,
                    status=StageStatus.FAILED,
                    duration_seconds=time.monotonic() - start,
                    detail=exc.message,
                    error=exc.to_dict(),
                )
            except Exception as exc:
                error = LocalnetError(
                    f"Unexpected {type(exc).__name__} in stage {stage.name}: {exc}",
                    category=ErrorCategory.INTERNAL,
                    cause=exc,
                )
                self.context.audit.record_failure(error, stage.name)
                logger.exception("stage.crashed", error=str(exc), error_type=type(exc).__name__)
                return StageResult(
                    name=stage.name,
                    status=StageStatus.FAILED,
                    duration_seconds=time.monotonic() - start,
                    detail=error.message,
                    error=error.to_dict(),
                )
            logger.info("stage.completed", status=report.status.value, detail=report.detail)
            return StageResult(
                name=stage.name,
                status=report.status,
                duration_seconds=time.monotonic() - start,
                detail=report.detail,
            )

    def _invoke(self, invocation: Invocation) -> str:
        return self.context.retry.run(invocation.argv, invocation.rule.success_pattern)

    def _create(self, invocation: Invocation) -> str:
        """Run an account-creating call and extract the new identifier."""
        output = self._invoke(invocation)
        try:
            return extract_identifier(output, invocation.rule)
        except LocalnetError as exc:
            raise exc.with_context(command=invocation.command)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def check_prerequisites(self) -> StageReport:
        for tool in self.settings.required_tools:
            location = self.which(tool)
            if location is None:
                raise MissingPrerequisite(tool)
            logger.info("prerequisite.found", tool=tool, path=location)
        return StageReport(detail=f"{len(self.settings.required_tools)} tools found")

    def configure_environment(self) -> StageReport:
        ctx = self.context
        self._invoke(ctx.catalog.config_set_url())
        balance = ctx.funding.ensure_funded(None, "default wallet")
        return StageReport(detail=f"rpc={self.settings.rpc_url} balance={balance}")

    def create_directories(self) -> StageReport:
        directories = [*self.context.layout.directories, self.settings.logs_path]
        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)
        return StageReport(detail=", ".join(str(d) for d in directories))

    def generate_keypairs(self) -> StageReport:
        ctx = self.context
        generated = 0
        for label, path in ctx.layout.keypairs():
            if path.is_file():
                logger.warning("keypair.exists", keypair=label, path=str(path))
            else:
                self._invoke(ctx.catalog.keygen(path))
                generated += 1
                logger.info("keypair.generated", keypair=label, path=str(path))
            ctx.funding.ensure_funded(path, label)
        total = len(ctx.layout.keypairs())
        return StageReport(detail=f"{generated} generated, {total - generated} reused")

    def initialize_configs(self) -> StageReport:
        ctx = self.context
        # NCN creation requires both configs, so an NCN record proves they exist
        if ctx.store.has(NCN_PUBKEY):
            return StageReport(StageStatus.SKIPPED, "program configs already initialized")
        self._invoke(ctx.catalog.restaking_config_initialize())
        self._invoke(ctx.catalog.vault_config_initialize())
        return StageReport(detail="restaking and vault configs initialized")

    def initialize_coordinator(self) -> StageReport:
        ctx = self.context
        existing = ctx.store.get(NCN_PUBKEY)
        if existing:
            ctx.coordinator = existing
            return StageReport(StageStatus.SKIPPED, f"NCN {existing}")
        ctx.coordinator = self._create(ctx.catalog.ncn_initialize())
        ctx.store.put(NCN_PUBKEY, ctx.coordinator)
        return StageReport(detail=f"NCN {ctx.coordinator}")

    def initialize_providers(self) -> StageReport:
        ctx = self.context
        created = 0
        for index in ctx.layout.provider_indexes:
            name = operator_record(index)
            existing = ctx.store.get(name)
            if existing:
                logger.info("operator.exists", operator=index, pubkey=existing)
                ctx.providers[index] = existing
                continue
            pubkey = self._create(ctx.catalog.operator_initialize(index))
            ctx.store.put(name, pubkey)
            ctx.providers[index] = pubkey
            created += 1
            logger.info("operator.initialized", operator=index, pubkey=pubkey)
        if created == 0:
            return StageReport(StageStatus.SKIPPED, "all operators already initialized")
        return StageReport(detail=f"{created} operators initialized")

    def create_asset(self) -> StageReport:
        ctx = self.context
        existing = ctx.store.get(TOKEN_ADDRESS)
        if existing:
            ctx.asset = existing
            return StageReport(StageStatus.SKIPPED, f"token {existing}")
        token = self._create(ctx.catalog.create_token())
        self._invoke(ctx.catalog.create_token_account(token, owner=ctx.layout.vault_admin))
        self._invoke(ctx.catalog.mint_to_owner(token, self.settings.mint_amount, ctx.layout.vault_admin))
        ctx.store.put(TOKEN_ADDRESS, token)
        ctx.asset = token
        return StageReport(detail=f"token {token}, minted {self.settings.mint_amount} to vault admin")

    def initialize_pool(self) -> StageReport:
        ctx = self.context
        existing = ctx.store.get(VAULT_ADDRESS)
        if existing:
            ctx.pool = existing
            return StageReport(StageStatus.SKIPPED, f"vault {existing}")
        token = ctx.asset or ctx.store.get(TOKEN_ADDRESS)
        if not token:
            raise ValidationFailure("Token address is required before the vault can be created")
        ctx.pool = self._create(ctx.catalog.vault_initialize(token))
        ctx.store.put(VAULT_ADDRESS, ctx.pool)
        return StageReport(detail=f"vault {ctx.pool}")

    def perform_handshake(self) -> StageReport:
        ids = self.context.network_identifiers()
        executed = self.handshake.run(ids)
        return StageReport(detail=f"{len(executed)} commands, replay script {self.handshake.replay.path}")

    def validate(self) -> StageReport:
        ctx = self.context
        missing = ctx.store.missing(ctx.layout.record_names)
        if missing:
            raise ValidationFailure(
                f"Validation failed, missing or empty records: {', '.join(missing)}",
                missing=[str(ctx.store.path_for(name)) for name in missing],
            )
        summary_path = self.settings.resolve(self.settings.summary_file)
        summary_path.write_text(self.render_summary(), encoding="utf-8")
        logger.info("setup.summary_written", path=str(summary_path), identifiers=ctx.collected())
        return StageReport(detail=f"summary written to {summary_path}")

    def render_summary(self) -> str:
        """Human-readable summary of every captured identifier."""
        ctx = self.context
        get = ctx.store.get
        catalog = ctx.catalog
        lines = [
            "Restaking Network Setup Summary",
            "===============================",
            f"Setup completed on: {datetime.now().isoformat(timespec='seconds')}",
            "",
            f"NCN Address: {get(NCN_PUBKEY)}",
            f"Vault Address: {get(VAULT_ADDRESS)}",
            f"Token Address: {get(TOKEN_ADDRESS)}",
            "",
            "Operators:",
        ]
        lines.extend(f"- Operator {i}: {get(operator_record(i))}" for i in ctx.layout.provider_indexes)
        lines += [
            "",
            "All components have been initialized and connected through the opt-in handshake process.",
            f"Delegated {self.settings.delegation_amount} base units to each operator.",
            "",
            "Key Files Location:",
            f"- NCN Admin: {catalog.path(ctx.layout.ncn_admin)}",
            f"- Vault Admin: {catalog.path(ctx.layout.vault_admin)}",
        ]
        lines.extend(
            f"- Operator {i} Admin: {catalog.path(ctx.layout.operator_admin(i))}"
            for i in ctx.layout.provider_indexes
        )
        return "\n".join(lines) + "\n"


__all__ = ["SetupContext", "SetupOrchestrator", "Stage", "StageReport"]
