"""
Tests for the Setup Orchestrator.

The ``FakeCommandBackend`` plays every external tool, so these tests
exercise the real stage logic, State Store, replay script and audit log
end to end without a validator.
"""

from unittest.mock import patch

import pytest
from structlog.testing import capture_logs

from localnet.bootstrap.orchestrator import SetupOrchestrator
from localnet.bootstrap.results import OverallStatus, StageStatus
from localnet.state.store import NCN_PUBKEY, TOKEN_ADDRESS, VAULT_ADDRESS, operator_record

STAGES = [
    "prerequisites",
    "environment",
    "directories",
    "keypairs",
    "configs",
    "coordinator",
    "providers",
    "asset",
    "pool",
    "handshake",
    "validation",
]


def _found(tool):
    return f"/usr/local/bin/{tool}"


@pytest.fixture
def orchestrator(settings, backend, sleeper):
    return SetupOrchestrator(settings, executor=backend, sleeper=sleeper, which=_found)


def _seed_records(orchestrator, values):
    for name, value in values.items():
        orchestrator.context.store.put(name, value)


class TestEndToEnd:
    """Full pipeline against the fake backend."""

    def test_fresh_run_passes(self, orchestrator, workdir):
        result = orchestrator.run()

        assert result.success, result.error
        assert result.overall_status == OverallStatus.PASSED
        assert result.exit_code == 0
        assert [s.name for s in result.stages] == STAGES
        assert all(s.status == StageStatus.PASSED for s in result.stages)

    def test_six_distinct_records(self, orchestrator, settings):
        result = orchestrator.run()

        store = orchestrator.context.store
        names = orchestrator.context.layout.record_names
        values = [store.get(name) for name in names]
        assert len(names) == 6
        assert all(values)
        assert len(set(values)) == 6
        assert result.identifiers == dict(zip(names, values))
        assert (settings.keys_path / "ncn" / "ncn_pubkey.txt").read_text().strip() == store.get(NCN_PUBKEY)

    def test_keypairs_generated_and_funded(self, orchestrator, backend, workdir):
        orchestrator.run()

        for name in ["ncn/ncn-admin.json", "vault/vault-admin.json", "operators/operator3-admin.json"]:
            assert (workdir / "keys" / name).is_file()
        assert len(backend.calls_matching("solana-keygen new")) == 5
        assert len(backend.calls_matching("solana balance --keypair")) == 5

    def test_asset_minted_to_vault_admin(self, orchestrator, backend):
        orchestrator.run()

        token = orchestrator.context.store.get(TOKEN_ADDRESS)
        assert f"spl-token create-account {token} --owner ./keys/vault/vault-admin.json" in backend.commands
        assert f"spl-token mint {token} 1000000 --recipient-owner ./keys/vault/vault-admin.json" in backend.commands

    def test_pool_uses_captured_asset(self, orchestrator, backend):
        orchestrator.run()

        token = orchestrator.context.store.get(TOKEN_ADDRESS)
        vault_init = backend.calls_matching("vault vault initialize ")
        assert vault_init == [
            "jito-restaking-cli --signer ./keys/vault/vault-admin.json vault vault initialize "
            f"{token} 1000 1000 1000 9 1000000000"
        ]

    def test_handshake_uses_persisted_identifiers(self, orchestrator, backend):
        orchestrator.run()

        store = orchestrator.context.store
        ncn, vault = store.get(NCN_PUBKEY), store.get(VAULT_ADDRESS)
        op2 = store.get(operator_record(2))
        assert backend.calls_matching(f"initialize-ncn-operator-state {ncn} {op2}")
        assert backend.calls_matching(f"delegate-to-operator {vault} {op2} 500000000000")

    def test_artifacts_written(self, orchestrator, workdir):
        orchestrator.run()

        summary = (workdir / "setup_summary.txt").read_text()
        store = orchestrator.context.store
        assert f"NCN Address: {store.get(NCN_PUBKEY)}" in summary
        assert f"- Operator 3: {store.get(operator_record(3))}" in summary
        assert "- Vault Admin: ./keys/vault/vault-admin.json" in summary
        assert (workdir / "handshake_commands.sh").is_file()
        assert (workdir / "logs").is_dir()


class TestResumability:
    """Existing Artifact Records skip creation but never funding."""

    def test_rerun_creates_nothing(self, orchestrator, backend, settings, sleeper):
        orchestrator.run()
        backend.commands.clear()

        second = SetupOrchestrator(settings, executor=backend, sleeper=sleeper, which=_found).run()

        assert second.success
        for fragment in ["solana-keygen", "config initialize", "ncn initialize ", "operator initialize ",
                         "create-token", "vault vault initialize "]:
            assert backend.calls_matching(fragment) == [], fragment
        assert len(backend.calls_matching("solana balance --keypair")) == 5
        for name in ["configs", "coordinator", "providers", "asset", "pool"]:
            assert second.stage(name).status == StageStatus.SKIPPED

    def test_partial_records_resume_at_first_gap(self, orchestrator, backend):
        _seed_records(orchestrator, {NCN_PUBKEY: "NcnSeed", operator_record(1): "OpSeed1"})

        result = orchestrator.run()

        assert result.success
        assert backend.calls_matching("ncn initialize ") == []
        assert backend.calls_matching("config initialize") == []
        operator_inits = backend.calls_matching("operator initialize ")
        assert len(operator_inits) == 2
        assert all("operator1-admin" not in c for c in operator_inits)
        assert orchestrator.context.store.get(NCN_PUBKEY) == "NcnSeed"
        assert backend.calls_matching("initialize-ncn-operator-state NcnSeed OpSeed1")

    def test_existing_keypairs_still_funded(self, orchestrator, backend, workdir):
        for path in ["keys/ncn/ncn-admin.json", "keys/vault/vault-admin.json"]:
            (workdir / path).parent.mkdir(parents=True, exist_ok=True)
            (workdir / path).write_text("[9,9,9]")
        backend.set_balance("2 SOL", "./keys/ncn/ncn-admin.json")

        result = orchestrator.run()

        assert result.success
        assert len(backend.calls_matching("solana-keygen new")) == 3
        assert (workdir / "keys/ncn/ncn-admin.json").read_text() == "[9,9,9]"
        assert backend.calls_matching("solana airdrop 100 --keypair ./keys/ncn/ncn-admin.json")


class TestFailures:
    def test_missing_tool_fails_first_stage(self, settings, backend, sleeper):
        which = lambda tool: None if tool == "jito-restaking-cli" else _found(tool)  # noqa: E731
        result = SetupOrchestrator(settings, executor=backend, sleeper=sleeper, which=which).run()

        assert not result.success
        assert result.failed_stage == "prerequisites"
        assert result.exit_code == 1
        assert "jito-restaking-cli" in result.error
        assert backend.commands == []
        assert "Stage: prerequisites" in (settings.logs_path / "error.log").read_text()

    def test_exhausted_retries_halt_pipeline(self, orchestrator, backend, sleeper, settings):
        backend.fail("vault vault initialize ", output="Error: custom program error: 0x0")

        result = orchestrator.run()

        assert result.overall_status == OverallStatus.FAILED
        assert result.failed_stage == "pool"
        assert result.stage("pool").status == StageStatus.FAILED
        assert result.stage("handshake") is None
        assert sleeper.calls[-4:] == [5.0, 10.0, 20.0, 40.0]
        error_log = (settings.logs_path / "error.log").read_text()
        assert "Stage: pool" in error_log
        assert "custom program error: 0x0" in error_log
        assert orchestrator.context.store.get(VAULT_ADDRESS) is None
        assert orchestrator.context.store.get(TOKEN_ADDRESS) is not None

    def test_unparseable_creation_output(self, orchestrator, backend, settings):
        backend.respond("ncn initialize ", output="Initializing NCN:\nTransaction confirmed: sig")

        result = orchestrator.run()

        assert result.failed_stage == "coordinator"
        assert result.stage("coordinator").error["error_type"] == "ExtractionFailure"
        assert orchestrator.context.store.get(NCN_PUBKEY) is None
        assert "restaking ncn initialize" in (settings.logs_path / "error.log").read_text()

    def test_asset_record_written_only_after_funding(self, orchestrator, backend):
        backend.fail("--recipient-owner")

        result = orchestrator.run()

        assert result.failed_stage == "asset"
        assert orchestrator.context.store.get(TOKEN_ADDRESS) is None

    def test_validation_reports_missing_records(self, orchestrator, workdir):
        orchestrator.stages = [s for s in orchestrator.stages if s.name in ("directories", "validation")]

        result = orchestrator.run()

        assert result.failed_stage == "validation"
        assert "ncn_pubkey" in result.error
        assert not (workdir / "setup_summary.txt").exists()

    def test_unexpected_exception_is_recorded(self, orchestrator, settings):
        store = orchestrator.context.store
        with patch.object(store, "put", side_effect=OSError("No space left on device")):
            result = orchestrator.run()

        assert result.failed_stage == "coordinator"
        assert result.exit_code == 1
        assert result.stage("coordinator").status == StageStatus.FAILED
        assert result.stage("coordinator").error["category"] == "INTERNAL"
        assert "No space left on device" in result.error
        error_log = (settings.logs_path / "error.log").read_text()
        assert "Stage: coordinator" in error_log
        assert "OSError" in error_log


class TestSummaryLogging:
    def test_summary_event_carries_identifiers(self, orchestrator):
        with capture_logs() as logs:
            orchestrator.run()

        (event,) = [e for e in logs if e["event"] == "setup.summary_written"]
        assert event["identifiers"] == orchestrator.context.collected()
        assert len(event["identifiers"]) == 6
