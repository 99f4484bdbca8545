"""Tests for the Handshake Sequencer and its replay script."""

import os

import pytest

from localnet.bootstrap.commands import CommandCatalog
from localnet.bootstrap.handshake import HandshakeSequencer, NetworkIdentifiers, ReplayScript
from localnet.core.errors import CommandExhaustedRetries
from localnet.execution.retry import ExponentialBackoff, RetryPolicy
from localnet.state.store import KeyLayout

IDS = NetworkIdentifiers(ncn="NCN1", vault="VLT1", token="TOK1", operators=("OP1", "OP2", "OP3"))


@pytest.fixture
def replay(workdir):
    return ReplayScript(workdir / "handshake_commands.sh")


@pytest.fixture
def sequencer(settings, backend, sleeper, replay):
    catalog = CommandCatalog(settings, KeyLayout(settings.keys_path))
    retry = RetryPolicy(backend, ExponentialBackoff(), sleeper)
    return HandshakeSequencer(retry, catalog, sleeper, replay, settle_delay=4.0)


class TestHandshakeSequencer:
    def test_full_sequence_order(self, sequencer, backend):
        executed = sequencer.run(IDS)

        assert len(executed) == 29
        assert executed == backend.commands
        first_operator = executed[:3]
        assert "initialize-ncn-operator-state NCN1 OP1 --signer ./keys/ncn/ncn-admin.json" in first_operator[0]
        assert "ncn-warmup-operator NCN1 OP1" in first_operator[1]
        assert "operator-warmup-ncn OP1 NCN1 --signer ./keys/operators/operator1-admin.json" in first_operator[2]

    def test_phases_are_ordered(self, sequencer):
        executed = sequencer.run(IDS)

        def index_of(fragment):
            return next(i for i, c in enumerate(executed) if fragment in c)

        assert index_of("operator-warmup-ncn OP3") < index_of("initialize-ncn-vault-ticket")
        assert index_of("warmup-ncn-vault-ticket") < index_of("initialize-operator-vault-ticket OP1")
        assert index_of("warmup-operator-vault-ticket OP3") < index_of("initialize-vault-ncn-ticket")
        assert index_of("warmup-vault-ncn-ticket") < index_of("spl-token create-account TOK1")
        assert index_of("mint-vrt VLT1 3000000000000 0") < index_of("update-vault-balance VLT1")
        assert index_of("update-vault-balance") < index_of("initialize-operator-delegation VLT1 OP1")

    def test_delegation_amount(self, sequencer):
        executed = sequencer.run(IDS)
        delegations = [c for c in executed if "delegate-to-operator" in c]
        assert len(delegations) == 3
        assert all("500000000000 --signer ./keys/vault/vault-admin.json" in c for c in delegations)

    def test_settle_between_initialize_and_warmup(self, sequencer, sleeper):
        sequencer.run(IDS)
        assert sleeper.calls == [4.0] * 11

    def test_mint_vrt_has_no_signer(self, sequencer):
        executed = sequencer.run(IDS)
        mint_vrt = next(c for c in executed if "mint-vrt" in c)
        assert "--signer" not in mint_vrt

    def test_replay_script_mirrors_execution(self, sequencer, replay):
        executed = sequencer.run(IDS)

        text = replay.path.read_text()
        assert text.startswith("#!/bin/bash\n")
        assert "set -e" in text
        assert "# NCN Address: NCN1" in text
        assert "# Vault Address: VLT1" in text
        assert "# Token Address: TOK1" in text
        assert text.count("sleep 4\n") == 11
        positions = [text.index(command) for command in executed]
        assert positions == sorted(positions)
        assert os.access(replay.path, os.X_OK)

    def test_failure_stops_sequence(self, sequencer, backend, replay):
        backend.fail("warmup-ncn-vault-ticket")

        with pytest.raises(CommandExhaustedRetries):
            sequencer.run(IDS)

        assert backend.calls_matching("initialize-operator-vault-ticket") == []
        assert "warmup-ncn-vault-ticket" in replay.path.read_text()
