"""Tests for the Funding Guard."""

from decimal import Decimal

import pytest

from localnet.bootstrap.commands import CommandCatalog
from localnet.bootstrap.funding import FundingGuard, parse_balance
from localnet.core.errors import CommandExhaustedRetries
from localnet.execution.retry import ExponentialBackoff, RetryPolicy
from localnet.state.store import KeyLayout


@pytest.fixture
def guard(settings, backend, sleeper):
    catalog = CommandCatalog(settings, KeyLayout(settings.keys_path))
    retry = RetryPolicy(backend, ExponentialBackoff(), sleeper)
    return FundingGuard(backend, retry, catalog, min_balance=10)


class TestParseBalance:
    @pytest.mark.parametrize(
        "text, expected",
        [("4.5 SOL", Decimal("4.5")), ("15.2 SOL\n", Decimal("15.2")), ("0 SOL", Decimal(0))],
    )
    def test_parses_leading_number(self, text, expected):
        assert parse_balance(text) == expected

    @pytest.mark.parametrize("text", ["", "Error: connection refused", "NaN SOL"])
    def test_unparseable(self, text):
        assert parse_balance(text) is None


class TestFundingGuard:
    def test_low_balance_triggers_airdrop(self, guard, backend, settings):
        keypair = settings.keys_path / "ncn" / "ncn-admin.json"
        backend.set_balance("4.5 SOL", "./keys/ncn/ncn-admin.json")

        balance = guard.ensure_funded(keypair, "NCN admin")

        airdrops = backend.calls_matching("solana airdrop")
        assert airdrops == ["solana airdrop 100 --keypair ./keys/ncn/ncn-admin.json"]
        assert balance == Decimal("104.5")

    def test_sufficient_balance_skips_airdrop(self, guard, backend):
        backend.set_balance("15.2 SOL")

        balance = guard.ensure_funded()

        assert backend.calls_matching("airdrop") == []
        assert backend.commands == ["solana balance"]
        assert balance == Decimal("15.2")

    def test_integer_part_is_compared(self, guard, backend):
        backend.set_balance("9.99 SOL")
        guard.ensure_funded()
        assert len(backend.calls_matching("airdrop")) == 1

    def test_exact_threshold_is_sufficient(self, guard, backend):
        backend.set_balance("10 SOL")
        guard.ensure_funded()
        assert backend.calls_matching("airdrop") == []

    def test_unreadable_balance_counts_as_zero(self, guard, backend):
        backend.fail("solana balance", times=1, output="Error: Connection refused")
        guard.ensure_funded()
        assert len(backend.calls_matching("airdrop")) == 1

    def test_airdrop_failure_propagates(self, guard, backend, sleeper):
        backend.set_balance("0 SOL")
        backend.fail("solana airdrop", output="Error: airdrop request failed")

        with pytest.raises(CommandExhaustedRetries):
            guard.ensure_funded()

        assert len(backend.calls_matching("airdrop")) == 5
        assert sleeper.calls == [5.0, 10.0, 20.0, 40.0]
