"""Tests for the command catalog."""

import pytest

from localnet.bootstrap.commands import CommandCatalog
from localnet.state.store import KeyLayout


@pytest.fixture
def catalog(settings):
    return CommandCatalog(settings, KeyLayout(settings.keys_path))


class TestCommandCatalog:
    def test_paths_are_workdir_relative(self, catalog, settings):
        assert catalog.path(settings.keys_path / "ncn" / "ncn-admin.json") == "./keys/ncn/ncn-admin.json"

    def test_paths_outside_workdir_stay_absolute(self, catalog, tmp_path_factory):
        outside = tmp_path_factory.mktemp("elsewhere") / "key.json"
        assert catalog.path(outside) == str(outside)

    def test_program_configs(self, catalog):
        assert catalog.restaking_config_initialize().command == "jito-restaking-cli restaking config initialize"
        assert catalog.vault_config_initialize().command == (
            "jito-restaking-cli vault config initialize 100 3ogGQ7nFX6nCa9bkkZ6hwud6VaEQCekCCmNj6ZoWh8MF"
        )

    def test_operator_initialize(self, catalog):
        inv = catalog.operator_initialize(2)
        assert inv.command == (
            "jito-restaking-cli restaking operator initialize 1000 --signer ./keys/operators/operator2-admin.json"
        )
        assert inv.rule.extract_marker == "Initializing Operator:"

    def test_keygen_never_prompts(self, catalog, settings):
        argv = catalog.keygen(settings.keys_path / "vault" / "vault-admin.json").argv
        assert "--no-bip39-passphrase" in argv
        assert "--force" in argv

    def test_balance_and_airdrop(self, catalog):
        assert catalog.balance().command == "solana balance"
        assert catalog.airdrop().command == "solana airdrop 100"
        assert catalog.airdrop().rule.success_pattern == "SOL"
