"""Tests for LocalnetSettings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from localnet.core.settings import DEFAULT_PROGRAMS, LocalnetSettings


class TestDefaults:
    def test_documented_defaults(self, tmp_path):
        s = LocalnetSettings(workdir=tmp_path)
        assert s.max_attempts == 5
        assert s.retry_base_delay == 5.0
        assert s.min_balance == 10
        assert s.airdrop_amount == 100
        assert s.settle_delay == 4.0
        assert s.provider_count == 3
        assert s.operator_fee_bps == 1000
        assert s.vault_config_fee_bps == 100
        assert s.fee_wallet == "3ogGQ7nFX6nCa9bkkZ6hwud6VaEQCekCCmNj6ZoWh8MF"
        assert s.delegation_amount == 500_000_000_000
        assert s.slots_per_epoch == 432_000
        assert len(s.programs) == len(DEFAULT_PROGRAMS) == 5

    def test_paths_resolve_under_workdir(self, tmp_path):
        s = LocalnetSettings(workdir=tmp_path)
        assert s.keys_path == tmp_path.resolve() / "keys"
        assert s.logs_path == tmp_path.resolve() / "logs"
        assert s.resolve("/abs/file") == Path("/abs/file")

    def test_rpc_flag(self, tmp_path):
        assert LocalnetSettings(workdir=tmp_path).rpc_flag == "-ul"
        assert LocalnetSettings(workdir=tmp_path, rpc_url="d").rpc_flag == "-ud"


class TestEnvironment:
    def test_env_prefix(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOCALNET_MAX_ATTEMPTS", "3")
        monkeypatch.setenv("LOCALNET_PROVIDER_COUNT", "5")
        s = LocalnetSettings(workdir=tmp_path)
        assert s.max_attempts == 3
        assert s.provider_count == 5

    def test_relative_workdir_is_made_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        s = LocalnetSettings(workdir=Path("net"))
        assert s.workdir == tmp_path.resolve() / "net"


class TestValidation:
    @pytest.mark.parametrize("field", ["max_attempts", "provider_count", "slots_per_epoch"])
    def test_positive_fields_reject_zero(self, tmp_path, field):
        with pytest.raises(ValidationError):
            LocalnetSettings(workdir=tmp_path, **{field: 0})

    def test_negative_delay_rejected(self, tmp_path):
        with pytest.raises(ValidationError):
            LocalnetSettings(workdir=tmp_path, settle_delay=-1)

    def test_log_level_normalised(self, tmp_path):
        assert LocalnetSettings(workdir=tmp_path, log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            LocalnetSettings(workdir=tmp_path, log_level="chatty")
