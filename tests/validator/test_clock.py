"""Tests for the Clock Advancer."""

from unittest.mock import patch

import pytest

from localnet.core.errors import InvalidPositionResponse
from localnet.validator.clock import ClockAdvancer
from localnet.validator.process import ValidatorProcess


@pytest.fixture
def validator(settings, backend, sleeper):
    return ValidatorProcess(settings, executor=backend, sleeper=sleeper)


class TestClockAdvancer:
    def test_advance_restarts_at_target(self, validator, backend, sleeper):
        backend.slot = 1000

        with patch.object(validator, "start") as mock_start:
            target = ClockAdvancer(validator, sleeper, settle=1.0).advance(500)

        assert target == 1500
        mock_start.assert_called_once_with(argv=["solana-test-validator", "--warp-slot", "1500"], detach=False)
        assert backend.commands == ["solana slot -ul", "pkill -f solana-test-validator"]
        assert sleeper.calls == [1.0]

    def test_detached_advance(self, validator, sleeper):
        with patch.object(validator, "start") as mock_start:
            ClockAdvancer(validator, sleeper).advance(10, detach=True)

        assert mock_start.call_args.kwargs["detach"] is True

    def test_zero_delta_restarts_at_current(self, validator, backend, sleeper):
        with patch.object(validator, "start"):
            assert ClockAdvancer(validator, sleeper).advance(0) == backend.slot

    def test_invalid_slot_touches_nothing(self, validator, backend, sleeper):
        backend.respond("solana slot", output="Error: RPC request error")

        with patch.object(validator, "start") as mock_start:
            with pytest.raises(InvalidPositionResponse):
                ClockAdvancer(validator, sleeper).advance(500)

        mock_start.assert_not_called()
        assert backend.calls_matching("pkill") == []
        assert sleeper.calls == []

    def test_negative_delta_rejected(self, validator, backend, sleeper):
        with pytest.raises(ValueError):
            ClockAdvancer(validator, sleeper).advance(-1)
        assert backend.commands == []

    def test_stop_is_best_effort(self, validator, backend, sleeper):
        backend.validator_running = False

        with patch.object(validator, "start") as mock_start:
            ClockAdvancer(validator, sleeper).advance(5)

        mock_start.assert_called_once()
