"""Local test validator control."""

from localnet.validator.clock import ClockAdvancer
from localnet.validator.process import ValidatorProcess

__all__ = ["ClockAdvancer", "ValidatorProcess"]
