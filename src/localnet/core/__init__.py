"""
Core primitives shared by every localnet component: settings, logging and
the error hierarchy.
"""

from localnet.core.errors import (
    CommandExhaustedRetries,
    ErrorCategory,
    ExtractionFailure,
    InvalidPositionResponse,
    LocalnetError,
    MissingPrerequisite,
    OperationCancelled,
    ValidationFailure,
    ValidatorNotReady,
)
from localnet.core.logging import LogContext, configure_logging, get_logger
from localnet.core.settings import LocalnetSettings, ProgramSpec

__all__ = [
    "CommandExhaustedRetries",
    "ErrorCategory",
    "ExtractionFailure",
    "InvalidPositionResponse",
    "LocalnetError",
    "LogContext",
    "LocalnetSettings",
    "MissingPrerequisite",
    "OperationCancelled",
    "ProgramSpec",
    "ValidationFailure",
    "ValidatorNotReady",
    "configure_logging",
    "get_logger",
]
