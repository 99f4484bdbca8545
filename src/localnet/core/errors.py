"""
Structured error types for localnet bootstrap.

Every fatal condition in the bootstrap pipeline is a ``LocalnetError``
subclass carrying a category, a retryable flag, structured context and the
process exit code the CLI should terminate with.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure kind the pipeline knows
    - **Explicit Exit Codes:** Each error knows how the CLI terminates
    - **Rich Context:** Command, stage and captured output travel with the error
    - **Error Chaining:** Original exceptions are kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                      LocalnetError                          │
        │   (category, retryable, exit_code, context, cause)          │
        ├─────────────────────────────────────────────────────────────┤
        │  MissingPrerequisite      (CONFIG)       exit 1             │
        │  ExtractionFailure        (PARSE)        exit 1             │
        │  CommandExhaustedRetries  (COMMAND)      exit 1             │
        │  ValidationFailure        (VALIDATION)   exit 1             │
        │  InvalidPositionResponse  (VALIDATOR)    exit 2             │
        │  ValidatorNotReady        (VALIDATOR)    exit 1             │
        │  OperationCancelled       (INTERNAL)     exit 130           │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = ExtractionFailure("no NCN line", marker="Initializing NCN:")
    >>> error.category
    <ErrorCategory.PARSE: 'PARSE'>
    >>> error.context["marker"]
    'Initializing NCN:'

Guardrails:
    ❌ DON'T: Raise bare ``Exception`` from pipeline stages
    ✅ DO: Raise the matching ``LocalnetError`` subclass

    ❌ DON'T: Swallow the underlying ``OSError``/``CalledProcessError``
    ✅ DO: Pass it as ``cause=``

Tags:
    error-handling, exception-hierarchy, exit-codes, localnet
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and log routing."""

    CONFIG = "CONFIG"            # Missing tools, invalid settings
    COMMAND = "COMMAND"          # External command failures
    PARSE = "PARSE"              # Unexpected CLI output
    VALIDATION = "VALIDATION"    # Post-run artifact checks
    VALIDATOR = "VALIDATOR"      # Validator process control
    INTERNAL = "INTERNAL"        # Cancellation, unexpected state


class LocalnetError(Exception):
    """
    Base exception for all bootstrap errors.

    Subclasses set ``default_category``, ``default_retryable`` and
    ``exit_code`` class attributes. Extra keyword arguments become
    structured context, available in ``to_dict()`` for logging.

    Examples:
        >>> error = LocalnetError("boom", stage="keypairs")
        >>> error.to_dict()["context"]
        {'stage': 'keypairs'}
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False
    exit_code: int = 1

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        cause: Exception | None = None,
        **context: Any,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context: dict[str, Any] = {k: v for k, v in context.items() if v is not None}
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    @property
    def output(self) -> str:
        """Captured command output attached to this error, if any."""
        return str(self.context.get("output", ""))

    def with_context(self, **kwargs: Any) -> LocalnetError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ExtractionFailure("no match").with_context(stage="coordinator")
        """
        for key, value in kwargs.items():
            if value is not None:
                self.context[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
            "exit_code": self.exit_code,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class MissingPrerequisite(LocalnetError):
    """A required external tool is not resolvable on ``PATH``."""

    default_category = ErrorCategory.CONFIG

    def __init__(self, tool: str, **kwargs: Any):
        super().__init__(f"Required tool not found on PATH: {tool}", tool=tool, **kwargs)
        self.tool = tool


class ExtractionFailure(LocalnetError):
    """An identifier could not be found in a command's output."""

    default_category = ErrorCategory.PARSE


class CommandExhaustedRetries(LocalnetError):
    """
    A command kept failing after every retry attempt.

    Carries the last exit code and captured output for diagnostics.
    """

    default_category = ErrorCategory.COMMAND
    default_retryable = True

    def __init__(
        self,
        command: str,
        attempts: int,
        *,
        last_exit_code: int | None = None,
        last_output: str = "",
        delays: list[float] | None = None,
        **kwargs: Any,
    ):
        super().__init__(
            f"Command failed after {attempts} attempts: {command}",
            command=command,
            attempts=attempts,
            last_exit_code=last_exit_code,
            output=last_output,
            delays=list(delays or []),
            **kwargs,
        )
        self.command = command
        self.attempts = attempts
        self.last_exit_code = last_exit_code
        self.last_output = last_output


class ValidationFailure(LocalnetError):
    """An expected artifact record is missing or empty after setup."""

    default_category = ErrorCategory.VALIDATION


class InvalidPositionResponse(LocalnetError):
    """The validator's slot query returned something other than an integer."""

    default_category = ErrorCategory.VALIDATOR
    exit_code = 2


class ValidatorNotReady(LocalnetError):
    """The validator did not answer status queries within the wait window."""

    default_category = ErrorCategory.VALIDATOR
    default_retryable = True


class OperationCancelled(LocalnetError):
    """A pending wait was cancelled before the operation could finish."""

    default_category = ErrorCategory.INTERNAL
    exit_code = 130


__all__ = [
    "ErrorCategory",
    "LocalnetError",
    "MissingPrerequisite",
    "ExtractionFailure",
    "CommandExhaustedRetries",
    "ValidationFailure",
    "InvalidPositionResponse",
    "ValidatorNotReady",
    "OperationCancelled",
]
