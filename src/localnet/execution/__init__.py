"""
Execution layer: run external commands, retry them with backoff, interpret
their output and keep an audit trail.
"""

from localnet.execution.audit import AuditLog
from localnet.execution.executor import CommandExecutor, CommandOutcome
from localnet.execution.outcome import Invocation, OutputRule, extract_identifier
from localnet.execution.retry import ExponentialBackoff, RetryPolicy, Sleeper

__all__ = [
    "AuditLog",
    "CommandExecutor",
    "CommandOutcome",
    "ExponentialBackoff",
    "Invocation",
    "OutputRule",
    "RetryPolicy",
    "Sleeper",
    "extract_identifier",
]
