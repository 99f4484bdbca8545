"""Bootstrap pipeline: funding, account creation, handshake and the full run."""

from localnet.bootstrap.commands import CommandCatalog
from localnet.bootstrap.funding import FundingGuard
from localnet.bootstrap.handshake import HandshakeSequencer, NetworkIdentifiers, ReplayScript
from localnet.bootstrap.orchestrator import SetupContext, SetupOrchestrator
from localnet.bootstrap.results import LocalnetRunResult, OverallStatus, SetupRunResult, StageResult, StageStatus
from localnet.bootstrap.runner import LocalnetRunner

__all__ = [
    "CommandCatalog",
    "FundingGuard",
    "HandshakeSequencer",
    "LocalnetRunResult",
    "LocalnetRunner",
    "NetworkIdentifiers",
    "OverallStatus",
    "ReplayScript",
    "SetupContext",
    "SetupOrchestrator",
    "SetupRunResult",
    "StageResult",
    "StageStatus",
]
