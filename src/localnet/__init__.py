"""
localnet - bootstrap a restaking network on a local Solana test validator.

Subpackages:
- localnet.core: settings, logging, error hierarchy
- localnet.execution: command executor, retry policy, output rules, audit log
- localnet.state: Artifact Record store
- localnet.bootstrap: setup pipeline, handshake, full run sequence
- localnet.validator: validator process control and clock advance
- localnet.cli: Typer CLI
"""

from importlib.metadata import PackageNotFoundError, version

__version__ = "0.1.0"


def get_version() -> str:
    """Installed distribution version, falling back to ``__version__``."""
    try:
        return version("localnet-bootstrap")
    except PackageNotFoundError:
        return __version__
