"""Artifact Record persistence."""

from localnet.state.store import (
    NCN_PUBKEY,
    TOKEN_ADDRESS,
    VAULT_ADDRESS,
    KeyLayout,
    StateStore,
    operator_record,
)

__all__ = ["KeyLayout", "NCN_PUBKEY", "StateStore", "TOKEN_ADDRESS", "VAULT_ADDRESS", "operator_record"]
