"""Filesystem-backed State Store for captured identifiers.

Each Artifact Record is one small text file holding one identifier. Records
are written once when a setup stage succeeds and read back by later stages
or by a later run; a record that already exists means the stage that
creates it is skipped, which is what makes the pipeline resumable.

Layout (relative to the working directory)::

    keys/
    ├── ncn/
    │   ├── ncn-admin.json          keypair
    │   └── ncn_pubkey.txt          record "ncn_pubkey"
    ├── vault/
    │   ├── vault-admin.json        keypair
    │   ├── token_address.txt       record "token_address"
    │   └── vault_address.txt       record "vault_address"
    └── operators/
        ├── operator1-admin.json    keypair
        └── operator1-pubkey.txt    record "operator1_pubkey"
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from localnet.core.logging import get_logger

logger = get_logger(__name__)

NCN_PUBKEY = "ncn_pubkey"
TOKEN_ADDRESS = "token_address"
VAULT_ADDRESS = "vault_address"


def operator_record(index: int) -> str:
    """Record name for the identifier of operator ``index`` (1-based)."""
    return f"operator{index}_pubkey"


@dataclass(frozen=True)
class KeyLayout:
    """Paths of keypairs and Artifact Records under the keys directory."""

    root: Path
    provider_count: int = 3

    @property
    def ncn_dir(self) -> Path:
        return self.root / "ncn"

    @property
    def vault_dir(self) -> Path:
        return self.root / "vault"

    @property
    def operators_dir(self) -> Path:
        return self.root / "operators"

    @property
    def directories(self) -> list[Path]:
        return [self.ncn_dir, self.vault_dir, self.operators_dir]

    @property
    def ncn_admin(self) -> Path:
        return self.ncn_dir / "ncn-admin.json"

    @property
    def vault_admin(self) -> Path:
        return self.vault_dir / "vault-admin.json"

    def operator_admin(self, index: int) -> Path:
        return self.operators_dir / f"operator{index}-admin.json"

    @property
    def provider_indexes(self) -> range:
        return range(1, self.provider_count + 1)

    def keypairs(self) -> list[tuple[str, Path]]:
        """(label, path) for every admin keypair, in generation order."""
        roles = [("NCN admin", self.ncn_admin), ("Vault admin", self.vault_admin)]
        roles.extend((f"Operator {i} admin", self.operator_admin(i)) for i in self.provider_indexes)
        return roles

    def record_paths(self) -> dict[str, Path]:
        """Record name → file path for every expected Artifact Record."""
        paths = {
            NCN_PUBKEY: self.ncn_dir / "ncn_pubkey.txt",
            TOKEN_ADDRESS: self.vault_dir / "token_address.txt",
            VAULT_ADDRESS: self.vault_dir / "vault_address.txt",
        }
        for i in self.provider_indexes:
            paths[operator_record(i)] = self.operators_dir / f"operator{i}-pubkey.txt"
        return paths

    @property
    def record_names(self) -> list[str]:
        return list(self.record_paths())


class StateStore:
    """Key-addressed store of identifiers, one file per name.

    Parameters
    ----------
    root
        Base directory for names without an explicit path.
    paths
        Explicit name → path mapping (typically ``KeyLayout.record_paths()``).
    """

    def __init__(self, root: Path, paths: Mapping[str, Path] | None = None) -> None:
        self.root = root
        self._paths = dict(paths or {})

    @classmethod
    def for_layout(cls, layout: KeyLayout, root: Path | None = None) -> StateStore:
        base = root if root is not None else layout.root.parent / "state"
        return cls(base, layout.record_paths())

    def path_for(self, name: str) -> Path:
        """File backing ``name``."""
        if name in self._paths:
            return self._paths[name]
        if not name or "/" in name or "\\" in name or name.startswith("."):
            raise ValueError(f"Invalid record name: {name!r}")
        return self.root / f"{name}.txt"

    def put(self, name: str, identifier: str) -> Path:
        """Write ``identifier`` as the sole content of the record file.

        Identifiers are stored trimmed: surrounding whitespace is dropped on
        write, so ``get`` returns exactly what was persisted. A value that is
        empty after trimming raises ``ValueError``.
        """
        value = identifier.strip()
        if not value:
            raise ValueError(f"Refusing to store an empty identifier for {name!r}")
        path = self.path_for(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(value + "\n", encoding="utf-8")
        logger.info("state.record_written", name=name, path=str(path))
        return path

    def get(self, name: str) -> str | None:
        """Read a record back, trimmed; ``None`` if missing or empty."""
        path = self.path_for(name)
        if not path.is_file():
            return None
        value = path.read_text(encoding="utf-8").strip()
        return value or None

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    def snapshot(self, names: Iterable[str]) -> dict[str, str | None]:
        return {name: self.get(name) for name in names}

    def missing(self, names: Iterable[str]) -> list[str]:
        """Names whose record is absent or empty."""
        return [name for name in names if not self.has(name)]


__all__ = [
    "KeyLayout",
    "NCN_PUBKEY",
    "StateStore",
    "TOKEN_ADDRESS",
    "VAULT_ADDRESS",
    "operator_record",
]
