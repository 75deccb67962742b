"""
Interfaces and protocols for dependency injection.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from licledger.common.models import LedgerSnapshot, SignedSnapshot

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey


class ILedgerPersistence(Protocol):
    """Protocol for snapshot storage."""

    @staticmethod
    def load_snapshot(file_path: Path) -> SignedSnapshot | None: ...

    @staticmethod
    def save_snapshot(
        file_path: Path, snapshot: LedgerSnapshot, signature: str | None = None
    ) -> None: ...


class ISnapshotSigner(Protocol):
    """Protocol for snapshot signing."""

    private_key: Ed25519PrivateKey | None

    def sign(self, snapshot: LedgerSnapshot) -> str: ...

    def verify(self, snapshot: LedgerSnapshot, signature: str) -> bool: ...


class IMetadataValidator(Protocol):
    """Protocol for license argument validation."""

    def validate_metadata(self, metadata: str) -> str: ...

    def batch_items(self, items: list[str]) -> list[str]: ...

    def validate_batch(self, items: list[str]) -> list[str]: ...

    def validate_license_id(self, license_id: int) -> int: ...
