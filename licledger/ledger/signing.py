"""
Snapshot signing and verification.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cryptography.exceptions import InvalidSignature

from licledger.common.crypto import CryptoUtils

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.ed25519 import (
        Ed25519PrivateKey,
        Ed25519PublicKey,
    )

    from licledger.common.config import Config
    from licledger.common.models import LedgerSnapshot


class SnapshotSigner:
    """Signs ledger snapshots with Ed25519 and verifies them on load."""

    def __init__(
        self,
        public_key: Ed25519PublicKey,
        private_key: Ed25519PrivateKey | None = None,
    ):
        self.public_key = public_key
        self.private_key = private_key
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: Config) -> SnapshotSigner:
        public_key, private_key = config.get_signing_keys()
        return cls(public_key, private_key)

    def sign(self, snapshot: LedgerSnapshot) -> str:
        """Sign the canonical encoding of a snapshot."""
        if self.private_key is None:
            msg = "Signer has no private key"
            raise ValueError(msg)
        data = CryptoUtils.canonical_bytes(snapshot.model_dump(mode="json"))
        return self.private_key.sign(data).hex()

    def verify(self, snapshot: LedgerSnapshot, signature: str) -> bool:
        """Verify a snapshot signature."""
        try:
            sig = bytes.fromhex(signature)
        except ValueError:
            self.logger.info("Snapshot signature is not hex")
            return False
        data = CryptoUtils.canonical_bytes(snapshot.model_dump(mode="json"))
        try:
            self.public_key.verify(sig, data)
        except InvalidSignature:
            self.logger.info("Snapshot signature invalid")
            return False
        self.logger.debug("Snapshot signature valid")
        return True
