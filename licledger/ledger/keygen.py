"""
Key generator for ledger snapshot signing keys.
"""

from __future__ import annotations

import logging
from pathlib import Path  # noqa: TC003

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from licledger.common.config import Config

logger = logging.getLogger(__name__)


class KeyGenerator:
    """Key generator for creating Ed25519 snapshot signing keys."""

    def __init__(self, keys_dir: Path | None = None, config: Config | None = None):
        self.config = config or Config()
        self.keys_dir = keys_dir or self.config.KEYS_DIR

    @property
    def private_path(self) -> Path:
        return self.keys_dir / self.config.PRIVATE_KEY_PATH.name

    @property
    def public_path(self) -> Path:
        return self.keys_dir / self.config.PUBLIC_KEY_PATH.name

    def generate_keys(self) -> tuple[Path, Path]:
        """Generate and save public/private keys, returning their paths."""
        logger.info("Generating Ed25519 ledger keys...")

        private_key = Ed25519PrivateKey.generate()
        public_key = private_key.public_key()

        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_pem = public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

        self.keys_dir.mkdir(parents=True, exist_ok=True)
        self.private_path.write_bytes(private_pem)
        self.public_path.write_bytes(public_pem)

        logger.info("Keys generated and saved:")
        logger.info("  Private: %s", self.private_path)
        logger.info("  Public: %s", self.public_path)
        return self.private_path, self.public_path
