"""
Configuration settings for the license ledger.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, cast

from cryptography.hazmat.primitives import serialization

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.ed25519 import (
        Ed25519PrivateKey,
        Ed25519PublicKey,
    )


def _env_flag(name: str, default: bool) -> bool:  # noqa: FBT001
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Central configuration class for all ledger settings."""

    def __init__(self) -> None:
        # Ledger limits
        self.MAX_BATCH_SIZE: int = 50  # Licenses per issue_batch call
        self.MIN_METADATA_LENGTH: int = 1
        self.MAX_METADATA_LENGTH: int = 512

        # Administrator principal fixed when a ledger is created
        self.ADMIN_PRINCIPAL: str | None = os.getenv("LICLEDGER_ADMIN")

        # Policies for behavior the base design leaves open
        self.ALLOW_TERMINATED_METADATA_UPDATE: bool = _env_flag(
            "LICLEDGER_ALLOW_TERMINATED_METADATA_UPDATE", True
        )
        self.RESTRICT_REACTIVATION: bool = _env_flag(
            "LICLEDGER_RESTRICT_REACTIVATION", False
        )

        # File paths
        self.BASE_DIR: Path = Path(__file__).parent.parent
        self.DATA_DIR: Path = Path(
            os.getenv("LICLEDGER_DATA_DIR", str(self.BASE_DIR / "data"))
        )
        self.LEDGER_FILE_PATH: Path = self.DATA_DIR / "ledger.json"
        self.KEYS_DIR: Path = Path(
            os.getenv("LICLEDGER_KEYS_DIR", str(self.BASE_DIR / "keys"))
        )
        self.PUBLIC_KEY_PATH: Path = self.KEYS_DIR / "ledger_public.key"
        self.PRIVATE_KEY_PATH: Path = self.KEYS_DIR / "ledger_private.key"

        # Snapshot format
        self.SNAPSHOT_VERSION: int = 1

        # Logging
        self.LOG_LEVEL: int = logging.getLevelName(
            os.getenv("LICLEDGER_LOG_LEVEL", "INFO").upper()
        )
        if not isinstance(self.LOG_LEVEL, int):
            self.LOG_LEVEL = logging.INFO

    def get_signing_keys(self) -> tuple[Ed25519PublicKey, Ed25519PrivateKey]:
        """Load ledger signing keys from files."""
        try:
            with self.PUBLIC_KEY_PATH.open("rb") as f:
                public_key = cast(
                    "Ed25519PublicKey", serialization.load_pem_public_key(f.read())
                )
            with self.PRIVATE_KEY_PATH.open("rb") as f:
                private_key = cast(
                    "Ed25519PrivateKey",
                    serialization.load_pem_private_key(f.read(), None),
                )
        except FileNotFoundError as err:
            msg = (
                f"Ledger keys not found at {self.PUBLIC_KEY_PATH} and {self.PRIVATE_KEY_PATH}. "
                "Run 'licledger keygen' to generate them."
            )
            raise ValueError(msg) from err

        return public_key, private_key
