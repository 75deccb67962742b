"""Common cryptographic utilities.
"""

import json
from typing import Any

from cryptography.hazmat.primitives import hashes


class CryptoUtils:
    """Utility class for cryptographic operations."""

    @staticmethod
    def canonical_bytes(obj: dict[str, Any]) -> bytes:
        """Encode an object as canonical JSON for signing."""
        return json.dumps(obj, sort_keys=True, separators=(",", ":")).encode()

    @staticmethod
    def fingerprint(obj: dict[str, Any]) -> str:
        """SHA-256 hex digest of the canonical encoding."""
        digest = hashes.Hash(hashes.SHA256())
        digest.update(CryptoUtils.canonical_bytes(obj))
        return digest.finalize().hex()
