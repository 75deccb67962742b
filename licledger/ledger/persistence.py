"""
Data persistence utilities.
"""

from __future__ import annotations

import json
import os
from pathlib import Path  # noqa: TC003

from pydantic import ValidationError

from licledger.common.exceptions import SnapshotError
from licledger.common.models import LedgerSnapshot, SignedSnapshot


class LedgerPersistence:
    """Handles loading and saving ledger snapshots."""

    @staticmethod
    def load_snapshot(file_path: Path) -> SignedSnapshot | None:
        """Load a snapshot from file, or None when the file does not exist."""
        try:
            with file_path.open() as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as err:
            msg = f"Ledger file {file_path} is not valid JSON"
            raise SnapshotError(msg) from err

        try:
            return SignedSnapshot.model_validate(data)
        except ValidationError as err:
            msg = f"Ledger file {file_path} has an invalid structure"
            raise SnapshotError(msg) from err

    @staticmethod
    def save_snapshot(
        file_path: Path, snapshot: LedgerSnapshot, signature: str | None = None
    ) -> None:
        """Save a snapshot to file.

        Written to a sibling temp file first and moved into place so a
        crash never leaves a truncated ledger behind.
        """
        file_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = file_path.with_suffix(file_path.suffix + ".tmp")
        signed = SignedSnapshot(snapshot=snapshot, signature=signature)
        with tmp_path.open("w") as f:
            json.dump(signed.model_dump(mode="json"), f, indent=2)
        os.replace(tmp_path, file_path)
