"""
License ledger: issuance, transfer, termination and the queries derived
from the ledger state.
"""

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from licledger.common.config import Config
from licledger.common.crypto import CryptoUtils
from licledger.common.exceptions import (
    AlreadyTerminated,
    BatchSizeExceeded,
    DuplicateLicense,
    InvalidLicenseId,
    LedgerError,
    LicenseMissing,
    PermissionDenied,
    SnapshotError,
)
from licledger.common.logging_utils import setup_logger
from licledger.common.mixins import Configurable
from licledger.common.models import (
    LedgerSnapshot,
    LedgerStats,
    LicenseRecord,
    LicenseStatus,
)

from .persistence import LedgerPersistence
from .validator import MetadataValidator

if TYPE_CHECKING:
    from collections.abc import Iterator

    from licledger.common.interfaces import (
        ILedgerPersistence,
        IMetadataValidator,
        ISnapshotSigner,
    )


class LicenseLedger(Configurable):
    """Authoritative record of license identity, ownership and status.

    State is a counter plus three tables keyed by license id: ownership,
    metadata and termination flags. Every mutating call runs inside a
    single transaction: either all of its writes land (and are persisted,
    when a ledger file is configured) or none do.
    """

    def __init__(  # noqa: PLR0913
        self,
        admin: str | None = None,
        config: Config | None = None,
        *,
        max_batch_size: int | None = None,
        min_metadata_length: int | None = None,
        max_metadata_length: int | None = None,
        allow_terminated_metadata_update: bool | None = None,
        restrict_reactivation: bool | None = None,
        log_level: int | None = None,
        ledger_file_path: Path | None = None,
        signer: ISnapshotSigner | None = None,
        persistence: ILedgerPersistence | None = None,
        validator: IMetadataValidator | None = None,
    ):
        self.config = config or Config()
        self.apply_overrides(
            {
                "max_batch_size": max_batch_size,
                "min_metadata_length": min_metadata_length,
                "max_metadata_length": max_metadata_length,
                "allow_terminated_metadata_update": allow_terminated_metadata_update,
                "restrict_reactivation": restrict_reactivation,
                "log_level": log_level,
            },
            self.config,
            [
                "max_batch_size",
                "min_metadata_length",
                "max_metadata_length",
                "allow_terminated_metadata_update",
                "restrict_reactivation",
                "log_level",
            ],
        )
        self.logger = setup_logger(logging.getLogger(__name__), self.log_level)
        self.validator = validator or MetadataValidator(
            self.config, self.min_metadata_length, self.max_metadata_length
        )
        self.ledger_file_path = ledger_file_path
        self.signer = signer
        self.persistence = persistence or LedgerPersistence()
        self._lock = threading.RLock()

        self._counter = 0
        self._ownership: dict[int, str] = {}
        self._metadata: dict[int, str] = {}
        self._terminated: dict[int, bool] = {}

        loaded = self._load() if ledger_file_path is not None else None
        if loaded is not None:
            if admin is not None and admin != loaded.admin:
                msg = (
                    f"Ledger {ledger_file_path} belongs to administrator "
                    f"{loaded.admin!r}, not {admin!r}"
                )
                raise SnapshotError(msg)
            self._admin = loaded.admin
            self._apply_snapshot(loaded)
            self.logger.info(
                "Loaded ledger from %s (%s licenses issued)",
                ledger_file_path,
                self._counter,
            )
        else:
            admin = admin or self.config.ADMIN_PRINCIPAL
            if not admin:
                msg = "An administrator principal is required to create a ledger"
                raise ValueError(msg)
            self._admin = admin
            self.logger.info("Created ledger administered by %s", admin)

    @property
    def admin(self) -> str:
        return self._admin

    # ------------------------------------------------------------------
    # Snapshots and transactions
    # ------------------------------------------------------------------

    def _load(self) -> LedgerSnapshot | None:
        assert self.ledger_file_path is not None
        signed = self.persistence.load_snapshot(self.ledger_file_path)
        if signed is None:
            return None
        if self.signer is not None:
            if signed.signature is None:
                msg = f"Ledger file {self.ledger_file_path} is not signed"
                raise SnapshotError(msg)
            if not self.signer.verify(signed.snapshot, signed.signature):
                msg = f"Ledger file {self.ledger_file_path} failed signature check"
                raise SnapshotError(msg)
        self._check_snapshot(signed.snapshot)
        return signed.snapshot

    @staticmethod
    def _check_snapshot(snapshot: LedgerSnapshot) -> None:
        """Reject snapshots whose tables disagree with the counter."""
        for table in (snapshot.ownership, snapshot.metadata, snapshot.terminated):
            for license_id in table:
                if not 1 <= license_id <= snapshot.counter:
                    msg = (
                        f"Snapshot holds license id {license_id} outside "
                        f"1..{snapshot.counter}"
                    )
                    raise InvalidLicenseId(msg)
        orphaned = set(snapshot.ownership) - set(snapshot.metadata)
        if orphaned:
            msg = f"Snapshot has owners without metadata for ids {sorted(orphaned)}"
            raise SnapshotError(msg)
        flagged = set(snapshot.terminated) - set(snapshot.metadata)
        if flagged:
            msg = (
                "Snapshot has termination flags without metadata for ids "
                f"{sorted(flagged)}"
            )
            raise SnapshotError(msg)

    def _apply_snapshot(self, snapshot: LedgerSnapshot) -> None:
        self._counter = snapshot.counter
        self._ownership = dict(snapshot.ownership)
        self._metadata = dict(snapshot.metadata)
        self._terminated = dict(snapshot.terminated)

    def snapshot(self) -> LedgerSnapshot:
        """Copy of the full ledger state."""
        with self._lock:
            return LedgerSnapshot(
                version=self.config.SNAPSHOT_VERSION,
                admin=self._admin,
                counter=self._counter,
                ownership=copy.copy(self._ownership),
                metadata=copy.copy(self._metadata),
                terminated=copy.copy(self._terminated),
            )

    def save(self) -> None:
        """Write the current state to the ledger file, if one is configured."""
        with self._lock:
            self._persist()

    def _persist(self) -> None:
        if self.ledger_file_path is None:
            return
        snapshot = self.snapshot()
        signature = None
        if self.signer is not None:
            if self.signer.private_key is None:
                msg = (
                    f"Ledger file {self.ledger_file_path} cannot be re-signed: "
                    "signer has no private key"
                )
                raise SnapshotError(msg)
            signature = self.signer.sign(snapshot)
        self.persistence.save_snapshot(self.ledger_file_path, snapshot, signature)
        self.logger.debug(
            "Persisted ledger %s (fingerprint %s)",
            self.ledger_file_path,
            CryptoUtils.fingerprint(snapshot.model_dump(mode="json")),
        )

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[None]:
        """Run a mutation atomically: commit and persist, or roll back."""
        with self._lock:
            checkpoint = (
                self._counter,
                dict(self._ownership),
                dict(self._metadata),
                dict(self._terminated),
            )
            try:
                yield
                self._persist()
            except LedgerError as err:
                self._rollback(checkpoint)
                self.logger.info(
                    "%s rejected [%s]: %s", operation, err.code, err.message
                )
                raise
            except Exception:
                self._rollback(checkpoint)
                self.logger.exception("%s failed; ledger rolled back", operation)
                raise

    def _rollback(self, checkpoint: tuple[Any, ...]) -> None:
        self._counter, self._ownership, self._metadata, self._terminated = checkpoint

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def _require_admin(self, caller: str, action: str) -> None:
        if caller != self._admin:
            msg = f"Only the administrator may {action}"
            raise PermissionDenied(msg)

    def _issue_one(self, owner: str, metadata: str) -> int:
        license_id = self._counter + 1
        if license_id in self._metadata:
            msg = f"License {license_id} is already recorded"
            raise DuplicateLicense(msg)
        self._ownership[license_id] = owner
        self._metadata[license_id] = metadata
        self._counter = license_id
        return license_id

    def issue(self, caller: str, metadata: str) -> int:
        """Issue a new license to the administrator and return its id."""
        with self._transaction("issue"):
            self._require_admin(caller, "issue licenses")
            self.validator.validate_metadata(metadata)
            license_id = self._issue_one(caller, metadata)
        self.logger.info("Issued license %s to %s", license_id, caller)
        return license_id

    def issue_batch(self, caller: str, items: list[str]) -> list[int]:
        """Issue one license per metadata item, all or nothing.

        Every item is validated before the first one is written, and the
        whole batch shares one transaction.
        """
        with self._transaction("issue_batch"):
            self._require_admin(caller, "issue licenses")
            items = self.validator.batch_items(items)
            if len(items) > self.max_batch_size:
                msg = (
                    f"Batch of {len(items)} exceeds the limit of "
                    f"{self.max_batch_size}"
                )
                raise BatchSizeExceeded(msg)
            self.validator.validate_batch(items)
            license_ids = [self._issue_one(caller, item) for item in items]
        self.logger.info("Issued %s licenses to %s", len(license_ids), caller)
        return license_ids

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    def transfer(
        self, caller: str, license_id: int, current_owner: str, new_owner: str
    ) -> bool:
        """Move a license to new_owner; the recipient must be the caller."""
        with self._transaction("transfer"):
            self.validator.validate_license_id(license_id)
            if caller != new_owner:
                msg = "Only the recipient may accept a transfer"
                raise PermissionDenied(msg)
            if self._terminated.get(license_id, False):
                msg = f"License {license_id} is terminated"
                raise AlreadyTerminated(msg)
            owner = self._ownership.get(license_id)
            if owner is None:
                msg = f"License {license_id} has no owner"
                raise LicenseMissing(msg)
            if owner != current_owner:
                msg = f"License {license_id} is not owned by {current_owner}"
                raise PermissionDenied(msg)
            self._ownership[license_id] = new_owner
        self.logger.info(
            "Transferred license %s from %s to %s", license_id, current_owner, new_owner
        )
        return True

    # ------------------------------------------------------------------
    # Termination
    # ------------------------------------------------------------------

    def terminate(self, caller: str, license_id: int) -> bool:
        """Burn the ownership entry and set the terminated flag."""
        with self._transaction("terminate"):
            self.validator.validate_license_id(license_id)
            if self._terminated.get(license_id, False):
                msg = f"License {license_id} is already terminated"
                raise AlreadyTerminated(msg)
            owner = self._ownership.get(license_id)
            if owner is None:
                msg = f"License {license_id} has no owner"
                raise LicenseMissing(msg)
            if owner != caller:
                msg = f"Only the owner may terminate license {license_id}"
                raise PermissionDenied(msg)
            del self._ownership[license_id]
            self._terminated[license_id] = True
        self.logger.info("Terminated license %s (owner %s)", license_id, caller)
        return True

    def simple_terminate(self, caller: str, license_id: int) -> bool:
        """Set the terminated flag only; the ownership entry stays in place."""
        with self._transaction("simple_terminate"):
            self.validator.validate_license_id(license_id)
            if license_id not in self._metadata:
                msg = f"License {license_id} does not exist"
                raise LicenseMissing(msg)
            if self._terminated.get(license_id, False):
                msg = f"License {license_id} is already terminated"
                raise AlreadyTerminated(msg)
            if self._ownership.get(license_id) != caller:
                msg = f"Only the owner may terminate license {license_id}"
                raise PermissionDenied(msg)
            self._terminated[license_id] = True
        self.logger.info("Flagged license %s as terminated", license_id)
        return True

    def reactivate(self, caller: str, license_id: int) -> bool:
        """Clear the terminated flag. Ownership is not restored."""
        with self._transaction("reactivate"):
            self.validator.validate_license_id(license_id)
            if self.restrict_reactivation:
                self._require_admin(caller, "reactivate licenses")
            if license_id not in self._terminated:
                msg = f"License {license_id} has no termination record"
                raise LicenseMissing(msg)
            self._terminated[license_id] = False
        self.logger.info("Reactivated license %s (by %s)", license_id, caller)
        return True

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def update_metadata(self, caller: str, license_id: int, new_metadata: str) -> bool:
        with self._transaction("update_metadata"):
            self.validator.validate_license_id(license_id)
            owner = self._ownership.get(license_id)
            if owner is None:
                msg = f"License {license_id} has no owner"
                raise LicenseMissing(msg)
            if owner != caller:
                msg = f"Only the owner may update license {license_id}"
                raise PermissionDenied(msg)
            if not self.allow_terminated_metadata_update and self._terminated.get(
                license_id, False
            ):
                msg = f"License {license_id} is terminated"
                raise AlreadyTerminated(msg)
            self.validator.validate_metadata(new_metadata)
            self._metadata[license_id] = new_metadata
        self.logger.info("Updated metadata of license %s", license_id)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_owner(self, license_id: int) -> str | None:
        with self._lock:
            return self._ownership.get(license_id)

    def require_owner(self, license_id: int) -> str:
        """Owner lookup that fails with LicenseMissing instead of returning None."""
        owner = self.get_owner(license_id)
        if owner is None:
            msg = f"License {license_id} has no owner"
            raise LicenseMissing(msg)
        return owner

    def get_metadata(self, license_id: int) -> str | None:
        with self._lock:
            return self._metadata.get(license_id)

    def exists(self, license_id: int) -> bool:
        with self._lock:
            return license_id in self._metadata

    def is_terminated(self, license_id: int) -> bool:
        with self._lock:
            return self._terminated.get(license_id, False)

    def status(self, license_id: int) -> LicenseStatus:
        with self._lock:
            if license_id not in self._metadata:
                return LicenseStatus.NOT_FOUND
            if self._terminated.get(license_id, False):
                return LicenseStatus.TERMINATED
            return LicenseStatus.ACTIVE

    def is_valid(self, license_id: int) -> bool:
        return self.status(license_id) is LicenseStatus.ACTIVE

    def total_issued(self) -> int:
        with self._lock:
            return self._counter

    def peek_next_id(self) -> int:
        """Id the next issuance will receive. Not a reservation."""
        with self._lock:
            return self._counter + 1

    def get_license(self, license_id: int) -> LicenseRecord | None:
        with self._lock:
            if license_id not in self._metadata:
                return None
            return LicenseRecord(
                id=license_id,
                owner=self._ownership.get(license_id),
                metadata=self._metadata[license_id],
                terminated=self._terminated.get(license_id, False),
                status=self.status(license_id),
            )

    def licenses_of(self, owner: str) -> list[int]:
        with self._lock:
            return sorted(lid for lid, o in self._ownership.items() if o == owner)

    def stats(self) -> LedgerStats:
        with self._lock:
            terminated = sum(1 for flag in self._terminated.values() if flag)
            return LedgerStats(
                total_issued=self._counter,
                active=len(self._metadata) - terminated,
                terminated=terminated,
                next_id=self._counter + 1,
            )

    # Compatibility names for the canonical queries above
    owner_of = get_owner
    license_exists = exists
    is_license_terminated = is_terminated
    get_license_status = status
    is_license_valid = is_valid
    get_total_licenses = total_issued
    get_next_license_id = peek_next_id
