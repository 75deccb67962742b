"""
Custom exceptions for the license ledger.

Every rejected ledger operation raises a subclass of LedgerError carrying a
stable numeric code.
"""

from __future__ import annotations

PERMISSION_DENIED = 200
DUPLICATE_LICENSE = 201
LICENSE_MISSING = 202
INVALID_LICENSE_ID = 203
INVALID_DETAILS = 204
ALREADY_TERMINATED = 205
BATCH_SIZE_EXCEEDED = 206
EMPTY_DETAILS = 207


class LedgerError(Exception):
    """Exception for rejected ledger operations."""

    code: int = 0
    default_message: str = "Ledger operation rejected"

    def __init__(self, message: str | None = None, code: int | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if code is not None:
            self.code = code


class PermissionDenied(LedgerError):
    """Caller is not authorized for the operation."""

    code = PERMISSION_DENIED
    default_message = "Permission denied"


class DuplicateLicense(LedgerError):
    """A license with this id is already recorded."""

    code = DUPLICATE_LICENSE
    default_message = "License already exists"


class LicenseMissing(LedgerError):
    """No license (or no owner) recorded for the id."""

    code = LICENSE_MISSING
    default_message = "License not found"


class InvalidLicenseId(LedgerError):
    code = INVALID_LICENSE_ID
    default_message = "Invalid license id"


class InvalidDetails(LedgerError):
    """Metadata violates the length bounds."""

    code = INVALID_DETAILS
    default_message = "Invalid license details"


class AlreadyTerminated(LedgerError):
    code = ALREADY_TERMINATED
    default_message = "License is terminated"


class BatchSizeExceeded(LedgerError):
    code = BATCH_SIZE_EXCEEDED
    default_message = "Batch size exceeded"


class EmptyDetails(InvalidDetails):
    """Reserved for zero-length metadata; the validator reports InvalidDetails."""

    code = EMPTY_DETAILS
    default_message = "License details are empty"


class SnapshotError(ValueError):
    """Exception for unreadable, tampered or inconsistent ledger snapshots."""

