# License ledger

from licledger.common.exceptions import (
    AlreadyTerminated,
    BatchSizeExceeded,
    DuplicateLicense,
    EmptyDetails,
    InvalidDetails,
    InvalidLicenseId,
    LedgerError,
    LicenseMissing,
    PermissionDenied,
    SnapshotError,
)
from licledger.common.models import LicenseRecord, LicenseStatus
from licledger.ledger.core import LicenseLedger

__all__ = [
    "AlreadyTerminated",
    "BatchSizeExceeded",
    "DuplicateLicense",
    "EmptyDetails",
    "InvalidDetails",
    "InvalidLicenseId",
    "LedgerError",
    "LicenseLedger",
    "LicenseMissing",
    "LicenseRecord",
    "LicenseStatus",
    "PermissionDenied",
    "SnapshotError",
]
