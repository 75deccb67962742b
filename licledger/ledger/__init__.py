"""
License ledger: the core state machine and its storage adapters.
"""

from .core import LicenseLedger
from .keygen import KeyGenerator
from .persistence import LedgerPersistence
from .signing import SnapshotSigner
from .validator import MetadataValidator

__all__ = [
    "KeyGenerator",
    "LedgerPersistence",
    "LicenseLedger",
    "MetadataValidator",
    "SnapshotSigner",
]
