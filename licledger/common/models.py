"""
Pydantic models for ledger records and snapshots.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class LicenseStatus(str, Enum):
    NOT_FOUND = "NotFound"
    ACTIVE = "Active"
    TERMINATED = "Terminated"


class LicenseRecord(BaseModel):
    """Read-side view of a single license."""

    id: int = Field(ge=1)
    owner: str | None = None
    metadata: str
    terminated: bool = False
    status: LicenseStatus


class LedgerSnapshot(BaseModel):
    """Complete ledger state: counter plus the three sub-stores."""

    version: int = 1
    admin: str = Field(min_length=1)
    counter: int = Field(default=0, ge=0)
    ownership: dict[int, str] = Field(default_factory=dict)
    metadata: dict[int, str] = Field(default_factory=dict)
    terminated: dict[int, bool] = Field(default_factory=dict)


class SignedSnapshot(BaseModel):
    snapshot: LedgerSnapshot
    signature: str | None = None


class LedgerStats(BaseModel):
    total_issued: int = Field(ge=0)
    active: int = Field(ge=0)
    terminated: int = Field(ge=0)
    next_id: int = Field(ge=1)
