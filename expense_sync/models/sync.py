"""
Sync Outcome Models

Every remote step of a sync can degrade (network, permission, missing
file). These models make the degraded branch a value the caller and the
tests can see, rather than an exception swallowed somewhere inside.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from expense_sync.models.transaction import Transaction


class SyncSource(str, Enum):
    """Where the returned timeline came from."""
    MERGED = "merged"                  # local and remote were reconciled
    LOCAL_FALLBACK = "local_fallback"  # sync failed, local store returned as-is


class RemoteFetch(BaseModel):
    """Contents read from one remote document."""

    transactions: list[Transaction] = Field(default_factory=list)
    ok: bool = True
    reason: Optional[str] = None

    @classmethod
    def degraded(cls, reason: str) -> "RemoteFetch":
        return cls(ok=False, reason=reason)


class SyncResult(BaseModel):
    """Full report of one own or partner sync."""

    transactions: list[Transaction] = Field(default_factory=list)
    source: SyncSource = SyncSource.MERGED
    own_count: int = 0
    partner_count: int = 0
    remote_written: bool = False
    partner_file_handle: Optional[str] = None
    reasons: list[str] = Field(
        default_factory=list,
        description="Why any step degraded"
    )

    @property
    def degraded(self) -> bool:
        return self.source == SyncSource.LOCAL_FALLBACK or bool(self.reasons)

    @property
    def total(self) -> int:
        return len(self.transactions)
