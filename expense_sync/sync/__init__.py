"""Sync/merge package."""

from expense_sync.sync.engine import SyncEngine
from expense_sync.sync.merge import (
    merge_own_wins,
    merge_remote_wins,
    sort_timeline,
    tag_owner,
)

__all__ = [
    "SyncEngine",
    "merge_own_wins",
    "merge_remote_wins",
    "sort_timeline",
    "tag_owner",
]
