"""
Timeline Merge Rules

Pure functions, no I/O. Identity is the transaction ``id``; there is no
field-level merge, one whole record always wins.

- merge_remote_wins: own data on this device vs. own data in the cloud.
  The cloud copy is authoritative.
- merge_own_wins: own timeline vs. partner timeline. Partner records are
  advisory and never replace one of ours.
"""

from typing import Iterable

from expense_sync.models.transaction import Transaction


def merge_remote_wins(
    local: Iterable[Transaction],
    remote: Iterable[Transaction],
) -> list[Transaction]:
    """Union by id; on collision the remote record replaces the local one."""
    merged: dict[str, Transaction] = {}
    for tx in local:
        merged[tx.id] = tx
    for tx in remote:
        merged[tx.id] = tx
    return list(merged.values())


def merge_own_wins(
    own: Iterable[Transaction],
    partner: Iterable[Transaction],
) -> list[Transaction]:
    """Union by id; partner records are added only for ids we don't have."""
    merged: dict[str, Transaction] = {}
    for tx in own:
        merged[tx.id] = tx
    for tx in partner:
        if tx.id not in merged:
            merged[tx.id] = tx
    return list(merged.values())


def sort_timeline(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Most recent first. Equal timestamps keep no particular order."""
    return sorted(transactions, key=lambda tx: tx.occurred_at, reverse=True)


def tag_owner(transactions: Iterable[Transaction], email: str) -> list[Transaction]:
    """Attach ``email`` to records that have no owner yet."""
    if not email:
        return list(transactions)
    return [tx.with_owner(email) for tx in transactions]
