"""
Transaction Store

The device's copy of the transaction list, serialized as one JSON array
under a single key. The sync engine is the only component that rewrites
the whole list; everything else only prepends.
"""

import json
from typing import Any, Optional

import structlog
from pydantic import TypeAdapter, ValidationError

from expense_sync.config import get_settings
from expense_sync.models.transaction import Transaction, transactions_to_wire
from expense_sync.services.storage.interface import (
    LocalStoreError,
    LocalStoreInterface,
)


logger = structlog.get_logger(__name__)

_RAW_LIST = TypeAdapter(list[dict[str, Any]])


def parse_transactions(raw: Any, source: str) -> list[Transaction]:
    """
    Validate a decoded JSON array into transactions.

    Raises ValidationError if ``raw`` is not a list of objects; single
    records that fail validation are dropped and logged.
    """
    rows = _RAW_LIST.validate_python(raw)
    transactions = []
    for index, row in enumerate(rows):
        try:
            transactions.append(Transaction.model_validate(row))
        except ValidationError as e:
            logger.warning(
                "transaction_record_dropped",
                source=source,
                index=index,
                record_id=row.get("id"),
                error=str(e),
            )
    return transactions


def dump_transactions(transactions: list[Transaction]) -> bytes:
    return json.dumps(transactions_to_wire(transactions)).encode("utf-8")


class TransactionStore:
    """Transaction list persisted in a LocalStoreInterface."""

    def __init__(
        self,
        store: LocalStoreInterface,
        key: Optional[str] = None,
    ):
        self._store = store
        self._key = key or get_settings().local_store.transactions_key

    async def get_all(self) -> list[Transaction]:
        """
        Read the full list.

        Unreadable storage yields an empty list. Corrupt content is
        cleared so the next write starts clean.
        """
        try:
            raw = await self._store.get(self._key)
        except LocalStoreError as e:
            logger.warning("transactions_read_failed", key=self._key, error=str(e))
            return []

        if not raw:
            return []

        try:
            return parse_transactions(json.loads(raw), source="local")
        except (ValueError, ValidationError) as e:
            # json.JSONDecodeError and UnicodeDecodeError are ValueErrors
            logger.error("transactions_corrupt_cleared", key=self._key, error=str(e))
            await self._clear()
            return []

    async def add(self, transaction: Transaction) -> bool:
        """Prepend one transaction (newest first)."""
        current = await self.get_all()
        return await self.replace_all([transaction, *current])

    async def replace_all(self, transactions: list[Transaction]) -> bool:
        """Overwrite the full list."""
        try:
            await self._store.set(self._key, dump_transactions(transactions))
            return True
        except LocalStoreError as e:
            logger.warning(
                "transactions_write_failed",
                key=self._key,
                count=len(transactions),
                error=str(e),
            )
            return False

    async def _clear(self) -> None:
        try:
            await self._store.remove(self._key)
        except LocalStoreError as e:
            logger.warning("transactions_clear_failed", key=self._key, error=str(e))
