"""Tests for the on-device stores."""

import json

import pytest

from expense_sync.models.audit import AuditEventBuilder
from expense_sync.services.storage import (
    FileKeyValueStore,
    InMemoryKeyValueStore,
    LocalAuditStorage,
    TransactionStore,
)
from expense_sync.services.storage.local import key_to_filename


TX_KEY = "@expenses_app:transactions"


class TestFileKeyValueStore:
    """Tests for the filesystem-backed key-value store."""

    @pytest.mark.anyio
    async def test_set_get_remove(self, tmp_path):
        store = FileKeyValueStore(str(tmp_path / "data"))

        assert await store.get(TX_KEY) is None
        await store.set(TX_KEY, b"[]")
        assert await store.get(TX_KEY) == b"[]"
        await store.remove(TX_KEY)
        assert await store.get(TX_KEY) is None

    @pytest.mark.anyio
    async def test_remove_missing_key_is_noop(self, tmp_path):
        await FileKeyValueStore(str(tmp_path)).remove("nothing-here")

    @pytest.mark.anyio
    async def test_survives_new_instance(self, tmp_path):
        await FileKeyValueStore(str(tmp_path)).set(TX_KEY, b"persisted")
        assert await FileKeyValueStore(str(tmp_path)).get(TX_KEY) == b"persisted"

    def test_key_to_filename_is_safe_and_distinct(self):
        first = key_to_filename("@expenses_app:transactions")
        second = key_to_filename("@expenses_app/transactions")
        assert first != second
        assert ":" not in first and "/" not in second
        assert first.endswith(".json")


class TestTransactionStore:
    """Tests for the serialized transaction list."""

    @pytest.mark.anyio
    async def test_empty_when_missing(self, transactions):
        assert await transactions.get_all() == []

    @pytest.mark.anyio
    async def test_add_prepends(self, transactions, make_tx):
        await transactions.add(make_tx("first"))
        await transactions.add(make_tx("second"))

        assert [tx.id for tx in await transactions.get_all()] == ["second", "first"]

    @pytest.mark.anyio
    async def test_stored_in_wire_format(self, transactions, kv_store, make_tx):
        await transactions.replace_all([make_tx("a", amount="12.50")])

        stored = json.loads(await kv_store.get(TX_KEY))
        assert stored[0]["id"] == "a"
        assert stored[0]["amount"] == 12.5
        assert stored[0]["type"] == "Db"

    @pytest.mark.anyio
    async def test_corrupt_content_cleared(self, transactions, kv_store):
        await kv_store.set(TX_KEY, b"not json at all")

        assert await transactions.get_all() == []
        assert await kv_store.get(TX_KEY) is None

    @pytest.mark.anyio
    async def test_non_list_content_cleared(self, transactions, kv_store):
        await kv_store.set(TX_KEY, b'{"id": "a"}')

        assert await transactions.get_all() == []
        assert await kv_store.get(TX_KEY) is None

    @pytest.mark.anyio
    async def test_invalid_records_dropped(self, kv_store):
        rows = [{"id": "ok", "amount": 1}, {"detail": "no id"}]
        await kv_store.set(TX_KEY, json.dumps(rows).encode())

        assert [tx.id for tx in await TransactionStore(kv_store).get_all()] == ["ok"]

    @pytest.mark.anyio
    async def test_oversized_amount_record_dropped(self, kv_store):
        rows = [{"id": "a", "amount": 1e30}, {"id": "b", "amount": 5}]
        await kv_store.set(TX_KEY, json.dumps(rows).encode())

        assert [tx.id for tx in await TransactionStore(kv_store).get_all()] == ["b"]

    @pytest.mark.anyio
    async def test_write_failure_reported(self, transactions, kv_store, make_tx):
        kv_store.fail_writes = True
        assert not await transactions.add(make_tx("a"))


class TestLocalAuditStorage:
    """Tests for the bounded local audit log."""

    @pytest.mark.anyio
    async def test_newest_first_and_trimmed(self):
        storage = LocalAuditStorage(InMemoryKeyValueStore(), max_events=2)

        for count in range(3):
            await storage.append_event(AuditEventBuilder.csv_imported(count, 0))

        events = await storage.get_recent_events()
        assert [e.details["imported"] for e in events] == [2, 1]

    @pytest.mark.anyio
    async def test_limit(self):
        storage = LocalAuditStorage(InMemoryKeyValueStore())
        for count in range(5):
            await storage.append_event(AuditEventBuilder.csv_imported(count, 0))

        assert len(await storage.get_recent_events(limit=3)) == 3
