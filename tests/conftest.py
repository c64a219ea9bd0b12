"""
Shared fixtures.

No test talks to Google Drive: remote behavior comes from FakeRemoteStore,
an in-memory RemoteStoreInterface with switches for failing operations.
"""

import itertools
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from expense_sync.audit import AuditLogger
from expense_sync.config import get_settings
from expense_sync.models.transaction import Transaction, TransactionType
from expense_sync.partner import PartnerLinkManager, SharedFileLocator
from expense_sync.services.storage import (
    DriveScope,
    InMemoryKeyValueStore,
    LocalAuditStorage,
    LocalStoreError,
    RemoteNotFoundError,
    RemoteStoreError,
    RemoteStoreInterface,
    SharedFile,
    TransactionStore,
)
from expense_sync.sync import SyncEngine


ME = "me@example.com"
PARTNER = "partner@example.com"


@dataclass
class FakeFile:
    name: str
    scope: DriveScope
    content: list[Transaction] = field(default_factory=list)
    owner: str = ME
    trashed: bool = False


class FakeRemoteStore(RemoteStoreInterface):
    """
    In-memory Drive stand-in.

    Add operation names to ``failing`` to make them raise
    RemoteStoreError; handles in ``vanished`` raise RemoteNotFoundError
    on read.
    """

    def __init__(self):
        self.files: dict[str, FakeFile] = {}
        self.failing: set[str] = set()
        self.vanished: set[str] = set()
        self.permissions: list[tuple[str, str]] = []
        self.writes: list[str] = []
        self.grant_error = "The user does not have sufficient permissions for this file."
        self._ids = itertools.count(1)

    def _check(self, operation: str) -> None:
        if operation in self.failing:
            raise RemoteStoreError(f"{operation} unavailable", 503)

    def add_file(
        self,
        name: str,
        scope: DriveScope,
        content: Optional[list[Transaction]] = None,
        owner: str = ME,
    ) -> str:
        handle = f"file-{next(self._ids)}"
        self.files[handle] = FakeFile(name=name, scope=scope, content=list(content or []), owner=owner)
        return handle

    def add_shared(self, name: str, owner: str, content: Optional[list[Transaction]] = None) -> str:
        return self.add_file(name, DriveScope.SHARED_WITH_ME, content, owner=owner)

    def content(self, handle: str) -> list[Transaction]:
        return self.files[handle].content

    def handles(self, name: str, scope: DriveScope) -> list[str]:
        return [
            h for h, f in self.files.items()
            if f.name == name and f.scope == scope and not f.trashed
        ]

    async def find_file(self, name: str, scope: DriveScope) -> Optional[str]:
        self._check("find_file")
        found = self.handles(name, scope)
        return found[0] if found else None

    async def create_file(self, name: str, scope: DriveScope, content: list[Transaction]) -> str:
        self._check("create_file")
        return self.add_file(name, scope, content)

    async def read_file(self, handle: str) -> list[Transaction]:
        self._check("read_file")
        if handle in self.vanished or handle not in self.files:
            raise RemoteNotFoundError("File not found", 404)
        return list(self.files[handle].content)

    async def overwrite_file(self, handle: str, content: list[Transaction]) -> bool:
        self._check("overwrite_file")
        if handle not in self.files:
            raise RemoteNotFoundError("File not found", 404)
        self.files[handle].content = list(content)
        self.writes.append(handle)
        return True

    async def grant_reader_permission(self, handle: str, email: str) -> bool:
        if "grant_reader_permission" in self.failing:
            raise RemoteStoreError(self.grant_error, 403)
        self.permissions.append((handle, email))
        return True

    async def list_shared_with_me(self, name: str) -> list[SharedFile]:
        self._check("list_shared_with_me")
        return [
            SharedFile(handle=h, name=name, owner_emails=[self.files[h].owner])
            for h in self.handles(name, DriveScope.SHARED_WITH_ME)
        ]

    async def file_exists(self, handle: str) -> bool:
        self._check("file_exists")
        f = self.files.get(handle)
        return f is not None and not f.trashed


class BrokenKeyValueStore(InMemoryKeyValueStore):
    """Store whose writes fail, for local-write-failure paths."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_writes = False

    async def set(self, key: str, value: bytes) -> None:
        if self.fail_writes:
            raise LocalStoreError(f"Failed to write {key}: disk full")
        await super().set(key, value)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_tx():
    """Factory for transactions with readable defaults."""

    def _make(
        id: str,
        amount: str = "10.00",
        day: int = 1,
        direction: TransactionType = TransactionType.DEBIT,
        owner_email: Optional[str] = None,
        detail: str = "",
    ) -> Transaction:
        return Transaction(
            id=id,
            detail=detail or f"tx {id}",
            amount=Decimal(amount),
            direction=direction,
            occurred_at=datetime(2024, 3, day, 12, 0, tzinfo=timezone.utc),
            owner_email=owner_email,
        )

    return _make


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def kv_store() -> BrokenKeyValueStore:
    return BrokenKeyValueStore()


@pytest.fixture
def audit_logger(kv_store) -> AuditLogger:
    return AuditLogger(LocalAuditStorage(kv_store))


@pytest.fixture
def transactions(kv_store) -> TransactionStore:
    return TransactionStore(kv_store)


@pytest.fixture
def partner(kv_store, audit_logger) -> PartnerLinkManager:
    return PartnerLinkManager(kv_store, audit_logger=audit_logger)


@pytest.fixture
def locator(remote, partner) -> SharedFileLocator:
    return SharedFileLocator(remote, partner)


@pytest.fixture
def engine(remote, transactions, partner, locator, audit_logger) -> SyncEngine:
    return SyncEngine(
        remote,
        transactions,
        partner,
        locator=locator,
        audit_logger=audit_logger,
    )


@pytest.fixture
def own_file_name() -> str:
    return get_settings().drive.own_file_name


@pytest.fixture
def shared_file_name() -> str:
    return get_settings().drive.shared_file_name
