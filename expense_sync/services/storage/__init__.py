"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the two
storage tiers: the on-device key-value store and the remote document
store (Google Drive).
"""

from expense_sync.services.storage.interface import (
    AuditStorageInterface,
    DriveScope,
    LocalStoreError,
    LocalStoreInterface,
    RemoteNotFoundError,
    RemoteSchemaError,
    RemoteStoreError,
    RemoteStoreInterface,
    SharedFile,
    StorageError,
)
from expense_sync.services.storage.local import (
    FileKeyValueStore,
    InMemoryKeyValueStore,
)
from expense_sync.services.storage.transactions import TransactionStore
from expense_sync.services.storage.audit_store import LocalAuditStorage
from expense_sync.services.storage.google_drive import GoogleDriveClient

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LocalStoreInterface",
    "RemoteStoreInterface",
    "DriveScope",
    "SharedFile",
    # Exceptions
    "LocalStoreError",
    "RemoteNotFoundError",
    "RemoteSchemaError",
    "RemoteStoreError",
    "StorageError",
    # Local implementations
    "FileKeyValueStore",
    "InMemoryKeyValueStore",
    "LocalAuditStorage",
    "TransactionStore",
    # Google Drive implementation
    "GoogleDriveClient",
]
