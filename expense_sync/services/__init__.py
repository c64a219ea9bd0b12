"""
Services package.

Subpackages:
- storage: local key-value store, transaction store, Google Drive client
- sms: SMS transaction extraction and intake
- importers: CSV statement import

Only storage is re-exported here; sms depends on the audit package,
which itself depends on storage.
"""

from expense_sync.services.storage import (
    DriveScope,
    FileKeyValueStore,
    GoogleDriveClient,
    InMemoryKeyValueStore,
    LocalStoreError,
    RemoteNotFoundError,
    RemoteStoreError,
    StorageError,
    TransactionStore,
)

__all__ = [
    "DriveScope",
    "FileKeyValueStore",
    "GoogleDriveClient",
    "InMemoryKeyValueStore",
    "LocalStoreError",
    "RemoteNotFoundError",
    "RemoteStoreError",
    "StorageError",
    "TransactionStore",
]
