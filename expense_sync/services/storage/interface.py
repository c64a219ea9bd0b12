"""
Abstract Storage Interfaces

DESIGN DECISION: We define abstract interfaces for both storage tiers.
This allows us to:
1. Swap Google Drive for another file backend later
2. Use in-memory storage for testing
3. Keep the merge engine decoupled from transport details

LOCAL tier: an on-device key-value byte store (durable across restarts).
REMOTE tier: a cloud file store holding JSON documents addressed by
opaque file handles.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from expense_sync.models.audit import AuditEvent
from expense_sync.models.transaction import Transaction


class DriveScope(str, Enum):
    """Visibility scope a document is looked up in."""
    APP_DATA = "appDataFolder"       # private, only this app and user
    DRIVE = "drive"                  # regular files this user owns, shareable
    SHARED_WITH_ME = "sharedWithMe"  # files other users granted us


class SharedFile(BaseModel):
    """A document another user shared with us."""

    handle: str
    name: str = ""
    owner_emails: list[str] = Field(default_factory=list)


class LocalStoreInterface(ABC):
    """
    Persistent key-value byte store.

    Missing keys read as None; remove() on a missing key is a no-op.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        pass

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        pass


class RemoteStoreInterface(ABC):
    """
    Cloud document store operations consumed by sync and partner mode.

    Implementations raise RemoteStoreError (or a subclass) on failure;
    callers decide how to degrade.
    """

    @abstractmethod
    async def find_file(self, name: str, scope: DriveScope) -> Optional[str]:
        """
        Locate a document by exact name within a scope.

        Returns:
            The file handle, or None if no such document exists
        """
        pass

    @abstractmethod
    async def create_file(
        self,
        name: str,
        scope: DriveScope,
        content: list[Transaction],
    ) -> str:
        """
        Create a document with initial content.

        Returns:
            The new file handle
        """
        pass

    @abstractmethod
    async def read_file(self, handle: str) -> list[Transaction]:
        """
        Read a document's full content.

        Records that fail schema validation are dropped.
        """
        pass

    @abstractmethod
    async def overwrite_file(self, handle: str, content: list[Transaction]) -> bool:
        """
        Replace a document's full content. No version check is made:
        the last writer wins.
        """
        pass

    @abstractmethod
    async def grant_reader_permission(self, handle: str, email: str) -> bool:
        """
        Give ``email`` read access to a document.

        Raises:
            RemoteStoreError: with the remote store's reason if rejected
        """
        pass

    @abstractmethod
    async def list_shared_with_me(self, name: str) -> list[SharedFile]:
        """List documents shared with the current user under ``name``."""
        pass

    @abstractmethod
    async def file_exists(self, handle: str) -> bool:
        """True if the handle points at a live (not trashed) document."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class LocalStoreError(StorageError):
    """On-device store could not be read or written."""
    pass


class RemoteStoreError(StorageError):
    """A remote document store call failed."""

    def __init__(self, reason: str, status_code: Optional[int] = None):
        self.reason = reason
        self.status_code = status_code
        super().__init__(reason if status_code is None else f"{reason} ({status_code})")


class RemoteNotFoundError(RemoteStoreError):
    """Document does not exist (or is not visible to us)."""
    pass


class RemoteSchemaError(RemoteStoreError):
    """Remote response did not have the expected shape."""
    pass
