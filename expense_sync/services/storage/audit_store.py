"""
Local Audit Log Storage

Keeps the newest N audit events on the device so recent sync and
partner activity can be shown without a network connection.
"""

import json
from typing import Optional

import structlog
from pydantic import ValidationError

from expense_sync.config import get_settings
from expense_sync.models.audit import AuditEvent
from expense_sync.services.storage.interface import (
    AuditStorageInterface,
    LocalStoreError,
    LocalStoreInterface,
)


logger = structlog.get_logger(__name__)


class LocalAuditStorage(AuditStorageInterface):
    """
    Bounded audit log in a LocalStoreInterface.

    Events are stored newest first; the oldest are trimmed on append.
    """

    def __init__(
        self,
        store: LocalStoreInterface,
        key: Optional[str] = None,
        max_events: Optional[int] = None,
    ):
        settings = get_settings().local_store
        self._store = store
        self._key = key or settings.audit_log_key
        self._max_events = max_events or settings.audit_log_max_events

    async def _load(self) -> list[AuditEvent]:
        raw = await self._store.get(self._key)
        if not raw:
            return []
        try:
            rows = json.loads(raw)
        except ValueError:
            return []
        events = []
        for row in rows if isinstance(rows, list) else []:
            try:
                events.append(AuditEvent.model_validate(row))
            except ValidationError:
                continue  # Skip malformed rows
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            events = [event, *await self._load()][: self._max_events]
            payload = json.dumps([e.model_dump(mode="json") for e in events])
            await self._store.set(self._key, payload.encode("utf-8"))
            return True
        except LocalStoreError as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = await self._load()
        except LocalStoreError as e:
            logger.warning("audit_read_failed", error=str(e))
            return []
        return events[:limit]
