"""
Audit Logger

DESIGN DECISION: Every sync, handshake step and auto-detected
transaction is logged. This provides:
1. Traceability of what was merged and from where
2. Debugging capability when a sync degrades to local-only data
3. A recent-activity view on the device

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
"""

from typing import Optional

import structlog

from expense_sync.models.audit import AuditEvent, AuditEventBuilder
from expense_sync.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when configured (for the recent-activity view)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("expense_sync.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Newest-first events from storage (empty without storage)."""
        if not self._storage:
            return []
        return await self._storage.get_recent_events(limit=limit)

    async def log_sync_completed(
        self,
        own_count: int,
        partner_count: int,
        total: int,
        remote_written: bool,
    ) -> None:
        await self.log(AuditEventBuilder.sync_completed(
            own_count=own_count,
            partner_count=partner_count,
            total=total,
            remote_written=remote_written,
        ))

    async def log_sync_fell_back(self, reason: str, local_count: int) -> None:
        await self.log(AuditEventBuilder.sync_fell_back(reason, local_count))

    async def log_remote_failure(
        self,
        operation: str,
        reason: str,
        file_handle: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.remote_operation_failed(
            operation=operation,
            reason=reason,
            file_handle=file_handle,
        ))

    async def log_shared_snapshot(self, file_handle: str, count: int) -> None:
        await self.log(AuditEventBuilder.shared_snapshot_published(file_handle, count))

    async def log_partner_shared(self, partner_email: str, file_handle: str) -> None:
        await self.log(AuditEventBuilder.partner_shared(partner_email, file_handle))

    async def log_partner_share_failed(self, partner_email: str, error: str) -> None:
        await self.log(AuditEventBuilder.partner_share_failed(partner_email, error))

    async def log_partner_linked(
        self,
        partner_email: str,
        file_handle: str,
        exact_match: bool,
    ) -> None:
        await self.log(AuditEventBuilder.partner_linked(partner_email, file_handle, exact_match))

    async def log_partner_link_failed(self, partner_email: str, error: str) -> None:
        await self.log(AuditEventBuilder.partner_link_failed(partner_email, error))

    async def log_partner_disabled(self, previous_email: str) -> None:
        await self.log(AuditEventBuilder.partner_disabled(previous_email))

    async def log_sms_matched(self, transaction_id: str, rule_name: str, amount: str) -> None:
        await self.log(AuditEventBuilder.sms_matched(transaction_id, rule_name, amount))

    async def log_sms_ignored(self, preview: str) -> None:
        await self.log(AuditEventBuilder.sms_ignored(preview))

    async def log_transaction_captured(self, transaction_id: str, remote_appended: bool) -> None:
        await self.log(AuditEventBuilder.transaction_captured(transaction_id, remote_appended))

    async def log_csv_imported(self, imported: int, skipped: int) -> None:
        await self.log(AuditEventBuilder.csv_imported(imported, skipped))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        ))
