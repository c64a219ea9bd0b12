"""
Audit Models for Expense Sync

Every sync, handshake step and auto-detected transaction is logged.
This provides:
1. Traceability of what was merged and from where
2. Debugging information when a sync silently degrades
3. A recent-activity view on the device

DESIGN DECISION: Audit logs are append-only. We never modify events,
the local store only trims the oldest ones.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from expense_sync.models.transaction import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Sync
    SYNC_COMPLETED = "sync_completed"
    SYNC_FELL_BACK_TO_LOCAL = "sync_fell_back_to_local"
    REMOTE_OPERATION_FAILED = "remote_operation_failed"
    SHARED_SNAPSHOT_PUBLISHED = "shared_snapshot_published"

    # Partner mode
    PARTNER_SHARED = "partner_shared"
    PARTNER_SHARE_FAILED = "partner_share_failed"
    PARTNER_LINKED = "partner_linked"
    PARTNER_LINK_FAILED = "partner_link_failed"
    PARTNER_DISABLED = "partner_disabled"

    # Capture
    SMS_MATCHED = "sms_matched"
    SMS_IGNORED = "sms_ignored"
    TRANSACTION_CAPTURED = "transaction_captured"
    CSV_IMPORTED = "csv_imported"

    # System events
    LOCAL_STATE_CORRUPT = "local_state_corrupt"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'partner', 'document')"
    )
    entity_id: Optional[str] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.sync_completed(own_count=3, partner_count=2, ...)
        event = AuditEventBuilder.partner_linked("p@x.com", handle, exact_match=True)
    """

    @staticmethod
    def sync_completed(
        own_count: int,
        partner_count: int,
        total: int,
        remote_written: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_COMPLETED,
            entity_type="timeline",
            description=(
                f"Synced {own_count} own + {partner_count} partner = {total} total transactions"
            ),
            details={
                "own_count": own_count,
                "partner_count": partner_count,
                "total": total,
                "remote_written": remote_written,
            },
        )

    @staticmethod
    def sync_fell_back(reason: str, local_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_FELL_BACK_TO_LOCAL,
            severity=AuditSeverity.WARNING,
            entity_type="timeline",
            description="Sync failed, returning local transactions",
            details={"local_count": local_count},
            error_message=reason,
        )

    @staticmethod
    def remote_operation_failed(
        operation: str,
        reason: str,
        file_handle: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_OPERATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="document",
            entity_id=file_handle,
            description=f"Remote {operation} degraded",
            details={"operation": operation},
            error_message=reason,
        )

    @staticmethod
    def shared_snapshot_published(file_handle: str, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SHARED_SNAPSHOT_PUBLISHED,
            entity_type="document",
            entity_id=file_handle,
            description=f"Shared document updated with {count} transactions",
            details={"count": count},
        )

    @staticmethod
    def partner_shared(partner_email: str, file_handle: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTNER_SHARED,
            entity_type="partner",
            entity_id=partner_email,
            description=f"Transactions shared with {partner_email}",
            details={"file_handle": file_handle},
            is_user_action=True,
        )

    @staticmethod
    def partner_share_failed(partner_email: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTNER_SHARE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="partner",
            entity_id=partner_email,
            description=f"Sharing with {partner_email} failed",
            error_message=error,
            is_user_action=True,
        )

    @staticmethod
    def partner_linked(
        partner_email: str,
        file_handle: str,
        exact_match: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTNER_LINKED,
            severity=AuditSeverity.INFO if exact_match else AuditSeverity.WARNING,
            entity_type="partner",
            entity_id=partner_email,
            description=(
                f"Linked to {partner_email}'s shared file"
                if exact_match
                else f"Linked to a shared file with unverified owner for {partner_email}"
            ),
            details={"file_handle": file_handle, "exact_owner_match": exact_match},
            is_user_action=True,
        )

    @staticmethod
    def partner_link_failed(partner_email: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTNER_LINK_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="partner",
            entity_id=partner_email,
            description=f"Could not link to {partner_email}",
            error_message=error,
            is_user_action=True,
        )

    @staticmethod
    def partner_disabled(previous_email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTNER_DISABLED,
            entity_type="partner",
            entity_id=previous_email or None,
            description="Partner mode disabled",
            is_user_action=True,
        )

    @staticmethod
    def sms_matched(transaction_id: str, rule_name: str, amount: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SMS_MATCHED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"SMS matched rule '{rule_name}' for {amount}",
            details={"rule_name": rule_name, "amount": amount},
        )

    @staticmethod
    def sms_ignored(preview: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SMS_IGNORED,
            severity=AuditSeverity.DEBUG,
            entity_type="sms",
            description="SMS did not match any transaction rule",
            details={"preview": preview[:40]},
        )

    @staticmethod
    def transaction_captured(transaction_id: str, remote_appended: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CAPTURED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction stored locally",
            details={"remote_appended": remote_appended},
            is_user_action=True,
        )

    @staticmethod
    def csv_imported(imported: int, skipped: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_IMPORTED,
            entity_type="import",
            description=f"Imported {imported} transactions from CSV ({skipped} rows skipped)",
            details={"imported": imported, "skipped": skipped},
            is_user_action=True,
        )

    @staticmethod
    def local_state_corrupt(key: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOCAL_STATE_CORRUPT,
            severity=AuditSeverity.ERROR,
            entity_type="local_store",
            entity_id=key,
            description=f"Unreadable local state under {key} was cleared",
            error_message=error,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
