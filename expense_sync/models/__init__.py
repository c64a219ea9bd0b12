"""
Data Models Package

This package contains all Pydantic models used in the Expense Sync system.
All data crossing a storage or network boundary must conform to these schemas.
"""

from expense_sync.models.transaction import (
    SmsExtraction,
    Transaction,
    TransactionType,
    transactions_to_wire,
    utc_now,
)
from expense_sync.models.partner import (
    EmailValidationResult,
    LinkResult,
    PartnerLink,
    ShareResult,
)
from expense_sync.models.sync import (
    RemoteFetch,
    SyncResult,
    SyncSource,
)
from expense_sync.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "SmsExtraction",
    "Transaction",
    "TransactionType",
    "transactions_to_wire",
    "utc_now",
    # Partner models
    "EmailValidationResult",
    "LinkResult",
    "PartnerLink",
    "ShareResult",
    # Sync models
    "RemoteFetch",
    "SyncResult",
    "SyncSource",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
