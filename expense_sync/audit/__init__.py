"""Audit logging package."""

from expense_sync.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
