"""Validation package."""

from expense_sync.validation.validator import (
    EMAIL_PATTERN,
    PartnerEmailValidator,
    normalize_email,
)

__all__ = ["EMAIL_PATTERN", "PartnerEmailValidator", "normalize_email"]
