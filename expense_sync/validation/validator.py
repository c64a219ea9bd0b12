"""
Partner Email Validation

Runs before any partner-mode I/O. A rejected email never reaches the
remote store and never touches the persisted partner settings.

IMPORTANT: Validation NEVER silently fixes issues beyond normalization
(trim + lower-case). Anything else is reported with a user-facing message.
"""

import re
from typing import Optional

from expense_sync.models.partner import EmailValidationResult


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class PartnerEmailValidator:
    """Checks a candidate partner email against the signed-in user's email."""

    MISSING_MESSAGE = "Please enter your partner's email address"
    INVALID_MESSAGE = "Please enter a valid email address"
    SELF_MESSAGE = "You cannot partner with yourself"

    def validate(
        self,
        candidate: Optional[str],
        self_email: Optional[str] = None,
    ) -> EmailValidationResult:
        email = normalize_email(candidate)

        if not email:
            return EmailValidationResult(is_valid=False, message=self.MISSING_MESSAGE)

        if not EMAIL_PATTERN.match(email):
            return EmailValidationResult(
                is_valid=False,
                normalized_email=email,
                message=self.INVALID_MESSAGE,
            )

        if self_email and email == normalize_email(self_email):
            return EmailValidationResult(
                is_valid=False,
                normalized_email=email,
                message=self.SELF_MESSAGE,
            )

        return EmailValidationResult(is_valid=True, normalized_email=email)
