"""SMS transaction detection package."""

from expense_sync.services.sms.parser import (
    EXTRACTION_RULES,
    ExtractionRule,
    SmsExtractor,
    normalize_amount,
    parse_sms_to_transaction,
)
from expense_sync.services.sms.listener import SmsIntake

__all__ = [
    "EXTRACTION_RULES",
    "ExtractionRule",
    "SmsExtractor",
    "SmsIntake",
    "normalize_amount",
    "parse_sms_to_transaction",
]
