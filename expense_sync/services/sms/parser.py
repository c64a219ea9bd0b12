"""
SMS Transaction Extractor

Turns a bank SMS body into a candidate transaction.

DESIGN DECISION: Rules are an ordered list and the FIRST rule that
matches wins. There is no scoring and no search for a "better" match:
reordering the list changes which transactions are detected, so the
order is part of the behavior.

Extracted transactions are always created with status 'Review'. They
are PROPOSED data, the user confirms or edits them later.
"""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional
from uuid import uuid4

from expense_sync.config import get_settings
from expense_sync.models.transaction import (
    TWO_PLACES,
    SmsExtraction,
    Transaction,
    TransactionType,
    utc_now,
)


# Currency code, abbreviation with optional period, or symbol
_CURRENCY = r"(?:INR|Rs\.?|₹)"
_AMOUNT = r"([0-9,]+(?:\.[0-9]{1,2})?)"
_MERCHANT = r"([A-Za-z0-9 &.,'-]+?)"
# Merchant rules: the amount is a whole number, and a number right after
# the keyword is the amount rather than a merchant
_WHOLE_AMOUNT = rf"(?<![0-9,])(?<![0-9]\.){_AMOUNT}(?![0-9A-Za-z])"
_OPTIONAL_MERCHANT = rf"(?:{_MERCHANT}\s*(?:for|:)?\s*)??"

_LEADING_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")


@dataclass(frozen=True)
class ExtractionRule:
    """A named pattern and the direction a match implies."""
    name: str
    pattern: re.Pattern
    direction: TransactionType


EXTRACTION_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(
        name="debited_inr",
        pattern=re.compile(rf"debited for\s*{_CURRENCY}\s*{_AMOUNT}", re.IGNORECASE),
        direction=TransactionType.DEBIT,
    ),
    ExtractionRule(
        name="debited_at",
        pattern=re.compile(
            rf"debited(?: at| by)?\s+{_OPTIONAL_MERCHANT}{_CURRENCY}?\s*{_WHOLE_AMOUNT}",
            re.IGNORECASE,
        ),
        direction=TransactionType.DEBIT,
    ),
    ExtractionRule(
        name="spent_at",
        pattern=re.compile(
            rf"spent(?: at)?\s+{_OPTIONAL_MERCHANT}{_CURRENCY}?\s*{_WHOLE_AMOUNT}",
            re.IGNORECASE,
        ),
        direction=TransactionType.DEBIT,
    ),
    ExtractionRule(
        name="credited",
        pattern=re.compile(rf"credited(?: to)?\s*{_CURRENCY}?\s*{_AMOUNT}", re.IGNORECASE),
        direction=TransactionType.CREDIT,
    ),
)


def normalize_amount(amount_str: Optional[str]) -> Decimal:
    """
    Parse an amount string, never failing.

    Thousands separators are stripped and the leading numeric part is
    used, so '2,500.50' -> 2500.50. Missing, unparsable or oversized
    input is 0.
    """
    if not amount_str:
        return Decimal("0")
    match = _LEADING_NUMBER.match(amount_str.replace(",", "").strip())
    if not match:
        return Decimal("0")
    try:
        return Decimal(match.group(0)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return Decimal("0")


def pick_amount(groups: tuple[Optional[str], ...]) -> str:
    """The last non-empty capture holds the amount; merchant captures come first."""
    for group in reversed(groups):
        if group:
            return group
    return ""


def new_sms_transaction_id() -> str:
    """Capture-time id; the random suffix keeps ids unique within one millisecond."""
    millis = int(utc_now().timestamp() * 1000)
    return f"sms-{millis}-{uuid4().hex[:8]}"


class SmsExtractor:
    """
    Stateless SMS body -> transaction classifier.

    The rule list can be replaced (e.g. for another bank's wording), but
    is always evaluated in the given order.
    """

    def __init__(self, rules: Optional[tuple[ExtractionRule, ...]] = None):
        self._rules = rules if rules is not None else EXTRACTION_RULES
        self._settings = get_settings().app

    @property
    def rules(self) -> tuple[ExtractionRule, ...]:
        return self._rules

    def match_rule(self, text: str) -> Optional[tuple[ExtractionRule, re.Match]]:
        for rule in self._rules:
            match = rule.pattern.search(text)
            if match:
                return rule, match
        return None

    def extract(self, text: Optional[str]) -> SmsExtraction:
        """
        Run the rules against ``text``.

        The transaction date is the time of extraction, not a date found
        in the message body.
        """
        if not text:
            return SmsExtraction(matched=False)

        found = self.match_rule(text)
        if found is None:
            return SmsExtraction(matched=False)

        rule, match = found
        transaction = Transaction(
            id=new_sms_transaction_id(),
            detail=text[: self._settings.sms_detail_max_length],
            amount=normalize_amount(pick_amount(match.groups())),
            direction=rule.direction,
            status=self._settings.review_status,
            category=self._settings.default_category,
            occurred_at=utc_now(),
        )
        return SmsExtraction(matched=True, transaction=transaction, rule_name=rule.name)


def parse_sms_to_transaction(text: Optional[str]) -> SmsExtraction:
    """Convenience wrapper using the default rules."""
    return SmsExtractor().extract(text)
