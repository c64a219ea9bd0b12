"""
CSV Statement Import

Maps a header-less spreadsheet export to transactions.

Row shape (columns by position):
``detail, amount, Cr|Db, status, ..., D-Mon date, ?, category``

A row is a transaction when it has more than three columns and column 2
holds the direction code.
Everything else (titles, totals, blank lines) is skipped.
"""

import csv
import io
import re
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from pydantic import BaseModel, Field

from expense_sync.config import get_settings
from expense_sync.models.transaction import (
    TWO_PLACES,
    Transaction,
    TransactionType,
    utc_now,
)


_DAY_MONTH = re.compile(r"^(\d{1,2})-([A-Za-z]{3})$")
_NON_NUMERIC = re.compile(r"[^0-9.-]+")

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


class CsvImportResult(BaseModel):
    """Transactions found in a CSV export and how many rows were skipped."""

    transactions: list[Transaction] = Field(default_factory=list)
    skipped_rows: int = 0


def _parse_amount(value: str) -> Decimal:
    cleaned = _NON_NUMERIC.sub("", value or "")
    try:
        return abs(Decimal(cleaned)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return Decimal("0")


def _parse_day_month(value: str, year: int) -> Optional[datetime]:
    match = _DAY_MONTH.match(value.strip())
    if not match:
        return None
    month = _MONTHS.get(match.group(2).lower())
    if month is None:
        return None
    try:
        return datetime(year, month, int(match.group(1)), tzinfo=timezone.utc)
    except ValueError:
        return None


class CsvStatementImporter:
    """Parses statement rows into transactions; persisting them is up to the caller."""

    def __init__(self, id_prefix: str = "csv-"):
        self._id_prefix = id_prefix
        self._settings = get_settings().app

    def parse_row(self, index: int, row: list[str], now: datetime) -> Optional[Transaction]:
        if len(row) <= 3 or row[2] not in (TransactionType.CREDIT.value, TransactionType.DEBIT.value):
            return None

        category = (row[8] if len(row) > 8 else "") or self._settings.default_category
        occurred_at = now

        # The first D-Mon column is the date; the category sits two columns right of it
        for i in range(4, len(row)):
            parsed = _parse_day_month(row[i], now.year)
            if parsed is None:
                continue
            occurred_at = parsed
            if len(row) > i + 2:
                category = row[i + 2] or category
            break

        return Transaction(
            id=f"{self._id_prefix}{index}",
            detail=row[0],
            amount=_parse_amount(row[1]),
            direction=TransactionType(row[2]),
            status=row[3] or self._settings.default_status,
            category=category,
            occurred_at=occurred_at,
        )

    def parse(self, csv_text: str) -> CsvImportResult:
        now = utc_now()
        reader = csv.reader(io.StringIO(csv_text))
        result = CsvImportResult()
        for index, row in enumerate(r for r in reader if any(cell.strip() for cell in r)):
            transaction = self.parse_row(index, row, now)
            if transaction is None:
                result.skipped_rows += 1
            else:
                result.transactions.append(transaction)
        return result
