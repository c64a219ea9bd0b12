"""
Core Transaction Model for Expense Sync

A transaction is the unit that flows between the SMS extractor, the
on-device store and the remote JSON documents. The same schema is used
for every hop, so what is written to Drive can be read back on another
device (or by the partner) without translation.

DESIGN DECISION: The wire format keeps the field names the mobile client
already writes (``type``, ``date``, ``ownerEmail``). Python code uses
descriptive names; aliases map between the two.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)


TWO_PLACES = Decimal("0.01")


def utc_now() -> datetime:
    """Timezone-aware wall-clock time."""
    return datetime.now(timezone.utc)


class TransactionType(str, Enum):
    """Direction of money movement. Values are the wire codes."""
    CREDIT = "Cr"
    DEBIT = "Db"


class Transaction(BaseModel):
    """
    A single financial transaction.

    ``id`` is the merge key: two records with the same id are the same
    logical transaction, whichever copy was merged in last wins.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque, globally unique, immutable identifier"
    )
    detail: str = Field(
        default="",
        description="Free-text description"
    )
    amount: Decimal = Field(
        default=Decimal("0.00"),
        ge=0,
        description="Non-negative amount, two decimal places"
    )
    direction: TransactionType = Field(
        default=TransactionType.DEBIT,
        alias="type",
    )
    status: str = Field(
        default="Cleared",
        description="Lifecycle tag; auto-detected records start as 'Review'"
    )
    category: str = Field(
        default="Uncategorized",
    )
    occurred_at: datetime = Field(
        default_factory=utc_now,
        alias="date",
        description="When the financial event happened"
    )
    owner_email: Optional[str] = Field(
        default=None,
        alias="ownerEmail",
        description="Which user produced the record; attached during merge"
    )

    @field_validator("amount")
    @classmethod
    def quantize_amount(cls, v: Decimal) -> Decimal:
        try:
            return v.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            raise ValueError("amount has too many digits")

    @field_validator("occurred_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are read as UTC so the timeline sorts consistently."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_serializer("amount")
    def serialize_amount(self, v: Decimal) -> float:
        return float(v)

    @property
    def is_credit(self) -> bool:
        return self.direction == TransactionType.CREDIT

    def with_owner(self, email: str) -> "Transaction":
        """Return a copy tagged with ``email`` unless an owner is already set."""
        if self.owner_email:
            return self
        return self.model_copy(update={"owner_email": email})

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using the shared document field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SmsExtraction(BaseModel):
    """
    Result of running the SMS extractor on one message body.

    When ``matched`` is False the caller must not persist anything.
    """

    matched: bool
    transaction: Optional[Transaction] = None
    rule_name: Optional[str] = Field(
        default=None,
        description="Name of the extraction rule that matched"
    )


def transactions_to_wire(transactions: list[Transaction]) -> list[dict[str, Any]]:
    return [tx.to_wire() for tx in transactions]
