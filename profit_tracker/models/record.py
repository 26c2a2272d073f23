"""
Financial Record Models

A Record is one financial event: a sale, an expense or an investment.

These models define the strict schema every record must satisfy once it
crosses into the application. Loosely-typed documents coming back from the
document store are converted by `profit_tracker.validation.ingestion`
before they reach this point, so the aggregation code never branches on
untyped data.

DESIGN DECISION: Records are immutable. They are created or deleted in
full, never edited. Identity is assigned by the storage layer, which
returns a copy of the record carrying its id.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class RecordKind(str, Enum):
    """
    Kinds of financial events.

    Closed set: aggregation handles every member explicitly.
    """
    SALE = "sale"
    EXPENSE = "expense"
    INVESTMENT = "investment"


# Labels offered by the entry form. Any other label is accepted.
EXPENSE_CATEGORIES = ("Fixed", "Variable", "Unexpected")

DEFAULT_EXPENSE_CATEGORY = "Other"


def to_local_naive(moment: datetime) -> datetime:
    """
    Express `moment` as naive local wall-clock time.

    Every instant in the application is naive local time, so aware values
    from the store or the caller are converted once on the way in.
    """
    if moment.tzinfo is None or moment.utcoffset() is None:
        return moment.replace(tzinfo=None)
    return moment.astimezone().replace(tzinfo=None)


class Record(BaseModel):
    """
    A single financial event belonging to one user account.

    `product_cost` is kept for sales only and `category` for expenses only;
    the fields are cleared for every other kind.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    # Identity (assigned by storage)
    id: Optional[str] = Field(
        default=None,
        description="Storage-assigned identifier"
    )
    owner_id: str = Field(
        ...,
        min_length=1,
        description="Account this record belongs to"
    )

    kind: RecordKind
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Gross amount received (sale) or paid (expense/investment)"
    )
    product_cost: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Cost of goods for a sale"
    )
    category: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Expense category label"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Name of the product, expense or investment"
    )

    # Timestamps
    occurred_at: datetime = Field(
        ...,
        description="When the transaction happened"
    )
    recorded_at: datetime = Field(
        default_factory=datetime.now,
        description="When the record was created"
    )

    @field_validator("occurred_at", "recorded_at")
    @classmethod
    def use_local_time(cls, value: datetime) -> datetime:
        return to_local_naive(value)

    @model_validator(mode='before')
    @classmethod
    def clear_fields_of_other_kinds(cls, data: Any) -> Any:
        """Drop kind-specific fields that do not apply to this kind."""
        if not isinstance(data, dict):
            return data
        try:
            kind = RecordKind(data.get("kind"))
        except ValueError:
            # Reported by field validation
            return data

        data = dict(data)
        if kind is not RecordKind.SALE:
            data["product_cost"] = None
        if kind is not RecordKind.EXPENSE:
            data["category"] = None
        elif not data.get("category"):
            data["category"] = None
        return data

    @property
    def is_sale(self) -> bool:
        return self.kind is RecordKind.SALE

    def with_id(self, record_id: str) -> "Record":
        """Return a copy carrying the storage-assigned id."""
        return self.model_copy(update={"id": record_id})
