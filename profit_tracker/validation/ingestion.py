"""
Document Ingestion

The document store hands back loosely-typed documents: every value in a
spreadsheet row is a string, older documents use the legacy field names
(`userId`, `type`, `cost`, `date`, `createdAt`) with upper-case kinds and
epoch-millisecond timestamps.

DESIGN DECISION: Conversion happens once, here, at the boundary. Past this
point the application only sees `Record` and `Goal` instances with closed
enum fields. A document that cannot be converted raises IngestionError;
it is never half-converted.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from profit_tracker.models.goal import Goal, GoalHorizon, MarginMode
from profit_tracker.models.record import Record, RecordKind, to_local_naive


# Epoch values above this are milliseconds rather than seconds
_EPOCH_MILLIS_THRESHOLD = 100_000_000_000

RECORD_FIELDS = [
    "id",
    "owner_id",
    "kind",
    "amount",
    "product_cost",
    "category",
    "description",
    "occurred_at",
    "recorded_at",
]

GOAL_FIELDS = [
    "id",
    "owner_id",
    "created_at",
    "horizon",
    "target_amount",
    "work_days",
    "margin_mode",
    "manual_margin_percent",
]


class IngestionError(ValueError):
    """A store document could not be converted into a model."""

    def __init__(self, entity_type: str, document_id: str, reason: str):
        self.entity_type = entity_type
        self.document_id = document_id
        self.reason = reason
        super().__init__(
            f"Malformed {entity_type} document {document_id!r}: {reason}"
        )


def _first(document: Mapping[str, Any], *keys: str) -> Any:
    """First present, non-empty value among `keys`."""
    for key in keys:
        value = document.get(key)
        if value is not None and value != "":
            return value
    return None


def _local(moment: datetime) -> datetime:
    try:
        return to_local_naive(moment)
    except OverflowError as e:
        raise ValueError(f"Timestamp out of range: {moment!r}") from e


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Accept datetimes, dates, ISO strings and epoch seconds/millis.

    The result is always naive local time.

    Raises:
        ValueError: If the value is not a timestamp or is out of range
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _local(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        text = value.strip()
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            value = float(text)
        else:
            return _local(parsed)
    if isinstance(value, bool):
        raise ValueError(f"Not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
        if abs(seconds) >= _EPOCH_MILLIS_THRESHOLD:
            seconds /= 1000
        try:
            return datetime.fromtimestamp(seconds)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e
    raise ValueError(f"Not a timestamp: {value!r}")


def parse_amount(value: Any) -> Optional[Decimal]:
    """Accept Decimals, numbers and numeric strings."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not an amount: {value!r}")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not an amount: {value!r}")


def parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return bool(value)


def _enum_value(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def record_from_document(document_id: str, document: Mapping[str, Any]) -> Record:
    """
    Convert a stored document into a Record.

    Raises:
        IngestionError: If the document is missing fields or has bad values
    """
    try:
        return Record(
            id=document_id,
            owner_id=_first(document, "owner_id", "userId"),
            kind=RecordKind(_enum_value(_first(document, "kind", "type"))),
            amount=parse_amount(_first(document, "amount")),
            product_cost=parse_amount(_first(document, "product_cost", "cost")),
            category=_first(document, "category"),
            description=_first(document, "description"),
            occurred_at=parse_instant(_first(document, "occurred_at", "date")),
            recorded_at=(
                parse_instant(_first(document, "recorded_at", "createdAt"))
                or datetime.now()
            ),
        )
    except (ValidationError, ValueError) as e:
        raise IngestionError("record", document_id, str(e))


def goal_from_document(document_id: str, document: Mapping[str, Any]) -> Goal:
    """
    Convert a stored document into a Goal.

    Legacy documents carry `useAutoMargin` / `manualMargin` instead of
    `margin_mode` / `manual_margin_percent`.

    Raises:
        IngestionError: If the document is missing fields or has bad values
    """
    try:
        mode = _first(document, "margin_mode")
        if mode is None:
            auto = document.get("useAutoMargin", True)
            mode = MarginMode.AUTOMATIC if parse_bool(auto) else MarginMode.MANUAL

        work_days = _first(document, "work_days", "workDays")

        return Goal(
            id=document_id,
            owner_id=_first(document, "owner_id", "userId"),
            created_at=(
                parse_instant(_first(document, "created_at", "createdAt"))
                or datetime.now()
            ),
            horizon=GoalHorizon(_enum_value(_first(document, "horizon", "type"))),
            target_amount=parse_amount(_first(document, "target_amount", "targetAmount")),
            work_days=int(float(work_days)) if work_days is not None else None,
            margin_mode=MarginMode(_enum_value(mode)),
            manual_margin_percent=parse_amount(
                _first(document, "manual_margin_percent", "manualMargin")
            ),
        )
    except (ValidationError, ValueError) as e:
        raise IngestionError("goal", document_id, str(e))


def record_to_document(record: Record) -> dict[str, str]:
    """Flatten a Record into string fields, keyed by RECORD_FIELDS."""
    return {
        "id": record.id or "",
        "owner_id": record.owner_id,
        "kind": record.kind.value,
        "amount": str(record.amount),
        "product_cost": str(record.product_cost) if record.product_cost is not None else "",
        "category": record.category or "",
        "description": record.description,
        "occurred_at": record.occurred_at.isoformat(),
        "recorded_at": record.recorded_at.isoformat(),
    }


def goal_to_document(goal: Goal) -> dict[str, str]:
    """Flatten a Goal into string fields, keyed by GOAL_FIELDS."""
    return {
        "id": goal.id or "",
        "owner_id": goal.owner_id,
        "created_at": goal.created_at.isoformat(),
        "horizon": goal.horizon.value,
        "target_amount": str(goal.target_amount),
        "work_days": str(goal.work_days) if goal.work_days is not None else "",
        "margin_mode": goal.margin_mode.value,
        "manual_margin_percent": (
            str(goal.manual_margin_percent)
            if goal.manual_margin_percent is not None
            else ""
        ),
    }
