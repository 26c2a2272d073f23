"""
Chart Series and Recent Activity

Sub-bucketing of a snapshot for the reports screen. Buckets use the same
profit model as the aggregator: sales add to revenue and profit, expenses
subtract from profit, investments are left out.
"""

from datetime import date, datetime, timedelta
from typing import Iterable

from profit_tracker.aggregation.windows import day_bounds
from profit_tracker.models.record import Record, RecordKind
from profit_tracker.models.stats import ZERO, SeriesPoint, TimeWindow


class _Bucket:
    __slots__ = ("revenue", "expenses")

    def __init__(self):
        self.revenue = ZERO
        self.expenses = ZERO

    def add(self, record: Record) -> None:
        if record.kind is RecordKind.SALE:
            self.revenue += record.amount
        elif record.kind is RecordKind.EXPENSE:
            self.expenses += record.amount

    def to_point(self, label: str) -> SeriesPoint:
        return SeriesPoint(
            label=label,
            revenue=self.revenue,
            expenses=self.expenses,
            profit=self.revenue - self.expenses,
        )


def group_by_key(
    records: Iterable[Record],
    window: TimeWindow,
    key_format: str,
) -> list[SeriesPoint]:
    """
    Group the records in `window` by `occurred_at.strftime(key_format)`.

    Buckets come out in the order their key is first seen in the input.
    """
    buckets: dict[str, _Bucket] = {}
    if window.is_empty:
        return []

    for record in records:
        if not window.contains(record.occurred_at):
            continue
        key = record.occurred_at.strftime(key_format)
        buckets.setdefault(key, _Bucket()).add(record)

    return [bucket.to_point(key) for key, bucket in buckets.items()]


def daily_series(
    records: Iterable[Record],
    first_day: date,
    days: int = 7,
    key_format: str = "%d/%m",
) -> list[SeriesPoint]:
    """
    One bucket per calendar day starting at `first_day`.

    Every day is present even without activity, so the chart keeps a
    fixed width.
    """
    if days <= 0:
        return []
    if isinstance(first_day, datetime):
        first_day = first_day.date()

    # Keyed by date: labels repeat once the span passes a year
    buckets: dict[date, _Bucket] = {
        first_day + timedelta(days=offset): _Bucket() for offset in range(days)
    }

    window = day_bounds(first_day, first_day + timedelta(days=days - 1))
    for record in records:
        if not window.contains(record.occurred_at):
            continue
        buckets[record.occurred_at.date()].add(record)

    return [
        bucket.to_point(day.strftime(key_format))
        for day, bucket in buckets.items()
    ]


def recent_records(records: Iterable[Record], limit: int = 10) -> list[Record]:
    """
    The `limit` most recent records, newest first.

    Ordered by `occurred_at`, then by `recorded_at`; the delivery order of
    the store is not relied upon.
    """
    if limit <= 0:
        return []
    ordered = sorted(
        records,
        key=lambda r: (r.occurred_at, r.recorded_at),
        reverse=True,
    )
    return ordered[:limit]

