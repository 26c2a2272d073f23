"""
Record Aggregator

Reduces a snapshot of records into the statistics of one time window.

The function is pure and total: any finite list (including an empty one)
and any window produce a result, and calling it twice with the same
snapshot gives the same answer. Sums follow the input order; no sorting
is needed because only totals are produced.

PROFIT MODEL: profit = revenue - expenses. Per-sale product cost is not
subtracted, and investments never affect profit.
"""

from decimal import Decimal
from typing import Iterable

from profit_tracker.models.record import DEFAULT_EXPENSE_CATEGORY, Record, RecordKind
from profit_tracker.models.stats import ZERO, PeriodStats, TimeWindow


def margin_of(profit: Decimal, revenue: Decimal) -> Decimal:
    """Profit / revenue, or 0 when there is no revenue."""
    if revenue > ZERO:
        return profit / revenue
    return ZERO


def aggregate(
    records: Iterable[Record],
    window: TimeWindow,
    default_category: str = DEFAULT_EXPENSE_CATEGORY,
) -> PeriodStats:
    """
    Summarize the records whose `occurred_at` falls in [start, end).

    Args:
        records: One consistent snapshot of the user's records
        window: Bounds to filter by; an empty window yields all zeros
        default_category: Label for expenses recorded without a category

    Returns:
        PeriodStats for the window
    """
    if window.is_empty:
        return PeriodStats(window=window)

    revenue = ZERO
    expenses = ZERO
    investments = ZERO
    by_category: dict[str, Decimal] = {}
    count = 0

    for record in records:
        if not window.contains(record.occurred_at):
            continue
        count += 1

        if record.kind is RecordKind.SALE:
            revenue += record.amount
        elif record.kind is RecordKind.EXPENSE:
            expenses += record.amount
            label = record.category or default_category
            by_category[label] = by_category.get(label, ZERO) + record.amount
        elif record.kind is RecordKind.INVESTMENT:
            investments += record.amount

    profit = revenue - expenses

    return PeriodStats(
        window=window,
        revenue=revenue,
        expenses=expenses,
        investments=investments,
        profit=profit,
        margin=margin_of(profit, revenue),
        expense_by_category=by_category,
        record_count=count,
    )
