"""Record aggregation package."""

from profit_tracker.aggregation.aggregator import aggregate, margin_of
from profit_tracker.aggregation.series import daily_series, group_by_key, recent_records
from profit_tracker.aggregation.windows import (
    day_bounds,
    days_in_month,
    days_since_week_start,
    month_to_date,
    resolve_window,
    start_of_day,
    start_of_week,
    week_to_date,
)

__all__ = [
    "aggregate",
    "daily_series",
    "day_bounds",
    "days_in_month",
    "days_since_week_start",
    "group_by_key",
    "margin_of",
    "month_to_date",
    "recent_records",
    "resolve_window",
    "start_of_day",
    "start_of_week",
    "week_to_date",
]
