"""
Time Window Resolution

Turns a window preset into concrete [start, end) bounds, resolved against
the caller-supplied "now". All bounds fall on local midnights. An aware
`now` is first converted to naive local time, the form every record
timestamp takes.
"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from profit_tracker.models.record import to_local_naive
from profit_tracker.models.stats import TimeWindow, WindowPreset


DateLike = Union[date, datetime]


def start_of_day(moment: datetime) -> datetime:
    """Midnight at the beginning of `moment`'s day."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(moment: datetime, week_start: int = 0) -> datetime:
    """Midnight of the most recent `week_start` weekday (0 = Monday)."""
    day = start_of_day(moment)
    return day - timedelta(days=(day.weekday() - week_start) % 7)


def start_of_month(moment: datetime) -> datetime:
    return start_of_day(moment).replace(day=1)


def start_of_next_month(moment: datetime) -> datetime:
    first = start_of_month(moment)
    return first + timedelta(days=days_in_month(first))


def days_in_month(day: DateLike) -> int:
    return calendar.monthrange(day.year, day.month)[1]


def days_since_week_start(moment: DateLike, week_start: int = 0) -> int:
    """0 on the first day of the week, 6 on the last."""
    return (moment.weekday() - week_start) % 7


def _as_date(value: DateLike) -> date:
    # datetime is a date subclass, so check it first
    if isinstance(value, datetime):
        return value.date()
    return value


def day_bounds(
    start_date: DateLike,
    end_date: DateLike,
) -> TimeWindow:
    """
    Window covering whole days from `start_date` to `end_date` inclusive.

    A reversed range yields an empty window.
    """
    start = datetime.combine(_as_date(start_date), time.min)
    end = datetime.combine(_as_date(end_date) + timedelta(days=1), time.min)
    return TimeWindow(start=start, end=end)


def month_to_date(now: datetime) -> TimeWindow:
    """First day of the month up to the end of today."""
    now = to_local_naive(now)
    return TimeWindow(
        start=start_of_month(now),
        end=start_of_day(now) + timedelta(days=1),
    )


def week_to_date(now: datetime, week_start: int = 0) -> TimeWindow:
    """First day of the week up to the end of today."""
    now = to_local_naive(now)
    return TimeWindow(
        start=start_of_week(now, week_start),
        end=start_of_day(now) + timedelta(days=1),
    )


def resolve_window(
    preset: WindowPreset,
    now: datetime,
    start_date: Optional[DateLike] = None,
    end_date: Optional[DateLike] = None,
    week_start: int = 0,
) -> TimeWindow:
    """
    Resolve a preset into concrete bounds.

    Args:
        preset: Which window to build
        now: Reference instant (normally the current time)
        start_date: First day of a CUSTOM window (inclusive)
        end_date: Last day of a CUSTOM window (inclusive)
        week_start: First weekday of THIS_WEEK (0 = Monday)

    Raises:
        ValueError: If a CUSTOM window is requested without both dates
    """
    preset = WindowPreset(preset)
    now = to_local_naive(now)

    if preset is WindowPreset.TODAY:
        start = start_of_day(now)
        return TimeWindow(start=start, end=start + timedelta(days=1))

    if preset is WindowPreset.THIS_WEEK:
        start = start_of_week(now, week_start)
        return TimeWindow(start=start, end=start + timedelta(days=7))

    if preset is WindowPreset.THIS_MONTH:
        return TimeWindow(
            start=start_of_month(now),
            end=start_of_next_month(now),
        )

    if start_date is None or end_date is None:
        raise ValueError("A custom window needs both a start and an end date")
    return day_bounds(start_date, end_date)
