"""
Goal Projector

Turns a profit goal plus the statistics of its period into progress and
the daily pace needed to hit the target.

DESIGN DECISION: Projections are advisory numbers shown in a UI, not
financial commitments. Every division by zero resolves to 0 instead of
raising:
- no days left           -> daily profit needed = 0
- zero/negative margin   -> daily revenue needed = 0
- non-positive target    -> progress = 0%
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from profit_tracker.aggregation import (
    aggregate,
    days_in_month,
    days_since_week_start,
    month_to_date,
    week_to_date,
)
from profit_tracker.models.goal import Goal, GoalHorizon, MarginMode
from profit_tracker.models.record import (
    DEFAULT_EXPENSE_CATEGORY,
    Record,
    to_local_naive,
)
from profit_tracker.models.stats import (
    HUNDRED,
    ZERO,
    GoalProjection,
    PeriodStats,
    TimeWindow,
)


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def horizon_window(
    goal: Goal,
    now: datetime,
    week_start: int = 0,
    custom_window: Optional[TimeWindow] = None,
) -> TimeWindow:
    """
    Window whose profit counts towards the goal.

    Monthly goals use the month to date and weekly goals the week to date.
    Custom goals use `custom_window`, falling back to the month to date.
    """
    if goal.horizon is GoalHorizon.WEEKLY:
        return week_to_date(now, week_start)
    if goal.horizon is GoalHorizon.CUSTOM and custom_window is not None:
        return custom_window
    return month_to_date(now)


def remaining_days(
    horizon: GoalHorizon,
    now: datetime,
    week_start: int = 0,
    work_days: Optional[int] = None,
) -> int:
    """
    Days left to spread the remaining profit over, today included.

    Custom goals use their work day count. Monthly and weekly goals count
    the calendar days left in the period: (days in period) - (days
    elapsed) + 1.
    """
    if horizon is GoalHorizon.CUSTOM:
        days = work_days or 0
    elif horizon is GoalHorizon.WEEKLY:
        elapsed = days_since_week_start(now, week_start) + 1
        days = 7 - elapsed + 1
    else:
        days = days_in_month(now) - now.day + 1
    return max(0, days)


def effective_margin(
    goal: Goal,
    stats: Optional[PeriodStats] = None,
    margin_override: Optional[Decimal] = None,
) -> Decimal:
    """Margin ratio used to convert profit into revenue."""
    if margin_override is not None:
        return _dec(margin_override)
    if goal.margin_mode is MarginMode.MANUAL:
        return _dec(goal.manual_margin_percent) / HUNDRED
    if stats is None:
        return ZERO
    return stats.margin


def project_goal(
    goal: Goal,
    stats: Optional[PeriodStats] = None,
    now: Optional[datetime] = None,
    margin_override: Optional[Decimal] = None,
    week_start: int = 0,
) -> GoalProjection:
    """
    Project a goal against the statistics of its period.

    Args:
        goal: The goal to project
        stats: Aggregated statistics for the goal's horizon window.
               Supplies the current progress (profit) and, in automatic
               mode, the margin. Without it progress is 0.
        now: Reference instant (defaults to the current time)
        margin_override: Margin ratio to use instead of the goal's own
        week_start: First weekday for weekly goals (0 = Monday)

    Returns:
        GoalProjection (never raises for degenerate inputs)
    """
    now = to_local_naive(now or datetime.now())

    target = _dec(goal.target_amount)
    progress = stats.profit if stats is not None else ZERO
    margin = effective_margin(goal, stats, margin_override)

    remaining = max(ZERO, target - progress)

    if target > ZERO:
        percent = progress / target * HUNDRED
        percent = min(HUNDRED, max(ZERO, percent))
    else:
        percent = ZERO

    days = remaining_days(goal.horizon, now, week_start, goal.work_days)
    daily_profit = remaining / days if days > 0 else ZERO
    daily_revenue = daily_profit / margin if margin > ZERO else ZERO

    return GoalProjection(
        goal_id=goal.id,
        horizon=goal.horizon,
        margin_mode=goal.margin_mode,
        target_amount=target,
        effective_margin=margin,
        current_progress=progress,
        remaining=remaining,
        progress_percent=percent,
        effective_days=days,
        daily_profit_needed=daily_profit,
        daily_revenue_needed=daily_revenue,
    )


def project_goals(
    goals: Iterable[Goal],
    records: list[Record],
    now: Optional[datetime] = None,
    week_start: int = 0,
    custom_window: Optional[TimeWindow] = None,
    default_category: str = DEFAULT_EXPENSE_CATEGORY,
) -> list[GoalProjection]:
    """
    Aggregate each goal's horizon window and project it.

    `records` must be a single snapshot so every goal sees the same data.
    """
    now = to_local_naive(now or datetime.now())
    projections = []
    for goal in goals:
        window = horizon_window(goal, now, week_start, custom_window)
        stats = aggregate(records, window, default_category)
        projections.append(
            project_goal(goal, stats, now=now, week_start=week_start)
        )
    return projections
