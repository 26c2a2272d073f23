"""
Derived Statistics Models

Everything in this module is computed from records and goals on every
read and is never persisted.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from profit_tracker.models.goal import GoalHorizon, MarginMode
from profit_tracker.models.record import to_local_naive


ZERO = Decimal("0")
HUNDRED = Decimal("100")


class WindowPreset(str, Enum):
    """Time windows the dashboard and reports can be filtered by."""
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    CUSTOM = "custom"


class TimeWindow(BaseModel):
    """
    Half-open instant range [start, end).

    A window whose end is not after its start is empty and matches nothing.
    Bounds are naive local time, like record timestamps.
    """
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def use_local_time(cls, value: datetime) -> datetime:
        return to_local_naive(value)

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


class PeriodStats(BaseModel):
    """
    Summary of the records that fall inside one window.

    `margin` is a ratio (profit / revenue); it is only turned into a
    percentage for display.
    """
    model_config = ConfigDict(frozen=True)

    window: TimeWindow
    revenue: Decimal = ZERO
    expenses: Decimal = ZERO
    investments: Decimal = ZERO
    profit: Decimal = ZERO
    margin: Decimal = ZERO
    expense_by_category: dict[str, Decimal] = Field(default_factory=dict)
    record_count: int = Field(default=0, ge=0)

    @property
    def margin_percent(self) -> Decimal:
        return self.margin * HUNDRED


class SeriesPoint(BaseModel):
    """One bucket of a chart series (e.g. one day)."""
    model_config = ConfigDict(frozen=True)

    label: str
    revenue: Decimal = ZERO
    expenses: Decimal = ZERO
    profit: Decimal = ZERO


class GoalProjection(BaseModel):
    """
    Progress of a goal and the daily pace required to reach it.

    These are advisory numbers for the UI. Degenerate inputs
    (no revenue, no days left, zero margin) produce zeros, not errors.
    """
    model_config = ConfigDict(frozen=True)

    goal_id: Optional[str] = None
    horizon: GoalHorizon
    margin_mode: MarginMode
    target_amount: Decimal

    effective_margin: Decimal = ZERO
    current_progress: Decimal = ZERO
    remaining: Decimal = ZERO
    progress_percent: Decimal = ZERO
    effective_days: int = Field(default=0, ge=0)
    daily_profit_needed: Decimal = ZERO
    daily_revenue_needed: Decimal = ZERO

    @property
    def is_reached(self) -> bool:
        return self.remaining == ZERO
