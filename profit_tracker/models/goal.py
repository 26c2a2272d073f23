"""
Profit Goal Models

A Goal is a net-profit target over a time horizon, together with the
margin assumption used to turn the remaining profit into a daily revenue
pace.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from profit_tracker.models.record import to_local_naive


class GoalHorizon(str, Enum):
    """Period a goal is measured against."""
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    CUSTOM = "custom"  # Spread over a number of work days


class MarginMode(str, Enum):
    """Where the margin of a goal comes from."""
    AUTOMATIC = "automatic"  # Derived from the period statistics
    MANUAL = "manual"        # User supplied percentage


class Goal(BaseModel):
    """
    A user-defined profit target.

    Goals are created and deleted whole. There is no partial update.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(
        default=None,
        description="Storage-assigned identifier"
    )
    owner_id: str = Field(
        ...,
        min_length=1,
        description="Account this goal belongs to"
    )
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="When the goal was created"
    )

    horizon: GoalHorizon
    target_amount: Decimal = Field(
        ...,
        gt=0,
        description="Net profit to reach within the horizon"
    )
    work_days: Optional[int] = Field(
        default=None,
        gt=0,
        le=366,
        description="Remaining working days (custom horizon only)"
    )
    margin_mode: MarginMode = MarginMode.AUTOMATIC
    manual_margin_percent: Optional[Decimal] = Field(
        default=None,
        ge=0,
        le=100,
        description="Margin percentage used in manual mode"
    )

    @field_validator("created_at")
    @classmethod
    def use_local_time(cls, value: datetime) -> datetime:
        return to_local_naive(value)

    @model_validator(mode='before')
    @classmethod
    def clear_unused_fields(cls, data: Any) -> Any:
        """Drop work days / manual margin when the goal does not use them."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        try:
            if GoalHorizon(data.get("horizon")) is not GoalHorizon.CUSTOM:
                data["work_days"] = None
        except ValueError:
            # Reported by field validation
            pass
        try:
            mode = MarginMode(data.get("margin_mode", MarginMode.AUTOMATIC))
            if mode is MarginMode.AUTOMATIC:
                data["manual_margin_percent"] = None
        except ValueError:
            pass
        return data

    @model_validator(mode='after')
    def validate_required_by_mode(self) -> 'Goal':
        """Custom goals need work days; manual margins need a percentage."""
        if self.horizon is GoalHorizon.CUSTOM and self.work_days is None:
            raise ValueError("Custom goals require the number of work days")
        if (
            self.margin_mode is MarginMode.MANUAL
            and self.manual_margin_percent is None
        ):
            raise ValueError("Manual margin mode requires a margin percentage")
        return self

    def with_id(self, goal_id: str) -> "Goal":
        """Return a copy carrying the storage-assigned id."""
        return self.model_copy(update={"id": goal_id})
