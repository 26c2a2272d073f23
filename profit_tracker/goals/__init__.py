"""Goal projection package."""

from profit_tracker.goals.projector import (
    effective_margin,
    horizon_window,
    project_goal,
    project_goals,
    remaining_days,
)

__all__ = [
    "effective_margin",
    "horizon_window",
    "project_goal",
    "project_goals",
    "remaining_days",
]
