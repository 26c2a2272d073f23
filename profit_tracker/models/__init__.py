"""
Data Models Package

This package contains all Pydantic models used in Profit Tracker.
All data flowing through the system must conform to these schemas.
"""

from profit_tracker.models.record import (
    DEFAULT_EXPENSE_CATEGORY,
    EXPENSE_CATEGORIES,
    Record,
    RecordKind,
    to_local_naive,
)
from profit_tracker.models.goal import (
    Goal,
    GoalHorizon,
    MarginMode,
)
from profit_tracker.models.stats import (
    GoalProjection,
    PeriodStats,
    SeriesPoint,
    TimeWindow,
    WindowPreset,
)
from profit_tracker.models.results import (
    ValidationIssue,
    ValidationResult,
    WriteResult,
)
from profit_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "DEFAULT_EXPENSE_CATEGORY",
    "EXPENSE_CATEGORIES",
    "Record",
    "RecordKind",
    "to_local_naive",
    # Goal models
    "Goal",
    "GoalHorizon",
    "MarginMode",
    # Derived statistics
    "GoalProjection",
    "PeriodStats",
    "SeriesPoint",
    "TimeWindow",
    "WindowPreset",
    # Results
    "ValidationIssue",
    "ValidationResult",
    "WriteResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
