"""Ingestion and input validation package."""

from profit_tracker.validation.ingestion import (
    GOAL_FIELDS,
    RECORD_FIELDS,
    IngestionError,
    goal_from_document,
    goal_to_document,
    record_from_document,
    record_to_document,
)
from profit_tracker.validation.validator import EntryValidator

__all__ = [
    "GOAL_FIELDS",
    "RECORD_FIELDS",
    "EntryValidator",
    "IngestionError",
    "goal_from_document",
    "goal_to_document",
    "record_from_document",
    "record_to_document",
]
