"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend; the in-memory backend is a drop-in
fake for tests and offline use.
"""

from profit_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    GoalStorageInterface,
    RecordStorageInterface,
    StorageError,
)
from profit_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryGoalStorage,
    InMemoryRecordStorage,
)
from profit_tracker.services.storage.subscriptions import (
    SnapshotPublisher,
    Subscription,
)
from profit_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsGoalStorage,
    GoogleSheetsRecordStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "GoalStorageInterface",
    "RecordStorageInterface",
    # Subscriptions
    "SnapshotPublisher",
    "Subscription",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryGoalStorage",
    "InMemoryRecordStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsGoalStorage",
    "GoogleSheetsRecordStorage",
]
