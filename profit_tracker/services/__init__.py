"""Services package."""

from profit_tracker.services.session import (
    SessionProvider,
    StaticSessionProvider,
    UserSession,
)
from profit_tracker.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoalStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsGoalStorage,
    GoogleSheetsRecordStorage,
    InMemoryAuditStorage,
    InMemoryGoalStorage,
    InMemoryRecordStorage,
    RecordStorageInterface,
    StorageError,
    Subscription,
)

__all__ = [
    # Session
    "SessionProvider",
    "StaticSessionProvider",
    "UserSession",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "GoalStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsGoalStorage",
    "GoogleSheetsRecordStorage",
    "InMemoryAuditStorage",
    "InMemoryGoalStorage",
    "InMemoryRecordStorage",
    "RecordStorageInterface",
    "StorageError",
    "Subscription",
]
