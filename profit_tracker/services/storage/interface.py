"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the document store.
This allows us to:
1. Inject the store into the flows instead of reaching a global handle
2. Use in-memory storage for testing
3. Swap Google Sheets for another hosted document store later

The interface mirrors what the application actually needs: create and
delete whole documents, list one user's documents, and get notified with
a fresh snapshot whenever that list changes.
"""

from abc import ABC, abstractmethod
from typing import Callable

from profit_tracker.models.audit import AuditEvent
from profit_tracker.models.goal import Goal
from profit_tracker.models.record import Record
from profit_tracker.services.storage.subscriptions import (
    SnapshotPublisher,
    Subscription,
)


class RecordStorageInterface(ABC):
    """
    Abstract interface for record storage operations.

    Records are never updated: only created or deleted in full.
    """

    def __init__(self):
        self._record_publisher: SnapshotPublisher[Record] = SnapshotPublisher("records")

    @abstractmethod
    async def create_record(self, record: Record) -> Record:
        """
        Persist a new record.

        Args:
            record: The record to save (its id is ignored)

        Returns:
            A copy of the record carrying the storage-assigned id

        Raises:
            StorageError: If the save fails
        """
        pass

    @abstractmethod
    async def delete_record(self, owner_id: str, record_id: str) -> bool:
        """
        Delete one record owned by `owner_id`.

        Returns:
            True if a record was deleted, False if none matched
        """
        pass

    @abstractmethod
    async def list_records(self, owner_id: str) -> list[Record]:
        """
        All records of one user. Order is not guaranteed.
        """
        pass

    @abstractmethod
    async def delete_all_records(self, owner_id: str) -> int:
        """
        Delete every record of one user.

        Returns:
            Number of records deleted
        """
        pass

    async def subscribe_records(
        self,
        owner_id: str,
        callback: Callable[[list[Record]], None],
    ) -> Subscription:
        """
        Receive the user's full record list now and after every change.
        """
        subscription = self._record_publisher.add(owner_id, callback)
        snapshot = await self.list_records(owner_id)
        self._record_publisher.deliver(owner_id, callback, snapshot)
        return subscription

    async def _publish_records(self, owner_id: str) -> None:
        if self._record_publisher.has_listeners(owner_id):
            snapshot = await self.list_records(owner_id)
            self._record_publisher.publish(owner_id, snapshot)


class GoalStorageInterface(ABC):
    """
    Abstract interface for goal storage operations.

    Goals are replaced in full, never partially updated.
    """

    def __init__(self):
        self._goal_publisher: SnapshotPublisher[Goal] = SnapshotPublisher("goals")

    @abstractmethod
    async def create_goal(self, goal: Goal) -> Goal:
        """
        Persist a new goal.

        Returns:
            A copy of the goal carrying the storage-assigned id

        Raises:
            StorageError: If the save fails
        """
        pass

    @abstractmethod
    async def delete_goal(self, owner_id: str, goal_id: str) -> bool:
        """Delete one goal. Returns False if none matched."""
        pass

    @abstractmethod
    async def list_goals(self, owner_id: str) -> list[Goal]:
        """All goals of one user. Order is not guaranteed."""
        pass

    @abstractmethod
    async def delete_all_goals(self, owner_id: str) -> int:
        """Delete every goal of one user. Returns the number deleted."""
        pass

    async def subscribe_goals(
        self,
        owner_id: str,
        callback: Callable[[list[Goal]], None],
    ) -> Subscription:
        """
        Receive the user's full goal list now and after every change.
        """
        subscription = self._goal_publisher.add(owner_id, callback)
        snapshot = await self.list_goals(owner_id)
        self._goal_publisher.deliver(owner_id, callback, snapshot)
        return subscription

    async def _publish_goals(self, owner_id: str) -> None:
        if self._goal_publisher.has_listeners(owner_id):
            snapshot = await self.list_goals(owner_id)
            self._goal_publisher.publish(owner_id, snapshot)


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
