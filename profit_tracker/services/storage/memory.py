"""
In-Memory Storage

A fake document store with the same contract as the hosted one. Used by
the tests and when the app runs without Google Sheets configured (data
lives for the lifetime of the process).
"""

from uuid import uuid4

from profit_tracker.models.audit import AuditEvent
from profit_tracker.models.goal import Goal
from profit_tracker.models.record import Record
from profit_tracker.services.storage.interface import (
    AuditStorageInterface,
    GoalStorageInterface,
    RecordStorageInterface,
)


def new_document_id() -> str:
    return uuid4().hex


class InMemoryRecordStorage(RecordStorageInterface):
    """Records kept in a dict per owner, in insertion order."""

    def __init__(self):
        super().__init__()
        self._records: dict[str, dict[str, Record]] = {}

    async def create_record(self, record: Record) -> Record:
        stored = record.with_id(new_document_id())
        self._records.setdefault(stored.owner_id, {})[stored.id] = stored
        await self._publish_records(stored.owner_id)
        return stored

    async def delete_record(self, owner_id: str, record_id: str) -> bool:
        removed = self._records.get(owner_id, {}).pop(record_id, None)
        if removed is None:
            return False
        await self._publish_records(owner_id)
        return True

    async def list_records(self, owner_id: str) -> list[Record]:
        return list(self._records.get(owner_id, {}).values())

    async def delete_all_records(self, owner_id: str) -> int:
        removed = self._records.pop(owner_id, {})
        if removed:
            await self._publish_records(owner_id)
        return len(removed)


class InMemoryGoalStorage(GoalStorageInterface):
    """Goals kept in a dict per owner, in insertion order."""

    def __init__(self):
        super().__init__()
        self._goals: dict[str, dict[str, Goal]] = {}

    async def create_goal(self, goal: Goal) -> Goal:
        stored = goal.with_id(new_document_id())
        self._goals.setdefault(stored.owner_id, {})[stored.id] = stored
        await self._publish_goals(stored.owner_id)
        return stored

    async def delete_goal(self, owner_id: str, goal_id: str) -> bool:
        removed = self._goals.get(owner_id, {}).pop(goal_id, None)
        if removed is None:
            return False
        await self._publish_goals(owner_id)
        return True

    async def list_goals(self, owner_id: str) -> list[Goal]:
        return list(self._goals.get(owner_id, {}).values())

    async def delete_all_goals(self, owner_id: str) -> int:
        removed = self._goals.pop(owner_id, {})
        if removed:
            await self._publish_goals(owner_id)
        return len(removed)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
