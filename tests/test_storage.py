"""
Tests for the storage layer

The Google Sheets backend is exercised against an in-process fake
worksheet; no network calls are made.
"""

import asyncio
from datetime import datetime
from decimal import Decimal

import pytest

from profit_tracker.models import (
    AuditEventBuilder,
    Goal,
    GoalHorizon,
    RecordKind,
)
from profit_tracker.services import (
    GoogleSheetsAuditStorage,
    GoogleSheetsGoalStorage,
    GoogleSheetsRecordStorage,
    InMemoryAuditStorage,
    InMemoryGoalStorage,
    InMemoryRecordStorage,
)
from profit_tracker.services.storage.google_sheets import AUDIT_COLUMNS
from profit_tracker.validation import GOAL_FIELDS, RECORD_FIELDS


NOW = datetime(2024, 6, 20, 12)


def run(coro):
    return asyncio.run(coro)


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage classes."""

    def __init__(self, header: list[str]):
        self.rows = [list(header)]

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def delete_rows(self, index: int):
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self):
        self.records = FakeWorksheet(RECORD_FIELDS)
        self.goals = FakeWorksheet(GOAL_FIELDS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_records_sheet(self):
        return self.records

    def get_goals_sheet(self):
        return self.goals

    def get_audit_sheet(self):
        return self.audit


class TestInMemoryRecordStorage:
    """Tests for the in-memory record store."""

    def test_create_assigns_id(self, make_record):
        storage = InMemoryRecordStorage()
        stored = run(storage.create_record(make_record(RecordKind.SALE, "10", NOW)))
        assert stored.id
        assert run(storage.list_records("user-1")) == [stored]

    def test_records_are_scoped_to_owner(self, make_record):
        storage = InMemoryRecordStorage()
        run(storage.create_record(make_record(RecordKind.SALE, "10", NOW)))
        run(storage.create_record(
            make_record(RecordKind.SALE, "20", NOW, owner_id="user-2")
        ))
        assert len(run(storage.list_records("user-1"))) == 1
        assert len(run(storage.list_records("user-2"))) == 1

    def test_delete_of_unknown_id(self):
        storage = InMemoryRecordStorage()
        assert run(storage.delete_record("user-1", "missing")) is False

    def test_delete_all(self, make_record):
        storage = InMemoryRecordStorage()
        for amount in ("1", "2", "3"):
            run(storage.create_record(make_record(RecordKind.SALE, amount, NOW)))
        assert run(storage.delete_all_records("user-1")) == 3
        assert run(storage.list_records("user-1")) == []


class TestSubscriptions:
    """Tests for snapshot delivery."""

    def test_initial_and_follow_up_snapshots(self, make_record):
        storage = InMemoryRecordStorage()
        snapshots = []

        async def scenario():
            await storage.subscribe_records("user-1", snapshots.append)
            stored = await storage.create_record(make_record(RecordKind.SALE, "10", NOW))
            await storage.delete_record("user-1", stored.id)

        run(scenario())

        assert [len(s) for s in snapshots] == [0, 1, 0]

    def test_other_owners_do_not_notify(self, make_record):
        storage = InMemoryRecordStorage()
        snapshots = []

        async def scenario():
            await storage.subscribe_records("user-1", snapshots.append)
            await storage.create_record(
                make_record(RecordKind.SALE, "10", NOW, owner_id="user-2")
            )

        run(scenario())

        assert snapshots == [[]]

    def test_failing_callback_does_not_block_others(self, make_record):
        storage = InMemoryRecordStorage()
        received = []

        def broken(snapshot):
            raise RuntimeError("render failed")

        async def scenario():
            await storage.subscribe_records("user-1", broken)
            await storage.subscribe_records("user-1", received.append)
            await storage.create_record(make_record(RecordKind.SALE, "10", NOW))

        run(scenario())

        assert [len(s) for s in received] == [0, 1]

    def test_unsubscribe_stops_delivery(self, make_record):
        storage = InMemoryRecordStorage()
        snapshots = []

        async def scenario():
            subscription = await storage.subscribe_records("user-1", snapshots.append)
            subscription.unsubscribe()
            assert not subscription.active
            await storage.create_record(make_record(RecordKind.SALE, "10", NOW))

        run(scenario())

        assert snapshots == [[]]

    def test_goal_subscription(self):
        storage = InMemoryGoalStorage()
        snapshots = []

        async def scenario():
            await storage.subscribe_goals("user-1", snapshots.append)
            await storage.create_goal(Goal(
                owner_id="user-1",
                horizon=GoalHorizon.MONTHLY,
                target_amount=Decimal("100"),
            ))

        run(scenario())

        assert [len(s) for s in snapshots] == [0, 1]


class TestGoogleSheetsStorage:
    """Tests for the Sheets backend against a fake worksheet."""

    def test_record_round_trip(self, make_record):
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)

        stored = run(storage.create_record(
            make_record(RecordKind.EXPENSE, "45.90", NOW, category="Fixed")
        ))
        listed = run(storage.list_records("user-1"))

        assert listed == [stored]
        assert client.records.rows[1][0] == stored.id

    def test_malformed_rows_are_skipped(self, make_record):
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)
        run(storage.create_record(make_record(RecordKind.SALE, "10", NOW)))
        client.records.append_row(
            ["bad-1", "user-1", "refund", "abc", "", "", "?", "", ""]
        )

        listed = run(storage.list_records("user-1"))

        assert len(listed) == 1
        assert listed[0].amount == Decimal("10")

    @pytest.mark.parametrize("occurred_at", ["inf", "1e30", "nan"])
    def test_out_of_range_timestamp_row_is_skipped(self, make_record, occurred_at):
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)
        run(storage.create_record(make_record(RecordKind.SALE, "10", NOW)))
        client.records.append_row(
            ["bad-2", "user-1", "sale", "10", "", "", "Cake", occurred_at, ""]
        )

        listed = run(storage.list_records("user-1"))

        assert [r.amount for r in listed] == [Decimal("10")]

    def test_delete_record_removes_row(self, make_record):
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)
        first = run(storage.create_record(make_record(RecordKind.SALE, "1", NOW)))
        second = run(storage.create_record(make_record(RecordKind.SALE, "2", NOW)))

        assert run(storage.delete_record("user-1", first.id)) is True
        assert run(storage.delete_record("user-2", second.id)) is False
        assert [r.id for r in run(storage.list_records("user-1"))] == [second.id]

    def test_delete_all_keeps_other_owners(self, make_record):
        client = FakeSheetsClient()
        storage = GoogleSheetsRecordStorage(client)
        for owner in ("user-1", "user-2", "user-1"):
            run(storage.create_record(
                make_record(RecordKind.SALE, "1", NOW, owner_id=owner)
            ))

        assert run(storage.delete_all_records("user-1")) == 2
        assert len(client.records.rows) == 2
        assert len(run(storage.list_records("user-2"))) == 1

    def test_goal_round_trip(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsGoalStorage(client)
        stored = run(storage.create_goal(Goal(
            owner_id="user-1",
            horizon=GoalHorizon.CUSTOM,
            target_amount=Decimal("900"),
            work_days=9,
            created_at=NOW,
        )))

        assert run(storage.list_goals("user-1")) == [stored]
        assert run(storage.delete_all_goals("user-1")) == 1

    def test_audit_events(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsAuditStorage(client)
        event = AuditEventBuilder.record_deleted(owner_id="user-1", record_id="rec-1")

        assert run(storage.append_event(event)) is True
        (loaded,) = run(storage.get_recent_events())

        assert loaded.event_id == event.event_id
        assert loaded.entity_id == "rec-1"
        assert loaded.is_user_action is True


class TestInMemoryAuditStorage:
    def test_recent_events_newest_first(self):
        storage = InMemoryAuditStorage()
        first = AuditEventBuilder.record_deleted(owner_id="user-1", record_id="a")
        second = AuditEventBuilder.record_deleted(owner_id="user-1", record_id="b")
        second = second.model_copy(update={"timestamp": first.timestamp.replace(year=first.timestamp.year + 1)})

        run(storage.append_event(first))
        run(storage.append_event(second))

        assert [e.entity_id for e in run(storage.get_recent_events())] == ["b", "a"]
