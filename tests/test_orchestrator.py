"""
Tests for the application flows

Flows run against in-memory storage. Store failures are simulated with
subclasses that raise StorageError.
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal

import pytest

from profit_tracker.audit import AuditLogger
from profit_tracker.models import (
    AuditEventType,
    GoalHorizon,
    MarginMode,
    RecordKind,
    WindowPreset,
)
from profit_tracker.orchestrator import (
    GoalFlow,
    LedgerFlow,
    SnapshotCache,
    build_dashboard,
    create_app_components,
)
from profit_tracker.services import (
    InMemoryAuditStorage,
    InMemoryGoalStorage,
    InMemoryRecordStorage,
    StaticSessionProvider,
    StorageError,
    UserSession,
)
from profit_tracker.validation import EntryValidator


NOW = datetime(2024, 6, 20, 15, 30)


def run(coro):
    return asyncio.run(coro)


class FailingRecordStorage(InMemoryRecordStorage):
    async def create_record(self, record):
        raise StorageError("permission denied")

    async def delete_record(self, owner_id, record_id):
        raise StorageError("permission denied")


class FailingGoalStorage(InMemoryGoalStorage):
    async def create_goal(self, goal):
        raise StorageError("quota exceeded")


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def ledger(app_settings, audit_storage):
    return LedgerFlow(
        record_storage=InMemoryRecordStorage(),
        goal_storage=InMemoryGoalStorage(),
        validator=EntryValidator(app_settings),
        audit_logger=AuditLogger(audit_storage),
    )


@pytest.fixture
def goal_flow(app_settings, audit_storage):
    return GoalFlow(
        goal_storage=InMemoryGoalStorage(),
        validator=EntryValidator(app_settings),
        audit_logger=AuditLogger(audit_storage),
        settings=app_settings,
    )


def event_types(audit_storage):
    return [event.event_type for event in audit_storage.events]


class TestLedgerFlow:
    """Tests for adding and deleting records."""

    def test_add_sale(self, ledger, session, audit_storage):
        result = run(ledger.add_record(
            session,
            kind=RecordKind.SALE,
            amount=150.5,
            description="Cake",
            occurred_on=date.today(),
            product_cost=60,
        ))

        assert result.ok
        (record,) = run(ledger.list_records(session))
        assert record.id == result.entity_id
        assert record.amount == Decimal("150.5")
        assert record.product_cost == Decimal("60")
        assert record.occurred_at == datetime.combine(date.today(), datetime.min.time())
        assert event_types(audit_storage) == [AuditEventType.RECORD_CREATED]

    def test_expense_keeps_category(self, ledger, session):
        result = run(ledger.add_record(
            session,
            kind="expense",
            amount="80",
            description="Rent",
            occurred_on=date.today(),
            category="Fixed",
        ))

        assert result.ok
        (record,) = run(ledger.list_records(session))
        assert record.kind is RecordKind.EXPENSE
        assert record.category == "Fixed"

    def test_signed_out_user_cannot_write(self, ledger):
        result = run(ledger.add_record(
            None,
            kind=RecordKind.SALE,
            amount=10,
            description="Cake",
            occurred_on=date.today(),
        ))
        assert not result.ok
        assert "signed in" in result.error

    def test_invalid_input_is_rejected_and_audited(self, ledger, session, audit_storage):
        result = run(ledger.add_record(
            session,
            kind=RecordKind.SALE,
            amount=0,
            description="",
            occurred_on=date.today(),
        ))

        assert not result.ok
        assert "Please fix" in result.error
        assert run(ledger.list_records(session)) == []
        assert event_types(audit_storage) == [AuditEventType.ENTRY_REJECTED]

    @pytest.mark.parametrize("amount", ["nan", "inf", float("nan"), float("-inf")])
    def test_non_finite_amount_is_rejected(self, ledger, session, audit_storage, amount):
        result = run(ledger.add_record(
            session,
            kind=RecordKind.SALE,
            amount=amount,
            description="Cake",
            occurred_on=date.today(),
        ))

        assert not result.ok
        assert run(ledger.list_records(session)) == []
        assert event_types(audit_storage) == [AuditEventType.ENTRY_REJECTED]

    def test_store_failure_becomes_write_result(self, app_settings, session, audit_storage):
        ledger = LedgerFlow(
            record_storage=FailingRecordStorage(),
            validator=EntryValidator(app_settings),
            audit_logger=AuditLogger(audit_storage),
        )

        result = run(ledger.add_record(
            session,
            kind=RecordKind.SALE,
            amount=10,
            description="Cake",
            occurred_on=date.today(),
        ))

        assert not result.ok
        assert "permission denied" in result.error
        assert event_types(audit_storage) == [AuditEventType.WRITE_FAILED]

    def test_delete_record(self, ledger, session, audit_storage):
        created = run(ledger.add_record(
            session,
            kind=RecordKind.INVESTMENT,
            amount=500,
            description="Oven",
            occurred_on=date.today(),
        ))

        result = run(ledger.delete_record(session, created.entity_id))

        assert result.ok
        assert run(ledger.list_records(session)) == []
        assert event_types(audit_storage)[-1] == AuditEventType.RECORD_DELETED

    def test_delete_missing_record(self, ledger, session):
        result = run(ledger.delete_record(session, "missing"))
        assert not result.ok

    def test_delete_failure(self, app_settings, session):
        ledger = LedgerFlow(
            record_storage=FailingRecordStorage(),
            validator=EntryValidator(app_settings),
        )
        result = run(ledger.delete_record(session, "rec-1"))
        assert not result.ok
        assert "permission denied" in result.error

    def test_clear_user_data(self, app_settings, session, audit_storage):
        goal_storage = InMemoryGoalStorage()
        ledger = LedgerFlow(
            record_storage=InMemoryRecordStorage(),
            goal_storage=goal_storage,
            validator=EntryValidator(app_settings),
            audit_logger=AuditLogger(audit_storage),
        )
        goals = GoalFlow(goal_storage, EntryValidator(app_settings), settings=app_settings)

        run(ledger.add_record(
            session, RecordKind.SALE, 10, "Cake", date.today()
        ))
        run(goals.create_goal(session, GoalHorizon.MONTHLY, 1000))

        result = run(ledger.clear_user_data(session))

        assert result.ok
        assert run(ledger.list_records(session)) == []
        assert run(goals.list_goals(session)) == []
        cleared = audit_storage.events[-1]
        assert cleared.event_type == AuditEventType.USER_DATA_CLEARED
        assert cleared.details["records_deleted"] == 1
        assert cleared.details["goals_deleted"] == 1

    def test_watch_records_fills_cache(self, ledger, session):
        cache = SnapshotCache()

        async def scenario():
            await ledger.watch_records(session, cache)
            await ledger.add_record(session, RecordKind.SALE, 10, "Cake", date.today())

        run(scenario())

        assert cache.version == 2
        assert len(cache.snapshot) == 1


class TestGoalFlow:
    """Tests for creating goals and projecting them."""

    def test_create_goal(self, goal_flow, session, audit_storage):
        result = run(goal_flow.create_goal(
            session,
            horizon=GoalHorizon.CUSTOM,
            target_amount=1200,
            work_days=12,
            margin_mode=MarginMode.MANUAL,
            manual_margin_percent=40,
        ))

        assert result.ok
        (goal,) = run(goal_flow.list_goals(session))
        assert goal.id == result.entity_id
        assert goal.work_days == 12
        assert goal.manual_margin_percent == Decimal("40")
        assert event_types(audit_storage) == [AuditEventType.GOAL_CREATED]

    def test_invalid_goal(self, goal_flow, session):
        result = run(goal_flow.create_goal(session, GoalHorizon.CUSTOM, 1200))
        assert not result.ok
        assert run(goal_flow.list_goals(session)) == []

    @pytest.mark.parametrize("target", ["nan", "Infinity"])
    def test_non_finite_target_is_rejected(self, goal_flow, session, target):
        result = run(goal_flow.create_goal(session, GoalHorizon.MONTHLY, target))
        assert not result.ok
        assert run(goal_flow.list_goals(session)) == []

    def test_non_finite_manual_margin_is_rejected(self, goal_flow, session):
        result = run(goal_flow.create_goal(
            session,
            GoalHorizon.MONTHLY,
            1000,
            margin_mode=MarginMode.MANUAL,
            manual_margin_percent="nan",
        ))
        assert not result.ok

    def test_store_failure(self, app_settings, session):
        flow = GoalFlow(FailingGoalStorage(), EntryValidator(app_settings), settings=app_settings)
        result = run(flow.create_goal(session, GoalHorizon.MONTHLY, 500))
        assert not result.ok
        assert "quota exceeded" in result.error

    def test_delete_goal(self, goal_flow, session):
        created = run(goal_flow.create_goal(session, GoalHorizon.WEEKLY, 500))
        assert run(goal_flow.delete_goal(session, created.entity_id)).ok
        assert not run(goal_flow.delete_goal(session, created.entity_id)).ok

    def test_projections_use_one_snapshot(self, goal_flow, session, make_record):
        run(goal_flow.create_goal(session, GoalHorizon.MONTHLY, 3000))
        goals = run(goal_flow.list_goals(session))
        records = [
            make_record(RecordKind.SALE, "2000", datetime(2024, 6, 5)),
            make_record(RecordKind.EXPENSE, "1000", datetime(2024, 6, 6), category="Fixed"),
        ]

        (projection,) = goal_flow.projections(records, goals, now=NOW)

        assert projection.current_progress == Decimal("1000")
        assert projection.effective_days == 11
        assert projection.daily_revenue_needed.quantize(Decimal("0.01")) == Decimal("363.64")


class TestDashboard:
    """Tests for the dashboard view."""

    def test_build_dashboard(self, make_record):
        records = [
            make_record(RecordKind.SALE, "500", datetime(2024, 6, 20, 9)),
            make_record(RecordKind.EXPENSE, "200", datetime(2024, 6, 19), category="Fixed"),
            make_record(RecordKind.SALE, "70", datetime(2024, 5, 31)),
        ]

        view = build_dashboard(records, now=NOW, preset=WindowPreset.THIS_MONTH, recent_limit=2)

        assert view.stats.revenue == Decimal("500")
        assert view.stats.profit == Decimal("300")
        assert len(view.recent) == 2
        assert view.recent[0].amount == Decimal("500")
        assert len(view.series) == 7
        assert view.series[-1].label == "20/06"
        assert view.series[-1].revenue == Decimal("500")

    def test_custom_preset_needs_dates(self):
        with pytest.raises(ValueError):
            build_dashboard([], now=NOW, preset=WindowPreset.CUSTOM)


class TestSnapshotCache:
    def test_last_write_wins(self):
        cache = SnapshotCache()
        seen = []
        cache.on_change(seen.append)

        cache([1, 2])
        cache([3])

        assert cache.snapshot == [3]
        assert cache.version == 2
        assert seen == [[1, 2], [3]]

    def test_snapshot_is_a_copy(self):
        cache = SnapshotCache()
        cache([1])
        cache.snapshot.append(2)
        assert cache.snapshot == [1]
        assert cache.loaded


class TestComponents:
    def test_in_memory_components(self):
        ledger, goals, client = create_app_components(use_storage=False)
        assert client is None
        assert isinstance(ledger, LedgerFlow)
        assert isinstance(goals, GoalFlow)

    def test_static_session_sign_out(self):
        provider = StaticSessionProvider(UserSession(user_id="user-1"))
        assert provider.current_user().user_id == "user-1"
        provider.sign_out()
        assert provider.current_user() is None
