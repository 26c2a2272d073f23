"""
Main Orchestrator for Profit Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger entries (form → validate → save → audit)
2. Goals (form → validate → save → project)
3. Dashboard (snapshot → window stats, recent activity, daily series)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written without a signed-in user
- Nothing is written that failed validation
- Store failures come back as a WriteResult, never as an exception
- Every write is audited

The arithmetic in `aggregation` and `goals` is pure. This is the only
layer that talks to storage and the session.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Callable, Generic, Optional, TypeVar
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from profit_tracker.aggregation import (
    aggregate,
    daily_series,
    recent_records,
    resolve_window,
)
from profit_tracker.audit import AuditLogger, create_correlation_id
from profit_tracker.config import AppSettings, get_settings
from profit_tracker.goals import project_goals
from profit_tracker.models import (
    DEFAULT_EXPENSE_CATEGORY,
    Goal,
    GoalHorizon,
    GoalProjection,
    MarginMode,
    PeriodStats,
    Record,
    RecordKind,
    SeriesPoint,
    TimeWindow,
    ValidationResult,
    WindowPreset,
    WriteResult,
    to_local_naive,
)
from profit_tracker.services import (
    GoalStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsGoalStorage,
    GoogleSheetsRecordStorage,
    InMemoryGoalStorage,
    InMemoryRecordStorage,
    RecordStorageInterface,
    Subscription,
    UserSession,
)
from profit_tracker.validation import EntryValidator


logger = structlog.get_logger()

NOT_SIGNED_IN = "You need to be signed in to do that"

T = TypeVar("T")


def _to_decimal(value) -> Optional[Decimal]:
    """Form values arrive as float, int, str or None."""
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _issues_for_audit(result: ValidationResult) -> list[dict]:
    return [
        {"field": i.field, "type": i.issue_type, "message": i.message}
        for i in result.issues
        if i.severity == "error"
    ]


# =============================================================================
# SNAPSHOT CACHE
# =============================================================================

class SnapshotCache(Generic[T]):
    """
    Holds the latest snapshot delivered by a storage subscription.

    Last write wins: every delivery replaces the previous list in full,
    so a reader always sees exactly one snapshot.
    """

    def __init__(self):
        self._snapshot: list[T] = []
        self._version = 0
        self._on_change: list[Callable[[list[T]], None]] = []

    def __call__(self, snapshot: list[T]) -> None:
        self._snapshot = list(snapshot)
        self._version += 1
        for listener in list(self._on_change):
            listener(self.snapshot)

    @property
    def snapshot(self) -> list[T]:
        return list(self._snapshot)

    @property
    def version(self) -> int:
        """Number of snapshots received so far."""
        return self._version

    @property
    def loaded(self) -> bool:
        return self._version > 0

    def on_change(self, listener: Callable[[list[T]], None]) -> None:
        self._on_change.append(listener)


# =============================================================================
# LEDGER FLOW
# =============================================================================

class LedgerFlow:
    """
    Orchestrates writing sales, expenses and investments.

    Flow:
    1. Check → a user must be signed in
    2. Validate → two-stage validation of the form input
    3. Save → persist to storage (storage assigns the id)
    4. Audit → log the outcome

    Subscribers of the record store receive the new snapshot as part of
    step 3; the UI never patches its own copy.
    """

    def __init__(
        self,
        record_storage: RecordStorageInterface,
        goal_storage: Optional[GoalStorageInterface] = None,
        validator: Optional[EntryValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._record_storage = record_storage
        self._goal_storage = goal_storage
        self._validator = validator or EntryValidator()
        self._audit_logger = audit_logger

    async def list_records(self, session: Optional[UserSession]) -> list[Record]:
        """One snapshot of the signed-in user's records."""
        if session is None:
            return []
        return await self._record_storage.list_records(session.user_id)

    async def watch_records(
        self,
        session: UserSession,
        cache: SnapshotCache[Record],
    ) -> Subscription:
        """Keep `cache` filled with the user's latest record snapshot."""
        return await self._record_storage.subscribe_records(session.user_id, cache)

    def validate(
        self,
        kind: RecordKind,
        amount,
        description: Optional[str],
        occurred_on: Optional[date],
        product_cost=None,
    ) -> ValidationResult:
        """Validate form input without saving it."""
        if isinstance(occurred_on, datetime):
            occurred_on = occurred_on.date()
        return self._validator.validate_record_input(
            kind=RecordKind(kind),
            amount=_to_decimal(amount),
            description=description,
            occurred_on=occurred_on,
            product_cost=_to_decimal(product_cost),
        )

    async def add_record(
        self,
        session: Optional[UserSession],
        kind: RecordKind,
        amount,
        description: Optional[str],
        occurred_on: Optional[date],
        category: Optional[str] = None,
        product_cost=None,
        correlation_id: Optional[UUID] = None,
    ) -> WriteResult:
        """
        Validate and save a new record.

        Args:
            session: The signed-in user (None if signed out)
            kind: Sale, expense or investment
            amount: Gross amount as typed in the form
            description: Product, expense or investment name
            occurred_on: Day the transaction is attributed to
            category: Expense category (expenses only)
            product_cost: Cost of goods (sales only)

        Returns:
            WriteResult carrying the new record id, or a displayable error
        """
        if session is None:
            return WriteResult.failure(NOT_SIGNED_IN)

        correlation_id = correlation_id or create_correlation_id()
        kind = RecordKind(kind)

        result = self.validate(kind, amount, description, occurred_on, product_cost)
        if not result.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_entry_rejected(
                    owner_id=session.user_id,
                    entity_type="record",
                    issues=_issues_for_audit(result),
                    correlation_id=correlation_id,
                )
            return WriteResult.failure(
                self._validator.get_user_friendly_summary(result)
            )

        occurred_at = occurred_on
        if not isinstance(occurred_on, datetime):
            occurred_at = datetime.combine(occurred_on, time.min)

        try:
            record = Record(
                owner_id=session.user_id,
                kind=kind,
                amount=_to_decimal(amount),
                product_cost=_to_decimal(product_cost),
                category=category,
                description=description,
                occurred_at=occurred_at,
            )
        except ValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="record_model_rejected",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return WriteResult.failure(f"Invalid entry: {e.errors()[0]['msg']}")

        try:
            saved = await self._record_storage.create_record(record)
        except Exception as e:
            logger.error("record_write_failed", owner_id=session.user_id, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_write_failed(
                    entity_type="record",
                    owner_id=session.user_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return WriteResult.failure(f"Could not save the entry: {e}")

        if self._audit_logger:
            await self._audit_logger.log_record_created(
                owner_id=session.user_id,
                record_id=saved.id,
                kind=saved.kind.value,
                amount=saved.amount,
                correlation_id=correlation_id,
            )

        return WriteResult.success(saved.id)

    async def delete_record(
        self,
        session: Optional[UserSession],
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> WriteResult:
        """Delete one of the signed-in user's records."""
        if session is None:
            return WriteResult.failure(NOT_SIGNED_IN)

        correlation_id = correlation_id or create_correlation_id()

        try:
            deleted = await self._record_storage.delete_record(session.user_id, record_id)
        except Exception as e:
            logger.error("record_delete_failed", record_id=record_id, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_write_failed(
                    entity_type="record",
                    owner_id=session.user_id,
                    error_message=str(e),
                    entity_id=record_id,
                    correlation_id=correlation_id,
                )
            return WriteResult.failure(f"Could not delete the entry: {e}")

        if not deleted:
            return WriteResult.failure("That entry no longer exists")

        if self._audit_logger:
            await self._audit_logger.log_record_deleted(
                owner_id=session.user_id,
                record_id=record_id,
                correlation_id=correlation_id,
            )

        return WriteResult.success(record_id)

    async def clear_user_data(
        self,
        session: Optional[UserSession],
        correlation_id: Optional[UUID] = None,
    ) -> WriteResult:
        """
        Delete every record and goal of the signed-in user.

        This cannot be undone.
        """
        if session is None:
            return WriteResult.failure(NOT_SIGNED_IN)

        correlation_id = correlation_id or create_correlation_id()

        try:
            records_deleted = await self._record_storage.delete_all_records(session.user_id)
            goals_deleted = 0
            if self._goal_storage is not None:
                goals_deleted = await self._goal_storage.delete_all_goals(session.user_id)
        except Exception as e:
            logger.error("clear_user_data_failed", owner_id=session.user_id, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_write_failed(
                    entity_type="user_data",
                    owner_id=session.user_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return WriteResult.failure(f"Could not delete your data: {e}")

        if self._audit_logger:
            await self._audit_logger.log_user_data_cleared(
                owner_id=session.user_id,
                records_deleted=records_deleted,
                goals_deleted=goals_deleted,
                correlation_id=correlation_id,
            )

        return WriteResult.success()


# =============================================================================
# GOAL FLOW
# =============================================================================

class GoalFlow:
    """
    Orchestrates profit goals.

    Goals are created and deleted whole. Projections are recomputed from
    the current record snapshot every time they are shown.
    """

    def __init__(
        self,
        goal_storage: GoalStorageInterface,
        validator: Optional[EntryValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._goal_storage = goal_storage
        self._settings = settings or get_settings().app
        self._validator = validator or EntryValidator(self._settings)
        self._audit_logger = audit_logger

    async def list_goals(self, session: Optional[UserSession]) -> list[Goal]:
        if session is None:
            return []
        return await self._goal_storage.list_goals(session.user_id)

    async def watch_goals(
        self,
        session: UserSession,
        cache: SnapshotCache[Goal],
    ) -> Subscription:
        return await self._goal_storage.subscribe_goals(session.user_id, cache)

    async def create_goal(
        self,
        session: Optional[UserSession],
        horizon: GoalHorizon,
        target_amount,
        work_days: Optional[int] = None,
        margin_mode: MarginMode = MarginMode.AUTOMATIC,
        manual_margin_percent=None,
        correlation_id: Optional[UUID] = None,
    ) -> WriteResult:
        """Validate and save a new goal."""
        if session is None:
            return WriteResult.failure(NOT_SIGNED_IN)

        correlation_id = correlation_id or create_correlation_id()
        horizon = GoalHorizon(horizon)
        margin_mode = MarginMode(margin_mode)
        target = _to_decimal(target_amount)
        margin_percent = _to_decimal(manual_margin_percent)

        result = self._validator.validate_goal_input(
            horizon=horizon,
            target_amount=target,
            work_days=work_days,
            margin_mode=margin_mode,
            manual_margin_percent=margin_percent,
        )
        if not result.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_entry_rejected(
                    owner_id=session.user_id,
                    entity_type="goal",
                    issues=_issues_for_audit(result),
                    correlation_id=correlation_id,
                )
            return WriteResult.failure(
                self._validator.get_user_friendly_summary(result)
            )

        try:
            goal = Goal(
                owner_id=session.user_id,
                horizon=horizon,
                target_amount=target,
                work_days=work_days,
                margin_mode=margin_mode,
                manual_margin_percent=margin_percent,
            )
        except ValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="goal_model_rejected",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return WriteResult.failure(f"Invalid goal: {e.errors()[0]['msg']}")

        try:
            saved = await self._goal_storage.create_goal(goal)
        except Exception as e:
            logger.error("goal_write_failed", owner_id=session.user_id, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_write_failed(
                    entity_type="goal",
                    owner_id=session.user_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return WriteResult.failure(f"Could not save the goal: {e}")

        if self._audit_logger:
            await self._audit_logger.log_goal_created(
                owner_id=session.user_id,
                goal_id=saved.id,
                horizon=saved.horizon.value,
                target_amount=saved.target_amount,
                correlation_id=correlation_id,
            )

        return WriteResult.success(saved.id)

    async def delete_goal(
        self,
        session: Optional[UserSession],
        goal_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> WriteResult:
        """Delete one of the signed-in user's goals."""
        if session is None:
            return WriteResult.failure(NOT_SIGNED_IN)

        correlation_id = correlation_id or create_correlation_id()

        try:
            deleted = await self._goal_storage.delete_goal(session.user_id, goal_id)
        except Exception as e:
            logger.error("goal_delete_failed", goal_id=goal_id, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_write_failed(
                    entity_type="goal",
                    owner_id=session.user_id,
                    error_message=str(e),
                    entity_id=goal_id,
                    correlation_id=correlation_id,
                )
            return WriteResult.failure(f"Could not delete the goal: {e}")

        if not deleted:
            return WriteResult.failure("That goal no longer exists")

        if self._audit_logger:
            await self._audit_logger.log_goal_deleted(
                owner_id=session.user_id,
                goal_id=goal_id,
                correlation_id=correlation_id,
            )

        return WriteResult.success(goal_id)

    def projections(
        self,
        records: list[Record],
        goals: list[Goal],
        now: Optional[datetime] = None,
        custom_window: Optional[TimeWindow] = None,
    ) -> list[GoalProjection]:
        """Project every goal against one record snapshot."""
        return project_goals(
            goals,
            records,
            now=now,
            week_start=self._settings.week_start,
            custom_window=custom_window,
            default_category=self._settings.default_expense_category,
        )


# =============================================================================
# DASHBOARD
# =============================================================================

class DashboardView(BaseModel):
    """Everything the home screen shows, computed from one snapshot."""
    model_config = ConfigDict(frozen=True)

    preset: WindowPreset
    stats: PeriodStats
    recent: list[Record] = Field(default_factory=list)
    series: list[SeriesPoint] = Field(default_factory=list)


def build_dashboard(
    records: list[Record],
    now: Optional[datetime] = None,
    preset: WindowPreset = WindowPreset.THIS_MONTH,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    week_start: int = 0,
    recent_limit: int = 10,
    series_days: int = 7,
    default_category: str = DEFAULT_EXPENSE_CATEGORY,
) -> DashboardView:
    """
    Compute the dashboard for one record snapshot.

    Args:
        records: One consistent snapshot of the user's records
        now: Reference instant (defaults to the current time)
        preset: Window the statistics are filtered by
        start_date: First day of a CUSTOM window (inclusive)
        end_date: Last day of a CUSTOM window (inclusive)
        week_start: First weekday of THIS_WEEK (0 = Monday)
        recent_limit: How many records the activity list shows
        series_days: Width of the daily chart, ending today

    Raises:
        ValueError: If a CUSTOM preset is missing a date
    """
    now = to_local_naive(now or datetime.now())
    preset = WindowPreset(preset)

    window = resolve_window(preset, now, start_date, end_date, week_start)
    first_day = now.date() - timedelta(days=max(series_days, 1) - 1)

    return DashboardView(
        preset=preset,
        stats=aggregate(records, window, default_category),
        recent=recent_records(records, recent_limit),
        series=daily_series(records, first_day, series_days),
    )


# =============================================================================
# FACTORY
# =============================================================================

def create_app_components(
    use_storage: bool = True,
) -> tuple[LedgerFlow, GoalFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on in-memory storage.

    Returns:
        (ledger_flow, goal_flow, sheets_client)
    """
    sheets_client = None
    audit_logger = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            record_storage = GoogleSheetsRecordStorage(sheets_client)
            goal_storage = GoogleSheetsGoalStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None

    if sheets_client is None:
        record_storage = InMemoryRecordStorage()
        goal_storage = InMemoryGoalStorage()
        audit_logger = AuditLogger()  # Local-only logging

    settings = get_settings().app
    validator = EntryValidator(settings)

    ledger_flow = LedgerFlow(
        record_storage=record_storage,
        goal_storage=goal_storage,
        validator=validator,
        audit_logger=audit_logger,
    )

    goal_flow = GoalFlow(
        goal_storage=goal_storage,
        validator=validator,
        audit_logger=audit_logger,
        settings=settings,
    )

    return ledger_flow, goal_flow, sheets_client
