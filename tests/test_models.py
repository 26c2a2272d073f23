"""
Tests for Profit Tracker models

Test strategy:
1. Unit tests for individual components (models, validators, arithmetic)
2. Integration tests for flows (with in-memory storage)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from profit_tracker.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Goal,
    GoalHorizon,
    MarginMode,
    Record,
    RecordKind,
    TimeWindow,
    ValidationIssue,
    ValidationResult,
    WriteResult,
)


class TestRecordModels:
    """Tests for the Record model."""

    def test_sale_creation(self):
        """Test a sale keeps its product cost."""
        record = Record(
            owner_id="user-1",
            kind=RecordKind.SALE,
            amount=Decimal("150.00"),
            product_cost=Decimal("60.00"),
            description="Cake",
            occurred_at=datetime(2024, 6, 3, 10, 0),
        )
        assert record.kind == RecordKind.SALE
        assert record.product_cost == Decimal("60.00")
        assert record.category is None
        assert record.is_sale is True
        assert record.id is None

    def test_description_strips_whitespace(self):
        """Test that whitespace is stripped from descriptions."""
        record = Record(
            owner_id="user-1",
            kind=RecordKind.INVESTMENT,
            amount=Decimal("10"),
            description="  Oven  ",
            occurred_at=datetime(2024, 6, 3),
        )
        assert record.description == "Oven"

    def test_product_cost_dropped_for_expenses(self):
        """Test that kind-specific fields are cleared for other kinds."""
        record = Record(
            owner_id="user-1",
            kind=RecordKind.EXPENSE,
            amount=Decimal("80"),
            product_cost=Decimal("10"),
            category="Fixed",
            description="Rent",
            occurred_at=datetime(2024, 6, 3),
        )
        assert record.product_cost is None
        assert record.category == "Fixed"

    def test_category_dropped_for_sales(self):
        record = Record(
            owner_id="user-1",
            kind=RecordKind.SALE,
            amount=Decimal("80"),
            category="Fixed",
            description="Cake",
            occurred_at=datetime(2024, 6, 3),
        )
        assert record.category is None

    def test_empty_category_becomes_none(self):
        record = Record(
            owner_id="user-1",
            kind=RecordKind.EXPENSE,
            amount=Decimal("80"),
            category="",
            description="Misc",
            occurred_at=datetime(2024, 6, 3),
        )
        assert record.category is None

    def test_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            Record(
                owner_id="user-1",
                kind=RecordKind.SALE,
                amount=Decimal("-1"),
                description="Cake",
                occurred_at=datetime(2024, 6, 3),
            )

    def test_rejects_unknown_kind(self):
        with pytest.raises(ValueError):
            Record(
                owner_id="user-1",
                kind="refund",
                amount=Decimal("1"),
                description="Cake",
                occurred_at=datetime(2024, 6, 3),
            )

    def test_rejects_empty_description(self):
        with pytest.raises(ValueError):
            Record(
                owner_id="user-1",
                kind=RecordKind.SALE,
                amount=Decimal("1"),
                description="   ",
                occurred_at=datetime(2024, 6, 3),
            )

    def test_with_id_returns_copy(self):
        """Test that storage ids are attached to a copy."""
        record = Record(
            owner_id="user-1",
            kind=RecordKind.SALE,
            amount=Decimal("1"),
            description="Cake",
            occurred_at=datetime(2024, 6, 3),
        )
        stored = record.with_id("abc")
        assert stored.id == "abc"
        assert record.id is None
        assert stored.amount == record.amount

    def test_records_are_immutable(self):
        record = Record(
            owner_id="user-1",
            kind=RecordKind.SALE,
            amount=Decimal("1"),
            description="Cake",
            occurred_at=datetime(2024, 6, 3),
        )
        with pytest.raises(ValueError):
            record.amount = Decimal("2")


class TestGoalModels:
    """Tests for the Goal model."""

    def test_monthly_goal_creation(self):
        goal = Goal(
            owner_id="user-1",
            horizon=GoalHorizon.MONTHLY,
            target_amount=Decimal("5000"),
        )
        assert goal.margin_mode == MarginMode.AUTOMATIC
        assert goal.work_days is None
        assert goal.manual_margin_percent is None

    def test_work_days_cleared_for_monthly_goal(self):
        goal = Goal(
            owner_id="user-1",
            horizon=GoalHorizon.MONTHLY,
            target_amount=Decimal("5000"),
            work_days=12,
        )
        assert goal.work_days is None

    def test_manual_margin_cleared_in_automatic_mode(self):
        goal = Goal(
            owner_id="user-1",
            horizon=GoalHorizon.WEEKLY,
            target_amount=Decimal("500"),
            margin_mode=MarginMode.AUTOMATIC,
            manual_margin_percent=Decimal("40"),
        )
        assert goal.manual_margin_percent is None

    def test_custom_goal_requires_work_days(self):
        """Test that custom goals need a day count."""
        with pytest.raises(ValueError, match="work days"):
            Goal(
                owner_id="user-1",
                horizon=GoalHorizon.CUSTOM,
                target_amount=Decimal("500"),
            )

    def test_manual_mode_requires_percentage(self):
        with pytest.raises(ValueError, match="margin percentage"):
            Goal(
                owner_id="user-1",
                horizon=GoalHorizon.MONTHLY,
                target_amount=Decimal("500"),
                margin_mode=MarginMode.MANUAL,
            )

    def test_target_must_be_positive(self):
        with pytest.raises(ValueError):
            Goal(
                owner_id="user-1",
                horizon=GoalHorizon.MONTHLY,
                target_amount=Decimal("0"),
            )

    def test_manual_margin_bounded(self):
        with pytest.raises(ValueError):
            Goal(
                owner_id="user-1",
                horizon=GoalHorizon.MONTHLY,
                target_amount=Decimal("500"),
                margin_mode=MarginMode.MANUAL,
                manual_margin_percent=Decimal("120"),
            )


class TestTimeWindow:
    """Tests for the half-open TimeWindow."""

    def test_contains_start_but_not_end(self):
        window = TimeWindow(start=datetime(2024, 6, 1), end=datetime(2024, 6, 2))
        assert window.contains(datetime(2024, 6, 1))
        assert window.contains(datetime(2024, 6, 1, 23, 59, 59))
        assert not window.contains(datetime(2024, 6, 2))

    def test_reversed_window_is_empty(self):
        window = TimeWindow(start=datetime(2024, 6, 2), end=datetime(2024, 6, 1))
        assert window.is_empty
        assert not window.contains(datetime(2024, 6, 1, 12))


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            description="Recorded sale",
        )
        assert event.event_type == AuditEventType.RECORD_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.GOAL_CREATED,
            description="Goal created",
            details={"horizon": "monthly", "target_amount": "5000"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "goal_created"
        assert log_dict["details"]["horizon"] == "monthly"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            owner_id="user-1",
            description="Deleted record",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "record_deleted"  # event_type
        assert row[4] == "user-1"  # owner_id
        assert row[11] == "True"  # is_user_action

    def test_audit_event_builder_record_created(self):
        """Test AuditEventBuilder.record_created."""
        correlation_id = uuid4()

        event = AuditEventBuilder.record_created(
            owner_id="user-1",
            record_id="rec-1",
            kind="sale",
            amount=Decimal("99.90"),
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.RECORD_CREATED
        assert event.entity_id == "rec-1"
        assert event.entity_type == "record"
        assert event.correlation_id == correlation_id
        assert event.details["amount"] == "99.90"
        assert event.is_user_action is True

    def test_audit_event_builder_user_data_cleared_is_warning(self):
        event = AuditEventBuilder.user_data_cleared(
            owner_id="user-1",
            records_deleted=3,
            goals_deleted=1,
        )
        assert event.event_type == AuditEventType.USER_DATA_CLEARED
        assert event.severity == AuditSeverity.WARNING


class TestResultModels:
    """Tests for WriteResult and ValidationResult."""

    def test_write_result_success(self):
        result = WriteResult.success("rec-1")
        assert result.ok is True
        assert result.entity_id == "rec-1"
        assert result.error is None

    def test_write_result_failure(self):
        result = WriteResult.failure("Store unavailable")
        assert result.ok is False
        assert result.error == "Store unavailable"

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            schema_valid=False,
            semantic_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.is_valid is False

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            schema_valid=True,
            semantic_valid=True,
            issues=[
                ValidationIssue(
                    field="occurred_on",
                    issue_type="future_date",
                    message="Date in future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.is_valid is True


class TestRecordKinds:
    """Tests for the record kind enum."""

    def test_all_kinds_exist(self):
        """Test that expected kinds exist."""
        for kind in ["sale", "expense", "investment"]:
            assert RecordKind(kind) is not None

    def test_kind_values(self):
        assert RecordKind.SALE.value == "sale"
        assert RecordKind.EXPENSE.value == "expense"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
