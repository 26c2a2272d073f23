"""Shared fixtures for the Profit Tracker tests."""

from datetime import datetime
from decimal import Decimal

import pytest

from profit_tracker.config import AppSettings
from profit_tracker.models import Record, RecordKind
from profit_tracker.services import UserSession


@pytest.fixture
def app_settings() -> AppSettings:
    """Application settings with the documented defaults."""
    return AppSettings(
        currency_symbol="R$",
        recent_activity_limit=10,
        week_start=0,
        default_expense_category="Other",
        max_entry_amount=1000000.0,
        future_date_tolerance_days=7,
    )


@pytest.fixture
def session() -> UserSession:
    return UserSession(user_id="user-1", email="owner@example.com")


@pytest.fixture
def make_record():
    """Factory for records owned by `user-1`."""

    def _make(
        kind: RecordKind,
        amount: str,
        occurred_at: datetime,
        description: str = "Entry",
        category: str = None,
        product_cost: str = None,
        recorded_at: datetime = None,
        owner_id: str = "user-1",
    ) -> Record:
        data = dict(
            owner_id=owner_id,
            kind=kind,
            amount=Decimal(amount),
            description=description,
            occurred_at=occurred_at,
            category=category,
            product_cost=Decimal(product_cost) if product_cost else None,
        )
        if recorded_at is not None:
            data["recorded_at"] = recorded_at
        return Record(**data)

    return _make
