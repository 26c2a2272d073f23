"""
Audit Models for Profit Tracker

Every write that crosses the storage boundary is logged for audit purposes.
This provides:
1. Traceability of what was created and deleted, and by whom
2. Debugging information when the store rejects a write
3. Ability to reconstruct history after a data reset

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Records
    RECORD_CREATED = "record_created"
    RECORD_DELETED = "record_deleted"

    # Goals
    GOAL_CREATED = "goal_created"
    GOAL_DELETED = "goal_deleted"

    # Account
    USER_DATA_CLEARED = "user_data_cleared"

    # Failures at the boundary
    ENTRY_REJECTED = "entry_rejected"
    WRITE_FAILED = "write_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - who and what is this about?
    owner_id: Optional[str] = Field(
        default=None,
        description="Account the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity ('record' or 'goal')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one user action)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "owner_id": self.owner_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, owner_id, entity_type,
         entity_id, correlation_id, description, details_json,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.owner_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created(record, correlation_id)
        event = AuditEventBuilder.write_failed("goal", owner_id, error, correlation_id)
    """

    @staticmethod
    def record_created(
        owner_id: str,
        record_id: str,
        kind: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            owner_id=owner_id,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Recorded {kind}: {amount}",
            details={
                "kind": kind,
                "amount": str(amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        owner_id: str,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            owner_id=owner_id,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description="Record deleted",
            is_user_action=True,
        )

    @staticmethod
    def goal_created(
        owner_id: str,
        goal_id: str,
        horizon: str,
        target_amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_CREATED,
            owner_id=owner_id,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Created {horizon} goal of {target_amount}",
            details={
                "horizon": horizon,
                "target_amount": str(target_amount),
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_deleted(
        owner_id: str,
        goal_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_DELETED,
            owner_id=owner_id,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description="Goal deleted",
            is_user_action=True,
        )

    @staticmethod
    def user_data_cleared(
        owner_id: str,
        records_deleted: int,
        goals_deleted: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_DATA_CLEARED,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=(
                f"All user data cleared: {records_deleted} records, "
                f"{goals_deleted} goals"
            ),
            details={
                "records_deleted": records_deleted,
                "goals_deleted": goals_deleted,
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_rejected(
        owner_id: str,
        entity_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_REJECTED,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} entry rejected with {len(issues)} issues",
            details={
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def write_failed(
        entity_type: str,
        owner_id: Optional[str],
        error_message: str,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Failed to write {entity_type}",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

