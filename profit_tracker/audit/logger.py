"""
Audit Logger

DESIGN DECISION: Every write against the document store is logged.
This provides:
1. Traceability of created and deleted records and goals
2. Debugging capability when the store rejects a write

The audit logger:
- Gracefully handles failures (doesn't break the app if logging fails)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from profit_tracker.models.audit import AuditEvent, AuditEventBuilder
from profit_tracker.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_record_created(
        self,
        owner_id: str,
        record_id: str,
        kind: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log record creation."""
        await self.log(AuditEventBuilder.record_created(
            owner_id=owner_id,
            record_id=record_id,
            kind=kind,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_record_deleted(
        self,
        owner_id: str,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log record deletion."""
        await self.log(AuditEventBuilder.record_deleted(
            owner_id=owner_id,
            record_id=record_id,
            correlation_id=correlation_id,
        ))

    async def log_goal_created(
        self,
        owner_id: str,
        goal_id: str,
        horizon: str,
        target_amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log goal creation."""
        await self.log(AuditEventBuilder.goal_created(
            owner_id=owner_id,
            goal_id=goal_id,
            horizon=horizon,
            target_amount=target_amount,
            correlation_id=correlation_id,
        ))

    async def log_goal_deleted(
        self,
        owner_id: str,
        goal_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log goal deletion."""
        await self.log(AuditEventBuilder.goal_deleted(
            owner_id=owner_id,
            goal_id=goal_id,
            correlation_id=correlation_id,
        ))

    async def log_user_data_cleared(
        self,
        owner_id: str,
        records_deleted: int,
        goals_deleted: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a full data reset."""
        await self.log(AuditEventBuilder.user_data_cleared(
            owner_id=owner_id,
            records_deleted=records_deleted,
            goals_deleted=goals_deleted,
            correlation_id=correlation_id,
        ))

    async def log_entry_rejected(
        self,
        owner_id: str,
        entity_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log form input that failed validation."""
        await self.log(AuditEventBuilder.entry_rejected(
            owner_id=owner_id,
            entity_type=entity_type,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_write_failed(
        self,
        entity_type: str,
        owner_id: Optional[str],
        error_message: str,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a write the store rejected."""
        await self.log(AuditEventBuilder.write_failed(
            entity_type=entity_type,
            owner_id=owner_id,
            error_message=error_message,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., saving a sale).
    Pass it through all subsequent operations.
    """
    return uuid4()
