"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted document store because:
1. The owner can view and export their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (hundreds to low thousands of rows is fine)
- No push notifications: subscribers are notified after writes made
  through this process
- Limited query capabilities (we filter by owner in Python)

Every cell comes back as a string, so rows are turned into documents and
converted through `profit_tracker.validation.ingestion`. Malformed rows are
skipped with a warning instead of failing the whole snapshot.
"""

import json
from datetime import datetime
from typing import Callable, Optional, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from profit_tracker.config import GoogleSheetsSettings, get_settings
from profit_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from profit_tracker.models.goal import Goal
from profit_tracker.models.record import Record
from profit_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    GoalStorageInterface,
    RecordStorageInterface,
    StorageError,
)
from profit_tracker.services.storage.memory import new_document_id
from profit_tracker.validation.ingestion import (
    GOAL_FIELDS,
    RECORD_FIELDS,
    IngestionError,
    goal_from_document,
    goal_to_document,
    record_from_document,
    record_to_document,
)


# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "owner_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# Position of the owner column in the record and goal sheets
OWNER_COLUMN = 1

T = TypeVar("T")

logger = structlog.get_logger()


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_records_sheet(self) -> gspread.Worksheet:
        """Get or create the Records worksheet."""
        return self._get_or_create_sheet(
            self._settings.records_sheet_name, RECORD_FIELDS, rows=1000
        )

    def get_goals_sheet(self) -> gspread.Worksheet:
        """Get or create the Goals worksheet."""
        return self._get_or_create_sheet(
            self._settings.goals_sheet_name, GOAL_FIELDS, rows=100
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def _row_to_document(row: list, columns: list[str]) -> dict[str, str]:
    """Map a row onto column names; missing trailing cells become ''."""
    return {
        column: (row[index] if index < len(row) else "")
        for index, column in enumerate(columns)
    }


def _owned_rows(sheet: gspread.Worksheet, owner_id: str) -> list[tuple[int, list]]:
    """(sheet row number, row) for every row belonging to `owner_id`."""
    all_rows = sheet.get_all_values()
    # Row 1 is the header
    return [
        (index, row)
        for index, row in enumerate(all_rows[1:], start=2)
        if row and row[0] and len(row) > OWNER_COLUMN and row[OWNER_COLUMN] == owner_id
    ]


def _convert_rows(
    rows: list[tuple[int, list]],
    columns: list[str],
    convert: Callable[[str, dict], T],
) -> list[T]:
    documents = []
    for _, row in rows:
        document = _row_to_document(row, columns)
        try:
            documents.append(convert(document["id"], document))
        except IngestionError as e:
            logger.warning(
                "document_skipped",
                entity_type=e.entity_type,
                document_id=e.document_id,
                reason=e.reason,
            )
    return documents


def _delete_rows(sheet: gspread.Worksheet, row_numbers: list[int]) -> None:
    # Bottom-up so earlier deletions don't shift later row numbers
    for row_number in sorted(row_numbers, reverse=True):
        sheet.delete_rows(row_number)


class GoogleSheetsRecordStorage(RecordStorageInterface):
    """
    Google Sheets implementation of record storage.

    One record per row, columns in RECORD_FIELDS order.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        super().__init__()
        self._client = client or GoogleSheetsClient()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _append(self, record: Record) -> None:
        try:
            sheet = self._client.get_records_sheet()
            document = record_to_document(record)
            sheet.append_row(
                [document[column] for column in RECORD_FIELDS],
                value_input_option="RAW",
            )
        except Exception as e:
            raise StorageError(f"Failed to save record: {e}")

    async def create_record(self, record: Record) -> Record:
        """Append a record row and notify subscribers."""
        stored = record.with_id(new_document_id())
        await self._append(stored)
        await self._publish_records(stored.owner_id)
        return stored

    async def delete_record(self, owner_id: str, record_id: str) -> bool:
        """Delete a record row by ID."""
        try:
            sheet = self._client.get_records_sheet()
            matches = [
                number for number, row in _owned_rows(sheet, owner_id)
                if row[0] == record_id
            ]
            if not matches:
                return False
            _delete_rows(sheet, matches)
        except Exception as e:
            raise StorageError(f"Failed to delete record: {e}")

        await self._publish_records(owner_id)
        return True

    async def list_records(self, owner_id: str) -> list[Record]:
        """All valid records of one user."""
        try:
            sheet = self._client.get_records_sheet()
            rows = _owned_rows(sheet, owner_id)
        except Exception as e:
            raise StorageError(f"Failed to list records: {e}")
        return _convert_rows(rows, RECORD_FIELDS, record_from_document)

    async def delete_all_records(self, owner_id: str) -> int:
        """Delete every record row of one user."""
        try:
            sheet = self._client.get_records_sheet()
            numbers = [number for number, _ in _owned_rows(sheet, owner_id)]
            _delete_rows(sheet, numbers)
        except Exception as e:
            raise StorageError(f"Failed to delete records: {e}")

        if numbers:
            await self._publish_records(owner_id)
        return len(numbers)


class GoogleSheetsGoalStorage(GoalStorageInterface):
    """
    Google Sheets implementation of goal storage.

    One goal per row, columns in GOAL_FIELDS order.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        super().__init__()
        self._client = client or GoogleSheetsClient()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _append(self, goal: Goal) -> None:
        try:
            sheet = self._client.get_goals_sheet()
            document = goal_to_document(goal)
            sheet.append_row(
                [document[column] for column in GOAL_FIELDS],
                value_input_option="RAW",
            )
        except Exception as e:
            raise StorageError(f"Failed to save goal: {e}")

    async def create_goal(self, goal: Goal) -> Goal:
        stored = goal.with_id(new_document_id())
        await self._append(stored)
        await self._publish_goals(stored.owner_id)
        return stored

    async def delete_goal(self, owner_id: str, goal_id: str) -> bool:
        try:
            sheet = self._client.get_goals_sheet()
            matches = [
                number for number, row in _owned_rows(sheet, owner_id)
                if row[0] == goal_id
            ]
            if not matches:
                return False
            _delete_rows(sheet, matches)
        except Exception as e:
            raise StorageError(f"Failed to delete goal: {e}")

        await self._publish_goals(owner_id)
        return True

    async def list_goals(self, owner_id: str) -> list[Goal]:
        try:
            sheet = self._client.get_goals_sheet()
            rows = _owned_rows(sheet, owner_id)
        except Exception as e:
            raise StorageError(f"Failed to list goals: {e}")
        return _convert_rows(rows, GOAL_FIELDS, goal_from_document)

    async def delete_all_goals(self, owner_id: str) -> int:
        try:
            sheet = self._client.get_goals_sheet()
            numbers = [number for number, _ in _owned_rows(sheet, owner_id)]
            _delete_rows(sheet, numbers)
        except Exception as e:
            raise StorageError(f"Failed to delete goals: {e}")

        if numbers:
            await self._publish_goals(owner_id)
        return len(numbers)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        document = _row_to_document(row, AUDIT_COLUMNS)

        return AuditEvent(
            event_id=UUID(document["event_id"]),
            timestamp=datetime.fromisoformat(document["timestamp"]),
            event_type=AuditEventType(document["event_type"]),
            severity=AuditSeverity(document["severity"]),
            owner_id=document["owner_id"] or None,
            entity_type=document["entity_type"] or None,
            entity_id=document["entity_id"] or None,
            correlation_id=(
                UUID(document["correlation_id"]) if document["correlation_id"] else None
            ),
            description=document["description"],
            details=json.loads(document["details_json"]) if document["details_json"] else {},
            error_message=document["error_message"] or None,
            is_user_action=document["is_user_action"].lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, KeyError) as e:
                logger.warning("audit_row_skipped", error=str(e))

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
