"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as an alternative backend because:
1. Non-technical users can look at their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. The same ledger can be opened from several machines

TRADEOFFS:
- A sheet cell holds at most 50,000 characters, which caps the size of
  the transaction history (fine for personal use)
- No transactions: set_many updates rows one after another
- No concurrent-writer safety (single user assumed)

The key-value layout is the same as every other backend, so business
logic never knows which one is in use.
"""

import json
from datetime import datetime
from typing import Mapping, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from pocket_ledger.config import GoogleSheetsSettings, get_settings
from pocket_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from pocket_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    KeyValueBackend,
    NotFoundError,
    StorageError,
)


# Column mappings for the key/value sheet
STORAGE_COLUMNS = ["key", "value"]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

logger = structlog.get_logger(__name__)


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
                raise NotFoundError(
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

    def get_storage_sheet(self) -> gspread.Worksheet:
        """Get or create the key/value worksheet."""
        return self._get_or_create_sheet(
            self._settings.storage_sheet_name, STORAGE_COLUMNS, rows=50
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsBackend(KeyValueBackend):
    """
    Key/value rows in a worksheet.

    Row 1 is the header; every following row is [key, value].
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _rows(self) -> list[list[str]]:
        try:
            return self._client.get_storage_sheet().get_all_values()
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read storage sheet: {e}")

    def get(self, key: str) -> Optional[str]:
        for row in self._rows()[1:]:
            if row and row[0] == key:
                return row[1] if len(row) > 1 else ""
        return None

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, values: Mapping[str, str]) -> None:
        """Update existing rows in place, append rows for new keys."""
        try:
            sheet = self._client.get_storage_sheet()
            all_rows = sheet.get_all_values()

            positions = {
                row[0]: idx
                for idx, row in enumerate(all_rows[1:], start=2)  # Row 1 is header
                if row and row[0]
            }

            for key, value in values.items():
                if key in positions:
                    sheet.update(
                        range_name=f"B{positions[key]}",
                        values=[[value]],
                        value_input_option="RAW",
                    )
                else:
                    sheet.append_row([key, value], value_input_option="RAW")
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write storage sheet: {e}")

    def delete(self, key: str) -> None:
        try:
            sheet = self._client.get_storage_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == key:
                    sheet.delete_rows(idx)
                    return
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete key {key}: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.error("audit_append_failed", error=str(e))
            return False

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]

            events = []
            for row in all_rows:
                if row and row[0]:
                    try:
                        events.append(self._row_to_event(row))
                    except (ValueError, IndexError):
                        continue

            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
