"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a remote backend because:
1. School staff can see that the data exists and share it with the office
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (a school roster is fine)
- No transactions (last write wins, same as the local backend)
- A cell holds at most 50,000 characters, so blobs are split into
  chunks down column A of a worksheet named after the key

The implementation follows the abstract interface, so the ledger store
does not know or care which backend it is talking to.
"""

import json
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from tabunganku.config import get_settings
from tabunganku.models.audit import AuditEvent, AuditEventType, AuditSeverity
from tabunganku.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    StorageError,
    StorageInterface,
)


# Stay well below the 50k per-cell limit
CHUNK_SIZE = 40_000

LEDGER_SHEET_PREFIX = "ledger_"
AUDIT_SHEET_NAME = "AuditLog"

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


def split_blob(blob: str, size: int = CHUNK_SIZE) -> list[str]:
    """Split a blob into cell-sized chunks (at least one, possibly empty)."""
    if not blob:
        return [""]
    return [blob[i:i + size] for i in range(0, len(blob), size)]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

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

    def get_worksheet(
        self,
        title: str,
        create: bool = False,
        header: Optional[list[str]] = None,
    ) -> Optional[gspread.Worksheet]:
        """
        Get a worksheet by title.

        Returns None if it does not exist and `create` is False.
        """
        spreadsheet = self.get_spreadsheet()
        try:
            return spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            if not create:
                return None
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=100,
                cols=len(header) if header else 1,
            )
            if header:
                sheet.append_row(header)
            return sheet


class GoogleSheetsStorage(StorageInterface):
    """
    Google Sheets implementation of ledger storage.

    Each key gets its own worksheet; the blob is written down column A
    in CHUNK_SIZE pieces and joined back together on load.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def sheet_title(key: str) -> str:
        return f"{LEDGER_SHEET_PREFIX}{key}"

    def load(self, key: str) -> Optional[str]:
        """Load a blob, or None if the worksheet was never written."""
        try:
            sheet = self._client.get_worksheet(self.sheet_title(key))
            if sheet is None:
                return None
            chunks = sheet.col_values(1)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load '{key}' from Google Sheets: {e}")

        if not chunks:
            return None
        return "".join(chunks)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def save(self, key: str, blob: str) -> bool:
        """Replace the blob stored under `key`."""
        try:
            sheet = self._client.get_worksheet(self.sheet_title(key), create=True)
            previous_rows = len(sheet.col_values(1))
            chunks = split_blob(blob)
            # Overwrite in place first; the old blob survives a failed update
            sheet.update(
                range_name="A1",
                values=[[chunk] for chunk in chunks],
                value_input_option="RAW",
            )
            if previous_rows > len(chunks):
                sheet.batch_clear([f"A{len(chunks) + 1}:A{previous_rows}"])
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save '{key}' to Google Sheets: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self):
        return self._client.get_worksheet(
            AUDIT_SHEET_NAME, create=True, header=AUDIT_COLUMNS
        )

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
            self._sheet().append_row(event.to_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            all_rows = self._sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except ValueError:
                    continue  # Skip malformed rows

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
