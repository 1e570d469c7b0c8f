"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. Administrators can inspect household records directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for very high event volumes
- No transactions (each event is a single appended row)
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing rollup or metrics logic.
"""

import json
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from aquamitra.config import get_settings
from aquamitra.models.audit import AuditEvent, AuditEventType, AuditSeverity
from aquamitra.models.consumption import (
    Account,
    Complaint,
    ComplaintStatus,
    ComplaintType,
    ConsumptionEvent,
    Employee,
    Jurisdiction,
)
from aquamitra.services.storage.interface import (
    AccountStorageInterface,
    AuditStorageInterface,
    ComplaintStorageInterface,
    ConnectionError,
    EventStorageInterface,
    StorageError,
)


ACCOUNT_COLUMNS = [
    "account_id",
    "country",
    "state",
    "city",
    "occupant_count",
    "address",
    "pincode",
]

EMPLOYEE_COLUMNS = [
    "employee_id",
    "name",
    "country",
    "state",
]

EVENT_COLUMNS = [
    "event_id",
    "account_id",
    "amount",
    "occurred_at",
]

COMPLAINT_COLUMNS = [
    "complaint_id",
    "account_id",
    "complaint_type",
    "description",
    "status",
    "created_at",
]

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
    "error_code",
    "error_message",
]


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows and blank cells."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


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
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_data_rows(self, title: str, columns: list[str]) -> list[list[str]]:
        """All non-header rows of a worksheet."""
        return self.get_worksheet(title, columns).get_all_values()[1:]

    @property
    def settings(self):
        return self._settings


class GoogleSheetsAccountStorage(AccountStorageInterface):
    """
    Google Sheets implementation of account and employee lookup.

    Accounts and employees live on separate worksheets, one record per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _row_to_account(row: list) -> Account:
        """Convert a spreadsheet row to an Account."""
        occupants = _safe_get(row, 4)
        return Account(
            account_id=_safe_get(row, 0),
            jurisdiction=Jurisdiction(
                country=_safe_get(row, 1),
                state=_safe_get(row, 2),
                city=_safe_get(row, 3) or None,
            ),
            occupant_count=int(occupants) if occupants else None,
            address=_safe_get(row, 5) or None,
            pincode=_safe_get(row, 6) or None,
        )

    @staticmethod
    def _row_to_employee(row: list) -> Employee:
        """Convert a spreadsheet row to an Employee."""
        return Employee(
            employee_id=_safe_get(row, 0),
            name=_safe_get(row, 1) or None,
            country=_safe_get(row, 2) or None,
            state=_safe_get(row, 3) or None,
        )

    def _all_accounts(self) -> list[Account]:
        rows = self._client.get_data_rows(
            self._client.settings.accounts_sheet_name, ACCOUNT_COLUMNS
        )
        accounts = []
        for row in rows:
            if not row or not row[0]:
                continue
            try:
                accounts.append(self._row_to_account(row))
            except Exception:
                continue  # Skip malformed rows
        return accounts

    def get_account(self, account_id: str) -> Optional[Account]:
        try:
            for account in self._all_accounts():
                if account.account_id == account_id:
                    return account
            return None
        except Exception as e:
            raise StorageError(f"Failed to get account: {e}")

    def find_accounts(
        self,
        country: str,
        state: str,
        city: Optional[str] = None,
    ) -> list[Account]:
        try:
            return [
                a for a in self._all_accounts()
                if a.jurisdiction.country == country
                and a.jurisdiction.state == state
                and (city is None or a.jurisdiction.city == city)
            ]
        except Exception as e:
            raise StorageError(f"Failed to list accounts: {e}")

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        try:
            rows = self._client.get_data_rows(
                self._client.settings.employees_sheet_name, EMPLOYEE_COLUMNS
            )
            for row in rows:
                if row and row[0] == employee_id:
                    return self._row_to_employee(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get employee: {e}")


class GoogleSheetsEventStorage(EventStorageInterface):
    """
    Google Sheets implementation of the consumption event log.

    One event per row, appended with RAW input so instants are
    stored exactly as their ISO representation.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _event_to_row(event: ConsumptionEvent) -> list:
        """Convert a ConsumptionEvent to a spreadsheet row."""
        return [
            str(event.event_id),
            event.account_id,
            repr(event.amount),
            event.occurred_at.isoformat(),
        ]

    @staticmethod
    def _row_to_event(row: list) -> ConsumptionEvent:
        """Convert a spreadsheet row to a ConsumptionEvent."""
        return ConsumptionEvent(
            event_id=UUID(_safe_get(row, 0)),
            account_id=_safe_get(row, 1),
            amount=float(_safe_get(row, 2)),
            occurred_at=datetime.fromisoformat(_safe_get(row, 3)),
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def append_event(self, event: ConsumptionEvent) -> bool:
        """Append one event row."""
        try:
            sheet = self._client.get_worksheet(
                self._client.settings.events_sheet_name,
                EVENT_COLUMNS,
                rows=5000,
            )
            sheet.append_row(self._event_to_row(event), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to append event: {e}")

    def list_events(
        self,
        account_ids: Iterable[str],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[ConsumptionEvent]:
        wanted = set(account_ids)
        if not wanted:
            return []
        try:
            rows = self._client.get_data_rows(
                self._client.settings.events_sheet_name, EVENT_COLUMNS
            )
        except Exception as e:
            raise StorageError(f"Failed to list events: {e}")

        events = []
        seen = set()
        for row in rows:
            if not row or _safe_get(row, 1) not in wanted:
                continue
            try:
                event = self._row_to_event(row)
            except Exception:
                continue  # Skip malformed rows
            # A retried append can land the same row twice
            if event.event_id in seen:
                continue
            seen.add(event.event_id)
            if start is not None and event.occurred_at < start:
                continue
            if end is not None and event.occurred_at >= end:
                continue
            events.append(event)

        # Newest first
        events.sort(key=lambda e: e.occurred_at, reverse=True)
        return events


class GoogleSheetsComplaintStorage(ComplaintStorageInterface):
    """Google Sheets implementation of complaint storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _complaint_to_row(complaint: Complaint) -> list:
        return [
            str(complaint.complaint_id),
            complaint.account_id,
            complaint.complaint_type.value,
            complaint.description,
            complaint.status.value,
            complaint.created_at.isoformat(),
        ]

    @staticmethod
    def _row_to_complaint(row: list) -> Complaint:
        return Complaint(
            complaint_id=UUID(_safe_get(row, 0)),
            account_id=_safe_get(row, 1),
            complaint_type=ComplaintType(_safe_get(row, 2)),
            description=_safe_get(row, 3),
            status=ComplaintStatus(_safe_get(row, 4)),
            created_at=datetime.fromisoformat(_safe_get(row, 5)),
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def save_complaint(self, complaint: Complaint) -> bool:
        try:
            sheet = self._client.get_worksheet(
                self._client.settings.complaints_sheet_name, COMPLAINT_COLUMNS
            )
            sheet.append_row(self._complaint_to_row(complaint), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to save complaint: {e}")

    def list_complaints(self, account_id: str) -> list[Complaint]:
        try:
            rows = self._client.get_data_rows(
                self._client.settings.complaints_sheet_name, COMPLAINT_COLUMNS
            )
        except Exception as e:
            raise StorageError(f"Failed to list complaints: {e}")

        complaints = []
        for row in rows:
            if not row or _safe_get(row, 1) != account_id:
                continue
            try:
                complaints.append(self._row_to_complaint(row))
            except Exception:
                continue

        complaints.sort(key=lambda c: c.created_at, reverse=True)
        return complaints


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _row_to_event(row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=_safe_get(row, 5) or None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_code=_safe_get(row, 9) or None,
            error_message=_safe_get(row, 10) or None,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_worksheet(
                self._client.settings.audit_sheet_name,
                AUDIT_COLUMNS,
                rows=5000,
            )
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    def _all_events(self) -> list[AuditEvent]:
        rows = self._client.get_data_rows(
            self._client.settings.audit_sheet_name, AUDIT_COLUMNS
        )
        events = []
        for row in rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except Exception:
                    continue
        return events

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [
                e for e in self._all_events()
                if e.correlation_id == correlation_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._all_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
