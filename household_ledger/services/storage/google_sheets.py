"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted record store because:
1. Both of us can look at (and fix) the numbers directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (a household is fine)
- No transactions (the balance sync is a plain sequence of writes)
- Limited query capabilities (we filter in Python)

Each collection lives in its own worksheet whose first row holds the
column names below. The implementation follows the abstract interface, so
we can swap to PostgreSQL/SQLite later without changing the engines.
"""

import json
from datetime import datetime
from typing import Any, Optional, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import BaseModel, ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from household_ledger.config import GoogleSheetsSettings, get_settings
from household_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from household_ledger.models.ledger import (
    Debt,
    Expense,
    Income,
    Saving,
    TotalExpenses,
)
from household_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from household_ledger.utils.dates import get_date_key

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Column mappings per collection; "id" is always the first column
EXPENSE_COLUMNS = [
    "id",
    "created_at",
    "date",
    "description",
    "category",
    "amount",
    "type",
    "is_paid_by_kari",
    "is_default",
]

INCOME_COLUMNS = [
    "id",
    "created_at",
    "adolfo_income",
    "kari_income",
    "total_income",
    "adolfo_percentage",
    "kari_percentage",
]

DEBT_COLUMNS = [
    "id",
    "created_at",
    "month",
    "kari_debt",
    "adolfo_debt",
]

SAVING_COLUMNS = [
    "id",
    "created_at",
    "user",
    "type",
    "amount",
    "currency",
]

TOTALS_COLUMNS = [
    "id",
    "created_at",
    "total",
    "adolfo",
    "kari",
]

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


def _cell(value: Any) -> str:
    """Render one JSON-mode value as sheet text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def record_to_row(columns: list[str], record: BaseModel) -> list[str]:
    """Convert a record to a spreadsheet row in column order."""
    data = record.model_dump(mode="json")
    return [_cell(data.get(column)) for column in columns]


def row_to_record(columns: list[str], row: list[str], model: type[ModelT]) -> ModelT:
    """
    Convert a spreadsheet row to a record.

    Empty cells are left out so model defaults apply.
    """
    data = {
        column: row[index]
        for index, column in enumerate(columns)
        if index < len(row) and row[index] != ""
    }
    return model.model_validate(data)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

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
            except FileNotFoundError as e:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                ) from e
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound as e:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                ) from e
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get or create a worksheet whose first row is ``columns``."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of the household record store.

    One record per row. Ids are assigned here as max(id) + 1 since Sheets
    has no sequences.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        settings = self._client.settings
        self._sheet_names = {
            "expenses": settings.expenses_sheet_name,
            "income": settings.income_sheet_name,
            "debt": settings.debt_sheet_name,
            "savings": settings.savings_sheet_name,
            "total_expenses": settings.totals_sheet_name,
        }

    # ---- generic row helpers ----------------------------------------------

    def _sheet(self, collection: str, columns: list[str]) -> gspread.Worksheet:
        return self._client.get_worksheet(self._sheet_names[collection], columns)

    def _read(self, collection: str, columns: list[str], model: type[ModelT]) -> list[ModelT]:
        try:
            all_rows = self._sheet(collection, columns).get_all_values()[1:]  # Skip header
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {collection}: {e}") from e

        records = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                records.append(row_to_record(columns, row, model))
            except ValidationError as e:
                logger.warning(
                    "malformed_row_skipped",
                    collection=collection,
                    row_id=row[0],
                    error=str(e),
                )
        return records

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append(self, collection: str, columns: list[str], records: list[ModelT]) -> list[ModelT]:
        try:
            sheet = self._sheet(collection, columns)
            existing_ids = [
                int(row[0]) for row in sheet.get_all_values()[1:]
                if row and row[0].isdigit()
            ]
            next_id = max(existing_ids, default=0) + 1

            stored = []
            for offset, record in enumerate(records):
                stored.append(record.model_copy(update={"id": next_id + offset}))

            sheet.append_rows(
                [record_to_row(columns, record) for record in stored],
                value_input_option="RAW",
            )
            return stored
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert into {collection}: {e}") from e

    def _replace(self, collection: str, columns: list[str], record: ModelT) -> ModelT:
        try:
            sheet = self._sheet(collection, columns)
            all_rows = sheet.get_all_values()

            # Row 1 is the header
            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(record.id):
                    sheet.update(
                        range_name=f"A{idx}",
                        values=[record_to_row(columns, record)],
                        value_input_option="RAW",
                    )
                    return record

            raise NotFoundError(f"{collection} record not found: {record.id}")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {collection}: {e}") from e

    def _delete(self, collection: str, columns: list[str], record_id: int) -> bool:
        try:
            sheet = self._sheet(collection, columns)
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(record_id):
                    sheet.delete_rows(idx)
                    return True

            return False
        except Exception as e:
            raise StorageError(f"Failed to delete from {collection}: {e}") from e

    # ---- expenses ----------------------------------------------------------

    async def list_expenses(self) -> list[Expense]:
        expenses = self._read("expenses", EXPENSE_COLUMNS, Expense)
        expenses.sort(key=lambda e: (e.date, e.created_at), reverse=True)
        return expenses

    async def get_expense(self, expense_id: int) -> Optional[Expense]:
        for expense in self._read("expenses", EXPENSE_COLUMNS, Expense):
            if expense.id == expense_id:
                return expense
        return None

    async def insert_expense(self, expense: Expense) -> Expense:
        return self._append("expenses", EXPENSE_COLUMNS, [expense])[0]

    async def update_expense(self, expense: Expense) -> Expense:
        return self._replace("expenses", EXPENSE_COLUMNS, expense)

    async def delete_expense(self, expense_id: int) -> bool:
        return self._delete("expenses", EXPENSE_COLUMNS, expense_id)

    # ---- income ------------------------------------------------------------

    async def get_latest_income(self) -> Optional[Income]:
        records = self._read("income", INCOME_COLUMNS, Income)
        if not records:
            return None
        return max(records, key=lambda i: (i.created_at, i.id))

    async def insert_income(self, income: Income) -> Income:
        return self._append("income", INCOME_COLUMNS, [income])[0]

    async def update_income(self, income: Income) -> Income:
        return self._replace("income", INCOME_COLUMNS, income)

    # ---- debt --------------------------------------------------------------

    async def list_debts(self) -> list[Debt]:
        return self._read("debt", DEBT_COLUMNS, Debt)

    async def get_debt_by_month(self, month: str) -> Optional[Debt]:
        for debt in self._read("debt", DEBT_COLUMNS, Debt):
            if debt.month == month:
                return debt
        return None

    async def insert_debt(self, debt: Debt) -> Debt:
        return self._append("debt", DEBT_COLUMNS, [debt])[0]

    async def update_debt(self, debt: Debt) -> Debt:
        return self._replace("debt", DEBT_COLUMNS, debt)

    # ---- total_expenses ----------------------------------------------------

    async def list_totals(self) -> list[TotalExpenses]:
        totals = self._read("total_expenses", TOTALS_COLUMNS, TotalExpenses)
        totals.sort(key=lambda t: (t.created_at, t.id), reverse=True)
        return totals

    async def insert_totals(self, totals: TotalExpenses) -> TotalExpenses:
        return self._append("total_expenses", TOTALS_COLUMNS, [totals])[0]

    async def delete_totals(self, totals_id: int) -> bool:
        return self._delete("total_expenses", TOTALS_COLUMNS, totals_id)

    # ---- savings -----------------------------------------------------------

    async def list_savings(self) -> list[Saving]:
        return self._read("savings", SAVING_COLUMNS, Saving)

    async def insert_savings_batch(self, savings: list[Saving]) -> list[Saving]:
        if not savings:
            return []
        return self._append("savings", SAVING_COLUMNS, savings)

    async def delete_savings_by_date(self, date_key: str) -> int:
        try:
            sheet = self._sheet("savings", SAVING_COLUMNS)
            all_rows = sheet.get_all_values()

            matching = [
                idx
                for idx, row in enumerate(all_rows[1:], start=2)
                if row and row[0] and len(row) > 1 and get_date_key(row[1]).key == date_key
            ]
            # Bottom-up so earlier deletions don't shift later row numbers
            for idx in reversed(matching):
                sheet.delete_rows(idx)

            return len(matching)
        except Exception as e:
            raise StorageError(f"Failed to delete savings for {date_key}: {e}") from e


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._client.settings.audit_sheet_name, AUDIT_COLUMNS)

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

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._sheet().append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning("audit_event_write_failed", error=str(e), event_id=str(event.event_id))
            return False

    def _read_events(self) -> list[AuditEvent]:
        try:
            all_rows = self._sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}") from e

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, ValidationError):
                continue
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        events = self._read_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
