"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. Users can view and edit their income and expenses directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

Layout (one spreadsheet, one row per item, every row keyed by user_id):
- Income:            user_id | name | amount
- FixedExpenses:     user_id | name | amount
- FlexibleSpending:  user_id | category | amount
- History:           user_id | timestamp | type | category | amount
- Memory:            user_id | memory_json | updated_at
- Goals:             user_id | goals_json | updated_at
- AuditLog:          see AUDIT_COLUMNS

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions: memory and goals are stored as one JSON blob per user
  so a write is a single row update
- Limited query capabilities (we filter in Python)
"""

import json
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_engine.config import get_settings
from finance_engine.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_engine.models.finance import (
    EntryType,
    FixedExpense,
    Goal,
    HistoryEntry,
    IncomeSource,
    MemoryProfile,
    StorageResult,
    utc_now,
)
from finance_engine.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    FinancialDataProvider,
    PersistenceProvider,
    StorageError,
)


logger = structlog.get_logger(__name__)


SHEET_COLUMNS: dict[str, list[str]] = {
    "income": ["user_id", "name", "amount"],
    "fixed_expenses": ["user_id", "name", "amount"],
    "flexible_spending": ["user_id", "category", "amount"],
    "history": ["user_id", "timestamp", "type", "category", "amount"],
    "memory": ["user_id", "memory_json", "updated_at"],
    "goals": ["user_id", "goals_json", "updated_at"],
}

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


def _parse_amount(value: str) -> float:
    """Parse a cell that may contain ₹ signs or Indian digit grouping."""
    cleaned = value.replace("₹", "").replace(",", "").strip()
    if not cleaned:
        return 0.0
    return float(cleaned)


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

    def _sheet_name(self, key: str) -> str:
        return getattr(self._settings, f"{key}_sheet_name")

    def get_sheet(self, key: str) -> gspread.Worksheet:
        """Get or create one of the data worksheets (see SHEET_COLUMNS)."""
        return self._get_or_create(self._sheet_name(key), SHEET_COLUMNS[key], rows=1000)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
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

    def user_rows(self, key: str, user_id: str) -> list[list[str]]:
        """All data rows (header excluded) belonging to `user_id`."""
        sheet = self.get_sheet(key)
        return [
            row for row in sheet.get_all_values()[1:]
            if row and row[0] == user_id
        ]


class GoogleSheetsFinancialDataProvider(FinancialDataProvider):
    """
    Reads one user's records from the Income, FixedExpenses,
    FlexibleSpending and History sheets.

    READ-ONLY: this class never writes to the spreadsheet.
    """

    def __init__(self, user_id: str, client: Optional[GoogleSheetsClient] = None):
        self._user_id = user_id
        self._client = client or GoogleSheetsClient()

    def _read(self, key: str, convert: Callable[[list[str]], object]) -> list:
        try:
            rows = self._client.user_rows(key, self._user_id)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {key}: {e}")

        items = []
        for row in rows:
            try:
                items.append(convert(row))
            except (ValueError, IndexError, ValidationError) as e:
                logger.warning("malformed_row_skipped", sheet=key, error=str(e))
        return items

    async def get_income_sources(self) -> list[IncomeSource]:
        return self._read(
            "income",
            lambda row: IncomeSource(name=row[1], amount=_parse_amount(row[2])),
        )

    async def get_fixed_expenses(self) -> list[FixedExpense]:
        return self._read(
            "fixed_expenses",
            lambda row: FixedExpense(name=row[1], amount=_parse_amount(row[2])),
        )

    async def get_flexible_spending(self) -> dict[str, float]:
        pairs = self._read(
            "flexible_spending",
            lambda row: (row[1].strip().lower(), _parse_amount(row[2])),
        )
        spending: dict[str, float] = {}
        for category, amount in pairs:
            spending[category] = spending.get(category, 0.0) + amount
        return spending

    async def get_history(self) -> list[HistoryEntry]:
        return self._read(
            "history",
            lambda row: HistoryEntry(
                timestamp=datetime.fromisoformat(row[1]),
                type=EntryType(row[2].strip().lower()),
                category=row[3],
                amount=_parse_amount(row[4]),
            ),
        )

    async def get_total_income(self) -> float:
        return sum(source.amount for source in await self.get_income_sources())

    async def get_total_expenses(self) -> float:
        fixed = sum(item.amount for item in await self.get_fixed_expenses())
        flexible = sum((await self.get_flexible_spending()).values())
        return fixed + flexible


class GoogleSheetsPersistence(PersistenceProvider):
    """
    Memory profile and goals, one JSON blob per user per sheet.

    Failures are returned as StorageResult failures, never raised.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _load_blob(self, key: str, user_id: str) -> Optional[str]:
        rows = self._client.user_rows(key, user_id)
        if not rows:
            return None
        row = rows[-1]
        return row[1] if len(row) > 1 and row[1] else None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write_blob(self, key: str, user_id: str, payload: str) -> None:
        sheet = self._client.get_sheet(key)
        all_rows = sheet.get_all_values()
        row = [user_id, payload, utc_now().isoformat()]

        # Row 1 is the header
        for idx, existing in enumerate(all_rows[1:], start=2):
            if existing and existing[0] == user_id:
                sheet.update(f"A{idx}:C{idx}", [row], value_input_option="RAW")
                return
        sheet.append_row(row, value_input_option="RAW")

    async def load_memory(self, user_id: str) -> StorageResult:
        try:
            blob = self._load_blob("memory", user_id)
            if blob is None:
                return StorageResult.success(None)
            return StorageResult.success(MemoryProfile.model_validate_json(blob))
        except Exception as e:
            return StorageResult.failure(f"Failed to load memory: {e}")

    async def save_memory(self, user_id: str, memory: MemoryProfile) -> StorageResult:
        try:
            self._write_blob("memory", user_id, memory.model_dump_json())
            return StorageResult.success(True)
        except Exception as e:
            return StorageResult.failure(f"Failed to save memory: {e}")

    async def load_goals(self, user_id: str) -> StorageResult:
        try:
            blob = self._load_blob("goals", user_id)
            if blob is None:
                return StorageResult.success([])
            return StorageResult.success(
                [Goal.model_validate(item) for item in json.loads(blob)]
            )
        except Exception as e:
            return StorageResult.failure(f"Failed to load goals: {e}")

    async def save_goals(self, user_id: str, goals: list[Goal]) -> StorageResult:
        try:
            payload = json.dumps([goal.model_dump(mode="json") for goal in goals])
            self._write_blob("goals", user_id, payload)
            return StorageResult.success(True)
        except Exception as e:
            return StorageResult.failure(f"Failed to save goals: {e}")


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

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append_row(self, row: list) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(row, value_input_option="RAW")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append_row(event.to_sheets_row())
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_write_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]

            events = []
            for row in all_rows:
                if row and row[0]:
                    try:
                        events.append(self._row_to_event(row))
                    except (ValueError, ValidationError):
                        continue

            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
