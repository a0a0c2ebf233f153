"""
Tests for the Google Sheets storage backends.

A fake client stands in for gspread: it keeps worksheets as lists of
rows, so row parsing, user filtering and upserts are exercised without
network access.
"""

import pytest

from finance_engine.models.audit import AuditEventBuilder
from finance_engine.models.finance import Goal, MemoryProfile
from finance_engine.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinancialDataProvider,
    GoogleSheetsPersistence,
)
from finance_engine.services.storage.google_sheets import AUDIT_COLUMNS, SHEET_COLUMNS

from conftest import AS_OF


class FakeWorksheet:
    def __init__(self, rows):
        self.rows = [list(row) for row in rows]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append(list(row))

    def update(self, range_name, values, value_input_option=None):
        index = int(range_name[1:range_name.index(":")])
        self.rows[index - 1] = list(values[0])


class FakeSheetsClient(GoogleSheetsClient):
    """GoogleSheetsClient with in-memory worksheets instead of gspread."""

    def __init__(self, data=None, fail=False):
        data = data or {}
        self.sheets = {
            key: FakeWorksheet([columns] + data.get(key, []))
            for key, columns in SHEET_COLUMNS.items()
        }
        self.audit = FakeWorksheet([AUDIT_COLUMNS])
        self.fail = fail

    def get_sheet(self, key):
        if self.fail:
            raise RuntimeError("API quota exceeded")
        return self.sheets[key]

    def get_audit_sheet(self):
        return self.audit


@pytest.fixture
def sheets():
    return FakeSheetsClient({
        "income": [
            ["u1", "Salary", "₹80,000"],
            ["u2", "Other user", "5000"],
            ["u1", "Freelance", "20000"],
        ],
        "fixed_expenses": [
            ["u1", "Rent", "25,000"],
            ["u1", "Broken", "not a number"],
        ],
        "flexible_spending": [
            ["u1", "Food", "7000"],
            ["u1", "food", "5000"],
            ["u1", "Travel", "5000"],
        ],
        "history": [
            ["u1", "2025-01-01T00:00:00+00:00", "income", "salary", "100000"],
            ["u1", "2025-01-10T00:00:00+00:00", "Expense", "food", "55000"],
        ],
    })


class TestGoogleSheetsFinancialDataProvider:
    """Tests for reading records from Sheets."""

    @pytest.mark.asyncio
    async def test_fetch_records(self, sheets):
        """Test rows are filtered by user, parsed and totalled."""
        result = await GoogleSheetsFinancialDataProvider("u1", sheets).fetch_records()

        assert result.ok
        records = result.value
        assert [s.name for s in records.income_sources] == ["Salary", "Freelance"]
        assert records.total_income == 100000
        assert records.flexible_spending == {"food": 12000.0, "travel": 5000.0}
        assert records.total_expenses == 42000
        assert len(records.history) == 2

    @pytest.mark.asyncio
    async def test_malformed_rows_skipped(self, sheets):
        """Test a bad amount drops only that row."""
        fixed = await GoogleSheetsFinancialDataProvider("u1", sheets).get_fixed_expenses()
        assert [item.name for item in fixed] == ["Rent"]

    @pytest.mark.asyncio
    async def test_read_failure(self):
        """Test API failures become a failed result."""
        provider = GoogleSheetsFinancialDataProvider("u1", FakeSheetsClient(fail=True))
        result = await provider.fetch_records()
        assert not result.ok
        assert "API quota exceeded" in result.error


class TestGoogleSheetsPersistence:
    """Tests for memory and goal persistence in Sheets."""

    @pytest.mark.asyncio
    async def test_memory_round_trip_upserts(self, sheets):
        """Test saving twice updates the user's row in place."""
        persistence = GoogleSheetsPersistence(sheets)
        await persistence.save_memory("u1", MemoryProfile())
        await persistence.save_memory("u1", MemoryProfile(language_preference="hi-IN"))

        loaded = await persistence.load_memory("u1")
        assert loaded.value.language_preference == "hi-IN"
        assert len(sheets.sheets["memory"].rows) == 2

    @pytest.mark.asyncio
    async def test_missing_memory(self, sheets):
        """Test a user without a stored profile."""
        result = await GoogleSheetsPersistence(sheets).load_memory("u1")
        assert result.ok
        assert result.value is None

    @pytest.mark.asyncio
    async def test_goals_round_trip(self, sheets):
        """Test goals survive serialization."""
        persistence = GoogleSheetsPersistence(sheets)
        goal = Goal(name="Car", target_amount=100000, duration_months=10, created_at=AS_OF)
        assert (await persistence.save_goals("u1", [goal])).ok

        loaded = await persistence.load_goals("u1")
        assert loaded.value == [goal]

    @pytest.mark.asyncio
    async def test_read_failure(self):
        """Test read failures are returned, not raised."""
        result = await GoogleSheetsPersistence(FakeSheetsClient(fail=True)).load_memory("u1")
        assert not result.ok
        assert "Failed to load memory" in result.error


class TestGoogleSheetsAuditStorage:
    """Tests for the audit log sheet."""

    @pytest.mark.asyncio
    async def test_append_and_read(self, sheets):
        """Test events are written as rows and read back."""
        storage = GoogleSheetsAuditStorage(sheets)
        event = AuditEventBuilder.history_cleared("u1", 4)

        assert await storage.append_event(event)
        events = await storage.get_recent_events()

        assert len(events) == 1
        assert events[0].event_id == event.event_id
        assert events[0].details == {"cleared_count": 4}
        assert events[0].is_user_action


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
