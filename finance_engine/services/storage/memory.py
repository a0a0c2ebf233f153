"""
In-Memory Storage Implementations

Used by tests and by local runs without Google Sheets configured.
They behave like the real backends: copies go in and copies come out,
so callers can never mutate stored state by accident.
"""

from typing import Optional

from finance_engine.models.audit import AuditEvent
from finance_engine.models.finance import (
    FinancialRecords,
    FixedExpense,
    Goal,
    HistoryEntry,
    IncomeSource,
    MemoryProfile,
    StorageResult,
)
from finance_engine.services.storage.interface import (
    AuditStorageInterface,
    FinancialDataProvider,
    PersistenceProvider,
    StorageError,
)


class InMemoryFinancialDataProvider(FinancialDataProvider):
    """
    Serves a fixed FinancialRecords object.

    Set `fail_with` to make every read raise, which is how tests
    exercise the data-unavailable path.
    """

    def __init__(
        self,
        records: Optional[FinancialRecords] = None,
        fail_with: Optional[str] = None,
    ):
        self.records = records or FinancialRecords()
        self.fail_with = fail_with

    def _check(self) -> None:
        if self.fail_with:
            raise StorageError(self.fail_with)

    async def get_total_income(self) -> float:
        self._check()
        return self.records.total_income

    async def get_total_expenses(self) -> float:
        self._check()
        return self.records.total_expenses

    async def get_fixed_expenses(self) -> list[FixedExpense]:
        self._check()
        return [item.model_copy() for item in self.records.fixed_expenses]

    async def get_flexible_spending(self) -> dict[str, float]:
        self._check()
        return dict(self.records.flexible_spending)

    async def get_history(self) -> list[HistoryEntry]:
        self._check()
        return [entry.model_copy() for entry in self.records.history]

    async def get_income_sources(self) -> list[IncomeSource]:
        self._check()
        return [source.model_copy() for source in self.records.income_sources]


class InMemoryPersistence(PersistenceProvider):
    """Dictionary-backed memory profile and goal storage."""

    def __init__(self, fail_writes: bool = False):
        self._memory: dict[str, MemoryProfile] = {}
        self._goals: dict[str, list[Goal]] = {}
        self.fail_writes = fail_writes
        self.save_count = 0

    async def load_memory(self, user_id: str) -> StorageResult:
        return StorageResult.success(self._memory.get(user_id))

    async def save_memory(self, user_id: str, memory: MemoryProfile) -> StorageResult:
        if self.fail_writes:
            return StorageResult.failure("Write failed: storage is read-only")
        self._memory[user_id] = memory
        self.save_count += 1
        return StorageResult.success(True)

    async def load_goals(self, user_id: str) -> StorageResult:
        goals = [goal.model_copy() for goal in self._goals.get(user_id, [])]
        return StorageResult.success(goals)

    async def save_goals(self, user_id: str, goals: list[Goal]) -> StorageResult:
        if self.fail_writes:
            return StorageResult.failure("Write failed: storage is read-only")
        self._goals[user_id] = [goal.model_copy() for goal in goals]
        self.save_count += 1
        return StorageResult.success(True)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
