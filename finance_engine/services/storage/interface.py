"""
Abstract Storage Interfaces

DESIGN DECISION: We define abstract interfaces for every storage concern.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the reasoning engine decoupled from where the numbers live

Three concerns, three interfaces:
- FinancialDataProvider: READ-ONLY access to the user's records
- PersistenceProvider: memory profile and goals (read/write)
- AuditStorageInterface: append-only audit trail

Implementations raise StorageError subclasses. The engine never sees
those exceptions: `fetch_records()` and the persistence methods convert
them to StorageResult failures at the boundary.
"""

import asyncio
from abc import ABC, abstractmethod

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


class FinancialDataProvider(ABC):
    """
    Read-only access to one user's financial records.

    The engine NEVER writes through this interface.
    """

    @abstractmethod
    async def get_total_income(self) -> float:
        """
        Get the user's total monthly income.

        Returns:
            Total income in INR

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def get_total_expenses(self) -> float:
        """
        Get the user's total monthly expenses (fixed + flexible).

        Returns:
            Total expenses in INR

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def get_fixed_expenses(self) -> list[FixedExpense]:
        """Get the user's recurring fixed expenses."""
        pass

    @abstractmethod
    async def get_flexible_spending(self) -> dict[str, float]:
        """
        Get discretionary spending by category.

        Returns:
            Mapping of category key (food, travel, shopping,
            miscellaneous) to amount in INR
        """
        pass

    @abstractmethod
    async def get_history(self) -> list[HistoryEntry]:
        """Get dated income/expense transactions."""
        pass

    @abstractmethod
    async def get_income_sources(self) -> list[IncomeSource]:
        """Get named income sources."""
        pass

    async def fetch_records(self) -> StorageResult:
        """
        Load everything the engine needs in one call.

        Never raises. Any backend failure becomes a failed StorageResult
        whose error explains what went wrong.
        """
        try:
            (
                income,
                expenses,
                fixed,
                flexible,
                history,
                sources,
            ) = await asyncio.gather(
                self.get_total_income(),
                self.get_total_expenses(),
                self.get_fixed_expenses(),
                self.get_flexible_spending(),
                self.get_history(),
                self.get_income_sources(),
            )
            records = FinancialRecords(
                total_income=income,
                total_expenses=expenses,
                fixed_expenses=fixed,
                flexible_spending=flexible,
                history=history,
                income_sources=sources,
            )
            return StorageResult.success(records)
        except Exception as e:
            return StorageResult.failure(f"Failed to load financial records: {e}")


class PersistenceProvider(ABC):
    """
    Storage for data the engine owns: the memory profile and goals.

    Every method returns a StorageResult instead of raising, so a
    write failure can be logged and ignored by the caller.
    """

    @abstractmethod
    async def load_memory(self, user_id: str) -> StorageResult:
        """
        Load the user's memory profile.

        Returns:
            StorageResult whose value is a MemoryProfile, or None if the
            user has no stored profile yet
        """
        pass

    @abstractmethod
    async def save_memory(self, user_id: str, memory: MemoryProfile) -> StorageResult:
        """Persist the user's memory profile (full overwrite)."""
        pass

    @abstractmethod
    async def load_goals(self, user_id: str) -> StorageResult:
        """
        Load the user's goals.

        Returns:
            StorageResult whose value is a list[Goal] (possibly empty)
        """
        pass

    @abstractmethod
    async def save_goals(self, user_id: str, goals: list[Goal]) -> StorageResult:
        """Persist the user's full goal list (full overwrite)."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
