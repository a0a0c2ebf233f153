"""
Shared fixtures.

Three households are used throughout:
- healthy: ₹1,00,000 income, ₹60,000 expenses, three months of history
- tight: ₹50,000 income, ₹48,000 expenses (saving 4%)
- overspending: ₹40,000 income, ₹50,000 expenses
"""

from datetime import datetime, timezone

import pytest

from finance_engine.analysis.snapshot import SnapshotBuilder
from finance_engine.models.finance import (
    EntryType,
    FinancialRecords,
    FixedExpense,
    HistoryEntry,
    IncomeSource,
)


AS_OF = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


def _history(month: int, income: float, expenses: float) -> list[HistoryEntry]:
    return [
        HistoryEntry(
            amount=income,
            type=EntryType.INCOME,
            category="salary",
            timestamp=datetime(2025, month, 1, tzinfo=timezone.utc),
        ),
        HistoryEntry(
            amount=expenses,
            type=EntryType.EXPENSE,
            category="food",
            timestamp=datetime(2025, month, 10, tzinfo=timezone.utc),
        ),
    ]


@pytest.fixture
def healthy_records() -> FinancialRecords:
    return FinancialRecords(
        total_income=100000,
        total_expenses=60000,
        income_sources=[
            IncomeSource(name="Salary", amount=80000),
            IncomeSource(name="Freelance", amount=20000),
        ],
        fixed_expenses=[
            FixedExpense(name="Rent", amount=25000),
            FixedExpense(name="EMI", amount=10000),
            FixedExpense(name="Insurance", amount=5000),
        ],
        flexible_spending={"food": 12000, "travel": 5000, "shopping": 3000},
        history=_history(1, 100000, 55000) + _history(2, 100000, 58000) + _history(3, 100000, 60000),
    )


@pytest.fixture
def tight_records() -> FinancialRecords:
    return FinancialRecords(
        total_income=50000,
        total_expenses=48000,
        income_sources=[IncomeSource(name="Salary", amount=50000)],
        fixed_expenses=[FixedExpense(name="Rent", amount=30000)],
        flexible_spending={"food": 12000, "shopping": 6000},
    )


@pytest.fixture
def overspending_records() -> FinancialRecords:
    return FinancialRecords(
        total_income=40000,
        total_expenses=50000,
        income_sources=[IncomeSource(name="Salary", amount=40000)],
        fixed_expenses=[
            FixedExpense(name="Rent", amount=30000),
            FixedExpense(name="EMI", amount=5000),
        ],
        flexible_spending={"food": 10000, "shopping": 5000},
    )


@pytest.fixture
def builder() -> SnapshotBuilder:
    return SnapshotBuilder()


@pytest.fixture
def healthy(builder, healthy_records):
    return builder.build(healthy_records, as_of=AS_OF)


@pytest.fixture
def tight(builder, tight_records):
    return builder.build(tight_records, as_of=AS_OF)


@pytest.fixture
def overspending(builder, overspending_records):
    return builder.build(overspending_records, as_of=AS_OF)


@pytest.fixture
def empty(builder):
    return builder.build(None, as_of=AS_OF)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
