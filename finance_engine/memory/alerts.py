"""
Financial Alerts

Rule-based alert detection plus a background monitor that re-runs it on
a fixed cadence.

DESIGN DECISION: The monitor only knows how to wait and call. The scan
itself (load data, detect, swap the profile, persist) is supplied by the
orchestrator, so the monitor never touches session state directly.
"""

import asyncio
import math
from typing import Awaitable, Callable, Optional

import structlog

from finance_engine.analysis.formatting import format_inr
from finance_engine.analysis.snapshot import RECENT_MONTHS
from finance_engine.models.finance import (
    Alert,
    AlertSeverity,
    AlertType,
    FinancialSnapshot,
)


logger = structlog.get_logger(__name__)

# Relative std-dev of recent monthly income above which income is "unstable"
INCOME_VARIATION_LIMIT = 0.3


def detect_alerts(snapshot: FinancialSnapshot) -> list[Alert]:
    """
    Check the snapshot against the alert rules.

    1. Overspending: expenses above income (high)
    2. Low savings: savings rate under 10% while still saving (medium)
    3. Income instability: recent monthly income varies by more than 30% (medium)
    4. High expense ratio: expenses above 85% of income (medium)
    """
    alerts: list[Alert] = []
    income, expenses = snapshot.income, snapshot.expenses

    if expenses > income:
        alerts.append(Alert(
            type=AlertType.OVERSPENDING,
            severity=AlertSeverity.HIGH,
            message=f"You're spending {format_inr(expenses - income)} more than you earn this month.",
            suggestion="Consider reviewing your expenses and reducing non-essential spending.",
        ))

    if income > 0 and snapshot.savings_rate < 10 and snapshot.savings > 0:
        alerts.append(Alert(
            type=AlertType.LOW_SAVINGS,
            severity=AlertSeverity.MEDIUM,
            message=f"Your savings rate is {snapshot.savings_rate:.1f}%, which is below recommended levels.",
            suggestion="Aim to save at least 10-20% of your income for better financial security.",
        ))

    if len(snapshot.monthly) >= 2:
        incomes = [m.income for m in snapshot.monthly[-RECENT_MONTHS:]]
        average = sum(incomes) / len(incomes)
        spread = math.sqrt(sum((i - average) ** 2 for i in incomes) / len(incomes))
        if average > 0 and spread / average > INCOME_VARIATION_LIMIT:
            alerts.append(Alert(
                type=AlertType.INCOME_INSTABILITY,
                severity=AlertSeverity.MEDIUM,
                message="Your income shows significant variation across recent months.",
                suggestion="Consider building a larger emergency fund to handle income fluctuations.",
            ))

    if income > 0 and snapshot.expense_ratio > 85:
        alerts.append(Alert(
            type=AlertType.HIGH_EXPENSE_RATIO,
            severity=AlertSeverity.MEDIUM,
            message=(
                f"Your expenses are {snapshot.expense_ratio:.1f}% of your income, "
                "leaving little room for savings."
            ),
            suggestion="Review your spending categories and identify areas to reduce expenses.",
        ))

    return alerts


class AlertMonitor:
    """
    Runs an alert scan after an initial delay, then on a fixed interval.

    Usage:
        monitor = AlertMonitor(orchestrator.scan_alerts, initial_delay=2, interval=300)
        monitor.start()
        ...
        await monitor.stop()
    """

    def __init__(
        self,
        scan: Callable[[], Awaitable[object]],
        initial_delay: float = 2.0,
        interval: float = 300.0,
    ):
        self._scan = scan
        self._initial_delay = initial_delay
        self._interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background task. Must be called from a running event loop."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        await asyncio.sleep(self._initial_delay)
        while True:
            try:
                await self._scan()
            except Exception as e:
                logger.warning("alert_scan_failed", error=str(e))
            await asyncio.sleep(self._interval)
