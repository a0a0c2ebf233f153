"""
Scenario Simulator

Answers "what if" questions by applying a hypothetical change to a COPY
of the snapshot.

DESIGN DECISION: FinancialSnapshot is frozen, so the simulator builds the
simulated view with `model_copy(update=...)`. The live snapshot, the
user's records and their goals are NEVER touched, and there is no state
carried between calls: the same inputs always give the same result.
"""

from collections.abc import Sequence
from typing import Optional

import structlog

from finance_engine.analysis.snapshot import identify_overspending
from finance_engine.goals.planner import GoalPlanner
from finance_engine.models.finance import (
    FinancialSnapshot,
    Goal,
    ScenarioDirection,
    ScenarioParams,
    ScenarioResult,
    ScenarioTarget,
)


logger = structlog.get_logger(__name__)


def _apply(current: float, params: ScenarioParams) -> float:
    """New value of the targeted field. Percentages apply to `current`."""
    if params.percentage is not None:
        change = current * params.percentage / 100
    else:
        change = params.amount or 0.0

    if params.direction == ScenarioDirection.INCREASE:
        return current + change
    return max(0.0, current - change)


class ScenarioSimulator:
    """
    Non-mutating what-if engine.

    Usage:
        simulator = ScenarioSimulator()
        result = simulator.simulate(snapshot, params, goals=planner.open_goals())
        result.savings_change  # signed, vs. the original snapshot
    """

    def __init__(self, planner: Optional[GoalPlanner] = None):
        self._planner = planner or GoalPlanner()

    def simulate(
        self,
        snapshot: FinancialSnapshot,
        params: ScenarioParams,
        goals: Sequence[Goal] = (),
    ) -> ScenarioResult:
        """
        Run one scenario.

        Args:
            snapshot: The current snapshot (left unchanged)
            params: What to change and by how much
            goals: Open goals; the first one is re-analyzed under the scenario

        Returns:
            ScenarioResult with the simulated snapshot and signed deltas
        """
        simulated = self._simulated_snapshot(snapshot, params)

        goal_name = None
        goal_impact = None
        if goals:
            goal = self._planner.update_progress(goals[0], snapshot)
            goal_name = goal.name
            goal_impact = self._planner.analyze_achievability(goal, simulated)

        result = ScenarioResult(
            params=params,
            original=snapshot,
            simulated=simulated,
            income_change=simulated.income - snapshot.income,
            expense_change=simulated.expenses - snapshot.expenses,
            savings_change=simulated.savings - snapshot.savings,
            goal_name=goal_name,
            goal_impact=goal_impact,
        )
        logger.debug(
            "scenario_simulated",
            target=params.target.value,
            direction=params.direction.value,
            savings_change=result.savings_change,
        )
        return result

    def _simulated_snapshot(
        self,
        snapshot: FinancialSnapshot,
        params: ScenarioParams,
    ) -> FinancialSnapshot:
        update: dict = {}

        if params.target == ScenarioTarget.INCOME:
            update["income"] = _apply(snapshot.income, params)

        elif params.target == ScenarioTarget.TOTAL_EXPENSES:
            update["expenses"] = _apply(snapshot.expenses, params)

        else:
            # Category change: the delta flows back into the totals
            key = params.target.value
            current = snapshot.category_amount(key)
            new_amount = _apply(current, params)
            delta = new_amount - current

            categories = dict(snapshot.flexible_by_category)
            categories[key] = new_amount
            update["flexible_by_category"] = categories
            update["flexible_spending"] = max(0.0, snapshot.flexible_spending + delta)
            update["expenses"] = max(0.0, snapshot.expenses + delta)

        simulated = snapshot.model_copy(update=update, deep=True)
        return simulated.model_copy(update={"overspending": identify_overspending(simulated)})
