"""
Goal Planner

Owns the user's savings goals for one session.

Goal lifecycle:
1. CREATE → only on explicit request; duplicate open names are rejected
2. PROGRESS → recomputed from the snapshot each turn (pure, idempotent)
3. COMPLETED / BEHIND / ACTIVE → derived, never set by hand

CRITICAL: The planner NEVER deletes goals. Completed goals stay in the
list; they just stop counting against name uniqueness.
"""

import math
from collections.abc import Iterable
from datetime import datetime
from typing import Optional

from finance_engine.analysis.formatting import format_inr
from finance_engine.models.finance import (
    AchievabilityAnalysis,
    FinancialSnapshot,
    Goal,
    GoalCreationResult,
    GoalStatus,
    ReductionStep,
    utc_now,
)


DAYS_PER_MONTH = 30

# Share of an expense we suggest cutting when adjusting a goal plan
ADJUSTMENT_SHARE = 0.15


def _normalize(name: str) -> str:
    return name.strip().lower()


class GoalPlanner:
    """
    Goal creation, progress tracking and achievability analysis.

    Usage:
        planner = GoalPlanner()
        result = planner.create("Trip", 50000, 5)
        if result.created:
            analysis = planner.analyze_achievability(result.goal, snapshot)
    """

    def __init__(
        self,
        goals: Optional[Iterable[Goal]] = None,
        behind_threshold: float = 0.8,
    ):
        self._goals: list[Goal] = list(goals or [])
        self._behind_threshold = behind_threshold

    @property
    def goals(self) -> list[Goal]:
        return list(self._goals)

    def replace_goals(self, goals: Iterable[Goal]) -> None:
        """Swap in goals loaded from persistence."""
        self._goals = list(goals)

    def open_goals(self) -> list[Goal]:
        """Active and behind goals, in creation order."""
        return [goal for goal in self._goals if goal.is_open]

    def find_open_goal(self, name: str) -> Optional[Goal]:
        key = _normalize(name)
        for goal in self._goals:
            if goal.is_open and _normalize(goal.name) == key:
                return goal
        return None

    def create(
        self,
        name: str,
        target_amount: float,
        duration_months: int,
        created_at: Optional[datetime] = None,
    ) -> GoalCreationResult:
        """
        Create a goal.

        Rejected (created=False, with a reason) when:
        - name is blank, or target/duration is not positive
        - an active or behind goal already has the same name
          (case-insensitive, surrounding whitespace ignored)

        The existing goal is never modified by a rejected create.
        """
        if not name or not name.strip() or not target_amount or not duration_months \
                or target_amount <= 0 or duration_months <= 0:
            return GoalCreationResult(
                created=False,
                reason="A goal needs a name, a positive target amount and a positive duration.",
            )

        trimmed = name.strip()
        if self.find_open_goal(trimmed) is not None:
            return GoalCreationResult(
                created=False,
                reason=(
                    f'A goal named "{trimmed}" already exists. Please use a different '
                    "name or edit the existing goal on the Goals page."
                ),
            )

        goal = Goal(
            name=trimmed,
            target_amount=float(target_amount),
            duration_months=int(duration_months),
            monthly_requirement=round(target_amount / duration_months, 2),
            created_at=created_at or utc_now(),
            remaining_amount=float(target_amount),
        )
        self._goals.append(goal)
        return GoalCreationResult(created=True, goal=goal)

    def update_progress(self, goal: Goal, snapshot: FinancialSnapshot) -> Goal:
        """
        Recompute a goal's progress from the snapshot. Pure: returns a copy.

        - amount saved is the current monthly savings, capped at the target
        - months elapsed are whole 30-day periods since creation (min 1 when
          computing what should have been saved by now)
        - behind when saved < expected * behind threshold
        - a COMPLETED goal is final and comes back unchanged
        """
        if goal.status == GoalStatus.COMPLETED:
            return goal

        elapsed_days = max(0.0, (snapshot.as_of - goal.created_at).total_seconds() / 86400)
        months_elapsed = math.floor(elapsed_days / DAYS_PER_MONTH)
        expected = goal.monthly_requirement * max(1, months_elapsed)

        saved = max(0.0, min(snapshot.savings, goal.target_amount))
        completion = min(100.0, saved / goal.target_amount * 100)

        if completion >= 100:
            status = GoalStatus.COMPLETED
        elif saved < expected * self._behind_threshold:
            status = GoalStatus.BEHIND
        else:
            status = GoalStatus.ACTIVE

        return goal.model_copy(update={
            "amount_saved": saved,
            "remaining_amount": max(0.0, goal.target_amount - saved),
            "completion_percentage": completion,
            "status": status,
        })

    def refresh(self, snapshot: FinancialSnapshot) -> list[Goal]:
        """Recompute progress for every goal. Idempotent for a given snapshot."""
        self._goals = [self.update_progress(goal, snapshot) for goal in self._goals]
        return self.goals

    def analyze_achievability(
        self,
        goal: Goal,
        snapshot: FinancialSnapshot,
    ) -> AchievabilityAnalysis:
        """
        Decide whether the monthly requirement fits the user's budget.

        1. No income → not achievable
        2. Requirement above income → not achievable
        3. Requirement above current savings → achievable with reductions
        4. Otherwise → achievable as things stand
        """
        income = snapshot.income
        requirement = goal.monthly_requirement
        available = income - snapshot.expenses

        if income <= 0:
            return AchievabilityAnalysis(
                achievable=False,
                monthly_requirement=requirement,
                available_savings=available,
                message="No income data available",
            )

        if requirement > income:
            return AchievabilityAnalysis(
                achievable=False,
                monthly_requirement=requirement,
                available_savings=available,
                message=f"Monthly requirement ({format_inr(requirement)}) exceeds your income",
                suggestion="Consider increasing the duration or reducing the target amount",
            )

        if requirement > available:
            shortfall = requirement - available
            plan = self._reduction_plan(shortfall, snapshot)
            return AchievabilityAnalysis(
                achievable=True,
                requires_reduction=True,
                monthly_requirement=requirement,
                available_savings=available,
                shortfall=shortfall,
                message=f"You need to reduce expenses by {format_inr(shortfall)}/month",
                suggestion=self._describe_plan(shortfall, plan),
                reduction_plan=plan,
            )

        return AchievabilityAnalysis(
            achievable=True,
            monthly_requirement=requirement,
            available_savings=available,
            message=(
                f"Goal is achievable with your current savings rate of "
                f"{snapshot.savings_rate:.1f}%"
            ),
        )

    def _reduction_plan(
        self,
        shortfall: float,
        snapshot: FinancialSnapshot,
    ) -> list[ReductionStep]:
        """Cut the largest expense first; whatever it cannot cover goes to the rest."""
        if not snapshot.top_expenses:
            return []

        top = snapshot.top_expenses[0]
        if top.amount >= shortfall:
            return [ReductionStep(
                name=top.name,
                current_amount=top.amount,
                reduce_by=shortfall,
                new_amount=top.amount - shortfall,
            )]

        others = max(0.0, snapshot.expenses - top.amount)
        remaining = shortfall - top.amount
        return [
            ReductionStep(
                name=top.name,
                current_amount=top.amount,
                reduce_by=top.amount,
                new_amount=0.0,
            ),
            ReductionStep(
                name="other expenses",
                current_amount=others,
                reduce_by=remaining,
                new_amount=max(0.0, others - remaining),
            ),
        ]

    @staticmethod
    def _describe_plan(shortfall: float, plan: list[ReductionStep]) -> str:
        if not plan:
            return f"Reduce expenses by {format_inr(shortfall)}/month"
        return " and ".join(
            f"Reduce {step.name} by {format_inr(step.reduce_by)}/month" if i == 0
            else f"{step.name} by {format_inr(step.reduce_by)}/month"
            for i, step in enumerate(plan)
        )

    def adjustment_plan(
        self,
        goal: Goal,
        snapshot: FinancialSnapshot,
    ) -> list[ReductionStep]:
        """
        Suggested cuts for a goal that needs reductions.

        Targets the two largest expenses; each is reduced by 15% of its
        amount or half the shortfall, whichever is smaller. Empty when the
        goal needs no reductions.
        """
        analysis = self.analyze_achievability(goal, snapshot)
        if not analysis.requires_reduction or analysis.shortfall <= 0:
            return []

        steps = []
        for expense in snapshot.top_expenses[:2]:
            reduction = min(expense.amount * ADJUSTMENT_SHARE, analysis.shortfall / 2)
            steps.append(ReductionStep(
                name=expense.name,
                current_amount=expense.amount,
                reduce_by=reduction,
                new_amount=expense.amount - reduction,
            ))
        return steps
