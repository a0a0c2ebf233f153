"""
Goal & Scenario Generators

Responses for the goal lifecycle (create, progress, achievability,
adjustment, feasibility) and for what-if simulations.

CRITICAL: Goals are created ONLY here, and only when the user explicitly
asked. A simulation NEVER changes the snapshot or any goal.
"""

from finance_engine.analysis.formatting import format_inr
from finance_engine.generators.context import ResponseContext
from finance_engine.intents.extraction import extract_goal_request, extract_scenario
from finance_engine.models.finance import (
    AchievabilityAnalysis,
    FinancialSnapshot,
    GoalStatus,
    ScenarioDirection,
    ScenarioParams,
    ScenarioTarget,
)


GOAL_PROMPT = (
    "I can help you create a savings goal! Please specify:\n"
    "- Target amount (e.g., ₹50,000)\n"
    "- Duration (e.g., 6 months)\n\n"
    "Example: \"Create a goal to save ₹50,000 in 6 months\""
)

SCENARIO_PROMPT = (
    "I can help you simulate financial scenarios! Try asking:\n\n"
    "• \"What if my income reduces by ₹10,000?\"\n"
    "• \"What if rent increases by 20%?\"\n"
    "• \"What if I reduce Food & Dining by ₹2,000?\""
)


def _months(n: int) -> str:
    return f"{n} month{'s' if n != 1 else ''}"


def create_goal(context: ResponseContext) -> str:
    request = extract_goal_request(context.question)
    if not request.is_complete:
        return GOAL_PROMPT

    result = context.planner.create(
        request.name,
        request.target_amount,
        request.duration_months,
        created_at=context.snapshot.as_of,
    )
    if not result.created:
        context.outcome.rejected_goal_name = request.name
        context.outcome.rejection_reason = result.reason
        return result.reason

    goal = result.goal
    context.outcome.created_goal = goal
    analysis = context.planner.analyze_achievability(goal, context.snapshot)

    response = (
        f'✅ Goal created: "{goal.name}"\n\n'
        f"Target: {format_inr(goal.target_amount)}\n"
        f"Duration: {_months(goal.duration_months)}\n"
        f"Monthly requirement: {format_inr(goal.monthly_requirement)}\n\n"
    )
    if analysis.achievable:
        response += f"📊 Analysis: {analysis.message}"
        if analysis.suggestion:
            response += f"\n💡 Suggestion: {analysis.suggestion}"
    else:
        response += f"⚠️ Analysis: {analysis.message}"
        if analysis.suggestion:
            response += f"\n💡 {analysis.suggestion}"
    return response


def goal_progress(context: ResponseContext) -> str:
    goals = context.planner.open_goals()
    if not goals:
        return (
            "You don't have any active savings goals. Create one by saying \"Create a savings "
            "goal\" or \"Set a goal to save ₹50,000 in 6 months\"."
        )

    response = "Your Goal Progress:\n\n"
    for i, goal in enumerate(goals, 1):
        goal = context.planner.update_progress(goal, context.snapshot)
        response += (
            f"{i}. {goal.name}\n"
            f"   Target: {format_inr(goal.target_amount)}\n"
            f"   Saved: {format_inr(goal.amount_saved)} ({goal.completion_percentage:.1f}%)\n"
            f"   Remaining: {format_inr(goal.remaining_amount)}\n"
            f"   Monthly need: {format_inr(goal.monthly_requirement)}\n"
        )
        if goal.status == GoalStatus.BEHIND:
            response += "   ⚠️ Status: Falling behind schedule\n"
        elif goal.status == GoalStatus.COMPLETED:
            response += "   ✅ Status: Completed!\n"
        else:
            response += "   ✅ Status: On track\n"
        response += "\n"
    return response.rstrip()


def goal_achievability(context: ResponseContext) -> str:
    goal = context.first_open_goal()
    if goal is None:
        return "You don't have any active goals. Create one first by saying \"Create a savings goal\"."

    analysis = context.planner.analyze_achievability(goal, context.snapshot)
    response = (
        f'Goal Analysis: "{goal.name}"\n\n'
        f"Target: {format_inr(goal.target_amount)} in {_months(goal.duration_months)}\n"
        f"Monthly requirement: {format_inr(goal.monthly_requirement)}\n\n"
    )
    if analysis.achievable and analysis.requires_reduction:
        response += (
            "✅ This goal is achievable, but you'll need to make adjustments:\n\n"
            f"{analysis.message}\n\n"
            "Step-by-step plan:\n"
            f"1. {analysis.suggestion}\n"
            "2. Monitor your progress monthly\n"
            "3. Adjust spending if needed"
        )
    elif analysis.achievable:
        response += (
            "✅ This goal is achievable with your current financial situation!\n\n"
            f"{analysis.message}\n\n"
            "You're on track to reach your goal. Keep up the good work!"
        )
    else:
        response += f"⚠️ This goal may be challenging:\n\n{analysis.message}\n\n"
        response += (
            f"💡 {analysis.suggestion}" if analysis.suggestion
            else "Consider adjusting the target amount or duration to make it more realistic."
        )
    return response


def adjust_goal(context: ResponseContext) -> str:
    goal = context.first_open_goal()
    if goal is None:
        return "You don't have any active goals to adjust. Create one first."

    s = context.snapshot
    analysis = context.planner.analyze_achievability(goal, s)
    steps = context.planner.adjustment_plan(goal, s)

    response = f'Adjusted Plan for "{goal.name}":\n\n'
    if analysis.requires_reduction and analysis.shortfall > 0:
        response += (
            f"To reach your goal, you need to save {format_inr(goal.monthly_requirement)}/month.\n\n"
            "Current situation:\n"
            f"- Current savings: {format_inr(analysis.available_savings)}/month\n"
            f"- Shortfall: {format_inr(analysis.shortfall)}/month\n\n"
            "Recommended adjustments:\n"
        )
        response += "\n".join(
            f"{i}. Reduce {step.name} by {format_inr(step.reduce_by)}/month"
            for i, step in enumerate(steps, 1)
        ) or f"1. Reduce expenses by {format_inr(analysis.shortfall)}/month"
    elif not analysis.achievable:
        response += f"{analysis.message}.\n\n💡 {analysis.suggestion or 'Consider adjusting the target amount or duration.'}"
    else:
        response += (
            "Your current plan is working well!\n\n"
            f"You're saving {format_inr(max(0.0, s.savings))}/month, which is sufficient for your goal."
        )
    return response


# =============================================================================
# SCENARIOS
# =============================================================================

def describe_scenario(params: ScenarioParams) -> str:
    """Plain description, e.g. "Income decreases by ₹10,000.00"."""
    if params.target == ScenarioTarget.INCOME:
        subject, plural = "Income", False
    elif params.target == ScenarioTarget.TOTAL_EXPENSES:
        subject, plural = "Expenses", True
    else:
        subject, plural = f"{params.target.label} spending", False

    verb = "increase" if params.direction == ScenarioDirection.INCREASE else "decrease"
    if not plural:
        verb += "s"
    if params.percentage is not None:
        magnitude = f"{params.percentage:g}%"
    else:
        magnitude = format_inr(params.amount or 0.0)
    return f"{subject} {verb} by {magnitude}"


def _signed(change: float) -> str:
    if change == 0:
        return ""
    return f" ({'+' if change > 0 else '-'}{format_inr(abs(change))})"


def _situation(snapshot: FinancialSnapshot) -> tuple[str, str, str]:
    return (
        format_inr(snapshot.income),
        format_inr(snapshot.expenses),
        f"{format_inr(snapshot.savings)} ({snapshot.savings_rate:.1f}%)",
    )


def what_if(context: ResponseContext) -> str:
    params = extract_scenario(context.question)
    if params is None:
        return SCENARIO_PROMPT

    result = context.simulator.simulate(
        context.snapshot,
        params,
        goals=context.planner.open_goals(),
    )
    context.outcome.simulation = result

    income, expenses, savings = _situation(result.original)
    sim_income, sim_expenses, sim_savings = _situation(result.simulated)

    response = (
        "📊 Simulation Results:\n\n"
        f"Scenario: {describe_scenario(params)}\n\n"
        "Current Situation:\n"
        f"• Income: {income}\n"
        f"• Expenses: {expenses}\n"
        f"• Savings: {savings}\n\n"
        "After This Change:\n"
        f"• Income: {sim_income}{_signed(result.income_change)}\n"
        f"• Expenses: {sim_expenses}{_signed(result.expense_change)}\n"
        f"• Savings: {sim_savings}{_signed(result.savings_change)}\n\n"
    )

    change = result.savings_change
    if change < 0:
        response += f"⚠️ Impact: Your savings would decrease by {format_inr(abs(change))}/month."
        if result.simulated.savings < 0:
            response += " This would result in overspending."
    elif change > 0:
        response += f"✅ Impact: Your savings would increase by {format_inr(change)}/month."
    else:
        response += "📊 Impact: Your savings would remain unchanged."

    impact = result.goal_impact
    if impact is not None:
        name = result.goal_name
        if impact.achievable and impact.requires_reduction:
            response += (
                f'\n\n🎯 Goal Impact: You could still reach "{name}", but you\'d need to reduce '
                f"expenses by {format_inr(impact.shortfall)}/month."
            )
        elif impact.achievable:
            response += f'\n\n🎯 Goal Impact: You\'d still be on track to reach "{name}".'
        else:
            response += f'\n\n🎯 Goal Impact: This change might make it harder to reach "{name}".'

    return response + "\n\n💡 Note: This is a simulation only. Your actual data remains unchanged."


def goal_feasibility(context: ResponseContext) -> str:
    """Achievability of the first open goal, optionally under a what-if scenario."""
    goal = context.first_open_goal()
    if goal is None:
        return "You don't have any active goals. Create one first to check feasibility."

    params = extract_scenario(context.question)
    snapshot = context.snapshot
    if params is not None:
        result = context.simulator.simulate(snapshot, params)
        context.outcome.simulation = result
        snapshot = result.simulated

    analysis: AchievabilityAnalysis = context.planner.analyze_achievability(goal, snapshot)

    response = f'Goal Feasibility: "{goal.name}"\n\n'
    if params is not None:
        response += f"Scenario: {describe_scenario(params)}\n\n"

    if analysis.achievable and analysis.requires_reduction:
        response += f"✅ Feasible, but requires adjustments:\n\n{analysis.message}"
        if analysis.suggestion:
            response += f"\n\nAction needed: {analysis.suggestion}"
    elif analysis.achievable:
        response += f"✅ This goal is feasible!\n\n{analysis.message}\n\nYou're on track to reach your goal."
    else:
        response += f"⚠️ This goal may be challenging:\n\n{analysis.message}\n\n"
        response += (
            f"💡 {analysis.suggestion}" if analysis.suggestion
            else "Consider adjusting the target amount or duration."
        )
    return response

