"""
Insight Generators

One function per financial-analysis intent. Each takes a ResponseContext
and returns the answer text.

CRITICAL RULES:
1. Every number in a response comes from the snapshot. NEVER estimate.
2. Missing data gives a guidance string ("add your income..."), NEVER
   an exception.
3. Amounts are always formatted with format_inr.
"""

import calendar
from typing import Optional

from finance_engine.analysis.formatting import format_inr
from finance_engine.analysis.snapshot import calculate_health_score
from finance_engine.generators.context import ResponseContext
from finance_engine.intents.extraction import parse_amount
from finance_engine.models.finance import (
    FLEXIBLE_CATEGORIES,
    FinancialSnapshot,
    GoalStatus,
    HealthStatus,
    OverspendingKind,
    TrendDirection,
)


NO_DATA = "Add your income and expenses to get started."

OVERSPENDING_LABELS = {
    OverspendingKind.OVERALL: "Overall",
    OverspendingKind.FIXED: "Fixed expenses",
    OverspendingKind.FLEXIBLE: "Flexible spending",
}


def _empty(snapshot: FinancialSnapshot) -> bool:
    return snapshot.income == 0 and snapshot.expenses == 0


def _share(amount: float, income: float) -> float:
    return amount / income * 100 if income > 0 else 0.0


def _numbered(items: list[str], blank_line: bool = False) -> str:
    sep = "\n\n" if blank_line else "\n"
    return sep.join(f"{i}. {item}" for i, item in enumerate(items, 1))


# =============================================================================
# PROACTIVE INSIGHTS
# =============================================================================

def goal_shortfall(context: ResponseContext) -> Optional[tuple[str, float]]:
    """(goal name, amount behind schedule) for the first open goal, if behind."""
    goal = context.first_open_goal()
    if goal is None or goal.status != GoalStatus.BEHIND:
        return None
    days = max(0.0, (context.snapshot.as_of - goal.created_at).total_seconds() / 86400)
    expected = goal.monthly_requirement * max(1, int(days // 30))
    shortfall = expected - goal.amount_saved
    return (goal.name, shortfall) if shortfall > 0 else None


def proactive_insight(context: ResponseContext) -> Optional[str]:
    """
    The single most relevant insight, or None when nothing stands out.

    Checked in order: overspending, very high expense ratio, projected
    month-end overrun (between day 10 and day 25), low savings rate,
    a goal that is behind schedule.
    """
    s = context.snapshot
    if s.income == 0 or s.expenses == 0:
        return None

    if s.expenses > s.income:
        return (
            f"You're currently overspending by {format_inr(s.expenses - s.income)}. "
            "Consider reviewing your expenses."
        )

    if s.expense_ratio > 85:
        return f"Your expenses are {s.expense_ratio:.1f}% of income, leaving little room for savings."

    day = s.as_of.day
    if 10 < day < 25:
        days_in_month = calendar.monthrange(s.as_of.year, s.as_of.month)[1]
        projected = s.expenses / day * days_in_month
        if projected > s.income * 1.1:
            return (
                f"At current spending rate, you may exceed your budget by "
                f"{format_inr(projected - s.income)} this month."
            )

    if s.savings_rate < 10 and s.savings > 0:
        return f"Your savings rate is {s.savings_rate:.1f}%. Aim for 15-20% for better financial security."

    behind = goal_shortfall(context)
    if behind:
        name, shortfall = behind
        return f'Your "{name}" goal is behind by {format_inr(shortfall)}. Consider reducing expenses to catch up.'

    return None


def goal_encouragement(context: ResponseContext) -> Optional[str]:
    """A short progress note for the first open goal that is under way."""
    goal = context.first_open_goal()
    if goal is None or not 0 < goal.completion_percentage < 100:
        return None

    pct = goal.completion_percentage
    if goal.status == GoalStatus.BEHIND:
        return (
            f'💪 You\'re {pct:.1f}% towards "{goal.name}". Keep going! '
            "Consider reducing expenses to stay on track."
        )
    if pct >= 50:
        return (
            f'🎉 Great progress! You\'re {pct:.1f}% towards "{goal.name}". '
            "You're more than halfway there!"
        )
    return None


# =============================================================================
# SUMMARY & HEALTH
# =============================================================================

def monthly_summary(context: ResponseContext) -> str:
    s = context.snapshot
    if _empty(s):
        return (
            "I don't have enough data yet to generate a full monthly report. "
            "Add more income or expenses and try again."
        )

    lines = [
        f"Here's your monthly financial summary for {s.month_label}:\n",
        f"Your total income this month was {format_inr(s.income)}.",
    ]
    if s.savings > 0:
        lines.append(f"You spent {format_inr(s.expenses)}, and saved {format_inr(s.savings)}.")
    else:
        lines.append(
            f"You spent {format_inr(s.expenses)}, which is "
            f"{format_inr(abs(s.savings))} more than you earned."
        )
    response = "\n".join(lines)

    if s.top_expenses:
        top = s.top_expenses[0]
        response += f"\n\nYour highest spending category was {top.name} ({format_inr(top.amount)})."

    if s.health == HealthStatus.HEALTHY or s.savings_rate > 20:
        outlook = "Healthy"
    elif s.health == HealthStatus.MODERATE or s.savings_rate > 10:
        outlook = "Moderate"
    else:
        outlook = "Needs Attention"
    response += f"\n\nOverall, your savings look {outlook}."

    insight = proactive_insight(context)
    if insight:
        response += f"\n\n💡 Insight: {insight}"

    encouragement = goal_encouragement(context)
    if encouragement:
        response += f"\n\n{encouragement}"

    if context.alerts:
        response += "\n\n⚠️ Alerts:\n" + "\n".join(f"• {alert.message}" for alert in context.alerts)

    return response


def health_score(context: ResponseContext) -> str:
    score = calculate_health_score(context.snapshot)
    if score.score == 0 and score.status == "Unknown":
        return score.explanation

    response = (
        f"Your Financial Health Score: {score.score}/100\n\n"
        f"Status: {score.status}\n\n"
        f"{score.explanation}"
    )
    if score.factors:
        response += "\n\nKey factors:\n" + _numbered(score.factors[:3])
    return response


def budget_health(context: ResponseContext) -> str:
    s = context.snapshot
    if _empty(s):
        return (
            "Based on your data, you haven't added any financial information yet. "
            "Add your income and expenses to assess budget health."
        )

    rate, ratio = s.savings_rate, s.expense_ratio
    response = "Here's your budget health assessment:\n\n"
    if s.health == HealthStatus.HEALTHY:
        response += (
            f"Your budget health is Healthy. You're saving {rate:.1f}% of your income, and expenses "
            f"are {ratio:.1f}% of income. This is a strong financial position."
        )
    elif s.health == HealthStatus.MODERATE:
        response += (
            f"Your budget health is Moderate. You're saving {rate:.1f}% of your income, and expenses "
            f"are {ratio:.1f}% of income. There's room for improvement."
        )
    else:
        response += "Your budget health Needs Attention. "
        if s.expenses > s.income:
            response += "You're spending more than you earn. "
        else:
            response += f"Your expenses are {ratio:.1f}% of income, and savings rate is {rate:.1f}%. "
        response += "Consider reducing expenses or increasing income."

    if s.trend.has_trend:
        if s.trend.expense_trend == TrendDirection.INCREASING:
            response += "\n\nNote: Your expenses have been increasing, which may impact your budget health."
        elif s.trend.expense_trend == TrendDirection.DECREASING:
            response += "\n\nGood news: Your expenses are decreasing, which is improving your budget health."
    return response


# =============================================================================
# SAVINGS
# =============================================================================

def save_more(context: ResponseContext) -> str:
    s = context.snapshot
    if s.savings <= 0:
        return (
            "To start saving, you need to either reduce expenses or increase income. Your expenses "
            "currently equal or exceed your income. Review your spending categories to find areas "
            "where you can cut back."
        )

    steps = []
    if s.overspending:
        areas = "\n".join(
            f"   • {OVERSPENDING_LABELS[insight.kind]}: Consider reducing this expense"
            for insight in s.overspending[:2]
        )
        steps.append(f"Address overspending areas:\n{areas}")
    if _share(s.fixed_expenses, s.income) > 50:
        steps.append("Your fixed expenses are high. Review if any can be reduced or negotiated.")
    if _share(s.flexible_spending, s.income) > 30:
        steps.append(
            "Your flexible spending has room for reduction. Set lower budgets for non-essential categories."
        )
    if s.trend.has_trend and s.trend.expense_trend == TrendDirection.INCREASING:
        steps.append(
            "Your expenses have been increasing. Try to reverse this trend by being more mindful of spending."
        )
    if s.top_expenses and s.top_expenses[0].percentage > 20:
        top = s.top_expenses[0]
        steps.append(f"Focus on reducing {top.name}, which is {top.percentage:.1f}% of your income.")

    response = "Here are ways to save more:\n\n"
    if steps:
        response += _numbered(steps) + "\n"
    return response + "\nEven small reductions can add up over time. Focus on one category at a time."


def savings_advice(context: ResponseContext) -> str:
    s = context.snapshot
    if _empty(s):
        return "Add your income and expenses to get personalized savings advice."

    response = "Savings advice:\n\n"
    if s.savings <= 0:
        return response + (
            "You're currently not saving. Focus on reducing expenses or increasing income "
            "to start building savings."
        )

    rate = s.savings_rate
    response += f"You're saving {format_inr(s.savings)} per month ({rate:.1f}% of income). "
    if rate > 20:
        response += "This is excellent! Keep up the good work."
    elif rate > 10:
        response += "This is good. Consider aiming for 15-20% for better financial security."
    else:
        response += "Try to increase this to at least 10-15% for better financial health."
    return response


def savings_analysis(context: ResponseContext) -> str:
    s = context.snapshot
    if _empty(s):
        return (
            "Based on your data, you haven't added any financial information yet. "
            "Add your income and expenses to get a savings analysis."
        )

    rate = s.savings_rate
    response = "Here's your savings analysis:\n\n"
    if s.savings > 0:
        response += f"You're saving {format_inr(s.savings)} per month, which is {rate:.1f}% of your income. "
        if rate > 20:
            response += "This is an excellent savings rate! "
        elif rate > 10:
            response += "This is a good savings rate. "
        else:
            response += "This savings rate could be improved. "
    else:
        response += "You're currently not saving any money. Your expenses equal or exceed your income. "

    response += {
        HealthStatus.HEALTHY: "Your financial health looks good.",
        HealthStatus.MODERATE: "Your financial health is moderate.",
    }.get(s.health, "Your financial health needs attention.")

    if s.trend.has_trend:
        if s.trend.expense_trend == TrendDirection.INCREASING:
            response += " Your expenses have been increasing, which may impact your savings."
        elif s.trend.expense_trend == TrendDirection.DECREASING:
            response += " Your expenses are decreasing, which is helping your savings."

    if rate < 15 and s.top_expenses and s.top_expenses[0].percentage > 20:
        top = s.top_expenses[0]
        response += (
            f"\n\nTo improve savings, consider reducing {top.name} spending, "
            f"which is {top.percentage:.1f}% of your income."
        )
    return response


# =============================================================================
# EXPENSES
# =============================================================================

def _top_expense_lines(context: ResponseContext, limit: int) -> list[str]:
    return [
        f"{e.name}: {format_inr(e.amount)} ({e.percentage:.1f}% of income)"
        for e in context.snapshot.top_expenses[:limit]
    ]


def cut_expenses(context: ResponseContext) -> str:
    s = context.snapshot
    if s.expenses == 0:
        return "You haven't added any expenses yet. Add your expenses to get suggestions on reducing them."

    response = "Here are ways to cut expenses:\n\n"
    if s.top_expenses:
        response += "Top areas to reduce:\n" + _numbered(_top_expense_lines(context, 3)) + "\n"
    if s.expense_ratio > 80:
        response += (
            f"\nYour expenses are {s.expense_ratio:.1f}% of income. "
            "Aim to reduce this to below 70% for better financial health."
        )
    return response.rstrip()


def highest_expense(context: ResponseContext) -> str:
    s = context.snapshot
    if not s.top_expenses or s.expenses == 0:
        return (
            "You haven't added any expenses yet. Add your expenses to see which "
            "categories you spend the most on."
        )
    return "Your highest spending categories:\n\n" + _numbered(_top_expense_lines(context, 5))


def category_analysis(context: ResponseContext) -> str:
    s = context.snapshot
    if s.fixed_expenses == 0 and s.flexible_spending == 0:
        return (
            "You haven't added any expenses yet. Add your fixed expenses and set flexible "
            "spending limits to get category-wise insights."
        )

    response = "Here's a breakdown of your spending by category:\n\n"
    if s.fixed_expenses > 0:
        response += f"Fixed Expenses: {format_inr(s.fixed_expenses)}\n"
        for item in sorted(s.fixed_expense_items, key=lambda e: e.amount, reverse=True):
            response += f"  • {item.name}: {format_inr(item.amount)} ({_share(item.amount, s.income):.1f}%)\n"
        response += "\n"

    if s.flexible_spending > 0:
        response += f"Flexible Spending: {format_inr(s.flexible_spending)}\n"
        categories = sorted(
            ((k, v) for k, v in s.flexible_by_category.items() if v > 0),
            key=lambda kv: kv[1],
            reverse=True,
        )
        for key, amount in categories:
            name = FLEXIBLE_CATEGORIES.get(key, key.title())
            response += f"  • {name}: {format_inr(amount)} ({_share(amount, s.income):.1f}%)\n"

    return response.rstrip()


def expense_analysis(context: ResponseContext) -> str:
    s = context.snapshot
    if s.expenses == 0:
        return "You haven't added any expenses yet. Add your expenses to get an analysis."

    response = (
        "Expense analysis:\n\n"
        f"Total expenses: {format_inr(s.expenses)}\n"
        f"Expense ratio: {s.expense_ratio:.1f}% of income"
    )
    if s.top_expenses:
        response += "\n\nTop spending areas:\n" + _numbered([
            f"{e.name}: {e.percentage:.1f}% of income" for e in s.top_expenses[:3]
        ])
    return response


def cost_reduction(context: ResponseContext) -> str:
    s = context.snapshot
    if s.expenses == 0:
        return (
            "Based on your data, you haven't added any expenses yet. "
            "Add your expenses to get cost reduction suggestions."
        )

    response = "Here are cost reduction opportunities:\n\n"
    if s.top_expenses:
        response += "Top areas to reduce costs:\n"
        for i, e in enumerate(s.top_expenses[:3], 1):
            response += f"{i}. {e.name}: {format_inr(e.amount)} ({e.percentage:.1f}% of income)\n"
            if e.percentage > 25:
                response += (
                    "   → This is a high-impact area. Even a 10-15% reduction would save "
                    f"{format_inr(e.amount * 0.1)} per month.\n"
                )

    ratio = s.expense_ratio
    if ratio > 80:
        response += f"\nYour expenses are {ratio:.1f}% of income. Aim to reduce this to below 70% for better financial health."
    elif ratio > 70:
        response += f"\nYour expenses are {ratio:.1f}% of income. Reducing by 5-10% would improve your savings significantly."
    else:
        response += (
            f"\nYour expenses are {ratio:.1f}% of income, which is reasonable. "
            "Focus on optimizing your top spending categories."
        )
    return response


def budget_optimization(context: ResponseContext) -> str:
    s = context.snapshot
    if _empty(s):
        return "Add your income and expenses to get budget optimization suggestions."

    tips = []
    if s.expense_ratio > 80:
        tips.append("Your expenses are too high. Aim to reduce them to below 70% of income.")
    if s.savings_rate < 10:
        tips.append("Increase your savings rate to at least 10-15%.")
    if s.top_expenses and s.top_expenses[0].percentage > 25:
        top = s.top_expenses[0]
        tips.append(f"Reduce spending in {top.name}, which is {top.percentage:.1f}% of income.")

    if not tips:
        return (
            "Budget optimization suggestions:\n\n"
            "Your budget is well balanced. Keep expenses below 70% of income and savings above 10%."
        )
    return "Budget optimization suggestions:\n\n" + _numbered(tips)


def overspending_check(context: ResponseContext) -> str:
    s = context.snapshot
    if _empty(s):
        return "Add your income and expenses to check for overspending."
    if s.expenses <= s.income:
        return "Good news! You're not overspending. Your expenses are within your income."

    response = f"You're overspending by {format_inr(abs(s.savings))} this month."
    if s.overspending:
        response += "\n\nAreas of concern:\n" + _numbered([i.message for i in s.overspending[:3]])
    return response


def spending_risk(context: ResponseContext) -> str:
    s = context.snapshot
    if _empty(s):
        return (
            "Based on your data, you haven't added any financial information yet. "
            "Add your income and expenses to assess spending risk."
        )

    ratio = s.expense_ratio
    response = "Here's your spending risk assessment:\n\n"
    if s.expenses > s.income:
        response += (
            f"Your spending is risky. You're spending {format_inr(s.expenses - s.income)} "
            "more than you earn. This is not sustainable."
        )
    elif ratio > 90:
        response += (
            f"Your spending is high risk: {ratio:.1f}% of your income goes to expenses, "
            "leaving very little room for savings or emergencies."
        )
    elif ratio > 80:
        response += (
            f"Your spending is moderate risk: {ratio:.1f}% of your income goes to expenses. "
            "Consider reducing expenses to improve financial security."
        )
    elif ratio < 70:
        response += (
            f"Your spending looks safe: {ratio:.1f}% of your income goes to expenses, "
            "which leaves room for savings."
        )
    else:
        response += f"Your spending is moderate: {ratio:.1f}% of your income goes to expenses."

    if s.overspending:
        response += f"\n\nRisk factors: {s.overspending[0].message}"
    if s.top_expenses and s.top_expenses[0].percentage > 30:
        top = s.top_expenses[0]
        response += (
            f"\n\nHigh concentration risk: {top.name} is {top.percentage:.1f}% of your income, "
            "which could impact your financial flexibility."
        )
    return response


# =============================================================================
# TRENDS & PREDICTIONS
# =============================================================================

def trend_analysis(context: ResponseContext) -> str:
    s = context.snapshot
    if not s.trend.has_trend:
        return (
            "Not enough historical data to analyze trends. "
            "Add more income and expenses over time to see trends."
        )

    response = "Spending and income trends:\n\n"
    if s.trend.expense_trend == TrendDirection.INCREASING:
        response += f"Expenses have increased by {s.trend.expense_change_percent}% recently. "
    elif s.trend.expense_trend == TrendDirection.DECREASING:
        response += f"Expenses have decreased by {s.trend.expense_change_percent}% recently. "
    else:
        response += "Expenses have remained relatively stable. "

    comparison = s.month_comparison
    if comparison:
        response += (
            "\nCompared to last month:\n"
            f"Income change: {comparison.income_change_percent}%\n"
            f"Expense change: {comparison.expense_change_percent}%\n"
            f"Savings change: {comparison.savings_change_percent}%"
        )
    return response.rstrip()


def predictive_insights(context: ResponseContext) -> str:
    """
    Project the month-end position from spending so far.

    Uses the snapshot date, so the same snapshot always gives the same
    projection.
    """
    s = context.snapshot
    if _empty(s):
        return "Add income and expenses to get predictive insights about your financial future."

    insights = []
    days_in_month = calendar.monthrange(s.as_of.year, s.as_of.month)[1]
    day = s.as_of.day

    if s.expenses > 0:
        projected_expenses = s.expenses / day * days_in_month
        projected_savings = s.income - projected_expenses
        if projected_expenses > s.income:
            insights.append(
                f"You may exceed your budget by {format_inr(projected_expenses - s.income)} "
                "this month if current spending continues."
            )
        elif projected_savings < s.savings:
            insights.append(
                f"Your savings could drop by {format_inr(s.savings - projected_savings)} "
                "by month-end if spending continues at current rate."
            )
        elif projected_savings > s.savings * 1.1:
            insights.append(
                f"If you maintain current spending, you could save {format_inr(projected_savings)} this month."
            )

    if s.trend.has_trend and s.trend.expense_trend == TrendDirection.INCREASING and len(s.monthly) >= 2:
        recent = s.monthly[-2:]
        average = sum(m.expenses for m in recent) / len(recent)
        next_month = average * (1 + s.trend.expense_change_percent / 100)
        if next_month > s.income:
            insights.append(
                "Based on current trends, next month's expenses could exceed income by "
                f"{format_inr(next_month - s.income)}."
            )

    if s.savings_rate < 10 and s.income > s.expenses:
        insights.append(
            f"At current rate, you're saving {s.savings_rate:.1f}% of income. "
            "Aim for 15-20% for better financial security."
        )

    behind = goal_shortfall(context)
    if behind:
        name, shortfall = behind
        insights.append(
            f'Your "{name}" goal is behind schedule by {format_inr(shortfall)}. '
            "Consider increasing monthly savings."
        )

    if not insights:
        return (
            "Predictive insights:\n\nBased on your current data, your financial trajectory looks "
            "stable. Continue monitoring your spending to maintain this balance."
        )
    return "Predictive insights:\n\n" + _numbered(insights)


# =============================================================================
# ADVICE
# =============================================================================

def actionable_advice(context: ResponseContext) -> str:
    s = context.snapshot
    if _empty(s):
        return "Add income and expenses to get specific, actionable advice."

    advice = []
    if s.top_expenses and s.top_expenses[0].percentage > 20:
        top = s.top_expenses[0]
        reduction = top.amount * 0.15
        new_rate = _share(s.savings + reduction, s.income)
        advice.append(
            f"Reduce {top.name} by {format_inr(reduction)} (15% reduction). This would increase your "
            f"monthly savings to {format_inr(s.savings + reduction)} ({new_rate:.1f}% savings rate)."
        )

    if s.expense_ratio > 80:
        reduction = s.expenses - s.income * 0.7
        if reduction > 0:
            advice.append(
                f"Reduce total expenses by {format_inr(reduction)} to bring expense ratio to 70%. "
                f"This would increase savings to {format_inr(s.savings + reduction)}."
            )

    if s.savings_rate < 15 and s.income > s.expenses:
        gap = s.income * 0.15 - s.savings
        if gap > 0:
            advice.append(
                f"Increase monthly savings by {format_inr(gap)} to reach 15% savings rate. "
                "This can be achieved by reducing expenses or increasing income."
            )

    if s.income > 0 and _share(s.flexible_spending, s.income) > 40 and s.flexible_spending > s.fixed_expenses:
        reduction = s.flexible_spending - s.income * 0.3
        advice.append(
            f"Reduce flexible spending by {format_inr(reduction)} to bring it to 30% of income. "
            "Focus on non-essential categories."
        )

    if not advice:
        return (
            "Actionable advice:\n\nYour financial situation looks balanced. Continue monitoring "
            "expenses and maintain your current savings rate."
        )
    return "Actionable advice:\n\n" + _numbered(advice, blank_line=True)


def risk_detection(context: ResponseContext) -> str:
    s = context.snapshot
    if _empty(s):
        return "Add your income and expenses so I can check for financial risks."

    risks: list[tuple[str, str]] = []
    if s.expenses > s.income:
        risks.append((
            f"You're currently overspending by {format_inr(s.expenses - s.income)}/month.",
            "Review your expenses and identify areas to reduce spending immediately.",
        ))

    if s.savings_rate < 10 and s.income > s.expenses:
        risks.append((
            f"Your savings rate is {s.savings_rate:.1f}%, which is below the recommended 15-20%.",
            "Aim to save at least 15% of your income for better financial security.",
        ))

    for goal in context.planner.open_goals():
        goal = context.planner.update_progress(goal, s)
        analysis = context.planner.analyze_achievability(goal, s)
        if not analysis.achievable or (
            analysis.requires_reduction and analysis.shortfall > s.income * 0.3
        ):
            risks.append((
                f'Your "{goal.name}" goal may be difficult to achieve with current finances.',
                analysis.suggestion or "Consider adjusting the target amount or duration.",
            ))

    if len(s.monthly) >= 2:
        prev, last = s.monthly[-2].savings, s.monthly[-1].savings
        if prev > 0 and last < prev * 0.8:
            risks.append((
                "Your savings have declined recently.",
                "Review your spending patterns and identify what changed.",
            ))

    if not risks:
        return "✅ No significant financial risks detected. Your finances look stable!"

    response = "⚠️ Financial Risk Assessment:\n\n"
    for i, (message, suggestion) in enumerate(risks, 1):
        response += f"{i}. {message}\n   💡 {suggestion}\n\n"
    return response + "These are observations based on your current financial data. Take action to address any concerns."


def personalized_advice(context: ResponseContext) -> str:
    s = context.snapshot
    if _empty(s):
        return "Add your income and expenses to get personalized financial advice."

    # (priority, category, message, action); lower priority sorts first
    advice: list[tuple[int, str, str, str]] = []

    if s.savings_rate < 10 and s.income > s.expenses:
        advice.append((
            0,
            "Savings",
            f"Your savings rate is {s.savings_rate:.1f}%. Aim for 15-20% for better financial security.",
            f"Try to save an additional {format_inr(s.income * 0.15 - s.savings)}/month.",
        ))

    if s.top_expenses and s.top_expenses[0].amount > s.income * 0.3:
        top = s.top_expenses[0]
        advice.append((
            1,
            "Expense Management",
            f"{top.name} accounts for {_share(top.amount, s.income):.1f}% of your income.",
            f"Consider reducing {top.name} by 10-15% to free up {format_inr(top.amount * 0.15)}/month.",
        ))

    goal = context.first_open_goal()
    if goal is not None:
        analysis = context.planner.analyze_achievability(goal, s)
        if analysis.requires_reduction and analysis.shortfall:
            advice.append((
                0,
                "Goal Achievement",
                f'To reach "{goal.name}", you need to save {format_inr(goal.monthly_requirement)}/month.',
                analysis.suggestion or f"Reduce expenses by {format_inr(analysis.shortfall)}/month.",
            ))

    if s.income > 0 and s.expense_ratio > 85:
        advice.append((
            0,
            "Budget Balance",
            f"Your expenses are {s.expense_ratio:.1f}% of income, leaving little room for savings.",
            "Review all expense categories and identify areas to reduce by at least 10%.",
        ))

    if not advice:
        return (
            "✅ Your finances look good! Continue monitoring your spending and savings "
            "to maintain this balance."
        )

    advice.sort(key=lambda item: item[0])
    response = "💡 Personalized Financial Advice:\n\n"
    for i, (_, category, message, action) in enumerate(advice, 1):
        response += f"{i}. {category}\n   {message}\n   → Action: {action}\n\n"
    return response + "These recommendations are based on your current financial situation."


# =============================================================================
# INCOME, AFFORDABILITY, HELP
# =============================================================================

def income_vs_expenses(context: ResponseContext) -> str:
    s = context.snapshot
    if _empty(s):
        return (
            "Based on your data, you haven't added any income or expenses yet. You may want to "
            "start by adding your monthly income sources and expenses to get insights."
        )

    ratio, rate, trend = s.expense_ratio, s.savings_rate, s.trend
    increasing = trend.has_trend and trend.expense_trend == TrendDirection.INCREASING
    decreasing = trend.has_trend and trend.expense_trend == TrendDirection.DECREASING

    response = "Based on your data, "
    if s.expenses > s.income:
        response += (
            f"your expenses ({format_inr(s.expenses)}) exceed your income ({format_inr(s.income)}). "
            f"You're overspending by {format_inr(abs(s.savings))}."
        )
        if increasing:
            response += (
                f" Your spending has been increasing by {trend.expense_change_percent}% recently, "
                "which explains why you're overspending."
            )
        response += " You may want to review your expenses to find areas where you can reduce spending."
    elif ratio > 80:
        response += (
            f"your expenses are {ratio:.1f}% of your income, which is quite high. "
            f"You're saving {rate:.1f}% each month."
        )
        if increasing:
            response += f" Your expenses have increased by {trend.expense_change_percent}% recently."
        response += " You may want to consider looking for ways to reduce expenses to increase your savings rate."
    elif ratio < 50:
        response += (
            f"great news! Your expenses are only {ratio:.1f}% of your income. "
            f"You're saving {rate:.1f}% each month, which is excellent."
        )
        if decreasing:
            response += (
                f" Your expenses have decreased by {trend.expense_change_percent}% recently, "
                "which is great progress!"
            )
        response += " This gives you a strong financial foundation."
    else:
        response += (
            f"your expenses account for {ratio:.1f}% of your income, and you're saving {rate:.1f}% "
            f"each month. This is a healthy balance. Your monthly savings is {format_inr(s.savings)}."
        )
        if increasing:
            response += (
                f" However, your expenses have increased by {trend.expense_change_percent}% recently, "
                "so you may want to keep an eye on this trend."
            )
        elif decreasing:
            response += f" Good news: your expenses have decreased by {trend.expense_change_percent}% recently."
    return response


def income_overview(context: ResponseContext) -> str:
    s = context.snapshot
    if s.income == 0 or not s.income_sources:
        return "You haven't added any income sources yet. Add your monthly income to start tracking your finances."

    count = len(s.income_sources)
    response = (
        f"Your total monthly income is {format_inr(s.income)} from "
        f"{count} source{'s' if count > 1 else ''}."
    )
    if count > 1:
        response += "\n\nYour income sources:\n" + "\n".join(
            f"• {source.name}: {format_inr(source.amount)}" for source in s.income_sources
        )
    return response


def affordability(context: ResponseContext) -> str:
    """
    Judge a purchase against current savings.

    Up to 30% of savings is safe, up to 60% is risky, anything more is
    difficult to afford.
    """
    s = context.snapshot
    available = s.savings
    if available <= 0:
        return (
            "You currently don't have available savings, so any purchase would be difficult "
            "to afford right now. Focus on building savings first."
        )

    response = f"You have {format_inr(available)} in available savings."
    amount = parse_amount(context.question)
    if amount and amount > 0:
        share = amount / available * 100
        if share <= 30:
            response += f" A purchase of {format_inr(amount)} would be safe ({share:.1f}% of your savings)."
        elif share <= 60:
            response += (
                f" A purchase of {format_inr(amount)} would be risky ({share:.1f}% of your savings). "
                "Consider if it's essential."
            )
        else:
            response += (
                f" A purchase of {format_inr(amount)} would be difficult to afford ({share:.1f}% of "
                "your savings). You may need to save more or reduce other expenses first."
            )
    else:
        response += (
            " As a general rule, purchases that are less than 30% of your savings are safe, "
            "30-60% are risky, and above 60% are difficult to afford."
        )

    rate = s.savings_rate
    quality = "is excellent" if rate > 20 else "is good" if rate > 10 else "could be improved"
    return response + f" Your current savings rate is {rate:.1f}%, which {quality}."


HELP_TEXT = (
    "I can help you understand your finances! Ask me about:\n\n"
    "• Your income vs expenses\n"
    "• Your savings and savings rate\n"
    "• Spending by category\n"
    "• Where you might be overspending\n"
    "• Whether you can afford something\n"
    "• Your financial trends\n"
    "• How to save more\n"
    "• Savings goals and your progress towards them\n"
    "• What-if scenarios, like \"What if my rent increases by 10%?\"\n\n"
    "Just ask in plain English, and I'll analyze your data to give you helpful insights."
)


def help_text(context: ResponseContext) -> str:
    return HELP_TEXT
