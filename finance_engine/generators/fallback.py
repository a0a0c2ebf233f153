"""
Keyword Fallback Chain

Answers questions that did not reach an intent generator: low-confidence
intents, GENERAL_ADVICE, and intent generators that failed or declined.

Order (first answer wins):
1. Follow-up handler (uses the conversation context)
2. Income vs expenses
3. Savings
4. Overspending / reduce
5. Category breakdown
6. Affordability
7. Income sources
8. Save more
9. Trends
10. Help
11. Context-aware default (based on the previous question)
12. Static capability summary

DESIGN DECISION: Each step is isolated. A step that raises is logged and
skipped, so the chain ALWAYS returns a string.
"""

import re
from typing import Callable, Optional

import structlog

from finance_engine.analysis.formatting import format_inr
from finance_engine.generators import insights
from finance_engine.generators.context import ResponseContext
from finance_engine.models.finance import TrendDirection


logger = structlog.get_logger(__name__)

CAPABILITY_SUMMARY = (
    "I can help you understand your finances. Try asking me about your income, expenses, "
    "savings, spending categories, trends, or whether you can afford a purchase. If you "
    "need help, just ask \"What can you help me with?\""
)

FOLLOW_UP_PHRASES = ("what about", "how about", "what should", "also", "what else", "tell me more")
AND_WORD = re.compile(r"\band\b")


def _any(q: str, *words: str) -> bool:
    return any(word in q for word in words)


# =============================================================================
# FOLLOW-UPS
# =============================================================================

def is_follow_up(context: ResponseContext) -> bool:
    """
    True when the question leans on the previous turn.

    Either it uses a follow-up phrase ("what about", "tell me more", a
    standalone "and"), or there is a last topic and the question asks
    what/how/which/should without naming a topic of its own.
    """
    q = context.lowered
    if _any(q, *FOLLOW_UP_PHRASES) or AND_WORD.search(q):
        return True
    return (
        context.conversation.last_topic is not None
        and _any(q, "what", "how", "which", "should")
        and not _any(q, "income", "expense", "saving")
    )


def _reduction_targets(context: ResponseContext) -> Optional[str]:
    s = context.snapshot
    if not s.overspending:
        return None

    response = (
        "Based on your previous question about savings, here are the categories you may "
        "want to consider reducing:\n\n"
    )
    for i, insight in enumerate(s.overspending[:3], 1):
        label = insights.OVERSPENDING_LABELS[insight.kind]
        response += f"{i}. {label}: This area is consuming a significant portion of your income.\n"

    if s.income > 0:
        fixed_ratio = s.fixed_expenses / s.income * 100
        flexible_ratio = s.flexible_spending / s.income * 100
        if fixed_ratio > flexible_ratio and fixed_ratio > 50:
            response += (
                f"\nYour fixed expenses are {fixed_ratio:.0f}% of income. "
                "Review if any can be renegotiated or reduced."
            )
        elif flexible_ratio > 30:
            response += (
                f"\nYour flexible spending is {flexible_ratio:.0f}% of income. You may want to "
                "consider setting lower budgets for non-essential categories."
            )
    return response.rstrip()


def follow_up(context: ResponseContext) -> Optional[str]:
    """Answer a follow-up from the last topic, or None to keep going."""
    if not is_follow_up(context):
        return None

    q = context.lowered
    s = context.snapshot
    topic = context.conversation.last_topic

    if _any(q, "what should", "which should") and _any(q, "reduce", "cut") and topic == "savings":
        answer = _reduction_targets(context)
        if answer:
            return answer

    if "how" in q and _any(q, "improve", "better") and topic:
        if topic == "savings":
            if s.savings <= 0:
                return (
                    "Based on your data, to start saving, you need to either reduce expenses or "
                    "increase income. Your expenses currently equal or exceed your income. You may "
                    "want to review your spending categories to find areas where you can cut back."
                )
            return (
                f"Based on your data, you're currently saving {format_inr(s.savings)} per month. "
                "You may want to consider finding ways to increase your savings rate for better "
                "financial security."
            )
        if topic == "expenses" and s.overspending:
            return (
                "Based on your data, here are areas where you might be overspending: "
                f"{s.overspending[0].message}"
            )

    if _any(q, "tell me more", "what else") or AND_WORD.search(q):
        if topic == "savings":
            return (
                f"Based on your data, your savings of {format_inr(s.savings)} represents "
                f"{s.savings_rate:.1f}% of your income. You may want to consider ways to "
                "protect and grow this amount."
            )
        if topic == "expenses" and s.overspending:
            return (
                f"You asked about expenses earlier. Based on your data, {s.overspending[0].message} "
                "This could impact your ability to save."
            )

    return None


# =============================================================================
# KEYWORD STEPS
# =============================================================================

def _income_vs_expenses(context: ResponseContext) -> Optional[str]:
    q = context.lowered
    if "income" in q and _any(q, "expense", "spending"):
        return insights.income_vs_expenses(context)
    return None


def _savings(context: ResponseContext) -> Optional[str]:
    if not _any(context.lowered, "saving", "save"):
        return None

    s = context.snapshot
    if s.savings <= 0:
        return (
            "Based on your data, you currently don't have any savings. Your expenses equal or "
            "exceed your income. You may want to consider reducing expenses or increasing "
            "income to start building savings."
        )

    rate = s.savings_rate
    response = (
        f"Based on your data, you're currently saving {format_inr(s.savings)} per month, "
        f"which is {rate:.1f}% of your income."
    )
    if rate > 20:
        response += " That's an excellent savings rate! Keep up the good work."
    elif rate > 10:
        response += " That's a good savings rate. You're making steady progress."
    else:
        response += (
            " You may want to consider finding ways to increase your savings rate for "
            "better financial security."
        )

    positive = [m.savings for m in s.monthly if m.savings > 0]
    if len(positive) > 1:
        average = sum(positive) / len(positive)
        response += (
            f" Your average monthly savings over the past {len(positive)} months has been "
            f"{format_inr(average)}."
        )
    return response


def _overspending(context: ResponseContext) -> Optional[str]:
    q = context.lowered
    if not _any(q, "overspend", "where am i", "reduce", "cut back"):
        return None

    s = context.snapshot
    if not s.overspending:
        if s.expense_ratio > 80:
            return (
                "Based on your data, you're not technically overspending, but your expenses are "
                f"{s.expense_ratio:.0f}% of income, which is quite high. You may want to consider "
                "reducing expenses in your largest categories to improve your savings rate."
            )
        return (
            "Good news! Based on your data, you're not overspending in any major category. "
            "Your expenses are well-balanced relative to your income. Keep up the good work!"
        )

    response = "Based on your data, here are areas where you might be overspending:\n\n"
    response += "\n".join(
        f"{i}. {insight.message}" for i, insight in enumerate(s.overspending[:3], 1)
    )

    if s.income > 0:
        total = s.fixed_expenses + s.flexible_spending
        if total > s.income:
            response += f"\n\nYour total expenses exceed your income by {format_inr(total - s.income)}."
        heavy = [
            f"{item.name} ({item.amount / s.income * 100:.1f}% of income)"
            for item in s.fixed_expense_items
            if item.amount / s.income * 100 > 30
        ]
        if heavy:
            response += (
                "\n\nYour largest fixed expenses are consuming a high portion of income: "
                f"{', '.join(heavy[:2])}."
            )

    return response + (
        "\n\nYou may want to consider reducing expenses in these areas or finding ways to "
        "increase your income. Even small reductions can make a difference."
    )


def _category(context: ResponseContext) -> Optional[str]:
    q = context.lowered
    if not (
        "category" in q
        or ("spending" in q and "save" not in q)
        or ("expense" in q and "income" not in q)
    ):
        return None

    s = context.snapshot
    if not s.fixed_expense_items and s.flexible_spending == 0:
        return (
            "You haven't added any expenses yet. Add your fixed expenses and set flexible "
            "spending limits to get category-wise insights."
        )

    response = "Here's a breakdown of your spending:\n\n"
    if s.fixed_expenses > 0:
        response += f"Fixed Expenses: {format_inr(s.fixed_expenses)}\n"
        if s.fixed_expense_items:
            top = max(s.fixed_expense_items, key=lambda e: e.amount)
            response += f"Your largest fixed expense is {top.name} at {format_inr(top.amount)}.\n\n"

    top_flexible = s.top_flexible_category()
    if s.flexible_spending > 0:
        response += f"Flexible Spending: {format_inr(s.flexible_spending)}\n"
        if top_flexible:
            name, amount = top_flexible
            response += f"Your highest flexible spending category is {name} at {format_inr(amount)}."
            ratio = amount / s.income * 100 if s.income > 0 else 0.0
            if ratio > 20:
                response += f" This represents {ratio:.1f}% of your income, which is quite high."

    return response.rstrip()


def _affordability(context: ResponseContext) -> Optional[str]:
    if _any(context.lowered, "afford", "can i buy", "should i buy"):
        return insights.affordability(context)
    return None


def _income(context: ResponseContext) -> Optional[str]:
    q = context.lowered
    if "income" in q and "expense" not in q:
        return insights.income_overview(context)
    return None


def _save_more(context: ResponseContext) -> Optional[str]:
    if _any(context.lowered, "save more", "increase savings", "improve savings"):
        return insights.save_more(context)
    return None


def _trends(context: ResponseContext) -> Optional[str]:
    if not _any(context.lowered, "trend", "increasing", "decreasing", "change"):
        return None

    trend = context.snapshot.trend
    if not trend.has_trend:
        return (
            "I need more historical data to identify trends. Keep tracking your finances "
            "for a few months to see spending patterns."
        )

    response = "Here are the trends I've noticed:\n\n"
    if trend.expense_trend == TrendDirection.INCREASING:
        response += (
            f"• Your expenses have increased by {trend.expense_change_percent}% recently. "
            "This means you're spending more than before."
        )
    elif trend.expense_trend == TrendDirection.DECREASING:
        response += f"• Your expenses have decreased by {trend.expense_change_percent}% recently. Great progress!"
    else:
        response += "• Your expenses have remained relatively stable."

    if trend.income_trend == TrendDirection.INCREASING:
        response += f"\n• Your income has increased by {trend.income_change_percent}%, which is positive."
    elif trend.income_trend == TrendDirection.DECREASING:
        response += (
            f"\n• Your income has decreased by {trend.income_change_percent}%. "
            "Consider ways to stabilize or increase it."
        )
    return response


def _help(context: ResponseContext) -> Optional[str]:
    if _any(context.lowered, "help", "what can you", "what do you"):
        return insights.HELP_TEXT
    return None


def _context_default(context: ResponseContext) -> Optional[str]:
    if not context.recent_questions:
        return None

    last = context.recent_questions[-1].lower()
    if _any(last, "income", "expense"):
        return (
            "Would you like to know more about your income and expenses? Try asking "
            "\"Where am I overspending?\" or \"How can I save more?\""
        )
    if "saving" in last:
        return (
            "Would you like to know more about your savings? Try asking "
            "\"Can I afford ₹5000?\" or \"How can I increase my savings?\""
        )
    return None


STEPS: list[Callable[[ResponseContext], Optional[str]]] = [
    follow_up,
    _income_vs_expenses,
    _savings,
    _overspending,
    _category,
    _affordability,
    _income,
    _save_more,
    _trends,
    _help,
    _context_default,
]


def keyword_fallback(context: ResponseContext) -> str:
    """Run the chain. NEVER raises; ends with the capability summary."""
    for step in STEPS:
        try:
            answer = step(context)
        except Exception as e:
            logger.warning("fallback_step_failed", step=step.__name__, error=str(e))
            continue
        if answer:
            return answer
    return CAPABILITY_SUMMARY
