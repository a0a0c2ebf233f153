"""
Provider Context

Builds the aggregated context handed to an external text provider,
decides which questions are worth sending, and grounds provider answers
in the user's numbers.

CRITICAL: build_ai_context is the ONLY way data reaches a provider.
It carries totals, ratios and the top categories. Records, line items
and income sources NEVER leave the engine.
"""

import re
from typing import Optional

from finance_engine.analysis.formatting import format_inr
from finance_engine.config.settings import TextProviderSettings
from finance_engine.memory.profile import preferences_for_context
from finance_engine.models.finance import (
    AIContext,
    CategoryShare,
    ContextFlags,
    FinancialSnapshot,
    MemoryProfile,
    TrendDirection,
)


MAX_CONTEXT_CATEGORIES = 5
AND_WORD = re.compile(r"\band\b")


def context_health_score(snapshot: FinancialSnapshot) -> int:
    """
    Coarse 0-100 score for the provider context.

    No income scores 50, overspending 20. Otherwise the savings rate
    decides: above 20% → 90, above 10% → 70, above 5% → 50, else 30.
    """
    if snapshot.income <= 0:
        return 50
    if snapshot.expenses > snapshot.income:
        return 20
    rate = snapshot.savings_rate
    if rate > 20:
        return 90
    if rate > 10:
        return 70
    if rate > 5:
        return 50
    return 30


def build_ai_context(
    snapshot: FinancialSnapshot,
    memory: Optional[MemoryProfile] = None,
    language: Optional[str] = None,
) -> AIContext:
    memory = memory or MemoryProfile()
    return AIContext(
        income=snapshot.income,
        expenses=snapshot.expenses,
        savings=snapshot.savings,
        savings_rate=round(snapshot.savings_rate, 1),
        expense_ratio=round(snapshot.expense_ratio, 1),
        health_score=context_health_score(snapshot),
        health_status=snapshot.health.value,
        top_categories=[
            CategoryShare(name=item.name, amount=item.amount, percentage=round(item.percentage, 1))
            for item in snapshot.top_expenses[:MAX_CONTEXT_CATEGORIES]
        ],
        flags=ContextFlags(
            overspending=snapshot.expenses > snapshot.income,
            low_savings=snapshot.savings_rate < 10,
            high_expense_ratio=snapshot.expense_ratio > 80,
            increasing_trend=(
                snapshot.trend.has_trend
                and snapshot.trend.expense_trend == TrendDirection.INCREASING
            ),
        ),
        month=snapshot.month_label,
        user_memory=preferences_for_context(memory),
        active_alerts=[alert.model_dump(mode="json") for alert in memory.active_alerts],
        language=language or memory.language_preference,
    )


def is_complex_question(message: str, settings: Optional[TextProviderSettings] = None) -> bool:
    """
    True when a question is open-ended enough to be worth a provider call.

    Complex means any of:
    1. Contains an analysis phrase ("explain", "what if", "compare", ...)
    2. Longer than the minimum length AND joins several clauses with "and"
    3. Asks for a report or summary
    """
    settings = settings or TextProviderSettings()
    q = message.lower().strip()

    if any(pattern in q for pattern in settings.complex_patterns_list):
        return True
    if len(q) > settings.complex_min_length and len(AND_WORD.findall(q)) > 1:
        return True
    return "report" in q or "summary" in q


def merge_with_data(response: str, snapshot: FinancialSnapshot) -> str:
    """Append a one-line grounding note when a provider answer quotes no amounts."""
    if snapshot.income <= 0 or "₹" in response:
        return response
    return (
        f"{response}\n\nBased on your data: You have {format_inr(snapshot.income)} income, "
        f"{format_inr(snapshot.expenses)} expenses, and {format_inr(snapshot.savings)} savings "
        f"({snapshot.savings_rate:.1f}% savings rate)."
    )
