"""
Suggested Questions

Picks 2-4 follow-up questions that fit the user's current situation,
skipping ones that were shown recently.
"""

from collections import deque
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Optional

from finance_engine.models.finance import FinancialSnapshot, TrendDirection, utc_now


GETTING_STARTED = [
    "How do I get started?",
    "What should I track first?",
    "How does this app work?",
]

# Two suggestions are "the same" when one contains the other's first N characters
PREFIX_LENGTH = 10


def was_recently_suggested(suggestion: str, recent: Sequence[str]) -> bool:
    candidate = suggestion.lower()
    for shown in recent:
        shown = shown.lower()
        if candidate[:PREFIX_LENGTH] in shown or shown[:PREFIX_LENGTH] in candidate:
            return True
    return False


def suggest_questions(
    snapshot: FinancialSnapshot,
    recent: Sequence[str] = (),
    limit: int = 4,
) -> list[str]:
    """
    Prioritized suggestions for the current snapshot.

    Priority:
    1. Overspending → where/how to reduce
    2. Savings (or how to start saving)
    3. Category questions
    4. Rising expense trend
    5. Affordability, sized to current savings
    6. Monthly report

    If fewer than two survive the recent filter, generic savings and
    category questions are added back.
    """
    if snapshot.income == 0 and snapshot.expenses == 0:
        return list(GETTING_STARTED)

    suggestions: list[str] = []
    topics: set[str] = set()

    def offer(question: str, topic: Optional[str] = None) -> None:
        if not was_recently_suggested(question, recent):
            suggestions.append(question)
            if topic:
                topics.add(topic)

    if snapshot.overspending or snapshot.expenses > snapshot.income:
        offer("Where am I overspending?", "overspending")
        offer("How can I reduce my expenses?", "reduce")

    if snapshot.savings > 0 and "reduce" not in topics:
        offer("How much am I saving?")
        if snapshot.expense_ratio > 80 and "overspending" not in topics:
            offer("Can I save more next month?")
    elif snapshot.savings <= 0:
        offer("How can I start saving?")

    if (snapshot.fixed_expenses > 0 or snapshot.flexible_spending > 0) and len(suggestions) < 3:
        if snapshot.top_expenses and snapshot.top_expenses[0].percentage > 20:
            offer("Which category should I reduce?")
        else:
            offer("Show my spending by category")

    trend = snapshot.trend
    if (
        trend.has_trend
        and len(suggestions) < 4
        and trend.expense_trend == TrendDirection.INCREASING
        and "reduce" not in topics
    ):
        offer("What are my spending trends?")

    if snapshot.savings > 0 and len(suggestions) < 4:
        if snapshot.savings > 10000:
            sample = "₹10,000"
        elif snapshot.savings > 5000:
            sample = "₹5,000"
        else:
            sample = "₹2,000"
        offer(f"Can I afford {sample}?")

    if snapshot.income > 0 and snapshot.expenses > 0 and len(suggestions) < 4:
        offer("Give me my monthly report")

    if len(suggestions) < 2:
        if not any("saving" in s for s in suggestions):
            suggestions.append("How much am I saving?")
        if not any("category" in s for s in suggestions):
            suggestions.append("Show my spending by category")

    return suggestions[:limit]


class SuggestionTracker:
    """
    Remembers the last few suggestion sets so they are not repeated.

    Usage:
        tracker = SuggestionTracker()
        questions = suggest_questions(snapshot, tracker.recent())
        tracker.record(questions)
    """

    def __init__(self, memory_seconds: float = 300.0, max_sets: int = 5):
        self._memory = timedelta(seconds=memory_seconds)
        self._sets: deque[tuple[datetime, list[str]]] = deque(maxlen=max_sets)

    def record(self, suggestions: Sequence[str], now: Optional[datetime] = None) -> None:
        self._sets.append((now or utc_now(), list(suggestions)))

    def recent(self, now: Optional[datetime] = None) -> list[str]:
        """Suggestions shown within the memory window."""
        now = now or utc_now()
        return [
            question
            for shown_at, questions in self._sets
            if now - shown_at < self._memory
            for question in questions
        ]

    def clear(self) -> None:
        self._sets.clear()
