"""
Intent Classifier

Maps a free-text question to one of a closed set of intents using an
ORDERED list of keyword rules. The first matching rule wins.

DESIGN DECISION: Rule order is part of the behaviour. Several rules
overlap (e.g. "reduce my expenses" satisfies both CUT_EXPENSES and
COST_REDUCTION), and earlier rules are meant to shadow later ones.
Do NOT reorder without checking every overlapping rule.

Matching is plain substring matching on the lower-cased question, so
"saving" matches "savings" and "save" matches "saved".
"""

from collections.abc import Sequence
from typing import Callable, NamedTuple, Optional

import structlog

from finance_engine.intents.extraction import parse_amount
from finance_engine.models.finance import (
    FLEXIBLE_CATEGORIES,
    ConversationContext,
    Intent,
    IntentType,
    Interaction,
)


logger = structlog.get_logger(__name__)

DEFAULT_CONFIDENCE = 0.5
CONTEXT_BOOST = 0.2
CONTEXT_BOOST_CAP = 0.9


def _any(q: str, *words: str) -> bool:
    return any(word in q for word in words)


class Rule(NamedTuple):
    intent: IntentType
    confidence: float
    matches: Callable[[str], bool]


RULES: list[Rule] = [
    Rule(IntentType.WHAT_IF_SIMULATION, 0.9, lambda q: (
        _any(q, "what if", "what happens if", "simulate", "suppose")
    )),
    Rule(IntentType.SAVE_MORE, 0.9, lambda q: (
        _any(q, "save more", "increase savings", "improve savings", "how can i save", "ways to save")
        and _any(q, "how", "what", "suggest")
    )),
    Rule(IntentType.CUT_EXPENSES, 0.85, lambda q: (
        _any(q, "reduce", "cut", "lower", "decrease")
        and _any(q, "expense", "spending", "cost")
    )),
    Rule(IntentType.HIGHEST_EXPENSE, 0.9, lambda q: (
        _any(q, "highest", "largest", "biggest", "top")
        and _any(q, "expense", "spending", "category")
    )),
    Rule(IntentType.CATEGORY_ANALYSIS, 0.85, lambda q: (
        _any(q, "category", "spending by", "breakdown")
        or ("how much" in q and _any(q, "food", "travel", "shopping"))
    )),
    Rule(IntentType.MONTHLY_SUMMARY, 0.95, lambda q: (
        _any(q, "monthly report", "monthly summary", "give me my report", "generate report", "month overview")
    )),
    Rule(IntentType.SAVINGS_ADVICE, 0.85, lambda q: (
        _any(q, "saving", "save")
        and _any(q, "how much", "amount", "rate")
    )),
    Rule(IntentType.EXPENSE_ANALYSIS, 0.8, lambda q: (
        _any(q, "expense", "spending")
        and _any(q, "analyze", "where", "breakdown")
    )),
    Rule(IntentType.BUDGET_OPTIMIZATION, 0.8, lambda q: (
        _any(q, "budget", "optimize", "improve")
        and _any(q, "how", "suggest")
    )),
    Rule(IntentType.TREND_ANALYSIS, 0.85, lambda q: (
        _any(q, "trend", "compare", "change")
        or ("this month" in q and _any(q, "last month", "previous"))
    )),
    Rule(IntentType.OVERSPENDING_CHECK, 0.9, lambda q: (
        _any(q, "overspend", "where am i")
        or ("am i" in q and _any(q, "spending too much", "over budget"))
    )),
    Rule(IntentType.SAVINGS_ANALYSIS, 0.88, lambda q: (
        _any(q, "saving", "save")
        and _any(q, "analysis", "analyze", "breakdown", "how am i doing", "savings health")
    )),
    Rule(IntentType.SPENDING_RISK, 0.87, lambda q: (
        _any(q, "risk", "risky", "safe", "danger")
        and _any(q, "spending", "expense", "budget")
    )),
    Rule(IntentType.BUDGET_HEALTH, 0.86, lambda q: (
        _any(q, "budget", "financial health", "how am i")
        and _any(q, "health", "status", "doing", "good")
    )),
    Rule(IntentType.COST_REDUCTION, 0.85, lambda q: (
        _any(q, "reduce", "cut", "lower", "minimize")
        and _any(q, "cost", "spending", "expense")
        and "category" not in q
    )),
    Rule(IntentType.FINANCIAL_HEALTH_SCORE, 0.92, lambda q: (
        _any(q, "financial health", "health score", "how am i doing")
        and _any(q, "what", "score", "how")
    )),
    Rule(IntentType.PREDICTIVE_INSIGHTS, 0.88, lambda q: (
        _any(q, "predict", "forecast", "will i", "end of month")
        and _any(q, "spending", "budget", "saving")
    )),
    Rule(IntentType.ACTIONABLE_ADVICE, 0.85, lambda q: (
        _any(q, "what should i", "specific advice", "actionable")
        and _any(q, "do", "reduce", "improve")
    )),
    Rule(IntentType.CREATE_GOAL, 0.9, lambda q: (
        _any(q, "create", "set", "add", "new")
        and (_any(q, "goal", "target") or ("save" in q and "for" in q))
    )),
    Rule(IntentType.GOAL_PROGRESS, 0.88, lambda q: (
        _any(q, "goal", "target")
        and _any(q, "progress", "status", "how is", "how am i")
    )),
    Rule(IntentType.GOAL_ACHIEVABILITY, 0.87, lambda q: (
        _any(q, "can i", "will i", "reach", "achieve")
        and _any(q, "goal", "target")
    )),
    Rule(IntentType.ADJUST_GOAL, 0.86, lambda q: (
        _any(q, "adjust", "modify", "change", "update")
        and _any(q, "goal", "target", "plan")
    )),
    Rule(IntentType.GOAL_FEASIBILITY_CHECK, 0.88, lambda q: (
        _any(q, "feasib", "realistic", "possible")
        and _any(q, "goal", "target")
    )),
    Rule(IntentType.AFFORDABILITY_CHECK, 0.88, lambda q: (
        _any(q, "afford", "can i buy", "should i buy")
    )),
    Rule(IntentType.RISK_DETECTION, 0.86, lambda q: (
        _any(q, "risk", "danger", "warning", "red flag")
    )),
    Rule(IntentType.PERSONALIZED_ADVICE, 0.84, lambda q: (
        _any(q, "advice", "recommend", "tips")
        and _any(q, "my", "personal", "me")
    )),
    Rule(IntentType.INCOME_VS_EXPENSES, 0.8, lambda q: (
        "income" in q and _any(q, "expense", "spending")
    )),
    Rule(IntentType.INCOME_OVERVIEW, 0.75, lambda q: (
        _any(q, "income", "salary", "earn")
    )),
    Rule(IntentType.HELP, 0.9, lambda q: (
        _any(q, "what can you", "what do you do") or q.strip(" ?!.") == "help"
    )),
]


class IntentClassifier:
    """
    Ordered-rule intent classifier.

    Usage:
        classifier = IntentClassifier()
        intent = classifier.classify("Create a goal to save ₹50,000 in 6 months")
        # Intent(type=IntentType.CREATE_GOAL, confidence=0.9)
    """

    def __init__(self, rules: Optional[Sequence[Rule]] = None):
        self._rules = list(rules) if rules is not None else RULES

    def classify(
        self,
        question: str,
        conversation_context: Optional[ConversationContext] = None,
    ) -> Intent:
        """
        Classify a question. NEVER raises.

        Unmatched questions are GENERAL_ADVICE at 0.5 confidence. A
        savings follow-up ("how do I reduce that?") right after a savings
        question gets a confidence boost but keeps its intent.
        """
        if not question or not isinstance(question, str):
            return Intent(type=IntentType.GENERAL_ADVICE, confidence=DEFAULT_CONFIDENCE)

        q = question.lower()
        intent_type, confidence = IntentType.GENERAL_ADVICE, DEFAULT_CONFIDENCE

        for rule in self._rules:
            try:
                matched = rule.matches(q)
            except Exception as e:
                logger.warning("intent_rule_failed", intent=rule.intent.value, error=str(e))
                continue
            if matched:
                intent_type, confidence = rule.intent, rule.confidence
                break

        if (
            conversation_context is not None
            and conversation_context.last_topic == "savings"
            and confidence < 0.7
            and _any(q, "what", "how", "which")
            and _any(q, "save", "reduce")
        ):
            confidence = min(CONTEXT_BOOST_CAP, confidence + CONTEXT_BOOST)

        return Intent(type=intent_type, confidence=confidence)


def extract_conversation_context(
    interactions: Sequence[Interaction],
    window: int = 3,
) -> ConversationContext:
    """
    Summarize what the last `window` interactions were about.

    The last topic is the topic of the most recent question that named
    one (income beats expenses beats savings within a single question).
    """
    context = ConversationContext()
    for interaction in list(interactions)[-window:]:
        q = interaction.question.lower()

        if _any(q, "saving", "save"):
            context.last_topic = "savings"
        if _any(q, "expense", "spending"):
            context.last_topic = "expenses"
        if "income" in q:
            context.last_topic = "income"

        amount = parse_amount(interaction.question)
        if amount is not None:
            context.mentioned_amounts.append(amount)

        for key in ("food", "travel", "shopping"):
            if key in q:
                context.mentioned_categories.append(FLEXIBLE_CATEGORIES[key])

    return context
