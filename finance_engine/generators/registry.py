"""
Generator Registry

Maps every intent to the function that answers it.

DESIGN DECISION: The registry is checked at construction. Every intent
except GENERAL_ADVICE MUST have a generator; GENERAL_ADVICE is the one
declared fallback and always goes to the keyword chain. A missing entry
is a programming error, so it fails loudly at startup instead of at the
first unlucky question.
"""

from collections.abc import Mapping
from typing import Optional

import structlog

from finance_engine.generators import goals, insights
from finance_engine.generators.context import Generator, ResponseContext
from finance_engine.generators.fallback import keyword_fallback
from finance_engine.models.finance import Intent, IntentType


logger = structlog.get_logger(__name__)

FALLBACK_INTENT = IntentType.GENERAL_ADVICE

DEFAULT_GENERATORS: dict[IntentType, Generator] = {
    IntentType.WHAT_IF_SIMULATION: goals.what_if,
    IntentType.SAVE_MORE: insights.save_more,
    IntentType.CUT_EXPENSES: insights.cut_expenses,
    IntentType.HIGHEST_EXPENSE: insights.highest_expense,
    IntentType.CATEGORY_ANALYSIS: insights.category_analysis,
    IntentType.MONTHLY_SUMMARY: insights.monthly_summary,
    IntentType.SAVINGS_ADVICE: insights.savings_advice,
    IntentType.EXPENSE_ANALYSIS: insights.expense_analysis,
    IntentType.BUDGET_OPTIMIZATION: insights.budget_optimization,
    IntentType.TREND_ANALYSIS: insights.trend_analysis,
    IntentType.OVERSPENDING_CHECK: insights.overspending_check,
    IntentType.SAVINGS_ANALYSIS: insights.savings_analysis,
    IntentType.SPENDING_RISK: insights.spending_risk,
    IntentType.BUDGET_HEALTH: insights.budget_health,
    IntentType.COST_REDUCTION: insights.cost_reduction,
    IntentType.FINANCIAL_HEALTH_SCORE: insights.health_score,
    IntentType.PREDICTIVE_INSIGHTS: insights.predictive_insights,
    IntentType.ACTIONABLE_ADVICE: insights.actionable_advice,
    IntentType.CREATE_GOAL: goals.create_goal,
    IntentType.GOAL_PROGRESS: goals.goal_progress,
    IntentType.GOAL_ACHIEVABILITY: goals.goal_achievability,
    IntentType.ADJUST_GOAL: goals.adjust_goal,
    IntentType.GOAL_FEASIBILITY_CHECK: goals.goal_feasibility,
    IntentType.AFFORDABILITY_CHECK: insights.affordability,
    IntentType.RISK_DETECTION: insights.risk_detection,
    IntentType.PERSONALIZED_ADVICE: insights.personalized_advice,
    IntentType.INCOME_VS_EXPENSES: insights.income_vs_expenses,
    IntentType.INCOME_OVERVIEW: insights.income_overview,
    IntentType.HELP: insights.help_text,
}


class GeneratorRegistry:
    """
    Intent → generator dispatch with a keyword fallback.

    Usage:
        registry = GeneratorRegistry()
        text = registry.generate(intent, ResponseContext(question=q, snapshot=snapshot))
    """

    def __init__(
        self,
        generators: Optional[Mapping[IntentType, Generator]] = None,
        confidence_threshold: float = 0.7,
    ):
        generators = dict(generators if generators is not None else DEFAULT_GENERATORS)

        missing = sorted(
            intent.value for intent in IntentType
            if intent is not FALLBACK_INTENT and intent not in generators
        )
        if missing:
            raise ValueError(f"No generator registered for intents: {', '.join(missing)}")
        if FALLBACK_INTENT in generators:
            raise ValueError(f"{FALLBACK_INTENT.value} is answered by the keyword fallback only")

        self._generators = generators
        self._threshold = confidence_threshold

    def generator_for(self, intent_type: IntentType) -> Optional[Generator]:
        return self._generators.get(intent_type)

    def generate(self, intent: Intent, context: ResponseContext) -> str:
        """
        Produce a response. NEVER raises.

        Intents at or above the confidence threshold go to their own
        generator. If that generator raises or returns nothing, or the
        intent is below the threshold, the keyword chain answers.
        """
        if intent.type is not FALLBACK_INTENT and intent.confidence >= self._threshold:
            generator = self._generators[intent.type]
            try:
                response = generator(context)
            except Exception as e:
                logger.warning("generator_failed", intent=intent.type.value, error=str(e))
                response = None
            if response:
                return response

        return keyword_fallback(context)
