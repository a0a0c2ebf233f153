"""Intent classification and text extraction package."""

from finance_engine.intents.classifier import (
    RULES,
    IntentClassifier,
    Rule,
    extract_conversation_context,
)
from finance_engine.intents.extraction import (
    GoalRequest,
    extract_goal_request,
    extract_scenario,
    parse_amount,
    parse_duration_months,
    parse_percentage,
)

__all__ = [
    "GoalRequest",
    "IntentClassifier",
    "RULES",
    "Rule",
    "extract_conversation_context",
    "extract_goal_request",
    "extract_scenario",
    "parse_amount",
    "parse_duration_months",
    "parse_percentage",
]
