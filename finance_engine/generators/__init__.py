"""Response generators package."""

from finance_engine.generators.context import (
    GenerationOutcome,
    Generator,
    ResponseContext,
)
from finance_engine.generators.fallback import CAPABILITY_SUMMARY, keyword_fallback
from finance_engine.generators.registry import (
    DEFAULT_GENERATORS,
    FALLBACK_INTENT,
    GeneratorRegistry,
)
from finance_engine.generators.suggestions import (
    SuggestionTracker,
    suggest_questions,
)

__all__ = [
    "CAPABILITY_SUMMARY",
    "DEFAULT_GENERATORS",
    "FALLBACK_INTENT",
    "GenerationOutcome",
    "Generator",
    "GeneratorRegistry",
    "ResponseContext",
    "SuggestionTracker",
    "keyword_fallback",
    "suggest_questions",
]
