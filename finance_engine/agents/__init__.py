"""External text providers and the context they receive."""

from finance_engine.agents.context import (
    build_ai_context,
    context_health_score,
    is_complex_question,
    merge_with_data,
)
from finance_engine.agents.text_provider import (
    GeminiTextProvider,
    HttpTextProvider,
    ProviderResult,
    TextProvider,
    TextProviderRequest,
)

__all__ = [
    "GeminiTextProvider",
    "HttpTextProvider",
    "ProviderResult",
    "TextProvider",
    "TextProviderRequest",
    "build_ai_context",
    "context_health_score",
    "is_complex_question",
    "merge_with_data",
]
