"""User memory, language and alerts."""

from finance_engine.memory.alerts import AlertMonitor, detect_alerts
from finance_engine.memory.language import (
    ENGLISH,
    HINDI,
    TAMIL,
    detect_language,
    translate_response,
)
from finance_engine.memory.profile import (
    PREFERENCE_FIELDS,
    preferences_for_context,
    update_preferences,
    with_alerts,
)

__all__ = [
    "AlertMonitor",
    "ENGLISH",
    "HINDI",
    "PREFERENCE_FIELDS",
    "TAMIL",
    "detect_alerts",
    "detect_language",
    "preferences_for_context",
    "translate_response",
    "update_preferences",
    "with_alerts",
]
