"""
Memory profile helpers.

MemoryProfile is frozen. Every change produces a new profile that the
session swaps in with a single assignment.
"""

from datetime import datetime
from typing import Any

from finance_engine.models.finance import Alert, MemoryProfile


# Fields the user (or the engine on their behalf) may change
PREFERENCE_FIELDS = frozenset({
    "language_preference",
    "response_style",
    "savings_goal",
    "risk_tolerance",
    "voice_enabled",
})


def update_preferences(profile: MemoryProfile, **changes: Any) -> MemoryProfile:
    """
    Return a copy with the given preferences changed.

    Raises:
        ValueError: If a change names something other than a preference
    """
    unknown = set(changes) - PREFERENCE_FIELDS
    if unknown:
        raise ValueError(f"Unknown memory preference: {', '.join(sorted(unknown))}")
    return MemoryProfile.model_validate({**profile.model_dump(), **changes})


def with_alerts(profile: MemoryProfile, alerts: list[Alert], checked_at: datetime) -> MemoryProfile:
    """Replace the alert slot. Previous alerts are discarded, never merged."""
    return profile.model_copy(update={
        "active_alerts": tuple(alerts),
        "last_alert_check": checked_at,
    })


def preferences_for_context(profile: MemoryProfile) -> dict[str, Any]:
    """The preference subset shared with an external text provider."""
    return {
        "languagePreference": profile.language_preference,
        "responseStyle": profile.response_style,
        "savingsGoal": profile.savings_goal,
        "riskTolerance": profile.risk_tolerance,
    }
