"""Response safety filtering."""

from finance_engine.safety.filter import REDACTION, SafetyFilter

__all__ = ["REDACTION", "SafetyFilter"]
