"""
Safety Filter

Final pass over EVERY response before it reaches the user, whether it
came from a local generator or an external text provider.

The engine explains the user's own numbers. It does NOT give investment
advice and does NOT issue orders, so:
1. Investment phrases are redacted
2. Imperative and absolute wording is softened
3. Output is capped at a maximum length
"""

import re

import structlog


logger = structlog.get_logger(__name__)

REDACTION = "[investment advice removed]"
ELLIPSIS = "..."

INVESTMENT_PHRASES = [
    "invest in",
    "buy stock",
    "purchase shares",
    "trading",
    "crypto",
    "bitcoin",
]

# Regex patterns, longest first so "you should definitely" is not caught by
# "you should". Adverbs between "you" and "must" are absorbed.
ABSOLUTE_ADVERBS = r"(?:absolutely|really|definitely|simply|just|truly|always)"

SOFTENERS: list[tuple[str, str]] = [
    (r"you should definitely", "you might consider"),
    (rf"you (?:{ABSOLUTE_ADVERBS} )*must", "you may want to"),
    (r"you should", "you may want to"),
    (r"you need to", "you may want to"),
    (r"you have to", "you may want to"),
    (r"will definitely", "may"),
    (r"guaranteed", "potentially"),
    (r"guaranteeing", "potentially offering"),
    (r"guarantees?", "potential"),
]


def _keep_case(replacement: str):
    def substitute(match: re.Match) -> str:
        if match.group(0)[0].isupper():
            return replacement[0].upper() + replacement[1:]
        return replacement
    return substitute


class SafetyFilter:
    """
    Usage:
        safety = SafetyFilter(max_length=2000)
        text = safety.apply("You must buy stock now")
        # "You may want to [investment advice removed] now"
    """

    def __init__(self, max_length: int = 2000):
        self._max_length = max_length
        self._investment = re.compile(
            "|".join(re.escape(p) for p in INVESTMENT_PHRASES),
            re.IGNORECASE,
        )
        self._softeners = [
            (re.compile(r"\b" + phrase + r"\b", re.IGNORECASE), _keep_case(replacement))
            for phrase, replacement in SOFTENERS
        ]

    def apply(self, text: str) -> str:
        """Filter one response. Empty input gives an empty string."""
        if not text:
            return ""

        filtered, redactions = self._investment.subn(REDACTION, text)
        if redactions:
            logger.info("investment_advice_redacted", count=redactions)

        for pattern, substitute in self._softeners:
            filtered = pattern.sub(substitute, filtered)

        filtered = filtered.strip()
        if len(filtered) > self._max_length:
            filtered = filtered[:self._max_length - len(ELLIPSIS)] + ELLIPSIS
        return filtered
