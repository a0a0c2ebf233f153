"""
Text Extraction

Pulls amounts, percentages, goal requests and what-if scenarios out of
free text. Everything here is a pure function of the input string.

Indian amount conventions are supported: "₹2 lakh" is 2,00,000,
"1 crore" is 1,00,00,000 and "50k" is 50,000.
"""

import re
from typing import Optional

from pydantic import BaseModel

from finance_engine.models.finance import (
    ScenarioDirection,
    ScenarioParams,
    ScenarioTarget,
)


MULTIPLIERS = {
    "lakh": 100_000,
    "lakhs": 100_000,
    "crore": 10_000_000,
    "crores": 10_000_000,
    "thousand": 1_000,
    "thousands": 1_000,
    "k": 1_000,
}

_NUMBER = r"(\d[\d,]*(?:\.\d+)?)"

SUFFIX_AMOUNT = re.compile(
    r"₹?\s*" + _NUMBER + r"\s*(lakhs?|crores?|thousands?|k)\b",
    re.IGNORECASE,
)
RUPEE_AMOUNT = re.compile(r"(?:₹|\brs\.?|\binr)\s*" + _NUMBER, re.IGNORECASE)
# A bare number that is not a duration or a percentage
PLAIN_AMOUNT = re.compile(
    r"(?<![\d.,])" + _NUMBER + r"(?!\d|[.,]\d|\s*(?:months?\b|%))",
    re.IGNORECASE,
)
PERCENTAGE = re.compile(r"(\d+(?:\.\d+)?)\s*%")
DURATION = re.compile(r"(\d+)\s*months?\b", re.IGNORECASE)


def _to_float(number: str) -> float:
    return float(number.replace(",", ""))


def parse_amount(text: str) -> Optional[float]:
    """
    Find the first rupee amount in `text`.

    Tried in order:
    1. A number with a lakh/crore/thousand/k suffix
    2. A number prefixed with ₹, Rs or INR
    3. A bare number that is not followed by "months" or "%"
    """
    if not text:
        return None

    match = SUFFIX_AMOUNT.search(text)
    if match:
        return _to_float(match.group(1)) * MULTIPLIERS[match.group(2).lower()]

    match = RUPEE_AMOUNT.search(text)
    if match:
        return _to_float(match.group(1))

    match = PLAIN_AMOUNT.search(text)
    if match:
        return _to_float(match.group(1))

    return None


def parse_percentage(text: str) -> Optional[float]:
    """Find the first percentage ("20%", "12.5 %") in `text`."""
    match = PERCENTAGE.search(text or "")
    return float(match.group(1)) if match else None


def parse_duration_months(text: str) -> Optional[int]:
    match = DURATION.search(text or "")
    return int(match.group(1)) if match else None


# =============================================================================
# GOAL REQUESTS
# =============================================================================

# (pattern, goal name); first match wins
GOAL_NAMES: list[tuple[str, str]] = [
    (r"emergency fund", "Emergency Fund"),
    (r"\b(?:vacation|trip)\b", "Vacation Fund"),
    (r"\b(?:house|home)\b", "Home Down Payment"),
    (r"\b(?:car|vehicle|bike)\b", "Vehicle Purchase"),
    (r"\bwedding\b", "Wedding Fund"),
    (r"\beducation\b", "Education Fund"),
]

DEFAULT_GOAL_NAME = "Savings Goal"


class GoalRequest(BaseModel):
    """What a "create a goal" message asked for. Missing parts are None."""

    name: str = DEFAULT_GOAL_NAME
    target_amount: Optional[float] = None
    duration_months: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.target_amount and self.duration_months)


def extract_goal_request(text: str) -> GoalRequest:
    """
    Extract a goal name, target amount and duration from a message.

    >>> extract_goal_request("Save ₹2 lakh for a car in 10 months")
    GoalRequest(name='Vehicle Purchase', target_amount=200000.0, duration_months=10)
    """
    lowered = (text or "").lower()
    name = DEFAULT_GOAL_NAME
    for pattern, goal_name in GOAL_NAMES:
        if re.search(pattern, lowered):
            name = goal_name
            break

    return GoalRequest(
        name=name,
        target_amount=parse_amount(text),
        duration_months=parse_duration_months(text),
    )


# =============================================================================
# SCENARIOS
# =============================================================================

# Categories are checked before the generic income/expense words so that
# "what if my food spending drops 20%" targets food, not total expenses.
SCENARIO_TARGETS: list[tuple[str, ScenarioTarget]] = [
    (r"\b(?:food|dining|groceries)\b", ScenarioTarget.FOOD),
    (r"\b(?:travel|transport|commute)\b", ScenarioTarget.TRAVEL),
    (r"\bshopping\b", ScenarioTarget.SHOPPING),
    (r"\b(?:misc|miscellaneous)\b", ScenarioTarget.MISCELLANEOUS),
    (r"\b(?:income|salary|earn|earnings)\b", ScenarioTarget.INCOME),
    (r"\b(?:rent|expenses?|spending|spend)\b", ScenarioTarget.TOTAL_EXPENSES),
]

INCREASE_WORDS = re.compile(
    r"\b(?:increase[sd]?|raise[sd]?|more|add|rises?|rose|grows?|higher|hikes?|hiked"
    r"|jumps?|jumped|doubles?|doubled|(?:goes|go|going|went) up|up by)\b"
)
DECREASE_WORDS = re.compile(
    r"\b(?:decrease[sd]?|reduce[sd]?|less|cut|lower|drops?|dropped|falls?|fell|lose|loses"
    r"|halves?|halved|(?:goes|go|going|went) down|down by)\b"
)


def extract_scenario(text: str) -> Optional[ScenarioParams]:
    """
    Parse a what-if question into ScenarioParams.

    Returns None when no target (income, expenses or a category) or no
    magnitude (amount or percentage) or no direction word can be found.
    A percentage takes precedence over an amount. When both increase and
    decrease words appear, decrease wins.
    """
    lowered = (text or "").lower()

    target = None
    for pattern, candidate in SCENARIO_TARGETS:
        if re.search(pattern, lowered):
            target = candidate
            break
    if target is None:
        return None

    percentage = parse_percentage(text)
    amount = None
    if percentage is None:
        amount = parse_amount(text)
    if amount is None and percentage is None:
        return None

    if DECREASE_WORDS.search(lowered):
        direction = ScenarioDirection.DECREASE
    elif INCREASE_WORDS.search(lowered):
        direction = ScenarioDirection.INCREASE
    else:
        return None

    return ScenarioParams(
        target=target,
        direction=direction,
        amount=amount,
        percentage=percentage,
    )
