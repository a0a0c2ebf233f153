"""
Core Data Models for the Financial Reasoning Engine

These models define the schemas for everything flowing through a
conversation turn: raw records, the derived snapshot, intents, goals,
scenarios, memory and alerts.

DESIGN DECISION: Values that must not change once built (the snapshot,
intents, scenario results, memory profile, alerts, interactions) are
frozen. Updates are made with `model_copy(update=...)`, which gives
every turn a consistent view even while the background alert scan
replaces the memory profile.

CRITICAL: savings, savings rate, expense ratio and health are COMPUTED
from the same income/expense pair on every read. They are never stored,
so they can never drift from the totals they describe.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EntryType(str, Enum):
    """Direction of a history entry."""
    INCOME = "income"
    EXPENSE = "expense"


class ExpenseKind(str, Enum):
    """Whether an expense is committed every month or discretionary."""
    FIXED = "fixed"
    FLEXIBLE = "flexible"


class HealthStatus(str, Enum):
    """Coarse budget health classification."""
    HEALTHY = "Healthy"
    MODERATE = "Moderate"
    NEEDS_ATTENTION = "Needs Attention"


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class OverspendingKind(str, Enum):
    OVERALL = "overall"
    FIXED = "fixed"
    FLEXIBLE = "flexible"


# Flexible spending keys and their display names.
# Order matters: it is the order categories are listed in responses.
FLEXIBLE_CATEGORIES: dict[str, str] = {
    "food": "Food & Dining",
    "travel": "Travel & Transport",
    "shopping": "Shopping",
    "miscellaneous": "Miscellaneous",
}


# =============================================================================
# RAW RECORDS - What the data provider hands us
# =============================================================================

class IncomeSource(BaseModel):
    """A named source of monthly income."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    amount: float = Field(default=0.0, ge=0)


class FixedExpense(BaseModel):
    """A recurring, committed monthly expense (rent, EMI, insurance...)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    amount: float = Field(default=0.0, ge=0)


class HistoryEntry(BaseModel):
    """A single dated transaction from the user's history."""

    amount: float = Field(..., ge=0)
    type: EntryType
    category: str = Field(default="")
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator('timestamp')
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        """Naive timestamps are interpreted as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class FinancialRecords(BaseModel):
    """
    Everything the read-only data provider returns for one user.

    The totals are authoritative: the snapshot uses `total_income` and
    `total_expenses` as its income/expense pair even when the itemized
    lists do not add up to them.
    """

    total_income: float = Field(default=0.0, ge=0)
    total_expenses: float = Field(default=0.0, ge=0)
    income_sources: list[IncomeSource] = Field(default_factory=list)
    fixed_expenses: list[FixedExpense] = Field(default_factory=list)
    flexible_spending: dict[str, float] = Field(default_factory=dict)
    history: list[HistoryEntry] = Field(default_factory=list)

    @field_validator('flexible_spending')
    @classmethod
    def normalize_flexible_keys(cls, v: dict[str, float]) -> dict[str, float]:
        """Lower-case keys and drop negative amounts."""
        return {
            key.strip().lower(): max(0.0, float(amount))
            for key, amount in v.items()
        }


# =============================================================================
# SNAPSHOT - The single source of truth for one turn
# =============================================================================

class MonthlyTotals(BaseModel):
    """Income and expense totals for one calendar month (YYYY-MM)."""

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    income: float = 0.0
    expenses: float = 0.0

    @property
    def savings(self) -> float:
        return self.income - self.expenses


class TopExpense(BaseModel):
    name: str
    amount: float
    percentage: float = Field(description="Share of income, in percent")
    kind: ExpenseKind


class TrendAnalysis(BaseModel):
    """Direction of income and expenses over the recorded months."""

    has_trend: bool = False
    expense_trend: TrendDirection = TrendDirection.STABLE
    income_trend: TrendDirection = TrendDirection.STABLE
    expense_change_percent: float = Field(default=0.0, ge=0)
    income_change_percent: float = Field(default=0.0, ge=0)


class MonthComparison(BaseModel):
    """Last recorded month compared with the month before it."""

    current_month: str
    previous_month: str
    income_change_percent: float = 0.0
    expense_change_percent: float = 0.0
    savings_change_percent: float = 0.0


class OverspendingInsight(BaseModel):
    kind: OverspendingKind
    message: str
    amount: float = 0.0


class FinancialSnapshot(BaseModel):
    """
    Immutable derived view of the user's finances at `as_of`.

    Built once per turn by the SnapshotBuilder. Generators, the goal
    planner and the simulator all read from this one object.
    """

    model_config = ConfigDict(frozen=True)

    as_of: datetime = Field(default_factory=utc_now)
    has_data: bool = False

    income: float = Field(default=0.0, ge=0)
    expenses: float = Field(default=0.0, ge=0)
    fixed_expenses: float = Field(default=0.0, ge=0)
    flexible_spending: float = Field(default=0.0, ge=0)
    flexible_by_category: dict[str, float] = Field(default_factory=dict)

    fixed_expense_items: list[FixedExpense] = Field(default_factory=list)
    income_sources: list[IncomeSource] = Field(default_factory=list)

    monthly: list[MonthlyTotals] = Field(default_factory=list)
    top_expenses: list[TopExpense] = Field(default_factory=list)
    trend: TrendAnalysis = Field(default_factory=TrendAnalysis)
    month_comparison: Optional[MonthComparison] = None
    overspending: list[OverspendingInsight] = Field(default_factory=list)

    @computed_field
    @property
    def savings(self) -> float:
        return compute_ratios(self.income, self.expenses)[0]

    @computed_field
    @property
    def savings_rate(self) -> float:
        """Savings as a percentage of income (0 when there is no income)."""
        return compute_ratios(self.income, self.expenses)[1]

    @computed_field
    @property
    def expense_ratio(self) -> float:
        """Expenses as a percentage of income (0 when there is no income)."""
        return compute_ratios(self.income, self.expenses)[2]

    @computed_field
    @property
    def health(self) -> HealthStatus:
        return classify_health(self.income, self.expenses)

    @property
    def month_label(self) -> str:
        """Human month name for `as_of`, e.g. 'March 2025'."""
        return self.as_of.strftime("%B %Y")

    def category_amount(self, key: str) -> float:
        return self.flexible_by_category.get(key, 0.0)

    def top_flexible_category(self) -> Optional[tuple[str, float]]:
        """(display name, amount) of the largest flexible category, if any."""
        positive = [
            (FLEXIBLE_CATEGORIES.get(k, k.title()), v)
            for k, v in self.flexible_by_category.items()
            if v > 0
        ]
        if not positive:
            return None
        return max(positive, key=lambda item: item[1])


def compute_ratios(income: float, expenses: float) -> tuple[float, float, float]:
    """
    Return (savings, savings_rate, expense_ratio).

    Rates are percentages. Both are 0 when income is 0.
    """
    savings = income - expenses
    if income <= 0:
        return savings, 0.0, 0.0
    return savings, savings / income * 100, expenses / income * 100


def classify_health(income: float, expenses: float) -> HealthStatus:
    """
    Classify budget health.

    Precedence (first match wins):
    1. Expenses exceed income → Needs Attention
    2. Expense ratio above 85% → Needs Attention
    3. Expense ratio below 50% and savings rate above 20% → Healthy
    4. Expense ratio below 70% and savings rate above 10% → Moderate
    5. Otherwise → Needs Attention
    """
    _, savings_rate, expense_ratio = compute_ratios(income, expenses)
    if expenses > income:
        return HealthStatus.NEEDS_ATTENTION
    if expense_ratio > 85:
        return HealthStatus.NEEDS_ATTENTION
    if expense_ratio < 50 and savings_rate > 20:
        return HealthStatus.HEALTHY
    if expense_ratio < 70 and savings_rate > 10:
        return HealthStatus.MODERATE
    return HealthStatus.NEEDS_ATTENTION


class HealthScore(BaseModel):
    """0-100 financial health score with the factors that produced it."""

    score: int = Field(..., ge=0, le=100)
    status: str
    explanation: str
    factors: list[str] = Field(default_factory=list)


# =============================================================================
# INTENTS
# =============================================================================

class IntentType(str, Enum):
    """
    Closed set of question types the engine can answer.

    GENERAL_ADVICE is the catch-all and is answered by the keyword
    fallback chain rather than a dedicated generator.
    """
    SAVE_MORE = "save_more"
    CUT_EXPENSES = "cut_expenses"
    HIGHEST_EXPENSE = "highest_expense"
    CATEGORY_ANALYSIS = "category_analysis"
    MONTHLY_SUMMARY = "monthly_summary"
    SAVINGS_ADVICE = "savings_advice"
    EXPENSE_ANALYSIS = "expense_analysis"
    BUDGET_OPTIMIZATION = "budget_optimization"
    TREND_ANALYSIS = "trend_analysis"
    OVERSPENDING_CHECK = "overspending_check"
    SAVINGS_ANALYSIS = "savings_analysis"
    SPENDING_RISK = "spending_risk"
    BUDGET_HEALTH = "budget_health"
    COST_REDUCTION = "cost_reduction"
    FINANCIAL_HEALTH_SCORE = "financial_health_score"
    PREDICTIVE_INSIGHTS = "predictive_insights"
    ACTIONABLE_ADVICE = "actionable_advice"
    CREATE_GOAL = "create_goal"
    GOAL_PROGRESS = "goal_progress"
    GOAL_ACHIEVABILITY = "goal_achievability"
    ADJUST_GOAL = "adjust_goal"
    WHAT_IF_SIMULATION = "what_if_simulation"
    GOAL_FEASIBILITY_CHECK = "goal_feasibility_check"
    RISK_DETECTION = "risk_detection"
    PERSONALIZED_ADVICE = "personalized_advice"
    AFFORDABILITY_CHECK = "affordability_check"
    INCOME_OVERVIEW = "income_overview"
    INCOME_VS_EXPENSES = "income_vs_expenses"
    HELP = "help"
    GENERAL_ADVICE = "general_advice"


class Intent(BaseModel):
    """Classified intent of one question."""

    model_config = ConfigDict(frozen=True)

    type: IntentType
    confidence: float = Field(..., ge=0.0, le=1.0)


class ConversationContext(BaseModel):
    """What the last few interactions were about."""

    last_topic: Optional[str] = None
    mentioned_amounts: list[float] = Field(default_factory=list)
    mentioned_categories: list[str] = Field(default_factory=list)


# =============================================================================
# GOALS
# =============================================================================

class GoalStatus(str, Enum):
    ACTIVE = "active"
    BEHIND = "behind"
    COMPLETED = "completed"


class Goal(BaseModel):
    """
    A user savings goal.

    Created only on explicit request. Progress fields are recomputed
    from the snapshot; the engine never deletes a goal.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str = Field(..., min_length=1, max_length=100)
    target_amount: float = Field(..., gt=0)
    duration_months: int = Field(..., gt=0)
    monthly_requirement: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)

    amount_saved: float = Field(default=0.0, ge=0)
    remaining_amount: float = Field(default=0.0, ge=0)
    completion_percentage: float = Field(default=0.0, ge=0, le=100)
    status: GoalStatus = GoalStatus.ACTIVE

    @model_validator(mode='after')
    def fill_derived_amounts(self) -> 'Goal':
        """Derive the monthly requirement and remaining amount when absent."""
        if self.monthly_requirement == 0:
            self.monthly_requirement = round(self.target_amount / self.duration_months, 2)
        if self.remaining_amount == 0 and self.amount_saved < self.target_amount:
            self.remaining_amount = self.target_amount - self.amount_saved
        if self.created_at.tzinfo is None:
            self.created_at = self.created_at.replace(tzinfo=timezone.utc)
        return self

    @property
    def is_open(self) -> bool:
        """Active and behind goals count against name uniqueness."""
        return self.status in (GoalStatus.ACTIVE, GoalStatus.BEHIND)


class ReductionStep(BaseModel):
    """One suggested cut in a reduction plan."""

    name: str
    current_amount: float
    reduce_by: float
    new_amount: float


class AchievabilityAnalysis(BaseModel):
    achievable: bool
    requires_reduction: bool = False
    monthly_requirement: float = 0.0
    available_savings: float = 0.0
    shortfall: float = 0.0
    message: str
    suggestion: Optional[str] = None
    reduction_plan: list[ReductionStep] = Field(default_factory=list)


class GoalCreationResult(BaseModel):
    created: bool
    goal: Optional[Goal] = None
    reason: Optional[str] = None


# =============================================================================
# SCENARIOS
# =============================================================================

class ScenarioTarget(str, Enum):
    INCOME = "income"
    TOTAL_EXPENSES = "total_expenses"
    FOOD = "food"
    TRAVEL = "travel"
    SHOPPING = "shopping"
    MISCELLANEOUS = "miscellaneous"

    @property
    def is_category(self) -> bool:
        return self.value in FLEXIBLE_CATEGORIES

    @property
    def label(self) -> str:
        if self.is_category:
            return FLEXIBLE_CATEGORIES[self.value]
        return "income" if self is ScenarioTarget.INCOME else "total expenses"


class ScenarioDirection(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


class ScenarioParams(BaseModel):
    """A hypothetical change: exactly one magnitude (amount or percentage)."""

    model_config = ConfigDict(frozen=True)

    target: ScenarioTarget
    direction: ScenarioDirection = ScenarioDirection.DECREASE
    amount: Optional[float] = Field(default=None, ge=0)
    percentage: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode='after')
    def require_magnitude(self) -> 'ScenarioParams':
        if self.amount is None and self.percentage is None:
            raise ValueError("A scenario needs an amount or a percentage")
        return self


class ScenarioResult(BaseModel):
    """Outcome of a simulation. The original snapshot is untouched."""

    model_config = ConfigDict(frozen=True)

    params: ScenarioParams
    original: FinancialSnapshot
    simulated: FinancialSnapshot
    income_change: float
    expense_change: float
    savings_change: float
    goal_name: Optional[str] = None
    goal_impact: Optional[AchievabilityAnalysis] = None


# =============================================================================
# MEMORY & ALERTS
# =============================================================================

class AlertType(str, Enum):
    OVERSPENDING = "overspending"
    LOW_SAVINGS = "low_savings"
    INCOME_INSTABILITY = "income_instability"
    HIGH_EXPENSE_RATIO = "high_expense_ratio"


class AlertSeverity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Alert(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: AlertType
    severity: AlertSeverity
    message: str
    suggestion: str


class MemoryProfile(BaseModel):
    """
    Long-lived user preferences and the current alert slot.

    Survives history clears. Replaced wholesale (never mutated) so the
    background alert scan and a conversation turn never see a half-updated
    profile.
    """

    model_config = ConfigDict(frozen=True)

    language_preference: str = "en-IN"
    response_style: str = "friendly"
    savings_goal: Optional[float] = None
    risk_tolerance: str = "moderate"
    voice_enabled: bool = False
    last_alert_check: Optional[datetime] = None
    active_alerts: tuple[Alert, ...] = ()


class Interaction(BaseModel):
    """One question/answer pair."""

    model_config = ConfigDict(frozen=True)

    question: str
    response: str
    timestamp: datetime = Field(default_factory=utc_now)


# =============================================================================
# EXTERNAL PROVIDER CONTEXT
# =============================================================================

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CategoryShare(_CamelModel):
    name: str
    amount: float
    percentage: float


class ContextFlags(_CamelModel):
    overspending: bool = False
    low_savings: bool = False
    high_expense_ratio: bool = False
    increasing_trend: bool = False


class AIContext(_CamelModel):
    """
    Aggregated, non-identifying context sent to an external text provider.

    CRITICAL: Only aggregates go here. Raw transactions NEVER leave the engine.
    Serialize with `model_dump(by_alias=True)` for the camelCase wire format.
    """

    income: float
    expenses: float
    savings: float
    savings_rate: float
    expense_ratio: float
    health_score: int = Field(..., ge=0, le=100)
    health_status: str
    top_categories: list[CategoryShare] = Field(default_factory=list, max_length=5)
    flags: ContextFlags = Field(default_factory=ContextFlags)
    currency: str = "INR"
    month: str
    user_memory: dict[str, Any] = Field(default_factory=dict)
    active_alerts: list[dict[str, Any]] = Field(default_factory=list)
    language: str = "en-IN"


# =============================================================================
# RESULTS
# =============================================================================

class StorageResult(BaseModel):
    """
    Outcome of a provider call that must not raise across the boundary.

    `ok` is False when the call failed; `error` then says why.
    """

    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> 'StorageResult':
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> 'StorageResult':
        return cls(ok=False, error=error)
