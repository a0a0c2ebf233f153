"""Data models package."""

from finance_engine.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from finance_engine.models.finance import (
    FLEXIBLE_CATEGORIES,
    AchievabilityAnalysis,
    AIContext,
    Alert,
    AlertSeverity,
    AlertType,
    CategoryShare,
    ContextFlags,
    ConversationContext,
    EntryType,
    ExpenseKind,
    FinancialRecords,
    FinancialSnapshot,
    FixedExpense,
    Goal,
    GoalCreationResult,
    GoalStatus,
    HealthScore,
    HealthStatus,
    HistoryEntry,
    IncomeSource,
    Intent,
    IntentType,
    Interaction,
    MemoryProfile,
    MonthComparison,
    MonthlyTotals,
    OverspendingInsight,
    OverspendingKind,
    ReductionStep,
    ScenarioDirection,
    ScenarioParams,
    ScenarioResult,
    ScenarioTarget,
    StorageResult,
    TopExpense,
    TrendAnalysis,
    TrendDirection,
    classify_health,
    compute_ratios,
    utc_now,
)

__all__ = [
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Records and snapshot
    "FLEXIBLE_CATEGORIES",
    "EntryType",
    "ExpenseKind",
    "FinancialRecords",
    "FinancialSnapshot",
    "FixedExpense",
    "HealthScore",
    "HealthStatus",
    "HistoryEntry",
    "IncomeSource",
    "MonthComparison",
    "MonthlyTotals",
    "OverspendingInsight",
    "OverspendingKind",
    "TopExpense",
    "TrendAnalysis",
    "TrendDirection",
    "classify_health",
    "compute_ratios",
    "utc_now",
    # Intents
    "ConversationContext",
    "Intent",
    "IntentType",
    # Goals
    "AchievabilityAnalysis",
    "Goal",
    "GoalCreationResult",
    "GoalStatus",
    "ReductionStep",
    # Scenarios
    "ScenarioDirection",
    "ScenarioParams",
    "ScenarioResult",
    "ScenarioTarget",
    # Memory
    "Alert",
    "AlertSeverity",
    "AlertType",
    "Interaction",
    "MemoryProfile",
    # Provider context
    "AIContext",
    "CategoryShare",
    "ContextFlags",
    "StorageResult",
]
