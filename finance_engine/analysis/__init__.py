"""Financial analysis package: snapshot construction and derived metrics."""

from finance_engine.analysis.formatting import format_inr, group_indian
from finance_engine.analysis.snapshot import (
    SnapshotBuilder,
    analyze_trends,
    build_month_comparison,
    calculate_health_score,
    group_by_month,
    identify_overspending,
    rank_top_expenses,
)

__all__ = [
    "SnapshotBuilder",
    "analyze_trends",
    "build_month_comparison",
    "calculate_health_score",
    "format_inr",
    "group_by_month",
    "group_indian",
    "identify_overspending",
    "rank_top_expenses",
]
