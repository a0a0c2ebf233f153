"""
Snapshot Builder

Turns raw records into the immutable FinancialSnapshot that every other
component reads from.

DESIGN DECISION: The builder NEVER raises. Missing or partial data gives
a zeroed snapshot with `has_data=False`, and every generator knows how to
answer from that (usually by asking the user to add data).

The analysis helpers (trends, month comparison, overspending, health
score) are plain functions so they can be tested on their own and reused
by the simulator and the alert scan.
"""

import math
from datetime import datetime
from typing import Optional

import structlog

from finance_engine.models.finance import (
    FLEXIBLE_CATEGORIES,
    ExpenseKind,
    FinancialRecords,
    FinancialSnapshot,
    HealthScore,
    MonthComparison,
    MonthlyTotals,
    OverspendingInsight,
    OverspendingKind,
    TopExpense,
    TrendAnalysis,
    TrendDirection,
    utc_now,
)
from finance_engine.analysis.formatting import format_inr


logger = structlog.get_logger(__name__)

# Months counted as "recent" when comparing trends
RECENT_MONTHS = 3

# Change (in percent) beyond which a trend is no longer "stable"
TREND_THRESHOLD = 5.0


class SnapshotBuilder:
    """Builds a FinancialSnapshot from FinancialRecords."""

    def build(
        self,
        records: Optional[FinancialRecords],
        as_of: Optional[datetime] = None,
    ) -> FinancialSnapshot:
        """
        Build the snapshot for one turn.

        Args:
            records: Raw records, or None when no data provider is configured
            as_of: Reference time (defaults to now, UTC)

        Returns:
            A frozen FinancialSnapshot. Never raises.
        """
        as_of = as_of or utc_now()
        if records is None:
            return FinancialSnapshot(as_of=as_of)

        try:
            return self._build(records, as_of)
        except Exception as e:
            logger.warning("snapshot_build_failed", error=str(e))
            return FinancialSnapshot(as_of=as_of)

    def _build(self, records: FinancialRecords, as_of: datetime) -> FinancialSnapshot:
        income = records.total_income
        expenses = records.total_expenses
        fixed_total = sum(item.amount for item in records.fixed_expenses)
        flexible_total = sum(records.flexible_spending.values())
        monthly = group_by_month(records)

        has_data = bool(
            income > 0
            or expenses > 0
            or records.fixed_expenses
            or records.income_sources
            or flexible_total > 0
            or records.history
        )

        snapshot = FinancialSnapshot(
            as_of=as_of,
            has_data=has_data,
            income=income,
            expenses=expenses,
            fixed_expenses=fixed_total,
            flexible_spending=flexible_total,
            flexible_by_category=dict(records.flexible_spending),
            fixed_expense_items=list(records.fixed_expenses),
            income_sources=list(records.income_sources),
            monthly=monthly,
            top_expenses=rank_top_expenses(records, income),
            trend=analyze_trends(monthly),
            month_comparison=build_month_comparison(monthly),
        )
        return snapshot.model_copy(update={"overspending": identify_overspending(snapshot)})


def group_by_month(records: FinancialRecords) -> list[MonthlyTotals]:
    """Sum history entries into per-month income/expense totals, oldest first."""
    buckets: dict[str, MonthlyTotals] = {}
    for entry in records.history:
        key = entry.timestamp.strftime("%Y-%m")
        bucket = buckets.setdefault(key, MonthlyTotals(month=key))
        if entry.type.value == "income":
            bucket.income += entry.amount
        else:
            bucket.expenses += entry.amount
    return [buckets[key] for key in sorted(buckets)]


def rank_top_expenses(records: FinancialRecords, income: float) -> list[TopExpense]:
    """Top 3 fixed items plus top 3 positive flexible categories, largest first."""
    def share(amount: float) -> float:
        return amount / income * 100 if income > 0 else 0.0

    fixed = sorted(records.fixed_expenses, key=lambda e: e.amount, reverse=True)[:3]
    flexible = sorted(
        ((k, v) for k, v in records.flexible_spending.items() if v > 0),
        key=lambda kv: kv[1],
        reverse=True,
    )[:3]

    top = [
        TopExpense(name=e.name, amount=e.amount, percentage=share(e.amount), kind=ExpenseKind.FIXED)
        for e in fixed
    ]
    top.extend(
        TopExpense(
            name=FLEXIBLE_CATEGORIES.get(key, key.title()),
            amount=amount,
            percentage=share(amount),
            kind=ExpenseKind.FLEXIBLE,
        )
        for key, amount in flexible
    )
    top.sort(key=lambda e: e.amount, reverse=True)
    return top


def _direction(change: float) -> TrendDirection:
    if change > TREND_THRESHOLD:
        return TrendDirection.INCREASING
    if change < -TREND_THRESHOLD:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


def _percent_change(new: float, old: float) -> float:
    return (new - old) / old * 100 if old > 0 else 0.0


def analyze_trends(monthly: list[MonthlyTotals]) -> TrendAnalysis:
    """
    Compare the last (up to) three months against the months before them.

    Needs at least two months. When every month is "recent", the older
    average equals the recent average, which reads as stable.
    """
    if len(monthly) < 2:
        return TrendAnalysis(has_trend=False)

    recent = monthly[-RECENT_MONTHS:]
    older = monthly[:-RECENT_MONTHS]

    def mean(values: list[float]) -> float:
        return sum(values) / len(values)

    recent_expenses = mean([m.expenses for m in recent])
    recent_income = mean([m.income for m in recent])
    older_expenses = mean([m.expenses for m in older]) if older else recent_expenses
    older_income = mean([m.income for m in older]) if older else recent_income

    expense_change = _percent_change(recent_expenses, older_expenses)
    income_change = _percent_change(recent_income, older_income)

    return TrendAnalysis(
        has_trend=True,
        expense_trend=_direction(expense_change),
        income_trend=_direction(income_change),
        expense_change_percent=round(abs(expense_change), 1),
        income_change_percent=round(abs(income_change), 1),
    )


def build_month_comparison(monthly: list[MonthlyTotals]) -> Optional[MonthComparison]:
    """Signed change of the last month against the previous one, or None."""
    if len(monthly) < 2:
        return None

    last, prev = monthly[-1], monthly[-2]
    return MonthComparison(
        current_month=last.month,
        previous_month=prev.month,
        income_change_percent=round(_percent_change(last.income, prev.income), 1),
        expense_change_percent=round(_percent_change(last.expenses, prev.expenses), 1),
        savings_change_percent=round(_percent_change(last.savings, prev.savings), 1),
    )


def identify_overspending(snapshot: FinancialSnapshot) -> list[OverspendingInsight]:
    """
    Flag where spending is out of proportion to income.

    - overall: fixed + flexible exceeds income
    - fixed: fixed expenses above 60% of income (names the largest item)
    - flexible: flexible spending above 40% of income (names the top category)
    """
    income = snapshot.income
    if income <= 0:
        return []

    insights = []
    total = snapshot.fixed_expenses + snapshot.flexible_spending
    if total > income:
        insights.append(OverspendingInsight(
            kind=OverspendingKind.OVERALL,
            amount=total - income,
            message=(
                f"Your total expenses ({format_inr(total)}) exceed "
                f"your income ({format_inr(income)})."
            ),
        ))

    fixed_ratio = snapshot.fixed_expenses / income * 100
    if fixed_ratio > 60 and snapshot.fixed_expense_items:
        largest = max(snapshot.fixed_expense_items, key=lambda e: e.amount)
        insights.append(OverspendingInsight(
            kind=OverspendingKind.FIXED,
            amount=largest.amount,
            message=(
                f"Your fixed expenses are {fixed_ratio:.1f}% of income. "
                f"{largest.name} is your largest fixed expense at {format_inr(largest.amount)}."
            ),
        ))

    flexible_ratio = snapshot.flexible_spending / income * 100
    top = snapshot.top_flexible_category()
    if flexible_ratio > 40 and top:
        name, amount = top
        insights.append(OverspendingInsight(
            kind=OverspendingKind.FLEXIBLE,
            amount=amount,
            message=(
                f"Your flexible spending is {flexible_ratio:.1f}% of income. "
                f"{name} is your highest category at {format_inr(amount)}."
            ),
        ))

    return insights


def calculate_health_score(snapshot: FinancialSnapshot) -> HealthScore:
    """
    Score financial health from 0 to 100.

    Starts at 50 and adds or removes points for:
    1. Savings rate
    2. Expense ratio
    3. Fixed vs flexible balance
    4. Stability of the last three monthly balances
    5. Expense trend direction
    """
    if snapshot.income == 0 and snapshot.expenses == 0:
        return HealthScore(
            score=0,
            status="Unknown",
            explanation="Add income and expenses to calculate your financial health score.",
        )

    score = 50
    factors: list[str] = []
    rate = snapshot.savings_rate
    ratio = snapshot.expense_ratio
    income = snapshot.income

    if rate > 20:
        score += 30
        factors.append("Excellent savings rate")
    elif rate > 15:
        score += 25
        factors.append("Good savings rate")
    elif rate > 10:
        score += 15
        factors.append("Moderate savings rate")
    elif rate > 5:
        score += 5
        factors.append("Low savings rate")
    elif rate <= 0:
        score -= 20
        factors.append("No savings")

    if ratio < 50:
        score += 25
        factors.append("Low expense ratio")
    elif ratio < 70:
        score += 15
        factors.append("Moderate expense ratio")
    elif ratio < 85:
        score += 5
        factors.append("High expense ratio")
    elif ratio >= 100:
        score -= 30
        factors.append("Overspending")
    else:
        score -= 10
        factors.append("Very high expense ratio")

    if income > 0:
        fixed_ratio = snapshot.fixed_expenses / income * 100
        flexible_ratio = snapshot.flexible_spending / income * 100
        if fixed_ratio < 50 and flexible_ratio < 30:
            score += 20
            factors.append("Balanced expense structure")
        elif fixed_ratio < 60 and flexible_ratio < 40:
            score += 10
            factors.append("Reasonable expense structure")
        elif fixed_ratio > 70:
            score -= 15
            factors.append("High fixed expenses")
        elif flexible_ratio > 50:
            score -= 10
            factors.append("High flexible spending")

    if len(snapshot.monthly) >= 2:
        balances = [m.savings for m in snapshot.monthly[-RECENT_MONTHS:]]
        avg = sum(balances) / len(balances)
        spread = math.sqrt(sum((b - avg) ** 2 for b in balances) / len(balances))
        if avg > 0 and spread < avg * 0.1:
            score += 15
            factors.append("Stable monthly balance")
        elif avg > 0 and spread < avg * 0.3:
            score += 8
            factors.append("Moderately stable balance")
        elif avg < 0:
            score -= 10
            factors.append("Negative monthly balance")

    trend = snapshot.trend
    if trend.has_trend:
        if trend.expense_trend == TrendDirection.DECREASING and rate > 0:
            score += 10
            factors.append("Improving expense trend")
        elif trend.expense_trend == TrendDirection.INCREASING and ratio > 80:
            score -= 10
            factors.append("Worsening expense trend")

    score = max(0, min(100, score))

    if score >= 80:
        status = "Excellent"
        explanation = (
            "Your financial health is excellent. You have strong savings, "
            "balanced expenses, and good financial stability."
        )
    elif score >= 65:
        status = "Good"
        explanation = "Your financial health is good. You're managing expenses well and building savings."
    elif score >= 50:
        status = "Moderate"
        explanation = (
            "Your financial health is moderate. There's room for improvement "
            "in savings and expense management."
        )
    elif score >= 35:
        status = "Needs Attention"
        explanation = (
            "Your financial health needs attention. Focus on reducing "
            "expenses and increasing savings."
        )
    else:
        status = "Critical"
        explanation = (
            "Your financial health requires immediate attention. You may be "
            "overspending or have insufficient savings."
        )

    return HealthScore(score=score, status=status, explanation=explanation, factors=factors)
