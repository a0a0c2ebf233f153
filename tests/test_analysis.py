"""
Tests for snapshot building and financial analysis.

Covers INR formatting, the snapshot builder, trends, month comparison,
overspending insights and the health score.
"""

import pytest

from finance_engine.analysis.formatting import format_inr, group_indian
from finance_engine.analysis.snapshot import (
    analyze_trends,
    build_month_comparison,
    calculate_health_score,
)
from finance_engine.models.finance import (
    ExpenseKind,
    HealthStatus,
    MonthlyTotals,
    OverspendingKind,
    TrendDirection,
    classify_health,
    compute_ratios,
)


class TestFormatting:
    """Tests for INR formatting."""

    def test_indian_grouping(self):
        """Test lakh/crore digit grouping."""
        assert group_indian(999) == "999"
        assert group_indian(1000) == "1,000"
        assert group_indian(123456) == "1,23,456"
        assert group_indian(12345678) == "1,23,45,678"

    def test_format_with_decimals(self):
        """Test the default two-decimal format."""
        assert format_inr(123456.5) == "₹1,23,456.50"
        assert format_inr(0) == "₹0.00"

    def test_format_negative_without_decimals(self):
        """Test the sign goes before the rupee symbol."""
        assert format_inr(-5000, decimals=0) == "-₹5,000"

    def test_format_without_symbol(self):
        """Test the symbol can be omitted."""
        assert format_inr(10000000, decimals=0, symbol=False) == "1,00,00,000"


class TestRatios:
    """Tests for savings/expense ratios and health classification."""

    def test_ratios_zero_income(self):
        """Test both rates are zero without income."""
        assert compute_ratios(0, 500) == (-500, 0.0, 0.0)

    def test_ratios(self):
        """Test rates are percentages of income."""
        savings, rate, ratio = compute_ratios(100000, 60000)
        assert savings == 40000
        assert rate == pytest.approx(40.0)
        assert ratio == pytest.approx(60.0)

    def test_health_classification(self):
        """Test health precedence."""
        assert classify_health(100000, 40000) == HealthStatus.HEALTHY
        assert classify_health(100000, 60000) == HealthStatus.MODERATE
        assert classify_health(100000, 90000) == HealthStatus.NEEDS_ATTENTION
        assert classify_health(40000, 50000) == HealthStatus.NEEDS_ATTENTION


class TestSnapshotBuilder:
    """Tests for SnapshotBuilder."""

    def test_totals_and_ratios(self, healthy):
        """Test derived totals of a healthy household."""
        assert healthy.has_data
        assert healthy.income == 100000
        assert healthy.expenses == 60000
        assert healthy.fixed_expenses == 40000
        assert healthy.flexible_spending == 20000
        assert healthy.savings == 40000
        assert healthy.savings_rate == pytest.approx(40.0)
        assert healthy.expense_ratio == pytest.approx(60.0)
        assert healthy.health == HealthStatus.MODERATE

    def test_monthly_grouping(self, healthy):
        """Test history is grouped by month, oldest first."""
        assert [m.month for m in healthy.monthly] == ["2025-01", "2025-02", "2025-03"]
        assert healthy.monthly[1].expenses == 58000
        assert healthy.monthly[2].savings == 40000

    def test_top_expenses_ranked(self, healthy):
        """Test fixed and flexible items are ranked together."""
        names = [e.name for e in healthy.top_expenses]
        assert names[:3] == ["Rent", "Food & Dining", "EMI"]
        assert healthy.top_expenses[0].percentage == pytest.approx(25.0)
        assert healthy.top_expenses[1].kind == ExpenseKind.FLEXIBLE

    def test_no_records_gives_empty_snapshot(self, empty):
        """Test a missing provider yields an empty snapshot."""
        assert not empty.has_data
        assert empty.income == 0
        assert empty.savings_rate == 0.0
        assert empty.top_expenses == []

    def test_snapshot_is_frozen(self, healthy):
        """Test the snapshot cannot be modified."""
        with pytest.raises(Exception):
            healthy.income = 1

    def test_month_label(self, healthy):
        """Test the month label comes from the snapshot date."""
        assert healthy.month_label == "March 2025"

    def test_top_flexible_category(self, healthy):
        """Test the largest flexible category is named by its display name."""
        assert healthy.top_flexible_category() == ("Food & Dining", 12000)


class TestTrends:
    """Tests for trend analysis and month comparison."""

    def test_single_month_has_no_trend(self):
        """Test trends need two months."""
        trend = analyze_trends([MonthlyTotals(month="2025-01", income=1, expenses=1)])
        assert not trend.has_trend

    def test_all_recent_months_is_stable(self, healthy):
        """Test three months compare against themselves."""
        assert healthy.trend.has_trend
        assert healthy.trend.expense_trend == TrendDirection.STABLE
        assert healthy.trend.income_trend == TrendDirection.STABLE

    def test_increasing_expenses(self):
        """Test recent months are compared with older months."""
        monthly = [
            MonthlyTotals(month="2025-01", income=50000, expenses=10000),
            MonthlyTotals(month="2025-02", income=50000, expenses=20000),
            MonthlyTotals(month="2025-03", income=50000, expenses=20000),
            MonthlyTotals(month="2025-04", income=50000, expenses=20000),
        ]
        trend = analyze_trends(monthly)
        assert trend.expense_trend == TrendDirection.INCREASING
        assert trend.expense_change_percent == pytest.approx(100.0)
        assert trend.income_trend == TrendDirection.STABLE

    def test_month_comparison(self, healthy):
        """Test the last month is compared with the previous one."""
        comparison = healthy.month_comparison
        assert comparison.current_month == "2025-03"
        assert comparison.previous_month == "2025-02"
        assert comparison.expense_change_percent == pytest.approx(3.4)
        assert comparison.savings_change_percent == pytest.approx(-4.8)

    def test_month_comparison_after_negative_savings(self):
        """Test savings change is zero when the previous month had no savings."""
        comparison = build_month_comparison([
            MonthlyTotals(month="2025-01", income=10000, expenses=12000),
            MonthlyTotals(month="2025-02", income=10000, expenses=8000),
        ])
        assert comparison.savings_change_percent == 0.0


class TestOverspending:
    """Tests for overspending insights."""

    def test_healthy_household_has_none(self, healthy):
        """Test no insights for balanced spending."""
        assert healthy.overspending == []

    def test_overall_and_fixed(self, overspending):
        """Test overall and fixed-ratio insights."""
        kinds = [insight.kind for insight in overspending.overspending]
        assert kinds == [OverspendingKind.OVERALL, OverspendingKind.FIXED]
        assert overspending.overspending[0].amount == 10000
        assert "Rent is your largest fixed expense" in overspending.overspending[1].message


class TestHealthScore:
    """Tests for the 0-100 health score."""

    def test_no_data(self, empty):
        """Test the unknown score without data."""
        score = calculate_health_score(empty)
        assert score.score == 0
        assert score.status == "Unknown"

    def test_bounds(self, healthy, tight, overspending):
        """Test every score stays within 0-100."""
        for snapshot in (healthy, tight, overspending):
            score = calculate_health_score(snapshot)
            assert 0 <= score.score <= 100

    def test_ordering(self, healthy, overspending):
        """Test a healthy household outscores an overspending one."""
        assert calculate_health_score(healthy).score > calculate_health_score(overspending).score


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
