"""
Tests for memory: alert detection, the alert monitor, language handling
and profile updates.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from finance_engine.memory import (
    HINDI,
    TAMIL,
    AlertMonitor,
    detect_alerts,
    detect_language,
    preferences_for_context,
    translate_response,
    update_preferences,
    with_alerts,
)
from finance_engine.models.finance import (
    Alert,
    AlertSeverity,
    AlertType,
    EntryType,
    FinancialRecords,
    HistoryEntry,
    MemoryProfile,
)

from conftest import AS_OF


def _income(month: int, amount: float) -> HistoryEntry:
    return HistoryEntry(
        amount=amount,
        type=EntryType.INCOME,
        category="salary",
        timestamp=datetime(2025, month, 1, tzinfo=timezone.utc),
    )


class TestDetectAlerts:
    """Tests for detect_alerts."""

    def test_healthy_has_no_alerts(self, healthy):
        """Test a healthy household raises nothing."""
        assert detect_alerts(healthy) == []

    def test_empty_has_no_alerts(self, empty):
        """Test no data raises nothing."""
        assert detect_alerts(empty) == []

    def test_overspending(self, overspending):
        """Test overspending and the expense ratio are both flagged."""
        alerts = detect_alerts(overspending)
        assert [a.type for a in alerts] == [AlertType.OVERSPENDING, AlertType.HIGH_EXPENSE_RATIO]
        assert alerts[0].severity == AlertSeverity.HIGH
        assert alerts[0].message == "You're spending ₹10,000.00 more than you earn this month."
        assert alerts[1].message.startswith("Your expenses are 125.0% of your income")

    def test_low_savings(self, tight):
        """Test a 4% savings rate is flagged."""
        alerts = detect_alerts(tight)
        assert [a.type for a in alerts] == [AlertType.LOW_SAVINGS, AlertType.HIGH_EXPENSE_RATIO]
        assert alerts[0].message == "Your savings rate is 4.0%, which is below recommended levels."

    def test_income_instability(self, builder):
        """Test swinging monthly income is flagged."""
        records = FinancialRecords(
            total_income=100000,
            total_expenses=50000,
            history=[_income(1, 100000), _income(2, 40000), _income(3, 100000)],
        )
        alerts = detect_alerts(builder.build(records, as_of=AS_OF))
        assert [a.type for a in alerts] == [AlertType.INCOME_INSTABILITY]

    def test_steady_income_not_flagged(self, builder):
        """Test small income changes are ignored."""
        records = FinancialRecords(
            total_income=100000,
            total_expenses=50000,
            history=[_income(1, 95000), _income(2, 100000), _income(3, 105000)],
        )
        assert detect_alerts(builder.build(records, as_of=AS_OF)) == []


class TestAlertMonitor:
    """Tests for the background alert monitor."""

    @pytest.mark.asyncio
    async def test_runs_repeatedly(self):
        """Test the scan runs after the delay and then on the interval."""
        calls = []

        async def scan():
            calls.append(1)

        monitor = AlertMonitor(scan, initial_delay=0, interval=0.01)
        monitor.start()
        assert monitor.is_running
        await asyncio.sleep(0.1)
        await monitor.stop()

        assert len(calls) >= 2
        assert not monitor.is_running

    @pytest.mark.asyncio
    async def test_initial_delay(self):
        """Test nothing runs before the initial delay."""
        calls = []

        async def scan():
            calls.append(1)

        monitor = AlertMonitor(scan, initial_delay=10, interval=10)
        monitor.start()
        await asyncio.sleep(0.02)
        await monitor.stop()
        assert calls == []

    @pytest.mark.asyncio
    async def test_survives_failing_scan(self):
        """Test a raising scan does not stop the monitor."""
        calls = []

        async def scan():
            calls.append(1)
            raise RuntimeError("storage down")

        monitor = AlertMonitor(scan, initial_delay=0, interval=0.01)
        monitor.start()
        await asyncio.sleep(0.1)
        assert monitor.is_running
        await monitor.stop()
        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        """Test stopping an idle monitor is a no-op."""
        async def scan():
            pass

        monitor = AlertMonitor(scan)
        await monitor.stop()
        assert not monitor.is_running


class TestLanguage:
    """Tests for language detection and translation."""

    def test_detect_hindi(self):
        """Test Devanagari text is Hindi."""
        assert detect_language("मेरी बचत कितनी है?") == HINDI

    def test_detect_tamil(self):
        """Test Tamil script is Tamil."""
        assert detect_language("என் சேமிப்பு எவ்வளவு?") == TAMIL

    def test_latin_keeps_default(self):
        """Test Latin text keeps the stored preference."""
        assert detect_language("How much am I saving?", default=HINDI) == HINDI
        assert detect_language("How much am I saving?") == "en-IN"

    def test_translate_hindi(self):
        """Test known phrases are replaced."""
        translated = translate_response("Based on your data, your income is fine.", HINDI)
        assert translated.startswith("आपके डेटा के आधार पर")
        assert "आय" in translated

    def test_translate_unknown_language(self):
        """Test unknown languages pass through."""
        assert translate_response("Your income", "fr-FR") == "Your income"


class TestProfile:
    """Tests for memory profile helpers."""

    def test_update_preferences(self):
        """Test a preference update returns a new profile."""
        profile = MemoryProfile()
        updated = update_preferences(profile, language_preference=HINDI)
        assert updated.language_preference == HINDI
        assert profile.language_preference == "en-IN"

    def test_unknown_preference(self):
        """Test unknown fields are rejected."""
        with pytest.raises(ValueError, match="Unknown memory preference: active_alerts"):
            update_preferences(MemoryProfile(), active_alerts=())

    def test_with_alerts_replaces_slot(self):
        """Test alerts are replaced, not merged."""
        first = Alert(
            type=AlertType.LOW_SAVINGS,
            severity=AlertSeverity.MEDIUM,
            message="low",
            suggestion="save",
        )
        second = Alert(
            type=AlertType.OVERSPENDING,
            severity=AlertSeverity.HIGH,
            message="over",
            suggestion="cut",
        )
        profile = with_alerts(MemoryProfile(), [first], AS_OF)
        profile = with_alerts(profile, [second], AS_OF)
        assert profile.active_alerts == (second,)
        assert profile.last_alert_check == AS_OF

    def test_preferences_for_context(self):
        """Test the provider-facing preference keys."""
        prefs = preferences_for_context(MemoryProfile(savings_goal=50000))
        assert prefs == {
            "languagePreference": "en-IN",
            "responseStyle": "friendly",
            "savingsGoal": 50000,
            "riskTolerance": "moderate",
        }


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
