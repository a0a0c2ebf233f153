"""
End-to-end tests for the conversation orchestrator.

Everything runs against in-memory storage, a fake clock and a fixed
"now", so no network or Google Sheets access is needed.
"""

import asyncio

import pytest

from finance_engine.agents import ProviderResult, TextProvider
from finance_engine.config import EngineSettings, TextProviderSettings
from finance_engine.config.settings import get_settings
from finance_engine.generators import CAPABILITY_SUMMARY
from finance_engine.memory import HINDI
from finance_engine.models.audit import AuditEventType
from finance_engine.models.finance import MemoryProfile
from finance_engine.orchestrator import (
    DATA_UNAVAILABLE,
    EMPTY_MESSAGE_PROMPT,
    RATE_LIMITED,
    STILL_PROCESSING,
    TURN_FAILED,
    ConversationOrchestrator,
    ConversationSession,
    RateLimiter,
    create_app_components,
)
from finance_engine.audit import AuditLogger
from finance_engine.services.storage import (
    InMemoryAuditStorage,
    InMemoryFinancialDataProvider,
    InMemoryPersistence,
)

from conftest import AS_OF


USER = "user-1"
SAVINGS_ANSWER = (
    "Savings advice:\n\nYou're saving ₹40,000.00 per month (40.0% of income). "
    "This is excellent! Keep up the good work."
)
PROVIDER_ANSWER = (
    "Your savings look strong this month. Keep your food budget where it is and review rent."
)


class FakeProvider(TextProvider):
    """Records requests and answers with a fixed result."""

    name = "fake"

    def __init__(self, result=None, error=None, delay=0.0):
        self.result = result or ProviderResult.success(PROVIDER_ANSWER, "fake")
        self.error = error
        self.delay = delay
        self.requests = []
        self.closed = False

    async def generate(self, request):
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result

    async def close(self):
        self.closed = True


class SlowDataProvider(InMemoryFinancialDataProvider):
    """Data provider whose reads take a little while."""

    async def get_total_income(self) -> float:
        await asyncio.sleep(0.05)
        return await super().get_total_income()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def persistence():
    return InMemoryPersistence()


@pytest.fixture
def make_orchestrator(audit_storage, persistence, clock):
    def make(
        records=None,
        data_provider=None,
        text_provider=None,
        session=None,
        settings=None,
        provider_settings=None,
        persistence_override=None,
    ):
        if data_provider is None and records is not None:
            data_provider = InMemoryFinancialDataProvider(records)
        return ConversationOrchestrator(
            session or ConversationSession(USER),
            data_provider=data_provider,
            persistence=persistence_override or persistence,
            text_provider=text_provider,
            audit_logger=AuditLogger(audit_storage),
            settings=settings,
            provider_settings=provider_settings,
            clock=clock,
            now=lambda: AS_OF,
        )
    return make


def event_types(audit_storage):
    return [event.event_type for event in audit_storage.events]


class TestRateLimiter:
    """Tests for RateLimiter."""

    def test_window(self, clock):
        """Test the limit and the lazy window reset."""
        limiter = RateLimiter(max_messages=2, window_seconds=60, clock=clock)
        assert limiter.allow()
        assert limiter.allow()
        assert not limiter.allow()
        assert limiter.remaining == 0

        clock.advance(60)
        assert limiter.allow()
        assert limiter.remaining == 1


class TestConversationSession:
    """Tests for ConversationSession windows."""

    def test_bounded_windows(self):
        """Test both windows keep only the newest interactions."""
        session = ConversationSession(USER, history_limit=3, recent_limit=2)
        for i in range(5):
            session.remember(f"q{i}", f"r{i}")
            session.append_history(f"q{i}", f"r{i}")

        assert [i.question for i in session.history] == ["q2", "q3", "q4"]
        assert [i.question for i in session.recent_interactions] == ["q3", "q4"]

    def test_clear_keeps_memory(self):
        """Test clearing forgets the conversation but not the profile."""
        session = ConversationSession(USER, memory=MemoryProfile(language_preference=HINDI))
        session.append_history("q", "r")
        session.remember("q", "r")

        assert session.clear() == 1
        assert session.history == []
        assert session.recent_interactions == []
        assert session.memory.language_preference == HINDI


class TestProcessMessage:
    """Tests for the main conversation turn."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", None])
    async def test_empty_message(self, make_orchestrator, audit_storage, healthy_records, text):
        """Test empty input is answered without running a turn."""
        orchestrator = make_orchestrator(healthy_records)
        assert await orchestrator.process_message(text) == EMPTY_MESSAGE_PROMPT
        assert audit_storage.events == []

    @pytest.mark.asyncio
    async def test_answers_from_data(self, make_orchestrator, audit_storage, healthy_records):
        """Test a simple question is answered and recorded."""
        orchestrator = make_orchestrator(healthy_records)
        response = await orchestrator.process_message("How much am I saving?")

        assert response == SAVINGS_ANSWER
        history = orchestrator.get_history()
        assert len(history) == 1
        assert history[0].question == "How much am I saving?"
        assert history[0].response == SAVINGS_ANSWER
        assert event_types(audit_storage) == [
            AuditEventType.MESSAGE_RECEIVED,
            AuditEventType.INTENT_DETECTED,
            AuditEventType.RESPONSE_GENERATED,
        ]
        assert audit_storage.events[-1].details["source"] == "local"
        assert len({event.correlation_id for event in audit_storage.events}) == 1

    @pytest.mark.asyncio
    async def test_without_data_provider(self, make_orchestrator):
        """Test the engine answers from an empty snapshot."""
        orchestrator = make_orchestrator()
        response = await orchestrator.process_message("How much am I saving?")
        assert response == "Add your income and expenses to get personalized savings advice."

    @pytest.mark.asyncio
    async def test_data_unavailable(self, make_orchestrator, audit_storage):
        """Test a failing data provider gives a safe answer."""
        provider = InMemoryFinancialDataProvider(fail_with="Sheets quota exceeded")
        orchestrator = make_orchestrator(data_provider=provider)

        assert await orchestrator.process_message("How much am I saving?") == DATA_UNAVAILABLE
        assert AuditEventType.DATA_UNAVAILABLE in event_types(audit_storage)
        assert orchestrator.get_history() == []

    @pytest.mark.asyncio
    async def test_rate_limit(self, make_orchestrator, audit_storage, healthy_records, clock):
        """Test the eleventh message in a minute is rejected."""
        orchestrator = make_orchestrator(healthy_records)
        for _ in range(10):
            assert await orchestrator.process_message("help") != RATE_LIMITED

        assert await orchestrator.process_message("help") == RATE_LIMITED
        assert AuditEventType.RATE_LIMITED in event_types(audit_storage)

        clock.advance(61)
        assert await orchestrator.process_message("help") != RATE_LIMITED

    @pytest.mark.asyncio
    async def test_concurrent_turn_rejected(self, make_orchestrator, audit_storage, healthy_records):
        """Test a second message during a turn is rejected, not queued."""
        orchestrator = make_orchestrator(data_provider=SlowDataProvider(healthy_records))

        first, second = await asyncio.gather(
            orchestrator.process_message("How much am I saving?"),
            orchestrator.process_message("help"),
        )

        assert first == SAVINGS_ANSWER
        assert second == STILL_PROCESSING
        assert len(orchestrator.get_history()) == 1
        assert AuditEventType.CONCURRENT_TURN_REJECTED in event_types(audit_storage)
        assert not orchestrator.session.is_processing

    @pytest.mark.asyncio
    async def test_turn_failure(self, make_orchestrator, audit_storage, healthy_records, monkeypatch):
        """Test an unexpected error becomes a safe answer."""
        orchestrator = make_orchestrator(healthy_records)

        def boom(*args, **kwargs):
            raise RuntimeError("classifier exploded")

        monkeypatch.setattr(orchestrator._classifier, "classify", boom)

        assert await orchestrator.process_message("How much am I saving?") == TURN_FAILED
        assert AuditEventType.SYSTEM_ERROR in event_types(audit_storage)
        assert not orchestrator.session.is_processing

    @pytest.mark.asyncio
    async def test_history_is_bounded(self, make_orchestrator, healthy_records):
        """Test only the newest interactions are kept."""
        session = ConversationSession(USER, history_limit=3)
        orchestrator = make_orchestrator(healthy_records, session=session)
        for i in range(5):
            await orchestrator.process_message(f"help {i}")

        history = orchestrator.get_history()
        assert [item.question for item in history] == ["help 2", "help 3", "help 4"]

    @pytest.mark.asyncio
    async def test_clear_history(self, make_orchestrator, audit_storage, healthy_records):
        """Test clearing keeps goals and the memory profile."""
        orchestrator = make_orchestrator(healthy_records)
        await orchestrator.process_message("Create a goal to save ₹50,000 in 5 months")
        await orchestrator.process_message("मेरी बचत कितनी है?")

        assert await orchestrator.clear_history() == 2
        assert orchestrator.get_history() == []
        assert len(orchestrator.planner.goals) == 1
        assert orchestrator.session.memory.language_preference == HINDI
        assert AuditEventType.HISTORY_CLEARED in event_types(audit_storage)


class TestGoalsAndSimulation:
    """Tests for goal persistence and simulation auditing."""

    @pytest.mark.asyncio
    async def test_goal_created_and_persisted(
        self, make_orchestrator, audit_storage, persistence, healthy_records
    ):
        """Test a created goal is saved and audited."""
        orchestrator = make_orchestrator(healthy_records)
        response = await orchestrator.process_message("Create a goal to save ₹50,000 in 5 months")

        assert response.startswith('✅ Goal created: "Savings Goal"')
        stored = await persistence.load_goals(USER)
        assert [goal.name for goal in stored.value] == ["Savings Goal"]
        assert AuditEventType.GOAL_CREATED in event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_duplicate_goal_rejected(self, make_orchestrator, audit_storage, healthy_records):
        """Test asking twice does not create a second goal."""
        orchestrator = make_orchestrator(healthy_records)
        await orchestrator.process_message("Create a goal to save ₹50,000 in 5 months")
        response = await orchestrator.process_message("Create a goal to save ₹50,000 in 5 months")

        assert "already exists" in response
        assert len(orchestrator.planner.goals) == 1
        assert AuditEventType.GOAL_REJECTED in event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_persistence_failure_does_not_change_answer(
        self, make_orchestrator, audit_storage, healthy_records
    ):
        """Test a failed write is audited and the answer stands."""
        orchestrator = make_orchestrator(
            healthy_records,
            persistence_override=InMemoryPersistence(fail_writes=True),
        )
        response = await orchestrator.process_message("Create a goal to save ₹50,000 in 5 months")

        assert response.startswith('✅ Goal created: "Savings Goal"')
        assert AuditEventType.PERSISTENCE_FAILED in event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_simulation_audited(self, make_orchestrator, audit_storage, healthy_records):
        """Test a what-if question is simulated and audited."""
        orchestrator = make_orchestrator(healthy_records)
        response = await orchestrator.process_message("What if my income reduces by ₹10,000?")

        assert "Scenario: Income decreases by ₹10,000.00" in response
        simulation = [
            event for event in audit_storage.events
            if event.event_type == AuditEventType.SIMULATION_RUN
        ]
        assert simulation[0].details["savings_change"] == -10000

    @pytest.mark.asyncio
    async def test_start_loads_memory_and_goals(self, make_orchestrator, persistence, healthy_records):
        """Test stored profile and goals are loaded on start."""
        first = make_orchestrator(healthy_records)
        await first.process_message("Create a goal to save ₹50,000 in 5 months")
        await persistence.save_memory(USER, MemoryProfile(language_preference=HINDI))

        second = make_orchestrator(healthy_records)
        await second.start(monitor_alerts=False)

        assert second.session.memory.language_preference == HINDI
        assert [goal.name for goal in second.planner.goals] == ["Savings Goal"]
        await second.stop()


class TestTextProvider:
    """Tests for the optional external text provider."""

    @pytest.mark.asyncio
    async def test_provider_answer_is_grounded(self, make_orchestrator, audit_storage, healthy_records):
        """Test complex questions use the provider plus a data line."""
        provider = FakeProvider()
        orchestrator = make_orchestrator(healthy_records, text_provider=provider)

        response = await orchestrator.process_message("Explain my spending")

        assert response.startswith(PROVIDER_ANSWER)
        assert "Based on your data: You have ₹1,00,000.00 income" in response
        request = provider.requests[0]
        assert request.type == "chat"
        assert request.context.income == 100000
        assert AuditEventType.TEXT_PROVIDER_USED in event_types(audit_storage)
        assert audit_storage.events[-1].details["source"] == "fake"

    @pytest.mark.asyncio
    async def test_report_request_type(self, make_orchestrator, healthy_records):
        """Test report questions are sent as reports."""
        provider = FakeProvider()
        orchestrator = make_orchestrator(healthy_records, text_provider=provider)
        await orchestrator.process_message("Give me my monthly report")
        assert provider.requests[0].type == "report"

    @pytest.mark.asyncio
    async def test_simple_question_stays_local(self, make_orchestrator, healthy_records):
        """Test simple questions never reach the provider."""
        provider = FakeProvider()
        orchestrator = make_orchestrator(healthy_records, text_provider=provider)

        assert await orchestrator.process_message("How much am I saving?") == SAVINGS_ANSWER
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_provider_failure_falls_back(self, make_orchestrator, audit_storage, healthy_records):
        """Test a failed provider result keeps the local answer."""
        provider = FakeProvider(result=ProviderResult.failure("Provider timed out", "fake"))
        orchestrator = make_orchestrator(healthy_records, text_provider=provider)

        response = await orchestrator.process_message("Explain my spending")

        assert not response.startswith(PROVIDER_ANSWER)
        assert response.startswith("Here's a breakdown of your spending")
        fallback = [
            event for event in audit_storage.events
            if event.event_type == AuditEventType.TEXT_PROVIDER_FALLBACK
        ]
        assert fallback[0].error_message == "Provider timed out"

    @pytest.mark.asyncio
    async def test_provider_exception_falls_back(self, make_orchestrator, healthy_records):
        """Test a raising provider never breaks the turn."""
        provider = FakeProvider(error=RuntimeError("connection reset"))
        orchestrator = make_orchestrator(healthy_records, text_provider=provider)

        response = await orchestrator.process_message("Explain my spending")
        assert response.startswith("Here's a breakdown of your spending")

    @pytest.mark.asyncio
    async def test_slow_provider_times_out(self, make_orchestrator, audit_storage, healthy_records):
        """Test the provider call is bounded by the configured timeout."""
        provider = FakeProvider(delay=1.0)
        orchestrator = make_orchestrator(
            healthy_records,
            text_provider=provider,
            provider_settings=TextProviderSettings(timeout_seconds=0.01),
        )

        response = await orchestrator.process_message("Explain my spending")

        assert response.startswith("Here's a breakdown of your spending")
        assert AuditEventType.TEXT_PROVIDER_FALLBACK in event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_stop_closes_provider(self, make_orchestrator):
        """Test stopping releases the provider."""
        provider = FakeProvider()
        orchestrator = make_orchestrator(text_provider=provider)
        await orchestrator.stop()
        assert provider.closed


class TestLanguage:
    """Tests for language detection during a turn."""

    @pytest.mark.asyncio
    async def test_hindi_question(self, make_orchestrator, audit_storage, persistence, healthy_records):
        """Test a Hindi question switches and persists the preference."""
        orchestrator = make_orchestrator(healthy_records)
        response = await orchestrator.process_message("मेरी बचत कितनी है?")

        assert orchestrator.session.memory.language_preference == HINDI
        assert response.startswith("मैं मदद कर सकता हूँ")
        assert response != CAPABILITY_SUMMARY
        stored = await persistence.load_memory(USER)
        assert stored.value.language_preference == HINDI
        assert AuditEventType.MEMORY_UPDATED in event_types(audit_storage)


class TestAlerts:
    """Tests for the alert scan."""

    @pytest.mark.asyncio
    async def test_scan_overwrites_slot(
        self, make_orchestrator, audit_storage, overspending_records, healthy_records
    ):
        """Test each scan replaces the previous alerts."""
        provider = InMemoryFinancialDataProvider(overspending_records)
        orchestrator = make_orchestrator(data_provider=provider)

        alerts = await orchestrator.scan_alerts()
        assert len(alerts) == 2
        assert orchestrator.session.memory.active_alerts == tuple(alerts)
        assert orchestrator.session.memory.last_alert_check == AS_OF

        provider.records = healthy_records
        assert await orchestrator.scan_alerts() == []
        assert orchestrator.session.memory.active_alerts == ()
        assert event_types(audit_storage).count(AuditEventType.ALERTS_SCANNED) == 2

    @pytest.mark.asyncio
    async def test_failed_load_keeps_alerts(self, make_orchestrator, overspending_records):
        """Test the slot is untouched when records cannot be loaded."""
        provider = InMemoryFinancialDataProvider(overspending_records)
        orchestrator = make_orchestrator(data_provider=provider)
        alerts = await orchestrator.scan_alerts()

        provider.fail_with = "down"
        assert await orchestrator.scan_alerts() == alerts
        assert len(orchestrator.session.memory.active_alerts) == 2

    @pytest.mark.asyncio
    async def test_alerts_in_monthly_report(self, make_orchestrator, overspending_records):
        """Test active alerts are surfaced in the monthly report."""
        orchestrator = make_orchestrator(overspending_records)
        await orchestrator.scan_alerts()

        response = await orchestrator.process_message("Give me my monthly report")
        assert "⚠️ Alerts:" in response
        assert "more than you earn this month" in response

    @pytest.mark.asyncio
    async def test_monitor_runs_scan(self, make_orchestrator, overspending_records):
        """Test start() runs the background scan."""
        orchestrator = make_orchestrator(
            overspending_records,
            settings=EngineSettings(alert_initial_delay_seconds=0, alert_scan_interval_seconds=0.01),
        )
        await orchestrator.start()
        await asyncio.sleep(0.05)
        await orchestrator.stop()

        assert orchestrator.session.memory.last_alert_check == AS_OF
        assert not orchestrator.alert_monitor.is_running


class TestSuggestions:
    """Tests for suggested questions through the orchestrator."""

    @pytest.mark.asyncio
    async def test_suggestions_not_repeated(self, make_orchestrator, healthy_records):
        """Test a second call avoids what was just shown."""
        orchestrator = make_orchestrator(healthy_records)

        first = await orchestrator.get_suggested_questions()
        assert first == [
            "How much am I saving?",
            "Which category should I reduce?",
            "Can I afford ₹10,000?",
            "Give me my monthly report",
        ]

        second = await orchestrator.get_suggested_questions()
        assert second == ["How much am I saving?", "Show my spending by category"]

    @pytest.mark.asyncio
    async def test_getting_started_without_data(self, make_orchestrator):
        """Test suggestions when nothing has been added."""
        orchestrator = make_orchestrator()
        suggestions = await orchestrator.get_suggested_questions()
        assert suggestions[0] == "How do I get started?"


class TestFactory:
    """Tests for create_app_components."""

    def test_without_storage(self, monkeypatch):
        """Test the factory builds a local-only orchestrator."""
        monkeypatch.setenv("TEXT_PROVIDER_BACKEND", "none")
        get_settings.cache_clear()

        orchestrator, sheets_client = create_app_components(USER, use_storage=False)

        assert sheets_client is None
        assert orchestrator.session.user_id == USER
        get_settings.cache_clear()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
