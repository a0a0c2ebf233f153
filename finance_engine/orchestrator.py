"""
Conversation Orchestrator for the Financial Reasoning Engine

This module ties together all the components and defines the
end-to-end flow of one conversation turn:

    receive → concurrency check → rate-limit check → load records →
    snapshot → language → goal refresh → context → intent →
    local generation → (optional provider call) → grounding merge →
    remember → translate → safety filter → history → respond

DESIGN DECISION: The orchestrator enforces the boundaries:
- One turn at a time per session; a second turn is REJECTED, never queued
- The external provider only ever sees the aggregated AIContext
- Every response passes the safety filter, whatever produced it
- Nothing raises out of process_message; failures become safe strings
- Every step is audited

Persistence is best-effort. A failed write is logged and audited but
never changes the answer the user gets.
"""

import asyncio
import time
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

import structlog

from finance_engine.agents import (
    GeminiTextProvider,
    HttpTextProvider,
    TextProvider,
    TextProviderRequest,
    build_ai_context,
    is_complex_question,
    merge_with_data,
)
from finance_engine.analysis.snapshot import SnapshotBuilder
from finance_engine.audit import AuditLogger, create_correlation_id
from finance_engine.config import EngineSettings, TextProviderSettings, get_settings
from finance_engine.generators import (
    GenerationOutcome,
    GeneratorRegistry,
    ResponseContext,
    SuggestionTracker,
    suggest_questions,
)
from finance_engine.goals import GoalPlanner
from finance_engine.intents.classifier import IntentClassifier, extract_conversation_context
from finance_engine.memory import (
    ENGLISH,
    AlertMonitor,
    detect_alerts,
    detect_language,
    translate_response,
    update_preferences,
    with_alerts,
)
from finance_engine.models.finance import (
    Alert,
    FinancialSnapshot,
    Interaction,
    MemoryProfile,
    utc_now,
)
from finance_engine.safety import SafetyFilter
from finance_engine.services.storage import (
    FinancialDataProvider,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinancialDataProvider,
    GoogleSheetsPersistence,
    PersistenceProvider,
)
from finance_engine.simulation import ScenarioSimulator


logger = structlog.get_logger(__name__)


# =============================================================================
# USER-FACING MESSAGES
# =============================================================================

EMPTY_MESSAGE_PROMPT = "Please ask me a question about your finances."
STILL_PROCESSING = "I'm still processing your previous message. Please wait a moment."
RATE_LIMITED = (
    "You're sending messages too quickly. Please wait a moment before asking "
    "another question."
)
DATA_UNAVAILABLE = (
    "I need access to your financial data to help you. Please make sure you're "
    "logged in and have added some financial information."
)
TURN_FAILED = (
    "I encountered an error processing your question. Please try rephrasing it "
    "or ask again in a moment."
)


# =============================================================================
# RATE LIMITING
# =============================================================================

class RateLimiter:
    """
    Fixed-start sliding window limiter.

    At most `max_messages` are accepted per window. The window starts at
    the first accepted message and is reset lazily by the first check
    after it expires.

    `clock` returns seconds; inject a fake one in tests.
    """

    def __init__(
        self,
        max_messages: int = 10,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._max = max_messages
        self._window = window_seconds
        self._clock = clock
        self._window_start: Optional[float] = None
        self._count = 0

    def allow(self) -> bool:
        """Record one message. False when it exceeds the limit."""
        now = self._clock()
        if self._window_start is None or now - self._window_start >= self._window:
            self._window_start = now
            self._count = 0

        if self._count >= self._max:
            return False
        self._count += 1
        return True

    @property
    def remaining(self) -> int:
        return max(0, self._max - self._count)


# =============================================================================
# SESSION STATE
# =============================================================================

class ConversationSession:
    """
    Per-user conversation state.

    - history: long window of Q&A pairs shown to the user
    - recent_interactions: short window used for follow-ups and context
    - memory: the MemoryProfile, replaced wholesale on every change

    CRITICAL: `memory` is only ever reassigned, never mutated. The alert
    scan runs concurrently with turns and relies on that.
    """

    def __init__(
        self,
        user_id: str,
        memory: Optional[MemoryProfile] = None,
        history_limit: int = 20,
        recent_limit: int = 5,
        suggestion_memory_seconds: float = 300.0,
    ):
        self.user_id = user_id
        self.memory = memory or MemoryProfile()
        self.history: list[Interaction] = []
        self.recent_interactions: list[Interaction] = []
        self.is_processing = False
        self.suggestions = SuggestionTracker(memory_seconds=suggestion_memory_seconds)
        self._history_limit = history_limit
        self._recent_limit = recent_limit

    def remember(self, question: str, response: str) -> None:
        """Add to the short-term window used for follow-up questions."""
        self.recent_interactions.append(Interaction(question=question, response=response))
        del self.recent_interactions[:-self._recent_limit]

    def append_history(self, question: str, response: str) -> None:
        self.history.append(Interaction(question=question, response=response))
        del self.history[:-self._history_limit]

    def clear(self) -> int:
        """Forget the conversation. Memory profile and goals are kept."""
        cleared = len(self.history)
        self.history = []
        self.recent_interactions = []
        self.suggestions.clear()
        return cleared


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class ConversationOrchestrator:
    """
    Answers financial questions for one session.

    Usage:
        orchestrator = ConversationOrchestrator(
            ConversationSession("user-1"),
            data_provider=provider,
        )
        await orchestrator.start()
        answer = await orchestrator.process_message("How much am I saving?")
        await orchestrator.stop()
    """

    def __init__(
        self,
        session: ConversationSession,
        data_provider: Optional[FinancialDataProvider] = None,
        persistence: Optional[PersistenceProvider] = None,
        text_provider: Optional[TextProvider] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EngineSettings] = None,
        provider_settings: Optional[TextProviderSettings] = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = utc_now,
    ):
        self._session = session
        self._data_provider = data_provider
        self._persistence = persistence
        self._text_provider = text_provider
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or EngineSettings()
        self._provider_settings = provider_settings or TextProviderSettings()
        self._now = now

        self._builder = SnapshotBuilder()
        self._classifier = IntentClassifier()
        self._planner = GoalPlanner(behind_threshold=self._settings.goal_behind_threshold)
        self._simulator = ScenarioSimulator(self._planner)
        self._registry = GeneratorRegistry(
            confidence_threshold=self._settings.intent_confidence_threshold,
        )
        self._safety = SafetyFilter(max_length=self._settings.max_response_length)
        self._rate_limiter = RateLimiter(
            max_messages=self._settings.rate_limit_max_messages,
            window_seconds=self._settings.rate_limit_window_seconds,
            clock=clock,
        )
        self._monitor = AlertMonitor(
            self.scan_alerts,
            initial_delay=self._settings.alert_initial_delay_seconds,
            interval=self._settings.alert_scan_interval_seconds,
        )

    @property
    def session(self) -> ConversationSession:
        return self._session

    @property
    def planner(self) -> GoalPlanner:
        return self._planner

    @property
    def alert_monitor(self) -> AlertMonitor:
        return self._monitor

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self, monitor_alerts: bool = True) -> None:
        """
        Load the memory profile and goals, then start the alert monitor.

        Read failures are logged and leave the defaults in place.
        """
        user_id = self._session.user_id
        if self._persistence is not None:
            memory = await self._persistence.load_memory(user_id)
            if memory.ok and memory.value is not None:
                self._session.memory = memory.value
            elif not memory.ok:
                logger.warning("memory_load_failed", user_id=user_id, error=memory.error)

            goals = await self._persistence.load_goals(user_id)
            if goals.ok and goals.value:
                self._planner.replace_goals(goals.value)
            elif not goals.ok:
                logger.warning("goals_load_failed", user_id=user_id, error=goals.error)

        if monitor_alerts:
            self._monitor.start()

    async def stop(self) -> None:
        await self._monitor.stop()
        if self._text_provider is not None:
            await self._text_provider.close()

    # -------------------------------------------------------------------------
    # Conversation API
    # -------------------------------------------------------------------------

    async def process_message(self, text: str) -> str:
        """
        Answer one message. NEVER raises.

        Returns a prompt for empty input, a "still processing" notice while
        another turn is running, and a throttling notice past the rate limit.
        """
        if not text or not isinstance(text, str) or not text.strip():
            return EMPTY_MESSAGE_PROMPT

        session = self._session
        correlation_id = create_correlation_id()

        if session.is_processing:
            await self._audit.log_concurrent_turn_rejected(session.user_id, correlation_id)
            return STILL_PROCESSING

        if not self._rate_limiter.allow():
            await self._audit.log_rate_limited(session.user_id, correlation_id)
            return RATE_LIMITED

        session.is_processing = True
        try:
            return await self._run_turn(text.strip(), correlation_id)
        except Exception as e:
            logger.error("turn_failed", user_id=session.user_id, error=str(e))
            await self._audit.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return TURN_FAILED
        finally:
            session.is_processing = False

    async def get_suggested_questions(
        self,
        snapshot: Optional[FinancialSnapshot] = None,
    ) -> list[str]:
        """2-4 follow-up questions that fit the user's data and were not just shown."""
        if snapshot is None:
            snapshot = await self._load_snapshot() or FinancialSnapshot(as_of=self._now())

        tracker = self._session.suggestions
        now = self._now()
        suggestions = suggest_questions(
            snapshot,
            recent=tracker.recent(now),
            limit=self._settings.max_suggestions,
        )
        tracker.record(suggestions, now)
        return suggestions

    async def clear_history(self) -> int:
        """Clear both conversation windows. Memory profile and goals survive."""
        cleared = self._session.clear()
        await self._audit.log_history_cleared(self._session.user_id, cleared)
        return cleared

    def get_history(self) -> list[Interaction]:
        return list(self._session.history)

    # -------------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------------

    async def scan_alerts(self) -> list[Alert]:
        """
        Re-run alert detection and overwrite the session's alert slot.

        The previous alerts are replaced, never merged. If the records
        cannot be loaded the slot is left as it was.
        """
        snapshot = await self._load_snapshot()
        if snapshot is None:
            return list(self._session.memory.active_alerts)

        alerts = detect_alerts(snapshot)
        self._session.memory = with_alerts(self._session.memory, alerts, self._now())
        await self._save_memory()
        await self._audit.log_alerts_scanned(
            self._session.user_id,
            [alert.type.value for alert in alerts],
        )
        return alerts

    # -------------------------------------------------------------------------
    # Turn internals
    # -------------------------------------------------------------------------

    async def _run_turn(self, question: str, correlation_id: UUID) -> str:
        session = self._session
        user_id = session.user_id
        await self._audit.log_message_received(user_id, question, correlation_id)

        snapshot = await self._load_snapshot(correlation_id)
        if snapshot is None:
            return DATA_UNAVAILABLE

        language = detect_language(question, session.memory.language_preference)
        if language != session.memory.language_preference:
            session.memory = update_preferences(session.memory, language_preference=language)
            await self._save_memory(correlation_id)
            await self._audit.log_memory_updated(user_id, ["language_preference"], correlation_id)

        await self._refresh_goals(snapshot, correlation_id)

        conversation = extract_conversation_context(
            session.recent_interactions,
            window=self._settings.context_interactions,
        )
        intent = self._classifier.classify(question, conversation)
        await self._audit.log_intent_detected(
            user_id, intent.type.value, intent.confidence, correlation_id
        )

        context = ResponseContext(
            question=question,
            snapshot=snapshot,
            conversation=conversation,
            planner=self._planner,
            simulator=self._simulator,
            alerts=session.memory.active_alerts,
            recent_questions=[item.question for item in session.recent_interactions],
        )
        response = self._registry.generate(intent, context)
        source = "local"
        await self._handle_outcome(context.outcome, correlation_id)

        if self._text_provider is not None and is_complex_question(question, self._provider_settings):
            provider_text = await self._ask_provider(question, snapshot, language, correlation_id)
            if provider_text:
                response = merge_with_data(provider_text, snapshot)
                source = self._text_provider.name

        session.remember(question, response)

        if language != ENGLISH:
            response = translate_response(response, language)
        response = self._safety.apply(response)

        session.append_history(question, response)
        await self._audit.log_response_generated(user_id, source, len(response), correlation_id)
        return response

    async def _load_snapshot(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[FinancialSnapshot]:
        """
        Snapshot for this moment.

        No data provider gives an empty snapshot. A provider that fails
        gives None, which callers treat as "data unavailable".
        """
        if self._data_provider is None:
            return self._builder.build(None, as_of=self._now())

        result = await self._data_provider.fetch_records()
        if not result.ok:
            logger.warning("records_unavailable", user_id=self._session.user_id, error=result.error)
            await self._audit.log_data_unavailable(
                self._session.user_id, result.error or "unknown error", correlation_id
            )
            return None
        return self._builder.build(result.value, as_of=self._now())

    async def _refresh_goals(self, snapshot: FinancialSnapshot, correlation_id: UUID) -> None:
        if not self._planner.goals:
            return
        before = [goal.model_dump() for goal in self._planner.goals]
        after = self._planner.refresh(snapshot)
        if before != [goal.model_dump() for goal in after]:
            await self._save_goals(correlation_id)
            await self._audit.log_goal_progress_updated(
                self._session.user_id, len(after), correlation_id
            )

    async def _handle_outcome(self, outcome: GenerationOutcome, correlation_id: UUID) -> None:
        """Persist and audit what the generators did."""
        user_id = self._session.user_id

        if outcome.created_goal is not None:
            goal = outcome.created_goal
            await self._save_goals(correlation_id)
            await self._audit.log_goal_created(
                user_id, goal.id, goal.name, goal.target_amount, correlation_id
            )
        if outcome.rejected_goal_name is not None:
            await self._audit.log_goal_rejected(
                user_id,
                outcome.rejected_goal_name,
                outcome.rejection_reason or "",
                correlation_id,
            )
        if outcome.simulation is not None:
            result = outcome.simulation
            await self._audit.log_simulation_run(
                user_id,
                result.params.target.value,
                result.params.direction.value,
                result.savings_change,
                correlation_id,
            )

    async def _ask_provider(
        self,
        question: str,
        snapshot: FinancialSnapshot,
        language: str,
        correlation_id: UUID,
    ) -> Optional[str]:
        """Provider text, or None after logging why the local answer stands."""
        provider = self._text_provider
        q = question.lower()
        history_count = self._provider_settings.history_messages
        request = TextProviderRequest(
            message=question,
            context=build_ai_context(snapshot, self._session.memory, language),
            type="report" if "report" in q or "summary" in q else "chat",
            recent_history=self._session.recent_interactions[-history_count:] if history_count else [],
        )

        try:
            result = await asyncio.wait_for(
                provider.generate(request),
                timeout=self._provider_settings.timeout_seconds,
            )
        except asyncio.TimeoutError:
            reason = "Provider timed out"
        except Exception as e:
            reason = f"Provider raised {type(e).__name__}: {e}"
        else:
            if result.ok:
                await self._audit.log_text_provider_used(provider.name, correlation_id)
                return result.text
            reason = result.error or "Provider returned no text"

        logger.info("text_provider_fallback", provider=provider.name, reason=reason)
        await self._audit.log_text_provider_fallback(provider.name, reason, correlation_id)
        return None

    async def _save_memory(self, correlation_id: Optional[UUID] = None) -> None:
        if self._persistence is None:
            return
        result = await self._persistence.save_memory(self._session.user_id, self._session.memory)
        if not result.ok:
            await self._persistence_failed("memory", result.error, correlation_id)

    async def _save_goals(self, correlation_id: Optional[UUID] = None) -> None:
        if self._persistence is None:
            return
        result = await self._persistence.save_goals(self._session.user_id, self._planner.goals)
        if not result.ok:
            await self._persistence_failed("goals", result.error, correlation_id)

    async def _persistence_failed(
        self,
        what: str,
        error: Optional[str],
        correlation_id: Optional[UUID],
    ) -> None:
        logger.warning("persistence_failed", what=what, error=error)
        await self._audit.log_persistence_failed(
            self._session.user_id, what, error or "unknown error", correlation_id
        )


# =============================================================================
# FACTORY
# =============================================================================

def _create_text_provider() -> Optional[TextProvider]:
    settings = get_settings()
    backend = settings.app.text_provider_backend
    if backend == "none":
        return None

    provider_settings = settings.text_provider
    try:
        if backend == "http":
            return HttpTextProvider.from_settings(provider_settings)
        return GeminiTextProvider(
            settings.gemini,
            timeout_seconds=provider_settings.timeout_seconds,
            min_response_length=provider_settings.min_response_length,
        )
    except Exception as e:
        # Provider not configured - answer locally
        logger.warning("text_provider_unavailable", backend=backend, error=str(e))
        return None


def create_app_components(
    user_id: str,
    use_storage: bool = True,
) -> tuple[ConversationOrchestrator, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        user_id: The user the session belongs to.
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for testing without storage.

    Returns:
        (orchestrator, sheets_client)
    """
    sheets_client = None
    data_provider = None
    persistence = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            data_provider = GoogleSheetsFinancialDataProvider(user_id, sheets_client)
            persistence = GoogleSheetsPersistence(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            data_provider = None
            persistence = None
            audit_logger = AuditLogger()  # Local-only logging
    else:
        audit_logger = AuditLogger()  # Local-only logging

    settings = get_settings()
    engine_settings = settings.engine
    session = ConversationSession(
        user_id,
        history_limit=engine_settings.history_limit,
        recent_limit=engine_settings.recent_interaction_limit,
        suggestion_memory_seconds=engine_settings.suggestion_memory_seconds,
    )
    orchestrator = ConversationOrchestrator(
        session,
        data_provider=data_provider,
        persistence=persistence,
        text_provider=_create_text_provider(),
        audit_logger=audit_logger,
        settings=engine_settings,
        provider_settings=settings.text_provider,
    )
    return orchestrator, sheets_client
