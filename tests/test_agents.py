"""
Tests for the provider context and external text providers.

HTTP calls go through httpx.MockTransport; Gemini is replaced by a fake
model object, so nothing leaves the process.
"""

import asyncio
import json

import httpx
import pytest

from finance_engine.agents import (
    GeminiTextProvider,
    HttpTextProvider,
    TextProviderRequest,
    build_ai_context,
    context_health_score,
    is_complex_question,
    merge_with_data,
)
from finance_engine.config.settings import TextProviderSettings
from finance_engine.memory import HINDI, with_alerts
from finance_engine.models.finance import (
    Alert,
    AlertSeverity,
    AlertType,
    Interaction,
    MemoryProfile,
)

from conftest import AS_OF


LONG_ANSWER = "Your savings look strong this month. Keep your food budget where it is and review rent."


class TestBuildAIContext:
    """Tests for build_ai_context."""

    def test_aggregates_only(self, healthy):
        """Test totals and ratios are carried, line items are not."""
        context = build_ai_context(healthy)
        assert context.income == 100000
        assert context.savings_rate == 40.0
        assert context.expense_ratio == 60.0
        assert context.health_score == 90
        assert context.health_status == healthy.health.value
        assert context.month == "March 2025"
        assert len(context.top_categories) == 5
        assert context.top_categories[0].name == "Rent"

        wire = context.model_dump(mode="json", by_alias=True)
        assert "savingsRate" in wire
        assert "topCategories" in wire
        assert "Salary" not in json.dumps(wire)

    def test_flags(self, overspending):
        """Test risk flags."""
        flags = build_ai_context(overspending).flags
        assert flags.overspending
        assert flags.low_savings
        assert flags.high_expense_ratio
        assert not flags.increasing_trend

    def test_memory_and_language(self, healthy):
        """Test preferences and alerts come from the memory profile."""
        alert = Alert(
            type=AlertType.LOW_SAVINGS,
            severity=AlertSeverity.MEDIUM,
            message="low",
            suggestion="save",
        )
        memory = with_alerts(MemoryProfile(language_preference=HINDI), [alert], AS_OF)
        context = build_ai_context(healthy, memory)
        assert context.language == HINDI
        assert context.user_memory["languagePreference"] == HINDI
        assert context.active_alerts == [
            {"type": "low_savings", "severity": "medium", "message": "low", "suggestion": "save"}
        ]

    @pytest.mark.parametrize("fixture,expected", [
        ("empty", 50),
        ("overspending", 20),
        ("tight", 30),
        ("healthy", 90),
    ])
    def test_health_score(self, request, fixture, expected):
        """Test the coarse context score."""
        assert context_health_score(request.getfixturevalue(fixture)) == expected


class TestComplexQuestions:
    """Tests for is_complex_question."""

    @pytest.mark.parametrize("question", [
        "Explain my spending",
        "What if rent goes up?",
        "Give me my monthly report",
        "Compare this month with last month",
    ])
    def test_complex(self, question):
        """Test analysis phrasing is complex."""
        assert is_complex_question(question)

    @pytest.mark.parametrize("question", [
        "How much am I saving?",
        "Am I overspending?",
        "Can I afford ₹5,000?",
    ])
    def test_simple(self, question):
        """Test direct questions are simple."""
        assert not is_complex_question(question)

    def test_long_multi_clause(self):
        """Test a long question with several "and" clauses."""
        question = "Show my rent and my food costs and my travel costs for this month please"
        assert is_complex_question(question)

    def test_custom_patterns(self):
        """Test patterns come from settings."""
        settings = TextProviderSettings(complex_patterns="budget")
        assert is_complex_question("My budget?", settings)
        assert not is_complex_question("Explain it", settings)


class TestMergeWithData:
    """Tests for merge_with_data."""

    def test_appends_numbers(self, healthy):
        """Test a grounding line is added when no amounts are quoted."""
        merged = merge_with_data("You are doing well.", healthy)
        assert merged == (
            "You are doing well.\n\nBased on your data: You have ₹1,00,000.00 income, "
            "₹60,000.00 expenses, and ₹40,000.00 savings (40.0% savings rate)."
        )

    def test_keeps_answers_with_amounts(self, healthy):
        """Test answers quoting rupees are left alone."""
        assert merge_with_data("You saved ₹40,000.", healthy) == "You saved ₹40,000."

    def test_no_income(self, empty):
        """Test nothing is added without income."""
        assert merge_with_data("Hello.", empty) == "Hello."


def _request(snapshot) -> TextProviderRequest:
    return TextProviderRequest(
        message="Explain my spending",
        context=build_ai_context(snapshot),
        recent_history=[Interaction(question="Hi", response="Hello")],
    )


def _provider(handler) -> HttpTextProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpTextProvider("https://provider.test/chat", client=client)


class TestHttpTextProvider:
    """Tests for HttpTextProvider."""

    @pytest.mark.asyncio
    async def test_success(self, healthy):
        """Test a valid response is accepted and the payload is camelCase."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(json.loads(request.content))
            return httpx.Response(200, json={"response": LONG_ANSWER})

        result = await _provider(handler).generate(_request(healthy))

        assert result.ok
        assert result.text == LONG_ANSWER
        assert result.provider == "http"
        assert seen["type"] == "chat"
        assert seen["recentHistory"] == [{"question": "Hi", "response": "Hello"}]
        assert seen["context"]["savingsRate"] == 40.0

    @pytest.mark.asyncio
    async def test_short_response(self, healthy):
        """Test responses at or under the minimum length are rejected."""
        def handler(request):
            return httpx.Response(200, json={"response": "Too short."})

        result = await _provider(handler).generate(_request(healthy))
        assert not result.ok
        assert result.text is None

    @pytest.mark.asyncio
    async def test_non_string_response(self, healthy):
        """Test a non-string response field is rejected."""
        def handler(request):
            return httpx.Response(200, json={"response": {"text": LONG_ANSWER}})

        assert not (await _provider(handler).generate(_request(healthy))).ok

    @pytest.mark.asyncio
    async def test_server_error(self, healthy):
        """Test HTTP errors become failures."""
        def handler(request):
            return httpx.Response(500, text="boom")

        result = await _provider(handler).generate(_request(healthy))
        assert not result.ok
        assert "Provider request failed" in result.error

    @pytest.mark.asyncio
    async def test_invalid_json(self, healthy):
        """Test a non-JSON body becomes a failure."""
        def handler(request):
            return httpx.Response(200, text="not json")

        result = await _provider(handler).generate(_request(healthy))
        assert not result.ok
        assert "invalid JSON" in result.error

    @pytest.mark.asyncio
    async def test_timeout(self, healthy):
        """Test timeouts become failures."""
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        result = await _provider(handler).generate(_request(healthy))
        assert not result.ok
        assert result.error == "Provider timed out"

    def test_from_settings_requires_endpoint(self):
        """Test a missing endpoint is a configuration error."""
        with pytest.raises(ValueError, match="TEXT_PROVIDER_ENDPOINT"):
            HttpTextProvider.from_settings(TextProviderSettings(endpoint=None))


class FakeGeminiResponse:
    def __init__(self, text):
        self.text = text


class FakeGeminiModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, text=LONG_ANSWER, error=None, delay=0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return FakeGeminiResponse(self.text)


class TestGeminiTextProvider:
    """Tests for GeminiTextProvider."""

    @pytest.mark.asyncio
    async def test_success(self, healthy):
        """Test the prompt carries the context and the answer is returned."""
        model = FakeGeminiModel()
        result = await GeminiTextProvider(model=model).generate(_request(healthy))

        assert result.ok
        assert result.text == LONG_ANSWER
        prompt = model.prompts[0]
        assert '"savingsRate": 40.0' in prompt
        assert "User: Hi\nAssistant: Hello" in prompt
        assert 'Question: "Explain my spending"' in prompt

    @pytest.mark.asyncio
    async def test_error(self, healthy):
        """Test model errors become failures."""
        model = FakeGeminiModel(error=RuntimeError("quota"))
        result = await GeminiTextProvider(model=model).generate(_request(healthy))
        assert not result.ok
        assert "quota" in result.error

    @pytest.mark.asyncio
    async def test_timeout(self, healthy):
        """Test slow responses time out."""
        model = FakeGeminiModel(delay=1.0)
        provider = GeminiTextProvider(model=model, timeout_seconds=0.01)
        result = await provider.generate(_request(healthy))
        assert not result.ok
        assert result.error == "Provider timed out"

    @pytest.mark.asyncio
    async def test_short_answer(self, healthy):
        """Test short answers are rejected."""
        model = FakeGeminiModel(text="ok")
        assert not (await GeminiTextProvider(model=model).generate(_request(healthy))).ok


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
