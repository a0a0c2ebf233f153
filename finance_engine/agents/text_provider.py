"""
External Text Providers

Optional providers that can phrase an answer more fluently than the
local generators. The engine NEVER depends on them: every failure
(timeout, HTTP error, malformed or too-short body) comes back as a
failed ProviderResult and the local answer is used instead.

DESIGN DECISION: Providers receive the aggregated AIContext only.
The LLM is a PHRASER, not an ORACLE. It gets the numbers we computed
and is told not to invent others.

Implementations:
1. HttpTextProvider: POSTs to a configured endpoint with httpx
2. GeminiTextProvider: prompts Gemini through google-generativeai
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

import google.generativeai as genai
import httpx
import structlog
from pydantic import BaseModel, Field

from finance_engine.config.settings import GeminiSettings, TextProviderSettings
from finance_engine.models.finance import AIContext, Interaction


logger = structlog.get_logger(__name__)


class TextProviderRequest(BaseModel):
    message: str
    context: AIContext
    type: str = "chat"
    recent_history: list[Interaction] = Field(default_factory=list)

    def history_payload(self) -> list[dict[str, str]]:
        return [
            {"question": item.question, "response": item.response}
            for item in self.recent_history
        ]


class ProviderResult(BaseModel):
    """Provider outcome. `text` is set only when `ok` is True."""

    ok: bool
    text: Optional[str] = None
    error: Optional[str] = None
    provider: str = ""

    @classmethod
    def success(cls, text: str, provider: str) -> 'ProviderResult':
        return cls(ok=True, text=text, provider=provider)

    @classmethod
    def failure(cls, error: str, provider: str) -> 'ProviderResult':
        return cls(ok=False, error=error, provider=provider)


class TextProvider(ABC):
    """
    Abstract text provider.

    generate() MUST NOT raise. Implementations convert every error into
    ProviderResult.failure.
    """

    name = "provider"

    @abstractmethod
    async def generate(self, request: TextProviderRequest) -> ProviderResult:
        pass

    async def close(self) -> None:
        """Release any held resources."""


def _validate_text(text: Any, min_length: int) -> Optional[str]:
    """Return the usable text, or None when it is missing, not a string, or too short."""
    if not isinstance(text, str):
        return None
    text = text.strip()
    if not text or len(text) <= min_length:
        return None
    return text


# =============================================================================
# HTTP PROVIDER
# =============================================================================

class HttpTextProvider(TextProvider):
    """
    Text provider behind a plain HTTP endpoint.

    Request body:
        {"message": ..., "context": <AIContext camelCase>, "type": ...,
         "recentHistory": [{"question": ..., "response": ...}]}

    Only a JSON body with a string "response" longer than the configured
    minimum is accepted.
    """

    name = "http"

    def __init__(
        self,
        endpoint: str,
        timeout_seconds: float = 10.0,
        min_response_length: int = 50,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._endpoint = endpoint
        self._timeout = timeout_seconds
        self._min_length = min_response_length
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings: TextProviderSettings) -> 'HttpTextProvider':
        if not settings.endpoint:
            raise ValueError("TEXT_PROVIDER_ENDPOINT is not configured")
        return cls(
            endpoint=settings.endpoint,
            timeout_seconds=settings.timeout_seconds,
            min_response_length=settings.min_response_length,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def generate(self, request: TextProviderRequest) -> ProviderResult:
        payload = {
            "message": request.message,
            "context": request.context.model_dump(mode="json", by_alias=True),
            "type": request.type,
            "recentHistory": request.history_payload(),
        }
        try:
            response = await self._get_client().post(
                self._endpoint,
                json=payload,
                timeout=self._timeout,
            )
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException:
            return ProviderResult.failure("Provider timed out", self.name)
        except httpx.HTTPError as e:
            return ProviderResult.failure(f"Provider request failed: {e}", self.name)
        except ValueError as e:
            return ProviderResult.failure(f"Provider returned invalid JSON: {e}", self.name)

        if not isinstance(body, dict):
            return ProviderResult.failure("Provider response is not an object", self.name)
        text = _validate_text(body.get("response"), self._min_length)
        if text is None:
            return ProviderResult.failure("Provider response missing or too short", self.name)
        return ProviderResult.success(text, self.name)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


# =============================================================================
# GEMINI PROVIDER
# =============================================================================

class GeminiTextProvider(TextProvider):
    """
    Text provider backed by Gemini.

    BOUNDARIES:
    - Sees the aggregated context and the last few Q&A pairs ONLY
    - NEVER asked to compute numbers; they are given
    - NEVER gives investment advice (the safety filter still runs after)
    """

    name = "gemini"

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        timeout_seconds: float = 10.0,
        min_response_length: int = 50,
        model: Any = None,
    ):
        self._timeout = timeout_seconds
        self._min_length = min_response_length
        if model is not None:
            self._model = model
        else:
            self._settings = settings or GeminiSettings()
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @staticmethod
    def build_prompt(request: TextProviderRequest) -> str:
        history = "\n".join(
            f"User: {item['question']}\nAssistant: {item['response']}"
            for item in request.history_payload()
        ) or "None"
        context_json = request.context.model_dump_json(by_alias=True, indent=2)

        return f"""You are a friendly personal finance assistant for an Indian household.

Answer the user's question using ONLY the financial summary below.

Financial summary (amounts in INR):
{context_json}

Recent conversation:
{history}

Question: "{request.message}"

Guidelines:
- Use simple language and format amounts in Indian Rupees (₹)
- Quote the numbers from the summary; do NOT invent any others
- Suggest, never command ("you may want to", not "you must")
- Do NOT recommend specific investments, stocks or crypto
- Reply in the language {request.context.language}
- Keep it concise"""

    async def generate(self, request: TextProviderRequest) -> ProviderResult:
        prompt = self.build_prompt(request)
        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async(prompt),
                timeout=self._timeout,
            )
            raw = response.text
        except asyncio.TimeoutError:
            return ProviderResult.failure("Provider timed out", self.name)
        except Exception as e:
            logger.warning("gemini_generation_failed", error=str(e))
            return ProviderResult.failure(f"Gemini request failed: {e}", self.name)

        text = _validate_text(raw, self._min_length)
        if text is None:
            return ProviderResult.failure("Provider response missing or too short", self.name)
        return ProviderResult.success(text, self.name)
