"""
Configuration Management for the Financial Reasoning Engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every heuristic threshold the engine relies on (rate limits, history
windows, confidence threshold, "behind" ratio, complexity patterns)
lives in one place so it can be tuned without touching business logic.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Conversation engine tuning knobs."""

    model_config = SettingsConfigDict(
        env_prefix="ENGINE_",
        extra="ignore"
    )

    # Rate limiting
    rate_limit_max_messages: int = Field(
        default=10,
        ge=1,
        description="Maximum user messages accepted per window"
    )
    rate_limit_window_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Length of the rate-limit window in seconds"
    )

    # Conversation memory
    history_limit: int = Field(
        default=20,
        ge=1,
        description="Maximum interactions kept in the display history"
    )
    recent_interaction_limit: int = Field(
        default=5,
        ge=1,
        description="Maximum interactions kept for short-term context"
    )
    context_interactions: int = Field(
        default=3,
        ge=1,
        description="How many recent interactions feed the conversation context"
    )

    # Reasoning thresholds
    intent_confidence_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum confidence before an intent-specific generator is used"
    )
    goal_behind_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="A goal is behind when saved < expected * this ratio"
    )
    max_response_length: int = Field(
        default=2000,
        ge=100,
        description="Responses longer than this are truncated"
    )

    # Alert monitor
    alert_scan_interval_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Seconds between background alert scans"
    )
    alert_initial_delay_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Delay before the first alert scan"
    )

    # Suggested questions
    suggestion_memory_seconds: float = Field(
        default=300.0,
        ge=0,
        description="Suggestions shown within this window are not repeated"
    )
    max_suggestions: int = Field(
        default=4,
        ge=2,
        le=10,
        description="Maximum suggested questions returned"
    )

    default_language: str = Field(
        default="en-IN",
        description="Language used when nothing else is known"
    )


class TextProviderSettings(BaseSettings):
    """External text provider (optional) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TEXT_PROVIDER_",
        extra="ignore"
    )

    endpoint: Optional[str] = Field(
        default=None,
        description="HTTP endpoint of the text provider. Disabled when unset."
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Timeout for a single provider call"
    )
    min_response_length: int = Field(
        default=50,
        ge=0,
        description="Provider responses must be longer than this to be used"
    )
    history_messages: int = Field(
        default=6,
        ge=0,
        description="Recent messages forwarded to the provider"
    )
    complex_min_length: int = Field(
        default=50,
        ge=0,
        description="Questions longer than this with several clauses count as complex"
    )
    complex_patterns: str = Field(
        default=(
            "explain,why,how does,what if,compare,analyze,evaluate,recommend,"
            "suggest,tell me about,help me understand,what do you think,"
            "monthly report,monthly summary,generate report,comprehensive,"
            "detailed analysis"
        ),
        description="Comma-separated phrases that mark a question as complex"
    )

    @property
    def complex_patterns_list(self) -> list[str]:
        """Get complexity patterns as a list."""
        return [p.strip().lower() for p in self.complex_patterns.split(",") if p.strip()]


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    income_sheet_name: str = Field(default="Income")
    fixed_expenses_sheet_name: str = Field(default="FixedExpenses")
    flexible_spending_sheet_name: str = Field(default="FlexibleSpending")
    history_sheet_name: str = Field(default="History")
    memory_sheet_name: str = Field(default="Memory")
    goals_sheet_name: str = Field(default="Goals")
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    text_provider_backend: str = Field(
        default="none",
        description="Which text provider to use: none, http or gemini"
    )

    @field_validator('text_provider_backend')
    @classmethod
    def validate_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"none", "http", "gemini"}:
            raise ValueError(f"Unknown text provider backend: {v}")
        return v


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: sub-settings are loaded lazily to allow partial configuration

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def text_provider(self) -> TextProviderSettings:
        return TextProviderSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("engine", "text_provider", "google_sheets", "gemini", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
