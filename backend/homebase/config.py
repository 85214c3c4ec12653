"""
Application configuration using pydantic-settings.
Loads environment variables from .env file.

Nested config groups (OrchestratorConfig, PropertyLookupConfig) are
env-overridable via the double-underscore delimiter, e.g.:
    ORCHESTRATOR__MODEL=gpt-4o-mini
    ORCHESTRATOR__HISTORY_WINDOW=10
    PROPERTY_LOOKUP__MAX_RETRIES=5
"""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OrchestratorConfig(BaseModel):
    """Turn controller configuration.

    Env-overridable via ORCHESTRATOR__KEY format, e.g.:
        ORCHESTRATOR__MODEL=gpt-4o-mini
        ORCHESTRATOR__MAX_TOOL_ROUNDS=2
        ORCHESTRATOR__TOOL_TIMEOUT_SECONDS=15
    """

    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 1000
    # Hard ceiling on model -> tools -> model round trips per turn
    max_tool_rounds: int = Field(default=2, ge=1)
    # Most recent messages replayed into the model context
    history_window: int = Field(default=15, ge=10, le=15)
    # Replies shorter than this are replaced by the fallback synthesizer
    min_reply_length: int = Field(default=10, ge=10)
    # Providers requested from match_providers after a service request is created
    match_limit: int = 5
    tool_timeout_seconds: float = 20.0
    turn_timeout_seconds: float = 90.0
    # Offer tools with tool_choice="none" on a session's first turn so the
    # assistant asks clarifying questions before acting
    clarify_first_turn: bool = False


class PropertyLookupConfig(BaseModel):
    """lookup-home edge function configuration."""

    function_name: str = "lookup-home"
    request_timeout_seconds: float = 20.0
    max_retries: int = 3
    retry_base_delay_seconds: float = 1.0


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # API Keys
    openai_api_key: str
    # OpenAI-compatible gateway; empty means api.openai.com
    openai_base_url: str = ""

    # Supabase
    supabase_url: str = ""
    supabase_secret_key: str = ""

    # LangSmith / Observability
    langsmith_api_key: str = ""
    langsmith_project: str = "homebase-ai"
    langchain_tracing_v2: bool = False  # Explicit opt-in

    # App Settings
    debug: bool = False
    # Chat message text is redacted from logs unless explicitly enabled
    log_message_content: bool = False
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Nested config groups (env-overridable via SECTION__KEY format)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    property_lookup: PropertyLookupConfig = Field(default_factory=PropertyLookupConfig)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
