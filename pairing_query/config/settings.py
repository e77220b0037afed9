"""Environment configuration and validation.

This module defines strongly-typed application settings loaded from environment variables
(optionally via a local `.env` file).

Token limits, the conversation window and the ranking normalization bounds live here so they can
be tuned per bid package population without code changes.
"""

from __future__ import annotations

from pydantic import Field, PositiveInt, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = Field(alias="DATABASE_URL")
    db_pool_max_size: PositiveInt = Field(default=10, alias="DB_POOL_MAX_SIZE")
    db_statement_timeout_ms: int = Field(default=10_000, ge=0, alias="DB_STATEMENT_TIMEOUT_MS")

    llm_enabled: bool = Field(default=False, alias="LLM_ENABLED")
    llm_api_key: str | None = Field(default=None, alias="LLM_API_KEY")
    llm_model: str = Field(default="gpt-4.1", alias="LLM_MODEL")
    llm_api_base: str = Field(default="https://api.openai.com/v1", alias="LLM_API_BASE")
    llm_timeout_s: float = Field(default=30.0, gt=0, alias="LLM_TIMEOUT_S")

    # Low temperature keeps intent JSON stable; responses can be more conversational.
    intent_temperature: float = Field(default=0.3, ge=0, le=2, alias="INTENT_TEMPERATURE")
    intent_max_tokens: PositiveInt = Field(default=300, alias="INTENT_MAX_TOKENS")
    response_temperature: float = Field(default=0.7, ge=0, le=2, alias="RESPONSE_TEMPERATURE")
    response_max_tokens: PositiveInt = Field(default=1500, alias="RESPONSE_MAX_TOKENS")

    history_window: PositiveInt = Field(default=4, alias="HISTORY_WINDOW")
    max_records_in_context: PositiveInt = Field(default=100, alias="MAX_RECORDS_IN_CONTEXT")
    rules_prepass_enabled: bool = Field(default=True, alias="RULES_PREPASS_ENABLED")

    credit_ceiling: float = Field(default=30.0, gt=0, alias="CREDIT_CEILING")
    efficiency_floor: float = Field(default=1.0, ge=0, alias="EFFICIENCY_FLOOR")
    efficiency_ceiling: float = Field(default=1.5, gt=0, alias="EFFICIENCY_CEILING")

    @model_validator(mode="after")
    def validate_llm_config(self) -> Settings:
        """If LLM calls are enabled, an API key must be provided."""

        if self.llm_enabled and not self.llm_api_key:
            raise ValueError("LLM_API_KEY is required when LLM_ENABLED=true")
        return self

    @model_validator(mode="after")
    def validate_efficiency_band(self) -> Settings:
        """The efficiency normalization band must be non-empty."""

        if self.efficiency_ceiling <= self.efficiency_floor:
            raise ValueError("EFFICIENCY_CEILING must be greater than EFFICIENCY_FLOOR")
        return self


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        RuntimeError: If the environment configuration is missing or invalid.
    """

    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc
