"""
Application configuration using pydantic-settings.

Loads configuration from environment variables with sensible defaults.
External collaborators (assisted extraction, remote verifier, Plaid) are
switched on by the presence of their credentials.
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Database (SQLite for local dev, PostgreSQL for production)
    database_url: str = "sqlite:///./ledgerflow.db"

    # Logging
    log_level: str = "INFO"
    json_logs: bool = True

    # Ledger
    base_currency: str = Field(default="USD", validation_alias="APP_BASE_CURRENCY")
    allow_structured_passthrough: bool = True

    # Assisted extraction (OpenRouter, OpenAI-compatible)
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    assist_model: str = "openai/gpt-4o-mini"
    assist_timeout_seconds: float = 25.0
    assist_max_chars: int = 20_000

    # Remote ingestion verifier
    verifier_api_key: str = ""
    verifier_environment: str = Field(default="sandbox", validation_alias="VERIFIER_ENV")
    verifier_base_url: Optional[str] = None
    verifier_enabled: bool = True
    verifier_timeout_seconds: float = 10.0
    verifier_fallback_checks: bool = True

    # Plaid
    plaid_client_id: Optional[str] = None
    plaid_secret: Optional[str] = None
    plaid_environment: str = "sandbox"
    aggregator_timeout_seconds: float = 30.0

    @property
    def assist_configured(self) -> bool:
        """Whether an assisted extraction capability can be built."""
        return bool(self.openrouter_api_key)

    @property
    def remote_verifier_configured(self) -> bool:
        """Whether the remote verifier should be called before local checks."""
        return self.verifier_enabled and bool(self.verifier_api_key)

    @property
    def plaid_configured(self) -> bool:
        """Whether live Plaid credentials are present."""
        return bool(self.plaid_client_id and self.plaid_secret)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
