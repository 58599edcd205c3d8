"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str | None = None

    # Cache / rate limiting
    redis_url: str | None = None

    # Public app metadata (sent as attribution headers to OpenRouter)
    app_url: str = "http://localhost:3000"
    app_title: str = "Expense Tracker AI"

    # Text generation (OpenAI-compatible API)
    openrouter_api_key: SecretStr | None = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "xiaomi/mimo-v2-flash:free"

    # Timeouts (milliseconds)
    query_timeout_ms: int = 5000
    llm_timeout_ms: int = 30000

    # Query template limits
    search_result_limit: int = 20

    # Rate limiting (requests per minute)
    ai_chat_per_min: int = 10
    ai_query_per_min: int = 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
