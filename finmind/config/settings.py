"""
Configuration Management for FinMind

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for the optional advice generator."""

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
        default=300,
        ge=50,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class DatabaseSettings(BaseSettings):
    """
    Relational storage configuration.

    When no URL is configured the application runs on the in-memory store.
    """

    model_config = SettingsConfigDict(
        env_prefix="FINMIND_DB_",
        extra="ignore"
    )

    url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy database URL (e.g. postgresql+psycopg2://...)"
    )
    enabled: bool = Field(
        default=True,
        description="Set to false to force the in-memory store even if a URL is set"
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging only)"
    )

    @property
    def use_db(self) -> bool:
        return bool(self.url) and self.enabled


class AuthSettings(BaseSettings):
    """Session token configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINMIND_AUTH_",
        extra="ignore"
    )

    session_ttl_days: int = Field(
        default=7,
        ge=1,
        le=90,
        description="How long a bearer token stays valid"
    )
    allow_dev_header: bool = Field(
        default=False,
        description="Accept an x-user-id header instead of a bearer token (local development only)"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="FINMIND_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    # Insights
    default_period: str = Field(
        default="last_90d",
        description="Period token used when a request does not name one"
    )
    transaction_fetch_limit: int = Field(
        default=500,
        ge=1,
        le=5000,
        description="How many recent transactions feed one insights computation"
    )
    advice_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=120,
        description="Upper bound on the optional advice generator call"
    )

    # Entitlements
    trial_days: int = Field(
        default=7,
        ge=1,
        le=90,
        description="Length of the signup trial window"
    )

    # Demo
    seed_demo_data: bool = Field(
        default=True,
        description="Seed the demo account when running on the in-memory store"
    )

    @field_validator("default_period")
    @classmethod
    def strip_period(cls, v: str) -> str:
        return v.strip() or "last_90d"

    @property
    def cors_origins_list(self) -> list[str]:
        """Get allowed origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

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

    sections = {
        "gemini": lambda: settings.gemini,
        "database": lambda: settings.database,
        "auth": lambda: settings.auth,
        "app": lambda: settings.app,
    }

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
