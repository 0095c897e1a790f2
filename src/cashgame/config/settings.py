"""Configuration settings for the cash game ledger."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Reasoning collaborator (till analyst). A missing key is a valid state:
    # analysis then fails with a configuration error instead of at startup.
    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="OPENAI_API_KEY",
        description="OpenAI API key for till analysis",
    )
    openai_base_url: str | None = Field(
        default=None,
        validation_alias="OPENAI_BASE_URL",
        description="Base URL of an OpenAI-compatible endpoint",
    )
    analyst_model: str = Field(
        default="gpt-4o", validation_alias="ANALYST_MODEL", description="Till analyst model ID"
    )
    analyst_temperature: float = Field(
        default=0.3,
        validation_alias="ANALYST_TEMPERATURE",
        description="Sampling temperature for till analysis",
    )
    analyst_max_tokens: int = Field(
        default=2048,
        validation_alias="ANALYST_MAX_TOKENS",
        description="Max tokens per analysis response",
    )

    # Session defaults
    default_currency: str = Field(
        default="USD",
        validation_alias="DEFAULT_CURRENCY",
        description="Currency code for new sessions",
    )
    default_language: str = Field(
        default="en",
        validation_alias="DEFAULT_LANGUAGE",
        description="Language code for new sessions",
    )

    # Local development only
    auth_bypass: bool = Field(
        default=False,
        validation_alias="AUTH_BYPASS",
        description="Substitute a fixed local user when no actor is given",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL", description="Logging level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT", description="Log output format"
    )

    @property
    def analyst_configured(self) -> bool:
        """True when the reasoning collaborator has credentials."""
        return self.openai_api_key is not None and bool(
            self.openai_api_key.get_secret_value()
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
