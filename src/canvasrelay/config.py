"""Configuration management for canvas-relay."""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_PORT = 3055
DEFAULT_MODEL = "gpt-5-mini"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CANVAS_RELAY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Transport
    port: int = Field(default=DEFAULT_DATA_PORT, description="First data (WebSocket) port to try")
    host: str = Field(default="127.0.0.1", description="Interface the relay listens on")

    # Remote model
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("CANVAS_RELAY_OPENAI_API_KEY", "OPENAI_API_KEY"),
        description="Fallback API key for the openai provider",
    )
    api_base: str | None = Field(default=None, description="Optional API base URL for the model endpoint")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")


def load_settings(**overrides: object) -> Settings:
    """Load settings from the environment and `.env`, applying explicit overrides."""
    settings = Settings()
    updates = {key: value for key, value in overrides.items() if value is not None}
    if updates:
        settings = settings.model_copy(update=updates)
    return settings
