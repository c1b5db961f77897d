"""Application settings using Pydantic BaseSettings."""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration loaded from ``LEADLINES_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEADLINES_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    log_file: Optional[str] = Field(default=None)

    # Metadata store
    database_url: str = Field(default="sqlite+aiosqlite:///./leadlines.db")
    database_echo: bool = Field(default=False)
    # Dev convenience; production schemas come from Alembic
    auto_create_tables: bool = Field(default=True)

    # Assistant provider
    provider_base_url: str = Field(default="https://api.openai.com/v1")
    provider_api_key: SecretStr = Field(default=SecretStr(""))
    provider_timeout_seconds: float = Field(default=30.0)
    provider_beta_header: str = Field(
        default="assistants=v1",
        description="Value of the OpenAI-Beta header. Empty string disables the header.",
    )

    # Run orchestration
    run_poll_interval_seconds: float = Field(default=1.0)
    # 9 minutes
    run_timeout_seconds: float = Field(default=540.0)
    run_cancel_on_timeout: bool = Field(default=True)

    # Threads, assistants, files
    default_thread_title: str = Field(default="New Conversation")
    assistant_model: str = Field(default="gpt-4o")
    assistant_name_prefix: str = Field(default="LeadLines Assistant")
    assistant_instructions: str = Field(
        default=(
            "You are the LeadLines lead-generation assistant. Use the uploaded lead "
            "lists and onboarding answers to help the user plan outreach."
        )
    )
    file_max_bytes: int = Field(default=25 * 1024 * 1024)
    file_purpose: str = Field(default="assistants")
    cache_messages: bool = Field(default=True)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        vv = (v or "").strip().lower()
        if vv not in {"development", "test", "production"}:
            raise ValueError("LEADLINES_ENVIRONMENT must be one of: development, test, production")
        return vv

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        vv = (v or "").strip().upper()
        if vv not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return vv

    @field_validator("provider_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_cross_field_constraints(self) -> "Settings":
        if self.run_poll_interval_seconds <= 0:
            raise ValueError("LEADLINES_RUN_POLL_INTERVAL_SECONDS must be positive")
        if self.run_timeout_seconds < self.run_poll_interval_seconds:
            raise ValueError("LEADLINES_RUN_TIMEOUT_SECONDS must be >= the poll interval")
        if self.is_production and not self.provider_base_url.startswith("https://"):
            raise ValueError("In production, LEADLINES_PROVIDER_BASE_URL must be https")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        return self.environment == "test"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
