"""Application configuration powered by environment variables."""
from __future__ import annotations

from functools import lru_cache
from typing import Annotated, List

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Load variables from a local .env file if present. This keeps runtime flexible.
load_dotenv()

SUPPORTED_BACKENDS = ("mysql", "postgresql", "sqlite")


class Settings(BaseSettings):
    """Strongly typed configuration for the service."""

    app_name: str = "SNS Bounce Blacklist"
    environment: str = "development"
    api_version: str = "v1"
    database_url: str = "sqlite:///./blacklist.db"
    blacklist_backend: str | None = None
    database_ssl_required: bool = False
    db_pool_size: int = 10
    db_max_overflow: int = 0
    db_pool_timeout_seconds: int = 30
    db_statement_timeout_seconds: int = 10
    sns_timeout_seconds: int = 5
    sns_confirm_subscriptions: bool = True
    sns_verify_signatures: bool = False
    sns_allowed_topic_arns: Annotated[List[str], NoDecode] = []

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    @field_validator("database_url", mode="before")
    @classmethod
    def strip_wrapping_quotes(cls, value: str) -> str:
        """Allow quoted URLs in env files."""
        if isinstance(value, str):
            return value.strip().strip('"').strip("'")
        return value

    @field_validator("blacklist_backend", mode="before")
    @classmethod
    def validate_backend(cls, value: str | None) -> str | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        value = value.strip().lower()
        if value not in SUPPORTED_BACKENDS:
            raise ValueError(f"blacklist_backend must be one of {', '.join(SUPPORTED_BACKENDS)}")
        return value

    @field_validator("sns_allowed_topic_arns", mode="before")
    @classmethod
    def split_topic_arns(cls, value: str | List[str]) -> List[str]:
        """Allow comma separated topic ARNs in env files."""
        if isinstance(value, str):
            return [arn.strip() for arn in value.split(",") if arn.strip()]
        return value

    @field_validator("db_pool_size", "db_pool_timeout_seconds", "sns_timeout_seconds")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be positive")
        return value


@lru_cache()
def get_settings() -> Settings:
    """Return a cached Settings instance for reuse across the app."""

    return Settings()


settings = get_settings()
