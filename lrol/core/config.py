"""Application configuration using Pydantic Settings.

Configuration is loaded from ``LROL_``-prefixed environment variables.

Optionally, you may point ``ENV_FILE`` at a local env file (for development).
"""

import os
from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class AppEnvironment(str, Enum):
    """Application environment values."""

    LOCAL = "local"
    TEST = "test"
    PROD = "prod"


class Settings(BaseSettings):
    """
    Validator settings with type validation.

    Configuration is loaded from environment variables, with support
    for .env files in development.
    """

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE") or None, env_prefix="LROL_", extra="ignore"
    )

    # Application
    app_env: AppEnvironment = AppEnvironment.LOCAL
    app_name: str = "lrol"
    app_log_level: str = "WARNING"

    # Observability
    observability_structured_logs: bool = False
    metrics_enabled: bool = True

    # Rule files
    rule_file_extension: str = ".json"
    max_rule_file_bytes: int = Field(default=5 * 1024 * 1024, gt=0)

    @field_validator("app_env", mode="before")
    @classmethod
    def validate_app_env(cls, v: str | AppEnvironment) -> AppEnvironment:
        """Validate and parse app_env to AppEnvironment enum."""
        if isinstance(v, AppEnvironment):
            return v
        try:
            return AppEnvironment(v.lower())
        except ValueError:
            raise ValueError(
                f"app_env must be one of {[e.value for e in AppEnvironment]}, got '{v}'"
            )

    @field_validator("app_log_level")
    @classmethod
    def validate_app_log_level(cls, v: str) -> str:
        """Normalize the log level and reject unknown names."""
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"app_log_level must be one of {list(_LOG_LEVELS)}, got '{v}'")
        return level

    @field_validator("rule_file_extension")
    @classmethod
    def validate_rule_file_extension(cls, v: str) -> str:
        """Normalize to a lowercase extension with a leading dot."""
        extension = v.strip().lower()
        if not extension or extension == ".":
            raise ValueError("rule_file_extension must be set")
        return extension if extension.startswith(".") else f".{extension}"


settings = Settings()
