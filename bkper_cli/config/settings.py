"""
Configuration Management for the Bkper CLI

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bkper_cli.models.merge import AmountPolicy


class BkperSettings(BaseSettings):
    """Bkper REST API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BKPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    access_token: str = Field(
        ...,
        min_length=1,
        description="OAuth access token sent as a bearer token"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Optional API key sent as the 'key' query parameter"
    )
    api_url: str = Field(
        default="https://app.bkper.com/_ah/api/bkper",
        description="Base URL of the Bkper REST API"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Timeout for a single API request"
    )

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class MergeSettings(BaseSettings):
    """Transaction merge configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BKPER_MERGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    amount_policy: AmountPolicy = Field(
        default=AmountPolicy.STRICT,
        description="How differing amounts are handled: 'strict' refuses, "
                    "'audit' records the difference as a new transaction"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Logging
    log_level: str = Field(
        default="WARNING",
        description="Minimum level for log output"
    )
    log_json: bool = Field(
        default=False,
        description="Render logs as JSON lines instead of console text"
    )

    # Output
    default_output_format: str = Field(
        default="table",
        pattern="^(table|json|csv)$",
        description="Output format used when --format is not given"
    )

    @field_validator("log_level")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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

    # Note: sub-settings are loaded lazily so commands that never talk
    # to the API work without credentials

    @property
    def bkper(self) -> BkperSettings:
        return BkperSettings()

    @property
    def merge(self) -> MergeSettings:
        return MergeSettings()

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


def validate_all_settings() -> dict[str, bool | str]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name + "_error": message} for each invalid group.
    Useful for startup checks.
    """
    results: dict[str, bool | str] = {}

    settings = get_settings()

    for name in ("bkper", "merge", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
