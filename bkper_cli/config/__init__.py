"""Configuration package."""

from bkper_cli.config.settings import (
    AppSettings,
    BkperSettings,
    MergeSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "BkperSettings",
    "MergeSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
