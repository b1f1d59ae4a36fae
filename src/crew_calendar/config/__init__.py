"""Configuration models and helpers."""

from __future__ import annotations

from .settings import (
    AppSettings,
    CalendarSettings,
    FunctionsSettings,
    GitHubSettings,
    StorageSettings,
    SupabaseSettings,
    get_settings,
)

__all__ = [
    "AppSettings",
    "CalendarSettings",
    "FunctionsSettings",
    "GitHubSettings",
    "StorageSettings",
    "SupabaseSettings",
    "get_settings",
]
