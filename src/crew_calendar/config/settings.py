from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ..core.config import AVAILABILITY_FILE, FALLBACK_FILE

load_dotenv()

STORAGE_BACKENDS = ("local", "functions", "github", "supabase")


@dataclass(frozen=True)
class StorageSettings:
    backend: str
    data_file: Path
    fallback_file: Path


@dataclass(frozen=True)
class FunctionsSettings:
    base_url: Optional[str]
    token: Optional[str]
    user_id: str
    timeout: float

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    @property
    def missing_env_vars(self) -> list[str]:
        return [] if self.base_url else ["CREW_FUNCTIONS_URL"]


@dataclass(frozen=True)
class GitHubSettings:
    token: Optional[str]
    owner: Optional[str]
    repository: str
    branch: str
    calendar_path: str
    api_url: str
    timeout: float

    @property
    def is_configured(self) -> bool:
        return bool(self.token and self.owner)

    @property
    def missing_env_vars(self) -> list[str]:
        missing = []
        if not self.token:
            missing.append("GITHUB_TOKEN")
        if not self.owner:
            missing.append("GITHUB_OWNER")
        return missing


@dataclass(frozen=True)
class SupabaseSettings:
    url: Optional[str]
    anon_key: Optional[str]
    table: str
    user_id: str

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key)

    @property
    def missing_env_vars(self) -> list[str]:
        missing = []
        if not self.url:
            missing.append("SUPABASE_URL")
        if not self.anon_key:
            missing.append("SUPABASE_ANON_KEY")
        return missing


@dataclass(frozen=True)
class CalendarSettings:
    calendar_name: str
    timezone: str
    default_start: str
    default_end: str


@dataclass(frozen=True)
class AppSettings:
    storage: StorageSettings
    functions: FunctionsSettings
    github: GitHubSettings
    supabase: SupabaseSettings
    calendar: CalendarSettings
    log_level: str


def _float_from_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    backend = os.getenv("CREW_STORAGE_BACKEND", "local").strip().lower()
    if backend not in STORAGE_BACKENDS:
        backend = "local"
    user_id = os.getenv("CREW_USER_ID", "anonymous")

    storage = StorageSettings(
        backend=backend,
        data_file=Path(os.getenv("CREW_DATA_FILE") or AVAILABILITY_FILE),
        fallback_file=Path(os.getenv("CREW_FALLBACK_FILE") or FALLBACK_FILE),
    )

    functions = FunctionsSettings(
        base_url=os.getenv("CREW_FUNCTIONS_URL"),
        token=os.getenv("CREW_FUNCTIONS_TOKEN"),
        user_id=user_id,
        timeout=_float_from_env("CREW_HTTP_TIMEOUT", 15.0),
    )

    github = GitHubSettings(
        token=os.getenv("GITHUB_TOKEN"),
        owner=os.getenv("GITHUB_OWNER"),
        repository=os.getenv("GITHUB_REPO", "Production-Rates"),
        branch=os.getenv("GITHUB_BRANCH", "main"),
        calendar_path=os.getenv("GITHUB_CALENDAR_PATH", "data/calendar/availability.json"),
        api_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
        timeout=_float_from_env("CREW_HTTP_TIMEOUT", 15.0),
    )

    supabase = SupabaseSettings(
        url=os.getenv("SUPABASE_URL"),
        anon_key=os.getenv("SUPABASE_ANON_KEY"),
        table=os.getenv("SUPABASE_CALENDAR_TABLE", "calendar_documents"),
        user_id=user_id,
    )

    calendar = CalendarSettings(
        calendar_name=os.getenv("CREW_CALENDAR_NAME", "Production Calendar"),
        timezone=os.getenv("CREW_TIMEZONE", "UTC"),
        default_start=os.getenv("CREW_DEFAULT_START", "09:00"),
        default_end=os.getenv("CREW_DEFAULT_END", "10:00"),
    )

    return AppSettings(
        storage=storage,
        functions=functions,
        github=github,
        supabase=supabase,
        calendar=calendar,
        log_level=os.getenv("CREW_LOG_LEVEL", "INFO").upper(),
    )
