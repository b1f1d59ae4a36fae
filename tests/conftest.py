from __future__ import annotations

import asyncio
import os
import tempfile
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Optional

os.environ.setdefault("CREW_DATA_DIR", tempfile.mkdtemp(prefix="crew-calendar-tests-"))

import pytest  # noqa: E402

from crew_calendar.config import (  # noqa: E402
    AppSettings,
    CalendarSettings,
    FunctionsSettings,
    GitHubSettings,
    StorageSettings,
    SupabaseSettings,
)
from crew_calendar.core.errors import PersistenceError  # noqa: E402
from crew_calendar.core.store import AvailabilityStore  # noqa: E402
from crew_calendar.services import BookingService, EventService  # noqa: E402


class InMemoryProvider:
    name = "memory"

    def __init__(self, data: Optional[Dict[str, Any]] = None, *, accept_saves: bool = True) -> None:
        self.data = deepcopy(data)
        self.accept_saves = accept_saves
        self.saves: list[Dict[str, Any]] = []

    async def load_calendar_data(self) -> Optional[Dict[str, Any]]:
        await asyncio.sleep(0)
        return deepcopy(self.data)

    async def save_calendar_data(self, availability: Dict[str, Any]) -> bool:
        await asyncio.sleep(0)
        if not self.accept_saves:
            return False
        self.saves.append(deepcopy(availability))
        self.data = deepcopy(availability)
        return True


class FailingProvider:
    name = "failing"

    def __init__(self) -> None:
        self.load_attempts = 0
        self.save_attempts = 0

    async def load_calendar_data(self) -> Optional[Dict[str, Any]]:
        self.load_attempts += 1
        raise PersistenceError("backend unreachable")

    async def save_calendar_data(self, availability: Dict[str, Any]) -> bool:
        self.save_attempts += 1
        raise PersistenceError("backend unreachable")


def make_settings(tmp_path: Path, *, backend: str = "local", **overrides: Any) -> AppSettings:
    values: Dict[str, Any] = {
        "storage": StorageSettings(
            backend=backend,
            data_file=tmp_path / "availability.json",
            fallback_file=tmp_path / "availability.fallback.json",
        ),
        "functions": FunctionsSettings(base_url=None, token=None, user_id="tester", timeout=5.0),
        "github": GitHubSettings(
            token=None,
            owner=None,
            repository="Production-Rates",
            branch="main",
            calendar_path="data/calendar/availability.json",
            api_url="https://api.github.test",
            timeout=5.0,
        ),
        "supabase": SupabaseSettings(url=None, anon_key=None, table="calendar_documents", user_id="tester"),
        "calendar": CalendarSettings(
            calendar_name="Production Calendar",
            timezone="UTC",
            default_start="09:00",
            default_end="10:00",
        ),
        "log_level": "DEBUG",
    }
    values.update(overrides)
    return AppSettings(**values)


@pytest.fixture
def provider() -> InMemoryProvider:
    return InMemoryProvider()


@pytest.fixture
def store(provider: InMemoryProvider) -> AvailabilityStore:
    return AvailabilityStore(provider)


@pytest.fixture
def bookings(store: AvailabilityStore) -> BookingService:
    return BookingService(store)


@pytest.fixture
def events(store: AvailabilityStore) -> EventService:
    return EventService(store)


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return make_settings(tmp_path)
