from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class PersistenceProvider(Protocol):
    """Backend that stores the whole availability document.

    ``load_calendar_data`` returns ``None`` (or empty structures) when nothing
    has been stored yet and raises :class:`~crew_calendar.core.errors.PersistenceError`
    when the backend cannot be reached. ``save_calendar_data`` reports success
    as a boolean.
    """

    name: str

    async def load_calendar_data(self) -> Optional[Dict[str, Any]]: ...

    async def save_calendar_data(self, availability: Dict[str, Any]) -> bool: ...
