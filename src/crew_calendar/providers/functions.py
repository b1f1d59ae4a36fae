from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import FunctionsSettings
from ..core.errors import PersistenceError

logger = logging.getLogger(__name__)


class FunctionsProvider:
    """Calls the ``getCalendar`` / ``saveCalendar`` serverless functions.

    Both functions accept a JSON POST body and answer
    ``{"success": bool, "data": {...}, "message": str}``; the document
    database behind them is not visible to this client.
    """

    name = "functions"

    def __init__(self, settings: FunctionsSettings, http: httpx.AsyncClient | None = None) -> None:
        if not settings.base_url:
            raise PersistenceError("CREW_FUNCTIONS_URL is not configured.")
        self.settings = settings
        self.http = http or httpx.AsyncClient(
            base_url=settings.base_url.rstrip("/") + "/",
            timeout=settings.timeout,
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def load_calendar_data(self) -> Optional[Dict[str, Any]]:
        result = await self._call("getCalendar", {})
        if not result.get("success", False):
            raise PersistenceError(result.get("message") or "getCalendar reported a failure.")
        data = result.get("data")
        return data if isinstance(data, dict) else None

    async def save_calendar_data(self, availability: Dict[str, Any]) -> bool:
        result = await self._call("saveCalendar", {"availability": availability})
        success = bool(result.get("success", False))
        if not success:
            logger.error("saveCalendar rejected the update: %s", result.get("message"))
        return success

    async def _call(self, function: str, body: Dict[str, Any]) -> Dict[str, Any]:
        headers: Dict[str, str] = {}
        if self.settings.token:
            headers["Authorization"] = f"Bearer {self.settings.token}"
        payload = {"userId": self.settings.user_id, **body}
        try:
            response = await self.http.post(function, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PersistenceError(f"Serverless function {function} failed: {exc}") from exc
        try:
            data = response.json()
        except ValueError as exc:
            raise PersistenceError(f"Serverless function {function} returned invalid JSON.") from exc
        if not isinstance(data, dict):
            raise PersistenceError(f"Serverless function {function} returned an unexpected payload.")
        return data
