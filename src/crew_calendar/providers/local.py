from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import orjson

from ..core.errors import PersistenceError

logger = logging.getLogger(__name__)


class LocalFileProvider:
    """Stores the availability document as a JSON file on this device."""

    name = "local"

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def load_calendar_data(self) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._read)

    async def save_calendar_data(self, availability: Dict[str, Any]) -> bool:
        return await asyncio.to_thread(self._write, availability)

    def _read(self) -> Optional[Dict[str, Any]]:
        if not self._path.exists():
            logger.info("No calendar file at %s; starting empty", self._path)
            return None
        raw = self._path.read_bytes()
        if not raw.strip():
            return None
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as exc:
            raise PersistenceError(f"Calendar file {self._path} is not valid JSON.") from exc

    def _write(self, availability: Dict[str, Any]) -> bool:
        payload = orjson.dumps(availability, option=orjson.OPT_INDENT_2)
        temp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_bytes(payload + b"\n")
            temp_path.replace(self._path)
        except OSError:
            logger.exception("Writing calendar file %s failed", self._path)
            return False
        logger.debug("Calendar data saved to %s", self._path)
        return True
