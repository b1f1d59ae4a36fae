from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from supabase import Client, create_client

from ..config import SupabaseSettings
from ..core.errors import PersistenceError

logger = logging.getLogger(__name__)


@dataclass
class SupabaseGateway:
    """Lazily created Supabase client for the configured project."""

    settings: SupabaseSettings
    _client: Optional[Client] = None

    def ensure_client(self) -> Client:
        if self._client is not None:
            return self._client
        if not self.settings.is_configured:
            raise PersistenceError("Supabase settings are missing URL or anon key.")
        self._client = create_client(self.settings.url, self.settings.anon_key)
        return self._client

    def table(self, name: str):
        return self.ensure_client().table(name)


class SupabaseProvider:
    """Stores one availability document per owner in a Supabase table.

    The table needs an ``owner_id`` text primary key, an ``availability``
    jsonb column and an ``updated_at`` timestamp.
    """

    name = "supabase"

    def __init__(self, settings: SupabaseSettings, gateway: Optional[SupabaseGateway] = None) -> None:
        self.settings = settings
        self.gateway = gateway or SupabaseGateway(settings)

    async def load_calendar_data(self) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._load)

    async def save_calendar_data(self, availability: Dict[str, Any]) -> bool:
        return await asyncio.to_thread(self._save, availability)

    def _load(self) -> Optional[Dict[str, Any]]:
        try:
            response = (
                self.gateway.table(self.settings.table)
                .select("availability")
                .eq("owner_id", self.settings.user_id)
                .limit(1)
                .execute()
            )
        except PersistenceError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise PersistenceError(f"Supabase query failed: {exc}") from exc
        rows = response.data or []
        if not rows:
            return None
        document = rows[0].get("availability")
        return document if isinstance(document, dict) else None

    def _save(self, availability: Dict[str, Any]) -> bool:
        record = {
            "owner_id": self.settings.user_id,
            "availability": availability,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            response = (
                self.gateway.table(self.settings.table)
                .upsert(record, on_conflict="owner_id")
                .execute()
            )
        except PersistenceError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise PersistenceError(f"Supabase upsert failed: {exc}") from exc
        return bool(response.data)
