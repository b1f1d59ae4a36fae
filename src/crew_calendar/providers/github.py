from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional

import httpx
import orjson

from ..config import GitHubSettings
from ..core.errors import PersistenceError

logger = logging.getLogger(__name__)


class GitHubProvider:
    """Keeps the availability document as a JSON file in a GitHub repository.

    Reads and writes go through the repository contents API. Updates must
    quote the blob sha of the version they replace, so the last seen sha is
    cached and refreshed once when GitHub reports a stale one.
    """

    name = "github"

    def __init__(self, settings: GitHubSettings, http: httpx.AsyncClient | None = None) -> None:
        if not settings.is_configured:
            raise PersistenceError(f"GitHub storage is missing {', '.join(settings.missing_env_vars)}.")
        self.settings = settings
        self._sha: Optional[str] = None
        self.http = http or httpx.AsyncClient(
            base_url=settings.api_url,
            timeout=settings.timeout,
            headers={
                "Authorization": f"token {settings.token}",
                "Accept": "application/vnd.github+json",
            },
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    @property
    def contents_path(self) -> str:
        path = self.settings.calendar_path.lstrip("/")
        return f"/repos/{self.settings.owner}/{self.settings.repository}/contents/{path}"

    async def load_calendar_data(self) -> Optional[Dict[str, Any]]:
        document = await self._read()
        if document is None:
            logger.info("No calendar file in %s/%s", self.settings.owner, self.settings.repository)
            return None
        try:
            content = base64.b64decode(document.get("content") or "")
            return orjson.loads(content) if content.strip() else None
        except (ValueError, orjson.JSONDecodeError) as exc:
            raise PersistenceError("Calendar file in repository is not valid JSON.") from exc

    async def save_calendar_data(self, availability: Dict[str, Any]) -> bool:
        content = orjson.dumps(availability, option=orjson.OPT_INDENT_2)
        response = await self._put(content)
        if response.status_code in (409, 422):
            logger.warning("Calendar file sha is stale; refreshing and retrying")
            await self._read()
            response = await self._put(content)
        if response.status_code not in (200, 201):
            logger.error("GitHub rejected calendar update: %s %s", response.status_code, response.text)
            return False
        self._sha = (response.json().get("content") or {}).get("sha", self._sha)
        return True

    async def _read(self) -> Optional[Dict[str, Any]]:
        try:
            response = await self.http.get(self.contents_path, params={"ref": self.settings.branch})
        except httpx.HTTPError as exc:
            raise PersistenceError(f"GitHub request failed: {exc}") from exc
        if response.status_code == 404:
            self._sha = None
            return None
        if response.status_code != 200:
            raise PersistenceError(f"GitHub returned {response.status_code} reading calendar data.")
        document = response.json()
        self._sha = document.get("sha")
        return document

    async def _put(self, content: bytes) -> httpx.Response:
        body: Dict[str, Any] = {
            "message": "Update calendar availability",
            "content": base64.b64encode(content).decode("ascii"),
            "branch": self.settings.branch,
        }
        if self._sha:
            body["sha"] = self._sha
        try:
            return await self.http.put(self.contents_path, json=body)
        except httpx.HTTPError as exc:
            raise PersistenceError(f"GitHub request failed: {exc}") from exc
