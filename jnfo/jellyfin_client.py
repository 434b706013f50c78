import logging
from typing import Any, Callable, Optional, TypeVar

import httpx
from pydantic import ValidationError

from .config import Settings
from .models import MediaItem, Session, SystemInfo, User, parse_item

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UpstreamError(Exception):
    """A Jellyfin request failed or returned something unusable."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class NoUsersError(UpstreamError):
    """Jellyfin returned no users, so no administrator can be resolved."""


class JellyfinClient:
    """Read-only Jellyfin REST client.

    Use as an async context manager; one HTTP connection pool is shared by
    every request issued inside the ``async with`` block.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = settings.base_url
        self._api_key = settings.jellyfin_api_key
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "JellyfinClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"X-Emby-Token": self._api_key},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("JellyfinClient used outside of 'async with'")
        return self._client

    async def get(self, path: str, params: Optional[dict] = None) -> Any:
        """GET ``path`` and return the decoded JSON body."""
        logger.debug(f"GET {path}")
        try:
            response = await self.client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"Jellyfin returned {e.response.status_code} for {path}", path
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Request to {path} failed: {e}", path) from e

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"Invalid JSON from {path}", path) from e

    async def get_sessions(self) -> list[Session]:
        data = await self._get_list("/Sessions")
        return self._parse(data, Session.model_validate, "/Sessions")

    async def get_item_counts(self) -> dict:
        data = await self.get("/Items/Counts")
        if not isinstance(data, dict):
            raise UpstreamError("Unexpected payload from /Items/Counts", "/Items/Counts")
        return data

    async def get_users(self) -> list[User]:
        data = await self._get_list("/Users")
        return self._parse(data, User.model_validate, "/Users")

    async def get_system_info(self) -> SystemInfo:
        data = await self.get("/System/Info")
        try:
            return SystemInfo.model_validate(data)
        except ValidationError as e:
            raise UpstreamError("Malformed system info", "/System/Info") from e

    async def get_latest_items(self, user_id: str, item_type: str, limit: int) -> list[MediaItem]:
        """Recently added items of one type, as seen by ``user_id``."""
        path = f"/Users/{user_id}/Items/Latest"
        data = await self._get_list(path, params={"Limit": limit, "IncludeItemTypes": item_type})
        return self._parse(data, parse_item, path)

    async def _get_list(self, path: str, params: Optional[dict] = None) -> list:
        data = await self.get(path, params=params)
        if not isinstance(data, list):
            raise UpstreamError(f"Expected a list from {path}", path)
        return data

    @staticmethod
    def _parse(data: list, parser: Callable[[Any], T], path: str) -> list[T]:
        try:
            return [parser(entry) for entry in data]
        except (ValidationError, AttributeError) as e:
            raise UpstreamError(f"Malformed record from {path}", path) from e
