"""
Async client for the subset of the Miniflux REST API used by the filter.

Every request carries the static ``X-Auth-Token`` header. Non-2xx responses
raise ``httpx.HTTPStatusError``; there is no retry logic, so a failing call
aborts the tick that issued it.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

import httpx

from .config import MinifluxConfig
from .core.types import Category, Entry, Feed
from .logging_utils import LOGGER_NAME


logger = logging.getLogger(f"{LOGGER_NAME}.miniflux")


class MinifluxClient:
    """Thin wrapper around ``httpx.AsyncClient`` for Miniflux endpoints.

    Args:
        cfg: Miniflux connection settings
        transport: Optional httpx transport, used by tests to fake the API
    """

    def __init__(self, cfg: MinifluxConfig, transport: httpx.AsyncBaseTransport | None = None):
        if not cfg.base_url:
            raise ValueError("Missing Miniflux URL")
        if not cfg.auth_token:
            raise ValueError("Missing Miniflux auth token")
        self.cfg = cfg
        self._client = httpx.AsyncClient(
            base_url=cfg.base_url.rstrip("/"),
            headers={"X-Auth-Token": cfg.auth_token},
            timeout=cfg.timeout_seconds,
            trust_env=cfg.trust_env,
            transport=transport,
        )

    async def __aenter__(self) -> "MinifluxClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_categories(self) -> list[Category]:
        data = await self._get_json("/v1/categories")
        return [Category.from_dict(item) for item in data]

    async def get_category_feeds(self, category_id: int) -> list[Feed]:
        data = await self._get_json(f"/v1/categories/{category_id}/feeds")
        return [Feed.from_dict(item) for item in data]

    async def get_feed_entries(
        self,
        feed_id: int,
        status: str = "unread",
        order: str = "published_at",
        direction: str = "asc",
        limit: int | None = None,
    ) -> list[Entry]:
        """Fetch one page of entries for a feed, oldest first by default."""
        params = {
            "status": status,
            "order": order,
            "direction": direction,
            "limit": limit if limit is not None else self.cfg.entry_limit,
        }
        page = await self._get_json(f"/v1/feeds/{feed_id}/entries", params=params)
        return [Entry.from_dict(item) for item in page.get("entries") or []]

    async def mark_entries_read(self, entry_ids: Iterable[int]) -> None:
        payload = {"entry_ids": list(entry_ids), "status": "read"}
        resp = await self._client.put("/v1/entries", json=payload)
        resp.raise_for_status()
        logger.debug("Marked %d entries as read", len(payload["entry_ids"]))

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        resp = await self._client.get(path, params=params)
        resp.raise_for_status()
        return resp.json()
