"""VK user long-poll supplier.

Yields raw message events forever. A session (key, server, ts) is acquired
through the API and renewed whenever the long-poll server reports it as
expired or a request fails.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Optional

import httpx

from adapters.vk_api import VkApiClient
from core.errors import SourceApiError

LOGGER = logging.getLogger(__name__)

LONG_POLL_VERSION = 3
# Mode 2 adds attachments and the reply marker to message events.
LONG_POLL_MODE = 2


class LongPollSupplier:
    """Iterate raw long-poll events for the authenticated user."""

    def __init__(
        self,
        api: VkApiClient,
        wait: int = 25,
        retry_delay: float = 5.0,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api = api
        self._wait = wait
        self._retry_delay = retry_delay
        # Server-side wait plus headroom for the response itself.
        self._http = http or httpx.AsyncClient(timeout=wait + 10)
        self._key: Optional[str] = None
        self._server: Optional[str] = None
        self._ts: Optional[str] = None

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _acquire(self) -> None:
        session = await self._api.get_long_poll_server(lp_version=LONG_POLL_VERSION)
        self._key = str(session["key"])
        self._server = str(session["server"])
        self._ts = str(session["ts"])
        LOGGER.info("Long-poll session acquired on %s", self._server)

    def _server_url(self) -> str:
        server = self._server or ""
        if server.startswith("http://") or server.startswith("https://"):
            return server
        return f"https://{server}"

    async def poll(self) -> list[Any]:
        """Run one long-poll request and return its updates.

        Returns an empty list when the session had to be renewed.
        """

        if self._key is None:
            await self._acquire()

        response = await self._http.get(
            self._server_url(),
            params={
                "act": "a_check",
                "key": self._key,
                "ts": self._ts,
                "wait": self._wait,
                "mode": LONG_POLL_MODE,
                "version": LONG_POLL_VERSION,
            },
        )
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise SourceApiError("long poll returned an unexpected payload")

        failed = payload.get("failed")
        if failed == 1:
            # History is partially lost; continue from the new cursor.
            self._ts = str(payload["ts"])
            return []
        if failed in (2, 3):
            LOGGER.info("Long-poll session expired (failed=%s), renewing", failed)
            self._key = None
            return []
        if failed is not None:
            raise SourceApiError(f"long poll failed with code {failed}")

        self._ts = str(payload["ts"])
        updates = payload.get("updates") or []
        return updates if isinstance(updates, list) else []

    async def events(self) -> AsyncIterator[Any]:
        """Yield raw events one by one, renewing the session as needed."""

        while True:
            try:
                updates = await self.poll()
            except (httpx.HTTPError, SourceApiError, ValueError, KeyError) as e:
                LOGGER.warning("Long-poll request failed: %s", e)
                self._key = None
                await asyncio.sleep(self._retry_delay)
                continue

            for update in updates:
                yield update
