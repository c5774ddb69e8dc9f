"""VK API adapter.

Implements the core SourcePort on top of the VK HTTP API. Every failure,
transport or API level, surfaces as ``VkApiError`` so the core only has to
know about ``SourceApiError``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from adapters.vk_mapper import build_message, build_profile
from core.errors import SourceApiError
from core.models import SourceMessage, UserProfile

LOGGER = logging.getLogger(__name__)

API_URL = "https://api.vk.com/method"
DEFAULT_API_VERSION = "5.199"


class VkApiError(SourceApiError):
    """Error returned by the VK API or raised while talking to it."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


def _encode_params(params: dict[str, Any]) -> dict[str, str]:
    encoded: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            encoded[key] = ",".join(str(item) for item in value)
        else:
            encoded[key] = str(value)
    return encoded


class VkApiClient:
    """Thin async VK API client that satisfies the SourcePort contract."""

    def __init__(
        self,
        token: str,
        api_version: str = DEFAULT_API_VERSION,
        preview_length: int = 1,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._token = token
        self._api_version = api_version
        self._preview_length = preview_length
        self._http = http or httpx.AsyncClient(timeout=30)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def call(self, method: str, **params: Any) -> Any:
        """Call an API method and return its ``response`` payload."""

        data = _encode_params(params)
        data["access_token"] = self._token
        data["v"] = self._api_version
        try:
            response = await self._http.post(f"{API_URL}/{method}", data=data)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise VkApiError(f"{method}: {e}") from e
        except ValueError as e:
            raise VkApiError(f"{method}: invalid JSON response") from e

        if not isinstance(payload, dict):
            raise VkApiError(f"{method}: unexpected response")
        if "error" in payload:
            error = payload["error"]
            if not isinstance(error, dict):
                error = {"error_msg": str(error)}
            raise VkApiError(
                f"{method}: {error.get('error_msg', 'unknown error')}",
                code=error.get("error_code"),
            )
        if "response" not in payload:
            raise VkApiError(f"{method}: response missing")
        return payload["response"]

    async def get_message(self, message_id: int) -> Optional[SourceMessage]:
        response = await self.call(
            "messages.getById",
            message_ids=[message_id],
            fields=["name"],
            preview_length=self._preview_length,
        )
        items = _items(response, "messages.getById")
        if not items:
            return None
        try:
            return build_message(items[0])
        except (KeyError, TypeError, ValueError) as e:
            raise VkApiError(f"messages.getById: unreadable message {message_id}: {e}") from e

    async def get_profile(self, user_id: int) -> Optional[UserProfile]:
        response = await self.call("users.get", user_ids=[user_id])
        if not isinstance(response, list) or not response:
            return None
        try:
            return build_profile(response[0])
        except (KeyError, TypeError, ValueError) as e:
            raise VkApiError(f"users.get: unreadable profile {user_id}: {e}") from e

    async def get_message_id_by_conversation_id(
        self, peer_id: int, conversation_message_id: int
    ) -> Optional[int]:
        response = await self.call(
            "messages.getByConversationMessageId",
            peer_id=peer_id,
            conversation_message_ids=[conversation_message_id],
        )
        items = _items(response, "messages.getByConversationMessageId")
        if not items:
            return None
        try:
            return int(items[0]["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise VkApiError(f"messages.getByConversationMessageId: {e}") from e

    async def get_long_poll_server(self, lp_version: int = 3) -> dict[str, Any]:
        """Return the ``key``/``server``/``ts`` triple for a new long-poll session."""

        response = await self.call("messages.getLongPollServer", lp_version=lp_version)
        if not isinstance(response, dict) or not {"key", "server", "ts"} <= response.keys():
            raise VkApiError("messages.getLongPollServer: incomplete session")
        return response


def _items(response: Any, method: str) -> list:
    if not isinstance(response, dict):
        raise VkApiError(f"{method}: unexpected response")
    items = response.get("items") or []
    if not isinstance(items, list):
        raise VkApiError(f"{method}: unexpected items")
    return items
