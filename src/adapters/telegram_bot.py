"""Telegram Bot API destination adapter.

Implements the core DestinationPort with raw Bot API calls. All text is
sent with ``parse_mode=MarkdownV2``; the core is responsible for escaping.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import httpx

from core.errors import DestinationApiError
from core.models import MediaItem, Recipient

LOGGER = logging.getLogger(__name__)

PARSE_MODE = "MarkdownV2"
# Bot API limit for a single sendMediaGroup call.
MEDIA_GROUP_LIMIT = 10


class TelegramApiError(DestinationApiError):
    """Error returned by the Bot API or raised while talking to it."""


def _reply_parameters(reply_to: Optional[int]) -> Optional[dict[str, Any]]:
    if reply_to is None:
        return None
    # The original may be gone; the relay must not fail because of that.
    return {"message_id": reply_to, "allow_sending_without_reply": True}


def build_media_payload(media: Sequence[MediaItem], caption: Optional[str]) -> list[dict[str, Any]]:
    """Build ``InputMedia`` objects; only the first item carries the caption."""

    items: list[dict[str, Any]] = []
    for index, item in enumerate(media):
        entry: dict[str, Any] = {"type": item.kind.value, "media": item.url}
        if index == 0 and caption:
            entry["caption"] = caption
            entry["parse_mode"] = PARSE_MODE
        items.append(entry)
    return items


class TelegramBotDestination:
    """Destination adapter that sends and edits messages via the Bot API."""

    def __init__(self, bot_token: str, http: Optional[httpx.AsyncClient] = None) -> None:
        self._bot_token = bot_token
        self._http = http or httpx.AsyncClient(timeout=30)

    async def aclose(self) -> None:
        await self._http.aclose()

    def _endpoint(self, method: str) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/{method}"

    async def call(self, method: str, payload: dict[str, Any]) -> Any:
        """Call a Bot API method and return its ``result``."""

        body = {key: value for key, value in payload.items() if value is not None}
        try:
            response = await self._http.post(self._endpoint(method), json=body)
            data = response.json()
        except httpx.HTTPError as e:
            raise TelegramApiError(f"{method}: {e}") from e
        except ValueError as e:
            raise TelegramApiError(
                f"{method}: invalid JSON response (HTTP {response.status_code})"
            ) from e

        if not isinstance(data, dict) or not data.get("ok"):
            description = data.get("description", "unknown error") if isinstance(data, dict) else data
            code = data.get("error_code") if isinstance(data, dict) else None
            raise TelegramApiError(f"{method}: {description}", code=code)
        return data.get("result")

    async def send_text(self, chat: Recipient, body: str, reply_to: Optional[int] = None) -> int:
        result = await self.call(
            "sendMessage",
            {
                "chat_id": chat,
                "text": body,
                "parse_mode": PARSE_MODE,
                "link_preview_options": {"is_disabled": True},
                "reply_parameters": _reply_parameters(reply_to),
            },
        )
        try:
            return int(result["message_id"])
        except (KeyError, TypeError, ValueError) as e:
            raise TelegramApiError(f"sendMessage: unexpected result {result!r}") from e

    async def send_media_group(
        self,
        chat: Recipient,
        media: Sequence[MediaItem],
        caption: str,
        reply_to: Optional[int] = None,
    ) -> list[int]:
        if not media:
            raise TelegramApiError("sendMediaGroup: no media to send")

        message_ids: list[int] = []
        for start in range(0, len(media), MEDIA_GROUP_LIMIT):
            chunk = media[start : start + MEDIA_GROUP_LIMIT]
            first = start == 0
            try:
                result = await self.call(
                    "sendMediaGroup",
                    {
                        "chat_id": chat,
                        "media": build_media_payload(chunk, caption if first else None),
                        "reply_parameters": _reply_parameters(reply_to) if first else None,
                    },
                )
                try:
                    message_ids.extend(int(message["message_id"]) for message in result)
                except (KeyError, TypeError, ValueError) as e:
                    raise TelegramApiError(f"sendMediaGroup: unexpected result {result!r}") from e
            except TelegramApiError as e:
                # The captioned first chunk is already delivered; keep its ids.
                if not message_ids:
                    raise
                LOGGER.warning("Media group to %s truncated after %s items: %s", chat, start, e)
                break

        if not message_ids:
            raise TelegramApiError("sendMediaGroup: empty result")
        return message_ids

    async def edit_text(self, chat: Recipient, message_id: int, body: str) -> None:
        await self.call(
            "editMessageText",
            {
                "chat_id": chat,
                "message_id": message_id,
                "text": body,
                "parse_mode": PARSE_MODE,
                "link_preview_options": {"is_disabled": True},
            },
        )

    async def edit_caption(self, chat: Recipient, message_id: int, body: str) -> None:
        await self.call(
            "editMessageCaption",
            {
                "chat_id": chat,
                "message_id": message_id,
                "caption": body,
                "parse_mode": PARSE_MODE,
            },
        )
