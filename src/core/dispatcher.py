"""Core event dispatcher.

This module is integration-agnostic. It only relies on ports for reading
the source platform and writing to the destination, so the whole relay
can be driven by fakes in tests.

Each event goes through a fixed order:
1) Classify by type code (new / edit / ignored)
2) Parse; malformed events are dropped with a warning
3) Fast-exit for private conversations and unmapped chats
4) Resolve the reply target (new messages only)
5) Format body and media
6) Send or edit on the destination
7) Record the correlation (new messages only)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from core.config import RelayConfig
from core.correlation import CorrelationStore
from core.errors import DestinationApiError, MalformedEventError, SourceApiError
from core.events import event_code, parse_message_event
from core.formatter import MessageFormatter
from core.models import (
    ChatMapping,
    DestinationMessageRef,
    EventKind,
    MediaCaption,
    MessageEvent,
    TextMessage,
)
from core.ports import DestinationPort, SourcePort

LOGGER = logging.getLogger(__name__)


class EventDispatcher:
    """Routes long-poll events to destination sends and edits."""

    def __init__(
        self,
        chats: ChatMapping,
        store: CorrelationStore,
        formatter: MessageFormatter,
        source: SourcePort,
        destination: DestinationPort,
        config: Optional[RelayConfig] = None,
    ) -> None:
        self._chats = chats
        self._store = store
        self._formatter = formatter
        self._source = source
        self._destination = destination
        self._config = config or RelayConfig()

    async def handle(self, raw: Any) -> None:
        """Process one raw long-poll event to completion."""

        code = event_code(raw)
        if code not in (EventKind.NEW, EventKind.EDIT):
            return

        try:
            event = parse_message_event(raw)
        except MalformedEventError as e:
            LOGGER.warning("Dropping malformed event: %s", e)
            return

        # Only group conversations are mirrored.
        if event.chat_id < self._config.group_chat_threshold:
            return

        if event.chat_id not in self._chats:
            LOGGER.debug("No destination for chat %s", event.chat_id)
            return

        if event.kind == EventKind.NEW:
            await self._new_message(event)
        else:
            await self._edit_message(event)

    async def _new_message(self, event: MessageEvent) -> None:
        chat = self._chats[event.chat_id]
        LOGGER.info(
            "New message #%s in chat %s from %s", event.message_id, event.chat_id, event.sender_id
        )

        reply_to = await self._resolve_reply(event)
        body, media = await self._formatter.format(event.message_id, event.sender_id, event.text)

        ref: DestinationMessageRef
        try:
            if media:
                ids = await self._destination.send_media_group(chat, media, body, reply_to)
                ref = MediaCaption(ids[0])
            else:
                ref = TextMessage(await self._destination.send_text(chat, body, reply_to))
        except DestinationApiError as e:
            LOGGER.error("Failed to relay message #%s to %s: %s", event.message_id, chat, e)
            return

        await self._store.put(event.message_id, ref)

    async def _edit_message(self, event: MessageEvent) -> None:
        ref = await self._store.get(event.message_id)
        if ref is None:
            return

        chat = self._chats[event.chat_id]
        LOGGER.info("Edited message #%s in chat %s", event.message_id, event.chat_id)

        body, _ = await self._formatter.format(event.message_id, event.sender_id, event.text)
        try:
            if isinstance(ref, MediaCaption):
                await self._destination.edit_caption(chat, ref.message_id, body)
            else:
                await self._destination.edit_text(chat, ref.message_id, body)
        except DestinationApiError as e:
            LOGGER.error("Failed to edit message #%s in %s: %s", event.message_id, chat, e)

    async def _resolve_reply(self, event: MessageEvent) -> Optional[int]:
        local_id = event.reply_conversation_message_id
        if local_id is None:
            return None

        try:
            source_id = await self._source.get_message_id_by_conversation_id(event.chat_id, local_id)
        except SourceApiError as e:
            LOGGER.warning("Reply lookup failed for message #%s: %s", event.message_id, e)
            return None
        if source_id is None:
            return None

        ref = await self._store.get(source_id)
        return ref.message_id if ref is not None else None
