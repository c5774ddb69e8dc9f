from __future__ import annotations

import asyncio
import json
from types import MappingProxyType
from typing import Optional

from core.attachments import AttachmentResolver
from core.correlation import CorrelationStore
from core.dispatcher import EventDispatcher
from core.errors import DestinationApiError, SourceApiError
from core.formatter import MessageFormatter
from core.models import (
    MediaCaption,
    MediaItem,
    MediaKind,
    MessageAction,
    Photo,
    SourceMessage,
    TextMessage,
    UserProfile,
)
from core.senders import SenderResolver

CHAT = 2000000001
TG_CHAT = -1001234
IVAN = "[Ivan Petrov](https://vk.com/id5)"


class FakeSource:
    def __init__(self) -> None:
        self.messages: dict[int, SourceMessage] = {}
        self.profiles = {5: UserProfile(5, "Ivan", "Petrov")}
        self.by_conversation: dict[tuple[int, int], int] = {}
        self.fail_reply_lookup = False
        self.message_calls: list[int] = []

    def add(self, message_id: int, *attachments, action=None) -> None:
        self.messages[message_id] = SourceMessage(
            id=message_id,
            conversation_message_id=message_id,
            peer_id=CHAT,
            text="",
            attachments=tuple(attachments),
            action=action,
        )

    async def get_message(self, message_id: int) -> Optional[SourceMessage]:
        self.message_calls.append(message_id)
        return self.messages.get(message_id)

    async def get_profile(self, user_id: int) -> Optional[UserProfile]:
        return self.profiles.get(user_id)

    async def get_message_id_by_conversation_id(self, peer_id: int, conversation_message_id: int):
        if self.fail_reply_lookup:
            raise SourceApiError("boom")
        return self.by_conversation.get((peer_id, conversation_message_id))


class FakeDestination:
    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.next_id = 100
        self.fail = False

    def _id(self) -> int:
        self.next_id += 1
        return self.next_id

    async def send_text(self, chat, body: str, reply_to: Optional[int] = None) -> int:
        if self.fail:
            raise DestinationApiError("Bad Request: can't parse entities")
        self.calls.append(("send_text", chat, body, reply_to))
        return self._id()

    async def send_media_group(self, chat, media, caption: str, reply_to: Optional[int] = None) -> list[int]:
        if self.fail:
            raise DestinationApiError("Bad Request")
        self.calls.append(("send_media_group", chat, list(media), caption, reply_to))
        return [self._id() for _ in media]

    async def edit_text(self, chat, message_id: int, body: str) -> None:
        self.calls.append(("edit_text", chat, message_id, body))

    async def edit_caption(self, chat, message_id: int, body: str) -> None:
        self.calls.append(("edit_caption", chat, message_id, body))


class SpyFormatter(MessageFormatter):
    def __init__(self, senders, attachments) -> None:
        super().__init__(senders, attachments)
        self.calls = 0

    async def format(self, message_id, sender_id, text):
        self.calls += 1
        return await super().format(message_id, sender_id, text)


def _build(chats=None):
    source = FakeSource()
    destination = FakeDestination()
    store = CorrelationStore()
    senders = SenderResolver(source)
    formatter = SpyFormatter(senders, AttachmentResolver(source, senders))
    dispatcher = EventDispatcher(
        chats=MappingProxyType(chats if chats is not None else {CHAT: TG_CHAT}),
        store=store,
        formatter=formatter,
        source=source,
        destination=destination,
    )
    return dispatcher, source, destination, store, formatter


def _event(code: int, message_id: int, text: str = "", chat: int = CHAT, reply: Optional[int] = None):
    extras = {}
    if reply is not None:
        extras["reply"] = json.dumps({"conversation_message_id": reply})
    return [code, message_id, 0, chat, 1700000000, text, {"from": "5"}, extras]


def test_new_text_message_is_relayed_and_correlated() -> None:
    dispatcher, source, destination, store, _ = _build()
    source.add(10)

    asyncio.run(dispatcher.handle(_event(4, 10, "hello *world*")))

    assert destination.calls == [("send_text", TG_CHAT, f"*{IVAN}*\nhello \\*world\\*", None)]
    assert asyncio.run(store.get(10)) == TextMessage(101)
    assert len(store) == 1


def test_photo_without_text_is_sent_as_media_group() -> None:
    dispatcher, source, destination, store, _ = _build()
    source.add(11, Photo("https://img/p.jpg"))

    asyncio.run(dispatcher.handle(_event(4, 11)))

    assert destination.calls == [
        ("send_media_group", TG_CHAT, [MediaItem(MediaKind.PHOTO, "https://img/p.jpg")], f"*{IVAN}*", None)
    ]
    assert asyncio.run(store.get(11)) == MediaCaption(101)


def test_edit_of_text_message_edits_in_place() -> None:
    dispatcher, source, destination, store, _ = _build()
    source.add(10)
    asyncio.run(store.put(10, TextMessage(55)))

    asyncio.run(dispatcher.handle(_event(5, 10, "fixed")))

    assert destination.calls == [("edit_text", TG_CHAT, 55, f"*{IVAN}*\nfixed")]
    assert asyncio.run(store.get(10)) == TextMessage(55)
    assert len(store) == 1


def test_edit_of_media_message_edits_caption() -> None:
    dispatcher, source, destination, store, _ = _build()
    source.add(11, Photo("https://img/p.jpg"))
    asyncio.run(store.put(11, MediaCaption(77)))

    asyncio.run(dispatcher.handle(_event(5, 11, "caption")))

    assert destination.calls == [("edit_caption", TG_CHAT, 77, f"*{IVAN}*\ncaption")]


def test_edit_without_correlation_makes_no_calls() -> None:
    dispatcher, source, destination, store, formatter = _build()
    source.add(10)

    asyncio.run(dispatcher.handle(_event(5, 10, "fixed")))

    assert destination.calls == []
    assert formatter.calls == 0
    assert len(store) == 0


def test_private_chats_never_reach_the_formatter() -> None:
    dispatcher, source, destination, store, formatter = _build(chats={42: TG_CHAT})
    source.add(10)
    asyncio.run(store.put(10, TextMessage(1)))

    asyncio.run(dispatcher.handle(_event(4, 10, "hi", chat=42)))
    asyncio.run(dispatcher.handle(_event(5, 10, "hi", chat=42)))

    assert formatter.calls == 0
    assert destination.calls == []


def test_unmapped_chat_is_ignored() -> None:
    dispatcher, source, destination, store, formatter = _build()

    asyncio.run(dispatcher.handle(_event(4, 10, "hi", chat=CHAT + 1)))

    assert formatter.calls == 0
    assert destination.calls == []
    assert len(store) == 0


def test_other_event_codes_and_malformed_events_are_dropped() -> None:
    dispatcher, source, destination, store, formatter = _build()

    asyncio.run(dispatcher.handle([61, 5, 1]))
    asyncio.run(dispatcher.handle([]))
    asyncio.run(dispatcher.handle("garbage"))
    asyncio.run(dispatcher.handle([4, "10", 0, CHAT, 0, "x", {"from": "5"}]))
    asyncio.run(dispatcher.handle([4, 10, 0, CHAT]))

    assert formatter.calls == 0
    assert destination.calls == []


def test_reply_is_linked_to_correlated_message() -> None:
    dispatcher, source, destination, store, _ = _build()
    source.add(12)
    source.by_conversation[(CHAT, 3)] = 9
    asyncio.run(store.put(9, MediaCaption(88)))

    asyncio.run(dispatcher.handle(_event(4, 12, "answer", reply=3)))

    assert destination.calls[0][-1] == 88


def test_reply_to_unrelayed_message_is_sent_without_link() -> None:
    dispatcher, source, destination, store, _ = _build()
    source.add(12)
    source.by_conversation[(CHAT, 3)] = 9

    asyncio.run(dispatcher.handle(_event(4, 12, "answer", reply=3)))

    assert destination.calls[0][0] == "send_text"
    assert destination.calls[0][-1] is None
    assert asyncio.run(store.get(12)) == TextMessage(101)


def test_reply_lookup_failure_does_not_block_relay() -> None:
    dispatcher, source, destination, store, _ = _build()
    source.add(12)
    source.fail_reply_lookup = True

    asyncio.run(dispatcher.handle(_event(4, 12, "answer", reply=3)))

    assert destination.calls[0][-1] is None
    assert 12 in store


def test_send_failure_leaves_no_correlation() -> None:
    dispatcher, source, destination, store, _ = _build()
    source.add(10)
    destination.fail = True

    asyncio.run(dispatcher.handle(_event(4, 10, "hi")))

    assert len(store) == 0


def test_action_event_body_is_the_action_phrase() -> None:
    dispatcher, source, destination, store, _ = _build()
    source.add(13, action=MessageAction.CHAT_TITLE_UPDATE)

    asyncio.run(dispatcher.handle(_event(4, 13, "New title")))

    assert destination.calls == [
        ("send_text", TG_CHAT, f"*{IVAN}*\n_обновил\\(а\\) название чата_", None)
    ]
    assert asyncio.run(store.get(13)) == TextMessage(101)
