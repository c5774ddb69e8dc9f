from __future__ import annotations

import json

import pytest

from core.errors import MalformedEventError
from core.events import event_code, parse_message_event
from core.models import EventKind


def _raw(code=4, extras=None):
    return [code, 10, 0, 2000000001, 1700000000, "hello", {"from": "5"}, extras or {}]


def test_event_code_handles_odd_input() -> None:
    assert event_code([4, 1]) == 4
    assert event_code([]) is None
    assert event_code(["4"]) is None
    assert event_code([True]) is None
    assert event_code({"type": 4}) is None


def test_parses_new_message_event() -> None:
    event = parse_message_event(_raw())

    assert event.kind == EventKind.NEW
    assert event.message_id == 10
    assert event.chat_id == 2000000001
    assert event.text == "hello"
    assert event.sender_id == "5"
    assert event.reply_conversation_message_id is None


def test_parses_edit_event_without_attachment_slot() -> None:
    event = parse_message_event([5, 11, 0, 2000000001, 1700000000, "edited", {"from": "6"}])

    assert event.kind == EventKind.EDIT
    assert event.message_id == 11


def test_reply_marker_is_read() -> None:
    raw = _raw(extras={"reply": json.dumps({"conversation_message_id": 42})})

    assert parse_message_event(raw).reply_conversation_message_id == 42


def test_unreadable_reply_marker_is_dropped_not_fatal() -> None:
    raw = _raw(extras={"reply": "{not json"})

    event = parse_message_event(raw)

    assert event.reply_conversation_message_id is None
    assert event.message_id == 10


def test_private_dialog_sender_defaults_to_peer() -> None:
    event = parse_message_event([4, 3, 0, 123, 1700000000, "hi", {}])

    assert event.sender_id == "123"


@pytest.mark.parametrize(
    "raw",
    [
        [4, "10", 0, 2000000001, 0, "x", {"from": "1"}],
        [4, 10, 0, None, 0, "x", {"from": "1"}],
        [4, 10, 0, 2000000001, 0, 5, {"from": "1"}],
        [4, 10, 0, 2000000001, 0, "x", "extra"],
        [4, 10, 0, 2000000001],
        [4, 10, 0, 2000000001, 0, "x", {"from": ["1"]}],
        [6, 10, 0, 2000000001, 0, "x", {"from": "1"}],
    ],
)
def test_malformed_events_raise(raw) -> None:
    with pytest.raises(MalformedEventError):
        parse_message_event(raw)
