"""Parsing of raw long-poll events.

Long-poll (version 3, mode 2) message events are flat arrays::

    [code, message_id, flags, peer_id, timestamp, text, extra, attachments]

``extra`` holds the sender id under ``from``; ``attachments`` may carry a
``reply`` JSON string pointing at a conversation-local message id.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from core.errors import MalformedEventError
from core.models import EventKind, MessageEvent

LOGGER = logging.getLogger(__name__)


def event_code(raw: Any) -> Optional[int]:
    """Return the numeric type code of a raw event, if it has one."""

    if not isinstance(raw, (list, tuple)) or not raw:
        return None
    code = raw[0]
    if isinstance(code, bool) or not isinstance(code, int):
        return None
    return code


def _field(raw: Any, index: int, expected: type, name: str) -> Any:
    try:
        value = raw[index]
    except (IndexError, TypeError) as e:
        raise MalformedEventError(f"missing {name} at position {index}") from e
    if isinstance(value, bool) or not isinstance(value, expected):
        raise MalformedEventError(
            f"{name} at position {index} is {type(value).__name__}, expected {expected.__name__}"
        )
    return value


def _reply_marker(extras: Any) -> Optional[int]:
    if not isinstance(extras, dict) or "reply" not in extras:
        return None
    try:
        reply = json.loads(extras["reply"])
        marker = reply["conversation_message_id"]
    except (TypeError, ValueError, KeyError) as e:
        LOGGER.warning("Ignoring unreadable reply marker %r: %s", extras.get("reply"), e)
        return None
    if isinstance(marker, bool) or not isinstance(marker, int):
        LOGGER.warning("Ignoring reply marker with id %r", marker)
        return None
    return marker


def parse_message_event(raw: Any) -> MessageEvent:
    """Parse a new/edit message event or raise ``MalformedEventError``."""

    try:
        kind = EventKind(event_code(raw))
    except ValueError as e:
        raise MalformedEventError(f"not a message event: {raw!r:.80}") from e

    message_id = _field(raw, 1, int, "message id")
    chat_id = _field(raw, 3, int, "peer id")
    text = _field(raw, 5, str, "text")
    extra = _field(raw, 6, dict, "extra fields")

    sender_id = extra.get("from")
    if sender_id is None:
        # Private dialogs omit "from"; the peer is the sender.
        sender_id = str(chat_id)
    elif isinstance(sender_id, int) and not isinstance(sender_id, bool):
        sender_id = str(sender_id)
    elif not isinstance(sender_id, str):
        raise MalformedEventError(f"sender id is {type(sender_id).__name__}")

    extras = raw[7] if len(raw) > 7 else None

    return MessageEvent(
        kind=kind,
        message_id=message_id,
        chat_id=chat_id,
        text=text,
        sender_id=sender_id,
        reply_conversation_message_id=_reply_marker(extras),
    )
