"""Core configuration.

We keep file loading outside the core, but these helpers define the shape
the core expects so adapters and the app layer can build it safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from core.models import ChatMapping, Recipient

# VK peer ids for multi-user chats start at this offset.
GROUP_CHAT_THRESHOLD = 2_000_000_000


@dataclass(frozen=True)
class RelayConfig:
    """Settings consumed by the event dispatcher and resolvers."""

    group_chat_threshold: int = GROUP_CHAT_THRESHOLD
    preview_length: int = 1


def _parse_recipient(value: Any) -> Recipient:
    if isinstance(value, bool):
        raise ValueError(f"Invalid chat recipient: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        if value.startswith("@") and len(value) > 1:
            return value
        try:
            return int(value)
        except ValueError:
            pass
    raise ValueError(f"Invalid chat recipient: {value!r}")


def parse_chat_mapping(raw: Any) -> ChatMapping:
    """Build a read-only chat mapping from the decoded chats file.

    Keys are source peer ids (JSON object keys are strings), values are
    Telegram chat ids or "@channel" usernames.
    """

    if not isinstance(raw, dict):
        raise ValueError("Chat mapping must be a JSON object")

    mapping: dict[int, Recipient] = {}
    for key, value in raw.items():
        try:
            source_id = int(key)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid source chat id: {key!r}") from e
        mapping[source_id] = _parse_recipient(value)
    return MappingProxyType(mapping)
