"""Sender display names for relayed messages."""

from __future__ import annotations

import logging

from core.errors import SourceApiError
from core.markup import escape_markdown, link, profile_url
from core.ports import SourcePort

LOGGER = logging.getLogger(__name__)

BOT_LABEL = "БОТ"
UNKNOWN_LABEL = "???"


class SenderResolver:
    """Resolve a VK actor id to a MarkdownV2 label, with a per-process cache."""

    def __init__(self, source: SourcePort) -> None:
        self._source = source
        self._cache: dict[int, str] = {}

    async def resolve(self, actor_id: str) -> str:
        try:
            user_id = int(actor_id)
        except (TypeError, ValueError):
            LOGGER.warning("Unexpected sender id %r", actor_id)
            return UNKNOWN_LABEL

        # Communities and bots post with non-positive ids.
        if user_id <= 0:
            return BOT_LABEL

        if user_id in self._cache:
            return self._cache[user_id]

        try:
            profile = await self._source.get_profile(user_id)
        except SourceApiError as e:
            LOGGER.warning("Sender lookup failed for %s: %s", user_id, e)
            return UNKNOWN_LABEL
        if profile is None:
            LOGGER.warning("Sender %s not found", user_id)
            return UNKNOWN_LABEL

        name = f"{escape_markdown(profile.first_name)} {escape_markdown(profile.last_name)}"
        label = link(name, profile_url(f"id{profile.id}"))
        self._cache[user_id] = label
        return label
