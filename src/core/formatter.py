"""Destination message composition."""

from __future__ import annotations

from core.attachments import AttachmentResolver
from core.markup import bold, render_text
from core.models import MediaItem
from core.senders import SenderResolver


def compose_body(sender: str, text: str, attachments_block: str) -> str:
    """Join the bold sender label, message text, and attachments block."""

    body = bold(sender)
    if text:
        body += "\n" + text
    if attachments_block:
        body += "\n\n" + attachments_block
    return body


class MessageFormatter:
    """Build the MarkdownV2 body and the media list for one source message."""

    def __init__(self, senders: SenderResolver, attachments: AttachmentResolver) -> None:
        self._senders = senders
        self._attachments = attachments

    async def format(self, message_id: int, sender_id: str, text: str) -> tuple[str, list[MediaItem]]:
        sender = await self._senders.resolve(sender_id)
        resolved = await self._attachments.resolve(message_id)

        # Chat actions carry no meaningful text of their own.
        if resolved.action is not None:
            rendered = resolved.action
        else:
            rendered = render_text(text)

        return compose_body(sender, rendered, resolved.text), list(resolved.media)
