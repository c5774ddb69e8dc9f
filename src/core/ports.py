"""Ports (interfaces) used by the core relay.

Ports define the minimal contracts for the source read transport and the
destination send/edit transport so that the core can be exercised with
fakes and reused with different clients.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from core.models import MediaItem, Recipient, SourceMessage, UserProfile


class SourcePort(Protocol):
    """Read operations required from the source platform.

    Implementations raise ``SourceApiError`` on any failure.
    """

    async def get_message(self, message_id: int) -> Optional[SourceMessage]:
        ...

    async def get_profile(self, user_id: int) -> Optional[UserProfile]:
        ...

    async def get_message_id_by_conversation_id(
        self, peer_id: int, conversation_message_id: int
    ) -> Optional[int]:
        ...


class DestinationPort(Protocol):
    """Send and edit operations required from the destination platform.

    Implementations raise ``DestinationApiError`` on any failure.
    """

    async def send_text(self, chat: Recipient, body: str, reply_to: Optional[int] = None) -> int:
        ...

    async def send_media_group(
        self,
        chat: Recipient,
        media: Sequence[MediaItem],
        caption: str,
        reply_to: Optional[int] = None,
    ) -> list[int]:
        ...

    async def edit_text(self, chat: Recipient, message_id: int, body: str) -> None:
        ...

    async def edit_caption(self, chat: Recipient, message_id: int, body: str) -> None:
        ...
