"""Attachment resolution.

Fetches the full source message and splits its attachments into media
relayed by URL and description lines appended below the message text.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.errors import SourceApiError
from core.markup import bold, escape_markdown, italic, link, quote
from core.models import (
    Attachment,
    AudioMessage,
    Document,
    GroupAuthor,
    Link,
    MediaItem,
    MediaKind,
    MessageAction,
    Photo,
    Poll,
    PostAuthor,
    ProfileAuthor,
    ResolvedAttachments,
    SourceMessage,
    Sticker,
    Unsupported,
    Video,
    WallPost,
)
from core.ports import SourcePort
from core.senders import SenderResolver

LOGGER = logging.getLogger(__name__)

ATTACHMENTS_HEADER = "🔗 " + bold("Вложения") + ":"
UNSUPPORTED_TEXT = "Вложение не поддерживается"
UNAVAILABLE_TEXT = italic("Не удалось загрузить вложения")
UNKNOWN_AUTHOR = "Неизвестно"

STICKER_URL = "https://vk.com/sticker/1-{sticker_id}-128b"
VIDEO_URL = "https://vk.com/video{owner_id}_{video_id}"
WALL_URL = "https://vk.com/wall{owner_id}_{post_id}"

# Best quality first.
VIDEO_QUALITIES = ("mp4_720", "mp4_480", "mp4_360", "mp4_240", "mp4_144")

_ACTION_PHRASES = {
    MessageAction.CHAT_PHOTO_UPDATE: "изменил(а) фотографию",
    MessageAction.CHAT_PHOTO_REMOVE: "удалил(а) фотографию",
    MessageAction.CHAT_CREATE: "создал(а) чат",
    MessageAction.CHAT_TITLE_UPDATE: "обновил(а) название чата",
    MessageAction.CHAT_INVITE_USER: "пригласил(а) пользователя",
    MessageAction.CHAT_KICK_USER: "исключил(а) пользователя",
    MessageAction.CHAT_PIN_MESSAGE: "закрепил(а) сообщение",
    MessageAction.CHAT_UNPIN_MESSAGE: "открепил(а) сообщение",
    MessageAction.CHAT_INVITE_USER_BY_LINK: "присоединился по ссылке",
    MessageAction.UNKNOWN: "выполнил(а) действие в чате",
}


def describe_action(action: MessageAction) -> str:
    """Return the italic one-line description of a chat action."""

    return italic(escape_markdown(_ACTION_PHRASES[action]))


def _author_name(author: PostAuthor) -> str:
    if isinstance(author, ProfileAuthor):
        return f"{author.first_name} {author.last_name}"
    if isinstance(author, GroupAuthor):
        return author.name
    return UNKNOWN_AUTHOR


def _video_file(video: Video) -> Optional[str]:
    for quality in VIDEO_QUALITIES:
        url = video.files.get(quality)
        if url:
            return url
    return None


def classify_attachment(attachment: Attachment) -> tuple[Optional[MediaItem], Optional[str]]:
    """Map one attachment to a media item, a description line, or both."""

    if isinstance(attachment, Photo):
        return MediaItem(MediaKind.PHOTO, attachment.url), None

    if isinstance(attachment, Sticker):
        url = STICKER_URL.format(sticker_id=attachment.sticker_id)
        return MediaItem(MediaKind.PHOTO, url), None

    if isinstance(attachment, AudioMessage):
        # Telegram only accepts MP3 for audio sent by URL.
        url = attachment.link_mp3 or attachment.link_ogg
        if url:
            return MediaItem(MediaKind.AUDIO, url), None
        return None, UNSUPPORTED_TEXT

    if isinstance(attachment, Document):
        media = None
        if attachment.preview_video:
            media = MediaItem(MediaKind.VIDEO, attachment.preview_video)
        return media, link(escape_markdown(attachment.title), attachment.url)

    if isinstance(attachment, Video):
        url = _video_file(attachment)
        if url:
            return MediaItem(MediaKind.VIDEO, url), None
        player = attachment.player or VIDEO_URL.format(
            owner_id=attachment.owner_id, video_id=attachment.video_id
        )
        return None, link("Видео", player)

    if isinstance(attachment, Poll):
        return None, "📊 " + italic(escape_markdown(attachment.question))

    if isinstance(attachment, WallPost):
        label = escape_markdown(f"Публикация от {_author_name(attachment.author)}")
        url = WALL_URL.format(owner_id=attachment.owner_id, post_id=attachment.post_id)
        return None, link(label, url)

    if isinstance(attachment, Link):
        label = f"{escape_markdown(attachment.title)} \\| {escape_markdown(attachment.caption)}"
        return None, "Ссылка " + italic(link(label, attachment.url))

    if not isinstance(attachment, Unsupported):
        LOGGER.warning("No handler for attachment %r", attachment)
    return None, UNSUPPORTED_TEXT


def build_attachments_block(lines: list[str]) -> str:
    if not lines:
        return ""
    return "\n".join([ATTACHMENTS_HEADER, *lines])


class AttachmentResolver:
    """Resolve media, description lines, and chat actions for a message."""

    def __init__(self, source: SourcePort, senders: SenderResolver) -> None:
        self._source = source
        self._senders = senders

    async def resolve(self, message_id: int) -> ResolvedAttachments:
        try:
            message = await self._source.get_message(message_id)
        except SourceApiError as e:
            LOGGER.warning("Attachment lookup failed for message %s: %s", message_id, e)
            message = None
        if message is None:
            return ResolvedAttachments(text=build_attachments_block([UNAVAILABLE_TEXT]))

        if message.action is not None:
            return ResolvedAttachments(action=describe_action(message.action))

        return await self._resolve_content(message)

    async def _resolve_content(self, message: SourceMessage) -> ResolvedAttachments:
        media: list[MediaItem] = []
        lines: list[str] = []

        for attachment in message.attachments:
            item, line = classify_attachment(attachment)
            if item is not None:
                media.append(item)
            if line is not None:
                lines.append(line)

        for forwarded in message.forwarded:
            sender = await self._senders.resolve(str(forwarded.from_id))
            lines.append(
                f"Пересланное сообщение от {sender}\n{quote(escape_markdown(forwarded.text))}"
            )

        return ResolvedAttachments(media=tuple(media), text=build_attachments_block(lines))
