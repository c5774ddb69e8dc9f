"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to VK or Telegram payloads.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

# Telegram chat id or a public "@channel" username.
Recipient = Union[int, str]
ChatMapping = Mapping[int, Recipient]


class EventKind(enum.IntEnum):
    """Long-poll event type codes the relay acts on."""

    NEW = 4
    EDIT = 5


@dataclass(frozen=True)
class MessageEvent:
    """A new or edited message event taken from the long-poll stream."""

    kind: EventKind
    message_id: int
    chat_id: int
    text: str
    sender_id: str
    reply_conversation_message_id: Optional[int] = None


@dataclass(frozen=True)
class TextMessage:
    """Destination reference to a plain text message."""

    message_id: int


@dataclass(frozen=True)
class MediaCaption:
    """Destination reference to the captioned first item of a media group."""

    message_id: int


DestinationMessageRef = Union[TextMessage, MediaCaption]


class MessageAction(str, enum.Enum):
    """Chat-management actions carried instead of message content."""

    CHAT_PHOTO_UPDATE = "chat_photo_update"
    CHAT_PHOTO_REMOVE = "chat_photo_remove"
    CHAT_CREATE = "chat_create"
    CHAT_TITLE_UPDATE = "chat_title_update"
    CHAT_INVITE_USER = "chat_invite_user"
    CHAT_KICK_USER = "chat_kick_user"
    CHAT_PIN_MESSAGE = "chat_pin_message"
    CHAT_UNPIN_MESSAGE = "chat_unpin_message"
    CHAT_INVITE_USER_BY_LINK = "chat_invite_user_by_link"
    UNKNOWN = "unknown"

    @classmethod
    def from_type(cls, value: str) -> "MessageAction":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class ProfileAuthor:
    first_name: str
    last_name: str


@dataclass(frozen=True)
class GroupAuthor:
    name: str


@dataclass(frozen=True)
class UnknownAuthor:
    pass


PostAuthor = Union[ProfileAuthor, GroupAuthor, UnknownAuthor]


@dataclass(frozen=True)
class Photo:
    url: str


@dataclass(frozen=True)
class Video:
    # Quality label ("mp4_720", ...) -> direct file URL.
    files: Mapping[str, str]
    player: Optional[str]
    owner_id: int
    video_id: int


@dataclass(frozen=True)
class Document:
    title: str
    url: str
    preview_video: Optional[str] = None


@dataclass(frozen=True)
class AudioMessage:
    link_mp3: Optional[str]
    link_ogg: Optional[str]


@dataclass(frozen=True)
class Poll:
    question: str


@dataclass(frozen=True)
class WallPost:
    owner_id: int
    post_id: int
    author: PostAuthor = field(default_factory=UnknownAuthor)


@dataclass(frozen=True)
class Sticker:
    sticker_id: int


@dataclass(frozen=True)
class Link:
    url: str
    title: str
    caption: str = ""


@dataclass(frozen=True)
class Unsupported:
    """Any attachment the relay cannot describe in detail."""

    kind: str


Attachment = Union[
    Photo,
    Video,
    Document,
    AudioMessage,
    Poll,
    WallPost,
    Sticker,
    Link,
    Unsupported,
]


@dataclass(frozen=True)
class ForwardedMessage:
    from_id: int
    text: str


@dataclass(frozen=True)
class SourceMessage:
    """Full message as returned by the source platform read API."""

    id: int
    conversation_message_id: int
    peer_id: int
    text: str
    attachments: tuple[Attachment, ...] = ()
    forwarded: tuple[ForwardedMessage, ...] = ()
    action: Optional[MessageAction] = None


@dataclass(frozen=True)
class UserProfile:
    id: int
    first_name: str
    last_name: str


class MediaKind(str, enum.Enum):
    PHOTO = "photo"
    VIDEO = "video"
    AUDIO = "audio"


@dataclass(frozen=True)
class MediaItem:
    """Attachment relayed by URL as part of a media group."""

    kind: MediaKind
    url: str


@dataclass(frozen=True)
class ResolvedAttachments:
    """Output of attachment resolution for a single source message."""

    media: tuple[MediaItem, ...] = ()
    text: str = ""
    action: Optional[str] = None
