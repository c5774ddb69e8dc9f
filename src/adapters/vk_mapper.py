"""VK-to-core mapping adapter.

This keeps VK API payload details out of the core relay. Attachments with
an unknown type, or with a payload missing the fields we need, become
``Unsupported`` so they are still described to the reader.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from core.models import (
    Attachment,
    AudioMessage,
    Document,
    ForwardedMessage,
    GroupAuthor,
    Link,
    MessageAction,
    Photo,
    Poll,
    PostAuthor,
    ProfileAuthor,
    SourceMessage,
    Sticker,
    UnknownAuthor,
    Unsupported,
    UserProfile,
    Video,
    WallPost,
)

LOGGER = logging.getLogger(__name__)


def _photo(payload: dict) -> Photo:
    orig = payload.get("orig_photo")
    if orig and orig.get("url"):
        return Photo(url=orig["url"])
    # Older payloads only list resized copies; take the largest one.
    sizes = payload["sizes"]
    largest = max(sizes, key=lambda size: size.get("width", 0) * size.get("height", 0))
    return Photo(url=largest["url"])


def _video(payload: dict) -> Video:
    files = payload.get("files") or {}
    return Video(
        files={key: value for key, value in files.items() if isinstance(value, str)},
        player=payload.get("player"),
        owner_id=int(payload["owner_id"]),
        video_id=int(payload["id"]),
    )


def _document(payload: dict) -> Document:
    preview = payload.get("preview") or {}
    video = preview.get("video") or {}
    return Document(
        title=payload["title"],
        url=payload["url"],
        preview_video=video.get("src"),
    )


def _audio_message(payload: dict) -> AudioMessage:
    link_mp3 = payload.get("link_mp3")
    link_ogg = payload.get("link_ogg")
    if not link_mp3 and not link_ogg:
        raise KeyError("link_mp3")
    return AudioMessage(link_mp3=link_mp3, link_ogg=link_ogg)


def _post_author(payload: Any) -> PostAuthor:
    if not isinstance(payload, dict):
        return UnknownAuthor()
    kind = payload.get("type")
    if kind == "profile":
        return ProfileAuthor(payload.get("first_name", ""), payload.get("last_name", ""))
    if kind == "group":
        return GroupAuthor(payload.get("name", ""))
    return UnknownAuthor()


def _wall(payload: dict) -> WallPost:
    owner_id = payload.get("to_id", payload.get("owner_id"))
    return WallPost(
        owner_id=int(owner_id),
        post_id=int(payload["id"]),
        author=_post_author(payload.get("from")),
    )


def _link(payload: dict) -> Link:
    return Link(
        url=payload["url"],
        title=payload.get("title", ""),
        caption=payload.get("caption", ""),
    )


_BUILDERS = {
    "photo": _photo,
    "video": _video,
    "doc": _document,
    "audio_message": _audio_message,
    "poll": lambda payload: Poll(question=payload["question"]),
    "wall": _wall,
    "sticker": lambda payload: Sticker(sticker_id=int(payload["sticker_id"])),
    "link": _link,
}


def build_attachment(item: Any) -> Attachment:
    """Build a core attachment from one entry of a VK ``attachments`` list."""

    if not isinstance(item, dict):
        return Unsupported(kind="unknown")
    kind = item.get("type")
    if not isinstance(kind, str):
        return Unsupported(kind="unknown")
    builder = _BUILDERS.get(kind)
    if builder is None:
        return Unsupported(kind=str(kind))
    try:
        return builder(item[kind])
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        LOGGER.warning("Unreadable %s attachment: %s", kind, e)
        return Unsupported(kind=kind)


def build_forwarded(item: dict) -> ForwardedMessage:
    return ForwardedMessage(from_id=int(item["from_id"]), text=item.get("text", ""))


def build_action(payload: Any) -> Optional[MessageAction]:
    if not payload:
        return None
    kind = payload.get("type") if isinstance(payload, dict) else None
    return MessageAction.from_type(str(kind))


def build_message(item: dict) -> SourceMessage:
    """Build a core SourceMessage from a VK message object.

    Raises KeyError/TypeError/ValueError when the message itself is unusable.
    """

    return SourceMessage(
        id=int(item["id"]),
        conversation_message_id=int(item.get("conversation_message_id", 0)),
        peer_id=int(item.get("peer_id", 0)),
        text=item.get("text", ""),
        attachments=tuple(build_attachment(entry) for entry in item.get("attachments") or []),
        forwarded=tuple(build_forwarded(entry) for entry in item.get("fwd_messages") or []),
        action=build_action(item.get("action")),
    )


def build_profile(item: dict) -> UserProfile:
    return UserProfile(
        id=int(item["id"]),
        first_name=item.get("first_name", ""),
        last_name=item.get("last_name", ""),
    )
