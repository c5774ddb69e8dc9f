"""Telegram MarkdownV2 helpers.

VK delivers message text HTML-escaped with ``<br>`` line breaks and inline
mentions such as ``[id1|Pavel]``. Everything here produces text that is
safe to send with ``parse_mode=MarkdownV2``.
"""

from __future__ import annotations

import html
import re

# Every character MarkdownV2 reserves outside of entities.
RESERVED_CHARS = "\\_*[]()~`>#+-=|{}.!"

VK_URL = "https://vk.com"

_RESERVED_RE = re.compile("[" + re.escape(RESERVED_CHARS) + "]")
_LINK_URL_RE = re.compile(r"[\\)]")
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
MENTION_RE = re.compile(r"\[((?:id|club|public)\d+)\|([^\]]+)\]")

# Placeholder left in the text while it is escaped; never survives rendering.
MENTION_SENTINEL = "\x01"


def escape_markdown(text: str) -> str:
    """Decode VK HTML text and escape it for MarkdownV2."""

    text = _BR_RE.sub("\n", text)
    text = html.unescape(text)
    return _RESERVED_RE.sub(lambda m: "\\" + m.group(0), text)


def escape_link_url(url: str) -> str:
    """Escape the characters MarkdownV2 reserves inside a link target."""

    return _LINK_URL_RE.sub(lambda m: "\\" + m.group(0), url)


def bold(text: str) -> str:
    return f"*{text}*"


def italic(text: str) -> str:
    return f"_{text}_"


def link(label: str, url: str) -> str:
    """Inline link; ``label`` must already be escaped."""

    return f"[{label}]({escape_link_url(url)})"


def quote(text: str) -> str:
    """Expandable block quote of already escaped text."""

    return ">" + "\n>".join(text.split("\n")) + "||"


def profile_url(screen_name: str) -> str:
    return f"{VK_URL}/{screen_name}"


def extract_mentions(text: str) -> tuple[str, list[str]]:
    """Cut VK mentions out of raw text.

    Returns the text with each mention replaced by ``MENTION_SENTINEL`` and
    the rendered links in order of appearance.
    """

    mentions: list[str] = []

    def _replace(match: re.Match) -> str:
        target, label = match.group(1), match.group(2)
        mentions.append(link(escape_markdown(label), profile_url(target)))
        return MENTION_SENTINEL

    return MENTION_RE.sub(_replace, text), mentions


def render_text(raw: str) -> str:
    """Escape raw VK text and turn its mentions into Telegram links.

    Mentions are swapped for a sentinel before escaping and put back after,
    so the link syntax is never escaped itself.
    """

    stripped, mentions = extract_mentions(raw.replace(MENTION_SENTINEL, ""))
    text = escape_markdown(stripped)
    for mention in mentions:
        text = text.replace(MENTION_SENTINEL, mention, 1)
    return text
