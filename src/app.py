"""Application entry point for the ferry relay."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from clients import build_long_poll, build_telegram_bot, build_vk_api
from core.attachments import AttachmentResolver
from core.config import parse_chat_mapping
from core.correlation import CorrelationStore
from core.dispatcher import EventDispatcher
from core.formatter import MessageFormatter
from core.models import ChatMapping
from core.senders import SenderResolver

NAME = "FERRY"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    # Tokens end up in request URLs (Bot API) and form data (VK).
    redact_cfg = config.get("redact", {"enabled": True}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", ["VK_TOKEN", "BOT_TOKEN"]):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/ferry.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    # httpx logs every request URL at INFO, Bot API URLs include the token.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def _load_chats() -> ChatMapping:
    """Load the chat mapping; any problem here is fatal before the relay starts."""

    with open(settings.CHATS_PATH, "r", encoding="utf-8") as handle:
        return parse_chat_mapping(json.load(handle))


async def _relay(chats: ChatMapping) -> None:
    logger = logging.getLogger(__name__)

    api = build_vk_api()
    bot = build_telegram_bot()
    long_poll = build_long_poll(api)

    senders = SenderResolver(api)
    formatter = MessageFormatter(senders, AttachmentResolver(api, senders))
    dispatcher = EventDispatcher(
        chats=chats,
        store=CorrelationStore(),
        formatter=formatter,
        source=api,
        destination=bot,
        config=settings.RELAY,
    )

    logger.info("Relaying %s chats. Listening for events...", len(chats))
    try:
        # Events are handled strictly one at a time, in long-poll order.
        async for raw in long_poll.events():
            try:
                await dispatcher.handle(raw)
            except Exception:
                logger.exception("Error while processing event")
    finally:
        await long_poll.aclose()
        await api.aclose()
        await bot.aclose()


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting ferry")
    chats = _load_chats()
    logger.info("%s chats are loaded from %s", len(chats), settings.CHATS_PATH)

    try:
        asyncio.run(_relay(chats))
    except KeyboardInterrupt:
        logger.info("Stopped")


def _chats() -> None:
    _print_banner()
    chats = _load_chats()
    if not chats:
        print("No chats configured.")
        return
    for index, (source_id, recipient) in enumerate(sorted(chats.items()), start=1):
        print(f"{index}. vk:{source_id} -> telegram:{recipient}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="ferry")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the relay")
    subparsers.add_parser("chats", help="Show the configured VK -> Telegram chat mapping")

    args = parser.parse_args(argv)
    if args.command == "chats":
        _chats()
        return
    _run()


if __name__ == "__main__":
    main()
