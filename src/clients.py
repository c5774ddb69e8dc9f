"""Client factories for ferry.

Both clients are plain httpx wrappers. Tokens are read via python-dotenv
to keep secrets out of the repo and out of config.json.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

import settings
from adapters.telegram_bot import TelegramBotDestination
from adapters.vk_api import VkApiClient
from adapters.vk_longpoll import LongPollSupplier


def _require_env(name: str) -> str:
    load_dotenv()
    value = os.getenv(name)
    # Fail fast on missing credentials instead of failing on the first event.
    if not value:
        raise RuntimeError(f"Missing {name} in environment")
    return value


def build_vk_api() -> VkApiClient:
    """Create the VK API client from VK_TOKEN."""

    token = _require_env("VK_TOKEN")
    logging.getLogger(__name__).info("Initializing VK API client (v%s)", settings.VK_API_VERSION)
    return VkApiClient(
        token,
        api_version=settings.VK_API_VERSION,
        preview_length=settings.RELAY.preview_length,
    )


def build_long_poll(api: VkApiClient) -> LongPollSupplier:
    return LongPollSupplier(
        api,
        wait=settings.LONG_POLL_WAIT,
        retry_delay=settings.LONG_POLL_RETRY_DELAY,
    )


def build_telegram_bot() -> TelegramBotDestination:
    """Create the Bot API destination from BOT_TOKEN."""

    token = _require_env("BOT_TOKEN")
    logging.getLogger(__name__).info("Initializing Telegram bot client")
    return TelegramBotDestination(token)
