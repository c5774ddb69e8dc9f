"""Static configuration for ferry.

Tunables (chat mapping location, VK long-poll settings, logging) live in an
optional config.json so they can be changed without touching Python.
Secrets never go here; they come from the environment (see clients.py).
"""

import json
import os

from core.config import GROUP_CHAT_THRESHOLD, RelayConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.environ.get("FERRY_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json if present; every key has a default."""

    if not os.path.exists(CONFIG_PATH):
        return {}

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _project_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Source peer id -> Telegram chat. Loaded once at startup by app.py.
CHATS_PATH = _project_path(_CONFIG.get("chats_path", "chats.json"))

# VK API and long-poll settings.
_vk = _CONFIG.get("vk", {})
VK_API_VERSION = str(_vk.get("api_version", "5.199"))
LONG_POLL_WAIT = int(_vk.get("wait", 25))
LONG_POLL_RETRY_DELAY = float(_vk.get("retry_delay", 5))

# Relay behaviour consumed by the core dispatcher.
_relay = _CONFIG.get("relay", {})
RELAY = RelayConfig(
    group_chat_threshold=int(_relay.get("group_chat_threshold", GROUP_CHAT_THRESHOLD)),
    preview_length=int(_relay.get("preview_length", 1)),
)

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {"enabled": True})
