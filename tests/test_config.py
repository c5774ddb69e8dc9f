from __future__ import annotations

import asyncio

import pytest

from core.config import RelayConfig, parse_chat_mapping
from core.correlation import CorrelationStore
from core.models import MediaCaption, TextMessage


def test_parse_chat_mapping_converts_keys_and_values() -> None:
    chats = parse_chat_mapping({"2000000001": -100123, "2000000002": "@news", "2000000003": "-100456"})

    assert chats == {2000000001: -100123, 2000000002: "@news", 2000000003: -100456}


def test_chat_mapping_is_read_only() -> None:
    chats = parse_chat_mapping({"2000000001": 1})

    with pytest.raises(TypeError):
        chats[2000000002] = 2  # type: ignore[index]


@pytest.mark.parametrize(
    "raw",
    [
        [],
        {"abc": 1},
        {"2000000001": "news"},
        {"2000000001": None},
        {"2000000001": True},
        {"2000000001": "@"},
    ],
)
def test_invalid_chat_mapping_raises(raw) -> None:
    with pytest.raises(ValueError):
        parse_chat_mapping(raw)


def test_relay_config_defaults() -> None:
    config = RelayConfig()

    assert config.group_chat_threshold == 2_000_000_000
    assert config.preview_length == 1


def test_correlation_store_overwrites_and_reads() -> None:
    store = CorrelationStore()

    async def scenario():
        await store.put(1, TextMessage(10))
        await store.put(2, MediaCaption(20))
        await store.put(1, TextMessage(11))
        return await store.get(1), await store.get(2), await store.get(3)

    first, second, missing = asyncio.run(scenario())

    assert first == TextMessage(11)
    assert second == MediaCaption(20)
    assert missing is None
    assert len(store) == 2
    assert 2 in store and 3 not in store


def test_correlation_store_keeps_every_concurrent_write() -> None:
    store = CorrelationStore()

    async def scenario():
        await asyncio.gather(*(store.put(i, TextMessage(i)) for i in range(50)))

    asyncio.run(scenario())

    assert len(store) == 50


def test_correlation_store_blocks_readers_and_writers_while_locked() -> None:
    store = CorrelationStore()

    async def scenario():
        async with store._lock:
            writer = asyncio.create_task(store.put(1, TextMessage(10)))
            reader = asyncio.create_task(store.get(1))
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            blocked = (writer.done(), reader.done(), len(store))
        await writer
        return blocked, await reader

    blocked, value = asyncio.run(scenario())

    assert blocked == (False, False, 0)
    assert value == TextMessage(10)
