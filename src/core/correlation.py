"""In-memory correlation between source and destination messages."""

from __future__ import annotations

import asyncio
from typing import Optional

from core.models import DestinationMessageRef


class CorrelationStore:
    """Maps source message ids to the destination message they produced.

    Every read and write takes the same lock so an edit never observes a
    half-finished update. Entries live for the lifetime of the process.
    """

    def __init__(self) -> None:
        self._refs: dict[int, DestinationMessageRef] = {}
        self._lock = asyncio.Lock()

    async def get(self, source_id: int) -> Optional[DestinationMessageRef]:
        async with self._lock:
            return self._refs.get(source_id)

    async def put(self, source_id: int, ref: DestinationMessageRef) -> None:
        async with self._lock:
            self._refs[source_id] = ref

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._refs

    def __len__(self) -> int:
        return len(self._refs)
