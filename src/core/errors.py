"""Error taxonomy shared by the core and adapters.

Adapters translate transport-specific failures into these types so the
dispatcher can decide what degrades and what is dropped without knowing
about httpx or API payloads.
"""

from __future__ import annotations

from typing import Optional


class RelayError(Exception):
    """Base class for all relay errors."""


class MalformedEventError(RelayError):
    """A raw long-poll event does not have the expected shape."""


class SourceApiError(RelayError):
    """A read from the source platform failed."""


class DestinationApiError(RelayError):
    """A send or edit on the destination platform failed."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code
