"""Latest-value observable slot shared between a poll loop and its observers."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Generic, TypeVar

T = TypeVar("T")


class LatestValue(Generic[T]):
    """Holds only the most recent value; a new publish overwrites the old one.

    Observers track the ``version`` they last saw and wait for a newer one,
    so a slow observer skips intermediate values instead of queueing them.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._value: T | None = None
        self._version = 0
        self._updated_at: datetime | None = None
        self._changed = asyncio.Event()

    @property
    def version(self) -> int:
        return self._version

    @property
    def updated_at(self) -> datetime | None:
        return self._updated_at

    @property
    def has_value(self) -> bool:
        return self._version > 0

    def get(self) -> T | None:
        return self._value

    def publish(self, value: T) -> int:
        self._value = value
        self._version += 1
        self._updated_at = datetime.now(timezone.utc)
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()
        return self._version

    async def wait_for_update(self, after_version: int, timeout: float | None = None) -> bool:
        """Wait until a value newer than ``after_version`` is published.

        Returns False on timeout.
        """
        while self._version <= after_version:
            event = self._changed
            try:
                await asyncio.wait_for(event.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                return False
        return True
