"""Generic poll loop: fetch, publish, pick the next delay, sleep, repeat."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Awaitable, Callable, Generic, Protocol, TypeVar

from comwatt_monitor.domain.errors import SITE_NOT_SELECTED, DomainError, GenericDomainError
from comwatt_monitor.domain.models import Settings
from comwatt_monitor.logging.context import bind_context
from comwatt_monitor.polling.slot import LatestValue
from comwatt_monitor.result import Failure, Result, Success

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SiteSource(Protocol):
    async def get_site_id(self) -> int | None: ...

    async def get_settings(self) -> Settings: ...


class ReAuthenticator(Protocol):
    def try_auto_login(self, on_success=None, on_failure=None, invalidate: bool = False): ...


@dataclass
class LoopState:
    """Snapshot of one poll loop."""

    iterations: int = 0
    failures: int = 0
    last_fetch_at: datetime | None = None
    last_delay_seconds: float | None = None
    is_running: bool = False


class PollingUseCase(ABC, Generic[T]):
    """One data domain polled forever.

    Each iteration reads the selected site fresh, makes its API call(s)
    and yields a typed result. Failures are yielded too, then retried
    after ``retry_delay``; an HTTP 401 additionally spawns a detached
    re-authentication that the loop never awaits. Sleeping and fetching
    are both cancellable.
    """

    name = "poller"
    # False for domains that are not tied to a site.
    requires_site = True

    def __init__(
        self,
        settings: SiteSource,
        session: ReAuthenticator | None,
        success_delay: float,
        retry_delay: float,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings
        self._session = session
        self._success_delay = success_delay
        self._retry_delay = retry_delay
        self._clock = clock
        self._state = LoopState()
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> LoopState:
        return self._state

    @abstractmethod
    async def _fetch(self, site_id: int | None) -> Result[T, DomainError]:
        """Domain-specific call and mapping for the selected site.

        ``site_id`` is only None when ``requires_site`` is False.
        """

    def next_delay(self, value: T) -> float:
        """Seconds to wait after a successful fetch."""
        return self._success_delay

    async def fetch_once(self) -> Result[T, DomainError]:
        """One fetch with no scheduling; never raises except on cancellation."""
        return await self._guarded(self._fetch)

    async def _guarded(
        self, fetch: Callable[[int | None], Awaitable[Result[T, DomainError]]]
    ) -> Result[T, DomainError]:
        try:
            site_id = await self._settings.get_site_id()
            if site_id is None and self.requires_site:
                return Failure(SITE_NOT_SELECTED)
            return await fetch(site_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("%s: unexpected error while fetching", self.name)
            return Failure(GenericDomainError(str(e) or type(e).__name__))

    async def single_fetch(self) -> Result[T, DomainError]:
        """Manual refresh entry point."""
        return await self.fetch_once()

    async def stream(self) -> AsyncIterator[Result[T, DomainError]]:
        """Yield every iteration's result in order until stopped or cancelled.

        The next fetch starts only after the consumer has taken the
        previous result and the delay has elapsed.
        """
        self._stop_event.clear()
        self._state.is_running = True
        try:
            while not self._stop_event.is_set():
                result = await self.fetch_once()
                delay = self._after_fetch(result)
                yield result
                if await self._sleep(delay):
                    break
        finally:
            self._state.is_running = False

    async def run(self, slot: LatestValue[Result[T, DomainError]]) -> None:
        """Publish every result into ``slot`` until stopped or cancelled."""
        bind_context(poller=self.name)
        logger.info("%s loop starting", self.name)
        try:
            async for result in self.stream():
                slot.publish(result)
        finally:
            logger.info("%s loop stopped after %d iterations", self.name, self._state.iterations)

    def stop(self) -> None:
        self._stop_event.set()

    def _after_fetch(self, result: Result[T, DomainError]) -> float:
        self._state.iterations += 1
        self._state.last_fetch_at = self._clock()

        if isinstance(result, Success):
            delay = self.next_delay(result.value)
            logger.debug("%s: fetched, next in %.1fs", self.name, delay)
        else:
            self._state.failures += 1
            delay = self._retry_delay
            logger.warning(
                "%s: fetch failed (%s), retrying in %.1fs", self.name, result.error.message, delay
            )
            if result.error.is_unauthorized and self._session is not None:
                self._session.try_auto_login(invalidate=True)

        self._state.last_delay_seconds = delay
        return delay

    async def _sleep(self, delay: float) -> bool:
        """Wait ``delay`` seconds; True when stop() was called meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False


class PollerGroup:
    """Loops sharing one lifecycle; stop cancels them, start makes fresh tasks."""

    def __init__(self) -> None:
        self._entries: list[tuple[PollingUseCase, LatestValue]] = []
        self._tasks: list[asyncio.Task] = []

    def add(self, use_case: PollingUseCase[T], slot: LatestValue[Result[T, DomainError]]) -> None:
        self._entries.append((use_case, slot))

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(use_case.run(slot), name=f"poll-{use_case.name}")
            for use_case, slot in self._entries
        ]
        logger.info("Started %d poll loops", len(self._tasks))

    async def stop(self) -> None:
        for use_case, _ in self._entries:
            use_case.stop()
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Poll loops stopped")
