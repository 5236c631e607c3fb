"""Background eviction of expired cache entries.

Expired rows are already invisible to readers; this loop only reclaims the
space they occupy. It runs independently of request traffic.
"""

import asyncio
import contextlib
import logging
import time
from enum import Enum

from nuget_context.config import settings
from nuget_context.protocols import CacheStore

logger = logging.getLogger(__name__)

MIN_EVICTION_INTERVAL_SECONDS = 5 * 60


class EvictionState(Enum):
    """Lifecycle of the eviction loop."""

    STOPPED = "stopped"
    SCHEDULED = "scheduled"
    SWEEPING = "sweeping"


def eviction_interval_seconds(ttl_minutes: float) -> float:
    """Sweep every half TTL, but never more often than every five minutes."""
    return max(MIN_EVICTION_INTERVAL_SECONDS, ttl_minutes * 60 / 2)


class CacheEvictionService:
    """Periodic sweep of expired cache entries.

    The loop is an asyncio task owned by this object: ``start`` arms it,
    ``stop`` cancels it. The sweep itself runs on the store's worker thread,
    so request handling keeps going while it runs.

    Example:
        ```python
        eviction = CacheEvictionService(store)
        eviction.start()
        ...
        await eviction.stop()

        # or
        async with CacheEvictionService(store):
            ...
        ```
    """

    # Hard floor for explicitly configured intervals
    MIN_INTERVAL_SECONDS = 1.0

    def __init__(
        self,
        store: CacheStore,
        interval_seconds: float | None = None,
        initial_delay_seconds: float | None = None,
    ) -> None:
        """Initialize the eviction service.

        Args:
            store: Cache store to sweep (required).
            interval_seconds: Time between sweeps. Defaults to half the configured TTL,
                at least five minutes.
            initial_delay_seconds: Delay before the first sweep. Defaults to settings.
        """
        if interval_seconds is None:
            interval_seconds = eviction_interval_seconds(settings.cache_ttl_minutes)
        if initial_delay_seconds is None:
            initial_delay_seconds = settings.eviction_initial_delay_seconds

        self._store = store
        self._interval = max(self.MIN_INTERVAL_SECONDS, interval_seconds)
        self._initial_delay = max(0.0, initial_delay_seconds)
        self._task: asyncio.Task | None = None
        self._state = EvictionState.STOPPED

        self.sweeps = 0
        self.failures = 0
        self.last_removed: int | None = None
        self.last_swept_at: float | None = None

    def start(self) -> None:
        """Arm the timer. Must be called from a running event loop; idempotent."""
        if self._task is not None:
            return

        logger.info("Cache eviction service starting. Eviction interval: %.0fs", self._interval)
        self._state = EvictionState.SCHEDULED
        self._task = asyncio.get_running_loop().create_task(self._run(), name="cache-eviction")

    async def stop(self) -> None:
        """Cancel the timer without waiting for an in-flight sweep to finish."""
        if self._task is None:
            return

        logger.info("Cache eviction service stopping")
        self._state = EvictionState.STOPPED
        task, self._task = self._task, None
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        await asyncio.sleep(self._initial_delay)
        while True:
            await self.sweep_once()
            await asyncio.sleep(self._interval)

    async def sweep_once(self) -> int | None:
        """Run one sweep, logging instead of raising on failure.

        Returns:
            Number of removed entries, or None if the sweep failed
        """
        previous = self._state
        self._state = EvictionState.SWEEPING
        logger.debug("Cache eviction sweep running")
        try:
            removed = await self._store.sweep_expired()
        except Exception:
            self.failures += 1
            logger.exception("Error occurred during cache eviction")
            return None
        finally:
            if self._state is EvictionState.SWEEPING:
                self._state = previous

        self.sweeps += 1
        self.last_removed = removed
        self.last_swept_at = time.time()
        return removed

    async def __aenter__(self) -> "CacheEvictionService":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    @property
    def state(self) -> EvictionState:
        return self._state

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None
