import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import Enum

from .errors import RefreshChannelClosed
from .outcomes import Snapshot, utcnow
from .settings import ProbeConfig

logger = logging.getLogger(__name__)


class CacheState(str, Enum):
    FRESH = "fresh"
    STALE = "stale"


class RefreshSignal:
    """
    Capacity-one notification channel for background refreshes.

    - notify() never blocks; notifying while a signal is pending is a no-op
    - wait() returns True for each delivered signal, False once closed
    - notify() after close() raises RefreshChannelClosed
    """

    def __init__(self):
        self._queue: asyncio.Queue[bool] = asyncio.Queue(maxsize=1)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> bool:
        return self._queue.full()

    def notify(self) -> bool:
        """
        Returns True if a new signal was queued, False if one was already pending.
        """
        if self._closed:
            raise RefreshChannelClosed()
        try:
            self._queue.put_nowait(True)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Wake a waiting receiver; it sees the sentinel and stops.
        if not self._queue.full():
            self._queue.put_nowait(False)

    async def wait(self) -> bool:
        if self._closed and self._queue.empty():
            return False
        return await self._queue.get() and not self._closed


class ResultCache:
    """
    Single-slot holder for the latest snapshot.

    What this implementation does:
    - Serves the held snapshot without any I/O while it is younger than
      `fresh_window_s`
    - Between `fresh_window_s` and `max_stale_s` serves it as stale and
      signals the background refresher
    - Past `max_stale_s`, or before the first snapshot, blocks the caller on
      a refresh

    Readers take no lock: the slot is swapped in a single assignment, so a
    reader sees either the old or the new snapshot. Refreshes are
    serialised by `_write_lock`.
    """

    def __init__(
        self,
        collect: Callable[[], Awaitable[Snapshot]],
        config: ProbeConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._collect = collect
        self.fresh_window_s = config.fresh_window_s
        self.max_stale_s = config.max_stale_s
        self._clock = clock
        self._snapshot: Snapshot | None = None
        self._write_lock = asyncio.Lock()
        self._signal = RefreshSignal()

    @property
    def snapshot(self) -> Snapshot | None:
        return self._snapshot

    @property
    def signal(self) -> RefreshSignal:
        return self._signal

    def _is_fresh(self, snapshot: Snapshot) -> bool:
        return snapshot.age_s(self._clock()) < self.fresh_window_s

    async def get(self) -> tuple[Snapshot, CacheState]:
        """
        Return the current snapshot and whether it is fresh or stale.

        May block on a full probing round (empty cache or past the hard
        ceiling). Raises FatalProbeError subclasses only.
        """
        snapshot = self._snapshot
        if snapshot is not None:
            age = snapshot.age_s(self._clock())
            if age < self.fresh_window_s:
                return snapshot, CacheState.FRESH

            if self._signal.notify():
                logger.debug("Snapshot is %.0fs old, background refresh signalled", age)

            if age < self.max_stale_s:
                return snapshot, CacheState.STALE

            logger.info("Snapshot is %.0fs old, refreshing synchronously", age)

        await self.refresh()
        return self._snapshot, CacheState.FRESH

    async def refresh(self) -> None:
        """
        Replace the slot with a new snapshot unless another refresh just did.
        """
        async with self._write_lock:
            current = self._snapshot
            if current is not None and self._is_fresh(current):
                logger.debug("Skipping refresh, snapshot from %s is still fresh", current.created_at)
                return

            logger.info("Refreshing results")
            snapshot = await self._collect()
            self._snapshot = snapshot
            logger.info("Results refreshed at %s (%d domains)", snapshot.created_at, len(snapshot))

    async def run_refresher(self) -> None:
        """
        Background loop: one refresh per delivered signal until close().

        Errors from refresh() propagate and end the loop.
        """
        while await self._signal.wait():
            await self.refresh()

    def close(self) -> None:
        self._signal.close()
