"""Background refresh of the state cache."""
from __future__ import annotations

import asyncio
import logging

from ..interfaces.chain import ChainReader
from .state_cache import StateCache

logger = logging.getLogger(__name__)


class StateRefresher:
    """Polls the chain on a fixed interval and publishes into the cache.

    Pool state and price are fetched independently: a failure on one is
    logged and leaves the cached value of that field untouched.
    """

    def __init__(
        self, reader: ChainReader, cache: StateCache, interval_seconds: float = 180.0
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._reader = reader
        self._cache = cache
        self._interval = interval_seconds
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._warned_no_oracle = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Single cycle
    # ------------------------------------------------------------------

    async def _refresh_pool_state(self) -> None:
        try:
            state = await self._reader.get_pool_state()
        except Exception as e:
            logger.warning("State refresh: get pool state failed: %s", e)
            return
        self._cache.set_pool_state(state)
        logger.debug("Pool state refreshed: %s", state)

    async def _refresh_native_price(self) -> None:
        if not self._reader.has_oracle:
            if not self._warned_no_oracle:
                logger.warning("State refresh: no price oracle configured, skipping price")
                self._warned_no_oracle = True
            return
        try:
            price = await self._reader.get_native_price()
        except Exception as e:
            logger.warning("State refresh: get native price failed: %s", e)
            return
        self._cache.set_native_price(price)
        logger.debug("Native price refreshed: %s", price)

    async def refresh_once(self) -> None:
        """Fetch and publish both fields; never raises for fetch failures."""
        await asyncio.gather(self._refresh_pool_state(), self._refresh_native_price())

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def _wait_for_stop(self, stop: asyncio.Event, delay: float) -> bool:
        """Sleep up to ``delay``; True if the stop signal arrived first."""
        if delay <= 0:
            return stop.is_set()
        try:
            await asyncio.wait_for(stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Refresh now, then every interval until ``stop`` is set.

        The stop signal is only checked between cycles. A cycle that overruns
        its slot makes the next one start late; missed ticks are not queued.
        """
        stop = stop or self._stop
        loop = asyncio.get_running_loop()
        logger.info("State refresher started (every %.0f seconds)", self._interval)

        await self.refresh_once()
        next_run = loop.time() + self._interval

        while not stop.is_set():
            if await self._wait_for_stop(stop, next_run - loop.time()):
                break
            await self.refresh_once()

            next_run += self._interval
            now = loop.time()
            if next_run < now:
                next_run = now

        logger.info("State refresher stopped")

    def start(self) -> asyncio.Task[None]:
        """Launch :meth:`run` as a background task."""
        if self.running:
            raise RuntimeError("State refresher already running")
        self._stop.clear()
        self._task = asyncio.create_task(self.run(self._stop), name="state-refresher")
        return self._task

    async def stop(self) -> None:
        """Signal stop and wait for the in-flight cycle to finish."""
        self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None
