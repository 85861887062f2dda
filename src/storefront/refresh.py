"""Polling coordinator that keeps client views converging on server truth.

Each registered resource (the cart, an order being watched) is re-fetched
on its own interval. A refresh never starts while the previous one for
the same resource is still running, and ``close()`` tears every loop down.
Fetch functions are synchronous (they do blocking HTTP) and run in a
worker thread.
"""

import asyncio
from collections.abc import Callable

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_INTERVAL = 20.0


class RefreshCoordinator:
    def __init__(self, min_interval: float = 15.0, max_interval: float = 30.0):
        self.min_interval = min_interval
        self.max_interval = max_interval
        self._fetchers: dict[str, Callable[[], object]] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._in_flight: set[str] = set()
        self.completed: dict[str, int] = {}

    @property
    def keys(self):
        return sorted(self._tasks)

    def is_refreshing(self, key: str) -> bool:
        return key in self._in_flight

    def register(self, key: str, fetch: Callable[[], object], interval: float = DEFAULT_INTERVAL) -> None:
        """Start polling ``key``. Re-registering replaces the previous loop."""
        if not self.min_interval <= interval <= self.max_interval:
            raise ValueError(f"Refresh interval must be between {self.min_interval} and {self.max_interval} seconds")
        self.unregister(key)
        self._fetchers[key] = fetch
        self.completed.setdefault(key, 0)
        self._tasks[key] = asyncio.create_task(self._poll(key, interval), name=f"refresh:{key}")
        logger.debug("Registered refresh", key=key, interval=interval)

    def unregister(self, key: str) -> None:
        task = self._tasks.pop(key, None)
        if task is not None:
            task.cancel()
        self._fetchers.pop(key, None)

    async def refresh_now(self, key: str) -> bool:
        """Refresh immediately. Returns False if one is already running for ``key``."""
        if key not in self._fetchers:
            raise KeyError(key)
        return await self._refresh(key)

    async def close(self) -> None:
        """Cancel every polling loop and wait for them to finish."""
        tasks = list(self._tasks.values())
        for key in list(self._tasks):
            self.unregister(key)
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _poll(self, key: str, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            if not await self._refresh(key):
                logger.debug("Skipped refresh, previous one still running", key=key)

    async def _refresh(self, key: str) -> bool:
        if key in self._in_flight:
            return False
        fetch = self._fetchers[key]
        self._in_flight.add(key)
        try:
            await asyncio.to_thread(fetch)
            self.completed[key] = self.completed.get(key, 0) + 1
        except Exception as exc:
            # A failed poll is retried on the next tick.
            logger.warning("Refresh failed", key=key, error=str(exc), error_type=type(exc).__name__)
        finally:
            self._in_flight.discard(key)
        return True
