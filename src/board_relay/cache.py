# src/board_relay/cache.py

from __future__ import annotations

"""
Expiring single-flight cache.

Wraps an async fetch function so that:
- concurrent callers share one in-flight fetch,
- a fresh result is served from memory until cache_time_ms has passed,
- a failed fetch keeps the previous good data and is retried on the next call.

The fetch function receives the previously cached data (None before the first
success), which lets incremental fetchers ask only for what is new.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

Fetcher = Callable[[T | None], Awaitable[T]]


class ExpiringCache(Generic[T]):
    def __init__(
            self,
            fetch: Fetcher[T],
            cache_time_ms: int = 0,
            *,
            clock: Callable[[], float] = time.time,
    ) -> None:
        self.fetch = fetch
        self.cache_time_ms = int(cache_time_ms)
        self._clock = clock

        self._data: T | None = None
        self._last_update_ms: int | None = None
        self._pending: asyncio.Future[T] | None = None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @property
    def data(self) -> T | None:
        return self._data

    @property
    def last_update_ms(self) -> int | None:
        return self._last_update_ms

    @property
    def loading(self) -> bool:
        return self._pending is not None

    @property
    def cache_expired(self) -> bool:
        if self._last_update_ms is None:
            return True
        return self._now_ms() - self._last_update_ms >= self.cache_time_ms

    def get_data(self) -> asyncio.Future[T]:
        """
        Return a future for the current data.

        Must be called with a running event loop. The fetch function is invoked
        synchronously here (at most once per expiry), the returned future is shared
        by every caller until that fetch settles.
        """
        if self._pending is not None:
            return self._pending

        if not self.cache_expired:
            done: asyncio.Future[T] = asyncio.get_running_loop().create_future()
            done.set_result(self._data)  # type: ignore[arg-type]
            return done

        awaitable = self.fetch(self._data)
        self._pending = asyncio.ensure_future(self._settle(awaitable))
        return self._pending

    async def _settle(self, awaitable: Awaitable[T]) -> T:
        try:
            data = await awaitable
        except Exception:
            logger.debug("Cache fetch failed; keeping previous data", exc_info=True)
            raise
        else:
            self._data = data
            self._last_update_ms = self._now_ms()
            return data
        finally:
            self._pending = None
