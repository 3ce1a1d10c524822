"""Short-lived read cache shared by the tool handlers."""

import time
from collections.abc import Awaitable, Callable, Hashable
from typing import Any

import cachetools

from tickassist.utils.logging import get_logger

logger = get_logger(__name__)

CACHE_TTL_SECONDS = 30.0
CACHE_MAX_ENTRIES = 256

_MISSING = object()


class TTLCache:
    """Time-boxed cache of backing-service reads.

    Entries are keyed per credential so two accounts never share data.
    ``invalidate`` drops everything; a load that was already in flight when
    the cache was invalidated is returned to its caller but not stored.
    """

    def __init__(
        self,
        ttl: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        maxsize: int = CACHE_MAX_ENTRIES,
    ):
        self.ttl = ttl
        self._entries: cachetools.TTLCache = cachetools.TTLCache(maxsize=maxsize, ttl=ttl, timer=clock)
        self._generation = 0

    async def get_or_load(self, key: Hashable, loader: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value for ``key``, loading it when missing or expired."""
        value = self._entries.get(key, _MISSING)
        if value is not _MISSING:
            return value

        generation = self._generation
        value = await loader()
        if generation == self._generation:
            self._entries[key] = value
        return value

    def invalidate(self) -> None:
        """Drop every cached entry."""
        if self._entries:
            logger.debug(f"Invalidating {len(self._entries)} cached read(s)")
        self._entries.clear()
        self._generation += 1

    def __len__(self) -> int:
        return len(self._entries)
