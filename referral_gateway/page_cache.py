"""Short-lived, process-wide page cache with single-flight fetches.

Concurrent verifications all walk the directory from page 1. Wrapping the
API client in :class:`CachedPageFetcher` lets them share one request per page
while it is in flight, and reuse successful pages for ``ttl_seconds``.
Failed pages are never cached.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

from .affiliate_api import PageFetchResult
from .resolver import PageFetcher

log: Final = logging.getLogger("academy-gateway")


@dataclass(slots=True)
class _CacheEntry:
    expires_at: float
    result: PageFetchResult


class CachedPageFetcher:
    def __init__(
        self,
        fetcher: PageFetcher,
        ttl_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[int, _CacheEntry] = {}
        self._inflight: dict[int, asyncio.Task[PageFetchResult]] = {}

    async def fetch_page(self, page: int) -> PageFetchResult:
        entry = self._entries.get(page)
        if entry is not None:
            if entry.expires_at > self._clock():
                log.debug("Affiliate page %d served from cache", page)
                return entry.result
            del self._entries[page]

        task = self._inflight.get(page)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(page))
            self._inflight[page] = task
        else:
            log.debug("Joining in-flight fetch for affiliate page %d", page)

        # shield so one cancelled caller does not cancel the shared fetch
        return await asyncio.shield(task)

    async def _fetch_and_store(self, page: int) -> PageFetchResult:
        try:
            result = await self._fetcher.fetch_page(page)
        finally:
            self._inflight.pop(page, None)

        if result.ok and self._ttl > 0:
            self._entries[page] = _CacheEntry(
                expires_at=self._clock() + self._ttl, result=result
            )
        return result
