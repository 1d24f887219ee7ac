"""
Keyed query cache for the client side.

Entries are keyed by tuples such as ``("movies", "search", query, page)``.
Each entry moves ``IDLE -> FETCHING -> SUCCESS | ERROR``.  A fetch only
ever writes the entry for its own key, and every entry carries a
generation counter: a response that arrives after the entry was
overwritten (by a newer fetch or by an optimistic update) is dropped.

Invalidation marks entries stale; they are refetched the next time
they are observed through ``ensure``.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Optional, Tuple

from ..config import CLIENT_RETRY_COUNT, CLIENT_RETRY_DELAY_SECONDS


logger = logging.getLogger(__name__)

QueryKey = Tuple[Hashable, ...]
Fetcher = Callable[[], Awaitable[Any]]


class QueryStatus(str, enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class CacheEntry:
    key: QueryKey
    status: QueryStatus = QueryStatus.IDLE
    data: Any = None
    error: Optional[BaseException] = None
    stale: bool = True
    generation: int = 0


def key_has_prefix(key: QueryKey, prefix: QueryKey) -> bool:
    return key[: len(prefix)] == prefix


class QueryCache:
    """In-memory cache of query results with retry-once fetching."""

    def __init__(
        self,
        retry_count: int = CLIENT_RETRY_COUNT,
        retry_delay: float = CLIENT_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._entries: Dict[QueryKey, CacheEntry] = {}
        self._retry_count = retry_count
        self._retry_delay = retry_delay
        self._sleep = sleep

    def _entry(self, key: QueryKey) -> CacheEntry:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = CacheEntry(key=key)
        return entry

    def get_entry(self, key: QueryKey) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def get_data(self, key: QueryKey) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def keys(self, prefix: QueryKey = ()) -> List[QueryKey]:
        return [key for key in self._entries if key_has_prefix(key, prefix)]

    def set_data(self, key: QueryKey, data: Any) -> None:
        """Overwrite an entry's data directly.

        Reserved for optimistic updates and their rollback.  Any fetch
        already in flight for ``key`` will not overwrite this value.
        """
        entry = self._entry(key)
        entry.generation += 1
        entry.data = data
        entry.status = QueryStatus.SUCCESS
        entry.error = None

    def invalidate(self, prefix: QueryKey, predicate: Optional[Callable[[CacheEntry], bool]] = None) -> List[QueryKey]:
        """Mark entries under ``prefix`` (optionally filtered) as stale."""
        invalidated = []
        for key, entry in self._entries.items():
            if not key_has_prefix(key, prefix):
                continue
            if predicate is not None and not predicate(entry):
                continue
            entry.stale = True
            invalidated.append(key)
        if invalidated:
            logger.debug("Invalidated %d cache entries under %r", len(invalidated), prefix)
        return invalidated

    async def _call_with_retry(self, key: QueryKey, fetcher: Fetcher) -> Any:
        attempt = 0
        while True:
            try:
                return await fetcher()
            except Exception as exc:
                if attempt >= self._retry_count or not getattr(exc, "retryable", True):
                    raise
                attempt += 1
                logger.warning(
                    "Fetch for %r failed (%s), retrying in %.1fs", key, exc, self._retry_delay
                )
                await self._sleep(self._retry_delay)

    async def fetch(self, key: QueryKey, fetcher: Fetcher) -> Any:
        """Run ``fetcher`` and store its result under ``key``.

        Failures are retried at most ``retry_count`` times (non-retryable
        domain errors are not retried), recorded on the entry and
        re-raised.
        """
        entry = self._entry(key)
        entry.generation += 1
        generation = entry.generation
        entry.status = QueryStatus.FETCHING
        try:
            data = await self._call_with_retry(key, fetcher)
        except BaseException as exc:
            # A cancelled fetch must not leave the entry FETCHING.
            if entry.generation == generation:
                entry.status = QueryStatus.ERROR
                entry.error = exc
            raise
        if entry.generation == generation:
            entry.data = data
            entry.error = None
            entry.status = QueryStatus.SUCCESS
            entry.stale = False
        else:
            logger.debug("Dropping superseded response for %r", key)
        return data

    async def ensure(self, key: QueryKey, fetcher: Fetcher) -> Any:
        """Return cached data for ``key``, fetching when missing or stale."""
        entry = self._entries.get(key)
        if entry is not None and entry.status is QueryStatus.SUCCESS and not entry.stale:
            return entry.data
        return await self.fetch(key, fetcher)
