"""Tests for the keyed client query cache."""

from __future__ import annotations

import asyncio
from typing import List

import pytest

from cinefav.client.cache import QueryCache, QueryStatus
from cinefav.errors import InvalidInput, UpstreamUnavailable


class _Sleeps:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _fetcher(*outcomes):
    """Fetcher returning (or raising) the queued outcomes in order."""
    queue = list(outcomes)
    calls = {"count": 0}

    async def fetch():
        calls["count"] += 1
        outcome = queue.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    fetch.calls = calls
    return fetch


@pytest.mark.asyncio
async def test_fetch_settles_entry_with_data():
    cache = QueryCache()
    key = ("movies", "search", "heat", 1)

    data = await cache.fetch(key, _fetcher("page-1"))

    entry = cache.get_entry(key)
    assert data == "page-1"
    assert entry.status is QueryStatus.SUCCESS
    assert entry.stale is False
    assert cache.get_data(key) == "page-1"


@pytest.mark.asyncio
async def test_ensure_serves_fresh_entries_from_cache():
    cache = QueryCache()
    key = ("movies", "favorites", 1)
    fetch = _fetcher("a", "b")

    assert await cache.ensure(key, fetch) == "a"
    assert await cache.ensure(key, fetch) == "a"
    assert fetch.calls["count"] == 1


@pytest.mark.asyncio
async def test_invalidated_entries_are_refetched_on_next_read():
    cache = QueryCache()
    key = ("movies", "favorites", 1)
    fetch = _fetcher("a", "b")
    await cache.ensure(key, fetch)

    assert cache.invalidate(("movies", "favorites")) == [key]

    assert await cache.ensure(key, fetch) == "b"


@pytest.mark.asyncio
async def test_invalidation_is_limited_to_prefix_and_predicate():
    cache = QueryCache()
    await cache.fetch(("movies", "search", "heat", 1), _fetcher(["tt1"]))
    await cache.fetch(("movies", "search", "heat", 2), _fetcher(["tt2"]))
    await cache.fetch(("movies", "favorites", 1), _fetcher([]))

    invalidated = cache.invalidate(("movies", "search"), lambda e: "tt2" in e.data)

    assert invalidated == [("movies", "search", "heat", 2)]
    assert cache.get_entry(("movies", "search", "heat", 1)).stale is False
    assert cache.get_entry(("movies", "favorites", 1)).stale is False


@pytest.mark.asyncio
async def test_retryable_failure_is_retried_once_with_fixed_delay():
    sleeps = _Sleeps()
    cache = QueryCache(retry_count=1, retry_delay=1.0, sleep=sleeps)
    fetch = _fetcher(UpstreamUnavailable("down"), "ok")

    assert await cache.fetch(("k",), fetch) == "ok"
    assert fetch.calls["count"] == 2
    assert sleeps.delays == [1.0]


@pytest.mark.asyncio
async def test_failure_after_retry_is_surfaced_and_recorded():
    sleeps = _Sleeps()
    cache = QueryCache(sleep=sleeps)
    fetch = _fetcher(UpstreamUnavailable("down"), UpstreamUnavailable("still down"))

    with pytest.raises(UpstreamUnavailable):
        await cache.fetch(("k",), fetch)

    entry = cache.get_entry(("k",))
    assert fetch.calls["count"] == 2
    assert entry.status is QueryStatus.ERROR
    assert str(entry.error) == "still down"


@pytest.mark.asyncio
async def test_invalid_input_is_not_retried():
    sleeps = _Sleeps()
    cache = QueryCache(sleep=sleeps)
    fetch = _fetcher(InvalidInput("bad page"))

    with pytest.raises(InvalidInput):
        await cache.fetch(("k",), fetch)

    assert fetch.calls["count"] == 1
    assert sleeps.delays == []


@pytest.mark.asyncio
async def test_pages_are_cached_independently():
    cache = QueryCache()
    await cache.fetch(("movies", "search", "heat", 1), _fetcher("p1"))

    await cache.fetch(("movies", "search", "heat", 2), _fetcher("p2"))

    assert cache.get_data(("movies", "search", "heat", 1)) == "p1"
    assert cache.get_entry(("movies", "search", "heat", 1)).stale is False


@pytest.mark.asyncio
async def test_superseded_response_does_not_overwrite_newer_data():
    cache = QueryCache()
    key = ("movies", "search", "heat", 1)
    release = asyncio.Event()

    async def slow():
        await release.wait()
        return "old"

    pending = asyncio.create_task(cache.fetch(key, slow))
    await asyncio.sleep(0)
    await cache.fetch(key, _fetcher("new"))
    release.set()

    assert await pending == "old"
    assert cache.get_data(key) == "new"


@pytest.mark.asyncio
async def test_set_data_makes_in_flight_fetch_inert():
    cache = QueryCache()
    key = ("movies", "search", "heat", 1)
    release = asyncio.Event()

    async def slow():
        await release.wait()
        return "server"

    pending = asyncio.create_task(cache.fetch(key, slow))
    await asyncio.sleep(0)
    cache.set_data(key, "optimistic")
    release.set()
    await pending

    assert cache.get_data(key) == "optimistic"


@pytest.mark.asyncio
async def test_cancelled_fetch_does_not_leave_entry_fetching():
    cache = QueryCache()
    key = ("movies", "search", "heat", 1)
    release = asyncio.Event()

    async def slow():
        await release.wait()
        return "never"

    pending = asyncio.create_task(cache.fetch(key, slow))
    await asyncio.sleep(0)
    assert cache.get_entry(key).status is QueryStatus.FETCHING

    pending.cancel()
    with pytest.raises(asyncio.CancelledError):
        await pending

    entry = cache.get_entry(key)
    assert entry.status is QueryStatus.ERROR
    assert isinstance(entry.error, asyncio.CancelledError)
    assert await cache.ensure(key, _fetcher("fresh")) == "fresh"
