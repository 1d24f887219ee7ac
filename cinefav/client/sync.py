"""
Optimistic favorites toggling on top of ``QueryCache``.

A toggle writes the expected result into the cache before the request
is sent and keeps the previous value in a ``MutationRecord``.  When the
request settles the record is either committed (the prior value is
discarded) or rolled back (the prior value is written back).  Either
way the favorites listings, and the search pages that show the
toggled title, are marked stale so the next read goes to the server.

Only one mutation per title may be in flight; a second toggle on the
same title while the first is pending is ignored.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from ..config import CLIENT_FAVORITES_PAGE_SIZE
from ..errors import InvalidInput
from ..models import count_pages, normalize_identity
from ..movies.schemas import FavoritesResponse, SearchMoviesResponse
from .api import MovieApiClient
from .cache import CacheEntry, QueryCache, QueryKey
from .pagination import parse_total


logger = logging.getLogger(__name__)

SEARCH_PREFIX: QueryKey = ("movies", "search")
FAVORITES_PREFIX: QueryKey = ("movies", "favorites")


def search_key(query: str, page: int) -> QueryKey:
    return SEARCH_PREFIX + (query, page)


def favorites_key(page: int) -> QueryKey:
    return FAVORITES_PREFIX + (page,)


class MutationStatus(str, enum.Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class MutationRecord:
    key: QueryKey
    external_id: str
    action: str
    prior_value: Any = None
    status: MutationStatus = MutationStatus.PENDING
    error: Optional[BaseException] = None


def flip_favorite(results: SearchMoviesResponse, identity: str) -> SearchMoviesResponse:
    """Copy of ``results`` with ``is_favorite`` inverted for one title."""
    movies = [
        m.model_copy(update={"is_favorite": not m.is_favorite})
        if normalize_identity(m.external_id) == identity
        else m
        for m in results.movies
    ]
    return results.model_copy(update={"movies": movies})


def drop_favorite(page: FavoritesResponse, identity: str, page_size: int) -> FavoritesResponse:
    favorites = [f for f in page.favorites if f.identity != identity]
    removed = len(page.favorites) - len(favorites)
    total = max(0, parse_total(page.total_results) - removed)
    return page.model_copy(
        update={
            "favorites": favorites,
            "count": len(favorites),
            "total_results": str(total),
            "total_pages": count_pages(total, page_size),
        }
    )


def _shows_title(entry: CacheEntry, identity: str) -> bool:
    data = entry.data
    if not isinstance(data, SearchMoviesResponse):
        return False
    return any(normalize_identity(m.external_id) == identity for m in data.movies)


class FavoritesSynchronizer:
    """Client-side view of search results and favorites."""

    def __init__(
        self,
        api: MovieApiClient,
        cache: Optional[QueryCache] = None,
        favorites_page_size: int = CLIENT_FAVORITES_PAGE_SIZE,
    ) -> None:
        self._api = api
        self._favorites_page_size = favorites_page_size
        self.cache = cache or QueryCache()
        self._in_flight: Dict[str, MutationRecord] = {}

    # ------------------------------------------------------------------
    # Reads

    async def search(self, query: str, page: int = 1) -> SearchMoviesResponse:
        return await self.cache.ensure(
            search_key(query, page), lambda: self._api.search_movies(query, page)
        )

    async def favorites(self, page: int = 1) -> FavoritesResponse:
        return await self.cache.ensure(
            favorites_key(page), lambda: self._api.get_favorites(page)
        )

    # ------------------------------------------------------------------
    # Mutations

    def is_pending(self, external_id: str) -> bool:
        return normalize_identity(external_id) in self._in_flight

    async def toggle_favorite(
        self, query: str, page: int, external_id: str
    ) -> Optional[MutationRecord]:
        """Add or remove a title shown on a cached search page.

        Returns the settled mutation record, or ``None`` when a mutation
        for the same title is still pending.
        """
        key = search_key(query, page)
        identity = normalize_identity(external_id)
        results = self.cache.get_data(key)
        if not isinstance(results, SearchMoviesResponse):
            raise InvalidInput(f"No cached results for {query!r} page {page}")
        movie = next(
            (m for m in results.movies if normalize_identity(m.external_id) == identity),
            None,
        )
        if movie is None:
            raise InvalidInput(f"{external_id} is not on this page")

        if movie.is_favorite:
            action = "remove"
            call = lambda: self._api.remove_from_favorites(movie.external_id)  # noqa: E731
        else:
            action = "add"
            favorite = movie.to_favorite()
            call = lambda: self._api.add_to_favorites(favorite)  # noqa: E731
        return await self._mutate(key, identity, action, flip_favorite(results, identity), call)

    async def remove_favorite(self, page: int, external_id: str) -> Optional[MutationRecord]:
        """Remove a title from a cached favorites page."""
        key = favorites_key(page)
        identity = normalize_identity(external_id)
        listing = self.cache.get_data(key)
        optimistic = None
        if isinstance(listing, FavoritesResponse):
            optimistic = drop_favorite(listing, identity, self._favorites_page_size)
        return await self._mutate(
            key,
            identity,
            "remove",
            optimistic,
            lambda: self._api.remove_from_favorites(external_id),
        )

    async def _mutate(
        self,
        key: QueryKey,
        identity: str,
        action: str,
        optimistic: Any,
        call: Callable[[], Awaitable[Any]],
    ) -> Optional[MutationRecord]:
        if identity in self._in_flight:
            logger.info("Ignoring %s of %s: a mutation is already pending", action, identity)
            return None

        record = MutationRecord(
            key=key,
            external_id=identity,
            action=action,
            prior_value=self.cache.get_data(key),
        )
        self._in_flight[identity] = record
        if optimistic is not None:
            self.cache.set_data(key, optimistic)

        try:
            await call()
        except BaseException as exc:
            # Cancellation and timeouts roll back too.
            if optimistic is not None:
                self.cache.set_data(key, record.prior_value)
            record.status = MutationStatus.ROLLED_BACK
            record.error = exc
            logger.warning("Rolled back %s of %s: %s", action, identity, exc)
            raise
        else:
            record.status = MutationStatus.COMMITTED
            record.prior_value = None
        finally:
            del self._in_flight[identity]
            self._invalidate_affected(identity)
        return record

    def _invalidate_affected(self, identity: str) -> None:
        self.cache.invalidate(FAVORITES_PREFIX)
        self.cache.invalidate(SEARCH_PREFIX, lambda entry: _shows_title(entry, identity))
