"""
Search use-case: catalog hits annotated with favorites membership.

``annotate`` is a pure function over two already fetched inputs.  The
service performs exactly one favorites reconciliation per request,
after the provider has answered, so membership reflects the
collection at the time the response is built.
"""

from __future__ import annotations

from typing import Iterable, List

from ..models import CatalogMovie, SearchResultItem
from .omdb_service import OmdbService
from .schemas import SearchMoviesResponse
from .store import FavoritesSnapshot, FavoritesStore


def annotate(
    raw_items: Iterable[CatalogMovie], favorites: FavoritesSnapshot
) -> List[SearchResultItem]:
    return [
        SearchResultItem(
            title=movie.title,
            external_id=movie.external_id,
            year=movie.year,
            poster_url=movie.poster_url,
            is_favorite=favorites.contains_identity(movie.external_id),
        )
        for movie in raw_items
    ]


class MovieSearchService:
    def __init__(self, omdb: OmdbService, store: FavoritesStore) -> None:
        self._omdb = omdb
        self._store = store

    def search(self, query: str, page: int = 1) -> SearchMoviesResponse:
        outcome = self._omdb.search(query, page)
        movies = annotate(outcome.items, self._store.snapshot())
        return SearchMoviesResponse(
            movies=movies,
            count=len(movies),
            total_results=outcome.total_results,
        )
