"""
Route definitions for the movies API.

Endpoints under /movies:
- GET    /search               : catalog search annotated with favorites
- POST   /favorites            : add a favorite
- DELETE /favorites/{imdb_id}  : remove a favorite
- GET    /favorites/list       : paginated favorites

Domain errors raised by the services propagate to the handler
registered in ``cinefav.main``, which maps them to HTTP statuses.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Depends, Query, status

from ..config import DEFAULT_PAGE, get_settings
from ..models import FavoriteItem
from .omdb_service import OmdbService
from .schemas import FavoritesResponse, MessageResponse, SearchMoviesResponse
from .search import MovieSearchService
from .store import FavoritesStore


router = APIRouter(prefix="/movies", tags=["movies"])


# ---------------------------------------------------------------------------
# Dependencies
#
# One store per process: the store keeps the version of the favorites
# file it last saw, and its lock only serialises writers that share it.

@lru_cache
def get_favorites_store() -> FavoritesStore:
    settings = get_settings()
    return FavoritesStore(settings.favorites_file, default_page_size=settings.default_page_size)


@lru_cache
def get_omdb_service() -> OmdbService:
    return OmdbService.from_settings(get_settings())


def get_search_service(
    omdb: OmdbService = Depends(get_omdb_service),
    store: FavoritesStore = Depends(get_favorites_store),
) -> MovieSearchService:
    return MovieSearchService(omdb, store)


@router.get("/search", response_model=SearchMoviesResponse)
def search_movies(
    q: str = Query(..., description="Movie title to search for"),
    page: int = Query(default=DEFAULT_PAGE, ge=1, description="Page (1-indexed)"),
    service: MovieSearchService = Depends(get_search_service),
) -> SearchMoviesResponse:
    return service.search(q, page)


@router.post(
    "/favorites",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_to_favorites(
    movie: FavoriteItem,
    store: FavoritesStore = Depends(get_favorites_store),
) -> MessageResponse:
    return MessageResponse(message=store.add(movie))


@router.delete("/favorites/{imdb_id}", response_model=MessageResponse)
def remove_from_favorites(
    imdb_id: str,
    store: FavoritesStore = Depends(get_favorites_store),
) -> MessageResponse:
    return MessageResponse(message=store.remove(imdb_id))


@router.get("/favorites/list", response_model=FavoritesResponse)
def list_favorites(
    page: int = Query(default=DEFAULT_PAGE, ge=1, description="Page (1-indexed)"),
    store: FavoritesStore = Depends(get_favorites_store),
) -> FavoritesResponse:
    """Return one page of favorites.

    An empty collection is a 200 with zeroed counts, never a 404.
    """
    return FavoritesResponse.from_page(store.list_favorites(page))
