"""
Pydantic schema definitions for the movies HTTP interface.

These are the response envelopes of the ``/movies`` routes.  Field
names on the wire are camelCase (``totalResults``, ``currentPage``);
``totalResults`` is a string in both the search and the favorites
responses so clients can treat the two uniformly.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models import FavoriteItem, PaginatedFavorites, SearchResultItem


class SearchMoviesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    movies: List[SearchResultItem] = Field(default_factory=list)
    count: int = 0
    total_results: str = Field(default="0", alias="totalResults")


class FavoritesResponse(BaseModel):
    """A page of favorites, as returned by ``GET /movies/favorites/list``."""

    model_config = ConfigDict(populate_by_name=True)

    favorites: List[FavoriteItem] = Field(default_factory=list)
    count: int = 0
    total_results: str = Field(default="0", alias="totalResults")
    current_page: int = Field(default=1, alias="currentPage")
    total_pages: int = Field(default=0, alias="totalPages")

    @classmethod
    def from_page(cls, page: PaginatedFavorites) -> "FavoritesResponse":
        return cls(
            favorites=page.items,
            count=page.count,
            total_results=str(page.total_count),
            current_page=page.current_page,
            total_pages=page.total_pages,
        )

    @classmethod
    def empty(cls, page: int = 1) -> "FavoritesResponse":
        return cls(current_page=page)


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error_type: str
    message: str
    status_code: int
    path: Optional[str] = None


class HealthStatus(BaseModel):
    status: str = "ok"
    timestamp: datetime
    uptime: float
    environment: str
