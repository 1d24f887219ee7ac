# cinefav/models.py
import math
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def normalize_identity(external_id: Optional[str]) -> str:
    """Canonical form of a catalog identifier used for equality checks."""
    return (external_id or "").strip().lower()


def count_pages(total_count: int, page_size: int) -> int:
    if total_count <= 0:
        return 0
    return math.ceil(total_count / page_size)


class FavoriteItem(BaseModel):
    """A favorited title, as stored on disk and sent over the wire.

    The wire/file names (``imdbID``, ``poster``) follow the catalog
    provider; Python code uses the snake_case attributes.  Emptiness of
    ``title``/``external_id`` is checked by the store, not here, so that
    a missing field is reported as an ``InvalidInput`` rather than a
    schema error.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str = ""
    external_id: str = Field(default="", alias="imdbID")
    year: int = Field(default=0, ge=0)
    poster_url: str = Field(default="", alias="poster")

    @field_validator("title", "external_id", "poster_url", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return "" if value is None else value

    @field_validator("year", mode="before")
    @classmethod
    def _none_as_unknown_year(cls, value):
        return 0 if value is None else value

    @property
    def identity(self) -> str:
        return normalize_identity(self.external_id)


class CatalogMovie(BaseModel):
    """Provider-agnostic search hit produced by the catalog adapter."""

    model_config = ConfigDict(frozen=True)

    title: str
    external_id: str
    year: int = 0
    poster_url: str = ""


class SearchResultItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str
    external_id: str = Field(alias="imdbID")
    year: int = 0
    poster_url: str = Field(default="", alias="poster")
    # Derived per request from the favorites snapshot, never stored.
    is_favorite: bool = Field(default=False, alias="isFavorite")

    def to_favorite(self) -> FavoriteItem:
        return FavoriteItem(
            title=self.title,
            external_id=self.external_id,
            year=self.year,
            poster_url=self.poster_url,
        )


class PaginatedFavorites(BaseModel):
    """One page of the favorites collection plus pagination metadata."""

    items: List[FavoriteItem] = Field(default_factory=list)
    total_count: int = 0
    current_page: int = 1
    total_pages: int = 0

    @property
    def count(self) -> int:
        return len(self.items)
