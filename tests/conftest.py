"""Shared fixtures: a favorites file in a temp dir and a sample title."""

from __future__ import annotations

from pathlib import Path

import pytest

from cinefav.models import FavoriteItem
from cinefav.movies.store import FavoritesStore


@pytest.fixture
def favorites_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "favorites.json"


@pytest.fixture
def store(favorites_path: Path) -> FavoritesStore:
    return FavoritesStore(favorites_path)


@pytest.fixture
def matrix() -> FavoriteItem:
    return FavoriteItem(
        title="The Matrix",
        external_id="tt0133093",
        year=1999,
        poster_url="https://example.com/matrix.jpg",
    )
