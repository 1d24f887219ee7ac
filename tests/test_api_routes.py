"""Tests exercising the FastAPI routes with a temp store and a fake provider."""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient

from cinefav.config import Settings
from cinefav.errors import UpstreamUnavailable
from cinefav.main import create_app
from cinefav.models import CatalogMovie
from cinefav.movies.omdb_service import Empty, Found, OmdbService
from cinefav.movies.router import get_favorites_store, get_omdb_service

from .support import make_items


class FakeOmdb:
    def __init__(self, outcome=None, error=None) -> None:
        self.outcome = outcome if outcome is not None else Empty()
        self.error = error

    def search(self, title, page=1):
        if self.error is not None:
            raise self.error
        return self.outcome


@pytest.fixture
def omdb() -> FakeOmdb:
    return FakeOmdb(
        Found(
            items=(
                CatalogMovie(title="The Matrix", external_id="tt0133093", year=1999, poster_url="p1"),
                CatalogMovie(title="Heat", external_id="tt0113277", year=1995),
            ),
            total_results="2",
        )
    )


@pytest.fixture
def client(store, omdb):
    app = create_app(Settings(environment="test"))
    app.dependency_overrides[get_favorites_store] = lambda: store
    app.dependency_overrides[get_omdb_service] = lambda: omdb
    with TestClient(app) as test_client:
        yield test_client


MATRIX_BODY = {"title": "The Matrix", "imdbID": "tt0133093", "year": 1999, "poster": "p1"}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["environment"] == "test"
    assert body["uptime"] >= 0


def test_search_annotates_favorites(client):
    client.post("/movies/favorites", json={"title": "Heat", "imdbID": "TT0113277"})

    response = client.get("/movies/search", params={"q": "the", "page": 1})

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert body["totalResults"] == "2"
    assert body["movies"][0] == {
        "title": "The Matrix",
        "imdbID": "tt0133093",
        "year": 1999,
        "poster": "p1",
        "isFavorite": False,
    }
    assert body["movies"][1]["isFavorite"] is True


def test_search_requires_query(client):
    assert client.get("/movies/search").status_code == 422


def test_blank_query_is_a_bad_request(client):
    client.app.dependency_overrides[get_omdb_service] = lambda: OmdbService(api_key="k")
    response = client.get("/movies/search", params={"q": "   "})

    assert response.status_code == 400
    assert response.json()["error_type"] == "invalid_input"


@pytest.mark.parametrize("page", ["0", "-1", "abc"])
def test_search_rejects_bad_page(client, page):
    assert client.get("/movies/search", params={"q": "x", "page": page}).status_code == 422


def test_upstream_failure_is_5xx(client, omdb):
    omdb.error = UpstreamUnavailable("Failed to search movies from the catalog provider")

    response = client.get("/movies/search", params={"q": "heat"})

    assert response.status_code == 502
    assert response.json()["error_type"] == "upstream_unavailable"


def test_add_and_list_favorites(client):
    response = client.post("/movies/favorites", json=MATRIX_BODY)
    assert response.status_code == 201
    assert response.json() == {"message": "Movie added to favorites"}

    listing = client.get("/movies/favorites/list").json()

    assert listing == {
        "favorites": [MATRIX_BODY],
        "count": 1,
        "totalResults": "1",
        "currentPage": 1,
        "totalPages": 1,
    }


def test_add_defaults_optional_fields(client):
    client.post("/movies/favorites", json={"title": "Heat", "imdbID": "tt0113277"})

    favorite = client.get("/movies/favorites/list").json()["favorites"][0]

    assert favorite["year"] == 0
    assert favorite["poster"] == ""


def test_duplicate_add_conflicts(client):
    client.post("/movies/favorites", json=MATRIX_BODY)

    response = client.post("/movies/favorites", json={**MATRIX_BODY, "imdbID": "TT0133093"})

    assert response.status_code == 409
    assert response.json()["message"] == "Movie already in favorites"
    assert client.get("/movies/favorites/list").json()["count"] == 1


@pytest.mark.parametrize("body", [{"imdbID": "tt1"}, {"title": "Heat"}, {"title": " ", "imdbID": "tt1"}])
def test_add_missing_fields_is_bad_request(client, body):
    response = client.post("/movies/favorites", json=body)

    assert response.status_code == 400


def test_add_negative_year_is_rejected(client):
    response = client.post("/movies/favorites", json={**MATRIX_BODY, "year": -1})

    assert response.status_code == 422


def test_remove_favorite(client):
    client.post("/movies/favorites", json=MATRIX_BODY)

    response = client.delete("/movies/favorites/TT0133093")

    assert response.status_code == 200
    assert response.json() == {"message": "Movie removed from favorites"}
    assert client.get("/movies/favorites/list").json()["favorites"] == []


def test_remove_unknown_is_not_found(client):
    response = client.delete("/movies/favorites/tt404")

    assert response.status_code == 404
    assert response.json()["path"] == "/movies/favorites/tt404"


def test_empty_favorites_is_success(client):
    response = client.get("/movies/favorites/list", params={"page": 1})

    assert response.status_code == 200
    assert response.json() == {
        "favorites": [],
        "count": 0,
        "totalResults": "0",
        "currentPage": 1,
        "totalPages": 0,
    }


def test_favorites_second_page(client, store):
    for item in make_items(15):
        store.add(item)

    body = client.get("/movies/favorites/list", params={"page": 2}).json()

    assert body["count"] == 5
    assert body["totalResults"] == "15"
    assert body["totalPages"] == 2
    assert body["currentPage"] == 2


@pytest.mark.parametrize("page", ["0", "abc"])
def test_favorites_rejects_bad_page(client, page):
    assert client.get("/movies/favorites/list", params={"page": page}).status_code == 422


def test_persistence_failure_is_5xx(client, monkeypatch):
    def _fail(*_args, **_kwargs):
        raise OSError("read-only filesystem")

    monkeypatch.setattr(os, "replace", _fail)

    response = client.post("/movies/favorites", json=MATRIX_BODY)

    assert response.status_code == 500
    assert response.json()["error_type"] == "persistence_error"


def test_missing_api_key_is_reported(store):
    app = create_app(Settings(environment="test"))
    app.dependency_overrides[get_favorites_store] = lambda: store
    app.dependency_overrides[get_omdb_service] = lambda: OmdbService(api_key="")

    with TestClient(app) as test_client:
        response = test_client.get("/movies/search", params={"q": "heat"})

    assert response.status_code == 500
    assert response.json()["error_type"] == "configuration_error"
