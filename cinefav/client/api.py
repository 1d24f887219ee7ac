"""
Async HTTP client for the ``/movies`` API.

Arguments are validated before any request is made.  Error responses
are turned back into the domain errors of ``cinefav.errors`` using the
``error_type`` the server sends (falling back to the status code), and
transport failures and malformed 2xx bodies become
``UpstreamUnavailable``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from ..config import CLIENT_TIMEOUT_SECONDS, DEFAULT_API_BASE_URL
from ..errors import (
    ERRORS_BY_TYPE,
    CinefavError,
    Conflict,
    InvalidInput,
    NotFound,
    UpstreamUnavailable,
)
from ..models import FavoriteItem
from ..movies.schemas import FavoritesResponse, SearchMoviesResponse


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_ERRORS_BY_STATUS: Dict[int, Type[CinefavError]] = {
    400: InvalidInput,
    404: NotFound,
    409: Conflict,
    422: InvalidInput,
}


def _require_page(page: Any) -> int:
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise InvalidInput("Page must be a positive integer")
    return page


def error_from_response(response: httpx.Response) -> CinefavError:
    """Build the domain error matching a non-2xx response."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    message = body.get("message") or body.get("detail") or body.get("error")
    if isinstance(message, list):
        message = ", ".join(str(m.get("msg", m)) if isinstance(m, dict) else str(m) for m in message)
    if not message:
        message = f"Request failed: {response.reason_phrase or response.status_code}"

    error_cls = ERRORS_BY_TYPE.get(str(body.get("error_type") or ""))
    if error_cls is None:
        error_cls = _ERRORS_BY_STATUS.get(response.status_code)
    if error_cls is None:
        error_cls = UpstreamUnavailable if response.is_server_error else InvalidInput
    return error_cls(str(message))


def _decode(response: httpx.Response, model: Type[ModelT]) -> ModelT:
    """Validate a 2xx body, treating a malformed one as an upstream fault."""
    try:
        return model.model_validate(response.json())
    except ValueError as exc:
        logger.error("Malformed response from %s: %s", response.request.url, exc)
        raise UpstreamUnavailable(f"Malformed response: {exc}") from exc


def _message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError as exc:
        raise UpstreamUnavailable(f"Malformed response: {exc}") from exc
    if not isinstance(body, dict):
        raise UpstreamUnavailable("Malformed response: expected an object")
    return str(body.get("message", ""))


class MovieApiClient:
    """Thin async wrapper over the movies HTTP interface."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = CLIENT_TIMEOUT_SECONDS,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, f"{self._base_url}{path}", **kwargs)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise UpstreamUnavailable(f"Network error: {exc}") from exc

    async def search_movies(self, query: str, page: int = 1) -> SearchMoviesResponse:
        if not isinstance(query, str) or not query.strip():
            raise InvalidInput("Query is required and cannot be empty")
        _require_page(page)
        response = await self._request(
            "GET", "/search", params={"q": query.strip(), "page": page}
        )
        if response.is_error:
            raise error_from_response(response)
        return _decode(response, SearchMoviesResponse)

    async def get_favorites(self, page: int = 1) -> FavoritesResponse:
        _require_page(page)
        response = await self._request("GET", "/favorites/list", params={"page": page})
        # Older servers answered an empty list with 404.
        if response.status_code == 404:
            return FavoritesResponse.empty(page)
        if response.is_error:
            raise error_from_response(response)
        return _decode(response, FavoritesResponse)

    async def add_to_favorites(self, movie: FavoriteItem) -> str:
        if not movie.external_id.strip() or not movie.title.strip():
            raise InvalidInput("Movie must have imdbID and title")
        response = await self._request(
            "POST", "/favorites", json=movie.model_dump(by_alias=True)
        )
        if response.is_error:
            raise error_from_response(response)
        return _message(response)

    async def remove_from_favorites(self, external_id: str) -> str:
        if not isinstance(external_id, str) or not external_id.strip():
            raise InvalidInput("imdbID is required and cannot be empty")
        response = await self._request(
            "DELETE", f"/favorites/{quote(external_id.strip(), safe='')}"
        )
        if response.is_error:
            raise error_from_response(response)
        return _message(response)
