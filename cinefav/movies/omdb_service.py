"""
OMDb integration for the movies service.  This module is the only
place that knows the provider's payload shape.  It exposes:

* ``OmdbService.search()`` — search for titles matching a query on a
  given page.  The raw response is normalised into a ``SearchOutcome``:
  either ``Found`` (a page of ``CatalogMovie`` plus the provider's total)
  or ``Empty``.

The provider signals "no results" with ``"Response": "False"`` (a
string, occasionally a real boolean) and an ``Error`` message.  That
sentinel is turned into ``Empty`` here and never travels further.  Any
other failure (network, timeout, non-JSON body, unexpected structure)
is raised as ``UpstreamUnavailable``.

Only the Python standard library is used for HTTP requests.
"""

from __future__ import annotations

import json
import logging
import re
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple, Union

from ..config import DEFAULT_OMDB_API_BASE_URL, DEFAULT_OMDB_TIMEOUT_SECONDS, Settings
from ..errors import CinefavError, ConfigurationError, InvalidInput, UpstreamUnavailable
from ..models import CatalogMovie


logger = logging.getLogger(__name__)

_YEAR_RE = re.compile(r"\d{4}")
_MISSING_POSTER = "N/A"


def _http_get_json(url: str, timeout: float) -> Any:
    """Perform an HTTP GET and return the parsed JSON body.

    Raises ``UpstreamUnavailable`` for a non-200 status, a network error
    or a body that is not valid JSON.
    """
    request = urllib.request.Request(url, headers={'Accept': 'application/json'})
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            if response.status != 200:
                raise UpstreamUnavailable(
                    f"Catalog provider returned status {response.status}"
                )
            data = response.read().decode('utf-8', errors='ignore')
        return json.loads(data)
    except CinefavError:
        raise
    except Exception as exc:
        raise UpstreamUnavailable("Failed to search movies from the catalog provider") from exc


def _redact(url: str) -> str:
    """Hide the API key before a URL is written to the log."""
    return re.sub(r"(apikey=)[^&]*", r"\1***", url)


def parse_year(value: Any) -> int:
    """Extract the first four-digit year from a provider ``Year`` field.

    The provider sends plain years (``"1999"``) as well as ranges
    (``"1999-2000"``, ``"2010–"``).  Only the first year is kept;
    anything unparseable becomes ``0``.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if value >= 0 else 0
    if not isinstance(value, str):
        return 0
    m = _YEAR_RE.search(value)
    return int(m.group()) if m else 0


def _is_empty_sentinel(data: dict) -> bool:
    response_flag = data.get('Response')
    if response_flag is False:
        return True
    if isinstance(response_flag, str) and response_flag.strip().lower() == 'false':
        return True
    return bool(data.get('Error'))


@dataclass(frozen=True)
class Found:
    items: Tuple[CatalogMovie, ...]
    total_results: str


@dataclass(frozen=True)
class Empty:
    items: Tuple[CatalogMovie, ...] = field(default=())
    total_results: str = "0"


SearchOutcome = Union[Found, Empty]


def _to_catalog_movie(doc: Any) -> Optional[CatalogMovie]:
    if not isinstance(doc, dict):
        return None
    external_id = doc.get('imdbID')
    if not external_id or not isinstance(external_id, str):
        return None
    poster = doc.get('Poster') or ''
    if not isinstance(poster, str) or poster == _MISSING_POSTER:
        poster = ''
    return CatalogMovie(
        title=str(doc.get('Title') or ''),
        external_id=external_id,
        year=parse_year(doc.get('Year')),
        poster_url=poster,
    )


def parse_search_payload(data: Any) -> SearchOutcome:
    """Normalise a provider search payload into a ``SearchOutcome``."""
    if not isinstance(data, dict):
        raise UpstreamUnavailable("Catalog provider returned a malformed payload")
    if _is_empty_sentinel(data):
        return Empty()
    docs = data.get('Search') or []
    if not isinstance(docs, list):
        raise UpstreamUnavailable("Catalog provider returned a malformed payload")
    movies: List[CatalogMovie] = []
    for doc in docs:
        movie = _to_catalog_movie(doc)
        if movie is not None:
            movies.append(movie)
    if not movies:
        return Empty()
    total = str(data.get('totalResults') or '').strip()
    if not total.isdigit():
        total = str(len(movies))
    return Found(items=tuple(movies), total_results=total)


class OmdbService:
    """Search adapter over the OMDb HTTP API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_OMDB_API_BASE_URL,
        timeout: float = DEFAULT_OMDB_TIMEOUT_SECONDS,
    ) -> None:
        if not api_key:
            raise ConfigurationError("OMDB_API_KEY environment variable is required")
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "OmdbService":
        return cls(
            api_key=settings.omdb_api_key,
            base_url=settings.omdb_api_base_url,
            timeout=settings.omdb_timeout_seconds,
        )

    def _search_url(self, title: str, page: int) -> str:
        params = {
            'apikey': self._api_key,
            's': title.strip(),
            'plot': 'full',
            'page': page,
        }
        return f"{self._base_url}?{urllib.parse.urlencode(params)}"

    def search(self, title: str, page: int = 1) -> SearchOutcome:
        """Search the provider for ``title`` on the 1-indexed ``page``.

        Parameters
        ----------
        title : str
            Free-text title query; must contain a non-whitespace character.
        page : int
            Positive page number.

        Returns
        -------
        SearchOutcome
            ``Found`` with the normalised hits, or ``Empty`` when the
            provider reports no results.
        """
        if not isinstance(title, str) or not title.strip():
            raise InvalidInput("Title is required")
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise InvalidInput("Page must be a positive integer")

        url = self._search_url(title, page)
        try:
            data = _http_get_json(url, self._timeout)
            return parse_search_payload(data)
        except CinefavError as exc:
            logger.error("Error searching movies from %s: %s", _redact(url), exc)
            raise
        except Exception as exc:
            logger.error("Error searching movies from %s: %s", _redact(url), exc)
            raise UpstreamUnavailable(
                "Failed to search movies from the catalog provider"
            ) from exc
