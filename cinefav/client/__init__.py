"""
Client library for the movies API.

``FavoritesSynchronizer`` keeps search pages and favorites listings in
a ``QueryCache`` and applies favorite toggles optimistically.
"""

from .api import MovieApiClient  # noqa: F401
from .cache import QueryCache  # noqa: F401
from .sync import FavoritesSynchronizer  # noqa: F401
