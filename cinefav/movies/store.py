"""
Durable favorites collection backed by a JSON file.

The file may be edited by another process at any time, so the
in-memory list is only trusted for the duration of one operation.
Every public operation first compares the file's modification time
with the version recorded at the last load or write and reloads when
the file is newer (or has disappeared).  The whole
reconcile/mutate/persist sequence runs under a lock so concurrent
requests handled by this process cannot interleave their writes.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..config import DEFAULT_PAGE_SIZE
from ..errors import Conflict, InvalidInput, NotFound, PersistenceError
from ..models import FavoriteItem, PaginatedFavorites, count_pages, normalize_identity


logger = logging.getLogger(__name__)

ADDED_MESSAGE = "Movie added to favorites"
REMOVED_MESSAGE = "Movie removed from favorites"


def needs_reload(local_version: Optional[int], backing_version: Optional[int]) -> bool:
    """Decide whether the in-memory snapshot must be reloaded.

    Versions are modification times in nanoseconds; ``None`` means "no
    file".  A missing file is only a change if we previously saw one.
    """
    if backing_version is None:
        return local_version is not None
    if local_version is None:
        return True
    return backing_version > local_version


def _require_positive_int(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidInput(f"{name} must be a positive integer")
    return value


def paginate(items: Sequence[FavoriteItem], page: int, page_size: int) -> PaginatedFavorites:
    """Slice ``items`` for the 1-indexed ``page``.

    ``page`` is not clamped: a page past the end yields no items but
    keeps the requested page number.
    """
    start = (page - 1) * page_size
    return PaginatedFavorites(
        items=list(items[start:start + page_size]),
        total_count=len(items),
        current_page=page,
        total_pages=count_pages(len(items), page_size),
    )


class FavoritesSnapshot:
    """Immutable view of the collection at one version."""

    def __init__(self, items: Iterable[FavoriteItem], version: Optional[int] = None) -> None:
        self.items: Tuple[FavoriteItem, ...] = tuple(items)
        self.version = version
        self._identities: FrozenSet[str] = frozenset(i.identity for i in self.items)

    def contains_identity(self, external_id: str) -> bool:
        return normalize_identity(external_id) in self._identities

    def __len__(self) -> int:
        return len(self.items)


class FavoritesStore:
    """Favorites persisted as a JSON array in ``path``."""

    def __init__(self, path: Path, default_page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self._path = Path(path)
        self._default_page_size = _require_positive_int(default_page_size, "Page size")
        self._items: List[FavoriteItem] = []
        self._version: Optional[int] = None
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Backing file

    def _backing_version(self) -> Optional[int]:
        try:
            return os.stat(self._path).st_mtime_ns
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("Cannot stat favorites file %s: %s", self._path, exc)
            raise PersistenceError("Failed to read favorites") from exc

    def _read_items(self) -> List[FavoriteItem]:
        try:
            with self._path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as exc:
            logger.error("Cannot read favorites file %s: %s", self._path, exc)
            raise PersistenceError("Failed to read favorites") from exc
        if not isinstance(raw, list):
            raise PersistenceError("Favorites file must contain a JSON array")

        items: List[FavoriteItem] = []
        seen = set()
        for entry in raw:
            try:
                item = FavoriteItem.model_validate(entry)
            except ValidationError as exc:
                raise PersistenceError(f"Invalid favorites entry: {entry!r}") from exc
            if item.identity in seen:
                logger.warning("Dropping duplicate favorite %s from %s", item.external_id, self._path)
                continue
            seen.add(item.identity)
            items.append(item)
        return items

    def _reconcile(self) -> None:
        """Reload from disk when the file changed since we last synced."""
        backing_version = self._backing_version()
        if not needs_reload(self._version, backing_version):
            return
        self._items = self._read_items() if backing_version is not None else []
        self._version = backing_version
        logger.info("Reloaded %d favorites from %s", len(self._items), self._path)

    def _persist(self) -> None:
        payload = json.dumps(
            [item.model_dump(by_alias=True) for item in self._items],
            ensure_ascii=False,
            indent=2,
        )
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            logger.error("Cannot write favorites file %s: %s", self._path, exc)
            raise PersistenceError("Failed to save favorites") from exc
        # Observed after the write so our own change is not mistaken for
        # an external one.
        self._version = self._backing_version()

    def _find_index(self, external_id: str) -> Optional[int]:
        identity = normalize_identity(external_id)
        for index, item in enumerate(self._items):
            if item.identity == identity:
                return index
        return None

    # ------------------------------------------------------------------
    # Public operations

    def snapshot(self) -> FavoritesSnapshot:
        """Reconcile once and return the current collection."""
        with self._lock:
            self._reconcile()
            return FavoritesSnapshot(self._items, self._version)

    def list_favorites(self, page: int = 1, page_size: Optional[int] = None) -> PaginatedFavorites:
        """Return one page of favorites in insertion order.

        An empty collection is a normal result with zeroed metadata.
        """
        _require_positive_int(page, "Page")
        if page_size is None:
            page_size = self._default_page_size
        _require_positive_int(page_size, "Page size")
        with self._lock:
            self._reconcile()
            return paginate(self._items, page, page_size)

    def add(self, item: FavoriteItem) -> str:
        if not item.title.strip() or not item.external_id.strip():
            raise InvalidInput("Movie must have imdbID and title")
        with self._lock:
            self._reconcile()
            if self._find_index(item.external_id) is not None:
                raise Conflict("Movie already in favorites")
            # Applied before the write and kept if the write fails.
            self._items.append(item)
            self._persist()
        logger.info("Added %s to favorites", item.external_id)
        return ADDED_MESSAGE

    def remove(self, external_id: str) -> str:
        if not isinstance(external_id, str) or not external_id.strip():
            raise InvalidInput("imdbID is required")
        with self._lock:
            self._reconcile()
            index = self._find_index(external_id)
            if index is None:
                raise NotFound("Movie not found in favorites")
            del self._items[index]
            self._persist()
        logger.info("Removed %s from favorites", external_id)
        return REMOVED_MESSAGE
