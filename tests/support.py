"""Helpers shared by the test modules."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import List

from cinefav.models import FavoriteItem


def write_external(path: Path, entries: List[dict], bump_seconds: int = 5) -> None:
    """Rewrite the favorites file as another process would.

    The modification time is pushed forward so the change is visible
    even on filesystems with coarse timestamps.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(entries), encoding="utf-8")
    stat = os.stat(path)
    future = stat.st_mtime_ns + bump_seconds * 1_000_000_000
    os.utime(path, ns=(future, future))


def make_items(count: int) -> List[FavoriteItem]:
    return [
        FavoriteItem(title=f"Movie {n}", external_id=f"tt{n:07d}", year=2000 + n)
        for n in range(1, count + 1)
    ]
