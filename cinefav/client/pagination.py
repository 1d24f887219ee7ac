"""Page-count and page-button helpers for rendering result lists."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..models import count_pages


@dataclass(frozen=True)
class PaginationRange:
    start_page: int
    end_page: int
    show_start_ellipsis: bool
    show_end_ellipsis: bool


def parse_total(total_results: Union[str, int, None]) -> int:
    """Total result count from a string-encoded or numeric value; bad input is 0."""
    if isinstance(total_results, bool):
        return 0
    if isinstance(total_results, int):
        return max(0, total_results)
    try:
        return max(0, int(str(total_results).strip()))
    except ValueError:
        return 0


def calculate_total_pages(total_results: Union[str, int, None], page_size: int) -> int:
    return count_pages(parse_total(total_results), page_size)


def calculate_pagination_range(
    current_page: int, total_pages: int, max_visible: int = 5
) -> PaginationRange:
    """Window of page buttons centred on ``current_page``.

    Ellipsis flags tell whether pages are hidden between the window and
    the first/last page.
    """
    half_visible = max_visible // 2
    start = max(1, current_page - half_visible)
    end = min(total_pages, start + max_visible - 1)
    if end - start + 1 < max_visible:
        start = max(1, end - max_visible + 1)
    return PaginationRange(
        start_page=start,
        end_page=end,
        show_start_ellipsis=start > 2,
        show_end_ellipsis=end < total_pages - 1,
    )
