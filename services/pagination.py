from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from app.utils.errors import ValidationError


T = TypeVar("T")

DEFAULT_PAGE_SIZE_OPTIONS = (30, 50, 100)


@dataclass(frozen=True)
class Page(Generic[T]):
    total_items: int
    total_pages: int
    start_index: int
    end_index: int
    page_items: tuple[T, ...]


def paginate(items: Sequence[T], page: int, page_size: int) -> Page[T]:
    """
    Slice one page out of ``items``.

    A page past the end yields an empty slice; callers clamp before display.
    """
    if int(page_size) < 1:
        raise ValidationError("page_size must be >= 1")
    if int(page) < 1:
        raise ValidationError("page must be >= 1")

    total_items = len(items)
    total_pages = math.ceil(total_items / page_size)
    start_index = (page - 1) * page_size
    end_index = max(start_index, min(start_index + page_size, total_items))
    return Page(
        total_items=total_items,
        total_pages=total_pages,
        start_index=start_index,
        end_index=end_index,
        page_items=tuple(items[start_index:end_index]),
    )


class PaginationState:
    """Current page and page size for one view. Keeps 1 <= page."""

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE_OPTIONS[0], page_size_options: Sequence[int] = DEFAULT_PAGE_SIZE_OPTIONS):
        self._options = tuple(int(x) for x in page_size_options)
        if int(page_size) < 1 or (self._options and int(page_size) not in self._options):
            raise ValidationError(f"Unsupported page size: {page_size}")
        self._page = 1
        self._page_size = int(page_size)
        self._lock = threading.RLock()

    @property
    def page(self) -> int:
        return self._page

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def page_size_options(self) -> tuple[int, ...]:
        return self._options

    def reset(self) -> None:
        with self._lock:
            self._page = 1

    def clamp(self, total_pages: int) -> int:
        with self._lock:
            self._page = max(1, min(self._page, max(1, int(total_pages))))
            return self._page

    def go_to(self, page: int, total_pages: int) -> int:
        with self._lock:
            self._page = max(1, min(int(page), max(1, int(total_pages))))
            return self._page

    def set_page_size(self, page_size: int) -> None:
        size = int(page_size)
        if size < 1 or (self._options and size not in self._options):
            raise ValidationError(f"Unsupported page size: {page_size}")
        with self._lock:
            self._page_size = size
            self._page = 1

    def view(self, items: Sequence[T]) -> Page[T]:
        """Clamp to the collection, then paginate it."""
        with self._lock:
            total_pages = math.ceil(len(items) / self._page_size)
            page = self.clamp(total_pages)
            return paginate(items, page, self._page_size)
