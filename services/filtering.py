from __future__ import annotations

from typing import Iterable, Sequence, TypeVar


T = TypeVar("T")

EMPLOYEE_SEARCH_FIELDS = ("first_name", "last_name", "email", "position")
EMPLOYEE_CATEGORY_FIELD = "department"

CERTIFICATION_SEARCH_FIELDS = ("name", "description", "category")
CERTIFICATION_CATEGORY_FIELD = "category"


def _field_text(item: object, name: str) -> str:
    return str(getattr(item, name, "") or "")


def filter_items(
    items: Iterable[T],
    search_term: str | None = "",
    category: str | None = "",
    *,
    fields: Sequence[str] = EMPLOYEE_SEARCH_FIELDS,
    category_field: str = EMPLOYEE_CATEGORY_FIELD,
) -> list[T]:
    term = str(search_term or "").strip().lower()
    cat = str(category or "").strip()

    out: list[T] = []
    for item in items:
        if cat and _field_text(item, category_field) != cat:
            continue
        if term and not any(term in _field_text(item, f).lower() for f in fields):
            continue
        out.append(item)
    return out


def distinct_values(items: Iterable[object], field: str) -> list[str]:
    return sorted({v for v in (_field_text(i, field).strip() for i in items) if v})
