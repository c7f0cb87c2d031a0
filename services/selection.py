from __future__ import annotations

import threading
from typing import Iterable


class SelectionSet:
    """Duplicate-free, insertion-ordered set of selected ids."""

    def __init__(self, ids: Iterable[str] = ()):
        # dict keys: O(1) membership and stable order for request payloads.
        self._ids: dict[str, None] = {}
        self._lock = threading.RLock()
        for i in ids:
            self.select(i)

    def __contains__(self, item_id: object) -> bool:
        with self._lock:
            return item_id in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)

    def ids(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._ids)

    def select(self, item_id: str) -> bool:
        """Returns True when the id was added."""
        key = str(item_id)
        with self._lock:
            if key in self._ids:
                return False
            self._ids[key] = None
            return True

    def deselect(self, item_id: str) -> bool:
        """Returns True when the id was removed."""
        key = str(item_id)
        with self._lock:
            if key not in self._ids:
                return False
            del self._ids[key]
            return True

    def toggle(self, item_id: str) -> bool:
        """Returns the new membership of ``item_id``."""
        key = str(item_id)
        with self._lock:
            if key in self._ids:
                del self._ids[key]
                return False
            self._ids[key] = None
            return True

    def select_all(self, universe: Iterable[str]) -> None:
        fresh = {str(i): None for i in universe}
        with self._lock:
            self._ids = fresh

    def toggle_all(self, universe: Iterable[str]) -> bool:
        """Clear when the whole universe is already selected, else select it. Returns True if selected."""
        ids = [str(i) for i in universe]
        with self._lock:
            if ids and all(i in self._ids for i in ids) and len(self._ids) == len(set(ids)):
                self._ids = {}
                return False
            self._ids = {i: None for i in ids}
            return True

    def clear(self) -> None:
        with self._lock:
            self._ids = {}

    def retain(self, eligible: Iterable[str]) -> tuple[str, ...]:
        """Drop ids outside ``eligible``; returns the dropped ids."""
        keep = {str(i) for i in eligible}
        with self._lock:
            dropped = tuple(i for i in self._ids if i not in keep)
            for i in dropped:
                del self._ids[i]
            return dropped


class SelectionModel:
    """Employee and certification selections for the next report request."""

    def __init__(self):
        self.employees = SelectionSet()
        self.certifications = SelectionSet()

    def prune_certifications(self, eligible_ids: Iterable[str]) -> tuple[str, ...]:
        return self.certifications.retain(eligible_ids)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "employeeIds": list(self.employees.ids()),
            "certificationIds": list(self.certifications.ids()),
        }
