"""
Root state container for the report console.

ReportDashboard composes the lifecycle store, the selection model, filters and
pagination, and is the only component that performs side effects. Actions
catch ApiError at the boundary, record its message in the single ``error``
slot and return a falsy value; presentation code re-renders from
``snapshot()``.
"""
from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, TypeVar

from actions.report_lifecycle import ReportLifecycleStore
from app.config import Config
from app.utils.datetime import create_date_range, days_between, parse_date_yyyy_mm_dd
from app.utils.errors import ApiError, ValidationError
from models import CertificationDefinition, CleanupStats, Employee, Report, ReportRequest
from services.filtering import (
    CERTIFICATION_CATEGORY_FIELD,
    CERTIFICATION_SEARCH_FIELDS,
    EMPLOYEE_CATEGORY_FIELD,
    EMPLOYEE_SEARCH_FIELDS,
    distinct_values,
    filter_items,
)
from services.pagination import Page, PaginationState
from services.report_client import ReportServiceClient
from services.selection import SelectionModel


_log = logging.getLogger("dashboard")

R = TypeVar("R")


def _file_safe_id(report_id: str) -> str:
    """Report id usable as part of a file name in the download directory."""
    rid = str(report_id or "").strip()
    if not rid:
        raise ValidationError("Missing reportId")
    if rid in {".", ".."} or os.path.basename(rid) != rid or "/" in rid or "\\" in rid:
        raise ValidationError(f"Invalid reportId: {rid!r}")
    return rid


class ReportDashboard:
    def __init__(self, client: ReportServiceClient, cfg: Optional[Config] = None):
        self.cfg = cfg or Config()
        self.client = client
        self.store = ReportLifecycleStore(client)
        self.selection = SelectionModel()

        self._employees: tuple[Employee, ...] = ()
        self._certifications: tuple[CertificationDefinition, ...] = ()
        self._available_certifications: tuple[CertificationDefinition, ...] = ()
        self._cleanup_stats: Optional[CleanupStats] = None

        self._employee_search = ""
        self._employee_department = ""
        self._certification_search = ""
        self._certification_category = ""
        self._start_date: Optional[str] = None
        self._end_date: Optional[str] = None

        self.employee_pages = PaginationState(self.cfg.PAGE_SIZE, self.cfg.PAGE_SIZE_OPTIONS)
        self.certification_pages = PaginationState(self.cfg.PAGE_SIZE, self.cfg.PAGE_SIZE_OPTIONS)
        self.report_pages = PaginationState(self.cfg.PAGE_SIZE, self.cfg.PAGE_SIZE_OPTIONS)

        self._error: Optional[str] = None
        self._in_flight = 0
        # Bumped on every employee selection change; stale eligibility responses are dropped.
        self._eligibility_version = 0
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Action boundary
    # ------------------------------------------------------------------

    @property
    def error(self) -> Optional[str]:
        with self._lock:
            return self._error

    @property
    def loading(self) -> bool:
        with self._lock:
            return self._in_flight > 0

    def clear_error(self) -> None:
        with self._lock:
            self._error = None

    def _set_error(self, message: str) -> None:
        with self._lock:
            self._error = message

    @contextmanager
    def _busy(self) -> Iterator[None]:
        with self._lock:
            self._in_flight += 1
        try:
            yield
        finally:
            with self._lock:
                self._in_flight -= 1

    def _run(self, action: str, fn: Callable[[], R], *, default: Any = None, clear: bool = True) -> Any:
        with self._busy():
            if clear:
                self.clear_error()
            try:
                return fn()
            except ApiError as e:
                _log.warning("action=%s code=%s status=%s message=%s", action, e.code, e.http_status, e.message)
                self._set_error(e.message)
                return default

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_employees(self) -> bool:
        def _load() -> bool:
            employees = self.client.list_employees()
            with self._lock:
                self._employees = tuple(employees)
                known = {e.id for e in employees}
            # Selections of employees that vanished from the roster are dropped.
            if self.selection.employees.retain(known):
                self._employee_selection_changed()
            self.employee_pages.reset()
            return True

        return self._run("LOAD_EMPLOYEES", _load, default=False)

    def load_reports(self) -> bool:
        def _load() -> bool:
            self.store.reload()
            self.report_pages.reset()
            return True

        return self._run("LOAD_REPORTS", _load, default=False)

    def load_certifications(self) -> bool:
        def _load() -> bool:
            certs = self.client.list_certification_definitions()
            with self._lock:
                self._certifications = tuple(certs)
            self.refresh_available_certifications()
            return True

        return self._run("LOAD_CERTIFICATIONS", _load, default=False)

    def reload_certifications(self) -> bool:
        self.client.invalidate_certifications()
        return self.load_certifications()

    def refresh_available_certifications(self) -> bool:
        """Recompute eligible certifications for the current employee selection."""

        def _refresh() -> bool:
            with self._lock:
                version = self._eligibility_version
                employee_ids = self.selection.employees.ids()

            if employee_ids:
                available = self.client.available_certifications_for_employees(employee_ids)
            else:
                available = self.client.list_certification_definitions()

            with self._lock:
                if version != self._eligibility_version:
                    _log.debug("discarding stale certification eligibility version=%s", version)
                    return False
                self._available_certifications = tuple(available)
                if employee_ids:
                    dropped = self.selection.prune_certifications(c.id for c in available)
                else:
                    # Certification choices only apply to selected employees.
                    dropped = self.selection.certifications.ids()
                    self.selection.certifications.clear()
            if dropped:
                _log.info("CERT_SELECTION pruned=%s", len(dropped))
            self.certification_pages.reset()
            return True

        return self._run("REFRESH_AVAILABLE_CERTIFICATIONS", _refresh, default=False, clear=False)

    def load_all(self) -> bool:
        ok_employees = self.load_employees()
        ok_reports = self.load_reports()
        ok_certs = self.load_certifications()
        return ok_employees and ok_reports and ok_certs

    # ------------------------------------------------------------------
    # Employee selection
    # ------------------------------------------------------------------

    def _employee_selection_changed(self) -> None:
        with self._lock:
            self._eligibility_version += 1
        self.refresh_available_certifications()

    def select_employee(self, employee_id: str) -> bool:
        changed = self.selection.employees.select(employee_id)
        if changed:
            self._employee_selection_changed()
        return changed

    def deselect_employee(self, employee_id: str) -> bool:
        changed = self.selection.employees.deselect(employee_id)
        if changed:
            self._employee_selection_changed()
        return changed

    def toggle_employee(self, employee_id: str) -> bool:
        selected = self.selection.employees.toggle(employee_id)
        self._employee_selection_changed()
        return selected

    def select_all_employees(self) -> None:
        self.selection.employees.select_all(e.id for e in self.filtered_employees())
        self._employee_selection_changed()

    def toggle_all_employees(self) -> bool:
        selected = self.selection.employees.toggle_all(e.id for e in self.filtered_employees())
        self._employee_selection_changed()
        return selected

    def clear_employee_selection(self) -> None:
        self.selection.employees.clear()
        self._employee_selection_changed()

    # ------------------------------------------------------------------
    # Certification selection
    # ------------------------------------------------------------------

    def _is_available_certification(self, certification_id: str) -> bool:
        with self._lock:
            return any(c.id == str(certification_id) for c in self._available_certifications)

    def select_certification(self, certification_id: str) -> bool:
        if not self._is_available_certification(certification_id):
            self._set_error("Certification is not available for the selected employees")
            return False
        return self.selection.certifications.select(certification_id)

    def deselect_certification(self, certification_id: str) -> bool:
        return self.selection.certifications.deselect(certification_id)

    def toggle_certification(self, certification_id: str) -> bool:
        if certification_id not in self.selection.certifications and not self._is_available_certification(certification_id):
            self._set_error("Certification is not available for the selected employees")
            return False
        return self.selection.certifications.toggle(certification_id)

    def select_all_certifications(self) -> None:
        self.selection.certifications.select_all(c.id for c in self.filtered_certifications())

    def toggle_all_certifications(self) -> bool:
        return self.selection.certifications.toggle_all(c.id for c in self.filtered_certifications())

    def clear_certification_selection(self) -> None:
        self.selection.certifications.clear()

    # ------------------------------------------------------------------
    # Filters and pagination
    # ------------------------------------------------------------------

    def set_employee_search(self, text: str) -> None:
        with self._lock:
            self._employee_search = str(text or "")
        self.employee_pages.reset()

    def set_employee_department(self, department: str) -> None:
        with self._lock:
            self._employee_department = str(department or "")
        self.employee_pages.reset()

    def set_certification_search(self, text: str) -> None:
        with self._lock:
            self._certification_search = str(text or "")
        self.certification_pages.reset()

    def set_certification_category(self, category: str) -> None:
        with self._lock:
            self._certification_category = str(category or "")
        self.certification_pages.reset()

    def filtered_employees(self) -> list[Employee]:
        with self._lock:
            employees, search, dept = self._employees, self._employee_search, self._employee_department
        return filter_items(employees, search, dept, fields=EMPLOYEE_SEARCH_FIELDS, category_field=EMPLOYEE_CATEGORY_FIELD)

    def filtered_certifications(self) -> list[CertificationDefinition]:
        with self._lock:
            certs, search, cat = self._available_certifications, self._certification_search, self._certification_category
        return filter_items(
            certs, search, cat, fields=CERTIFICATION_SEARCH_FIELDS, category_field=CERTIFICATION_CATEGORY_FIELD
        )

    def employee_page(self) -> Page[Employee]:
        return self.employee_pages.view(self.filtered_employees())

    def certification_page(self) -> Page[CertificationDefinition]:
        return self.certification_pages.view(self.filtered_certifications())

    def report_page(self) -> Page[Report]:
        return self.report_pages.view(self.store.reports)

    def go_to_employee_page(self, page: int) -> int:
        return self.employee_pages.go_to(page, self.employee_page().total_pages)

    def go_to_certification_page(self, page: int) -> int:
        return self.certification_pages.go_to(page, self.certification_page().total_pages)

    def go_to_report_page(self, page: int) -> int:
        return self.report_pages.go_to(page, self.report_page().total_pages)

    def set_employee_page_size(self, size: int) -> bool:
        return self._run("SET_PAGE_SIZE", lambda: self.employee_pages.set_page_size(size) or True, default=False)

    def set_certification_page_size(self, size: int) -> bool:
        return self._run("SET_PAGE_SIZE", lambda: self.certification_pages.set_page_size(size) or True, default=False)

    def set_report_page_size(self, size: int) -> bool:
        return self._run("SET_PAGE_SIZE", lambda: self.report_pages.set_page_size(size) or True, default=False)

    def departments(self) -> list[str]:
        with self._lock:
            return distinct_values(self._employees, EMPLOYEE_CATEGORY_FIELD)

    def certification_categories(self) -> list[str]:
        with self._lock:
            return distinct_values(self._available_certifications, CERTIFICATION_CATEGORY_FIELD)

    # ------------------------------------------------------------------
    # Date range
    # ------------------------------------------------------------------

    def set_date_range(self, start_date: Optional[str], end_date: Optional[str]) -> bool:
        def _set() -> bool:
            start = parse_date_yyyy_mm_dd(start_date) if start_date else None
            end = parse_date_yyyy_mm_dd(end_date) if end_date else None
            if start_date and start is None:
                raise ValidationError("Invalid start date (expected YYYY-MM-DD)")
            if end_date and end is None:
                raise ValidationError("Invalid end date (expected YYYY-MM-DD)")
            if start and end and start > end:
                raise ValidationError("Start date must be on or before end date")
            with self._lock:
                self._start_date = start.isoformat() if start else None
                self._end_date = end.isoformat() if end else None
            return True

        return self._run("SET_DATE_RANGE", _set, default=False)

    def set_date_range_preset(self, days_ago: int) -> bool:
        """Range from ``days_ago`` days back through today."""
        if int(days_ago) < 1:
            self._set_error("Date range preset must cover at least one day")
            return False
        start, end = create_date_range(days_ago)
        return self.set_date_range(start, end)

    def clear_date_range(self) -> None:
        with self._lock:
            self._start_date = None
            self._end_date = None

    @property
    def date_range(self) -> tuple[Optional[str], Optional[str]]:
        with self._lock:
            return self._start_date, self._end_date

    # ------------------------------------------------------------------
    # Report lifecycle
    # ------------------------------------------------------------------

    def build_report_request(self, report_type: Optional[str] = None) -> ReportRequest:
        with self._lock:
            start, end = self._start_date, self._end_date
        cert_ids = self.selection.certifications.ids()
        return ReportRequest(
            employee_ids=self.selection.employees.ids(),
            report_type=str(report_type or self.cfg.DEFAULT_REPORT_TYPE),
            certification_ids=cert_ids or None,
            start_date=start,
            end_date=end,
        )

    def generate_report(self, report_type: Optional[str] = None) -> Optional[Report]:
        def _generate() -> Report:
            report = self.store.generate(self.build_report_request(report_type))
            self.report_pages.reset()
            return report

        return self._run("GENERATE_REPORT", _generate)

    def refresh_report_status(self, report_id: str) -> Optional[Report]:
        return self._run("REFRESH_REPORT_STATUS", lambda: self.store.refresh_status(report_id), clear=False)

    def refresh_pending_reports(self) -> int:
        return self._run("REFRESH_PENDING_REPORTS", self.store.refresh_pending, default=0, clear=False)

    def download_report(self, report_id: str, dest_dir: Optional[str] = None) -> Optional[str]:
        """Save the artifact as report-<id>.pdf and return its path."""

        def _download() -> str:
            rid = _file_safe_id(report_id)
            content = self.store.download(rid)
            out_dir = str(dest_dir or self.cfg.DOWNLOAD_DIR or "./downloads")
            os.makedirs(out_dir, exist_ok=True)
            out_path = os.path.join(out_dir, f"report-{rid}.pdf")
            with open(out_path, "wb") as f:
                f.write(content)
            _log.info("REPORT_DOWNLOAD report_id=%s bytes=%s path=%s", report_id, len(content), out_path)
            return out_path

        return self._run("DOWNLOAD_REPORT", _download)

    def delete_report(self, report_id: str) -> bool:
        def _delete() -> bool:
            deleted = self.store.delete(report_id)
            if deleted:
                self.report_pages.reset()
            return deleted

        return self._run("DELETE_REPORT", _delete, default=False)

    def regenerate_report(self, report_id: str) -> Optional[Report]:
        def _regenerate() -> Report:
            report = self.store.regenerate(report_id)
            self.report_pages.reset()
            return report

        return self._run("REGENERATE_REPORT", _regenerate)

    def cleanup_stuck_reports(self) -> Optional[int]:
        def _cleanup() -> int:
            result = self.store.cleanup_stuck()
            self.report_pages.reset()
            return result.cleaned_count

        return self._run("CLEANUP_STUCK_REPORTS", _cleanup)

    def load_cleanup_stats(self) -> Optional[CleanupStats]:
        def _load() -> CleanupStats:
            stats = self.client.get_cleanup_stats()
            with self._lock:
                self._cleanup_stats = stats
            return stats

        return self._run("LOAD_CLEANUP_STATS", _load, clear=False)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    @property
    def employees(self) -> tuple[Employee, ...]:
        with self._lock:
            return self._employees

    @property
    def certifications(self) -> tuple[CertificationDefinition, ...]:
        with self._lock:
            return self._certifications

    @property
    def available_certifications(self) -> tuple[CertificationDefinition, ...]:
        with self._lock:
            return self._available_certifications

    @property
    def reports(self) -> tuple[Report, ...]:
        return self.store.reports

    @property
    def can_generate(self) -> bool:
        return len(self.selection.employees) > 0

    def snapshot(self) -> dict[str, Any]:
        employee_page = self.employee_page()
        certification_page = self.certification_page()
        report_page = self.report_page()
        with self._lock:
            stats = self._cleanup_stats
            return {
                "employees": {
                    "total": len(self._employees),
                    "search": self._employee_search,
                    "department": self._employee_department,
                    "page": self.employee_pages.page,
                    "pageSize": self.employee_pages.page_size,
                    "totalPages": employee_page.total_pages,
                    "totalItems": employee_page.total_items,
                    "items": list(employee_page.page_items),
                },
                "certifications": {
                    "total": len(self._available_certifications),
                    "search": self._certification_search,
                    "category": self._certification_category,
                    "page": self.certification_pages.page,
                    "pageSize": self.certification_pages.page_size,
                    "totalPages": certification_page.total_pages,
                    "totalItems": certification_page.total_items,
                    "items": list(certification_page.page_items),
                },
                "reports": {
                    "total": report_page.total_items,
                    "page": self.report_pages.page,
                    "pageSize": self.report_pages.page_size,
                    "totalPages": report_page.total_pages,
                    "items": list(report_page.page_items),
                    "deleting": sorted(self.store.pending_deletes),
                },
                "selection": self.selection.to_dict(),
                "dateRange": {
                    "startDate": self._start_date,
                    "endDate": self._end_date,
                    "days": days_between(self._start_date, self._end_date) if self._start_date and self._end_date else None,
                },
                "cleanupStats": stats.to_dict() if stats else None,
                "cacheStats": self.client.cache_stats(),
                "canGenerate": len(self.selection.employees) > 0,
                "loading": self._in_flight > 0,
                "error": self._error,
            }
