"""
String-keyed entry point for presentation callers.

    dispatch(dashboard, "GENERATE_REPORT", {"reportType": "CERTIFICATION"})
    -> {"ok": True, "data": {...}} | {"ok": False, "error": {"code": ..., "message": ...}}
"""
from __future__ import annotations

from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Callable

from app.utils.errors import ApiError, ValidationError


def ok(data: Any = None) -> dict[str, Any]:
    return {"ok": True, "data": data}


def err(code: str, message: str) -> dict[str, Any]:
    return {"ok": False, "error": {"code": code, "message": message}}


def to_jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return {k: to_jsonable(v) for k, v in asdict(value).items()}
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    return value


def _str(data: dict, key: str) -> str:
    val = str(data.get(key) or "").strip()
    if not val:
        raise ValidationError(f"{key} is required")
    return val


def _int(data: dict, key: str) -> int:
    try:
        return int(data.get(key))
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer")


def _actions(dashboard) -> dict[str, Callable[[dict], Any]]:
    return {
        "LOAD_ALL": lambda d: dashboard.load_all(),
        "LOAD_EMPLOYEES": lambda d: dashboard.load_employees(),
        "LOAD_REPORTS": lambda d: dashboard.load_reports(),
        "LOAD_CERTIFICATIONS": lambda d: dashboard.reload_certifications(),
        "SELECT_EMPLOYEE": lambda d: dashboard.select_employee(_str(d, "employeeId")),
        "DESELECT_EMPLOYEE": lambda d: dashboard.deselect_employee(_str(d, "employeeId")),
        "TOGGLE_EMPLOYEE": lambda d: dashboard.toggle_employee(_str(d, "employeeId")),
        "SELECT_ALL_EMPLOYEES": lambda d: dashboard.select_all_employees(),
        "TOGGLE_ALL_EMPLOYEES": lambda d: dashboard.toggle_all_employees(),
        "CLEAR_EMPLOYEE_SELECTION": lambda d: dashboard.clear_employee_selection(),
        "SELECT_CERTIFICATION": lambda d: dashboard.select_certification(_str(d, "certificationId")),
        "DESELECT_CERTIFICATION": lambda d: dashboard.deselect_certification(_str(d, "certificationId")),
        "TOGGLE_CERTIFICATION": lambda d: dashboard.toggle_certification(_str(d, "certificationId")),
        "SELECT_ALL_CERTIFICATIONS": lambda d: dashboard.select_all_certifications(),
        "TOGGLE_ALL_CERTIFICATIONS": lambda d: dashboard.toggle_all_certifications(),
        "CLEAR_CERTIFICATION_SELECTION": lambda d: dashboard.clear_certification_selection(),
        "SET_EMPLOYEE_SEARCH": lambda d: dashboard.set_employee_search(d.get("search") or ""),
        "SET_EMPLOYEE_DEPARTMENT": lambda d: dashboard.set_employee_department(d.get("department") or ""),
        "SET_CERTIFICATION_SEARCH": lambda d: dashboard.set_certification_search(d.get("search") or ""),
        "SET_CERTIFICATION_CATEGORY": lambda d: dashboard.set_certification_category(d.get("category") or ""),
        "GO_TO_EMPLOYEE_PAGE": lambda d: dashboard.go_to_employee_page(_int(d, "page")),
        "GO_TO_CERTIFICATION_PAGE": lambda d: dashboard.go_to_certification_page(_int(d, "page")),
        "GO_TO_REPORT_PAGE": lambda d: dashboard.go_to_report_page(_int(d, "page")),
        "SET_EMPLOYEE_PAGE_SIZE": lambda d: dashboard.set_employee_page_size(_int(d, "pageSize")),
        "SET_CERTIFICATION_PAGE_SIZE": lambda d: dashboard.set_certification_page_size(_int(d, "pageSize")),
        "SET_REPORT_PAGE_SIZE": lambda d: dashboard.set_report_page_size(_int(d, "pageSize")),
        "SET_DATE_RANGE": lambda d: dashboard.set_date_range(d.get("startDate"), d.get("endDate")),
        "SET_DATE_RANGE_PRESET": lambda d: dashboard.set_date_range_preset(_int(d, "daysAgo")),
        "CLEAR_DATE_RANGE": lambda d: dashboard.clear_date_range(),
        "GENERATE_REPORT": lambda d: dashboard.generate_report(d.get("reportType")),
        "REFRESH_REPORT_STATUS": lambda d: dashboard.refresh_report_status(_str(d, "reportId")),
        "REFRESH_PENDING_REPORTS": lambda d: dashboard.refresh_pending_reports(),
        "DOWNLOAD_REPORT": lambda d: dashboard.download_report(_str(d, "reportId"), d.get("destDir")),
        "DELETE_REPORT": lambda d: dashboard.delete_report(_str(d, "reportId")),
        "REGENERATE_REPORT": lambda d: dashboard.regenerate_report(_str(d, "reportId")),
        "CLEANUP_STUCK_REPORTS": lambda d: dashboard.cleanup_stuck_reports(),
        "LOAD_CLEANUP_STATS": lambda d: dashboard.load_cleanup_stats(),
        "CLEAR_ERROR": lambda d: dashboard.clear_error(),
        "GET_STATE": lambda d: dashboard.snapshot(),
    }


ACTION_NAMES = frozenset(_actions(None))
_READ_ONLY_ACTIONS = frozenset({"GET_STATE", "CLEAR_ERROR"})


def dispatch(dashboard, action: str, data: dict | None = None) -> dict[str, Any]:
    """
    Run one dashboard action. The error slot is cleared first; an error
    recorded by the action is reported as ok=False with code ACTION_FAILED.
    """
    action_u = str(action or "").strip().upper()
    handlers = _actions(dashboard)
    handler = handlers.get(action_u)
    if handler is None:
        return err("BAD_REQUEST", f"Unknown action: {action_u}")

    if action_u not in _READ_ONLY_ACTIONS:
        dashboard.clear_error()
    try:
        result = handler(dict(data or {}))
    except ApiError as e:
        return err(e.code, e.message)

    error = dashboard.error
    if error and action_u not in _READ_ONLY_ACTIONS:
        return err("ACTION_FAILED", error)
    return ok(to_jsonable(result))
