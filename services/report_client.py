"""
Report Service API Client.

Talks to the remote certification report service:
- GET    /employees, /employees/departments
- GET    /certifications/definitions
- POST   /certifications/definitions/for-employees
- GET    /reports, /reports/{id}, /reports/{id}/download, /reports/stats
- POST   /reports/generate, /reports/cleanup/stuck
- DELETE /reports/{id}

Every failure surfaces as TransportError (NotFoundError for 404) carrying the
HTTP status and the remote error text when the service sent one.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Iterable

import requests

from app.utils.errors import NotFoundError, TransportError
from cache_layer import ResponseCache, make_cache_key
from models import CertificationDefinition, CleanupResult, CleanupStats, Employee, Report, ReportRequest


_log = logging.getLogger("report_client")

CERT_CACHE_PREFIX = "CERTS"


def _error_text(resp: requests.Response) -> str:
    """Remote error body text, preferring the error/message field of a JSON body."""
    text = (resp.text or "").strip()
    if not text:
        return ""
    try:
        body = json.loads(text)
    except ValueError:
        return text
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            val = body.get(key)
            if isinstance(val, str) and val.strip():
                return val.strip()
            if isinstance(val, dict) and str(val.get("message") or "").strip():
                return str(val["message"]).strip()
    return text


def _raise_for_status(resp: requests.Response) -> None:
    if resp.ok:
        return
    message = _error_text(resp) or f"HTTP {resp.status_code}: {resp.reason or 'request failed'}"
    if resp.status_code == 404:
        raise NotFoundError(message, http_status=404)
    raise TransportError(message, http_status=resp.status_code)


def _expect_list(data: Any, what: str) -> list:
    if not isinstance(data, list):
        raise TransportError(f"Expected a list of {what} from report service")
    return data


def _expect_dict(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise TransportError(f"Expected a {what} object from report service")
    return data


class ReportServiceClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: int = 30,
        session: requests.Session | None = None,
        cache: ResponseCache | None = None,
    ):
        self.base_url = str(base_url or "").rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.cache = cache

    @classmethod
    def from_config(cls, cfg: Any, *, session: requests.Session | None = None) -> "ReportServiceClient":
        cache = ResponseCache(ttl_seconds=cfg.CERT_CACHE_TTL_SECONDS, max_items=cfg.CERT_CACHE_MAX_ITEMS)
        return cls(cfg.REPORT_API_URL, timeout=cfg.REQUEST_TIMEOUT_SECONDS, session=session, cache=cache)

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        payload: Any = None,
        raw: bool = False,
    ) -> Any:
        url = f"{self.base_url}{endpoint}"
        headers = {"Accept": "application/pdf, application/octet-stream" if raw else "application/json"}
        try:
            resp = self.session.request(
                method.upper(),
                url,
                params=params,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            _log.warning("request failed method=%s url=%s error=%s", method, url, e)
            raise TransportError(f"Report service request failed: {e}")

        if not resp.ok:
            _log.warning("request failed method=%s url=%s status=%s", method, url, resp.status_code)
        _raise_for_status(resp)

        if raw:
            return resp.content
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            raise TransportError(f"Report service returned invalid JSON for {endpoint}", http_status=resp.status_code)

    def _cached(self, key: str, factory):
        if self.cache is None:
            return factory()
        return self.cache.get_or_set(key, factory)

    # Employees

    def list_employees(self, search: str | None = None, department: str | None = None) -> list[Employee]:
        params = {}
        if str(search or "").strip():
            params["search"] = str(search).strip()
        if str(department or "").strip():
            params["department"] = str(department).strip()
        data = self._request("GET", "/employees", params=params or None)
        return [Employee.from_dict(_expect_dict(x, "employee")) for x in _expect_list(data, "employees")]

    def list_departments(self) -> list[str]:
        data = self._request("GET", "/employees/departments")
        return [str(x) for x in _expect_list(data, "departments") if str(x or "").strip()]

    # Certifications

    def list_certification_definitions(self) -> list[CertificationDefinition]:
        def fetch() -> tuple[CertificationDefinition, ...]:
            data = self._request("GET", "/certifications/definitions")
            return tuple(
                CertificationDefinition.from_dict(_expect_dict(x, "certification definition"))
                for x in _expect_list(data, "certification definitions")
            )

        return list(self._cached(make_cache_key(CERT_CACHE_PREFIX, scope=["ALL"]), fetch))

    def available_certifications_for_employees(self, employee_ids: Iterable[str]) -> list[CertificationDefinition]:
        ids = sorted({str(i) for i in employee_ids})

        def fetch() -> tuple[CertificationDefinition, ...]:
            data = self._request("POST", "/certifications/definitions/for-employees", payload=ids)
            return tuple(
                CertificationDefinition.from_dict(_expect_dict(x, "certification definition"))
                for x in _expect_list(data, "certification definitions")
            )

        key = make_cache_key(CERT_CACHE_PREFIX, scope=["FOR_EMPLOYEES"], params={"employeeIds": ids})
        return list(self._cached(key, fetch))

    def invalidate_certifications(self) -> int:
        if self.cache is None:
            return 0
        return self.cache.invalidate_prefix(CERT_CACHE_PREFIX)

    def cache_stats(self) -> dict[str, Any] | None:
        return self.cache.stats() if self.cache is not None else None

    # Reports

    def list_reports(self) -> list[Report]:
        data = self._request("GET", "/reports")
        return [Report.from_dict(_expect_dict(x, "report")) for x in _expect_list(data, "reports")]

    def generate_report(self, request: ReportRequest) -> Report:
        data = self._request("POST", "/reports/generate", payload=request.to_payload())
        return Report.from_dict(_expect_dict(data, "report"))

    def get_report(self, report_id: str) -> Report:
        data = self._request("GET", f"/reports/{report_id}")
        return Report.from_dict(_expect_dict(data, "report"))

    def download_report(self, report_id: str) -> bytes:
        return self._request("GET", f"/reports/{report_id}/download", raw=True)

    def delete_report(self, report_id: str) -> None:
        self._request("DELETE", f"/reports/{report_id}")

    def cleanup_stuck_reports(self) -> CleanupResult:
        data = self._request("POST", "/reports/cleanup/stuck")
        return CleanupResult.from_dict(data if isinstance(data, dict) else {})

    def get_cleanup_stats(self) -> CleanupStats:
        data = self._request("GET", "/reports/stats")
        return CleanupStats.from_dict(_expect_dict(data, "cleanup stats"))
