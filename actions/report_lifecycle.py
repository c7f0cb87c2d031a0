from __future__ import annotations

import json
import logging
import re
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Optional

from app.utils.datetime import parse_date_yyyy_mm_dd, parse_iso
from app.utils.errors import ApiError, MalformedParametersError, NotFoundError, ValidationError
from models import CleanupResult, Report, ReportRequest, ReportStatus
from services.report_client import ReportServiceClient


_log = logging.getLogger("reports")

# Legacy parameter strings look like:
#   ReportRequestDto{reportType='employee_demographics', employeeIds=[2, 5]}
_EMPLOYEE_IDS_RE = re.compile(r"employeeIds=\[([^\]]*)\]")
_CERTIFICATION_IDS_RE = re.compile(r"certificationIds=\[([^\]]*)\]")
_REPORT_TYPE_RE = re.compile(r"reportType='([^']*)'")
_START_DATE_RE = re.compile(r"startDate='?(\d{4}-\d{2}-\d{2})")
_END_DATE_RE = re.compile(r"endDate='?(\d{4}-\d{2}-\d{2})")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _split_ids(raw: str) -> tuple[str, ...]:
    out: list[str] = []
    for part in raw.split(","):
        v = part.strip().strip("'\"")
        if v and v not in out:
            out.append(v)
    return tuple(out)


def _clean_ids(values: Any) -> tuple[str, ...]:
    if not isinstance(values, (list, tuple)):
        return ()
    out: list[str] = []
    for v in values:
        s = str(v if v is not None else "").strip()
        if s and s not in out:
            out.append(s)
    return tuple(out)


def _parse_json_parameters(raw: str) -> Optional[dict[str, Any]]:
    if not raw.startswith("{"):
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def parse_report_parameters(parameters: Optional[str], *, fallback_type: str = "") -> ReportRequest:
    """
    Rebuild the request a report was generated from.

    Accepts structured JSON parameters or the legacy ReportRequestDto string.
    Raises MalformedParametersError when no employee ids can be recovered.
    """
    raw = str(parameters or "").strip()
    if not raw:
        raise MalformedParametersError("Report has no stored parameters to regenerate from")

    data = _parse_json_parameters(raw)
    if data is not None:
        employee_ids = _clean_ids(data.get("employeeIds"))
        cert_ids = _clean_ids(data.get("certificationIds")) or None
        report_type = str(data.get("reportType") or "").strip()
        start_date = str(data.get("startDate") or "").strip() or None
        end_date = str(data.get("endDate") or "").strip() or None
    else:
        m = _EMPLOYEE_IDS_RE.search(raw)
        employee_ids = _split_ids(m.group(1)) if m else ()
        m = _CERTIFICATION_IDS_RE.search(raw)
        cert_ids = (_split_ids(m.group(1)) or None) if m else None
        m = _REPORT_TYPE_RE.search(raw)
        report_type = m.group(1).strip() if m else ""
        m = _START_DATE_RE.search(raw)
        start_date = m.group(1) if m else None
        m = _END_DATE_RE.search(raw)
        end_date = m.group(1) if m else None

    if not employee_ids:
        raise MalformedParametersError("Could not extract employee IDs from original report")

    report_type = report_type or str(fallback_type or "").strip()
    if not report_type:
        raise MalformedParametersError("Could not determine the report type of the original report")

    return ReportRequest(
        employee_ids=employee_ids,
        report_type=report_type,
        certification_ids=cert_ids,
        start_date=start_date,
        end_date=end_date,
    )


def validate_report_request(request: ReportRequest) -> ReportRequest:
    employee_ids = _clean_ids(list(request.employee_ids or ()))
    if not employee_ids:
        raise ValidationError("Please select at least one employee")
    report_type = str(request.report_type or "").strip()
    if not report_type:
        raise ValidationError("Missing reportType")

    start = parse_date_yyyy_mm_dd(request.start_date) if request.start_date else None
    end = parse_date_yyyy_mm_dd(request.end_date) if request.end_date else None
    if request.start_date and start is None:
        raise ValidationError("Invalid startDate (expected YYYY-MM-DD)")
    if request.end_date and end is None:
        raise ValidationError("Invalid endDate (expected YYYY-MM-DD)")
    if start and end and start > end:
        raise ValidationError("startDate must be on or before endDate")

    return ReportRequest(
        employee_ids=employee_ids,
        report_type=report_type,
        certification_ids=_clean_ids(list(request.certification_ids or ())) or None,
        start_date=start.isoformat() if start else None,
        end_date=end.isoformat() if end else None,
    )


def _created_key(report: Report) -> datetime:
    return parse_iso(report.created_at) or _EPOCH


def sort_most_recent_first(reports: list[Report]) -> list[Report]:
    # sorted() is stable: ties keep the service's order.
    return sorted(reports, key=_created_key, reverse=True)


class ReportLifecycleStore:
    """
    Owns the report collection, most-recent first.

    The lock guards local state only and is never held across a service call,
    so reads and other actions proceed while a request is outstanding.
    """

    def __init__(self, client: ReportServiceClient):
        self._client = client
        self._reports: list[Report] = []
        self._deleting: set[str] = set()
        self._lock = threading.RLock()

    @property
    def reports(self) -> tuple[Report, ...]:
        with self._lock:
            return tuple(self._reports)

    @property
    def pending_deletes(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._deleting)

    def get(self, report_id: str) -> Optional[Report]:
        rid = str(report_id or "")
        with self._lock:
            for r in self._reports:
                if r.id == rid:
                    return r
        return None

    def _require_local(self, report_id: str) -> Report:
        report = self.get(report_id)
        if report is None:
            raise NotFoundError(f"Report {report_id} is not in the report list")
        return report

    def reload(self) -> tuple[Report, ...]:
        fetched = sort_most_recent_first(self._client.list_reports())
        # Collapse duplicate ids from the service, first (newest) wins.
        seen: set[str] = set()
        unique: list[Report] = []
        for r in fetched:
            if r.id in seen:
                continue
            seen.add(r.id)
            unique.append(r)
        with self._lock:
            self._reports = unique
            return tuple(self._reports)

    def _prepend(self, report: Report, *, replacing: str | None = None) -> None:
        with self._lock:
            drop = {report.id}
            if replacing:
                drop.add(replacing)
            self._reports = [report] + [r for r in self._reports if r.id not in drop]

    def generate(self, request: ReportRequest) -> Report:
        req = validate_report_request(request)
        report = self._client.generate_report(req)
        self._prepend(report)
        _log.info(
            "REPORT_GENERATE report_id=%s type=%s employees=%s status=%s",
            report.id,
            req.report_type,
            len(req.employee_ids),
            report.status.value,
        )
        return report

    def refresh_status(self, report_id: str) -> Report:
        rid = str(report_id or "").strip()
        if not rid:
            raise ValidationError("Missing reportId")

        fresh = self._client.get_report(rid)
        with self._lock:
            for idx, r in enumerate(self._reports):
                if r.id == rid:
                    if r.status != fresh.status:
                        _log.info("REPORT_STATUS report_id=%s %s -> %s", rid, r.status.value, fresh.status.value)
                    # Keep the local identity even if the payload echoes another id.
                    if fresh.id != rid:
                        fresh = replace(fresh, id=rid)
                    self._reports[idx] = fresh
                    break
        return fresh

    def refresh_pending(self) -> int:
        """One reconciliation pass over QUEUED/IN_PROGRESS reports."""
        pending = [r.id for r in self.reports if r.is_pending]
        refreshed = 0
        for rid in pending:
            try:
                self.refresh_status(rid)
                refreshed += 1
            except ApiError as e:
                _log.warning("REPORT_STATUS refresh failed report_id=%s code=%s message=%s", rid, e.code, e.message)
        return refreshed

    def download(self, report_id: str) -> bytes:
        rid = str(report_id or "").strip()
        if not rid:
            raise ValidationError("Missing reportId")
        try:
            return self._client.download_report(rid)
        except ApiError:
            # The service may have marked the report FAILED (artifact missing).
            try:
                self.refresh_status(rid)
            except ApiError as refresh_err:
                _log.warning("REPORT_DOWNLOAD status reconcile failed report_id=%s message=%s", rid, refresh_err.message)
            raise

    def delete(self, report_id: str) -> bool:
        """Returns False when a delete for the same id is already outstanding."""
        rid = str(report_id or "").strip()
        if not rid:
            raise ValidationError("Missing reportId")

        with self._lock:
            if rid in self._deleting:
                _log.info("REPORT_DELETE ignored, already in progress report_id=%s", rid)
                return False
            local = self.get(rid)
            if local is not None and not local.is_deletable:
                raise ValidationError("Report is still being generated and cannot be deleted")
            self._deleting.add(rid)

        try:
            self._client.delete_report(rid)
            with self._lock:
                self._reports = [r for r in self._reports if r.id != rid]
        finally:
            with self._lock:
                self._deleting.discard(rid)

        _log.info("REPORT_DELETE report_id=%s", rid)
        return True

    def regenerate(self, report_id: str) -> Report:
        rid = str(report_id or "").strip()
        if not rid:
            raise ValidationError("Missing reportId")

        original = self._require_local(rid)
        if original.status == ReportStatus.IN_PROGRESS:
            raise ValidationError("Report is still being generated and cannot be regenerated")

        request = validate_report_request(parse_report_parameters(original.parameters, fallback_type=original.type))
        report = self._client.generate_report(request)
        self._prepend(report, replacing=rid)
        _log.info("REPORT_REGENERATE original_id=%s report_id=%s", rid, report.id)
        return report

    def cleanup_stuck(self) -> CleanupResult:
        result = self._client.cleanup_stuck_reports()
        _log.info("REPORT_CLEANUP cleaned=%s", result.cleaned_count)
        self.reload()
        return result
