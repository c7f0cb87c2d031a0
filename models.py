"""
Entity shapes shared by the gateway, the lifecycle store and the dashboard.

The report service speaks camelCase JSON; ``from_dict`` accepts that wire
shape and ignores unknown keys. Entities are immutable snapshots: a refresh
replaces the whole object, never patches it.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from app.utils.errors import TransportError


REPORT_TYPE_CERTIFICATION = "CERTIFICATION"
REPORT_TYPE_EMPLOYEE_DEMOGRAPHICS = "employee_demographics"


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _opt_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _opt_float(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _require_id(d: dict[str, Any], kind: str) -> str:
    rid = _opt_str(d.get("id"))
    if not rid:
        raise TransportError(f"{kind} payload is missing an id")
    return rid


class ReportStatus(str, Enum):
    QUEUED = "QUEUED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @classmethod
    def parse(cls, value: Any) -> "ReportStatus":
        raw = str(value or "").strip().upper()
        try:
            return cls(raw)
        except ValueError:
            raise TransportError(f"Unknown report status: {value!r}")


PENDING_STATUSES = frozenset({ReportStatus.QUEUED, ReportStatus.IN_PROGRESS})

_STATUS_PROGRESS = {
    ReportStatus.QUEUED: 0,
    ReportStatus.IN_PROGRESS: 50,
    ReportStatus.COMPLETED: 100,
    ReportStatus.FAILED: 0,
}


@dataclass(frozen=True)
class Employee:
    id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    department: str = ""
    position: str = ""
    hire_date: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Employee":
        return cls(
            id=_require_id(d, "Employee"),
            first_name=str(d.get("firstName") or ""),
            last_name=str(d.get("lastName") or ""),
            email=str(d.get("email") or ""),
            department=str(d.get("department") or ""),
            position=str(d.get("position") or ""),
            hire_date=_opt_str(d.get("hireDate")),
        )


@dataclass(frozen=True)
class CertificationDefinition:
    id: str
    name: str = ""
    category: str = ""
    is_active: bool = True
    description: str = ""
    total_duration_hours: float | None = None
    validity_period_months: int | None = None
    enrollment_count: int | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "CertificationDefinition":
        active = d.get("isActive")
        return cls(
            id=_require_id(d, "CertificationDefinition"),
            name=str(d.get("name") or ""),
            category=str(d.get("category") or ""),
            is_active=True if active is None else bool(active),
            description=str(d.get("description") or ""),
            total_duration_hours=_opt_float(d.get("totalDurationHours")),
            validity_period_months=_opt_int(d.get("validityPeriodMonths")),
            enrollment_count=_opt_int(d.get("enrollmentCount")),
        )


@dataclass(frozen=True)
class Report:
    """
    One report job as last seen on the service.

    Status flow: QUEUED -> IN_PROGRESS -> COMPLETED/FAILED
    IN_PROGRESS reports can only be refreshed; the service may still be
    writing the artifact.
    """

    id: str
    name: str
    type: str
    status: ReportStatus
    created_at: str
    parameters: str | None = None
    error_message: str | None = None
    started_at: str | None = None
    completed_at: str | None = None
    file_path: str | None = None
    page_count: int | None = None

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_STATUSES

    @property
    def is_deletable(self) -> bool:
        return self.status != ReportStatus.IN_PROGRESS

    @property
    def is_downloadable(self) -> bool:
        return self.status == ReportStatus.COMPLETED

    @property
    def progress(self) -> int:
        return _STATUS_PROGRESS[self.status]

    @property
    def status_message(self) -> str:
        if self.status == ReportStatus.QUEUED:
            return "Report is queued for processing"
        if self.status == ReportStatus.IN_PROGRESS:
            return "Generating report..."
        if self.status == ReportStatus.COMPLETED:
            return "Report generated successfully"
        return f"Report generation failed: {self.error_message or 'Unknown error'}"

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Report":
        rid = _require_id(d, "Report")
        created_at = _opt_str(d.get("createdAt"))
        if not created_at:
            raise TransportError(f"Report {rid} payload is missing createdAt")
        return cls(
            id=rid,
            # Older service builds sent fileName instead of name.
            name=str(d.get("name") or d.get("fileName") or ""),
            type=str(d.get("type") or ""),
            status=ReportStatus.parse(d.get("status")),
            created_at=created_at,
            parameters=_opt_str(d.get("parameters")),
            error_message=_opt_str(d.get("errorMessage")),
            started_at=_opt_str(d.get("startedAt")),
            completed_at=_opt_str(d.get("completedAt")),
            file_path=_opt_str(d.get("filePath")),
            page_count=_opt_int(d.get("pageCount")),
        )

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["status"] = self.status.value
        return out


@dataclass(frozen=True)
class ReportRequest:
    employee_ids: tuple[str, ...]
    report_type: str = REPORT_TYPE_CERTIFICATION
    certification_ids: tuple[str, ...] | None = None
    start_date: str | None = None
    end_date: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "employeeIds": list(self.employee_ids),
            "reportType": self.report_type,
        }
        if self.certification_ids:
            payload["certificationIds"] = list(self.certification_ids)
        if self.start_date:
            payload["startDate"] = self.start_date
        if self.end_date:
            payload["endDate"] = self.end_date
        return payload


@dataclass(frozen=True)
class CleanupResult:
    cleaned_count: int
    message: str = ""

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "CleanupResult":
        raw = d.get("cleanedCount", d.get("cleanedReports", 0))
        return cls(cleaned_count=_opt_int(raw) or 0, message=str(d.get("message") or ""))


@dataclass(frozen=True)
class CleanupStats:
    total_reports: int = 0
    queued_reports: int = 0
    in_progress_reports: int = 0
    completed_reports: int = 0
    failed_reports: int = 0
    stuck_reports: int = 0

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "CleanupStats":
        return cls(
            total_reports=_opt_int(d.get("totalReports")) or 0,
            queued_reports=_opt_int(d.get("queuedReports")) or 0,
            in_progress_reports=_opt_int(d.get("inProgressReports")) or 0,
            completed_reports=_opt_int(d.get("completedReports")) or 0,
            failed_reports=_opt_int(d.get("failedReports")) or 0,
            stuck_reports=_opt_int(d.get("stuckReports")) or 0,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
