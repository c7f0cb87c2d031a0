from __future__ import annotations

from datetime import date, datetime, timedelta, timezone


def iso_utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def parse_iso(s: str | None) -> datetime | None:
    if not s:
        return None
    try:
        dt = datetime.fromisoformat(str(s).strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_date_yyyy_mm_dd(value: str | None) -> date | None:
    s = str(value or "").strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def create_date_range(days_ago: int, today: date | None = None) -> tuple[str, str]:
    """Return (start, end) ISO dates covering the last ``days_ago`` days up to today."""
    end = today or datetime.now(timezone.utc).date()
    start = end - timedelta(days=int(days_ago))
    return start.isoformat(), end.isoformat()


def days_between(start: str, end: str) -> int:
    """Inclusive number of days between two ISO dates."""
    s = parse_date_yyyy_mm_dd(start)
    e = parse_date_yyyy_mm_dd(end)
    if s is None or e is None:
        return 0
    return (e - s).days + 1
