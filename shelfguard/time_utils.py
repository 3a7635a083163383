from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    """Server-local calendar date; expiry arithmetic is done against this."""
    return date.today()


def days_until(target: date, reference: Optional[date] = None) -> int:
    """Whole days from reference (default today) to target; negative once past."""
    reference = reference or today()
    return (target - reference).days


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse "YYYY-MM-DD" (a full ISO datetime is accepted and truncated).

    - None / "" -> None
    - anything unparseable raises ValueError
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    if len(s) > 10 and s[10] in ("T", " "):
        return parse_iso_datetime(s).date()
    return date.fromisoformat(s)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_iso_date(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
