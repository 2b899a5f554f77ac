# Overview: UTC time helpers shared by models, services and routes.

from __future__ import annotations

from datetime import datetime, time, timezone
from typing import Optional


DATE_ONLY_LENGTH = len("YYYY-MM-DD")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" or "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    - anything unparseable -> None
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


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


def parse_iso_bound(value: Optional[str], *, upper: bool = False) -> Optional[datetime]:
    """
    Parse a from/to query bound.

    A date-only upper bound ("2026-01-31") covers the whole day, so inclusive
    ranges like from=2026-01-01&to=2026-01-31 include orders on the 31st.
    """
    dt = parse_iso_datetime(value)
    if dt is None or not upper:
        return dt
    if len(value.strip()) == DATE_ONLY_LENGTH:
        return datetime.combine(dt.date(), time.max)
    return dt
