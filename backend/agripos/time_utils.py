# Overview: UTC time helpers; the database stores naive UTC datetimes.

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as naive UTC, the form every timestamp column holds."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a query/CLI datetime into naive UTC.

    Blank input gives None. Offsets (including a trailing Z) are converted
    to UTC; values without an offset are taken as UTC already. Raises
    ValueError for anything fromisoformat rejects.
    """
    if not value or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Whole-second ISO-8601 in UTC with a Z suffix (naive input is UTC)."""
    if dt is None:
        return None
    return _as_naive_utc(dt).replace(microsecond=0).isoformat() + "Z"


def date_stamp(dt: Optional[datetime] = None) -> str:
    """YYYYMMDD stamp used in document numbers."""
    return (dt or utcnow()).strftime("%Y%m%d")
