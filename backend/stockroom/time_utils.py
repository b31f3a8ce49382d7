from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

# History entries and archive stamps are recorded in Korea Standard Time.
KST = timezone(timedelta(hours=9), name="KST")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def kst_now() -> datetime:
    return datetime.now(KST)


def kst_timestamp(now: Optional[datetime] = None) -> str:
    """
    Wall-clock KST stamp used in history lists: "YYYY-MM-DD HH:MM:SS".

    Plain string comparison of two stamps orders them chronologically.
    """
    now = now or kst_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(KST).strftime("%Y-%m-%d %H:%M:%S")


def kst_file_stamp(now: Optional[datetime] = None) -> str:
    """Compact KST stamp for export filenames: "YYYYMMDD_HHMMSS"."""
    now = now or kst_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(KST).strftime("%Y%m%d_%H%M%S")


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


def to_kst_date_label(dt: Optional[datetime]) -> str:
    """
    Short Korean-locale date label for printed documents, e.g. "2026. 10. 17.".

    Returns "-" when there is no date.
    """
    if dt is None:
        return "-"
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    local = dt.astimezone(KST)
    return f"{local.year}. {local.month}. {local.day}."
