# Overview: UTC clock and ISO-8601 helpers shared by models, services and filters.

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC; every stored timestamp uses this form."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: str | None) -> datetime | None:
    """Query-string dates: "2025-01-31" or "2025-01-31T08:00:00Z". Blank -> None."""
    text = (value or "").strip()
    if not text:
        return None
    # fromisoformat only learned "Z" in 3.11
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return _as_naive_utc(dt).replace(microsecond=0).isoformat() + "Z"
