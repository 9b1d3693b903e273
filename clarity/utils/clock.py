"""Centralised wall-clock helpers — single source of truth for 'now'.

Job timestamps and export headers read the time from here, so tests can
patch one function instead of chasing ``datetime.now()`` calls.

Usage:
    from clarity.utils.clock import now_utc, iso
"""

from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return the current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Timezone-aware UTC copy of *dt*; naive datetimes are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def iso(dt: datetime) -> str:
    """ISO 8601 string for *dt*; naive datetimes are treated as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def human(dt: datetime) -> str:
    """Readable timestamp for documents: '2026-02-23 14:05 UTC'"""
    return as_utc(dt).strftime("%Y-%m-%d %H:%M UTC")
