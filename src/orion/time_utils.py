from __future__ import annotations

from datetime import datetime, timezone

UNAVAILABLE = "N/A"


def compact_utc_stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def ns_to_iso(ns: int | None) -> str | None:
    if ns is None:
        return None
    return datetime.fromtimestamp(ns / 1_000_000_000, tz=timezone.utc).isoformat()


def seconds_to_iso(seconds: float | None) -> str | None:
    if seconds is None:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()


def render_time(value: str | None) -> str:
    # None means the platform does not record this timestamp, not the epoch.
    return UNAVAILABLE if value is None else value
