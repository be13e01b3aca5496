"""Timestamp helpers shared by write flows."""

from __future__ import annotations

from datetime import datetime, timezone


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as ISO-8601, writing a UTC offset as a trailing 'Z'."""
    text = dt.isoformat()
    return text[:-6] + "Z" if text.endswith("+00:00") else text


def utc_now() -> str:
    """Current UTC time with millisecond precision and trailing 'Z'."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


__all__ = ["format_timestamp", "utc_now"]
