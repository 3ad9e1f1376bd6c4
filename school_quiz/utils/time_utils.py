"""Timestamp helpers shared by the engine, the store records and the API."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so comparisons never mix naive and aware values."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    # fromisoformat() only accepts a trailing "Z" from Python 3.11 on.
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return ensure_aware(datetime.fromisoformat(value))


def to_iso(value: datetime) -> str:
    return ensure_aware(value).astimezone(timezone.utc).isoformat()


def format_countdown(seconds: int | None) -> str:
    """Format remaining seconds as MM:SS; unlimited budgets render as '--:--'."""
    if seconds is None:
        return "--:--"
    minutes, secs = divmod(max(0, seconds), 60)
    return f"{minutes:02d}:{secs:02d}"
