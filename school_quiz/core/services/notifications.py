"""Transient student warnings and the operator-facing notification board."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from threading import Lock

from school_quiz.utils.time_utils import ensure_aware, utc_now


@dataclass(frozen=True, slots=True)
class SessionWarning:
    """Warning shown to a student until ``expires_at``."""

    message: str
    posted_at: datetime
    expires_at: datetime


class WarningBanner:
    """Holds the latest warning for one session and dismisses it after a delay."""

    def __init__(self) -> None:
        self._current: SessionWarning | None = None
        self._lock = Lock()

    def post(self, message: str, dismiss_after_seconds: float, now: datetime | None = None) -> SessionWarning:
        posted_at = ensure_aware(now or utc_now())
        warning = SessionWarning(
            message=message,
            posted_at=posted_at,
            expires_at=posted_at + timedelta(seconds=dismiss_after_seconds),
        )
        with self._lock:
            self._current = warning
        return warning

    def active(self, now: datetime | None = None) -> SessionWarning | None:
        """Return the current warning, or None once it has been auto-dismissed."""
        current_time = ensure_aware(now or utc_now())
        with self._lock:
            if self._current is not None and current_time >= self._current.expires_at:
                self._current = None
            return self._current

    def clear(self) -> None:
        with self._lock:
            self._current = None


@dataclass(slots=True)
class OperatorNotice:
    category: str
    message: str
    created_at: datetime = field(default_factory=utc_now)


class OperatorNotifications:
    """Collects failures that an operator has to look at (lost submissions, failed corrections)."""

    def __init__(self) -> None:
        self._notices: list[OperatorNotice] = []
        self._lock = Lock()

    def report(self, category: str, message: str) -> OperatorNotice:
        notice = OperatorNotice(category=category, message=message)
        with self._lock:
            self._notices.append(notice)
        return notice

    def get_notices(self) -> list[OperatorNotice]:
        with self._lock:
            return sorted(self._notices, key=lambda n: n.created_at, reverse=True)
