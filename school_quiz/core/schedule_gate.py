"""Open/close window check for scheduled quizzes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from school_quiz.constants.quiz_constants import SCHEDULE_TIME_FORMAT
from school_quiz.core.models import Quiz
from school_quiz.utils.time_utils import ensure_aware


class ScheduleStatus(str, Enum):
    OPEN = "OPEN"
    NOT_STARTED = "NOT_STARTED"
    EXPIRED = "EXPIRED"


@dataclass(frozen=True, slots=True)
class ScheduleCheck:
    status: ScheduleStatus
    message: str | None = None

    @property
    def is_open(self) -> bool:
        return self.status is ScheduleStatus.OPEN


def evaluate_schedule(quiz: Quiz, now: datetime) -> ScheduleCheck:
    """Return whether ``quiz`` accepts new sessions at ``now``.

    Callers evaluate this both when rendering the start action and again right
    before a session starts, since the window may close in between.
    """
    if quiz.start_date is None and quiz.end_date is None:
        return ScheduleCheck(ScheduleStatus.OPEN)

    current = ensure_aware(now)
    if quiz.start_date is not None and current < ensure_aware(quiz.start_date):
        opens = ensure_aware(quiz.start_date).strftime(SCHEDULE_TIME_FORMAT)
        return ScheduleCheck(ScheduleStatus.NOT_STARTED, f"The quiz has not opened yet. Opens: {opens}")
    if quiz.end_date is not None and current > ensure_aware(quiz.end_date):
        closed = ensure_aware(quiz.end_date).strftime(SCHEDULE_TIME_FORMAT)
        return ScheduleCheck(ScheduleStatus.EXPIRED, f"The quiz closed on: {closed}")
    return ScheduleCheck(ScheduleStatus.OPEN)
