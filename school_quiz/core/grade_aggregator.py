"""Report-card computation combining quiz results with manual grades.

Everything here is recomputed from the source records on every call, so a
corrected or deleted record is reflected immediately.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from school_quiz.constants.quiz_constants import ONLINE_WINDOW_MINUTES
from school_quiz.core.models import GradeSummary, ManualGrade, QuizResult, Student
from school_quiz.core.scoring import round_half_up
from school_quiz.utils.time_utils import ensure_aware


@dataclass(frozen=True, slots=True)
class ReportStatistics:
    total_results: int
    average_score: int
    online_students: int


def _rounded_mean(scores: Sequence[float]) -> int:
    if not scores:
        return 0
    return round_half_up(sum(scores) / len(scores))


def summarize_student(
    student: Student, quiz_results: Iterable[QuizResult], manual_grades: Iterable[ManualGrade]
) -> GradeSummary:
    # Disqualified results stay in with their score of 0.
    quiz_scores = [result.score for result in quiz_results if result.student_nis == student.nis]
    manual_scores = [grade.score for grade in manual_grades if grade.student_nis == student.nis]
    quiz_avg = _rounded_mean(quiz_scores)
    manual_avg = _rounded_mean(manual_scores)

    if quiz_scores and manual_scores:
        final_score = round_half_up((quiz_avg + manual_avg) / 2)
    elif quiz_scores:
        final_score = quiz_avg
    elif manual_scores:
        final_score = manual_avg
    else:
        final_score = 0

    return GradeSummary(
        nis=student.nis,
        name=student.name,
        classes=tuple(student.classes),
        quiz_count=len(quiz_scores),
        quiz_avg=quiz_avg,
        manual_count=len(manual_scores),
        manual_avg=manual_avg,
        final_score=final_score,
    )


def aggregate_grades(
    students: Iterable[Student],
    quiz_results: Iterable[QuizResult],
    manual_grades: Iterable[ManualGrade],
) -> list[GradeSummary]:
    """Return one summary per student, in roster order."""
    results = list(quiz_results)
    grades = list(manual_grades)
    return [summarize_student(student, results, grades) for student in students]


def filter_students(students: Iterable[Student], query: str | None) -> list[Student]:
    """Case-insensitive name match or NIS substring match; an empty query keeps everyone."""
    if not query:
        return list(students)
    needle = query.strip().lower()
    return [s for s in students if needle in s.name.lower() or needle in s.nis]


def is_online(student: Student, now: datetime, window_minutes: int = ONLINE_WINDOW_MINUTES) -> bool:
    if student.last_login is None:
        return False
    return ensure_aware(now) - ensure_aware(student.last_login) < timedelta(minutes=window_minutes)


def compute_statistics(
    students: Iterable[Student], quiz_results: Sequence[QuizResult], now: datetime
) -> ReportStatistics:
    return ReportStatistics(
        total_results=len(quiz_results),
        average_score=_rounded_mean([result.score for result in quiz_results]),
        online_students=sum(1 for student in students if is_online(student, now)),
    )
