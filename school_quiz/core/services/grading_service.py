"""Teacher-side grading: score corrections, disqualification resets, manual grades and reports."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
import logging

from school_quiz.constants.quiz_constants import (
    MANUAL_GRADE_MAX,
    MANUAL_GRADE_MIN,
    MANUAL_GRADE_TITLE_TEMPLATE,
)
from school_quiz.core.grade_aggregator import ReportStatistics, aggregate_grades, compute_statistics, filter_students
from school_quiz.core.models import GradeSummary, LearningModule, ManualGrade, QuizResult
from school_quiz.core.scoring import apply_correction
from school_quiz.core.services.notifications import OperatorNotifications
from school_quiz.core.services.result_store import RecordNotFoundError, ResultStore
from school_quiz.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class GradingService:
    def __init__(self, store: ResultStore, notifications: OperatorNotifications) -> None:
        self._store = store
        self._notifications = notifications

    # --- Quiz results ---

    def list_results(self) -> list[QuizResult]:
        return self._store.list_results()

    def correct_answer_score(self, result_id: str, question_index: int, raw_score: object) -> QuizResult | None:
        """Set one answer's score (clamped to its maximum) and store the recomputed total.

        Returns None when the store update fails; the failure is reported to
        the operator notifications and not retried.
        """
        result = self._store.get_result(result_id)
        report = apply_correction(result.answers, question_index, raw_score)
        total = 0 if result.is_disqualified else report.total
        try:
            updated = self._store.update_result(result_id, total, report.answers)
        except RecordNotFoundError:
            raise
        except Exception as exc:
            logger.exception("Could not save correction for result %s", result_id)
            self._notifications.report("correction", f"Correction of result {result_id} was not saved: {exc}")
            return None
        logger.info("Result %s corrected: question %d, total %d", result_id, question_index, total)
        return updated

    def reset_disqualification(self, result_id: str) -> QuizResult:
        """Delete a disqualified result so the student can start a fresh session."""
        result = self._store.get_result(result_id)
        if not result.is_disqualified:
            raise ValueError("Only disqualified results can be reset.")
        self._store.delete_result(result_id)
        logger.info(
            "Disqualification reset for %s on %r (result %s)", result.student_nis, result.quiz_title, result_id
        )
        return result

    def has_disqualified_result(self, student_nis: str, module_title: str, quiz_title: str) -> bool:
        return any(
            r.is_disqualified for r in self._matching_results(student_nis, module_title, quiz_title)
        )

    def has_result(self, student_nis: str, module_title: str, quiz_title: str) -> bool:
        return bool(self._matching_results(student_nis, module_title, quiz_title))

    def _matching_results(self, student_nis: str, module_title: str, quiz_title: str) -> list[QuizResult]:
        return [
            r
            for r in self._store.list_results()
            if r.student_nis == student_nis and r.module_title == module_title and r.quiz_title == quiz_title
        ]

    # --- Manual grades ---

    def list_manual_grades(self) -> list[ManualGrade]:
        return self._store.list_grades()

    def add_manual_grade(
        self, student_nis: str, module: LearningModule, score: int, now: datetime | None = None
    ) -> ManualGrade:
        self._validate_manual_score(score)
        if self._store.get_student(student_nis) is None:
            raise ValueError(f"Unknown student {student_nis!r}.")
        grade = ManualGrade(
            id="",
            student_nis=student_nis,
            module_id=module.id,
            title=MANUAL_GRADE_TITLE_TEMPLATE.format(module_title=module.title),
            score=score,
            date=now or utc_now(),
        )
        return self._store.add_grade(grade)

    def update_manual_grade(self, grade_id: str, score: int, module: LearningModule | None = None) -> ManualGrade:
        self._validate_manual_score(score)
        current = next((g for g in self._store.list_grades() if g.id == grade_id), None)
        if current is None:
            raise RecordNotFoundError(f"Record {grade_id!r} not found.")
        updated = replace(current, score=score)
        if module is not None:
            updated = replace(
                updated,
                module_id=module.id,
                title=MANUAL_GRADE_TITLE_TEMPLATE.format(module_title=module.title),
            )
        return self._store.update_grade(updated)

    def delete_manual_grade(self, grade_id: str) -> None:
        self._store.delete_grade(grade_id)

    @staticmethod
    def _validate_manual_score(score: int) -> None:
        if not MANUAL_GRADE_MIN <= score <= MANUAL_GRADE_MAX:
            raise ValueError(f"Score must be between {MANUAL_GRADE_MIN} and {MANUAL_GRADE_MAX}.")

    # --- Reports ---

    def grade_report(self, query: str | None = None) -> list[GradeSummary]:
        students = filter_students(self._store.list_students(), query)
        return aggregate_grades(students, self._store.list_results(), self._store.list_grades())

    def statistics(self, now: datetime | None = None) -> ReportStatistics:
        return compute_statistics(self._store.list_students(), self._store.list_results(), now or utc_now())
