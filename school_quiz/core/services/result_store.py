"""Persistence boundary for results, manual grades, the roster and module records.

The production store is a hosted database reached through generic
create/read/update/delete calls. ``InMemoryStore`` keeps the same camelCase
rows in process and is used for development and tests.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from threading import Lock
from typing import Protocol
from uuid import uuid4

from school_quiz.core import records
from school_quiz.core.models import LearningModule, ManualGrade, QuizResult, QuizSubmission, SessionAnswer, Student


class StoreError(RuntimeError):
    """Raised when the store rejects or fails a request."""


class RecordNotFoundError(StoreError):
    """Raised when a record id does not exist."""


class ResultStore(Protocol):
    def append_result(self, submission: QuizSubmission) -> QuizResult: ...

    def update_result(self, result_id: str, score: int, answers: Sequence[SessionAnswer]) -> QuizResult: ...

    def delete_result(self, result_id: str) -> None: ...

    def get_result(self, result_id: str) -> QuizResult: ...

    def list_results(self) -> list[QuizResult]: ...

    def add_grade(self, grade: ManualGrade) -> ManualGrade: ...

    def update_grade(self, grade: ManualGrade) -> ManualGrade: ...

    def delete_grade(self, grade_id: str) -> None: ...

    def list_grades(self) -> list[ManualGrade]: ...

    def list_students(self) -> list[Student]: ...

    def get_student(self, nis: str) -> Student | None: ...

    def list_modules(self) -> list[LearningModule]: ...


class InMemoryStore:
    """Row-oriented store holding the same records the hosted tables hold."""

    def __init__(
        self,
        students: Iterable[Student] = (),
        module_rows: Iterable[records.Record] = (),
    ) -> None:
        self._lock = Lock()
        self._results: list[records.Record] = []
        self._grades: list[records.Record] = []
        self._students: list[records.Record] = [records.student_to_record(s) for s in students]
        self._modules: list[records.Record] = [dict(row) for row in module_rows]

    # --- results ---

    def append_result(self, submission: QuizSubmission) -> QuizResult:
        row = records.submission_to_record(submission)
        row["id"] = f"res-{uuid4().hex}"
        with self._lock:
            self._results.append(row)
        return records.result_from_record(row)

    def update_result(self, result_id: str, score: int, answers: Sequence[SessionAnswer]) -> QuizResult:
        with self._lock:
            row = self._find(self._results, result_id)
            row["score"] = score
            row["answers"] = [records.answer_to_record(answer) for answer in answers]
            return records.result_from_record(row)

    def delete_result(self, result_id: str) -> None:
        with self._lock:
            row = self._find(self._results, result_id)
            self._results.remove(row)

    def get_result(self, result_id: str) -> QuizResult:
        with self._lock:
            return records.result_from_record(self._find(self._results, result_id))

    def list_results(self) -> list[QuizResult]:
        with self._lock:
            rows = list(self._results)
        results = [records.result_from_record(row) for row in rows]
        return sorted(results, key=lambda r: r.submitted_at, reverse=True)

    # --- manual grades ---

    def add_grade(self, grade: ManualGrade) -> ManualGrade:
        row = records.grade_to_record(grade)
        if not row["id"]:
            row["id"] = f"grd-{uuid4().hex}"
        with self._lock:
            self._grades.append(row)
        return records.grade_from_record(row)

    def update_grade(self, grade: ManualGrade) -> ManualGrade:
        with self._lock:
            row = self._find(self._grades, grade.id)
            row.update(records.grade_to_record(grade))
            return records.grade_from_record(row)

    def delete_grade(self, grade_id: str) -> None:
        with self._lock:
            row = self._find(self._grades, grade_id)
            self._grades.remove(row)

    def list_grades(self) -> list[ManualGrade]:
        with self._lock:
            rows = list(self._grades)
        grades = [records.grade_from_record(row) for row in rows]
        return sorted(grades, key=lambda g: g.date, reverse=True)

    # --- roster and modules ---

    def list_students(self) -> list[Student]:
        with self._lock:
            return [records.student_from_record(row) for row in self._students]

    def get_student(self, nis: str) -> Student | None:
        with self._lock:
            row = next((r for r in self._students if r["nis"] == nis), None)
        return records.student_from_record(row) if row is not None else None

    def list_modules(self) -> list[LearningModule]:
        with self._lock:
            rows = list(self._modules)
        return [records.module_from_record(row) for row in rows]

    @staticmethod
    def _find(rows: list[records.Record], record_id: str) -> records.Record:
        row = next((r for r in rows if r.get("id") == record_id), None)
        if row is None:
            raise RecordNotFoundError(f"Record {record_id!r} not found.")
        return row
