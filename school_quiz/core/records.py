"""Conversion between domain models and the camelCase records of the hosted store.

Field names follow the existing ``results``, ``grades``, ``students`` and
``modules`` tables, so records written here stay readable by the other
clients of that store.
"""

from __future__ import annotations

from typing import Any

from school_quiz.core.models import (
    GradeSummary,
    LearningModule,
    ManualGrade,
    Question,
    QuestionType,
    Quiz,
    QuizResult,
    QuizSubmission,
    QuizType,
    SessionAnswer,
    Student,
)
from school_quiz.utils.time_utils import parse_iso, to_iso

Record = dict[str, Any]


class RecordFormatError(ValueError):
    """Raised when a stored record cannot be mapped onto a domain model."""


def answer_to_record(answer: SessionAnswer) -> Record:
    return {
        "questionId": answer.question_id,
        "questionText": answer.question_text,
        "type": answer.question_type.value,
        "studentAnswer": answer.response,
        "correctAnswer": answer.correct_answer,
        "score": answer.score,
        "maxScore": answer.max_score,
    }


def answer_from_record(record: Record) -> SessionAnswer:
    return SessionAnswer(
        question_id=str(record["questionId"]),
        response=record.get("studentAnswer") or "",
        score=float(record.get("score", 0)),
        max_score=float(record.get("maxScore", 0)),
        question_text=record.get("questionText") or "",
        question_type=QuestionType(record.get("type", QuestionType.MULTIPLE_CHOICE.value)),
        correct_answer=record.get("correctAnswer"),
    )


def submission_to_record(submission: QuizSubmission) -> Record:
    return {
        "studentName": submission.student_name,
        "studentNis": submission.student_nis,
        "moduleTitle": submission.module_title,
        "quizTitle": submission.quiz_title,
        "score": submission.score,
        "submittedAt": to_iso(submission.submitted_at),
        "answers": [answer_to_record(answer) for answer in submission.answers],
        "violations": submission.violations,
        "isDisqualified": submission.is_disqualified,
        "isHidden": submission.is_hidden,
    }


def result_to_record(result: QuizResult) -> Record:
    return {
        "id": result.id,
        "studentName": result.student_name,
        "studentNis": result.student_nis,
        "moduleTitle": result.module_title,
        "quizTitle": result.quiz_title,
        "score": result.score,
        "submittedAt": to_iso(result.submitted_at),
        "answers": [answer_to_record(answer) for answer in result.answers],
        "violations": result.violations,
        "isDisqualified": result.is_disqualified,
        "isHidden": result.is_hidden,
    }


def result_from_record(record: Record) -> QuizResult:
    try:
        submitted_at = parse_iso(record["submittedAt"])
        if submitted_at is None:
            raise RecordFormatError("Result record is missing 'submittedAt'.")
        return QuizResult(
            id=str(record["id"]),
            student_name=record.get("studentName") or "",
            student_nis=str(record["studentNis"]),
            module_title=record.get("moduleTitle") or "",
            quiz_title=record.get("quizTitle") or "",
            score=int(record.get("score", 0)),
            submitted_at=submitted_at,
            answers=[answer_from_record(item) for item in record.get("answers") or []],
            violations=int(record.get("violations") or 0),
            is_disqualified=bool(record.get("isDisqualified", False)),
            is_hidden=bool(record.get("isHidden", False)),
        )
    except RecordFormatError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise RecordFormatError(f"Malformed result record: {exc}") from exc


def grade_to_record(grade: ManualGrade) -> Record:
    return {
        "id": grade.id,
        "studentNis": grade.student_nis,
        "moduleId": grade.module_id,
        "title": grade.title,
        "score": grade.score,
        "date": to_iso(grade.date),
    }


def grade_from_record(record: Record) -> ManualGrade:
    try:
        date = parse_iso(record["date"])
        if date is None:
            raise RecordFormatError("Grade record is missing 'date'.")
        return ManualGrade(
            id=str(record["id"]),
            student_nis=str(record["studentNis"]),
            module_id=str(record["moduleId"]),
            title=record.get("title") or "",
            score=int(record["score"]),
            date=date,
        )
    except RecordFormatError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise RecordFormatError(f"Malformed grade record: {exc}") from exc


def student_to_record(student: Student) -> Record:
    return {
        "nis": student.nis,
        "name": student.name,
        "classes": list(student.classes),
        "lastLogin": to_iso(student.last_login) if student.last_login else None,
    }


def student_from_record(record: Record) -> Student:
    return Student(
        nis=str(record["nis"]),
        name=record.get("name") or "",
        classes=list(record.get("classes") or []),
        last_login=parse_iso(record.get("lastLogin")),
    )


def question_from_record(record: Record) -> Question:
    return Question(
        id=str(record["id"]),
        type=QuestionType(record.get("type", QuestionType.MULTIPLE_CHOICE.value)),
        prompt=record.get("question") or "",
        options=tuple(record.get("options") or ()),
        correct_answer=record.get("correctAnswer"),
        image_url=record.get("imageUrl"),
    )


def quiz_from_record(record: Record) -> Quiz:
    return Quiz(
        title=record.get("title") or "",
        questions=tuple(question_from_record(item) for item in record.get("questions") or []),
        duration=record.get("duration") or None,
        quiz_type=QuizType(record.get("quizType") or QuizType.PRACTICE.value),
        start_date=parse_iso(record.get("startDate")),
        end_date=parse_iso(record.get("endDate")),
        is_published=bool(record.get("isPublished", True)),
    )


def module_from_record(record: Record) -> LearningModule:
    """Map a ``modules`` row, including its embedded quiz, onto a ``LearningModule``."""
    try:
        quiz_record = record.get("quiz")
        return LearningModule(
            id=str(record["id"]),
            title=record.get("title") or "",
            description=record.get("description") or "",
            category=record.get("category") or "",
            tags=list(record.get("tags") or []),
            target_classes=list(record.get("targetClasses") or []),
            quiz=quiz_from_record(quiz_record) if quiz_record else None,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise RecordFormatError(f"Malformed module record: {exc}") from exc


def summary_to_record(summary: GradeSummary) -> Record:
    return {
        "nis": summary.nis,
        "name": summary.name,
        "classes": list(summary.classes),
        "quizCount": summary.quiz_count,
        "quizAvg": summary.quiz_avg,
        "manualCount": summary.manual_count,
        "manualAvg": summary.manual_avg,
        "finalScore": summary.final_score,
    }
