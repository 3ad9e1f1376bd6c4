"""Domain models for the school quiz service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    ESSAY = "ESSAY"


class QuizType(str, Enum):
    """PRACTICE reveals results right away, EXAM hides score and answer key."""

    PRACTICE = "PRACTICE"
    EXAM = "EXAM"


class Role(str, Enum):
    ADMIN = "ADMIN"
    STUDENT = "STUDENT"
    GUEST = "GUEST"


@dataclass(frozen=True, slots=True)
class Question:
    """A single quiz question.

    ``correct_answer`` is the exact option string for multiple choice and a
    free-form rubric for essays.
    """

    id: str
    type: QuestionType
    prompt: str
    options: tuple[str, ...] = ()
    correct_answer: str | None = None
    image_url: str | None = None


@dataclass(frozen=True, slots=True)
class Quiz:
    """Quiz attached to a learning module. Frozen so sessions hold a snapshot."""

    title: str
    questions: tuple[Question, ...]
    duration: int | None = None  # minutes, None or 0 means unlimited
    quiz_type: QuizType = QuizType.PRACTICE
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_published: bool = True

    @property
    def has_time_limit(self) -> bool:
        return bool(self.duration and self.duration > 0)


@dataclass(slots=True)
class LearningModule:
    """Content unit that optionally carries one quiz."""

    id: str
    title: str
    description: str = ""
    category: str = ""
    tags: list[str] = field(default_factory=list)
    target_classes: list[str] = field(default_factory=list)
    quiz: Quiz | None = None


@dataclass(slots=True)
class Student:
    """Roster entry used for identity and grade reports."""

    nis: str
    name: str
    classes: list[str] = field(default_factory=list)
    last_login: datetime | None = None


@dataclass(frozen=True, slots=True)
class SessionAnswer:
    """Scored answer for one question, in canonical question order."""

    question_id: str
    response: str
    score: float
    max_score: float
    question_text: str = ""
    question_type: QuestionType = QuestionType.MULTIPLE_CHOICE
    correct_answer: str | None = None


@dataclass(frozen=True, slots=True)
class QuizSubmission:
    """Result payload emitted by a finished session before the store assigns an id."""

    student_name: str
    student_nis: str
    module_title: str
    quiz_title: str
    score: int
    submitted_at: datetime
    answers: tuple[SessionAnswer, ...]
    violations: int
    is_disqualified: bool
    is_hidden: bool = False  # student may not see the details yet


@dataclass(slots=True)
class QuizResult:
    """Persisted quiz result. ``score`` and ``answers`` change only through grading."""

    id: str
    student_name: str
    student_nis: str
    module_title: str
    quiz_title: str
    score: int
    submitted_at: datetime
    answers: list[SessionAnswer] = field(default_factory=list)
    violations: int = 0
    is_disqualified: bool = False
    is_hidden: bool = False


@dataclass(slots=True)
class ManualGrade:
    """Grade entered by a teacher outside the quiz flow (assignments, participation)."""

    id: str
    student_nis: str
    module_id: str
    title: str
    score: int
    date: datetime


@dataclass(frozen=True, slots=True)
class GradeSummary:
    """Derived per-student report row. Never persisted."""

    nis: str
    name: str
    classes: tuple[str, ...]
    quiz_count: int
    quiz_avg: int
    manual_count: int
    manual_avg: int
    final_score: int
