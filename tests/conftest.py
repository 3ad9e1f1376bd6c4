from datetime import datetime, timedelta, timezone

import pytest

from school_quiz.core.models import LearningModule, Question, QuestionType, Quiz, QuizType, Student
from school_quiz.core.quiz_manager import QuizManager
from school_quiz.core.services.result_store import InMemoryStore


T0 = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


class ManualTicker:
    """Ticker that never fires on its own; tests call session.tick() instead."""

    instances = []

    def __init__(self):
        self.callback = None
        self.interval = None
        self.started = False
        self.stopped = False
        ManualTicker.instances.append(self)

    def start(self, callback, interval_seconds):
        self.callback = callback
        self.interval = interval_seconds
        self.started = True

    def stop(self):
        self.stopped = True

    def fire(self, times=1):
        for _ in range(times):
            self.callback()


def mc(question_id, correct="B", options=("A", "B", "C", "D"), prompt=None):
    return Question(
        id=question_id,
        type=QuestionType.MULTIPLE_CHOICE,
        prompt=prompt or f"Question {question_id}?",
        options=tuple(options),
        correct_answer=correct,
    )


def essay(question_id, rubric="Explain clearly."):
    return Question(id=question_id, type=QuestionType.ESSAY, prompt=f"Essay {question_id}", correct_answer=rubric)


def make_quiz(questions=None, *, duration=None, quiz_type=QuizType.PRACTICE, start=None, end=None, published=True):
    if questions is None:
        questions = [mc("q1"), mc("q2"), mc("q3"), mc("q4")]
    return Quiz(
        title="Fractions check",
        questions=tuple(questions),
        duration=duration,
        quiz_type=quiz_type,
        start_date=start,
        end_date=end,
        is_published=published,
    )


def make_module(module_id="m1", quiz=None, title="Fractions"):
    return LearningModule(id=module_id, title=title, category="Mathematics", quiz=quiz or make_quiz())


STUDENTS = [
    Student(nis="1001", name="Ayu Lestari", classes=["10-A"]),
    Student(nis="1002", name="Budi Santoso", classes=["10-A"]),
    Student(nis="1003", name="Citra Dewi", classes=["10-B"]),
]


@pytest.fixture(autouse=True)
def _reset_tickers():
    ManualTicker.instances.clear()
    yield
    ManualTicker.instances.clear()


@pytest.fixture
def store():
    return InMemoryStore(students=STUDENTS)


@pytest.fixture
def manager(store):
    manager = QuizManager(store, ticker_factory=ManualTicker)
    manager.load_modules(
        [
            make_module("m1", make_quiz(duration=10)),
            make_module("m2", make_quiz(quiz_type=QuizType.EXAM), title="Ratios"),
            make_module(
                "m3",
                make_quiz(start=T0 + timedelta(days=365 * 20), end=T0 + timedelta(days=365 * 21)),
                title="Percentages",
            ),
        ]
    )
    return manager
