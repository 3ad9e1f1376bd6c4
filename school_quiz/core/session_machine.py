"""Pure state machine for one student's quiz attempt.

The machine is a reducer: ``reduce_session(state, event)`` returns the next
state together with the effects the host must carry out (start or stop the
one-second timer, register or release the integrity observers, request or
release full-screen, show a warning, dispatch the result). The reducer never
touches clocks, timers or I/O itself, so hosts and tests drive it directly.

Lifecycle::

    IDLE --start--> RUNNING --submit--> COMPLETED | DISQUALIFIED
      ^                                    |
      +----------- reset (PRACTICE, COMPLETED only)

Events that do not apply to the current state return the state unchanged with
no effects; they are never raised as errors because UI events can arrive late.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
import random
from typing import Callable, Union

from school_quiz.constants.quiz_constants import (
    MAX_VIOLATIONS,
    TIMER_INTERVAL_SECONDS,
    WARNING_DISMISS_SECONDS,
)
from school_quiz.core.models import Question, Quiz, QuizSubmission, QuizType, Role
from school_quiz.core.schedule_gate import evaluate_schedule
from school_quiz.core.scoring import ScoreReport, score_answers
from school_quiz.utils.time_utils import utc_now


class SessionStatus(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    DISQUALIFIED = "DISQUALIFIED"


TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.DISQUALIFIED})


@dataclass(frozen=True, slots=True)
class Participant:
    """Who is acting on the session. Only students produce result records."""

    name: str
    nis: str
    role: Role = Role.STUDENT


@dataclass(frozen=True, slots=True)
class SessionState:
    quiz: Quiz
    module_title: str
    status: SessionStatus = SessionStatus.IDLE
    participant: Participant | None = None
    question_order: tuple[str, ...] = ()
    current_index: int = 0
    answers: dict[str, str] = field(default_factory=dict)  # replaced, never mutated
    remaining_seconds: int | None = None  # None is the unlimited budget
    violations: int = 0
    score: int | None = None
    report: ScoreReport | None = None

    @property
    def is_running(self) -> bool:
        return self.status is SessionStatus.RUNNING

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def ordered_questions(self) -> list[Question]:
        by_id = {question.id: question for question in self.quiz.questions}
        return [by_id[question_id] for question_id in self.question_order]


# --- Events ---


@dataclass(frozen=True, slots=True)
class StartSession:
    participant: Participant
    rng: random.Random = field(default_factory=random.Random, compare=False)
    at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True, slots=True)
class Navigate:
    index: int


@dataclass(frozen=True, slots=True)
class AnswerQuestion:
    question_id: str
    response: str


@dataclass(frozen=True, slots=True)
class Tick:
    at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True, slots=True)
class ReportViolation:
    at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True, slots=True)
class SubmitSession:
    forced: bool = False
    disqualified: bool = False
    at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True, slots=True)
class ResetSession:
    pass


SessionEvent = Union[StartSession, Navigate, AnswerQuestion, Tick, ReportViolation, SubmitSession, ResetSession]


# --- Effects ---


@dataclass(frozen=True, slots=True)
class StartTimer:
    interval_seconds: float = TIMER_INTERVAL_SECONDS


@dataclass(frozen=True, slots=True)
class StopTimer:
    pass


@dataclass(frozen=True, slots=True)
class EnterRunning:
    """Register the integrity observers."""


@dataclass(frozen=True, slots=True)
class ExitRunning:
    """Unregister the integrity observers."""


@dataclass(frozen=True, slots=True)
class RequestFullscreen:
    pass


@dataclass(frozen=True, slots=True)
class ExitFullscreen:
    pass


@dataclass(frozen=True, slots=True)
class ShowWarning:
    message: str
    dismiss_after_seconds: float = WARNING_DISMISS_SECONDS


@dataclass(frozen=True, slots=True)
class BlockStart:
    """The start request was refused; ``message`` is shown to the user."""

    message: str


@dataclass(frozen=True, slots=True)
class DispatchResult:
    submission: QuizSubmission


SessionEffect = Union[
    StartTimer, StopTimer, EnterRunning, ExitRunning, RequestFullscreen,
    ExitFullscreen, ShowWarning, BlockStart, DispatchResult,
]


@dataclass(frozen=True, slots=True)
class Transition:
    state: SessionState
    effects: tuple[SessionEffect, ...] = ()


def new_session_state(quiz: Quiz, module_title: str) -> SessionState:
    return SessionState(quiz=quiz, module_title=module_title)


def reduce_session(state: SessionState, event: SessionEvent) -> Transition:
    """Apply ``event`` to ``state``. Unknown or inapplicable events are no-ops."""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        return Transition(state)
    return handler(state, event)


def _start(state: SessionState, event: StartSession) -> Transition:
    if state.status is not SessionStatus.IDLE:
        return Transition(state)

    quiz = state.quiz
    participant = event.participant
    if participant.role is Role.GUEST:
        return Transition(state, (BlockStart("Please log in before taking the quiz."),))
    if participant.role is Role.STUDENT:
        if not quiz.is_published:
            return Transition(state, (BlockStart("This quiz is still a draft and has not been published."),))
        schedule = evaluate_schedule(quiz, event.at)
        if not schedule.is_open:
            return Transition(state, (BlockStart(schedule.message or "The quiz is not open."),))

    order = [question.id for question in quiz.questions]
    event.rng.shuffle(order)
    remaining = quiz.duration * 60 if quiz.has_time_limit else None

    effects: list[SessionEffect] = [RequestFullscreen(), EnterRunning()]
    if remaining is not None:
        effects.append(StartTimer())

    running = replace(
        state,
        status=SessionStatus.RUNNING,
        participant=participant,
        question_order=tuple(order),
        current_index=0,
        answers={},
        remaining_seconds=remaining,
        violations=0,
        score=None,
        report=None,
    )
    return Transition(running, tuple(effects))


def _navigate(state: SessionState, event: Navigate) -> Transition:
    if not state.is_running or not 0 <= event.index < len(state.question_order):
        return Transition(state)
    if event.index == state.current_index:
        return Transition(state)
    return Transition(replace(state, current_index=event.index))


def _answer(state: SessionState, event: AnswerQuestion) -> Transition:
    if not state.is_running:
        return Transition(state)
    answers = dict(state.answers)
    answers[event.question_id] = event.response
    return Transition(replace(state, answers=answers))


def _tick(state: SessionState, event: Tick) -> Transition:
    if not state.is_running or state.remaining_seconds is None:
        return Transition(state)
    remaining = state.remaining_seconds - 1
    if remaining <= 0:
        return _submit(replace(state, remaining_seconds=0), SubmitSession(forced=True, at=event.at))
    return Transition(replace(state, remaining_seconds=remaining))


def _violation(state: SessionState, event: ReportViolation) -> Transition:
    if not state.is_running:
        return Transition(state)
    count = state.violations + 1
    counted = replace(state, violations=count)
    if count >= MAX_VIOLATIONS:
        warning = ShowWarning(
            f"You have been disqualified: the quiz page was left {count} times."
        )
        submitted = _submit(counted, SubmitSession(forced=True, disqualified=True, at=event.at))
        return Transition(submitted.state, (warning, *submitted.effects))
    warning = ShowWarning(
        f"Integrity warning ({count}/{MAX_VIOLATIONS}): you left the quiz page. "
        "Do not switch to other tabs or windows."
    )
    return Transition(counted, (warning,))


def _submit(state: SessionState, event: SubmitSession) -> Transition:
    if not state.is_running:
        return Transition(state)

    report = score_answers(state.quiz.questions, state.answers)
    final_score = 0 if event.disqualified else report.total
    status = SessionStatus.DISQUALIFIED if event.disqualified else SessionStatus.COMPLETED
    finished = replace(state, status=status, score=final_score, report=report)

    effects: list[SessionEffect] = [StopTimer(), ExitRunning(), ExitFullscreen()]
    participant = state.participant
    if participant is not None and participant.role is Role.STUDENT:
        effects.append(
            DispatchResult(
                QuizSubmission(
                    student_name=participant.name,
                    student_nis=participant.nis,
                    module_title=state.module_title,
                    quiz_title=state.quiz.title,
                    score=final_score,
                    submitted_at=event.at,
                    answers=report.answers,
                    violations=state.violations,
                    is_disqualified=event.disqualified,
                    is_hidden=state.quiz.quiz_type is QuizType.EXAM,
                )
            )
        )
    return Transition(finished, tuple(effects))


def can_reset(state: SessionState) -> bool:
    return state.status is SessionStatus.COMPLETED and state.quiz.quiz_type is QuizType.PRACTICE


def _reset(state: SessionState, event: ResetSession) -> Transition:
    if not can_reset(state):
        return Transition(state)
    return Transition(new_session_state(state.quiz, state.module_title))


_HANDLERS: dict[type, Callable[[SessionState, object], Transition]] = {
    StartSession: _start,
    Navigate: _navigate,
    AnswerQuestion: _answer,
    Tick: _tick,
    ReportViolation: _violation,
    SubmitSession: _submit,
    ResetSession: _reset,
}
