import random

import pytest

from conftest import T0, ManualTicker, make_quiz
from school_quiz.core.models import QuizType, Role
from school_quiz.core.services.environment import BrowserEnvironment, EnvironmentSignal
from school_quiz.core.services.quiz_session import QuizSession, SessionPreconditionError
from school_quiz.core.session_machine import Participant, SessionStatus

STUDENT = Participant(name="Ayu Lestari", nis="1001", role=Role.STUDENT)


@pytest.fixture
def dispatched():
    return []


def build_session(dispatched, quiz=None, environment=None):
    return QuizSession(
        quiz or make_quiz(duration=10),
        "Fractions",
        module_id="m1",
        environment=environment or BrowserEnvironment(),
        dispatch=dispatched.append,
        ticker_factory=ManualTicker,
        rng=random.Random(3),
    )


def test_start_registers_timer_monitor_and_fullscreen(dispatched):
    session = build_session(dispatched)
    session.start(STUDENT, now=T0)

    assert session.state.status is SessionStatus.RUNNING
    assert session.is_timer_running()
    assert session.is_monitoring()
    assert session.environment.fullscreen_requested
    assert session.environment.listener_count() == 1
    (ticker,) = ManualTicker.instances
    assert ticker.started
    assert ticker.interval == 1.0


def test_timer_fires_tick_until_forced_submit(dispatched):
    session = build_session(dispatched, make_quiz(duration=1))
    session.start(STUDENT, now=T0)
    ticker = ManualTicker.instances[0]

    ticker.fire(30)
    assert session.state.remaining_seconds == 30
    ticker.fire(30)

    assert session.state.status is SessionStatus.COMPLETED
    assert ticker.stopped
    assert not session.is_timer_running()
    assert not session.is_monitoring()
    assert len(dispatched) == 1


def test_manual_submit_releases_everything_and_dispatches_once(dispatched):
    session = build_session(dispatched)
    session.start(STUDENT, now=T0)
    for qid in ("q1", "q2", "q3"):
        session.answer(qid, "B")
    session.answer("q4", "D")

    state = session.submit()
    session.submit()

    assert state.score == 75
    assert len(dispatched) == 1
    assert dispatched[0].score == 75
    assert ManualTicker.instances[0].stopped
    assert session.environment.listener_count() == 0
    assert not session.environment.fullscreen_requested


def test_environment_signals_count_violations(dispatched):
    session = build_session(dispatched)
    session.start(STUDENT, now=T0)
    env = session.environment

    env.emit(EnvironmentSignal.HIDDEN)
    env.emit(EnvironmentSignal.BLUR)
    assert session.state.violations == 1
    assert "(1/3)" in session.warnings.active().message

    env.emit(EnvironmentSignal.VISIBLE)
    env.emit(EnvironmentSignal.FOCUS)
    env.emit(EnvironmentSignal.BLUR)
    env.emit(EnvironmentSignal.FOCUS)
    env.emit(EnvironmentSignal.HIDDEN)

    assert session.state.status is SessionStatus.DISQUALIFIED
    assert session.state.violations == 3
    assert dispatched[0].is_disqualified
    assert dispatched[0].score == 0
    assert env.listener_count() == 0
    assert "disqualified" in session.warnings.active().message


def test_signals_after_finish_are_ignored(dispatched):
    session = build_session(dispatched)
    session.start(STUDENT, now=T0)
    session.submit()
    session.environment.emit(EnvironmentSignal.HIDDEN)
    assert session.state.violations == 0


def test_fullscreen_denied_is_not_fatal(dispatched):
    session = build_session(dispatched, environment=BrowserEnvironment(fullscreen_supported=False))
    session.start(STUDENT, now=T0)
    assert session.state.status is SessionStatus.RUNNING
    assert session.is_monitoring()


def test_blocked_start_raises_precondition_error(dispatched):
    session = build_session(dispatched, make_quiz(published=False))
    with pytest.raises(SessionPreconditionError, match="not been published"):
        session.start(STUDENT, now=T0)
    assert session.state.status is SessionStatus.IDLE
    assert not session.is_monitoring()
    assert ManualTicker.instances == []


def test_admin_preview_is_not_dispatched(dispatched):
    session = build_session(dispatched)
    session.start(Participant(name="Administrator", nis="admin", role=Role.ADMIN), now=T0)
    session.submit()
    assert dispatched == []


def test_practice_reset_allows_a_new_attempt(dispatched):
    session = build_session(dispatched)
    session.start(STUDENT, now=T0)
    session.environment.emit(EnvironmentSignal.HIDDEN)
    session.submit()

    assert session.reset() is True
    assert session.state.status is SessionStatus.IDLE
    assert session.warnings.active() is None

    session.start(STUDENT, now=T0)
    assert session.state.violations == 0
    assert session.state.remaining_seconds == 600
    assert len(ManualTicker.instances) == 2


def test_exam_cannot_be_reset(dispatched):
    session = build_session(dispatched, make_quiz(quiz_type=QuizType.EXAM))
    session.start(STUDENT, now=T0)
    session.submit()
    assert session.reset() is False
    assert session.state.status is SessionStatus.COMPLETED
