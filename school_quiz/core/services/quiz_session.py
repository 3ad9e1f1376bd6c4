"""Service that runs one quiz attempt by feeding events through the session reducer."""

from __future__ import annotations

from datetime import datetime
import logging
import random
from threading import RLock
from typing import Callable
from uuid import uuid4

from school_quiz.core.models import Quiz, QuizSubmission
from school_quiz.core.services.environment import (
    BrowserEnvironment,
    EnvironmentUnavailableError,
    PresentationEnvironment,
)
from school_quiz.core.services.integrity_monitor import IntegrityMonitor
from school_quiz.core.services.notifications import WarningBanner
from school_quiz.core.services.session_timer import IntervalTicker, SessionTicker
from school_quiz.core.session_machine import (
    AnswerQuestion,
    BlockStart,
    DispatchResult,
    EnterRunning,
    ExitFullscreen,
    ExitRunning,
    Navigate,
    Participant,
    ReportViolation,
    RequestFullscreen,
    ResetSession,
    SessionEffect,
    SessionEvent,
    SessionState,
    ShowWarning,
    StartSession,
    StartTimer,
    StopTimer,
    SubmitSession,
    Tick,
    Transition,
    new_session_state,
    reduce_session,
)
from school_quiz.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class SessionPreconditionError(RuntimeError):
    """Raised when a session may not start; the message is meant for the user."""


class QuizSession:
    """Owns the state, timer, integrity monitor and warning banner of one attempt.

    Every event is reduced and its effects carried out under one lock, so a
    timer tick, a violation and a manual submit never interleave. Effects that
    leave the running state (stop timer, release observers) run inside the
    same locked step as the state change.
    """

    def __init__(
        self,
        quiz: Quiz,
        module_title: str,
        *,
        module_id: str = "",
        environment: PresentationEnvironment | None = None,
        dispatch: Callable[[QuizSubmission], None] | None = None,
        ticker_factory: Callable[[], SessionTicker] = IntervalTicker,
        rng: random.Random | None = None,
    ) -> None:
        self.session_id: str = uuid4().hex
        self.module_id = module_id
        self.environment: PresentationEnvironment = environment or BrowserEnvironment()
        self.warnings = WarningBanner()
        self._lock = RLock()
        self._state = new_session_state(quiz, module_title)
        self._dispatch = dispatch
        self._ticker_factory = ticker_factory
        self._ticker: SessionTicker | None = None
        self._rng = rng or random.Random()
        self._monitor = IntegrityMonitor(self.environment, self._on_violation_signal)

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    def is_monitoring(self) -> bool:
        with self._lock:
            return self._monitor.is_active()

    def is_timer_running(self) -> bool:
        with self._lock:
            return self._ticker is not None

    # --- Commands ---

    def start(self, participant: Participant, now: datetime | None = None) -> SessionState:
        transition = self._apply(StartSession(participant=participant, rng=self._rng, at=now or utc_now()))
        blocked = next((e for e in transition.effects if isinstance(e, BlockStart)), None)
        if blocked is not None:
            raise SessionPreconditionError(blocked.message)
        return transition.state

    def navigate(self, index: int) -> SessionState:
        return self._apply(Navigate(index)).state

    def answer(self, question_id: str, response: str) -> SessionState:
        return self._apply(AnswerQuestion(question_id, response)).state

    def tick(self, now: datetime | None = None) -> SessionState:
        return self._apply(Tick(at=now or utc_now())).state

    def report_violation(self, now: datetime | None = None) -> SessionState:
        return self._apply(ReportViolation(at=now or utc_now())).state

    def submit(self, now: datetime | None = None) -> SessionState:
        return self._apply(SubmitSession(at=now or utc_now())).state

    def reset(self) -> bool:
        """Return to IDLE for a practice retry. Returns False when the retry is not allowed."""
        with self._lock:
            before = self._state
            after = self._apply(ResetSession()).state
            if after is not before:
                self.warnings.clear()
            return after is not before

    # --- Internals ---

    def _on_violation_signal(self) -> None:
        self.report_violation()

    def _apply(self, event: SessionEvent) -> Transition:
        with self._lock:
            previous = self._state
            transition = reduce_session(previous, event)
            self._state = transition.state
            if transition.state is previous and not transition.effects:
                logger.debug("Session %s ignored %s in state %s", self.session_id, type(event).__name__, previous.status.value)
                return transition
            if transition.state.status is not previous.status:
                logger.info(
                    "Session %s: %s -> %s",
                    self.session_id,
                    previous.status.value,
                    transition.state.status.value,
                )
            for effect in transition.effects:
                self._run_effect(effect)
            return transition

    def _run_effect(self, effect: SessionEffect) -> None:
        if isinstance(effect, StartTimer):
            self._stop_timer()
            self._ticker = self._ticker_factory()
            self._ticker.start(self.tick, effect.interval_seconds)
        elif isinstance(effect, StopTimer):
            self._stop_timer()
        elif isinstance(effect, EnterRunning):
            self._monitor.enter_running()
        elif isinstance(effect, ExitRunning):
            self._monitor.exit_running()
        elif isinstance(effect, RequestFullscreen):
            try:
                self.environment.request_fullscreen()
            except EnvironmentUnavailableError as exc:
                logger.warning("Session %s: full-screen request denied: %s", self.session_id, exc)
        elif isinstance(effect, ExitFullscreen):
            try:
                self.environment.exit_fullscreen()
            except EnvironmentUnavailableError as exc:
                logger.warning("Session %s: leaving full-screen failed: %s", self.session_id, exc)
        elif isinstance(effect, ShowWarning):
            self.warnings.post(effect.message, effect.dismiss_after_seconds)
        elif isinstance(effect, DispatchResult):
            if self._dispatch is not None:
                self._dispatch(effect.submission)
        elif isinstance(effect, BlockStart):
            logger.info("Session %s: start refused: %s", self.session_id, effect.message)

    def _stop_timer(self) -> None:
        if self._ticker is not None:
            self._ticker.stop()
            self._ticker = None
