"""Business logic shared by the HTTP API: modules, quiz sessions, results and grades."""

from __future__ import annotations

from datetime import datetime
import logging
import random
from threading import Lock
from typing import Callable

from school_quiz.core.grade_aggregator import ReportStatistics
from school_quiz.core.models import GradeSummary, LearningModule, ManualGrade, QuizResult, QuizType, Role
from school_quiz.core.schedule_gate import ScheduleCheck, evaluate_schedule
from school_quiz.core.services.environment import BrowserEnvironment, EnvironmentSignal
from school_quiz.core.services.grading_service import GradingService
from school_quiz.core.services.module_repository import ModuleRepository
from school_quiz.core.services.notifications import OperatorNotice, OperatorNotifications
from school_quiz.core.services.quiz_session import QuizSession, SessionPreconditionError
from school_quiz.core.services.result_dispatcher import ResultDispatcher
from school_quiz.core.services.result_store import InMemoryStore, ResultStore
from school_quiz.core.services.session_timer import IntervalTicker, SessionTicker
from school_quiz.core.session_machine import Participant, SessionState, SessionStatus
from school_quiz.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

_DISQUALIFIED_MESSAGE = "You were disqualified from this quiz. Ask your teacher to reset your attempt."
_EXAM_FINAL_MESSAGE = "This exam has already been submitted. Exam results are final."


class QuizManager:
    """Facade for quiz services: ModuleRepository, QuizSession, ResultDispatcher and GradingService."""

    def __init__(
        self,
        store: ResultStore | None = None,
        *,
        background_dispatch: bool = False,
        ticker_factory: Callable[[], SessionTicker] = IntervalTicker,
        rng_factory: Callable[[], random.Random] = random.Random,
        fullscreen_supported: bool = True,
    ) -> None:
        self._lock = Lock()

        # Services
        self._store: ResultStore = store if store is not None else InMemoryStore()
        self._notifications = OperatorNotifications()
        self._repository = ModuleRepository()
        self._grading = GradingService(self._store, self._notifications)
        self._dispatcher = ResultDispatcher(self._store, self._notifications, background=background_dispatch)

        self._ticker_factory = ticker_factory
        self._rng_factory = rng_factory
        self._fullscreen_supported = fullscreen_supported

        # Sessions by id, plus the latest session id per (role, nis, module id).
        self._sessions: dict[str, QuizSession] = {}
        self._environments: dict[str, BrowserEnvironment] = {}
        self._latest: dict[tuple[str, str, str], str] = {}

    # --- Module Repository Delegation ---

    def load_modules(self, modules: list[LearningModule]) -> None:
        with self._lock:
            self._repository.load_modules(modules)

    def load_modules_from_store(self) -> int:
        modules = self._store.list_modules()
        self.load_modules(modules)
        return len(modules)

    def get_modules(self) -> list[LearningModule]:
        with self._lock:
            return self._repository.get_modules()

    def get_module(self, module_id: str) -> LearningModule:
        with self._lock:
            return self._repository.get_module(module_id)

    def check_schedule(self, module_id: str, now: datetime | None = None) -> ScheduleCheck:
        module = self.get_module(module_id)
        if module.quiz is None:
            raise LookupError(f"Module {module_id!r} has no quiz.")
        return evaluate_schedule(module.quiz, now or utc_now())

    # --- Quiz Session Delegation ---

    def start_session(
        self,
        module_id: str,
        role: Role,
        student_nis: str | None = None,
        now: datetime | None = None,
    ) -> QuizSession:
        """Start a fresh session, or return the running one for this student and module."""
        with self._lock:
            module = self._repository.get_module(module_id)
            quiz = module.quiz
            if quiz is None:
                raise LookupError(f"Module {module_id!r} has no quiz.")
            participant = self._resolve_participant(role, student_nis)
            key = (participant.role.value, participant.nis, module_id)

            existing = self._sessions.get(self._latest.get(key, ""))
            if existing is not None and existing.state.is_running:
                return existing

            # Only student attempts are final; previews by other roles start over.
            if participant.role is Role.STUDENT:
                if existing is not None:
                    previous = existing.state
                    if previous.status is SessionStatus.DISQUALIFIED:
                        raise SessionPreconditionError(_DISQUALIFIED_MESSAGE)
                    if previous.status is SessionStatus.COMPLETED and previous.quiz.quiz_type is QuizType.EXAM:
                        raise SessionPreconditionError(_EXAM_FINAL_MESSAGE)
                if self._grading.has_disqualified_result(participant.nis, module.title, quiz.title):
                    raise SessionPreconditionError(_DISQUALIFIED_MESSAGE)
                if quiz.quiz_type is QuizType.EXAM and self._grading.has_result(
                    participant.nis, module.title, quiz.title
                ):
                    raise SessionPreconditionError(_EXAM_FINAL_MESSAGE)

            environment = BrowserEnvironment(fullscreen_supported=self._fullscreen_supported)
            session = QuizSession(
                quiz,
                module.title,
                module_id=module_id,
                environment=environment,
                dispatch=self._dispatcher.dispatch,
                ticker_factory=self._ticker_factory,
                rng=self._rng_factory(),
            )
            session.start(participant, now)

            if existing is not None:
                self._forget(existing.session_id)
            self._sessions[session.session_id] = session
            self._environments[session.session_id] = environment
            self._latest[key] = session.session_id
            logger.info(
                "Session %s started by %s (%s) on module %s",
                session.session_id,
                participant.nis,
                participant.role.value,
                module_id,
            )
            return session

    def get_session(self, session_id: str) -> QuizSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise KeyError(f"Session {session_id!r} not found")
        return session

    def navigate(self, session_id: str, index: int) -> SessionState:
        return self.get_session(session_id).navigate(index)

    def answer(self, session_id: str, question_id: str, response: str) -> SessionState:
        return self.get_session(session_id).answer(question_id, response)

    def submit(self, session_id: str, now: datetime | None = None) -> SessionState:
        return self.get_session(session_id).submit(now)

    def reset_session(self, session_id: str) -> bool:
        return self.get_session(session_id).reset()

    def report_signal(self, session_id: str, signal: EnvironmentSignal) -> SessionState:
        session = self.get_session(session_id)
        with self._lock:
            environment = self._environments.get(session_id)
        if environment is not None:
            environment.emit(signal)
        return session.state

    # --- Grading Delegation ---

    def get_results(self) -> list[QuizResult]:
        return self._grading.list_results()

    def correct_result_score(self, result_id: str, question_index: int, raw_score: object) -> QuizResult | None:
        return self._grading.correct_answer_score(result_id, question_index, raw_score)

    def reset_disqualification(self, result_id: str) -> QuizResult:
        result = self._grading.reset_disqualification(result_id)
        with self._lock:
            stale = [
                session_id
                for session_id, session in self._sessions.items()
                if self._is_session_of(session.state, result)
            ]
            for session_id in stale:
                self._forget(session_id)
        return result

    def get_manual_grades(self) -> list[ManualGrade]:
        return self._grading.list_manual_grades()

    def add_manual_grade(self, student_nis: str, module_id: str, score: int) -> ManualGrade:
        return self._grading.add_manual_grade(student_nis, self.get_module(module_id), score)

    def update_manual_grade(self, grade_id: str, score: int, module_id: str | None = None) -> ManualGrade:
        module = self.get_module(module_id) if module_id else None
        return self._grading.update_manual_grade(grade_id, score, module)

    def delete_manual_grade(self, grade_id: str) -> None:
        self._grading.delete_manual_grade(grade_id)

    def get_grade_report(self, query: str | None = None) -> list[GradeSummary]:
        return self._grading.grade_report(query)

    def get_statistics(self, now: datetime | None = None) -> ReportStatistics:
        return self._grading.statistics(now)

    def get_notifications(self) -> list[OperatorNotice]:
        return self._notifications.get_notices()

    # --- Internals ---

    def _resolve_participant(self, role: Role, student_nis: str | None) -> Participant:
        if role is Role.STUDENT:
            student = self._store.get_student(student_nis) if student_nis else None
            if student is None:
                raise SessionPreconditionError("Unknown student. Please log in again.")
            return Participant(name=student.name, nis=student.nis, role=role)
        if role is Role.ADMIN:
            return Participant(name="Administrator", nis=student_nis or "admin", role=role)
        return Participant(name="Guest", nis=student_nis or "guest", role=role)

    @staticmethod
    def _is_session_of(state: SessionState, result: QuizResult) -> bool:
        participant = state.participant
        return (
            participant is not None
            and participant.nis == result.student_nis
            and state.module_title == result.module_title
            and state.quiz.title == result.quiz_title
            and state.status is SessionStatus.DISQUALIFIED
        )

    def _forget(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._environments.pop(session_id, None)
        for key, value in list(self._latest.items()):
            if value == session_id:
                del self._latest[key]
