"""FastAPI server exposing quiz sessions to students and grading to teachers."""

from __future__ import annotations

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field
import uvicorn

from school_quiz.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from school_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from school_quiz.constants.quiz_constants import MANUAL_GRADE_MAX, MANUAL_GRADE_MIN, MAX_VIOLATIONS
from school_quiz.core.markdown_math_renderer import renderer
from school_quiz.core.models import LearningModule, QuizType, Role
from school_quiz.core.quiz_manager import QuizManager
from school_quiz.core.records import answer_to_record, grade_to_record, result_to_record, summary_to_record
from school_quiz.core.schedule_gate import evaluate_schedule
from school_quiz.core.services.environment import EnvironmentSignal
from school_quiz.core.services.quiz_session import QuizSession, SessionPreconditionError
from school_quiz.core.services.result_store import RecordNotFoundError
from school_quiz.core.session_machine import can_reset
from school_quiz.utils.time_utils import format_countdown, to_iso, utc_now


class StartSessionPayload(BaseModel):
    """Identity of the user starting a quiz, as established by the login collaborator."""

    role: Role = Role.STUDENT
    student_nis: str | None = None


class NavigatePayload(BaseModel):
    index: int


class AnswerPayload(BaseModel):
    question_id: str
    response: str


class SignalPayload(BaseModel):
    signal: EnvironmentSignal


class ScoreCorrectionPayload(BaseModel):
    # Raw teacher input; anything non-numeric is scored as 0.
    score: float | str | None = None


class ManualGradePayload(BaseModel):
    student_nis: str
    module_id: str
    score: int = Field(ge=MANUAL_GRADE_MIN, le=MANUAL_GRADE_MAX)


class ManualGradeUpdatePayload(BaseModel):
    score: int = Field(ge=MANUAL_GRADE_MIN, le=MANUAL_GRADE_MAX)
    module_id: str | None = None


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def _module_summary(module: LearningModule) -> dict[str, object]:
    quiz = module.quiz
    schedule = evaluate_schedule(quiz, utc_now()) if quiz is not None else None
    return {
        "id": module.id,
        "title": module.title,
        "description": module.description,
        "category": module.category,
        "tags": list(module.tags),
        "target_classes": list(module.target_classes),
        "quiz": None
        if quiz is None
        else {
            "title": quiz.title,
            "quiz_type": quiz.quiz_type.value,
            "duration": quiz.duration,
            "question_count": len(quiz.questions),
            "start_date": to_iso(quiz.start_date) if quiz.start_date else None,
            "end_date": to_iso(quiz.end_date) if quiz.end_date else None,
            "is_published": quiz.is_published,
            "schedule_status": schedule.status.value,
            "schedule_message": schedule.message,
        },
    }


def session_view(session: QuizSession) -> dict[str, object]:
    """Student-facing view of a session. Exams never reveal the score or answer key."""
    state = session.state
    quiz = state.quiz
    reveal = state.is_terminal and quiz.quiz_type is QuizType.PRACTICE
    warning = session.warnings.active()
    return {
        "session_id": session.session_id,
        "module_id": session.module_id,
        "module_title": state.module_title,
        "quiz_title": quiz.title,
        "quiz_type": quiz.quiz_type.value,
        "status": state.status.value,
        "current_index": state.current_index,
        "question_count": len(state.question_order),
        "questions": [
            {
                "id": question.id,
                "type": question.type.value,
                "prompt_html": renderer.render_fragment(question.prompt),
                "options": list(question.options),
                "image_url": question.image_url,
            }
            for question in state.ordered_questions
        ],
        "answers": dict(state.answers),
        "remaining_seconds": state.remaining_seconds,
        "countdown": format_countdown(state.remaining_seconds),
        "violations": state.violations,
        "max_violations": MAX_VIOLATIONS,
        "warning": warning.message if warning else None,
        "fullscreen_requested": getattr(session.environment, "fullscreen_requested", False),
        "can_retry": can_reset(state),
        "results_hidden": state.is_terminal and not reveal,
        "score": state.score if reveal else None,
        "review": [answer_to_record(a) for a in state.report.answers] if reveal and state.report else None,
    }


def create_api_app(quiz_manager: QuizManager) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager."""
    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
    )
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)

    def _session_or_404(manager: QuizManager, session_id: str) -> QuizSession:
        try:
            return manager.get_session(session_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Session not found.") from exc

    # --- Modules ---

    @app.get("/modules")
    def list_modules(manager: QuizManager = Depends(quiz_manager_dep)) -> list[dict[str, object]]:
        return [_module_summary(module) for module in manager.get_modules()]

    @app.get("/modules/{module_id}/schedule")
    def get_schedule(module_id: str, manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        try:
            check = manager.check_schedule(module_id)
        except LookupError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {"status": check.status.value, "message": check.message, "can_start": check.is_open}

    # --- Sessions ---

    @app.post("/modules/{module_id}/sessions", status_code=201)
    def start_session(
        module_id: str,
        payload: StartSessionPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            session = manager.start_session(module_id, payload.role, payload.student_nis)
        except SessionPreconditionError as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        except LookupError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return session_view(session)

    @app.get("/sessions/{session_id}")
    def get_session(session_id: str, manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        return session_view(_session_or_404(manager, session_id))

    @app.post("/sessions/{session_id}/navigate")
    def navigate(
        session_id: str, payload: NavigatePayload, manager: QuizManager = Depends(quiz_manager_dep)
    ) -> dict[str, object]:
        session = _session_or_404(manager, session_id)
        session.navigate(payload.index)
        return session_view(session)

    @app.post("/sessions/{session_id}/answers")
    def answer(
        session_id: str, payload: AnswerPayload, manager: QuizManager = Depends(quiz_manager_dep)
    ) -> dict[str, object]:
        session = _session_or_404(manager, session_id)
        session.answer(payload.question_id, payload.response)
        return session_view(session)

    @app.post("/sessions/{session_id}/signals")
    def report_signal(
        session_id: str, payload: SignalPayload, manager: QuizManager = Depends(quiz_manager_dep)
    ) -> dict[str, object]:
        session = _session_or_404(manager, session_id)
        manager.report_signal(session_id, payload.signal)
        return session_view(session)

    @app.post("/sessions/{session_id}/submit")
    def submit(session_id: str, manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        session = _session_or_404(manager, session_id)
        session.submit()
        return session_view(session)

    @app.post("/sessions/{session_id}/reset")
    def reset(session_id: str, manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        session = _session_or_404(manager, session_id)
        if not session.reset():
            raise HTTPException(status_code=409, detail="Retrying is only possible for completed practice quizzes.")
        return session_view(session)

    # --- Results and grading ---

    @app.get("/results")
    def list_results(manager: QuizManager = Depends(quiz_manager_dep)) -> list[dict[str, object]]:
        return [result_to_record(result) for result in manager.get_results()]

    @app.patch("/results/{result_id}/answers/{question_index}")
    def correct_score(
        result_id: str,
        question_index: int,
        payload: ScoreCorrectionPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            updated = manager.correct_result_score(result_id, question_index, payload.score)
        except IndexError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        if updated is None:
            raise HTTPException(status_code=503, detail="The correction could not be saved.")
        return result_to_record(updated)

    @app.delete("/results/{result_id}")
    def reset_disqualification(result_id: str, manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        try:
            result = manager.reset_disqualification(result_id)
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"id": result.id, "student_nis": result.student_nis, "reset": True}

    @app.get("/grades")
    def list_grades(manager: QuizManager = Depends(quiz_manager_dep)) -> list[dict[str, object]]:
        return [grade_to_record(grade) for grade in manager.get_manual_grades()]

    @app.post("/grades", status_code=201)
    def add_grade(payload: ManualGradePayload, manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        try:
            grade = manager.add_manual_grade(payload.student_nis, payload.module_id, payload.score)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Module not found.") from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return grade_to_record(grade)

    @app.put("/grades/{grade_id}")
    def update_grade(
        grade_id: str, payload: ManualGradeUpdatePayload, manager: QuizManager = Depends(quiz_manager_dep)
    ) -> dict[str, object]:
        try:
            grade = manager.update_manual_grade(grade_id, payload.score, payload.module_id)
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Module not found.") from exc
        return grade_to_record(grade)

    @app.delete("/grades/{grade_id}", status_code=204)
    def delete_grade(grade_id: str, manager: QuizManager = Depends(quiz_manager_dep)) -> None:
        try:
            manager.delete_manual_grade(grade_id)
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    # --- Reports ---

    @app.get("/reports/grades")
    def grade_report(
        query: str | None = Query(default=None),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[dict[str, object]]:
        return [summary_to_record(summary) for summary in manager.get_grade_report(query)]

    @app.get("/reports/statistics")
    def statistics(manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        stats = manager.get_statistics()
        return {
            "total_results": stats.total_results,
            "average_score": stats.average_score,
            "online_students": stats.online_students,
        }

    @app.get("/notifications")
    def notifications(manager: QuizManager = Depends(quiz_manager_dep)) -> list[dict[str, object]]:
        return [
            {"category": notice.category, "message": notice.message, "created_at": to_iso(notice.created_at)}
            for notice in manager.get_notifications()
        ]

    return app


def run_api_server(
    quiz_manager: QuizManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> None:
    """Serve the API with uvicorn until interrupted."""
    app = create_api_app(quiz_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level.lower())
    server = uvicorn.Server(config)
    server.run()
