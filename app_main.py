"""Application entry point for the SchoolQuiz service."""

from __future__ import annotations

from school_quiz.core.quiz_manager import QuizManager
from school_quiz.core.services.result_store import InMemoryStore
from school_quiz.server.api_server import run_api_server
from school_quiz.utils.app_settings import AppSettings
from school_quiz.utils.logging_config import configure_logging


def main() -> None:
    """Initialize logging, load the module catalogue and serve the API."""
    settings = AppSettings.from_env()
    logger = configure_logging(settings.log_level)
    logger.info("Starting SchoolQuiz on %s:%d", settings.host, settings.port)

    quiz_manager = QuizManager(InMemoryStore(), background_dispatch=settings.background_dispatch)
    module_count = quiz_manager.load_modules_from_store()
    logger.info("Loaded %d learning module(s)", module_count)

    run_api_server(quiz_manager, host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
