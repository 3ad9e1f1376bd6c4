"""Service for managing the catalogue of learning modules and their quizzes."""

from __future__ import annotations

from school_quiz.constants.quiz_constants import MIN_CHOICE_OPTIONS
from school_quiz.core.models import LearningModule, Question, QuestionType, Quiz


class ModuleRepository:
    """Holds validated learning modules keyed by id, in insertion order."""

    def __init__(self) -> None:
        self._modules: dict[str, LearningModule] = {}

    def load_modules(self, modules: list[LearningModule]) -> None:
        """Replace the catalogue with ``modules``."""
        prepared = [self._prepare_module(module) for module in modules]
        ids = [module.id for module in prepared]
        if len(ids) != len(set(ids)):
            raise ValueError("Module ids must be unique.")
        self._modules = {module.id: module for module in prepared}

    def get_modules(self) -> list[LearningModule]:
        return list(self._modules.values())

    def get_module(self, module_id: str) -> LearningModule:
        module = self._modules.get(module_id)
        if module is None:
            raise KeyError(f"Module {module_id!r} not found")
        return module

    def _prepare_module(self, module: LearningModule) -> LearningModule:
        if not module.id.strip():
            raise ValueError("Module id must not be empty.")
        title = module.title.strip()
        if not title:
            raise ValueError("Module title must not be empty.")
        quiz = self._validate_quiz(module.quiz) if module.quiz is not None else None
        return LearningModule(
            id=module.id,
            title=title,
            description=module.description,
            category=module.category,
            tags=list(module.tags),
            target_classes=list(module.target_classes),
            quiz=quiz,
        )

    def _validate_quiz(self, quiz: Quiz) -> Quiz:
        if not quiz.title.strip():
            raise ValueError("Quiz title must not be empty.")
        if quiz.duration is not None and (not isinstance(quiz.duration, int) or quiz.duration < 0):
            raise ValueError("Quiz duration must be a non-negative whole number of minutes.")
        if quiz.start_date and quiz.end_date and quiz.start_date > quiz.end_date:
            raise ValueError("Quiz start date must not be after its end date.")
        ids = [question.id for question in quiz.questions]
        if len(ids) != len(set(ids)):
            raise ValueError("Question ids must be unique within a quiz.")
        for question in quiz.questions:
            self._validate_question(question)
        return quiz

    @staticmethod
    def _validate_question(question: Question) -> None:
        if not question.id:
            raise ValueError("Question id must not be empty.")
        if not question.prompt.strip():
            raise ValueError("Question text must not be empty.")
        if question.type is QuestionType.MULTIPLE_CHOICE:
            if len(question.options) < MIN_CHOICE_OPTIONS:
                raise ValueError(
                    f"Multiple choice question {question.id!r} needs at least {MIN_CHOICE_OPTIONS} options."
                )
            if any(not option.strip() for option in question.options):
                raise ValueError("Option text cannot be empty.")
