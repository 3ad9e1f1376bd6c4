"""Scoring rules for quiz submissions and later grading corrections.

Every question is worth the same fixed number of points. Multiple choice
answers earn full points only on an exact string match with the stored
correct answer; essays start at zero until a teacher grades them. The
normalized total is recomputed with the same formula after corrections so the
auto-score and the corrected score never disagree on rounding.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
import math

from school_quiz.constants.quiz_constants import POINTS_PER_QUESTION
from school_quiz.core.models import Question, QuestionType, SessionAnswer


@dataclass(frozen=True, slots=True)
class ScoreReport:
    answers: tuple[SessionAnswer, ...]
    total: int


def round_half_up(value: float) -> int:
    """Round .5 upwards, unlike the banker's rounding of ``round()``."""
    return int(math.floor(value + 0.5))


def normalized_total(answers: Sequence[SessionAnswer]) -> int:
    max_total = sum(answer.max_score for answer in answers)
    if max_total <= 0:
        return 0
    earned = sum(answer.score for answer in answers)
    return round_half_up(100 * earned / max_total)


def score_question(question: Question, response: str) -> float:
    if question.type is QuestionType.MULTIPLE_CHOICE:
        # Exact match on purpose: no trimming or case folding.
        return float(POINTS_PER_QUESTION) if response == question.correct_answer else 0.0
    return 0.0


def score_answers(questions: Sequence[Question], answer_map: Mapping[str, str]) -> ScoreReport:
    """Score ``answer_map`` against ``questions`` walked in canonical order."""
    answers = tuple(
        SessionAnswer(
            question_id=question.id,
            response=answer_map.get(question.id, ""),
            score=score_question(question, answer_map.get(question.id, "")),
            max_score=float(POINTS_PER_QUESTION),
            question_text=question.prompt,
            question_type=question.type,
            correct_answer=question.correct_answer,
        )
        for question in questions
    )
    return ScoreReport(answers=answers, total=normalized_total(answers))


def clamp_score(raw_score: object, max_score: float) -> float:
    """Coerce a teacher-entered score into ``[0, max_score]``; unparsable input counts as 0."""
    try:
        value = float(raw_score)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return min(max(value, 0.0), max_score)


def apply_correction(
    answers: Sequence[SessionAnswer], question_index: int, raw_score: object
) -> ScoreReport:
    """Overwrite one answer's score and recompute the total."""
    if not 0 <= question_index < len(answers):
        raise IndexError(f"Answer index {question_index} out of range")
    updated = list(answers)
    target = updated[question_index]
    updated[question_index] = replace(target, score=clamp_score(raw_score, target.max_score))
    return ScoreReport(answers=tuple(updated), total=normalized_total(updated))
