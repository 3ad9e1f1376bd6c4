import pytest

from conftest import T0
from school_quiz.core import records
from school_quiz.core.models import QuestionType, QuizType


MODULE_ROW = {
    "id": "mod-7",
    "title": "Linear equations",
    "description": "Solve for x",
    "category": "Mathematics",
    "tags": ["algebra"],
    "targetClasses": ["10-A"],
    "quiz": {
        "title": "Equations quiz",
        "duration": 15,
        "quizType": "EXAM",
        "startDate": "2026-03-01T07:00:00Z",
        "endDate": "2026-03-01T09:00:00Z",
        "questions": [
            {"id": "q1", "type": "MULTIPLE_CHOICE", "question": "Solve $2x = 4$", "options": ["1", "2"], "correctAnswer": "2"},
            {"id": "q2", "type": "ESSAY", "question": "Explain your steps", "correctAnswer": "Divide both sides"},
        ],
    },
}


def test_module_row_maps_embedded_quiz():
    module = records.module_from_record(MODULE_ROW)
    quiz = module.quiz
    assert module.target_classes == ["10-A"]
    assert quiz.quiz_type is QuizType.EXAM
    assert quiz.duration == 15
    assert quiz.start_date.hour == 7
    assert quiz.is_published is True
    assert quiz.questions[0].options == ("1", "2")
    assert quiz.questions[1].type is QuestionType.ESSAY


def test_module_without_quiz():
    module = records.module_from_record({"id": "mod-1", "title": "Reading"})
    assert module.quiz is None


def test_result_record_uses_store_field_names():
    row = {
        "id": "res-1",
        "studentName": "Ayu Lestari",
        "studentNis": "1001",
        "moduleTitle": "Fractions",
        "quizTitle": "Fractions check",
        "score": 50,
        "submittedAt": "2026-03-02T08:00:00Z",
        "answers": [
            {"questionId": "q1", "type": "ESSAY", "studentAnswer": "x", "score": 5, "maxScore": 10},
        ],
        "violations": 1,
        "isDisqualified": False,
        "isHidden": True,
    }
    result = records.result_from_record(row)
    assert result.submitted_at == T0
    assert result.answers[0].question_type is QuestionType.ESSAY
    assert result.is_hidden is True
    assert records.result_to_record(result)["submittedAt"] == "2026-03-02T08:00:00+00:00"
    assert set(records.result_to_record(result)) == set(row)


@pytest.mark.parametrize("row", [{"id": "res-1"}, {"id": "res-1", "studentNis": "1", "submittedAt": "yesterday"}])
def test_malformed_result_rows(row):
    with pytest.raises(records.RecordFormatError):
        records.result_from_record(row)


def test_grade_record_requires_date():
    with pytest.raises(records.RecordFormatError):
        records.grade_from_record({"id": "g", "studentNis": "1", "moduleId": "m", "score": 5})


def test_rows_without_hidden_flag_are_visible():
    row = {"id": "res-2", "studentNis": "1002", "submittedAt": "2026-03-02T08:00:00Z"}
    assert records.result_from_record(row).is_hidden is False
