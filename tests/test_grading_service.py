from datetime import timedelta

import pytest

from conftest import STUDENTS, T0, essay, make_module, mc
from school_quiz.core.models import QuizSubmission
from school_quiz.core.scoring import score_answers
from school_quiz.core.services.grading_service import GradingService
from school_quiz.core.services.notifications import OperatorNotifications
from school_quiz.core.services.result_dispatcher import ResultDispatcher
from school_quiz.core.services.result_store import InMemoryStore, RecordNotFoundError, StoreError


class BrokenStore(InMemoryStore):
    def append_result(self, submission):
        raise StoreError("connection refused")

    def update_result(self, result_id, score, answers):
        raise StoreError("connection refused")


def submission(disqualified=False, nis="1001"):
    report = score_answers([mc("q1"), essay("q2")], {"q1": "B", "q2": "An essay"})
    return QuizSubmission(
        student_name="Ayu Lestari",
        student_nis=nis,
        module_title="Fractions",
        quiz_title="Fractions check",
        score=0 if disqualified else report.total,
        submitted_at=T0,
        answers=report.answers,
        violations=3 if disqualified else 0,
        is_disqualified=disqualified,
    )


@pytest.fixture
def notifications():
    return OperatorNotifications()


@pytest.fixture
def grading(store, notifications):
    return GradingService(store, notifications)


def test_dispatcher_appends_result(store, notifications):
    ResultDispatcher(store, notifications).dispatch(submission())
    (saved,) = store.list_results()
    assert saved.id.startswith("res-")
    assert saved.score == 50
    assert notifications.get_notices() == []


def test_dispatch_failure_is_reported_not_raised(notifications):
    store = BrokenStore(students=STUDENTS)
    ResultDispatcher(store, notifications).dispatch(submission())
    (notice,) = notifications.get_notices()
    assert notice.category == "submission"
    assert "1001" in notice.message


def test_correction_updates_score_and_total(store, grading):
    saved = store.append_result(submission())
    updated = grading.correct_answer_score(saved.id, 1, "8")
    assert updated.answers[1].score == 8
    assert updated.score == 90
    assert store.get_result(saved.id).score == 90


def test_correction_clamps(store, grading):
    saved = store.append_result(submission())
    assert grading.correct_answer_score(saved.id, 1, 50).score == 100
    assert grading.correct_answer_score(saved.id, 1, -4).score == 50


def test_disqualified_total_stays_zero(store, grading):
    saved = store.append_result(submission(disqualified=True))
    updated = grading.correct_answer_score(saved.id, 1, 10)
    assert updated.answers[1].score == 10
    assert updated.score == 0


def test_correction_failure_notifies(notifications):
    store = BrokenStore(students=STUDENTS)
    row = InMemoryStore.append_result(store, submission())
    grading = GradingService(store, notifications)
    assert grading.correct_answer_score(row.id, 1, 5) is None
    assert notifications.get_notices()[0].category == "correction"


def test_correction_unknown_result(grading):
    with pytest.raises(RecordNotFoundError):
        grading.correct_answer_score("res-missing", 0, 5)


def test_reset_disqualification_deletes_only_disqualified(store, grading):
    normal = store.append_result(submission())
    disqualified = store.append_result(submission(disqualified=True))
    assert grading.has_disqualified_result("1001", "Fractions", "Fractions check")

    with pytest.raises(ValueError):
        grading.reset_disqualification(normal.id)

    grading.reset_disqualification(disqualified.id)
    assert [r.id for r in store.list_results()] == [normal.id]
    assert not grading.has_disqualified_result("1001", "Fractions", "Fractions check")
    assert grading.has_result("1001", "Fractions", "Fractions check")


def test_manual_grade_crud(store, grading):
    module = make_module("m1")
    created = grading.add_manual_grade("1002", module, 88, now=T0)
    assert created.title == "Assignment: Fractions"
    assert created.id.startswith("grd-")

    renamed = make_module("m2", title="Ratios")
    updated = grading.update_manual_grade(created.id, 91, renamed)
    assert updated.score == 91
    assert updated.module_id == "m2"
    assert updated.title == "Assignment: Ratios"

    grading.delete_manual_grade(created.id)
    assert grading.list_manual_grades() == []
    with pytest.raises(RecordNotFoundError):
        grading.delete_manual_grade(created.id)


def test_manual_grade_validation(grading):
    module = make_module("m1")
    with pytest.raises(ValueError):
        grading.add_manual_grade("1001", module, 101)
    with pytest.raises(ValueError):
        grading.add_manual_grade("1001", module, -1)
    with pytest.raises(ValueError, match="Unknown student"):
        grading.add_manual_grade("9999", module, 50)


def test_manual_grades_newest_first(grading):
    module = make_module("m1")
    older = grading.add_manual_grade("1001", module, 60, now=T0)
    newer = grading.add_manual_grade("1001", module, 70, now=T0 + timedelta(days=1))
    assert [g.id for g in grading.list_manual_grades()] == [newer.id, older.id]


def test_grade_report_filters_roster(store, grading):
    store.append_result(submission())
    grading.add_manual_grade("1001", make_module("m1"), 100, now=T0)
    (ayu,) = grading.grade_report("ayu")
    assert ayu.quiz_avg == 50
    assert ayu.final_score == 75
    assert len(grading.grade_report()) == 3


class UnreachableStore(InMemoryStore):
    def append_result(self, submission):
        raise ConnectionError("network down")

    def update_result(self, result_id, score, answers):
        raise TimeoutError("store timed out")


def test_transport_failure_on_dispatch_is_reported(notifications):
    store = UnreachableStore(students=STUDENTS)
    ResultDispatcher(store, notifications).dispatch(submission())
    (notice,) = notifications.get_notices()
    assert notice.category == "submission"
    assert "network down" in notice.message


def test_transport_failure_on_correction_is_reported(notifications):
    store = UnreachableStore(students=STUDENTS)
    row = InMemoryStore.append_result(store, submission())
    grading = GradingService(store, notifications)
    assert grading.correct_answer_score(row.id, 1, 5) is None
    (notice,) = notifications.get_notices()
    assert notice.category == "correction"
    assert "timed out" in notice.message
