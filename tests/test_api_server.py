from fastapi.testclient import TestClient
import pytest

from school_quiz.server.api_server import create_api_app


@pytest.fixture
def client(manager):
    return TestClient(create_api_app(manager))


def start(client, module_id="m1", nis="1001"):
    response = client.post(f"/modules/{module_id}/sessions", json={"role": "STUDENT", "student_nis": nis})
    assert response.status_code == 201, response.text
    return response.json()


def test_list_modules(client):
    modules = client.get("/modules").json()
    assert [m["id"] for m in modules] == ["m1", "m2", "m3"]
    assert modules[0]["quiz"]["question_count"] == 4
    assert modules[1]["quiz"]["quiz_type"] == "EXAM"
    assert modules[0]["quiz"]["schedule_status"] == "OPEN"
    assert modules[2]["quiz"]["schedule_status"] == "NOT_STARTED"


def test_schedule_endpoint(client):
    assert client.get("/modules/m1/schedule").json()["can_start"] is True
    closed = client.get("/modules/m3/schedule").json()
    assert closed["status"] == "NOT_STARTED"
    assert closed["can_start"] is False
    assert client.get("/modules/zzz/schedule").status_code == 404


def test_start_session_view(client):
    view = start(client)
    assert view["status"] == "RUNNING"
    assert view["countdown"] == "10:00"
    assert view["question_count"] == 4
    assert view["fullscreen_requested"] is True
    assert view["score"] is None
    assert "<p>" in view["questions"][0]["prompt_html"]
    assert "correct_answer" not in view["questions"][0]


def test_start_refusals(client):
    assert client.post("/modules/m3/sessions", json={"student_nis": "1001"}).status_code == 403
    assert client.post("/modules/m1/sessions", json={"role": "GUEST"}).status_code == 403
    assert client.post("/modules/nope/sessions", json={"student_nis": "1001"}).status_code == 404


def test_practice_flow_reveals_score(client):
    view = start(client)
    sid = view["session_id"]
    for qid in ("q1", "q2", "q3"):
        client.post(f"/sessions/{sid}/answers", json={"question_id": qid, "response": "B"})
    client.post(f"/sessions/{sid}/answers", json={"question_id": "q4", "response": "C"})
    assert client.post(f"/sessions/{sid}/navigate", json={"index": 2}).json()["current_index"] == 2

    done = client.post(f"/sessions/{sid}/submit").json()
    assert done["status"] == "COMPLETED"
    assert done["score"] == 75
    assert len(done["review"]) == 4
    assert done["can_retry"] is True

    retry = client.post(f"/sessions/{sid}/reset").json()
    assert retry["status"] == "IDLE"

    results = client.get("/results").json()
    assert results[0]["score"] == 75
    assert results[0]["studentNis"] == "1001"


def test_exam_hides_results(client):
    sid = start(client, "m2")["session_id"]
    done = client.post(f"/sessions/{sid}/submit").json()
    assert done["results_hidden"] is True
    assert done["score"] is None
    assert done["review"] is None
    assert client.post(f"/sessions/{sid}/reset").status_code == 409


def test_signals_disqualify_and_teacher_resets(client):
    sid = start(client)["session_id"]
    view = client.post(f"/sessions/{sid}/signals", json={"signal": "hidden"}).json()
    assert view["violations"] == 1
    assert view["warning"].startswith("Integrity warning (1/3)")
    for signal in ("visible", "blur", "focus", "hidden"):
        view = client.post(f"/sessions/{sid}/signals", json={"signal": signal}).json()
    assert view["status"] == "DISQUALIFIED"
    assert view["violations"] == 3

    assert client.post("/modules/m1/sessions", json={"student_nis": "1001"}).status_code == 403
    result_id = client.get("/results").json()[0]["id"]
    assert client.delete(f"/results/{result_id}").json()["reset"] is True
    assert start(client)["status"] == "RUNNING"


def test_unknown_session_and_bad_signal(client):
    assert client.get("/sessions/missing").status_code == 404
    sid = start(client)["session_id"]
    assert client.post(f"/sessions/{sid}/signals", json={"signal": "shake"}).status_code == 422


def test_score_correction(client):
    sid = start(client)["session_id"]
    client.post(f"/sessions/{sid}/answers", json={"question_id": "q1", "response": "B"})
    client.post(f"/sessions/{sid}/submit")
    result = client.get("/results").json()[0]
    index = [a["questionId"] for a in result["answers"]].index("q2")

    corrected = client.patch(f"/results/{result['id']}/answers/{index}", json={"score": "7.5"}).json()
    assert corrected["score"] == 44
    assert client.patch(f"/results/{result['id']}/answers/9", json={"score": 1}).status_code == 422
    assert client.patch("/results/res-missing/answers/0", json={"score": 1}).status_code == 404
    assert client.delete(f"/results/{result['id']}").status_code == 409


def test_manual_grades_and_reports(client):
    created = client.post("/grades", json={"student_nis": "1002", "module_id": "m1", "score": 80})
    assert created.status_code == 201
    grade = created.json()
    assert grade["title"] == "Assignment: Fractions"

    assert client.post("/grades", json={"student_nis": "1002", "module_id": "m1", "score": 120}).status_code == 422
    assert client.post("/grades", json={"student_nis": "1002", "module_id": "zz", "score": 50}).status_code == 404
    assert client.post("/grades", json={"student_nis": "9999", "module_id": "m1", "score": 50}).status_code == 422

    updated = client.put(f"/grades/{grade['id']}", json={"score": 90, "module_id": "m2"}).json()
    assert updated["title"] == "Assignment: Ratios"

    (budi,) = client.get("/reports/grades", params={"query": "budi"}).json()
    assert budi["manualAvg"] == 90
    assert budi["finalScore"] == 90

    assert client.delete(f"/grades/{grade['id']}").status_code == 204
    assert client.delete(f"/grades/{grade['id']}").status_code == 404
    assert client.get("/grades").json() == []

    stats = client.get("/reports/statistics").json()
    assert stats == {"total_results": 0, "average_score": 0, "online_students": 0}
    assert client.get("/notifications").json() == []
