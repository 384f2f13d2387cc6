# tests/test_api.py
import cv2
from fastapi import status
from fastapi.testclient import TestClient

ANSWERS = {"Q1": "A1", "Q2": "A2"}


def _schedule(client, candidate_id="user-1", scheduled_at="2030-01-01T10:00:00Z"):
    response = client.post("/api/interviews", json={
        "candidate_id": candidate_id,
        "scheduled_at": scheduled_at,
        "interviewer": "Dana",
    })
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


def _start_session(client, interview_id, count=2):
    response = client.post("/api/sessions", json={
        "interview_id": interview_id,
        "candidate_id": "user-1",
        "count": count,
    })
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/api/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "ok"


def test_schedule_and_list_interviews(client):
    interview = _schedule(client)
    assert interview["status"] == "upcoming"

    response = client.get("/api/interviews", params={"candidate_id": "user-1", "view": "upcoming"})
    assert [i["id"] for i in response.json()] == [interview["id"]]

    response = client.get("/api/interviews", params={"candidate_id": "user-1", "view": "missed"})
    assert response.json() == []


def test_full_interview_flow(client):
    interview = _schedule(client)
    session = _start_session(client, interview["id"])
    assert session["phase"] == "inProgress"
    assert session["question_count"] == 2

    for _ in range(2):
        question = session["current_question"]["text"]
        client.post(f"/api/sessions/{session['id']}/recording", json={"language": "en-US"})
        response = client.post(f"/api/sessions/{session['id']}/transcript",
                               json={"transcript": ANSWERS[question], "is_final": True})
        assert response.json()["transcript"] == ANSWERS[question] + " "
        response = client.post(f"/api/sessions/{session['id']}/answers")
        assert response.status_code == status.HTTP_200_OK
        session = response.json()

    assert session["phase"] == "completed"
    report = client.get(f"/api/reports/{session['report_id']}").json()
    assert report["totalScorePercent"] == 100.0
    assert [r["grade"] for r in report["responses"]] == ["A", "A"]

    stored = client.get(f"/api/interviews/{interview['id']}").json()
    assert stored["status"] == "completed"
    assert stored["session_id"] == session["report_id"]


def test_empty_answer_is_rejected(client):
    interview = _schedule(client)
    session = _start_session(client, interview["id"])
    client.post(f"/api/sessions/{session['id']}/recording", json={})

    response = client.post(f"/api/sessions/{session['id']}/answers")

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["code"] == "NO_ANSWER_CAPTURED"
    current = client.get(f"/api/sessions/{session['id']}").json()
    assert current["current_index"] == 0
    assert current["answered"] == 0


def test_unknown_session_and_interview(client):
    assert client.get("/api/sessions/nope").status_code == status.HTTP_404_NOT_FOUND
    response = client.get("/api/interviews/nope")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["code"] == "INTERVIEW_NOT_FOUND"
    assert client.get("/api/reports/nope").status_code == status.HTTP_404_NOT_FOUND


def test_unknown_category_is_rejected(client):
    interview = _schedule(client)
    response = client.post("/api/sessions", json={
        "interview_id": interview["id"],
        "candidate_id": "user-1",
        "category": "astronomy",
    })
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["code"] == "NO_QUESTIONS_AVAILABLE"


def test_question_categories(client):
    response = client.get("/api/questions/categories")
    assert response.json() == {"categories": ["All"], "errors": []}


def test_undecodable_frame_is_reported(client):
    interview = _schedule(client)
    session = _start_session(client, interview["id"])

    response = client.post(f"/api/sessions/{session['id']}/frames", json={"data": "not base64!!"})

    assert response.status_code == status.HTTP_202_ACCEPTED
    assert response.json()["accepted"] is False
    assert client.get(f"/api/sessions/{session['id']}").json()["warnings"]


def test_grading_config(client):
    response = client.get("/api/config/grading")
    assert response.json()["effective_mode"] == "lexical"

    response = client.put("/api/config/grading", json={"mode": "embedding"})
    assert response.json() == {"mode": "embedding", "effective_mode": "lexical", "has_api_key": False}

    response = client.get("/api/config/grading")
    assert response.json()["mode"] == "embedding"
    assert response.json()["has_api_key"] is False


def test_resume_with_unknown_role(client):
    response = client.post("/api/resumes/ats", data={"role": "astronaut"},
                           files={"resume": ("cv.pdf", b"%PDF-1.4", "application/pdf")})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def _answer_all(client, session):
    while session["phase"] == "inProgress":
        question = session["current_question"]["text"]
        client.post(f"/api/sessions/{session['id']}/recording", json={})
        client.post(f"/api/sessions/{session['id']}/transcript",
                    json={"transcript": ANSWERS[question], "is_final": True})
        response = client.post(f"/api/sessions/{session['id']}/answers")
        assert response.status_code == status.HTTP_200_OK
        session = response.json()
    return session


def test_service_runs_without_face_detector(app, monkeypatch):
    monkeypatch.delattr(cv2, "CascadeClassifier", raising=False)

    with TestClient(app) as client:
        assert client.app.state.classifier is None
        assert client.get("/api/health").status_code == status.HTTP_200_OK

        interview = _schedule(client)
        session = _answer_all(client, _start_session(client, interview["id"]))

        assert session["phase"] == "completed"
        assert client.get(f"/api/interviews/{interview['id']}").json()["status"] == "completed"


def test_completed_and_replaced_sessions_are_released(client):
    registry = client.app.state.sessions
    interview = _schedule(client)
    first = _start_session(client, interview["id"])
    abandoned = registry.get(first["id"])
    second = _start_session(client, interview["id"])

    assert client.get(f"/api/sessions/{first['id']}").status_code == status.HTTP_404_NOT_FOUND
    assert not abandoned.sampler.running

    finished = _answer_all(client, second)

    assert finished["phase"] == "completed"
    assert len(registry) == 0
    assert client.get(f"/api/sessions/{second['id']}").status_code == status.HTTP_404_NOT_FOUND


def test_interview_reports(client):
    interview = _schedule(client)
    session = _answer_all(client, _start_session(client, interview["id"]))

    reports = client.get(f"/api/interviews/{interview['id']}/reports").json()

    assert [r["id"] for r in reports] == [session["report_id"]]
    assert client.get("/api/interviews/nope/reports").status_code == status.HTTP_404_NOT_FOUND


def test_error_schema_is_documented(client):
    schema = client.get("/openapi.json").json()
    responses = schema["paths"]["/api/sessions/{session_id}/answers"]["post"]["responses"]
    assert responses["404"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorOut")
