from datetime import timedelta

import pytest

from services.progress import MOTIVATIONAL_QUOTES
from utils.datetime_utils import get_today

HEADERS = {"X-User-Id": "learner"}

SETUP = {
    "daily_study_hours": 3,
    "deadline_date": "2030-06-01",
    "subjects": [
        {"name": "Mathematics", "topics": [{"name": "Calculus"}, {"name": "Algebra"}]},
        {"name": "Physics", "topics": [{"name": "Optics"}]},
    ],
}


@pytest.fixture
def configured(client):
    response = client.put("/api/setup", json=SETUP, headers=HEADERS)
    assert response.status_code == 200
    return response.get_json()


@pytest.mark.parametrize(
    "method,path",
    [
        ("post", "/api/plan/generate"),
        ("get", "/api/sessions"),
        ("post", "/api/sessions/1/complete"),
        ("post", "/api/assessments"),
        ("get", "/api/setup"),
        ("get", "/api/progress"),
        ("get", "/api/home"),
    ],
)
def test_requests_without_user_are_rejected(client, method, path):
    response = getattr(client, method)(path, json={})

    assert response.status_code == 401
    assert response.get_json()["error"] == "not_authenticated"


def test_generate_without_topics_returns_guidance(client):
    response = client.post("/api/plan/generate", headers=HEADERS)

    assert response.status_code == 409
    body = response.get_json()
    assert body["success"] is False
    assert body["error"] == "no_topics_configured"
    assert "subjects" in body["message"]


def test_setup_round_trip(client, configured):
    response = client.get("/api/setup", headers=HEADERS)

    body = response.get_json()
    assert body["daily_study_hours"] == 3
    assert body["deadline_date"] == "2030-06-01"
    assert [s["name"] for s in body["subjects"]] == ["Mathematics", "Physics"]
    assert [t["name"] for t in body["subjects"][0]["topics"]] == ["Calculus", "Algebra"]


def test_generate_then_list_sessions(client, configured):
    response = client.post("/api/plan/generate", headers=HEADERS)

    assert response.status_code == 201
    generated = response.get_json()["sessions"]
    assert len(generated) == 3
    assert {s["session_type"] for s in generated} == {"Intense"}
    assert generated[0]["scheduled_date"] == get_today().isoformat()
    assert generated[2]["scheduled_date"] == (get_today() + timedelta(days=2)).isoformat()

    listed = client.get("/api/sessions", headers=HEADERS).get_json()["sessions"]
    assert [s["id"] for s in listed] == [s["id"] for s in generated]
    assert listed[0]["subject"] == "Mathematics"
    assert listed[0]["topic"] == "Calculus"


def test_complete_session_via_api(client, configured):
    sessions = client.post("/api/plan/generate", headers=HEADERS).get_json()["sessions"]
    session_id = sessions[0]["id"]

    response = client.post(f"/api/sessions/{session_id}/complete", headers=HEADERS)
    assert response.status_code == 200
    assert response.get_json()["total_xp"] == 100

    again = client.post(f"/api/sessions/{session_id}/complete", headers=HEADERS)
    assert again.status_code == 409
    assert again.get_json()["error"] == "already_completed"

    profile = client.get("/api/profile", headers=HEADERS).get_json()["profile"]
    assert profile["xp"] == 100


def test_complete_unknown_session(client, configured):
    response = client.post("/api/sessions/999/complete", headers=HEADERS)

    assert response.status_code == 404


def test_other_user_cannot_see_sessions(client, configured):
    client.post("/api/plan/generate", headers=HEADERS)

    listed = client.get("/api/sessions", headers={"X-User-Id": "someone-else"})

    assert listed.get_json()["sessions"] == []


def test_submit_assessment_via_api(client, configured):
    topic_id = configured["subjects"][0]["topics"][0]["id"]

    response = client.post(
        "/api/assessments",
        json={"topic_id": topic_id, "score": 80, "confidence_level": 70},
        headers=HEADERS,
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body["xp_awarded"] == 90
    assert body["topic"]["performance_score"] == 80
    assert body["topic"]["confidence_level"] == 70


@pytest.mark.parametrize(
    "payload,status",
    [
        ({"score": 80, "confidence_level": 70}, 400),
        ({"topic_id": "x", "score": 80, "confidence_level": 70}, 400),
        ({"topic_id": None, "score": 120, "confidence_level": 70}, 400),
    ],
)
def test_assessment_requires_topic(client, configured, payload, status):
    response = client.post("/api/assessments", json=payload, headers=HEADERS)

    assert response.status_code == status
    assert response.get_json()["error"] == "topic_required"


def test_assessment_out_of_range(client, configured):
    topic_id = configured["subjects"][0]["topics"][0]["id"]

    response = client.post(
        "/api/assessments",
        json={"topic_id": topic_id, "score": 101, "confidence_level": 70},
        headers=HEADERS,
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_score"


def test_invalid_setup_is_rejected(client):
    response = client.put(
        "/api/setup", json={"daily_study_hours": 0, "subjects": []}, headers=HEADERS
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_setup"


def test_setup_with_non_text_topic_is_rejected(client):
    response = client.put(
        "/api/setup",
        json={"subjects": [{"name": "Maths", "topics": [5]}]},
        headers=HEADERS,
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_setup"


def test_last_visited_screen(client):
    response = client.put("/api/profile/screen", json={"screen": "planner"}, headers=HEADERS)
    assert response.status_code == 200

    profile = client.get("/api/profile", headers=HEADERS).get_json()["profile"]
    assert profile["last_visited_screen"] == "planner"

    bad = client.put("/api/profile/screen", json={"screen": "admin"}, headers=HEADERS)
    assert bad.status_code == 400


def test_profile_defaults_for_new_user(client):
    profile = client.get("/api/profile", headers=HEADERS).get_json()["profile"]

    assert profile["xp"] == 0
    assert profile["last_visited_screen"] == "home"
    assert profile["daily_study_hours"] == 2


def test_progress_and_home(client, configured):
    sessions = client.post("/api/plan/generate", headers=HEADERS).get_json()["sessions"]
    client.post(f"/api/sessions/{sessions[0]['id']}/complete", headers=HEADERS)

    progress = client.get("/api/progress", headers=HEADERS).get_json()
    assert progress["completion_rate"] == 33
    assert len(progress["daily_xp"]) == 5
    assert progress["daily_xp"][-1] == {"date": get_today().isoformat(), "xp": 100}
    assert progress["total_xp"] == progress["ledger_total"] == 100

    home = client.get("/api/home", headers=HEADERS).get_json()
    assert home["quote"] in MOTIVATIONAL_QUOTES
    assert [s["id"] for s in home["upcoming_sessions"]] == [
        sessions[1]["id"],
        sessions[2]["id"],
    ]
