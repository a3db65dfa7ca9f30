from fastapi.testclient import TestClient

from main import app

client = TestClient(app)

TEACHER = {"x-actor-id": "t1", "x-actor-role": "teacher"}


def _pending_attempt():
    r = client.post(
        "/grade-batch",
        json={
            "student_id": "s9",
            "items": [{"question_id": "q1", "answer": "25"}, {"question_id": "q13", "answer": "tilt"}],
        },
    )
    assert r.status_code == 200
    return r.json()["attempt_id"]


def test_get_attempt_roundtrip():
    attempt_id = _pending_attempt()
    r = client.get(f"/attempts/{attempt_id}")
    assert r.status_code == 200
    body = r.json()
    assert body["id"] == attempt_id and body["version"] == 1
    assert body["student_id"] == "s9" and body["parent_id"] is None
    assert body["total_score"] == 1 and body["max_score"] == 6
    assert "created_at" in body and len(body["items"]) == 2


def test_missing_attempt_404():
    assert client.get("/attempts/999999").status_code == 404


def test_manual_grade_creates_new_version():
    attempt_id = _pending_attempt()
    r = client.post(
        f"/attempts/{attempt_id}/manual-grade",
        json={"question_id": "q13", "earned_points": 4, "feedback": "Good, mention the angle."},
        headers=TEACHER,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["id"] != attempt_id and body["parent_id"] == attempt_id
    assert body["version"] == 2
    assert body["pending_manual_grading"] is False
    assert body["total_score"] == 5 and body["passed"] is True
    essay = next(i for i in body["items"] if i["question_id"] == "q13")
    assert essay["graded_by"] == "t1" and essay["feedback"] == "Good, mention the angle."

    # the original is untouched
    old = client.get(f"/attempts/{attempt_id}").json()
    assert old["version"] == 1 and old["pending_manual_grading"] is True


def test_manual_grade_out_of_range():
    attempt_id = _pending_attempt()
    r = client.post(
        f"/attempts/{attempt_id}/manual-grade",
        json={"question_id": "q13", "earned_points": 6},
        headers=TEACHER,
    )
    assert r.status_code == 422 and r.json()["error"] == "invalid_score"


def test_manual_grade_question_not_in_attempt():
    attempt_id = _pending_attempt()
    r = client.post(
        f"/attempts/{attempt_id}/manual-grade",
        json={"question_id": "q3", "earned_points": 1},
        headers=TEACHER,
    )
    assert r.status_code == 404


def test_manual_grade_requires_actor():
    attempt_id = _pending_attempt()
    payload = {"question_id": "q13", "earned_points": 1}
    assert client.post(f"/attempts/{attempt_id}/manual-grade", json=payload).status_code == 401
    r = client.post(
        f"/attempts/{attempt_id}/manual-grade",
        json=payload,
        headers={"x-actor-id": "x", "x-actor-role": "student"},
    )
    assert r.status_code == 403


def test_recent_list_admin_only():
    _pending_attempt()
    assert client.get("/attempts/recent-list").status_code == 401
    r = client.get("/attempts/recent-list", headers={"x-admin-token": "secret"})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True and body["count"] >= 1
    assert "items" not in body["items"][0]


def test_second_grade_of_same_version_conflicts():
    attempt_id = _pending_attempt()
    payload = {"question_id": "q13", "earned_points": 3}
    first = client.post(f"/attempts/{attempt_id}/manual-grade", json=payload, headers=TEACHER)
    assert first.status_code == 200

    r = client.post(
        f"/attempts/{attempt_id}/manual-grade",
        json={"question_id": "q13", "earned_points": 5},
        headers={"x-actor-id": "t2", "x-actor-role": "teacher"},
    )
    assert r.status_code == 409 and r.json()["error"] == "stale_state"

    # the newest version can still be re-graded
    v2 = first.json()["id"]
    r = client.post(f"/attempts/{v2}/manual-grade", json={"question_id": "q13", "earned_points": 5}, headers=TEACHER)
    assert r.status_code == 200
    assert r.json()["version"] == 3 and r.json()["parent_id"] == v2


def test_manual_grade_with_rubric():
    attempt_id = _pending_attempt()
    r = client.post(
        f"/attempts/{attempt_id}/manual-grade",
        json={"question_id": "q13", "rubric_levels": {"science": 3, "clarity": 3}},
        headers=TEACHER,
    )
    assert r.status_code == 200
    body = r.json()
    essay = next(i for i in body["items"] if i["question_id"] == "q13")
    # (2*3 + 1*3) / (2*4 + 1*4) of 5 points
    assert essay["earned_points"] == 3.75
    assert "Scientific accuracy: Good (3/4)" in essay["feedback"]
    assert body["total_score"] == 4.75 and body["pending_manual_grading"] is False


def test_rubric_selection_errors():
    attempt_id = _pending_attempt()
    url = f"/attempts/{attempt_id}/manual-grade"
    r = client.post(url, json={"question_id": "q13", "rubric_levels": {"science": 3}}, headers=TEACHER)
    assert r.status_code == 422 and r.json()["error"] == "invalid_score"
    r = client.post(url, json={"question_id": "q1", "rubric_levels": {"science": 3}}, headers=TEACHER)
    assert r.status_code == 422 and r.json()["error"] == "invalid_score"
    r = client.post(
        url,
        json={"question_id": "q13", "earned_points": 2, "rubric_levels": {"science": 3, "clarity": 3}},
        headers=TEACHER,
    )
    assert r.status_code == 422
