from fastapi.testclient import TestClient

from main import app

client = TestClient(app)

TEACHER = {"x-actor-id": "t1", "x-actor-role": "teacher"}
COORD = {"x-actor-id": "c1", "x-actor-role": "coordinator"}
ADMIN = {"x-actor-id": "a1", "x-actor-role": "admin"}


def _create(**overrides):
    payload = {"title": "Planets quiz", "content": "Solar system basics", "question_ids": ["q3", "q9"]}
    payload.update(overrides)
    r = client.post("/reviews", json=payload, headers=TEACHER)
    assert r.status_code == 201
    return r.json()


def _move(aid, target, headers, **extra):
    return client.post(f"/reviews/{aid}/transition", json={"target": target, **extra}, headers=headers)


def test_full_review_flow_then_assign():
    aid = _create()["id"]
    assert _move(aid, "submitted", TEACHER).status_code == 200
    assert _move(aid, "coordinator_review", COORD).status_code == 200
    assert _move(aid, "admin_review", COORD, note="clear").status_code == 200
    r = _move(aid, "approved", ADMIN, note="approved for term 2")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "approved" and body["version"] == 4
    assert body["coordinator_note"] == "clear" and body["admin_note"] == "approved for term 2"

    history = client.get(f"/reviews/{aid}/history").json()
    assert [h["to_status"] for h in history] == [
        "submitted",
        "coordinator_review",
        "admin_review",
        "approved",
    ]

    r = client.post(
        "/grade-batch",
        json={"assessment_id": aid, "items": [{"question_id": "q9", "answer": ["mercury", "venus", "earth", "mars"]}, {"question_id": "q3", "answer": "b"}]},
    )
    assert r.status_code == 200
    result = r.json()["result"]
    assert [x["question_id"] for x in result["results"]] == ["q3", "q9"]
    assert result["total_score"] == 3 and result["passed"] is True


def test_unapproved_assessment_cannot_be_graded():
    aid = _create()["id"]
    r = client.post(
        "/grade-batch", json={"assessment_id": aid, "items": [{"question_id": "q3", "answer": "b"}]}
    )
    assert r.status_code == 400 and r.json()["error"] == "invalid_transition"


def test_invalid_transition_400():
    aid = _create()["id"]
    r = _move(aid, "coordinator_review", COORD)
    assert r.status_code == 400
    assert r.json()["ok"] is False and r.json()["error"] == "invalid_transition"


def test_wrong_role_400():
    aid = _create()["id"]
    _move(aid, "submitted", TEACHER)
    assert _move(aid, "coordinator_review", TEACHER).status_code == 400


def test_stale_version_409():
    aid = _create()["id"]
    assert _move(aid, "submitted", TEACHER, expected_version=0).status_code == 200
    r = _move(aid, "coordinator_review", COORD, expected_version=0)
    assert r.status_code == 409 and r.json()["error"] == "stale_state"
    assert client.get(f"/reviews/{aid}").json()["status"] == "submitted"


def test_reject_and_back_to_draft():
    aid = _create()["id"]
    _move(aid, "submitted", TEACHER)
    _move(aid, "coordinator_review", COORD)
    r = _move(aid, "rejected", COORD, note="too short")
    assert r.json()["status"] == "rejected" and r.json()["coordinator_note"] == "too short"
    assert _move(aid, "draft", TEACHER).json()["status"] == "draft"


def test_only_teachers_create():
    r = client.post("/reviews", json={"title": "x"}, headers=COORD)
    assert r.status_code == 403


def test_headers_required():
    assert client.post("/reviews", json={"title": "x"}).status_code == 401
    r = client.post("/reviews", json={"title": "x"}, headers={"x-actor-id": "s", "x-actor-role": "system"})
    assert r.status_code == 403


def test_missing_review_404():
    assert client.get("/reviews/999999").status_code == 404


def _approved(question_ids):
    aid = _create(question_ids=question_ids)["id"]
    _move(aid, "submitted", TEACHER)
    _move(aid, "coordinator_review", COORD)
    _move(aid, "admin_review", COORD)
    assert _move(aid, "approved", ADMIN).status_code == 200
    return aid


def test_grading_is_limited_to_the_approved_questions():
    aid = _approved(["q1"])
    r = client.post(
        "/grade-batch",
        json={"assessment_id": aid, "question_ids": ["q2"], "items": [{"question_id": "q2", "answer": "3.14"}]},
    )
    assert r.status_code == 422 and r.json()["error"] == "invalid_assessment"

    r = client.post(
        "/grade-batch",
        json={"assessment_id": aid, "question_ids": ["q1", "q2"], "items": [{"question_id": "q1", "answer": "25"}]},
    )
    assert r.status_code == 422


def test_answers_outside_the_assessment_are_rejected():
    aid = _approved(["q1"])
    r = client.post(
        "/grade-batch",
        json={"assessment_id": aid, "items": [{"question_id": "q1", "answer": "25"}, {"question_id": "q2", "answer": "3.14"}]},
    )
    assert r.status_code == 404


def test_client_may_reorder_approved_questions():
    aid = _approved(["q1", "q3"])
    r = client.post(
        "/grade-batch",
        json={
            "assessment_id": aid,
            "question_ids": ["q3", "q1"],
            "items": [{"question_id": "q1", "answer": "25"}, {"question_id": "q3", "answer": "b"}],
        },
    )
    assert r.status_code == 200
    assert [x["question_id"] for x in r.json()["result"]["results"]] == ["q3", "q1"]


def test_unknown_target_is_rejected():
    aid = _create()["id"]
    r = _move(aid, "published", TEACHER)
    assert r.status_code == 422
