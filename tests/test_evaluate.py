from fastapi.testclient import TestClient

from main import app

client = TestClient(app)


def test_root_ok():
    r = client.get("/")
    assert r.status_code == 200 and r.json() == {"ok": True}


def test_evaluate_simple():
    r = client.post("/evaluate", json={"expr": "3^2 + 4^2"})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True and abs(body["value"] - 25) < 1e-9


def test_evaluate_fraction():
    r = client.post("/evaluate", json={"expr": "6/8"})
    assert r.json()["value"] == 0.75


def test_evaluate_rejects_letters():
    r = client.post("/evaluate", json={"expr": "import os"})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is False and body["value"] is None and body["feedback"]


def test_evaluate_rejects_long_input():
    r = client.post("/evaluate", json={"expr": "1+" * 200 + "1"})
    body = r.json()
    assert body["ok"] is False and body["feedback"]


def test_evaluate_rejects_power_tower():
    r = client.post("/evaluate", json={"expr": "9^9^9"})
    assert r.status_code == 200
    assert r.json() == {"ok": False, "value": None, "feedback": "Expression is too complex."}
