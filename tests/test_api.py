from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from escalation_engine import main
from escalation_engine.engine import EscalationEngine
from escalation_engine.models.schemas import Escalation, Post, Reply
from escalation_engine.repositories import InMemoryForumStore


def _iso(hours_ago):
    return (datetime.now(timezone.utc) - timedelta(hours=hours_ago)).isoformat()


@pytest.fixture
def client(monkeypatch):
    now = datetime.now(timezone.utc)
    posts = [
        Post(id="p1", author_id="u1", category="crisis", title="help", content="I feel hopeless",
             created_at=now - timedelta(hours=30)),
        Post(id="p2", author_id="u1", category="academic", title="exams", content="stressed",
             created_at=now - timedelta(hours=5)),
    ]
    replies = [Reply(id="r1", post_id="p2", author_id="u2", content="you got this", created_at=now)]
    escalations = [
        Escalation(id="e1", post_id="p1", escalation_level="medium", detected_at=now - timedelta(hours=30)),
        Escalation(id="e2", post_id="p2", escalation_level="low", status="resolved",
                   detected_at=now - timedelta(hours=5), resolved_at=now - timedelta(hours=3)),
    ]
    store = InMemoryForumStore(posts=posts, replies=replies, escalations=escalations)
    monkeypatch.setattr(main, "engine", EscalationEngine(store, store, store))
    return TestClient(main.app)


def test_root_and_liveness(client):
    assert client.get("/").json()["status"] == "healthy"
    assert client.get("/health/live").status_code == 200


def test_readiness_reports_rules(client):
    response = client.get("/health/ready")
    assert response.status_code == 200
    assert response.json()["message"] == "8 escalation rules loaded"


def test_version(client):
    body = client.get("/version").json()
    assert body["engineReady"] is True
    assert body["ruleCount"] == 8
    assert body["engineVersion"]


def test_check_escalation(client):
    response = client.post("/escalation/check", json={"content": "I want to kill myself", "category": "crisis"})
    assert response.status_code == 200
    assert response.json() == {"level": "critical", "reason": 'Detected keyword: "kill myself"'}


def test_check_escalation_without_match(client):
    response = client.post("/escalation/check", json={"content": "study group?", "category": "academic"})
    assert response.json() == {"level": "none", "reason": None}


def test_unknown_category_is_rejected(client):
    response = client.post("/escalation/check", json={"content": "hi", "category": "sports"})
    assert response.status_code == 422


def test_detect(client):
    payload = {
        "id": "new",
        "authorId": "u9",
        "category": "mental-health",
        "title": "",
        "content": "I want to die",
        "createdAt": _iso(0),
    }
    body = client.post("/escalation/detect", json=payload).json()
    assert body["detection"]["level"] == "critical"
    assert body["shouldEscalate"] is True


def test_predict_escalation(client):
    payload = {
        "id": "new",
        "authorId": "u9",
        "category": "crisis",
        "title": "",
        "content": "I want to kill myself and end it all",
        "createdAt": _iso(30),
    }
    body = client.post("/predict/escalation", json=payload).json()
    assert body["postId"] == "new"
    assert body["predictedLevel"] == "critical"
    assert body["likelihood"] == pytest.approx(0.95)
    assert body["recommendedAction"] == "Immediate escalation required"


def test_interventions(client):
    payload = {"id": "p2", "authorId": "u1", "category": "academic", "content": "ok", "createdAt": _iso(1)}
    body = client.post("/predict/interventions", json=payload).json()
    # one reply on p2 keeps it below every tier
    assert body == {"postId": "p2", "suggestions": []}


def test_user_needs(client):
    body = client.get("/predict/users/u1/needs").json()
    assert body["userId"] == "u1"
    assert body["riskLevel"] == "high"
    assert [n["category"] for n in body["needs"]] == ["crisis", "academic"]


def test_peak_usage(client):
    body = client.get("/predict/peak-usage").json()
    assert len(body) == 24
    assert {"hour", "dayOfWeek", "expectedActivity", "confidence"} <= set(body[0])


def test_analytics(client):
    body = client.get("/analytics/escalations").json()
    assert body["totalEscalations"] == 2
    assert body["resolutionRate"] == 50.0
    assert body["averageResponseTime"] == 2.0
    assert body["sla"]["overdue"] == 1


def test_moderation_queue(client):
    body = client.get("/escalations/queue").json()
    assert [q["escalation"]["id"] for q in body] == ["e1"]
    assert body[0]["priority"] == 70.0


def test_engine_missing_returns_503(monkeypatch):
    monkeypatch.setattr(main, "engine", None)
    client = TestClient(main.app)

    response = client.post("/escalation/check", json={"content": "hi", "category": "general"})
    assert response.status_code == 503
    assert response.json()["code"] == "HTTP_503"
    assert client.get("/version").json()["engineReady"] is False


def test_request_id_is_echoed(client):
    response = client.get("/health/live", headers={"X-Request-ID": "abc-123"})
    assert response.headers["x-request-id"] == "abc-123"


def test_oversized_body_is_rejected(client):
    content = "x" * (main.settings.MAX_BODY_BYTES + 1)
    response = client.post("/escalation/check", json={"content": content, "category": "general"})
    assert response.status_code == 413
    assert response.json()["code"] == "HTTP_413"
    assert response.headers["x-request-id"]


def test_predict_counts_replies_in_payload(client):
    payload = {
        "id": "fresh",
        "authorId": "u9",
        "category": "general",
        "content": "anyone around?",
        "createdAt": _iso(30),
        "replies": [
            {"id": "fr1", "postId": "fresh", "authorId": "u2", "content": "hi!", "createdAt": _iso(29)},
        ],
    }
    body = client.post("/predict/escalation", json=payload).json()
    assert "No responses yet" not in body["factors"]
    assert body["factors"] == ["Few responses"]
    assert body["likelihood"] == pytest.approx(0.1)
