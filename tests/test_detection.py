from datetime import timedelta

import pytest

from escalation_engine.models.detection import (
    build_moderation_queue,
    detect_escalation_level,
    escalation_priority,
    should_escalate,
)
from escalation_engine.models.schemas import Escalation, EscalationLevel


def test_crisis_indicator_overrides_rule_confidence(make_post):
    post = make_post(category="mental-health", content="I just want to die")
    result = detect_escalation_level(post)

    assert result.level == EscalationLevel.CRITICAL
    assert result.confidence == pytest.approx(0.9)
    assert result.reason == "Crisis indicators detected - immediate intervention required"
    assert should_escalate(post)


def test_rule_confidence_weighs_phrases_double(make_post):
    post = make_post(category="academic", content="I'm stressed and exhausted")
    result = detect_escalation_level(post)

    assert result.level == EscalationLevel.LOW
    # 2 keyword hits over 5 keywords + 2 * 3 phrases
    assert result.confidence == pytest.approx(2 / 11)
    assert result.reason == "Detected keywords related to low escalation"
    assert not should_escalate(post)


def test_detection_ignores_crisis_wildcard(make_post):
    # the hopeless rule is tagged crisis, but detection only uses rules for the post's own category
    post = make_post(category="academic", content="I feel hopeless")
    result = detect_escalation_level(post)
    assert result.level == EscalationLevel.NONE
    assert result.reason == "No escalation detected"
    assert result.confidence == 0.0


def test_urgent_request(make_post):
    result = detect_escalation_level(make_post(category="general", content="I need help now please"))
    assert result.level == EscalationLevel.HIGH
    assert result.confidence == pytest.approx(0.7)


def test_emotional_intensity(make_post):
    post = make_post(content="an awful, horrible, terrible day")
    result = detect_escalation_level(post)
    assert result.level == EscalationLevel.HIGH
    assert result.reason == "High emotional intensity detected"


def test_crisis_category_always_escalates(make_post):
    post = make_post(category="crisis", content="just checking in")
    result = detect_escalation_level(post)
    assert result.level == EscalationLevel.HIGH
    assert result.confidence == pytest.approx(0.8)
    assert should_escalate(post)


@pytest.mark.parametrize("reports, expected", [(2, False), (3, True), (7, True)])
def test_reports_trigger_escalation(make_post, reports, expected):
    post = make_post(content="Anyone selling a bike?", reported_count=reports)
    assert should_escalate(post) is expected


@pytest.mark.parametrize("level, hours, expected", [
    ("critical", 5, 110.0),
    ("critical", 30, 120.0),
    ("low", 1, 27.0),
    ("none", 0, 0.0),
])
def test_priority_adds_capped_waiting_points(now, level, hours, expected):
    assert escalation_priority(level, now - timedelta(hours=hours), now) == pytest.approx(expected)


def test_priority_ignores_future_detection(now):
    assert escalation_priority("medium", now + timedelta(hours=3), now) == 50.0


def test_moderation_queue_orders_open_escalations(now):
    def esc(id, level, status, hours_ago):
        return Escalation(
            id=id,
            post_id=f"post-{id}",
            escalation_level=level,
            status=status,
            detected_at=now - timedelta(hours=hours_ago),
        )

    escalations = [
        esc("fresh-critical", "critical", "pending", 1),
        esc("old-high", "high", "in-progress", 20),
        esc("done", "critical", "resolved", 50),
        esc("dismissed", "high", "dismissed", 50),
        esc("older-medium", "medium", "pending", 40),
        esc("newer-medium", "medium", "pending", 30),
    ]
    queue = build_moderation_queue(escalations, now=now)

    assert [q.escalation.id for q in queue] == ["fresh-critical", "old-high", "older-medium", "newer-medium"]
    assert [q.priority for q in queue] == [102.0, 95.0, 70.0, 70.0]


def test_empty_queue(now):
    assert build_moderation_queue([], now=now) == []


def test_priority_follows_level_order(now):
    levels = ["none", "low", "medium", "high", "critical"]
    scores = [escalation_priority(level, now, now) for level in levels]
    assert scores == [0.0, 25.0, 50.0, 75.0, 100.0]
    assert [EscalationLevel(level).rank for level in levels] == [0, 1, 2, 3, 4]
