"""Confidence-weighted escalation detection and moderation queue ordering.

Unlike the first-hit rule matcher, ``detect_escalation_level`` scores every
rule that targets the post's own category and keeps the most confident one,
then lets a few contextual checks override it. It backs automatic escalation
decisions; the first-hit matcher backs the level stored on a post.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from .rules import DEFAULT_RULE_SET, EscalationRuleSet
from .schemas import (
    DetectionResult,
    Escalation,
    EscalationLevel,
    Post,
    PostCategory,
    QueuedEscalation,
    as_utc,
    utc_now,
)

CRISIS_INDICATORS = (
    "suicide",
    "kill myself",
    "end it all",
    "want to die",
    "no point living",
    "better off dead",
)

URGENT_PATTERNS = (
    "need help now",
    "urgent help",
    "immediate help",
    "can't cope",
    "breaking down",
    "can't handle",
)

INTENSITY_WORDS = ("extremely", "terrible", "awful", "horrible", "devastated", "overwhelmed")

# none 0, low 25, medium 50, high 75, critical 100
POINTS_PER_LEVEL = 25
AGE_POINTS_PER_HOUR = 2
MAX_AGE_POINTS = 20

AUTO_ESCALATE_CONFIDENCE = 0.5
REPORTS_BEFORE_ESCALATION = 3


def _contextual_check(post: Post, text: str) -> Tuple[EscalationLevel, str, float]:
    if any(indicator in text for indicator in CRISIS_INDICATORS):
        return EscalationLevel.CRITICAL, "Crisis indicators detected - immediate intervention required", 0.9
    if any(pattern in text for pattern in URGENT_PATTERNS):
        return EscalationLevel.HIGH, "Urgent help request detected", 0.7
    if sum(1 for word in INTENSITY_WORDS if word in text) >= 3:
        return EscalationLevel.HIGH, "High emotional intensity detected", 0.6
    if post.category is PostCategory.CRISIS:
        return EscalationLevel.HIGH, "Post in crisis category", 0.8
    return EscalationLevel.NONE, "", 0.0


def detect_escalation_level(post: Post, rule_set: EscalationRuleSet = DEFAULT_RULE_SET) -> DetectionResult:
    text = f"{post.title} {post.content}".lower()

    level, reason, confidence = EscalationLevel.NONE, "", 0.0
    for rule in rule_set.rules:
        if rule.categories and post.category not in rule.categories:
            continue
        keyword_hits = sum(1 for k in rule.keywords if k.lower() in text)
        phrase_hits = sum(1 for p in rule.phrases if p.lower() in text)
        weighted = keyword_hits + phrase_hits * 2
        if weighted == 0:
            continue
        rule_confidence = min(weighted / (len(rule.keywords) + len(rule.phrases) * 2), 1.0)
        if rule_confidence > confidence:
            kind = "keywords" if rule.keywords else "phrases"
            level = rule.level
            reason = f"Detected {kind} related to {rule.level.value} escalation"
            confidence = rule_confidence

    ctx_level, ctx_reason, ctx_confidence = _contextual_check(post, text)
    if ctx_level is not EscalationLevel.NONE and ctx_confidence > confidence:
        level, reason, confidence = ctx_level, ctx_reason, ctx_confidence

    return DetectionResult(level=level, reason=reason or "No escalation detected", confidence=confidence)


def should_escalate(post: Post, rule_set: EscalationRuleSet = DEFAULT_RULE_SET) -> bool:
    detection = detect_escalation_level(post, rule_set)
    if detection.confidence >= AUTO_ESCALATE_CONFIDENCE and detection.level is not EscalationLevel.NONE:
        return True
    if post.category is PostCategory.CRISIS:
        return True
    return post.reported_count >= REPORTS_BEFORE_ESCALATION


def escalation_priority(level: EscalationLevel, detected_at: datetime, now: Optional[datetime] = None) -> float:
    """Higher is more urgent: severity score plus up to 20 points for waiting time."""
    now = now or utc_now()
    age_hours = (as_utc(now) - as_utc(detected_at)).total_seconds() / 3600.0
    age_points = min(max(age_hours, 0.0) * AGE_POINTS_PER_HOUR, MAX_AGE_POINTS)
    return EscalationLevel(level).rank * POINTS_PER_LEVEL + age_points


def build_moderation_queue(
    escalations: Iterable[Escalation],
    now: Optional[datetime] = None,
) -> List[QueuedEscalation]:
    """Open escalations, most urgent first; ties keep the oldest detection first."""
    now = now or utc_now()
    queue = [
        QueuedEscalation(
            escalation=e,
            priority=round(escalation_priority(e.escalation_level, e.detected_at, now), 2),
        )
        for e in escalations
        if e.is_open
    ]
    queue.sort(key=lambda q: (-q.priority, as_utc(q.escalation.detected_at)))
    return queue
