from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PostCategory(str, Enum):
    MENTAL_HEALTH = "mental-health"
    CRISIS = "crisis"
    SUBSTANCE_ABUSE = "substance-abuse"
    SEXUAL_HEALTH = "sexual-health"
    STIS_HIV = "stis-hiv"
    FAMILY_HOME = "family-home"
    ACADEMIC = "academic"
    SOCIAL = "social"
    RELATIONSHIPS = "relationships"
    CAMPUS = "campus"
    GENERAL = "general"


class EscalationLevel(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return LEVEL_ORDER.index(self)


LEVEL_ORDER = (
    EscalationLevel.NONE,
    EscalationLevel.LOW,
    EscalationLevel.MEDIUM,
    EscalationLevel.HIGH,
    EscalationLevel.CRITICAL,
)


class EscalationStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class PostStatus(str, Enum):
    ACTIVE = "active"
    ESCALATED = "escalated"
    RESOLVED = "resolved"
    ARCHIVED = "archived"


class SentimentClass(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    CRISIS = "crisis"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def as_utc(value: datetime) -> datetime:
    """Normalize a timestamp to aware UTC; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base for records exchanged with the forum backend (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Forum records -------------------------------------------------------------

class Reply(CamelModel):
    id: str
    post_id: str
    author_id: str
    content: str = ""
    created_at: datetime


class Post(CamelModel):
    id: str
    author_id: str
    category: PostCategory
    title: str = ""
    content: str = ""
    status: PostStatus = PostStatus.ACTIVE
    escalation_level: EscalationLevel = EscalationLevel.NONE
    escalation_reason: Optional[str] = None
    replies: List[Reply] = Field(default_factory=list)
    created_at: datetime
    updated_at: Optional[datetime] = None
    reported_count: int = 0


class Escalation(CamelModel):
    id: Optional[str] = None
    post_id: str
    escalation_level: EscalationLevel
    status: EscalationStatus = EscalationStatus.PENDING
    reason: Optional[str] = None
    detected_at: datetime
    resolved_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status in (EscalationStatus.PENDING, EscalationStatus.IN_PROGRESS)


# Computed value objects ----------------------------------------------------

class EscalationCheck(CamelModel):
    level: EscalationLevel
    reason: Optional[str] = None


class DetectionResult(CamelModel):
    level: EscalationLevel
    reason: str
    confidence: float = Field(ge=0.0, le=1.0)


class SentimentResult(CamelModel):
    sentiment: SentimentClass
    score: float = Field(ge=-1.0, le=1.0)
    confidence: float = 0.0
    emotions: List[str] = Field(default_factory=list)


class EscalationPrediction(CamelModel):
    post_id: str
    likelihood: float = Field(ge=0.0, le=1.0)
    predicted_level: EscalationLevel
    confidence: float = Field(ge=0.0, le=1.0)
    factors: List[str] = Field(default_factory=list)
    recommended_action: str

    @classmethod
    def neutral(cls, post_id: str) -> "EscalationPrediction":
        return cls(
            post_id=post_id,
            likelihood=0.0,
            predicted_level=EscalationLevel.NONE,
            confidence=0.0,
            factors=[],
            recommended_action="Monitor post",
        )


class UserNeed(CamelModel):
    category: PostCategory
    likelihood: float = Field(ge=0.0, le=1.0)
    urgency: RiskLevel
    suggested_resources: List[str] = Field(default_factory=list)


class UserNeedsPrediction(CamelModel):
    user_id: str
    needs: List[UserNeed] = Field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.LOW


class PeakUsagePrediction(CamelModel):
    hour: int = Field(ge=0, le=23)
    day_of_week: int = Field(ge=0, le=6)
    expected_activity: float = Field(ge=0.0)
    confidence: float = Field(ge=0.0, le=1.0)


class EscalationTrends(CamelModel):
    daily: Dict[str, int] = Field(default_factory=dict)
    by_category: Dict[str, int] = Field(default_factory=dict)


class SlaSummary(CamelModel):
    target_hours: float
    on_time: int = 0
    late: int = 0
    overdue: int = 0
    compliance_rate: float = 0.0


class EscalationAnalytics(CamelModel):
    total_escalations: int
    by_level: Dict[str, int]
    by_status: Dict[str, int]
    average_response_time: float
    resolution_rate: float
    escalation_rate: float
    trends: EscalationTrends
    sla: SlaSummary

    @classmethod
    def empty(cls, sla_hours: float) -> "EscalationAnalytics":
        return cls(
            total_escalations=0,
            by_level={level.value: 0 for level in reversed(LEVEL_ORDER)},
            by_status={status.value: 0 for status in EscalationStatus},
            average_response_time=0.0,
            resolution_rate=0.0,
            escalation_rate=0.0,
            trends=EscalationTrends(),
            sla=SlaSummary(target_hours=sla_hours),
        )


class QueuedEscalation(CamelModel):
    escalation: Escalation
    priority: float


# Result type ---------------------------------------------------------------

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """A computed value plus the failure, if any, that forced it to a default.

    ``value`` is always usable; ``error`` tells a "no risk" answer apart from
    one produced because classification failed.
    """

    value: T
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, default: T, exc: BaseException) -> "Outcome[T]":
        return cls(default, f"{type(exc).__name__}: {exc}")


# HTTP payloads -------------------------------------------------------------

class EscalationCheckRequest(CamelModel):
    content: str
    category: PostCategory


class DetectionResponse(CamelModel):
    detection: DetectionResult
    should_escalate: bool


class InterventionResponse(CamelModel):
    post_id: str
    suggestions: List[str]


class VersionResponse(CamelModel):
    engine_version: str
    rule_count: int
    engine_ready: bool


class HealthResponse(BaseModel):
    status: str
    message: str


class ErrorResponse(BaseModel):
    detail: str
    code: str | None = None
    request_id: str | None = None
