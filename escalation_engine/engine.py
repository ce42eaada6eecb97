from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from .config import Settings
from .models.analytics import EscalationAnalyticsAggregator
from .models.detection import build_moderation_queue, detect_escalation_level, should_escalate
from .models.peak_usage import PeakUsagePredictor
from .models.predictor import EscalationPredictor
from .models.rule_matcher import EscalationRuleMatcher
from .models.rules import DEFAULT_RULE_SET, EscalationRuleSet, load_rule_set
from .models.schemas import (
    DetectionResult,
    EscalationAnalytics,
    EscalationCheck,
    EscalationPrediction,
    PeakUsagePrediction,
    Post,
    PostCategory,
    QueuedEscalation,
    UserNeedsPrediction,
)
from .models.sentiment import KeywordPostAnalyzer, KeywordSentimentClassifier, PostAnalyzer, SentimentClassifier
from .models.user_needs import UserNeedsPredictor
from .repositories import EscalationRepository, InMemoryForumStore, PostRepository, ReplyRepository

logger = logging.getLogger(__name__)


class EscalationEngine:
    """Wires the matcher and predictors to one set of collaborators.

    Holds no mutable state of its own; every call reads fresh data through
    the repositories.
    """

    def __init__(
        self,
        posts: PostRepository,
        replies: ReplyRepository,
        escalations: EscalationRepository,
        sentiment: Optional[SentimentClassifier] = None,
        analyzer: Optional[PostAnalyzer] = None,
        rule_set: EscalationRuleSet = DEFAULT_RULE_SET,
        sentiment_sample_size: int = 10,
        sla_hours: float = 24.0,
    ) -> None:
        sentiment = sentiment or KeywordSentimentClassifier()
        self.escalations = escalations
        self.rule_set = rule_set
        self.matcher = EscalationRuleMatcher(rule_set)
        self.predictor = EscalationPredictor(replies, sentiment, analyzer)
        self.user_needs = UserNeedsPredictor(posts, sentiment, sample_size=sentiment_sample_size)
        self.peak_usage = PeakUsagePredictor(posts, replies)
        self.analytics = EscalationAnalyticsAggregator(escalations, posts, sla_hours=sla_hours)

    @classmethod
    def from_settings(cls, settings: Settings) -> "EscalationEngine":
        store = InMemoryForumStore.from_json(settings.DATA_FILE) if settings.DATA_FILE else InMemoryForumStore()
        sentiment = KeywordSentimentClassifier()
        return cls(
            posts=store,
            replies=store,
            escalations=store,
            sentiment=sentiment,
            analyzer=KeywordPostAnalyzer(sentiment),
            rule_set=load_rule_set(settings.RULES_FILE),
            sentiment_sample_size=settings.SENTIMENT_SAMPLE_SIZE,
            sla_hours=settings.RESPONSE_SLA_HOURS,
        )

    def check_escalation(self, content: str, category: PostCategory) -> EscalationCheck:
        return self.matcher.check(content, category)

    def detect(self, post: Post) -> DetectionResult:
        return detect_escalation_level(post, self.rule_set)

    def should_escalate(self, post: Post) -> bool:
        return should_escalate(post, self.rule_set)

    async def predict_escalation_likelihood(self, post: Post, now: Optional[datetime] = None) -> EscalationPrediction:
        return await self.predictor.predict_escalation_likelihood(post, now)

    async def get_early_intervention_suggestions(self, post: Post, now: Optional[datetime] = None) -> List[str]:
        return await self.predictor.get_early_intervention_suggestions(post, now)

    async def predict_user_needs(self, user_id: str) -> UserNeedsPrediction:
        return await self.user_needs.predict_user_needs(user_id)

    async def predict_peak_usage(self) -> List[PeakUsagePrediction]:
        return await self.peak_usage.predict_peak_usage()

    async def get_escalation_analytics(self, now: Optional[datetime] = None) -> EscalationAnalytics:
        return await self.analytics.get_escalation_analytics(now)

    async def moderation_queue(self, now: Optional[datetime] = None) -> List[QueuedEscalation]:
        try:
            escalations = await self.escalations.get_escalations()
            return build_moderation_queue(escalations, now)
        except Exception:  # noqa: BLE001
            logger.exception("Moderation queue failed", extra={"operation": "moderation_queue"})
            return []
