from __future__ import annotations

import logging
from collections import Counter
from types import MappingProxyType
from typing import List, Mapping, Tuple

from ..repositories import PostRepository
from .schemas import (
    Outcome,
    PostCategory,
    RiskLevel,
    SentimentClass,
    UserNeed,
    UserNeedsPrediction,
    as_utc,
)
from .sentiment import SentimentClassifier

logger = logging.getLogger(__name__)

SUGGESTED_RESOURCES: Mapping[PostCategory, Tuple[str, ...]] = MappingProxyType({
    PostCategory.MENTAL_HEALTH: (
        "Mental health resources",
        "Crisis hotline",
        "Counseling services",
        "Self-care guide",
    ),
    PostCategory.CRISIS: ("Crisis hotline", "Emergency resources", "Immediate support"),
    PostCategory.SUBSTANCE_ABUSE: (
        "Substance abuse resources",
        "Recovery support",
        "Treatment options",
    ),
    PostCategory.SEXUAL_HEALTH: (
        "Sexual health resources",
        "STD/STI information",
        "Reproductive health services",
    ),
    PostCategory.STIS_HIV: (
        "HIV testing and counseling",
        "STD/STI information",
        "Clinic referrals",
    ),
    PostCategory.FAMILY_HOME: (
        "Family support services",
        "Counseling services",
        "Coping with stress at home",
    ),
    PostCategory.ACADEMIC: (
        "Study skills resources",
        "Time management guide",
        "Academic support services",
    ),
    PostCategory.SOCIAL: ("Peer support groups", "Campus clubs and societies"),
    PostCategory.RELATIONSHIPS: (
        "Relationship counseling",
        "Communication skills",
        "Conflict resolution guide",
    ),
    PostCategory.CAMPUS: ("Student affairs office", "Campus services directory"),
    PostCategory.GENERAL: ("Peer educator support", "Resource library"),
})

LIKELIHOOD_SATURATION = 5


class UserNeedsPredictor:
    """Infers a user's support needs from their own post history.

    Sentiment is sampled only over the ``sample_size`` most recent posts so
    the cost of a prediction stays bounded for prolific posters.
    """

    def __init__(self, posts: PostRepository, sentiment: SentimentClassifier, sample_size: int = 10) -> None:
        self.posts = posts
        self.sentiment = sentiment
        self.sample_size = sample_size

    async def evaluate(self, user_id: str) -> Outcome[UserNeedsPrediction]:
        try:
            prediction = await self._predict(user_id)
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "User needs prediction failed",
                extra={"operation": "predict_user_needs", "user_id": user_id},
            )
            return Outcome.failure(UserNeedsPrediction(user_id=user_id), exc)
        return Outcome(prediction)

    async def predict_user_needs(self, user_id: str) -> UserNeedsPrediction:
        return (await self.evaluate(user_id)).value

    async def _predict(self, user_id: str) -> UserNeedsPrediction:
        user_posts = [p for p in await self.posts.get_posts() if p.author_id == user_id]
        counts = Counter(p.category for p in user_posts)

        recent = sorted(user_posts, key=lambda p: as_utc(p.created_at))
        recent = recent[-self.sample_size:] if self.sample_size > 0 else []
        negative_samples = 0
        crisis_samples = 0
        for post in recent:
            result = self.sentiment.detect_sentiment(post.title, post.content)
            if result.sentiment is SentimentClass.CRISIS:
                crisis_samples += 1
            elif result.sentiment is SentimentClass.NEGATIVE:
                negative_samples += 1

        needs: List[UserNeed] = []
        for category in PostCategory:
            count = counts.get(category, 0)
            if count == 0:
                continue
            if category is PostCategory.CRISIS or crisis_samples > 0:
                urgency = RiskLevel.HIGH
            elif negative_samples > 2:
                urgency = RiskLevel.MEDIUM
            else:
                urgency = RiskLevel.LOW
            needs.append(UserNeed(
                category=category,
                likelihood=min(count / LIKELIHOOD_SATURATION, 1.0),
                urgency=urgency,
                suggested_resources=list(SUGGESTED_RESOURCES.get(category, ())),
            ))

        if crisis_samples > 0 or counts.get(PostCategory.CRISIS, 0) > 0:
            risk = RiskLevel.HIGH
        elif negative_samples > 3 or counts.get(PostCategory.MENTAL_HEALTH, 0) > 3:
            risk = RiskLevel.MEDIUM
        else:
            risk = RiskLevel.LOW

        logger.debug(
            "User needs predicted",
            extra={"operation": "predict_user_needs", "user_id": user_id, "level": risk.value},
        )
        return UserNeedsPrediction(user_id=user_id, needs=needs, risk_level=risk)
