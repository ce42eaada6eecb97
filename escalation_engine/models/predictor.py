"""Escalation likelihood predictor.

Five independent factors, each with its own cap, are summed into a raw
likelihood and clamped to [0, 1]:

  ======================  =====  ==========================================
  factor                  cap    trigger
  ======================  =====  ==========================================
  sentiment               0.30   crisis (+0.30, forces critical) / negative
  category                0.20   crisis (+0.20, high if unforced) / mental-health
  response absence        0.20   no replies (+0.20) / one reply (+0.10)
  staleness               0.15   unanswered 24h+ (+0.15) / 12h+ (+0.10)
  keyword density         0.15   0.05 per crisis keyword, 2+ forces critical
  ======================  =====  ==========================================

Every triggered factor is recorded so moderators can see why a post scored
the way it did.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from ..repositories import ReplyRepository
from .schemas import (
    EscalationLevel,
    EscalationPrediction,
    Outcome,
    Post,
    PostCategory,
    SentimentClass,
    as_utc,
    utc_now,
)
from .sentiment import PostAnalyzer, SentimentClassifier

logger = logging.getLogger(__name__)

CRISIS_KEYWORDS = (
    "suicide",
    "kill myself",
    "end it all",
    "hopeless",
    "no point",
    "self-harm",
    "cutting",
    "overdose",
    "emergency",
    "urgent help",
)

# (minimum likelihood, level, recommended action), highest tier first
LIKELIHOOD_TIERS: Tuple[Tuple[float, EscalationLevel, str], ...] = (
    (0.8, EscalationLevel.CRITICAL, "Immediate escalation required"),
    (0.6, EscalationLevel.HIGH, "Consider escalation and assign counselor"),
    (0.4, EscalationLevel.MEDIUM, "Prioritize response and monitor closely"),
    (0.2, EscalationLevel.LOW, "Ensure timely response"),
)
DEFAULT_ACTION = "Monitor post"

INTERVENTION_TIERS: Tuple[Tuple[float, Tuple[str, ...]], ...] = (
    (0.6, (
        "Assign a counselor immediately",
        "Send priority notification to peer educators",
        "Monitor post closely for updates",
    )),
    (0.4, (
        "Prioritize this post for peer educator response",
        "Consider sending reminder notifications",
        "Check back in 6 hours if no response",
    )),
    (0.2, (
        "Ensure timely response within 24 hours",
        "Match with appropriate peer educator",
    )),
)

KEYWORD_WEIGHT = 0.05
KEYWORD_CAP = 0.15
SECONDS_PER_HOUR = 3600.0


def count_crisis_keywords(text: str) -> int:
    """Number of distinct crisis keywords contained in ``text`` (case-insensitive)."""
    text = (text or "").lower()
    return sum(1 for kw in CRISIS_KEYWORDS if kw in text)


def level_for_likelihood(likelihood: float) -> EscalationLevel:
    for threshold, level, _ in LIKELIHOOD_TIERS:
        if likelihood >= threshold:
            return level
    return EscalationLevel.NONE


def action_for_likelihood(likelihood: float) -> str:
    for threshold, _, action in LIKELIHOOD_TIERS:
        if likelihood >= threshold:
            return action
    return DEFAULT_ACTION


class EscalationPredictor:
    def __init__(
        self,
        replies: ReplyRepository,
        sentiment: SentimentClassifier,
        analyzer: Optional[PostAnalyzer] = None,
    ) -> None:
        self.replies = replies
        self.sentiment = sentiment
        self.analyzer = analyzer

    async def evaluate(self, post: Post, now: Optional[datetime] = None) -> Outcome[EscalationPrediction]:
        try:
            prediction = await self._predict(post, now or utc_now())
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "Escalation prediction failed",
                extra={"operation": "predict_escalation", "post_id": post.id},
            )
            return Outcome.failure(EscalationPrediction.neutral(post.id), exc)
        return Outcome(prediction)

    async def predict_escalation_likelihood(self, post: Post, now: Optional[datetime] = None) -> EscalationPrediction:
        return (await self.evaluate(post, now)).value

    async def get_early_intervention_suggestions(self, post: Post, now: Optional[datetime] = None) -> List[str]:
        prediction = await self.predict_escalation_likelihood(post, now)
        for threshold, suggestions in INTERVENTION_TIERS:
            if prediction.likelihood >= threshold:
                return list(suggestions)
        return []

    async def _count_replies(self, post: Post) -> int:
        """Distinct replies carried on the post or held by the repository."""
        stored = await self.replies.get_replies(post.id)
        return len({r.id for r in post.replies} | {r.id for r in stored})

    async def _predict(self, post: Post, now: datetime) -> EscalationPrediction:
        if self.analyzer is not None:
            self.analyzer.analyze_post(post.title, post.content, post.category)
        sentiment = self.sentiment.detect_sentiment(post.title, post.content)

        likelihood = 0.0
        factors: List[str] = []
        forced: Optional[EscalationLevel] = None

        # Sentiment
        if sentiment.sentiment is SentimentClass.CRISIS:
            likelihood += 0.3
            factors.append("Crisis sentiment detected")
            forced = EscalationLevel.CRITICAL
        elif sentiment.sentiment is SentimentClass.NEGATIVE:
            likelihood += 0.2 if sentiment.score < -0.5 else 0.1
            factors.append("Negative sentiment")

        # Category
        if post.category is PostCategory.CRISIS:
            likelihood += 0.2
            factors.append("Post in crisis category")
            if forced is None:
                forced = EscalationLevel.HIGH
        elif post.category is PostCategory.MENTAL_HEALTH:
            likelihood += 0.1
            factors.append("Mental health category")

        # Response absence
        reply_count = await self._count_replies(post)
        if reply_count == 0:
            likelihood += 0.2
            factors.append("No responses yet")
        elif reply_count == 1:
            likelihood += 0.1
            factors.append("Few responses")

        # Staleness
        age_hours = (as_utc(now) - as_utc(post.created_at)).total_seconds() / SECONDS_PER_HOUR
        if reply_count == 0:
            if age_hours > 24:
                likelihood += 0.15
                factors.append("Post unanswered for 24+ hours")
            elif age_hours > 12:
                likelihood += 0.1
                factors.append("Post unanswered for 12+ hours")

        # Keyword density
        keyword_count = count_crisis_keywords(f"{post.title} {post.content}")
        if keyword_count > 0:
            likelihood += min(keyword_count * KEYWORD_WEIGHT, KEYWORD_CAP)
            factors.append(f"{keyword_count} crisis keyword(s) detected")
            if keyword_count >= 2:
                forced = EscalationLevel.CRITICAL

        # Rounded so summed tenths land exactly on tier thresholds
        likelihood = round(min(max(likelihood, 0.0), 1.0), 6)
        predicted_level = forced or level_for_likelihood(likelihood)
        confidence = round(min((len(factors) * 0.15 + likelihood) / 2, 1.0), 6)

        prediction = EscalationPrediction(
            post_id=post.id,
            likelihood=likelihood,
            predicted_level=predicted_level,
            confidence=confidence,
            factors=factors,
            recommended_action=action_for_likelihood(likelihood),
        )
        logger.debug(
            "Escalation predicted",
            extra={
                "operation": "predict_escalation",
                "post_id": post.id,
                "likelihood": likelihood,
                "level": predicted_level.value,
            },
        )
        return prediction
