"""Escalation handling statistics for moderator reports.

Only dates and categories leave this module; author identifiers never appear
in the aggregated output.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import datetime
from typing import Optional

from ..repositories import EscalationRepository, PostRepository
from .schemas import (
    EscalationAnalytics,
    EscalationStatus,
    EscalationTrends,
    LEVEL_ORDER,
    Outcome,
    SlaSummary,
    as_utc,
    utc_now,
)

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


class EscalationAnalyticsAggregator:
    def __init__(self, escalations: EscalationRepository, posts: PostRepository, sla_hours: float = 24.0) -> None:
        self.escalations = escalations
        self.posts = posts
        self.sla_hours = sla_hours

    async def evaluate(self, now: Optional[datetime] = None) -> Outcome[EscalationAnalytics]:
        try:
            analytics = await self._aggregate(now or utc_now())
        except Exception as exc:  # noqa: BLE001
            logger.exception("Escalation analytics failed", extra={"operation": "escalation_analytics"})
            return Outcome.failure(EscalationAnalytics.empty(self.sla_hours), exc)
        return Outcome(analytics)

    async def get_escalation_analytics(self, now: Optional[datetime] = None) -> EscalationAnalytics:
        return (await self.evaluate(now)).value

    async def _aggregate(self, now: datetime) -> EscalationAnalytics:
        escalations, posts = await asyncio.gather(
            self.escalations.get_escalations(),
            self.posts.get_posts(),
        )
        total = len(escalations)

        level_counts = Counter(e.escalation_level for e in escalations)
        status_counts = Counter(e.status for e in escalations)
        by_level = {level.value: level_counts.get(level, 0) for level in reversed(LEVEL_ORDER)}
        by_status = {status.value: status_counts.get(status, 0) for status in EscalationStatus}

        resolved = [
            e for e in escalations
            if e.status is EscalationStatus.RESOLVED and e.resolved_at is not None
        ]
        durations = [
            (as_utc(e.resolved_at) - as_utc(e.detected_at)).total_seconds() / SECONDS_PER_HOUR
            for e in resolved
        ]
        average_response = sum(durations) / len(durations) if durations else 0.0

        daily: Counter = Counter(as_utc(e.detected_at).date().isoformat() for e in escalations)
        category_by_post = {p.id: p.category.value for p in posts}
        by_category: Counter = Counter(
            category_by_post[e.post_id] for e in escalations if e.post_id in category_by_post
        )

        on_time = sum(1 for d in durations if d <= self.sla_hours)
        now_utc = as_utc(now)
        overdue = sum(
            1 for e in escalations
            if e.is_open
            and (now_utc - as_utc(e.detected_at)).total_seconds() / SECONDS_PER_HOUR > self.sla_hours
        )

        return EscalationAnalytics(
            total_escalations=total,
            by_level=by_level,
            by_status=by_status,
            average_response_time=round(average_response, 1),
            resolution_rate=_percent(len(resolved), total),
            escalation_rate=_percent(total, len(posts)),
            trends=EscalationTrends(daily=dict(sorted(daily.items())), by_category=dict(by_category)),
            sla=SlaSummary(
                target_hours=self.sla_hours,
                on_time=on_time,
                late=len(durations) - on_time,
                overdue=overdue,
                compliance_rate=_percent(on_time, len(durations)),
            ),
        )
