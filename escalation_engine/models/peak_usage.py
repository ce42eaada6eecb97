from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Iterable, List, Tuple

import numpy as np

from ..repositories import PostRepository, ReplyRepository
from .schemas import Outcome, PeakUsagePrediction, as_utc

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7
# Share of the hourly mean added to every hour so quiet hours never forecast zero
BASELINE_SHARE = 0.3


def sunday_first_weekday(ts: datetime) -> int:
    """0=Sunday .. 6=Saturday."""
    return ts.isoweekday() % 7


def activity_histograms(timestamps: Iterable[datetime]) -> Tuple[np.ndarray, np.ndarray]:
    """Hour-of-day (24) and day-of-week (7) activity counts, bucketed in UTC."""
    stamps = [as_utc(ts) for ts in timestamps]
    hours = np.array([ts.hour for ts in stamps], dtype=np.int64)
    days = np.array([sunday_first_weekday(ts) for ts in stamps], dtype=np.int64)
    return (
        np.bincount(hours, minlength=HOURS_PER_DAY),
        np.bincount(days, minlength=DAYS_PER_WEEK),
    )


def forecast_from_histograms(by_hour: np.ndarray, by_day: np.ndarray) -> List[PeakUsagePrediction]:
    total = int(by_hour.sum())
    avg_per_hour = total / HOURS_PER_DAY
    # A single dataset-wide busiest weekday is paired with every hour.
    busiest_day = int(np.argmax(by_day))

    predictions = []
    for hour in range(HOURS_PER_DAY):
        count = int(by_hour[hour])
        predictions.append(PeakUsagePrediction(
            hour=hour,
            day_of_week=busiest_day,
            expected_activity=count + BASELINE_SHARE * avg_per_hour,
            confidence=min(count / max(avg_per_hour, 1.0), 1.0),
        ))
    return sorted(predictions, key=lambda p: p.expected_activity, reverse=True)


def idle_forecast() -> List[PeakUsagePrediction]:
    return [
        PeakUsagePrediction(hour=h, day_of_week=0, expected_activity=0.0, confidence=0.0)
        for h in range(HOURS_PER_DAY)
    ]


class PeakUsagePredictor:
    def __init__(self, posts: PostRepository, replies: ReplyRepository) -> None:
        self.posts = posts
        self.replies = replies

    async def evaluate(self) -> Outcome[List[PeakUsagePrediction]]:
        try:
            forecast = await self._predict()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Peak usage prediction failed", extra={"operation": "predict_peak_usage"})
            return Outcome.failure(idle_forecast(), exc)
        return Outcome(forecast)

    async def predict_peak_usage(self) -> List[PeakUsagePrediction]:
        return (await self.evaluate()).value

    async def _predict(self) -> List[PeakUsagePrediction]:
        posts = await self.posts.get_posts()
        reply_lists = await asyncio.gather(*(self.replies.get_replies(p.id) for p in posts))
        timestamps = [p.created_at for p in posts]
        timestamps.extend(r.created_at for replies in reply_lists for r in replies)
        by_hour, by_day = activity_histograms(timestamps)
        logger.debug(
            "Peak usage aggregated over %d events",
            len(timestamps),
            extra={"operation": "predict_peak_usage"},
        )
        return forecast_from_histograms(by_hour, by_day)
