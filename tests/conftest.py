import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from escalation_engine.models.schemas import Post, SentimentResult


class FixedSentiment:
    """Sentiment stub returning one preset answer, optionally keyed by title."""

    def __init__(self, sentiment="neutral", score=0.0, by_title=None):
        self.default = SentimentResult(sentiment=sentiment, score=score)
        self.by_title = by_title or {}
        self.calls = []

    def detect_sentiment(self, title, content):
        self.calls.append((title, content))
        if title in self.by_title:
            sentiment, score = self.by_title[title]
            return SentimentResult(sentiment=sentiment, score=score)
        return self.default


class BrokenRepository:
    async def get_posts(self):
        raise ConnectionError("database unavailable")

    async def get_replies(self, post_id):
        raise ConnectionError("database unavailable")

    async def get_escalations(self):
        raise ConnectionError("database unavailable")


@pytest.fixture
def now():
    return datetime(2024, 6, 5, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_sentiment():
    return FixedSentiment


@pytest.fixture
def broken_repository():
    return BrokenRepository()


@pytest.fixture
def make_post(now):
    """Factory for posts created ``hours_ago`` before the shared ``now``."""

    def _make(id="post-1", category="general", title="", content="", hours_ago=0.0, author_id="user-1", **extra):
        return Post(
            id=id,
            author_id=author_id,
            category=category,
            title=title,
            content=content,
            created_at=now - timedelta(hours=hours_ago),
            **extra,
        )

    return _make
