"""Sentiment and post-analysis capabilities consumed by the predictors.

The predictors only depend on the ``SentimentClassifier`` and ``PostAnalyzer``
protocols. The lexicon-based implementations below are lightweight defaults so
the service runs without an NLP model; deployments can inject anything that
satisfies the protocols.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, runtime_checkable

from .schemas import PostCategory, SentimentClass, SentimentResult


@runtime_checkable
class SentimentClassifier(Protocol):
    def detect_sentiment(self, title: str, content: str) -> SentimentResult:
        ...


@runtime_checkable
class PostAnalyzer(Protocol):
    def analyze_post(self, title: str, content: str, category: Optional[PostCategory] = None) -> Any:
        ...


POSITIVE_WORDS = (
    "happy", "glad", "excited", "grateful", "thankful", "proud", "confident",
    "hopeful", "optimistic", "better", "improved", "progress", "success",
    "achievement", "accomplished", "relieved", "peaceful", "calm", "content",
)

NEGATIVE_WORDS = (
    "sad", "angry", "frustrated", "disappointed", "worried", "anxious", "scared",
    "afraid", "lonely", "isolated", "hurt", "pain", "suffering", "struggling",
    "difficult", "hard", "tough", "overwhelmed", "exhausted", "tired", "drained",
)

CRISIS_WORDS = (
    "suicide", "kill myself", "end it all", "want to die", "hopeless", "no point",
    "can't go on", "give up", "self-harm", "cutting", "overdose", "emergency",
)


class KeywordSentimentClassifier:
    """Lexicon counting classifier; any crisis term outranks everything else."""

    def detect_sentiment(self, title: str, content: str) -> SentimentResult:
        text = f"{title or ''} {content or ''}".lower()

        positive = sum(1 for w in POSITIVE_WORDS if w in text)
        negative = sum(1 for w in NEGATIVE_WORDS if w in text)
        crisis = sum(1 for w in CRISIS_WORDS if w in text)

        emotions: List[str] = []
        if crisis > 0:
            sentiment, score = SentimentClass.CRISIS, -1.0
            emotions.extend(["crisis", "despair", "hopelessness"])
        elif negative > positive:
            sentiment, score = SentimentClass.NEGATIVE, -min(negative / 10, 1.0)
            if negative > 5:
                emotions.extend(["distress", "sadness"])
            if "anxious" in text or "worried" in text:
                emotions.append("anxiety")
            if "angry" in text or "frustrated" in text:
                emotions.append("anger")
        elif positive > negative:
            sentiment, score = SentimentClass.POSITIVE, min(positive / 10, 1.0)
            if positive > 3:
                emotions.extend(["happiness", "optimism"])
        else:
            sentiment, score = SentimentClass.NEUTRAL, 0.0

        total_words = len(text.split())
        matched = positive + negative + crisis
        confidence = min(matched / max(total_words / 20, 1), 1.0)

        return SentimentResult(
            sentiment=sentiment,
            score=score,
            confidence=confidence,
            emotions=emotions or ["neutral"],
        )


STOP_WORDS = frozenset("""
the a an and or but in on at to for of with by from as is was are were been be
have has had do does did will would could should may might must can this that
these those i you he she it we they me him her us them my your his its our
their what which who whom whose where when why how all each every both few more
most other some such no nor not only own same so than too very just now
""".split())

TOPIC_KEYWORDS = {
    "anxiety": ("anxiety", "anxious", "worry", "panic", "stress"),
    "depression": ("depression", "depressed", "sad", "hopeless", "down"),
    "academic-stress": ("exam", "test", "assignment", "deadline", "grades"),
    "relationships": ("relationship", "friend", "partner", "breakup", "conflict"),
    "self-care": ("self-care", "wellness", "health", "exercise", "sleep"),
}

_WORD_RE = re.compile(r"[^\w]")


@dataclass
class PostAnalysis:
    category: Optional[PostCategory]
    sentiment: SentimentResult
    keywords: List[str] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)
    suggested_tags: List[str] = field(default_factory=list)


class KeywordPostAnalyzer:
    def __init__(self, sentiment: Optional[SentimentClassifier] = None) -> None:
        self.sentiment = sentiment or KeywordSentimentClassifier()

    def analyze_post(self, title: str, content: str, category: Optional[PostCategory] = None) -> PostAnalysis:
        text = f"{title or ''} {content or ''}".lower()
        words = [_WORD_RE.sub("", w) for w in text.split()]
        counts = Counter(w for w in words if len(w) >= 3 and w not in STOP_WORDS)
        title_words = {_WORD_RE.sub("", w) for w in (title or "").lower().split()}
        keywords = [
            w for w, n in counts.most_common()
            if n >= 2 or w in title_words
        ][:15]
        topics = [t for t, kws in TOPIC_KEYWORDS.items() if any(k in text for k in kws)]
        sentiment = self.sentiment.detect_sentiment(title, content)
        tags = (keywords[:5] + topics + sentiment.emotions[:2])[:8]
        return PostAnalysis(
            category=category,
            sentiment=sentiment,
            keywords=keywords,
            topics=topics,
            suggested_tags=tags,
        )
