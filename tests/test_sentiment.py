import pytest

from escalation_engine.models.schemas import PostCategory, SentimentClass
from escalation_engine.models.sentiment import (
    KeywordPostAnalyzer,
    KeywordSentimentClassifier,
    PostAnalyzer,
    SentimentClassifier,
)


@pytest.fixture
def classifier():
    return KeywordSentimentClassifier()


def test_crisis_terms_outrank_positive_words(classifier):
    result = classifier.detect_sentiment("Grateful but", "honestly I can't go on, so happy it ends")
    assert result.sentiment == SentimentClass.CRISIS
    assert result.score == -1.0
    assert "despair" in result.emotions


def test_negative_score_scales_with_hits(classifier):
    result = classifier.detect_sentiment("Rough week", "I'm anxious, exhausted and lonely")
    assert result.sentiment == SentimentClass.NEGATIVE
    assert result.score == pytest.approx(-0.3)
    assert "anxiety" in result.emotions


def test_positive(classifier):
    result = classifier.detect_sentiment("Update", "Feeling better and grateful for the support")
    assert result.sentiment == SentimentClass.POSITIVE
    assert result.score > 0


def test_neutral(classifier):
    result = classifier.detect_sentiment("Question", "Where is the library?")
    assert result.sentiment == SentimentClass.NEUTRAL
    assert result.score == 0.0
    assert result.emotions == ["neutral"]


def test_default_implementations_satisfy_protocols(classifier):
    assert isinstance(classifier, SentimentClassifier)
    assert isinstance(KeywordPostAnalyzer(), PostAnalyzer)


def test_analyzer_extracts_keywords_topics_and_tags():
    analysis = KeywordPostAnalyzer().analyze_post(
        "Exam panic",
        "My exam is tomorrow and the exam panic keeps me awake",
        PostCategory.ACADEMIC,
    )
    assert analysis.category == PostCategory.ACADEMIC
    assert analysis.keywords[0] == "exam"
    assert "panic" in analysis.keywords
    assert analysis.topics == ["anxiety", "academic-stress"]
    assert len(analysis.suggested_tags) <= 8
