import pytest

from escalation_engine.models.schemas import PostCategory, RiskLevel
from escalation_engine.models.user_needs import SUGGESTED_RESOURCES, UserNeedsPredictor
from escalation_engine.repositories import InMemoryForumStore


def _predictor(posts, sentiment, sample_size=10):
    return UserNeedsPredictor(InMemoryForumStore(posts=posts), sentiment, sample_size=sample_size)


@pytest.mark.asyncio
async def test_user_without_posts(fixed_sentiment):
    prediction = await _predictor([], fixed_sentiment()).predict_user_needs("nobody")
    assert prediction.user_id == "nobody"
    assert prediction.needs == []
    assert prediction.risk_level == RiskLevel.LOW


@pytest.mark.asyncio
async def test_single_crisis_post_is_high_risk(make_post, fixed_sentiment):
    posts = [make_post(id="p1", category="crisis", title="help")]
    prediction = await _predictor(posts, fixed_sentiment()).predict_user_needs("user-1")

    assert prediction.risk_level == RiskLevel.HIGH
    [need] = prediction.needs
    assert need.category == PostCategory.CRISIS
    assert need.urgency == RiskLevel.HIGH
    assert need.likelihood == pytest.approx(0.2)
    assert need.suggested_resources == ["Crisis hotline", "Emergency resources", "Immediate support"]


@pytest.mark.asyncio
async def test_frequent_mental_health_posts_raise_risk(make_post, fixed_sentiment):
    posts = [make_post(id=f"p{i}", category="mental-health", hours_ago=i) for i in range(4)]
    prediction = await _predictor(posts, fixed_sentiment()).predict_user_needs("user-1")

    assert prediction.risk_level == RiskLevel.MEDIUM
    [need] = prediction.needs
    assert need.likelihood == pytest.approx(0.8)
    assert need.urgency == RiskLevel.LOW
    assert "Crisis hotline" in need.suggested_resources


@pytest.mark.asyncio
async def test_likelihood_saturates(make_post, fixed_sentiment):
    posts = [make_post(id=f"p{i}", category="academic", hours_ago=i) for i in range(7)]
    prediction = await _predictor(posts, fixed_sentiment()).predict_user_needs("user-1")
    assert prediction.needs[0].likelihood == 1.0


@pytest.mark.asyncio
async def test_negative_samples_drive_urgency_then_risk(make_post, fixed_sentiment):
    three = [make_post(id=f"p{i}", category="academic", hours_ago=i) for i in range(3)]
    prediction = await _predictor(three, fixed_sentiment("negative", -0.4)).predict_user_needs("user-1")
    assert prediction.needs[0].urgency == RiskLevel.MEDIUM
    assert prediction.risk_level == RiskLevel.LOW

    four = [make_post(id=f"p{i}", category="academic", hours_ago=i) for i in range(4)]
    prediction = await _predictor(four, fixed_sentiment("negative", -0.4)).predict_user_needs("user-1")
    assert prediction.risk_level == RiskLevel.MEDIUM


@pytest.mark.asyncio
async def test_crisis_sentiment_marks_every_need_urgent(make_post, fixed_sentiment):
    posts = [
        make_post(id="p1", category="academic", title="dark", hours_ago=1),
        make_post(id="p2", category="social", title="fine", hours_ago=2),
    ]
    sentiment = fixed_sentiment(by_title={"dark": ("crisis", -1.0)})
    prediction = await _predictor(posts, sentiment).predict_user_needs("user-1")

    assert prediction.risk_level == RiskLevel.HIGH
    assert {n.urgency for n in prediction.needs} == {RiskLevel.HIGH}


@pytest.mark.asyncio
async def test_only_most_recent_posts_are_sampled(make_post, fixed_sentiment):
    old = [make_post(id=f"old{i}", category="general", title="old", hours_ago=100 + i) for i in range(2)]
    recent = [make_post(id=f"new{i}", category="general", title="new", hours_ago=i) for i in range(10)]
    sentiment = fixed_sentiment(by_title={"old": ("crisis", -1.0)})

    prediction = await _predictor(old + recent, sentiment).predict_user_needs("user-1")

    assert len(sentiment.calls) == 10
    assert all(title == "new" for title, _ in sentiment.calls)
    assert prediction.risk_level == RiskLevel.LOW
    # category counts still cover the whole history
    assert prediction.needs[0].likelihood == 1.0


@pytest.mark.asyncio
async def test_other_users_posts_are_ignored(make_post, fixed_sentiment):
    posts = [
        make_post(id="mine", category="academic", author_id="user-1"),
        make_post(id="theirs", category="crisis", author_id="user-2"),
    ]
    prediction = await _predictor(posts, fixed_sentiment()).predict_user_needs("user-1")
    assert [n.category for n in prediction.needs] == [PostCategory.ACADEMIC]
    assert prediction.risk_level == RiskLevel.LOW


@pytest.mark.asyncio
async def test_needs_follow_category_order(make_post, fixed_sentiment):
    posts = [
        make_post(id="p1", category="general"),
        make_post(id="p2", category="mental-health"),
        make_post(id="p3", category="academic"),
    ]
    prediction = await _predictor(posts, fixed_sentiment()).predict_user_needs("user-1")
    assert [n.category for n in prediction.needs] == [
        PostCategory.MENTAL_HEALTH,
        PostCategory.ACADEMIC,
        PostCategory.GENERAL,
    ]


def test_resource_table_covers_every_category_and_is_read_only():
    assert set(SUGGESTED_RESOURCES) == set(PostCategory)
    with pytest.raises(TypeError):
        SUGGESTED_RESOURCES[PostCategory.GENERAL] = ("anything",)


@pytest.mark.asyncio
async def test_repository_failure_fails_open(broken_repository, fixed_sentiment):
    predictor = UserNeedsPredictor(broken_repository, fixed_sentiment())
    outcome = await predictor.evaluate("user-1")

    assert not outcome.ok
    assert outcome.value.needs == []
    assert outcome.value.risk_level == RiskLevel.LOW
