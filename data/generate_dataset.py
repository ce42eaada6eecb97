import json
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import numpy as np

from escalation_engine.models.rule_matcher import EscalationRuleMatcher
from escalation_engine.models.schemas import (
    Escalation,
    EscalationLevel,
    EscalationStatus,
    Post,
    Reply,
)

POST_TEMPLATES = [
    {"category": "mental-health", "title": "Feeling low lately", "content": "I've been feeling depressed and exhausted for weeks"},
    {"category": "mental-health", "title": "Panic before class", "content": "I had a panic attack this morning and can't cope"},
    {"category": "mental-health", "title": "Trying to stay positive", "content": "Things are getting better, grateful for this group"},
    {"category": "crisis", "title": "I can't do this anymore", "content": "I feel hopeless and want to end it all"},
    {"category": "crisis", "title": "Need someone to talk to", "content": "Everything feels pointless, there is no point anymore"},
    {"category": "academic", "title": "Exam stress", "content": "I'm so stressed about finals and the assignment deadline"},
    {"category": "academic", "title": "Study group", "content": "Anyone want to start a study group for statistics?"},
    {"category": "relationships", "title": "Breakup advice", "content": "My partner and I broke up and I'm struggling"},
    {"category": "relationships", "title": "Unsafe at home", "content": "I am being threatened by my ex and afraid for my safety"},
    {"category": "substance-abuse", "title": "Drinking too much", "content": "I think I'm addicted and can't stop drinking"},
    {"category": "sexual-health", "title": "Contraception question", "content": "Where can I get contraception on campus?"},
    {"category": "stis-hiv", "title": "Testing", "content": "I had unprotected sex and I'm worried, where can I get tested?"},
    {"category": "family-home", "title": "Trouble at home", "content": "There are problems at home and my parent sick again"},
    {"category": "general", "title": "Hello everyone", "content": "New here, happy to join this community"},
]

REPLY_TEMPLATES = [
    "You're not alone, thank you for sharing this.",
    "Have you tried talking to a counselor on campus?",
    "Sending support, please reach out to the helpline if it gets worse.",
    "I went through something similar, it does get better.",
]

# Hour-of-day weights: busier in the evening, quiet overnight
HOUR_WEIGHTS = np.array([
    1, 1, 1, 1, 1, 1, 2, 3, 4, 5, 5, 5,
    6, 6, 5, 5, 6, 7, 8, 9, 10, 9, 6, 3,
], dtype=float)


def generate_sample_dataset(
    n_posts: int = 200,
    n_users: int = 40,
    days: int = 28,
    seed: int = 42,
    end: Optional[datetime] = None,
) -> Dict[str, List]:
    """Generate synthetic forum activity: posts, replies and escalations.

    Post escalation levels come from the rule matcher, as they would at
    creation time. Roughly a third of flagged posts have been resolved.
    """
    rng = np.random.default_rng(seed)
    end = end or datetime(2024, 6, 1, tzinfo=timezone.utc)
    start = end - timedelta(days=days)
    matcher = EscalationRuleMatcher()
    hour_p = HOUR_WEIGHTS / HOUR_WEIGHTS.sum()

    posts: List[Post] = []
    replies: List[Reply] = []
    escalations: List[Escalation] = []

    for i in range(n_posts):
        template = POST_TEMPLATES[int(rng.integers(len(POST_TEMPLATES)))]
        day = start + timedelta(days=int(rng.integers(days)))
        created = day.replace(hour=int(rng.choice(24, p=hour_p)), minute=int(rng.integers(60)))
        post = matcher.build_post(
            id=f"post-{i}",
            author_id=f"user-{int(rng.integers(n_users))}",
            category=template["category"],
            title=template["title"],
            content=template["content"],
            created_at=created,
        )
        posts.append(post)

        for j in range(int(rng.poisson(1.5))):
            replies.append(Reply(
                id=f"reply-{i}-{j}",
                post_id=post.id,
                author_id=f"user-{int(rng.integers(n_users))}",
                content=REPLY_TEMPLATES[int(rng.integers(len(REPLY_TEMPLATES)))],
                created_at=created + timedelta(hours=float(rng.exponential(6.0))),
            ))

        if post.escalation_level is not EscalationLevel.NONE:
            status = EscalationStatus(rng.choice(
                ["pending", "in-progress", "resolved", "dismissed"],
                p=[0.3, 0.25, 0.35, 0.1],
            ))
            resolved_at = None
            if status is EscalationStatus.RESOLVED:
                resolved_at = created + timedelta(hours=float(rng.gamma(2.0, 8.0)))
            escalations.append(Escalation(
                id=f"esc-{i}",
                post_id=post.id,
                escalation_level=post.escalation_level,
                status=status,
                reason=post.escalation_reason,
                detected_at=created,
                resolved_at=resolved_at,
            ))

    return {"posts": posts, "replies": replies, "escalations": escalations}


def save_sample_dataset(output_path: str, n_posts: int = 200) -> None:
    """Generate and save a forum export the API can serve via DATA_FILE"""
    data = generate_sample_dataset(n_posts)
    payload = {
        key: [record.model_dump(mode="json", by_alias=True) for record in records]
        for key, records in data.items()
    }
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    print(f"Sample forum export saved to {output_path}")
    print(f"Posts: {len(data['posts'])} | Replies: {len(data['replies'])} | Escalations: {len(data['escalations'])}")


if __name__ == "__main__":
    save_sample_dataset("data/sample_forum.json", 200)
