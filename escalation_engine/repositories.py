"""Read-only repository interfaces consumed by the engine.

The engine never writes. ``InMemoryForumStore`` satisfies all three protocols
over plain lists, either built in code or loaded from a JSON export of the
forum database.
"""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Protocol, Sequence, Union, runtime_checkable

from .models.schemas import Escalation, Post, Reply, as_utc

logger = logging.getLogger(__name__)


@runtime_checkable
class PostRepository(Protocol):
    async def get_posts(self) -> Sequence[Post]:
        ...


@runtime_checkable
class ReplyRepository(Protocol):
    async def get_replies(self, post_id: str) -> Sequence[Reply]:
        ...


@runtime_checkable
class EscalationRepository(Protocol):
    async def get_escalations(self) -> Sequence[Escalation]:
        ...


class InMemoryForumStore:
    def __init__(
        self,
        posts: Iterable[Post] = (),
        replies: Iterable[Reply] = (),
        escalations: Iterable[Escalation] = (),
    ) -> None:
        self._posts: List[Post] = list(posts)
        self._escalations: List[Escalation] = list(escalations)
        self._replies: Dict[str, List[Reply]] = defaultdict(list)
        seen = set()
        # Replies embedded in posts and standalone replies share one index
        for reply in [r for p in self._posts for r in p.replies] + list(replies):
            if reply.id in seen:
                continue
            seen.add(reply.id)
            self._replies[reply.post_id].append(reply)
        for bucket in self._replies.values():
            bucket.sort(key=lambda r: as_utc(r.created_at))

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "InMemoryForumStore":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        store = cls(
            posts=[Post.model_validate(p) for p in data.get("posts", [])],
            replies=[Reply.model_validate(r) for r in data.get("replies", [])],
            escalations=[Escalation.model_validate(e) for e in data.get("escalations", [])],
        )
        logger.info(
            "Loaded forum export from %s: %d posts, %d escalations",
            path, len(store._posts), len(store._escalations),
        )
        return store

    async def get_posts(self) -> List[Post]:
        return list(self._posts)

    async def get_replies(self, post_id: str) -> List[Reply]:
        return list(self._replies.get(post_id, ()))

    async def get_escalations(self) -> List[Escalation]:
        return list(self._escalations)


__all__ = [
    "PostRepository",
    "ReplyRepository",
    "EscalationRepository",
    "InMemoryForumStore",
]
