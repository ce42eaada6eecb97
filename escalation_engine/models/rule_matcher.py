"""Priority-ordered keyword and phrase matcher for escalation levels.

The matcher walks its rule set in order and returns on the first hit:
  - a rule is considered only if it is tagged with the post's category or
    with the wildcard ``crisis`` category
  - inside a rule, keywords are scanned before phrases, each in listed order
  - matching is case-insensitive substring containment

List order is the tie-break. An earlier rule wins even when a later rule in
the set carries a higher severity.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional, Tuple

from .rules import DEFAULT_RULE_SET, EscalationRule, EscalationRuleSet
from .schemas import EscalationCheck, EscalationLevel, Post, PostCategory, PostStatus

logger = logging.getLogger(__name__)


class EscalationRuleMatcher:
    def __init__(self, rule_set: EscalationRuleSet = DEFAULT_RULE_SET) -> None:
        self.rule_set = rule_set
        # Lowercased once so each check only lowercases the content
        self._compiled: List[Tuple[EscalationRule, Tuple[str, ...], Tuple[str, ...]]] = [
            (
                rule,
                tuple(k.lower() for k in rule.keywords),
                tuple(p.lower() for p in rule.phrases),
            )
            for rule in rule_set.rules
        ]

    # Public API -----------------------------------------------------
    def check(self, content: str, category: PostCategory) -> EscalationCheck:
        text = self._preprocess_text(content)
        category = PostCategory(category)
        for rule, keywords, phrases in self._compiled:
            if not rule.applies_to(category):
                continue
            for original, token in zip(rule.keywords, keywords):
                if token in text:
                    return EscalationCheck(level=rule.level, reason=f'Detected keyword: "{original}"')
            for original, token in zip(rule.phrases, phrases):
                if token in text:
                    return EscalationCheck(level=rule.level, reason=f'Detected phrase: "{original}"')
        return EscalationCheck(level=EscalationLevel.NONE)

    def build_post(
        self,
        *,
        id: str,
        author_id: str,
        category: PostCategory,
        title: str,
        content: str,
        created_at: datetime,
        **extra: Any,
    ) -> Post:
        """Create a new Post whose escalation fields come from this matcher."""
        result = self.check(content, category)
        status = PostStatus.ESCALATED if result.level is not EscalationLevel.NONE else PostStatus.ACTIVE
        post = Post(
            id=id,
            author_id=author_id,
            category=category,
            title=title,
            content=content,
            status=extra.pop("status", status),
            escalation_level=result.level,
            escalation_reason=result.reason,
            created_at=created_at,
            updated_at=extra.pop("updated_at", created_at),
            **extra,
        )
        if result.level is not EscalationLevel.NONE:
            logger.info(
                "post flagged on creation",
                extra={"post_id": id, "level": result.level.value},
            )
        return post

    # Internal helpers ------------------------------------------------
    def _preprocess_text(self, text: Optional[str]) -> str:
        if not text:
            return ""
        if not isinstance(text, str):
            text = str(text)
        return text.lower()


_default_matcher = EscalationRuleMatcher()


def check_escalation(content: str, category: PostCategory) -> EscalationCheck:
    """Check ``content`` against the built-in rule set."""
    return _default_matcher.check(content, category)


__all__ = ["EscalationRuleMatcher", "check_escalation"]
