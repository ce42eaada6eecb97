"""Escalation rule configuration.

Rules are immutable and loaded once. Their order in a rule set is the match
priority: the matcher stops at the first rule that hits, so crisis and
self-harm rules are listed first regardless of how later rules are graded.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import FrozenSet, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .schemas import EscalationLevel, PostCategory

# Rules tagged with this category apply to posts of every category.
WILDCARD_CATEGORY = PostCategory.CRISIS


class EscalationRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    keywords: Tuple[str, ...] = ()
    phrases: Tuple[str, ...] = ()
    level: EscalationLevel
    categories: FrozenSet[PostCategory] = Field(default_factory=frozenset)

    @field_validator("level")
    @classmethod
    def _level_must_escalate(cls, value: EscalationLevel) -> EscalationLevel:
        if value is EscalationLevel.NONE:
            raise ValueError("a rule cannot assign level 'none'")
        return value

    def applies_to(self, category: PostCategory) -> bool:
        return category in self.categories or WILDCARD_CATEGORY in self.categories


class EscalationRuleSet(BaseModel):
    """Ordered, immutable collection of escalation rules."""

    model_config = ConfigDict(frozen=True)

    rules: Tuple[EscalationRule, ...]

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "EscalationRuleSet":
        """Load a rule set from JSON: either a list of rules or ``{"rules": [...]}``.

        The forum's own ``category`` key is accepted for ``categories``.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        raw_rules = data.get("rules", []) if isinstance(data, dict) else data
        rules = []
        for raw in raw_rules:
            raw = dict(raw)
            if "category" in raw and "categories" not in raw:
                raw["categories"] = raw.pop("category")
            rules.append(EscalationRule.model_validate(raw))
        return cls(rules=tuple(rules))


def _rule(level: EscalationLevel, categories, keywords, phrases) -> EscalationRule:
    return EscalationRule(
        keywords=tuple(keywords),
        phrases=tuple(phrases),
        level=level,
        categories=frozenset(PostCategory(c) for c in categories),
    )


DEFAULT_RULE_SET = EscalationRuleSet(rules=(
    _rule(
        EscalationLevel.CRITICAL,
        ["crisis", "mental-health"],
        [
            "suicide",
            "kill myself",
            "end my life",
            "want to die",
            "not worth living",
            "better off dead",
            "suicidal",
            "ending it",
            "no point",
        ],
        [
            "going to kill myself",
            "planning to end my life",
            "thinking about suicide",
            "want to commit suicide",
            "suicide is the only way",
        ],
    ),
    _rule(
        EscalationLevel.HIGH,
        ["crisis", "mental-health"],
        ["self harm", "cutting", "hurting myself", "self injury", "burning myself"],
        ["want to hurt myself", "going to cut myself", "thinking of self harm"],
    ),
    _rule(
        EscalationLevel.HIGH,
        ["crisis", "social", "relationships"],
        ["abuse", "raped", "assaulted", "violence", "threatened", "harassed"],
        ["being abused", "someone hurt me", "afraid for my safety", "being threatened"],
    ),
    _rule(
        EscalationLevel.HIGH,
        ["substance-abuse", "crisis"],
        ["overdose", "too much", "can't stop", "addicted", "withdrawal"],
        ["took too many pills", "overdosed on", "can't control my use"],
    ),
    _rule(
        EscalationLevel.MEDIUM,
        ["stis-hiv", "sexual-health", "crisis"],
        [
            "hiv positive",
            "tested positive",
            "stis",
            "std",
            "unsafe sex",
            "unprotected",
            "pregnancy scare",
            "unwanted pregnancy",
        ],
        [
            "tested positive for hiv",
            "might have hiv",
            "had unprotected sex",
            "worried about pregnancy",
            "think i have an sti",
        ],
    ),
    _rule(
        EscalationLevel.LOW,
        ["family-home", "mental-health"],
        [
            "family problems",
            "family stress",
            "home issues",
            "family health",
            "parent sick",
            "family crisis",
        ],
        [
            "family is causing stress",
            "problems at home",
            "family member is sick",
            "home situation is bad",
        ],
    ),
    _rule(
        EscalationLevel.MEDIUM,
        ["mental-health", "crisis"],
        ["hopeless", "helpless", "can't cope", "breaking down", "losing control", "panic attack"],
        ["completely hopeless", "can't handle this anymore", "having a breakdown", "losing my mind"],
    ),
    _rule(
        EscalationLevel.LOW,
        ["mental-health", "academic"],
        ["depressed", "anxious", "stressed", "overwhelmed", "exhausted"],
        ["feeling very depressed", "extreme anxiety", "completely overwhelmed"],
    ),
))


def load_rule_set(path: Union[str, Path, None] = None) -> EscalationRuleSet:
    if path is None:
        return DEFAULT_RULE_SET
    return EscalationRuleSet.from_file(path)
