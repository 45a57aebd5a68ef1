"""
Word lists and lookup tables for the enrichment stages.

Everything the heuristics match against lives in one ``Lexicons`` value
that is injected into the engine, so a deployment can swap tables (from a
YAML file or in code) without touching the analysis logic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

GENERAL_CATEGORY = "general"

_STOPWORDS = frozenset(
    """
    a about above after again against all also am an and any are as at be because been before being below
    between both but by can could did do does doing down during each few for from further had has have having
    he her here hers herself him himself his how i if in into is it its itself just let me more most my myself
    no nor not now of off on once only or other our ours ourselves out over own same she should so some such
    than that the their theirs them themselves then there these they this those through to too under until up
    very was we were what when where which while who whom why will with would you your yours yourself
    yourselves get got make made one two new use using via per
    """.split()
)

_POSITIVE = ("amazing", "excellent", "great", "awesome", "fantastic", "wonderful", "perfect", "best", "love", "incredible")
_NEGATIVE = ("terrible", "awful", "bad", "worst", "hate", "horrible", "disappointing", "poor", "useless", "broken")

_CATEGORIES: Dict[str, Tuple[str, ...]] = {
    "productivity": ("productivity", "task", "organize", "manage", "workflow", "efficiency"),
    "development": ("code", "developer", "programming", "api", "framework", "library"),
    "design": ("design", "ui", "ux", "interface", "visual", "creative"),
    "business": ("business", "startup", "entrepreneur", "marketing", "sales", "revenue"),
    "education": ("learn", "education", "course", "tutorial", "training", "skill"),
    "entertainment": ("game", "fun", "entertainment", "music", "video", "media"),
    "health": ("health", "fitness", "wellness", "medical", "exercise", "nutrition"),
    "finance": ("finance", "money", "investment", "banking", "payment", "crypto"),
}

_INDUSTRIES: Dict[str, str] = {
    "productivity": "Productivity Software",
    "development": "Software Development",
    "design": "Design & Creative",
    "business": "Business Services",
    "education": "Education",
    "entertainment": "Media & Entertainment",
    "health": "Health & Wellness",
    "finance": "Financial Services",
    GENERAL_CATEGORY: "General",
}

_ACTION_WORDS = ("get", "try", "discover", "learn", "find", "start", "join")


@dataclass(frozen=True)
class Lexicons:
    """Lookup tables used by the enrichment heuristics."""

    stopwords: FrozenSet[str] = _STOPWORDS
    positive_words: Tuple[str, ...] = _POSITIVE
    negative_words: Tuple[str, ...] = _NEGATIVE
    # Ordered: earlier categories win score ties
    categories: Mapping[str, Tuple[str, ...]] = field(default_factory=lambda: dict(_CATEGORIES))
    industries: Mapping[str, str] = field(default_factory=lambda: dict(_INDUSTRIES))
    action_words: Tuple[str, ...] = _ACTION_WORDS

    def industry_for(self, category: str) -> str:
        return self.industries.get(category) or self.industries.get(GENERAL_CATEGORY, category)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Lexicons:
        """Build lexicons from plain data; keys that are absent keep their defaults."""
        defaults = cls()
        categories = data.get("categories")
        return cls(
            stopwords=frozenset(w.lower() for w in data["stopwords"]) if "stopwords" in data else defaults.stopwords,
            positive_words=tuple(data.get("positive_words", defaults.positive_words)),
            negative_words=tuple(data.get("negative_words", defaults.negative_words)),
            categories=(
                {name: tuple(words) for name, words in categories.items()} if categories else defaults.categories
            ),
            industries=dict(data.get("industries", defaults.industries)),
            action_words=tuple(data.get("action_words", defaults.action_words)),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> Lexicons:
        logger.debug("Loading lexicons from %s", path)
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Lexicon file must contain a mapping: {path}")
        return cls.from_mapping(data)


DEFAULT_LEXICONS = Lexicons()


def load_lexicons(path: Optional[str] = None) -> Lexicons:
    """The configured lexicon file, or the built-in tables when none is set."""
    if not path:
        return DEFAULT_LEXICONS
    return Lexicons.from_yaml(Path(path))
