"""
Keyword-table category detection.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Pattern, Tuple

from ..protocols import MetadataRecord
from .lexicons import DEFAULT_LEXICONS, GENERAL_CATEGORY, Lexicons
from .models import CategoryResult

logger = logging.getLogger(__name__)

SECONDARY_RATIO = 0.5
FULL_CONFIDENCE_MATCHES = 3


class CategoryClassifier:
    """Scores each category by how many of its keywords occur as whole words."""

    def __init__(self, lexicons: Lexicons = DEFAULT_LEXICONS) -> None:
        self.lexicons = lexicons
        self._patterns: Dict[str, List[Tuple[str, Pattern[str]]]] = {
            category: [(word, re.compile(rf"\b{re.escape(word.lower())}\b")) for word in words]
            for category, words in lexicons.categories.items()
        }

    def classify(self, record: MetadataRecord) -> CategoryResult:
        text = " ".join([record.title, record.description, *record.keywords]).lower()

        matches: Dict[str, List[str]] = {}
        for category, patterns in self._patterns.items():
            matches[category] = [word for word, pattern in patterns if pattern.search(text)]

        # sorted() is stable, so table order breaks ties
        ranked = sorted(((c, len(words)) for c, words in matches.items() if words), key=lambda item: -item[1])
        if not ranked:
            return CategoryResult(
                primary=GENERAL_CATEGORY,
                secondary=None,
                confidence=0.0,
                tags=(),
                industry=self.lexicons.industry_for(GENERAL_CATEGORY),
            )

        primary, primary_score = ranked[0]
        secondary = None
        if len(ranked) > 1 and ranked[1][1] >= SECONDARY_RATIO * primary_score:
            secondary = ranked[1][0]

        tags: List[str] = []
        for category in (primary, secondary):
            if category is None:
                continue
            tags.extend(word for word in matches[category] if word not in tags)

        logger.debug(f"Category scores for {record.url}: {dict(ranked)}")
        return CategoryResult(
            primary=primary,
            secondary=secondary,
            confidence=round(min(primary_score / FULL_CONFIDENCE_MATCHES, 1.0), 4),
            tags=tuple(tags),
            industry=self.lexicons.industry_for(primary),
        )
