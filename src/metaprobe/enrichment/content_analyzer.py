"""
Deterministic text analytics over a merged record.
"""

from __future__ import annotations

import difflib
import logging
import re
from collections import Counter
from typing import Dict, List, Optional, Tuple

import textstat

from ..protocols import ImageType, MetadataRecord
from .lexicons import DEFAULT_LEXICONS, GENERAL_CATEGORY, Lexicons
from .models import (
    CategoryResult,
    Completeness,
    ContentAnalysis,
    ContentLength,
    KeywordDensity,
    KeywordStat,
    ReadabilityScore,
    UniquenessScore,
)

logger = logging.getLogger(__name__)

TITLE_RANGE = (30, 60)
DESCRIPTION_RANGE = (120, 160)
MIN_KEYWORD_LENGTH = 3
TOP_KEYWORDS = 10

_PUNCTUATION_RE = re.compile(r"[^\w\s]")

_READABILITY_LEVELS: Tuple[Tuple[float, str], ...] = (
    (90, "very easy"),
    (80, "easy"),
    (70, "fairly easy"),
    (60, "standard"),
    (50, "fairly difficult"),
    (30, "difficult"),
)


def record_text(record: MetadataRecord) -> str:
    return f"{record.title} {record.description}".strip()


def tokenize(text: str) -> List[str]:
    """Lowercase words with punctuation stripped."""
    return _PUNCTUATION_RE.sub("", text.lower()).split()


def length_status(length: int, bounds: Tuple[int, int]) -> str:
    low, high = bounds
    if length == 0:
        return "missing"
    if length < low:
        return "too short"
    if length > high:
        return "too long"
    return "optimal"


def readability_level(score: float) -> str:
    for threshold, level in _READABILITY_LEVELS:
        if score >= threshold:
            return level
    return "very difficult"


class ContentAnalyzer:
    """Readability, keyword density, length, uniqueness and completeness."""

    def __init__(self, lexicons: Lexicons = DEFAULT_LEXICONS) -> None:
        self.lexicons = lexicons

    def analyze(
        self,
        record: MetadataRecord,
        *,
        category: Optional[CategoryResult] = None,
        reference: Optional[MetadataRecord] = None,
    ) -> ContentAnalysis:
        return ContentAnalysis(
            readability_score=self.readability(record.description),
            keyword_density=self.keyword_density(record_text(record)),
            content_length=ContentLength(
                title=len(record.title),
                description=len(record.description),
                title_status=length_status(len(record.title), TITLE_RANGE),
                description_status=length_status(len(record.description), DESCRIPTION_RANGE),
            ),
            uniqueness_score=self.uniqueness(record, reference),
            completeness=self.completeness(record, category),
        )

    def readability(self, text: str) -> ReadabilityScore:
        """Flesch Reading Ease clamped to 0-100."""
        text = text.strip()
        if not text:
            return ReadabilityScore(score=0, level="unknown")

        raw = float(textstat.flesch_reading_ease(text))
        score = round(min(max(raw, 0.0), 100.0), 1)
        words = textstat.lexicon_count(text)
        sentences = max(textstat.sentence_count(text), 1)
        return ReadabilityScore(
            score=score,
            level=readability_level(score),
            avg_words_per_sentence=round(words / sentences, 1),
        )

    def keywords(self, text: str) -> List[str]:
        """Content words in document order."""
        return [
            word
            for word in tokenize(text)
            if len(word) >= MIN_KEYWORD_LENGTH and word not in self.lexicons.stopwords
        ]

    def keyword_density(self, text: str, limit: int = TOP_KEYWORDS) -> KeywordDensity:
        words = self.keywords(text)
        if not words:
            return KeywordDensity()

        # Counter preserves first-occurrence order, and sorted() is stable
        counts = Counter(words)
        ranked = sorted(counts.items(), key=lambda item: -item[1])[:limit]
        total = len(words)
        return KeywordDensity(
            keywords=tuple(KeywordStat(word=w, count=c, density=round(c / total, 4)) for w, c in ranked),
            total_words=total,
            unique_words=len(counts),
        )

    def uniqueness(self, record: MetadataRecord, reference: Optional[MetadataRecord] = None) -> UniquenessScore:
        """Distinct-word ratio, or dissimilarity to a reference record when one is given."""
        text = record_text(record)
        words = tokenize(text)
        distinct = len(set(words))

        if reference is not None:
            ratio = difflib.SequenceMatcher(None, text.lower(), record_text(reference).lower()).ratio()
            score = round(100 * (1 - ratio))
        else:
            score = round(100 * distinct / len(words)) if words else 0

        if score >= 80:
            level = "high"
        elif score >= 60:
            level = "medium"
        else:
            level = "low"
        return UniquenessScore(score=score, level=level, unique_words=distinct, total_words=len(words))

    def completeness(self, record: MetadataRecord, category: Optional[CategoryResult] = None) -> Completeness:
        fields: Dict[str, bool] = {
            "title": bool(record.title),
            "description": bool(record.description),
            "image": any(image.type is not ImageType.SCREENSHOT for image in record.images),
            "favicon": bool(record.favicons),
            "category": category is not None and category.primary != GENERAL_CATEGORY,
        }
        score = round(100 * sum(fields.values()) / len(fields))
        return Completeness(score=score, fields=fields)
