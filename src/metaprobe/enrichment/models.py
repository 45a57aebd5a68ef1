"""
Result types of the content enrichment stages.

Every type serializes to the camelCase JSON shape consumed downstream.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from ..protocols import MetadataRecord

ENRICHMENT_VERSION = "1.0"


@dataclass(frozen=True)
class ReadabilityScore:
    score: float
    level: str
    avg_words_per_sentence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "level": self.level, "avgWordsPerSentence": self.avg_words_per_sentence}


@dataclass(frozen=True)
class KeywordStat:
    word: str
    count: int
    density: float

    def to_dict(self) -> Dict[str, Any]:
        return {"word": self.word, "count": self.count, "density": self.density}


@dataclass(frozen=True)
class KeywordDensity:
    keywords: Tuple[KeywordStat, ...] = ()
    total_words: int = 0
    unique_words: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keywords": [keyword.to_dict() for keyword in self.keywords],
            "totalWords": self.total_words,
            "uniqueWords": self.unique_words,
        }


@dataclass(frozen=True)
class ContentLength:
    """Character counts with a status of missing, too short, optimal or too long."""

    title: int
    description: int
    title_status: str
    description_status: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "titleStatus": self.title_status,
            "descriptionStatus": self.description_status,
        }


@dataclass(frozen=True)
class UniquenessScore:
    score: int
    level: str
    unique_words: int = 0
    total_words: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "level": self.level,
            "uniqueWords": self.unique_words,
            "totalWords": self.total_words,
        }


@dataclass(frozen=True)
class Completeness:
    score: int
    fields: Dict[str, bool] = field(default_factory=dict)

    @property
    def completed_fields(self) -> int:
        return sum(1 for present in self.fields.values() if present)

    @property
    def total_fields(self) -> int:
        return len(self.fields)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "fields": dict(self.fields),
            "completedFields": self.completed_fields,
            "totalFields": self.total_fields,
        }


@dataclass(frozen=True)
class ContentAnalysis:
    readability_score: ReadabilityScore
    keyword_density: KeywordDensity
    content_length: ContentLength
    uniqueness_score: UniquenessScore
    completeness: Completeness

    def to_dict(self) -> Dict[str, Any]:
        return {
            "readabilityScore": self.readability_score.to_dict(),
            "keywordDensity": self.keyword_density.to_dict(),
            "contentLength": self.content_length.to_dict(),
            "uniquenessScore": self.uniqueness_score.to_dict(),
            "completeness": self.completeness.to_dict(),
        }


@dataclass(frozen=True)
class FieldOptimization:
    """SEO review of a single field (title or description)."""

    suggestions: Tuple[str, ...]
    score: int
    length: int = 0
    optimal: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "suggestions": list(self.suggestions),
            "score": self.score,
            "length": self.length,
            "optimal": self.optimal,
        }


@dataclass(frozen=True)
class SEOOptimization:
    title_optimization: FieldOptimization
    description_optimization: FieldOptimization
    keyword_suggestions: Tuple[str, ...] = ()
    meta_tag_suggestions: Dict[str, Any] = field(default_factory=dict)
    structured_data_suggestions: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "titleOptimization": self.title_optimization.to_dict(),
            "descriptionOptimization": self.description_optimization.to_dict(),
            "keywordSuggestions": list(self.keyword_suggestions),
            "metaTagSuggestions": dict(self.meta_tag_suggestions),
            "structuredDataSuggestions": dict(self.structured_data_suggestions),
        }


@dataclass(frozen=True)
class SentimentResult:
    overall: str
    confidence: float
    emotions: Dict[str, int]
    tone: str
    recommendations: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            "confidence": self.confidence,
            "emotions": dict(self.emotions),
            "tone": self.tone,
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class CategoryResult:
    primary: str
    secondary: Optional[str]
    confidence: float
    tags: Tuple[str, ...]
    industry: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary": self.primary,
            "secondary": self.secondary,
            "confidence": self.confidence,
            "tags": list(self.tags),
            "industry": self.industry,
        }


@dataclass(frozen=True)
class AIEnhancements:
    """Output of all enrichment stages; a skipped stage is None."""

    content_analysis: Optional[ContentAnalysis]
    seo_optimization: Optional[SEOOptimization]
    sentiment: Optional[SentimentResult]
    category: Optional[CategoryResult]
    timestamp: str
    version: str = ENRICHMENT_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contentAnalysis": self.content_analysis.to_dict() if self.content_analysis else None,
            "seoOptimization": self.seo_optimization.to_dict() if self.seo_optimization else None,
            "sentiment": self.sentiment.to_dict() if self.sentiment else None,
            "category": self.category.to_dict() if self.category else None,
            "timestamp": self.timestamp,
            "version": self.version,
        }


@dataclass(frozen=True)
class EnrichedMetadataRecord:
    """A MetadataRecord together with its enrichment."""

    record: MetadataRecord
    ai_enhancements: AIEnhancements

    @property
    def url(self) -> str:
        return self.record.url

    @property
    def title(self) -> str:
        return self.record.title

    @property
    def description(self) -> str:
        return self.record.description

    @property
    def errors(self):
        return self.record.errors

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.to_dict()
        data["aiEnhancements"] = self.ai_enhancements.to_dict()
        return data
