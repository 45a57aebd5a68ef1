"""
SEO review of the title and description, plus tag and schema templates.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from ..protocols import ContentType, MetadataRecord
from .content_analyzer import DESCRIPTION_RANGE, TITLE_RANGE, ContentAnalyzer, record_text
from .lexicons import DEFAULT_LEXICONS, Lexicons
from .models import FieldOptimization, SEOOptimization

logger = logging.getLogger(__name__)

TITLE_PENALTY = 20
DESCRIPTION_PENALTY = 25
TOP_KEYWORD_SUGGESTIONS = 5

_OG_TYPES = {
    ContentType.ARTICLE: "article",
    ContentType.VIDEO: "video.other",
    ContentType.PRODUCT: "product",
}


class SEOOptimizer:
    """Rule-based suggestions; each triggered rule costs a fixed penalty."""

    def __init__(self, lexicons: Lexicons = DEFAULT_LEXICONS, analyzer: Optional[ContentAnalyzer] = None) -> None:
        self.lexicons = lexicons
        self.analyzer = analyzer or ContentAnalyzer(lexicons)
        words = "|".join(re.escape(word) for word in lexicons.action_words)
        self._action_re = re.compile(rf"\b(?:{words})\b", re.IGNORECASE) if words else None

    def optimize(self, record: MetadataRecord) -> SEOOptimization:
        density = self.analyzer.keyword_density(record_text(record))
        return SEOOptimization(
            title_optimization=self.optimize_title(record.title),
            description_optimization=self.optimize_description(record.description),
            keyword_suggestions=tuple(k.word for k in density.keywords[:TOP_KEYWORD_SUGGESTIONS]),
            meta_tag_suggestions=self.meta_tags(record),
            structured_data_suggestions=self.structured_data(record),
        )

    def optimize_title(self, title: str) -> FieldOptimization:
        if not title:
            return FieldOptimization(suggestions=("Add a title",), score=0)

        low, high = TITLE_RANGE
        length = len(title)
        suggestions: List[str] = []
        if length < low:
            suggestions.append(f"Consider making the title longer ({low}-{high} characters optimal)")
        if length > high:
            suggestions.append(f"Consider shortening the title ({low}-{high} characters optimal)")
        if not re.search(r"[A-Z]", title):
            suggestions.append("Consider capitalizing important words")
        if "|" not in title and "-" not in title:
            suggestions.append("Consider adding brand or category separator")

        return FieldOptimization(
            suggestions=tuple(suggestions),
            score=max(0, 100 - TITLE_PENALTY * len(suggestions)),
            length=length,
            optimal=low <= length <= high,
        )

    def optimize_description(self, description: str) -> FieldOptimization:
        if not description:
            return FieldOptimization(suggestions=("Add a description",), score=0)

        low, high = DESCRIPTION_RANGE
        length = len(description)
        suggestions: List[str] = []
        if length < low:
            suggestions.append(f"Consider making the description longer ({low}-{high} characters optimal)")
        if length > high:
            suggestions.append(f"Consider shortening the description ({low}-{high} characters optimal)")
        if "." not in description:
            suggestions.append("Consider adding proper punctuation")
        if self._action_re is not None and not self._action_re.search(description):
            suggestions.append("Consider adding action words")

        return FieldOptimization(
            suggestions=tuple(suggestions),
            score=max(0, 100 - DESCRIPTION_PENALTY * len(suggestions)),
            length=length,
            optimal=low <= length <= high,
        )

    @staticmethod
    def meta_tags(record: MetadataRecord) -> Dict[str, Any]:
        return {
            "og:title": record.title,
            "og:description": record.description,
            "og:type": _OG_TYPES.get(record.content_type, "website"),
            "twitter:card": "summary_large_image",
            "twitter:title": record.title,
            "twitter:description": record.description,
        }

    @staticmethod
    def structured_data(record: MetadataRecord) -> Dict[str, Any]:
        """A schema.org template matching the content type."""
        image = record.primary_image
        if record.content_type is ContentType.ARTICLE:
            template: Dict[str, Any] = {
                "@type": "Article",
                "headline": record.title,
                "description": record.description,
                "url": record.url,
            }
        elif record.content_type is ContentType.PRODUCT:
            template = {
                "@type": "Product",
                "name": record.title,
                "description": record.description,
                "url": record.url,
            }
        elif record.content_type is ContentType.VIDEO:
            template = {
                "@type": "VideoObject",
                "name": record.title,
                "description": record.description,
                "contentUrl": record.video.url if record.video else record.url,
            }
            if image:
                template["thumbnailUrl"] = image
            image = None
        else:
            template = {
                "@type": "SoftwareApplication",
                "name": record.title,
                "description": record.description,
                "url": record.url,
                "applicationCategory": "WebApplication",
            }

        if image:
            template["image"] = image
        return {"@context": "https://schema.org", **template}
