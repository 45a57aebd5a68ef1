"""
Content Enrichment Engine

Runs the deterministic analysis stages over a merged MetadataRecord:

- Content analysis (readability, keyword density, length, uniqueness, completeness)
- SEO suggestions
- Sentiment
- Category

Each stage can be switched off through the fetch options; a disabled stage
is reported as None. The output depends only on the record, the lexicons and
the optional reference record, apart from the timestamp.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from ..config.config import FetchOptions
from ..protocols import MetadataRecord
from .category import CategoryClassifier
from .content_analyzer import ContentAnalyzer
from .lexicons import DEFAULT_LEXICONS, Lexicons
from .models import ENRICHMENT_VERSION, AIEnhancements, EnrichedMetadataRecord
from .seo_optimizer import SEOOptimizer
from .sentiment import SentimentAnalyzer

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class EnrichmentEngine:
    """Pure post-processing of extracted metadata."""

    def __init__(self, lexicons: Lexicons = DEFAULT_LEXICONS) -> None:
        self.lexicons = lexicons
        self.content_analyzer = ContentAnalyzer(lexicons)
        self.seo_optimizer = SEOOptimizer(lexicons, self.content_analyzer)
        self.sentiment_analyzer = SentimentAnalyzer(lexicons)
        self.category_classifier = CategoryClassifier(lexicons)

    def enrich(
        self,
        record: MetadataRecord,
        options: Optional[FetchOptions] = None,
        *,
        timestamp: Optional[str] = None,
        reference: Optional[MetadataRecord] = None,
    ) -> EnrichedMetadataRecord:
        """
        Enrich one record.

        Args:
            record: Merged metadata
            options: Stage switches (all stages run when None)
            timestamp: ISO-8601 time to stamp; defaults to now (UTC)
            reference: Original record to measure uniqueness against

        Returns:
            EnrichedMetadataRecord wrapping the unchanged record
        """
        options = options or FetchOptions()

        # Completeness needs the category even when the category stage is off
        category = self.category_classifier.classify(record)

        enhancements = AIEnhancements(
            content_analysis=(
                self.content_analyzer.analyze(record, category=category, reference=reference)
                if options.enable_content_analysis
                else None
            ),
            seo_optimization=self.seo_optimizer.optimize(record) if options.enable_seo_optimization else None,
            sentiment=self.sentiment_analyzer.analyze(record) if options.enable_sentiment_analysis else None,
            category=category if options.enable_category_detection else None,
            timestamp=timestamp or utc_timestamp(),
            version=ENRICHMENT_VERSION,
        )
        logger.debug(f"Enriched {record.url} (category={category.primary})")
        return EnrichedMetadataRecord(record=record, ai_enhancements=enhancements)
