"""Tests for the EnrichmentEngine and the enriched JSON shape."""

import re

import pytest

from metaprobe.config.config import FetchOptions
from metaprobe.enrichment.engine import EnrichmentEngine, utc_timestamp
from metaprobe.protocols import FaviconEntry, ImageSource, ImageType, MetadataRecord

TIMESTAMP = "2024-05-01T12:00:00.000Z"


@pytest.fixture
def record() -> MetadataRecord:
    return MetadataRecord(
        url="https://example.com/",
        title="Acme Planner | Organize every task",
        description="Discover the best way to manage your workflow. Boards keep every project moving.",
        images=(ImageSource(url="https://example.com/og.png", type=ImageType.OG_IMAGE, priority=100),),
        favicons=(FaviconEntry(url="https://example.com/favicon.ico"),),
    )


@pytest.mark.unit
class TestEnrichmentEngine:
    def test_all_stages(self, record):
        enriched = EnrichmentEngine().enrich(record, timestamp=TIMESTAMP)
        ai = enriched.ai_enhancements

        assert enriched.record is record
        assert ai.content_analysis is not None
        assert ai.seo_optimization is not None
        assert ai.sentiment.overall == "positive"
        assert ai.category.primary == "productivity"
        assert ai.content_analysis.completeness.score == 100
        assert ai.timestamp == TIMESTAMP
        assert ai.version == "1.0"

    def test_deterministic_apart_from_timestamp(self, record):
        engine = EnrichmentEngine()
        first = engine.enrich(record, timestamp=TIMESTAMP)
        second = engine.enrich(record, timestamp=TIMESTAMP)
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_disabled_stages_are_none(self, record):
        options = FetchOptions(
            enable_content_analysis=False,
            enable_seo_optimization=False,
            enable_sentiment_analysis=False,
            enable_category_detection=False,
        )
        ai = EnrichmentEngine().enrich(record, options, timestamp=TIMESTAMP).ai_enhancements

        assert (ai.content_analysis, ai.seo_optimization, ai.sentiment, ai.category) == (None, None, None, None)
        assert ai.to_dict() == {
            "contentAnalysis": None,
            "seoOptimization": None,
            "sentiment": None,
            "category": None,
            "timestamp": TIMESTAMP,
            "version": "1.0",
        }

    def test_completeness_uses_category_when_category_stage_is_off(self, record):
        options = FetchOptions(enable_category_detection=False)
        ai = EnrichmentEngine().enrich(record, options).ai_enhancements

        assert ai.category is None
        assert ai.content_analysis.completeness.fields["category"] is True

    def test_reference_record_changes_uniqueness(self, record):
        engine = EnrichmentEngine()
        alone = engine.enrich(record, timestamp=TIMESTAMP)
        against_self = engine.enrich(record, timestamp=TIMESTAMP, reference=record)

        assert against_self.ai_enhancements.content_analysis.uniqueness_score.score == 0
        assert alone.ai_enhancements.content_analysis.uniqueness_score.score > 0

    def test_empty_record(self):
        enriched = EnrichmentEngine().enrich(MetadataRecord(url="https://example.com/"), timestamp=TIMESTAMP)
        ai = enriched.ai_enhancements

        assert ai.content_analysis.completeness.score == 0
        assert ai.seo_optimization.title_optimization.suggestions == ("Add a title",)
        assert ai.sentiment.overall == "neutral"
        assert ai.category.primary == "general"

    def test_to_dict_contract(self, record):
        data = EnrichmentEngine().enrich(record, timestamp=TIMESTAMP).to_dict()

        for key in (
            "url",
            "title",
            "description",
            "contentType",
            "images",
            "favicons",
            "logos",
            "structuredData",
            "social",
            "navbarLinks",
            "screenshots",
            "fetchMethod",
            "hasJavaScript",
            "loadTimeMs",
            "errors",
            "aiEnhancements",
        ):
            assert key in data
        assert data["images"]["primary"] == "https://example.com/og.png"
        assert data["aiEnhancements"]["category"]["industry"] == "Productivity Software"
        assert data["aiEnhancements"]["seoOptimization"]["metaTagSuggestions"]["og:type"] == "website"

    def test_utc_timestamp_format(self):
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", utc_timestamp())
