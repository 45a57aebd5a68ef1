"""Tests for the weighted confidence scorer."""

import pytest

from metaprobe.config.config import ExtractionSettings
from metaprobe.extractor.confidence_scorer import ConfidenceScorer
from metaprobe.protocols import (
    ImageSource,
    ImageType,
    MetadataRecord,
    PageHints,
    SocialCardData,
    StructuredDataBlock,
    StructuredDataFormat,
)

URL = "https://example.com/"


def full_record() -> MetadataRecord:
    return MetadataRecord(
        url=URL,
        title="Title",
        description="Description",
        images=(ImageSource(url="https://example.com/a.png", type=ImageType.OG_IMAGE, priority=100),),
        social=SocialCardData(open_graph={"title": "Title"}),
        structured_data=(StructuredDataBlock(format=StructuredDataFormat.JSON_LD, payload={"@type": "WebSite"}),),
    )


@pytest.mark.unit
class TestConfidenceScorer:
    def test_weights_sum_to_one(self):
        assert sum(ConfidenceScorer().weights.values()) == pytest.approx(1.0)

    def test_complete_record_scores_one(self):
        score = ConfidenceScorer().score(full_record(), PageHints(body_text_length=500))
        assert score == 1.0

    def test_empty_record_scores_zero(self):
        assert ConfidenceScorer().score(MetadataRecord(url=URL)) == 0.0

    def test_failed_fetch_scores_zero(self):
        assert ConfidenceScorer().score(full_record(), PageHints(body_text_length=500), failed=True) == 0.0

    def test_body_text_scales_linearly(self):
        scorer = ConfidenceScorer(ExtractionSettings(min_body_text_length=200))
        record = MetadataRecord(url=URL)
        assert scorer.score(record, PageHints(body_text_length=100)) == pytest.approx(0.125)
        assert scorer.score(record, PageHints(body_text_length=1000)) == pytest.approx(0.25)

    def test_title_and_og_alone_stay_below_default_threshold(self):
        record = MetadataRecord(url=URL, title="Example", social=SocialCardData(open_graph={"title": "Example"}))
        score = ConfidenceScorer().score(record, PageHints(body_text_length=5))
        assert score < ExtractionSettings().confidence_threshold

    def test_spa_shell_with_thin_body_is_halved(self):
        scorer = ConfidenceScorer()
        record = MetadataRecord(url=URL, title="App", description="Described")
        plain = scorer.score(record, PageHints(body_text_length=0))
        shell = scorer.score(record, PageHints(spa_shell=True, body_text_length=0))
        assert shell == pytest.approx(plain / 2)

    def test_spa_shell_with_full_body_not_penalised(self):
        scorer = ConfidenceScorer()
        record = full_record()
        assert scorer.score(record, PageHints(spa_shell=True, body_text_length=500)) == 1.0

    def test_screenshot_does_not_count_as_image(self):
        record = MetadataRecord(
            url=URL,
            images=(ImageSource(url="/screenshots/landing.png", type=ImageType.SCREENSHOT, priority=10),),
        )
        assert ConfidenceScorer().signals(record, PageHints())["image"] == 0.0

    def test_zero_min_body_length(self):
        scorer = ConfidenceScorer(ExtractionSettings(min_body_text_length=0))
        assert scorer.signals(MetadataRecord(url=URL), PageHints(body_text_length=1))["body_text"] == 1.0
        assert scorer.signals(MetadataRecord(url=URL), PageHints(body_text_length=0))["body_text"] == 0.0
