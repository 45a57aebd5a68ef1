"""
Tests for SourceMerger field precedence and content type detection.
"""

from dataclasses import replace

import pytest
from hypothesis import given
from hypothesis import strategies as st

from metaprobe.metadata.merger import SourceMerger, detect_content_type
from metaprobe.metadata.structured_data_parser import StructuredDataParser
from metaprobe.protocols import (
    ContentType,
    ExtractionIssue,
    FetchMethod,
    HtmlTagFields,
    ImageType,
    JsonLdBlock,
    LogoSource,
    MicrodataBlock,
    OpenGraphFields,
    PageHints,
    SourceBundle,
    StructuredDataFormat,
    TwitterFields,
)
from tests.helpers.pages import FULL_PAGE, OG_ONLY_PAGE, SCENARIO_A_PAGE

BASE = "https://example.com/page"


def merge_html(html: str, url: str = BASE, **kwargs):
    bundle = StructuredDataParser().parse(html, url)
    return SourceMerger().merge(bundle, **kwargs)


@pytest.mark.unit
class TestFieldPrecedence:
    def test_open_graph_beats_title_tag(self):
        record = merge_html(SCENARIO_A_PAGE, "https://example.com")
        assert record.title == "OG Example"
        assert record.social.open_graph["title"] == "OG Example"

    def test_full_page(self):
        record = merge_html(FULL_PAGE)

        assert record.title == "OG Title"
        assert record.description == "OG description of the planner."
        assert record.site_name == "Example Site"
        assert record.canonical_url == "https://example.com/"
        assert record.keywords == ("tasks", "workflow")
        assert record.content_type is ContentType.WEBSITE
        assert record.social.facebook == {"app_id": "12345"}
        assert record.social.twitter["card"] == "summary_large_image"

    def test_full_page_image_ranking(self):
        record = merge_html(FULL_PAGE)

        assert [(image.type, image.priority) for image in record.images] == [
            (ImageType.OG_IMAGE, 100),
            (ImageType.TWITTER_IMAGE, 90),
            (ImageType.APPLE_TOUCH_ICON, 80),
            (ImageType.INLINE, 50),
        ]
        assert record.primary_image == "https://example.com/images/og.png"
        assert record.images[0].width == 1200

    def test_structured_data_carried_verbatim(self):
        record = merge_html(FULL_PAGE)

        formats = [block.format for block in record.structured_data]
        assert formats == [StructuredDataFormat.JSON_LD, StructuredDataFormat.MICRODATA]
        assert record.structured_data[0].payload["@type"] == "WebSite"
        assert record.structured_data[1].payload["properties"]["color"] == ["red", "blue"]

    def test_og_only_page(self):
        record = merge_html(OG_ONLY_PAGE)

        assert record.title == "Only OG"
        assert record.description == "Described by Open Graph alone."
        assert record.primary_image == "https://example.com/og.jpg"
        assert record.content_type is ContentType.ARTICLE

    @given(
        st.fixed_dictionaries(
            {"title": st.text(max_size=20), "description": st.text(max_size=40)},
            optional={"type": st.sampled_from(["article", "video.movie", "product", "website"])},
        )
    )
    def test_open_graph_only_bundle_is_stable_under_empty_sources(self, og_map):
        bundle = SourceBundle(url=BASE, open_graph=OpenGraphFields.from_map(og_map))
        merger = SourceMerger()

        once = merger.merge(bundle)
        again = merger.merge(replace(bundle, twitter=TwitterFields(), json_ld=(), microdata=()))

        assert again == once
        assert again.to_dict() == once.to_dict()

    def test_twitter_then_json_ld_then_microdata_then_html(self):
        bundle = SourceBundle(
            url=BASE,
            twitter=TwitterFields(description="Twitter description"),
            json_ld=(
                JsonLdBlock.from_payload({"@type": "Organization", "name": "Ignored Org"}),
                JsonLdBlock.from_payload({"@type": "NewsArticle", "headline": "LD Headline"}),
            ),
            microdata=(MicrodataBlock(type="https://schema.org/Product", properties={"name": "Micro"}),),
            html=HtmlTagFields(title="HTML Title", description="HTML description"),
        )
        record = SourceMerger().merge(bundle)

        assert record.title == "LD Headline"
        assert record.description == "Twitter description"

        no_ld = SourceMerger().merge(SourceBundle(url=BASE, microdata=bundle.microdata, html=bundle.html))
        assert no_ld.title == "Micro"
        assert no_ld.description == "HTML description"

    def test_empty_bundle_yields_empty_strings(self):
        record = SourceMerger().merge(SourceBundle(url=BASE))
        assert record.title == ""
        assert record.description == ""
        assert record.images == ()

    def test_merge_arguments_are_carried(self):
        issue = ExtractionIssue(kind="ParseError", message="bad", stage="static")
        record = SourceMerger().merge(
            SourceBundle(url=BASE),
            url="https://example.com/original",
            fetch_method=FetchMethod.RENDERED,
            has_javascript=True,
            load_time_ms=-5,
            errors=[issue],
        )
        assert record.url == "https://example.com/original"
        assert record.fetch_method is FetchMethod.RENDERED
        assert record.has_javascript is True
        assert record.load_time_ms == 0
        assert record.errors == (issue,)

    def test_og_video(self):
        og = OpenGraphFields.from_map({"video": "https://v.example.com/a.mp4", "video:width": "640px"})
        record = SourceMerger().merge(SourceBundle(url=BASE, open_graph=og))
        assert record.video is not None
        assert record.video.url == "https://v.example.com/a.mp4"
        assert record.video.width == 640
        assert record.content_type is ContentType.VIDEO


@pytest.mark.unit
class TestFavicons:
    def test_declared_favicons_kept(self):
        record = merge_html(FULL_PAGE)
        assert record.favicons[0].url == "https://example.com/favicon-32.png"

    def test_default_favicon_when_none_declared(self):
        record = merge_html(SCENARIO_A_PAGE, "https://example.com/deep/path")
        (favicon,) = record.favicons
        assert favicon.url == "https://example.com/favicon.ico"
        assert favicon.mime_type == "image/x-icon"


@pytest.mark.unit
class TestLogos:
    def test_logos_carried_to_record(self):
        logos = (
            LogoSource(url="https://example.com/logo.svg", type="alt-logo", priority=10, alt="Example"),
            LogoSource(url="https://example.com/header.png", type="header-first-img", priority=5),
        )
        record = SourceMerger().merge(SourceBundle(url=BASE, logos=logos))

        assert record.logos == logos
        assert record.to_dict()["logos"] == {
            "primary": "https://example.com/logo.svg",
            "sources": [logo.to_dict() for logo in logos],
        }

    def test_no_logo(self):
        data = SourceMerger().merge(SourceBundle(url=BASE)).to_dict()
        assert data["logos"] == {"primary": None, "sources": []}


@pytest.mark.unit
class TestDetectContentType:
    @pytest.mark.parametrize(
        "og_type, expected",
        [
            ("article", ContentType.ARTICLE),
            ("video.movie", ContentType.VIDEO),
            ("product", ContentType.PRODUCT),
            ("website", ContentType.WEBSITE),
            ("book", ContentType.OTHER),
        ],
    )
    def test_from_og_type(self, og_type, expected):
        bundle = SourceBundle(url=BASE, open_graph=OpenGraphFields.from_map({"type": og_type}))
        assert detect_content_type(bundle) is expected

    def test_from_document_signals(self):
        assert detect_content_type(SourceBundle(url=BASE, hints=PageHints(has_video_element=True))) is ContentType.VIDEO
        assert (
            detect_content_type(SourceBundle(url=BASE, hints=PageHints(has_article_element=True)))
            is ContentType.ARTICLE
        )
        assert (
            detect_content_type(
                SourceBundle(url=BASE, json_ld=(JsonLdBlock.from_payload({"@type": "BlogPosting"}),))
            )
            is ContentType.ARTICLE
        )
        assert (
            detect_content_type(
                SourceBundle(url=BASE, microdata=(MicrodataBlock(type="http://schema.org/Product", properties={}),))
            )
            is ContentType.PRODUCT
        )

    def test_default_is_website(self):
        assert detect_content_type(SourceBundle(url=BASE)) is ContentType.WEBSITE
