"""
Source Merger - one canonical MetadataRecord from many fragments

Field precedence is fixed: Open Graph, then Twitter Card, then JSON-LD of a
Product, Article or WebSite family type (document order), then microdata,
then plain HTML tags. The first non-empty value wins. Every raw fragment is
still carried on the record through `social` and `structured_data`.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urljoin

from metaprobe.protocols import (
    ContentType,
    ExtractionIssue,
    FaviconEntry,
    FetchMethod,
    ImageSource,
    ImageType,
    JsonLdBlock,
    MetadataRecord,
    NavbarLink,
    Screenshot,
    SocialCardData,
    SourceBundle,
    StructuredDataBlock,
    StructuredDataFormat,
    VideoMetadata,
)

from .image_ranker import (
    OG_IMAGE_PRIORITY,
    STRUCTURED_IMAGE_PRIORITY,
    TWITTER_IMAGE_PRIORITY,
    TWITTER_IMAGE_SRC_PRIORITY,
    rank_images,
)
from .source_parsers import clean_text, resolve_url

logger = logging.getLogger(__name__)

ARTICLE_TYPES = frozenset(
    {"Article", "NewsArticle", "BlogPosting", "TechArticle", "ScholarlyArticle", "Report", "SocialMediaPosting"}
)
PRODUCT_TYPES = frozenset({"Product", "ProductGroup", "IndividualProduct"})
WEBSITE_TYPES = frozenset({"WebSite", "WebPage"})
PRIORITY_JSON_LD_TYPES = ARTICLE_TYPES | PRODUCT_TYPES | WEBSITE_TYPES

DEFAULT_FAVICON_PATH = "/favicon.ico"


def _first(values: Iterable[Optional[str]]) -> str:
    for value in values:
        text = clean_text(value)
        if text:
            return text
    return ""


def detect_content_type(bundle: SourceBundle) -> ContentType:
    """Classify the page from og:type first, then document signals."""
    og = bundle.open_graph
    og_type = (og.type or "").strip().lower()
    if og_type:
        if og_type.startswith("article"):
            return ContentType.ARTICLE
        if og_type.startswith("video"):
            return ContentType.VIDEO
        if og_type.startswith("product") or og_type == "og:product":
            return ContentType.PRODUCT
        if og_type == "website":
            return ContentType.WEBSITE
        return ContentType.OTHER

    if og.video or bundle.hints.has_video_element:
        return ContentType.VIDEO
    if bundle.hints.has_article_element or "article:author" in og.raw:
        return ContentType.ARTICLE
    if any(set(block.types) & ARTICLE_TYPES for block in bundle.json_ld):
        return ContentType.ARTICLE
    if any(item.short_type in PRODUCT_TYPES for item in bundle.microdata):
        return ContentType.PRODUCT
    if any(set(block.types) & PRODUCT_TYPES for block in bundle.json_ld):
        return ContentType.PRODUCT
    return ContentType.WEBSITE


class SourceMerger:
    """Deterministic merge of a SourceBundle into a MetadataRecord."""

    def merge(
        self,
        bundle: SourceBundle,
        *,
        url: Optional[str] = None,
        fetch_method: FetchMethod = FetchMethod.STATIC,
        has_javascript: bool = False,
        load_time_ms: int = 0,
        errors: Sequence[ExtractionIssue] = (),
        navbar_links: Sequence[NavbarLink] = (),
        screenshots: Sequence[Screenshot] = (),
        extra_images: Sequence[ImageSource] = (),
    ) -> MetadataRecord:
        og = bundle.open_graph
        twitter = bundle.twitter
        ranked_json_ld = [block for block in bundle.json_ld if set(block.types) & PRIORITY_JSON_LD_TYPES]

        title = _first(
            [og.title, twitter.title]
            + [block.title for block in ranked_json_ld]
            + [item.first("name") or item.first("headline") for item in bundle.microdata]
            + [bundle.html.title]
        )
        description = _first(
            [og.description, twitter.description]
            + [block.description for block in ranked_json_ld]
            + [item.first("description") for item in bundle.microdata]
            + [bundle.html.description]
        )
        site_name = _first([og.site_name] + [block.title for block in ranked_json_ld if "WebSite" in block.types])
        json_ld_urls = [block.payload.get("url") for block in ranked_json_ld]
        canonical_url = _first(
            [og.url]
            + [resolve_url(bundle.url, value) for value in json_ld_urls if isinstance(value, str)]
            + [bundle.html.canonical_url]
        )

        video = None
        if og.video:
            video = VideoMetadata(url=og.video, type=og.video_type, width=og.video_width, height=og.video_height)

        return MetadataRecord(
            url=url or bundle.url,
            title=title,
            description=description,
            content_type=detect_content_type(bundle),
            images=rank_images(self._image_candidates(bundle, ranked_json_ld) + list(extra_images)),
            favicons=self._favicons(bundle),
            logos=bundle.logos,
            structured_data=self._structured_data(bundle),
            social=SocialCardData(
                twitter=dict(twitter.raw),
                open_graph=dict(og.raw),
                facebook=dict(bundle.facebook),
            ),
            navbar_links=tuple(navbar_links),
            screenshots=tuple(screenshots),
            fetch_method=fetch_method,
            has_javascript=has_javascript,
            load_time_ms=max(0, int(load_time_ms)),
            errors=tuple(errors),
            canonical_url=canonical_url or None,
            site_name=site_name or None,
            keywords=bundle.html.keywords,
            video=video,
        )

    @staticmethod
    def _image_candidates(bundle: SourceBundle, ranked_json_ld: List[JsonLdBlock]) -> List[ImageSource]:
        og = bundle.open_graph
        twitter = bundle.twitter
        candidates: List[ImageSource] = []

        if og.image:
            candidates.append(
                ImageSource(
                    url=og.image,
                    type=ImageType.OG_IMAGE,
                    priority=OG_IMAGE_PRIORITY,
                    width=og.image_width,
                    height=og.image_height,
                    alt=og.image_alt,
                )
            )
        if twitter.image:
            candidates.append(
                ImageSource(
                    url=twitter.image,
                    type=ImageType.TWITTER_IMAGE,
                    priority=TWITTER_IMAGE_PRIORITY,
                    alt=twitter.image_alt,
                )
            )
        if twitter.image_src:
            candidates.append(
                ImageSource(url=twitter.image_src, type=ImageType.TWITTER_IMAGE, priority=TWITTER_IMAGE_SRC_PRIORITY)
            )

        candidates.extend(bundle.images)

        structured_urls: List[str] = []
        for block in ranked_json_ld:
            structured_urls.extend(block.image_urls)
        for item in bundle.microdata:
            image = item.first("image")
            if image:
                structured_urls.append(image)
        if bundle.html.image_src:
            structured_urls.append(bundle.html.image_src)
        candidates.extend(
            ImageSource(url=resolve_url(bundle.url, image_url), type=ImageType.INLINE, priority=STRUCTURED_IMAGE_PRIORITY)
            for image_url in structured_urls
        )
        return candidates

    @staticmethod
    def _favicons(bundle: SourceBundle) -> Tuple[FaviconEntry, ...]:
        if bundle.favicons:
            return bundle.favicons
        return (
            FaviconEntry(
                url=urljoin(bundle.url, DEFAULT_FAVICON_PATH),
                type="icon",
                sizes=None,
                mime_type="image/x-icon",
            ),
        )

    @staticmethod
    def _structured_data(bundle: SourceBundle) -> Tuple[StructuredDataBlock, ...]:
        blocks = [
            StructuredDataBlock(format=StructuredDataFormat.JSON_LD, payload=block.payload) for block in bundle.json_ld
        ]
        blocks.extend(
            StructuredDataBlock(format=StructuredDataFormat.MICRODATA, payload=item.to_payload())
            for item in bundle.microdata
        )
        return tuple(blocks)
