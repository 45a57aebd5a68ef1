"""
Source Parsers - Open Graph, Twitter Cards, JSON-LD, link and image tags

Per-source parsers shared by the DOM and regex extraction paths. Both paths
reduce the document to plain attribute maps for <meta>, <link> and <img>
tags plus raw JSON-LD texts, and these parsers turn those into the typed
fragments of a SourceBundle.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urljoin

from metaprobe.config.config import ExtractionSettings
from metaprobe.protocols import (
    FaviconEntry,
    HtmlTagFields,
    ImageSource,
    ImageType,
    JsonLdBlock,
    LogoSource,
    MicrodataBlock,
    OpenGraphFields,
    PageHints,
    SourceBundle,
    TwitterFields,
)

from .image_ranker import (
    APPLE_TOUCH_ICON_PRIORITY,
    inline_priority,
    is_small_data_uri,
    is_tracking_pixel,
    parse_sizes,
)

logger = logging.getLogger(__name__)

Attrs = Mapping[str, str]

# Highest priority first
FAVICON_RELS = (
    "icon",
    "shortcut icon",
    "apple-touch-icon",
    "apple-touch-icon-precomposed",
    "mask-icon",
    "fluid-icon",
)
_APPLE_TOUCH_RELS = {"apple-touch-icon", "apple-touch-icon-precomposed"}

# Keys whose values are URLs and get resolved against the page URL
_OG_URL_KEYS = {"image", "image:url", "image:secure_url", "url", "video", "video:url", "video:secure_url", "audio"}
_TWITTER_URL_KEYS = {"image", "image_src", "player"}

_SPA_FINGERPRINTS = (
    re.compile(r"<div[^>]+id=[\"'](?:root|app|__next|__nuxt)[\"'][^>]*>\s*</div>", re.IGNORECASE),
    re.compile(r"__NEXT_DATA__"),
    re.compile(r"\bng-version="),
    re.compile(r"\bdata-reactroot\b"),
    re.compile(r"\bdata-server-rendered\b"),
    re.compile(r"window\.__NUXT__"),
)


def clean_text(value: Optional[str]) -> str:
    """Collapse whitespace; None becomes the empty string."""
    if not value:
        return ""
    return " ".join(str(value).split())


def resolve_url(base_url: str, value: str) -> str:
    value = value.strip()
    if not value or not base_url:
        return value
    return urljoin(base_url, value)


def detect_spa_shell(html: str) -> bool:
    """True when the raw markup looks like an unrendered client-side app."""
    return any(pattern.search(html) for pattern in _SPA_FINGERPRINTS)


def _meta_key(tag: Attrs) -> str:
    return (tag.get("property") or tag.get("name") or "").strip().lower()


class OpenGraphParser:
    """Parser for Open Graph, `article:` and `fb:` meta tags."""

    @staticmethod
    def parse(meta_tags: Sequence[Attrs], base_url: str = "") -> Tuple[OpenGraphFields, Dict[str, str], Tuple[str, ...]]:
        """
        Returns:
            (Open Graph fields, Facebook map, article tags)
        """
        og_data: Dict[str, str] = {}
        fb_data: Dict[str, str] = {}
        article_tags: List[str] = []

        for tag in meta_tags:
            key = _meta_key(tag)
            content = clean_text(tag.get("content"))
            if not key or not content:
                continue

            if key.startswith("og:"):
                name = key[3:]
                if name in _OG_URL_KEYS:
                    content = resolve_url(base_url, content)
                # First declaration wins (og:image may repeat)
                og_data.setdefault(name, content)
            elif key.startswith("article:"):
                if key == "article:tag":
                    article_tags.append(content)
                og_data.setdefault(key, content)
            elif key.startswith("fb:"):
                fb_data.setdefault(key[3:], content)

        return OpenGraphFields.from_map(og_data), fb_data, tuple(article_tags)


class TwitterCardParser:
    """Parser for Twitter Card metadata."""

    @staticmethod
    def parse(meta_tags: Sequence[Attrs], base_url: str = "") -> TwitterFields:
        twitter_data: Dict[str, str] = {}

        for tag in meta_tags:
            key = _meta_key(tag)
            content = clean_text(tag.get("content") or tag.get("value"))
            if not key.startswith("twitter:") or not content:
                continue
            name = key[len("twitter:") :].replace(":", "_")
            if name in _TWITTER_URL_KEYS:
                content = resolve_url(base_url, content)
            twitter_data.setdefault(name, content)

        return TwitterFields.from_map(twitter_data)


class SchemaOrgParser:
    """Parser for JSON-LD and microdata values."""

    @staticmethod
    def parse_json_ld(texts: Sequence[str]) -> Tuple[JsonLdBlock, ...]:
        """Parse raw JSON-LD script bodies; malformed blocks are skipped."""
        blocks: List[JsonLdBlock] = []

        for text in texts:
            json_text = _strip_script_wrappers(text or "")
            if not json_text:
                continue
            try:
                data = json.loads(json_text)
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid JSON-LD skipped: {e}")
                continue

            items = data if isinstance(data, list) else [data]
            for item in items:
                if not isinstance(item, dict):
                    continue
                graph = item.get("@graph")
                if isinstance(graph, list):
                    blocks.extend(JsonLdBlock.from_payload(node) for node in graph if isinstance(node, dict))
                else:
                    blocks.append(JsonLdBlock.from_payload(item))

        return tuple(blocks)

    @staticmethod
    def add_property(properties: Dict[str, Any], name: str, value: Any) -> None:
        """Store a microdata property; repeated names become lists."""
        existing = properties.get(name)
        if existing is None:
            properties[name] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            properties[name] = [existing, value]


def _strip_script_wrappers(text: str) -> str:
    text = text.strip()
    for prefix, suffix in (("<!--", "-->"), ("//<![CDATA[", "//]]>"), ("<![CDATA[", "]]>")):
        if text.startswith(prefix) and text.endswith(suffix):
            text = text[len(prefix) : -len(suffix)].strip()
    return text


class HtmlTagParser:
    """Plain HTML values: <title>, meta description and keywords, canonical links."""

    @staticmethod
    def parse(
        title: Optional[str],
        meta_tags: Sequence[Attrs],
        link_tags: Sequence[Attrs],
        base_url: str = "",
    ) -> HtmlTagFields:
        description = None
        keywords: List[str] = []
        for tag in meta_tags:
            name = (tag.get("name") or "").strip().lower()
            content = clean_text(tag.get("content"))
            if not content:
                continue
            if name == "description" and description is None:
                description = content
            elif name == "keywords" and not keywords:
                keywords = [kw.strip() for kw in content.split(",") if kw.strip()]

        canonical = None
        image_src = None
        for link in link_tags:
            rel = (link.get("rel") or "").strip().lower()
            href = (link.get("href") or "").strip()
            if not href:
                continue
            if rel == "canonical" and canonical is None:
                canonical = resolve_url(base_url, href)
            elif rel == "image_src" and image_src is None:
                image_src = resolve_url(base_url, href)

        return HtmlTagFields(
            title=clean_text(title) or None,
            description=description,
            keywords=tuple(keywords),
            canonical_url=canonical,
            image_src=image_src,
        )


class LinkIconParser:
    """
    Collects every favicon variant, and apple touch icons as image candidates.

    Favicons come back ordered by rel (the order of FAVICON_RELS), then by
    declaration order; a URL declared under several rels keeps the best one.
    """

    @staticmethod
    def parse(link_tags: Sequence[Attrs], base_url: str = "") -> Tuple[Tuple[FaviconEntry, ...], Tuple[ImageSource, ...]]:
        favicons: List[FaviconEntry] = []
        touch_icons: List[ImageSource] = []
        seen = set()

        icon_links: List[Tuple[str, str, Attrs]] = []
        for link in link_tags:
            rel = " ".join((link.get("rel") or "").lower().split())
            href = (link.get("href") or "").strip()
            if rel in FAVICON_RELS and href:
                icon_links.append((rel, href, link))
        icon_links.sort(key=lambda entry: FAVICON_RELS.index(entry[0]))

        for rel, href, link in icon_links:
            url = resolve_url(base_url, href)
            sizes = (link.get("sizes") or "").strip() or None
            if url not in seen:
                seen.add(url)
                favicons.append(
                    FaviconEntry(url=url, type=rel, sizes=sizes, mime_type=(link.get("type") or "").strip() or None)
                )
            if rel in _APPLE_TOUCH_RELS:
                width, height = parse_sizes(sizes)
                touch_icons.append(
                    ImageSource(
                        url=url,
                        type=ImageType.APPLE_TOUCH_ICON,
                        priority=APPLE_TOUCH_ICON_PRIORITY,
                        width=width,
                        height=height,
                    )
                )

        return tuple(favicons), tuple(touch_icons)


class ImageTagParser:
    """Filters <img> tags into inline image candidates."""

    def __init__(self, settings: ExtractionSettings):
        self.settings = settings

    def parse(self, img_tags: Sequence[Attrs], base_url: str = "") -> Tuple[ImageSource, ...]:
        images: List[ImageSource] = []

        for tag in img_tags:
            if len(images) >= self.settings.max_inline_images:
                break
            src = (tag.get("src") or tag.get("data-src") or tag.get("data-lazy-src") or "").strip()
            if not src:
                continue
            width = parse_dimension(tag.get("width"))
            height = parse_dimension(tag.get("height"))
            if is_tracking_pixel(width, height):
                continue
            if is_small_data_uri(src, self.settings.min_data_uri_bytes):
                continue
            images.append(
                ImageSource(
                    url=resolve_url(base_url, src),
                    type=ImageType.INLINE,
                    priority=inline_priority(width, height),
                    width=width,
                    height=height,
                    alt=clean_text(tag.get("alt")) or None,
                )
            )

        return tuple(images)


def parse_dimension(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    match = re.match(r"\s*(\d+)", str(value))
    return int(match.group(1)) if match else None


def build_bundle(
    base_url: str,
    *,
    title: Optional[str],
    meta_tags: Sequence[Attrs],
    link_tags: Sequence[Attrs],
    img_tags: Sequence[Attrs],
    json_ld_texts: Sequence[str],
    microdata: Tuple[MicrodataBlock, ...],
    hints: PageHints,
    settings: ExtractionSettings,
    logos: Tuple[LogoSource, ...] = (),
) -> SourceBundle:
    """Assemble the typed fragments of one document."""
    open_graph, facebook, article_tags = OpenGraphParser.parse(meta_tags, base_url)
    html_fields = HtmlTagParser.parse(title, meta_tags, link_tags, base_url)
    if article_tags:
        keywords = list(html_fields.keywords)
        keywords.extend(tag for tag in article_tags if tag not in keywords)
        html_fields = replace(html_fields, keywords=tuple(keywords))
    favicons, touch_icons = LinkIconParser.parse(link_tags, base_url)
    inline_images = ImageTagParser(settings).parse(img_tags, base_url)

    return SourceBundle(
        url=base_url,
        open_graph=open_graph,
        twitter=TwitterCardParser.parse(meta_tags, base_url),
        facebook=facebook,
        json_ld=SchemaOrgParser.parse_json_ld(json_ld_texts),
        microdata=microdata,
        html=html_fields,
        images=touch_icons + inline_images,
        favicons=favicons,
        logos=logos,
        hints=hints,
    )
