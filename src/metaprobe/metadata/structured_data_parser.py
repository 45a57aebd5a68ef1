"""
Structured Data Parser - DOM extraction with regex fallback

Parses an HTML document with BeautifulSoup into a typed SourceBundle:
Open Graph, Twitter Cards, Facebook tags, JSON-LD, microdata, plain HTML
tags, favicons, logo candidates, inline images and page hints. When the DOM
parse raises, or leaves the title or description empty, the
RegexFallbackParser result fills the gaps.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from metaprobe.config.config import ExtractionSettings
from metaprobe.exceptions import ParseError
from metaprobe.protocols import LogoSource, MicrodataBlock, PageHints, SourceBundle

from .regex_parser import RegexFallbackParser
from .source_parsers import (
    SchemaOrgParser,
    build_bundle,
    clean_text,
    detect_spa_shell,
    parse_dimension,
    resolve_url,
)

logger = logging.getLogger(__name__)

_JSON_LD_TYPE = re.compile(r"application/ld\+json", re.IGNORECASE)
_URL_PROPERTY_TAGS = {
    "img": "src",
    "audio": "src",
    "video": "src",
    "source": "src",
    "iframe": "src",
    "embed": "src",
    "a": "href",
    "link": "href",
    "area": "href",
    "object": "data",
}

# (css selector, logo type, priority); earlier entries are more specific
LOGO_SELECTORS: Tuple[Tuple[str, str, int], ...] = (
    ('img[alt*="logo" i]', "alt-logo", 10),
    ('img[class*="logo" i]', "class-logo", 9),
    ('img[id*="logo" i]', "id-logo", 8),
    (".logo img", "logo-container", 7),
    ("#logo img", "logo-id-container", 6),
    ("header img:first-of-type", "header-first-img", 5),
    ("nav img:first-of-type", "nav-first-img", 4),
    (".navbar img:first-of-type", "navbar-first-img", 3),
    (".header img:first-of-type", "header-class-first-img", 2),
)
_HIDDEN_STYLE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)


def _tag_attrs(tag: Tag) -> Dict[str, str]:
    """Flatten bs4 attributes (multi-valued ones arrive as lists)."""
    attrs: Dict[str, str] = {}
    for name, value in tag.attrs.items():
        attrs[name.lower()] = " ".join(value) if isinstance(value, list) else str(value)
    return attrs


def _microdata_value(element: Tag, base_url: str) -> Any:
    if element.has_attr("itemscope"):
        return element.get("itemtype") or clean_text(element.get_text(" "))
    if element.name == "meta":
        return clean_text(element.get("content"))
    if element.name in _URL_PROPERTY_TAGS:
        raw = element.get(_URL_PROPERTY_TAGS[element.name])
        if raw:
            return resolve_url(base_url, str(raw))
    if element.name == "time":
        return clean_text(element.get("datetime") or element.get_text(" "))
    if element.name in ("data", "meter"):
        return clean_text(element.get("value") or element.get_text(" "))
    return clean_text(element.get_text(" "))


def parse_microdata(soup: Any, base_url: str = "") -> Tuple[MicrodataBlock, ...]:
    """Top-level `itemscope` items with their own (not nested) properties."""
    blocks: List[MicrodataBlock] = []

    for item in soup.find_all(attrs={"itemscope": True}):
        if item.find_parent(attrs={"itemscope": True}) is not None:
            continue
        item_type = item.get("itemtype")
        if not item_type:
            continue

        properties: Dict[str, Any] = {}
        for prop in item.find_all(attrs={"itemprop": True}):
            if prop.find_parent(attrs={"itemscope": True}) is not item:
                continue
            value = _microdata_value(prop, base_url)
            if not value:
                continue
            for name in str(prop.get("itemprop")).split():
                SchemaOrgParser.add_property(properties, name, value)

        blocks.append(MicrodataBlock(type=str(item_type).strip(), properties=properties))

    return tuple(blocks)


def _is_hidden(element: Tag) -> bool:
    if element.has_attr("hidden") or _HIDDEN_STYLE.search(str(element.get("style") or "")):
        return True
    return parse_dimension(element.get("width")) == 0 or parse_dimension(element.get("height")) == 0


def parse_logos(soup: Any, base_url: str = "") -> Tuple[LogoSource, ...]:
    """
    Logo candidates ranked by how specifically the markup names them.

    An image matched by several selectors keeps its highest priority. Hidden
    and zero-sized images are skipped.
    """
    logos: List[LogoSource] = []
    seen = set()

    for selector, logo_type, priority in LOGO_SELECTORS:
        for element in soup.select(selector):
            src = str(element.get("src") or element.get("data-src") or "").strip()
            if not src or src.startswith("data:") or _is_hidden(element):
                continue
            url = resolve_url(base_url, src)
            if url in seen:
                continue
            seen.add(url)
            logos.append(
                LogoSource(
                    url=url,
                    type=logo_type,
                    priority=priority,
                    width=parse_dimension(element.get("width")),
                    height=parse_dimension(element.get("height")),
                    alt=clean_text(element.get("alt")),
                )
            )

    return tuple(logos)


class StructuredDataParser:
    """
    Comprehensive metadata parser.

    The DOM path is authoritative; the regex path recovers whatever a broken
    document hides from it.
    """

    def __init__(self, settings: Optional[ExtractionSettings] = None) -> None:
        self.settings = settings or ExtractionSettings()
        self.fallback = RegexFallbackParser(self.settings)

    def parse(self, html: str, base_url: str, *, scan_images: bool = True) -> SourceBundle:
        """
        Parse all metadata sources from an HTML document.

        Args:
            html: Decoded document text
            base_url: URL used to resolve relative links (the final URL after redirects)
            scan_images: Collect <img> candidates

        Returns:
            SourceBundle with every fragment found

        Raises:
            ParseError: Both parsers failed to produce anything
        """
        bundle: Optional[SourceBundle] = None
        try:
            bundle = self._parse_dom(html, base_url, scan_images)
        except Exception as e:
            logger.warning(f"DOM parsing failed for {base_url}, using regex fallback: {e}")

        if bundle is not None and bundle.html.title and bundle.html.description:
            return bundle

        fallback = self.fallback.parse(html, base_url, scan_images=scan_images)
        if bundle is None:
            if fallback.is_empty():
                raise ParseError("Document defeated both the DOM and the regex parser", url=base_url)
            return fallback
        return bundle.fill_missing(fallback)

    def _parse_dom(self, html: str, base_url: str, scan_images: bool) -> SourceBundle:
        soup = BeautifulSoup(html, "html.parser")

        title_tag = soup.find("title")
        title = title_tag.string if title_tag is not None else None
        if title and "<" in title:
            # Unclosed <title> swallowed the markup that follows it
            title = None

        meta_tags = [_tag_attrs(tag) for tag in soup.find_all("meta")]
        link_tags = [_tag_attrs(tag) for tag in soup.find_all("link")]
        img_tags = [_tag_attrs(tag) for tag in soup.find_all("img")] if scan_images else []
        json_ld_texts = [
            script.string or script.get_text() for script in soup.find_all("script", attrs={"type": _JSON_LD_TYPE})
        ]
        microdata = parse_microdata(soup, base_url)
        logos = parse_logos(soup, base_url) if scan_images else ()

        hints = PageHints(
            has_video_element=soup.find("video") is not None,
            has_article_element=soup.find("article") is not None,
            spa_shell=detect_spa_shell(html),
            body_text_length=self._visible_text_length(soup),
        )

        return build_bundle(
            base_url,
            title=str(title) if title else None,
            meta_tags=meta_tags,
            link_tags=link_tags,
            img_tags=img_tags,
            json_ld_texts=json_ld_texts,
            microdata=microdata,
            logos=logos,
            hints=hints,
            settings=self.settings,
        )

    @staticmethod
    def _visible_text_length(soup: Any) -> int:
        # Mutates the soup, so it runs after every other query
        root = soup.body or soup
        for tag in root.find_all(["script", "style", "noscript", "template"]):
            tag.decompose()
        return len(clean_text(root.get_text(" ")))
