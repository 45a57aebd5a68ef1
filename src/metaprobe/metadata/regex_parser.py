"""
Regex fallback parser for markup that defeats the DOM parser.

Works on the raw text, so an unclosed <title> or a stray tag never hides the
meta tags that follow it. Attribute values are HTML-entity decoded.
"""

from __future__ import annotations

import html as html_lib
import logging
import re
from typing import Dict, List, Optional

from metaprobe.config.config import ExtractionSettings
from metaprobe.protocols import PageHints, SourceBundle

from .source_parsers import build_bundle, clean_text, detect_spa_shell

logger = logging.getLogger(__name__)

# Title text stops at the next tag, so a missing </title> is tolerated
_TITLE_RE = re.compile(r"<title\b[^>]*>\s*([^<]+)", re.IGNORECASE)
_META_RE = re.compile(r"<meta\b([^>]*)>", re.IGNORECASE | re.DOTALL)
_LINK_RE = re.compile(r"<link\b([^>]*)>", re.IGNORECASE | re.DOTALL)
_IMG_RE = re.compile(r"<img\b([^>]*)>", re.IGNORECASE | re.DOTALL)
_ATTR_RE = re.compile(r"""([\w:.-]+)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))""", re.DOTALL)
_JSON_LD_RE = re.compile(
    r"""<script[^>]*type\s*=\s*["']?application/ld\+json["']?[^>]*>(.*?)</script>""",
    re.IGNORECASE | re.DOTALL,
)
_BODY_RE = re.compile(r"<body\b[^>]*>(.*)", re.IGNORECASE | re.DOTALL)
_INVISIBLE_RE = re.compile(r"<(script|style|noscript|template)\b.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")


def parse_attributes(attr_text: str) -> Dict[str, str]:
    """Attribute string -> {lowercased name: decoded value}; first occurrence wins."""
    attrs: Dict[str, str] = {}
    for match in _ATTR_RE.finditer(attr_text):
        name = match.group(1).lower()
        value = next((g for g in match.groups()[1:] if g is not None), "")
        attrs.setdefault(name, html_lib.unescape(value))
    return attrs


class RegexFallbackParser:
    """Extracts the same fragments as the DOM parser, minus microdata."""

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        self.settings = settings or ExtractionSettings()

    def parse(self, html: str, base_url: str, *, scan_images: bool = True) -> SourceBundle:
        title_match = _TITLE_RE.search(html)
        title = clean_text(html_lib.unescape(title_match.group(1))) if title_match else None

        meta_tags = [parse_attributes(m.group(1)) for m in _META_RE.finditer(html)]
        link_tags = [parse_attributes(m.group(1)) for m in _LINK_RE.finditer(html)]
        img_tags = [parse_attributes(m.group(1)) for m in _IMG_RE.finditer(html)] if scan_images else []
        json_ld_texts: List[str] = [m.group(1) for m in _JSON_LD_RE.finditer(html)]

        hints = PageHints(
            has_video_element=re.search(r"<video\b", html, re.IGNORECASE) is not None,
            has_article_element=re.search(r"<article\b", html, re.IGNORECASE) is not None,
            spa_shell=detect_spa_shell(html),
            body_text_length=self._visible_text_length(html),
        )
        logger.debug(f"Regex fallback found {len(meta_tags)} meta tags, title={'yes' if title else 'no'}")

        return build_bundle(
            base_url,
            title=title,
            meta_tags=meta_tags,
            link_tags=link_tags,
            img_tags=img_tags,
            json_ld_texts=json_ld_texts,
            microdata=(),
            hints=hints,
            settings=self.settings,
        )

    @staticmethod
    def _visible_text_length(html: str) -> int:
        body_match = _BODY_RE.search(html)
        body = body_match.group(1) if body_match else html
        text = _TAG_RE.sub(" ", _INVISIBLE_RE.sub(" ", body))
        return len(clean_text(html_lib.unescape(text)))
