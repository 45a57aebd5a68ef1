"""
Core contracts and dataclasses for metaprobe.

This module defines the value objects that flow through the pipeline:

- Typed per-source fragments (Open Graph, Twitter Card, JSON-LD, microdata,
  plain HTML tags) collected by the parsers into a SourceBundle
- The canonical MetadataRecord produced by the merger
- The ExtractionResult handed from extractors to the strategy selector
- Protocols for the pluggable cache and extractor components

All records are frozen and created fresh per request.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from .exceptions import MetadataError

# ============================================================================
# Enums
# ============================================================================


class ContentType(Enum):
    """Coarse page classification."""

    WEBSITE = "website"
    ARTICLE = "article"
    VIDEO = "video"
    PRODUCT = "product"
    OTHER = "other"


class FetchMethod(Enum):
    """Strategy that produced a record."""

    STATIC = "static"
    RENDERED = "rendered"


class ImageType(Enum):
    """Where an image candidate was discovered."""

    OG_IMAGE = "og:image"
    TWITTER_IMAGE = "twitter:image"
    APPLE_TOUCH_ICON = "apple-touch-icon"
    INLINE = "inline"
    SCREENSHOT = "screenshot"


class StructuredDataFormat(Enum):
    JSON_LD = "json-ld"
    MICRODATA = "microdata"


# ============================================================================
# Record building blocks
# ============================================================================


@dataclass(frozen=True)
class ExtractionIssue:
    """Non-fatal problem recorded on a MetadataRecord."""

    kind: str
    message: str
    stage: str = "static"
    status: Optional[int] = None

    @classmethod
    def from_exception(cls, exc: BaseException, stage: str) -> ExtractionIssue:
        kind = exc.kind if isinstance(exc, MetadataError) else type(exc).__name__
        message = str(exc) or type(exc).__name__
        return cls(kind=kind, message=message, stage=stage, status=getattr(exc, "status", None))

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.kind, "message": self.message, "stage": self.stage}


@dataclass(frozen=True)
class ImageSource:
    """An image candidate with its ranking priority (higher is better)."""

    url: str
    type: ImageType
    priority: int
    width: Optional[int] = None
    height: Optional[int] = None
    alt: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "type": self.type.value,
            "priority": self.priority,
            "width": self.width,
            "height": self.height,
            "alt": self.alt,
        }


@dataclass(frozen=True)
class FaviconEntry:
    url: str
    type: str = "icon"
    sizes: Optional[str] = None
    mime_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "type": self.type, "sizes": self.sizes, "mimeType": self.mime_type}


@dataclass(frozen=True)
class LogoSource:
    """A site logo candidate; `type` names the selector that found it."""

    url: str
    type: str
    priority: int
    width: Optional[int] = None
    height: Optional[int] = None
    alt: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "type": self.type,
            "priority": self.priority,
            "width": self.width,
            "height": self.height,
            "alt": self.alt,
        }


@dataclass(frozen=True)
class StructuredDataBlock:
    """One JSON-LD object or microdata item, kept verbatim."""

    format: StructuredDataFormat
    payload: Any


@dataclass(frozen=True)
class SocialCardData:
    """Raw social-card maps, keyed without their namespace prefix."""

    twitter: Dict[str, str] = field(default_factory=dict)
    open_graph: Dict[str, str] = field(default_factory=dict)
    facebook: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {
            "twitter": dict(self.twitter),
            "openGraph": dict(self.open_graph),
            "facebook": dict(self.facebook),
        }


@dataclass(frozen=True)
class Position:
    """On-screen box of an element, centred coordinates."""

    x: float
    y: float
    width: float
    height: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class NavbarLink:
    text: str
    url: str
    position: Optional[Position] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "url": self.url,
            "position": self.position.to_dict() if self.position else None,
        }


@dataclass(frozen=True)
class Screenshot:
    """Capture of a navigation link region saved by the render path."""

    link_text: str
    link_url: str
    path: str
    url: str
    index: int
    position: Optional[Position] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "linkText": self.link_text,
            "linkUrl": self.link_url,
            "screenshotPath": self.path,
            "screenshotUrl": self.url,
            "position": self.position.to_dict() if self.position else None,
            "index": self.index,
        }


@dataclass(frozen=True)
class VideoMetadata:
    url: str
    type: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "type": self.type, "width": self.width, "height": self.height}


# ============================================================================
# Typed per-source fragments
# ============================================================================


def _to_int(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    digits = ""
    for char in str(value).strip():
        if not char.isdigit():
            break
        digits += char
    return int(digits) if digits else None


@dataclass(frozen=True)
class OpenGraphFields:
    """Open Graph (`og:*` and `article:*`) properties of a page."""

    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    url: Optional[str] = None
    site_name: Optional[str] = None
    image: Optional[str] = None
    image_width: Optional[int] = None
    image_height: Optional[int] = None
    image_alt: Optional[str] = None
    video: Optional[str] = None
    video_type: Optional[str] = None
    video_width: Optional[int] = None
    video_height: Optional[int] = None
    raw: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_map(cls, raw: Dict[str, str]) -> OpenGraphFields:
        """Build typed fields from a property map keyed without the `og:` prefix."""
        return cls(
            title=raw.get("title") or None,
            description=raw.get("description") or None,
            type=raw.get("type") or None,
            url=raw.get("url") or None,
            site_name=raw.get("site_name") or None,
            image=raw.get("image") or raw.get("image:url") or raw.get("image:secure_url") or None,
            image_width=_to_int(raw.get("image:width")),
            image_height=_to_int(raw.get("image:height")),
            image_alt=raw.get("image:alt") or None,
            video=raw.get("video") or raw.get("video:url") or raw.get("video:secure_url") or None,
            video_type=raw.get("video:type") or None,
            video_width=_to_int(raw.get("video:width")),
            video_height=_to_int(raw.get("video:height")),
            raw=dict(raw),
        )

    def is_empty(self) -> bool:
        return not self.raw


@dataclass(frozen=True)
class TwitterFields:
    """Twitter Card properties keyed without the `twitter:` prefix (`:` becomes `_`)."""

    card: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    image_src: Optional[str] = None
    image_alt: Optional[str] = None
    site: Optional[str] = None
    creator: Optional[str] = None
    raw: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_map(cls, raw: Dict[str, str]) -> TwitterFields:
        return cls(
            card=raw.get("card") or None,
            title=raw.get("title") or None,
            description=raw.get("description") or None,
            image=raw.get("image") or None,
            image_src=raw.get("image_src") or None,
            image_alt=raw.get("image_alt") or None,
            site=raw.get("site") or None,
            creator=raw.get("creator") or None,
            raw=dict(raw),
        )

    def is_empty(self) -> bool:
        return not self.raw


def _first_text(value: Any) -> Optional[str]:
    """Pull a display string out of a JSON-LD value (string, object or list)."""
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, dict):
        for key in ("name", "url", "@id"):
            if isinstance(value.get(key), str) and value[key].strip():
                return value[key].strip()
        return None
    if isinstance(value, list):
        for item in value:
            text = _first_text(item)
            if text:
                return text
    return None


@dataclass(frozen=True)
class JsonLdBlock:
    """A single parsed `application/ld+json` object."""

    types: Tuple[str, ...]
    payload: Dict[str, Any]

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> JsonLdBlock:
        raw_type = payload.get("@type", ())
        if isinstance(raw_type, str):
            types: Tuple[str, ...] = (raw_type,)
        elif isinstance(raw_type, list):
            types = tuple(str(t) for t in raw_type)
        else:
            types = ()
        return cls(types=types, payload=payload)

    @property
    def title(self) -> Optional[str]:
        return _first_text(self.payload.get("name")) or _first_text(self.payload.get("headline"))

    @property
    def description(self) -> Optional[str]:
        return _first_text(self.payload.get("description"))

    @property
    def image_urls(self) -> List[str]:
        image = self.payload.get("image")
        items = image if isinstance(image, list) else [image]
        urls = []
        for item in items:
            url = (item.get("url") or item.get("contentUrl")) if isinstance(item, dict) else item
            if isinstance(url, str) and url.strip():
                urls.append(url.strip())
        return urls


@dataclass(frozen=True)
class MicrodataBlock:
    """A top-level `itemscope` item; multi-valued properties are lists."""

    type: str
    properties: Dict[str, Any]

    @property
    def short_type(self) -> str:
        return self.type.rstrip("/").rsplit("/", 1)[-1]

    def first(self, name: str) -> Optional[str]:
        value = self.properties.get(name)
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, str):
            return value.strip() or None
        return None

    def to_payload(self) -> Dict[str, Any]:
        return {"type": self.type, "properties": dict(self.properties)}


@dataclass(frozen=True)
class HtmlTagFields:
    """Values read from plain HTML tags."""

    title: Optional[str] = None
    description: Optional[str] = None
    keywords: Tuple[str, ...] = ()
    canonical_url: Optional[str] = None
    image_src: Optional[str] = None


@dataclass(frozen=True)
class PageHints:
    """Document-level signals used for content typing and confidence."""

    has_video_element: bool = False
    has_article_element: bool = False
    spa_shell: bool = False
    body_text_length: int = 0


@dataclass(frozen=True)
class SourceBundle:
    """Everything a parser found in one document, before merging."""

    url: str
    open_graph: OpenGraphFields = field(default_factory=OpenGraphFields)
    twitter: TwitterFields = field(default_factory=TwitterFields)
    facebook: Dict[str, str] = field(default_factory=dict)
    json_ld: Tuple[JsonLdBlock, ...] = ()
    microdata: Tuple[MicrodataBlock, ...] = ()
    html: HtmlTagFields = field(default_factory=HtmlTagFields)
    images: Tuple[ImageSource, ...] = ()
    favicons: Tuple[FaviconEntry, ...] = ()
    logos: Tuple[LogoSource, ...] = ()
    hints: PageHints = field(default_factory=PageHints)

    def is_empty(self) -> bool:
        return (
            self.open_graph.is_empty()
            and self.twitter.is_empty()
            and not self.json_ld
            and not self.microdata
            and not self.html.title
            and not self.html.description
        )

    def fill_missing(self, other: SourceBundle) -> SourceBundle:
        """Return a copy where every empty fragment is taken from `other`."""
        html = self.html
        title = html.title if html.title and "<" not in html.title else other.html.title
        html = replace(
            html,
            title=title,
            description=html.description or other.html.description,
            keywords=html.keywords or other.html.keywords,
            canonical_url=html.canonical_url or other.html.canonical_url,
            image_src=html.image_src or other.html.image_src,
        )
        return replace(
            self,
            open_graph=self.open_graph if not self.open_graph.is_empty() else other.open_graph,
            twitter=self.twitter if not self.twitter.is_empty() else other.twitter,
            facebook=self.facebook or other.facebook,
            json_ld=self.json_ld or other.json_ld,
            microdata=self.microdata or other.microdata,
            html=html,
            images=self.images or other.images,
            favicons=self.favicons or other.favicons,
            logos=self.logos or other.logos,
        )


# ============================================================================
# Canonical record
# ============================================================================


@dataclass(frozen=True)
class MetadataRecord:
    """Canonical output of extraction."""

    url: str
    title: str = ""
    description: str = ""
    content_type: ContentType = ContentType.WEBSITE
    images: Tuple[ImageSource, ...] = ()
    favicons: Tuple[FaviconEntry, ...] = ()
    logos: Tuple[LogoSource, ...] = ()
    structured_data: Tuple[StructuredDataBlock, ...] = ()
    social: SocialCardData = field(default_factory=SocialCardData)
    navbar_links: Tuple[NavbarLink, ...] = ()
    screenshots: Tuple[Screenshot, ...] = ()
    fetch_method: FetchMethod = FetchMethod.STATIC
    has_javascript: bool = False
    load_time_ms: int = 0
    errors: Tuple[ExtractionIssue, ...] = ()
    canonical_url: Optional[str] = None
    site_name: Optional[str] = None
    keywords: Tuple[str, ...] = ()
    video: Optional[VideoMetadata] = None

    def __post_init__(self) -> None:
        if self.load_time_ms < 0:
            raise ValueError("load_time_ms cannot be negative")

    @property
    def primary_image(self) -> Optional[str]:
        return self.images[0].url if self.images else None

    @property
    def primary_logo(self) -> Optional[str]:
        return self.logos[0].url if self.logos else None

    def with_errors(self, extra: Tuple[ExtractionIssue, ...]) -> MetadataRecord:
        return replace(self, errors=self.errors + tuple(extra))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the external camelCase JSON shape."""
        json_ld = [b.payload for b in self.structured_data if b.format is StructuredDataFormat.JSON_LD]
        microdata = [b.payload for b in self.structured_data if b.format is StructuredDataFormat.MICRODATA]
        return {
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "contentType": self.content_type.value,
            "images": {
                "primary": self.primary_image,
                "sources": [image.to_dict() for image in self.images],
            },
            "favicons": [favicon.to_dict() for favicon in self.favicons],
            "logos": {
                "primary": self.primary_logo,
                "sources": [logo.to_dict() for logo in self.logos],
            },
            "structuredData": {"jsonLd": json_ld, "microdata": microdata},
            "social": self.social.to_dict(),
            "navbarLinks": [link.to_dict() for link in self.navbar_links],
            "screenshots": [shot.to_dict() for shot in self.screenshots],
            "fetchMethod": self.fetch_method.value,
            "hasJavaScript": self.has_javascript,
            "loadTimeMs": self.load_time_ms,
            "errors": [issue.to_dict() for issue in self.errors],
            "canonicalUrl": self.canonical_url,
            "siteName": self.site_name,
            "keywords": list(self.keywords),
            "video": self.video.to_dict() if self.video else None,
        }


@dataclass(frozen=True)
class ExtractionResult:
    """What an extractor hands to the strategy selector."""

    record: MetadataRecord
    confidence: float
    failed: bool = False
    # Errors appended from the losing attempt when two results were reconciled
    carried_errors: Tuple[ExtractionIssue, ...] = ()

    def __post_init__(self) -> None:
        if not (0.0 <= self.confidence <= 1.0):
            raise ValueError("confidence must be between 0.0 and 1.0")

    @property
    def cacheable(self) -> bool:
        """True when the attempt that produced the record succeeded without errors of its own."""
        return not self.failed and len(self.record.errors) == len(self.carried_errors)


# ============================================================================
# Component protocols
# ============================================================================


@runtime_checkable
class CacheProtocol(Protocol):
    """Key/value store with per-entry time-to-live."""

    async def get(self, key: str) -> Tuple[Any, bool]:
        """Return (value, found); expired entries are reported as not found."""
        ...

    async def set(self, key: str, value: Any, ttl: float) -> None:
        ...

    async def invalidate(self, key: str) -> None:
        ...

    async def clear(self) -> None:
        ...
