"""
metaprobe - URL metadata extraction and enrichment.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config, FetchOptions
from .enrichment import EnrichedMetadataRecord, EnrichmentEngine
from .exceptions import (
    FetchTimeoutError,
    MetadataError,
    NetworkError,
    ParseError,
    RenderError,
    URLValidationError,
)
from .protocols import ContentType, FetchMethod, MetadataRecord
from .service import MetadataService, fetch_metadata

__all__ = [
    "__version__",
    "Config",
    "ContentType",
    "EnrichedMetadataRecord",
    "EnrichmentEngine",
    "FetchMethod",
    "FetchOptions",
    "FetchTimeoutError",
    "MetadataError",
    "MetadataRecord",
    "MetadataService",
    "NetworkError",
    "ParseError",
    "RenderError",
    "URLValidationError",
    "fetch_metadata",
]
