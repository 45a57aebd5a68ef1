"""
metaprobe metadata module - source parsing and merging

Turns an HTML document into a typed SourceBundle (Open Graph, Twitter Cards,
JSON-LD, microdata, plain tags, favicons, image candidates) and merges the
bundle into one canonical MetadataRecord with ranked images.
"""

from .image_ranker import rank_images
from .merger import SourceMerger, detect_content_type
from .regex_parser import RegexFallbackParser
from .source_parsers import OpenGraphParser, SchemaOrgParser, TwitterCardParser
from .structured_data_parser import StructuredDataParser

__all__ = [
    "OpenGraphParser",
    "RegexFallbackParser",
    "SchemaOrgParser",
    "SourceMerger",
    "StructuredDataParser",
    "TwitterCardParser",
    "detect_content_type",
    "rank_images",
]
