"""
metaprobe extractor module - static and rendered extraction strategies

Provides the two extraction paths (plain HTTP and headless browser), the
confidence scorer that rates their output, and the selector that decides
which path serves a request.
"""

from .browser import BrowserManager
from .confidence_scorer import ConfidenceScorer
from .manager import FetchStrategySelector
from .protocols import Extractor
from .rendered_extractor import RenderedExtractor
from .static_extractor import StaticExtractor

__all__ = [
    "BrowserManager",
    "ConfidenceScorer",
    "Extractor",
    "FetchStrategySelector",
    "RenderedExtractor",
    "StaticExtractor",
]
