"""
metaprobe enrichment module - deterministic content-quality analysis
"""

from .category import CategoryClassifier
from .content_analyzer import ContentAnalyzer
from .engine import EnrichmentEngine
from .lexicons import DEFAULT_LEXICONS, Lexicons, load_lexicons
from .models import (
    AIEnhancements,
    CategoryResult,
    ContentAnalysis,
    EnrichedMetadataRecord,
    SEOOptimization,
    SentimentResult,
)
from .seo_optimizer import SEOOptimizer
from .sentiment import SentimentAnalyzer

__all__ = [
    "AIEnhancements",
    "CategoryClassifier",
    "CategoryResult",
    "ContentAnalysis",
    "ContentAnalyzer",
    "DEFAULT_LEXICONS",
    "EnrichedMetadataRecord",
    "EnrichmentEngine",
    "Lexicons",
    "SEOOptimization",
    "SEOOptimizer",
    "SentimentAnalyzer",
    "SentimentResult",
    "load_lexicons",
]
