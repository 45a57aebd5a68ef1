"""
Lexicon-based sentiment of the title and description.
"""

from __future__ import annotations

import logging
from typing import List

from ..protocols import MetadataRecord
from .content_analyzer import record_text, tokenize
from .lexicons import DEFAULT_LEXICONS, Lexicons
from .models import SentimentResult

logger = logging.getLogger(__name__)

CONSISTENCY_THRESHOLD = 0.7


class SentimentAnalyzer:
    def __init__(self, lexicons: Lexicons = DEFAULT_LEXICONS) -> None:
        self.lexicons = lexicons
        self._positive = frozenset(w.lower() for w in lexicons.positive_words)
        self._negative = frozenset(w.lower() for w in lexicons.negative_words)

    def analyze(self, record: MetadataRecord) -> SentimentResult:
        return self.analyze_text(record_text(record))

    def analyze_text(self, text: str) -> SentimentResult:
        tokens = tokenize(text)
        positive = sum(1 for token in tokens if token in self._positive)
        negative = sum(1 for token in tokens if token in self._negative)
        total = positive + negative

        if positive > negative:
            overall, confidence = "positive", positive / total
        elif negative > positive:
            overall, confidence = "negative", negative / total
        else:
            overall, confidence = "neutral", 0.5

        confidence = round(confidence, 2)
        return SentimentResult(
            overall=overall,
            confidence=confidence,
            emotions={"positive": positive, "negative": negative},
            tone=overall,
            recommendations=tuple(self.recommendations(overall, confidence)),
        )

    @staticmethod
    def recommendations(overall: str, confidence: float) -> List[str]:
        recommendations = []
        if overall == "negative":
            recommendations.append("Consider using more positive language")
            recommendations.append("Highlight benefits and value propositions")
        elif overall == "neutral":
            recommendations.append("Consider adding more emotional appeal")
            recommendations.append("Use power words to create excitement")

        if confidence < CONSISTENCY_THRESHOLD:
            recommendations.append("Consider making the tone more consistent")
        return recommendations
