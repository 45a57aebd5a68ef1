"""
Extraction Confidence Scorer

Rates how much usable metadata an extraction produced, on a 0-1 scale. The
strategy selector compares the score against
``extraction.confidence_threshold`` to decide whether a static result is good
enough or the page has to be rendered.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from ..config.config import ExtractionSettings
from ..protocols import ImageType, MetadataRecord, PageHints

logger = logging.getLogger(__name__)


class ConfidenceScorer:
    """
    Weighted field-presence scorer.

    Signals:
    - Title and description present
    - At least one real image candidate (screenshots do not count)
    - Any Open Graph or Twitter Card field
    - Any structured data block
    - Visible body text, scaled up to ``min_body_text_length``

    A client-side app shell with thin body text is penalised, since its
    static markup rarely reflects what the page shows.
    """

    def __init__(self, settings: Optional[ExtractionSettings] = None) -> None:
        self.settings = settings or ExtractionSettings()

        self.weights: Dict[str, float] = {
            "title": 0.25,
            "description": 0.20,
            "image": 0.15,
            "social": 0.10,
            "structured_data": 0.05,
            "body_text": 0.25,
        }
        self.spa_shell_penalty = 0.5

    def score(self, record: MetadataRecord, hints: Optional[PageHints] = None, *, failed: bool = False) -> float:
        """
        Calculate the confidence of one extraction.

        Args:
            record: Merged record
            hints: Document signals from the parser (None when nothing was parsed)
            failed: The fetch itself failed

        Returns:
            Confidence score between 0.0 and 1.0
        """
        if failed:
            return 0.0
        hints = hints or PageHints()

        signals = self.signals(record, hints)
        score = sum(self.weights[name] * value for name, value in signals.items())

        if hints.spa_shell and signals["body_text"] < 1.0:
            score *= self.spa_shell_penalty

        score = round(max(0.0, min(1.0, score)), 4)
        logger.debug(f"Confidence for {record.url}: {score} ({signals})")
        return score

    def signals(self, record: MetadataRecord, hints: PageHints) -> Dict[str, float]:
        """Per-signal values in [0, 1] before weighting."""
        has_image = any(image.type is not ImageType.SCREENSHOT for image in record.images)
        has_social = bool(record.social.open_graph or record.social.twitter)

        min_length = self.settings.min_body_text_length
        if min_length <= 0:
            body_text = 1.0 if hints.body_text_length > 0 else 0.0
        else:
            body_text = min(hints.body_text_length / min_length, 1.0)

        return {
            "title": 1.0 if record.title else 0.0,
            "description": 1.0 if record.description else 0.0,
            "image": 1.0 if has_image else 0.0,
            "social": 1.0 if has_social else 0.0,
            "structured_data": 1.0 if record.structured_data else 0.0,
            "body_text": body_text,
        }
