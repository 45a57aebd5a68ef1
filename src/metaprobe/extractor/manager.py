"""
Fetch strategy selection for metaprobe.

Chooses between the static and the rendered extractor for one URL and
reconciles their results when both ran.
"""

from __future__ import annotations

from typing import Optional

import structlog

from ..config.config import ExtractionSettings, FetchOptions
from ..observability.metrics import increment
from ..protocols import ExtractionResult
from .protocols import Extractor

logger = structlog.get_logger(__name__)


class FetchStrategySelector:
    """
    Static-first extraction with a confidence-gated render fallback.

    Rules:
    - ``prefer_rendered`` runs the rendered extractor only
    - otherwise the static extractor runs first; when ``fallback_to_rendered``
      is set and the static result failed outright or scored below
      ``confidence_threshold``, the page is rendered as well
    - with both results in hand the rendered one wins unless it failed
      outright or scored strictly lower, and the loser's errors are appended
      to the winner's
    - when both failed, an HTTP error status from the static fetch keeps the
      static record; otherwise the rendered record (the last attempt) is kept
    """

    def __init__(
        self,
        static: Extractor,
        rendered: Extractor,
        settings: Optional[ExtractionSettings] = None,
    ) -> None:
        self.static = static
        self.rendered = rendered
        self.settings = settings or ExtractionSettings()
        self.logger = logger.bind(component="FetchStrategySelector")

    def needs_fallback(self, result: ExtractionResult, options: FetchOptions) -> bool:
        if not options.fallback_to_rendered:
            return False
        return result.failed or result.confidence < self.settings.confidence_threshold

    async def select(self, url: str, options: FetchOptions) -> ExtractionResult:
        """
        Extract metadata using the strategy implied by the options.

        Args:
            url: Validated URL
            options: Effective per-call options

        Returns:
            The winning ExtractionResult
        """
        if options.prefer_rendered:
            self.logger.debug("Rendering requested", url=url)
            return await self.rendered.extract(url, options)

        static_result = await self.static.extract(url, options)
        if not self.needs_fallback(static_result, options):
            return static_result

        self.logger.info(
            "Falling back to rendered extraction",
            url=url,
            confidence=static_result.confidence,
            threshold=self.settings.confidence_threshold,
            failed=static_result.failed,
        )
        increment("render_fallbacks_total")
        rendered_result = await self.rendered.extract(url, options)
        return self.reconcile(static_result, rendered_result)

    def reconcile(self, static_result: ExtractionResult, rendered_result: ExtractionResult) -> ExtractionResult:
        """Pick the winner of two attempts and carry over the loser's errors."""
        if static_result.failed and rendered_result.failed:
            # A server that answered with an error status is reported as a static
            # failure; an unreachable page reports the last strategy attempted
            answered = any(issue.status is not None for issue in static_result.record.errors)
            winner, loser = (static_result, rendered_result) if answered else (rendered_result, static_result)
        elif rendered_result.failed or rendered_result.confidence < static_result.confidence:
            winner, loser = static_result, rendered_result
        else:
            winner, loser = rendered_result, static_result

        self.logger.debug(
            "Strategy reconciled",
            winner=winner.record.fetch_method.value,
            static_confidence=static_result.confidence,
            rendered_confidence=rendered_result.confidence,
        )
        if not loser.record.errors:
            return winner
        return ExtractionResult(
            record=winner.record.with_errors(loser.record.errors),
            confidence=winner.confidence,
            failed=winner.failed,
            carried_errors=loser.record.errors,
        )
