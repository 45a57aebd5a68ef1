"""
Static extraction: one HTTP GET, then DOM parsing off the event loop.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import replace
from pathlib import PurePosixPath
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

import structlog

from ..config.config import ExtractionSettings, FetchOptions
from ..crawler.http_client import CrawlerResponse, HttpClient
from ..exceptions import MetadataError, NetworkError, ParseError
from ..metadata.merger import SourceMerger
from ..metadata.structured_data_parser import StructuredDataParser
from ..observability.metrics import increment, observe
from ..protocols import (
    ContentType,
    ExtractionIssue,
    ExtractionResult,
    FetchMethod,
    HtmlTagFields,
    MetadataRecord,
    SourceBundle,
)
from .confidence_scorer import ConfidenceScorer

logger = structlog.get_logger(__name__)

HTML_CONTENT_TYPES = frozenset({"", "text/html", "application/xhtml+xml", "application/xml", "text/xml", "text/plain"})
PDF_CONTENT_TYPE = "application/pdf"

_STAGE = "static"


def pdf_name(url: str) -> str:
    """File name of a PDF URL, percent-decoded."""
    name = unquote(PurePosixPath(urlparse(url).path).name)
    return name or "document.pdf"


class StaticExtractor:
    """
    Metadata extraction from the server-rendered HTML.

    Never raises for a reachable-but-broken page: HTTP errors, timeouts,
    empty bodies and unparseable documents all come back as a record with
    empty fields and a populated ``errors`` tuple.
    """

    method = FetchMethod.STATIC

    def __init__(
        self,
        http_client: HttpClient,
        parser: Optional[StructuredDataParser] = None,
        merger: Optional[SourceMerger] = None,
        scorer: Optional[ConfidenceScorer] = None,
        settings: Optional[ExtractionSettings] = None,
    ) -> None:
        self.http_client = http_client
        self.settings = settings or ExtractionSettings()
        self.parser = parser or StructuredDataParser(self.settings)
        self.merger = merger or SourceMerger()
        self.scorer = scorer or ConfidenceScorer(self.settings)
        self.logger = logger.bind(component="StaticExtractor")

    async def extract(self, url: str, options: FetchOptions) -> ExtractionResult:
        start = time.perf_counter()
        result = await self._extract(url, options, start)
        elapsed = time.perf_counter() - start

        outcome = "failure" if result.failed else ("partial" if result.record.errors else "success")
        increment("fetch_total", labels={"method": self.method.value, "outcome": outcome})
        observe("fetch_latency_seconds", elapsed, labels={"method": self.method.value})
        self.logger.info(
            "Static extraction finished",
            url=url,
            outcome=outcome,
            confidence=result.confidence,
            load_time_ms=result.record.load_time_ms,
        )
        return result

    async def _extract(self, url: str, options: FetchOptions, start: float) -> ExtractionResult:
        try:
            response = await self.http_client.fetch(
                url,
                timeout=options.timeout_seconds,
                user_agent=options.user_agent,
            )
        except MetadataError as e:
            return self._failure(url, e, start)

        if not response.ok:
            return self._failure(url, NetworkError(f"HTTP {response.status}", url=url, status=response.status), start)
        if not response.body.strip():
            return self._failure(url, NetworkError("Empty response body", url=url, status=response.status), start)
        if response.truncated:
            self.logger.warning("Response body truncated", url=url, limit=len(response.body))

        if response.content_type == PDF_CONTENT_TYPE:
            return self._pdf_result(url, response)
        if response.content_type not in HTML_CONTENT_TYPES:
            error = ParseError(f"Unsupported content type: {response.content_type}", url=url)
            return self._result(url, None, (ExtractionIssue.from_exception(error, _STAGE),), response.elapsed_ms)

        try:
            bundle = await asyncio.to_thread(
                self.parser.parse,
                response.text(),
                response.final_url,
                scan_images=options.enable_image_analysis,
            )
        except ParseError as e:
            self.logger.warning("Document could not be parsed", url=url, error=str(e))
            return self._result(url, None, (ExtractionIssue.from_exception(e, _STAGE),), response.elapsed_ms)

        return self._result(url, bundle, (), response.elapsed_ms)

    def _result(
        self,
        url: str,
        bundle: Optional[SourceBundle],
        errors: Tuple[ExtractionIssue, ...],
        load_time_ms: int,
    ) -> ExtractionResult:
        if bundle is None:
            record = MetadataRecord(
                url=url,
                fetch_method=self.method,
                has_javascript=False,
                load_time_ms=load_time_ms,
                errors=errors,
            )
            return ExtractionResult(record=record, confidence=0.0)

        record = self.merger.merge(
            bundle,
            url=url,
            fetch_method=self.method,
            has_javascript=False,
            load_time_ms=load_time_ms,
            errors=errors,
        )
        return ExtractionResult(record=record, confidence=self.scorer.score(record, bundle.hints))

    def _pdf_result(self, url: str, response: CrawlerResponse) -> ExtractionResult:
        name = pdf_name(response.final_url)
        bundle = SourceBundle(
            url=response.final_url,
            html=HtmlTagFields(title=name, description=f"PDF document: {name}"),
        )
        record = self.merger.merge(
            bundle,
            url=url,
            fetch_method=self.method,
            has_javascript=False,
            load_time_ms=response.elapsed_ms,
        )
        # A PDF has nothing more to give when rendered
        return ExtractionResult(record=replace(record, content_type=ContentType.OTHER), confidence=1.0)

    def _failure(self, url: str, error: MetadataError, start: float) -> ExtractionResult:
        load_time_ms = int((time.perf_counter() - start) * 1000)
        record = MetadataRecord(
            url=url,
            fetch_method=self.method,
            has_javascript=False,
            load_time_ms=load_time_ms,
            errors=(ExtractionIssue.from_exception(error, _STAGE),),
        )
        return ExtractionResult(record=record, confidence=0.0, failed=True)
