"""
MetadataService - the public entry point of metaprobe.

Wires URL validation, the cache, single-flight deduplication, the fetch
strategy selector and the enrichment engine into one async operation:

    async with MetadataService(config) as service:
        result = await service.fetch_metadata("https://example.com")

`fetch_metadata()` at module level is the one-shot form that opens and closes
a service around a single call.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Mapping, Optional
from uuid import uuid4

import structlog
from structlog.contextvars import bound_contextvars

from .cache.single_flight import SingleFlight
from .cache.ttl_cache import NullCache, TTLCache, normalize_url
from .config.config import Config, FetchOptions
from .crawler.http_client import HttpClient
from .enrichment.engine import EnrichmentEngine
from .enrichment.lexicons import Lexicons, load_lexicons
from .enrichment.models import EnrichedMetadataRecord
from .extractor.browser import BrowserManager
from .extractor.confidence_scorer import ConfidenceScorer
from .extractor.manager import FetchStrategySelector
from .extractor.rendered_extractor import RenderedExtractor
from .extractor.static_extractor import StaticExtractor
from .metadata.merger import SourceMerger
from .metadata.structured_data_parser import StructuredDataParser
from .observability.metrics import start_metrics_server
from .protocols import CacheProtocol, FetchMethod, MetadataRecord
from .security.validation import URLValidator

logger = structlog.get_logger(__name__)

OptionsLike = FetchOptions | Mapping[str, Any] | None


class MetadataService:
    """
    Fetch, merge and enrich metadata for single URLs.

    Components may be injected (a NullCache, a BrowserManager driving a fake
    Playwright, an HttpClient over a test session); the service closes every
    component it holds when it is closed.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        cache: Optional[CacheProtocol] = None,
        browser: Optional[BrowserManager] = None,
        http_client: Optional[HttpClient] = None,
        clock: Optional[Callable[[], float]] = None,
        lexicons: Optional[Lexicons] = None,
    ) -> None:
        self.config = config or Config()
        self.logger = logger.bind(component="MetadataService")

        if cache is not None:
            self.cache = cache
        elif self.config.cache.enabled:
            self.cache = TTLCache(self.config.cache.max_entries, clock=clock or time.monotonic)
        else:
            self.cache = NullCache()

        self.http_client = http_client or HttpClient(self.config)
        self.browser = browser or BrowserManager(self.config.render)
        self.validator = URLValidator(self.config.security)

        settings = self.config.extraction
        parser = StructuredDataParser(settings)
        merger = SourceMerger()
        scorer = ConfidenceScorer(settings)
        self.static_extractor = StaticExtractor(self.http_client, parser, merger, scorer, settings)
        self.rendered_extractor = RenderedExtractor(
            self.browser, parser, merger, scorer, settings, render_config=self.config.render
        )
        self.selector = FetchStrategySelector(self.static_extractor, self.rendered_extractor, settings)
        self.enricher = EnrichmentEngine(lexicons or load_lexicons(self.config.enrichment.lexicons_file))

        self._flights: SingleFlight[MetadataRecord] = SingleFlight()
        self._initialized = False
        self._closed = False

    async def initialize(self) -> None:
        """Open the HTTP session. The browser starts on first render."""
        if self._closed:
            raise RuntimeError("MetadataService is closed")
        if self._initialized:
            return
        await self.http_client.initialize()

        monitoring = self.config.monitoring
        if monitoring.metrics_enabled and monitoring.prometheus_port:
            start_metrics_server(monitoring.prometheus_port)
            self.logger.info("Metrics server started", port=monitoring.prometheus_port)

        self._initialized = True
        self.logger.info("Metadata service initialized", cache=type(self.cache).__name__)

    async def close(self) -> None:
        """Release the HTTP session, the browser and any open pages."""
        if self._closed:
            return
        self._closed = True
        await self.http_client.close()
        await self.browser.close()
        self._initialized = False
        self.logger.info("Metadata service closed")

    async def __aenter__(self) -> "MetadataService":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def fetch_metadata(self, url: str, options: OptionsLike = None) -> EnrichedMetadataRecord:
        """
        Extract and enrich metadata for one URL.

        Args:
            url: Absolute http(s) URL
            options: FetchOptions or a mapping of camelCase/snake_case overrides
                applied on top of ``config.fetch``

        Returns:
            EnrichedMetadataRecord; extraction failures are listed in its errors

        Raises:
            URLValidationError: The URL is malformed or not allowed
        """
        url = self.validator.validate_url(url)
        effective = self.config.fetch.merged(options)
        if not self._initialized:
            await self.initialize()

        with bound_contextvars(request_id=uuid4().hex[:12]):
            start = time.perf_counter()
            record = await self._record_for(url, effective)
            enriched = await asyncio.to_thread(self.enricher.enrich, record, effective)
            self.logger.info(
                "Metadata fetched",
                url=url,
                fetch_method=record.fetch_method.value,
                errors=len(record.errors),
                elapsed_ms=int((time.perf_counter() - start) * 1000),
            )
            return enriched

    async def _record_for(self, url: str, options: FetchOptions) -> MetadataRecord:
        key = normalize_url(url)

        if options.enable_caching:
            cached, found = await self.cache.get(key)
            if found and self._cache_satisfies(cached, options):
                self.logger.debug("Serving cached record", url=url)
                return cached

        strategy = "rendered" if options.prefer_rendered else "auto"
        return await self._flights.do(f"{strategy}:{key}", lambda: self._extract(url, key, options))

    async def _extract(self, url: str, key: str, options: FetchOptions) -> MetadataRecord:
        result = await self.selector.select(url, options)
        record = result.record
        if options.enable_caching and result.cacheable:
            await self.cache.set(key, record, options.cache_max_age)
        return record

    @staticmethod
    def _cache_satisfies(record: MetadataRecord, options: FetchOptions) -> bool:
        # A static record cannot answer a request that asks for rendering
        return not options.prefer_rendered or record.fetch_method is FetchMethod.RENDERED


async def fetch_metadata(
    url: str,
    options: OptionsLike = None,
    *,
    config: Optional[Config] = None,
) -> EnrichedMetadataRecord:
    """One-shot fetch: open a service, fetch one URL, close the service."""
    async with MetadataService(config) as service:
        return await service.fetch_metadata(url, options)
