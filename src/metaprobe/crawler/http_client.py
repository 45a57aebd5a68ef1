"""
Async HTTP client used by the static extraction path.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Dict, Optional

import aiohttp
import structlog

from metaprobe.config.config import Config
from metaprobe.exceptions import FetchTimeoutError, NetworkError

logger = structlog.get_logger(__name__)

_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
_CHUNK_SIZE = 64 * 1024


@dataclass
class CrawlerResponse:
    """Response from a single GET with timing information."""

    status: int
    headers: Dict[str, str]
    body: bytes
    start_ts: float
    end_ts: float
    url: str
    final_url: str
    truncated: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def elapsed_ms(self) -> int:
        return max(0, int((self.end_ts - self.start_ts) * 1000))

    @property
    def content_type(self) -> str:
        return self._header("content-type").split(";")[0].strip().lower()

    @property
    def charset(self) -> Optional[str]:
        for part in self._header("content-type").split(";")[1:]:
            name, _, value = part.partition("=")
            if name.strip().lower() == "charset" and value.strip():
                return value.strip().strip("\"'")
        return None

    def text(self) -> str:
        try:
            return self.body.decode(self.charset or "utf-8", errors="replace")
        except LookupError:
            return self.body.decode("utf-8", errors="replace")

    def _header(self, name: str) -> str:
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return ""


class HttpClient:
    """aiohttp session wrapper with bounded reads and typed failures."""

    def __init__(self, config: Config, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self.http_config = config.http
        self.session = session
        self._owns_session = session is None
        self._is_initialized = session is not None

    async def initialize(self) -> None:
        """Initialize the HTTP client session."""
        if self.session is None:
            connector = aiohttp.TCPConnector(
                limit=0,
                ttl_dns_cache=30,
                enable_cleanup_closed=True,
            )
            self.session = aiohttp.ClientSession(
                connector=connector,
                headers={"Accept": _ACCEPT, "Accept-Language": self.http_config.accept_language},
            )
            self._owns_session = True
            logger.debug("HTTP client session initialized")
        self._is_initialized = True

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        if self.session is not None and self._owns_session:
            await self.session.close()
        self.session = None
        self._is_initialized = False
        logger.debug("HTTP client closed")

    async def __aenter__(self) -> "HttpClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def fetch(self, url: str, *, timeout: float, user_agent: Optional[str] = None) -> CrawlerResponse:
        """
        GET a URL and read at most ``http.max_content_length`` bytes.

        Args:
            url: URL to fetch
            timeout: Total budget in seconds covering connect, redirects and body
            user_agent: Overrides the session User-Agent

        Returns:
            CrawlerResponse for any HTTP status

        Raises:
            FetchTimeoutError: The budget was exceeded
            NetworkError: DNS, connection, TLS or redirect failure
        """
        if not self._is_initialized or self.session is None:
            raise RuntimeError("HTTP client not initialized. Call initialize() first.")

        headers = {"User-Agent": user_agent or self.config.fetch.user_agent}
        start_time = time.time()
        try:
            async with asyncio.timeout(timeout):
                async with self.session.get(
                    url,
                    headers=headers,
                    allow_redirects=True,
                    max_redirects=self.http_config.max_redirects,
                ) as response:
                    body, truncated = await self._read_limited(response)
                    result = CrawlerResponse(
                        status=response.status,
                        headers=dict(response.headers),
                        body=body,
                        start_ts=start_time,
                        end_ts=time.time(),
                        url=url,
                        final_url=str(response.url),
                        truncated=truncated,
                    )
        except TimeoutError as e:
            logger.info("Request timed out", url=url, timeout=timeout)
            raise FetchTimeoutError(f"Request timed out after {timeout:.1f}s", url=url) from e
        except aiohttp.TooManyRedirects as e:
            raise NetworkError(f"Too many redirects (limit {self.http_config.max_redirects})", url=url) from e
        except aiohttp.ClientError as e:
            logger.info("Request failed", url=url, error=str(e))
            raise NetworkError(f"{type(e).__name__}: {e}", url=url) from e

        logger.debug(
            "Fetched URL",
            url=url,
            final_url=result.final_url,
            status=result.status,
            bytes=len(result.body),
            truncated=truncated,
            elapsed_ms=result.elapsed_ms,
        )
        return result

    async def _read_limited(self, response: aiohttp.ClientResponse) -> tuple[bytes, bool]:
        limit = self.http_config.max_content_length
        chunks = []
        size = 0
        async for chunk in response.content.iter_chunked(_CHUNK_SIZE):
            chunks.append(chunk)
            size += len(chunk)
            if size > limit:
                return b"".join(chunks)[:limit], True
        return b"".join(chunks), False
