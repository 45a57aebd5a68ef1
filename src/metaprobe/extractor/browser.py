"""
Shared headless browser for the render path.

One Playwright driver and one browser process are started lazily and reused
across calls; each call gets its own context and page, bounded by a
semaphore and always closed on exit.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional, Set

import structlog
from playwright.async_api import Browser, BrowserContext, Page, Playwright, Route, async_playwright
from playwright.async_api import Error as PlaywrightError

from ..config.config import RenderConfig, Viewport
from ..exceptions import RenderError
from ..observability.metrics import METRICS

logger = structlog.get_logger(__name__)

BLOCKED_RESOURCE_TYPES = frozenset({"image"})


async def _block_images(route: Route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class BrowserManager:
    """Lazily launched, shared Playwright browser with scoped pages."""

    def __init__(
        self,
        config: Optional[RenderConfig] = None,
        playwright_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        self.config = config or RenderConfig()
        self._playwright_factory = playwright_factory
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._contexts: Set[BrowserContext] = set()
        self._lock = asyncio.Lock()
        self._semaphore = asyncio.Semaphore(self.config.max_concurrent_pages)
        self._closed = False
        self.logger = logger.bind(component="BrowserManager")

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    @property
    def open_pages(self) -> int:
        return len(self._contexts)

    async def initialize(self) -> None:
        """Launch the browser now instead of on first use."""
        await self._ensure_browser()

    async def _ensure_browser(self) -> Browser:
        if self._closed:
            raise RenderError("Browser manager is closed")

        if self._browser is None:
            async with self._lock:
                if self._closed:
                    raise RenderError("Browser manager is closed")
                if self._browser is None:  # Double-check after acquiring lock
                    self._browser = await self._launch()
        return self._browser

    async def _launch(self) -> Browser:
        try:
            self._playwright = await self._playwright_factory().start()
            browser_type = getattr(self._playwright, self.config.browser)
            args = self.config.launch_args if self.config.browser == "chromium" else []
            browser = await browser_type.launch(headless=self.config.headless, args=args)
        except PlaywrightError as e:
            await self._stop_driver()
            self.logger.error("Browser launch failed", browser=self.config.browser, error=str(e))
            raise RenderError(f"Browser launch failed: {e}") from e

        self.logger.info("Browser launched", browser=self.config.browser, headless=self.config.headless)
        return browser

    @asynccontextmanager
    async def page(
        self,
        *,
        user_agent: Optional[str] = None,
        viewport: Optional[Viewport] = None,
        enable_images: bool = True,
    ) -> AsyncIterator[Page]:
        """
        Open a fresh context and page for one render.

        Args:
            user_agent: User-Agent header for the context
            viewport: Page size (defaults to 1280x720)
            enable_images: When False, image requests are aborted

        Yields:
            A Playwright Page, closed together with its context on exit

        Raises:
            RenderError: The manager is closed or the browser could not start
        """
        viewport = viewport or Viewport()
        async with self._semaphore:
            browser = await self._ensure_browser()
            try:
                context = await browser.new_context(
                    user_agent=user_agent,
                    viewport={"width": viewport.width, "height": viewport.height},
                )
            except PlaywrightError as e:
                raise RenderError(f"Could not open browser context: {e}") from e

            self._contexts.add(context)
            METRICS["render_pages_in_flight"].inc()
            try:
                page = await context.new_page()
                if not enable_images:
                    await page.route("**/*", _block_images)
                yield page
            finally:
                METRICS["render_pages_in_flight"].dec()
                self._contexts.discard(context)
                await self._close_context(context)

    async def close(self) -> None:
        """Close every open context, the browser and the driver."""
        self._closed = True
        async with self._lock:
            for context in list(self._contexts):
                await self._close_context(context)
            self._contexts.clear()

            if self._browser is not None:
                try:
                    await self._browser.close()
                except PlaywrightError as e:
                    self.logger.warning("Browser close failed", error=str(e))
                self._browser = None

            await self._stop_driver()
        self.logger.info("Browser manager closed")

    async def __aenter__(self) -> "BrowserManager":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _stop_driver(self) -> None:
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except PlaywrightError as e:
                self.logger.warning("Playwright driver stop failed", error=str(e))
            self._playwright = None

    async def _close_context(self, context: BrowserContext) -> None:
        try:
            await context.close()
        except PlaywrightError as e:
            # Already gone when the browser was closed under it
            self.logger.debug("Context close failed", error=str(e))
