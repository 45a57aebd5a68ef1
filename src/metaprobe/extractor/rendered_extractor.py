"""
Rendered extraction through a headless browser.

Loads the page in a scoped Playwright page, lets client-side code run, then
parses the live DOM with the same parser and merger as the static path.
Adds navigation links, their screenshots and a landing-page capture.
"""

from __future__ import annotations

import asyncio
import hashlib
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..config.config import ExtractionSettings, FetchOptions, RenderConfig, Viewport
from ..exceptions import FetchTimeoutError, MetadataError, RenderError
from ..metadata.image_ranker import screenshot_image
from ..metadata.merger import SourceMerger
from ..metadata.structured_data_parser import StructuredDataParser
from ..observability.metrics import increment, observe
from ..protocols import (
    ExtractionIssue,
    ExtractionResult,
    FetchMethod,
    ImageSource,
    MetadataRecord,
    NavbarLink,
    Position,
    Screenshot,
    SourceBundle,
)
from .browser import BrowserManager
from .confidence_scorer import ConfidenceScorer

logger = structlog.get_logger(__name__)

NAVBAR_SELECTORS = (
    "nav a",
    ".navbar a",
    ".navigation a",
    ".nav a",
    "header nav a",
    ".header nav a",
    ".menu a",
    ".main-menu a",
    ".primary-menu a",
)
MAX_LINK_TEXT = 50
SCREENSHOT_PADDING = 10

# Visible, deduplicated anchors; positions are box centres in viewport pixels
_NAVBAR_SCRIPT = """
([selectors, maxLinks, maxText]) => {
  const seen = new Set();
  const links = [];
  for (const selector of selectors) {
    for (const el of document.querySelectorAll(selector)) {
      if (links.length >= maxLinks) return links;
      const href = el.getAttribute('href');
      const text = (el.textContent || '').trim();
      if (!href || !text) continue;
      let url;
      try {
        url = new URL(href, window.location.href).href;
      } catch (e) {
        continue;
      }
      if (seen.has(url)) continue;
      const rect = el.getBoundingClientRect();
      if (rect.width <= 0 || rect.height <= 0) continue;
      seen.add(url);
      links.push({
        text: text.substring(0, maxText),
        url: url,
        x: Math.round(rect.left + rect.width / 2),
        y: Math.round(rect.top + rect.height / 2),
        width: Math.round(rect.width),
        height: Math.round(rect.height),
      });
    }
  }
  return links;
}
"""

_STAGE = "rendered"


def url_hash(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:8]


def sanitize_filename(text: str) -> str:
    name = re.sub(r"[^a-zA-Z0-9\-_]", "-", text)
    name = re.sub(r"-+", "-", name)
    return name[:30].lower() or "link"


def screenshot_clip(position: Position, viewport: Viewport) -> Dict[str, float]:
    """Padded capture box around a link, kept inside the viewport size."""
    return {
        "x": max(0.0, position.x - position.width / 2 - SCREENSHOT_PADDING),
        "y": max(0.0, position.y - position.height / 2 - SCREENSHOT_PADDING),
        "width": min(float(viewport.width), position.width + 2 * SCREENSHOT_PADDING),
        "height": min(float(viewport.height), position.height + 2 * SCREENSHOT_PADDING),
    }


@dataclass
class _RenderState:
    """What a render produced before it finished or failed."""

    bundle: Optional[SourceBundle] = None
    navbar_links: List[NavbarLink] = field(default_factory=list)
    screenshots: List[Screenshot] = field(default_factory=list)
    extra_images: List[ImageSource] = field(default_factory=list)


class RenderedExtractor:
    """
    Metadata extraction from the browser-rendered DOM.

    The whole render runs under one deadline of ``timeout + wait_for_timeout``.
    A timeout, navigation failure, browser crash or non-2xx response is
    recorded on the record, and whatever was captured before the failure is
    still returned.
    """

    method = FetchMethod.RENDERED

    def __init__(
        self,
        browser: BrowserManager,
        parser: Optional[StructuredDataParser] = None,
        merger: Optional[SourceMerger] = None,
        scorer: Optional[ConfidenceScorer] = None,
        settings: Optional[ExtractionSettings] = None,
        render_config: Optional[RenderConfig] = None,
    ) -> None:
        self.browser = browser
        self.settings = settings or ExtractionSettings()
        self.render_config = render_config or browser.config
        self.parser = parser or StructuredDataParser(self.settings)
        self.merger = merger or SourceMerger()
        self.scorer = scorer or ConfidenceScorer(self.settings)
        self.logger = logger.bind(component="RenderedExtractor")

    async def extract(self, url: str, options: FetchOptions) -> ExtractionResult:
        start = time.perf_counter()
        state = _RenderState()
        errors: List[ExtractionIssue] = []
        budget = options.timeout_seconds + options.wait_for_timeout_seconds

        try:
            async with asyncio.timeout(budget):
                await self._render(url, options, state)
        except TimeoutError:
            error = FetchTimeoutError(f"Render timed out after {budget:.1f}s", url=url)
            errors.append(ExtractionIssue.from_exception(error, _STAGE))
        except PlaywrightTimeoutError as e:
            errors.append(ExtractionIssue.from_exception(FetchTimeoutError(_first_line(e), url=url), _STAGE))
        except MetadataError as e:
            errors.append(ExtractionIssue.from_exception(e, _STAGE))
        except PlaywrightError as e:
            errors.append(ExtractionIssue.from_exception(RenderError(_first_line(e), url=url), _STAGE))

        elapsed = time.perf_counter() - start
        result = self._result(url, state, tuple(errors), int(elapsed * 1000))

        outcome = "failure" if result.failed else ("partial" if errors else "success")
        increment("fetch_total", labels={"method": self.method.value, "outcome": outcome})
        observe("fetch_latency_seconds", elapsed, labels={"method": self.method.value})
        self.logger.info(
            "Rendered extraction finished",
            url=url,
            outcome=outcome,
            confidence=result.confidence,
            navbar_links=len(state.navbar_links),
            screenshots=len(state.screenshots),
            load_time_ms=result.record.load_time_ms,
        )
        return result

    async def _render(self, url: str, options: FetchOptions, state: _RenderState) -> None:
        async with self.browser.page(
            user_agent=options.user_agent,
            viewport=options.viewport,
            enable_images=options.enable_images,
        ) as page:
            response = await page.goto(url, wait_until="domcontentloaded", timeout=options.timeout)
            if response is not None and not response.ok:
                raise RenderError(f"HTTP {response.status}", url=url)

            # A zero timeout means "wait forever" to Playwright
            if options.wait_for_timeout > 0:
                try:
                    await page.wait_for_load_state("networkidle", timeout=options.wait_for_timeout)
                except PlaywrightTimeoutError:
                    self.logger.debug("Network idle not reached", url=url, wait_ms=options.wait_for_timeout)

            html = await page.content()
            state.bundle = await asyncio.to_thread(
                self.parser.parse,
                html,
                page.url or url,
                scan_images=options.enable_image_analysis,
            )

            state.navbar_links = await self._navbar_links(page)
            if self.render_config.enable_screenshots:
                state.screenshots = await self._navbar_screenshots(page, url, state.navbar_links, options.viewport)
                landing = await self._landing_screenshot(page, url, options.viewport)
                if landing is not None:
                    state.extra_images.append(landing)

    async def _navbar_links(self, page: Page) -> List[NavbarLink]:
        limit = self.render_config.max_navbar_links
        if limit <= 0:
            return []
        raw: List[Dict[str, Any]] = await page.evaluate(
            _NAVBAR_SCRIPT, [list(NAVBAR_SELECTORS), limit, MAX_LINK_TEXT]
        )
        links = []
        for item in raw or []:
            position = Position(
                x=float(item["x"]), y=float(item["y"]), width=float(item["width"]), height=float(item["height"])
            )
            links.append(NavbarLink(text=str(item["text"])[:MAX_LINK_TEXT], url=str(item["url"]), position=position))
        return links[:limit]

    def _screenshot_dir(self) -> Path:
        directory = Path(self.render_config.screenshot_dir)
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    async def _navbar_screenshots(
        self, page: Page, url: str, links: List[NavbarLink], viewport: Viewport
    ) -> List[Screenshot]:
        if not links:
            return []
        directory = self._screenshot_dir()
        prefix = url_hash(url)
        screenshots = []

        for index, link in enumerate(links, start=1):
            if link.position is None:
                continue
            filename = f"navbar-{prefix}-{index}-{sanitize_filename(link.text)}.png"
            path = directory / filename
            try:
                await page.screenshot(path=str(path), clip=screenshot_clip(link.position, viewport), type="png")
            except PlaywrightTimeoutError:
                raise
            except PlaywrightError as e:
                self.logger.warning("Navbar screenshot failed", url=url, index=index, error=_first_line(e))
                continue
            screenshots.append(
                Screenshot(
                    link_text=link.text,
                    link_url=link.url,
                    path=str(path),
                    url=f"{self.render_config.screenshot_url_prefix}/{filename}",
                    index=index,
                    position=link.position,
                )
            )
        return screenshots

    async def _landing_screenshot(self, page: Page, url: str, viewport: Viewport) -> Optional[ImageSource]:
        filename = f"landing-{url_hash(url)}.png"
        path = self._screenshot_dir() / filename
        try:
            await page.screenshot(path=str(path), type="png")
        except PlaywrightTimeoutError:
            raise
        except PlaywrightError as e:
            self.logger.warning("Landing screenshot failed", url=url, error=_first_line(e))
            return None
        return screenshot_image(
            f"{self.render_config.screenshot_url_prefix}/{filename}", viewport.width, viewport.height
        )

    def _result(
        self,
        url: str,
        state: _RenderState,
        errors: Tuple[ExtractionIssue, ...],
        load_time_ms: int,
    ) -> ExtractionResult:
        if state.bundle is None:
            record = MetadataRecord(
                url=url,
                fetch_method=self.method,
                has_javascript=True,
                load_time_ms=load_time_ms,
                errors=errors,
            )
            return ExtractionResult(record=record, confidence=0.0, failed=bool(errors))

        record = self.merger.merge(
            state.bundle,
            url=url,
            fetch_method=self.method,
            has_javascript=True,
            load_time_ms=load_time_ms,
            errors=errors,
            navbar_links=state.navbar_links,
            screenshots=state.screenshots,
            extra_images=state.extra_images,
        )
        return ExtractionResult(record=record, confidence=self.scorer.score(record, state.bundle.hints))


def _first_line(error: BaseException) -> str:
    """Playwright messages carry a multi-line call log after the first line."""
    text = str(error).strip()
    return text.splitlines()[0] if text else type(error).__name__
