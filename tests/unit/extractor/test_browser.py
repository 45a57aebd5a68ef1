"""
Tests for BrowserManager lifecycle and page scoping.

A fake Playwright factory stands in for the driver, so launch counts,
context options and close ordering can be observed directly.
"""

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from metaprobe.config.config import RenderConfig, Viewport
from metaprobe.exceptions import RenderError
from metaprobe.extractor.browser import BrowserManager
from tests.helpers.fake_playwright import FakePlaywrightFactory, FakeRoute, FakeSite
from tests.helpers.metric_delta import sample_value


@pytest.mark.unit
class TestBrowserLifecycle:
    @pytest.mark.asyncio
    async def test_lazy_launch_once(self, browser_manager, playwright_factory):
        assert not browser_manager.is_running
        assert playwright_factory.starts == 0

        async with browser_manager.page():
            pass
        async with browser_manager.page():
            pass

        assert browser_manager.is_running
        assert playwright_factory.starts == 1
        assert len(playwright_factory.instances[0].chromium.launches) == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_use_launches_once(self, browser_manager, playwright_factory):
        async def render():
            async with browser_manager.page():
                await asyncio.sleep(0)

        await asyncio.gather(*(render() for _ in range(5)))
        assert playwright_factory.starts == 1

    @pytest.mark.asyncio
    async def test_initialize_launches_eagerly(self, browser_manager, playwright_factory):
        await browser_manager.initialize()
        assert browser_manager.is_running
        launch = playwright_factory.instances[0].chromium.launches[0]
        assert launch["headless"] is True
        assert "--no-sandbox" in launch["args"]

    @pytest.mark.asyncio
    async def test_non_chromium_gets_no_launch_args(self, fake_site):
        factory = FakePlaywrightFactory(fake_site)
        manager = BrowserManager(RenderConfig(browser="firefox"), playwright_factory=factory)
        try:
            await manager.initialize()
            assert factory.instances[0].firefox.launches == [{"headless": True, "args": []}]
        finally:
            await manager.close()

    @pytest.mark.asyncio
    async def test_launch_failure(self, fake_site):
        factory = FakePlaywrightFactory(fake_site, launch_error=PlaywrightError("Executable doesn't exist"))
        manager = BrowserManager(RenderConfig(), playwright_factory=factory)

        with pytest.raises(RenderError, match="Browser launch failed"):
            async with manager.page():
                pass

        assert not manager.is_running
        assert factory.instances[0].stopped
        await manager.close()

    @pytest.mark.asyncio
    async def test_close_stops_browser_and_driver(self, browser_manager, playwright_factory):
        await browser_manager.initialize()
        await browser_manager.close()

        assert playwright_factory.browser.closed
        assert playwright_factory.instances[0].stopped
        assert not browser_manager.is_running

    @pytest.mark.asyncio
    async def test_page_after_close_raises(self, browser_manager):
        await browser_manager.close()
        with pytest.raises(RenderError, match="closed"):
            async with browser_manager.page():
                pass

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, browser_manager):
        await browser_manager.initialize()
        await browser_manager.close()
        await browser_manager.close()

    @pytest.mark.asyncio
    async def test_async_context_manager(self, render_config, fake_site):
        factory = FakePlaywrightFactory(fake_site)
        async with BrowserManager(render_config, playwright_factory=factory) as manager:
            await manager.initialize()
        assert factory.instances[0].stopped


@pytest.mark.unit
class TestPageScope:
    @pytest.mark.asyncio
    async def test_context_options(self, browser_manager, playwright_factory):
        async with browser_manager.page(user_agent="Tester/1.0", viewport=Viewport(width=800, height=600)):
            context = playwright_factory.browser.contexts[0]
            assert context.options == {"user_agent": "Tester/1.0", "viewport": {"width": 800, "height": 600}}

    @pytest.mark.asyncio
    async def test_context_closed_on_exit(self, browser_manager, playwright_factory):
        async with browser_manager.page():
            assert browser_manager.open_pages == 1
        assert browser_manager.open_pages == 0
        assert playwright_factory.browser.contexts[0].closed

    @pytest.mark.asyncio
    async def test_context_closed_on_exception(self, browser_manager, playwright_factory):
        with pytest.raises(ValueError):
            async with browser_manager.page():
                raise ValueError("render blew up")
        assert browser_manager.open_pages == 0
        assert playwright_factory.browser.contexts[0].closed

    @pytest.mark.asyncio
    async def test_in_flight_gauge(self, browser_manager):
        before = sample_value("metaprobe_render_pages_in_flight")
        async with browser_manager.page():
            assert sample_value("metaprobe_render_pages_in_flight") == before + 1
        assert sample_value("metaprobe_render_pages_in_flight") == before

    @pytest.mark.asyncio
    async def test_semaphore_bounds_open_pages(self, browser_manager):
        release = asyncio.Event()
        peak = 0

        async def render():
            nonlocal peak
            async with browser_manager.page():
                peak = max(peak, browser_manager.open_pages)
                await release.wait()

        tasks = [asyncio.create_task(render()) for _ in range(5)]
        for _ in range(10):
            await asyncio.sleep(0)
        assert browser_manager.open_pages == 2

        release.set()
        await asyncio.gather(*tasks)
        assert peak == 2
        assert browser_manager.open_pages == 0

    @pytest.mark.asyncio
    async def test_images_blocked_when_disabled(self, browser_manager):
        async with browser_manager.page(enable_images=False) as page:
            ((pattern, handler),) = page.routes
            assert pattern == "**/*"

            image, document = FakeRoute("image"), FakeRoute("document")
            await handler(image)
            await handler(document)
            assert image.aborted and not image.continued
            assert document.continued and not document.aborted

    @pytest.mark.asyncio
    async def test_images_allowed_by_default(self, browser_manager):
        async with browser_manager.page() as page:
            assert page.routes == []

    @pytest.mark.asyncio
    async def test_close_while_page_open(self, render_config):
        factory = FakePlaywrightFactory(FakeSite())
        manager = BrowserManager(render_config, playwright_factory=factory)
        opened = asyncio.Event()
        release = asyncio.Event()

        async def render():
            async with manager.page():
                opened.set()
                await release.wait()

        task = asyncio.create_task(render())
        await opened.wait()
        await manager.close()

        assert factory.browser.contexts[0].closed
        release.set()
        # Closing the already closed context on exit is tolerated
        await task
        assert manager.open_pages == 0
