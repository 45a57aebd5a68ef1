"""
Test configuration for metaprobe.

Provides configuration, HTTP and fake-browser fixtures so every component
can be exercised without network access or a real browser.
"""

from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from metaprobe.config.config import Config, FetchOptions, RenderConfig
from metaprobe.crawler.http_client import HttpClient
from metaprobe.extractor.browser import BrowserManager
from tests.helpers.fake_playwright import FakePlaywrightFactory, FakeSite

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Tests across the whole fetch pipeline")


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def screenshot_dir(tmp_path: Path) -> Path:
    return tmp_path / "screenshots"


@pytest.fixture
def render_config(screenshot_dir: Path) -> RenderConfig:
    return RenderConfig(screenshot_dir=str(screenshot_dir), max_concurrent_pages=2)


@pytest.fixture
def config(render_config: RenderConfig) -> Config:
    """Default configuration with screenshots kept under tmp_path."""
    return Config(render=render_config)


@pytest.fixture
def options() -> FetchOptions:
    return FetchOptions(timeout=2000, wait_for_timeout=500)


# ============================================================================
# Component Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def http_client(config: Config) -> AsyncGenerator[HttpClient, None]:
    client = HttpClient(config)
    await client.initialize()
    yield client
    await client.close()


@pytest.fixture
def fake_site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def playwright_factory(fake_site: FakeSite) -> FakePlaywrightFactory:
    return FakePlaywrightFactory(fake_site)


@pytest_asyncio.fixture
async def browser_manager(
    render_config: RenderConfig, playwright_factory: FakePlaywrightFactory
) -> AsyncGenerator[BrowserManager, None]:
    manager = BrowserManager(render_config, playwright_factory=playwright_factory)
    yield manager
    await manager.close()
