"""
Enhanced Scraper
================

Browser-rendered extraction for client-rendered sites. A fresh headless
Chromium is launched for every extraction and released when the extraction
ends, whether it succeeded or raised.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, List, Optional, Protocol

from playwright.async_api import (
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from ..config.settings import DEFAULT_USER_AGENT
from ..database.models import ScrapedArticle, ScrapeStrategy
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import BrowserError, ErrorCode
from .extraction import extract_articles
from .website_configs import WebsiteConfig

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


@dataclass
class BrowserHandle:
    """A launched browser and the driver that owns it."""
    browser: Any
    driver: Any = None


class BrowserLauncher(Protocol):
    async def acquire(self) -> BrowserHandle: ...

    async def release(self, handle: BrowserHandle) -> None: ...


class PlaywrightLauncher:
    """Launch headless Chromium through Playwright."""

    def __init__(self, headless: bool = True, args: Optional[List[str]] = None):
        self.headless = headless
        self.args = CHROMIUM_ARGS if args is None else args

    async def acquire(self) -> BrowserHandle:
        try:
            driver = await async_playwright().start()
        except PlaywrightError as e:
            raise BrowserError(f"Failed to start browser driver: {e}") from e

        try:
            browser = await driver.chromium.launch(headless=self.headless, args=self.args)
        except PlaywrightError as e:
            await driver.stop()
            raise BrowserError(f"Failed to launch browser: {e}") from e
        return BrowserHandle(browser=browser, driver=driver)

    async def release(self, handle: BrowserHandle) -> None:
        try:
            await handle.browser.close()
        finally:
            if handle.driver is not None:
                await handle.driver.stop()


@asynccontextmanager
async def browser_session(launcher: BrowserLauncher) -> AsyncIterator[BrowserHandle]:
    """Acquire a browser for the duration of the block and always release it."""
    handle = await launcher.acquire()
    try:
        yield handle
    finally:
        await launcher.release(handle)


class EnhancedScraper:
    """Scrape listing pages after rendering them in a headless browser."""

    strategy = ScrapeStrategy.ENHANCED

    def __init__(
        self,
        launcher: Optional[BrowserLauncher] = None,
        navigation_timeout: float = 60,
        settle_delay: float = 2.0,
        user_agent: str = DEFAULT_USER_AGENT,
        viewport: Optional[dict] = None,
    ):
        """Initialize enhanced scraper.

        Args:
            launcher: Browser launcher; headless Playwright Chromium by default
            navigation_timeout: Seconds allowed for navigation to reach network idle
            settle_delay: Seconds to wait after network idle for late rendering
            user_agent: User-Agent for the browser page
            viewport: Page viewport size
        """
        self.launcher = launcher or PlaywrightLauncher()
        self.navigation_timeout = navigation_timeout
        self.settle_delay = settle_delay
        self.user_agent = user_agent
        self.viewport = viewport or {"width": 1366, "height": 768}
        self.logger = get_logger_for_component("scraper.enhanced")

    async def extract(self, url: str, config: WebsiteConfig) -> List[ScrapedArticle]:
        async with browser_session(self.launcher) as handle:
            html = await self.render(handle, url)
            articles = extract_articles(html, config)

        self.logger.debug(f"Extracted {len(articles)} rendered articles from {url}")
        return articles

    async def render(self, handle: BrowserHandle, url: str) -> str:
        """Navigate to a URL, wait for the page to settle and return its HTML.

        Raises:
            BrowserError: On navigation timeout, browser failure or a non-2xx response
        """
        page = await handle.browser.new_page(user_agent=self.user_agent, viewport=self.viewport)
        try:
            response = await page.goto(
                url, wait_until="networkidle", timeout=self.navigation_timeout * 1000
            )
            if response is not None and not response.ok:
                raise BrowserError(f"HTTP {response.status}: {response.status_text}")

            await asyncio.sleep(self.settle_delay)
            return await page.content()

        except PlaywrightTimeoutError as e:
            raise BrowserError(
                f"Navigation timed out after {self.navigation_timeout}s",
                error_code=ErrorCode.SCRAPE_NAVIGATION_TIMEOUT,
            ) from e
        except PlaywrightError as e:
            raise BrowserError(f"Browser navigation failed: {e}") from e
        finally:
            await page.close()
