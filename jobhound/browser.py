"""
Headless browsing session.

One Chromium instance is owned by the pipeline for the whole run. Every
fetch opens its own page and closes it on every exit path.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup
from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .errors import ExtractionUnavailable
from .logger import get_logger
from .retry import RetryError, async_backoff, is_transient_error, should_retry_http_status

logger = get_logger()

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class NavigationError(Exception):
    """A page could not be loaded."""


class TransientNavigationError(NavigationError):
    """A page load failed in a way worth retrying."""


@dataclass
class PageSnapshot:
    """Rendered DOM of one page plus whether the expected content appeared."""

    url: str
    html: str
    content_found: bool = True

    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html, "html.parser")


def _on_retry(attempt, exc, delay):
    logger.warning("Navigation failed, retrying", attempt=attempt, error=str(exc), delay=delay)


@async_backoff(max_retries=2, base_delay=1.0, exceptions=(TransientNavigationError,), on_retry=_on_retry)
async def _goto(page: Page, url: str, timeout_ms: int, wait_until: str):
    try:
        response = await page.goto(url, wait_until=wait_until, timeout=timeout_ms)
    except PlaywrightTimeoutError as e:
        raise TransientNavigationError(f"Timeout loading {url}") from e
    except PlaywrightError as e:
        if is_transient_error(e):
            raise TransientNavigationError(str(e)) from e
        raise NavigationError(str(e)) from e

    if response is not None and response.status >= 400:
        message = f"HTTP {response.status} for {url}"
        if should_retry_http_status(response.status):
            raise TransientNavigationError(message)
        raise NavigationError(message)
    return response


class BrowserSession:
    """
    Async context manager owning the Playwright browser for one run.

    Usage:
        async with BrowserSession() as session:
            snapshot = await session.fetch(url, wait_for=".results")
    """

    def __init__(
        self,
        headless: bool = True,
        timeout_ms: int = 30000,
        wait_timeout_ms: int = 10000,
        wait_until: str = "networkidle",
    ):
        self.headless = headless
        self.timeout_ms = timeout_ms
        self.wait_timeout_ms = wait_timeout_ms
        self.wait_until = wait_until
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def start(self):
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox", "--disable-setuid-sandbox"],
            )
            self._context = await self._browser.new_context(
                user_agent=USER_AGENT,
                extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
            )
        except PlaywrightError as e:
            await self.close()
            raise ExtractionUnavailable("browser", f"Failed to launch browser: {e}") from e
        logger.info("Browser initialized", headless=self.headless)

    async def close(self):
        context, self._context = self._context, None
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        try:
            if context is not None:
                await context.close()
        finally:
            try:
                if browser is not None:
                    await browser.close()
                    logger.info("Browser closed")
            finally:
                if playwright is not None:
                    await playwright.stop()

    @asynccontextmanager
    async def page(self):
        if self._context is None:
            raise RuntimeError("BrowserSession is not started")
        page = await self._context.new_page()
        try:
            yield page
        finally:
            await page.close()

    async def fetch(self, url: str, wait_for: Optional[str] = None) -> PageSnapshot:
        """
        Load ``url`` and return its rendered DOM.

        A missing ``wait_for`` element after the wait timeout is not an
        error: the snapshot is returned with ``content_found=False``.
        Raises NavigationError if the page could not be loaded or the
        browser failed while reading it.
        """
        try:
            async with self.page() as page:
                try:
                    await _goto(page, url, self.timeout_ms, self.wait_until)
                except RetryError as e:
                    raise NavigationError(str(e)) from e

                found = True
                if wait_for:
                    try:
                        await page.wait_for_selector(wait_for, timeout=self.wait_timeout_ms)
                    except PlaywrightTimeoutError:
                        found = False
                        logger.warning("Expected content not found", url=url, selector=wait_for)

                html = await page.content()
                return PageSnapshot(url=page.url, html=html, content_found=found)
        except PlaywrightError as e:
            raise NavigationError(f"Browser error on {url}: {e}") from e
