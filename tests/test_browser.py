"""
Tests for the browsing session using stand-in Playwright objects.
"""

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from jobhound.browser import BrowserSession, NavigationError, PageSnapshot, _goto


class FakeResponse:
    def __init__(self, status):
        self.status = status


class FakePage:
    def __init__(self, status=200, html="<html><body><ul class='results'></ul></body></html>",
                 selector_present=True, content_error=None):
        self.status = status
        self.html = html
        self.selector_present = selector_present
        self.content_error = content_error
        self.url = "about:blank"
        self.closed = False

    async def goto(self, url, wait_until=None, timeout=None):
        self.url = url
        return FakeResponse(self.status)

    async def wait_for_selector(self, selector, timeout=None):
        if not self.selector_present:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def content(self):
        if self.content_error is not None:
            raise self.content_error
        return self.html

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, page, page_error=None, close_error=None):
        self._page = page
        self.page_error = page_error
        self.close_error = close_error
        self.closed = False

    async def new_page(self):
        if self.page_error is not None:
            raise self.page_error
        return self._page

    async def close(self):
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class FakeBrowser:
    def __init__(self, close_error=None):
        self.close_error = close_error
        self.closed = False

    async def close(self):
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class FakePlaywright:
    def __init__(self):
        self.stopped = False

    async def stop(self):
        self.stopped = True


def started_session(page, **context_kwargs):
    session = BrowserSession(timeout_ms=1000, wait_timeout_ms=100)
    session._context = FakeContext(page, **context_kwargs)
    return session


class TestGoto:
    """Navigation error mapping."""

    @pytest.mark.asyncio
    async def test_ok_response(self):
        response = await _goto(FakePage(status=200), "https://example.com", 1000, "load")
        assert response.status == 200

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        with pytest.raises(NavigationError, match="HTTP 404"):
            await _goto(FakePage(status=404), "https://example.com", 1000, "load")


class TestFetch:
    """Page lifecycle and snapshot contents."""

    @pytest.mark.asyncio
    async def test_snapshot(self):
        page = FakePage()
        session = started_session(page)

        snapshot = await session.fetch("https://example.com/jobs", wait_for=".results")

        assert snapshot.url == "https://example.com/jobs"
        assert snapshot.content_found is True
        assert snapshot.soup().select_one("ul.results") is not None
        assert page.closed

    @pytest.mark.asyncio
    async def test_missing_content_is_not_an_error(self):
        page = FakePage(selector_present=False)
        session = started_session(page)

        snapshot = await session.fetch("https://example.com/jobs", wait_for=".cards")

        assert snapshot.content_found is False
        assert page.closed

    @pytest.mark.asyncio
    async def test_page_closed_on_failure(self):
        page = FakePage(status=403)
        session = started_session(page)

        with pytest.raises(NavigationError):
            await session.fetch("https://example.com/jobs")

        assert page.closed

    @pytest.mark.asyncio
    async def test_fetch_requires_start(self):
        with pytest.raises(RuntimeError):
            await BrowserSession().fetch("https://example.com")

    @pytest.mark.asyncio
    async def test_browser_error_reading_page(self):
        page = FakePage(content_error=PlaywrightError("Target page, context or browser has been closed"))
        session = started_session(page)

        with pytest.raises(NavigationError, match="has been closed"):
            await session.fetch("https://example.com/jobs")

        assert page.closed

    @pytest.mark.asyncio
    async def test_browser_error_opening_page(self):
        session = started_session(FakePage(), page_error=PlaywrightError("Browser has been closed"))

        with pytest.raises(NavigationError):
            await session.fetch("https://example.com/jobs")


class TestClose:
    """Shutdown releases every layer."""

    @pytest.mark.asyncio
    async def test_close_all(self):
        session = started_session(FakePage())
        context = session._context
        session._browser = browser = FakeBrowser()
        session._playwright = playwright = FakePlaywright()

        await session.close()

        assert context.closed and browser.closed and playwright.stopped
        assert session._context is None
        assert session._browser is None
        assert session._playwright is None

    @pytest.mark.asyncio
    async def test_context_close_failure_still_stops_browser(self):
        session = started_session(FakePage(), close_error=PlaywrightError("Connection closed"))
        session._browser = browser = FakeBrowser()
        session._playwright = playwright = FakePlaywright()

        with pytest.raises(PlaywrightError):
            await session.close()

        assert browser.closed
        assert playwright.stopped
        assert session._browser is None

    @pytest.mark.asyncio
    async def test_browser_close_failure_still_stops_playwright(self):
        session = BrowserSession()
        session._browser = FakeBrowser(close_error=PlaywrightError("Connection closed"))
        session._playwright = playwright = FakePlaywright()

        with pytest.raises(PlaywrightError):
            await session.close()

        assert playwright.stopped

    @pytest.mark.asyncio
    async def test_close_twice(self):
        session = BrowserSession()
        session._playwright = playwright = FakePlaywright()
        await session.close()
        await session.close()
        assert playwright.stopped


class TestPageSnapshot:
    def test_soup_parses_html(self):
        snapshot = PageSnapshot(url="https://example.com", html="<h1>Hello</h1>")
        assert snapshot.soup().h1.get_text() == "Hello"
        assert snapshot.content_found is True
