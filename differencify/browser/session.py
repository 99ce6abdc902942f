"""Browser session — the narrow capability surface the step runner drives."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, Protocol
from urllib.parse import urlparse

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from differencify.errors import CaptureFailed, DifferencifyError, NavigationFailed
from differencify.models.config import RunnerOptions

logger = logging.getLogger(__name__)


class SessionClient(Protocol):
    async def goto(self, url: str) -> None: ...

    async def screenshot_document(self) -> bytes: ...

    async def screenshot_element(self, selector: str) -> bytes: ...

    async def click(self, selector: str) -> None: ...

    async def wait(self, milliseconds: int) -> None: ...

    async def wait_for_selector(self, selector: str) -> None: ...

    async def close(self) -> None: ...


SessionFactory = Callable[[RunnerOptions], Awaitable[SessionClient]]


def normalize_url(url: str) -> str:
    """Prefix scheme-less URLs (``www.example.com``) with ``http://``."""
    if urlparse(url).scheme in ("http", "https", "file", "data", "about"):
        return url
    return f"http://{url}"


async def launch_browser(playwright: Playwright, headless: bool = True) -> Browser:
    """Launch Chromium with flags that keep rendering stable between runs."""
    return await playwright.chromium.launch(
        headless=headless,
        args=[
            "--disable-blink-features=AutomationControlled",
            "--font-render-hinting=none",
            "--hide-scrollbars",
        ],
    )


async def create_context(
    browser: Browser,
    viewport: dict,
    user_agent: Optional[str] = None,
) -> BrowserContext:
    """Create a browser context with a fixed locale and timezone.

    Pinning these keeps date/number formatting identical between the
    baseline run and later comparison runs.
    """
    context_kwargs: dict = {
        "viewport": viewport,
        "locale": "en-US",
        "timezone_id": "America/New_York",
        "device_scale_factor": 1,
    }
    if user_agent:
        context_kwargs["user_agent"] = user_agent
    return await browser.new_context(**context_kwargs)


class PlaywrightSession:
    """A single Chromium page owned by one run."""

    def __init__(
        self,
        playwright: Playwright,
        browser: Browser,
        context: BrowserContext,
        page: Page,
        timeout_ms: int,
    ):
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self.page = page
        self.timeout_ms = timeout_ms

    @classmethod
    async def open(cls, options: RunnerOptions) -> "PlaywrightSession":
        """Start Playwright and open a fresh page configured from ``options``."""
        playwright = await async_playwright().start()
        try:
            logger.debug("Launching Chromium (visible=%s, debug=%s)...",
                         options.visible, options.debug)
            browser = await launch_browser(playwright, headless=not options.visible)
            context = await create_context(browser, viewport=options.viewport.model_dump())
            page = await context.new_page()
        except PlaywrightError as e:
            await playwright.stop()
            raise DifferencifyError(f"Could not launch browser: {e}") from e

        page.set_default_timeout(options.timeout_ms)
        page.set_default_navigation_timeout(options.timeout_ms)
        if options.debug:
            page.on("console", lambda msg: logger.debug("[console:%s] %s", msg.type, msg.text))
        return cls(playwright, browser, context, page, options.timeout_ms)

    async def goto(self, url: str) -> None:
        target = normalize_url(url)
        logger.debug("Navigating to %s...", target)
        try:
            await self.page.goto(target, wait_until="load", timeout=self.timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationFailed(url, f"timed out after {self.timeout_ms}ms") from e
        except PlaywrightError as e:
            raise NavigationFailed(url, str(e)) from e

    async def screenshot_document(self) -> bytes:
        try:
            return await self.page.screenshot(full_page=True, type="png")
        except PlaywrightError as e:
            raise CaptureFailed(f"Full page screenshot failed: {e}") from e

    async def screenshot_element(self, selector: str) -> bytes:
        try:
            return await self.page.locator(selector).first.screenshot(type="png")
        except PlaywrightError as e:
            raise CaptureFailed(f"Screenshot of '{selector}' failed: {e}") from e

    async def click(self, selector: str) -> None:
        try:
            await self.page.click(selector)
        except PlaywrightError as e:
            raise CaptureFailed(f"Click on '{selector}' failed: {e}") from e

    async def wait(self, milliseconds: int) -> None:
        try:
            await self.page.wait_for_timeout(milliseconds)
        except PlaywrightError as e:
            raise CaptureFailed(f"Waiting {milliseconds}ms failed: {e}") from e

    async def wait_for_selector(self, selector: str) -> None:
        try:
            await self.page.wait_for_selector(selector, state="visible")
        except PlaywrightError as e:
            raise CaptureFailed(f"Waiting for '{selector}' failed: {e}") from e

    async def close(self) -> None:
        """Tear down page, context, browser and the Playwright driver."""
        try:
            await self._context.close()
            await self._browser.close()
        finally:
            await self._playwright.stop()
        logger.debug("Browser session closed")


async def open_playwright_session(options: RunnerOptions) -> SessionClient:
    return await PlaywrightSession.open(options)
