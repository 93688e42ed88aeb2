from __future__ import annotations

import logging
from typing import Any, Protocol

from job_scraper.config import Settings

logger = logging.getLogger(__name__)

_BROWSER_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-infobars",
    "--window-position=0,0",
    "--ignore-certificate-errors",
    "--ignore-certificate-errors-spki-list",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--hide-scrollbars",
    "--disable-notifications",
    "--disable-extensions",
    "--force-device-scale-factor=1",
)
_VIEWPORT = {"width": 1920, "height": 1080}
_STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
window.chrome = { runtime: {} };
Object.defineProperty(window.screen, 'width', { get: () => 1920 });
Object.defineProperty(window.screen, 'height', { get: () => 1080 });
"""


class Page(Protocol):
    """Rendering engine surface used by the scraper. Timeouts are in seconds."""

    def navigate(self, url: str, timeout: float) -> None: ...

    def wait_for_selector(self, selector: str, timeout: float) -> list[Any]: ...

    def query_all(self, selector: str) -> list[Any]: ...

    def evaluate(self, script: str, arg: Any = None) -> Any: ...

    def click(self, element: Any, timeout: float | None = None) -> None: ...


class PageSession(Protocol):
    page: Page

    def close(self) -> None: ...


def _ms(seconds: float) -> float:
    return seconds * 1000


class PlaywrightPage:
    """``Page`` backed by a ``playwright.sync_api.Page``."""

    def __init__(self, page: Any) -> None:
        self._page = page

    def navigate(self, url: str, timeout: float) -> None:
        self._page.goto(url, wait_until="networkidle", timeout=_ms(timeout))

    def wait_for_selector(self, selector: str, timeout: float) -> list[Any]:
        self._page.wait_for_selector(selector, timeout=_ms(timeout))
        return self._page.query_selector_all(selector)

    def query_all(self, selector: str) -> list[Any]:
        return self._page.query_selector_all(selector)

    def evaluate(self, script: str, arg: Any = None) -> Any:
        if arg is None:
            return self._page.evaluate(script)
        return self._page.evaluate(script, arg)

    def click(self, element: Any, timeout: float | None = None) -> None:
        if timeout is None:
            element.click()
        else:
            element.click(timeout=_ms(timeout))


class PlaywrightSession:
    """One headless Chromium browser and page, shared by a whole run."""

    def __init__(self, settings: Settings) -> None:
        from playwright.sync_api import sync_playwright

        self._playwright = sync_playwright().start()
        self._browser = None
        try:
            self._browser = self._playwright.chromium.launch(
                headless=settings.headless,
                args=list(_BROWSER_ARGS),
            )
            context = self._browser.new_context(
                user_agent=settings.user_agent,
                viewport=_VIEWPORT,
                ignore_https_errors=True,
            )
            context.add_init_script(_STEALTH_SCRIPT)
            self.page: Page = PlaywrightPage(context.new_page())
        except Exception:
            self.close()
            raise
        logger.info("browser session started (headless=%s)", settings.headless)

    def close(self) -> None:
        try:
            if self._browser is not None:
                self._browser.close()
                self._browser = None
        finally:
            if self._playwright is not None:
                self._playwright.stop()
                self._playwright = None
        logger.info("browser session closed")
