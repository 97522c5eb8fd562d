"""Browser session owned by a single UI scenario."""

import logging
from collections.abc import Callable

from playwright.sync_api import Browser, BrowserContext, Page, Playwright
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from salescheck.config import Settings

logger = logging.getLogger(__name__)


class BrowserSession:
    """Playwright driver, browser, browser context and page for one scenario.

    Parameters
    ----------
    settings : Settings
        Resolved configuration (headless flag is read from it)
    playwright_factory : Callable
        Factory returning a Playwright context manager, ``sync_playwright`` by
        default; injectable for tests

    Attributes
    ----------
    page : Page | None
        Active page, None until :meth:`start` succeeds
    """

    def __init__(
        self,
        settings: Settings,
        playwright_factory: Callable = sync_playwright,
    ) -> None:
        self.settings = settings
        self._playwright_factory = playwright_factory
        self._playwright: Playwright | None = None
        self.browser: Browser | None = None
        self.context: BrowserContext | None = None
        self.page: Page | None = None

    def start(self) -> Page:
        """Launch Chromium and open a fresh page.

        Anything acquired before a launch failure is released before the
        error propagates.
        """
        try:
            self._playwright = self._playwright_factory().start()
            self.browser = self._playwright.chromium.launch(
                headless=self.settings.headless
            )
            self.context = self.browser.new_context()
            self.page = self.context.new_page()
        except Exception:
            self.close()
            raise

        logger.debug("Browser session started (headless=%s)", self.settings.headless)
        return self.page

    def close(self) -> None:
        """Release page, context, browser and driver in reverse order."""
        steps = [
            ("browser context", self.context, "close"),
            ("browser", self.browser, "close"),
            ("playwright", self._playwright, "stop"),
        ]

        for name, resource, method in steps:
            if resource is None:
                continue
            try:
                getattr(resource, method)()
            except PlaywrightError as e:
                logger.warning("Failed to close %s: %s", name, e)

        self.page = None
        self.context = None
        self.browser = None
        self._playwright = None
