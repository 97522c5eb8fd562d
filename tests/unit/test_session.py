"""Tests for the scenario browser session."""

from unittest.mock import MagicMock

import pytest
from playwright.sync_api import Error as PlaywrightError

from salescheck.config import Settings
from salescheck.ui.session import BrowserSession


@pytest.fixture
def playwright() -> MagicMock:
    return MagicMock()


@pytest.fixture
def factory(playwright: MagicMock) -> MagicMock:
    factory = MagicMock()
    factory.return_value.start.return_value = playwright
    return factory


class TestBrowserSession:
    def test_start_launches_chromium(
        self, settings: Settings, factory: MagicMock, playwright: MagicMock
    ) -> None:
        session = BrowserSession(settings, playwright_factory=factory)

        page = session.start()

        playwright.chromium.launch.assert_called_once_with(headless=True)
        browser = playwright.chromium.launch.return_value
        browser.new_context.assert_called_once_with()
        assert page is browser.new_context.return_value.new_page.return_value
        assert session.page is page

    def test_close_releases_in_reverse_order(
        self, settings: Settings, factory: MagicMock, playwright: MagicMock
    ) -> None:
        order = MagicMock()
        session = BrowserSession(settings, playwright_factory=factory)
        session.start()
        order.attach_mock(session.context.close, "context_close")
        order.attach_mock(session.browser.close, "browser_close")
        order.attach_mock(playwright.stop, "playwright_stop")

        session.close()

        assert [c[0] for c in order.mock_calls] == [
            "context_close",
            "browser_close",
            "playwright_stop",
        ]
        assert session.page is None

    def test_close_continues_after_error(
        self, settings: Settings, factory: MagicMock, playwright: MagicMock
    ) -> None:
        session = BrowserSession(settings, playwright_factory=factory)
        session.start()
        browser = session.browser
        session.context.close.side_effect = PlaywrightError("already closed")

        session.close()

        browser.close.assert_called_once()
        playwright.stop.assert_called_once()

    def test_failed_launch_releases_driver(
        self, settings: Settings, factory: MagicMock, playwright: MagicMock
    ) -> None:
        playwright.chromium.launch.side_effect = PlaywrightError("no browser")
        session = BrowserSession(settings, playwright_factory=factory)

        with pytest.raises(PlaywrightError):
            session.start()

        playwright.stop.assert_called_once()
        assert session.page is None

    def test_close_before_start_is_noop(self, settings: Settings) -> None:
        BrowserSession(settings, playwright_factory=MagicMock()).close()
