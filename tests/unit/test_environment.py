"""Tests for the behave lifecycle hooks."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from features import environment
from salescheck.config import Settings
from salescheck.logging import ScenarioFilter
from salescheck.world import ScenarioState


def make_scenario(tags: list[str], status: str = "passed") -> SimpleNamespace:
    return SimpleNamespace(
        name="Example", effective_tags=tags, status=SimpleNamespace(name=status)
    )


@pytest.fixture
def context(settings: Settings) -> SimpleNamespace:
    return SimpleNamespace(settings=settings, scenario_filter=ScenarioFilter())


class TestScenarioFailed:
    @pytest.mark.parametrize(
        "status,expected",
        [("passed", False), ("skipped", False), ("failed", True), ("error", True)],
    )
    def test_statuses(self, status: str, expected: bool) -> None:
        assert environment.scenario_failed(make_scenario([], status)) is expected


class TestBeforeAll:
    def test_loads_settings_and_logging(self, settings: Settings) -> None:
        context = SimpleNamespace()

        with patch.object(environment, "load_settings", return_value=settings), patch.object(
            environment, "configure_logging"
        ) as configure:
            environment.before_all(context)

        assert context.settings is settings
        assert context.scenario_filter is configure.return_value


class TestBeforeScenario:
    def test_untagged_scenario_gets_no_sessions(self, context: SimpleNamespace) -> None:
        with patch.object(environment, "BrowserSession") as browser_cls, patch.object(
            environment, "SalesApiClient"
        ) as api_cls:
            environment.before_scenario(context, make_scenario([]))

        assert isinstance(context.state, ScenarioState)
        assert context.state.browser is None
        assert context.state.api is None
        browser_cls.assert_not_called()
        api_cls.assert_not_called()

    def test_ui_tag_starts_browser(self, context: SimpleNamespace) -> None:
        with patch.object(environment, "BrowserSession") as browser_cls:
            environment.before_scenario(context, make_scenario(["ui"]))

        browser_cls.assert_called_once_with(context.settings)
        browser_cls.return_value.start.assert_called_once()
        assert context.state.browser is browser_cls.return_value
        assert context.state.api is None

    def test_api_tag_opens_client(self, context: SimpleNamespace) -> None:
        with patch.object(environment, "SalesApiClient") as api_cls:
            environment.before_scenario(context, make_scenario(["api"]))

        assert context.state.api is api_cls.return_value
        assert context.state.browser is None

    def test_state_is_fresh_per_scenario(self, context: SimpleNamespace) -> None:
        environment.before_scenario(context, make_scenario([]))
        first = context.state
        first.created_sale_id = "9"

        environment.before_scenario(context, make_scenario([]))

        assert context.state is not first
        assert context.state.created_sale_id is None

    def test_scenario_name_enters_log_filter(self, context: SimpleNamespace) -> None:
        environment.before_scenario(context, make_scenario([]))
        assert context.scenario_filter.current == "Example"


class TestAfterScenario:
    def test_failed_ui_scenario_is_screenshotted(
        self, context: SimpleNamespace, settings: Settings
    ) -> None:
        browser = MagicMock()
        context.state = ScenarioState(settings=settings, browser=browser)

        environment.after_scenario(context, make_scenario(["ui"], "failed"))

        path = browser.page.screenshot.call_args.kwargs["path"]
        assert path.endswith("-FAILED.png")
        browser.close.assert_called_once()
        assert context.state.browser is None

    def test_passed_scenario_is_not_screenshotted(
        self, context: SimpleNamespace, settings: Settings
    ) -> None:
        browser = MagicMock()
        context.state = ScenarioState(settings=settings, browser=browser)

        environment.after_scenario(context, make_scenario(["ui"]))

        browser.page.screenshot.assert_not_called()
        browser.close.assert_called_once()

    def test_release_runs_when_screenshot_fails(
        self, context: SimpleNamespace, settings: Settings
    ) -> None:
        browser = MagicMock()
        api = MagicMock()
        context.state = ScenarioState(settings=settings, browser=browser, api=api)

        with patch.object(ScenarioState, "screenshot", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                environment.after_scenario(context, make_scenario(["ui"], "failed"))

        browser.close.assert_called_once()
        api.close.assert_called_once()

    def test_release_error_is_logged(
        self, context: SimpleNamespace, settings: Settings
    ) -> None:
        api = MagicMock()
        api.close.side_effect = OSError("socket")
        context.state = ScenarioState(settings=settings, api=api)
        context.scenario_filter.enter("Example")

        environment.after_scenario(context, make_scenario(["api"]))

        assert context.state.api is None
        assert context.scenario_filter.current is None

    def test_missing_state_is_tolerated(self, context: SimpleNamespace) -> None:
        environment.after_scenario(context, make_scenario([]))
