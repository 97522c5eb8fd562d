"""Behave environment configuration for the sales suite."""

import logging
import os

from behave.model import Scenario
from behave.runner import Context

from salescheck.api import SalesApiClient
from salescheck.config import load_settings
from salescheck.logging import configure_logging
from salescheck.ui import BrowserSession
from salescheck.world import ScenarioState

logger = logging.getLogger(__name__)

UI_TAG = "ui"
API_TAG = "api"
FAILED_STATUSES = {"failed", "error"}


def scenario_failed(scenario: Scenario) -> bool:
    status = getattr(scenario, "status", None)
    return getattr(status, "name", str(status)) in FAILED_STATUSES


def before_all(context: Context) -> None:
    """Setup executed before all tests."""
    level_name = os.environ.get("SALESCHECK_LOG_LEVEL", "INFO").upper()
    context.scenario_filter = configure_logging(getattr(logging, level_name, logging.INFO))
    context.settings = load_settings()
    logger.info(
        "Testing against %s (headless=%s)",
        context.settings.base_url,
        context.settings.headless,
    )


def before_scenario(context: Context, scenario: Scenario) -> None:
    """Create a fresh scenario state and acquire the sessions its tags ask for."""
    scenario_filter = getattr(context, "scenario_filter", None)
    if scenario_filter is not None:
        scenario_filter.enter(scenario.name)

    state = ScenarioState(settings=context.settings)
    context.state = state

    tags = set(scenario.effective_tags)

    if UI_TAG in tags:
        session = BrowserSession(context.settings)
        session.start()
        state.browser = session
        logger.debug("Browser session acquired")

    if API_TAG in tags:
        state.api = SalesApiClient(context.settings)
        logger.debug("API session acquired")


def after_scenario(context: Context, scenario: Scenario) -> None:
    """Screenshot failed UI scenarios, then release every session."""
    state: ScenarioState | None = getattr(context, "state", None)
    failed = scenario_failed(scenario)

    try:
        if state is not None and failed and state.browser is not None:
            if state.browser.page is not None:
                state.screenshot("FAILED")
    finally:
        if state is not None:
            try:
                state.release()
            except Exception as e:
                logger.error("Failed to release scenario sessions: %s", e, exc_info=True)

        logger.info("Scenario '%s' %s", scenario.name, "FAILED" if failed else "passed")

        scenario_filter = getattr(context, "scenario_filter", None)
        if scenario_filter is not None:
            scenario_filter.leave()
