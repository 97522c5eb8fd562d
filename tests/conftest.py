"""Pytest configuration and fixtures for salescheck tests."""

import json
import logging
from collections.abc import Callable, Generator
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest

from salescheck.api import SalesApiClient
from salescheck.config import ENV_OVERRIDES, Settings
from salescheck.world import ScenarioState


@pytest.fixture(autouse=True)
def clean_override_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep developer environment overrides out of unit tests."""
    for env_var in [*ENV_OVERRIDES, "SALESCHECK_CONFIG"]:
        monkeypatch.delenv(env_var, raising=False)
    yield


@pytest.fixture
def restore_root_logger() -> Generator[logging.Logger, None, None]:
    """Put the root logger handlers and level back after the test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        base_url="http://shop.test",
        api_login="/api/auth/login",
        api_get_plant="/api/plants/{id}",
        api_sell="/api/sales",
        api_sale_by_id="/api/sales/{id}",
        api_sales_all="/api/sales",
        api_sales_page="/api/sales/page",
        headless=True,
        screenshot_dir=tmp_path / "screenshots",
        request_timeout=5.0,
    )


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Factory for fake ``requests.Response`` objects.

    Returns
    -------
    callable
        Function taking a status code and a JSON-serialisable payload (or a raw
        string body) and returning a response mock
    """

    def _make(status: int = 200, payload: Any = None, text: str | None = None) -> MagicMock:
        body = text if text is not None else ("" if payload is None else json.dumps(payload))
        response = MagicMock()
        response.status_code = status
        response.text = body
        response.json.side_effect = lambda: json.loads(body)
        return response

    return _make


@pytest.fixture
def api_client() -> MagicMock:
    return MagicMock(spec=SalesApiClient)


@pytest.fixture
def state(settings: Settings, api_client: MagicMock) -> ScenarioState:
    return ScenarioState(settings=settings, api=api_client)


@pytest.fixture
def behave_context(state: ScenarioState) -> SimpleNamespace:
    """Stand-in for the behave context handed to step functions."""
    return SimpleNamespace(state=state)
