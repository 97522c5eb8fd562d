"""Per-scenario state threaded through the behave steps."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests
from playwright.sync_api import Page

from salescheck.api import SalesApiClient, parse_body
from salescheck.config import Settings
from salescheck.constants import Role
from salescheck.exceptions import PreconditionError
from salescheck.ui.evidence import capture_screenshot
from salescheck.ui.session import BrowserSession

logger = logging.getLogger(__name__)


@dataclass
class ScenarioState:
    """Mutable record owned by exactly one scenario.

    Lifecycle hooks attach a fresh instance to ``context.state`` before each
    scenario and release its sessions afterwards. Steps read values written
    by earlier steps of the same scenario; nothing survives into the next one.
    """

    settings: Settings
    browser: BrowserSession | None = None
    api: SalesApiClient | None = None

    admin_token: str | None = None
    user_token: str | None = None

    plant_id: str | None = None
    min_stock: int | None = None
    before_stock: int | float | None = None
    created_sale_id: str | None = None
    captured_sale_id: str | None = None

    last_status: int | None = None
    last_body_text: str | None = None

    last_sale_post_status: int | None = None
    last_sale_post_body: str | None = None

    last_dialog_message: str | None = None
    dialog_accepted: bool = False

    def require_page(self) -> Page:
        if self.browser is None or self.browser.page is None:
            raise PreconditionError(
                "UI page not initialized. Tag the scenario with @ui."
            )
        return self.browser.page

    def require_api(self) -> SalesApiClient:
        if self.api is None:
            raise PreconditionError(
                "API session not initialized. Tag the scenario with @api."
            )
        return self.api

    def token_for(self, role: Role) -> str:
        token = self.admin_token if role is Role.ADMIN else self.user_token
        if not token:
            raise PreconditionError(
                f"No token for role={role.value}. Authenticate first."
            )
        return token

    def any_token(self) -> str:
        """Return the admin token, else the user token."""
        token = self.admin_token or self.user_token
        if not token:
            raise PreconditionError("No token available. Authenticate first.")
        return token

    def set_token(self, role: Role, token: str) -> None:
        if role is Role.ADMIN:
            self.admin_token = token
        else:
            self.user_token = token

    def record(self, response: requests.Response) -> None:
        """Keep the status and raw body of the latest API response."""
        self.last_status = response.status_code
        self.last_body_text = response.text

    def last_json(self) -> Any:
        return parse_body(self.last_body_text)

    def screenshot(self, label: str) -> Path | None:
        return capture_screenshot(
            self.require_page(), self.settings.screenshot_dir, label
        )

    def release(self) -> None:
        """Close every session the scenario acquired.

        Each release is attempted even if an earlier one fails.
        """
        try:
            if self.browser is not None:
                self.browser.close()
        finally:
            self.browser = None
            if self.api is not None:
                try:
                    self.api.close()
                finally:
                    self.api = None
