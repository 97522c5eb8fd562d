"""Evidence gathering for UI steps: probes, screenshots, dialogs, responses."""

import logging
import re
import time
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from playwright.sync_api import Dialog, Page, Response
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from salescheck.constants import UI_LOGIN_PATH
from salescheck.exceptions import PreconditionError

logger = logging.getLogger(__name__)

NATIVE_INVALID_SCRIPT = """() => {
  const fields = Array.from(document.querySelectorAll("input, select, textarea"));
  return fields.some((f) => typeof f.checkValidity === "function" && !f.checkValidity());
}"""

QUANTITY_INVALID_SCRIPT = """() => {
  const qty = document.querySelector("input[name='quantity'], input#quantity");
  return !!qty && typeof qty.checkValidity === "function" && !qty.checkValidity();
}"""

SELECT_OPTIONS_SCRIPT = """(el) => Array.from(el.options || []).map(
  (o) => ({ value: String(o.value ?? ""), text: String(o.text ?? "") })
)"""

OPTIONS_LOADED_SCRIPT = "(el) => !!el && !!el.options && el.options.length > 1"

PLACEHOLDER_OPTION = re.compile(r"select", re.IGNORECASE)

Probe = tuple[str, Callable[[], bool]]


def resolve_first(probes: Iterable[Probe]) -> str | None:
    """Evaluate probes in order and return the name of the first that succeeds.

    Later probes are not evaluated once one succeeds.
    """
    for name, probe in probes:
        if probe():
            logger.debug("Evidence found: %s", name)
            return name
    return None


def capture_screenshot(page: Page, directory: Path, label: str) -> Path | None:
    """Save a full-page screenshot named ``<epoch-ms>-<label>.png``.

    Returns
    -------
    Path | None
        Path of the screenshot, or None when the page could not be captured
    """
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{int(time.time() * 1000)}-{label}.png"
    try:
        page.screenshot(path=str(path), full_page=True)
    except PlaywrightError as e:
        logger.warning("Could not capture screenshot %s: %s", label, e)
        return None
    logger.info("Saved screenshot %s", path)
    return path


def assert_not_redirected_to_login(page: Page, directory: Path, label: str) -> None:
    """Fail when navigation silently bounced to the login route.

    Raises
    ------
    PreconditionError
        If the current URL is the login page
    """
    if UI_LOGIN_PATH in page.url:
        capture_screenshot(page, directory, f"{label}-redirect-login")
        raise PreconditionError(f"{label}: redirected to login. Current URL: {page.url}")


def url_path(url: str) -> str:
    return urlparse(url).path


def wait_quietly(page: Page, timeout: int) -> None:
    """Wait for network idle, tolerating pages that never go idle."""
    try:
        page.wait_for_load_state("networkidle", timeout=timeout)
    except PlaywrightTimeoutError:
        logger.debug("Network did not go idle within %sms", timeout)


def capture_response(
    page: Page,
    action: Callable[[], Any],
    predicate: Callable[[Response], bool],
    timeout: int,
) -> Response | None:
    """Run ``action`` while listening for a matching response.

    The listener is registered before ``action`` runs. A missing response is
    tolerated and returns None; a failure of ``action`` itself propagates.
    """
    acted = False
    try:
        with page.expect_response(predicate, timeout=timeout) as response_info:
            action()
            acted = True
        return response_info.value
    except PlaywrightTimeoutError:
        if not acted:
            raise
        logger.debug("No matching response within %sms", timeout)
        return None


def response_text(response: Response) -> str:
    try:
        return response.text()
    except PlaywrightError as e:
        logger.debug("Could not read response body: %s", e)
        return ""


class DialogCapture:
    """One-shot native dialog handler that records the message and accepts.

    Native ``confirm()`` dialogs block the page until answered, so the handler
    must be registered before the action that opens the dialog.
    """

    def __init__(self) -> None:
        self.handled = False
        self.message: str | None = None

    def __call__(self, dialog: Dialog) -> None:
        self.message = dialog.message
        self.handled = True
        logger.debug("Accepting %s dialog: %s", dialog.type, self.message)
        dialog.accept()


def arm_dialog(page: Page) -> DialogCapture:
    capture = DialogCapture()
    page.once("dialog", capture)
    return capture


def match_option(options: list[dict[str, str]], wanted: str) -> str | None:
    """Find a dropdown value by exact value, then by label containing ``wanted``."""
    for option in options:
        if option["value"] == wanted:
            return option["value"]

    needle = wanted.lower()
    for option in options:
        if needle in option["text"].lower() and option["value"]:
            return option["value"]
    return None


def first_real_option(
    options: list[dict[str, str]], fallback: tuple[int, ...] = (1, 0)
) -> str | None:
    """Pick the first selectable option, skipping placeholders.

    A placeholder has an empty or ``"0"`` value or a label containing
    "select". When every option looks like a placeholder, the options at the
    ``fallback`` indexes are tried in order.
    """
    for option in options:
        value = option["value"]
        if value and value != "0" and not PLACEHOLDER_OPTION.search(option["text"]):
            return value

    for index in fallback:
        if len(options) > index and options[index]["value"]:
            return options[index]["value"]
    return None
