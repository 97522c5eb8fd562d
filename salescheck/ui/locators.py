"""Tiered selectors for the sales UI.

Each logical affordance is an ordered tuple of candidate selectors: a test id
or semantic selector first, then structural/ARIA selectors, then free-text
patterns. The first candidate with a visible match is authoritative.
"""

import logging
from collections.abc import Sequence
from functools import reduce

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page

logger = logging.getLogger(__name__)

SALES_CONTAINER = (
    "[data-testid='sales-list']",
    "[data-testid='sales-table']",
    ".sales-list",
    ".sales-table",
    "main",
    ".container",
)
TABLE = "table"
SALE_ROWS = (
    "table tbody tr",
    "[data-testid*='sale']",
    ".sale-row",
    ".MuiDataGrid-row",
    "[role='row']",
)
FIRST_TABLE_ROW = "table tbody tr"
EMPTY_STATE = "text=/no sales found/i"
PAGINATION = (
    "[data-testid*=pagination]",
    "nav[aria-label*=pagination]",
    ".pagination",
)

ROW_DELETE_BUTTON = (
    "button.btn.btn-sm.btn-outline-danger",
    "[data-testid*='delete']",
    "button:has-text('Delete')",
    "a:has-text('Delete')",
    "[aria-label*='delete' i]",
    "[title*='delete' i]",
    "[data-testid*='trash']",
    "[aria-label*='trash' i]",
)

PLANT_SELECT = "select[name='plantId'], select#plantId"
QUANTITY_INPUT = "input[name='quantity'], input#quantity"
CONFIRM_BUTTON = (
    "button:has-text('Confirm')",
    "button:has-text('Sell')",
    "button:has-text('Submit')",
    "button[type='submit']",
)

LOGIN_USERNAME = 'input[name="username"]'
LOGIN_PASSWORD = 'input[name="password"]'
LOGIN_SUBMIT = 'button[type="submit"]'

REQUIRED_VALIDATION = "text=/required|must be filled|is required/i"
INSUFFICIENT_STOCK_VALIDATION = "text=/insufficient stock|not enough stock/i"
QUANTITY_POSITIVE_VALIDATION = "text=/greater than 0|must be greater than 0|minimum.*1/i"
SALE_REJECTED_EVIDENCE = (
    INSUFFICIENT_STOCK_VALIDATION,
    QUANTITY_POSITIVE_VALIDATION,
    REQUIRED_VALIDATION,
)

ANY_VALIDATION = (
    "[role='alert']",
    ".invalid-feedback",
    ".error",
    ".text-danger",
    ".MuiFormHelperText-root",
    "[data-testid*=error]",
    "[data-testid*=validation]",
    "text=/required|invalid|must|please|select|enter|cannot be empty/i",
)
SALE_ERROR = (
    "[role='alert']",
    ".error",
    ".text-danger",
    ".invalid-feedback",
    ".MuiFormHelperText-root",
    "text=/insufficient|not enough|greater than 0|minimum|invalid|failed|error/i",
)
ARIA_INVALID = "[aria-invalid='true']"
SUCCESS_ALERT = (".alert-success", "[role='alert']")


def column_header(name: str) -> tuple[str, ...]:
    return (
        f'table thead th:has-text("{name}")',
        f'[role=\'columnheader\']:has-text("{name}")',
    )


def is_visible(locator: Locator) -> bool:
    """Visibility check that treats a Playwright failure as "not visible"."""
    try:
        return locator.is_visible()
    except PlaywrightError as e:
        logger.debug("Visibility probe failed: %s", e)
        return False


def first_visible(root: Page | Locator, selectors: Sequence[str]) -> Locator | None:
    """Return the first candidate with a visible match, in priority order.

    Parameters
    ----------
    root : Page | Locator
        Page or locator to search within
    selectors : Sequence[str]
        Candidate selectors, most specific first

    Returns
    -------
    Locator | None
        Locator of the first visible match, or None when no candidate matches
    """
    for selector in selectors:
        locator = root.locator(selector).first
        if is_visible(locator):
            logger.debug("Resolved selector %s", selector)
            return locator
    return None


def first_present(root: Page | Locator, selectors: Sequence[str]) -> Locator | None:
    """Like :func:`first_visible` but only requires the element to be attached."""
    for selector in selectors:
        locator = root.locator(selector)
        if locator.count() > 0:
            return locator.first
    return None


def count_any(root: Page | Locator, selectors: Sequence[str]) -> int:
    return sum(root.locator(selector).count() for selector in selectors)


def combine(root: Page | Locator, selectors: Sequence[str]) -> Locator:
    """Build one locator matching any of the candidates."""
    if not selectors:
        raise ValueError("At least one selector is required")
    locators = [root.locator(selector) for selector in selectors]
    return reduce(lambda left, right: left.or_(right), locators)


def wait_for_any(root: Page | Locator, selectors: Sequence[str], timeout: int) -> Locator:
    """Wait until any candidate is visible.

    Hidden matches are filtered out before picking the first element, so a
    hidden match earlier in the DOM does not shadow a visible one.

    Raises
    ------
    playwright.sync_api.TimeoutError
        If no candidate becomes visible within ``timeout`` milliseconds
    """
    locator = combine(root, selectors).filter(visible=True).first
    locator.wait_for(state="visible", timeout=timeout)
    return locator
