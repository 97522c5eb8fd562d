"""Global constants for salescheck.

Route paths, payload field names and wait budgets shared by the API client,
the UI helpers and the behave step libraries.
"""

from enum import Enum


class Role(Enum):
    """Application roles a scenario can authenticate as."""

    ADMIN = "admin"
    USER = "user"

    @classmethod
    def parse(cls, name: str) -> "Role":
        """Resolve a role from scenario text such as ``"admin"``.

        Raises
        ------
        ValueError
            If the name does not match a known role
        """
        normalized = name.strip().lower()
        for role in cls:
            if role.value == normalized:
                return role
        valid = [role.value for role in cls]
        raise ValueError(f"Unknown role: {name!r}. Valid roles: {valid}")


ROLE_CREDENTIALS = {
    Role.ADMIN: ("admin", "admin123"),
    Role.USER: ("testuser", "test123"),
}
"""Fixed username/password pair for each role seeded in the test database."""

UI_LOGIN_PATH = "/ui/login"
UI_SALES_PATH = "/ui/sales"
UI_SALES_NEW_PATH = "/ui/sales/new"

TOKEN_FIELDS = ("token", "accessToken", "jwt")
"""Login response fields that may carry the bearer token, in priority order."""

STOCK_FIELDS = ("stock", "quantity", "availableStock")
"""Plant payload fields that may carry the stock level, in priority order."""

SALE_ID_FIELDS = ("id", "saleId")

NOT_FOUND_STATUSES = (404, 410)
"""Statuses accepted as a terminal "not found" for a deleted sale."""

SORT_FIELDS = {
    "Sold Date": "soldAt",
    "Plant Name": "plantName",
    "Quantity": "quantity",
    "Total Price": "totalPrice",
}
"""Sales table column labels mapped to backend sort fields."""

NAVIGATION_TIMEOUT_MS = 15000
"""Timeout for navigation, element visibility and captured responses.

Fifteen seconds covers a cold application server rendering its first page.
"""

LONG_WAIT_TIMEOUT_MS = 30000
"""Timeout for slower UI waits such as dropdown population and redirects."""

SETTLE_DELAY_MS = 300
"""Pause after ``domcontentloaded`` so client-side redirects can fire."""

CONFIRM_SETTLE_DELAY_MS = 700
"""Pause after submitting the sell form so navigation or errors can render."""

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30
"""Default timeout for every HTTP call made through the API client."""

DEFAULT_SCREENSHOT_DIR = "tests/screenshots"
