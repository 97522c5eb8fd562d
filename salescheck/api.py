"""HTTP client for the sales and plant endpoints of the application under test."""

import json
import logging
from typing import Any

import requests

from salescheck.config import Settings
from salescheck.constants import SALE_ID_FIELDS, STOCK_FIELDS

logger = logging.getLogger(__name__)


def is_success(status: int | None) -> bool:
    return status is not None and 200 <= status < 300


def bearer(token: str | None) -> dict[str, str]:
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def parse_body(body_text: str | None) -> Any:
    """Parse a raw response body as JSON, treating an empty body as ``None``.

    Raises
    ------
    AssertionError
        If the body is not valid JSON
    """
    if not body_text:
        return None
    try:
        return json.loads(body_text)
    except json.JSONDecodeError as e:
        raise AssertionError(f"Response body is not JSON: {body_text[:200]!r}") from e


def read_stock(plant: dict[str, Any]) -> int | float:
    """Read the stock level from a plant payload.

    The backend has exposed the value as ``stock``, ``quantity`` and
    ``availableStock`` over time; the first field that is present wins.

    Raises
    ------
    AssertionError
        If none of the fields is present or the value is not numeric
    """
    for field in STOCK_FIELDS:
        value = plant.get(field)
        if value is None:
            continue
        try:
            number = float(value)
        except (TypeError, ValueError) as e:
            raise AssertionError(f"Plant {field} is not numeric: {value!r}") from e
        return int(number) if number.is_integer() else number

    raise AssertionError(
        f"Plant payload has none of {list(STOCK_FIELDS)}: {plant!r}"
    )


def extract_sale_id(sale: Any) -> str | None:
    if not isinstance(sale, dict):
        return None
    for field in SALE_ID_FIELDS:
        value = sale.get(field)
        if value:
            return str(value)
    return None


def extract_sale_list(payload: Any) -> list[Any] | None:
    """Return the sale list from a bare array or a ``{"content": [...]}`` page."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("content"), list):
        return payload["content"]
    return None


class SalesApiClient:
    """Thin wrapper over ``requests.Session`` bound to the configured base URL.

    Every method performs exactly one request and returns the raw
    ``requests.Response``; interpreting the status is left to the caller.
    """

    def __init__(
        self, settings: Settings, session: requests.Session | None = None
    ) -> None:
        self.settings = settings
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def request(
        self, method: str, path: str, token: str | None = None, **kwargs: Any
    ) -> requests.Response:
        url = self.settings.url(path)
        logger.debug("%s %s", method, url)
        response = self.session.request(
            method,
            url,
            headers=bearer(token),
            timeout=self.settings.request_timeout,
            **kwargs,
        )
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return response

    def login(self, username: str, password: str) -> requests.Response:
        return self.request(
            "POST",
            self.settings.api_login,
            json={"username": username, "password": password},
        )

    def get_plant(self, plant_id: str, token: str) -> requests.Response:
        return self.request("GET", self.settings.plant_path(plant_id), token)

    def sell(self, plant_id: str, quantity: int, token: str) -> requests.Response:
        return self.request(
            "POST",
            self.settings.api_sell,
            token,
            json={"plantId": plant_id, "quantity": quantity},
        )

    def get_sale(self, sale_id: str, token: str) -> requests.Response:
        return self.request("GET", self.settings.sale_path(sale_id), token)

    def delete_sale(self, sale_id: str, token: str) -> requests.Response:
        return self.request("DELETE", self.settings.sale_path(sale_id), token)

    def list_sales(self, token: str | None = None) -> requests.Response:
        return self.request("GET", self.settings.api_sales_all, token)

    def sales_page(
        self,
        token: str,
        page: int | None = None,
        size: int | None = None,
        sort_field: str | None = None,
        direction: str | None = None,
    ) -> requests.Response:
        """Fetch one page of sales.

        Parameters left as None are omitted from the query string so the
        backend applies its own defaults.
        """
        params: dict[str, Any] = {}
        if page is not None:
            params["page"] = page
        if size is not None:
            params["size"] = size
        if sort_field is not None:
            params["sort"] = f"{sort_field},{direction or 'asc'}"
        return self.request(
            "GET", self.settings.api_sales_page, token, params=params or None
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "SalesApiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
