"""Login exchange against the application API."""

import json
import logging

from salescheck.api import SalesApiClient, is_success
from salescheck.constants import TOKEN_FIELDS
from salescheck.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


def login_and_get_token(client: SalesApiClient, username: str, password: str) -> str:
    """Log in once and return the bearer token.

    Parameters
    ----------
    client : SalesApiClient
        Client used for the login request
    username : str
        Account username
    password : str
        Account password

    Returns
    -------
    str
        Token read from the first present of ``token``, ``accessToken``, ``jwt``

    Raises
    ------
    AuthenticationError
        If the response is not 2xx, is not JSON, or carries no token
    """
    response = client.login(username, password)
    status = response.status_code
    body = response.text

    if not is_success(status):
        logger.error("Login failed for %s with status %s", username, status)
        raise AuthenticationError(f"Login failed ({status}): {body}", status, body)

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise AuthenticationError(
            f"Login response is not JSON ({status}): {body}", status, body
        ) from e

    token = None
    if isinstance(payload, dict):
        token = next((payload[f] for f in TOKEN_FIELDS if payload.get(f)), None)

    if not token:
        raise AuthenticationError(
            "Login response does not contain token/accessToken/jwt", status, body
        )

    logger.debug("Obtained token for %s", username)
    return str(token)
