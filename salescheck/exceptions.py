"""Exceptions raised by salescheck helpers and step definitions."""

from pathlib import Path


class SalesCheckError(Exception):
    """Base class for salescheck errors."""

    pass


class PreconditionError(SalesCheckError):
    """Raised when a step needs context state that an earlier step did not set."""

    pass


class AuthenticationError(SalesCheckError):
    """Raised when a login exchange fails or returns no token.

    Parameters
    ----------
    message : str
        Human readable description
    status : int | None
        HTTP status of the login response, if one was received
    body : str
        Raw response body
    """

    def __init__(self, message: str, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class EvidenceNotFoundError(SalesCheckError):
    """Raised when expected UI state could not be located by any fallback.

    Parameters
    ----------
    evidence : str
        Name of the evidence that was sought
    screenshot : Path | None
        Screenshot captured at the time of failure
    """

    def __init__(self, evidence: str, screenshot: Path | None = None) -> None:
        message = f"No {evidence} found"
        if screenshot is not None:
            message = f"{message} (screenshot: {screenshot})"
        super().__init__(message)
        self.evidence = evidence
        self.screenshot = screenshot
