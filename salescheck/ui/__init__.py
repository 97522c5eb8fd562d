"""Browser-side helpers for the sales UI steps."""

from salescheck.ui.evidence import (
    DialogCapture,
    arm_dialog,
    capture_screenshot,
    resolve_first,
)
from salescheck.ui.locators import first_visible, wait_for_any
from salescheck.ui.session import BrowserSession

__all__ = [
    "BrowserSession",
    "DialogCapture",
    "arm_dialog",
    "capture_screenshot",
    "first_visible",
    "resolve_first",
    "wait_for_any",
]
