"""Logging helpers for salescheck."""

from salescheck.logging.formatters import (
    ScenarioFilter,
    ScenarioFormatter,
    configure_logging,
)

__all__ = ["ScenarioFilter", "ScenarioFormatter", "configure_logging"]
