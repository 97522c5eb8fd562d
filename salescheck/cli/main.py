"""CLI entry point for salescheck."""

from __future__ import annotations

import dataclasses
import logging
import os
import sys
from typing import Any

import fire
from behave.__main__ import main as behave_main

from salescheck.config import load_settings
from salescheck.constants import ROLE_CREDENTIALS
from salescheck.logging import configure_logging

logger = logging.getLogger(__name__)


class SalesCheckCLI:
    """Run the sales suite and inspect its configuration."""

    def run(
        self,
        tags: str | tuple | None = None,
        features: str = "features",
        headed: bool = False,
        config: str | None = None,
    ) -> None:
        """Run behave over the feature files.

        Parameters
        ----------
        tags : str | tuple | None
            Tag expressions such as ``@api`` or ``@ui,~@wip``; each
            comma-separated entry becomes one ``--tags`` argument
        features : str
            Feature directory or file
        headed : bool
            Show the browser window for ``@ui`` scenarios
        config : str | None
            Path to a salescheck YAML file
        """
        args = build_behave_args(tags, features)

        if headed:
            os.environ["PLAYWRIGHT_HEADLESS"] = "false"
        if config:
            os.environ["SALESCHECK_CONFIG"] = config

        logger.info("Running behave %s", " ".join(args))
        exit_code = behave_main(args)
        if exit_code:
            sys.exit(exit_code)

    def config(self, config: str | None = None) -> dict[str, Any]:
        """Print the resolved settings. Passwords are masked."""
        settings = load_settings(config)
        resolved = dataclasses.asdict(settings)
        resolved["screenshot_dir"] = str(settings.screenshot_dir)
        resolved["roles"] = {
            role.value: {"username": username, "password": "***"}
            for role, (username, _password) in ROLE_CREDENTIALS.items()
        }
        return resolved


def build_behave_args(tags: str | tuple | None, features: str) -> list[str]:
    if tags is None:
        entries: list[str] = []
    elif isinstance(tags, str):
        entries = [tag.strip() for tag in tags.split(",")]
    else:
        entries = [str(tag).strip() for tag in tags]

    args = [features]
    for tag in entries:
        if tag:
            args.extend(["--tags", tag])
    return args


def main() -> None:
    """Entry point for Fire CLI with graceful error handling."""
    configure_logging(logging.INFO)

    debug_mode = os.environ.get("SALESCHECK_DEBUG") == "1"

    try:
        fire.Fire(SalesCheckCLI)
    except ValueError as e:
        if debug_mode:
            raise
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)
