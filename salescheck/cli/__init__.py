"""Command line interface for salescheck."""

from salescheck.cli.main import SalesCheckCLI, main

__all__ = ["SalesCheckCLI", "main"]
