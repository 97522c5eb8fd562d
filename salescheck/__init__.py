"""End-to-end behave suite for the plant shop sales feature."""

__version__ = "0.1.0"
