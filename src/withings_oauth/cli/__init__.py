"""Command-line interface for the Withings OAuth client."""

from .main import cli, main

__all__ = ["cli", "main"]
