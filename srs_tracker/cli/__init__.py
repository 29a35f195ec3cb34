"""Typer command-line interface (`srs`)."""

from srs_tracker.cli.main import app

__all__ = ["app"]
