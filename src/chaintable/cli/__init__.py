"""Command-line interface for chaintable."""

from .app import console_main, main

__all__ = ["console_main", "main"]
