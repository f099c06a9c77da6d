"""Command-line interface for inspecting and validating layout documents."""

from .main import main

__all__ = ["main"]
