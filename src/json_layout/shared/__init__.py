"""Shared utilities for layout building.

This module provides the key-value store, value types, configuration
objects, diagnostic types and logging helpers used across all layers.
"""

from .config import (
    BuildConfig,
    ConfigError,
    ConfigValidationError,
    GlobalConfig,
    LayoutConfig,
    ScalarPolicy,
    TokenizerConfig,
)
from .graphics import Bitmap, Color, Font, Rect, SYSTEM_FONTS
from .logging import CorrelationLogger, configure_logging, get_logger
from .result import BuildMetrics, DiagnosticEntry, DiagnosticSeverity
from .store import KeyValueStore

__all__ = [
    "Bitmap",
    "BuildConfig",
    "BuildMetrics",
    "Color",
    "ConfigError",
    "ConfigValidationError",
    "CorrelationLogger",
    "DiagnosticEntry",
    "DiagnosticSeverity",
    "Font",
    "GlobalConfig",
    "KeyValueStore",
    "LayoutConfig",
    "Rect",
    "SYSTEM_FONTS",
    "ScalarPolicy",
    "TokenizerConfig",
    "configure_logging",
    "get_logger",
]
