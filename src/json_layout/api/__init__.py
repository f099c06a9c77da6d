"""Convenience entry points for loading layouts."""

from .loader import load_layout, load_layout_file

__all__ = ["load_layout", "load_layout_file"]
