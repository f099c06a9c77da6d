"""Tokenization layer for layout documents.

Key Components:
    JSONTokenizer: Single-pass tokenizer producing a flat token array
    Token: Typed character range with an immediate-child count
    TokenType: Object, Array, String, Primitive or Undefined
    TokenStream: Cursor with savepoints, subtree skipping and scalar readers
"""

from .stream import Savepoint, TokenStream
from .tokenizer import (
    JSONTokenizer,
    Token,
    TokenizationError,
    TokenizationResult,
    TokenType,
    line_column,
)

__all__ = [
    "JSONTokenizer",
    "Savepoint",
    "Token",
    "TokenStream",
    "TokenType",
    "TokenizationError",
    "TokenizationResult",
    "line_column",
]
