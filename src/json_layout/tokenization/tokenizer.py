"""Minimal single-pass JSON tokenizer producing a flat token array.

The tokenizer never builds values. It emits one Token per JSON value (and
per object key) in document order, each carrying the character range of
its text and the number of its immediate children. Objects count
key/value pairs, arrays count elements, a key counts its single value.
Child membership is positional only: a container's children follow it
directly in the array.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from json_layout.shared.config import TokenizerConfig
from json_layout.shared.logging import get_logger

WHITESPACE = " \t\r\n"
PRIMITIVE_DELIMITERS = WHITESPACE + ",:]}"
LITERALS = ("true", "false", "null")
NUMBER_PATTERN = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?\Z")
ESCAPABLE = '"\\/bfnrtu'
HEX_DIGITS = "0123456789abcdefABCDEF"

# Parse states of an open container
_EXPECT_VALUE = "value"                     # after ':' or ',' in an array
_EXPECT_VALUE_OR_CLOSE = "value_or_close"   # right after '['
_EXPECT_KEY = "key"                         # after ',' in an object
_EXPECT_KEY_OR_CLOSE = "key_or_close"       # right after '{'
_EXPECT_COLON = "colon"
_EXPECT_COMMA_OR_CLOSE = "comma_or_close"

_KEY_STATES = (_EXPECT_KEY, _EXPECT_KEY_OR_CLOSE)
_VALUE_STATES = (_EXPECT_VALUE, _EXPECT_VALUE_OR_CLOSE)
_CLOSE_STATES = (_EXPECT_KEY_OR_CLOSE, _EXPECT_VALUE_OR_CLOSE, _EXPECT_COMMA_OR_CLOSE)


class TokenType(Enum):
    """JSON token kinds."""

    UNDEFINED = 0
    OBJECT = 1
    ARRAY = 2
    STRING = 3
    PRIMITIVE = 4

    @property
    def is_container(self) -> bool:
        return self in (TokenType.OBJECT, TokenType.ARRAY)


@dataclass
class Token:
    """Typed character range with a count of its immediate children.

    For strings the range excludes the surrounding quotes.
    """

    type: TokenType
    start: int
    end: int
    size: int = 0

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass
class TokenizationResult:
    """Result of tokenizing one document."""

    tokens: List[Token]
    text: str
    success: bool = True
    error: Optional[str] = None
    error_offset: Optional[int] = None
    diagnostics: List[str] = field(default_factory=list)

    @property
    def token_count(self) -> int:
        return len(self.tokens)

    @property
    def error_line_column(self) -> Optional[Tuple[int, int]]:
        if self.error_offset is None:
            return None
        return line_column(self.text, self.error_offset)


class TokenizationError(Exception):
    """Lexical error found while scanning; carries the offending offset."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(message)
        self.offset = offset


def line_column(text: str, offset: int) -> Tuple[int, int]:
    """Translate a character offset into a 1-based (line, column) pair."""
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset) + 1
    last_newline = text.rfind("\n", 0, offset)
    return line, offset - last_newline


class _Frame:
    """Open container on the tokenizer stack."""

    __slots__ = ("index", "state", "key")

    def __init__(self, index: int, state: str) -> None:
        self.index = index
        self.state = state
        self.key = -1


class JSONTokenizer:
    """Single-pass tokenizer for JSON text.

    Lexical errors never raise out of ``tokenize``; they produce a failed
    result with an empty token array so no half-sized container can reach
    a consumer.
    """

    def __init__(
        self,
        config: Optional[TokenizerConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        self.config = config or TokenizerConfig()
        self.logger = get_logger(__name__, correlation_id, "json_tokenizer")

    def tokenize(self, text: str) -> TokenizationResult:
        """Tokenize a complete JSON document.

        Args:
            text: Document text

        Returns:
            TokenizationResult with the flat token array
        """
        tokens: List[Token] = []
        try:
            self._scan(text, tokens)
        except TokenizationError as e:
            line, column = line_column(text, e.offset)
            message = f"{e} at line {line}, column {column}"
            self.logger.warning(
                "Tokenization failed",
                extra={"error": str(e), "offset": e.offset}
            )
            return TokenizationResult(
                tokens=[],
                text=text,
                success=False,
                error=str(e),
                error_offset=e.offset,
                diagnostics=[message],
            )

        self.logger.debug("Tokenization completed", extra={"token_count": len(tokens)})
        return TokenizationResult(tokens=tokens, text=text)

    def _scan(self, text: str, tokens: List[Token]) -> None:
        stack: List[_Frame] = []
        root_done = False
        pos = 0
        length = len(text)

        while pos < length:
            char = text[pos]
            if char in WHITESPACE:
                pos += 1
                continue
            if root_done:
                raise TokenizationError("Unexpected data after root value", pos)

            frame = stack[-1] if stack else None
            state = frame.state if frame else _EXPECT_VALUE

            if char in "{[":
                if state not in _VALUE_STATES:
                    raise TokenizationError(f"Unexpected '{char}'", pos)
                kind = TokenType.OBJECT if char == "{" else TokenType.ARRAY
                index = self._emit(tokens, Token(kind, pos, -1), pos)
                self._attach_value(frame, tokens)
                stack.append(_Frame(
                    index,
                    _EXPECT_KEY_OR_CLOSE if kind is TokenType.OBJECT else _EXPECT_VALUE_OR_CLOSE,
                ))
                pos += 1

            elif char in "}]":
                if frame is None:
                    raise TokenizationError(f"Unmatched '{char}'", pos)
                token = tokens[frame.index]
                expected = TokenType.OBJECT if char == "}" else TokenType.ARRAY
                if token.type is not expected or state not in _CLOSE_STATES:
                    raise TokenizationError(f"Unexpected '{char}'", pos)
                token.end = pos + 1
                stack.pop()
                root_done = not stack
                pos += 1

            elif char == ":":
                if frame is None or state != _EXPECT_COLON:
                    raise TokenizationError("Unexpected ':'", pos)
                frame.state = _EXPECT_VALUE
                pos += 1

            elif char == ",":
                if frame is None or state != _EXPECT_COMMA_OR_CLOSE:
                    raise TokenizationError("Unexpected ','", pos)
                if tokens[frame.index].type is TokenType.OBJECT:
                    frame.state = _EXPECT_KEY
                else:
                    frame.state = _EXPECT_VALUE
                pos += 1

            elif char == '"':
                end = self._scan_string(text, pos)
                token = Token(TokenType.STRING, pos + 1, end)
                if state in _KEY_STATES:
                    self._emit_key(frame, tokens, token, pos)
                elif state in _VALUE_STATES:
                    self._emit(tokens, token, pos)
                    self._attach_value(frame, tokens)
                    root_done = frame is None
                else:
                    raise TokenizationError("Unexpected string", pos)
                pos = end + 1

            else:
                end = self._scan_primitive(text, pos)
                token = Token(TokenType.PRIMITIVE, pos, end)
                if state in _KEY_STATES and self.config.allow_primitive_keys:
                    self._emit_key(frame, tokens, token, pos)
                elif state in _VALUE_STATES:
                    self._emit(tokens, token, pos)
                    self._attach_value(frame, tokens)
                    root_done = frame is None
                else:
                    raise TokenizationError("Unexpected primitive", pos)
                pos = end

        if stack:
            raise TokenizationError("Unterminated container", tokens[stack[-1].index].start)

    def _emit(self, tokens: List[Token], token: Token, pos: int) -> int:
        limit = self.config.max_tokens
        if limit is not None and len(tokens) >= limit:
            raise TokenizationError(f"Token limit of {limit} exceeded", pos)
        tokens.append(token)
        return len(tokens) - 1

    def _emit_key(
        self, frame: Optional[_Frame], tokens: List[Token], token: Token, pos: int
    ) -> None:
        if frame is None:
            raise TokenizationError("Object key outside of an object", pos)
        frame.key = self._emit(tokens, token, pos)
        tokens[frame.index].size += 1
        frame.state = _EXPECT_COLON

    @staticmethod
    def _attach_value(frame: Optional[_Frame], tokens: List[Token]) -> None:
        """Count a freshly emitted value against its parent."""
        if frame is None:
            return
        if tokens[frame.index].type is TokenType.OBJECT:
            tokens[frame.key].size = 1
        else:
            tokens[frame.index].size += 1
        frame.state = _EXPECT_COMMA_OR_CLOSE

    @staticmethod
    def _scan_string(text: str, pos: int) -> int:
        """Return the offset of the closing quote of the string opened at pos."""
        index = pos + 1
        length = len(text)
        while index < length:
            char = text[index]
            if char == '"':
                return index
            if char == "\\":
                if index + 1 >= length or text[index + 1] not in ESCAPABLE:
                    raise TokenizationError("Invalid escape sequence", index)
                if text[index + 1] == "u":
                    digits = text[index + 2:index + 6]
                    if len(digits) != 4 or any(d not in HEX_DIGITS for d in digits):
                        raise TokenizationError("Invalid unicode escape", index)
                    index += 6
                    continue
                index += 2
                continue
            index += 1
        raise TokenizationError("Unterminated string", pos)

    @staticmethod
    def _scan_primitive(text: str, pos: int) -> int:
        end = pos
        length = len(text)
        while end < length and text[end] not in PRIMITIVE_DELIMITERS and text[end] != '"':
            end += 1
        literal = text[pos:end]
        if not literal:
            raise TokenizationError(f"Unexpected '{text[pos]}'", pos)
        if literal not in LITERALS and not NUMBER_PATTERN.match(literal):
            raise TokenizationError(f"Invalid literal '{literal}'", pos)
        return end
