"""Cursor over a flat token array with savepoints and typed scalar readers.

TokenStream never materializes a subtree. Consumers walk the tokens in
order and must consume or skip exactly ``size`` children of every
container they enter; ``skip_subtree`` and ``iter_members`` make that
contract easy to keep.
"""

import json
import re
from typing import Any, Dict, Iterator, List, NewType, Optional, Tuple

from json_layout.shared.config import ScalarPolicy, TokenizerConfig
from json_layout.shared.graphics import Color, Rect, parse_hex_prefix
from json_layout.shared.logging import get_logger
from json_layout.shared.result import DiagnosticEntry, DiagnosticSeverity

from .tokenizer import JSONTokenizer, Token, TokenizationResult, TokenType

Savepoint = NewType("Savepoint", int)

INT_PREFIX = re.compile(r"\s*([+-]?[0-9]+)")
INT_EXACT = re.compile(r"[+-]?[0-9]+\Z")
RECT_COMPONENTS = 4


class TokenStream:
    """Sequential reader over the tokens of one document.

    The cursor only moves forward except through ``reset`` (single-slot
    mark) or ``seek`` (any number of savepoints taken with ``tell``).
    """

    def __init__(
        self,
        text: str,
        tokens: List[Token],
        scalar_policy: ScalarPolicy = ScalarPolicy.COERCE,
        correlation_id: Optional[str] = None,
        record_diagnostics: bool = True,
        diagnostics: Optional[List[DiagnosticEntry]] = None,
    ) -> None:
        self.text = text
        self._tokens = list(tokens)
        self._index = 0
        self._mark: Optional[int] = None
        self.scalar_policy = scalar_policy
        self.correlation_id = correlation_id
        self.record_diagnostics = record_diagnostics
        self.diagnostics: List[DiagnosticEntry] = diagnostics if diagnostics is not None else []
        self.tokenization: Optional[TokenizationResult] = None
        self.logger = get_logger(__name__, correlation_id, "token_stream")
        self._end_token = Token(TokenType.UNDEFINED, len(text), len(text), 0)

    @classmethod
    def from_text(
        cls,
        text: str,
        tokenizer_config: Optional[TokenizerConfig] = None,
        scalar_policy: ScalarPolicy = ScalarPolicy.COERCE,
        correlation_id: Optional[str] = None,
        record_diagnostics: bool = True,
        diagnostics: Optional[List[DiagnosticEntry]] = None,
    ) -> "TokenStream":
        """Tokenize ``text`` and wrap the result in a stream."""
        result = JSONTokenizer(tokenizer_config, correlation_id).tokenize(text)
        stream = cls(
            text,
            result.tokens,
            scalar_policy=scalar_policy,
            correlation_id=correlation_id,
            record_diagnostics=record_diagnostics,
            diagnostics=diagnostics,
        )
        stream.tokenization = result
        if not result.success:
            stream._report(
                DiagnosticSeverity.CRITICAL,
                f"Document is not valid JSON: {result.error}",
                details={"offset": result.error_offset},
            )
        return stream

    # Cursor

    @property
    def tokens(self) -> Tuple[Token, ...]:
        return tuple(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def has_next(self) -> bool:
        return self._index < len(self._tokens)

    def peek(self) -> Token:
        """Return the current token without consuming it."""
        if not self.has_next():
            return self._end_token
        return self._tokens[self._index]

    def next(self) -> Token:
        """Consume and return the current token.

        Reading past the end yields an UNDEFINED token and leaves the
        cursor where it is.
        """
        if not self.has_next():
            self._report(DiagnosticSeverity.ERROR, "Read past end of token stream")
            return self._end_token
        token = self._tokens[self._index]
        self._index += 1
        return token

    def tell(self) -> Savepoint:
        return Savepoint(self._index)

    def seek(self, savepoint: int) -> None:
        if not (0 <= savepoint <= len(self._tokens)):
            raise IndexError("Savepoint out of range")
        self._index = savepoint

    def mark(self) -> None:
        """Remember the cursor; a later mark replaces the earlier one."""
        self._mark = self._index

    def reset(self) -> None:
        """Return to the last mark; does nothing if no mark was taken."""
        if self._mark is not None:
            self._index = self._mark

    def skip_subtree(self) -> None:
        """Consume the current token and, for containers, all its descendants."""
        pending = 1
        while pending > 0:
            if not self.has_next():
                self._report(DiagnosticSeverity.ERROR, "Token stream ended inside a subtree")
                return
            token = self._tokens[self._index]
            self._index += 1
            pending -= 1
            if token.type is TokenType.ARRAY:
                pending += token.size
            elif token.type is TokenType.OBJECT:
                pending += 2 * token.size

    def iter_members(self, token: Token) -> Iterator[str]:
        """Walk the ``size`` key/value pairs of an object token.

        The cursor must sit on the first key. Each key is consumed and its
        text yielded; if the consumer leaves the cursor on the value, the
        value's subtree is skipped before the next key is read.
        """
        for _ in range(token.size):
            key = self.next()
            value_start = self._index
            yield self.token_text(key)
            if self._index == value_start:
                self.skip_subtree()

    # Token text

    def token_text(self, token: Token) -> str:
        return self.text[token.start:token.end]

    def token_equals(self, token: Token, literal: str) -> bool:
        """True if a string (or primitive) token spells exactly ``literal``."""
        if token.type not in (TokenType.STRING, TokenType.PRIMITIVE):
            return False
        return token.length == len(literal) and self.token_text(token) == literal

    def _decode_string(self, token: Token) -> str:
        raw = self.token_text(token)
        if "\\" not in raw:
            return raw
        try:
            return json.loads(f'"{raw}"')
        except ValueError:
            self._report(
                DiagnosticSeverity.WARNING,
                "Could not decode string escapes",
                token=token,
            )
            return raw

    # Scalars

    def _next_scalar(self, expected: str) -> Optional[Token]:
        """Consume one scalar token; containers are skipped whole."""
        start = self._index
        token = self.next()
        if token.type is TokenType.UNDEFINED:
            return None
        if token.type.is_container:
            self._index = start
            self.skip_subtree()
            self._report(
                self._policy_severity(),
                f"Expected {expected}, found {token.type.name.lower()}",
                token=token,
            )
            return None
        return token

    def _policy_severity(self) -> DiagnosticSeverity:
        if self.scalar_policy is ScalarPolicy.REJECT:
            return DiagnosticSeverity.ERROR
        return DiagnosticSeverity.WARNING

    def next_string(self) -> Optional[str]:
        """Read a string value; primitives yield their literal text."""
        token = self._next_scalar("string")
        if token is None:
            return None
        if token.type is TokenType.STRING:
            return self._decode_string(token)
        return self.token_text(token)

    def _parse_int(self, token: Optional[Token]) -> Tuple[int, bool]:
        """Decode an integer following C ``atoi`` when coercing."""
        if token is None:
            return 0, False
        text = self.token_text(token)
        if INT_EXACT.match(text):
            return int(text), True
        if self.scalar_policy is ScalarPolicy.REJECT:
            self._report(DiagnosticSeverity.ERROR, f"Invalid integer '{text}'", token=token)
            return 0, False
        match = INT_PREFIX.match(text)
        value = int(match.group(1)) if match else 0
        self._report(
            DiagnosticSeverity.WARNING,
            f"Coerced '{text}' to integer {value}",
            token=token,
        )
        return value, False

    def next_int(self) -> int:
        value, _ = self._parse_int(self._next_scalar("integer"))
        return value

    def next_bool(self) -> bool:
        """True only for the literal ``true`` primitive."""
        token = self._next_scalar("boolean")
        if token is None:
            return False
        text = self.token_text(token)
        if token.type is TokenType.PRIMITIVE and text in ("true", "false"):
            return text == "true"
        self._report(self._policy_severity(), f"Invalid boolean '{text}'", token=token)
        return False

    def next_color(self) -> Optional[Color]:
        """Read a hex color such as ``"#FF0055"`` or ``"00AAFF"``.

        Returns None when the value is rejected.
        """
        token = self._next_scalar("color")
        if token is None:
            return None
        text = self._decode_string(token) if token.type is TokenType.STRING else self.token_text(token)
        value, clean = parse_hex_prefix(text)
        if clean and value is not None:
            return Color.from_hex(value)
        if self.scalar_policy is ScalarPolicy.REJECT:
            self._report(DiagnosticSeverity.ERROR, f"Invalid color '{text}'", token=token)
            return None
        color = Color.from_hex(value or 0)
        self._report(
            DiagnosticSeverity.WARNING,
            f"Coerced '{text}' to color {color.to_hex()}",
            token=token,
        )
        return color

    def next_rect(self) -> Rect:
        """Read a ``[x, y, w, h]`` array.

        The whole value subtree is always consumed, whatever its shape.
        """
        start = self._index
        token = self.next()
        if token.type is TokenType.UNDEFINED:
            return Rect.ZERO
        if token.type is not TokenType.ARRAY:
            self._index = start
            self.skip_subtree()
            self._report(
                self._policy_severity(),
                f"Expected rectangle array, found {token.type.name.lower()}",
                token=token,
            )
            return Rect.ZERO

        values: List[int] = []
        valid = token.size == RECT_COMPONENTS
        for i in range(token.size):
            if i < RECT_COMPONENTS:
                value, clean = self._parse_int(self._next_scalar("integer"))
                values.append(value)
                valid = valid and clean
            else:
                self.skip_subtree()

        if token.size != RECT_COMPONENTS:
            self._report(
                self._policy_severity(),
                f"Rectangle has {token.size} components, expected {RECT_COMPONENTS}",
                token=token,
            )
        if not valid and self.scalar_policy is ScalarPolicy.REJECT:
            return Rect.ZERO
        values.extend([0] * (RECT_COMPONENTS - len(values)))
        return Rect(*values)

    # Diagnostics

    def _report(
        self,
        severity: DiagnosticSeverity,
        message: str,
        token: Optional[Token] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        position = {"token": max(self._index - 1, 0)}
        if token is not None:
            position["offset"] = token.start
        self.logger.debug(message, extra={"position": position})
        if not self.record_diagnostics:
            return
        self.diagnostics.append(DiagnosticEntry(
            severity=severity,
            message=message,
            component="token_stream",
            position=position,
            details=details,
            correlation_id=self.correlation_id,
        ))
