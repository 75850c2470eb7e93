"""Byte-level tokenizer for filter rule files.

Brief:
  The lexer always returns a token from next_token(); it never raises.
  Unrecognized input is returned as TEXT and validation is deferred to the
  line parser and the URI/keyword resolution it performs.

Inputs:
  - Raw rule file bytes, optionally terminated by a NUL sentinel.

Outputs:
  - Token instances, one per next_token() call.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator

_SPACE = 0x20
_CR = 0x0D
_LF = 0x0A
_NUL = 0x00

_TEXT_DELIMITERS = frozenset((_SPACE, _CR, _LF, _NUL))


class TokenKind(enum.Enum):
    """Kind of lex item.

    ERROR is part of the token contract but is never produced by Lexer.
    """

    ERROR = "error"
    TEXT = "text"
    EOL = "eol"
    END = "end"


@dataclass(frozen=True)
class Token:
    """Single lex item.

    Inputs:
      - kind: TokenKind of the item.
      - lexeme: Decoded copy of the source bytes that produced the token.

    Outputs:
      - Immutable token value.
    """

    kind: TokenKind
    lexeme: str


class Lexer:
    """Single-pass tokenizer with one byte of lookahead.

    Inputs:
      - data: Source bytes. The buffer is copied and never modified.

    Outputs:
      - Lexer instance; call next_token() or iterate it.

    Example:
      >>> [t.kind.name for t in Lexer(b"a b\\n")]
      ['TEXT', 'TEXT', 'EOL', 'END']
    """

    def __init__(self, data: bytes) -> None:
        self._input = bytes(data)
        # Start of the current lexeme.
        self.offset = 0
        # Scan position.
        self.read_offset = 0
        # Set once END has been emitted; the lexer never reads past it.
        self._done = False

    def __iter__(self) -> Iterator[Token]:
        """Brief: Yield tokens up to and including the first END token."""

        while True:
            token = self.next_token()
            yield token
            if token.kind is TokenKind.END:
                return

    def next_token(self) -> Token:
        """Brief: Return the next token in the input.

        Inputs:
          - None.

        Outputs:
          - Token: TEXT, EOL or END. Once END has been returned, for a NUL
            sentinel or the end of the buffer, every call returns END.
        """

        if self._done:
            return Token(TokenKind.END, "")

        ch = self._advance()

        # Only literal spaces separate fields; tabs are part of TEXT.
        while ch == _SPACE:
            self.offset = self.read_offset
            ch = self._advance()

        if ch in (_CR, _LF):
            token = self._emit_newline()
        elif ch == _NUL:
            token = self._emit(TokenKind.END)
            self._done = True
        else:
            token = self._emit_text()

        self.offset = self.read_offset
        return token

    def _emit_text(self) -> Token:
        while self._peek() not in _TEXT_DELIMITERS:
            self._advance()
        return self._emit(TokenKind.TEXT)

    def _emit_newline(self) -> Token:
        # Collapse the whole CR/LF run, blank lines included.
        while self._peek() in (_CR, _LF):
            self._advance()
        return self._emit(TokenKind.EOL)

    def _advance(self) -> int:
        """Brief: Consume one byte; NUL at end of buffer without moving."""

        if self.read_offset >= len(self._input):
            return _NUL
        ch = self._input[self.read_offset]
        self.read_offset += 1
        return ch

    def _peek(self) -> int:
        if self.read_offset >= len(self._input):
            return _NUL
        return self._input[self.read_offset]

    def _emit(self, kind: TokenKind) -> Token:
        return Token(kind, self._current_lexeme())

    def _current_lexeme(self) -> str:
        return self._input[self.offset : self.read_offset].decode(
            "utf-8", errors="replace"
        )
