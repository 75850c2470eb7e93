"""Line grammar parser turning lexer tokens into rule items.

Brief:
  Each line is a run of TEXT tokens terminated by EOL or END. A line with
  four fields is a filter rule, a line with three fields is a setting rule,
  and every other field count is a malformed line.

Inputs:
  - A Lexer positioned at the start of the rule text.

Outputs:
  - Ordered list of RuleItem values (FilterRule | SettingRule).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Tuple, Union

from .errors import (
    InvalidUriError,
    MalformedLineError,
    RuleSyntaxError,
    UnknownKeywordError,
)
from .lexer import Lexer, Token, TokenKind
from .rules import (
    ACTION_KEYWORDS,
    REQUEST_KEYWORDS,
    FilterRule,
    RuleItem,
    SettingRule,
    Uri,
    UriError,
    parse_uri,
)

logger = logging.getLogger(__name__)

FILTER_FIELDS = 4
SETTING_FIELDS = 3


@dataclass
class ParseReport:
    """Result of Parser.parse_collect().

    Inputs:
      - items: Every rule item that parsed cleanly, in source order.
      - errors: Every RuleSyntaxError met along the way, in source order.

    Outputs:
      - Mutable structure that callers and tests can inspect.
    """

    items: List[RuleItem] = field(default_factory=list)
    errors: List[RuleSyntaxError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class Parser:
    """Consumes a Lexer line by line, holding one token of lookahead.

    Inputs:
      - lexer: Lexer instance owned by this parser for its lifetime.

    Outputs:
      - Parser instance; call parse() or parse_collect() once.

    Example:
      >>> items = Parser(Lexer(b"a.com b.com image block\\0")).parse()
      >>> items[0].source.host
      'a.com'
    """

    def __init__(self, lexer: Lexer) -> None:
        self._lexer = lexer
        self._line = 1
        self.tok: Token = lexer.next_token()

    def parse(self) -> List[RuleItem]:
        """Brief: Process all the text in the lexer.

        Inputs:
          - None.

        Outputs:
          - list[RuleItem]: Items in source line order.

        Raises:
          - MalformedLineError: A line does not have 3 or 4 fields. Nothing
            parsed before the bad line is returned.
          - InvalidUriError / UnknownKeywordError: A filter line field could
            not be resolved.
        """

        items: List[RuleItem] = []
        while self.tok.kind is not TokenKind.END:
            line_number, parts = self._read_line()
            items.append(self._build_item(line_number, parts))

        logger.debug("Parsed %d rule items", len(items))
        return items

    def parse_collect(self) -> ParseReport:
        """Brief: Process all the text, keeping valid items and every error.

        Inputs:
          - None.

        Outputs:
          - ParseReport: Items from every valid line plus one error per
            rejected line.
        """

        report = ParseReport()
        while self.tok.kind is not TokenKind.END:
            line_number, parts = self._read_line()
            try:
                report.items.append(self._build_item(line_number, parts))
            except RuleSyntaxError as exc:
                logger.debug("Skipping line %d: %s", line_number, exc)
                report.errors.append(exc)

        logger.debug(
            "Parsed %d rule items with %d errors",
            len(report.items),
            len(report.errors),
        )
        return report

    def _build_item(self, line_number: int, parts: List[str]) -> RuleItem:
        if len(parts) == FILTER_FIELDS:
            src, dest, req, action = parts
            source = _parse_uri_field("source", src, line_number)
            destination = _parse_uri_field("destination", dest, line_number)
            req_type = REQUEST_KEYWORDS.get(req)
            if req_type is None:
                raise UnknownKeywordError("request", req, line_number)
            action_type = ACTION_KEYWORDS.get(action)
            if action_type is None:
                raise UnknownKeywordError("action", action, line_number)
            return FilterRule(source, destination, req_type, action_type)

        if len(parts) == SETTING_FIELDS:
            name, location, value = parts
            return SettingRule(name=name, location=location, value=value)

        raise MalformedLineError(line_number, len(parts))

    def _read_line(self) -> Tuple[int, List[str]]:
        """Brief: Return the line number and the words of the next line."""

        line_number = self._line
        parts: List[str] = []
        while self.tok.kind not in (TokenKind.EOL, TokenKind.END):
            parts.append(self.tok.lexeme)
            self._next()

        if self.tok.kind is TokenKind.EOL:
            # CRLF counts as one line break, lone CR or LF as one each.
            self._line += len(self.tok.lexeme.replace("\r\n", "\n"))
            self._next()

        return line_number, parts

    def _next(self) -> None:
        self.tok = self._lexer.next_token()


def _parse_uri_field(name: str, text: str, line_number: int) -> Uri:
    try:
        return parse_uri(text)
    except UriError as exc:
        raise InvalidUriError(name, text, line_number, reason=str(exc)) from exc


def read_rule_file(path: Union[str, os.PathLike]) -> bytes:
    """Brief: Read a rule file up to and including the first NUL byte.

    Inputs:
      - path: Rule file path.

    Outputs:
      - bytes: File contents, truncated after the NUL sentinel when present.
    """

    with open(path, "rb") as f:
        data = f.read()
    end = data.find(b"\0")
    if end != -1:
        data = data[: end + 1]
    return data


def parse_rules(data: bytes) -> List[RuleItem]:
    """Brief: Tokenize and parse a rule buffer (all-or-nothing)."""

    return Parser(Lexer(data)).parse()


def parse_rules_file(path: Union[str, os.PathLike]) -> List[RuleItem]:
    """Brief: Read and parse a rule file (all-or-nothing).

    Inputs:
      - path: Rule file path.

    Outputs:
      - list[RuleItem]: Parsed items in source order.

    Raises:
      - OSError: The file could not be read.
      - RuleSyntaxError: See Parser.parse().
    """

    data = read_rule_file(path)
    logger.info("Read %d bytes from %s", len(data), path)
    return parse_rules(data)
