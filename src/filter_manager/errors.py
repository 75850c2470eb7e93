"""Exceptions raised while parsing rule files."""

from __future__ import annotations

from typing import Optional


class RuleSyntaxError(ValueError):
    """
    Brief: Base class for rule file parse failures.

    Inputs:
    - message: description

    Outputs:
    - Exception instance
    """

    pass


class MalformedLineError(RuleSyntaxError):
    """
    Brief: A line has a field count other than 3 (setting) or 4 (filter).

    Inputs:
    - line_number: 1-based physical line number of the offending line
    - field_count: number of fields found on that line

    Outputs:
    - Exception instance
    """

    def __init__(self, line_number: int, field_count: int) -> None:
        self.line_number = line_number
        self.field_count = field_count
        super().__init__(
            f"line {line_number}: expected 3 or 4 fields, found {field_count}"
        )


class InvalidUriError(RuleSyntaxError):
    """
    Brief: A filter rule source or destination is not a valid URI.

    Inputs:
    - field: field name ('source' or 'destination')
    - text: literal source text of the field
    - line_number: optional 1-based physical line number
    - reason: optional detail from the URI parser

    Outputs:
    - Exception instance
    """

    def __init__(
        self,
        field: str,
        text: str,
        line_number: Optional[int] = None,
        reason: str = "",
    ) -> None:
        self.field = field
        self.text = text
        self.line_number = line_number
        msg = f"invalid {field} uri: {text}"
        if reason:
            msg = f"{msg} ({reason})"
        if line_number is not None:
            msg = f"line {line_number}: {msg}"
        super().__init__(msg)


class UnknownKeywordError(RuleSyntaxError):
    """
    Brief: A filter rule request or action keyword is not recognized.

    Inputs:
    - field: field name ('request' or 'action')
    - text: literal source text of the field
    - line_number: optional 1-based physical line number

    Outputs:
    - Exception instance
    """

    def __init__(self, field: str, text: str, line_number: Optional[int] = None):
        self.field = field
        self.text = text
        self.line_number = line_number
        msg = f"could not parse {field}: {text}"
        if line_number is not None:
            msg = f"line {line_number}: {msg}"
        super().__init__(msg)
