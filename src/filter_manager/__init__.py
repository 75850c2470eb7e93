"""filter-manager package"""

from .errors import (
    InvalidUriError,
    MalformedLineError,
    RuleSyntaxError,
    UnknownKeywordError,
)
from .lexer import Lexer, Token, TokenKind
from .parser import ParseReport, Parser, parse_rules, parse_rules_file
from .rules import (
    ACTION_KEYWORDS,
    REQUEST_KEYWORDS,
    ActionKind,
    FilterRule,
    ReqKind,
    RuleItem,
    SettingRule,
    Uri,
    UriError,
    parse_uri,
)

__all__ = [
    "ACTION_KEYWORDS",
    "REQUEST_KEYWORDS",
    "ActionKind",
    "FilterRule",
    "InvalidUriError",
    "Lexer",
    "MalformedLineError",
    "ParseReport",
    "Parser",
    "ReqKind",
    "RuleItem",
    "RuleSyntaxError",
    "SettingRule",
    "Token",
    "TokenKind",
    "UnknownKeywordError",
    "Uri",
    "UriError",
    "parse_rules",
    "parse_rules_file",
    "parse_uri",
]
