"""Rule data model, keyword tables and the URI parser used by filter rules.

Brief:
  A parsed rule file is an ordered list of RuleItem values. Each item is
  either a FilterRule (source, destination, request kind, action kind) or
  a SettingRule (an untyped name/location/value triplet).

Inputs:
  - Field text handed over by filter_manager.parser.

Outputs:
  - Immutable rule records and read-only keyword lookup tables.
"""

from __future__ import annotations

import enum
import ipaddress
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Union
from urllib.parse import urlsplit

# RFC 3986 unreserved + reserved characters plus percent escapes.
_URI_CHARS = re.compile(r"[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=%]+")
_ABSOLUTE = re.compile(r"([A-Za-z][A-Za-z0-9+.\-]*)://(.*)")
_HOST_LABEL = re.compile(r"(?!-)[A-Za-z0-9_\-]{1,63}(?<!-)")


class UriError(ValueError):
    """
    Brief: Text could not be parsed as a URI.

    Inputs:
    - message: description

    Outputs:
    - Exception instance
    """

    pass


@dataclass(frozen=True)
class Uri:
    """Structurally valid URI decomposed into its parts.

    Inputs:
      - text: Verbatim source text.
      - scheme: Scheme for absolute URIs, else None.
      - host: Lowercased host, or None for '*' and origin-form paths.
      - port: Explicit port, else None.
      - path / query / fragment: Remaining components ('' when absent).

    Outputs:
      - Immutable URI value; str() renders the original text.
    """

    text: str
    scheme: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    path: str = ""
    query: str = ""
    fragment: str = ""

    def __str__(self) -> str:
        return self.text


def _is_valid_host(host: str, single_label: bool = False) -> bool:
    if host == "localhost":
        return True
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    name = host[:-1] if host.endswith(".") else host
    labels = name.split(".")
    if len(labels) < 2 and not single_label:
        return False
    return all(_HOST_LABEL.fullmatch(label) for label in labels)


def _split(text: str):
    try:
        return urlsplit(text)
    except ValueError as exc:
        # Unbalanced IPv6 brackets.
        raise UriError(str(exc)) from exc


def parse_uri(text: str) -> Uri:
    """Brief: Parse rule field text into a Uri.

    Inputs:
      - text: Field text such as '*', 'example.com', 'http://a.com/x' or '/x'.

    Outputs:
      - Uri: Decomposed URI.

    Raises:
      - UriError: Empty text, characters outside the URI set, an absolute
        URI without an authority, a missing or invalid host, or an invalid
        port.

    Example:
      >>> parse_uri("https://www.example.com:8443/a?b").host
      'www.example.com'
      >>> parse_uri("example.com").port is None
      True
    """

    if not text:
        raise UriError("empty uri")
    if not _URI_CHARS.fullmatch(text):
        raise UriError("invalid uri character")

    if text == "*":
        return Uri(text=text)

    if text.startswith("/"):
        parts = _split(text)
        return Uri(
            text=text, path=parts.path, query=parts.query, fragment=parts.fragment
        )

    scheme: Optional[str] = None
    absolute = _ABSOLUTE.fullmatch(text)
    if absolute:
        scheme, rest = absolute.groups()
        if not rest or rest[0] in "/?#":
            raise UriError("missing authority")
        parts = _split(f"//{rest}")
        if parts.netloc.count("@") > 1:
            raise UriError("invalid userinfo")
        host = parts.hostname
        if not host:
            raise UriError("missing host")
        # Absolute URIs may name single-label hosts such as http://intranet.
        if not _is_valid_host(host, single_label=True):
            raise UriError("invalid host")
    else:
        parts = _split(f"//{text}")
        host = parts.hostname
        if not host or not _is_valid_host(host):
            raise UriError("invalid uri")

    try:
        port = parts.port
    except ValueError as exc:
        raise UriError("invalid port") from exc

    return Uri(
        text=text,
        scheme=scheme.lower() if scheme else None,
        host=host,
        port=port,
        path=parts.path,
        query=parts.query,
        fragment=parts.fragment,
    )


class ReqKind(enum.Enum):
    """Request category a filter rule applies to."""

    ALL = "*"
    IMAGE = "image"
    INLINE_SCRIPT = "inline-script"
    FIRST_PARTY_SCRIPT = "1p-script"
    THIRD_PARTY = "3p"
    THIRD_PARTY_SCRIPT = "3p-script"
    THIRD_PARTY_FRAME = "3p-frame"

    def __str__(self) -> str:
        return self.value


class ActionKind(enum.Enum):
    """Decision applied when a filter rule matches."""

    BLOCK = "block"
    NOOP = "noop"
    ALLOW = "allow"

    def __str__(self) -> str:
        return self.value


REQUEST_KEYWORDS: Mapping[str, ReqKind] = MappingProxyType(
    {
        "*": ReqKind.ALL,
        "image": ReqKind.IMAGE,
        "inline-script": ReqKind.INLINE_SCRIPT,
        "1p-script": ReqKind.FIRST_PARTY_SCRIPT,
        "3p": ReqKind.THIRD_PARTY,
        "3p-script": ReqKind.THIRD_PARTY_SCRIPT,
        "3p-frame": ReqKind.THIRD_PARTY_FRAME,
    }
)

ACTION_KEYWORDS: Mapping[str, ActionKind] = MappingProxyType(
    {
        "block": ActionKind.BLOCK,
        "noop": ActionKind.NOOP,
        "allow": ActionKind.ALLOW,
    }
)


@dataclass(frozen=True)
class FilterRule:
    """Allow/block/noop decision for traffic from source to destination.

    Inputs:
      - source: Parsed source URI.
      - destination: Parsed destination URI.
      - req_type: Request category the rule applies to.
      - action_type: Decision applied on match.

    Outputs:
      - Immutable filter rule.
    """

    source: Uri
    destination: Uri
    req_type: ReqKind
    action_type: ActionKind


@dataclass(frozen=True)
class SettingRule:
    """Free-form name/location/value triplet, stored verbatim."""

    name: str
    location: str
    value: str


RuleItem = Union[FilterRule, SettingRule]
