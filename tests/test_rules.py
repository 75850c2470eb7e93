"""
Brief: Tests for filter_manager.rules: URI parsing and keyword tables.

Inputs:
  - None

Outputs:
  - None
"""

import pytest

from filter_manager.rules import (
    ACTION_KEYWORDS,
    REQUEST_KEYWORDS,
    ActionKind,
    ReqKind,
    Uri,
    UriError,
    parse_uri,
)


def test_parse_uri_absolute_components():
    """
    Brief: Absolute URIs are decomposed into scheme, host, port, path and query.

    Inputs:
      - text: https URI with port, path, query and fragment

    Outputs:
      - None: Asserts every component
    """
    uri = parse_uri("HTTPS://WWW.Example.com:8443/a/b?x=1#top")
    assert uri.scheme == "https"
    assert uri.host == "www.example.com"
    assert uri.port == 8443
    assert uri.path == "/a/b"
    assert uri.query == "x=1"
    assert uri.fragment == "top"
    assert str(uri) == "HTTPS://WWW.Example.com:8443/a/b?x=1#top"


@pytest.mark.parametrize(
    "text,host",
    [
        ("a.com", "a.com"),
        ("sub.a.co.uk", "sub.a.co.uk"),
        ("a.com:8080", "a.com"),
        ("a.com/path", "a.com"),
        ("localhost", "localhost"),
        ("127.0.0.1", "127.0.0.1"),
        ("[::1]:80", "::1"),
        ("http://intranet", "intranet"),
    ],
)
def test_parse_uri_authority_forms(text, host):
    """
    Brief: Bare authorities and absolute URIs expose their host.

    Inputs:
      - text: URI text
      - host: expected host

    Outputs:
      - None: Asserts host and verbatim rendering
    """
    uri = parse_uri(text)
    assert uri.host == host
    assert str(uri) == text


def test_parse_uri_asterisk_and_origin_form():
    """
    Brief: '*' and '/path' forms parse without a host.

    Inputs:
      - None

    Outputs:
      - None: Asserts host None and path captured
    """
    star = parse_uri("*")
    assert star == Uri(text="*")
    assert star.host is None

    origin = parse_uri("/static/app.js?v=2")
    assert origin.host is None
    assert origin.path == "/static/app.js"
    assert origin.query == "v=2"


@pytest.mark.parametrize(
    "text",
    [
        "",
        "not-a-uri",
        "example",
        "a b.com",
        "a.com\t",
        "a.com:http",
        "http://",
        "http:///path",
        "1http://a.com",
        "http://a..b",
        "http://-",
        "http://-a.com",
        "http://a-.com",
        "http://a@b@c",
        "http://a.com:80:90",
        "-bad.com",
        "a..com",
        "[::1",
        "a.com/<x>",
    ],
)
def test_parse_uri_rejects_invalid(text):
    """
    Brief: Invalid URI text raises UriError, which is a ValueError.

    Inputs:
      - text: invalid URI text

    Outputs:
      - None: Asserts UriError raised
    """
    with pytest.raises(UriError):
        parse_uri(text)
    assert issubclass(UriError, ValueError)


def test_keyword_tables_cover_every_kind():
    """
    Brief: Each enum member is reachable from exactly one keyword.

    Inputs:
      - None

    Outputs:
      - None: Asserts the tables are bijections onto the enums
    """
    assert set(REQUEST_KEYWORDS.values()) == set(ReqKind)
    assert len(REQUEST_KEYWORDS) == len(ReqKind) == 7
    assert set(ACTION_KEYWORDS.values()) == set(ActionKind)
    assert len(ACTION_KEYWORDS) == len(ActionKind) == 3


def test_keyword_round_trip():
    """
    Brief: Rendering a kind and resolving the text again gives the same kind.

    Inputs:
      - None

    Outputs:
      - None: Asserts str(kind) round-trips through the tables
    """
    for kind in ReqKind:
        assert REQUEST_KEYWORDS[str(kind)] is kind
    for action in ActionKind:
        assert ACTION_KEYWORDS[str(action)] is action
    assert str(ReqKind.ALL) == "*"
    assert str(ReqKind.FIRST_PARTY_SCRIPT) == "1p-script"
    assert str(ActionKind.NOOP) == "noop"


def test_keyword_tables_are_read_only():
    """
    Brief: The keyword tables reject runtime mutation.

    Inputs:
      - None

    Outputs:
      - None: Asserts TypeError on item assignment and deletion
    """
    with pytest.raises(TypeError):
        REQUEST_KEYWORDS["video"] = ReqKind.IMAGE  # type: ignore[index]
    with pytest.raises(TypeError):
        del ACTION_KEYWORDS["block"]  # type: ignore[attr-defined]


def test_keywords_are_case_sensitive():
    """
    Brief: Keyword lookup is an exact string match.

    Inputs:
      - None

    Outputs:
      - None: Asserts upper-case variants are absent
    """
    assert "IMAGE" not in REQUEST_KEYWORDS
    assert "Block" not in ACTION_KEYWORDS
