"""Reports and rewrites built on top of parsed rule items.

Brief:
  Consumers of the ordered RuleItem list returned by the parser:
    - destination frequency counts
    - filter rules whose source is a subdomain of a registrable domain
    - re-serialization with sources collapsed to their registrable domain

Inputs:
  - list[RuleItem] from filter_manager.parser

Outputs:
  - Report rows and serialized rule lines
"""

from __future__ import annotations

import ipaddress
import logging
from collections import Counter
from typing import Iterable, List, Optional, TextIO, Tuple

import tldextract

from .rules import FilterRule, RuleItem, SettingRule, Uri

logger = logging.getLogger(__name__)

CATCH_ALL = "*"


def make_extractor(offline: bool = True) -> tldextract.TLDExtract:
    """Brief: Build a public suffix extractor.

    Inputs:
      - offline: When True, only the suffix list snapshot bundled with
        tldextract is used and nothing is fetched or cached on disk.

    Outputs:
      - tldextract.TLDExtract instance.
    """

    if offline:
        return tldextract.TLDExtract(suffix_list_urls=(), cache_dir=None)
    return tldextract.TLDExtract()


def registrable_domain(host: str, extractor: tldextract.TLDExtract) -> str:
    """Brief: Return the public-suffix aware root domain of host.

    Inputs:
      - host: Hostname such as 'www.example.co.uk'.
      - extractor: tldextract.TLDExtract instance.

    Outputs:
      - str: Registrable domain ('example.co.uk'), or host itself when it has
        none (IP literals, bare public suffixes, single labels). A TLD that is
        not on the suffix list counts as a one-label suffix, so
        'www.example.lan' reduces to 'example.lan'.
    """

    ext = extractor(host)
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}"
    if ext.suffix or _is_ip(host):
        return host
    labels = host.rstrip(".").split(".")
    if len(labels) < 2:
        return host
    return ".".join(labels[-2:])


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def destination_key(uri: Uri) -> str:
    """Brief: Text a destination is counted under.

    Inputs:
      - uri: Parsed destination URI.

    Outputs:
      - str: The verbatim text, except that an absolute URI with an empty
        path gets '/' as its path ('http://b.com' -> 'http://b.com/').
    """

    text = str(uri)
    if uri.scheme is None or uri.path:
        return text
    # With an empty path the authority ends at the first '?' or '#'.
    cut = len(text)
    for mark in ("?", "#"):
        pos = text.find(mark, len(uri.scheme) + 3)
        if pos != -1:
            cut = min(cut, pos)
    return f"{text[:cut]}/{text[cut:]}"


def _check_item(item: object) -> None:
    if not isinstance(item, (FilterRule, SettingRule)):
        raise TypeError(f"unsupported rule item: {item!r}")


def destination_counts(
    rules: Iterable[RuleItem], min_count: int = 2
) -> List[Tuple[str, int]]:
    """Brief: Count how many filter rules target each destination.

    Inputs:
      - rules: Parsed rule items.
      - min_count: Only destinations seen at least this often are returned.

    Outputs:
      - list[(destination, count)] sorted ascending by count; ties keep the
        order of first appearance. Destinations are keyed by
        destination_key(), and the '*' destination is never counted.
    """

    counts: Counter = Counter()
    for item in rules:
        _check_item(item)
        if isinstance(item, SettingRule):
            continue
        dest = destination_key(item.destination)
        if dest == CATCH_ALL:
            continue
        counts[dest] += 1

    rows = [(dest, n) for dest, n in counts.items() if n >= min_count]
    rows.sort(key=lambda row: row[1])
    return rows


def subdomain_rules(
    rules: Iterable[RuleItem], extractor: tldextract.TLDExtract
) -> List[Tuple[str, str]]:
    """Brief: Find filter rules whose source host is below its root domain.

    Inputs:
      - rules: Parsed rule items.
      - extractor: tldextract.TLDExtract instance.

    Outputs:
      - list[(source_host, destination)] in rule order.
    """

    rows: List[Tuple[str, str]] = []
    for item in rules:
        _check_item(item)
        if isinstance(item, SettingRule):
            continue
        host = item.source.host
        if host is None:
            continue
        if len(registrable_domain(host, extractor)) < len(host):
            rows.append((host, str(item.destination)))
    return rows


def render_rule(item: RuleItem, source: Optional[str] = None) -> str:
    """Brief: Render one rule item back into its line layout.

    Inputs:
      - item: FilterRule or SettingRule.
      - source: Optional replacement text for a filter rule source.

    Outputs:
      - str: Line text without the trailing newline.
    """

    if isinstance(item, SettingRule):
        return f"{item.name} {item.location} {item.value}"
    if isinstance(item, FilterRule):
        src = source if source is not None else str(item.source)
        return f"{src} {item.destination} {item.req_type} {item.action_type}"
    raise TypeError(f"unsupported rule item: {item!r}")


def write_without_subdomain(
    rules: Iterable[RuleItem], out: TextIO, extractor: tldextract.TLDExtract
) -> int:
    """Brief: Write rules with every filter source reduced to its root domain.

    Inputs:
      - rules: Parsed rule items.
      - out: Writable text stream.
      - extractor: tldextract.TLDExtract instance.

    Outputs:
      - int: Number of lines written.
    """

    written = 0
    for item in rules:
        source = None
        if isinstance(item, FilterRule) and item.source.host is not None:
            source = registrable_domain(item.source.host, extractor)
        out.write(render_rule(item, source) + "\n")
        written += 1

    out.flush()
    logger.debug("Wrote %d rule lines", written)
    return written
