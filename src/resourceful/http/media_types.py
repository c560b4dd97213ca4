"""
=============================================================================
MEDIA TYPES AND CONTENT NEGOTIATION
=============================================================================

Parses media types and Accept headers, and picks the representation a
resource should produce for a given client.

=============================================================================
ACCEPT HEADER ANATOMY
=============================================================================

    Accept: text/html, application/xml;q=0.9, */*;q=0.8
            ────┬────  ────────┬──────────── ─────┬─────
                │              │                  │
           q=1.0 (implied)   q=0.9            anything else

Each entry is a media RANGE, not a media type: it may contain wildcards
(`*/*`, `text/*`) and a quality value `q` between 0 and 1. Ranges are
ranked by q first, then by how specific they are:

    text/html;level=1  >  text/html  >  text/*  >  */*

An entry with q=0 means "never send me this".

=============================================================================
NEGOTIATION
=============================================================================

    best_match("text/html, application/json;q=0.5",
               ["application/json", "text/html"])
        → "text/html"

The server lists what it can produce (in its own order of preference);
the client's ranking wins, and server order breaks ties.

=============================================================================
"""

from dataclasses import dataclass, field
from itertools import groupby
from typing import Dict, Iterable, List, Optional, Tuple


# =============================================================================
# COMMON MEDIA TYPES
# =============================================================================

JSON = "application/json"
HTML = "text/html"
XML = "application/xml"
TEXT_XML = "text/xml"
PDF = "application/pdf"
PLAIN = "text/plain"
OCTET_STREAM = "application/octet-stream"

# Types that are text and should advertise a charset
TEXTUAL_TYPES = {JSON, XML}


@dataclass
class MediaRange:
    """
    One entry of an Accept header.

    Example:
        "text/*;q=0.5" → MediaRange(type="text", subtype="*", q=0.5)
    """

    type: str
    subtype: str
    q: float = 1.0
    params: Dict[str, str] = field(default_factory=dict)

    @property
    def specificity(self) -> int:
        """
        How specific the range is (higher wins ties on q).

            */*           → 0
            text/*        → 1
            text/html     → 2
            text/html;a=b → 3
        """
        if self.type == "*":
            return 0
        if self.subtype == "*":
            return 1
        return 2 + (1 if self.params else 0)

    def matches(self, media_type: str) -> bool:
        """Check whether a concrete media type falls inside this range."""
        if self.q <= 0:
            return False
        essence, _ = parse_media_type(media_type)
        type_, _, subtype = essence.partition("/")
        if self.type == "*":
            return True
        if self.type != type_:
            return False
        return self.subtype == "*" or self.subtype == subtype

    def __str__(self) -> str:
        return f"{self.type}/{self.subtype};q={self.q:g}"


def parse_media_type(value: str) -> Tuple[str, Dict[str, str]]:
    """
    Split a media type into its essence and parameters.

    Args:
        value: e.g. "Application/JSON; charset=utf-8"

    Returns:
        ("application/json", {"charset": "utf-8"})
    """
    parts = value.split(";")
    essence = parts[0].strip().lower()
    params: Dict[str, str] = {}
    for part in parts[1:]:
        name, sep, param_value = part.partition("=")
        if not sep:
            continue
        params[name.strip().lower()] = param_value.strip().strip('"')
    return essence, params


def parse_accept(header: Optional[str]) -> List[MediaRange]:
    """
    Parse an Accept header into media ranges, best first.

    A missing or blank header is treated as "*/*". Malformed entries
    (no slash, unparsable q) are skipped rather than failing the request.

    Args:
        header: Raw Accept header value

    Returns:
        Media ranges sorted by (q, specificity), highest first.
        The sort is stable, so the client's order breaks remaining ties.
    """
    if not header or not header.strip():
        return [MediaRange("*", "*")]

    ranges: List[MediaRange] = []
    for entry in header.split(","):
        entry = entry.strip()
        if not entry:
            continue

        essence, params = parse_media_type(entry)
        type_, sep, subtype = essence.partition("/")
        if not sep or not type_ or not subtype:
            continue
        # "*/html" is not a valid range
        if type_ == "*" and subtype != "*":
            continue

        q = 1.0
        if "q" in params:
            try:
                q = float(params.pop("q"))
            except ValueError:
                continue
            q = min(max(q, 0.0), 1.0)

        ranges.append(MediaRange(type_, subtype, q, params))

    ranges.sort(key=lambda r: (r.q, r.specificity), reverse=True)
    return ranges


def best_match(
    accept: Optional[str],
    available: Iterable[str],
    default: Optional[str] = None,
) -> Optional[str]:
    """
    Choose the best media type the server can produce for this client.

    Args:
        accept: The client's Accept header (None/blank means anything).
        available: Media types the server can produce, most preferred first.
        default: Returned when nothing in `available` is acceptable.

    Returns:
        One of `available`, or `default`.

    Ranges are tried best first. When several ranges share the same q
    and specificity, the server's order of `available` decides:

        >>> best_match("text/html;q=0.9, application/json;q=0.9",
        ...            ["application/json", "text/html"])
        'application/json'

    Example:
        >>> best_match("application/xml", ["application/json", "application/xml"])
        'application/xml'
        >>> best_match("*/*", ["application/json", "text/html"])
        'application/json'
        >>> best_match("image/png", ["application/json"], default=None) is None
        True
    """
    candidates = list(available)
    ranges = parse_accept(accept)

    # Explicit refusals ("text/html;q=0") knock a type out entirely,
    # even when a wildcard would otherwise admit it.
    refused = {
        f"{r.type}/{r.subtype}"
        for r in ranges
        if r.q <= 0 and r.type != "*" and r.subtype != "*"
    }

    for _, group in groupby(ranges, key=lambda r: (r.q, r.specificity)):
        tied = list(group)
        for candidate in candidates:
            essence, _ = parse_media_type(candidate)
            if essence in refused:
                continue
            if any(media_range.matches(essence) for media_range in tied):
                return candidate
    return default


def is_xml(media_type: Optional[str]) -> bool:
    """True for application/xml, text/xml and any +xml suffix type."""
    if not media_type:
        return False
    essence, _ = parse_media_type(media_type)
    return essence in (XML, TEXT_XML) or essence.endswith("+xml")


def is_textual(media_type: Optional[str]) -> bool:
    """
    Check whether a media type carries text and should declare a charset.

    All text/* types qualify, as do JSON and XML flavours.
    """
    if not media_type:
        return False
    essence, _ = parse_media_type(media_type)
    return (
        essence.startswith("text/")
        or essence in TEXTUAL_TYPES
        or essence.endswith("+json")
        or essence.endswith("+xml")
    )


def with_charset(media_type: str, charset: str = "utf-8") -> str:
    """
    Append a charset parameter to textual types that don't have one.

        "application/json"              → "application/json; charset=utf-8"
        "text/html; charset=iso-8859-1" → unchanged
        "application/pdf"               → unchanged
    """
    _, params = parse_media_type(media_type)
    if "charset" in params or not is_textual(media_type):
        return media_type
    return f"{media_type}; charset={charset}"
