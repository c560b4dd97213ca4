"""
Unit tests for media type parsing and Accept negotiation.
"""

import pytest

from resourceful.http import media_types
from resourceful.http.media_types import (
    MediaRange,
    best_match,
    is_xml,
    parse_accept,
    parse_media_type,
    with_charset,
)


AVAILABLE = [media_types.JSON, media_types.HTML, media_types.XML, media_types.TEXT_XML]


class TestParseMediaType:
    """Tests for parse_media_type()."""

    def test_strips_parameters(self):
        """Parameters are split off and the essence is lowercased."""
        essence, params = parse_media_type("Application/JSON; charset=UTF-8")
        assert essence == "application/json"
        assert params == {"charset": "UTF-8"}

    def test_quoted_parameter(self):
        """Quoted parameter values are unquoted."""
        _, params = parse_media_type('text/plain; format="flowed"')
        assert params["format"] == "flowed"

    def test_empty(self):
        """An empty value gives an empty essence."""
        assert parse_media_type("") == ("", {})


class TestParseAccept:
    """Tests for parse_accept()."""

    def test_missing_header_means_anything(self):
        """No header is the same as */*."""
        ranges = parse_accept(None)
        assert len(ranges) == 1
        assert (ranges[0].type, ranges[0].subtype) == ("*", "*")

    def test_sorted_by_quality(self):
        """Higher q comes first."""
        ranges = parse_accept("text/html;q=0.5, application/xml, */*;q=0.1")
        assert [str(r) for r in ranges] == [
            "application/xml;q=1",
            "text/html;q=0.5",
            "*/*;q=0.1",
        ]

    def test_specific_beats_wildcard_on_tie(self):
        """Ties on q are broken by specificity."""
        ranges = parse_accept("*/*, text/*, text/html")
        assert [r.specificity for r in ranges] == [2, 1, 0]

    def test_malformed_entries_skipped(self):
        """Garbage entries are dropped instead of failing."""
        ranges = parse_accept("garbage, */html, text/html;q=abc, application/json")
        assert [(r.type, r.subtype) for r in ranges] == [("application", "json")]

    def test_q_is_clamped(self):
        """q values outside 0..1 are clamped."""
        ranges = parse_accept("text/html;q=7")
        assert ranges[0].q == 1.0


class TestMediaRange:
    """Tests for MediaRange.matches()."""

    def test_wildcards(self):
        """*/* and type/* match what they should."""
        assert MediaRange("*", "*").matches("application/json")
        assert MediaRange("text", "*").matches("text/xml")
        assert not MediaRange("text", "*").matches("application/xml")

    def test_zero_quality_never_matches(self):
        """q=0 means "not acceptable"."""
        assert not MediaRange("text", "html", q=0).matches("text/html")


class TestBestMatch:
    """Tests for best_match()."""

    def test_exact(self):
        """An exact type is picked."""
        assert best_match("application/xml", AVAILABLE) == media_types.XML

    def test_wildcard_takes_server_order(self):
        """*/* gives the server's first preference."""
        assert best_match("*/*", AVAILABLE) == media_types.JSON

    def test_browser_accept_header(self):
        """A typical browser header gets HTML."""
        accept = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
        assert best_match(accept, AVAILABLE) == media_types.HTML

    def test_quality_ordering(self):
        """The client's q values win over the server's order."""
        accept = "application/json;q=0.2, text/xml"
        assert best_match(accept, AVAILABLE) == media_types.TEXT_XML

    def test_ties_take_server_order(self):
        """Equal q and specificity are settled by the server's order."""
        accept = "text/html;q=0.9, application/json;q=0.9"

        assert best_match(accept, [media_types.JSON, media_types.HTML]) == media_types.JSON
        assert best_match(accept, [media_types.HTML, media_types.JSON]) == media_types.HTML

    def test_specificity_beats_server_order(self):
        """A more specific range outranks a wildcard at the same q."""
        assert best_match("*/*, text/xml", AVAILABLE) == media_types.TEXT_XML

    def test_explicit_refusal_beats_wildcard(self):
        """A type refused with q=0 is skipped even under */*."""
        accept = "application/json;q=0, */*"
        assert best_match(accept, AVAILABLE) == media_types.HTML

    def test_no_match_returns_default(self):
        """Nothing acceptable gives the default."""
        assert best_match("image/png", AVAILABLE) is None
        assert best_match("image/png", AVAILABLE, default="x/y") == "x/y"


class TestHelpers:
    """Tests for is_xml() and with_charset()."""

    @pytest.mark.parametrize("value,expected", [
        ("application/xml", True),
        ("text/xml; charset=utf-8", True),
        ("application/atom+xml", True),
        ("application/json", False),
        (None, False),
    ])
    def test_is_xml(self, value, expected):
        """XML flavours are recognized."""
        assert is_xml(value) is expected

    def test_with_charset_textual(self):
        """Textual types get a charset."""
        assert with_charset("application/json") == "application/json; charset=utf-8"
        assert with_charset("text/html") == "text/html; charset=utf-8"

    def test_with_charset_keeps_existing(self):
        """An existing charset is left alone."""
        assert with_charset("text/html; charset=latin-1") == "text/html; charset=latin-1"

    def test_with_charset_binary(self):
        """Binary types don't get one."""
        assert with_charset("application/pdf") == "application/pdf"
