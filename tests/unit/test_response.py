"""
Unit tests for HTTP response building.
"""

import json
from datetime import datetime, timedelta, timezone
from http import HTTPStatus

import pytest

from resourceful.http import media_types
from resourceful.http.response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    created,
    no_content,
    not_found,
    bad_request,
    method_not_allowed,
    not_acceptable,
    internal_error,
    error_response,
    redirect,
    format_http_date,
)


def split(raw: bytes):
    """Split serialized response bytes into (head, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    return head.decode(), body


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=404).status_line == "HTTP/1.1 404 Not Found"

    def test_int_status_is_coerced(self):
        """Test that plain ints become HTTPStatus members."""
        response = HTTPResponse(status=201)
        assert response.status is HTTPStatus.CREATED

    def test_unknown_status(self):
        """Test that unknown codes are kept as ints."""
        response = HTTPResponse(status=599)
        assert response.status == 599
        assert response.status_line == "HTTP/1.1 599 Unknown"

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(headers={"X-Custom": "value"}, body=b"test")

        head, body = split(response.to_bytes())

        assert head.startswith("HTTP/1.1 200 OK\r\n")
        assert "X-Custom: value" in head
        assert "Content-Length: 4" in head
        assert "Server: resourceful" in head
        assert "Date: " in head
        assert body == b"test"

    def test_content_length_counts_bytes(self):
        """Test that Content-Length is the encoded length."""
        response = HTTPResponse(headers={"Content-Type": "text/plain"}, body="héllo")
        head, body = split(response.to_bytes())

        assert body == "héllo".encode("utf-8")
        assert f"Content-Length: {len(body)}" in head

    def test_head_drops_body(self):
        """Test that a HEAD answer keeps Content-Length but no body."""
        response = ok({"name": "ada"})
        head, body = split(response.to_bytes(head=True))

        assert body == b""
        assert "Content-Length: 15" in head

    def test_no_content_has_no_body(self):
        """Test that 204 responses never carry a body or length."""
        response = HTTPResponse(
            status=HTTPStatus.NO_CONTENT,
            headers={"Content-Type": "application/json"},
            body={"ignored": True},
        )
        head, body = split(response.to_bytes())

        assert body == b""
        assert "Content-Length" not in head
        assert "Content-Type" not in head

    def test_set_header_case_insensitive(self):
        """Test that set_header replaces regardless of case."""
        response = HTTPResponse(headers={"content-type": "text/plain"})
        response.set_header("Content-Type", "text/html")

        assert response.headers == {"Content-Type": "text/html"}
        assert response.get_header("CONTENT-TYPE") == "text/html"

    def test_set_header_chaining(self):
        """Test method chaining for headers."""
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers["X-One"] == "1"
        assert response.headers["X-Two"] == "2"

    def test_send_adds_charset(self):
        """Test that send() adds a charset to textual types."""
        response = HTTPResponse(headers={"Content-Type": "application/xml"}, body="<a/>")
        response.send()

        assert response.content_type == "application/xml; charset=utf-8"
        assert response.media_type == "application/xml"

    def test_send_is_cached_until_body_changes(self):
        """Test that send() caches and set_body() resets the cache."""
        response = ok({"n": 1})
        first = response.send()
        assert response.send() is first

        response.set_body({"n": 2})
        assert json.loads(response.send()) == {"n": 2}

    def test_assigning_body_resets_cache(self):
        """Test that a body assigned directly is serialized again."""
        response = ok({"n": 1})
        response.send()

        response.body = {"n": 3}
        assert json.loads(response.send()) == {"n": 3}

    def test_changing_content_type_resets_cache(self):
        """Test that a new Content-Type after send() changes the bytes."""
        response = ok({"n": 1})
        response.send()

        response.set_content_type(media_types.XML)
        assert response.send() == b"<response><n>1</n></response>"
        assert response.content_type == "application/xml; charset=utf-8"


class TestFormatterOverride:
    """Tests for replacing the formatter by assignment."""

    def test_instance_formatter(self):
        """Test that a formatter assigned on one response applies only there."""
        response = ok({"a": 1})
        response.formatter = lambda r: b"custom"

        assert response.send() == b"custom"
        assert ok({"a": 1}).send() == b'{"a": 1}'

    def test_class_formatter(self, monkeypatch):
        """Test that a plain function assigned class-wide is called with the response."""
        seen = []

        def formatter(response):
            seen.append(response)
            return "everywhere"

        monkeypatch.setattr(HTTPResponse, "formatter", formatter)
        response = ok({"a": 1})

        assert response.send() == b"everywhere"
        assert seen == [response]


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_status(self):
        """Test setting the status code."""
        response = ResponseBuilder().status(HTTPStatus.CREATED).build()
        assert response.status == HTTPStatus.CREATED

    def test_json_body(self):
        """Test that json() keeps the data and serializes on send."""
        data = {"name": "Ada", "born": 1815}
        response = ResponseBuilder().json(data).build()

        assert response.headers["Content-Type"] == "application/json; charset=utf-8"
        assert response.body == data
        assert json.loads(response.send()) == data

    def test_html_body(self):
        """Test HTML body."""
        html = "<html><body>Hello</body></html>"
        response = ResponseBuilder().html(html).build()

        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert response.send() == html.encode()

    def test_text_body(self):
        """Test plain text body."""
        response = ResponseBuilder().text("Hello, World!").build()

        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.send() == b"Hello, World!"

    def test_xml_body(self):
        """Test that xml() bodies are wrapped on send."""
        response = ResponseBuilder().xml({"name": "ada"}, content_type=media_types.TEXT_XML).build()

        assert response.media_type == "text/xml"
        assert response.send() == b"<response><name>ada</name></response>"

    def test_pdf_body(self):
        """Test that pdf() bodies become the viewer page."""
        response = ResponseBuilder().pdf("/files/report.pdf").build()
        body = response.send()

        assert b'<embed src="/files/report.pdf" type="application/pdf">' in body
        assert response.media_type == "text/html"

    def test_redirect(self):
        """Test redirect responses."""
        response = ResponseBuilder().redirect("/new-location").build()
        assert response.status == HTTPStatus.FOUND
        assert response.headers["Location"] == "/new-location"

        response = redirect("/new", permanent=True)
        assert response.status == HTTPStatus.MOVED_PERMANENTLY

    def test_cache_headers(self):
        """Test cache header setting."""
        response = ResponseBuilder().cache(max_age=3600).build()
        assert response.headers["Cache-Control"] == "public, max-age=3600"

        response = ResponseBuilder().no_cache().build()
        assert "no-store" in response.headers["Cache-Control"]

    def test_close_connection(self):
        """Test the connection close header."""
        response = ResponseBuilder().close_connection().build()
        assert response.headers["Connection"] == "close"

    def test_build_copies_headers(self):
        """Test that built responses don't share header dicts."""
        builder = ResponseBuilder().header("X-A", "1")
        first = builder.build()
        first.set_header("X-B", "2")

        assert "X-B" not in builder.build().headers


class TestConvenienceFunctions:
    """Tests for the convenience response functions."""

    def test_ok(self):
        """Test ok() picks a type from the body."""
        assert ok("Hello").send() == b"Hello"
        assert ok("Hello").media_type == "text/plain"
        assert ok({"msg": "hello"}).media_type == "application/json"
        assert ok("<p/>", content_type="text/html").media_type == "text/html"

    def test_created(self):
        """Test created() sets Location."""
        response = created({"id": 123}, location="/items/123")
        assert response.status == HTTPStatus.CREATED
        assert response.headers["Location"] == "/items/123"

    def test_no_content(self):
        """Test no_content()."""
        assert no_content().status == HTTPStatus.NO_CONTENT

    def test_error_bodies(self):
        """Test that error helpers produce {"error", "status"} bodies."""
        response = not_found("Resource not found")
        assert response.status == HTTPStatus.NOT_FOUND
        assert json.loads(response.send()) == {"error": "Resource not found", "status": 404}

        assert bad_request("Invalid input").status == HTTPStatus.BAD_REQUEST
        assert internal_error().body["error"] == "Internal Server Error"

    def test_error_as_xml(self):
        """Test rendering an error body as XML."""
        response = error_response(409, "Taken", content_type=media_types.XML)
        assert response.send() == b"<response><error>Taken</error><status>409</status></response>"

    def test_method_not_allowed(self):
        """Test that 405 carries the Allow header."""
        response = method_not_allowed(["GET", "HEAD"])
        assert response.headers["Allow"] == "GET, HEAD"

    def test_not_acceptable(self):
        """Test that 406 lists the available types."""
        response = not_acceptable([media_types.JSON, media_types.XML])
        assert "application/xml" in response.body["error"]


class TestFormatHTTPDate:
    """Tests for HTTP date formatting."""

    def test_format(self):
        """Test the RFC 7231 format."""
        dt = datetime(2026, 1, 15, 12, 30, 45, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"

    def test_converts_to_gmt(self):
        """Test that aware datetimes are converted to GMT."""
        dt = datetime(2026, 1, 15, 14, 30, 45, tzinfo=timezone(timedelta(hours=2)))
        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"
