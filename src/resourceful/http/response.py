"""
=============================================================================
HTTP RESPONSES
=============================================================================

Builds HTTP/1.1 responses. A response carries a Python body (a dict, a
list, a string, bytes, a dataclass...) until it is sent; only then is the
body serialized according to the response's Content-Type.

=============================================================================
RESPONSE LIFECYCLE
=============================================================================

    Resource returns      send()                     to_bytes()
    HTTPResponse   ────►  formatter picks an   ────► status line + headers
    (body = dict)         entry by Content-Type      + serialized body
                          and serializes the body

    HTTPResponse(                     HTTP/1.1 200 OK\\r\\n
      status=200,                     Content-Type: application/json; charset=utf-8\\r\\n
      headers={"Content-Type":        Content-Length: 14\\r\\n
               "application/json"},   ...
      body={"name": "ada"},           \\r\\n
    )                                 {"name": "ada"}

The formatter (see formatters.py) is looked up on the response itself,
so it can be replaced for one response, for a whole server, or for every
response by assigning HTTPResponse.formatter.

=============================================================================
BUILDER
=============================================================================

    response = (ResponseBuilder()
        .status(HTTPStatus.CREATED)
        .xml({"name": "ada"})
        .header("Location", "/users/ada")
        .build())

=============================================================================
"""

import inspect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Callable, ClassVar, Dict, Optional, Tuple, Union

from . import media_types
from .formatters import default_formatter


# Statuses that must never carry a body (RFC 7230 section 3.3.3)
BODYLESS_STATUSES = {HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED}


def coerce_status(status: Union[int, HTTPStatus]) -> Union[int, HTTPStatus]:
    """Turn a plain int into an HTTPStatus where the code is known."""
    if isinstance(status, HTTPStatus):
        return status
    try:
        return HTTPStatus(int(status))
    except ValueError:
        return int(status)


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be sent.

    Attributes:
        status:  HTTPStatus (plain ints are converted)
        headers: Header name → value (names as they should be sent)
        body:    Any Python object; serialized by send()
        version: HTTP version for the status line

    Class attributes:
        formatter: Callable (response) → bytes used by send(). Assigning
                   to HTTPResponse.formatter replaces it for every
                   response; assigning on an instance replaces it for
                   that response only.
    """

    formatter: ClassVar[Callable[["HTTPResponse"], bytes]] = default_formatter

    status: Union[HTTPStatus, int] = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = b""
    version: str = "HTTP/1.1"

    # Serialized body, cached by send() together with the (body, Content-Type)
    # it was made from
    _payload: Optional[bytes] = field(default=None, repr=False, compare=False)
    _payload_source: Optional[Tuple[Any, Optional[str]]] = field(
        default=None, repr=False, compare=False
    )

    def __post_init__(self):
        self.status = coerce_status(self.status)

    # =========================================================================
    # STATUS
    # =========================================================================

    @property
    def reason(self) -> str:
        """Reason phrase for the status line ("OK", "Not Found", ...)."""
        if isinstance(self.status, HTTPStatus):
            return self.status.phrase
        return "Unknown"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK" """
        return f"{self.version} {int(self.status)} {self.reason}"

    @property
    def has_body(self) -> bool:
        """False for 1xx, 204 and 304, which never carry a body."""
        return not (100 <= int(self.status) < 200 or self.status in BODYLESS_STATUSES)

    # =========================================================================
    # HEADERS
    # =========================================================================

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a header, replacing any existing one regardless of case.

        Returns:
            Self for method chaining
        """
        lowered = name.lower()
        for key in [k for k in self.headers if k.lower() == lowered]:
            del self.headers[key]
        self.headers[name] = value
        return self

    def remove_header(self, name: str) -> "HTTPResponse":
        lowered = name.lower()
        for key in [k for k in self.headers if k.lower() == lowered]:
            del self.headers[key]
        return self

    @property
    def content_type(self) -> Optional[str]:
        """The Content-Type header as set (parameters included)."""
        return self.get_header("Content-Type")

    @property
    def media_type(self) -> Optional[str]:
        """The Content-Type without parameters, lowercased."""
        content_type = self.content_type
        if not content_type:
            return None
        essence, _ = media_types.parse_media_type(content_type)
        return essence

    def set_content_type(self, content_type: str) -> "HTTPResponse":
        """Set the Content-Type header."""
        return self.set_header("Content-Type", content_type)

    def get_formatter(self) -> Callable[["HTTPResponse"], bytes]:
        """
        The formatter in effect for this response.

        Looked up statically so that a plain function assigned to
        HTTPResponse.formatter is called with the response, not bound
        as a method.
        """
        return inspect.getattr_static(self, "formatter")

    # =========================================================================
    # BODY
    # =========================================================================

    def set_body(self, body: Any) -> "HTTPResponse":
        """
        Replace the body.

        The body is kept as-is; serialization happens in send().

        Returns:
            Self for method chaining
        """
        self.body = body
        self._payload = None
        return self

    def send(self) -> bytes:
        """
        Serialize the body with the response's formatter.

        =====================================================================
        WHAT send() DOES
        =====================================================================

        1. Bodyless statuses (204, 304, 1xx) → b""
        2. Run self.formatter(self), which dispatches on Content-Type
        3. Add "charset=utf-8" to textual Content-Types lacking one
        4. Cache the result so repeated sends are stable

        =====================================================================

        The cache is reused only while `body` is the same object and the
        Content-Type is unchanged; assigning either re-serializes.

        Returns:
            The body bytes to put on the wire.
        """
        if self._payload is not None and self._cache_valid():
            return self._payload

        if not self.has_body:
            payload = b""
        else:
            payload = self.get_formatter()(self)
            if isinstance(payload, str):
                payload = payload.encode("utf-8")

            content_type = self.content_type
            if content_type:
                self.set_content_type(media_types.with_charset(content_type))

        self._payload = bytes(payload)
        self._payload_source = (self.body, self.content_type)
        return self._payload

    def _cache_valid(self) -> bool:
        if self._payload_source is None:
            return False
        body, content_type = self._payload_source
        return body is self.body and content_type == self.content_type

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_bytes(self, server_name: str = "resourceful", head: bool = False) -> bytes:
        """
        Serialize the whole response for socket.sendall().

            HTTP/1.1 200 OK\\r\\n
            Content-Type: application/json; charset=utf-8\\r\\n
            Content-Length: 14\\r\\n        ← from the serialized body
            Date: Sun, 18 Oct 2026 ...\\r\\n
            Server: resourceful\\r\\n
            \\r\\n
            {"name": "ada"}

        Args:
            server_name: Value for the Server header.
            head: Answering a HEAD request: keep the headers (including
                  the Content-Length a GET would have had), drop the body.

        Returns:
            Complete response bytes.
        """
        payload = self.send()
        response_headers = dict(self.headers)
        present = {name.lower() for name in response_headers}

        if self.has_body:
            if "content-length" not in present:
                response_headers["Content-Length"] = str(len(payload))
        else:
            for name in list(response_headers):
                if name.lower() in ("content-length", "content-type"):
                    del response_headers[name]

        if "date" not in present:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "server" not in present:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        if head:
            return header_bytes
        return header_bytes + payload


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

    Every method but build() returns the builder:

        ResponseBuilder().status(HTTPStatus.OK).json({"ok": True}).build()

    The body methods (json, xml, html, text, pdf) set both the body and
    the matching Content-Type; the formatter does the actual encoding
    when the response is sent.
    """

    def __init__(self):
        self._status: Union[HTTPStatus, int] = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: Any = b""

    # =========================================================================
    # STATUS AND HEADERS
    # =========================================================================

    def status(self, status: Union[HTTPStatus, int]) -> "ResponseBuilder":
        self._status = coerce_status(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    # =========================================================================
    # BODY
    # =========================================================================

    def body(self, body: Any) -> "ResponseBuilder":
        """Set the body without touching Content-Type."""
        self._body = body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text
        return self.content_type(content_type)

    def html(self, html: str) -> "ResponseBuilder":
        self._body = html
        return self.content_type("text/html; charset=utf-8")

    def json(self, data: Any) -> "ResponseBuilder":
        """Body serialized as JSON when sent."""
        self._body = data
        return self.content_type("application/json; charset=utf-8")

    def xml(self, data: Any, content_type: str = media_types.XML) -> "ResponseBuilder":
        """
        Body wrapped in the formatter's XML root tag when sent.

        Args:
            data: Bytes of XML content, or text or a dict/list to convert
            content_type: application/xml (default) or text/xml
        """
        self._body = data
        return self.content_type(content_type)

    def pdf(self, document: Union[str, bytes]) -> "ResponseBuilder":
        """
        Body shown in the PDF viewer page when sent.

        Args:
            document: URL of the PDF, or the PDF bytes themselves
        """
        self._body = document
        return self.content_type(media_types.PDF)

    # =========================================================================
    # REDIRECTS AND CACHING
    # =========================================================================

    def redirect(self, location: str, permanent: bool = False) -> "ResponseBuilder":
        """301 when permanent, 302 otherwise."""
        self._status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
        self._headers["Location"] = location
        return self

    def no_cache(self) -> "ResponseBuilder":
        self._headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
        self._headers["Pragma"] = "no-cache"
        self._headers["Expires"] = "0"
        return self

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        self._headers["Cache-Control"] = f"public, max-age={max_age}"
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an RFC 7231 HTTP-date.

    Example: "Sun, 18 Oct 2026 12:00:00 GMT"

    HTTP dates are always GMT; aware datetimes are converted to UTC first.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
#     return ok({"name": "ada"})
#     return created({"id": 1}, location="/users/1")
#     return not_found("No such user")
#
# Error helpers produce {"error": ..., "status": ...} bodies. They default
# to JSON; pass content_type to render them as XML or HTML instead.
#
# =============================================================================

def ok(body: Any = "", content_type: Optional[str] = None) -> HTTPResponse:
    """
    200 OK.

    dict/list → JSON, str → text/plain, bytes → raw (unless content_type
    says otherwise).
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)

    if content_type:
        builder.body(body).content_type(content_type)
    elif isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body)
    else:
        builder.body(body)

    return builder.build()


def created(body: Any = "", location: Optional[str] = None) -> HTTPResponse:
    """201 Created, optionally with a Location header."""
    builder = ResponseBuilder().status(HTTPStatus.CREATED)

    if isinstance(body, (dict, list)):
        builder.json(body)
    elif body:
        builder.body(body)

    if location:
        builder.header("Location", location)

    return builder.build()


def no_content() -> HTTPResponse:
    """204 No Content."""
    return ResponseBuilder().status(HTTPStatus.NO_CONTENT).build()


def redirect(location: str, permanent: bool = False) -> HTTPResponse:
    return ResponseBuilder().redirect(location, permanent).build()


def error_response(
    status: Union[HTTPStatus, int],
    message: Optional[str] = None,
    content_type: str = media_types.JSON,
    headers: Optional[Dict[str, str]] = None,
) -> HTTPResponse:
    """
    An error response with a {"error": message, "status": code} body.

    Args:
        status: Error status code
        message: Description for the client (defaults to the reason phrase)
        content_type: Representation of the error body
        headers: Extra headers (e.g. Allow for 405)
    """
    status = coerce_status(status)
    if message is None:
        message = status.phrase if isinstance(status, HTTPStatus) else "Error"

    builder = (ResponseBuilder()
        .status(status)
        .body({"error": message, "status": int(status)})
        .content_type(content_type))
    if headers:
        builder.headers(headers)
    return builder.build()


def bad_request(message: str = "Bad Request", content_type: str = media_types.JSON) -> HTTPResponse:
    return error_response(HTTPStatus.BAD_REQUEST, message, content_type)


def not_found(message: str = "Not Found", content_type: str = media_types.JSON) -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, message, content_type)


def method_not_allowed(
    allowed_methods: list[str],
    content_type: str = media_types.JSON,
) -> HTTPResponse:
    """405 with the Allow header listing the verbs the resource supports."""
    return error_response(
        HTTPStatus.METHOD_NOT_ALLOWED,
        "Method Not Allowed",
        content_type,
        headers={"Allow": ", ".join(allowed_methods)},
    )


def not_acceptable(available: list[str], content_type: str = media_types.JSON) -> HTTPResponse:
    """406 listing the representations that are available."""
    return error_response(
        HTTPStatus.NOT_ACCEPTABLE,
        f"Not Acceptable. Available types: {', '.join(available)}",
        content_type,
    )


def internal_error(
    message: str = "Internal Server Error",
    content_type: str = media_types.JSON,
) -> HTTPResponse:
    """500. Keep the message generic; details belong in the log."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message, content_type)
