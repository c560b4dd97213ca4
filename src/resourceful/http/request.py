"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw bytes read from a client socket into an HTTPRequest that
resources can work with.

=============================================================================
WHAT A RESOURCE SEES
=============================================================================

    GET /users/ada?fields=name HTTP/1.1\r\n
    Host: localhost:8080\r\n
    Accept: application/xml\r\n
    \r\n

becomes:

    HTTPRequest(
        method="GET",
        path="/users/ada",
        query_params={"fields": ["name"]},
        headers={"host": "localhost:8080", "accept": "application/xml"},
        path_params={"name": "ada"},      ← filled in by the router
    )

The router fills `path_params` after matching the pattern the resource
was registered under (e.g. "/users/:name").

=============================================================================
PARSING RULES
=============================================================================

1. Request line: METHOD SP REQUEST-URI SP HTTP-VERSION
   - Unknown methods      → 405
   - Versions other than HTTP/1.0 and HTTP/1.1 → 505
   - Paths containing ".." → 400

2. Headers: "Name: value", names normalized to lowercase.
   - Continuation lines (leading whitespace) extend the previous header
   - Repeated headers are joined with ", "

3. Body: exactly Content-Length bytes after the blank line.

4. Size: requests larger than max_request_size → 413

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from urllib.parse import parse_qs, urlparse, unquote
import re
import json

from . import media_types


class HTTPParseError(Exception):
    """
    Raised when a request can't be parsed.

    Carries the status code the client should receive:

        400 Bad Request                - Malformed syntax, bad JSON body
        405 Method Not Allowed         - Unknown method
        413 Payload Too Large          - Request over the size limit
        505 HTTP Version Not Supported - Not HTTP/1.0 or HTTP/1.1
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         HTTP verb, upper case ("GET", "POST", ...).
                        Selects the method called on the resource.
        path:           Path without the query string.
        version:        "HTTP/1.1" or "HTTP/1.0".
        headers:        Header name (lowercase) → value.
        query_params:   "?a=1&a=2" → {"a": ["1", "2"]}
        body:           Raw body bytes.
        path_params:    Values captured by ":name" segments of the route.
        client_address: (ip, port) of the peer.
        raw:            The unparsed request bytes.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""
    path_params: Dict[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)
    raw: bytes = b""

    # Lazily computed
    _body_json: Optional[Any] = field(default=None, repr=False)
    _content_type: Optional[str] = field(default=None, repr=False)

    @property
    def content_type(self) -> Optional[str]:
        """
        Media type of the body, without parameters.

        "application/json; charset=utf-8" → "application/json"
        """
        if self._content_type is None:
            essence, _ = media_types.parse_media_type(
                self.headers.get("content-type", "")
            )
            self._content_type = essence
        return self._content_type or None

    @property
    def content_length(self) -> int:
        """Content-Length as an int (0 when missing or invalid)."""
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def accept(self) -> str:
        """
        The Accept header, or "*/*" when the client didn't send one.

        Used by resources to pick a representation.
        """
        return self.headers.get("accept", "").strip() or "*/*"

    @property
    def is_json(self) -> bool:
        return self.content_type == media_types.JSON

    @property
    def json(self) -> Any:
        """
        The body decoded as JSON (parsed once, then cached).

        Returns None for an empty body.

        Raises:
            HTTPParseError: If the body is not valid JSON.
        """
        if self._body_json is None and self.body:
            try:
                self._body_json = json.loads(self.body.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise HTTPParseError(f"Invalid JSON body: {e}")
        return self._body_json

    @property
    def text(self) -> str:
        """The body decoded as UTF-8 (undecodable bytes replaced)."""
        return self.body.decode("utf-8", errors="replace")

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client wants the connection kept open.

        HTTP/1.1 keeps connections alive unless told "Connection: close";
        HTTP/1.0 closes them unless told "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter."""
        values = self.query_params.get(name, [])
        return values[0] if values else default

    def get_query_list(self, name: str) -> list[str]:
        """All values of a query parameter."""
        return self.query_params.get(name, [])

    def param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        A path parameter captured by the route.

        Example:
            # Registered as "/users/:name", requested as "/users/ada"
            request.param("name")  # "ada"
        """
        return self.path_params.get(name, default)

    def accepts(self, media_type: str) -> bool:
        """Whether the client's Accept header admits this media type."""
        return media_types.best_match(self.accept, [media_type]) is not None


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    One parser is shared by all worker threads; it holds no per-request
    state, only the size limit.

        Raw bytes
            │
            ├── size check ──────────────► 413
            ├── find "\\r\\n\\r\\n" ─────────► 400 if missing
            ├── request line ────────────► 400 / 405 / 505
            ├── headers (lowercased)
            ├── body (Content-Length bytes)
            ▼
        HTTPRequest
    """

    VALID_METHODS = {
        "GET", "POST", "PUT", "DELETE", "PATCH",
        "HEAD", "OPTIONS", "TRACE", "CONNECT",
    }

    # METHOD SP REQUEST-URI SP HTTP/X.Y
    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")

    # Name ":" OWS value
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        """
        Args:
            max_request_size: Largest request accepted, in bytes (10 MB).
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Args:
            data: Raw request bytes (headers and body).
            client_address: Peer (ip, port), kept on the request for logging.

        Returns:
            The parsed request.

        Raises:
            HTTPParseError: If the request is malformed or too large.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
            raw=data,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, Dict[str, list[str]], str]:
        """
        Parse "GET /users/ada?x=1 HTTP/1.1".

        Returns:
            (method, path, query_params, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505,
            )

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        if ".." in path:
            raise HTTPParseError("Invalid path: contains ..", status_code=400)

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Handles obsolete line folding and joins repeated headers:

            Accept: text/html
            Accept: application/json
              → {"accept": "text/html, application/json"}
        """
        headers: Dict[str, str] = {}
        current_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient: skip junk lines

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """Parse a request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
