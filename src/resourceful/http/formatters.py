"""
=============================================================================
RESPONSE FORMATTERS
=============================================================================

A formatter turns a response's Python body into bytes, based on the
response's Content-Type. It is the last step before the response is
written to the socket.

=============================================================================
THE DISPATCH TABLE
=============================================================================

    ┌──────────────────────────────┬──────────────────────────────────────┐
    │  Content-Type                │  What happens to the body            │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │  text/html                   │  passed through                      │
    │  application/json            │  serialized with json.dumps          │
    │  application/pdf             │  embedded in a fixed PDF viewer page │
    │  application/xml, text/xml   │  wrapped in <response>...</response> │
    │  anything else               │  passed through                      │
    └──────────────────────────────┴──────────────────────────────────────┘

Parameters on the Content-Type ("; charset=utf-8") are ignored for the
lookup.

=============================================================================
OVERRIDING
=============================================================================

The formatter is an ordinary attribute, so it can be replaced wholesale
by assignment:

    class PlainFormatter(ResponseFormatter):
        def format_json(self, response):
            return repr(response.body).encode()

    server.formatter = PlainFormatter()          # every response of a server
    HTTPResponse.formatter = PlainFormatter()    # every response, everywhere
    response.formatter = PlainFormatter()        # one response

Any callable taking the response and returning bytes works too:

    server.formatter = lambda response: str(response.body).encode()

Single entries can be swapped without subclassing:

    formatter = ResponseFormatter()
    formatter.register("text/csv", to_csv)

=============================================================================
"""

from __future__ import annotations

import base64
import dataclasses
import html
import json
import re
import xml.etree.ElementTree as ET
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Union

from . import media_types

if TYPE_CHECKING:
    from .response import HTTPResponse


# A formatter entry: takes the response, returns the encoded body
FormatFunc = Callable[["HTTPResponse"], Union[bytes, str]]

# Valid XML element names (conservative subset of the XML Name production)
_XML_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")


PDF_VIEWER_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Document</title>
<style>
html, body {{ margin: 0; padding: 0; height: 100%; overflow: hidden; }}
embed {{ display: block; width: 100%; height: 100%; border: 0; }}
</style>
</head>
<body>
<embed src="{src}" type="application/pdf">
</body>
</html>
"""


class ResponseFormatter:
    """
    Serializes response bodies according to their Content-Type.

    Attributes:
        xml_root_tag: Tag that XML bodies are wrapped in.
        json_indent: Indentation for JSON output (None = compact).
    """

    xml_root_tag = "response"
    json_indent: Optional[int] = None

    def __init__(self, xml_root_tag: Optional[str] = None,
                 json_indent: Optional[int] = None):
        if xml_root_tag is not None:
            if not _XML_NAME.match(xml_root_tag):
                raise ValueError(f"Invalid XML tag name: {xml_root_tag!r}")
            self.xml_root_tag = xml_root_tag
        if json_indent is not None:
            self.json_indent = json_indent

        self._table: Dict[str, FormatFunc] = {
            media_types.HTML: self.format_html,
            media_types.JSON: self.format_json,
            media_types.PDF: self.format_pdf,
            media_types.XML: self.format_xml,
            media_types.TEXT_XML: self.format_xml,
        }

    # =========================================================================
    # TABLE MANAGEMENT
    # =========================================================================

    def register(self, media_type: str, func: FormatFunc) -> "ResponseFormatter":
        """
        Add or replace the entry for a media type.

        Args:
            media_type: e.g. "text/csv" (parameters are ignored)
            func: Called with the response, returns bytes or str

        Returns:
            Self for method chaining
        """
        essence, _ = media_types.parse_media_type(media_type)
        self._table[essence] = func
        return self

    def lookup(self, media_type: Optional[str]) -> FormatFunc:
        """Find the entry for a Content-Type, falling back to format_default."""
        essence, _ = media_types.parse_media_type(media_type or "")
        return self._table.get(essence, self.format_default)

    @property
    def supported_types(self) -> list[str]:
        """Media types with a dedicated entry, in registration order."""
        return list(self._table)

    # =========================================================================
    # ENTRY POINT
    # =========================================================================

    def format(self, response: "HTTPResponse") -> bytes:
        """
        Serialize the response body.

        Entries may rewrite the response's Content-Type (the PDF viewer
        does), so callers should read the header after formatting.
        """
        result = self.lookup(response.content_type)(response)
        if isinstance(result, str):
            return result.encode("utf-8")
        return result

    def __call__(self, response: "HTTPResponse") -> bytes:
        return self.format(response)

    # =========================================================================
    # TABLE ENTRIES
    # =========================================================================

    def format_html(self, response: "HTTPResponse") -> bytes:
        """
        text/html: strings and bytes go out untouched.

        Structured bodies (dicts, lists) are rendered as a minimal HTML
        page so that a browser asking for text/html still gets something
        readable.
        """
        body = response.body
        if isinstance(body, (dict, list, tuple)):
            return _html_page(body).encode("utf-8")
        return _passthrough(body)

    def format_json(self, response: "HTTPResponse") -> bytes:
        """
        application/json: serialize with json.dumps.

        Bytes are assumed to be pre-encoded JSON and pass through. A
        str body is serialized as a JSON string.
        """
        body = response.body
        if isinstance(body, (bytes, bytearray)):
            return bytes(body)
        return json.dumps(
            body,
            indent=self.json_indent,
            ensure_ascii=False,
            default=_json_default,
        ).encode("utf-8")

    def format_pdf(self, response: "HTTPResponse") -> bytes:
        """
        application/pdf: embed the document in a fixed viewer page.

        A str body is the document's URL; a bytes body is the document
        itself and is inlined as a base64 data URI. The response becomes
        text/html since that is what is actually sent.
        """
        body = response.body
        if isinstance(body, (bytes, bytearray)):
            encoded = base64.b64encode(bytes(body)).decode("ascii")
            src = f"data:{media_types.PDF};base64,{encoded}"
        elif body is None:
            src = ""
        else:
            src = str(body)

        response.set_content_type(media_types.with_charset(media_types.HTML))
        return PDF_VIEWER_TEMPLATE.format(src=html.escape(src, quote=True)).encode("utf-8")

    def format_xml(self, response: "HTTPResponse") -> bytes:
        """
        application/xml, text/xml: wrap the body in the root tag.

            "Tom & Jerry"           → <response>Tom &amp; Jerry</response>
            b"<name>ada</name>"     → <response><name>ada</name></response>
            {"name": "ada"}         → <response><name>ada</name></response>
            [1, 2]                  → <response><item>1</item><item>2</item></response>
            None                    → <response />

        Bytes are taken to be XML content already and are wrapped as-is.
        Everything else, strings included, is converted element by
        element with proper escaping.
        """
        body = response.body
        tag = self.xml_root_tag

        if isinstance(body, (bytes, bytearray)):
            return f"<{tag}>".encode("utf-8") + bytes(body) + f"</{tag}>".encode("utf-8")

        root = ET.Element(tag)
        _fill_element(root, body)
        return ET.tostring(root, encoding="unicode").encode("utf-8")

    def format_default(self, response: "HTTPResponse") -> bytes:
        """Anything else: pass the body through."""
        return _passthrough(response.body)


# =============================================================================
# HELPERS
# =============================================================================

def _passthrough(body: Any) -> bytes:
    """str → UTF-8, bytes kept, None → empty, anything else → str()."""
    if body is None:
        return b""
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode("utf-8")
    return str(body).encode("utf-8")


def _json_default(value: Any) -> Any:
    """Extra types json.dumps doesn't know about."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _fill_element(element: ET.Element, value: Any) -> None:
    """Recursively convert a Python value into children/text of element."""
    if value is None:
        return

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)

    if isinstance(value, dict):
        for key, child_value in value.items():
            key = str(key)
            if _XML_NAME.match(key):
                child = ET.SubElement(element, key)
            else:
                # Keys like "2024" or "first name" aren't valid tag names
                child = ET.SubElement(element, "entry", {"key": key})
            _fill_element(child, child_value)
    elif isinstance(value, (list, tuple, set, frozenset)):
        for item in value:
            _fill_element(ET.SubElement(element, "item"), item)
    elif isinstance(value, bool):
        element.text = "true" if value else "false"
    elif isinstance(value, (datetime, date)):
        element.text = value.isoformat()
    elif isinstance(value, (bytes, bytearray)):
        element.text = bytes(value).decode("utf-8", errors="replace")
    else:
        element.text = str(value)


def _html_page(body: Any) -> str:
    return (
        "<!DOCTYPE html>\n"
        "<html>\n<head><meta charset=\"utf-8\"><title>Response</title></head>\n"
        f"<body>\n{_html_value(body)}\n</body>\n</html>\n"
    )


def _html_value(value: Any) -> str:
    if isinstance(value, dict):
        rows = "".join(
            f"<dt>{html.escape(str(k))}</dt><dd>{_html_value(v)}</dd>"
            for k, v in value.items()
        )
        return f"<dl>{rows}</dl>"
    if isinstance(value, (list, tuple)):
        items = "".join(f"<li>{_html_value(v)}</li>" for v in value)
        return f"<ul>{items}</ul>"
    if value is None:
        return ""
    return html.escape(str(value))


# Shared instance used when neither the server nor the response sets one
default_formatter = ResponseFormatter()
