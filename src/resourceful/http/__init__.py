"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything between raw socket bytes and a resource method:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py      bytes → HTTPRequest (method, path, headers, body)   │
    │ router.py       path  → resource class + path params ("/:name")     │
    │ media_types.py  Accept header → best representation                 │
    │ response.py     HTTPResponse, ResponseBuilder, ok()/not_found()/... │
    │ formatters.py   body → bytes, dispatched on Content-Type            │
    └─────────────────────────────────────────────────────────────────────┘

    GET /users/ada HTTP/1.1              HTTP/1.1 200 OK
    Accept: application/xml      ──►     Content-Type: application/xml; charset=utf-8
                                         <response><name>ada</name></response>

=============================================================================
"""

from . import media_types
from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .formatters import ResponseFormatter, default_formatter
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,                  # 200 OK
    created,             # 201 Created
    no_content,          # 204 No Content
    redirect,            # 301/302 Redirect
    error_response,      # any error status
    bad_request,         # 400 Bad Request
    not_found,           # 404 Not Found
    method_not_allowed,  # 405 Method Not Allowed
    not_acceptable,      # 406 Not Acceptable
    internal_error,      # 500 Internal Server Error
)
from .router import Router, Route, RouteMatch

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Responses
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "no_content",
    "redirect",
    "error_response",
    "bad_request",
    "not_found",
    "method_not_allowed",
    "not_acceptable",
    "internal_error",

    # Formatting and negotiation
    "ResponseFormatter",
    "default_formatter",
    "media_types",

    # Routing
    "Router",
    "Route",
    "RouteMatch",
]
