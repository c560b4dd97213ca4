"""
=============================================================================
RESOURCES
=============================================================================

A resource is a class standing for something addressable by URI. It
defines one method per HTTP verb it supports:

    class User(Resource):
        def GET(self, request):
            return USERS[self.params["name"]]

        def DELETE(self, request):
            del USERS[self.params["name"]]

    server.add_resource("/users/:name", User)

A new instance is created for every request, so instance attributes
never leak between requests.

=============================================================================
WHAT A VERB METHOD MAY RETURN
=============================================================================

    ┌──────────────────────────────┬──────────────────────────────────────┐
    │  Return value                │  Response                            │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │  HTTPResponse                │  used as-is                          │
    │  (body, status)              │  body with that status               │
    │  (body, status, headers)     │  ... plus those headers              │
    │  None                        │  204 No Content                      │
    │  anything else               │  200 with that body                  │
    └──────────────────────────────┴──────────────────────────────────────┘

Unless the method set a Content-Type itself, the representation is
negotiated from the request's Accept header against `content_types`:

    class Report(Resource):
        content_types = [media_types.PDF, media_types.HTML]

        def GET(self, request):
            return "/files/report.pdf"

=============================================================================
HEAD AND OPTIONS
=============================================================================

HEAD runs GET (the server strips the body). OPTIONS answers 204 with an
Allow header. Either can be overridden by defining the method.

=============================================================================
"""

from http import HTTPStatus
from typing import Any, Callable, Dict, List, Optional
import logging

from .errors import MethodNotAllowed, NotAcceptable
from .http import media_types
from .http.request import HTTPRequest, RequestParser
from .http.response import HTTPResponse

logger = logging.getLogger(__name__)


# Verbs that can be dispatched to a method of the same name
VERBS = frozenset(RequestParser.VALID_METHODS)


class Resource:
    """
    Base class for resources.

    Attributes:
        request: The request being handled
        server:  The HTTPServer handling it (None when used standalone)
        params:  Path parameters captured by the route

    Class attributes:
        content_types: Media types this resource can produce, most
                       preferred first.
    """

    content_types: List[str] = [
        media_types.JSON,
        media_types.HTML,
        media_types.XML,
        media_types.TEXT_XML,
    ]

    # True for the resources the router generates for plain functions
    generated = False

    def __init__(self, request: HTTPRequest, server: Optional[Any] = None):
        self.request = request
        self.server = server
        self.params: Dict[str, str] = dict(request.path_params)

    @classmethod
    def allowed_methods(cls) -> List[str]:
        """
        Verbs this resource answers, sorted.

        HEAD comes for free with GET and OPTIONS is always answered.
        """
        verbs = {verb for verb in VERBS if callable(getattr(cls, verb, None))}
        if "GET" in verbs:
            verbs.add("HEAD")
        verbs.add("OPTIONS")
        return sorted(verbs)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def dispatch(self) -> HTTPResponse:
        """
        Call the method named after the request's verb.

        Raises:
            MethodNotAllowed: The resource has no method for the verb
            NotAcceptable: strict_accept is on and nothing matches Accept
            HTTPError: Whatever the verb method raises
        """
        verb = self.request.method.upper()
        handler = getattr(self, verb, None) if verb in VERBS else None

        if handler is None:
            if verb == "HEAD":
                handler = getattr(self, "GET", None)
            elif verb == "OPTIONS":
                return self.options()

        if handler is None:
            raise MethodNotAllowed(self.allowed_methods())

        return self.to_response(handler(self.request))

    def options(self) -> HTTPResponse:
        """Default OPTIONS answer: 204 with the Allow header."""
        return HTTPResponse(
            status=HTTPStatus.NO_CONTENT,
            headers={"Allow": ", ".join(self.allowed_methods())},
        )

    # =========================================================================
    # RESULT NORMALIZATION
    # =========================================================================

    def to_response(self, result: Any) -> HTTPResponse:
        """Turn whatever a verb method returned into an HTTPResponse."""
        if isinstance(result, HTTPResponse):
            response = result
        elif result is None:
            return HTTPResponse(status=HTTPStatus.NO_CONTENT)
        elif isinstance(result, tuple) and len(result) in (2, 3):
            body, status, *rest = result
            headers = dict(rest[0]) if rest else {}
            response = HTTPResponse(status=status, headers=headers, body=body)
        else:
            response = HTTPResponse(body=result)

        if response.has_body and not _is_empty(response.body) and not response.content_type:
            response.set_content_type(self.negotiate())
        return response

    def negotiate(self) -> str:
        """
        Pick the Content-Type for a body the verb method left untyped.

        A client that sent no Accept header gets the configured default
        when this resource can produce it. Otherwise the best match from
        content_types wins, falling back to the default (or a 406 when
        strict_accept is set). A resource that can't produce the default
        falls back to its own first type instead.
        """
        default = self._config_value("default_content_type", media_types.JSON)
        available = list(self.content_types)

        if not self.request.get_header("accept") and default in available:
            return default

        chosen = media_types.best_match(self.request.accept, available)
        if chosen is not None:
            return chosen

        if self._config_value("strict_accept", False):
            raise NotAcceptable(available)

        if default not in available and available:
            default = available[0]
        logger.debug(
            f"No acceptable type for {self.request.accept!r}, using {default}"
        )
        return default

    def _config_value(self, name: str, fallback: Any) -> Any:
        config = getattr(self.server, "config", None)
        return getattr(config, name, fallback)


class FunctionResource(Resource):
    """
    Resource generated for plain-function routes.

        @server.get("/users")
        def list_users(request): ...

        @server.post("/users")
        def create_user(request): ...

    Both functions end up as the GET and POST methods of one generated
    subclass, created with for_path(). Functions receive only the request;
    path parameters are on request.path_params.
    """

    generated = True
    path = ""
    handlers: Dict[str, Callable[[HTTPRequest], Any]] = {}

    @classmethod
    def for_path(cls, path: str) -> type:
        """A fresh subclass with its own handler table."""
        return type("FunctionResource", (cls,), {"path": path, "handlers": {}})

    @classmethod
    def bind(cls, method: str, func: Callable[[HTTPRequest], Any]) -> None:
        """Attach func as the method for a verb."""
        verb = method.upper()
        if verb not in VERBS:
            raise ValueError(f"Unknown HTTP method: {method}")
        if verb in cls.handlers:
            logger.warning(f"Replacing {verb} handler for {cls.path}")

        cls.handlers[verb] = func
        setattr(cls, verb, _as_method(func))
        cls.__name__ = "+".join(
            getattr(handler, "__name__", "handler") for handler in cls.handlers.values()
        )


def _is_empty(body: Any) -> bool:
    return body is None or (isinstance(body, (bytes, bytearray)) and not body)


def _as_method(func: Callable[[HTTPRequest], Any]) -> Callable[[Resource, HTTPRequest], Any]:
    def method(self: Resource, request: HTTPRequest) -> Any:
        return func(request)
    method.__name__ = getattr(func, "__name__", "handler")
    method.__doc__ = func.__doc__
    return method
