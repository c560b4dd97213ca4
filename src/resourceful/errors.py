"""
=============================================================================
HTTP ERRORS
=============================================================================

Exceptions a resource can raise to end a request with an error status:

    class User(Resource):
        def GET(self, request):
            user = USERS.get(self.params["name"])
            if user is None:
                raise NotFound(f"No user named {self.params['name']}")
            return user

The server catches HTTPError, turns it into a response with a
{"error": ..., "status": ...} body, and negotiates the representation
like any other body, so a client that asked for XML gets:

    <response><error>No user named bob</error><status>404</status></response>

Anything that is NOT an HTTPError is a bug: it is logged with its
traceback and the client gets a generic 500.

=============================================================================
"""

from http import HTTPStatus
from typing import Dict, Iterable, Optional

from .http import media_types
from .http.response import HTTPResponse, error_response


class HTTPError(Exception):
    """
    Base class for errors that map to an HTTP status.

    The message comes first, which is how the subclasses are raised;
    the base class takes its code as a keyword:

        raise NotFound("No user named bob")
        raise HTTPError("Gone for good", status=HTTPStatus.GONE)

    Attributes:
        status: The HTTPStatus to answer with
        message: Client-facing description (defaults to the reason phrase)
        headers: Extra response headers
    """

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: Optional[str] = None,
        status: Optional[HTTPStatus] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        if isinstance(message, int):
            raise TypeError(
                f"HTTPError takes the message first; pass the code as "
                f"status={int(message)}"
            )
        if status is not None:
            self.status = HTTPStatus(status)
        self.message = message or self.status.phrase
        self.headers = dict(headers or {})
        super().__init__(self.message)

    def to_response(self, content_type: str = media_types.JSON) -> HTTPResponse:
        """Build the error response in the given representation."""
        return error_response(self.status, self.message, content_type, self.headers)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self.status)}, {self.message!r})"


class BadRequest(HTTPError):
    status = HTTPStatus.BAD_REQUEST


class NotFound(HTTPError):
    status = HTTPStatus.NOT_FOUND


class MethodNotAllowed(HTTPError):
    """405, carrying the Allow header the response must include."""

    status = HTTPStatus.METHOD_NOT_ALLOWED

    def __init__(self, allowed: Iterable[str], message: Optional[str] = None):
        self.allowed = sorted(set(allowed))
        super().__init__(message, headers={"Allow": ", ".join(self.allowed)})


class NotAcceptable(HTTPError):
    """406, listing the representations the resource can produce."""

    status = HTTPStatus.NOT_ACCEPTABLE

    def __init__(self, available: Iterable[str], message: Optional[str] = None):
        self.available = list(available)
        super().__init__(
            message or f"Not Acceptable. Available types: {', '.join(self.available)}"
        )


class Conflict(HTTPError):
    status = HTTPStatus.CONFLICT


class UnsupportedMediaType(HTTPError):
    status = HTTPStatus.UNSUPPORTED_MEDIA_TYPE


class InternalServerError(HTTPError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR
