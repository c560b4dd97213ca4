"""
=============================================================================
RESOURCEFUL
=============================================================================

A small HTTP/1.1 framework built on raw sockets. URIs map to resource
classes, HTTP verbs map to methods, and the response body is serialized
according to its Content-Type.

    from resourceful import HTTPServer, Resource

    server = HTTPServer()

    @server.resource("/hello/:name")
    class Hello(Resource):
        def GET(self, request):
            return {"greeting": f"Hello, {self.params['name']}!"}

    server.run(port=8080)

    $ curl localhost:8080/hello/ada
    {"greeting": "Hello, ada!"}

    $ curl -H "Accept: application/xml" localhost:8080/hello/ada
    <response><greeting>Hello, ada!</greeting></response>

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .errors import (
    HTTPError,
    BadRequest,
    NotFound,
    MethodNotAllowed,
    NotAcceptable,
    Conflict,
    UnsupportedMediaType,
    InternalServerError,
)
from .http import (
    HTTPRequest,
    HTTPResponse,
    ResponseBuilder,
    ResponseFormatter,
    Router,
    media_types,
)
from .resource import Resource
from .server import HTTPServer, create_app

__all__ = [
    "__version__",
    "HTTPServer",
    "create_app",
    "ServerConfig",
    "Resource",
    "Router",
    "HTTPRequest",
    "HTTPResponse",
    "ResponseBuilder",
    "ResponseFormatter",
    "media_types",
    "HTTPError",
    "BadRequest",
    "NotFound",
    "MethodNotAllowed",
    "NotAcceptable",
    "Conflict",
    "UnsupportedMediaType",
    "InternalServerError",
]
