"""
=============================================================================
HTTP SERVER
=============================================================================

Ties everything together: sockets and workers underneath, the router,
resources and formatter on top.

    server = HTTPServer(ServerConfig(port=8080))

    @server.resource("/users/:name")
    class User(Resource):
        def GET(self, request):
            return {"name": self.params["name"]}

    server.run()

=============================================================================
REQUEST FLOW
=============================================================================

    Connection.read_request()          raw bytes
            │
            ▼
    RequestParser.parse()              HTTPRequest (400/405/413/505 on error)
            │
            ▼
    MiddlewarePipeline                 logging, user middleware ...
            │
            ▼
    Router.match(path)                 resource class + {"name": "ada"}
            │                          (404 when nothing matches)
            ▼
    Resource(request, server).dispatch()
            │                          method named after the verb
            │                          (405 when the resource lacks it)
            ▼
    negotiated HTTPResponse            Content-Type from Accept
            │
            ▼
    response.send()                    formatter serializes the body (500 if it can't)
            │
            ▼
    Connection.send_response()         keep-alive: back to the top

handle() runs the middle part (middleware to serialized body) in-process, which
is what the tests use.

=============================================================================
"""

import logging
import threading
from http import HTTPStatus
from typing import Any, Callable, Iterable, Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .errors import HTTPError, InternalServerError, NotFound
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, ResponseFormatter, Router, Route,
    default_formatter, error_response, media_types,
)
from .middleware import MiddlewarePipeline, Middleware
from .resource import Resource

logger = logging.getLogger(__name__)


# Representations error bodies can be rendered in, most preferred first
ERROR_CONTENT_TYPES = [
    media_types.JSON,
    media_types.XML,
    media_types.TEXT_XML,
    media_types.HTML,
]


class HTTPServer:
    """
    HTTP/1.1 server dispatching to resource classes.

    =========================================================================
    REGISTRATION
    =========================================================================

        server.add_resource("/users", UserList, name="users")

        @server.resource("/users/:name", name="user")
        class User(Resource):
            ...

        @server.get("/health")
        def health(request):
            return {"status": "ok"}

        server.url_for("user", name="ada")     # "/users/ada"

    =========================================================================
    FORMATTING
    =========================================================================

    `formatter` serializes every response this server produces (unless a
    response carries its own). None means HTTPResponse.formatter, the
    class-wide default. Replace it wholesale by assignment:

        server.formatter = MyFormatter()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration (defaults if omitted).

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._router = Router()
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._running = False

        self.formatter: Optional[Callable[[HTTPResponse], bytes]] = None
        if self.config.xml_root_tag != ResponseFormatter.xml_root_tag:
            self.formatter = ResponseFormatter(xml_root_tag=self.config.xml_root_tag)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> tuple:
        """(host, port) actually listened on, once running."""
        return self._socket_server.bound_address

    @property
    def ready(self) -> threading.Event:
        """Set once the listening socket is up."""
        return self._socket_server.ready

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict:
        """Worker pool counters."""
        return self._thread_pool.stats

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add_resource(self, path: str, resource: type, name: Optional[str] = None, **meta: Any) -> Route:
        """
        Register a Resource subclass under a path pattern.

        Raises:
            TypeError: If resource isn't a Resource subclass.
        """
        if not (isinstance(resource, type) and issubclass(resource, Resource)):
            raise TypeError(f"Expected a Resource subclass, got {resource!r}")
        return self._router.add(path, resource, name, **meta)

    def resource(self, path: str, name: Optional[str] = None, **meta: Any):
        """Class decorator form of add_resource()."""
        def decorator(cls: type) -> type:
            self.add_resource(path, cls, name, **meta)
            return cls
        return decorator

    def route(self, path: str, methods: Iterable[str] = ("GET",), name: Optional[str] = None):
        """Register a plain function for the given verbs."""
        return self._router.route(path, methods, name)

    def get(self, path: str, name: Optional[str] = None):
        return self._router.get(path, name)

    def post(self, path: str, name: Optional[str] = None):
        return self._router.post(path, name)

    def put(self, path: str, name: Optional[str] = None):
        return self._router.put(path, name)

    def delete(self, path: str, name: Optional[str] = None):
        return self._router.delete(path, name)

    def patch(self, path: str, name: Optional[str] = None):
        return self._router.patch(path, name)

    def include(self, prefix: str, router: Router) -> None:
        """Mount a separately built Router under prefix."""
        self._router.include(prefix, router)

    def url_for(self, name: str, **params: Any) -> str:
        return self._router.url_for(name, **params)

    def use(self, middleware: Middleware) -> "HTTPServer":
        """
        Add middleware (a Middleware or a (request, next) function).

        First added runs outermost.

        Returns:
            Self for method chaining
        """
        self._middleware.add(middleware)
        self._handler = None
        return self

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Produce the response for a parsed request, without any socket.

        Errors never escape: HTTPError and HTTPParseError become their
        error response and anything else a logged 500. The body is
        serialized here too, so a body the formatter can't handle is a
        500 as well rather than a dropped connection.
        """
        if self._handler is None:
            self._handler = self._middleware.wrap(self._dispatch)

        try:
            response = self._handler(request)
        except HTTPError as e:
            response = self._error_response(request, e)
        except HTTPParseError as e:
            response = self._error_response(request, _parse_error(e))
        except Exception as e:
            logger.exception(f"Unhandled error in middleware: {e}")
            response = self._error_response(request, InternalServerError())

        self._apply_formatter(response)
        try:
            response.send()
        except Exception as e:
            logger.exception(
                f"Could not serialize response to {request.method} {request.path}: {e}"
            )
            response = self._error_response(request, InternalServerError())
            self._apply_formatter(response)
            try:
                response.send()
            except Exception:
                logger.exception("Formatter failed on the 500 response, using the default")
                response.formatter = default_formatter
        return response

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        """Innermost handler: route, instantiate the resource, dispatch."""
        try:
            match = self._router.match(request.path)
            if match is None:
                raise NotFound(f"No resource at {request.path}")

            request.path_params = match.params
            resource = match.resource(request, self)
            response = resource.dispatch()

        except HTTPError as e:
            response = self._error_response(request, e)
        except HTTPParseError as e:
            response = self._error_response(request, _parse_error(e))
        except Exception as e:
            logger.exception(f"Error handling {request.method} {request.path}: {e}")
            response = self._error_response(request, InternalServerError())

        self._apply_formatter(response)
        return response

    def _error_response(self, request: Optional[HTTPRequest], error: HTTPError) -> HTTPResponse:
        return error.to_response(self._error_content_type(request))

    def _error_content_type(self, request: Optional[HTTPRequest]) -> str:
        """Error bodies follow Accept too, falling back to the default type."""
        default = self.config.default_content_type
        if default not in ERROR_CONTENT_TYPES:
            default = media_types.JSON

        if request is None or not request.get_header("accept"):
            return default
        return media_types.best_match(request.accept, ERROR_CONTENT_TYPES, default)

    def _apply_formatter(self, response: HTTPResponse) -> None:
        """Give the response this server's formatter unless it has its own."""
        if self.formatter is not None and "formatter" not in vars(response):
            response.formatter = self.formatter

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """
        Serve until SIGINT/SIGTERM or shutdown() (blocking).

        Args:
            host: Override config.host.
            port: Override config.port (0 picks a free port).
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port
            self.config.validate()

        self._setup_logging()
        self._handler = self._middleware.wrap(self._dispatch)
        self._running = True
        self._thread_pool.start()

        logger.info(
            f"Starting {self.config.server_name} on {self.config.host}:{self.config.port} "
            f"({self.config.min_workers}-{self.config.max_workers} workers)"
        )
        if len(self._router):
            logger.info("Resources:\n" + self._router.describe())

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self) -> None:
        """Ask a running server to stop. Safe from any thread."""
        self._running = False
        self._socket_server.shutdown()

    def _setup_logging(self) -> None:
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("resourceful").setLevel(level)

    def _shutdown(self) -> None:
        """Stop workers after the accept loop has ended."""
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTIONS
    # =========================================================================

    def _handle_connection(self, conn: Connection) -> None:
        """Called by the accept loop: hand the connection to a worker."""
        try:
            submitted = self._thread_pool.submit(self._process_connection, args=(conn,))
        except RuntimeError:
            submitted = False

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection) -> None:
        """
        Keep-alive loop for one connection (runs in a worker thread).

        read → parse → handle → send, until the client or the server
        wants the connection closed.
        """
        with conn:
            while self._running:
                try:
                    try:
                        raw_request = conn.read_request()
                    except TimeoutError:
                        self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                        break
                    except ValueError as e:
                        self._send_error(conn, HTTPStatus.REQUEST_ENTITY_TOO_LARGE, str(e))
                        break

                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        self._send_error(conn, e.status_code, str(e))
                        break

                    response = self.handle(request)
                    keep_alive = self._keep_alive(request, response)

                    if keep_alive:
                        response.set_header("Connection", "keep-alive")
                        response.set_header(
                            "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                        )
                    else:
                        response.set_header("Connection", "close")

                    data = response.to_bytes(
                        self.config.server_name,
                        head=request.method == "HEAD",
                    )
                    if not conn.send_response(data) or not keep_alive:
                        break

                    conn.set_keep_alive()

                except Exception as e:
                    logger.exception(f"[{conn.id}] Connection error: {e}")
                    break

    def _keep_alive(self, request: HTTPRequest, response: HTTPResponse) -> bool:
        if not (self.config.keep_alive and request.is_keep_alive):
            return False
        return (response.get_header("Connection") or "").lower() != "close"

    def _send_error(self, conn: Connection, status: int, message: str) -> None:
        """Error for failures before a request exists (parse, timeout, 503)."""
        response = error_response(status, message, headers={"Connection": "close"})
        self._apply_formatter(response)
        conn.send_response(response.to_bytes(self.config.server_name))


def _parse_error(error: HTTPParseError) -> HTTPError:
    """An HTTPParseError raised while handling, e.g. by request.json."""
    return HTTPError(str(error), status=error.status_code)


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Application factory.

        app = create_app(ServerConfig(port=3000))
        app.add_resource("/", Home)
        app.run()
    """
    return HTTPServer(config)
