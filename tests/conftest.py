"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from resourceful import HTTPServer, Resource, ServerConfig, NotFound


USERS = {"ada": {"name": "ada", "born": 1815}}


class UserList(Resource):
    def GET(self, request):
        return list(USERS.values())

    def POST(self, request):
        user = request.json
        return user, 201, {"Location": f"/users/{user['name']}"}


class User(Resource):
    def GET(self, request):
        name = self.params["name"]
        if name not in USERS:
            raise NotFound(f"No user named {name}")
        return USERS[name]

    def DELETE(self, request):
        return None


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /users/ada?fields=name&fields=born HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/xml\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "grace", "born": 1906}'
    return (
        b"POST /users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json; charset=utf-8\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def server(config: ServerConfig) -> HTTPServer:
    """A server with the user resources registered, not listening."""
    app = HTTPServer(config)
    app.add_resource("/users", UserList, name="users")
    app.add_resource("/users/:name", User, name="user")
    return app


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestServer:
    """Runs an HTTPServer in a background thread."""

    __test__ = False  # not a test class despite the name

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.ready.wait(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes) -> bytes:
        """Send raw request bytes and read until the server closes."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as sock:
            sock.sendall(raw)
            chunks = []
            while True:
                chunk = sock.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def live_server(server: HTTPServer) -> Generator[TestServer, None, None]:
    """The user server, listening on a free port."""

    @server.get("/echo")
    def echo(request):
        return {"accept": request.accept}

    @server.get("/obj")
    def unserializable(request):
        return {"obj": object()}

    @server.post("/notes")
    def create_note(request):
        return request.json, 201

    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()
