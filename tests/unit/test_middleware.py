"""
Unit tests for the middleware pipeline and access logging.
"""

import json
import logging

import pytest

from resourceful.http import HTTPRequest, HTTPResponse, ok
from resourceful.middleware import (
    FunctionMiddleware,
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
    function_middleware,
)


def endpoint(request: HTTPRequest) -> HTTPResponse:
    return ok({"path": request.path})


class Tag(Middleware):
    def __init__(self, value: str):
        self.value = value

    def __call__(self, request, next):
        response = next(request)
        existing = response.get_header("X-Tags")
        response.set_header("X-Tags", f"{existing},{self.value}" if existing else self.value)
        return response


class TestMiddlewarePipeline:
    """Tests for MiddlewarePipeline."""

    def test_empty_pipeline(self):
        """Test that an empty pipeline is the handler itself."""
        pipeline = MiddlewarePipeline()

        assert pipeline.wrap(endpoint) is endpoint
        assert len(pipeline) == 0

    def test_order(self):
        """Test that the first added sees the response last."""
        pipeline = MiddlewarePipeline().add(Tag("outer")).add(Tag("inner"))
        response = pipeline.wrap(endpoint)(HTTPRequest(method="GET", path="/"))

        assert response.headers["X-Tags"] == "inner,outer"

    def test_plain_functions_wrapped(self):
        """Test that plain functions become FunctionMiddleware."""
        def noop(request, next):
            return next(request)

        pipeline = MiddlewarePipeline().use(noop, Tag("t"))
        middleware = list(pipeline)

        assert isinstance(middleware[0], FunctionMiddleware)
        assert middleware[0].name == "noop"
        assert middleware[1].name == "Tag"

    def test_not_callable(self):
        """Test that non-callables are rejected."""
        with pytest.raises(TypeError):
            MiddlewarePipeline().add("not middleware")

    def test_short_circuit(self):
        """Test a middleware answering on its own."""
        @function_middleware
        def gate(request, next):
            if request.path == "/private":
                return HTTPResponse(status=403)
            return next(request)

        handler = MiddlewarePipeline().add(gate).wrap(endpoint)

        assert int(handler(HTTPRequest(method="GET", path="/private")).status) == 403
        assert handler(HTTPRequest(method="GET", path="/public")).body == {"path": "/public"}

    def test_abstract(self):
        """Test that Middleware can't be used without __call__."""
        with pytest.raises(TypeError):
            Middleware()


class TestLoggingMiddleware:
    """Tests for LoggingMiddleware."""

    def request(self, **headers) -> HTTPRequest:
        return HTTPRequest(
            method="GET",
            path="/users",
            headers=headers,
            query_params={"page": ["2"]},
            client_address=("10.0.0.1", 5000),
        )

    def test_text_line(self, caplog):
        """Test the text access line."""
        middleware = LoggingMiddleware()

        with caplog.at_level(logging.INFO, logger="resourceful.access"):
            middleware(self.request(), endpoint)

        line = caplog.records[-1].getMessage()
        assert line.startswith("10.0.0.1 - - [")
        assert '"GET /users" 200 application/json' in line

    def test_json_line(self, caplog):
        """Test the JSON access line."""
        middleware = LoggingMiddleware(log_format="json")

        with caplog.at_level(logging.INFO, logger="resourceful.access"):
            middleware(self.request(**{"user-agent": "pytest"}), endpoint)

        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["status_code"] == 200
        assert entry["query"] == "page=2"
        assert entry["user_agent"] == "pytest"
        assert entry["content_type"] == "application/json"
        assert entry["content_length"] == len(b'{"path": "/users"}')

    def test_request_id(self):
        """Test that a request ID header is added, reusing the client's."""
        middleware = LoggingMiddleware()

        generated = middleware(self.request(), endpoint)
        assert len(generated.headers["X-Request-ID"]) == 8

        reused = middleware(self.request(**{"x-request-id": "abc123"}), endpoint)
        assert reused.headers["X-Request-ID"] == "abc123"

    def test_without_request_id(self):
        """Test turning the request ID header off."""
        response = LoggingMiddleware(include_request_id=False)(self.request(), endpoint)
        assert "X-Request-ID" not in response.headers

    def test_skip_paths(self, caplog):
        """Test that skipped paths aren't logged."""
        middleware = LoggingMiddleware(skip_paths=["/users"])

        with caplog.at_level(logging.INFO, logger="resourceful.access"):
            middleware(self.request(), endpoint)

        assert not caplog.records

    def test_logs_failures(self, caplog):
        """Test that exceptions are logged and re-raised."""
        def failing(request):
            raise RuntimeError("broken")

        with caplog.at_level(logging.INFO, logger="resourceful.access"):
            with pytest.raises(RuntimeError):
                LoggingMiddleware()(self.request(), failing)

        assert "RuntimeError: broken" in caplog.text

    def test_bad_format(self):
        """Test that unknown formats are rejected."""
        with pytest.raises(ValueError):
            LoggingMiddleware(log_format="xml")
