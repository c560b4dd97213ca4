"""
Unit tests for resources: verb dispatch and response normalization.
"""

from http import HTTPStatus
from types import SimpleNamespace

import pytest

from resourceful import MethodNotAllowed, NotAcceptable, Resource, ServerConfig
from resourceful.http import HTTPRequest, HTTPResponse, media_types
from resourceful.http.response import ResponseBuilder


def make_request(method: str = "GET", path: str = "/", accept: str = None,
                 path_params: dict = None) -> HTTPRequest:
    headers = {"accept": accept} if accept is not None else {}
    return HTTPRequest(method=method, path=path, headers=headers,
                       path_params=path_params or {})


def fake_server(**overrides):
    """Just enough of an HTTPServer for negotiation."""
    return SimpleNamespace(config=ServerConfig(**overrides))


class Greeting(Resource):
    def GET(self, request):
        return {"hello": self.params.get("name", "world")}

    def PUT(self, request):
        return "updated", 202, {"X-Version": "2"}

    def DELETE(self, request):
        return None


class Report(Resource):
    content_types = [media_types.PDF, media_types.HTML]

    def GET(self, request):
        return "/files/report.pdf"


class TestAllowedMethods:
    """Tests for allowed_methods()."""

    def test_includes_head_and_options(self):
        """Test that HEAD comes with GET and OPTIONS is always there."""
        assert Greeting.allowed_methods() == ["DELETE", "GET", "HEAD", "OPTIONS", "PUT"]

    def test_without_get(self):
        """Test a resource with no GET."""
        class Sink(Resource):
            def POST(self, request):
                return None

        assert Sink.allowed_methods() == ["OPTIONS", "POST"]


class TestDispatch:
    """Tests for dispatch()."""

    def test_calls_verb_method(self):
        """Test that the method named after the verb is called."""
        request = make_request("GET", path_params={"name": "ada"})
        response = Greeting(request).dispatch()

        assert response.status == HTTPStatus.OK
        assert response.body == {"hello": "ada"}

    def test_params(self):
        """Test that path params are exposed on the instance."""
        resource = Greeting(make_request(path_params={"name": "ada"}), server="srv")

        assert resource.params == {"name": "ada"}
        assert resource.server == "srv"

    def test_method_not_allowed(self):
        """Test that a missing verb raises 405 with the Allow list."""
        with pytest.raises(MethodNotAllowed) as exc_info:
            Greeting(make_request("POST")).dispatch()

        assert exc_info.value.allowed == ["DELETE", "GET", "HEAD", "OPTIONS", "PUT"]
        assert exc_info.value.headers["Allow"] == "DELETE, GET, HEAD, OPTIONS, PUT"

    def test_unknown_verb(self):
        """Test that verbs without a method are 405, even odd ones."""
        with pytest.raises(MethodNotAllowed):
            Greeting(make_request("TRACE")).dispatch()

    def test_head_falls_back_to_get(self):
        """Test HEAD without a HEAD method."""
        response = Greeting(make_request("HEAD")).dispatch()
        assert response.body == {"hello": "world"}

    def test_options(self):
        """Test the automatic OPTIONS answer."""
        response = Greeting(make_request("OPTIONS")).dispatch()

        assert response.status == HTTPStatus.NO_CONTENT
        assert response.headers["Allow"] == "DELETE, GET, HEAD, OPTIONS, PUT"

    def test_explicit_options(self):
        """Test that a defined OPTIONS method wins."""
        class Custom(Resource):
            def OPTIONS(self, request):
                return {"custom": True}

        response = Custom(make_request("OPTIONS")).dispatch()
        assert response.body == {"custom": True}


class TestToResponse:
    """Tests for return value normalization."""

    def test_tuple_with_headers(self):
        """Test (body, status, headers) tuples."""
        response = Greeting(make_request("PUT")).dispatch()

        assert response.status == HTTPStatus.ACCEPTED
        assert response.body == "updated"
        assert response.headers["X-Version"] == "2"

    def test_tuple_without_headers(self):
        """Test (body, status) tuples."""
        response = Greeting(make_request()).to_response(({"id": 1}, 201))
        assert response.status == HTTPStatus.CREATED

    def test_none_is_no_content(self):
        """Test that None gives 204."""
        response = Greeting(make_request("DELETE")).dispatch()

        assert response.status == HTTPStatus.NO_CONTENT
        assert response.content_type is None

    def test_response_kept(self):
        """Test that an HTTPResponse with a type is used as-is."""
        built = ResponseBuilder().text("plain").build()
        response = Greeting(make_request(accept="application/xml")).to_response(built)

        assert response is built
        assert response.media_type == "text/plain"

    def test_untyped_response_is_negotiated(self):
        """Test that an HTTPResponse without Content-Type gets one."""
        built = HTTPResponse(body={"a": 1})
        response = Greeting(make_request(accept="text/xml")).to_response(built)

        assert response.content_type == "text/xml"

    def test_empty_body_not_negotiated(self):
        """Test that empty bodies (e.g. redirects) get no Content-Type."""
        built = ResponseBuilder().redirect("/elsewhere").build()
        response = Greeting(make_request()).to_response(built)

        assert response.content_type is None


class TestNegotiation:
    """Tests for picking the representation."""

    def test_no_accept_uses_default(self):
        """Test that no Accept header gives the configured default."""
        server = fake_server(default_content_type=media_types.XML)
        response = Greeting(make_request(), server).dispatch()

        assert response.content_type == media_types.XML

    def test_no_accept_without_server(self):
        """Test that standalone resources default to JSON."""
        response = Greeting(make_request()).dispatch()
        assert response.content_type == media_types.JSON

    def test_accept_header(self):
        """Test that Accept picks the type."""
        response = Greeting(make_request(accept="text/html")).dispatch()
        assert response.content_type == media_types.HTML

    def test_restricted_content_types(self):
        """Test that content_types limits and orders what's produced."""
        response = Report(make_request(accept="*/*")).dispatch()
        assert response.content_type == media_types.PDF

        response = Report(make_request(accept="text/html, application/pdf;q=0.5")).dispatch()
        assert response.content_type == media_types.HTML

    def test_default_not_offered_by_resource(self):
        """Test no Accept on a resource that can't produce the default."""
        response = Report(make_request(), fake_server()).dispatch()
        assert response.content_type == media_types.PDF

    def test_unsatisfiable_falls_back(self):
        """Test that a non-matching Accept falls back to the default."""
        response = Greeting(make_request(accept="image/png"), fake_server()).dispatch()
        assert response.content_type == media_types.JSON

    def test_unsatisfiable_without_default(self):
        """Test the fallback when the resource can't produce the default."""
        response = Report(make_request(accept="image/png"), fake_server()).dispatch()
        assert response.content_type == media_types.PDF

    def test_strict_accept(self):
        """Test that strict_accept turns a non-match into 406."""
        server = fake_server(strict_accept=True)

        with pytest.raises(NotAcceptable) as exc_info:
            Greeting(make_request(accept="image/png"), server).dispatch()

        assert exc_info.value.status == HTTPStatus.NOT_ACCEPTABLE
        assert exc_info.value.available == Greeting.content_types
