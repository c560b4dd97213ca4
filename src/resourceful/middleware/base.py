"""
=============================================================================
MIDDLEWARE
=============================================================================

Middleware sees every request before the resource does and every
response after it. Each one receives the request and `next`, the rest of
the chain:

    def timing(request, next):
        start = time.time()
        response = next(request)
        response.set_header("X-Elapsed", f"{time.time() - start:.3f}")
        return response

Returning without calling next() short-circuits the chain.

    server.use(LoggingMiddleware())   # outermost
    server.use(timing)                # innermost, closest to the resource

          request ──► Logging ──► timing ──► router + resource
         response ◄── Logging ◄── timing ◄──┘

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List, Optional, Union
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse

logger = logging.getLogger(__name__)


# The rest of the chain, as seen from a middleware
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for class-based middleware.

        class RequireJSON(Middleware):
            def __call__(self, request, next):
                if request.method == "POST" and not request.is_json:
                    raise UnsupportedMediaType("Send application/json")
                return next(request)

    HTTPError raised from middleware is turned into an error response
    just like one raised from a resource.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Args:
            request: The incoming request
            next: Call with the request to run the rest of the chain

        Returns:
            The response, from next() or produced here
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class FunctionMiddleware(Middleware):
    """A plain (request, next) function used as middleware."""

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None,
    ):
        self._func = func
        self._name = name or getattr(func, "__name__", "middleware")

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(
    func: Callable[[HTTPRequest, NextHandler], HTTPResponse]
) -> FunctionMiddleware:
    """
    Decorator form of FunctionMiddleware.

        @function_middleware
        def powered_by(request, next):
            response = next(request)
            response.set_header("X-Powered-By", "resourceful")
            return response

        server.use(powered_by)
    """
    return FunctionMiddleware(func)


class MiddlewarePipeline:
    """
    Ordered middleware chain.

    First added is outermost: it sees the request first and the response
    last.

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware()).add(powered_by)
        handle = pipeline.wrap(dispatch)
        response = handle(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(
        self,
        middleware: Union[Middleware, Callable[[HTTPRequest, NextHandler], HTTPResponse]],
    ) -> "MiddlewarePipeline":
        """
        Append middleware. Plain functions are wrapped in FunctionMiddleware.

        Returns:
            Self for method chaining
        """
        if not isinstance(middleware, Middleware):
            if not callable(middleware):
                raise TypeError(f"Middleware must be callable, got {middleware!r}")
            middleware = FunctionMiddleware(middleware)

        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware) -> "MiddlewarePipeline":
        """Append several middleware in order."""
        for item in middleware:
            self.add(item)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around the final handler.

        Wrapping goes innermost first, so [A, B] around h gives
        A → B → h.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = _link(middleware, current)
        return current

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)


def _link(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
    def handler(request: HTTPRequest) -> HTTPResponse:
        return middleware(request, next_handler)
    return handler
