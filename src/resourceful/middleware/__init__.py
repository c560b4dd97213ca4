"""
Request/response middleware (Chain of Responsibility).

    server.use(LoggingMiddleware())

    @function_middleware
    def powered_by(request, next):
        response = next(request)
        response.set_header("X-Powered-By", "resourceful")
        return response

    server.use(powered_by)
"""

from .base import (
    Middleware,
    MiddlewarePipeline,
    FunctionMiddleware,
    NextHandler,
    function_middleware,
)
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "FunctionMiddleware",
    "NextHandler",
    "function_middleware",
    "LoggingMiddleware",
    "RequestLog",
]
