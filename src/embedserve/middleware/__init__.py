"""
Middleware around asset handlers.

    from embedserve.middleware import MiddlewarePipeline, LoggingMiddleware

    app = MiddlewarePipeline().use(LoggingMiddleware()).wrap(handler)
"""

from .base import (
    Middleware,
    MiddlewarePipeline,
    NextHandler,
    FunctionMiddleware,
    function_middleware,
)
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "FunctionMiddleware",
    "function_middleware",
    "LoggingMiddleware",
    "RequestLog",
]
