"""
=============================================================================
MIDDLEWARE PIPELINE
=============================================================================

Chain of Responsibility around an asset handler. Each middleware gets
the request plus ``next`` and decides whether and how to call it.

    pipeline = MiddlewarePipeline().use(LoggingMiddleware())
    app = pipeline.wrap(new_directory_handler(tree))

    app(request)
        │
        ▼
    ┌──────────────────────────────────────────────┐
    │ LoggingMiddleware     (before: start timer)  │
    │ ┌──────────────────────────────────────────┐ │
    │ │ DirectoryHandler                         │ │
    │ └──────────────────────────────────────────┘ │
    │                       (after: access log)    │
    └──────────────────────────────────────────────┘

First added is outermost. The handler is just a callable, so the
wrapped result can be handed to the dev server or the ASGI adapter
unchanged.

A middleware that post-processes a response must not drain a
streamed body; it may read ``response.content_length`` instead.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

# The next middleware, or the handler itself.
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class ServedBy(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Served-By", "embedserve")
                return response

    Returning without calling ``next`` short-circuits the chain.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Process request, usually by delegating to next(request)."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """Ordered middleware list that wraps a final handler."""

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append middleware (runs inside everything added before it)."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Return a callable running every middleware around handler.

        Wrapped in reverse so [A, B, C] becomes A(B(C(handler))).
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: NextHandler
    ) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)


class FunctionMiddleware(Middleware):
    """Adapts a plain ``(request, next) -> response`` function."""

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None
    ):
        self._func = func
        self._name = name or func.__name__

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
        def cache_forever(request, next):
            response = next(request)
            if response.status == HTTPStatus.OK:
                response.set_header("Cache-Control", "public, max-age=31536000, immutable")
            return response
    """
    return FunctionMiddleware(func)
