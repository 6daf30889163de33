"""
Base class and shared response assembly for asset handlers.

A handler is a plain callable ``HTTPRequest -> HTTPResponse``. It holds
only a frozen HandlerConfig and a reference to immutable embedded data,
so one instance can serve any number of threads or event loops at once.
"""

import copy
import dataclasses
from abc import ABC, abstractmethod
from typing import Dict, Optional

from ..config import HandlerConfig
from ..embed import EmbeddedFile
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, empty_body_response
from ..http.status_codes import HTTPStatus


class AssetHandler(ABC):
    """
    Service contract shared by SingleFileHandler and DirectoryHandler.

        handler = new_directory_handler(tree)
        handler.ready()              # always True, nothing to warm up
        response = handler(request)  # same as handler.handle(request)

    Subclasses implement handle(). The with_*() builders return a
    reconfigured copy and leave the original untouched.
    """

    def __init__(self, config: Optional[HandlerConfig] = None):
        self.config = config or HandlerConfig()
        self.config.validate()

    def ready(self) -> bool:
        """Readiness check. Embedded data is always available."""
        return True

    @abstractmethod
    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Answer one request. Must not raise for any request path."""

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return self.handle(request)

    def _with_config(self, **changes) -> "AssetHandler":
        config = dataclasses.replace(self.config, **changes)
        config.validate()
        clone = copy.copy(self)
        clone.config = config
        return clone

    def with_chunk_size(self, chunk_size: int) -> "AssetHandler":
        """Copy of this handler streaming chunks of chunk_size bytes."""
        return self._with_config(chunk_size=chunk_size)

    @property
    def chunk_size(self) -> int:
        return self.config.chunk_size


def file_response(
    file: EmbeddedFile,
    mime: str,
    chunk_size: int,
    last_modified: bool = False
) -> HTTPResponse:
    """
    200 response streaming file's bytes.

    Headers are Content-Type, plus Last-Modified when requested and the
    file carries a modification time. The body gets its own cursor, so
    concurrent responses for one file never interfere.
    """
    builder = (ResponseBuilder()
        .status(HTTPStatus.OK)
        .content_type(mime)
        .stream(file.contents, chunk_size))

    if last_modified and file.modified is not None:
        builder.last_modified(file.modified)

    return builder.build()


def empty_response(status: HTTPStatus, headers: Optional[Dict[str, str]] = None) -> HTTPResponse:
    """Response with status, exactly the given headers and an empty body."""
    return empty_body_response(status, headers)
