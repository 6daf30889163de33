"""
Serve one embedded file for every request.

Typical use is a single-page app's shell or a favicon mounted on a
fixed route by an outer router:

    index = include_file("dist/index.html")
    handler = new_single_file_handler(index)

    handler(HTTPRequest(target="/anything/at/all"))   # 200, dist/index.html

The request path and method are ignored. There is no failure path:
a missing file already failed at include_file() time.
"""

import logging
from typing import Optional

from ..config import HandlerConfig
from ..embed import EmbeddedFile
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from .base import AssetHandler, file_response


logger = logging.getLogger(__name__)


class SingleFileHandler(AssetHandler):
    """Always responds 200 with the configured file."""

    def __init__(self, file: EmbeddedFile, config: Optional[HandlerConfig] = None):
        super().__init__(config)
        self.file = file

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        logger.debug(f"{request.method} {request.target} -> {self.file.path}")
        return file_response(self.file, self.file.mime, self.config.chunk_size)

    def __repr__(self) -> str:
        return f"SingleFileHandler({self.file.path!r}, chunk_size={self.chunk_size})"


def new_single_file_handler(
    file: EmbeddedFile,
    *,
    chunk_size: Optional[int] = None
) -> SingleFileHandler:
    """
    Create a handler serving file.

    Args:
        file: Result of include_file() / include_file_with_mime().
        chunk_size: Body chunk size; 64 KiB when omitted.
    """
    if chunk_size is None:
        return SingleFileHandler(file)
    return SingleFileHandler(file, HandlerConfig(chunk_size=chunk_size))
