"""
=============================================================================
ASSET HANDLERS
=============================================================================

    SingleFileHandler / new_single_file_handler()
        - One fixed file for every request path
        - Content-Type from the embedded file

    DirectoryHandler / new_directory_handler()
        - Path decoding and traversal rejection
        - 307 redirect to the trailing-slash form of directories
        - index.html fallback (toggle with with_index_fallback)
        - Last-Modified / If-Modified-Since (toggle with with_metadata)

Both are callables ``HTTPRequest -> HTTPResponse`` with a ready() check,
and both stream bodies through ByteStreamBody (with_chunk_size).

=============================================================================
"""

from .base import AssetHandler, empty_response, file_response
from .serve_file import SingleFileHandler, new_single_file_handler
from .serve_dir import (
    DirectoryHandler,
    Outcome,
    ResolvedTarget,
    new_directory_handler,
)

__all__ = [
    "AssetHandler",
    "empty_response",
    "file_response",
    "SingleFileHandler",
    "new_single_file_handler",
    "DirectoryHandler",
    "Outcome",
    "ResolvedTarget",
    "new_directory_handler",
]
