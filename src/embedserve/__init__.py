"""
=============================================================================
EMBEDSERVE - Serve Embedded Static Assets over HTTP
=============================================================================

Snapshot a file, a directory tree or package data into memory once at
startup, then serve it from there: no disk access per request, no cache
invalidation, and responses streamed in fixed-size chunks.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    embedserve/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI (python -m embedserve)
    ├── body.py              # ByteStreamBody - chunked body over bytes
    ├── embed.py             # EmbeddedFile / EmbeddedDirectory, include_*()
    ├── config.py            # HandlerConfig, ServerConfig
    ├── errors.py            # EmbedServeError hierarchy
    ├── handlers/
    │   ├── base.py          # AssetHandler + response assembly
    │   ├── serve_file.py    # SingleFileHandler
    │   └── serve_dir.py     # DirectoryHandler, path resolution
    ├── http/                # Request/response model, MIME, dates, status
    ├── middleware/          # Pipeline + access logging
    ├── core/                # Socket server + connection
    ├── server.py            # DevServer
    └── asgi.py              # ASGIAdapter

=============================================================================
QUICK START
=============================================================================

    from embedserve import include_dir, new_directory_handler, DevServer

    handler = new_directory_handler(include_dir("site"), chunk_size=32 * 1024)
    DevServer(handler).run()

    # or, under any ASGI server
    from embedserve.asgi import ASGIAdapter
    app = ASGIAdapter(handler)

=============================================================================
"""

__version__ = "1.0.0"

from .body import ByteStreamBody, DEFAULT_CHUNK_SIZE
from .config import HandlerConfig, ServerConfig
from .embed import (
    EmbeddedFile,
    EmbeddedDirectory,
    include_file,
    include_file_with_mime,
    include_dir,
    include_package_dir,
)
from .errors import EmbedServeError, EmbedError, ConfigError
from .handlers import (
    AssetHandler,
    SingleFileHandler,
    DirectoryHandler,
    new_single_file_handler,
    new_directory_handler,
)
from .http import HTTPRequest, HTTPResponse, HTTPStatus
from .server import DevServer

__all__ = [
    "__version__",
    "ByteStreamBody",
    "DEFAULT_CHUNK_SIZE",
    "HandlerConfig",
    "ServerConfig",
    "EmbeddedFile",
    "EmbeddedDirectory",
    "include_file",
    "include_file_with_mime",
    "include_dir",
    "include_package_dir",
    "EmbedServeError",
    "EmbedError",
    "ConfigError",
    "AssetHandler",
    "SingleFileHandler",
    "DirectoryHandler",
    "new_single_file_handler",
    "new_directory_handler",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "DevServer",
]
