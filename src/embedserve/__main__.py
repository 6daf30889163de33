"""
Command-line entry point.

    python -m embedserve site/                   # serve a directory
    python -m embedserve README.md --mime text/markdown   # one file for every path
    embedserve site/ --port 3000 --no-index --log-format json
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .config import HandlerConfig, ServerConfig
from .embed import include_dir, include_file, include_file_with_mime
from .errors import EmbedServeError
from .handlers import AssetHandler, new_directory_handler, new_single_file_handler
from .middleware import LoggingMiddleware
from .server import DevServer


logger = logging.getLogger("embedserve")


def build_parser() -> argparse.ArgumentParser:
    defaults = ServerConfig.from_env()
    handler_defaults = HandlerConfig.from_env()

    parser = argparse.ArgumentParser(
        prog="embedserve",
        description="Snapshot a file or directory into memory and serve it over HTTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m embedserve ./dist                    # serve a directory
  python -m embedserve ./dist --port 3000        # custom port
  python -m embedserve ./dist --no-index         # 404 instead of index.html
  python -m embedserve ./app.html --mime text/html   # one file for every path
        """
    )

    parser.add_argument(
        "path",
        help="Directory or file to embed"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on, 0 for any free port (default: {defaults.port})"
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.max_workers,
        help=f"Worker threads (default: {defaults.max_workers})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # HANDLER ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--chunk-size",
        type=int,
        default=handler_defaults.chunk_size,
        help=f"Response body chunk size in bytes (default: {handler_defaults.chunk_size})"
    )
    parser.add_argument(
        "--no-index",
        dest="index_fallback",
        action="store_false",
        default=handler_defaults.append_index_html,
        help="Answer 404 for directory paths instead of serving index.html"
    )
    parser.add_argument(
        "--no-metadata",
        dest="metadata",
        action="store_false",
        default=handler_defaults.metadata,
        help="Do not record modification times (no Last-Modified, no 304)"
    )
    parser.add_argument(
        "--mime",
        default=None,
        help="Content-Type for single-file mode (default: guessed from the extension)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=defaults.log_format,
        help="Access log format (default: text)"
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"embedserve {__version__}"
    )

    return parser


def build_handler(args: argparse.Namespace) -> AssetHandler:
    """
    Snapshot args.path and build the matching handler.

    Raises:
        EmbedServeError: If the path cannot be embedded or the options
                         are invalid.
    """
    path = Path(args.path)

    if path.is_dir():
        if args.mime:
            logger.warning("--mime only applies when serving a single file; ignoring it")
        tree = include_dir(path, metadata=args.metadata)
        return new_directory_handler(
            tree,
            chunk_size=args.chunk_size,
            index_fallback=args.index_fallback,
            metadata=args.metadata,
        )

    if args.mime:
        file = include_file_with_mime(path, args.mime, metadata=args.metadata)
    else:
        file = include_file(path, metadata=args.metadata)
    return new_single_file_handler(file, chunk_size=args.chunk_size)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        max_workers=args.workers,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        config.validate()
        handler = build_handler(args)
    except EmbedServeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    server = DevServer(handler, config)
    server.use(LoggingMiddleware(log_format=config.log_format))

    try:
        server.run(configure_logging=True)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
