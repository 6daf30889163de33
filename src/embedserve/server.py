"""
=============================================================================
DEVELOPMENT SERVER
=============================================================================

A small threaded HTTP/1.1 server that runs any asset handler, so an
embedded site can be tried out with ``python -m embedserve site/``.

    ┌──────────────┐   Connection   ┌────────────────────┐
    │ SocketServer │ ─────────────► │ ThreadPoolExecutor │
    │ accept loop  │                │ worker thread      │
    └──────────────┘                └─────────┬──────────┘
                                              │ keep-alive loop
                                              ▼
                          read_request → RequestParser.parse
                                              │
                                              ▼
                          middleware(handler)(request)  → HTTPResponse
                                              │
                                              ▼
                          Connection.send_response: head, then chunks

Transport-level failures are answered here and never reach the handler:

    unparseable request    400 / 405 / 413 / 505 (from HTTPParseError)
    first request too slow 408
    handler raised         500 (logged with traceback)

=============================================================================
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Callable, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, error_response, internal_error,
)
from .middleware import MiddlewarePipeline, Middleware


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]


class DevServer:
    """
    Threaded HTTP server around one handler.

        handler = new_directory_handler(include_dir("site"))
        server = DevServer(handler, ServerConfig(port=8000))
        server.use(LoggingMiddleware())
        server.run()          # blocks until Ctrl+C

    In tests, run it on a background thread with port 0:

        server = DevServer(handler, ServerConfig(port=0))
        threading.Thread(target=server.run, daemon=True).start()
        server.wait_until_ready(5)
        host, port = server.address
        ...
        server.stop()
    """

    def __init__(self, handler: Handler, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._handler_target = handler
        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._middleware = MiddlewarePipeline()
        self._handler: Optional[Handler] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._running = False

    def use(self, middleware: Middleware) -> "DevServer":
        """Add middleware; must be called before run()."""
        self._middleware.add(middleware)
        return self

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, configure_logging: bool = False):
        """
        Serve until stop() or SIGINT/SIGTERM.

        Args:
            configure_logging: Call logging.basicConfig with the
                               configured level (the CLI does this).
        """
        if configure_logging:
            self._setup_logging()

        self._running = True
        self._handler = self._middleware.wrap(self._handler_target)
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="embedserve-worker",
        )

        logger.info(
            f"Serving {self._handler_target!r} with up to "
            f"{self.config.max_workers} worker threads"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self):
        """Ask the server to stop; run() returns once workers finish."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("embedserve").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called on the accept thread; hands the connection to a worker."""
        try:
            self._executor.submit(self._process_connection, conn)
        except RuntimeError:
            # executor already shut down
            logger.warning(f"[{conn.id}] Server stopping, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server shutting down")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (worker thread)."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Bad request: {e}")
                    self._send_error(conn, HTTPStatus(e.status_code), str(e))
                    break
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except OSError as e:
                    logger.debug(f"[{conn.id}] Connection error: {e}")
                    break

                response = self._dispatch(conn, request)

                keep_alive = request.is_keep_alive and self.config.keep_alive
                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault(
                        "Keep-Alive",
                        f"timeout={int(self.config.keep_alive_timeout)}"
                    )
                else:
                    response.headers["Connection"] = "close"

                include_body = request.method != "HEAD"
                try:
                    sent = conn.send_response(response, include_body=include_body)
                except Exception as e:
                    logger.exception(f"[{conn.id}] Failed to write {int(response.status)} response: {e}")
                    break
                if not sent:
                    break

                if not keep_alive:
                    break
                conn.set_keep_alive()

    def _dispatch(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error: {e}")
            return internal_error()

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Error answered before (or instead of) calling the handler."""
        response = error_response(status, message)
        response.headers["Connection"] = "close"
        conn.send_response(response)


def serve(handler: Handler, config: Optional[ServerConfig] = None, *middleware: Middleware):
    """Build a DevServer with middleware and run it with logging configured."""
    server = DevServer(handler, config)
    for mw in middleware:
        server.use(mw)
    server.run(configure_logging=True)
    return server
