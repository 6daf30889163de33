"""
=============================================================================
CONFIGURATION
=============================================================================

Two dataclasses, one per layer:

    HandlerConfig   how an asset handler resolves and streams files
    ServerConfig    how the development server listens and logs

Both follow the same pattern: defaults on the class, from_env() for
12-factor deployments, validate() to fail fast at startup.

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    EMBEDSERVE_CHUNK_SIZE       body chunk size in bytes   (65536)
    EMBEDSERVE_INDEX_FALLBACK   serve index.html for "/"   (true)
    EMBEDSERVE_METADATA         Last-Modified / 304        (true)

    EMBEDSERVE_HOST             bind address               (127.0.0.1)
    EMBEDSERVE_PORT             port, 0 = ephemeral        (8080)
    EMBEDSERVE_WORKERS          worker threads             (16)
    EMBEDSERVE_TIMEOUT          socket timeout, seconds    (30)
    EMBEDSERVE_LOG_LEVEL        logging level              (INFO)

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from .body import DEFAULT_CHUNK_SIZE
from .errors import ConfigError


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class HandlerConfig:
    """
    Settings shared by the asset handlers.

    Frozen: handlers are shared across threads, and the fluent
    with_*() builders produce a new config instead of mutating one.
    """

    chunk_size: int = DEFAULT_CHUNK_SIZE
    """Maximum size of each streamed body chunk, in bytes."""

    append_index_html: bool = True
    """
    For a request path ending in "/" that names a directory, serve the
    directory's index.html. When False such requests get 404.
    """

    metadata: bool = True
    """
    Send Last-Modified and answer If-Modified-Since with 304, for files
    that carry a modification time.
    """

    @classmethod
    def from_env(cls) -> "HandlerConfig":
        """Build from EMBEDSERVE_CHUNK_SIZE / _INDEX_FALLBACK / _METADATA."""
        return cls(
            chunk_size=_env_int("EMBEDSERVE_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            append_index_html=_env_bool("EMBEDSERVE_INDEX_FALLBACK", True),
            metadata=_env_bool("EMBEDSERVE_METADATA", True),
        )

    def validate(self) -> None:
        if not isinstance(self.chunk_size, int) or self.chunk_size < 1:
            raise ConfigError(f"chunk_size must be >= 1, got {self.chunk_size!r}")


@dataclass
class ServerConfig:
    """
    Configuration for the development server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     host, port, backlog, buffer_size, timeout
    HTTP        keep_alive, keep_alive_timeout, max_request_size
    THREADING   max_workers
    LOGGING     log_level, log_format
    IDENTITY    server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Bind address: "127.0.0.1" for local only, "0.0.0.0" for all interfaces."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """Receive buffer size in bytes."""

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds. None blocks forever."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Allow several requests on one TCP connection."""

    keep_alive_timeout: float = 5.0
    """Idle time after which a kept-alive connection is closed."""

    max_request_size: int = 1024 * 1024  # 1 MB
    """
    Largest accepted request (head plus body). Asset requests are
    bodiless, so this only needs to fit large header sets.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREADING
    # ─────────────────────────────────────────────────────────────────────

    max_workers: int = 16
    """Worker threads handling connections concurrently."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: "text" (Apache-like) or "json"."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "embedserve"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

            EMBEDSERVE_PORT=3000 EMBEDSERVE_LOG_LEVEL=DEBUG python -m embedserve site/
        """
        return cls(
            host=os.getenv("EMBEDSERVE_HOST", "127.0.0.1"),
            port=_env_int("EMBEDSERVE_PORT", 8080),
            max_workers=_env_int("EMBEDSERVE_WORKERS", 16),
            timeout=_env_float("EMBEDSERVE_TIMEOUT", 30.0),
            log_level=os.getenv("EMBEDSERVE_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """Reject invalid values at startup rather than at first use."""
        if not 0 <= self.port < 65536:
            raise ConfigError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.max_workers < 1:
            raise ConfigError("max_workers must be >= 1")
        if self.backlog < 1:
            raise ConfigError("backlog must be >= 1")
        if self.buffer_size < 1024:
            raise ConfigError("buffer_size must be >= 1024")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError("timeout must be > 0")
        if self.keep_alive_timeout <= 0:
            raise ConfigError("keep_alive_timeout must be > 0")
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"Invalid log level: {self.log_level}")
        if self.log_format not in ("text", "json"):
            raise ConfigError(f"log_format must be 'text' or 'json', got {self.log_format!r}")
