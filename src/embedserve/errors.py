"""
=============================================================================
EXCEPTIONS
=============================================================================

The error taxonomy of embedserve is deliberately narrow.

Request-time problems never raise: a malformed path, a traversal attempt
or a missing asset all become a plain 404 response. What CAN raise is
setup code - embedding assets and building handlers - because a failure
there is a wiring mistake that should stop the process at startup.

    EmbedServeError
    ├── EmbedError      - snapshotting assets failed (missing file/root,
    │                     invalid explicit MIME header value)
    └── ConfigError     - invalid handler or server configuration
                          (also a ValueError)

=============================================================================
"""


class EmbedServeError(Exception):
    """Base class for every error raised by embedserve."""


class EmbedError(EmbedServeError):
    """
    Raised when assets cannot be embedded.

    Carries the offending filesystem or package path so the startup
    failure points straight at the asset that is missing.
    """

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class ConfigError(EmbedServeError, ValueError):
    """Raised by config validate() methods on an invalid value."""
