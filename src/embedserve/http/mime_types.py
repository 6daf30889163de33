"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps asset file extensions to the media type sent in Content-Type.

=============================================================================
HOW THE HANDLERS USE THIS MODULE
=============================================================================

    include_file("site/app.js")         DirectoryHandler, per request
            │                                    │
            ▼                                    ▼
    get_mime_type("app.js")            get_mime_type("docs/index.html")
            │                                    │
            ▼                                    ▼
    "text/javascript"                  "text/html"

The value is sent exactly as guessed: no "; charset=" parameter is
appended, since an embedded asset is served byte-for-byte and the
handler cannot know its encoding.

Unknown extensions fall back to application/octet-stream ("opaque
binary data"), which browsers download instead of rendering.

=============================================================================
EXPLICIT MIME VALUES
=============================================================================

A caller may bypass guessing (include_file_with_mime). That string ends
up verbatim in a response header, so it is validated once, at embed
time, with validate_header_value(): CR/LF or other control characters
would allow header injection.

=============================================================================
"""

from pathlib import PurePosixPath
from typing import Optional, Union


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Extension (lowercase, with dot) → media type. Covers what a bundled web
# front-end or documentation site usually ships.
#
# =============================================================================

MIME_TYPES = {
    # markup, styles and scripts
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",     # ES modules
    ".json": "application/json",
    ".map": "application/json",    # source maps
    ".webmanifest": "application/manifest+json",
    ".xml": "application/xml",
    ".wasm": "application/wasm",

    # plain text and documents
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
    ".toml": "text/x-toml",
    ".pdf": "application/pdf",

    # images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # audio / video
    ".mp3": "audio/mpeg",
    ".ogg": "audio/ogg",
    ".wav": "audio/wav",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # archives
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(path: Union[str, PurePosixPath], default: Optional[str] = None) -> str:
    """
    Guess the media type of an asset from its path's extension.

    Args:
        path: Logical asset path or file name ("css/site.css").
        default: Returned for unknown extensions instead of
                 application/octet-stream.

    Returns:
        The media type string.

    Examples:
        >>> get_mime_type("subfolder/data.json")
        'application/json'
        >>> get_mime_type("LOGO.PNG")
        'image/png'
        >>> get_mime_type("blob.unknownext")
        'application/octet-stream'
    """
    # PurePosixPath: asset paths are always slash-separated, on every OS
    extension = PurePosixPath(str(path)).suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def is_valid_header_value(value: str) -> bool:
    """
    Check that a string may be used as an HTTP header value.

    Accepts visible ASCII, space and horizontal tab. Rejects the empty
    string and anything else (notably CR and LF).
    """
    if not value:
        return False
    return all(ch == "\t" or 32 <= ord(ch) < 127 for ch in value)


def validate_header_value(value: str) -> str:
    """
    Return value unchanged, or raise ValueError if it is not a valid header value.

    Used when a MIME type is supplied explicitly instead of guessed.
    """
    if not is_valid_header_value(value):
        raise ValueError(f"Not a valid header value: {value!r}")
    return value
