"""
=============================================================================
DIRECTORY HANDLER
=============================================================================

Serves an embedded directory tree, resolving each request path to
exactly one of five outcomes.

=============================================================================
RESOLUTION PIPELINE
=============================================================================

    GET /docs%20v2/?lang=en
          │
          ▼
    1. strip leading "/"s, percent-decode as strict UTF-8
          │  "docs v2/"                          bad UTF-8 → INVALID
          ▼
    2. split on "/", check every segment
          │  ["docs v2", ""]                   ".."-prefix or "\\" → INVALID
          ▼
    3. directory named WITHOUT a trailing "/" in the raw path?
          │                                        yes → REDIRECT (307)
          ▼
    4. directory named WITH a trailing "/"?
          │  index fallback on  → "docs v2/index.html"
          │  index fallback off → NOT_FOUND
          ▼
    5. file lookup                             absent → NOT_FOUND
          │
          ▼
    6. If-Modified-Since still current?        yes → NOT_MODIFIED (304)
          │
          ▼
    7. FILE (200, streamed)

The root path "" always counts as a directory, so "/" serves the root
index.html without the tree needing an entry for it.

=============================================================================
OUTCOME → RESPONSE
=============================================================================

    ┌──────────────┬────────┬───────────────────────────────┬──────────┐
    │ Outcome      │ Status │ Headers                       │ Body     │
    ├──────────────┼────────┼───────────────────────────────┼──────────┤
    │ FILE         │  200   │ Content-Type (+Last-Modified) │ streamed │
    │ REDIRECT     │  307   │ Location                      │ empty    │
    │ NOT_FOUND    │  404   │ -                             │ empty    │
    │ INVALID      │  404   │ -                             │ empty    │
    │ NOT_MODIFIED │  304   │ -                             │ empty    │
    └──────────────┴────────┴───────────────────────────────┴──────────┘

INVALID is answered exactly like NOT_FOUND. A client probing with
"/../etc/passwd" learns nothing beyond "not here". Nothing in this
module raises for any request path.

=============================================================================
WHY CHECK SEGMENTS INSTEAD OF RESOLVING ".."?
=============================================================================

The tree is in memory, so there is no filesystem root to escape. But
"a/../b" would still let a client reach entries by unexpected names,
and a backslash could be read as a separator by some lookup backend.
Rejecting both outright keeps every served URL canonical.

=============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import quote, unquote_to_bytes

from ..body import DEFAULT_CHUNK_SIZE
from ..config import HandlerConfig
from ..embed import EmbeddedDirectory, EmbeddedFile
from ..http.conditional import is_not_modified
from ..http.mime_types import get_mime_type
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, not_found, not_modified
from ..http.status_codes import HTTPStatus
from .base import AssetHandler, empty_response, file_response


logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"

# Characters left as-is when a redirect Location is re-encoded: every
# character already legal in a URI path, including "%" of existing escapes.
_LOCATION_SAFE = "/%:@!$&'()*+,;=-._~"


class Outcome(Enum):
    FILE = "file"
    REDIRECT = "redirect"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    NOT_MODIFIED = "not_modified"


@dataclass(frozen=True)
class ResolvedTarget:
    """
    Result of resolving one request path. Built fresh for every request.

    Only FILE carries file/mime/chunk_size, only REDIRECT carries location.
    """

    kind: Outcome
    file: Optional[EmbeddedFile] = None
    mime: Optional[str] = None
    chunk_size: Optional[int] = None
    location: Optional[str] = None

    @classmethod
    def serve(cls, file: EmbeddedFile, mime: str, chunk_size: int) -> "ResolvedTarget":
        return cls(Outcome.FILE, file=file, mime=mime, chunk_size=chunk_size)

    @classmethod
    def redirect(cls, location: str) -> "ResolvedTarget":
        return cls(Outcome.REDIRECT, location=location)

    @classmethod
    def not_found(cls) -> "ResolvedTarget":
        return cls(Outcome.NOT_FOUND)

    @classmethod
    def invalid(cls) -> "ResolvedTarget":
        return cls(Outcome.INVALID)

    @classmethod
    def not_modified(cls) -> "ResolvedTarget":
        return cls(Outcome.NOT_MODIFIED)


class DirectoryHandler(AssetHandler):
    """
    Serves files from an EmbeddedDirectory.

        tree = include_dir("site/")
        handler = new_directory_handler(tree).with_chunk_size(16 * 1024)

        handler(HTTPRequest(target="/css/site.css"))   # 200 text/css
        handler(HTTPRequest(target="/css"))            # 307 → /css/
        handler(HTTPRequest(target="/../secret"))      # 404
    """

    def __init__(self, tree: EmbeddedDirectory, config: Optional[HandlerConfig] = None):
        super().__init__(config)
        self.tree = tree

    def with_index_fallback(self, enabled: bool) -> "DirectoryHandler":
        """Copy that serves (True) or 404s (False) "dir/" requests."""
        return self._with_config(append_index_html=enabled)

    def with_metadata(self, enabled: bool) -> "DirectoryHandler":
        """Copy with Last-Modified / If-Modified-Since support on or off."""
        return self._with_config(metadata=enabled)

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    def resolve(self, request: HTTPRequest) -> ResolvedTarget:
        """Map a request to its outcome. Pure, and never raises."""
        raw_path = request.path

        segments = self._decode_segments(raw_path)
        if segments is None:
            return ResolvedTarget.invalid()

        relative = "/".join(segments)

        if self._is_dir(relative):
            if not raw_path.endswith("/"):
                location = self._location_with_slash(request)
                logger.debug(f"{raw_path!r} is a directory, redirecting to {location!r}")
                return ResolvedTarget.redirect(location)

            if not self.config.append_index_html:
                logger.debug(f"{raw_path!r} is a directory and index fallback is off")
                return ResolvedTarget.not_found()

            relative = f"{relative}/{INDEX_FILE}" if relative else INDEX_FILE

        file = self.tree.get_file(relative)
        if file is None:
            logger.debug(f"No embedded file for {raw_path!r}")
            return ResolvedTarget.not_found()

        if self.config.metadata and is_not_modified(request, file.modified):
            return ResolvedTarget.not_modified()

        return ResolvedTarget.serve(file, get_mime_type(relative), self.config.chunk_size)

    def _decode_segments(self, raw_path: str) -> Optional[list[str]]:
        """
        Decode and validate the path. None means the path is invalid.

        Empty and "." segments are dropped: "/a//./b" names "a/b".
        """
        stripped = raw_path.lstrip("/")
        try:
            decoded = unquote_to_bytes(
                stripped.encode("utf-8", errors="surrogateescape")
            ).decode("utf-8")
        except UnicodeError:
            logger.debug(f"Path is not valid UTF-8 after decoding: {raw_path!r}")
            return None

        segments = []
        for segment in decoded.split("/"):
            if segment.startswith("..") or "\\" in segment:
                logger.warning(f"Rejected suspicious request path: {raw_path!r}")
                return None
            if segment in ("", "."):
                continue
            segments.append(segment)
        return segments

    def _is_dir(self, relative: str) -> bool:
        if relative == "":
            return True
        return self.tree.get_dir(relative) is not None

    @staticmethod
    def _location_with_slash(request: HTTPRequest) -> str:
        """
        The request URI with "/" appended to its path.

        Scheme and authority are kept when the request-target carried
        them (absolute form), as is the query string. Leading slashes
        collapse to one so "//host" never becomes a protocol-relative URL.
        """
        raw = request.path.encode("utf-8", errors="surrogateescape")
        path = quote(raw, safe=_LOCATION_SAFE).lstrip("/")
        location = f"/{path}/" if path else "/"

        if request.query is not None:
            raw_query = request.query.encode("utf-8", errors="surrogateescape")
            location = f"{location}?{quote(raw_query, safe=_LOCATION_SAFE + '?')}"

        if request.scheme and request.authority:
            location = f"{request.scheme}://{request.authority}{location}"

        return location

    # =========================================================================
    # RESPONSE ASSEMBLY
    # =========================================================================

    def respond(self, target: ResolvedTarget) -> HTTPResponse:
        """Turn an outcome into its response."""
        kind = target.kind

        if kind is Outcome.FILE:
            return file_response(
                target.file,
                target.mime,
                target.chunk_size,
                last_modified=self.config.metadata,
            )
        if kind is Outcome.REDIRECT:
            return empty_response(HTTPStatus.TEMPORARY_REDIRECT, {"Location": target.location})
        if kind is Outcome.NOT_MODIFIED:
            return not_modified()
        if kind in (Outcome.NOT_FOUND, Outcome.INVALID):
            return not_found()

        raise AssertionError(f"Unhandled outcome: {kind}")

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        return self.respond(self.resolve(request))

    def __repr__(self) -> str:
        return (
            f"DirectoryHandler(entries={len(self.tree)}, "
            f"chunk_size={self.config.chunk_size}, "
            f"index_fallback={self.config.append_index_html}, "
            f"metadata={self.config.metadata})"
        )


def new_directory_handler(
    tree: EmbeddedDirectory,
    *,
    chunk_size: Optional[int] = None,
    index_fallback: bool = True,
    metadata: bool = True
) -> DirectoryHandler:
    """
    Create a handler serving tree.

    Args:
        tree: Result of include_dir() / include_package_dir().
        chunk_size: Body chunk size; 64 KiB when omitted.
        index_fallback: Serve index.html for "dir/" requests.
        metadata: Send Last-Modified and honor If-Modified-Since.
    """
    config = HandlerConfig(
        chunk_size=DEFAULT_CHUNK_SIZE if chunk_size is None else chunk_size,
        append_index_html=index_fallback,
        metadata=metadata,
    )
    return DirectoryHandler(tree, config)
