"""
=============================================================================
EMBEDDED ASSETS
=============================================================================

Snapshots files into immutable in-memory trees at startup. After the
snapshot no request ever touches the disk.

=============================================================================
SNAPSHOT ONCE, SERVE FOREVER
=============================================================================

    startup                                  request time
    ───────                                  ────────────

    include_dir("site/")                     DirectoryHandler
          │                                        │
          ▼                                        ▼
    ┌──────────────────────────┐           tree.get_file("css/a.css")
    │ EmbeddedDirectory("")    │                   │
    │ ├── index.html   ◄───────┼───────────────────┘ (dict lookups only)
    │ ├── css/                 │
    │ │   └── a.css            │
    │ └── img/                 │
    │     └── logo.png         │
    └──────────────────────────┘

Paths inside a tree are LOGICAL: relative to the embedding root, always
"/"-separated, no leading slash ("css/a.css"). The root directory's
path is "".

Everything is frozen. EmbeddedFile and EmbeddedDirectory are frozen
dataclasses, file contents are bytes, and a directory's children sit
behind a read-only MappingProxyType. A handler can therefore share one
tree across threads without locking.

=============================================================================
ENTRY POINTS
=============================================================================

    include_file(path)                   one file from disk
    include_file_with_mime(path, mime)   same, explicit Content-Type
    include_dir(root)                    a whole directory tree
    include_package_dir(pkg, "static")   package data (importlib.resources)
    EmbeddedDirectory.from_mapping({...})  generated / test assets

All of them fail loudly (EmbedError) on a missing path: a missing asset
is a deployment bug, not something to discover at request time.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Union

from .errors import EmbedError
from .http.mime_types import get_mime_type, validate_header_value


logger = logging.getLogger(__name__)

# Never snapshotted from package data.
_SKIPPED_PACKAGE_DIRS = {"__pycache__"}


@dataclass(frozen=True)
class EmbeddedFile:
    """
    One embedded file.

    Attributes:
        path:     Logical path relative to the embedding root ("css/a.css").
        contents: The file's bytes.
        mime:     Content-Type value served for this file.
        modified: Last modification time (UTC), or None when metadata
                  was not captured.
    """

    path: str
    contents: bytes = field(repr=False)
    mime: str = "application/octet-stream"
    modified: Optional[datetime] = None

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def size(self) -> int:
        return len(self.contents)


EmbeddedEntry = Union[EmbeddedFile, "EmbeddedDirectory"]


@dataclass(frozen=True)
class EmbeddedDirectory:
    """
    An embedded directory: a read-only mapping of child name → entry.

    Lookups take logical paths relative to THIS directory. Leading,
    trailing and repeated slashes are ignored, so "a/b", "/a/b/" and
    "a//b" name the same entry.
    """

    path: str = ""
    entries: Mapping[str, EmbeddedEntry] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        if not isinstance(self.entries, MappingProxyType):
            object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def get_entry(self, path: str) -> Optional[EmbeddedEntry]:
        """Return the file or directory at path, or None. "" is this directory."""
        entry: EmbeddedEntry = self
        for segment in path.split("/"):
            if not segment:
                continue
            if not isinstance(entry, EmbeddedDirectory):
                return None
            entry = entry.entries.get(segment)
            if entry is None:
                return None
        return entry

    def get_file(self, path: str) -> Optional[EmbeddedFile]:
        entry = self.get_entry(path)
        return entry if isinstance(entry, EmbeddedFile) else None

    def get_dir(self, path: str) -> Optional["EmbeddedDirectory"]:
        entry = self.get_entry(path)
        return entry if isinstance(entry, EmbeddedDirectory) else None

    def contains(self, path: str) -> bool:
        return self.get_entry(path) is not None

    def __contains__(self, path: str) -> bool:
        return self.contains(path)

    def __len__(self) -> int:
        return len(self.entries)

    # =========================================================================
    # ITERATION
    # =========================================================================

    def files(self) -> list[EmbeddedFile]:
        """Direct child files."""
        return [e for e in self.entries.values() if isinstance(e, EmbeddedFile)]

    def dirs(self) -> list["EmbeddedDirectory"]:
        """Direct child directories."""
        return [e for e in self.entries.values() if isinstance(e, EmbeddedDirectory)]

    def walk(self) -> Iterator[EmbeddedFile]:
        """Every file below this directory, sorted by path."""
        found: list[EmbeddedFile] = []
        pending = [self]
        while pending:
            directory = pending.pop()
            found.extend(directory.files())
            pending.extend(directory.dirs())
        return iter(sorted(found, key=lambda f: f.path))

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self.walk())

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def from_mapping(
        cls,
        files: Mapping[str, Union[bytes, str]],
        modified: Optional[datetime] = None,
    ) -> "EmbeddedDirectory":
        """
        Build a tree from {"logical/path.ext": contents}.

        Intermediate directories are created as needed. String contents
        are UTF-8 encoded. Every file gets the same ``modified`` time.

            tree = EmbeddedDirectory.from_mapping({
                "index.html": b"<h1>hi</h1>",
                "css/site.css": "body {}",
            })
        """
        if modified is not None and modified.tzinfo is None:
            modified = modified.replace(tzinfo=timezone.utc)

        # nested plain dicts first, frozen at the end
        root: Dict[str, object] = {}
        for raw_path, contents in files.items():
            segments = [s for s in raw_path.split("/") if s]
            if not segments:
                raise EmbedError(f"Empty asset path: {raw_path!r}", raw_path)

            node = root
            for segment in segments[:-1]:
                child = node.setdefault(segment, {})
                if not isinstance(child, dict):
                    raise EmbedError(f"{segment!r} is both a file and a directory", raw_path)
                node = child

            logical = "/".join(segments)
            if isinstance(contents, str):
                contents = contents.encode("utf-8")
            node[segments[-1]] = EmbeddedFile(
                path=logical,
                contents=bytes(contents),
                mime=get_mime_type(logical),
                modified=modified,
            )

        return _freeze(root, "")


def _freeze(node: Dict[str, object], path: str) -> EmbeddedDirectory:
    entries: Dict[str, EmbeddedEntry] = {}
    for name, child in node.items():
        if isinstance(child, dict):
            entries[name] = _freeze(child, f"{path}/{name}" if path else name)
        else:
            entries[name] = child
    return EmbeddedDirectory(path=path, entries=entries)


# =============================================================================
# FILESYSTEM SNAPSHOTS
# =============================================================================

def _modified_time(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


def _read_file(path: Path, logical: str, mime: Optional[str], metadata: bool) -> EmbeddedFile:
    try:
        contents = path.read_bytes()
        modified = _modified_time(path) if metadata else None
    except OSError as e:
        raise EmbedError(f"Cannot embed {path}: {e}", str(path)) from e

    return EmbeddedFile(
        path=logical,
        contents=contents,
        mime=mime or get_mime_type(logical),
        modified=modified,
    )


def include_file(path: Union[str, Path], *, metadata: bool = True) -> EmbeddedFile:
    """
    Snapshot a single file.

    The MIME type is guessed from the extension (application/octet-stream
    when unknown). The logical path is the file name.

    Raises:
        EmbedError: If path is not a readable regular file.
    """
    path = Path(path)
    if not path.is_file():
        raise EmbedError(f"Not a file: {path}", str(path))

    embedded = _read_file(path, path.name, None, metadata)
    logger.debug(f"Embedded {path} ({embedded.size} bytes, {embedded.mime})")
    return embedded


def include_file_with_mime(
    path: Union[str, Path],
    mime: str,
    *,
    metadata: bool = True
) -> EmbeddedFile:
    """
    Snapshot a single file with an explicit Content-Type.

    Raises:
        EmbedError: If the file is missing, or mime is not a valid
                    header value.
    """
    try:
        validate_header_value(mime)
    except ValueError as e:
        raise EmbedError(f"Invalid MIME type for {path}: {e}", str(path)) from e

    path = Path(path)
    if not path.is_file():
        raise EmbedError(f"Not a file: {path}", str(path))

    embedded = _read_file(path, path.name, mime, metadata)
    logger.debug(f"Embedded {path} ({embedded.size} bytes, {embedded.mime})")
    return embedded


def include_dir(root: Union[str, Path], *, metadata: bool = True) -> EmbeddedDirectory:
    """
    Snapshot a whole directory tree.

    Hidden files are included. Symlinks to files are read through;
    symlinked directories are not followed, so a link cycle cannot
    make the snapshot recurse forever.

    Raises:
        EmbedError: If root does not exist or is not a directory.
    """
    root = Path(root)
    if not root.is_dir():
        raise EmbedError(f"Not a directory: {root}", str(root))

    tree = _snapshot_dir(root, "", metadata)
    logger.info(
        f"Embedded {sum(1 for _ in tree.walk())} files "
        f"({tree.total_size} bytes) from {root}"
    )
    return tree


def _snapshot_dir(directory: Path, logical: str, metadata: bool) -> EmbeddedDirectory:
    entries: Dict[str, EmbeddedEntry] = {}

    for child in sorted(directory.iterdir(), key=lambda p: p.name):
        child_logical = f"{logical}/{child.name}" if logical else child.name

        if child.is_dir():
            if child.is_symlink():
                logger.debug(f"Skipping symlinked directory {child}")
                continue
            entries[child.name] = _snapshot_dir(child, child_logical, metadata)
        elif child.is_file():
            entries[child.name] = _read_file(child, child_logical, None, metadata)

    return EmbeddedDirectory(path=logical, entries=entries)


# =============================================================================
# PACKAGE DATA
# =============================================================================

def include_package_dir(
    package: str,
    resource: str = "",
    *,
    metadata: bool = False
) -> EmbeddedDirectory:
    """
    Snapshot a directory shipped as package data.

        tree = include_package_dir("myapp", "static")

    Goes through importlib.resources, so it also works for zipped
    packages. Modification times are only available when the resource
    lives on a real filesystem, which is why metadata is off by default.

    Raises:
        EmbedError: If the package cannot be imported or the resource
                    is not a directory.
    """
    try:
        base = resources.files(package)
    except ModuleNotFoundError as e:
        raise EmbedError(f"Cannot import package {package!r}: {e}", package) from e

    location = base.joinpath(resource) if resource else base
    if not location.is_dir():
        raise EmbedError(f"Not a package directory: {package}/{resource}", f"{package}/{resource}")

    tree = _snapshot_traversable(location, "", metadata)
    logger.info(
        f"Embedded {sum(1 for _ in tree.walk())} files "
        f"({tree.total_size} bytes) from package {package}/{resource}"
    )
    return tree


def _snapshot_traversable(node, logical: str, metadata: bool) -> EmbeddedDirectory:
    entries: Dict[str, EmbeddedEntry] = {}

    for child in sorted(node.iterdir(), key=lambda t: t.name):
        child_logical = f"{logical}/{child.name}" if logical else child.name

        if child.is_dir():
            if child.name in _SKIPPED_PACKAGE_DIRS:
                continue
            entries[child.name] = _snapshot_traversable(child, child_logical, metadata)
        elif child.is_file():
            modified = None
            if metadata and isinstance(child, Path):
                modified = _modified_time(child)
            entries[child.name] = EmbeddedFile(
                path=child_logical,
                contents=child.read_bytes(),
                mime=get_mime_type(child_logical),
                modified=modified,
            )

    return EmbeddedDirectory(path=logical, entries=entries)
