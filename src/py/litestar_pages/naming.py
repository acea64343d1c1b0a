"""Entry naming, path normalization and content hashing."""

import hashlib
import os
import posixpath
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from litestar_pages.exceptions import PathValidationError

__all__ = (
    "EntryPaths",
    "component_import_path",
    "entry_name_for_path",
    "entry_paths",
    "hash_content",
    "normalize_component_path",
    "normalize_path",
    "route_html_path",
    "validate_route_path",
)


_PLAIN_SEGMENT_RE = re.compile(r"[A-Za-z0-9_]+")
_PLAIN_EXTENSION = ".tsx"
_REPEATED_SLASHES_RE = re.compile(r"/{2,}")


def normalize_component_path(component_path: str) -> str:
    """Component path with POSIX separators and no leading ``./`` or ``/``."""
    name = component_path.replace("\\", "/")
    while name.startswith("./"):
        name = name[2:]
    return name.strip("/")


def entry_name_for_path(component_path: str) -> str:
    """Derive the build entry name for a component path.

    A ``.tsx`` component whose segments are letters, digits and underscores
    gets a readable name: ``./pages/blog/post.tsx`` becomes
    ``pages-blog-post-entry``. Every other path also carries a short hash of
    the path after a double dash, so ``pages/blog-post.tsx`` and
    ``pages/home.jsx`` cannot take the names of ``pages/blog/post.tsx`` and
    ``pages/home.tsx``. Plain names never contain ``--``.

    Returns:
        The entry name.
    """
    name = normalize_component_path(component_path)
    stem, extension = posixpath.splitext(name)
    segments = stem.split("/")
    slug = stem.replace("/", "-") or "page"
    if extension == _PLAIN_EXTENSION and all(_PLAIN_SEGMENT_RE.fullmatch(segment) for segment in segments):
        return f"{slug}-entry"
    return f"{slug}--{hash_content(name.encode())[:8]}-entry"


def normalize_path(path: str) -> str:
    """Normalize a request path for static route lookups.

    Adds a leading slash, collapses repeated slashes and removes a trailing
    slash, except for the root.

    Returns:
        The normalized path.
    """
    path = _REPEATED_SLASHES_RE.sub("/", f"/{path}")
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


def validate_route_path(path: str) -> None:
    """Reject paths that cannot be mapped to a prerendered file.

    Raises:
        PathValidationError: If the path is empty, relative, or contains a query string,
            fragment, parent directory reference or wildcard.
    """
    if not path:
        raise PathValidationError(path, "path cannot be empty")
    if not path.startswith("/"):
        raise PathValidationError(path, "path must start with '/'")
    if "?" in path:
        raise PathValidationError(path, "path cannot contain a query string")
    if "#" in path:
        raise PathValidationError(path, "path cannot contain a fragment")
    if ".." in path:
        raise PathValidationError(path, "path cannot contain parent directory references")
    if "*" in path:
        raise PathValidationError(path, "path cannot contain wildcards")


def route_html_path(path: str) -> str:
    """Public path of the prerendered HTML for a normalized request path.

    Returns:
        ``/pages/routes/<segments>/index.html``.
    """
    segments = [segment for segment in normalize_path(path).split("/") if segment]
    return "/".join(["", "pages", "routes", *segments, "index.html"])


def hash_content(data: bytes) -> str:
    """64-bit content hash, hex encoded."""
    return hashlib.blake2b(data, digest_size=8).hexdigest()


def component_import_path(entry_dir: "str | Path", component_path: "str | Path") -> str:
    """Import specifier of a component, relative to the directory of a generated entry.

    Returns:
        A POSIX relative path without extension, always starting with ``./`` or ``../``.
    """
    relative = Path(os.path.relpath(Path(component_path), Path(entry_dir)))
    posix = PurePosixPath(relative.as_posix())
    posix = posix.with_suffix("") if posix.suffix else posix
    specifier = str(posix)
    if not specifier.startswith("."):
        specifier = f"./{specifier}"
    return specifier


@dataclass(frozen=True)
class EntryPaths:
    """Locations of the generated sources for one entry."""

    entry_name: str
    client_entry: Path
    ssr_entry: Path
    output_dir: Path


def entry_paths(output_dir: Path, entry_name: str) -> EntryPaths:
    return EntryPaths(
        entry_name=entry_name,
        client_entry=output_dir / f"{entry_name}.tsx",
        ssr_entry=output_dir / f"{entry_name}-ssr.tsx",
        output_dir=output_dir,
    )
