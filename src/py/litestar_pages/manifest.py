"""Build manifest model.

The manifest is written once by ``litestar pages build`` and read once at
application startup. It maps every entry name to the files produced for it:

.. code-block:: json

    {
      "entries": {
        "pages-home-entry": {
          "script": "/dist/pages-home-entry-a1b2c3.js",
          "css": "/dist/pages-home-entry-d4e5f6.css",
          "chunks": ["/dist/chunk-0f1e2d.js"],
          "static": false,
          "ssr": "/ssr/pages-home-entry-ssr.js",
          "mode": "ssr"
        }
      },
      "chunks": {"chunk-0f1e2d.js": "/dist/chunk-0f1e2d.js"}
    }
"""

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import msgspec

from litestar_pages.exceptions import ConfigurationError, ManifestNotFoundError
from litestar_pages.types import PageMode

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = (
    "Manifest",
    "ManifestEntry",
    "PageAssets",
    "encode_manifest",
    "get_assets",
    "load_manifest",
    "parse_manifest",
    "write_manifest",
)


class ManifestEntry(msgspec.Struct, rename="camel", omit_defaults=True):
    """Build outputs for one entry."""

    script: str
    mode: PageMode
    css: "str | None" = None
    chunks: "list[str]" = msgspec.field(default_factory=list)
    static: bool = False
    ssr: "str | None" = None
    html: "str | None" = None
    static_routes: "dict[str, str] | None" = None


class Manifest(msgspec.Struct, omit_defaults=True):
    entries: "dict[str, ManifestEntry]" = msgspec.field(default_factory=dict)
    chunks: "dict[str, str]" = msgspec.field(default_factory=dict)

    def get(self, entry_name: str) -> "ManifestEntry | None":
        return self.entries.get(entry_name)

    def has_ssr_entries(self) -> bool:
        """Whether any entry needs the renderer at request time."""
        return any(entry.mode is PageMode.SSR for entry in self.entries.values())

    def iter_static_routes(self) -> "Iterator[tuple[str, str, str]]":
        for entry_name, entry in self.entries.items():
            for path, html_path in (entry.static_routes or {}).items():
                yield entry_name, path, html_path


@dataclass
class PageAssets:
    """Script, stylesheet and shared chunks to reference from a page shell."""

    script: str
    css: "str | None" = None
    chunks: "list[str]" = field(default_factory=list)


def parse_manifest(content: "bytes | str") -> Manifest:
    """Parse manifest JSON.

    Raises:
        ConfigurationError: If the content is not a valid manifest.

    Returns:
        The parsed manifest.
    """
    try:
        return msgspec.json.decode(content, type=Manifest)
    except (msgspec.DecodeError, msgspec.ValidationError) as exc:
        msg = f"Invalid pages manifest: {exc}"
        raise ConfigurationError(msg) from exc


def encode_manifest(manifest: Manifest) -> bytes:
    return msgspec.json.format(msgspec.json.encode(manifest), indent=2)


def load_manifest(path: Path) -> Manifest:
    """Load the manifest from disk.

    Raises:
        ManifestNotFoundError: If the file does not exist or cannot be read.

    Returns:
        The parsed manifest.
    """
    try:
        content = path.read_bytes()
    except OSError as exc:
        raise ManifestNotFoundError(str(path)) from exc
    return parse_manifest(content)


def write_manifest(path: Path, manifest: Manifest) -> None:
    """Write the manifest atomically.

    The JSON goes to a temporary file next to ``path`` which then replaces it,
    so a reader never sees a partially written manifest.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(encode_manifest(manifest))
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def get_assets(manifest: "Manifest | None", entry_name: str, asset_url: str = "/dist") -> PageAssets:
    """Resolve the assets of an entry.

    Entries missing from the manifest (development builds) fall back to the
    unhashed bundle names under ``asset_url``.

    Returns:
        The page assets.
    """
    entry = manifest.get(entry_name) if manifest is not None else None
    if entry is not None:
        return PageAssets(script=entry.script, css=entry.css, chunks=list(entry.chunks))
    base = asset_url.rstrip("/")
    return PageAssets(script=f"{base}/{entry_name}.js", css=f"{base}/{entry_name}.css")
