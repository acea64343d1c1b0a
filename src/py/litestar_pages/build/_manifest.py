"""Manifest assembly from build output."""

import logging
import re
from collections.abc import Mapping, Sequence
from pathlib import Path

import msgspec

from litestar_pages.decision import decide_build_entry
from litestar_pages.manifest import Manifest, ManifestEntry
from litestar_pages.naming import hash_content
from litestar_pages.types import PageMode

__all__ = ("apply_static_routes", "find_ssr_bundle", "generate_manifest")

logger = logging.getLogger("litestar_pages")

_HASH_RE = re.compile(r"[A-Za-z0-9_]+")


def _matches(stem: str, base: str) -> bool:
    if stem == base:
        return True
    prefix = f"{base}-"
    return stem.startswith(prefix) and _HASH_RE.fullmatch(stem[len(prefix) :]) is not None


def _list_files(directory: "Path | None") -> "list[Path]":
    if directory is None or not directory.is_dir():
        return []
    return sorted(path for path in directory.iterdir() if path.is_file())


def _find_ssr_bundle(ssr_files: "Sequence[Path]", entry_name: str) -> "str | None":
    for path in ssr_files:
        if path.suffix == ".js" and _matches(path.stem, f"{entry_name}-ssr"):
            return f"/ssr/{path.name}"
    return None


def find_ssr_bundle(ssr_dir: Path, entry_name: str) -> "str | None":
    """Public path of the server bundle of an entry, if one was built."""
    return _find_ssr_bundle(_list_files(ssr_dir), entry_name)


def _entry_chunks(script_path: Path, chunks: "Mapping[str, str]") -> "list[str]":
    if not chunks:
        return []
    try:
        content = script_path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        logger.warning("Cannot read %s to resolve its chunks", script_path)
        return []
    return [public for name, public in chunks.items() if name in content]


class _CssTable:
    """Publishes one file per distinct CSS content and deletes the copies."""

    def __init__(self) -> None:
        self.by_hash: dict[str, str] = {}

    def publish(self, path: Path, public_path: str) -> str:
        try:
            digest = hash_content(path.read_bytes())
        except OSError:
            return public_path
        existing = self.by_hash.get(digest)
        if existing is not None and existing != public_path:
            path.unlink(missing_ok=True)
            return existing
        self.by_hash[digest] = public_path
        return public_path

    @property
    def shared(self) -> "str | None":
        return next(iter(self.by_hash.values()), None)


def generate_manifest(
    dist_dir: Path,
    ssr_dir: "Path | None",
    pages: "Sequence[tuple[str, PageMode]]",
    *,
    asset_url: str = "/dist",
) -> Manifest:
    """Build the manifest from the files in the output directories.

    Shared chunks are ``chunk-*.js``. An entry owns the ``.js``/``.css`` files
    named ``<entry>`` or ``<entry>-<hash>``. Identical CSS files collapse to the
    first published one and the duplicates are deleted from ``dist_dir``; entries
    without CSS of their own reference the first published stylesheet. Entries
    with no script (failed builds) are left out.

    Args:
        dist_dir: Client bundle directory.
        ssr_dir: Server bundle directory, if SSR bundles were built.
        pages: ``(entry name, mode)`` of each page, in build order.
        asset_url: URL prefix of ``dist_dir``.

    Returns:
        The manifest, without static routes.
    """
    base = asset_url.rstrip("/")
    dist_files = _list_files(dist_dir)
    ssr_files = _list_files(ssr_dir)

    chunks = {
        path.name: f"{base}/{path.name}"
        for path in dist_files
        if path.name.startswith("chunk-") and path.suffix == ".js"
    }

    css_table = _CssTable()
    found: dict[str, tuple[Path, "str | None"]] = {}
    for entry_name, _mode in pages:
        script: "Path | None" = None
        css: "str | None" = None
        for path in dist_files:
            if not _matches(path.stem, entry_name):
                continue
            if path.suffix == ".js":
                script = path
            elif path.suffix == ".css":
                css = css_table.publish(path, f"{base}/{path.name}")
        if script is not None:
            found[entry_name] = (script, css)

    entries: dict[str, ManifestEntry] = {}
    for entry_name, mode in pages:
        if entry_name not in found:
            continue
        script, css = found[entry_name]
        decision = decide_build_entry(mode, entry_name)
        entries[entry_name] = ManifestEntry(
            script=f"{base}/{script.name}",
            css=css or css_table.shared,
            chunks=_entry_chunks(script, chunks),
            static=decision.static,
            ssr=_find_ssr_bundle(ssr_files, entry_name) if decision.mode is PageMode.SSR else None,
            mode=decision.mode,
            html=decision.html,
        )
    return Manifest(entries=entries, chunks=chunks)


def apply_static_routes(manifest: Manifest, static_routes: "Mapping[str, Mapping[str, str]]") -> Manifest:
    """Record the prerendered route files of dynamic static pages.

    Returns:
        A new manifest; entries with routes no longer carry a single HTML path.
    """
    entries: dict[str, ManifestEntry] = {}
    for entry_name, entry in manifest.entries.items():
        routes = static_routes.get(entry_name)
        if routes and entry.mode is PageMode.STATIC_PRERENDER:
            decision = decide_build_entry(entry.mode, entry_name, has_static_routes=True)
            entry = msgspec.structs.replace(entry, html=decision.html, static_routes=dict(sorted(routes.items())))
        entries[entry_name] = entry
    return Manifest(entries=entries, chunks=dict(manifest.chunks))
