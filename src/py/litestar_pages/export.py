"""Static export mode.

``litestar pages build`` needs the concrete paths of every static page with a
data loader. Rather than reimplementing the loaders, it runs the host
application a second time with ``LITESTAR_PAGES_EXPORT=1``. In that mode the
plugin evaluates every static data loader, prints one JSON document to stdout
and exits::

    {"version": 1, "pages": [{"componentPath": "pages/post.tsx", "entries": [{"path": "/blog/hello", "props": {}}]}]}
"""

import inspect
import os
import sys
from typing import TYPE_CHECKING, Any, NoReturn

import anyio
import msgspec

from litestar_pages.config import EXPORT_ENV, TRUE_VALUES
from litestar_pages.exceptions import ExportError
from litestar_pages.types import PageMode, StaticPathData

if TYPE_CHECKING:
    from collections.abc import Sequence

    from litestar_pages.types import PageConfig

__all__ = (
    "EXPORT_VERSION",
    "StaticExportDocument",
    "StaticExportPage",
    "collect_static_exports",
    "is_export_mode",
    "load_static_paths",
    "run_export",
)

EXPORT_VERSION = 1


class StaticExportPage(msgspec.Struct, rename="camel"):
    component_path: str
    entries: "list[StaticPathData]" = msgspec.field(default_factory=list)


class StaticExportDocument(msgspec.Struct):
    version: int
    pages: "list[StaticExportPage]" = msgspec.field(default_factory=list)


def is_export_mode() -> bool:
    return os.getenv(EXPORT_ENV, "False") in TRUE_VALUES


async def load_static_paths(page: "PageConfig") -> "list[StaticPathData]":
    """Call the static data loader of a page.

    The loader may return ``StaticPathData`` items or mappings with ``path`` and
    ``props`` keys, synchronously or from a coroutine.

    Raises:
        ExportError: If an item is neither.

    Returns:
        The concrete paths of the page.
    """
    if page.static_data_loader is None:
        return []
    result: Any = page.static_data_loader()
    if inspect.isawaitable(result):
        result = await result
    try:
        return [item if isinstance(item, StaticPathData) else msgspec.convert(item, StaticPathData) for item in result]
    except (TypeError, msgspec.ValidationError) as exc:
        msg = f"static data loader of {page.component_path} returned invalid entries: {exc}"
        raise ExportError(msg) from exc


async def collect_static_exports(pages: "Sequence[PageConfig]") -> StaticExportDocument:
    """Evaluate the static data loader of every static page.

    Returns:
        The export document.
    """
    exported: list[StaticExportPage] = []
    for page in pages:
        if page.mode is not PageMode.STATIC_PRERENDER or page.static_data_loader is None:
            continue
        exported.append(StaticExportPage(component_path=page.component_path, entries=await load_static_paths(page)))
    return StaticExportDocument(version=EXPORT_VERSION, pages=exported)


def run_export(pages: "Sequence[PageConfig]") -> NoReturn:
    """Write the export document to stdout and exit the process.

    Raises:
        SystemExit: Always; status 0 on success, 1 when a loader fails.
    """
    try:
        document = anyio.run(collect_static_exports, pages)
    except Exception as exc:  # noqa: BLE001
        sys.stderr.write(f"static export failed: {exc}\n")
        sys.stderr.flush()
        raise SystemExit(1) from exc
    sys.stdout.flush()
    sys.stdout.buffer.write(msgspec.json.encode(document) + b"\n")
    sys.stdout.buffer.flush()
    raise SystemExit(0)
