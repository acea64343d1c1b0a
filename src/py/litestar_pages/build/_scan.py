"""Page discovery by static analysis of the host module."""

import ast
import logging
from dataclasses import dataclass
from pathlib import Path

from litestar_pages.exceptions import BuildFailedError
from litestar_pages.types import PageMode

__all__ = ("DiscoveredPage", "scan_pages", "scan_source")

logger = logging.getLogger("litestar_pages")

_REGISTRATION_NAMES = frozenset({"page"})


@dataclass(frozen=True)
class DiscoveredPage:
    """A page registration found in the host source."""

    component_path: str
    mode: PageMode
    has_static_data: bool = False
    lineno: int = 0
    title: "str | None" = None


def _call_name(node: ast.Call) -> "str | None":
    if isinstance(node.func, ast.Name):
        return node.func.id
    if isinstance(node.func, ast.Attribute):
        return node.func.attr
    return None


def _literal_flag(call: ast.Call, name: str, filename: str) -> bool:
    for keyword in call.keywords:
        if keyword.arg != name:
            continue
        if isinstance(keyword.value, ast.Constant):
            return bool(keyword.value.value)
        logger.warning("%s:%d: non-literal %s= is ignored by page discovery", filename, call.lineno, name)
        return False
    return False


def _literal_str(call: ast.Call, name: str, filename: str) -> "str | None":
    for keyword in call.keywords:
        if keyword.arg != name:
            continue
        if isinstance(keyword.value, ast.Constant) and isinstance(keyword.value.value, str):
            return keyword.value.value
        if not (isinstance(keyword.value, ast.Constant) and keyword.value.value is None):
            logger.warning("%s:%d: non-literal %s= is ignored by page discovery", filename, call.lineno, name)
        return None
    return None


def _has_keyword(call: ast.Call, name: str) -> bool:
    return any(
        keyword.arg == name and not (isinstance(keyword.value, ast.Constant) and keyword.value.value is None)
        for keyword in call.keywords
    )


def _component_node(call: ast.Call) -> "ast.expr | None":
    if len(call.args) >= 2:  # noqa: PLR2004
        return call.args[1]
    for keyword in call.keywords:
        if keyword.arg == "component":
            return keyword.value
    return None


def _classify(call: ast.Call, component_path: str, filename: str) -> DiscoveredPage:
    client_only = _literal_flag(call, "client_only", filename)
    static = _literal_flag(call, "static", filename)
    has_static_data = _has_keyword(call, "static_data")

    mode = PageMode.SSR
    if client_only and static:
        logger.warning("%s:%d: %s is both client_only and static; using SSR", filename, call.lineno, component_path)
    elif client_only:
        mode = PageMode.CLIENT_ONLY
    elif static:
        mode = PageMode.STATIC_PRERENDER

    if has_static_data and mode is not PageMode.STATIC_PRERENDER:
        logger.warning("%s:%d: %s has static_data but is not static", filename, call.lineno, component_path)
        has_static_data = False
    title = _literal_str(call, "title", filename)
    return DiscoveredPage(component_path, mode, has_static_data, call.lineno, title)


def scan_source(source: str, filename: str = "<source>") -> "list[DiscoveredPage]":
    """Find ``page(...)`` registrations without executing the source.

    Calls whose component path is not a string literal are skipped with a
    warning. A component registered several times keeps its first registration.

    Raises:
        BuildFailedError: If the source cannot be parsed.

    Returns:
        The discovered pages in source order.
    """
    try:
        tree = ast.parse(source, filename=filename)
    except SyntaxError as exc:
        msg = f"Cannot parse {filename}: {exc}"
        raise BuildFailedError(msg) from exc

    calls = [
        node
        for node in ast.walk(tree)
        if isinstance(node, ast.Call) and _call_name(node) in _REGISTRATION_NAMES
    ]
    calls.sort(key=lambda node: (node.lineno, node.col_offset))

    found: dict[str, DiscoveredPage] = {}
    for call in calls:
        node = _component_node(call)
        if node is None:
            continue
        if not (isinstance(node, ast.Constant) and isinstance(node.value, str)):
            logger.warning("%s:%d: page component is not a string literal; skipping", filename, call.lineno)
            continue
        if node.value in found:
            continue
        found[node.value] = _classify(call, node.value, filename)
    return list(found.values())


def scan_pages(main_file: Path) -> "list[DiscoveredPage]":
    """Discover the pages registered in ``main_file``.

    Raises:
        BuildFailedError: If the file cannot be read or parsed.

    Returns:
        The discovered pages.
    """
    try:
        source = main_file.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read {main_file}: {exc}"
        raise BuildFailedError(msg) from exc
    return scan_source(source, filename=str(main_file))
