"""Utility helpers for litestar-pages."""

import hashlib
import sys
from importlib.util import find_spec
from pathlib import Path

from litestar.cli._utils import console  # pyright: ignore[reportPrivateImportUsage]

__all__ = (
    "console",
    "get_package_path",
    "get_static_resource_path",
    "is_non_serving_pages_cli",
    "log_fail",
    "log_info",
    "log_success",
    "log_warn",
    "write_if_changed",
)

_TICK = "[bold green]✓[/]"
_INFO = "[cyan]•[/]"
_WARN = "[yellow]![/]"
_FAIL = "[red]x[/]"


def get_package_path(*parts: str) -> Path:
    """Resolve a path inside the installed litestar-pages package.

    Args:
        *parts: Path segments relative to the package root.

    Returns:
        The resolved package path.
    """
    spec = find_spec("litestar_pages")
    if spec and spec.origin:
        return Path(spec.origin).parent.joinpath(*parts)
    return Path(__file__).resolve().parent.joinpath(*parts)


def get_static_resource_path(filename: str) -> Path:
    """Resolve a bundled static resource path.

    Args:
        filename: Static file name inside the package static directory.

    Returns:
        Path to the bundled resource.
    """
    return get_package_path("static", filename)


def write_if_changed(path: Path, content: "bytes | str", *, encoding: str = "utf-8") -> bool:
    """Write content to file only if it differs from the existing content.

    Generated entry sources are rewritten on every build; skipping identical
    writes keeps the bundler's file watchers quiet.

    Args:
        path: The file path to write to.
        content: The content to write (bytes or str).
        encoding: Encoding for string content.

    Returns:
        True if file was written (content changed), False if skipped (unchanged).
    """
    content_bytes = content.encode(encoding) if isinstance(content, str) else content
    if path.exists():
        try:
            if hashlib.md5(path.read_bytes()).digest() == hashlib.md5(content_bytes).digest():  # noqa: S324
                return False
        except OSError:
            pass
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content_bytes)
    return True


def is_non_serving_pages_cli() -> bool:
    """Return True when running a ``litestar pages ...`` command that does not start a server.

    Returns:
        True when the current process runs ``litestar pages build`` or ``litestar pages status``.
    """
    argv_str = " ".join(sys.argv)
    return any(command in argv_str for command in (" pages build", " pages status"))


def log_success(message: str) -> None:
    """Print a success message with consistent styling."""

    console.print(f"{_TICK} {message}")


def log_info(message: str) -> None:
    """Print an informational message with consistent styling."""

    console.print(f"{_INFO} {message}")


def log_warn(message: str) -> None:
    """Print a warning message with consistent styling."""

    console.print(f"{_WARN} {message}")


def log_fail(message: str) -> None:
    """Print an error message with consistent styling."""

    console.print(f"{_FAIL} {message}")
