"""Page serving decisions.

Everything here is a pure function of its inputs: the request handler gathers
the request path, mode, environment and manifest state, asks what to do, and
performs the I/O itself.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from litestar_pages.exceptions import RenderError
from litestar_pages.naming import normalize_path
from litestar_pages.types import PageMode

if TYPE_CHECKING:
    from collections.abc import Mapping

    from litestar_pages.manifest import ManifestEntry

__all__ = (
    "BuildEntryDecision",
    "PageAction",
    "PageDecision",
    "PageRequest",
    "decide_build_entry",
    "decide_page_action",
    "default_static_path",
    "match_static_route",
    "resolve_render_path",
    "should_build_ssr",
)


class PageAction(str, Enum):
    SERVE_STATIC_FILE = "serve-static-file"
    SERVE_ROUTE_FILE = "serve-route-file"
    NOT_FOUND = "not-found"
    NEEDS_SETUP = "needs-setup"
    RENDER_CLIENT_ONLY_SHELL = "render-client-only-shell"
    RENDER_STATIC_PRERENDER = "render-static-prerender"
    RENDER_SSR = "render-ssr"


@dataclass(frozen=True)
class PageRequest:
    """Inputs of a serving decision.

    Attributes:
        is_dev: Development mode.
        mode: Rendering mode of the page.
        request_path: Path of the incoming request.
        entry_name: Entry name of the page component.
        has_manifest: Whether build output for the page is available (always true in production,
            true in development once the page's setup has completed).
        static_path: Fallback prerendered HTML path, empty when there is none.
        has_renderer: Whether a renderer is running.
        entry: Manifest entry of the page, if any.
    """

    is_dev: bool
    mode: PageMode
    request_path: str
    entry_name: str
    has_manifest: bool = False
    static_path: str = ""
    has_renderer: bool = False
    entry: "ManifestEntry | None" = None


@dataclass(frozen=True)
class PageDecision:
    action: PageAction
    html_path: str = ""


def default_static_path(entry_name: str) -> str:
    return f"/pages/{entry_name}/index.html"


def match_static_route(static_routes: "Mapping[str, str] | None", request_path: str) -> "str | None":
    """Find the prerendered file of a request path; the path is normalized first.

    Returns:
        The HTML path, or None when the path was not prerendered.
    """
    if not static_routes:
        return None
    return static_routes.get(normalize_path(request_path))


def _static_file(request: PageRequest) -> PageDecision:
    if request.entry is not None and request.entry.html:
        return PageDecision(PageAction.SERVE_STATIC_FILE, request.entry.html)
    if request.static_path:
        return PageDecision(PageAction.SERVE_STATIC_FILE, request.static_path)
    return PageDecision(PageAction.NOT_FOUND)


def _decide_production(request: PageRequest) -> PageDecision:
    match request.mode:
        case PageMode.CLIENT_ONLY:
            return _static_file(request)
        case PageMode.STATIC_PRERENDER:
            if request.entry is not None and request.entry.static_routes:
                html_path = match_static_route(request.entry.static_routes, request.request_path)
                if html_path is None:
                    return PageDecision(PageAction.NOT_FOUND)
                return PageDecision(PageAction.SERVE_ROUTE_FILE, html_path)
            return _static_file(request)
        case _:
            return PageDecision(PageAction.RENDER_SSR)


def _decide_development(request: PageRequest) -> PageDecision:
    needs_setup = not request.has_manifest and (request.mode is PageMode.SSR or request.has_renderer)
    if needs_setup:
        return PageDecision(PageAction.NEEDS_SETUP)
    match request.mode:
        case PageMode.CLIENT_ONLY:
            return PageDecision(PageAction.RENDER_CLIENT_ONLY_SHELL)
        case PageMode.STATIC_PRERENDER:
            return PageDecision(PageAction.RENDER_STATIC_PRERENDER)
        case _:
            return PageDecision(PageAction.RENDER_SSR)


def decide_page_action(request: PageRequest) -> PageDecision:
    """Decide how to answer a page request.

    Production serves prebuilt files for client-only and static pages (never
    rendering a missing static path on demand) and renders SSR pages. Development
    builds each page once on first hit, then renders from source.

    Returns:
        The action to perform, with the HTML path for file-serving actions.
    """
    if request.is_dev:
        return _decide_development(request)
    return _decide_production(request)


def resolve_render_path(
    *,
    is_dev: bool,
    component_path: Path,
    entry_name: str,
    entry: "ManifestEntry | None",
    output_dir: Path,
) -> str:
    """Module the renderer should import to render a page.

    Raises:
        RenderError: In production, when the manifest has no SSR bundle for the entry.

    Returns:
        Absolute path of the component source (development) or of its SSR bundle.
    """
    if is_dev:
        return str(component_path)
    if entry is None or not entry.ssr:
        msg = f"SSR bundle not found in manifest for {entry_name}"
        raise RenderError(msg)
    return str(output_dir / entry.ssr.lstrip("/"))


@dataclass(frozen=True)
class BuildEntryDecision:
    mode: PageMode
    static: bool
    html: "str | None" = None


def decide_build_entry(mode: PageMode, entry_name: str, *, has_static_routes: bool = False) -> BuildEntryDecision:
    """Manifest classification of an entry.

    Returns:
        Mode, static flag and default prerendered HTML path of the entry.
    """
    match mode:
        case PageMode.CLIENT_ONLY:
            return BuildEntryDecision(mode, static=True, html=default_static_path(entry_name))
        case PageMode.STATIC_PRERENDER:
            html = None if has_static_routes else default_static_path(entry_name)
            return BuildEntryDecision(mode, static=True, html=html)
        case _:
            return BuildEntryDecision(PageMode.SSR, static=False)


def should_build_ssr(mode: PageMode) -> bool:
    return mode is not PageMode.CLIENT_ONLY
