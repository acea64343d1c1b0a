"""Page request handling.

One :class:`PageHandler` serves every route of one component. It asks
:func:`~litestar_pages.decision.decide_page_action` what to do and performs
the I/O: reading prebuilt files, building the page once in development,
calling the loaders and the renderer, and assembling the HTML.
"""

import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

import anyio
from litestar import Request, Response, get
from litestar.exceptions import ImproperlyConfiguredException, NotFoundException
from litestar.response import Redirect

from litestar_pages.build._entries import write_entry_sources
from litestar_pages.cache import RenderCache, hash_props
from litestar_pages.decision import (
    PageAction,
    PageDecision,
    PageRequest,
    decide_page_action,
    default_static_path,
    resolve_render_path,
)
from litestar_pages.exceptions import ConfigurationError, RedirectContract
from litestar_pages.export import load_static_paths
from litestar_pages.html import (
    add_cache_bust,
    append_reload_script,
    render_client_only_shell,
    render_error_page,
    render_html_shell,
    render_prerendered_html,
)
from litestar_pages.manifest import Manifest, PageAssets, get_assets
from litestar_pages.naming import normalize_path
from litestar_pages.types import PageMode

if TYPE_CHECKING:
    from litestar.handlers import HTTPRouteHandler

    from litestar_pages.config import PagesConfig
    from litestar_pages.renderer import Renderer
    from litestar_pages.types import PageConfig, PageRoute

__all__ = ("PageHandler", "SetupGate")

logger = logging.getLogger("litestar_pages")

_HTML_MEDIA_TYPE = "text/html; charset=utf-8"


class SetupGate:
    """Runs a setup coroutine at most once.

    Concurrent callers wait for the first run. A failed run is remembered and
    re-raised to every later caller instead of being retried, until :meth:`reset`.
    """

    __slots__ = ("_done", "_error", "_lock")

    def __init__(self) -> None:
        self._done = False
        self._error: "BaseException | None" = None
        self._lock: "anyio.Lock | None" = None

    @property
    def attempted(self) -> bool:
        return self._done

    @property
    def succeeded(self) -> bool:
        return self._done and self._error is None

    def reset(self) -> None:
        """Forget the previous run so the next caller runs setup again."""
        self._done = False
        self._error = None

    async def run(self, setup: "Callable[[], Awaitable[None]]") -> None:
        if not self._done:
            if self._lock is None:
                self._lock = anyio.Lock()
            async with self._lock:
                if not self._done:
                    try:
                        await setup()
                    except Exception as exc:
                        self._error = exc
                    self._done = True
        if self._error is not None:
            raise self._error


async def _call_loader(loader: "Callable[..., Any]", *args: Any) -> Any:
    result = loader(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


async def page_view(request: "Request[Any, Any, Any]") -> "Response[Any]":
    """Route handler shared by every page route."""
    handler = request.route_handler.opt.get("_pages_handler")
    if not isinstance(handler, PageHandler):
        msg = "Page handler is not available for this route. Ensure PageHandler.create_route_handlers() was used."
        raise ImproperlyConfiguredException(msg)
    return await handler.handle(request)


class PageHandler:
    """Serves every route of one page."""

    __slots__ = ("_build_stamp", "_cache", "_config", "_gate", "_manifest", "_page", "_reload_url", "renderer")

    def __init__(
        self,
        config: "PagesConfig",
        page: "PageConfig",
        *,
        manifest: "Manifest | None" = None,
        renderer: "Renderer | None" = None,
        cache: "RenderCache | None" = None,
        reload_url: "str | None" = None,
    ) -> None:
        """Initialize the handler.

        Args:
            config: Pages configuration.
            page: The page served by this handler.
            manifest: Build manifest; required in production.
            renderer: Renderer, usually assigned once the application lifespan has started it.
            cache: Render cache for production SSR output.
            reload_url: Live reload event stream; development documents subscribe to it
                and reference their bundles with a per-build cache-busting stamp.
        """
        self._config = config
        self._page = page
        self._manifest = manifest
        self._cache = cache
        self._gate = SetupGate()
        self._reload_url = reload_url
        self._build_stamp = ""
        self.renderer = renderer

    @property
    def page(self) -> "PageConfig":
        return self._page

    @property
    def is_dev(self) -> bool:
        return self._config.is_dev_mode

    def create_route_handlers(self, routes: "list[PageRoute]") -> "list[HTTPRouteHandler]":
        """Create one Litestar route handler per route of this page.

        Returns:
            Route handlers suitable for registering on an application.
        """
        return [
            get(
                path=route.path,
                name=route.name,
                opt={"_pages_handler": self},
                include_in_schema=False,
            )(page_view)
            for route in routes
        ]

    def decide(self, request_path: str, *, has_manifest: "bool | None" = None) -> PageDecision:
        entry_name = self._page.entry_name
        entry = self._manifest.get(entry_name) if self._manifest is not None else None
        if has_manifest is None:
            has_manifest = not self.is_dev or self._gate.succeeded
        return decide_page_action(
            PageRequest(
                is_dev=self.is_dev,
                mode=self._page.mode,
                request_path=request_path,
                entry_name=entry_name,
                has_manifest=has_manifest,
                static_path=default_static_path(entry_name) if entry is not None and entry.static else "",
                has_renderer=self.renderer is not None,
                entry=entry,
            )
        )

    async def handle(self, request: "Request[Any, Any, Any]") -> "Response[Any]":
        """Answer a page request.

        Raises:
            NotFoundException: If the page has nothing to serve for this path.

        Returns:
            The HTML response, a redirect, or a 500 error page.
        """
        try:
            return await self._handle(request)
        except NotFoundException:
            raise
        except Exception as exc:
            if isinstance(exc, RedirectContract):
                return Redirect(path=exc.redirect_url, status_code=exc.redirect_status_code)
            logger.exception("Failed to serve %s (%s)", request.url.path, self._page.component_path)
            return self._html(render_error_page(exc, is_dev=self.is_dev), status_code=500)

    async def _handle(self, request: "Request[Any, Any, Any]") -> "Response[Any]":
        path = request.url.path
        decision = self.decide(path)
        if decision.action is PageAction.NEEDS_SETUP:
            await self._gate.run(self._setup)
            decision = self.decide(path, has_manifest=True)

        match decision.action:
            case PageAction.NOT_FOUND:
                raise NotFoundException(detail=f"No page output for {path}")
            case PageAction.SERVE_STATIC_FILE | PageAction.SERVE_ROUTE_FILE:
                return await self._serve_file(decision.html_path)
            case PageAction.RENDER_CLIENT_ONLY_SHELL:
                assets = self._assets()
                html = render_client_only_shell(assets.script, "", assets.css, assets.chunks, title=self._title)
                return self._html(html)
            case PageAction.RENDER_STATIC_PRERENDER:
                return await self._render_static(request)
            case _:
                return await self._render_ssr(request)

    async def _setup(self) -> None:
        """Build this page's browser bundle in development."""
        renderer = self._require_renderer()
        paths = self._config.paths
        source = self._config.component_source(self._page.component_path)
        entry = write_entry_sources(
            paths.output_path / "entries", self._page.entry_name, source, self._page.mode, ssr=False
        )
        await renderer.build([str(entry.client_entry)], str(paths.dist_dir))
        self._build_stamp = str(time.time_ns())
        logger.info("Built %s for %s", self._page.entry_name, self._page.component_path)

    async def rebuild(self) -> bool:
        """Rebuild the browser bundle of a page that was already built in development.

        Pages that have not been requested yet are left alone; their first
        request builds them. A page whose last build failed is retried.

        Raises:
            BuildError: If the bundle does not build. Requests get the error
                page until the next successful rebuild.

        Returns:
            Whether a build ran.
        """
        if not self.is_dev or not self._gate.attempted:
            return False
        self._gate.reset()
        await self._gate.run(self._setup)
        return True

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()

    def _require_renderer(self) -> "Renderer":
        if self.renderer is None:
            msg = "No renderer is running; enable runtime.start_renderer or assign one before serving pages"
            raise ConfigurationError(msg)
        return self.renderer

    @property
    def _title(self) -> "str | None":
        return self._page.title or self._config.title

    def _assets(self) -> PageAssets:
        assets = get_assets(self._manifest, self._page.entry_name, self._config.asset_url)
        if self._manifest is None and assets.css is not None:
            css_file = self._config.paths.dist_dir / assets.css.rsplit("/", 1)[-1]
            if not css_file.is_file():
                assets.css = None
        if self._reload_url is not None and self._build_stamp:
            stamp = self._build_stamp
            assets.script = add_cache_bust(assets.script, stamp)
            assets.css = add_cache_bust(assets.css, stamp) if assets.css else None
            assets.chunks = [add_cache_bust(chunk, stamp) for chunk in assets.chunks]
        return assets

    def _html(self, content: str, status_code: int = 200) -> "Response[str]":
        if self._reload_url is not None:
            content = append_reload_script(content, self._reload_url)
        return Response(content=content, status_code=status_code, media_type=_HTML_MEDIA_TYPE)

    async def _serve_file(self, html_path: str) -> "Response[bytes]":
        target = anyio.Path(self._config.paths.output_path / html_path.lstrip("/"))
        try:
            content = await target.read_bytes()
        except (FileNotFoundError, IsADirectoryError) as exc:
            raise NotFoundException(detail=f"Prerendered file {html_path} is missing") from exc
        return Response(content=content, status_code=200, media_type=_HTML_MEDIA_TYPE)

    def _render_path(self) -> str:
        entry = self._manifest.get(self._page.entry_name) if self._manifest is not None else None
        return resolve_render_path(
            is_dev=self.is_dev,
            component_path=self._config.component_source(self._page.component_path),
            entry_name=self._page.entry_name,
            entry=entry,
            output_dir=self._config.paths.output_path,
        )

    async def _load_props(self, request: "Request[Any, Any, Any]") -> "dict[str, Any]":
        if self._page.props_loader is None:
            return {}
        props = await _call_loader(self._page.props_loader, request)
        if props is None:
            return {}
        if not isinstance(props, Mapping):
            msg = f"Props loader of {self._page.component_path} returned {type(props).__name__}, expected a mapping"
            raise TypeError(msg)
        return dict(props)

    async def _render_ssr(self, request: "Request[Any, Any, Any]") -> "Response[str]":
        renderer = self._require_renderer()
        props = await self._load_props(request)
        render_path = self._render_path()

        use_cache = self._cache is not None and not self.is_dev
        props_hash = hash_props(props) if use_cache else ""
        rendered = self._cache.get(render_path, props_hash) if use_cache else None  # type: ignore[union-attr]
        if rendered is None:
            rendered = await renderer.render(render_path, props)
            if use_cache:
                self._cache.set(render_path, props_hash, rendered)  # type: ignore[union-attr]

        assets = self._assets()
        return self._html(
            render_html_shell(
                rendered.body, props, assets.script, rendered.head, assets.css, assets.chunks, title=self._title
            )
        )

    async def _render_static(self, request: "Request[Any, Any, Any]") -> "Response[str]":
        """Render a static page on demand (development only)."""
        renderer = self._require_renderer()
        props: dict[str, Any] = {}
        if self._page.mode is PageMode.STATIC_PRERENDER and self._page.static_data_loader is not None:
            wanted = normalize_path(request.url.path)
            for item in await load_static_paths(self._page):
                if normalize_path(item.path) == wanted:
                    props = dict(item.props)
                    break
            else:
                raise NotFoundException(detail=f"{wanted} is not produced by the static data loader")

        rendered = await renderer.render(self._render_path(), props)
        assets = self._assets()
        return self._html(
            render_prerendered_html(
                rendered.body, props, assets.script, rendered.head, assets.css, assets.chunks, title=self._title
            )
        )
