"""Litestar Pages plugin.

Registers one route per page, serves the build output, and runs the renderer
subprocess for the lifetime of each worker.

Example::

    from litestar import Litestar
    from litestar_pages import PagesConfig, PagesPlugin, page

    app = Litestar(
        plugins=[
            PagesPlugin(
                config=PagesConfig(
                    pages=[
                        page("/", "pages/home.tsx", loader=load_home),
                        page("/about", "pages/about.tsx", static=True),
                    ]
                )
            )
        ],
    )
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import anyio
from anyio import to_thread
from litestar.plugins import CLIPlugin, InitPluginProtocol
from litestar.static_files import create_static_files_router  # pyright: ignore[reportUnknownVariableType]

from litestar_pages.cache import RenderCache
from litestar_pages.config import PagesConfig
from litestar_pages.exceptions import ConfigurationError
from litestar_pages.export import is_export_mode, run_export
from litestar_pages.handler import PageHandler
from litestar_pages.manifest import load_manifest
from litestar_pages.reload import LiveReload, create_reload_handler
from litestar_pages.renderer import RendererClient
from litestar_pages.utils import is_non_serving_pages_cli, log_info, log_success, log_warn

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from click import Group
    from litestar import Litestar
    from litestar.config.app import AppConfig

    from litestar_pages.manifest import Manifest

__all__ = ("PagesPlugin",)


class PagesPlugin(InitPluginProtocol, CLIPlugin):
    """Pages plugin for Litestar."""

    __slots__ = ("_config", "_handlers", "_live_reload", "_manifest", "_renderer")

    def __init__(self, config: "PagesConfig | None" = None) -> None:
        """Initialize the plugin.

        Args:
            config: Pages configuration. Defaults to an empty ``PagesConfig``.
        """
        self._config = config or PagesConfig()
        self._manifest: "Manifest | None" = None
        self._handlers: list[PageHandler] = []
        self._renderer: "RendererClient | None" = None
        self._live_reload: "LiveReload | None" = None

    @property
    def config(self) -> PagesConfig:
        return self._config

    @property
    def manifest(self) -> "Manifest | None":
        return self._manifest

    @property
    def handlers(self) -> "list[PageHandler]":
        return list(self._handlers)

    @property
    def renderer(self) -> "RendererClient | None":
        """The renderer started by the lifespan, if any."""
        return self._renderer

    @property
    def live_reload(self) -> "LiveReload | None":
        """Source watcher and reload event stream, in development."""
        return self._live_reload

    def on_cli_init(self, cli: "Group") -> None:
        """Register the ``pages`` command group.

        Args:
            cli: The Click command group to add commands to.
        """
        from litestar_pages.cli import pages_group

        cli.add_command(pages_group)

    def _configure_static_files(self, app_config: "AppConfig") -> None:
        paths = self._config.paths
        app_config.route_handlers.append(
            create_static_files_router(
                path=self._config.asset_url,
                directories=[paths.dist_dir],
                name="pages-assets",
                html_mode=False,
                include_in_schema=False,
            )
        )
        public_dir = paths.public_source_dir if self._config.is_dev_mode else paths.public_output_dir
        if public_dir.is_dir():
            app_config.route_handlers.append(
                create_static_files_router(
                    path=self._config.public_url,
                    directories=[public_dir],
                    name="pages-public",
                    html_mode=False,
                    include_in_schema=False,
                )
            )

    def on_app_init(self, app_config: "AppConfig") -> "AppConfig":
        """Configure the Litestar application for pages.

        In export mode the static data loaders are evaluated and the process
        exits before the application is created.

        Args:
            app_config: The Litestar application configuration.

        Raises:
            ManifestNotFoundError: If serving in production without a build.

        Returns:
            The modified application configuration.
        """
        from litestar import Response
        from litestar.connection import Request as LitestarRequest

        if is_export_mode():
            run_export(self._config.page_configs())

        app_config.signature_namespace["Response"] = Response
        app_config.signature_namespace["Request"] = LitestarRequest

        serving = not is_non_serving_pages_cli()
        if not self._config.is_dev_mode and serving:
            self._manifest = load_manifest(self._config.paths.manifest_path)

        ttl = self._config.runtime.render_cache_ttl
        reload_url = self._config.reload_url if self._config.is_live_reload else None
        for page_config in self._config.page_configs():
            handler = PageHandler(
                self._config,
                page_config,
                manifest=self._manifest,
                cache=RenderCache(ttl) if ttl is not None and not self._config.is_dev_mode else None,
                reload_url=reload_url,
            )
            self._handlers.append(handler)
            routes = self._config.routes_for(page_config.component_path)
            app_config.route_handlers.extend(handler.create_route_handlers(routes))

        if reload_url is not None and self._handlers:
            self._live_reload = LiveReload(self._config, self._handlers)
            app_config.route_handlers.append(create_reload_handler(self._live_reload.broadcaster, reload_url))

        self._configure_static_files(app_config)
        app_config.lifespan.append(self.lifespan)  # pyright: ignore[reportUnknownMemberType]
        return app_config

    def _needs_renderer(self) -> bool:
        if not self._config.runtime.start_renderer or is_non_serving_pages_cli() or not self._handlers:
            return False
        if self._config.is_dev_mode:
            return True
        return self._manifest is not None and self._manifest.has_ssr_entries()

    def _create_renderer(self) -> RendererClient:
        if self._config.is_dev_mode:
            return RendererClient.from_source(self._config)
        try:
            return RendererClient.from_packaged_runtime(self._config)
        except ConfigurationError as exc:
            log_warn(f"{exc} Falling back to the renderer source.")
            return RendererClient.from_source(self._config, production=True)

    @asynccontextmanager
    async def lifespan(self, app: "Litestar") -> "AsyncIterator[None]":
        """Worker-level lifespan: start the renderer and hand it to every page.

        In development the sources are watched for the lifetime of the worker.

        Args:
            app: The Litestar application instance.

        Yields:
            None
        """
        if self._needs_renderer():
            renderer = self._create_renderer()
            await to_thread.run_sync(renderer.start)
            self._renderer = renderer
            for handler in self._handlers:
                handler.renderer = renderer
            log_success(f"Renderer started on {renderer.socket_path}")
        elif self._handlers and not self._config.is_dev_mode and not self._config.logging_config.is_quiet:
            log_info("No server-rendered pages; serving prebuilt output only")
        try:
            if self._live_reload is not None and self._renderer is not None:
                stop = anyio.Event()
                async with anyio.create_task_group() as tg:
                    tg.start_soon(self._live_reload.watch, stop)
                    try:
                        yield
                    finally:
                        stop.set()
            else:
                yield
        finally:
            await self._shutdown()

    async def _shutdown(self) -> None:
        renderer, self._renderer = self._renderer, None
        for handler in self._handlers:
            handler.renderer = None
        if renderer is None:
            return
        try:
            await renderer.aclose()
        finally:
            await to_thread.run_sync(renderer.stop)

