"""Configuration for Litestar Pages.

``PagesConfig`` is the root object passed to ``PagesPlugin``; it lists the
page routes and groups the path, runtime and logging settings.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from litestar_pages.config._constants import (
    BUN_ENV,
    DEV_MODE_ENV,
    EXPORT_ENV,
    LOG_LEVEL_ENV,
    PROD_ENV,
    SOCKET_ENV,
    TRUE_VALUES,
)
from litestar_pages.config._logging import LoggingConfig  # pyright: ignore[reportPrivateUsage]
from litestar_pages.config._paths import PathConfig  # pyright: ignore[reportPrivateUsage]
from litestar_pages.config._runtime import RuntimeConfig  # pyright: ignore[reportPrivateUsage]

if TYPE_CHECKING:
    from litestar_pages.executor import BunExecutor
    from litestar_pages.types import PageConfig, PageRoute

__all__ = (
    "BUN_ENV",
    "DEV_MODE_ENV",
    "EXPORT_ENV",
    "LOG_LEVEL_ENV",
    "PROD_ENV",
    "SOCKET_ENV",
    "TRUE_VALUES",
    "LoggingConfig",
    "PagesConfig",
    "PathConfig",
    "RuntimeConfig",
)

logger = logging.getLogger("litestar_pages")


def _normalize_url(url: str) -> str:
    url = f"/{url.strip('/')}"
    return url


@dataclass
class PagesConfig:
    """Root configuration.

    Attributes:
        pages: Page routes created with ``page()``.
        paths: File system locations.
        runtime: Renderer and build settings.
        logging: Console output settings. ``True``/``None`` use the defaults.
        asset_url: URL prefix the client bundles are served under.
        public_url: URL prefix the public directory is served under.
        reload_url: Path of the live reload event stream in development.
        title: Document title of pages that set none; ``Litestar`` when unset.
        dev_mode: Shortcut for ``runtime.dev_mode=True``.

    Example::

        PagesConfig(
            pages=[
                page("/", "pages/home.tsx", loader=load_home),
                page("/about", "pages/about.tsx", static=True),
            ],
            dev_mode=True,
        )
    """

    pages: "list[PageRoute]" = field(default_factory=list)
    paths: PathConfig = field(default_factory=PathConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    logging: "LoggingConfig | bool | None" = None
    asset_url: str = "/dist"
    public_url: str = "/public"
    reload_url: str = "/__pages/reload"
    title: "str | None" = None
    dev_mode: bool = False

    def __post_init__(self) -> None:
        """Normalize configurations and apply shortcuts."""
        if self.logging is True or self.logging is None or self.logging is False:
            self.logging = LoggingConfig()
        if self.dev_mode:
            self.runtime.dev_mode = True
        self.asset_url = _normalize_url(self.asset_url)
        self.public_url = _normalize_url(self.public_url)
        self.reload_url = _normalize_url(self.reload_url)
        if self.asset_url == "/":
            msg = "asset_url cannot be the root path"
            raise ValueError(msg)

    @property
    def is_dev_mode(self) -> bool:
        return self.runtime.dev_mode

    @property
    def is_live_reload(self) -> bool:
        """Whether sources are watched and browsers reloaded after a rebuild."""
        return self.runtime.dev_mode and self.runtime.watch

    @property
    def root_dir(self) -> Path:
        return self.paths.root_dir

    @property
    def logging_config(self) -> LoggingConfig:
        if isinstance(self.logging, LoggingConfig):
            return self.logging
        return LoggingConfig()

    @property
    def executor(self) -> "BunExecutor":
        """Get the bun executor instance.

        Returns:
            The configured executor.
        """
        from litestar_pages.executor import BunExecutor

        return BunExecutor(executable_path=self.runtime.executable_path)

    def component_source(self, component_path: str) -> Path:
        """Absolute path of a component source file."""
        path = Path(component_path)
        return path if path.is_absolute() else self.root_dir / path

    def page_configs(self) -> "list[PageConfig]":
        """Distinct pages, in registration order.

        Several routes may share one component; the first registration defines
        the page and conflicting later ones are reported.

        Returns:
            One ``PageConfig`` per component path.
        """
        seen: dict[str, PageConfig] = {}
        for route in self.pages:
            existing = seen.get(route.page.component_path)
            if existing is None:
                seen[route.page.component_path] = route.page
            elif existing.mode is not route.page.mode:
                logger.warning(
                    "Page %s registered again for %s with mode %s; keeping %s",
                    route.page.component_path,
                    route.path,
                    route.page.mode.value,
                    existing.mode.value,
                )
        return list(seen.values())

    def routes_for(self, component_path: str) -> "list[PageRoute]":
        return [route for route in self.pages if route.page.component_path == component_path]
