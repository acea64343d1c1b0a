"""Litestar Pages: server-rendered React pages for Litestar.

Pages are React components rendered by a Bun subprocess. Each page is served
in one of three modes: rendered per request (SSR), rendered in the browser
only (client-only), or prerendered at build time (static).

Basic usage:
    from litestar import Litestar
    from litestar_pages import PagesConfig, PagesPlugin, page

    app = Litestar(
        plugins=[
            PagesPlugin(
                config=PagesConfig(
                    pages=[
                        page("/", "pages/home.tsx", loader=load_home),
                        page("/dashboard", "pages/dashboard.tsx", client_only=True),
                        page("/blog/{slug:str}", "pages/post.tsx", static=True, static_data=list_posts),
                    ],
                )
            )
        ],
    )

Build for production with ``litestar pages build``.
"""

from litestar_pages.config import LoggingConfig, PagesConfig, PathConfig, RuntimeConfig
from litestar_pages.exceptions import (
    BuildError,
    BuildFailedError,
    ConfigurationError,
    ExportError,
    ExportTimeoutError,
    LitestarPagesError,
    PageRedirect,
    PathValidationError,
    RedirectContract,
    RenderError,
)
from litestar_pages.plugin import PagesPlugin
from litestar_pages.types import PageConfig, PageMode, PageRoute, RenderedPage, StaticPathData, page

__all__ = (
    "BuildError",
    "BuildFailedError",
    "ConfigurationError",
    "ExportError",
    "ExportTimeoutError",
    "LitestarPagesError",
    "LoggingConfig",
    "PageConfig",
    "PageMode",
    "PageRedirect",
    "PageRoute",
    "PagesConfig",
    "PagesPlugin",
    "PathConfig",
    "PathValidationError",
    "RedirectContract",
    "RenderError",
    "RenderedPage",
    "RuntimeConfig",
    "StaticPathData",
    "page",
)
