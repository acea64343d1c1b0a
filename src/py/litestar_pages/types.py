"""Page registration types."""

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

import msgspec

from litestar_pages.naming import entry_name_for_path

if TYPE_CHECKING:
    from litestar.connection import Request

__all__ = (
    "PageConfig",
    "PageMode",
    "PageRoute",
    "PropsLoader",
    "RenderedPage",
    "StaticDataLoader",
    "StaticPathData",
    "StaticPathItem",
    "page",
)

logger = logging.getLogger("litestar_pages")


class PageMode(str, Enum):
    """How a page is produced."""

    SSR = "ssr"
    CLIENT_ONLY = "client-only"
    STATIC_PRERENDER = "static-prerender"


class StaticPathData(msgspec.Struct, frozen=True):
    """One concrete path produced by a static data loader, with the props to render it with."""

    path: str
    props: "dict[str, Any]" = msgspec.field(default_factory=dict)


class RenderedPage(msgspec.Struct, frozen=True):
    """Output of a single component render."""

    body: str
    head: str = ""


PropsLoader = Callable[["Request[Any, Any, Any]"], Union[Awaitable[Mapping[str, Any]], Mapping[str, Any]]]
StaticPathItem = Union[StaticPathData, Mapping[str, Any]]
StaticDataLoader = Callable[[], Union[Awaitable[Sequence[StaticPathItem]], Sequence[StaticPathItem]]]


@dataclass(frozen=True)
class PageConfig:
    """Immutable description of one view component and how it is served.

    Attributes:
        component_path: Component source path relative to the project root. Unique per page.
        mode: Rendering mode.
        props_loader: Called per request to produce props (SSR pages only).
        static_data_loader: Called at build time to enumerate concrete paths (static prerender only).
        title: Document title used when the component renders no <title>.
    """

    component_path: str
    mode: PageMode = PageMode.SSR
    props_loader: "PropsLoader | None" = None
    static_data_loader: "StaticDataLoader | None" = None
    title: "str | None" = None

    @property
    def entry_name(self) -> str:
        return entry_name_for_path(self.component_path)


@dataclass(frozen=True)
class PageRoute:
    """A route pattern bound to a page."""

    path: str
    page: PageConfig
    name: "str | None" = None


def page(
    path: str,
    component: str,
    *,
    loader: "PropsLoader | None" = None,
    client_only: bool = False,
    static: bool = False,
    static_data: "StaticDataLoader | None" = None,
    name: "str | None" = None,
    title: "str | None" = None,
) -> PageRoute:
    """Register a page route.

    Args:
        path: Route pattern, using Litestar path syntax (``/posts/{slug:str}``).
        component: Component source path relative to the project root (``pages/home.tsx``).
        loader: Props loader for server-rendered pages.
        client_only: Serve an empty shell and render in the browser only.
        static: Prerender at build time.
        static_data: Enumerates the concrete paths (and their props) of a static page.
        name: Optional route handler name.
        title: Document title used when the component renders no ``<title>``. Give it as a
            string literal so ``litestar pages build`` sees it for prerendered pages.

    Returns:
        The page route, to be listed in ``PagesConfig.pages``.
    """
    mode = PageMode.SSR
    if client_only and static:
        logger.warning("Page %s is marked both client_only and static; serving it with SSR", component)
    elif client_only:
        mode = PageMode.CLIENT_ONLY
    elif static:
        mode = PageMode.STATIC_PRERENDER

    if static_data is not None and mode is not PageMode.STATIC_PRERENDER:
        logger.warning("Page %s has static_data but is not static; the loader is ignored", component)
        static_data = None
    if loader is not None and mode is not PageMode.SSR:
        logger.warning("Page %s is %s; its props loader is ignored", component, mode.value)
        loader = None

    return PageRoute(
        path=path,
        page=PageConfig(
            component_path=component,
            mode=mode,
            props_loader=loader,
            static_data_loader=static_data,
            title=title,
        ),
        name=name,
    )
