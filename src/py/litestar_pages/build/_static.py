"""Static HTML generation."""

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import anyio

from litestar_pages.decision import default_static_path
from litestar_pages.exceptions import ExportError, PathValidationError, RenderError
from litestar_pages.html import render_client_only_shell, render_prerendered_html
from litestar_pages.manifest import Manifest, get_assets
from litestar_pages.naming import normalize_path, route_html_path, validate_route_path

if TYPE_CHECKING:
    from litestar_pages.renderer import Renderer
    from litestar_pages.types import StaticPathData

__all__ = ("StaticGenerator", "plan_static_routes", "run_bounded")

logger = logging.getLogger("litestar_pages")

_T = TypeVar("_T")


async def run_bounded(
    limiter: anyio.CapacityLimiter, jobs: "Sequence[Callable[[], Awaitable[_T]]]"
) -> "list[_T | Exception]":
    """Run jobs concurrently, at most ``limiter.total_tokens`` at a time.

    Returns:
        One result per job, in job order; a failed job yields its exception.
    """
    results: "list[_T | Exception | None]" = [None] * len(jobs)

    async def _run(index: int, job: "Callable[[], Awaitable[_T]]") -> None:
        async with limiter:
            try:
                results[index] = await job()
            except Exception as exc:  # noqa: BLE001
                results[index] = exc

    async with anyio.create_task_group() as tg:
        for index, job in enumerate(jobs):
            tg.start_soon(_run, index, job)
    return results  # type: ignore[return-value]


def plan_static_routes(
    pages: "Sequence[tuple[str, str]]",
    exports: "Mapping[str, Sequence[StaticPathData]]",
) -> "dict[str, list[tuple[str, dict[str, Any]]]]":
    """Validate exported static paths and group them by entry.

    Args:
        pages: ``(component path, entry name)`` of every static page with a data loader.
        exports: Export output keyed by component path.

    Raises:
        ExportError: If a page is missing from the export output.
        PathValidationError: If a path is malformed, or two entries normalize to the same path.

    Returns:
        ``(normalized path, props)`` pairs keyed by entry name.
    """
    owners: dict[str, str] = {}
    plan: dict[str, list[tuple[str, dict[str, Any]]]] = {}
    for component_path, entry_name in pages:
        if component_path not in exports:
            msg = f"static export has no data for {component_path}"
            raise ExportError(msg)
        routes = plan.setdefault(entry_name, [])
        for item in exports[component_path]:
            validate_route_path(item.path)
            path = normalize_path(item.path)
            owner = owners.get(path)
            if owner is not None:
                raise PathValidationError(path, f"duplicate path, defined by {owner} and {component_path}")
            owners[path] = component_path
            routes.append((path, dict(item.props)))
    return plan


class StaticGenerator:
    """Writes the prerendered HTML of static pages under the output directory."""

    def __init__(self, renderer: "Renderer", manifest: Manifest, output_dir: Path, asset_url: str = "/dist") -> None:
        self._renderer = renderer
        self._manifest = manifest
        self._output_dir = output_dir
        self._asset_url = asset_url

    def _write(self, html_path: str, content: str) -> None:
        target = self._output_dir / html_path.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    async def client_only_shell(self, entry_name: str, render_path: str, title: "str | None" = None) -> str:
        """Write the shell of a client-only page.

        The component is rendered once only to collect its head; a component that
        cannot render on the server still gets a shell.

        Returns:
            The public path of the written file.
        """
        assets = get_assets(self._manifest, entry_name, self._asset_url)
        head = ""
        try:
            head = (await self._renderer.render(render_path, {})).head
        except RenderError as exc:
            logger.warning("Could not render head of %s: %s", entry_name, exc.message)
        html_path = default_static_path(entry_name)
        self._write(html_path, render_client_only_shell(assets.script, head, assets.css, assets.chunks, title=title))
        return html_path

    async def prerender(self, entry_name: str, render_path: str, title: "str | None" = None) -> str:
        """Prerender a static page without a data loader, with empty props.

        Raises:
            RenderError: If the render fails.

        Returns:
            The public path of the written file.
        """
        assets = get_assets(self._manifest, entry_name, self._asset_url)
        rendered = await self._renderer.render(render_path, {})
        html_path = default_static_path(entry_name)
        self._write(
            html_path,
            render_prerendered_html(
                rendered.body, None, assets.script, rendered.head, assets.css, assets.chunks, title=title
            ),
        )
        return html_path

    async def prerender_route(
        self,
        entry_name: str,
        render_path: str,
        path: str,
        props: "dict[str, Any]",
        title: "str | None" = None,
    ) -> str:
        """Prerender one concrete path of a static page.

        Raises:
            RenderError: If the render fails.

        Returns:
            The public path of the written file.
        """
        assets = get_assets(self._manifest, entry_name, self._asset_url)
        rendered = await self._renderer.render(render_path, props)
        html_path = route_html_path(path)
        self._write(
            html_path,
            render_prerendered_html(
                rendered.body, props, assets.script, rendered.head, assets.css, assets.chunks, title=title
            ),
        )
        return html_path
