"""Production build pipeline.

Phases run strictly in order; the work inside a phase (one bundle or render
per entry) runs concurrently up to ``runtime.build_workers`` calls at a time:

1. discover ``page()`` registrations in the host module
2. write the generated entry sources
3. bundle the browser entries
4. bundle the server entries of non client-only pages
5. assemble the manifest from the output directory
6. prerender client-only shells and static pages, running the host in export mode for data loaders
7. record static routes, write the manifest, copy the public directory and package the renderer
"""

import logging
import shutil
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Any

import anyio
from anyio import to_thread

from litestar_pages.build._entries import write_entry_sources
from litestar_pages.build._export import run_static_export
from litestar_pages.build._manifest import apply_static_routes, find_ssr_bundle, generate_manifest
from litestar_pages.build._scan import DiscoveredPage, scan_pages
from litestar_pages.build._static import StaticGenerator, plan_static_routes, run_bounded
from litestar_pages.decision import should_build_ssr
from litestar_pages.exceptions import BuildError, BuildFailedError, ConfigurationError, PageBuildFailure
from litestar_pages.manifest import Manifest, write_manifest
from litestar_pages.naming import EntryPaths, entry_name_for_path, route_html_path
from litestar_pages.types import PageMode
from litestar_pages.utils import get_static_resource_path, log_info, log_success, log_warn

if TYPE_CHECKING:
    from collections.abc import Sequence

    from litestar_pages.config import PagesConfig
    from litestar_pages.renderer import Renderer

__all__ = ("BuildEngine", "BuildResult", "PlannedPage", "build_project")

logger = logging.getLogger("litestar_pages")

HASHED_ENTRY_NAMES = "[name]-[hash].[ext]"


@dataclass
class PlannedPage:
    """A discovered page and the sources generated for it."""

    component_path: str
    entry_name: str
    mode: PageMode
    has_static_data: bool
    source: Path
    title: "str | None" = None
    entry: "EntryPaths | None" = None


@dataclass
class BuildResult:
    manifest: Manifest
    manifest_path: Path
    failures: "list[PageBuildFailure]" = field(default_factory=list)
    static_files: int = 0
    runtime_packaged: bool = False


class BuildEngine:
    """Runs the build pipeline against a started renderer."""

    def __init__(
        self,
        config: "PagesConfig",
        renderer: "Renderer",
        *,
        workers: "int | None" = None,
        export_command: "list[str] | None" = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Pages configuration.
            renderer: Started renderer used for every bundle and render call.
            workers: Concurrency limit override.
            export_command: Command override for the static export run.
        """
        self._config = config
        self._renderer = renderer
        self._workers = workers or config.runtime.build_workers
        self._export_command = export_command
        self._verbose = config.logging_config.is_verbose
        self._quiet = config.logging_config.is_quiet

    def _info(self, message: str) -> None:
        if not self._quiet:
            log_info(message)

    @property
    def _entries_dir(self) -> Path:
        return self._config.paths.output_path / "entries"

    def _plan(self, discovered: "Sequence[DiscoveredPage]") -> "list[PlannedPage]":
        owners: dict[str, DiscoveredPage] = {}
        planned: list[PlannedPage] = []
        for page in discovered:
            entry_name = entry_name_for_path(page.component_path)
            owner = owners.get(entry_name)
            if owner is not None:
                if owner.mode is not page.mode:
                    logger.warning(
                        "%s (line %d) is built as %s like its first registration on line %d, not as %s",
                        page.component_path,
                        page.lineno,
                        owner.mode.value,
                        owner.lineno,
                        page.mode.value,
                    )
                else:
                    logger.debug(
                        "%s is the same component as %s; building it once", page.component_path, owner.component_path
                    )
                continue
            owners[entry_name] = page
            planned.append(
                PlannedPage(
                    component_path=page.component_path,
                    entry_name=entry_name,
                    mode=page.mode,
                    has_static_data=page.has_static_data,
                    source=self._config.component_source(page.component_path),
                    title=page.title,
                )
            )
        return planned

    def _prepare_output(self) -> None:
        paths = self._config.paths
        for directory in (paths.dist_dir, paths.ssr_dir, paths.pages_dir, self._entries_dir):
            shutil.rmtree(directory, ignore_errors=True)
            directory.mkdir(parents=True, exist_ok=True)

    async def build(self, main_file: Path) -> BuildResult:
        """Build every page registered in ``main_file``.

        Raises:
            BuildFailedError: If no page is registered or every page failed to build.
            ExportError: If the static export run fails or times out.
            PathValidationError: If a static path is malformed or duplicated.
            RenderError: If a static page fails to prerender.

        Returns:
            The build result, including the pages that failed.
        """
        discovered = scan_pages(main_file)
        if not discovered:
            msg = f"No page() registrations found in {main_file}"
            raise BuildFailedError(msg)
        pages = self._plan(discovered)
        self._info(f"Discovered {len(pages)} page(s)")

        paths = self._config.paths
        self._prepare_output()
        limiter = anyio.CapacityLimiter(self._workers)
        failures: list[PageBuildFailure] = []
        try:
            for page in pages:
                page.entry = write_entry_sources(
                    self._entries_dir, page.entry_name, page.source, page.mode, ssr=should_build_ssr(page.mode)
                )

            pages = await self._build_client(pages, limiter, failures)
            pages = await self._build_ssr(pages, limiter, failures)
            if not pages:
                msg = "Every page failed to build"
                raise BuildFailedError(msg, failures)

            manifest = generate_manifest(
                paths.dist_dir,
                paths.ssr_dir,
                [(page.entry_name, page.mode) for page in pages],
                asset_url=self._config.asset_url,
            )
            for page in [page for page in pages if page.entry_name not in manifest.entries]:
                error = BuildError(f"no script was produced for {page.entry_name}")
                failures.append(PageBuildFailure(page.component_path, page.entry_name, "manifest", error))
                pages.remove(page)
            if not pages:
                msg = "Every page failed to build"
                raise BuildFailedError(msg, failures)

            static_routes, static_files = await self._generate_static(main_file, pages, manifest, limiter)
            manifest = apply_static_routes(manifest, static_routes)
            write_manifest(paths.manifest_path, manifest)
            self._copy_public()
            runtime_packaged = await self._package_runtime(manifest)
        finally:
            shutil.rmtree(self._entries_dir, ignore_errors=True)

        for failure in failures:
            log_warn(f"{failure.component_path} failed during {failure.phase}: {failure.error}")
        log_success(f"Built {len(manifest.entries)} page(s) → {paths.manifest_path}")
        return BuildResult(
            manifest=manifest,
            manifest_path=paths.manifest_path,
            failures=failures,
            static_files=static_files,
            runtime_packaged=runtime_packaged,
        )

    async def _build_client(
        self, pages: "list[PlannedPage]", limiter: anyio.CapacityLimiter, failures: "list[PageBuildFailure]"
    ) -> "list[PlannedPage]":
        self._info("Bundling client entries")
        outdir = str(self._config.paths.dist_dir)
        jobs = [
            partial(
                self._renderer.build,
                [str(page.entry.client_entry)],  # type: ignore[union-attr]
                outdir,
                HASHED_ENTRY_NAMES,
            )
            for page in pages
        ]
        return self._collect(pages, await run_bounded(limiter, jobs), "client build", failures)

    async def _build_ssr(
        self, pages: "list[PlannedPage]", limiter: anyio.CapacityLimiter, failures: "list[PageBuildFailure]"
    ) -> "list[PlannedPage]":
        ssr_pages = [page for page in pages if should_build_ssr(page.mode)]
        if ssr_pages:
            self._info("Bundling server entries")
        outdir = str(self._config.paths.ssr_dir)
        jobs = [
            partial(self._renderer.build_ssr, [str(page.entry.ssr_entry)], outdir)  # type: ignore[union-attr]
            for page in ssr_pages
        ]
        built = self._collect(ssr_pages, await run_bounded(limiter, jobs), "ssr build", failures)
        for css in self._config.paths.ssr_dir.glob("*.css"):
            css.unlink(missing_ok=True)
        return [page for page in pages if not should_build_ssr(page.mode) or page in built]

    def _collect(
        self,
        pages: "list[PlannedPage]",
        results: "list[Any]",
        phase: str,
        failures: "list[PageBuildFailure]",
    ) -> "list[PlannedPage]":
        succeeded: list[PlannedPage] = []
        for page, result in zip(pages, results):
            if isinstance(result, Exception):
                failures.append(PageBuildFailure(page.component_path, page.entry_name, phase, result))
                logger.debug("%s failed for %s", phase, page.component_path, exc_info=result)
                continue
            if self._verbose:
                log_info(f"{phase}: {page.entry_name}")
            succeeded.append(page)
        return succeeded

    def _render_path(self, page: PlannedPage) -> str:
        if page.mode is PageMode.STATIC_PRERENDER:
            bundle = find_ssr_bundle(self._config.paths.ssr_dir, page.entry_name)
            if bundle is not None:
                return str(self._config.paths.output_path / bundle.lstrip("/"))
        return str(page.source)

    def _title(self, page: PlannedPage) -> "str | None":
        return page.title or self._config.title

    async def _generate_static(
        self,
        main_file: Path,
        pages: "list[PlannedPage]",
        manifest: Manifest,
        limiter: anyio.CapacityLimiter,
    ) -> "tuple[dict[str, dict[str, str]], int]":
        generator = StaticGenerator(self._renderer, manifest, self._config.paths.output_path, self._config.asset_url)
        jobs = []
        for page in pages:
            if page.mode is PageMode.CLIENT_ONLY:
                jobs.append(partial(generator.client_only_shell, page.entry_name, str(page.source), self._title(page)))
            elif page.mode is PageMode.STATIC_PRERENDER and not page.has_static_data:
                jobs.append(partial(generator.prerender, page.entry_name, self._render_path(page), self._title(page)))

        static_routes: dict[str, dict[str, str]] = {}
        loader_pages = [page for page in pages if page.mode is PageMode.STATIC_PRERENDER and page.has_static_data]
        if loader_pages:
            self._info("Running static export")
            exports = await run_static_export(
                main_file,
                cwd=self._config.root_dir,
                timeout=self._config.runtime.export_timeout,
                command=self._export_command,
            )
            plan = plan_static_routes([(page.component_path, page.entry_name) for page in loader_pages], exports)
            by_entry = {page.entry_name: page for page in loader_pages}
            for entry_name, routes in plan.items():
                render_path = self._render_path(by_entry[entry_name])
                title = self._title(by_entry[entry_name])
                static_routes[entry_name] = {path: route_html_path(path) for path, _ in routes}
                jobs.extend(
                    partial(generator.prerender_route, entry_name, render_path, path, props, title)
                    for path, props in routes
                )

        if jobs:
            self._info(f"Prerendering {len(jobs)} static file(s)")
        results = await run_bounded(limiter, jobs)
        for result in results:
            if isinstance(result, Exception):
                raise result
        return static_routes, len(results)

    def _copy_public(self) -> None:
        paths = self._config.paths
        shutil.rmtree(paths.public_output_dir, ignore_errors=True)
        if paths.public_source_dir.is_dir():
            shutil.copytree(paths.public_source_dir, paths.public_output_dir)

    async def _package_runtime(self, manifest: Manifest) -> bool:
        runtime_dir = self._config.paths.runtime_dir
        if not manifest.has_ssr_entries():
            shutil.rmtree(runtime_dir, ignore_errors=True)
            return False
        self._info("Packaging renderer runtime")
        runtime_dir.mkdir(parents=True, exist_ok=True)
        args = [
            "build",
            "--compile",
            str(get_static_resource_path("renderer.ts")),
            "--outfile",
            str(self._config.paths.runtime_executable),
        ]
        try:
            await to_thread.run_sync(partial(self._config.executor.execute, args, self._config.root_dir))
        except (BuildError, ConfigurationError, OSError) as exc:
            log_warn(f"Could not package the renderer runtime; bun will be needed at runtime: {exc}")
            return False
        return True


async def build_project(
    config: "PagesConfig",
    main_file: Path,
    *,
    workers: "int | None" = None,
    renderer: "Renderer | None" = None,
) -> BuildResult:
    """Start a production renderer, run the build pipeline and stop the renderer.

    Args:
        config: Pages configuration.
        main_file: Host application module.
        workers: Concurrency limit override.
        renderer: Already running renderer to use instead of starting one.

    Returns:
        The build result.
    """
    if renderer is not None:
        return await BuildEngine(config, renderer, workers=workers).build(main_file)

    from litestar_pages.renderer import RendererClient

    client = RendererClient.from_source(config, production=True, startup_timeout=config.runtime.build_startup_timeout)
    await to_thread.run_sync(client.start)
    try:
        return await BuildEngine(config, client, workers=workers).build(main_file)
    finally:
        await client.aclose()
        client.stop()
