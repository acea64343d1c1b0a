import sys
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from click import Path as ClickPath
from click import group, option
from litestar.cli._utils import LitestarGroup  # pyright: ignore[reportPrivateImportUsage]

if TYPE_CHECKING:
    from litestar import Litestar
    from rich.table import Table

    from litestar_pages.exceptions import PageBuildFailure


def _find_app_module_file(app: "Litestar") -> "Optional[Path]":
    """Locate the source file of the module that holds the application instance."""
    for module in list(sys.modules.values()):
        module_file = getattr(module, "__file__", None)
        if not module_file or not module_file.endswith(".py"):
            continue
        if any(value is app for value in list(vars(module).values())):
            return Path(module_file)
    return None


def _failure_table(failures: "list[PageBuildFailure]") -> "Table":
    from rich.table import Table

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Page")
    table.add_column("Phase", style="dim")
    table.add_column("Error")
    for failure in failures:
        table.add_row(f"[red]{failure.component_path}[/]", failure.phase, str(failure.error))
    return table


@group(cls=LitestarGroup, name="pages")
def pages_group() -> None:
    """Build and inspect pages."""


@pages_group.command(
    name="build",
    help="Build client bundles, server bundles and prerendered pages.",
)
@option(
    "--main",
    "main_file",
    type=ClickPath(dir_okay=False, file_okay=True, exists=True, path_type=Path),
    help="The module that registers the pages. Defaults to the module of the application.",
    default=None,
    required=False,
)
@option("--workers", type=int, help="Maximum number of concurrent bundle and render jobs.", default=None)
@option("--verbose", type=bool, help="Enable verbose output.", default=False, is_flag=True)
def pages_build(app: "Litestar", main_file: "Optional[Path]", workers: "Optional[int]", verbose: "bool") -> None:
    """Run the pages build."""
    import anyio
    from litestar.cli._utils import console  # pyright: ignore[reportPrivateImportUsage]

    from litestar_pages.build import build_project
    from litestar_pages.config import LoggingConfig
    from litestar_pages.exceptions import (
        BuildFailedError,
        ConfigurationError,
        ExportError,
        LitestarPagesError,
        PathValidationError,
    )
    from litestar_pages.plugin import PagesPlugin
    from litestar_pages.utils import log_fail

    plugin = app.plugins.get(PagesPlugin)
    config = plugin.config
    if verbose:
        app.debug = True
        config.logging = LoggingConfig(level="verbose")

    main_file = main_file or _find_app_module_file(app)
    if main_file is None:
        log_fail("Could not locate the application module; pass it with --main.")
        sys.exit(1)

    console.rule("[yellow]Starting pages build[/]", align="left")
    try:
        result = anyio.run(partial(build_project, config, main_file, workers=workers))
    except BuildFailedError as e:
        log_fail(str(e).splitlines()[0])
        if e.failures:
            console.print(_failure_table(e.failures))
        sys.exit(1)
    except (PathValidationError, ExportError, ConfigurationError) as e:
        log_fail(str(e))
        sys.exit(1)
    except LitestarPagesError as e:
        log_fail(f"Build aborted: {e}")
        sys.exit(1)
    if result.failures:
        console.print(_failure_table(result.failures))
        console.print(f"[yellow]{len(result.failures)} page(s) failed[/]")


@pages_group.command(
    name="status",
    help="Check the status of the pages integration.",
)
def pages_status(app: "Litestar") -> None:
    """Check the status of the pages integration."""
    import shutil

    from litestar.cli._utils import console  # pyright: ignore[reportPrivateImportUsage]
    from rich.table import Table

    from litestar_pages.exceptions import ConfigurationError
    from litestar_pages.manifest import load_manifest
    from litestar_pages.plugin import PagesPlugin

    plugin = app.plugins.get(PagesPlugin)
    config = plugin.config
    paths = config.paths

    console.rule("[yellow]Pages Integration Status[/]", align="left")
    console.print(f"Dev Mode: {config.is_dev_mode}")
    console.print(f"Live Reload: {config.is_live_reload}")
    console.print(f"Pages: {len(config.page_configs())}")
    console.print(f"Output: {paths.output_path}")
    console.print(f"Assets URL: {config.asset_url}")

    if config.pages:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Route")
        table.add_column("Component")
        table.add_column("Mode", style="dim")
        for route in config.pages:
            table.add_row(route.path, route.page.component_path, route.page.mode.value)
        console.print(table)

    try:
        manifest = load_manifest(paths.manifest_path)
    except ConfigurationError as e:
        console.print(f"[red]✗ {e!s}[/]")
    else:
        console.print(f"[green]✓ Manifest found at {paths.manifest_path} ({len(manifest.entries)} entries)[/]")
        static_routes = sum(1 for _ in manifest.iter_static_routes())
        if static_routes:
            console.print(f"Prerendered routes: {static_routes}")

    bun = str(config.runtime.executable_path) if config.runtime.executable_path else shutil.which("bun")
    if bun:
        console.print(f"[green]✓ Bun executable: {bun}[/]")
    else:
        console.print("[red]✗ Bun executable not found on PATH[/]")

    if paths.runtime_executable.is_file():
        console.print(f"[green]✓ Packaged renderer at {paths.runtime_executable}[/]")
    else:
        console.print("[yellow]! No packaged renderer; server-rendered pages will run from source[/]")
