"""Runtime execution settings."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from litestar_pages.config._constants import BUN_ENV, DEV_MODE_ENV, TRUE_VALUES

__all__ = ("RuntimeConfig",)


@dataclass
class RuntimeConfig:
    """Runtime execution settings.

    Attributes:
        dev_mode: Render components straight from source and build page bundles on first request.
            Defaults to the ``LITESTAR_PAGES_DEV`` environment variable.
        executable_path: Path to the ``bun`` executable (auto-detected from ``PATH`` if None).
        start_renderer: Start the renderer subprocess in the application lifespan.
        startup_timeout: Seconds to wait for the renderer socket when serving.
        build_startup_timeout: Seconds to wait for the renderer socket during ``pages build``.
        render_timeout: Seconds allowed for a single render request.
        build_timeout: Seconds allowed for a single bundle request.
        export_timeout: Seconds allowed for the static export run of the host application.
        build_workers: Maximum number of concurrent bundle and render calls during a build.
        render_cache_ttl: Seconds a production SSR render is reused for identical props; None disables caching.
        watch: In development, rebuild the bundles of served pages when sources change and reload the browser.
        watch_debounce: Longest time, in seconds, that a burst of file changes is grouped into one rebuild.
    """

    dev_mode: bool = field(default_factory=lambda: os.getenv(DEV_MODE_ENV, "False") in TRUE_VALUES)
    executable_path: "str | Path | None" = field(default_factory=lambda: os.getenv(BUN_ENV))
    start_renderer: bool = True
    startup_timeout: float = 5.0
    build_startup_timeout: float = 10.0
    render_timeout: float = 30.0
    build_timeout: float = 300.0
    export_timeout: float = 90.0
    build_workers: int = 4
    render_cache_ttl: "float | None" = 60.0
    watch: bool = True
    watch_debounce: float = 0.2

    def __post_init__(self) -> None:
        if self.build_workers < 1:
            msg = f"build_workers must be at least 1, got {self.build_workers}"
            raise ValueError(msg)
        if self.render_cache_ttl is not None and self.render_cache_ttl <= 0:
            self.render_cache_ttl = None
        if self.watch_debounce < 0:
            msg = f"watch_debounce cannot be negative, got {self.watch_debounce}"
            raise ValueError(msg)
