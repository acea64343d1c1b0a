"""Live reload for development.

A watcher rebuilds the bundles of pages already served once a source file
changes, clears the render caches and tells every open page to reload over a
server-sent event stream.
"""

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import TYPE_CHECKING

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from litestar import get
from litestar.response import ServerSentEvent
from litestar.response.sse import ServerSentEventMessage
from watchfiles import Change, DefaultFilter, awatch

from litestar_pages.exceptions import LitestarPagesError
from litestar_pages.utils import log_fail, log_info

if TYPE_CHECKING:
    from litestar.handlers import HTTPRouteHandler

    from litestar_pages.config import PagesConfig
    from litestar_pages.handler import PageHandler

__all__ = ("LiveReload", "ReloadBroadcaster", "SourceFilter", "create_reload_handler")

logger = logging.getLogger("litestar_pages")


class ReloadBroadcaster:
    """Fans reload notifications out to subscribed event streams.

    Every subscriber holds at most one pending notification; notifying a
    subscriber that has not consumed the previous one is a no-op.
    """

    __slots__ = ("_subscribers",)

    def __init__(self) -> None:
        self._subscribers: set[MemoryObjectSendStream[None]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[MemoryObjectReceiveStream[None]]:
        send, receive = anyio.create_memory_object_stream[None](1)
        self._subscribers.add(send)
        try:
            yield receive
        finally:
            self._subscribers.discard(send)
            send.close()
            receive.close()

    def notify(self) -> None:
        for send in list(self._subscribers):
            # a reload is already pending for this subscriber
            with suppress(anyio.WouldBlock):
                send.send_nowait(None)

    async def events(self) -> AsyncIterator[ServerSentEventMessage]:
        """Event stream of one browser: ``ready`` once, then ``reload`` per notification."""
        async with self.subscribe() as receive:
            yield ServerSentEventMessage(event="ready", data="1")
            async for _ in receive:
                yield ServerSentEventMessage(event="reload", data="1")


class SourceFilter(DefaultFilter):
    """Accepts changes to script and stylesheet sources outside the ignored paths."""

    extensions = (".ts", ".tsx", ".js", ".jsx", ".css")

    def __init__(self, *, ignore_paths: "Sequence[Path]" = ()) -> None:
        super().__init__(ignore_paths=[str(path) for path in ignore_paths])

    def __call__(self, change: Change, path: str) -> bool:
        return path.lower().endswith(self.extensions) and super().__call__(change, path)


class LiveReload:
    """Rebuilds served pages when their sources change and reloads the browsers showing them."""

    def __init__(self, config: "PagesConfig", handlers: "Sequence[PageHandler]") -> None:
        self._config = config
        self._handlers = list(handlers)
        self.broadcaster = ReloadBroadcaster()

    @property
    def source_filter(self) -> SourceFilter:
        paths = self._config.paths
        return SourceFilter(ignore_paths=[paths.output_path, paths.public_source_dir])

    async def apply_changes(self, changed: "set[Path]") -> bool:
        """Rebuild every page that was built before and notify the browsers.

        Browsers are only told to reload when every rebuild succeeded; a page
        that fails to build keeps its previous bundle.

        Returns:
            Whether a reload was broadcast.
        """
        if not self._config.logging_config.is_quiet:
            names = ", ".join(sorted(path.name for path in changed))
            log_info(f"Sources changed: {names}")
        logger.debug("Changed files: %s", sorted(str(path) for path in changed))
        failed = False
        for handler in self._handlers:
            try:
                await handler.rebuild()
            except (LitestarPagesError, OSError) as exc:
                failed = True
                log_fail(f"Rebuild of {handler.page.component_path} failed: {exc}")
            handler.clear_cache()
        if failed:
            return False
        self.broadcaster.notify()
        return True

    async def watch(self, stop_event: "anyio.Event | None" = None) -> None:
        """Watch the project root until ``stop_event`` is set."""
        async for changes in awatch(
            self._config.root_dir,
            watch_filter=self.source_filter,
            debounce=int(self._config.runtime.watch_debounce * 1000),
            stop_event=stop_event,
        ):
            await self.apply_changes({Path(path) for _, path in changes})


def create_reload_handler(broadcaster: ReloadBroadcaster, path: str) -> "HTTPRouteHandler":
    """Create the route handler of the live reload event stream.

    Returns:
        A GET handler streaming server-sent events.
    """

    @get(path=path, name="pages-reload", include_in_schema=False, opt={"exclude_from_auth": True})
    async def pages_reload() -> ServerSentEvent:
        return ServerSentEvent(broadcaster.events())

    return pages_reload
