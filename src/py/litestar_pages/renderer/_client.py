"""Client for the renderer subprocess.

The renderer is a small Bun program (``static/renderer.ts``) listening on a
unix domain socket. It exposes two JSON endpoints:

``POST /render``
    ``{"path", "props"}`` -> ``{"html", "head"}`` or ``{"error": {...}}``
``POST /build``
    ``{"entrypoints", "outdir", "target"?, "entryNames"?}`` -> ``{"ok": true}`` or ``{"error": {...}}``
"""

import logging
import os
import secrets
import shutil
import tempfile
from contextlib import suppress
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
import msgspec

from litestar_pages.config import DEV_MODE_ENV, PROD_ENV, SOCKET_ENV
from litestar_pages.exceptions import BuildError, ConfigurationError, LitestarPagesError, RenderError
from litestar_pages.renderer._process import RendererProcess
from litestar_pages.renderer._protocol import (
    BuildRequest,
    BuildResponse,
    RenderRequest,
    RenderResponse,
    to_build_error,
    to_render_error,
)
from litestar_pages.types import RenderedPage
from litestar_pages.utils import get_static_resource_path

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from litestar_pages.config import PagesConfig

__all__ = ("RendererClient",)

logger = logging.getLogger("litestar_pages")

_T = TypeVar("_T")
_E = TypeVar("_E", bound=LitestarPagesError)


def _default_socket_path() -> Path:
    return Path(tempfile.gettempdir()) / f"litestar-pages-{os.getpid()}-{secrets.token_hex(4)}.sock"


class RendererClient:
    """Owns one renderer subprocess and talks to it over its socket.

    Requests may be issued concurrently; they share one pooled connection to
    the subprocess.
    """

    __slots__ = (
        "_build_timeout",
        "_cleanup_dir",
        "_client",
        "_command",
        "_cwd",
        "_env",
        "_process",
        "_render_timeout",
        "_startup_timeout",
        "_transport",
        "socket_path",
    )

    def __init__(
        self,
        command: "list[str]",
        *,
        cwd: Path,
        env: "Mapping[str, str] | None" = None,
        socket_path: "Path | None" = None,
        startup_timeout: float = 5.0,
        render_timeout: float = 30.0,
        build_timeout: float = 300.0,
        cleanup_dir: "Path | None" = None,
        transport: "httpx.AsyncBaseTransport | None" = None,
    ) -> None:
        """Initialize the client.

        Args:
            command: Command that starts the renderer.
            cwd: Working directory of the renderer; component imports resolve from here.
            env: Extra environment variables for the renderer.
            socket_path: Socket the renderer listens on. A unique temp path by default.
            startup_timeout: Seconds to wait for the socket in ``start()``.
            render_timeout: Seconds allowed per render request.
            build_timeout: Seconds allowed per build request.
            cleanup_dir: Directory removed by ``stop()`` (an extracted runtime).
            transport: Transport override, used instead of the socket.
        """
        self._command = command
        self._cwd = cwd
        self._env = dict(env or {})
        self.socket_path = socket_path or _default_socket_path()
        self._startup_timeout = startup_timeout
        self._render_timeout = render_timeout
        self._build_timeout = build_timeout
        self._cleanup_dir = cleanup_dir
        self._transport = transport
        self._process = RendererProcess()
        self._client: "httpx.AsyncClient | None" = None

    @classmethod
    def from_source(
        cls, config: "PagesConfig", *, production: bool = False, startup_timeout: "float | None" = None
    ) -> "RendererClient":
        """Run the bundled TypeScript renderer with ``bun``.

        Args:
            config: Pages configuration.
            production: Use hashed output names and disable development cache busting.
            startup_timeout: Override of ``runtime.startup_timeout``.

        Returns:
            A client, not yet started.
        """
        command = config.executor.renderer_command(get_static_resource_path("renderer.ts"))
        is_dev = config.is_dev_mode and not production
        env = {DEV_MODE_ENV: "1" if is_dev else "0", PROD_ENV: "1" if production else "0"}
        return cls(
            command,
            cwd=config.root_dir,
            env=env,
            startup_timeout=startup_timeout or config.runtime.startup_timeout,
            render_timeout=config.runtime.render_timeout,
            build_timeout=config.runtime.build_timeout,
        )

    @classmethod
    def from_packaged_runtime(cls, config: "PagesConfig") -> "RendererClient":
        """Run the renderer executable packaged by ``litestar pages build``.

        The executable is copied to a private temp directory so a rebuild can
        replace the packaged one while this process runs; ``stop()`` removes it.

        Raises:
            ConfigurationError: If no packaged runtime exists.

        Returns:
            A client, not yet started.
        """
        executable = config.paths.runtime_executable
        if not executable.is_file():
            msg = f"Packaged renderer not found at {executable}. Run 'litestar pages build'."
            raise ConfigurationError(msg)
        temp_dir = Path(tempfile.mkdtemp(prefix="litestar-pages-runtime-"))
        target = temp_dir / executable.name
        shutil.copy2(executable, target)
        target.chmod(0o755)
        return cls(
            [str(target)],
            cwd=config.root_dir,
            env={DEV_MODE_ENV: "0", PROD_ENV: "1"},
            startup_timeout=config.runtime.startup_timeout,
            render_timeout=config.runtime.render_timeout,
            build_timeout=config.runtime.build_timeout,
            cleanup_dir=temp_dir,
        )

    @property
    def is_running(self) -> bool:
        return self._transport is not None or self._process.is_running

    def start(self) -> None:
        """Start the subprocess and block until it listens.

        Raises:
            RendererStartupError: If the socket does not appear within the startup timeout.
        """
        env = {**os.environ, **self._env, SOCKET_ENV: str(self.socket_path)}
        self._process.start(self._command, self._cwd, env, self.socket_path, self._startup_timeout)
        logger.debug("Renderer listening on %s", self.socket_path)

    def stop(self) -> None:
        """Stop the subprocess and release its socket and extracted files."""
        self._process.stop()
        with suppress(FileNotFoundError):
            self.socket_path.unlink()
        if self._cleanup_dir is not None:
            shutil.rmtree(self._cleanup_dir, ignore_errors=True)
            self._cleanup_dir = None

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            transport = self._transport or httpx.AsyncHTTPTransport(uds=str(self.socket_path))
            self._client = httpx.AsyncClient(transport=transport, base_url="http://renderer")
        return self._client

    async def _post(
        self, endpoint: str, payload: Any, response_type: "type[_T]", timeout: float, error: "type[_E]"
    ) -> _T:
        try:
            response = await self._get_client().post(
                endpoint,
                content=msgspec.json.encode(payload),
                headers={"content-type": "application/json"},
                timeout=timeout,
            )
        except httpx.HTTPError as exc:
            msg = f"Renderer request to {endpoint} failed: {exc!s}"
            raise error(msg) from exc
        try:
            return msgspec.json.decode(response.content, type=response_type)
        except (msgspec.DecodeError, msgspec.ValidationError) as exc:
            msg = f"Invalid renderer response from {endpoint} (HTTP {response.status_code}): {exc!s}"
            raise error(msg) from exc

    async def render(self, path: str, props: "Mapping[str, Any] | None" = None) -> RenderedPage:
        """Render a component module.

        Raises:
            RenderError: If the renderer reports an error or cannot be reached.

        Returns:
            The rendered body and head fragments.
        """
        request = RenderRequest(path=path, props=dict(props or {}))
        result = await self._post("/render", request, RenderResponse, self._render_timeout, RenderError)
        if result.error is not None:
            raise to_render_error(result.error)
        return RenderedPage(body=result.html, head=result.head or "")

    async def build(
        self,
        entrypoints: "Sequence[str]",
        outdir: str,
        entry_names: "str | None" = None,
        *,
        target: "str | None" = None,
    ) -> None:
        """Bundle entrypoints into ``outdir``.

        Raises:
            BuildError: With every positioned bundler message when the build fails.
        """
        if not entrypoints:
            msg = "missing entrypoints"
            raise BuildError(msg)
        if not outdir:
            msg = "missing outdir"
            raise BuildError(msg)
        request = BuildRequest(entrypoints=list(entrypoints), outdir=outdir, target=target, entry_names=entry_names)
        result = await self._post("/build", request, BuildResponse, self._build_timeout, BuildError)
        if result.error is not None:
            raise to_build_error(result.error)
        if not result.ok:
            msg = f"build failed for entrypoints {list(entrypoints)} -> {outdir}"
            raise BuildError(msg)

    async def build_ssr(self, entrypoints: "Sequence[str]", outdir: str) -> None:
        """Bundle server entrypoints for the bun target."""
        await self.build(entrypoints, outdir, target="bun")
