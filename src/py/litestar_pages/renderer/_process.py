"""Renderer subprocess management."""

import atexit
import os
import signal
import subprocess
import threading
import time
from contextlib import suppress
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from litestar_pages.exceptions import RendererStartupError
from litestar_pages.executor import BunExecutor
from litestar_pages.utils import console

if TYPE_CHECKING:
    from collections.abc import Mapping

_POLL_INTERVAL = 0.01


class RendererProcess:
    """Owns the renderer subprocess.

    The process is started in its own process group so everything it spawns is
    terminated with it. Running instances are stopped at interpreter exit.
    """

    _instances: ClassVar["list[RendererProcess]"] = []
    _atexit_registered: ClassVar[bool] = False

    def __init__(self) -> None:
        self.process: "subprocess.Popen[Any] | None" = None
        self._lock = threading.Lock()

    def _register(self) -> None:
        if self not in RendererProcess._instances:
            RendererProcess._instances.append(self)
        if not RendererProcess._atexit_registered:
            atexit.register(RendererProcess._cleanup_all_instances)
            RendererProcess._atexit_registered = True

    @classmethod
    def _cleanup_all_instances(cls) -> None:
        for instance in list(cls._instances):
            with suppress(Exception):
                instance.stop()

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def start(
        self,
        command: list[str],
        cwd: Path,
        env: "Mapping[str, str]",
        socket_path: Path,
        timeout: float,
    ) -> None:
        """Start the process and block until its socket appears.

        Raises:
            RendererStartupError: If the process exits early or the socket does not
                appear within ``timeout`` seconds. The process is killed in both cases.
        """
        with self._lock:
            if self.process is not None and self.process.poll() is None:
                return
            with suppress(FileNotFoundError):
                socket_path.unlink()
            try:
                self.process = BunExecutor.spawn(command, cwd, env)
            except OSError as exc:
                msg = f"Failed to start renderer: {exc!s}"
                raise RendererStartupError(msg, command=command) from exc
            self._register()

            deadline = time.monotonic() + timeout
            while not socket_path.exists():
                exit_code = self.process.poll()
                if exit_code is not None:
                    self.process = None
                    msg = f"Renderer exited with code {exit_code} before opening {socket_path}"
                    raise RendererStartupError(msg, command=command, exit_code=exit_code)
                if time.monotonic() >= deadline:
                    self._terminate_process_group(timeout=1.0)
                    msg = f"Renderer did not open {socket_path} within {timeout:g}s"
                    raise RendererStartupError(msg, command=command)
                time.sleep(_POLL_INTERVAL)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the renderer and all its child processes.

        Args:
            timeout: Seconds to wait for graceful shutdown before killing.
        """
        with self._lock:
            self._terminate_process_group(timeout)
        if self in RendererProcess._instances:
            RendererProcess._instances.remove(self)

    def _terminate_process_group(self, timeout: float) -> None:
        if not self.process or self.process.poll() is not None:
            self.process = None
            return
        pid = self.process.pid
        try:
            os.killpg(pid, signal.SIGTERM)
        except AttributeError:
            self.process.terminate()
        except ProcessLookupError:
            pass
        try:
            self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            console.print("[yellow]Renderer did not exit in time; killing it.[/]")
            self._force_kill_process_group()
            self.process.wait(timeout=1.0)
        finally:
            self.process = None

    def _force_kill_process_group(self) -> None:
        if not self.process:
            return
        pid = self.process.pid
        try:
            os.killpg(pid, signal.SIGKILL)
        except AttributeError:
            self.process.kill()
        except ProcessLookupError:
            pass
