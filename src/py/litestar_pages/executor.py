"""Bun executor.

The renderer runtime is a Bun program; this module resolves the ``bun``
executable and runs it, either as a long-lived subprocess or as a one-shot
command.
"""

import platform
import shutil
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Any

from litestar_pages.exceptions import BuildError, ExecutableNotFoundError

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = ("BunExecutor",)

# Windows-only constant for creating new process groups
_CREATE_NEW_PROCESS_GROUP: int = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)


class BunExecutor:
    """Runs ``bun`` commands."""

    bin_name = "bun"

    def __init__(self, executable_path: "Path | str | None" = None) -> None:
        self.executable_path = executable_path

    def resolve_executable(self) -> str:
        if self.executable_path:
            return str(self.executable_path)
        path = shutil.which(self.bin_name)
        if path is None:
            raise ExecutableNotFoundError(self.bin_name)
        return path

    def renderer_command(self, script: Path) -> list[str]:
        """Command that starts the renderer from its TypeScript source."""
        return [self.resolve_executable(), "run", "--smol", str(script)]

    @staticmethod
    def spawn(command: list[str], cwd: Path, env: "Mapping[str, str] | None" = None) -> "subprocess.Popen[Any]":
        """Start a long-lived process in its own process group.

        Returns:
            The started process. Output is inherited so renderer logs stay visible.
        """
        kwargs: dict[str, Any] = {
            "cwd": cwd,
            "env": dict(env) if env is not None else None,
            "stdout": None,
            "stderr": None,
        }
        if platform.system() == "Windows":
            kwargs["creationflags"] = _CREATE_NEW_PROCESS_GROUP
        else:
            kwargs["start_new_session"] = True
        return subprocess.Popen(command, **kwargs)

    def execute(self, args: list[str], cwd: Path) -> None:
        """Run ``bun <args>`` to completion.

        Raises:
            BuildError: If the command exits with a non-zero status.
        """
        command = [self.resolve_executable(), *args]
        process = subprocess.run(
            command,
            cwd=cwd,
            check=False,
            stdout=None,
            stderr=subprocess.PIPE,
        )
        if process.returncode != 0:
            stderr = process.stderr.decode() if process.stderr else ""
            msg = f"Command {command!r} failed with return code {process.returncode}."
            raise BuildError(msg, stack=stderr or None)
