"""Build-side driver of the static export run."""

import logging
import os
import subprocess
import sys
from functools import partial
from pathlib import Path

import msgspec
from anyio import to_thread

from litestar_pages.config import EXPORT_ENV
from litestar_pages.exceptions import ExportError, ExportTimeoutError
from litestar_pages.export import EXPORT_VERSION, StaticExportDocument
from litestar_pages.types import StaticPathData

__all__ = ("parse_export_output", "run_static_export")

logger = logging.getLogger("litestar_pages")


def parse_export_output(stdout: bytes) -> "dict[str, list[StaticPathData]]":
    """Parse the export document, ignoring anything the host printed before it.

    Raises:
        ExportError: If no valid document was printed.

    Returns:
        Static path entries keyed by component path.
    """
    lines = [line for line in stdout.splitlines() if line.strip()]
    if not lines:
        msg = "static export produced no output"
        raise ExportError(msg)
    try:
        document = msgspec.json.decode(lines[-1], type=StaticExportDocument)
    except (msgspec.DecodeError, msgspec.ValidationError) as exc:
        msg = f"static export produced invalid output: {exc}"
        raise ExportError(msg) from exc
    if document.version != EXPORT_VERSION:
        msg = f"unsupported static export version {document.version}"
        raise ExportError(msg)
    return {page.component_path: list(page.entries) for page in document.pages}


def _run(
    command: "list[str]", cwd: Path, env: "dict[str, str]", timeout: float
) -> "subprocess.CompletedProcess[bytes]":
    return subprocess.run(command, cwd=cwd, env=env, capture_output=True, timeout=timeout, check=False)


async def run_static_export(
    main_file: Path,
    *,
    cwd: Path,
    timeout: float = 90.0,
    command: "list[str] | None" = None,
) -> "dict[str, list[StaticPathData]]":
    """Run the host application in export mode and collect its static paths.

    Args:
        main_file: Host application module.
        cwd: Working directory of the run.
        timeout: Hard wall-clock limit in seconds.
        command: Command override; defaults to running ``main_file`` with this interpreter.

    Raises:
        ExportTimeoutError: If the run exceeds ``timeout``.
        ExportError: If the run fails or prints no valid document.

    Returns:
        Static path entries keyed by component path.
    """
    command = command or [sys.executable, str(main_file)]
    env = {**os.environ, EXPORT_ENV: "1"}
    logger.debug("Running static export: %s", " ".join(command))
    try:
        result = await to_thread.run_sync(partial(_run, command, cwd, env, timeout))
    except subprocess.TimeoutExpired as exc:
        raise ExportTimeoutError(timeout) from exc
    except OSError as exc:
        msg = f"cannot run static export {command!r}: {exc}"
        raise ExportError(msg) from exc
    if result.returncode != 0:
        msg = f"static export exited with code {result.returncode}"
        raise ExportError(msg, stderr=result.stderr.decode(errors="replace"))
    return parse_export_output(result.stdout)
