"""Litestar-Pages exception classes."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = [
    "BuildError",
    "BuildErrorDetail",
    "BuildFailedError",
    "ConfigurationError",
    "ExecutableNotFoundError",
    "ExportError",
    "ExportTimeoutError",
    "LitestarPagesError",
    "ManifestNotFoundError",
    "PageBuildFailure",
    "PageRedirect",
    "PathValidationError",
    "RedirectContract",
    "RenderError",
    "RendererStartupError",
]


class LitestarPagesError(Exception):
    """Base exception for Litestar-Pages related errors."""


class ConfigurationError(LitestarPagesError):
    """Raised when the application is misconfigured for the current mode."""


class ManifestNotFoundError(ConfigurationError):
    """Raised when the build manifest is missing in production."""

    def __init__(self, manifest_path: str) -> None:
        super().__init__(
            f"Pages manifest not found at {manifest_path!r}. Run 'litestar pages build' before serving in production."
        )
        self.manifest_path = manifest_path


class ExecutableNotFoundError(ConfigurationError):
    """Raised when the bun executable is not found."""

    def __init__(self, executable: str) -> None:
        super().__init__(f"Executable {executable!r} not found.")


@dataclass
class BuildErrorDetail:
    """A single positioned message reported by the bundler."""

    message: str
    file: "str | None" = None
    line: "int | None" = None
    column: "int | None" = None
    line_text: "str | None" = None
    specifier: "str | None" = None
    referrer: "str | None" = None

    def format(self) -> str:
        location = self.file or ""
        if self.line is not None:
            location = f"{location}:{self.line}:{self.column or 0}"
        lines = [f"{location}: {self.message}" if location else self.message]
        if self.line_text:
            lines.append(f"    {self.line_text}")
        if self.specifier:
            suffix = f" (imported from {self.referrer})" if self.referrer else ""
            lines.append(f"    cannot resolve {self.specifier!r}{suffix}")
        return "\n".join(lines)


class BuildError(LitestarPagesError):
    """Raised when the renderer fails to bundle one or more entrypoints.

    Carries every positioned message the bundler reported so the caller can
    show the failing file, line and column.
    """

    def __init__(
        self,
        message: str,
        stack: "str | None" = None,
        errors: "Sequence[BuildErrorDetail] | None" = None,
    ) -> None:
        self.message = message
        self.stack = stack
        self.errors: list[BuildErrorDetail] = list(errors or [])
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [self.message]
        for index, detail in enumerate(self.errors, start=1):
            parts.append(f"  {index}. {detail.format()}")
        if self.stack:
            parts.append(f"Stack:\n{self.stack}")
        return "\n".join(parts)


class RenderError(LitestarPagesError):
    """Raised when the renderer fails to render a component."""

    def __init__(
        self,
        message: str,
        stack: "str | None" = None,
        errors: "Sequence[tuple[str, str | None]] | None" = None,
    ) -> None:
        self.message = message
        self.stack = stack
        self.errors = list(errors or [])
        text = message
        if self.errors:
            text += "\n\nErrors:"
            for index, (sub_message, sub_stack) in enumerate(self.errors, start=1):
                text += f"\n  {index}. {sub_message}"
                if sub_stack:
                    text += f"\n     Stack: {sub_stack}"
        if stack:
            text += f"\n\nStack:\n{stack}"
        super().__init__(text)


class RendererStartupError(LitestarPagesError):
    """Raised when the renderer subprocess fails to come up."""

    def __init__(self, message: str, command: "list[str] | None" = None, exit_code: "int | None" = None) -> None:
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code


class PathValidationError(LitestarPagesError):
    """Raised when a static path is malformed or defined twice."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"invalid static path {path!r}: {reason}")
        self.path = path
        self.reason = reason


class ExportError(LitestarPagesError):
    """Raised when the static export run of the host application fails."""

    def __init__(self, message: str, stderr: "str | None" = None) -> None:
        if stderr:
            message = f"{message}\nStderr: {stderr.strip()}"
        super().__init__(message)
        self.stderr = stderr


class ExportTimeoutError(ExportError):
    """Raised when the static export run does not finish in time."""

    def __init__(self, timeout: float) -> None:
        super().__init__(
            f"static export timed out after {timeout:g}s; this is almost always a page registration ordering "
            "problem: make sure every page() is passed to PagesConfig before the application is created, and "
            "that no static data loader waits on the running server"
        )
        self.timeout = timeout


@dataclass
class PageBuildFailure:
    """A page that failed to build, and why."""

    component_path: str
    entry_name: str
    phase: str
    error: Exception


class BuildFailedError(LitestarPagesError):
    """Raised when the build pipeline cannot produce any usable output."""

    def __init__(self, message: str, failures: "Sequence[PageBuildFailure] | None" = None) -> None:
        self.failures = list(failures or [])
        text = message
        for failure in self.failures:
            text += f"\n  - {failure.component_path} ({failure.phase}): {failure.error}"
        super().__init__(text)


@runtime_checkable
class RedirectContract(Protocol):
    """Anything a props loader raises that should become an HTTP redirect."""

    redirect_url: str
    redirect_status_code: int


class PageRedirect(Exception):  # noqa: N818
    """Raise from a props loader to redirect instead of rendering.

    Example::

        async def load(request):
            if request.user is None:
                raise PageRedirect("/login")
            return {"user": request.user.name}
    """

    def __init__(self, url: str, status_code: int = 302) -> None:
        super().__init__(f"redirect to {url} ({status_code})")
        self.redirect_url = url
        self.redirect_status_code = status_code
