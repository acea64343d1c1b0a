"""Renderer contract and wire format."""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

import msgspec

from litestar_pages.exceptions import BuildError, BuildErrorDetail, RenderError
from litestar_pages.types import RenderedPage

__all__ = ("Renderer",)


@runtime_checkable
class Renderer(Protocol):
    """Renders components and bundles entrypoints."""

    async def render(self, path: str, props: "Mapping[str, Any] | None" = None) -> RenderedPage:
        """Render the module at ``path`` with ``props``."""
        ...

    async def build(self, entrypoints: "Sequence[str]", outdir: str, entry_names: "str | None" = None) -> None:
        """Bundle browser entrypoints into ``outdir``."""
        ...

    async def build_ssr(self, entrypoints: "Sequence[str]", outdir: str) -> None:
        """Bundle server entrypoints into ``outdir``."""
        ...


class ErrorPosition(msgspec.Struct, rename="camel"):
    file: "str | None" = None
    line: "int | None" = None
    column: "int | None" = None
    line_text: "str | None" = None


class ErrorDetail(msgspec.Struct):
    message: str = ""
    stack: "str | None" = None
    position: "ErrorPosition | None" = None
    specifier: "str | None" = None
    referrer: "str | None" = None


class WireError(msgspec.Struct):
    message: str = ""
    stack: "str | None" = None
    errors: "list[ErrorDetail] | None" = None


class RenderRequest(msgspec.Struct):
    path: str
    props: "dict[str, Any]"


class RenderResponse(msgspec.Struct):
    html: str = ""
    head: "str | None" = None
    error: "WireError | None" = None


class BuildRequest(msgspec.Struct, rename="camel", omit_defaults=True):
    entrypoints: "list[str]"
    outdir: str
    target: "str | None" = None
    entry_names: "str | None" = None


class BuildResponse(msgspec.Struct):
    ok: bool = False
    error: "WireError | None" = None


def to_render_error(error: WireError) -> RenderError:
    return RenderError(
        error.message or "render failed",
        stack=error.stack,
        errors=[(detail.message, detail.stack) for detail in error.errors or ()],
    )


def to_build_error(error: WireError) -> BuildError:
    details = []
    for detail in error.errors or ():
        position = detail.position or ErrorPosition()
        details.append(
            BuildErrorDetail(
                message=detail.message,
                file=position.file,
                line=position.line,
                column=position.column,
                line_text=position.line_text,
                specifier=detail.specifier,
                referrer=detail.referrer,
            )
        )
    return BuildError(error.message or "build failed", stack=error.stack, errors=details)
