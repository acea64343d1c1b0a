"""Tests for error formatting."""

from litestar_pages.exceptions import (
    BuildError,
    BuildErrorDetail,
    BuildFailedError,
    ExportError,
    ExportTimeoutError,
    PageBuildFailure,
    PageRedirect,
    PathValidationError,
    RedirectContract,
    RenderError,
)


def test_build_error_reports_positions() -> None:
    error = BuildError(
        "Bundle failed",
        stack="at build",
        errors=[
            BuildErrorDetail("Unexpected token", file="pages/a.tsx", line=4, column=2, line_text="const = 1"),
            BuildErrorDetail("Could not resolve", specifier="left-pad", referrer="pages/a.tsx"),
        ],
    )
    text = str(error)
    assert text.startswith("Bundle failed")
    assert "1. pages/a.tsx:4:2: Unexpected token" in text
    assert "    const = 1" in text
    assert "cannot resolve 'left-pad' (imported from pages/a.tsx)" in text
    assert text.endswith("Stack:\nat build")


def test_render_error_lists_sub_errors() -> None:
    error = RenderError("Render failed", stack="top", errors=[("inner", "at inner"), ("other", None)])
    text = str(error)
    assert "Errors:\n  1. inner\n     Stack: at inner\n  2. other" in text
    assert text.endswith("Stack:\ntop")
    assert error.message == "Render failed"


def test_export_errors() -> None:
    assert "Stderr: boom" in str(ExportError("export failed", stderr="boom\n"))
    timeout = ExportTimeoutError(90)
    assert isinstance(timeout, ExportError)
    assert "timed out after 90s" in str(timeout)
    assert "ordering" in str(timeout)


def test_path_validation_error() -> None:
    error = PathValidationError("/a/../b", "path cannot contain parent directory references")
    assert str(error) == "invalid static path '/a/../b': path cannot contain parent directory references"


def test_build_failed_error_lists_failures() -> None:
    failure = PageBuildFailure("pages/a.tsx", "pages-a-entry", "client build", BuildError("nope"))
    text = str(BuildFailedError("Every page failed to build", [failure]))
    assert "pages/a.tsx (client build): nope" in text


def test_redirect_contract() -> None:
    class LoginRequired(Exception):
        redirect_url = "/login"
        redirect_status_code = 303

    assert isinstance(PageRedirect("/next"), RedirectContract)
    assert isinstance(LoginRequired(), RedirectContract)
    assert not isinstance(ValueError("x"), RedirectContract)
    assert PageRedirect("/next").redirect_status_code == 302
