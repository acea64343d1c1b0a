import inspect
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast
from unittest.mock import AsyncMock

import pytest
from click import Group
from litestar import Litestar

from litestar_pages.build import BuildResult
from litestar_pages.cli import _find_app_module_file, pages_build, pages_group, pages_status
from litestar_pages.config import PagesConfig, PathConfig
from litestar_pages.exceptions import (
    BuildError,
    BuildFailedError,
    ExportError,
    PageBuildFailure,
    RendererStartupError,
    RenderError,
)
from litestar_pages.manifest import Manifest, ManifestEntry, write_manifest
from litestar_pages.plugin import PagesPlugin
from litestar_pages.types import PageMode, page

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


def _make_app(root: Path) -> Litestar:
    config = PagesConfig(
        pages=[page("/", "pages/home.tsx"), page("/about", "pages/about.tsx", static=True)],
        paths=PathConfig(root=root),
        dev_mode=True,
    )
    return Litestar(plugins=[PagesPlugin(config=config)])


def _unwrap_command(command: object) -> Callable[..., Any]:
    callback = getattr(command, "callback")
    return cast("Callable[..., Any]", inspect.unwrap(callback))


def _result(config: PagesConfig, failures: "list[PageBuildFailure] | None" = None) -> BuildResult:
    return BuildResult(manifest=Manifest(), manifest_path=config.paths.manifest_path, failures=failures or [])


@pytest.fixture
def main_file(project_dir: Path) -> Path:
    path = project_dir / "app.py"
    path.write_text('page("/", "pages/home.tsx")\n')
    return path


def test_pages_group_commands() -> None:
    assert isinstance(pages_group, Group)
    assert set(pages_group.commands) == {"build", "status"}


def test_find_app_module_file() -> None:
    assert _find_app_module_file(APP) == Path(__file__)
    assert _find_app_module_file(Litestar()) is None


def test_pages_build_runs_build(project_dir: Path, main_file: Path, mocker: "MockerFixture") -> None:
    app = _make_app(project_dir)
    config = app.plugins.get(PagesPlugin).config
    build = mocker.patch("litestar_pages.build.build_project", new=AsyncMock(return_value=_result(config)))

    _unwrap_command(pages_build)(app, main_file=main_file, workers=2, verbose=True)

    build.assert_awaited_once_with(config, main_file, workers=2)
    assert config.logging_config.is_verbose
    assert app.debug


def test_pages_build_reports_partial_failures(
    project_dir: Path, main_file: Path, mocker: "MockerFixture", capsys: pytest.CaptureFixture[str]
) -> None:
    app = _make_app(project_dir)
    config = app.plugins.get(PagesPlugin).config
    failure = PageBuildFailure("pages/about.tsx", "pages-about-entry", "client build", BuildError("boom"))
    mocker.patch("litestar_pages.build.build_project", new=AsyncMock(return_value=_result(config, [failure])))

    _unwrap_command(pages_build)(app, main_file=main_file, workers=None, verbose=False)

    assert "1 page(s) failed" in capsys.readouterr().out


@pytest.mark.parametrize(
    "error",
    [
        BuildFailedError("Every page failed to build"),
        ExportError("static export exited with code 1", stderr="Traceback"),
    ],
)
def test_pages_build_failure_exits(
    project_dir: Path, main_file: Path, mocker: "MockerFixture", error: Exception
) -> None:
    app = _make_app(project_dir)
    mocker.patch("litestar_pages.build.build_project", new=AsyncMock(side_effect=error))

    with pytest.raises(SystemExit) as exc_info:
        _unwrap_command(pages_build)(app, main_file=main_file, workers=None, verbose=False)
    assert exc_info.value.code == 1


@pytest.mark.parametrize(
    "error",
    [
        RenderError("cannot render pages/about.tsx", stack="at About (about.tsx:3:9)"),
        RendererStartupError("Renderer exited with code 1", command=["bun", "renderer.js"], exit_code=1),
    ],
)
def test_pages_build_renderer_errors_exit(
    project_dir: Path,
    main_file: Path,
    mocker: "MockerFixture",
    capsys: pytest.CaptureFixture[str],
    error: Exception,
) -> None:
    app = _make_app(project_dir)
    mocker.patch("litestar_pages.build.build_project", new=AsyncMock(side_effect=error))

    with pytest.raises(SystemExit) as exc_info:
        _unwrap_command(pages_build)(app, main_file=main_file, workers=None, verbose=False)

    assert exc_info.value.code == 1
    assert "Build aborted" in capsys.readouterr().out


def test_pages_build_without_main_file(project_dir: Path, mocker: "MockerFixture") -> None:
    app = _make_app(project_dir)
    mocker.patch("litestar_pages.cli._find_app_module_file", return_value=None)
    build = mocker.patch("litestar_pages.build.build_project", new=AsyncMock())

    with pytest.raises(SystemExit):
        _unwrap_command(pages_build)(app, main_file=None, workers=None, verbose=False)
    build.assert_not_awaited()


def test_pages_status_without_build(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _unwrap_command(pages_status)(_make_app(project_dir))

    output = capsys.readouterr().out
    assert "Pages Integration Status" in output
    assert "Dev Mode: True" in output
    assert "Live Reload: True" in output
    assert "Pages: 2" in output
    assert "manifest not found" in output
    assert "No packaged renderer" in output


def test_pages_status_with_build(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    app = _make_app(project_dir)
    config = app.plugins.get(PagesPlugin).config
    entry = ManifestEntry(script="/dist/pages-home-entry-a1.js", mode=PageMode.SSR)
    write_manifest(config.paths.manifest_path, Manifest(entries={"pages-home-entry": entry}))

    _unwrap_command(pages_status)(app)

    assert "Manifest found" in capsys.readouterr().out


APP = Litestar()


def test_pages_status_counts_prerendered_routes(project_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    app = _make_app(project_dir)
    config = app.plugins.get(PagesPlugin).config
    entry = ManifestEntry(
        script="/dist/pages-post-entry-c3.js",
        mode=PageMode.STATIC_PRERENDER,
        static=True,
        static_routes={
            "/blog/hello": "/pages/routes/blog/hello/index.html",
            "/blog/world": "/pages/routes/blog/world/index.html",
        },
    )
    write_manifest(config.paths.manifest_path, Manifest(entries={"pages-post-entry": entry}))

    _unwrap_command(pages_status)(app)

    assert "Prerendered routes: 2" in capsys.readouterr().out
