"""Tests for PagesPlugin application wiring."""

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, Mock

import anyio
import msgspec
import pytest
from click import Group
from litestar import Litestar
from litestar.testing import AsyncTestClient

from litestar_pages import PagesConfig, PagesPlugin, PathConfig, RuntimeConfig, page
from litestar_pages.exceptions import ManifestNotFoundError
from litestar_pages.manifest import Manifest, ManifestEntry, write_manifest
from litestar_pages.renderer import RendererClient
from litestar_pages.types import PageMode, StaticPathData

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


def _posts() -> list[StaticPathData]:
    return [StaticPathData("/blog/hello", {"slug": "hello"})]


def _pages() -> list[Any]:
    return [
        page("/", "pages/home.tsx"),
        page("/home", "pages/home.tsx"),
        page("/about", "pages/about.tsx", static=True),
        page("/blog/{slug:str}", "pages/post.tsx", static=True, static_data=_posts),
    ]


def _fake_client(renderer: Any) -> Mock:
    client = Mock(spec=RendererClient)
    client.socket_path = Path("/tmp/fake.sock")
    client.aclose = AsyncMock()
    client.render = renderer.render
    client.build = renderer.build
    client.build_ssr = renderer.build_ssr
    return client


@pytest.fixture
def dev_config(project_dir: Path) -> PagesConfig:
    return PagesConfig(pages=_pages(), paths=PathConfig(root=project_dir), dev_mode=True)


@pytest.fixture
def prod_config(project_dir: Path) -> PagesConfig:
    config = PagesConfig(pages=_pages(), paths=PathConfig(root=project_dir), runtime=RuntimeConfig(dev_mode=False))
    paths = config.paths
    paths.dist_dir.mkdir(parents=True)
    (paths.dist_dir / "pages-about-entry-b2.js").write_text("console.log('about')")
    (paths.pages_dir / "pages-about-entry").mkdir(parents=True)
    (paths.pages_dir / "pages-about-entry" / "index.html").write_text("<p>about</p>")
    paths.public_output_dir.mkdir(parents=True)
    (paths.public_output_dir / "robots.txt").write_text("User-agent: *\n")
    return config


def _write_manifest(config: PagesConfig, *, with_ssr: bool) -> None:
    entries = {
        "pages-about-entry": ManifestEntry(
            script="/dist/pages-about-entry-b2.js",
            mode=PageMode.STATIC_PRERENDER,
            static=True,
            html="/pages/pages-about-entry/index.html",
        )
    }
    if with_ssr:
        entries["pages-home-entry"] = ManifestEntry(
            script="/dist/pages-home-entry-a1.js", mode=PageMode.SSR, ssr="/ssr/pages-home-entry-ssr.js"
        )
    write_manifest(config.paths.manifest_path, Manifest(entries=entries))


def test_on_cli_init_registers_pages_group() -> None:
    cli = Group()
    PagesPlugin().on_cli_init(cli)
    assert "pages" in cli.commands
    assert {"build", "status"} <= set(cli.commands["pages"].commands)  # type: ignore[attr-defined]


def test_one_handler_per_component(dev_config: PagesConfig) -> None:
    plugin = PagesPlugin(config=dev_config)
    app = Litestar(plugins=[plugin])

    assert [handler.page.component_path for handler in plugin.handlers] == [
        "pages/home.tsx",
        "pages/about.tsx",
        "pages/post.tsx",
    ]
    paths = {route.path for route in app.routes}
    assert {"/", "/home", "/about", "/blog/{slug:str}"} <= paths
    assert any(path.startswith("/dist") for path in paths)
    assert any(path.startswith("/public") for path in paths)


def test_public_route_requires_directory(project_dir: Path) -> None:
    config = PagesConfig(pages=_pages(), paths=PathConfig(root=project_dir, public_dir="missing"), dev_mode=True)
    app = Litestar(plugins=[PagesPlugin(config=config)])
    assert not any(route.path.startswith("/public") for route in app.routes)


def test_production_requires_manifest(prod_config: PagesConfig) -> None:
    with pytest.raises(ManifestNotFoundError):
        Litestar(plugins=[PagesPlugin(config=prod_config)])


def test_build_command_does_not_need_manifest(prod_config: PagesConfig, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "argv", ["litestar", "pages", "build"])
    plugin = PagesPlugin(config=prod_config)
    Litestar(plugins=[plugin])
    assert plugin.manifest is None


def test_export_mode_prints_static_paths_and_exits(
    dev_config: PagesConfig, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("LITESTAR_PAGES_EXPORT", "1")
    with pytest.raises(SystemExit) as exc_info:
        Litestar(plugins=[PagesPlugin(config=dev_config)])

    assert exc_info.value.code == 0
    document = msgspec.json.decode(capsys.readouterr().out.strip().splitlines()[-1])
    assert document["pages"] == [
        {"componentPath": "pages/post.tsx", "entries": [{"path": "/blog/hello", "props": {"slug": "hello"}}]}
    ]


async def test_production_without_ssr_serves_prebuilt_output(
    prod_config: PagesConfig, mocker: "MockerFixture"
) -> None:
    _write_manifest(prod_config, with_ssr=False)
    from_packaged = mocker.patch.object(RendererClient, "from_packaged_runtime")
    plugin = PagesPlugin(config=prod_config)

    async with AsyncTestClient(app=Litestar(plugins=[plugin])) as client:
        page_response = await client.get("/about")
        asset = await client.get("/dist/pages-about-entry-b2.js")
        public = await client.get("/public/robots.txt")
        unbuilt = await client.get("/")

    assert page_response.text == "<p>about</p>"
    assert asset.status_code == 200
    assert public.text == "User-agent: *\n"
    assert unbuilt.status_code == 500
    from_packaged.assert_not_called()
    assert plugin.renderer is None


async def test_lifespan_starts_and_stops_renderer(
    dev_config: PagesConfig, fake_renderer: Any, mocker: "MockerFixture"
) -> None:
    client = _fake_client(fake_renderer)
    from_source = mocker.patch.object(RendererClient, "from_source", return_value=client)
    plugin = PagesPlugin(config=dev_config)

    async with AsyncTestClient(app=Litestar(plugins=[plugin])) as test_client:
        assert plugin.renderer is client
        assert all(handler.renderer is client for handler in plugin.handlers)
        response = await test_client.get("/about")

    assert response.status_code == 200
    assert "about:{}" in response.text
    from_source.assert_called_once_with(dev_config)
    client.start.assert_called_once()
    client.aclose.assert_awaited_once()
    client.stop.assert_called_once()
    assert plugin.renderer is None
    assert all(handler.renderer is None for handler in plugin.handlers)


async def test_production_falls_back_to_renderer_source(
    prod_config: PagesConfig, fake_renderer: Any, mocker: "MockerFixture"
) -> None:
    _write_manifest(prod_config, with_ssr=True)
    client = _fake_client(fake_renderer)
    from_source = mocker.patch.object(RendererClient, "from_source", return_value=client)
    plugin = PagesPlugin(config=prod_config)

    async with AsyncTestClient(app=Litestar(plugins=[plugin])) as test_client:
        response = await test_client.get("/")

    assert response.status_code == 200
    assert "pages-home-entry-ssr:{}" in response.text
    from_source.assert_called_once_with(prod_config, production=True)


async def test_start_renderer_disabled(project_dir: Path, mocker: "MockerFixture") -> None:
    config = PagesConfig(
        pages=_pages(), paths=PathConfig(root=project_dir), runtime=RuntimeConfig(dev_mode=True, start_renderer=False)
    )
    from_source = mocker.patch.object(RendererClient, "from_source")
    plugin = PagesPlugin(config=config)

    async with AsyncTestClient(app=Litestar(plugins=[plugin])):
        assert plugin.renderer is None

    from_source.assert_not_called()


def test_development_registers_live_reload_stream(dev_config: PagesConfig) -> None:
    plugin = PagesPlugin(config=dev_config)
    app = Litestar(plugins=[plugin])

    assert plugin.live_reload is not None
    index = app.get_handler_index_by_name("pages-reload")
    assert index is not None
    assert index["paths"] == ["/__pages/reload"]
    reload_route = index["handler"]
    assert reload_route.opt["exclude_from_auth"] is True
    assert reload_route.include_in_schema is False


def test_live_reload_disabled(project_dir: Path) -> None:
    config = PagesConfig(
        pages=_pages(), paths=PathConfig(root=project_dir), runtime=RuntimeConfig(dev_mode=True, watch=False)
    )
    plugin = PagesPlugin(config=config)
    app = Litestar(plugins=[plugin])

    assert plugin.live_reload is None
    assert "/__pages/reload" not in {route.path for route in app.routes}


def test_production_has_no_live_reload(prod_config: PagesConfig) -> None:
    _write_manifest(prod_config, with_ssr=False)
    plugin = PagesPlugin(config=prod_config)
    app = Litestar(plugins=[plugin])

    assert plugin.live_reload is None
    assert "/__pages/reload" not in {route.path for route in app.routes}


async def test_lifespan_runs_source_watcher_until_shutdown(
    dev_config: PagesConfig, fake_renderer: Any, mocker: "MockerFixture"
) -> None:
    mocker.patch.object(RendererClient, "from_source", return_value=_fake_client(fake_renderer))
    events: list[str] = []

    async def watch(stop_event: Any) -> None:
        events.append("started")
        await stop_event.wait()
        events.append("stopped")

    plugin = PagesPlugin(config=dev_config)
    app = Litestar(plugins=[plugin])
    assert plugin.live_reload is not None
    mocker.patch.object(plugin.live_reload, "watch", new=watch)

    async with AsyncTestClient(app=app) as test_client:
        response = await test_client.get("/about")
        await anyio.sleep(0)
        assert events == ["started"]

    assert events == ["started", "stopped"]
    assert 'new EventSource("/__pages/reload")' in response.text
