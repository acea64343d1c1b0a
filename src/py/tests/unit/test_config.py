"""Tests for configuration and page registration."""

import logging
from pathlib import Path

import pytest

from litestar_pages.config import LoggingConfig, PagesConfig, PathConfig, RuntimeConfig
from litestar_pages.config._logging import get_default_log_level
from litestar_pages.executor import BunExecutor
from litestar_pages.types import PageMode, StaticPathData, page


def _load(request: object) -> dict:
    return {}


def _paths() -> list[StaticPathData]:
    return []


def test_page_modes() -> None:
    assert page("/", "pages/home.tsx").page.mode is PageMode.SSR
    assert page("/d", "pages/d.tsx", client_only=True).page.mode is PageMode.CLIENT_ONLY
    assert page("/s", "pages/s.tsx", static=True).page.mode is PageMode.STATIC_PRERENDER


def test_page_client_only_and_static_falls_back_to_ssr(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="litestar_pages"):
        route = page("/x", "pages/x.tsx", client_only=True, static=True)
    assert route.page.mode is PageMode.SSR
    assert "both client_only and static" in caplog.text


def test_page_drops_static_data_when_not_static(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="litestar_pages"):
        route = page("/x", "pages/x.tsx", static_data=_paths)
    assert route.page.static_data_loader is None
    assert "static_data" in caplog.text


def test_page_drops_loader_for_static_pages() -> None:
    route = page("/x", "pages/x.tsx", static=True, loader=_load, static_data=_paths)
    assert route.page.props_loader is None
    assert route.page.static_data_loader is _paths


def test_page_entry_name() -> None:
    assert page("/", "pages/home.tsx").page.entry_name == "pages-home-entry"


def test_path_config_derived_paths(tmp_path: Path) -> None:
    paths = PathConfig(root=str(tmp_path), output_dir="build")
    assert paths.output_path == tmp_path / "build"
    assert paths.dist_dir == tmp_path / "build" / "dist"
    assert paths.ssr_dir == tmp_path / "build" / "ssr"
    assert paths.pages_dir == tmp_path / "build" / "pages"
    assert paths.manifest_path == tmp_path / "build" / "manifest.json"
    assert paths.runtime_executable == tmp_path / "build" / "runtime" / "pages-renderer"
    assert paths.public_source_dir == tmp_path / "public"
    assert paths.public_output_dir == tmp_path / "build" / "public"


def test_runtime_config_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    assert RuntimeConfig().dev_mode is False
    monkeypatch.setenv("LITESTAR_PAGES_DEV", "true")
    monkeypatch.setenv("LITESTAR_PAGES_BUN", "/opt/bun")
    runtime = RuntimeConfig()
    assert runtime.dev_mode is True
    assert runtime.executable_path == "/opt/bun"


def test_runtime_config_validation() -> None:
    with pytest.raises(ValueError, match="build_workers"):
        RuntimeConfig(build_workers=0)
    assert RuntimeConfig(render_cache_ttl=0).render_cache_ttl is None
    with pytest.raises(ValueError, match="watch_debounce"):
        RuntimeConfig(watch_debounce=-1)


@pytest.mark.parametrize(("value", "expected"), [("quiet", "quiet"), ("VERBOSE", "verbose"), ("nonsense", "normal")])
def test_default_log_level(monkeypatch: pytest.MonkeyPatch, value: str, expected: str) -> None:
    monkeypatch.setenv("LITESTAR_PAGES_LOG_LEVEL", value)
    assert get_default_log_level() == expected


def test_pages_config_normalization() -> None:
    config = PagesConfig(asset_url="static/", public_url="/assets/", dev_mode=True, logging=None)
    assert config.asset_url == "/static"
    assert config.public_url == "/assets"
    assert config.is_dev_mode
    assert isinstance(config.logging_config, LoggingConfig)


def test_live_reload_settings() -> None:
    config = PagesConfig(reload_url="dev/reload/", dev_mode=True)
    assert config.reload_url == "/dev/reload"
    assert config.is_live_reload
    assert not PagesConfig(runtime=RuntimeConfig(dev_mode=True, watch=False)).is_live_reload
    assert not PagesConfig(runtime=RuntimeConfig(dev_mode=False)).is_live_reload


def test_page_title() -> None:
    assert page("/", "pages/home.tsx", title="Home").page.title == "Home"
    assert page("/", "pages/home.tsx").page.title is None


def test_pages_config_rejects_root_asset_url() -> None:
    with pytest.raises(ValueError, match="asset_url"):
        PagesConfig(asset_url="/")


def test_pages_config_executor() -> None:
    config = PagesConfig(runtime=RuntimeConfig(executable_path="/opt/bun"))
    executor = config.executor
    assert isinstance(executor, BunExecutor)
    assert executor.resolve_executable() == "/opt/bun"


def test_page_configs_first_registration_wins(caplog: pytest.LogCaptureFixture) -> None:
    config = PagesConfig(
        pages=[
            page("/", "pages/home.tsx"),
            page("/home", "pages/home.tsx", client_only=True),
            page("/about", "pages/about.tsx", static=True),
        ]
    )
    with caplog.at_level(logging.WARNING, logger="litestar_pages"):
        pages = config.page_configs()

    assert [p.component_path for p in pages] == ["pages/home.tsx", "pages/about.tsx"]
    assert pages[0].mode is PageMode.SSR
    assert "keeping ssr" in caplog.text
    assert [route.path for route in config.routes_for("pages/home.tsx")] == ["/", "/home"]


def test_component_source(tmp_path: Path) -> None:
    config = PagesConfig(paths=PathConfig(root=tmp_path))
    assert config.component_source("pages/a.tsx") == tmp_path / "pages" / "a.tsx"
    assert config.component_source(str(tmp_path / "abs.tsx")) == tmp_path / "abs.tsx"
