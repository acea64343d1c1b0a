"""Tests for entry naming, path normalization and hashing."""

from pathlib import Path

import pytest

from litestar_pages.exceptions import PathValidationError
from litestar_pages.naming import (
    component_import_path,
    entry_name_for_path,
    entry_paths,
    hash_content,
    normalize_component_path,
    normalize_path,
    route_html_path,
    validate_route_path,
)


@pytest.mark.parametrize(
    ("component_path", "expected"),
    [
        ("pages/home.tsx", "pages-home-entry"),
        ("./pages/blog/post.tsx", "pages-blog-post-entry"),
        ("views/Dashboard.jsx", f"views-Dashboard--{hash_content(b'views/Dashboard.jsx')[:8]}-entry"),
        ("pages\\win\\page.tsx", "pages-win-page-entry"),
        ("pages/blog-post.tsx", f"pages-blog-post--{hash_content(b'pages/blog-post.tsx')[:8]}-entry"),
        ("", f"page--{hash_content(b'')[:8]}-entry"),
        ("./", f"page--{hash_content(b'')[:8]}-entry"),
    ],
)
def test_entry_name_for_path(component_path: str, expected: str) -> None:
    assert entry_name_for_path(component_path) == expected


def test_entry_name_is_deterministic() -> None:
    assert entry_name_for_path("pages/a/b.tsx") == entry_name_for_path("pages/a/b.tsx")


@pytest.mark.parametrize(
    ("first", "second"),
    [
        ("pages/blog-post.tsx", "pages/blog/post.tsx"),
        ("pages/home.tsx", "pages/home.jsx"),
        ("pages/home.tsx", "pages/home.ts"),
        ("pages/a-b/c.tsx", "pages/a/b-c.tsx"),
        ("pages/page.tsx", "pages/page--x.tsx"),
        ("pages/My Page.tsx", "pages/My-Page.tsx"),
    ],
)
def test_distinct_components_get_distinct_entry_names(first: str, second: str) -> None:
    assert entry_name_for_path(first) != entry_name_for_path(second)


@pytest.mark.parametrize("spelling", ["pages/blog-post.tsx", "./pages/blog-post.tsx", "/pages/blog-post.tsx"])
def test_spellings_of_one_component_share_an_entry_name(spelling: str) -> None:
    assert entry_name_for_path(spelling) == entry_name_for_path("pages/blog-post.tsx")


def test_normalize_component_path() -> None:
    assert normalize_component_path(".\\pages\\home.tsx") == "pages/home.tsx"
    assert normalize_component_path("././pages/home.tsx") == "pages/home.tsx"
    assert normalize_component_path("/pages/home.tsx/") == "pages/home.tsx"


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("", "/"),
        ("/", "/"),
        ("blog", "/blog"),
        ("/blog/", "/blog"),
        ("/blog/hello/", "/blog/hello"),
        ("//", "/"),
        ("/a//b", "/a/b"),
        ("//blog///hello//", "/blog/hello"),
    ],
)
def test_normalize_path(path: str, expected: str) -> None:
    assert normalize_path(path) == expected


def test_normalize_path_is_idempotent() -> None:
    for path in ("", "/a/", "a/b", "/", "/a//b/", "///x"):
        assert normalize_path(normalize_path(path)) == normalize_path(path)


@pytest.mark.parametrize("path", ["", "blog/x", "/a?b=1", "/a#top", "/a/../b", "/a/*"])
def test_validate_route_path_rejects_malformed_paths(path: str) -> None:
    with pytest.raises(PathValidationError) as exc_info:
        validate_route_path(path)
    assert exc_info.value.path == path


def test_validate_route_path_accepts_plain_paths() -> None:
    validate_route_path("/")
    validate_route_path("/blog/hello-world")


def test_route_html_path() -> None:
    assert route_html_path("/") == "/pages/routes/index.html"
    assert route_html_path("/blog/hello/") == "/pages/routes/blog/hello/index.html"


def test_hash_content() -> None:
    digest = hash_content(b"body { color: red }")
    assert len(digest) == 16
    assert digest == hash_content(b"body { color: red }")
    assert digest != hash_content(b"body { color: blue }")


def test_component_import_path(tmp_path: Path) -> None:
    entries = tmp_path / ".pages" / "entries"
    assert component_import_path(entries, tmp_path / "pages" / "home.tsx") == "../../pages/home"
    assert component_import_path(entries, entries / "local.tsx") == "./local"


def test_entry_paths(tmp_path: Path) -> None:
    paths = entry_paths(tmp_path, "pages-home-entry")
    assert paths.client_entry == tmp_path / "pages-home-entry.tsx"
    assert paths.ssr_entry == tmp_path / "pages-home-entry-ssr.tsx"
    assert paths.output_dir == tmp_path
