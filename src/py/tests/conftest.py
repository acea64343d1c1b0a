import os
from collections.abc import Generator, Mapping, Sequence
from pathlib import Path
from typing import Any

import msgspec
import pytest

from litestar_pages.config import PagesConfig, PathConfig, RuntimeConfig
from litestar_pages.exceptions import BuildError, BuildErrorDetail, RenderError
from litestar_pages.types import RenderedPage

here = Path(__file__).parent


@pytest.fixture(autouse=True)
def clean_pages_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Clear LITESTAR_PAGES_* environment variables before each test for isolation."""
    for var in [name for name in os.environ if name.startswith("LITESTAR_PAGES_")]:
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakeRenderer:
    """In-process stand-in for the Bun renderer.

    Builds write placeholder bundles named the way Bun names them, renders
    echo the module and props back as markup.
    """

    def __init__(self) -> None:
        self.render_calls: list[tuple[str, dict[str, Any]]] = []
        self.build_calls: list[tuple[list[str], str, "str | None"]] = []
        self.ssr_calls: list[tuple[list[str], str]] = []
        self.fail_builds: set[str] = set()
        self.fail_ssr_builds: set[str] = set()
        self.fail_renders: set[str] = set()
        self.css: dict[str, str] = {}
        self.shared_chunk = True
        self.head = "<title>Fake</title>"

    async def render(self, path: str, props: "Mapping[str, Any] | None" = None) -> RenderedPage:
        props = dict(props or {})
        self.render_calls.append((path, props))
        if any(marker in path for marker in self.fail_renders):
            msg = f"cannot render {path}"
            raise RenderError(msg, stack="at render (fake.tsx:1:1)")
        body = f"<main>{Path(path).stem}:{msgspec.json.encode(props, order='sorted').decode()}</main>"
        return RenderedPage(body=body, head=self.head)

    async def build(self, entrypoints: "Sequence[str]", outdir: str, entry_names: "str | None" = None) -> None:
        self.build_calls.append((list(entrypoints), outdir, entry_names))
        out = Path(outdir)
        out.mkdir(parents=True, exist_ok=True)
        suffix = "-deadbeef" if entry_names and "[hash]" in entry_names else ""
        for entrypoint in entrypoints:
            stem = Path(entrypoint).stem
            if stem in self.fail_builds:
                msg = f"cannot bundle {stem}"
                detail = BuildErrorDetail("Could not resolve", file=entrypoint, line=3, column=21)
                raise BuildError(msg, errors=[detail])
            imports = "import './chunk-shared.js';\n" if self.shared_chunk else ""
            (out / f"{stem}{suffix}.js").write_text(f"{imports}// {stem}\n")
            if stem in self.css:
                (out / f"{stem}{suffix}.css").write_text(self.css[stem])
        if self.shared_chunk:
            (out / "chunk-shared.js").write_text("export const shared = 1;\n")

    async def build_ssr(self, entrypoints: "Sequence[str]", outdir: str) -> None:
        self.ssr_calls.append((list(entrypoints), outdir))
        out = Path(outdir)
        out.mkdir(parents=True, exist_ok=True)
        for entrypoint in entrypoints:
            stem = Path(entrypoint).stem
            if stem in self.fail_ssr_builds:
                msg = f"cannot bundle {stem}"
                raise BuildError(msg)
            (out / f"{stem}.js").write_text(f"export function render() {{}} // {stem}\n")
            (out / f"{stem}.css").write_text("body { margin: 0; }")


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project root with a few components and a public directory.

    Returns:
        The project root.
    """
    pages = tmp_path / "pages"
    pages.mkdir()
    for name in ("home", "about", "dashboard", "post"):
        (pages / f"{name}.tsx").write_text(f"export default function {name.title()}() {{ return <p>{name}</p>; }}\n")
    public = tmp_path / "public"
    public.mkdir()
    (public / "robots.txt").write_text("User-agent: *\n")
    return tmp_path


@pytest.fixture
def pages_config(project_dir: Path) -> PagesConfig:
    return PagesConfig(paths=PathConfig(root=project_dir), runtime=RuntimeConfig(dev_mode=False))
