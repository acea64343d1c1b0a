"""File system paths configuration."""

from dataclasses import dataclass, field
from pathlib import Path

__all__ = ("PathConfig",)


@dataclass
class PathConfig:
    """File system paths configuration.

    Relative directories are resolved against ``root``.

    Attributes:
        root: The root directory of the project. Component paths given to ``page()`` are relative to it.
            Defaults to current working directory.
        output_dir: Build output directory (bundles, prerendered HTML, manifest, packaged runtime).
        public_dir: Static public assets copied into the build output as-is.
        manifest_name: Name of the manifest file inside ``output_dir``.
    """

    root: "str | Path" = field(default_factory=Path.cwd)
    output_dir: "str | Path" = field(default_factory=lambda: Path(".pages"))
    public_dir: "str | Path" = field(default_factory=lambda: Path("public"))
    manifest_name: str = "manifest.json"

    def __post_init__(self) -> None:
        """Normalize path types to Path objects."""
        if isinstance(self.root, str):
            object.__setattr__(self, "root", Path(self.root))
        if isinstance(self.output_dir, str):
            object.__setattr__(self, "output_dir", Path(self.output_dir))
        if isinstance(self.public_dir, str):
            object.__setattr__(self, "public_dir", Path(self.public_dir))

    def _resolve(self, path: "str | Path") -> Path:
        path = Path(path)
        return path if path.is_absolute() else Path(self.root) / path

    @property
    def root_dir(self) -> Path:
        return Path(self.root)

    @property
    def output_path(self) -> Path:
        return self._resolve(self.output_dir)

    @property
    def dist_dir(self) -> Path:
        """Client bundles, served under the asset URL."""
        return self.output_path / "dist"

    @property
    def ssr_dir(self) -> Path:
        return self.output_path / "ssr"

    @property
    def pages_dir(self) -> Path:
        """Prerendered HTML files."""
        return self.output_path / "pages"

    @property
    def runtime_dir(self) -> Path:
        return self.output_path / "runtime"

    @property
    def runtime_executable(self) -> Path:
        return self.runtime_dir / "pages-renderer"

    @property
    def manifest_path(self) -> Path:
        return self.output_path / self.manifest_name

    @property
    def public_source_dir(self) -> Path:
        return self._resolve(self.public_dir)

    @property
    def public_output_dir(self) -> Path:
        return self.output_path / "public"
