"""Production build pipeline for pages."""

from litestar_pages.build._engine import BuildEngine, BuildResult, build_project
from litestar_pages.build._export import parse_export_output, run_static_export
from litestar_pages.build._manifest import apply_static_routes, generate_manifest
from litestar_pages.build._scan import DiscoveredPage, scan_pages, scan_source
from litestar_pages.build._static import StaticGenerator, plan_static_routes

__all__ = (
    "BuildEngine",
    "BuildResult",
    "DiscoveredPage",
    "StaticGenerator",
    "apply_static_routes",
    "build_project",
    "generate_manifest",
    "parse_export_output",
    "plan_static_routes",
    "run_static_export",
    "scan_pages",
    "scan_source",
)
