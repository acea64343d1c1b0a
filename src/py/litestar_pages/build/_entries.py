"""Generated entry sources."""

from pathlib import Path
from string import Template

from litestar_pages.html import PROPS_ELEMENT_ID
from litestar_pages.naming import EntryPaths, component_import_path, entry_paths
from litestar_pages.types import PageMode
from litestar_pages.utils import write_if_changed

__all__ = (
    "write_client_entry",
    "write_entry_sources",
    "write_ssr_entry",
)

_PICK_COMPONENT = """const Component =
  Mod.default ||
  Mod.Page ||
  Object.values(Mod).find((x: any) => typeof x === "function");
if (!Component) {
  throw new Error("No component export found in $component");
}
"""

_HYDRATION_ENTRY = Template(
    """import * as React from "react";
import { hydrateRoot } from "react-dom/client";
import * as Mod from "$component";

const root = document.getElementById("app");
if (!root) {
  throw new Error("Missing #app element");
}

const propsScript = document.getElementById("$props_id");
const propsText = propsScript?.textContent;
const props = propsText ? JSON.parse(propsText) : {};

"""
    + _PICK_COMPONENT
    + """
const doHydrate = () => hydrateRoot(root, <Component {...props} />);

if ("requestIdleCallback" in window) {
  requestIdleCallback(doHydrate, { timeout: 2000 });
} else {
  setTimeout(doHydrate, 0);
}
"""
)

_CLIENT_ONLY_ENTRY = Template(
    """import * as React from "react";
import { createRoot } from "react-dom/client";
import * as Mod from "$component";

const root = document.getElementById("app");
if (!root) {
  throw new Error("Missing #app element");
}

"""
    + _PICK_COMPONENT
    + """
const doRender = () => {
  createRoot(root).render(<Component />);
};

if ("requestIdleCallback" in window) {
  requestIdleCallback(doRender, { timeout: 2000 });
} else {
  setTimeout(doRender, 0);
}
"""
)

_SSR_ENTRY = Template(
    """import * as React from "react";
import { renderToString } from "react-dom/server";
import * as Mod from "$component";

const Component =
  Mod.default ||
  Mod.Page ||
  Object.values(Mod).find((x: any) => typeof x === "function");
const Head = (Mod as any).Head;

export function render(props: Record<string, unknown>): { html: string; head: string } {
  if (!Component) {
    throw new Error("No component export found in $component");
  }
  const html = renderToString(React.createElement(Component, props));
  let head = "";
  if (Head) {
    try {
      head = renderToString(React.createElement(Head, props));
    } catch (headErr) {
      console.error("Error rendering head:", headErr);
    }
  }
  return { html, head };
}
"""
)


def write_client_entry(path: Path, component_source: Path, mode: PageMode) -> None:
    """Write the browser entry of a page: client-only pages mount, the others hydrate."""
    template = _CLIENT_ONLY_ENTRY if mode is PageMode.CLIENT_ONLY else _HYDRATION_ENTRY
    component = component_import_path(path.parent, component_source)
    write_if_changed(path, template.substitute(component=component, props_id=PROPS_ELEMENT_ID))


def write_ssr_entry(path: Path, component_source: Path) -> None:
    component = component_import_path(path.parent, component_source)
    write_if_changed(path, _SSR_ENTRY.substitute(component=component))


def write_entry_sources(
    output_dir: Path, entry_name: str, component_source: Path, mode: PageMode, *, ssr: bool
) -> EntryPaths:
    """Write the generated sources of one entry.

    Returns:
        The paths of the generated sources.
    """
    paths = entry_paths(output_dir, entry_name)
    write_client_entry(paths.client_entry, component_source, mode)
    if ssr:
        write_ssr_entry(paths.ssr_entry, component_source)
    return paths
