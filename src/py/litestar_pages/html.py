"""HTML documents served for pages."""

import html
from collections.abc import Mapping, Sequence
from typing import Any

import msgspec

__all__ = (
    "DEFAULT_TITLE",
    "PROPS_ELEMENT_ID",
    "RELOAD_SCRIPT_MARKER",
    "add_cache_bust",
    "append_reload_script",
    "render_client_only_shell",
    "render_error_page",
    "render_html_shell",
    "render_prerendered_html",
)

DEFAULT_TITLE = "Litestar"
PROPS_ELEMENT_ID = "__PAGES_PROPS__"
RELOAD_SCRIPT_MARKER = "data-pages-reload"

_META = '<meta charset="UTF-8" /><meta name="viewport" content="width=device-width, initial-scale=1.0" />'


def _serialize_props(props: "Mapping[str, Any] | None") -> str:
    data = msgspec.json.encode(dict(props or {})).decode()
    return data.replace("</", "<\\/")


def _script_tag(src: str) -> str:
    return f'<script src="{html.escape(src)}" type="module" defer></script>'


def _style_tag(href: str) -> str:
    return f'<link rel="stylesheet" href="{html.escape(href)}" />'


def _head(head_html: str, css_href: "str | None", title: "str | None") -> str:
    head = _META
    if "<title" not in head_html.lower():
        head += f"<title>{html.escape(title or DEFAULT_TITLE)}</title>"
    head += head_html
    if css_href:
        head += _style_tag(css_href)
    return head


def _document(head: str, body: str, tail: str) -> str:
    return f"""<!doctype html>
<html lang="en">
  <head>
    {head}
  </head>
  <body>
    <div id="app">{body}</div>
{tail}  </body>
</html>
"""


def render_html_shell(
    body_html: str,
    props: "Mapping[str, Any] | None",
    script_src: str,
    head_html: str = "",
    css_href: "str | None" = None,
    chunks: "Sequence[str] | None" = None,
    *,
    title: "str | None" = None,
) -> str:
    """Assemble a server-rendered page.

    Props are embedded as JSON for hydration. ``</`` is escaped so a prop value
    can never close the script element. ``title`` is used only when the rendered
    head has no ``<title>``.

    Raises:
        ValueError: If ``script_src`` is empty.

    Returns:
        The complete HTML document.
    """
    if not script_src:
        msg = "missing script src"
        raise ValueError(msg)
    tail = f'    <script id="{PROPS_ELEMENT_ID}" type="application/json">{_serialize_props(props)}</script>\n'
    for chunk in chunks or ():
        tail += f"    {_script_tag(chunk)}\n"
    tail += f"    {_script_tag(script_src)}\n"
    return _document(_head(head_html, css_href, title), body_html, tail)


def render_client_only_shell(
    script_src: str,
    head_html: str = "",
    css_href: "str | None" = None,
    chunks: "Sequence[str] | None" = None,
    *,
    title: "str | None" = None,
) -> str:
    """Assemble the empty shell of a client-only page.

    Returns:
        The HTML document with an empty ``#app`` element.
    """
    if not script_src:
        msg = "missing script src"
        raise ValueError(msg)
    tail = "".join(f"    {_script_tag(chunk)}\n" for chunk in chunks or ())
    tail += f"    {_script_tag(script_src)}\n"
    return _document(_head(head_html, css_href, title), "", tail)


def render_prerendered_html(
    body_html: str,
    props: "Mapping[str, Any] | None",
    script_src: str,
    head_html: str = "",
    css_href: "str | None" = None,
    chunks: "Sequence[str] | None" = None,
    *,
    title: "str | None" = None,
) -> str:
    """Assemble a prerendered page; the props element is only emitted when there are props.

    Returns:
        The HTML document.
    """
    if props:
        return render_html_shell(body_html, props, script_src, head_html, css_href, chunks, title=title)
    tail = "".join(f"    {_script_tag(chunk)}\n" for chunk in chunks or ())
    tail += f"    {_script_tag(script_src)}\n"
    return _document(_head(head_html, css_href, title), body_html, tail)


def render_error_page(error: BaseException, *, is_dev: bool) -> str:
    """Render the 500 page.

    Development shows the escaped error message; production never does.

    Returns:
        The HTML document.
    """
    if is_dev:
        detail = f"<pre>{html.escape(str(error))}</pre>"
    else:
        detail = "<p>An error occurred while processing your request.</p>"
    return f"""<!doctype html>
<html lang="en">
  <head>
    {_META}<title>Internal Server Error</title>
  </head>
  <body>
    <h1>Internal Server Error</h1>
    {detail}
  </body>
</html>
"""


def add_cache_bust(url: str, stamp: str) -> str:
    """Append ``t=<stamp>`` to an asset URL.

    Returns:
        The URL with the stamp as its last query parameter.
    """
    if not stamp:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}t={stamp}"


def append_reload_script(document: str, reload_url: str) -> str:
    """Insert the live reload client before ``</body>``.

    The client listens to the server-sent events at ``reload_url`` and reloads
    the page on every ``reload`` event. Documents that already carry it are
    returned unchanged.

    Returns:
        The HTML document.
    """
    if RELOAD_SCRIPT_MARKER in document:
        return document
    url = msgspec.json.encode(reload_url).decode().replace("</", "<\\/")
    script = (
        f"<script {RELOAD_SCRIPT_MARKER}>"
        f'new EventSource({url}).addEventListener("reload", () => window.location.reload());'
        "</script>\n"
    )
    index = document.rfind("</body>")
    if index == -1:
        return document + script
    return f"{document[:index]}{script}{document[index:]}"
