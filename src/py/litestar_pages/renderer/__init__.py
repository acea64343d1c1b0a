from litestar_pages.renderer._client import RendererClient
from litestar_pages.renderer._process import RendererProcess
from litestar_pages.renderer._protocol import Renderer

__all__ = ("Renderer", "RendererClient", "RendererProcess")
