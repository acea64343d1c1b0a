"""Render cache for production SSR output."""

import hashlib
import threading
import time
from collections.abc import Mapping
from typing import Any

import msgspec

from litestar_pages.types import RenderedPage

__all__ = ("RenderCache", "hash_props")


def hash_props(props: "Mapping[str, Any] | None") -> str:
    """Stable hash of a props mapping; key order does not matter."""
    encoded = msgspec.json.encode(dict(props or {}), order="sorted")
    return hashlib.blake2b(encoded, digest_size=8).hexdigest()


class RenderCache:
    """Maps ``(component path, props hash)`` to a rendered page for ``ttl`` seconds.

    Expired entries are dropped when they are read.
    """

    __slots__ = ("_entries", "_lock", "_ttl")

    def __init__(self, ttl: float) -> None:
        self._ttl = ttl
        self._lock = threading.Lock()
        self._entries: dict[tuple[str, str], tuple[float, RenderedPage]] = {}

    def get(self, component_path: str, props_hash: str) -> "RenderedPage | None":
        key = (component_path, props_hash)
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            expires_at, rendered = item
            if time.monotonic() >= expires_at:
                del self._entries[key]
                return None
            return rendered

    def set(self, component_path: str, props_hash: str, rendered: RenderedPage) -> None:
        with self._lock:
            self._entries[(component_path, props_hash)] = (time.monotonic() + self._ttl, rendered)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
