"""Fast repeat text rendering through a glyph dictionary."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import numpy as np

from .compositor import Compositor, as_grid
from .glyph_cache import GlyphCache, RenderText
from .models import CacheEntry, ComposedImage, FormattingConfig
from .persistence import load_dictionary, save_dictionary
from .text import TextRenderer


def _is_index(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _fragment_rows(text: Any) -> list[list[str]]:
    if isinstance(text, str):
        lines = text.split("\n")
        if lines[-1] == "":
            lines.pop()
        return [list(line) for line in lines]
    rows: list[list[str]] = []
    flat: list[str] = []
    for item in text:
        if isinstance(item, str):
            flat.append(item)
        else:
            rows.append([str(f) for f in item])
    if flat and rows:
        raise TypeError("Text must be a fragment sequence or a grid of fragments, not both")
    return [flat] if flat else rows


def _holds_indices(text: Any) -> bool:
    if isinstance(text, str):
        return False
    if isinstance(text, np.ndarray):
        return np.issubdtype(text.dtype, np.integer)
    for item in text:
        if _is_index(item):
            return True
        if not isinstance(item, str):
            return any(_is_index(i) for i in item)
        return False
    return False


class QuickRenderer:
    """Caller-owned glyph dictionary plus the active text properties.

    Properties passed to :meth:`render` or :meth:`warm` become the active
    properties and stay in effect for later calls until replaced.
    """

    def __init__(
        self,
        renderer: RenderText | None = None,
        config: Any = None,
        entries: Iterable[CacheEntry] | None = None,
    ) -> None:
        self.cache = GlyphCache(renderer or TextRenderer(), config)
        self.compositor = Compositor()
        if entries is not None:
            self.cache.replace(entries)

    @property
    def config(self) -> FormattingConfig:
        return self.cache.config

    @property
    def entries(self) -> tuple[CacheEntry, ...]:
        return self.cache.get_entries()

    def set_config(self, config: Any = None, **properties: Any) -> None:
        cfg = FormattingConfig.from_value(config)
        if properties:
            cfg = cfg.updated(**properties)
        self.cache.set_config(cfg)

    def clear(self) -> None:
        self.cache.clear()

    def load(self, entries: Iterable[CacheEntry]) -> None:
        self.cache.replace(entries)

    def save(self, path: Path) -> Path:
        return save_dictionary(path, self.cache.get_entries())

    def load_file(self, path: Path) -> None:
        self.cache.replace(load_dictionary(path))

    def warm(self, fragments: str | Sequence[Any], config: Any = None, **properties: Any) -> list[int]:
        """Add fragments to the dictionary without building an image."""
        if config is not None or properties:
            self.set_config(config, **properties)
        flat = [f for row in _fragment_rows(fragments) for f in row]
        return self.cache.resolve(flat)

    def render(self, text: Any, config: Any = None, **properties: Any) -> ComposedImage:
        """Build the text image from dictionary entries, rendering missing ones first.

        ``text`` is a string (characters, newline separated rows), a sequence
        or grid of fragments, or a sequence or grid of dictionary indices.
        """
        if config is not None or properties:
            self.set_config(config, **properties)
        return self.compositor.assemble(self._grid(text), self.cache.get_entries())

    def _grid(self, text: Any) -> tuple[tuple[int, ...], ...]:
        if _holds_indices(text):
            return as_grid(text)
        rows = _fragment_rows(text)
        flat = [f for row in rows for f in row]
        indices = self.cache.resolve(flat)
        grid: list[tuple[int, ...]] = []
        start = 0
        for row in rows:
            grid.append(tuple(indices[start : start + len(row)]))
            start += len(row)
        return tuple(grid)
