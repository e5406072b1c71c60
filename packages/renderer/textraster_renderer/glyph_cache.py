"""Dictionary of rendered text fragments keyed by fragment and formatting config."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence
from typing import Any, Protocol

from .errors import MissingEntryError
from .models import CacheEntry, FormattingConfig, RenderResult


logger = logging.getLogger("textraster.cache")


class RenderText(Protocol):
    def __call__(self, text: str, config: FormattingConfig) -> RenderResult: ...


class GlyphCache:
    """Ordered cache of rendered fragments.

    The same fragment may be cached once per formatting config, so a glyph can
    exist in several styles. Misses under the active config are rendered on
    demand and appended; existing entries keep their index for the lifetime of
    the cache (until ``clear`` or ``replace``).
    """

    def __init__(self, renderer: RenderText, config: Any = None) -> None:
        self._renderer = renderer
        self._entries: list[CacheEntry] = []
        self._config = FormattingConfig.from_value(config)
        self._lock = threading.RLock()
        self.render_calls = 0
        self.hits = 0
        self.misses = 0

    @property
    def config(self) -> FormattingConfig:
        return self._config

    @property
    def entries(self) -> tuple[CacheEntry, ...]:
        return self.get_entries()

    def __len__(self) -> int:
        return len(self._entries)

    def get_entries(self) -> tuple[CacheEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def clear(self) -> None:
        with self._lock:
            dropped = len(self._entries)
            self._entries = []
        logger.debug("cache cleared (%d entries)", dropped, extra={"event": "cache_cleared"})

    def replace(self, entries: Iterable[CacheEntry]) -> None:
        with self._lock:
            self._entries = list(entries)
            count = len(self._entries)
        logger.debug("cache replaced with %d entries", count, extra={"event": "cache_replaced"})

    def set_config(self, config: Any) -> None:
        with self._lock:
            self._config = FormattingConfig.from_value(config)

    def _candidates(self) -> dict[str, int]:
        found: dict[str, int] = {}
        for idx, entry in enumerate(self._entries):
            if entry.config == self._config and entry.fragment not in found:
                found[entry.fragment] = idx
        return found

    def resolve(self, fragments: Sequence[str]) -> list[int]:
        """Map each fragment to its entry index, rendering the missing ones.

        Missing fragments are rendered once each in sorted order. A renderer
        failure propagates and leaves the entries appended before it in place.
        """
        with self._lock:
            requested = [str(f) for f in fragments]
            candidates = self._candidates()
            missing = sorted(set(requested) - candidates.keys())

            for fragment in missing:
                result = self._renderer(fragment, self._config)
                self.render_calls += 1
                self._entries.append(CacheEntry.from_result(fragment, result, self._config))
                candidates[fragment] = len(self._entries) - 1

            self.misses += len(missing)
            self.hits += len(requested) - len(missing)
            if missing:
                logger.debug(
                    "rendered %d missing fragments",
                    len(missing),
                    extra={"event": "cache_miss"},
                )

            indices: list[int] = []
            for fragment in requested:
                idx = candidates.get(fragment)
                if idx is None:
                    raise MissingEntryError(f"No dictionary entry for fragment {fragment!r}")
                indices.append(idx)
            return indices
