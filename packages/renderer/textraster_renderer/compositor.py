"""Concatenate cached fragment images into one text image."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from .errors import IncompatibleDimensionsError, MissingEntryError
from .models import CacheEntry, ComposedImage


def as_grid(indices: Sequence[int] | Sequence[Sequence[int]]) -> tuple[tuple[int, ...], ...]:
    """Normalize a flat index sequence (one row) or a grid to a tuple of rows."""
    if isinstance(indices, np.ndarray):
        indices = indices.tolist()
    if len(indices) == 0:
        return ()
    if all(isinstance(row, (int, np.integer)) for row in indices):
        return (tuple(int(i) for i in indices),)  # type: ignore[union-attr]
    return tuple(tuple(int(i) for i in row) for row in indices)  # type: ignore[union-attr]


def empty_image() -> ComposedImage:
    return ComposedImage(
        image=np.zeros((0, 0, 3), dtype=np.uint8),
        alpha=np.zeros((0, 0), dtype=np.uint8),
        height=0,
        width=0,
    )


class Compositor:
    """Lays cached entries out row by row: horizontal within rows, vertical between them."""

    def assemble(
        self,
        grid: Sequence[int] | Sequence[Sequence[int]],
        entries: Sequence[CacheEntry],
    ) -> ComposedImage:
        rows = as_grid(grid)
        if not rows or not any(rows):
            return empty_image()

        images: list[np.ndarray] = []
        alphas: list[np.ndarray] = []
        for r, row in enumerate(rows):
            if not row:
                raise IncompatibleDimensionsError(f"Row {r} is empty")
            picked = [self._entry(entries, idx) for idx in row]
            heights = {e.image.shape[0] for e in picked}
            if len(heights) > 1:
                raise IncompatibleDimensionsError(
                    f"Row {r} mixes entry heights {sorted(heights)}; entries in a row must share height"
                )
            images.append(np.concatenate([e.image for e in picked], axis=1))
            alphas.append(np.concatenate([e.alpha for e in picked], axis=1))

        widths = {img.shape[1] for img in images}
        if len(widths) > 1:
            raise IncompatibleDimensionsError(f"Rows have different widths {sorted(widths)}")

        image = np.concatenate(images, axis=0)
        alpha = np.concatenate(alphas, axis=0)
        height, width = image.shape[:2]
        return ComposedImage(image=image, alpha=alpha, height=height, width=width, indices=rows)

    @staticmethod
    def _entry(entries: Sequence[CacheEntry], idx: int) -> CacheEntry:
        if idx < 0 or idx >= len(entries):
            raise MissingEntryError(f"Index {idx} is outside the dictionary ({len(entries)} entries)")
        return entries[idx]
