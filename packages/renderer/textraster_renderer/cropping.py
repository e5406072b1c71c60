"""Auto-crop helpers that trim solid margins around rendered text."""

from __future__ import annotations

import numpy as np


def content_mask(image: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Return (rows, columns) flags marking lines that contain a colour change."""
    pixels = image.astype(np.int16)
    if pixels.ndim == 2:
        pixels = pixels[:, :, None]
    height, width = pixels.shape[:2]

    if height > 1:
        columns = np.any(np.diff(pixels, axis=0) != 0, axis=(0, 2))
    else:
        columns = np.zeros(width, dtype=bool)
    if width > 1:
        rows = np.any(np.diff(pixels, axis=1) != 0, axis=(1, 2))
    else:
        rows = np.zeros(height, dtype=bool)
    return rows, columns


def autocrop_bounds(image: np.ndarray, crop: tuple[bool, bool, bool, bool]) -> tuple[int, int, int, int]:
    """Compute ``(top, bottom, left, right)`` slice bounds for the flagged sides.

    ``crop`` is ordered left, right, top, bottom. A cropped side keeps one
    pixel of margin outside the first/last line with content; unflagged sides
    and images without content keep their full extent.
    """
    height, width = image.shape[:2]
    top, bottom, left, right = 0, height, 0, width
    rows, columns = content_mask(image)
    crop_left, crop_right, crop_top, crop_bottom = crop

    if columns.any():
        hits = np.flatnonzero(columns)
        if crop_left:
            left = max(int(hits[0]) - 1, 0)
        if crop_right:
            right = min(int(hits[-1]) + 2, width)
    if rows.any():
        hits = np.flatnonzero(rows)
        if crop_top:
            top = max(int(hits[0]) - 1, 0)
        if crop_bottom:
            bottom = min(int(hits[-1]) + 2, height)
    return top, bottom, left, right


def crop_pair(
    image: np.ndarray,
    alpha: np.ndarray,
    crop: tuple[bool, bool, bool, bool],
) -> tuple[np.ndarray, np.ndarray]:
    if not any(crop):
        return image, alpha
    top, bottom, left, right = autocrop_bounds(image, crop)
    return (
        np.ascontiguousarray(image[top:bottom, left:right]),
        np.ascontiguousarray(alpha[top:bottom, left:right]),
    )
