"""Save and load glyph dictionaries as compressed numpy archives."""

from __future__ import annotations

import json
import zipfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import numpy as np

from .errors import DictionaryFormatError
from .models import CacheEntry, FormattingConfig


DICTIONARY_VERSION = 1


def _manifest(entries: list[CacheEntry]) -> dict[str, Any]:
    return {
        "schema_version": DICTIONARY_VERSION,
        "entries": [
            {
                "fragment": e.fragment,
                "config": e.config.to_pairs(),
                "height": int(e.height),
                "width": int(e.width),
            }
            for e in entries
        ],
    }


def save_dictionary(path: Path, entries: Iterable[CacheEntry]) -> Path:
    path = Path(path)
    rows = list(entries)
    arrays: dict[str, np.ndarray] = {"manifest": np.array(json.dumps(_manifest(rows), ensure_ascii=True))}
    for i, entry in enumerate(rows):
        arrays[f"image_{i}"] = entry.image
        arrays[f"alpha_{i}"] = entry.alpha

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as fh:
        np.savez_compressed(fh, **arrays)
    return path


def _migrate(manifest: dict[str, Any]) -> dict[str, Any]:
    version = manifest.get("schema_version")
    if version != DICTIONARY_VERSION:
        raise DictionaryFormatError(f"Unsupported dictionary schema version: {version!r}")
    return manifest


def load_dictionary(path: Path) -> list[CacheEntry]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    try:
        with np.load(path, allow_pickle=False) as data:
            manifest = _migrate(json.loads(str(data["manifest"])))
            entries: list[CacheEntry] = []
            for i, row in enumerate(manifest.get("entries", [])):
                entries.append(
                    CacheEntry(
                        fragment=str(row["fragment"]),
                        image=np.ascontiguousarray(data[f"image_{i}"], dtype=np.uint8),
                        alpha=np.ascontiguousarray(data[f"alpha_{i}"], dtype=np.uint8),
                        height=int(row["height"]),
                        width=int(row["width"]),
                        config=FormattingConfig.from_pairs(tuple(pair) for pair in row.get("config", [])),
                    )
                )
    except DictionaryFormatError:
        raise
    except (KeyError, ValueError, TypeError, zipfile.BadZipFile) as exc:
        raise DictionaryFormatError(f"Cannot read dictionary {path}: {exc}") from exc
    return entries
