"""Typed renderer models."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from PIL import Image

from .errors import InvalidConfigurationError


_KEY_STRIP = re.compile(r"[\s_\-]")

_KEY_ALIASES: dict[str, str] = {
    "color": "color",
    "foreground": "color",
    "backgroundcolor": "background_color",
    "background": "background_color",
    "fontname": "font_name",
    "font": "font_name",
    "fontsize": "font_size",
    "size": "font_size",
    "fontunits": "font_units",
    "units": "font_units",
    "fontweight": "font_weight",
    "weight": "font_weight",
    "fontangle": "font_angle",
    "angle": "font_angle",
    "interpreter": "interpreter",
    "horizontalalignment": "horizontal_alignment",
    "alignment": "horizontal_alignment",
    "align": "horizontal_alignment",
    "padding": "padding",
    "pad": "padding",
    "margin": "padding",
}

KNOWN_KEYS = frozenset(_KEY_ALIASES.values())


def normalize_key(key: str) -> str:
    canonical = _KEY_ALIASES.get(_KEY_STRIP.sub("", str(key).lower()))
    if canonical is None:
        raise InvalidConfigurationError(f"Unknown text property: {key!r}")
    return canonical


def _freeze(value: Any) -> Any:
    if isinstance(value, str):
        return value
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, np.generic):
        return _freeze(value.item())
    if isinstance(value, (list, tuple, np.ndarray)):
        return tuple(_freeze(v) for v in value)
    return value


@dataclass(frozen=True)
class FormattingConfig:
    """Render properties stored as key-sorted pairs.

    Keys are normalized (case, separators and aliases), so two configs built
    from the same properties in a different order or spelling compare equal.
    """

    items: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, Any]]) -> FormattingConfig:
        merged: dict[str, Any] = {}
        for key, value in pairs:
            name = normalize_key(key)
            frozen = _freeze(value)
            if name == "padding" and frozen is None and value is not None:
                # A scalar NaN crops every side.
                frozen = (None,)
            merged[name] = frozen
        return cls(items=tuple(sorted(merged.items())))

    @classmethod
    def from_value(cls, value: Any = None) -> FormattingConfig:
        if value is None:
            return cls()
        if isinstance(value, FormattingConfig):
            return value
        if isinstance(value, str):
            raise InvalidConfigurationError(f"Text properties must be key/value pairs: {value!r}")
        if isinstance(value, Mapping):
            return cls.from_pairs(value.items())
        try:
            return cls.from_pairs(tuple(pair) for pair in value)
        except (TypeError, ValueError) as exc:
            if isinstance(exc, InvalidConfigurationError):
                raise
            raise InvalidConfigurationError(f"Text properties must be key/value pairs: {value!r}") from exc

    def get(self, key: str, default: Any = None) -> Any:
        wanted = normalize_key(key)
        for k, v in self.items:
            if k == wanted:
                return v
        return default

    def updated(self, **properties: Any) -> FormattingConfig:
        return FormattingConfig.from_pairs(list(self.items) + list(properties.items()))

    def to_dict(self) -> dict[str, Any]:
        return dict(self.items)

    def to_pairs(self) -> list[list[Any]]:
        return [[k, list(v) if isinstance(v, tuple) else v] for k, v in self.items]


@dataclass(frozen=True)
class Padding:
    """Margins in pixels; a side of ``None`` is auto-cropped up to the text."""

    left: int | None = 0
    right: int | None = 0
    top: int | None = 0
    bottom: int | None = 0

    @classmethod
    def parse(cls, value: Any) -> Padding:
        if value is None:
            return cls()
        if isinstance(value, Padding):
            return value
        sides = _freeze(value)
        if not isinstance(sides, tuple):
            sides = (sides,)
        if len(sides) == 1:
            sides = sides * 4
        elif len(sides) == 2:
            sides = (sides[0], sides[0], sides[1], sides[1])
        elif len(sides) != 4:
            raise InvalidConfigurationError(f"Padding needs 1, 2 or 4 values, got {len(sides)}")

        parsed: list[int | None] = []
        for side in sides:
            if side is None:
                parsed.append(None)
                continue
            try:
                parsed.append(int(round(float(side))))
            except (TypeError, ValueError) as exc:
                raise InvalidConfigurationError(f"Invalid padding value: {side!r}") from exc
        return cls(*parsed)

    @property
    def amounts(self) -> tuple[int, int, int, int]:
        return tuple(0 if v is None else v for v in (self.left, self.right, self.top, self.bottom))  # type: ignore[return-value]

    @property
    def crop(self) -> tuple[bool, bool, bool, bool]:
        return tuple(v is None for v in (self.left, self.right, self.top, self.bottom))  # type: ignore[return-value]


def _check_pair(image: np.ndarray, alpha: np.ndarray, height: int, width: int) -> None:
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"image must be HxWx3, got shape {image.shape}")
    if alpha.shape != image.shape[:2]:
        raise ValueError(f"alpha shape {alpha.shape} does not match image {image.shape[:2]}")
    if (height, width) != image.shape[:2]:
        raise ValueError(f"cached size {height}x{width} does not match image {image.shape[:2]}")


@dataclass(frozen=True, eq=False)
class RenderResult:
    image: np.ndarray
    alpha: np.ndarray
    height: int
    width: int
    cropped: bool = False

    def __post_init__(self) -> None:
        _check_pair(self.image, self.alpha, self.height, self.width)


@dataclass(frozen=True, eq=False)
class CacheEntry:
    fragment: str
    image: np.ndarray
    alpha: np.ndarray
    height: int
    width: int
    config: FormattingConfig = field(default_factory=FormattingConfig)

    def __post_init__(self) -> None:
        _check_pair(self.image, self.alpha, self.height, self.width)

    @classmethod
    def from_result(cls, fragment: str, result: RenderResult, config: FormattingConfig) -> CacheEntry:
        return cls(
            fragment=fragment,
            image=result.image,
            alpha=result.alpha,
            height=result.height,
            width=result.width,
            config=config,
        )


@dataclass(frozen=True, eq=False)
class ComposedImage:
    image: np.ndarray
    alpha: np.ndarray
    height: int
    width: int
    indices: tuple[tuple[int, ...], ...] = ()

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.image)

    def alpha_pil(self) -> Image.Image:
        return Image.fromarray(self.alpha)

    def to_rgba(self) -> Image.Image:
        rgba = self.to_pil().convert("RGBA")
        rgba.putalpha(self.alpha_pil())
        return rgba
