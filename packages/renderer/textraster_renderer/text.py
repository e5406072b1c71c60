"""Pillow text renderer producing RGB images with a text coverage alpha mask."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from functools import lru_cache
from io import BytesIO
from typing import Any

import numpy as np
from PIL import Image, ImageColor, ImageDraw, ImageFont

from .cropping import crop_pair
from .errors import InvalidConfigurationError
from .models import FormattingConfig, Padding, RenderResult


logger = logging.getLogger("textraster.renderer")

DEFAULT_TEXT = "Abc"
FIXED_WIDTH = "fixedwidth"

_SHORT_COLORS = {
    "k": (0, 0, 0),
    "w": (255, 255, 255),
    "r": (255, 0, 0),
    "g": (0, 255, 0),
    "b": (0, 0, 255),
    "y": (255, 255, 0),
    "m": (255, 0, 255),
    "c": (0, 255, 255),
}
_TRANSPARENT = ("none", "transparent")
_WEIGHTS = ("normal", "bold", "light", "demi")
_ANGLES = ("normal", "italic", "oblique")
_ALIGNMENTS = ("left", "center", "right")
_INTERPRETERS = ("none", "tex", "latex")
_UNITS = ("points", "pixels")


def parse_color(value: Any) -> tuple[int, int, int] | None:
    """Parse a colour name, short code, hex string or RGB triple; ``None`` means transparent."""
    if value is None:
        return None
    if isinstance(value, str):
        name = value.strip().lower()
        if name in _TRANSPARENT:
            return None
        if name in _SHORT_COLORS:
            return _SHORT_COLORS[name]
        try:
            return ImageColor.getrgb(name)[:3]
        except ValueError as exc:
            raise InvalidConfigurationError(f"Unknown colour: {value!r}") from exc
    try:
        channels = [float(v) for v in value]
    except (TypeError, ValueError) as exc:
        raise InvalidConfigurationError(f"Unknown colour: {value!r}") from exc
    if len(channels) != 3:
        raise InvalidConfigurationError(f"Colour needs 3 channels: {value!r}")
    if all(0.0 <= c <= 1.0 for c in channels) and any(isinstance(v, float) for v in value):
        channels = [c * 255.0 for c in channels]
    if any(c < 0 or c > 255 for c in channels):
        raise InvalidConfigurationError(f"Colour channel out of range: {value!r}")
    return tuple(int(round(c)) for c in channels)  # type: ignore[return-value]


def _choice(cfg: FormattingConfig, key: str, default: str, allowed: Sequence[str]) -> str:
    value = str(cfg.get(key, default)).strip().lower()
    if value not in allowed:
        raise InvalidConfigurationError(f"Invalid {key}: {value!r} (expected one of {', '.join(allowed)})")
    return value


def _style_suffixes(weight: str, angle: str) -> list[str]:
    bold = weight in ("bold", "demi")
    slanted = angle != "normal"
    if bold and slanted:
        return ["BoldItalic", "BoldOblique"]
    if bold:
        return ["Bold"]
    if slanted:
        return ["Italic", "Oblique"]
    if weight == "light":
        return ["Light", "ExtraLight"]
    return []


@lru_cache(maxsize=64)
def load_font(name: str, weight: str, angle: str, size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    """Resolve a TrueType font by family and style, falling back to Pillow's default font."""
    candidates = [f"{name}-{suffix}.ttf" for suffix in _style_suffixes(weight, angle)]
    candidates += [f"{name}.ttf", name]
    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    logger.debug("font %s not found, using default font", name, extra={"event": "font_fallback"})
    return ImageFont.load_default(size=size)


def _place(coverage: np.ndarray, width: int, height: int, x: int, y: int) -> np.ndarray:
    """Copy ``coverage`` onto a blank canvas at (x, y), clipping at the edges."""
    canvas = np.zeros((height, width), dtype=np.uint8)
    src_h, src_w = coverage.shape
    x0, y0 = max(x, 0), max(y, 0)
    x1, y1 = min(x + src_w, width), min(y + src_h, height)
    if x1 > x0 and y1 > y0:
        canvas[y0:y1, x0:x1] = coverage[y0 - y : y1 - y, x0 - x : x1 - x]
    return canvas


class TextRenderer:
    """Renders text with formatting properties into an RGB image and alpha mask.

    Instances are callable as ``renderer(text, config)`` so they can back a
    :class:`~textraster_renderer.glyph_cache.GlyphCache`.
    """

    def __init__(
        self,
        max_width: int = 4096,
        max_height: int = 4096,
        dpi: int = 96,
        default_font: str = "DejaVuSans",
        monospace_font: str = "DejaVuSansMono",
        default_font_size: float = 16,
    ) -> None:
        self.max_width = max_width
        self.max_height = max_height
        self.dpi = dpi
        self.default_font = default_font
        self.monospace_font = monospace_font
        self.default_font_size = default_font_size

    def __call__(self, text: str, config: FormattingConfig | None = None) -> RenderResult:
        return self.render(text, config)

    def render(self, text: str | Sequence[str], config: Any = None, padding: Any = None) -> RenderResult:
        cfg = FormattingConfig.from_value(config)
        if not isinstance(text, str):
            text = "\n".join(str(line) for line in text)
        pad = Padding.parse(padding if padding is not None else cfg.get("padding"))

        foreground = parse_color(cfg.get("color", "black")) or (0, 0, 0)
        background = parse_color(cfg.get("background_color", "none")) or (255, 255, 255)
        interpreter = _choice(cfg, "interpreter", "none", _INTERPRETERS)

        if interpreter != "none" and text.strip():
            coverage = self._math_coverage(text, cfg, interpreter)
        else:
            coverage = self._text_coverage(text, cfg)

        left, right, top, bottom = pad.amounts
        text_h, text_w = coverage.shape
        width = max(text_w + left + right + 1, 1)
        height = max(text_h + top + bottom + 1, 1)

        cropped = False
        if width > self.max_width or height > self.max_height:
            overflow = max(width / self.max_width, height / self.max_height) - 1
            logger.warning(
                "text image is %.1f%% too large for the %dx%d canvas and was cropped",
                overflow * 100,
                self.max_width,
                self.max_height,
                extra={"event": "canvas_too_small"},
            )
            width = min(width, self.max_width)
            height = min(height, self.max_height)
            cropped = True

        alpha = _place(coverage, width, height, left, top)
        weight = alpha.astype(np.float32)[:, :, None] / 255.0
        fg = np.array(foreground, dtype=np.float32)
        bg = np.array(background, dtype=np.float32)
        image = np.rint(bg * (1.0 - weight) + fg * weight).astype(np.uint8)

        image, alpha = crop_pair(image, alpha, pad.crop)
        h, w = image.shape[:2]
        return RenderResult(image=image, alpha=alpha, height=h, width=w, cropped=cropped)

    def _font_size_px(self, cfg: FormattingConfig) -> int:
        try:
            size = float(cfg.get("font_size", self.default_font_size))
        except (TypeError, ValueError) as exc:
            raise InvalidConfigurationError(f"Invalid font_size: {cfg.get('font_size')!r}") from exc
        if not size > 0:
            raise InvalidConfigurationError(f"font_size must be positive, got {size}")
        units = _choice(cfg, "font_units", "points", _UNITS)
        if units == "points":
            size = size * self.dpi / 72.0
        return max(1, int(round(size)))

    def _font_name(self, cfg: FormattingConfig) -> str:
        name = str(cfg.get("font_name", self.default_font))
        if name.replace(" ", "").lower() == FIXED_WIDTH:
            return self.monospace_font
        return name

    def _text_coverage(self, text: str, cfg: FormattingConfig) -> np.ndarray:
        weight = _choice(cfg, "font_weight", "normal", _WEIGHTS)
        angle = _choice(cfg, "font_angle", "normal", _ANGLES)
        align = _choice(cfg, "horizontal_alignment", "left", _ALIGNMENTS)
        font = load_font(self._font_name(cfg), weight, angle, self._font_size_px(cfg))

        probe = ImageDraw.Draw(Image.new("L", (1, 1)))
        x0, y0, x1, y1 = probe.multiline_textbbox((0, 0), text, font=font, align=align)
        lines = text.split("\n")

        # Extent is advance width by full line height, not the ink box.
        left = min(x0, 0)
        right = max(x1, max(probe.textlength(line, font=font) for line in lines))
        top = min(y0, 0)
        bottom = y1
        if hasattr(font, "getmetrics"):
            ascent, descent = font.getmetrics()
            line_spacing = probe.textbbox((0, 0), "A", font=font)[3] + 4
            bottom = max(bottom, (len(lines) - 1) * line_spacing + ascent + descent)

        width = max(int(math.ceil(right - left)), 0)
        height = max(int(math.ceil(bottom - top)), 0)
        if width == 0 or height == 0:
            return np.zeros((height, width), dtype=np.uint8)

        canvas = Image.new("L", (width, height), 0)
        ImageDraw.Draw(canvas).multiline_text((-left, -top), text, fill=255, font=font, align=align)
        return np.asarray(canvas, dtype=np.uint8).copy()

    def _math_coverage(self, text: str, cfg: FormattingConfig, interpreter: str) -> np.ndarray:
        align = _choice(cfg, "horizontal_alignment", "left", _ALIGNMENTS)
        lines = [self._math_line(line, cfg, interpreter) for line in text.split("\n")]
        width = max(line.shape[1] for line in lines)
        rows = []
        for line in lines:
            gap = width - line.shape[1]
            offset = {"left": 0, "center": gap // 2, "right": gap}[align]
            rows.append(np.pad(line, ((0, 0), (offset, gap - offset))))
        return np.vstack(rows)

    def _math_line(self, line: str, cfg: FormattingConfig, interpreter: str) -> np.ndarray:
        from matplotlib import mathtext
        from matplotlib.font_manager import FontProperties

        if interpreter == "latex":
            line = line.replace("$$", "$")
        if "$" not in line:
            line = f"${line}$"
        prop = FontProperties(
            size=self._font_size_px(cfg) * 72.0 / self.dpi,
            weight=_choice(cfg, "font_weight", "normal", _WEIGHTS),
            style=_choice(cfg, "font_angle", "normal", _ANGLES),
        )
        buf = BytesIO()
        try:
            mathtext.math_to_image(line, buf, prop=prop, dpi=self.dpi, format="png", color="black")
        except ValueError as exc:
            raise InvalidConfigurationError(f"Cannot parse {interpreter} text {line!r}: {exc}") from exc
        buf.seek(0)
        with Image.open(buf) as rendered:
            gray = np.asarray(rendered.convert("L"), dtype=np.uint8)
        return (255 - gray).astype(np.uint8)


def render_text(text: str | Sequence[str] = DEFAULT_TEXT, padding: Any = None, **properties: Any) -> RenderResult:
    """Render ``text`` once without caching."""
    return TextRenderer().render(text, FormattingConfig.from_pairs(properties.items()), padding=padding)
