"""Renderer package for text images and the glyph dictionary."""

from .compositor import Compositor
from .errors import (
    DictionaryFormatError,
    IncompatibleDimensionsError,
    InvalidConfigurationError,
    MissingEntryError,
    TextRasterError,
)
from .glyph_cache import GlyphCache, RenderText
from .models import CacheEntry, ComposedImage, FormattingConfig, Padding, RenderResult
from .persistence import DICTIONARY_VERSION, load_dictionary, save_dictionary
from .quick import QuickRenderer
from .text import DEFAULT_TEXT, TextRenderer, parse_color, render_text

__all__ = [
    "CacheEntry",
    "ComposedImage",
    "Compositor",
    "DEFAULT_TEXT",
    "DICTIONARY_VERSION",
    "DictionaryFormatError",
    "FormattingConfig",
    "GlyphCache",
    "IncompatibleDimensionsError",
    "InvalidConfigurationError",
    "MissingEntryError",
    "Padding",
    "QuickRenderer",
    "RenderResult",
    "RenderText",
    "TextRasterError",
    "TextRenderer",
    "load_dictionary",
    "parse_color",
    "render_text",
    "save_dictionary",
]
