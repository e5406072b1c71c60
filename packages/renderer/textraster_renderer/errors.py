"""Error types raised by rendering, caching and composition."""


class TextRasterError(Exception):
    """Base class for text raster failures."""

    pass


class InvalidConfigurationError(TextRasterError, ValueError):
    """Formatting properties or padding that cannot be rendered."""

    pass


class IncompatibleDimensionsError(TextRasterError, ValueError):
    """Cached images that cannot be concatenated without resizing."""

    pass


class MissingEntryError(TextRasterError, LookupError):
    """A fragment or index has no matching dictionary entry."""

    pass


class DictionaryFormatError(TextRasterError):
    """A saved dictionary file is unreadable or has an unknown schema."""

    pass
