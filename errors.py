"""Exceptions raised by the color extraction pipeline."""


class PaletteError(Exception):
    """Base class for extraction failures."""


class InvalidBufferError(PaletteError, ValueError):
    """Declared dimensions do not match the pixel data."""


class OutOfRangeError(PaletteError, IndexError):
    """Pixel index outside the buffer."""


class EmptyInputError(PaletteError, ValueError):
    """No colors left to quantize after filtering."""


class EmptyCellError(EmptyInputError):
    """An area-grid cell contains no in-bounds pixels."""


class NoOpaqueSamplesError(PaletteError, ValueError):
    """An averaging strategy found no sufficiently opaque pixels."""
