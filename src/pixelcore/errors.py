"""
Pixelcore Errors
================

Exception and warning types raised by the engines.

- InvalidBufferError: buffer contract broken, raised before any processing
- UnsupportedFilterWarning: unknown artistic filter tag, input returned unchanged
- PaletteExtractionError: a palette extractor could not run on the input
"""


class PixelCoreError(Exception):
    """Base class for all pixelcore errors."""


class InvalidBufferError(PixelCoreError, ValueError):
    """Pixel buffer dimensions and data length disagree."""

    def __init__(self, message: str, width=None, height=None, length=None):
        super().__init__(message)
        self.width = width
        self.height = height
        self.length = length


class PaletteExtractionError(PixelCoreError):
    """A palette extractor failed on the given pixels."""


class UnsupportedFilterWarning(UserWarning):
    """An artistic filter tag has no implementation; the input was returned unchanged."""
