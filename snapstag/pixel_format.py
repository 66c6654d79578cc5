"""
Defines the pixel formats an :class:`~snapstag.image.Image` can carry and the
fixed raster layout every comparison is performed in.
"""

from __future__ import annotations

from enum import Enum
from typing import Union

CANONICAL_BITS_PER_COMPONENT = 8
"Bits per color channel of a canonical pixel buffer"

CANONICAL_BYTES_PER_PIXEL = 4
"Bytes per pixel of a canonical pixel buffer (RGBA, alpha premultiplied)"

CANONICAL_COLOR_SPACE = "sRGB"
"The color space both operands of a comparison are remapped to"


class PixelFormat(Enum):
    """
    Enumeration of supported pixel formats
    """

    RGB = "RGB"
    "Red, green, blue"
    RGBA = "RGBA"
    "Red, green, blue, alpha"
    GRAY = "GRAY"
    "Single channel luminance"

    @classmethod
    def from_pil(cls, pil_mode: str) -> PixelFormat:
        """
        Converts a PIL mode string to a PixelFormat

        :param pil_mode: The mode, e.g. "RGB" or "L"
        :return: The matching pixel format
        """
        mode = pil_mode.upper()
        if mode == "L":
            return cls.GRAY
        if mode in ("RGBA", "LA", "PA"):
            return cls.RGBA
        if mode in ("RGB", "P", "CMYK", "YCBCR", "I", "F", "I;16"):
            return cls.RGB
        raise ValueError(f"Unsupported PIL mode: {pil_mode}")

    def to_pil(self) -> str:
        """
        Returns the PIL mode matching this format
        """
        return "L" if self == PixelFormat.GRAY else self.value

    @property
    def band_names(self) -> list[str]:
        """
        The names of the single channels, e.g. ["R", "G", "B"]
        """
        if self == PixelFormat.GRAY:
            return ["G"]
        return list(self.value)

    @property
    def channels(self) -> int:
        """
        The number of channels per pixel
        """
        return len(self.band_names)

    @classmethod
    def from_channels(cls, channels: int) -> PixelFormat:
        """
        Guesses the format of a numpy array by its channel count

        :param channels: 1, 3 or 4
        :return: The pixel format
        """
        mapping = {1: cls.GRAY, 3: cls.RGB, 4: cls.RGBA}
        if channels not in mapping:
            raise ValueError(f"Unsupported channel count: {channels}")
        return mapping[channels]


PixelFormatTypes = Union[PixelFormat, str]
"Pixel format definition, either as enum or by its name"

__all__ = [
    "PixelFormat",
    "PixelFormatTypes",
    "CANONICAL_BITS_PER_COMPONENT",
    "CANONICAL_BYTES_PER_PIXEL",
    "CANONICAL_COLOR_SPACE",
]
