"""Conversion of images into canonical pixel buffers.

Both operands of a comparison are redrawn into the same fixed layout before
any bytes are compared:

- 8 bits per channel, 4 channels (RGBA), row-major without padding
- alpha premultiplied into the color channels
- sRGB color space; embedded ICC profiles are converted with LittleCMS
  (``PIL.ImageCms``)

This happens even if the source already is RGBA so differing source color
spaces or byte layouts can not cause false mismatches.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

import numpy as np
import PIL.Image
from PIL import ImageCms

from .image import Image
from .pixel_format import (
    CANONICAL_BITS_PER_COMPONENT,
    CANONICAL_BYTES_PER_PIXEL,
    CANONICAL_COLOR_SPACE,
)

logger = logging.getLogger(__name__)

MAX_COMPONENT = (1 << CANONICAL_BITS_PER_COMPONENT) - 1
"Value of a fully saturated (or opaque) canonical component"


class DecodeError(ValueError):
    """An image's pixels could not be obtained or it has no area."""


@dataclass(frozen=True)
class CanonicalBuffer:
    """Raw canonical pixel data of an image."""
    width: int
    height: int
    data: bytes

    @property
    def byte_count(self) -> int:
        return len(self.data)

    def as_array(self) -> np.ndarray:
        """View the buffer as read-only (height, width, 4) uint8 array."""
        return np.frombuffer(self.data, dtype=np.uint8).reshape(
            (self.height, self.width, CANONICAL_BYTES_PER_PIXEL)
        )


def _to_srgb(pil_image: PIL.Image.Image) -> PIL.Image.Image:
    """Remap an image with an embedded ICC profile to sRGB.

    Images without profile are assumed to be sRGB already. The alpha
    channel is passed through untouched.
    """
    icc_profile = pil_image.info.get("icc_profile")
    if not icc_profile:
        return pil_image.convert("RGBA")

    alpha = pil_image.getchannel("A") if pil_image.mode == "RGBA" else None
    color = pil_image.convert("RGB") if pil_image.mode == "RGBA" else pil_image
    try:
        source_profile = ImageCms.ImageCmsProfile(io.BytesIO(icc_profile))
        target_profile = ImageCms.createProfile(CANONICAL_COLOR_SPACE)
        converted = ImageCms.profileToProfile(
            color, source_profile, target_profile, outputMode="RGB"
        )
    except (ImageCms.PyCMSError, OSError) as e:
        logger.warning("Ignoring unusable ICC profile: %s", e)
        return pil_image.convert("RGBA")
    converted = converted.convert("RGBA")
    if alpha is not None:
        converted.putalpha(alpha)
    return converted


def premultiply(rgba: np.ndarray) -> np.ndarray:
    """Premultiply alpha into the color channels of straight RGBA pixels.

    Args:
        rgba: uint8 array of shape (H, W, 4)

    Returns:
        New uint8 array with color = round(color * alpha / MAX_COMPONENT)
    """
    wide = rgba.astype(np.uint16)
    alpha = wide[:, :, 3:4]
    wide[:, :, :3] = (wide[:, :, :3] * alpha + MAX_COMPONENT // 2) // MAX_COMPONENT
    return wide.astype(np.uint8)


def normalize(image: Image) -> CanonicalBuffer:
    """Render an image into a fresh canonical pixel buffer.

    Args:
        image: The image to normalize. It is not modified.

    Returns:
        The canonical buffer, width * height * 4 bytes long

    Raises:
        DecodeError: If the image's pixels can not be obtained or its width
            or height is zero.
    """
    if not image.has_pixel_source():
        raise DecodeError(f"No pixel source available for {image}")
    if image.width == 0 or image.height == 0:
        raise DecodeError(f"Image has no area: {image.width}x{image.height}")

    rgba = np.array(_to_srgb(image.to_pil()), dtype=np.uint8)
    canonical = premultiply(rgba)
    return CanonicalBuffer(
        width=image.width,
        height=image.height,
        data=canonical.tobytes(),
    )


__all__ = [
    'DecodeError',
    'CanonicalBuffer',
    'premultiply',
    'normalize',
]
