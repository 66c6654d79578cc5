"""
Codecs converting :class:`~snapstag.image.Image` objects to and from the
bytes stored as reference snapshots.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .image import Image


@runtime_checkable
class ImageCodec(Protocol):
    """Converts images to their storage representation and back."""

    path_extension: str
    "File name extension of stored snapshots, e.g. png"

    def encode(self, image: Image) -> bytes:
        ...

    def decode(self, data: bytes, scale: float = 1.0) -> Image:
        ...


class PngCodec:
    """
    Lossless PNG storage, the default snapshot format
    """

    path_extension = "png"

    def encode(self, image: Image) -> bytes:
        return image.encode("png")

    def decode(self, data: bytes, scale: float = 1.0) -> Image:
        """
        Decodes PNG data lazily. Damaged data results in an image without
        pixel source rather than an exception.

        :param data: The PNG data
        :param scale: Pixels per logical unit of the decoded image
        :return: The image
        """
        return Image.from_compressed(data, "image/png", scale=scale)


class JpegCodec:
    """
    Lossy JPEG storage. Round trips through this codec alter pixel values
    slightly, so comparisons against re-decoded candidates matter here.
    """

    path_extension = "jpg"

    def __init__(self, quality: int = 90):
        if not 0 <= quality <= 100:
            raise ValueError(f"Quality must be within 0..100, got {quality}")
        self.quality = quality

    def encode(self, image: Image) -> bytes:
        return image.encode("jpeg", quality=self.quality)

    def decode(self, data: bytes, scale: float = 1.0) -> Image:
        return Image.from_compressed(data, "image/jpeg", scale=scale)


__all__ = ["ImageCodec", "PngCodec", "JpegCodec"]
