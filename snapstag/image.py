"""
Implements the class :class:`.Image`, SnapStag's bitmap handle which is
compared, encoded to and decoded from reference snapshots.
"""

from __future__ import annotations

import io
from typing import Union

import PIL.Image
import filetype
import numpy as np

from .pixel_format import PixelFormat, PixelFormatTypes

SUPPORTED_IMAGE_FILETYPES = ["png", "bmp", "jpg", "jpeg", "gif", "webp"]
"List of image file types which can be read and written"

SUPPORTED_IMAGE_FILETYPE_SET = set(SUPPORTED_IMAGE_FILETYPES)
"Set of image file types which can be read and written"

SIXTEEN_BIT_GRAY_MODES = ("I;16", "I;16L", "I;16B", "I")
"PIL modes of gray images with 16 bits per pixel, e.g. 16 bit PNGs"

Image = type

ImageSourceTypes = Union[np.ndarray, bytes, PIL.Image.Image, Image]
"The valid source type for loading an image"


class Image:
    """
    SnapStag's bitmap class.

    The pixel data is stored using the PILLOW image library's Image class.
    Besides its pixel dimensions every image carries a display scale, the
    number of pixels per logical unit, so a 20x20 pixel image at scale 2.0
    covers 10x10 logical units.

    Images are immutable once constructed: width, height, pixel format and
    scale can not be reassigned.
    """

    def __init__(
        self,
        source: ImageSourceTypes | None = None,
        pixel_format: PixelFormatTypes | None = None,
        size: tuple[int, int] | None = None,
        bg_color: tuple[int, ...] | None = None,
        scale: float | None = None,
    ):
        """
        :param source: The image source. Either encoded bytes, a numpy
            array, a PIL image or another Image.
        :param pixel_format: The pixel format - if the data was passed
            as np.array. Detected from the channel count by default.
        :param size: The size (width, height) of a new blank image - if no
            source is passed.
        :param bg_color: The background color of the new blank image
        :param scale: Pixels per logical unit. 1.0 by default, or the
            scale of the source if it is an Image.

        Raises a ValueError if the image could not be loaded
        """
        if scale is not None and scale <= 0:
            raise ValueError(f"Scale must be positive, got {scale}")
        self.scale: float = float(scale) if scale is not None else 1.0
        "Pixels per logical unit"
        self._pil_handle: PIL.Image.Image | None = None
        "The PILLOW handle (if available)"
        self._compressed_data: bytes | None = None
        "Compressed image data (PNG, JPEG etc.) if in compressed mode"
        self._compressed_mime: str | None = None
        "MIME type of compressed data (e.g., 'image/png')"
        if pixel_format is not None and isinstance(pixel_format, str):
            pixel_format = PixelFormat(pixel_format)

        if source is None:
            if size is None:
                raise ValueError("Either a source or a size has to be provided")
            if pixel_format is None:
                pixel_format = PixelFormat.RGB
            if bg_color is None:
                bg_color = 0 if pixel_format == PixelFormat.GRAY else (0,) * pixel_format.channels
            width, height = int(size[0]), int(size[1])
            if width < 0 or height < 0:
                raise ValueError(f"Invalid image size: {size}")
            self._pil_handle = PIL.Image.new(
                pixel_format.to_pil(), (width, height), bg_color
            )
        elif isinstance(source, Image):
            self._pil_handle = source.to_pil().copy()
            if scale is None:
                self.scale = source.scale
        else:
            self._pil_handle = self._load_pil(source, pixel_format)
        self._normalize_mode()
        self.width = self._pil_handle.width
        "The image's width in pixels"
        self.height = self._pil_handle.height
        "The image's height in pixels"
        self.pixel_format = PixelFormat.from_pil(self._pil_handle.mode)
        "The base format (rgb, rgba or gray)"
        self._read_only = {"width", "height", "pixel_format", "scale"}

    def __setattr__(self, key, value):
        if "_read_only" in self.__dict__:
            if key in self.__dict__ and key in self.__dict__["_read_only"]:
                raise ValueError(f"{key} can not be modified after initialization")
        self.__dict__[key] = value

    @staticmethod
    def _load_pil(
        source: bytes | np.ndarray | PIL.Image.Image,
        pixel_format: PixelFormat | None,
    ) -> PIL.Image.Image:
        """
        Creates the PIL handle for given data source

        :param source: The data source
        :param pixel_format: The pixel format of a numpy source
        :return: The PIL image
        """
        try:
            if isinstance(source, bytes):
                handle = PIL.Image.open(io.BytesIO(source))
                handle.load()
                return handle
            if isinstance(source, np.ndarray):
                if source.dtype != np.uint8:
                    raise ValueError("Unsupported array source")
                if source.ndim == 3 and source.shape[2] == 1:
                    source = source[:, :, 0]
                channels = 1 if source.ndim == 2 else source.shape[2]
                if pixel_format is None:
                    pixel_format = PixelFormat.from_channels(channels)
                if pixel_format.channels != channels:
                    raise ValueError(
                        f"Pixel format {pixel_format.name} does not match "
                        f"{channels} channels"
                    )
                height, width = source.shape[0:2]
                if width == 0 or height == 0:
                    return PIL.Image.new(pixel_format.to_pil(), (width, height))
                return PIL.Image.fromarray(np.ascontiguousarray(source))
            if isinstance(source, PIL.Image.Image):
                return source
        except PIL.UnidentifiedImageError:
            raise ValueError("Invalid or damaged image data")
        except (OSError, SyntaxError) as e:
            raise ValueError(f"Invalid or damaged image data: {e}")
        raise NotImplementedError(f"Unsupported image source {type(source)}")

    def _normalize_mode(self) -> None:
        """
        Converts palette and exotic PIL modes to RGB, RGBA or L
        """
        handle = self._pil_handle
        if handle.mode in ("L", "RGB", "RGBA"):
            return
        if handle.mode in SIXTEEN_BIT_GRAY_MODES:
            # scale to 8 bits, convert("L") would clip at 255
            wide = np.clip(np.asarray(handle).astype(np.int64), 0, 65535)
            converted = PIL.Image.fromarray(
                ((wide * 255 + 32767) // 65535).astype(np.uint8)
            )
        else:
            if handle.mode == "P":
                target = "RGBA" if "transparency" in handle.info else "RGB"
            elif handle.mode in ("LA", "PA"):
                target = "RGBA"
            else:
                target = "RGB"
            converted = handle.convert(target)
        icc_profile = handle.info.get("icc_profile")
        if icc_profile:
            converted.info["icc_profile"] = icc_profile
        self.__dict__["_pil_handle"] = converted

    @property
    def size(self) -> tuple[int, int]:
        """
        Returns the image's size in pixels

        :return: The size as tuple (width, height)
        """
        return self.width, self.height

    @property
    def logical_size(self) -> tuple[float, float]:
        """
        Returns the image's size in logical units, its pixel size divided
        by its scale

        :return: The size as tuple (width, height)
        """
        return self.width / self.scale, self.height / self.scale

    # ---- Compressed storage ----

    @classmethod
    def from_compressed(
        cls,
        data: bytes,
        mime_type: str | None = None,
        scale: float = 1.0,
    ) -> 'Image':
        """Create Image from compressed bytes without immediate decoding.

        The image remains in a compressed state until pixel access is needed.
        Data which can not be identified results in a 0x0 image whose
        pixel source is unavailable.

        :param data: Compressed image bytes (PNG, JPEG, WebP, GIF, BMP)
        :param mime_type: MIME type (auto-detected if not provided)
        :param scale: Pixels per logical unit
        :returns: Image in compressed storage mode
        """
        if scale <= 0:
            raise ValueError(f"Scale must be positive, got {scale}")
        if mime_type is None:
            mime_type = cls._detect_mime_type(data)

        img = object.__new__(cls)
        img._compressed_data = data
        img._compressed_mime = mime_type
        img._pil_handle = None
        img.scale = float(scale)

        # Peek at dimensions without fully decoding
        try:
            with PIL.Image.open(io.BytesIO(data)) as pil_img:
                img.width = pil_img.width
                img.height = pil_img.height
                pil_mode = pil_img.mode
                if pil_mode == "L" or pil_mode in SIXTEEN_BIT_GRAY_MODES:
                    img.pixel_format = PixelFormat.GRAY
                elif pil_mode in ('RGBA', 'LA', 'PA') or 'transparency' in pil_img.info:
                    img.pixel_format = PixelFormat.RGBA
                else:
                    img.pixel_format = PixelFormat.RGB
        except (PIL.UnidentifiedImageError, OSError):
            img.width = 0
            img.height = 0
            img.pixel_format = PixelFormat.RGB

        img._read_only = {"width", "height", "pixel_format", "scale"}
        return img

    def is_compressed(self) -> bool:
        """Check if image has cached compressed data.

        :returns: True if compressed data is available
        """
        return self._compressed_data is not None

    def _ensure_decoded(self) -> None:
        """Ensure image is decoded for pixel access.

        Raises a ValueError if the compressed data can not be decoded.
        """
        if self._compressed_data is not None and self._pil_handle is None:
            self.__dict__["_pil_handle"] = self._load_pil(self._compressed_data, None)
            self._normalize_mode()

    def has_pixel_source(self) -> bool:
        """
        Returns if the pixels of this image can be accessed, e.g. False if
        it was created from damaged compressed data.
        """
        try:
            self._ensure_decoded()
        except ValueError:
            return False
        return self._pil_handle is not None

    @staticmethod
    def _detect_mime_type(data: bytes) -> str:
        """Detect MIME type from magic bytes.

        :param data: Raw image bytes
        :returns: MIME type string
        """
        kind = filetype.guess(data)
        if kind is None or not kind.mime.startswith("image/"):
            return 'application/octet-stream'
        return kind.mime

    # ---- Pixel access ----

    def to_pil(self) -> PIL.Image.Image:
        """
        Returns the PIL image object of this image

        :return: The PIL image
        """
        self._ensure_decoded()
        return self._pil_handle

    def get_pixels(self, desired_format: PixelFormatTypes | None = None) -> np.ndarray:
        """
        Returns the image's pixel data as :class:`np.ndarray`.

        :param desired_format: The desired output pixel format, e.g. see
            :class:`PixelFormat`. By default the own format
        :return: The numpy array containing the pixels
        """
        self._ensure_decoded()
        if desired_format is not None:
            desired_format = PixelFormat(desired_format)
        else:
            desired_format = self.pixel_format
        if self.width == 0 or self.height == 0:
            shape = (self.height, self.width)
            if desired_format != PixelFormat.GRAY:
                shape += (desired_format.channels,)
            return np.zeros(shape, dtype=np.uint8)
        handle = self._pil_handle
        if desired_format != self.pixel_format:
            handle = handle.convert(desired_format.to_pil())
        # noinspection PyTypeChecker
        return np.array(handle)

    def copy(self) -> Image:
        """
        Creates a copy of this image

        :return: The copy of this image
        """
        return Image(self.to_pil().copy(), scale=self.scale)

    def with_scale(self, scale: float) -> Image:
        """
        Returns a copy of this image sharing its pixels but using another
        display scale

        :param scale: The new pixels per logical unit
        :return: The new image
        """
        if self.is_compressed() and self._pil_handle is None:
            return Image.from_compressed(
                self._compressed_data, self._compressed_mime, scale=scale
            )
        return Image(self.to_pil(), scale=scale)

    # ---- Encoding ----

    def encode(
        self,
        filetype: str = "png",
        quality: int = 90,
    ) -> bytes:
        """
        Compresses the image and returns the compressed file's data as bytes
        object.

        :param filetype: The output file type. Valid types are
            "png", "jpg"/"jpeg", "bmp", "gif" and "webp".
        :param quality: The image quality for lossy formats between
            0 (= worst quality) and 100 (= best quality)
        :return: The bytes object
        """
        filetype = filetype.lstrip(".").lower()
        if filetype == "jpg":
            filetype = "jpeg"
        if filetype not in SUPPORTED_IMAGE_FILETYPE_SET:
            raise ValueError(f"Unsupported file type: {filetype}")
        if self.width == 0 or self.height == 0:
            raise ValueError("Images without width or height can not be encoded")
        mime = f"image/{filetype}"
        if self._compressed_data is not None and self._compressed_mime == mime:
            return self._compressed_data
        image = self.to_pil()
        parameters = {}
        if filetype in {"jpeg", "webp"}:
            if not 0 <= quality <= 100:
                raise ValueError(f"Quality must be within 0..100, got {quality}")
            parameters["quality"] = quality
        if filetype == "jpeg" and image.mode == "RGBA":
            image = image.convert("RGB")
        icc_profile = image.info.get("icc_profile")
        if icc_profile and filetype in {"png", "jpeg", "webp"}:
            parameters["icc_profile"] = icc_profile
        output_stream = io.BytesIO()
        image.save(output_stream, format=filetype, **parameters)
        return output_stream.getvalue()

    def to_png(self) -> bytes:
        """
        Encodes the image as png.

        :return: The image as bytes object
        """
        return self.encode("png")

    def __eq__(self, other: Image):
        if not isinstance(other, Image):
            return NotImplemented
        if self.size != other.size or self.pixel_format != other.pixel_format:
            return False
        return np.array_equal(self.get_pixels(), other.get_pixels())

    __hash__ = None

    def __str__(self):
        return (
            f"Image ({self.width}x{self.height}@{self.scale:g}x "
            f"{''.join(self.pixel_format.band_names)})"
        )


__all__ = ["Image", "ImageSourceTypes", "SUPPORTED_IMAGE_FILETYPES"]
