"""
Snapshot strategies tying the image comparison to snapshot storage and
failure reporting.

A :class:`Snapshotting` knows how to turn an image into stored bytes, how to
restore it and how to diff a stored reference against a new snapshot.
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass, field

import PIL.Image
from PIL import ImageDraw, ImageFont

from . import config
from .codec import ImageCodec, PngCodec
from .comparison import evaluate
from .image import Image

PLACEHOLDER_SIZE = (400, 80)
PLACEHOLDER_COLOR = (255, 0, 0)
PLACEHOLDER_TEXT = (
    "Error: No image could be generated for this view as its size was zero. "
    "Please set an explicit size in the test."
)

REFERENCE_ATTACHMENT = "reference"
FAILURE_ATTACHMENT = "failure"
DIFFERENCE_ATTACHMENT = "difference"


@dataclass(frozen=True)
class Attachment:
    """A named image handed to the test report."""
    name: str
    image: Image


@dataclass(frozen=True)
class DiffReport:
    """Failure message plus the images explaining it."""
    message: str
    attachments: list[Attachment] = field(default_factory=list)

    def get(self, name: str) -> Image | None:
        """Returns the attached image with given name, if any."""
        for attachment in self.attachments:
            if attachment.name == name:
                return attachment.image
        return None


def error_placeholder() -> Image:
    """
    Renders the image stored in place of a snapshot without width or
    height: a red banner explaining the problem.

    :return: The placeholder image
    """
    canvas = PIL.Image.new("RGB", PLACEHOLDER_SIZE, PLACEHOLDER_COLOR)
    draw = ImageDraw.Draw(canvas)
    font = ImageFont.load_default()
    text = "\n".join(textwrap.wrap(PLACEHOLDER_TEXT, width=56)[:3])
    left, top, right, bottom = draw.multiline_textbbox(
        (0, 0), text, font=font, align="center"
    )
    x = (PLACEHOLDER_SIZE[0] - (right - left)) / 2 - left
    y = (PLACEHOLDER_SIZE[1] - (bottom - top)) / 2 - top
    draw.multiline_text((x, y), text, fill=(0, 0, 0), font=font, align="center")
    return Image(canvas)


class ImageDiffing:
    """
    Pixel diffing strategy for images.

    :param precision: Value between 0 and 1, where 1 means the images must
        match 100% of their pixel bytes
    :param scale: Scale used when loading the reference image from storage.
        None or 0.0 selects :data:`snapstag.config.DEFAULT_SCALE`.
    :param codec: Storage codec, PNG by default
    """

    def __init__(
        self,
        precision: float = 1.0,
        scale: float | None = None,
        codec: ImageCodec | None = None,
    ):
        if not 0.0 <= precision <= 1.0:
            raise ValueError(f"Precision must be within [0, 1], got {precision}")
        self.precision = precision
        self.scale = scale
        self.codec = codec or PngCodec()

    def to_data(self, image: Image) -> bytes:
        """
        Encodes an image for storage. Images without area are replaced by
        the error placeholder.
        """
        if image.width == 0 or image.height == 0:
            return self.codec.encode(error_placeholder())
        return self.codec.encode(image)

    def from_data(self, data: bytes) -> Image:
        """
        Decodes a stored reference at the configured scale.
        """
        return self.codec.decode(data, scale=config.resolve_scale(self.scale))

    def diff(self, reference: Image, candidate: Image) -> DiffReport | None:
        """
        Compares a reference against a new snapshot.

        :return: None if both match, otherwise the failure message and the
            reference, failure and difference images
        """
        report = evaluate(reference, candidate, self.precision, self.codec)
        if report.passed:
            return None
        attachments = [
            Attachment(REFERENCE_ATTACHMENT, reference),
            Attachment(FAILURE_ATTACHMENT, candidate),
        ]
        if report.diff_image is not None:
            attachments.append(Attachment(DIFFERENCE_ATTACHMENT, report.diff_image))
        return DiffReport(message=report.message, attachments=attachments)


@dataclass
class Snapshotting:
    """
    A snapshot strategy: how snapshots are diffed and which file extension
    their stored references use.
    """
    diffing: ImageDiffing
    path_extension: str = "png"

    @classmethod
    def image(
        cls,
        precision: float = 1.0,
        scale: float | None = None,
        codec: ImageCodec | None = None,
    ) -> Snapshotting:
        """
        A snapshot strategy for comparing images based on pixel equality.

        :param precision: The fraction of pixel bytes that must match
        :param scale: The scale of the reference image stored on disk
        :param codec: Storage codec, PNG by default
        """
        diffing = ImageDiffing(precision=precision, scale=scale, codec=codec)
        return cls(diffing=diffing, path_extension=diffing.codec.path_extension)


__all__ = [
    'Attachment',
    'DiffReport',
    'ImageDiffing',
    'Snapshotting',
    'error_placeholder',
    'REFERENCE_ATTACHMENT',
    'FAILURE_ATTACHMENT',
    'DIFFERENCE_ATTACHMENT',
]
