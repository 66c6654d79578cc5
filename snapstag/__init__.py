"""
SnapStag - Pixel based snapshot comparison for visual regression tests
"""

from .image import Image, ImageSourceTypes, SUPPORTED_IMAGE_FILETYPES
from .pixel_format import (
    PixelFormat,
    PixelFormatTypes,
    CANONICAL_BITS_PER_COMPONENT,
    CANONICAL_BYTES_PER_PIXEL,
    CANONICAL_COLOR_SPACE,
)
from .codec import ImageCodec, PngCodec, JpegCodec
from .canonical import CanonicalBuffer, DecodeError, normalize
from .comparison import (
    Same,
    Different,
    Invalid,
    ComparisonOutcome,
    ComparisonReport,
    compare,
    failure_message,
    evaluate,
    compare_many,
)
from .diff import BlendMode, synthesize
from .snapshotting import (
    Attachment,
    DiffReport,
    ImageDiffing,
    Snapshotting,
    error_placeholder,
)
from .storage import (
    SnapshotStore,
    SnapshotResult,
    SnapshotMismatchError,
    verify_snapshot,
    assert_snapshot,
)

__all__ = [
    # Bitmaps
    "Image",
    "ImageSourceTypes",
    "SUPPORTED_IMAGE_FILETYPES",
    "PixelFormat",
    "PixelFormatTypes",
    "CANONICAL_BITS_PER_COMPONENT",
    "CANONICAL_BYTES_PER_PIXEL",
    "CANONICAL_COLOR_SPACE",
    # Codecs
    "ImageCodec",
    "PngCodec",
    "JpegCodec",
    # Normalization
    "CanonicalBuffer",
    "DecodeError",
    "normalize",
    # Comparison
    "Same",
    "Different",
    "Invalid",
    "ComparisonOutcome",
    "ComparisonReport",
    "compare",
    "failure_message",
    "evaluate",
    "compare_many",
    # Difference images
    "BlendMode",
    "synthesize",
    # Snapshot strategies
    "Attachment",
    "DiffReport",
    "ImageDiffing",
    "Snapshotting",
    "error_placeholder",
    # Storage
    "SnapshotStore",
    "SnapshotResult",
    "SnapshotMismatchError",
    "verify_snapshot",
    "assert_snapshot",
]

__version__ = "0.1.0"
