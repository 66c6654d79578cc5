"""Pixel comparison of a reference image against a newly taken snapshot.

The comparison runs in up to two stages:

1. Both images are normalized into canonical buffers and compared directly.
2. If they differ, the candidate is round tripped through the snapshot
   codec (encoded and decoded again) and normalized once more, so
   differences caused purely by the storage encoding are not reported.

Only the candidate is round tripped. The reference is assumed to already be
in its stored form; a reference which went through a lossy codec at a
different time may therefore be over- or under-counted.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from . import config
from .canonical import CanonicalBuffer, DecodeError, normalize
from .codec import ImageCodec, PngCodec
from .diff import synthesize
from .image import Image

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Same:
    """The images match, exactly or within tolerance."""


@dataclass(frozen=True)
class Different:
    """More bytes differ than the precision tolerates.

    Both counts are canonical buffer bytes, not pixels.
    """
    pixel_count: int
    different_pixel_count: int

    @property
    def ratio(self) -> float:
        return self.different_pixel_count / self.pixel_count


@dataclass(frozen=True)
class Invalid:
    """The images can not be compared.

    Either image could not be decoded, has no width or height, or the
    dimensions of both images differ.
    """


ComparisonOutcome = Union[Same, Different, Invalid]


@dataclass(frozen=True)
class ComparisonReport:
    """Outcome of a comparison plus its presentation."""
    outcome: ComparisonOutcome
    message: str | None = None
    diff_image: Image | None = None

    @property
    def passed(self) -> bool:
        return isinstance(self.outcome, Same)


def _check_precision(precision: float) -> float:
    if not 0.0 <= precision <= 1.0:
        raise ValueError(f"Precision must be within [0, 1], got {precision}")
    return float(precision)


def _comparable(reference: Image, candidate: Image) -> bool:
    if not reference.has_pixel_source() or not candidate.has_pixel_source():
        return False
    if reference.width == 0 or candidate.width == 0:
        return False
    if reference.width != candidate.width:
        return False
    if reference.height == 0 or candidate.height == 0:
        return False
    return reference.height == candidate.height


def count_different_bytes(a: CanonicalBuffer, b: CanonicalBuffer) -> int:
    """Count the bytes at which two equally sized buffers differ."""
    if a.byte_count != b.byte_count:
        raise ValueError(
            f"Buffer sizes don't match: {a.byte_count} vs {b.byte_count}"
        )
    return int(np.count_nonzero(a.as_array() != b.as_array()))


def compare(
    reference: Image,
    candidate: Image,
    precision: float = 1.0,
    codec: ImageCodec | None = None,
) -> ComparisonOutcome:
    """Compare a newly taken snapshot against its reference.

    Args:
        reference: The previously recorded image
        candidate: The newly taken image
        precision: Fraction of bytes which must match in [0, 1].
            1 requires an exact match, 0 accepts any difference.
        codec: Storage codec used for the round trip of the candidate.
            PNG by default.

    Returns:
        Same, Different or Invalid
    """
    precision = _check_precision(precision)
    codec = codec or PngCodec()

    if not _comparable(reference, candidate):
        logger.debug("Invalid comparison: %s vs %s", reference, candidate)
        return Invalid()

    try:
        reference_buffer = normalize(reference)
    except DecodeError:
        return Invalid()

    # stage 1: direct comparison, failing here is not fatal
    try:
        candidate_buffer = normalize(candidate)
    except DecodeError:
        candidate_buffer = None
    if candidate_buffer is not None and candidate_buffer.data == reference_buffer.data:
        return Same()

    # stage 2: compare against the candidate as it would be stored
    round_tripped = codec.decode(codec.encode(candidate), scale=candidate.scale)
    try:
        round_tripped_buffer = normalize(round_tripped)
    except DecodeError:
        logger.debug("Round tripped snapshot could not be decoded")
        return Invalid()
    if round_tripped_buffer.byte_count != reference_buffer.byte_count:
        return Invalid()
    if round_tripped_buffer.data == reference_buffer.data:
        return Same()

    byte_count = reference_buffer.byte_count
    different = count_different_bytes(reference_buffer, round_tripped_buffer)
    # rounded so ratios exactly at the tolerance pass, e.g. 1 - 0.9
    threshold = round(1.0 - precision, 9)
    if different / byte_count > threshold:
        logger.debug(
            "Snapshot differs: %d of %d bytes (threshold %s)",
            different, byte_count, threshold,
        )
        return Different(pixel_count=byte_count, different_pixel_count=different)
    return Same()


def _format_size(image: Image) -> str:
    width, height = image.logical_size
    return f"({float(width)}, {float(height)})"


def failure_message(
    outcome: ComparisonOutcome,
    reference: Image,
    candidate: Image,
) -> str | None:
    """Build the human readable failure message for an outcome.

    Returns:
        None for Same, otherwise the message
    """
    if isinstance(outcome, Same):
        return None
    if candidate.logical_size == reference.logical_size:
        message = "Newly-taken snapshot does not match reference."
    else:
        message = (
            f"Newly-taken snapshot@{_format_size(candidate)} "
            f"does not match reference@{_format_size(reference)}."
        )
    if isinstance(outcome, Different):
        percentage = outcome.different_pixel_count / outcome.pixel_count * 100
        message += (
            f" Pixel difference {outcome.different_pixel_count}px ({percentage}%)"
        )
    return message


def _can_render(image: Image) -> bool:
    return image.has_pixel_source() and image.width > 0 and image.height > 0


def evaluate(
    reference: Image,
    candidate: Image,
    precision: float = 1.0,
    codec: ImageCodec | None = None,
) -> ComparisonReport:
    """Compare two images and, on failure, describe and visualize the difference.

    The difference image is only synthesized if both images can be rendered.
    """
    outcome = compare(reference, candidate, precision, codec)
    if isinstance(outcome, Same):
        return ComparisonReport(outcome)
    diff_image = None
    if _can_render(reference) and _can_render(candidate):
        diff_image = synthesize(reference, candidate)
    return ComparisonReport(
        outcome=outcome,
        message=failure_message(outcome, reference, candidate),
        diff_image=diff_image,
    )


def compare_many(
    pairs: Sequence[tuple[Image, Image]],
    precision: float = 1.0,
    codec: ImageCodec | None = None,
    max_workers: int | None = None,
) -> list[ComparisonReport]:
    """Evaluate independent image pairs concurrently.

    Args:
        pairs: (reference, candidate) tuples
        precision: Precision applied to every pair
        codec: Storage codec, PNG by default
        max_workers: Thread count, config.MAX_WORKERS if None

    Returns:
        One report per pair, in input order
    """
    _check_precision(precision)
    if not pairs:
        return []
    if max_workers is None:
        max_workers = config.MAX_WORKERS
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(
            lambda pair: evaluate(pair[0], pair[1], precision, codec),
            pairs,
        ))


__all__ = [
    'Same',
    'Different',
    'Invalid',
    'ComparisonOutcome',
    'ComparisonReport',
    'count_different_bytes',
    'compare',
    'failure_message',
    'evaluate',
    'compare_many',
]
