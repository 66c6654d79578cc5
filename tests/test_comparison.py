"""Tests for the snapshot comparator and its failure messages."""

import numpy as np
import pytest

from snapstag import (
    Image,
    JpegCodec,
    PngCodec,
    Same,
    Different,
    Invalid,
    compare,
    compare_many,
    evaluate,
    failure_message,
)


def with_white_pixel(image: Image, x: int = 3, y: int = 4) -> Image:
    """Copy of an RGBA image with a single opaque white pixel."""
    pixels = image.get_pixels().copy()
    pixels[y, x] = 255
    return Image(pixels)


class TestCompare:
    """Tests for compare()."""

    def test_identical_images_are_same(self, gradient_image):
        """An image always matches itself exactly."""
        assert compare(gradient_image, gradient_image, precision=1) == Same()

    def test_equal_copies_are_same(self, gradient_image):
        """Byte-identical images from different sources match."""
        decoded = Image.from_compressed(gradient_image.to_png())
        assert compare(decoded, gradient_image.copy(), precision=1) == Same()

    def test_black_vs_white_opaque(self, black_image, white_image):
        """Opaque black vs white differs in all color bytes, not in alpha."""
        outcome = compare(black_image, white_image, precision=1)

        assert outcome == Different(pixel_count=400, different_pixel_count=300)

    def test_clear_vs_white_differs_completely(self, clear_image, white_image):
        """Transparent black vs opaque white differs in every byte."""
        outcome = compare(clear_image, white_image, precision=1)

        assert isinstance(outcome, Different)
        assert outcome.different_pixel_count == outcome.pixel_count == 400
        assert outcome.ratio == 1.0

    def test_single_pixel_exact(self, clear_image):
        """A single changed pixel fails an exact comparison."""
        outcome = compare(clear_image, with_white_pixel(clear_image), precision=1)

        assert outcome == Different(pixel_count=400, different_pixel_count=4)

    def test_single_pixel_tolerated(self, clear_image):
        """A single changed pixel passes with 10% tolerance."""
        candidate = with_white_pixel(clear_image)

        assert compare(clear_image, candidate, precision=0.9) == Same()

    def test_zero_precision_accepts_everything(self, clear_image, white_image):
        """Precision 0 accepts even a complete difference."""
        assert compare(clear_image, white_image, precision=0) == Same()

    def test_ratio_on_threshold_is_same(self, solid):
        """Only ratios above 1 - precision are reported."""
        reference = solid(2, 1, (0, 0, 0, 0))
        candidate = Image(np.array([[[255, 255, 255, 255], [0, 0, 0, 0]]], dtype=np.uint8))

        assert compare(reference, candidate, precision=0.5) == Same()
        assert isinstance(compare(reference, candidate, precision=0.51), Different)

    def test_inexact_tolerance_on_threshold_is_same(self, clear_image):
        """A ratio of exactly 1 - 0.9 passes although 0.1 is inexact in binary."""
        pixels = clear_image.get_pixels().copy()
        pixels[0, :] = 255
        candidate = Image(pixels)

        assert compare(clear_image, candidate, precision=1) == Different(
            pixel_count=400, different_pixel_count=40
        )
        assert compare(clear_image, candidate, precision=0.9) == Same()
        assert isinstance(compare(clear_image, candidate, precision=0.91), Different)

    def test_monotonic_in_precision(self, noise_image, gradient_image):
        """Raising the precision never turns a failure into a pass."""
        noise = Image(noise_image.get_pixels()[:40, :64])
        gradient = Image(gradient_image.get_pixels()[:, :64])
        failed = False
        for precision in np.linspace(0.0, 1.0, 21):
            outcome = compare(gradient, noise, precision=float(precision))
            if failed:
                assert isinstance(outcome, Different)
            failed = isinstance(outcome, Different)
        assert failed

    def test_premultiplied_transparency_matches(self, solid):
        """Invisible color differences are not reported."""
        assert compare(solid(5, 5, (255, 0, 0, 0)), solid(5, 5, (0, 0, 255, 0))) == Same()

    def test_invalid_precision(self, black_image):
        with pytest.raises(ValueError):
            compare(black_image, black_image, precision=1.5)
        with pytest.raises(ValueError):
            compare(black_image, black_image, precision=-0.1)


class TestInvalid:
    """Tests for comparisons which can not be performed."""

    @pytest.mark.parametrize("precision", [0.0, 0.5, 1.0])
    def test_dimension_mismatch(self, solid, precision):
        """Differently sized images are never compared byte by byte."""
        assert compare(solid(10, 10, (0, 0, 0)), solid(20, 20, (0, 0, 0)), precision) == Invalid()

    def test_width_mismatch(self, solid):
        assert compare(solid(10, 5, (0, 0, 0)), solid(11, 5, (0, 0, 0))) == Invalid()

    def test_height_mismatch(self, solid):
        assert compare(solid(10, 5, (0, 0, 0)), solid(10, 6, (0, 0, 0))) == Invalid()

    def test_zero_width(self, black_image):
        assert compare(Image(size=(0, 10)), black_image) == Invalid()

    def test_zero_size_both(self):
        assert compare(Image(size=(0, 10)), Image(size=(0, 10))) == Invalid()

    def test_undecodable_reference(self, black_image):
        assert compare(Image.from_compressed(b"\x00" * 32), black_image) == Invalid()

    def test_undecodable_candidate(self, noise_image):
        data = noise_image.to_png()
        broken = Image.from_compressed(data[:len(data) // 2])

        assert compare(noise_image, broken) == Invalid()


class TestRoundTrip:
    """Tests for the comparison against the stored form of the candidate."""

    def test_lossless_round_trip(self, gradient_image):
        """A PNG round trip compares equal to the original."""
        restored = PngCodec().decode(PngCodec().encode(gradient_image))

        assert compare(restored, gradient_image, precision=1) == Same()

    def test_lossy_reference_matches_via_round_trip(self, noise_image):
        """A JPEG stored reference matches the unchanged in-memory candidate."""
        codec = JpegCodec(quality=80)
        reference = codec.decode(codec.encode(noise_image))
        assert not np.array_equal(reference.get_pixels(), noise_image.get_pixels())

        assert compare(reference, noise_image, precision=1, codec=codec) == Same()
        assert isinstance(compare(reference, noise_image, precision=1), Different)

    def test_real_change_survives_round_trip(self, noise_image):
        """Visual changes are still detected after the round trip."""
        codec = JpegCodec(quality=80)
        reference = codec.decode(codec.encode(noise_image))
        pixels = noise_image.get_pixels().copy()
        pixels[:32] = 0

        outcome = compare(reference, Image(pixels), precision=1, codec=codec)
        assert isinstance(outcome, Different)

    def test_deterministic(self, noise_image, gradient_image):
        """Repeated comparisons give identical outcomes."""
        a = Image(gradient_image.get_pixels()[:40, :64])
        b = Image(noise_image.get_pixels()[:40])
        assert compare(a, b, 0.3) == compare(a, b, 0.3)


class TestFailureMessage:
    """Tests for failure_message()."""

    def test_same_has_no_message(self, black_image):
        assert failure_message(Same(), black_image, black_image) is None

    def test_invalid_same_size(self, black_image):
        message = failure_message(Invalid(), black_image, black_image)

        assert message == "Newly-taken snapshot does not match reference."

    def test_invalid_different_size(self, solid):
        reference = solid(5, 5, (0, 0, 0))
        candidate = solid(8, 8, (0, 0, 0))
        outcome = compare(reference, candidate)
        message = failure_message(outcome, reference, candidate)

        assert outcome == Invalid()
        assert message == (
            "Newly-taken snapshot@(8.0, 8.0) does not match reference@(5.0, 5.0)."
        )

    def test_different_reports_percentage(self, clear_image, white_image):
        outcome = compare(clear_image, white_image)
        message = failure_message(outcome, clear_image, white_image)

        assert message == (
            "Newly-taken snapshot does not match reference. "
            "Pixel difference 400px (100.0%)"
        )

    def test_equal_logical_sizes_are_not_mentioned(self, solid):
        """Images covering the same logical area omit their sizes."""
        reference = solid(10, 10, (0, 0, 0))
        candidate = solid(20, 20, (0, 0, 0), scale=2.0)
        message = failure_message(Different(400, 4), reference, candidate)

        assert message == (
            "Newly-taken snapshot does not match reference. "
            "Pixel difference 4px (1.0%)"
        )

    def test_sizes_are_logical(self, solid):
        reference = solid(10, 10, (0, 0, 0))
        candidate = solid(30, 30, (0, 0, 0), scale=2.0)
        message = failure_message(Different(400, 4), reference, candidate)

        assert message == (
            "Newly-taken snapshot@(15.0, 15.0) does not match reference@(10.0, 10.0). "
            "Pixel difference 4px (1.0%)"
        )


class TestEvaluate:
    """Tests for evaluate() and compare_many()."""

    def test_passing_report(self, gradient_image):
        report = evaluate(gradient_image, gradient_image)

        assert report.passed
        assert report.message is None
        assert report.diff_image is None

    def test_failing_report(self, black_image, white_image):
        report = evaluate(black_image, white_image)

        assert not report.passed
        assert "Pixel difference 300px" in report.message
        assert report.diff_image.size == (10, 10)

    def test_invalid_report_with_diff(self, solid):
        """Size mismatches still produce a difference image."""
        report = evaluate(solid(5, 5, (0, 0, 0)), solid(8, 8, (255, 255, 255)))

        assert report.outcome == Invalid()
        assert report.diff_image.size == (8, 8)

    def test_zero_size_report_without_diff(self, black_image):
        """No difference image can be drawn for images without area."""
        report = evaluate(black_image, Image(size=(0, 10)))

        assert report.outcome == Invalid()
        assert report.message is not None
        assert report.diff_image is None

    def test_compare_many_keeps_order(self, black_image, white_image, gradient_image):
        pairs = [
            (black_image, white_image),
            (gradient_image, gradient_image),
            (black_image, gradient_image),
        ]
        reports = compare_many(pairs, precision=1.0, max_workers=3)

        assert [type(report.outcome) for report in reports] == [Different, Same, Invalid]

    def test_compare_many_empty(self):
        assert compare_many([]) == []
