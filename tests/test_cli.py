"""Tests for the snapstag command line interface."""

import pytest

from snapstag import Image
from snapstag.cli import main, EXIT_SAME, EXIT_DIFFERENT, EXIT_UNREADABLE


@pytest.fixture
def write_png(tmp_path):
    def write(name: str, image: Image):
        path = tmp_path / name
        path.write_bytes(image.to_png())
        return path
    return write


def test_matching_images(write_png, gradient_image, capsys):
    a = write_png("a.png", gradient_image)
    b = write_png("b.png", gradient_image)

    assert main(["compare", str(a), str(b)]) == EXIT_SAME
    assert "Images match." in capsys.readouterr().out


def test_different_images(write_png, black_image, white_image, tmp_path, capsys):
    a = write_png("a.png", black_image)
    b = write_png("b.png", white_image)
    diff = tmp_path / "out" / "diff.png"

    code = main(["compare", str(a), str(b), "--diff-output", str(diff)])

    assert code == EXIT_DIFFERENT
    assert "Pixel difference 300px (75.0%)" in capsys.readouterr().out
    assert Image(diff.read_bytes()).size == (10, 10)


def test_precision_option(write_png, black_image, white_image):
    a = write_png("a.png", black_image)
    b = write_png("b.png", white_image)

    assert main(["compare", str(a), str(b), "--precision", "0.2"]) == EXIT_SAME


def test_unreadable_input(write_png, gradient_image, tmp_path, capsys):
    a = write_png("a.png", gradient_image)
    broken = tmp_path / "broken.png"
    broken.write_bytes(b"no image")

    assert main(["compare", str(a), str(broken)]) == EXIT_UNREADABLE
    assert main(["compare", str(a), str(tmp_path / "missing.png")]) == EXIT_UNREADABLE
    assert "Failed" in capsys.readouterr().err


def test_invalid_precision(write_png, gradient_image):
    a = write_png("a.png", gradient_image)

    with pytest.raises(SystemExit):
        main(["compare", str(a), str(a), "--precision", "3"])


def test_negative_scale(write_png, gradient_image):
    a = write_png("a.png", gradient_image)

    with pytest.raises(SystemExit):
        main(["compare", str(a), str(a), "--scale", "-1"])
