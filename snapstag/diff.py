# SnapStag - Difference Images
"""
Synthesis of difference images visualizing where two snapshots diverge.

The candidate is drawn onto an opaque black canvas first, the reference is
then drawn on top using the difference blend mode. Regions where both images
agree stay black, diverging regions light up.
"""

from __future__ import annotations

from enum import Enum, auto

import numpy as np
import PIL.Image

from .image import Image
from .pixel_format import PixelFormat


class BlendMode(Enum):
    """Blend modes for drawing a layer onto the canvas."""
    NORMAL = auto()
    DIFFERENCE = auto()


def blend(base: np.ndarray, overlay: np.ndarray, mode: BlendMode) -> np.ndarray:
    """Apply blend mode to float color arrays in range [0.0, 1.0]."""
    if mode == BlendMode.NORMAL:
        return overlay
    elif mode == BlendMode.DIFFERENCE:
        return np.abs(base - overlay)
    raise ValueError(f"Unsupported blend mode: {mode}")


def _render_at_scale(image: Image, scale: float) -> np.ndarray:
    """Get the straight RGBA pixels of an image rendered at given scale as float."""
    pil_image = image.to_pil().convert("RGBA")
    if image.scale != scale:
        width, height = image.logical_size
        target = (
            max(1, int(round(width * scale))),
            max(1, int(round(height * scale))),
        )
        pil_image = pil_image.resize(target, PIL.Image.Resampling.BILINEAR)
    return np.asarray(pil_image).astype(np.float32) / 255.0


def _draw(canvas: np.ndarray, layer: np.ndarray, mode: BlendMode) -> None:
    """Draw a straight RGBA layer at the origin of an opaque RGB canvas."""
    height = min(canvas.shape[0], layer.shape[0])
    width = min(canvas.shape[1], layer.shape[1])
    region = canvas[:height, :width]
    color = layer[:height, :width, :3]
    alpha = layer[:height, :width, 3:4]
    blended = blend(region, color, mode)
    canvas[:height, :width] = region * (1 - alpha) + blended * alpha


def synthesize(reference: Image, candidate: Image) -> Image:
    """Create the difference image of two snapshots.

    The canvas covers the bounding box of both images in logical units and
    is rendered at the larger of both scales.

    :param reference: The reference image, drawn with difference blending
    :param candidate: The newly taken image, drawn first
    :returns: Opaque RGB difference image
    """
    scale = max(reference.scale, candidate.scale)
    logical_width = max(reference.logical_size[0], candidate.logical_size[0])
    logical_height = max(reference.logical_size[1], candidate.logical_size[1])
    width = int(round(logical_width * scale))
    height = int(round(logical_height * scale))

    canvas = np.zeros((height, width, 3), dtype=np.float32)
    _draw(canvas, _render_at_scale(candidate, scale), BlendMode.NORMAL)
    _draw(canvas, _render_at_scale(reference, scale), BlendMode.DIFFERENCE)

    result = np.clip(np.rint(canvas * 255), 0, 255).astype(np.uint8)
    return Image(result, pixel_format=PixelFormat.RGB, scale=scale)


__all__ = ["BlendMode", "blend", "synthesize"]
