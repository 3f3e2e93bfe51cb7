"""Image export utilities for rendered images.

Linear colors are mapped for display with a gamma-2 correction (component-wise
square root) and quantized with ``int(255.99 * c)``, clamped to [0, 255].

Supported formats:
    - PPM (plain-text P3)
    - PNG (8-bit via Pillow)

Example:
    >>> from pathtracer.preview.export import save_ppm
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(200, 100)
    >>> renderer.render(100)
    >>> save_ppm(renderer, "output.ppm")
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

if TYPE_CHECKING:
    from pathtracer.core.progressive import ProgressiveRenderer

logger = logging.getLogger(__name__)


def image_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to 8-bit display values.

    Args:
        image: Linear image array of shape (H, W, 3).

    Returns:
        ``clamp(int(255.99 * sqrt(c)), 0, 255)`` per channel, dtype uint8.
    """
    linear = np.maximum(np.asarray(image, dtype=np.float64), 0.0)
    scaled = np.floor(255.99 * np.sqrt(linear))
    return np.clip(scaled, 0, 255).astype(np.uint8)


def write_ppm(image: npt.NDArray[np.uint8], stream: TextIO) -> None:
    """Write an 8-bit image as a plain-text P3 pixel map.

    The header is ``P3``, ``<width> <height>`` and ``255``, followed by one
    ``R G B`` line per pixel, top row first, left to right.

    Args:
        image: Array of shape (H, W, 3), top image row first.
        stream: Text stream to write to.

    Raises:
        ValueError: If the array is not (H, W, 3).
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")

    height, width, _ = image.shape
    stream.write(f"P3\n{width} {height}\n255\n")
    for row in image:
        stream.write("".join(f"{r} {g} {b}\n" for r, g, b in row.tolist()))


def save_ppm(renderer: ProgressiveRenderer, filepath: str | Path) -> None:
    """Save the rendered image as a P3 PPM file.

    Args:
        renderer: The ProgressiveRenderer instance to save.
        filepath: Output file path, or ``-`` for standard output.
    """
    image_uint8 = image_to_uint8(renderer.get_image_numpy())

    if str(filepath) == "-":
        write_ppm(image_uint8, sys.stdout)
        sys.stdout.flush()
    else:
        with open(filepath, "w", encoding="ascii") as f:
            write_ppm(image_uint8, f)
        logger.info("Wrote %dx%d PPM to %s", renderer.width, renderer.height, filepath)


def save_png(renderer: ProgressiveRenderer, filepath: str | Path) -> None:
    """Save the rendered image as an 8-bit PNG file.

    Uses the same gamma and quantization as the PPM output.

    Args:
        renderer: The ProgressiveRenderer instance to save.
        filepath: Output file path (should end in .png).
    """
    save_png_from_array(renderer.get_image_numpy(), filepath)


def save_png_from_array(image: npt.NDArray[np.floating], filepath: str | Path) -> None:
    """Save a linear (H, W, 3) NumPy image as an 8-bit PNG file."""
    pil_image = PILImage.fromarray(image_to_uint8(image))
    pil_image.save(filepath)
    logger.info("Wrote %dx%d PNG to %s", image.shape[1], image.shape[0], filepath)
