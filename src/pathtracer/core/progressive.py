"""Progressive renderer for iterative sample accumulation.

This module wraps the integrator's render target so that an image can be
refined in batches of samples per pixel, with progress reported through a
callback, a generator, or the log.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, random_seed=7)
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>> from pathtracer.scene.random_scene import create_random_scene
    >>> from pathtracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_random_scene(seed=7)
    >>> setup_camera(camera)
    >>>
    >>> renderer = ProgressiveRenderer(200, 100)
    >>> renderer.render(100, batch_size=10)
    >>> renderer.save_image("random_scene.ppm")
"""

import logging
import time
from collections.abc import Callable, Generator
from pathlib import Path

import numpy as np
import numpy.typing as npt

from pathtracer.core.integrator import (
    clear_render_target,
    get_linear_image_numpy,
    get_total_samples,
    render_image,
    setup_render_target,
)

logger = logging.getLogger(__name__)

# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates samples over time.

    The renderer keeps its own width/height and delegates to the global
    integrator buffers (which are Taichi fields), so only one renderer is
    active at a time.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
    """

    def __init__(self, width: int, height: int) -> None:
        """Initialize the progressive renderer.

        Args:
            width: Image width in pixels (max 2048).
            height: Image height in pixels (max 2048).

        Raises:
            ValueError: If dimensions are not positive or exceed the maximum.
        """
        self._width = width
        self._height = height
        setup_render_target(width, height)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    def reset(self) -> None:
        """Clear the accumulated samples without changing the dimensions."""
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and reset the accumulator.

        Raises:
            ValueError: If dimensions are not positive or exceed the maximum.
        """
        self._width = width
        self._height = height
        setup_render_target(width, height)

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render samples progressively with optional progress callback.

        Accumulates the specified number of samples into the existing buffer.
        Can be called multiple times to continue refining the image.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each callback.
            callback: Optional callback function called after each batch.
                Receives (current_total_samples, target_total_samples).

        Raises:
            ValueError: If batch_size is not positive.
        """
        for current, target in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples progressively, yielding progress after each batch.

        Stopping the iteration early leaves the samples rendered so far in
        the buffer.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each yield.

        Yields:
            Tuple of (current_total_samples, target_total_samples).

        Raises:
            ValueError: If batch_size is not positive.
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if num_samples <= 0:
            return

        start_samples = self.sample_count
        target_samples = start_samples + num_samples
        start_time = time.perf_counter()

        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            render_image(batch)
            remaining -= batch

            current = self.sample_count
            logger.info(
                "Rendered %d/%d samples per pixel (%.1fs)",
                current,
                target_samples,
                time.perf_counter() - start_time,
            )
            yield (current, target_samples)

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the rendered image as a NumPy array of shape (height, width, 3).

        Args:
            gamma: Gamma correction value. Default 1.0 returns the unclamped
                linear average. Use 2.0 for the square-root display mapping.

        Returns:
            NumPy array with dtype float32, top image row first.
        """
        image = get_linear_image_numpy()

        if gamma != 1.0:
            image = np.power(np.clip(image, 0.0, 1.0), 1.0 / gamma).astype(np.float32)

        return image

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the rendered image gamma corrected and quantized to 8 bits."""
        from pathtracer.preview.export import image_to_uint8

        return image_to_uint8(self.get_image_numpy())

    def save_image(self, filepath: str | Path) -> None:
        """Save the rendered image, choosing the format from the extension.

        Args:
            filepath: Output path ending in .ppm or .png.

        Raises:
            ValueError: If the extension is not supported.
        """
        from pathtracer.preview.export import save_png, save_ppm

        suffix = Path(filepath).suffix.lower()
        if suffix == ".ppm":
            save_ppm(self, filepath)
        elif suffix == ".png":
            save_png(self, filepath)
        else:
            raise ValueError(f"Unsupported image format: {suffix!r} (use .ppm or .png)")

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )
