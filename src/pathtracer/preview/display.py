"""Matplotlib-based preview display for rendered images.

Example:
    >>> from pathtracer.preview.display import show_preview
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(200, 100)
    >>> renderer.render(100)
    >>> show_preview(renderer)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from pathtracer.core.progressive import ProgressiveRenderer


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 2.0,
) -> npt.NDArray[np.float32]:
    """Apply gamma correction for display.

    Args:
        image: Linear image array of shape (H, W, 3).
        gamma: Gamma value. The default 2.0 is a component-wise square root.

    Returns:
        Gamma corrected image in [0, 1].
    """
    # Clamp first so negative values cannot produce NaN
    image = np.clip(image, 0.0, 1.0)

    if gamma == 1.0:
        return image.astype(np.float32)

    return np.power(image, 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    gamma: float = 2.0,
) -> npt.NDArray[np.float32]:
    """Prepare a linear image for display: gamma correct and clamp to [0, 1]."""
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    return apply_gamma(image.copy(), gamma)


def show_preview(
    renderer: ProgressiveRenderer,
    *,
    gamma: float = 2.0,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 4),
    block: bool = True,
) -> None:
    """Display the current render as a Matplotlib figure.

    The sample count is displayed in the title unless a custom title is given.

    Args:
        renderer: The ProgressiveRenderer instance to display.
        gamma: Gamma correction value (default 2.0).
        title: Custom title (default shows sample count).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until figure is closed.
    """
    import matplotlib.pyplot as plt

    display_image = process_image_for_display(renderer.get_image_numpy(), gamma=gamma)

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")

    if title is None:
        title = f"Render Preview - {renderer.sample_count} SPP"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)
