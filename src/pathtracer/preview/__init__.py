"""Preview module for output and visualization.

Components:
    export: PPM and PNG writers with gamma-2 quantization
    display: Matplotlib-based preview display
"""

from pathtracer.preview.display import apply_gamma, process_image_for_display, show_preview
from pathtracer.preview.export import (
    image_to_uint8,
    save_png,
    save_png_from_array,
    save_ppm,
    write_ppm,
)

__all__ = [
    "show_preview",
    "apply_gamma",
    "process_image_for_display",
    "image_to_uint8",
    "write_ppm",
    "save_ppm",
    "save_png",
    "save_png_from_array",
]
