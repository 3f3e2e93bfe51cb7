"""Command-line interface for the path tracer.

Usage:
    pathtracer [options] > image.ppm
    python -m pathtracer --output render.png --samples 20

With no options this renders the random sphere field at 200x100 with 100
samples per pixel and writes a P3 PPM to standard output. Logs go to
standard error so they never mix with the image stream.

Example:
    pathtracer --width 400 --height 200 --samples 50 --output spheres.png
"""

from __future__ import annotations

import argparse
import contextlib
import logging
import sys
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING

from pathtracer.config import ARCH_CHOICES, RenderConfig, load_render_config

if TYPE_CHECKING:
    from pathtracer.core.progressive import ProgressiveRenderer

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging to standard error."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Options left unset keep the value from --config, or the default.
    """
    parser = argparse.ArgumentParser(
        prog="pathtracer",
        description="Render a scene of spheres with a Monte-Carlo path tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=str, help="JSON render config file")
    parser.add_argument("--scene", type=str, help="JSON scene file (default: random scene)")
    parser.add_argument("--width", type=int, help="Image width in pixels (default: 200)")
    parser.add_argument("--height", type=int, help="Image height in pixels (default: 100)")
    parser.add_argument("--samples", type=int, help="Samples per pixel (default: 100)")
    parser.add_argument(
        "--max-depth",
        type=int,
        help="Maximum scatter events per path (default: 50)",
    )
    parser.add_argument("--seed", type=int, help="Random seed (default: 0)")
    parser.add_argument("--arch", choices=ARCH_CHOICES, help="Taichi backend (default: cpu)")
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Output file (.ppm or .png), or - for PPM on stdout (default: -)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        help="Samples per progress update (default: 10)",
    )

    camera = parser.add_argument_group("camera")
    camera.add_argument("--look-from", type=float, nargs=3, metavar=("X", "Y", "Z"))
    camera.add_argument("--look-at", type=float, nargs=3, metavar=("X", "Y", "Z"))
    camera.add_argument("--vup", type=float, nargs=3, metavar=("X", "Y", "Z"))
    camera.add_argument("--vfov", type=float, help="Vertical field of view in degrees")
    camera.add_argument("--aperture", type=float, help="Lens diameter, 0 for a pinhole")
    camera.add_argument("--focus-distance", type=float, help="Distance to the plane in focus")

    parser.add_argument(
        "--preview",
        action="store_true",
        help="Show the result in a Matplotlib window",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser.parse_args(argv)


_RENDER_OPTIONS = (
    "width",
    "height",
    "samples",
    "max_depth",
    "seed",
    "arch",
    "output",
    "scene",
    "batch_size",
)
_CAMERA_OPTIONS = ("look_from", "look_at", "vup", "vfov", "aperture", "focus_distance")


def build_config(args: argparse.Namespace) -> RenderConfig:
    """Merge the config file (if any) with command-line overrides.

    Raises:
        ValueError: If the merged configuration is invalid.
    """
    config = load_render_config(args.config) if args.config else RenderConfig()

    data = config.to_dict()
    for name in _RENDER_OPTIONS:
        value = getattr(args, name)
        if value is not None:
            data[name] = value
    for name in _CAMERA_OPTIONS:
        value = getattr(args, name)
        if value is not None:
            data["camera"][name] = value

    return RenderConfig.from_dict(data)


def render(config: RenderConfig, preview: bool = False) -> ProgressiveRenderer:
    """Build the scene, render it and write the output.

    Taichi must already be initialized.

    Returns:
        The renderer holding the finished image.
    """
    # Lazy imports to allow Taichi initialization first
    from pathtracer.camera.thin_lens import setup_camera
    from pathtracer.core.integrator import set_max_depth
    from pathtracer.core.progressive import ProgressiveRenderer
    from pathtracer.preview.export import save_ppm
    from pathtracer.scene.manager import SceneManager
    from pathtracer.scene.random_scene import create_random_scene

    if config.scene:
        scene = SceneManager()
        scene.load_json(config.scene)
    else:
        scene, _ = create_random_scene(seed=config.seed, aspect_ratio=config.aspect_ratio)
    logger.info(
        "Scene has %d spheres and %d materials",
        scene.get_sphere_count(),
        scene.get_material_count(),
    )

    setup_camera(config.camera.to_camera(config.aspect_ratio))
    set_max_depth(config.max_depth)

    renderer = ProgressiveRenderer(config.width, config.height)
    logger.info(
        "Rendering %dx%d at %d samples per pixel",
        config.width,
        config.height,
        config.samples,
    )

    start_time = time.perf_counter()
    renderer.render(num_samples=config.samples, batch_size=config.batch_size)
    logger.info("Render finished in %.2fs", time.perf_counter() - start_time)

    if config.output == "-":
        save_ppm(renderer, "-")
    else:
        renderer.save_image(config.output)

    if preview:
        from pathtracer.preview.display import show_preview

        show_preview(renderer)

    return renderer


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    # Keep the Taichi banner off stdout, which may carry the image
    with contextlib.redirect_stdout(sys.stderr):
        import taichi as ti

        ti.init(arch=getattr(ti, config.arch), random_seed=config.seed, log_level=ti.WARN)

    try:
        render(config, preview=args.preview)
    except Exception:
        logger.exception("Render failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
