"""Path tracing integrator for Monte Carlo light transport.

This module implements the radiance estimate and the rendering kernels. A
camera ray is traced through the scene, bouncing off spheres according to
their materials, until it escapes to the sky, is absorbed, or reaches the
depth limit.

The estimate is naturally recursive::

    color(ray, depth) = sky(ray)                                  on a miss
                      = attenuation * color(scattered, depth + 1) on a scatter
                      = black                                     otherwise

Taichi functions cannot recurse, so the recursion is unrolled into a loop
that carries the product of attenuations (the throughput). The loop runs at
most ``max_depth + 1`` intersections, which bounds the number of scatter
events by ``max_depth``.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.integrator import render_image, setup_render_target
    >>> from pathtracer.scene.random_scene import create_random_scene
    >>> from pathtracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_random_scene(seed=7)
    >>> setup_camera(camera)
    >>> setup_render_target(200, 100)
    >>> render_image(num_samples=100)
"""

import logging

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from pathtracer.camera.thin_lens import get_ray_jittered
from pathtracer.core.vector import unit_vector
from pathtracer.materials.dielectric import scatter_dielectric_by_id
from pathtracer.materials.lambertian import scatter_lambertian_by_id
from pathtracer.materials.metal import scatter_metal_by_id
from pathtracer.scene.intersection import intersect_scene
from pathtracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Default maximum number of scatter events along a path
MAX_DEPTH = 50

# Intersection interval. T_MIN keeps scattered rays from re-hitting the
# surface they start on (shadow acne).
T_MIN = 0.001
T_MAX = 1e10

SKY_WHITE = vec3(1.0, 1.0, 1.0)
SKY_BLUE = vec3(0.5, 0.7, 1.0)

_max_depth = MAX_DEPTH


def set_max_depth(depth: int) -> None:
    """Set the maximum number of scatter events per path.

    Args:
        depth: The depth limit. 0 means camera rays that hit anything are black.

    Raises:
        ValueError: If depth is negative.
    """
    global _max_depth
    if depth < 0:
        raise ValueError(f"max_depth must be non-negative, got {depth}")
    _max_depth = int(depth)


def get_max_depth() -> int:
    """Get the current maximum number of scatter events per path."""
    return _max_depth


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Per-pixel sum of sample colors
_color_sum = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Sample count per pixel
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())

# Bounce count of the last ray traced through trace_ray_color()
_last_bounces = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffers.

    Sets the active image dimensions and clears the buffers. The buffers are
    preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT.

    Args:
        width: Image width in pixels (1 to MAX_IMAGE_WIDTH).
        height: Image height in pixels (1 to MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If a dimension is not positive or exceeds the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffers to zero."""
    _color_sum.fill(0.0)
    _sample_count.fill(0)


def reset_render_target() -> None:
    """Forget the render target so that it must be set up again."""
    _render_target_initialized[None] = 0
    clear_render_target()


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Radiance Estimate
# =============================================================================


@ti.func
def sky_color(direction: vec3) -> vec3:
    """Background radiance: a vertical white to sky-blue gradient.

    Args:
        direction: The escaping ray direction (any non-zero length).

    Returns:
        ``(1 - t) * white + t * (0.5, 0.7, 1.0)`` with ``t = 0.5 * (unit.y + 1)``.
    """
    t = 0.5 * (unit_vector(direction).y + 1.0)
    return (1.0 - t) * SKY_WHITE + t * SKY_BLUE


@ti.func
def _scatter_material(material_id: ti.i32, incident_direction: vec3, normal: vec3):
    """Dispatch to the scatter function of the material's type.

    Args:
        material_id: The unified material ID.
        incident_direction: The incoming ray direction.
        normal: The outward unit normal at the hit point.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter). Unknown
        material ids absorb.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0

    if mat_type == int(MaterialType.LAMBERTIAN):
        scattered_direction, attenuation, did_scatter = scatter_lambertian_by_id(
            type_index, normal
        )

    elif mat_type == int(MaterialType.METAL):
        scattered_direction, attenuation, did_scatter = scatter_metal_by_id(
            type_index, incident_direction, normal
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        scattered_direction, attenuation, did_scatter = scatter_dielectric_by_id(
            type_index, incident_direction, normal
        )

    return scattered_direction, attenuation, did_scatter


@ti.func
def trace_ray(origin: vec3, direction: vec3, max_depth: ti.i32):
    """Estimate the radiance arriving along a ray.

    Args:
        origin: The ray origin.
        direction: The ray direction (any non-zero length).
        max_depth: Maximum number of scatter events.

    Returns:
        A tuple of (color, bounces) where bounces is the number of scatter
        events taken, never more than max_depth.
    """
    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    ray_origin = origin
    ray_direction = direction
    bounces = 0

    # Taichi doesn't support break in ti.func loops
    active = 1

    for depth in range(max_depth + 1):
        if active == 1:
            rec = intersect_scene(ray_origin, ray_direction, T_MIN, T_MAX)

            if rec.hit == 0:
                color = throughput * sky_color(ray_direction)
                active = 0
            elif depth >= max_depth:
                # Depth limit reached: contributes black
                active = 0
            else:
                scattered_direction, attenuation, did_scatter = _scatter_material(
                    rec.material_id, ray_direction, rec.normal
                )
                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    ray_origin = rec.point
                    ray_direction = scattered_direction
                    bounces += 1

    return color, bounces


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_one_spp(width: ti.i32, height: ti.i32, max_depth: ti.i32):
    """Trace one jittered camera ray per pixel and add it to the pixel sum."""
    for i, j in ti.ndrange(width, height):
        ray = get_ray_jittered(i, j, width, height)
        color, _ = trace_ray(ray.origin, ray.direction, max_depth)
        _color_sum[i, j] += color
        _sample_count[i, j] += 1


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    max_depth: ti.i32,
) -> vec3:
    """Render one sample of one pixel without touching the buffers."""
    ray = get_ray_jittered(pixel_i, pixel_j, width, height)
    color, _ = trace_ray(ray.origin, ray.direction, max_depth)
    return color


@ti.kernel
def _trace_single_ray(origin: vec3, direction: vec3, max_depth: ti.i32) -> vec3:
    color, bounces = trace_ray(origin, direction, max_depth)
    _last_bounces[None] = bounces
    return color


# =============================================================================
# Public Rendering API
# =============================================================================


def trace_ray_color(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
) -> tuple[tuple[float, float, float], int]:
    """Trace a single ray from Python.

    Intended for tests and debugging; it does not need a render target.

    Args:
        origin: The ray origin.
        direction: The ray direction (any non-zero length).

    Returns:
        Tuple of ((R, G, B), bounces).
    """
    color = _trace_single_ray(vec3(*origin), vec3(*direction), _max_depth)
    return (float(color[0]), float(color[1]), float(color[2])), int(_last_bounces[None])


def render_sample(pixel_i: int, pixel_j: int) -> tuple[float, float, float]:
    """Render a single sample for a specific pixel.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).

    Returns:
        Tuple of (R, G, B) color values.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    color = _render_single_pixel(pixel_i, pixel_j, width, height, _max_depth)

    return (float(color[0]), float(color[1]), float(color[2]))


def render_image(num_samples: int = 1) -> None:
    """Add num_samples samples per pixel to the render target.

    Can be called multiple times to keep refining the image.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()

    for _ in range(num_samples):
        _render_one_spp(width, height, _max_depth)


def get_total_samples() -> int:
    """Get the number of samples per pixel rendered so far.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    return int(_sample_count[0, 0])


def get_linear_image_numpy() -> npt.NDArray[np.float32]:
    """Get the averaged linear image as a NumPy array.

    Each pixel is the sum of its samples divided by its sample count; pixels
    without samples are black. Values are not clamped.

    Returns:
        Array of shape (height, width, 3), top image row first.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()

    color_sum = _color_sum.to_numpy()[:width, :height, :]
    counts = _sample_count.to_numpy()[:width, :height]

    image = color_sum / np.maximum(counts, 1)[:, :, np.newaxis]

    # Transpose from (width, height, 3) to (height, width, 3)
    image = np.transpose(image, (1, 0, 2))

    # Flip vertically (pixel j = 0 is the bottom row, images start at the top)
    image = np.flipud(image)

    return np.ascontiguousarray(image, dtype=np.float32)
