"""Thin-lens camera model with depth of field.

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from look_at toward look_from (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The viewport is placed on the focal plane, ``focus_distance`` in front of the
camera, so points at that distance stay sharp. Each ray starts from a random
point on a lens disk of radius ``aperture / 2`` in the (u, v) plane and aims
at the focal-plane point for its image coordinates; objects away from the
focal plane blur in proportion to the aperture. With ``aperture = 0`` the
camera degenerates to a pinhole.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.camera.thin_lens import ThinLensCamera, setup_camera
    >>> camera = ThinLensCamera(
    ...     look_from=(13.0, 2.0, 3.0),
    ...     look_at=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=20.0,
    ...     aspect_ratio=2.0,
    ...     aperture=0.1,
    ...     focus_distance=10.0,
    ... )
    >>> setup_camera(camera)
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import taichi as ti

from pathtracer.core.ray import Ray, make_ray, vec3
from pathtracer.core.sampling import random_float, random_in_unit_disk
from pathtracer.core.vector import normalize_np

logger = logging.getLogger(__name__)

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class ThinLensCamera:
    """Configuration for a thin-lens (perspective with depth of field) camera.

    Attributes:
        look_from: Camera position in world space (x, y, z).
        look_at: Point the camera is looking at in world space (x, y, z).
        vup: Up hint for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Width divided by height of the output image.
        aperture: Lens diameter. 0 gives a pinhole camera.
        focus_distance: Distance from the camera to the plane in focus.
    """

    look_from: tuple[float, float, float]
    look_at: tuple[float, float, float]
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 20.0
    aspect_ratio: float = 2.0
    aperture: float = 0.0
    focus_distance: float = 1.0

    def validate(self) -> None:
        """Check the configuration for degenerate placements.

        Raises:
            ValueError: If any parameter is out of range or the view
                direction is zero or parallel to vup.
        """
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if not self.aspect_ratio > 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.aperture < 0.0:
            raise ValueError(f"aperture must be non-negative, got {self.aperture}")
        if not self.focus_distance > 0.0:
            raise ValueError(f"focus_distance must be positive, got {self.focus_distance}")

        view = np.subtract(self.look_from, self.look_at)
        if not np.any(view):
            raise ValueError("look_from and look_at must be different points")
        if np.linalg.norm(np.cross(self.vup, view)) < 1e-12:
            raise ValueError("vup must not be parallel to the view direction")


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis vectors
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())  # Backward (opposite view)

# Focal-plane viewport
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())  # Full width
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())  # Full height
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())

_lens_radius = ti.field(dtype=ti.f32, shape=())


# =============================================================================
# Camera Setup (Python-side, called once per camera configuration)
# =============================================================================


def setup_camera(camera: ThinLensCamera) -> None:
    """Derive the camera basis and focal-plane viewport from its configuration.

    This must be called before rendering. It writes to Taichi fields and
    should be called from Python (not from within a Taichi kernel).

    Args:
        camera: Camera configuration.

    Raises:
        ValueError: If the configuration is degenerate.
    """
    camera.validate()

    theta = math.radians(camera.vfov)
    half_height = math.tan(theta / 2.0)
    half_width = camera.aspect_ratio * half_height
    focus = camera.focus_distance

    origin = np.array(camera.look_from, dtype=np.float64)

    w = normalize_np(origin - np.array(camera.look_at, dtype=np.float64))
    u = normalize_np(np.cross(np.array(camera.vup, dtype=np.float64), w))
    v = np.cross(w, u)

    lower_left = origin - half_width * focus * u - half_height * focus * v - focus * w
    horizontal = 2.0 * half_width * focus * u
    vertical = 2.0 * half_height * focus * v

    _camera_origin[None] = origin.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.aperture / 2.0

    logger.debug(
        "Camera at %s looking at %s (vfov=%.1f, aperture=%.3f, focus=%.3f)",
        camera.look_from,
        camera.look_at,
        camera.vfov,
        camera.aperture,
        camera.focus_distance,
    )


# =============================================================================
# Ray Generation (Taichi-compatible)
# =============================================================================


@ti.func
def get_ray(s: ti.f32, t: ti.f32) -> Ray:
    """Generate a ray through normalized image coordinates (s, t).

    Coordinates are normalized: s = 0 is the left edge, s = 1 the right edge,
    t = 0 the bottom edge and t = 1 the top edge.

    Args:
        s: Horizontal coordinate in [0, 1].
        t: Vertical coordinate in [0, 1].

    Returns:
        A Ray from a random point on the lens toward the focal-plane point
        for (s, t). The direction is not normalized.
    """
    rd = _lens_radius[None] * random_in_unit_disk()
    offset = _camera_u[None] * rd.x + _camera_v[None] * rd.y
    origin = _camera_origin[None] + offset
    target = _lower_left_corner[None] + s * _viewport_horizontal[None] + t * _viewport_vertical[None]
    return make_ray(origin, target - origin)


@ti.func
def get_ray_jittered(pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32) -> Ray:
    """Generate a ray with a uniform random sub-pixel offset for anti-aliasing.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        A Ray through a random point inside the pixel cell.
    """
    s = (ti.cast(pixel_i, ti.f32) + random_float()) / ti.cast(width, ti.f32)
    t = (ti.cast(pixel_j, ti.f32) + random_float()) / ti.cast(height, ti.f32)
    return get_ray(s, t)


@ti.func
def get_camera_origin() -> vec3:
    """Get the camera position (center of the lens) in world space."""
    return _camera_origin[None]


@ti.func
def get_camera_basis():
    """Get the camera's orthonormal basis vectors as a tuple (u, v, w)."""
    return _camera_u[None], _camera_v[None], _camera_w[None]


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, float, float] | float]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, u, v, w, horizontal, vertical, lower_left
        and lens_radius.
    """

    def _as_tuple(field) -> tuple[float, float, float]:
        vec = field[None]
        return (float(vec[0]), float(vec[1]), float(vec[2]))

    return {
        "origin": _as_tuple(_camera_origin),
        "u": _as_tuple(_camera_u),
        "v": _as_tuple(_camera_v),
        "w": _as_tuple(_camera_w),
        "horizontal": _as_tuple(_viewport_horizontal),
        "vertical": _as_tuple(_viewport_vertical),
        "lower_left": _as_tuple(_lower_left_corner),
        "lens_radius": float(_lens_radius[None]),
    }
