"""Core rendering module.

Components:
    vector: Geometric helpers on taichi.math.vec3
    sampling: Uniform random floats and unit disk/sphere sampling
    ray: Ray data structure
    integrator: Radiance estimate and render target
    progressive: Batched sample accumulation
"""

from .ray import Ray, make_ray, ray_at
from .sampling import random_float, random_in_unit_disk, random_in_unit_sphere
from .vector import (
    cross,
    dot,
    length,
    length_squared,
    near_zero,
    normalize_np,
    reflect,
    unit_vector,
    vec3,
)

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from pathtracer.core.integrator or pathtracer.core.progressive.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "dot",
    "cross",
    "length",
    "length_squared",
    "unit_vector",
    "near_zero",
    "reflect",
    "normalize_np",
    "random_float",
    "random_in_unit_sphere",
    "random_in_unit_disk",
]
