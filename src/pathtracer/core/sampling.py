"""Random source for Monte Carlo sampling.

All randomness in the renderer goes through the three functions below. They
are backed by Taichi's per-thread generator, which is seeded once through
``ti.init(random_seed=...)``; each parallel Taichi thread draws from its own
stream, so no shared random state is mutated during a render.
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Upper bound on rejection-sampling attempts. The acceptance rate is about
# 52% for the sphere and 79% for the disk, so this is never reached in practice.
MAX_REJECTION_ATTEMPTS = 100


@ti.func
def random_float() -> ti.f32:
    """Draw a uniform float in [0, 1)."""
    return ti.random(ti.f32)


@ti.func
def random_in_unit_sphere() -> vec3:
    """Draw a uniform point strictly inside the unit sphere.

    Returns:
        A random point with length < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if not found:
            candidate = 2.0 * vec3(random_float(), random_float(), random_float()) - vec3(
                1.0, 1.0, 1.0
            )
            if tm.dot(candidate, candidate) < 1.0:
                p = candidate
                found = True
    return p


@ti.func
def random_in_unit_disk() -> vec3:
    """Draw a uniform point inside the unit disk in the xy-plane.

    Used for sampling the camera lens.

    Returns:
        A random point (x, y, 0) with x^2 + y^2 < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if not found:
            x = 2.0 * random_float() - 1.0
            y = 2.0 * random_float() - 1.0
            if x * x + y * y < 1.0:
                p = vec3(x, y, 0.0)
                found = True
    return p
