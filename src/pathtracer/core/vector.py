"""Vector and color utilities.

Points, directions and RGB colors are all ``taichi.math.vec3``. Taichi already
provides element-wise arithmetic (add, subtract, negate, scalar multiply and
divide, component-wise multiply for color tinting) and the ``x/y/z`` and
``r/g/b`` accessors, so this module only adds the geometric helpers the
renderer needs inside Taichi kernels, plus a NumPy counterpart for the
Python-side camera setup.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.vector import unit_vector, vec3
    >>> @ti.kernel
    ... def demo() -> ti.f32:
    ...     return unit_vector(vec3(3.0, 0.0, 4.0)).z
    >>> demo()  # 0.8
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product a . b."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b."""
    return tm.cross(a, b)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return ti.sqrt(tm.dot(v, v))


@ti.func
def unit_vector(v: vec3) -> vec3:
    """Scale a vector to unit length (``v / length(v)``).

    The vector must have non-zero length. The check only runs when Taichi is
    initialized with ``debug=True``; otherwise a zero vector yields NaNs.

    Args:
        v: The input vector.

    Returns:
        A unit vector pointing the same way as v.
    """
    assert length_squared(v) > 0.0, "unit_vector() needs a non-zero vector"
    return v / length(v)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Return 1 if every component of v is within 1e-8 of zero."""
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


@ti.func
def reflect(v: vec3, n: vec3) -> vec3:
    """Mirror v about the normal n.

    Computes ``v - 2 * dot(v, n) * n``. The normal should be unit length;
    its sign does not matter.
    """
    return v - 2.0 * tm.dot(v, n) * n


# =============================================================================
# Python-side helpers
# =============================================================================


def normalize_np(v: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Normalize a 3-vector on the Python side.

    Args:
        v: Any 3-element array-like.

    Returns:
        The unit vector as a float64 NumPy array.

    Raises:
        ValueError: If v has zero length.
    """
    arr = np.asarray(v, dtype=np.float64)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        raise ValueError(f"Cannot normalize a zero-length vector: {arr.tolist()}")
    return arr / norm
