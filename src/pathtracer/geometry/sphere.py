"""Sphere primitive and ray-sphere intersection.

A ray ``P(t) = origin + t * direction`` meets a sphere of center ``c`` and
radius ``r`` where ``|P(t) - c|^2 = r^2``. Expanding gives the quadratic

    a*t^2 + 2*h*t + c' = 0

with ``a = dot(d, d)``, ``h = dot(d, oc)``, ``c' = dot(oc, oc) - r^2`` and
``oc = origin - center``. The smaller root is tried first; if it falls outside
the open interval ``(t_min, t_max)`` the larger one is tried.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-sphere intersection.

    Attributes:
        hit: 1 if the ray intersected the sphere, 0 on a miss. The other
            fields are only meaningful when hit == 1.
        t: Ray parameter of the intersection.
        point: World-space intersection point.
        normal: Geometric outward normal (unit length), pointing away from
            the sphere center whichever side the ray came from.
        front_face: 1 if the ray arrived from outside the sphere
            (``dot(direction, normal) < 0``), 0 if from inside.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect a ray with a sphere inside the open interval (t_min, t_max).

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray (need not be normalized).
        sphere: The sphere to test.
        t_min: Hits at or before this distance are rejected (avoids
            self-intersection of scattered rays).
        t_max: Hits at or beyond this distance are rejected (the closest hit
            found so far when scanning a scene).

    Returns:
        A HitRecord; check the hit field before using the rest.
    """
    oc = ray_origin - sphere.center
    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = h * h - a * c

    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0

    if discriminant > 0.0:
        sqrt_d = ti.sqrt(discriminant)

        # Nearer root first, then the far side of the sphere
        t = (-h - sqrt_d) / a
        valid = t > t_min and t < t_max
        if not valid:
            t = (-h + sqrt_d) / a
            valid = t > t_min and t < t_max

        if valid:
            did_hit = 1
            hit_t = t
            hit_point = ray_origin + t * ray_direction
            hit_normal = (hit_point - sphere.center) / sphere.radius
            if tm.dot(ray_direction, hit_normal) < 0.0:
                is_front_face = 1

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
    )


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from center and radius inside a Taichi kernel."""
    return Sphere(center=center, radius=radius)
