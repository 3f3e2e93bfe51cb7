"""Dielectric (glass/water) material.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when no real refraction solution exists

The hit record carries the sphere's outward normal. Whether the ray enters or
leaves the medium follows from the sign of ``dot(incident, normal)``: a
positive sign means the ray travels from inside to outside, so the normal is
flipped and the refractive index ratio becomes ``ior`` instead of ``1/ior``.

Glass never absorbs. When refraction is possible the material reflects with
probability ``schlick(cosine, ior)`` using a single uniform draw; under total
internal reflection it always reflects.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter = scatter_dielectric(
    >>> #     ior, incident_dir, normal
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.sampling import random_float
from pathtracer.core.vector import length, reflect, unit_vector

vec3 = tm.vec3


@ti.func
def refract(incident: vec3, normal: vec3, ni_over_nt: ti.f32):
    """Refract a direction through a surface using Snell's law.

    Args:
        incident: The incoming direction (any length).
        normal: The unit normal on the side the ray arrives from.
        ni_over_nt: Ratio of refractive indices (incident / transmitted).

    Returns:
        A tuple of (refracted_direction, did_refract). did_refract is 0 under
        total internal reflection, in which case the direction is zero.
    """
    uv = unit_vector(incident)
    dt = tm.dot(uv, normal)
    discriminant = 1.0 - ni_over_nt * ni_over_nt * (1.0 - dt * dt)

    refracted = vec3(0.0, 0.0, 0.0)
    did_refract = 0
    if discriminant > 0.0:
        refracted = ni_over_nt * (uv - normal * dt) - normal * ti.sqrt(discriminant)
        did_refract = 1
    return refracted, did_refract


@ti.func
def schlick_reflectance(cosine: ti.f32, ior: ti.f32) -> ti.f32:
    """Approximate Fresnel reflectance with Schlick's polynomial.

    Args:
        cosine: Cosine of the angle between the ray and the normal on the
            outer side of the interface.
        ior: Index of refraction of the material.

    Returns:
        ``r0 + (1 - r0) * (1 - cosine)^5`` with ``r0 = ((1 - ior) / (1 + ior))^2``.
        At normal incidence this is its minimum, r0.
    """
    r0 = ((1.0 - ior) / (1.0 + ior)) ** 2
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


@ti.func
def _orient(ior: ti.f32, incident: vec3, normal: vec3):
    """Resolve the side of the interface the ray arrives from.

    Returns:
        A tuple of (oriented_normal, ni_over_nt, cos_incident, exiting) where
        cos_incident is the cosine of the incidence angle on the arrival side
        and exiting is 1 when the ray leaves the medium.
    """
    d_dot_n = tm.dot(incident, normal) / length(incident)
    oriented_normal = normal
    ni_over_nt = 1.0 / ior
    cos_incident = -d_dot_n
    exiting = 0
    if d_dot_n > 0.0:
        oriented_normal = -normal
        ni_over_nt = ior
        cos_incident = d_dot_n
        exiting = 1
    return oriented_normal, ni_over_nt, cos_incident, exiting


@ti.func
def reflectance(ior: ti.f32, incident: vec3, normal: vec3) -> ti.f32:
    """Probability that a ray reflects instead of refracting.

    Args:
        ior: Index of refraction of the material.
        incident: The incoming direction (any length).
        normal: The outward unit normal of the surface.

    Returns:
        1.0 under total internal reflection, otherwise the Schlick
        reflectance evaluated on the outer side of the interface.
    """
    oriented_normal, ni_over_nt, cos_incident, exiting = _orient(ior, incident, normal)
    _, did_refract = refract(incident, oriented_normal, ni_over_nt)
    return _reflect_probability(ior, ni_over_nt, cos_incident, exiting, did_refract)


@ti.func
def _reflect_probability(
    ior: ti.f32,
    ni_over_nt: ti.f32,
    cos_incident: ti.f32,
    exiting: ti.i32,
    did_refract: ti.i32,
) -> ti.f32:
    prob = 1.0
    if did_refract == 1:
        cosine = cos_incident
        if exiting == 1:
            # Leaving the medium: use the transmitted angle, which is the
            # angle on the outside
            cosine = ti.sqrt(1.0 - ni_over_nt * ni_over_nt * (1.0 - cos_incident * cos_incident))
        prob = schlick_reflectance(cosine, ior)
    return prob


@ti.func
def will_reflect(ior: ti.f32, incident: vec3, normal: vec3) -> ti.i32:
    """Return 1 if total internal reflection occurs, 0 otherwise."""
    oriented_normal, ni_over_nt, _, _ = _orient(ior, incident, normal)
    _, did_refract = refract(incident, oriented_normal, ni_over_nt)
    return 1 - did_refract


@ti.func
def scatter_dielectric(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
):
    """Reflect or refract a ray at a dielectric surface.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (any length).
        normal: The outward unit normal of the surface.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where
        attenuation is white and did_scatter is always 1.
    """
    attenuation = vec3(1.0, 1.0, 1.0)

    oriented_normal, ni_over_nt, cos_incident, exiting = _orient(ior, incident_direction, normal)
    refracted, did_refract = refract(incident_direction, oriented_normal, ni_over_nt)
    reflect_prob = _reflect_probability(ior, ni_over_nt, cos_incident, exiting, did_refract)

    scattered_direction = refracted
    if random_float() < reflect_prob:
        scattered_direction = reflect(incident_direction, normal)

    return scattered_direction, attenuation, 1


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of dielectric materials in the scene
MAX_DIELECTRIC_MATERIALS = 256

dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Add a dielectric material to the registry.

    Args:
        ior: Index of refraction. Default is 1.5 (typical glass). Values
            below 1.0 are accepted and model a less dense medium embedded in
            a denser one (e.g. an air bubble in water).

    Returns:
        The type-local index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If ior is not positive.
    """
    if not ior > 0.0:
        raise ValueError(f"Index of refraction must be positive, got {ior}")

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> ti.f32:
    """Get the index of refraction of a dielectric material by index."""
    return dielectric_iors[material_idx]


@ti.func
def scatter_dielectric_by_id(
    material_idx: ti.i32,
    incident_direction: vec3,
    normal: vec3,
):
    """Look up a dielectric material by index and scatter off it.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter).
    """
    return scatter_dielectric(get_dielectric_ior(material_idx), incident_direction, normal)
