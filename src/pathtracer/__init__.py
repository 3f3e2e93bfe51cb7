"""Monte-Carlo path tracer for scenes of spheres, built on Taichi.

This package renders spheres with diffuse, metal and glass materials through
a thin-lens camera, accumulating many jittered samples per pixel.

Subpackages:
    core: Vector helpers, random sampling, rays, the integrator and the
        progressive sample loop
    geometry: Sphere primitive and ray-sphere intersection
    materials: Lambertian, metal and dielectric scattering
    scene: Scene storage, the scene manager and the random demo scene
    camera: Thin-lens camera with depth of field
    preview: PPM/PNG export and Matplotlib preview

Importing a subpackage allocates Taichi fields, so call ``ti.init()`` first.
"""

__version__ = "0.1.0"
