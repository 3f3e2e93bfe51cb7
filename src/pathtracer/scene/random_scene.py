"""Random sphere field demo scene.

A large diffuse ground sphere carries a grid of small spheres with random
materials, plus three large spheres in the middle: glass, diffuse brown and
a polished metal. The camera looks at the origin from (13, 2, 3) with a
narrow field of view and a small aperture focused 10 units away.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.random_scene import create_random_scene
    >>> from pathtracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_random_scene(seed=7)
    >>> setup_camera(camera)
"""

import logging

import numpy as np

from pathtracer.camera.thin_lens import ThinLensCamera
from pathtracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# =============================================================================
# Scene Constants
# =============================================================================

GROUND_CENTER = (0.0, -1000.0, 0.0)
GROUND_RADIUS = 1000.0
GROUND_ALBEDO = (0.5, 0.5, 0.5)

# Small spheres are placed on a grid of cells [GRID_MIN, GRID_MAX)
GRID_MIN = -11
GRID_MAX = 11
SMALL_RADIUS = 0.2
JITTER = 0.9

# Small spheres too close to this point would overlap the metal sphere
CLEARANCE_POINT = np.array([4.0, 0.2, 2.0])
CLEARANCE = 0.9

# Material probabilities: diffuse below 0.8, metal below 0.95, else glass
DIFFUSE_THRESHOLD = 0.8
METAL_THRESHOLD = 0.95

GLASS_IOR = 1.5

BIG_RADIUS = 1.0
BROWN_ALBEDO = (0.4, 0.2, 0.1)
POLISHED_METAL_ALBEDO = (0.7, 0.6, 0.5)

# Camera placement
LOOK_FROM = (13.0, 2.0, 3.0)
LOOK_AT = (0.0, 0.0, 0.0)
VUP = (0.0, 1.0, 0.0)
VFOV = 20.0
APERTURE = 0.1
FOCUS_DISTANCE = 10.0


def default_camera(aspect_ratio: float = 2.0) -> ThinLensCamera:
    """Create the camera used for the random scene.

    Args:
        aspect_ratio: Width divided by height of the output image.
    """
    return ThinLensCamera(
        look_from=LOOK_FROM,
        look_at=LOOK_AT,
        vup=VUP,
        vfov=VFOV,
        aspect_ratio=aspect_ratio,
        aperture=APERTURE,
        focus_distance=FOCUS_DISTANCE,
    )


def create_random_scene(
    seed: int | None = None,
    aspect_ratio: float = 2.0,
    rng: np.random.Generator | None = None,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the random sphere field scene.

    Every diffuse and metal sphere gets its own material; all glass spheres
    share one dielectric material.

    Args:
        seed: Seed for the scene layout. Ignored when rng is given.
        aspect_ratio: Aspect ratio passed on to the camera.
        rng: Optional NumPy random generator to draw the layout from.

    Returns:
        A tuple of (SceneManager, ThinLensCamera).
    """
    if rng is None:
        rng = np.random.default_rng(seed)

    scene = SceneManager()

    ground = scene.add_lambertian_material(albedo=GROUND_ALBEDO)
    scene.add_sphere(GROUND_CENTER, GROUND_RADIUS, ground)

    glass = scene.add_dielectric_material(ior=GLASS_IOR)

    for a in range(GRID_MIN, GRID_MAX):
        for b in range(GRID_MIN, GRID_MAX):
            choose_mat = rng.random()
            center = np.array([a + JITTER * rng.random(), SMALL_RADIUS, b + JITTER * rng.random()])

            if np.linalg.norm(center - CLEARANCE_POINT) <= CLEARANCE:
                continue

            if choose_mat < DIFFUSE_THRESHOLD:
                albedo = tuple(float(x) for x in rng.random(3) * rng.random(3))
                material = scene.add_lambertian_material(albedo=albedo)
            elif choose_mat < METAL_THRESHOLD:
                albedo = tuple(float(x) for x in 0.5 * (1.0 + rng.random(3)))
                material = scene.add_metal_material(albedo=albedo, fuzz=0.5 * float(rng.random()))
            else:
                material = glass

            scene.add_sphere(tuple(center.tolist()), SMALL_RADIUS, material)

    scene.add_sphere((0.0, 1.0, 0.0), BIG_RADIUS, glass)
    scene.add_lambertian_sphere((-4.0, 1.0, 0.0), BIG_RADIUS, BROWN_ALBEDO)
    scene.add_metal_sphere((4.0, 1.0, 0.0), BIG_RADIUS, POLISHED_METAL_ALBEDO, fuzz=0.0)

    logger.debug(
        "Random scene: %d spheres, %d materials",
        scene.get_sphere_count(),
        scene.get_material_count(),
    )

    return scene, default_camera(aspect_ratio)
