"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate every field allocated by modules imported earlier.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene, material and render state before and after each test."""
    # Import here so that Taichi is initialized first
    from pathtracer.core.integrator import MAX_DEPTH, reset_render_target, set_max_depth
    from pathtracer.materials.dielectric import clear_dielectric_materials
    from pathtracer.materials.lambertian import clear_lambertian_materials
    from pathtracer.materials.metal import clear_metal_materials
    from pathtracer.scene.intersection import clear_scene
    from pathtracer.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        reset_render_target()
        set_max_depth(MAX_DEPTH)

    _clear_all()

    yield

    _clear_all()


@pytest.fixture
def front_camera():
    """Set up a pinhole camera at the origin looking down -Z, 2:1 aspect."""
    from pathtracer.camera.thin_lens import ThinLensCamera, setup_camera

    camera = ThinLensCamera(
        look_from=(0.0, 0.0, 0.0),
        look_at=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=2.0,
        aperture=0.0,
        focus_distance=1.0,
    )
    setup_camera(camera)
    return camera
