"""Unit tests for the thin-lens camera module.

Tests cover:
- Orthonormal basis computation
- Viewport placement on the focal plane
- Lens sampling and the pinhole special case
- Validation of degenerate configurations
"""

import math

import numpy as np
import pytest
import taichi as ti


def _make_camera(**overrides):
    from pathtracer.camera.thin_lens import ThinLensCamera

    params = dict(
        look_from=(0.0, 0.0, 5.0),
        look_at=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=60.0,
        aspect_ratio=2.0,
        aperture=0.0,
        focus_distance=5.0,
    )
    params.update(overrides)
    return ThinLensCamera(**params)


def _sample_rays(s, t, num_samples):
    """Generate num_samples rays through (s, t); return (origins, directions)."""
    from pathtracer.camera.thin_lens import get_ray

    origins = ti.Vector.field(3, dtype=ti.f32, shape=num_samples)
    directions = ti.Vector.field(3, dtype=ti.f32, shape=num_samples)

    @ti.kernel
    def sample_kernel(s: ti.f32, t: ti.f32):
        for i in range(num_samples):
            ray = get_ray(s, t)
            origins[i] = ray.origin
            directions[i] = ray.direction

    sample_kernel(s, t)
    return origins.to_numpy(), directions.to_numpy()


class TestCameraSetup:
    """Tests for camera setup and basis computation."""

    @pytest.mark.parametrize(
        "look_from,look_at",
        [
            ((0.0, 0.0, 5.0), (0.0, 0.0, 0.0)),
            ((13.0, 2.0, 3.0), (0.0, 0.0, 0.0)),
            ((-2.0, 2.0, 1.0), (0.0, 0.0, -1.0)),
        ],
    )
    def test_orthonormal_basis(self, look_from, look_at):
        from pathtracer.camera.thin_lens import get_camera_info, setup_camera

        setup_camera(_make_camera(look_from=look_from, look_at=look_at))

        info = get_camera_info()
        u, v, w = (np.array(info[name]) for name in ("u", "v", "w"))

        assert abs(np.dot(u, v)) < 1e-6
        assert abs(np.dot(u, w)) < 1e-6
        assert abs(np.dot(v, w)) < 1e-6
        for vec in (u, v, w):
            assert abs(np.linalg.norm(vec) - 1.0) < 1e-6

        # w points from look_at back toward the camera
        expected_w = np.array(look_from) - np.array(look_at)
        expected_w /= np.linalg.norm(expected_w)
        assert np.allclose(w, expected_w, atol=1e-6)

    def test_basis_looking_down_negative_z(self, front_camera):
        from pathtracer.camera.thin_lens import get_camera_info

        info = get_camera_info()
        assert np.allclose(info["u"], (1.0, 0.0, 0.0), atol=1e-6)
        assert np.allclose(info["v"], (0.0, 1.0, 0.0), atol=1e-6)
        assert np.allclose(info["w"], (0.0, 0.0, 1.0), atol=1e-6)

    def test_viewport_on_focal_plane(self):
        """Test the viewport center lies focus_distance along the view axis."""
        from pathtracer.camera.thin_lens import get_camera_info, setup_camera

        setup_camera(_make_camera(look_from=(13.0, 2.0, 3.0), focus_distance=10.0))

        info = get_camera_info()
        center = (
            np.array(info["lower_left"])
            + 0.5 * np.array(info["horizontal"])
            + 0.5 * np.array(info["vertical"])
        )
        expected = np.array(info["origin"]) - 10.0 * np.array(info["w"])
        assert np.allclose(center, expected, atol=1e-4)

    def test_viewport_size_follows_fov_and_aspect(self):
        from pathtracer.camera.thin_lens import get_camera_info, setup_camera

        setup_camera(_make_camera(vfov=90.0, aspect_ratio=2.0, focus_distance=3.0))

        info = get_camera_info()
        # tan(45) = 1, so the focal-plane viewport is 2*3 tall and twice as wide
        assert abs(np.linalg.norm(info["vertical"]) - 6.0) < 1e-5
        assert abs(np.linalg.norm(info["horizontal"]) - 12.0) < 1e-5

    def test_lens_radius_is_half_aperture(self):
        from pathtracer.camera.thin_lens import get_camera_info, setup_camera

        setup_camera(_make_camera(aperture=0.1))
        assert abs(get_camera_info()["lens_radius"] - 0.05) < 1e-7


class TestRayGeneration:
    """Tests for get_ray() and get_ray_jittered()."""

    def test_pinhole_rays_start_at_look_from(self):
        from pathtracer.camera.thin_lens import setup_camera

        setup_camera(_make_camera(look_from=(1.0, 2.0, 3.0), aperture=0.0))

        origins, _ = _sample_rays(0.3, 0.7, 100)
        assert np.allclose(origins, (1.0, 2.0, 3.0), atol=1e-6)

    def test_center_ray_aims_at_focus_point(self):
        """Test every lens sample for the image center converges on the focus point."""
        from pathtracer.camera.thin_lens import setup_camera

        setup_camera(_make_camera(aperture=2.0, focus_distance=5.0))

        origins, directions = _sample_rays(0.5, 0.5, 500)
        assert np.allclose(origins + directions, (0.0, 0.0, 0.0), atol=1e-4)

    def test_lens_samples_stay_on_disk(self):
        from pathtracer.camera.thin_lens import setup_camera

        setup_camera(_make_camera(aperture=2.0, focus_distance=5.0))

        origins, _ = _sample_rays(0.5, 0.5, 500)
        offsets = origins - np.array([0.0, 0.0, 5.0])

        # The lens lies in the (u, v) plane, here the z = 5 plane
        assert np.allclose(offsets[:, 2], 0.0, atol=1e-6)
        radii = np.linalg.norm(offsets[:, :2], axis=1)
        assert np.all(radii < 1.0 + 1e-6)
        # Depth of field actually spreads the origins
        assert radii.max() > 0.5

    def test_corner_directions(self, front_camera):
        """Test the lower-left and upper-right rays hit the viewport corners."""
        _, lower_left = _sample_rays(0.0, 0.0, 1)
        _, upper_right = _sample_rays(1.0, 1.0, 1)

        # vfov 90 and aspect 2 at focus distance 1
        assert np.allclose(lower_left[0], (-2.0, -1.0, -1.0), atol=1e-5)
        assert np.allclose(upper_right[0], (2.0, 1.0, -1.0), atol=1e-5)

    def test_jittered_rays_stay_inside_pixel(self, front_camera):
        from pathtracer.camera.thin_lens import get_ray_jittered

        num_samples = 200
        width, height = 4, 2
        directions = ti.Vector.field(3, dtype=ti.f32, shape=num_samples)

        @ti.kernel
        def sample_kernel():
            for k in range(num_samples):
                directions[k] = get_ray_jittered(1, 0, width, height).direction

        sample_kernel()
        arr = directions.to_numpy()

        # Pixel (1, 0) spans s in [0.25, 0.5) and t in [0, 0.5)
        x = arr[:, 0]
        y = arr[:, 1]
        assert np.all((x >= -1.0 - 1e-5) & (x <= 0.0 + 1e-5))
        assert np.all((y >= -1.0 - 1e-5) & (y <= 0.0 + 1e-5))
        assert x.std() > 0.0


class TestValidation:
    """Tests for degenerate camera configurations."""

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"vfov": 0.0}, "vfov"),
            ({"vfov": 180.0}, "vfov"),
            ({"aspect_ratio": 0.0}, "aspect_ratio"),
            ({"aperture": -0.1}, "aperture"),
            ({"focus_distance": 0.0}, "focus_distance"),
            ({"look_at": (0.0, 0.0, 5.0)}, "different points"),
            ({"vup": (0.0, 0.0, 1.0)}, "parallel"),
        ],
    )
    def test_degenerate_configuration_rejected(self, overrides, message):
        from pathtracer.camera.thin_lens import setup_camera

        with pytest.raises(ValueError, match=message):
            setup_camera(_make_camera(**overrides))

    def test_valid_configuration_accepted(self):
        _make_camera(vfov=179.0, aperture=0.0).validate()

    def test_narrow_vfov_gives_finite_viewport(self):
        """Test that a tiny vfov still builds a finite viewport."""
        from pathtracer.camera.thin_lens import get_camera_info, setup_camera

        setup_camera(_make_camera(vfov=math.degrees(0.01)))
        assert all(math.isfinite(c) for c in get_camera_info()["vertical"])


class TestKernelAccessors:
    def test_origin_and_basis_in_kernel(self, front_camera):
        from pathtracer.camera.thin_lens import get_camera_basis, get_camera_origin

        result = ti.Vector.field(3, dtype=ti.f32, shape=4)

        @ti.kernel
        def read_kernel():
            u, v, w = get_camera_basis()
            result[0] = get_camera_origin()
            result[1] = u
            result[2] = v
            result[3] = w

        read_kernel()
        arr = result.to_numpy()
        assert np.allclose(arr, [[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1]], atol=1e-6)
