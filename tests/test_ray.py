"""Unit tests for the Ray data structure."""

import taichi as ti


class TestRayBasics:
    """Tests for Ray creation and evaluation."""

    def test_ray_at_origin(self):
        """Test that ray_at(0) returns the origin."""
        from pathtracer.core.ray import Ray, ray_at, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=vec3(1.0, 2.0, 3.0), direction=vec3(0.0, 0.0, -1.0))
            result[None] = ray_at(ray, 0.0)

        test_kernel()
        p = result[None]
        assert abs(p[0] - 1.0) < 1e-6
        assert abs(p[1] - 2.0) < 1e-6
        assert abs(p[2] - 3.0) < 1e-6

    def test_ray_at_with_unnormalized_direction(self):
        """Test that ray_at scales the direction as given."""
        from pathtracer.core.ray import make_ray, ray_at, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 2.0, 0.0))
            result[None] = ray_at(ray, 2.5)

        test_kernel()
        p = result[None]
        assert abs(p[0]) < 1e-6
        assert abs(p[1] - 5.0) < 1e-6
        assert abs(p[2]) < 1e-6

    def test_ray_at_negative_t(self):
        """Test that negative t goes behind the origin."""
        from pathtracer.core.ray import make_ray, ray_at, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(1.0, 0.0, 0.0), vec3(1.0, 0.0, 0.0))
            result[None] = ray_at(ray, -3.0)

        test_kernel()
        assert abs(result[None][0] + 2.0) < 1e-6
