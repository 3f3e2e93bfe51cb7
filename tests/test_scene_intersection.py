"""Unit tests for scene-level intersection.

Tests cover:
- SceneHitRecord with material_id
- Sphere storage, counts and validation
- Closest hit selection regardless of insertion order
- Tie-break on exactly equal distances
- Empty scene and t bounds
"""

import pytest
import taichi as ti


def _intersect(origin, direction, t_min=0.001, t_max=1e10):
    """Intersect one ray with the current scene."""
    from pathtracer.scene.intersection import intersect_scene, vec3

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    material_id = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3, lo: ti.f32, hi: ti.f32):
        rec = intersect_scene(o, d, lo, hi)
        hit[None] = rec.hit
        t_val[None] = rec.t
        material_id[None] = rec.material_id

    test_kernel(vec3(*origin), vec3(*direction), t_min, t_max)
    return hit[None], t_val[None], material_id[None]


class TestSceneHitRecordBasics:
    """Tests for SceneHitRecord dataclass."""

    def test_miss_record_has_negative_material_id(self):
        """Test that miss records have material_id = -1."""
        from pathtracer.scene.intersection import _make_miss_record

        result_hit = ti.field(dtype=ti.i32, shape=())
        result_material_id = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            rec = _make_miss_record()
            result_hit[None] = rec.hit
            result_material_id[None] = rec.material_id

        test_kernel()
        assert result_hit[None] == 0
        assert result_material_id[None] == -1


class TestSphereStorage:
    """Tests for scene sphere storage and management."""

    def test_add_sphere_returns_index(self):
        from pathtracer.scene.intersection import add_sphere, get_sphere_count, vec3

        assert add_sphere(vec3(0.0, 0.0, -1.0), 0.5, material_id=0) == 0
        assert add_sphere(vec3(1.0, 0.0, -1.0), 0.5, material_id=1) == 1
        assert get_sphere_count() == 2

    def test_clear_scene(self):
        from pathtracer.scene.intersection import (
            add_sphere,
            clear_scene,
            get_sphere_count,
            vec3,
        )

        add_sphere(vec3(0.0, 0.0, -1.0), 0.5)
        clear_scene()
        assert get_sphere_count() == 0

    @pytest.mark.parametrize("radius", [0.0, -0.5])
    def test_non_positive_radius_rejected(self, radius):
        from pathtracer.scene.intersection import add_sphere, get_sphere_count, vec3

        with pytest.raises(ValueError, match="radius"):
            add_sphere(vec3(0.0, 0.0, -1.0), radius)
        assert get_sphere_count() == 0

    def test_capacity_exceeded(self, monkeypatch):
        import pathtracer.scene.intersection as intersection

        monkeypatch.setattr(intersection, "MAX_SPHERES", 2)
        intersection.add_sphere(intersection.vec3(0.0, 0.0, 0.0), 1.0)
        intersection.add_sphere(intersection.vec3(0.0, 0.0, 0.0), 1.0)
        with pytest.raises(RuntimeError, match="Maximum number of spheres"):
            intersection.add_sphere(intersection.vec3(0.0, 0.0, 0.0), 1.0)


class TestClosestHit:
    """Tests for nearest-hit selection."""

    def test_single_sphere(self):
        from pathtracer.scene.intersection import add_sphere, vec3

        add_sphere(vec3(0.0, 0.0, -5.0), 1.0, material_id=3)
        hit, t, material_id = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))

        assert hit == 1
        assert abs(t - 4.0) < 1e-5
        assert material_id == 3

    @pytest.mark.parametrize("near_first", [True, False])
    def test_nearest_regardless_of_order(self, near_first):
        """Test the closer sphere wins whichever was inserted first."""
        from pathtracer.scene.intersection import add_sphere, vec3

        near = (vec3(0.0, 0.0, -3.0), 0.5, 1)
        far = (vec3(0.0, 0.0, -10.0), 2.0, 2)
        for center, radius, material_id in (near, far) if near_first else (far, near):
            add_sphere(center, radius, material_id)

        hit, t, material_id = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))

        assert hit == 1
        assert abs(t - 2.5) < 1e-5
        assert material_id == 1

    def test_equal_distance_first_inserted_wins(self):
        """Test that coincident spheres resolve to the first inserted one."""
        from pathtracer.scene.intersection import add_sphere, vec3

        add_sphere(vec3(0.0, 0.0, -5.0), 1.0, material_id=7)
        add_sphere(vec3(0.0, 0.0, -5.0), 1.0, material_id=8)

        hit, _, material_id = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert hit == 1
        assert material_id == 7

    def test_miss_all_spheres(self):
        from pathtracer.scene.intersection import add_sphere, vec3

        add_sphere(vec3(0.0, 0.0, -5.0), 1.0)
        add_sphere(vec3(3.0, 0.0, -5.0), 1.0)

        hit, _, material_id = _intersect((0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
        assert hit == 0
        assert material_id == -1

    def test_empty_scene(self):
        hit, _, material_id = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert hit == 0
        assert material_id == -1


class TestTBounds:
    def test_hit_rejected_by_t_max(self):
        from pathtracer.scene.intersection import add_sphere, vec3

        add_sphere(vec3(0.0, 0.0, -5.0), 1.0)
        hit, _, _ = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), t_max=3.0)
        assert hit == 0

    def test_origin_on_surface_skips_self(self):
        """Test a ray leaving a surface point does not re-hit at t = 0."""
        from pathtracer.scene.intersection import add_sphere, vec3

        add_sphere(vec3(0.0, 0.0, 0.0), 1.0)
        hit, t, _ = _intersect((0.0, 0.0, 1.0), (0.0, 0.0, -1.0))

        # Goes through the sphere and exits on the far side
        assert hit == 1
        assert abs(t - 2.0) < 1e-5
