"""Unit tests for the Metal material module.

Tests cover:
- Exact mirror reflection with fuzz = 0
- Fuzzy reflection spread
- Absorption when the perturbed direction goes below the surface
- Material registry operations and fuzz validation
"""

import math

import numpy as np
import pytest
import taichi as ti


class TestPerfectReflection:
    """Tests for mirror reflection (fuzz = 0)."""

    @pytest.mark.parametrize(
        "incident,expected",
        [
            ((0.0, -1.0, 0.0), (0.0, 1.0, 0.0)),
            ((1.0, -1.0, 0.0), (1.0 / math.sqrt(2.0), 1.0 / math.sqrt(2.0), 0.0)),
            ((2.0, -2.0, 2.0), (1.0 / math.sqrt(3.0), 1.0 / math.sqrt(3.0), 1.0 / math.sqrt(3.0))),
        ],
    )
    def test_mirror_reflection(self, incident, expected):
        """Test the direction is the mirror of the unit incident direction."""
        from pathtracer.materials.metal import scatter_metal, vec3

        result_dir = ti.Vector.field(3, dtype=ti.f32, shape=())
        result_scatter = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel(d: vec3):
            albedo = vec3(1.0, 1.0, 1.0)
            normal = vec3(0.0, 1.0, 0.0)
            direction, _, did_scatter = scatter_metal(albedo, 0.0, d, normal)
            result_dir[None] = direction
            result_scatter[None] = did_scatter

        test_kernel(vec3(*incident))
        d = result_dir[None]
        for i in range(3):
            assert abs(d[i] - expected[i]) < 1e-5
        assert result_scatter[None] == 1

    def test_attenuation_equals_albedo(self):
        from pathtracer.materials.metal import scatter_metal, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            _, attenuation, _ = scatter_metal(
                vec3(0.7, 0.6, 0.5), 0.0, vec3(0.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0)
            )
            result[None] = attenuation

        test_kernel()
        a = result[None]
        assert abs(a[0] - 0.7) < 1e-6
        assert abs(a[1] - 0.6) < 1e-6
        assert abs(a[2] - 0.5) < 1e-6


class TestFuzzyReflection:
    """Tests for fuzzy metal reflection."""

    def test_fuzz_spreads_directions(self):
        from pathtracer.materials.metal import scatter_metal, vec3

        num_samples = 200
        directions = ti.Vector.field(3, dtype=ti.f32, shape=num_samples)

        @ti.kernel
        def test_kernel():
            for i in range(num_samples):
                direction, _, _ = scatter_metal(
                    vec3(1.0, 1.0, 1.0), 0.5, vec3(0.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0)
                )
                directions[i] = direction

        test_kernel()
        arr = directions.to_numpy()
        assert arr[:, 0].std() > 0.05
        # Offsets stay within the fuzz sphere around the mirror direction
        offsets = arr - np.array([0.0, 1.0, 0.0])
        assert np.all(np.linalg.norm(offsets, axis=1) < 0.5 + 1e-5)

    def test_grazing_fuzzy_reflection_can_absorb(self):
        """Test that perturbations below the surface are absorbed."""
        from pathtracer.materials.metal import scatter_metal, vec3

        num_samples = 500
        scattered = ti.field(dtype=ti.i32, shape=num_samples)
        dots = ti.field(dtype=ti.f32, shape=num_samples)

        @ti.kernel
        def test_kernel():
            normal = vec3(0.0, 1.0, 0.0)
            # Nearly parallel to the surface
            incident = vec3(1.0, -0.01, 0.0)
            for i in range(num_samples):
                direction, _, did_scatter = scatter_metal(
                    vec3(1.0, 1.0, 1.0), 1.0, incident, normal
                )
                scattered[i] = did_scatter
                dots[i] = ti.math.dot(direction, normal)

        test_kernel()
        s = scattered.to_numpy()
        d = dots.to_numpy()
        assert 0 < s.sum() < num_samples
        assert np.all((d > 0.0) == (s == 1))


class TestMetalRegistry:
    """Tests for the metal material registry."""

    def test_add_and_get_material(self):
        from pathtracer.materials.metal import (
            add_metal_material,
            get_metal_albedo,
            get_metal_fuzz,
        )

        idx = add_metal_material((0.8, 0.6, 0.2), fuzz=0.3)
        albedo = ti.Vector.field(3, dtype=ti.f32, shape=())
        fuzz = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(mat_idx: ti.i32):
            albedo[None] = get_metal_albedo(mat_idx)
            fuzz[None] = get_metal_fuzz(mat_idx)

        test_kernel(idx)
        assert abs(albedo[None][1] - 0.6) < 1e-6
        assert abs(fuzz[None] - 0.3) < 1e-6

    def test_default_fuzz_is_mirror(self):
        from pathtracer.materials.metal import add_metal_material, metal_fuzzes

        idx = add_metal_material((0.5, 0.5, 0.5))
        assert metal_fuzzes[idx] == 0.0

    @pytest.mark.parametrize("fuzz", [-0.1, 1.5])
    def test_fuzz_validation(self, fuzz):
        from pathtracer.materials.metal import add_metal_material

        with pytest.raises(ValueError, match="Fuzz"):
            add_metal_material((0.5, 0.5, 0.5), fuzz=fuzz)

    def test_albedo_validation(self):
        from pathtracer.materials.metal import add_metal_material

        with pytest.raises(ValueError, match="outside"):
            add_metal_material((0.5, 2.0, 0.5))

    def test_material_count(self):
        from pathtracer.materials.metal import (
            add_metal_material,
            get_metal_material_count,
        )

        add_metal_material((0.5, 0.5, 0.5))
        add_metal_material((0.5, 0.5, 0.5), 1.0)
        assert get_metal_material_count() == 2
