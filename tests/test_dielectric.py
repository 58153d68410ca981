"""Unit tests for the dielectric (glass) material.

Tests cover:
- Refraction ratio selection by face
- Total internal reflection
- Schlick-weighted choice between reflection and refraction
- Random stream consumption
- Material registry, validation and lookup by slot
"""

import numpy as np
import pytest
import taichi as ti


class TestRefractionRatio:
    """Tests for refraction_ratio_for()."""

    @pytest.mark.parametrize("front_face,expected", [(1, 1.0 / 1.5), (0, 1.5)])
    def test_ratio_by_face(self, front_face, expected):
        """Test entering uses 1/ior and leaving uses ior."""
        from spheretracer.materials.dielectric import refraction_ratio_for

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(face: ti.i32):
            result[None] = refraction_ratio_for(1.5, face)

        test_kernel(front_face)
        assert abs(result[None] - expected) < 1e-6


class TestTotalInternalReflection:
    """Tests for total internal reflection inside glass."""

    def test_will_reflect_at_steep_angle_inside(self):
        """Test TIR is predicted for a steep ray leaving glass."""
        from spheretracer.materials.dielectric import will_reflect, vec3

        result = ti.field(dtype=ti.i32, shape=2)

        @ti.kernel
        def test_kernel():
            normal = vec3(0.0, 1.0, 0.0)
            # 60 degrees from the normal: sin = 0.866 > 1/1.5
            steep = vec3(ti.sqrt(3.0) / 2.0, -0.5, 0.0)
            result[0] = will_reflect(1.5, steep, normal, 0)
            # Same ray entering from outside never reflects totally
            result[1] = will_reflect(1.5, steep, normal, 1)

        test_kernel()
        assert result[0] == 1
        assert result[1] == 0

    def test_scatter_reflects_under_tir(self):
        """Test every sample reflects when refraction is impossible."""
        from spheretracer.core.sampler import seed_stream
        from spheretracer.materials.dielectric import scatter_dielectric, vec3

        n = 512
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
        did_scatter = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def test_kernel():
            normal = vec3(0.0, 1.0, 0.0)
            incident = vec3(ti.sqrt(3.0) / 2.0, -0.5, 0.0)
            for i in range(n):
                rng = seed_stream(ti.u32(1), i, 0)
                d, _, s, rng = scatter_dielectric(1.5, incident, normal, 0, rng)
                directions[i] = d
                did_scatter[i] = s

        test_kernel()
        d = directions.to_numpy()
        expected = np.array([np.sqrt(3.0) / 2.0, 0.5, 0.0])
        np.testing.assert_allclose(d, np.tile(expected, (n, 1)), atol=1e-5)
        assert (did_scatter.to_numpy() == 1).all()


class TestScatterDielectric:
    """Tests for scatter_dielectric()."""

    def test_normal_incidence_reflects_with_r0_probability(self):
        """Test the reflected fraction at normal incidence is about r0 = 0.04."""
        from spheretracer.core.sampler import seed_stream
        from spheretracer.materials.dielectric import scatter_dielectric, vec3

        n = 8192
        up = ti.field(dtype=ti.i32, shape=n)
        attenuation = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            normal = vec3(0.0, 1.0, 0.0)
            for i in range(n):
                rng = seed_stream(ti.u32(2), i, 0)
                d, att, _, rng = scatter_dielectric(1.5, vec3(0.0, -1.0, 0.0), normal, 1, rng)
                up[i] = 1 if d.y > 0.0 else 0
                attenuation[i] = att

        test_kernel()
        fraction = up.to_numpy().mean()
        assert 0.025 < fraction < 0.055
        assert (attenuation.to_numpy() == 1.0).all()

    def test_refracted_direction_bends_toward_normal(self):
        """Test a transmitted ray entering glass bends toward the normal."""
        from spheretracer.core.sampler import seed_stream
        from spheretracer.materials.dielectric import scatter_dielectric, vec3

        n = 256
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            normal = vec3(0.0, 1.0, 0.0)
            incident = vec3(1.0, -1.0, 0.0)
            for i in range(n):
                rng = seed_stream(ti.u32(3), i, 0)
                d, _, _, rng = scatter_dielectric(1.5, incident, normal, 1, rng)
                directions[i] = d

        test_kernel()
        d = directions.to_numpy()
        refracted = d[d[:, 1] < 0.0]
        assert len(refracted) > n // 2
        sin_t = np.abs(refracted[:, 0]) / np.linalg.norm(refracted, axis=1)
        np.testing.assert_allclose(sin_t, np.sin(np.pi / 4.0) / 1.5, atol=1e-4)

    def test_consumes_exactly_one_draw(self):
        """Test one random draw per call, even under total internal reflection."""
        from spheretracer.core.sampler import next_float, seed_stream
        from spheretracer.materials.dielectric import scatter_dielectric, vec3

        states = ti.field(dtype=ti.u32, shape=4)

        @ti.kernel
        def test_kernel():
            normal = vec3(0.0, 1.0, 0.0)
            start = seed_stream(ti.u32(4), 0, 0)
            _, expected = next_float(start)
            _, _, _, after_tir = scatter_dielectric(
                1.5, vec3(ti.sqrt(3.0) / 2.0, -0.5, 0.0), normal, 0, start
            )
            _, _, _, after_entry = scatter_dielectric(
                1.5, vec3(0.0, -1.0, 0.0), normal, 1, start
            )
            states[0] = expected
            states[1] = after_tir
            states[2] = after_entry

        test_kernel()
        assert states[1] == states[0]
        assert states[2] == states[0]

    def test_fresnel_reflectance_grazing(self):
        """Test reflectance grows toward 1 at grazing incidence."""
        from spheretracer.materials.dielectric import fresnel_reflectance, vec3

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            normal = vec3(0.0, 1.0, 0.0)
            result[0] = fresnel_reflectance(1.5, vec3(0.0, -1.0, 0.0), normal, 1)
            result[1] = fresnel_reflectance(1.5, vec3(1.0, -0.01, 0.0), normal, 1)

        test_kernel()
        assert abs(result[0] - 0.04) < 1e-3
        assert result[1] > 0.9


class TestDielectricRegistry:
    """Tests for the dielectric material registry."""

    def test_add_and_read_back(self):
        """Test IORs are stored, including values below 1."""
        from spheretracer.materials.dielectric import (
            add_dielectric_material,
            get_dielectric_ior,
            get_dielectric_material_count,
        )

        add_dielectric_material(1.5)
        add_dielectric_material(1.0 / 1.5)
        assert get_dielectric_material_count() == 2

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = get_dielectric_ior(1)

        test_kernel()
        assert abs(result[None] - 1.0 / 1.5) < 1e-6

    @pytest.mark.parametrize("ior", [0.0, -1.5])
    def test_non_positive_ior_rejected(self, ior):
        """Test non-positive refractive index raises ValueError."""
        from spheretracer.materials.dielectric import add_dielectric_material

        with pytest.raises(ValueError, match="must be positive"):
            add_dielectric_material(ior)

    def test_scatter_by_id(self):
        """Test scatter_dielectric_by_id refracts with the stored index."""
        from spheretracer.core.sampler import seed_stream
        from spheretracer.materials.dielectric import (
            add_dielectric_material,
            scatter_dielectric_by_id,
            vec3,
        )

        add_dielectric_material(2.4)
        idx = add_dielectric_material(1.5)

        n = 256
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel(material_idx: ti.i32):
            normal = vec3(0.0, 1.0, 0.0)
            incident = vec3(1.0, -1.0, 0.0)
            for i in range(n):
                rng = seed_stream(ti.u32(9), i, 0)
                d, _, _, rng = scatter_dielectric_by_id(material_idx, incident, normal, 1, rng)
                directions[i] = d

        test_kernel(idx)
        d = directions.to_numpy()
        refracted = d[d[:, 1] < 0.0]
        assert len(refracted) > n // 2
        sin_t = np.abs(refracted[:, 0]) / np.linalg.norm(refracted, axis=1)
        np.testing.assert_allclose(sin_t, np.sin(np.pi / 4.0) / 1.5, atol=1e-4)
