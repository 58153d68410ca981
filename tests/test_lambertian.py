"""Unit tests for the Lambertian material.

Tests cover:
- Scatter direction leaves the surface
- Attenuation equals albedo and the material always scatters
- Distribution of scattered directions
- Material registry and validation
"""

import numpy as np
import pytest
import taichi as ti


class TestScatterLambertian:
    """Tests for scatter_lambertian()."""

    def test_always_scatters_with_albedo(self):
        """Test every sample scatters and attenuates by the albedo."""
        from spheretracer.core.sampler import seed_stream
        from spheretracer.materials.lambertian import scatter_lambertian, vec3

        n = 1024
        did_scatter = ti.field(dtype=ti.i32, shape=n)
        attenuation = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                rng = seed_stream(ti.u32(1), i, 0)
                _, att, scattered, rng = scatter_lambertian(
                    vec3(0.8, 0.3, 0.1), vec3(0.0, 1.0, 0.0), rng
                )
                did_scatter[i] = scattered
                attenuation[i] = att

        test_kernel()
        assert (did_scatter.to_numpy() == 1).all()
        np.testing.assert_allclose(
            attenuation.to_numpy(), np.tile([0.8, 0.3, 0.1], (n, 1)), atol=1e-6
        )

    def test_direction_in_normal_hemisphere(self):
        """Test normal + point-in-ball always leaves the surface."""
        from spheretracer.core.sampler import seed_stream
        from spheretracer.materials.lambertian import scatter_lambertian, vec3

        n = 4096
        cosines = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            normal = ti.math.normalize(vec3(0.3, 0.9, -0.2))
            for i in range(n):
                rng = seed_stream(ti.u32(2), i, 0)
                direction, _, _, rng = scatter_lambertian(vec3(0.5, 0.5, 0.5), normal, rng)
                cosines[i] = ti.math.dot(ti.math.normalize(direction), normal)

        test_kernel()
        values = cosines.to_numpy()
        assert (values > 0.0).all()
        # Biased toward the normal
        assert values.mean() > 0.6

    def test_direction_not_normalized(self):
        """Test the scattered direction is normal + offset (length up to 2)."""
        from spheretracer.core.sampler import seed_stream
        from spheretracer.materials.lambertian import scatter_lambertian, vec3

        n = 1024
        lengths = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                rng = seed_stream(ti.u32(3), i, 0)
                direction, _, _, rng = scatter_lambertian(
                    vec3(0.5, 0.5, 0.5), vec3(0.0, 0.0, 1.0), rng
                )
                lengths[i] = ti.math.length(direction)

        test_kernel()
        values = lengths.to_numpy()
        assert (values < 2.0).all()
        assert values.std() > 0.05


class TestLambertianRegistry:
    """Tests for the Lambertian material registry."""

    def test_add_and_read_back(self):
        """Test materials are stored at consecutive indices."""
        from spheretracer.materials.lambertian import (
            add_lambertian_material,
            get_lambertian_albedo,
            get_lambertian_material_count,
        )

        assert add_lambertian_material((0.1, 0.2, 0.3)) == 0
        assert add_lambertian_material((0.4, 0.5, 0.6)) == 1
        assert get_lambertian_material_count() == 2

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = get_lambertian_albedo(1)

        test_kernel()
        assert abs(result[None][0] - 0.4) < 1e-6
        assert abs(result[None][2] - 0.6) < 1e-6

    @pytest.mark.parametrize("albedo", [(1.1, 0.5, 0.5), (0.5, -0.1, 0.5)])
    def test_invalid_albedo_rejected(self, albedo):
        """Test albedo components outside [0, 1] raise ValueError."""
        from spheretracer.materials.lambertian import (
            add_lambertian_material,
            get_lambertian_material_count,
        )

        with pytest.raises(ValueError, match="outside"):
            add_lambertian_material(albedo)
        assert get_lambertian_material_count() == 0

    def test_scatter_by_id(self):
        """Test scatter_lambertian_by_id uses the stored albedo."""
        from spheretracer.core.sampler import seed_stream
        from spheretracer.materials.lambertian import (
            add_lambertian_material,
            scatter_lambertian_by_id,
            vec3,
        )

        idx = add_lambertian_material((0.2, 0.4, 0.6))
        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel(material_idx: ti.i32):
            rng = seed_stream(ti.u32(4), 0, 0)
            _, att, _, rng = scatter_lambertian_by_id(material_idx, vec3(0.0, 1.0, 0.0), rng)
            result[None] = att

        test_kernel(idx)
        assert abs(result[None][1] - 0.4) < 1e-6
