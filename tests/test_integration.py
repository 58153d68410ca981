"""Integration tests for end-to-end rendering pipeline.

This module tests the complete rendering pipeline from scene creation through
final image output. It verifies that all components work together correctly
and that the output meets basic quality criteria.

Tests are designed to be fast (low resolution, few samples) while still
exercising the full pipeline.

Note: Imports are done inside test methods to avoid Taichi initialization issues.
The conftest.py fixture initializes Taichi before tests run.
"""

from __future__ import annotations

import numpy as np
import pytest


class TestThreeSpheresIntegration:
    """Integration tests for the three spheres scene."""

    def test_end_to_end_renders_successfully(self) -> None:
        """Test the complete pipeline produces a plausible image."""
        from spheretracer.camera.thin_lens import setup_camera
        from spheretracer.core.progressive import ProgressiveRenderer
        from spheretracer.scene.random_spheres import create_three_spheres_scene

        _, camera = create_three_spheres_scene(aspect_ratio=2.0)
        setup_camera(camera)

        renderer = ProgressiveRenderer(40, 20, seed=1)
        renderer.render(num_samples=8, batch_size=4)

        image = renderer.get_image_numpy()
        assert renderer.sample_count == 8
        assert np.isfinite(image).all()
        assert (image >= 0.0).all()
        # Nothing in the scene emits or amplifies beyond the sky's 1.0
        assert image.max() <= 1.0 + 1e-5

    def test_sky_visible_at_top(self) -> None:
        """Test the top rows show the blue sky and the bottom the yellow ground."""
        from spheretracer.camera.thin_lens import setup_camera
        from spheretracer.core.progressive import ProgressiveRenderer
        from spheretracer.scene.random_spheres import create_three_spheres_scene

        _, camera = create_three_spheres_scene(aspect_ratio=2.0)
        setup_camera(camera)

        renderer = ProgressiveRenderer(40, 20, seed=2)
        renderer.render(num_samples=16)
        image = renderer.get_image_numpy()

        top = image[0].mean(axis=0)
        bottom = image[-1].mean(axis=0)
        assert top[2] > top[0]  # Blue sky
        assert bottom[0] > bottom[2]  # Yellow ground

    def test_reproducible_output_file(self, tmp_path) -> None:
        """Test two renders with one seed write identical files."""
        from spheretracer.camera.thin_lens import setup_camera
        from spheretracer.core.progressive import ProgressiveRenderer
        from spheretracer.scene.random_spheres import create_three_spheres_scene

        paths = []
        for name in ("a.ppm", "b.ppm"):
            _, camera = create_three_spheres_scene(aspect_ratio=2.0)
            setup_camera(camera)
            renderer = ProgressiveRenderer(16, 8, seed=123)
            renderer.render(num_samples=4)
            path = tmp_path / name
            renderer.save_image(path)
            paths.append(path)

        assert paths[0].read_text() == paths[1].read_text()


class TestRandomSpheresIntegration:
    """Integration tests for the random spheres cover scene."""

    def test_small_render(self) -> None:
        """Test the cover scene renders at a tiny size."""
        from spheretracer.camera.thin_lens import setup_camera
        from spheretracer.core.progressive import ProgressiveRenderer
        from spheretracer.scene.random_spheres import create_random_spheres_scene

        _, camera = create_random_spheres_scene(seed=5, aspect_ratio=32 / 18)
        setup_camera(camera)

        renderer = ProgressiveRenderer(32, 18, seed=5, max_depth=10)
        renderer.render(num_samples=2)
        image = renderer.get_image_uint8()

        assert image.shape == (18, 32, 3)
        assert image.max() > 0
        # The upper sky is brighter than the ground-dominated bottom
        assert image[0].mean() > image[-1].mean()


class TestCommandLine:
    """Tests for the example render script (without re-initializing Taichi)."""

    def test_parse_args_defaults(self) -> None:
        """Test default options."""
        from examples.render_random_spheres import parse_args

        args = parse_args([])
        assert args.width == 400
        assert args.height is None
        assert args.samples == 100
        assert args.max_depth == 50
        assert args.scene == "random"
        assert args.output == "random_spheres.ppm"

    def test_render_three_spheres_to_ppm(self, tmp_path) -> None:
        """Test the script's render function writes a P3 file."""
        from examples.render_random_spheres import render_random_spheres
        from spheretracer.preview.export import read_ppm

        output = render_random_spheres(
            width=16,
            height=8,
            num_samples=2,
            seed=1,
            scene_name="three",
            output_path=str(tmp_path / "three.ppm"),
            quiet=True,
        )

        image = read_ppm(output)
        assert image.shape == (8, 16, 3)

    def test_printed_seed_reproduces_render(self, tmp_path, capsys) -> None:
        """Test rerunning with the printed --seed writes the same file."""
        import re

        from examples.render_random_spheres import render_random_spheres

        first = render_random_spheres(
            width=16,
            height=9,
            num_samples=1,
            max_depth=5,
            scene_name="random",
            output_path=str(tmp_path / "first.ppm"),
        )
        match = re.search(r"--seed (\d+)", capsys.readouterr().out)
        assert match is not None

        second = render_random_spheres(
            width=16,
            height=9,
            num_samples=1,
            max_depth=5,
            seed=int(match.group(1)),
            scene_name="random",
            output_path=str(tmp_path / "second.ppm"),
            quiet=True,
        )

        assert first.read_text() == second.read_text()

    def test_render_from_json_scene(self, tmp_path) -> None:
        """Test a JSON scene file can be rendered to PNG."""
        from PIL import Image as PILImage

        from examples.render_random_spheres import render_random_spheres
        from spheretracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, -1000.0, 0.0), 1000.0, (0.5, 0.5, 0.5))
        scene.add_metal_sphere((0.0, 1.0, 0.0), 1.0, (0.7, 0.6, 0.5), 0.0)
        scene_path = tmp_path / "scene.json"
        scene.to_json_file(scene_path)

        output = render_random_spheres(
            width=16,
            height=9,
            num_samples=1,
            seed=2,
            scene_name=str(scene_path),
            output_path=str(tmp_path / "scene.png"),
            quiet=True,
        )

        with PILImage.open(output) as img:
            assert img.size == (16, 9)

    def test_unknown_scene_rejected(self, tmp_path) -> None:
        """Test an unknown scene name raises ValueError."""
        from examples.render_random_spheres import render_random_spheres

        with pytest.raises(ValueError, match="Unknown scene"):
            render_random_spheres(
                width=16,
                height=9,
                num_samples=1,
                scene_name=str(tmp_path / "missing.json"),
                output_path=str(tmp_path / "out.ppm"),
                quiet=True,
            )
