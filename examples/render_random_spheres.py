#!/usr/bin/env python3
"""Render the random spheres scene.

This script renders the random spheres cover scene (or a small three-sphere
scene, or a scene loaded from JSON) with progressive refinement and writes
the result as a plain-text PPM or any image format Pillow supports.

Usage:
    python -m examples.render_random_spheres [options]

Options:
    --width WIDTH         Image width in pixels (default: 400)
    --height HEIGHT       Image height in pixels (default: width / (16/9))
    --samples SAMPLES     Number of samples per pixel (default: 100)
    --max-depth DEPTH     Bounce budget per path (default: 50)
    --seed SEED           Seed for the scene layout and the render
    --scene SCENE         "random", "three" or a path to a JSON scene file
    --output OUTPUT       Output file path (default: random_spheres.ppm)
    --batch-size SIZE     Samples per progress update (default: 10)
    --cpu                 Force the CPU backend
    --quiet               Suppress progress output
    --verbose             Enable debug logging

Example:
    python -m examples.render_random_spheres --width 200 --samples 20 --seed 7
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti

DEFAULT_ASPECT_RATIO = 16.0 / 9.0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the random spheres scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=400,
        help="Image width in pixels (default: 400)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=None,
        help="Image height in pixels (default: width / (16/9))",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=100,
        help="Number of samples per pixel (default: 100)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=50,
        help="Bounce budget per path (default: 50)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the scene layout and the render (default: random)",
    )
    parser.add_argument(
        "--scene",
        type=str,
        default="random",
        help='"random", "three" or a path to a JSON scene file (default: random)',
    )
    parser.add_argument(
        "--output",
        type=str,
        default="random_spheres.ppm",
        help="Output file path, .ppm or an image suffix (default: random_spheres.ppm)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=10,
        help="Samples per progress update (default: 10)",
    )
    parser.add_argument(
        "--cpu",
        action="store_true",
        help="Force the CPU backend",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def build_scene(scene_name: str, seed: int | None, aspect_ratio: float):
    """Build the requested scene and return (scene, camera)."""
    from spheretracer.scene.manager import SceneManager
    from spheretracer.scene.random_spheres import (
        create_random_spheres_camera,
        create_random_spheres_scene,
        create_three_spheres_scene,
    )

    if scene_name == "random":
        return create_random_spheres_scene(seed=seed, aspect_ratio=aspect_ratio)
    if scene_name == "three":
        return create_three_spheres_scene(aspect_ratio=aspect_ratio)

    scene_path = Path(scene_name)
    if not scene_path.is_file():
        raise ValueError(f"Unknown scene {scene_name!r}: not 'random', 'three' or a file")
    return SceneManager.from_json_file(scene_path), create_random_spheres_camera(aspect_ratio)


def render_random_spheres(
    width: int = 400,
    height: int | None = None,
    num_samples: int = 100,
    max_depth: int = 50,
    seed: int | None = None,
    scene_name: str = "random",
    output_path: str = "random_spheres.ppm",
    batch_size: int = 10,
    quiet: bool = False,
) -> Path:
    """Render a scene and save it to file.

    Args:
        width: Image width in pixels.
        height: Image height in pixels. None derives it from the 16:9 aspect.
        num_samples: Number of samples per pixel.
        max_depth: Bounce budget per path.
        seed: Seed for the scene layout and the render.
        scene_name: "random", "three" or a path to a JSON scene file.
        output_path: Output file path (.ppm or an image suffix).
        batch_size: Number of samples to render between progress updates.
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from spheretracer.camera.thin_lens import setup_camera
    from spheretracer.core.progressive import ProgressiveRenderer
    from spheretracer.core.sampler import make_seed

    if height is None:
        height = int(width / DEFAULT_ASPECT_RATIO)
    if num_samples <= 0:
        raise ValueError(f"Number of samples {num_samples} must be positive")
    if seed is None:
        # One drawn seed drives both the layout and the render
        seed = make_seed(None)

    if not quiet:
        print(f"Creating {scene_name} scene ({width}x{height})...")

    scene, camera = build_scene(scene_name, seed, width / height)
    setup_camera(camera)

    renderer = ProgressiveRenderer(width, height, seed=seed, max_depth=max_depth)

    if not quiet:
        print(
            f"Rendering {scene.get_sphere_count()} spheres, "
            f"{num_samples} samples per pixel (--seed {renderer.seed})..."
        )

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            samples_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} samples "
                f"({progress_pct:.1f}%) - {samples_per_sec:.1f} spp/s",
                end="",
                flush=True,
            )

    renderer.render(
        num_samples=num_samples,
        batch_size=batch_size,
        callback=progress_callback,
    )

    if not quiet:
        print()  # Newline after progress

    output_file = Path(output_path)
    renderer.save_image(output_file)

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    # Initialize Taichi
    # ti.gpu falls back to the CPU backend when no GPU is available
    arch = ti.cpu if args.cpu else ti.gpu
    ti.init(arch=arch)
    if not args.quiet:
        print(f"Using {'CPU' if args.cpu else 'GPU'} backend")

    try:
        render_random_spheres(
            width=args.width,
            height=args.height,
            num_samples=args.samples,
            max_depth=args.max_depth,
            seed=args.seed,
            scene_name=args.scene,
            output_path=args.output,
            batch_size=args.batch_size,
            quiet=args.quiet,
        )
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
