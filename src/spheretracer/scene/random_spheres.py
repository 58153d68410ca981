"""Random spheres scene configuration.

This module provides factory functions for the demo scenes:

- The "random spheres" cover scene: a huge ground sphere, three large
  feature spheres (glass, diffuse, metal) and a grid of small spheres with
  randomly chosen materials.
- A small "three spheres" scene (diffuse, hollow glass, metal) that renders
  quickly and is used by the integration tests.

Materials for the small spheres are drawn from fixed pools whose sizes
follow the 80% / 15% / 5% diffuse / metal / glass split of the grid. Each
small sphere first rolls its material kind and then picks a member of that
pool, so many spheres share a material.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from spheretracer.scene.random_spheres import create_random_spheres_scene
    >>> from spheretracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_random_spheres_scene(seed=42)
    >>> setup_camera(camera)
    >>> # Now render using the scene and camera
"""

import logging

import numpy as np

from spheretracer.camera.thin_lens import ThinLensCamera
from spheretracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# =============================================================================
# Scene Constants
# =============================================================================

ASPECT_RATIO = 16.0 / 9.0

GROUND_CENTER = (0.0, -1000.0, 0.0)
GROUND_RADIUS = 1000.0
GROUND_ALBEDO = (0.5, 0.5, 0.5)

GLASS_IOR = 1.5

# Large feature spheres
LARGE_RADIUS = 1.0
GLASS_SPHERE_CENTER = (0.0, 1.0, 0.0)
DIFFUSE_SPHERE_CENTER = (-4.0, 1.0, 0.0)
DIFFUSE_SPHERE_ALBEDO = (0.4, 0.2, 0.1)
METAL_SPHERE_CENTER = (4.0, 1.0, 0.0)
METAL_SPHERE_ALBEDO = (0.7, 0.6, 0.5)
METAL_SPHERE_FUZZ = 0.0

# Small grid spheres
SMALL_RADIUS = 0.2
JITTER = 0.9
# Small spheres closer than this to KEEP_CLEAR_POINT are skipped
KEEP_CLEAR_POINT = (4.0, 0.2, 0.0)
KEEP_CLEAR_DISTANCE = 0.9

DIFFUSE_FRACTION = 0.8
METAL_FRACTION = 0.15


# =============================================================================
# Scene Factories
# =============================================================================


def create_random_spheres_camera(aspect_ratio: float = ASPECT_RATIO) -> ThinLensCamera:
    """Create the camera used for the random spheres scene.

    Looks from (13, 2, 3) at the origin with a narrow 20 degree field of view,
    a small aperture and the focal plane 10 units away.
    """
    return ThinLensCamera(
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=0.1,
        focus_dist=10.0,
    )


def create_random_spheres_scene(
    seed: int | None = None,
    grid_min: int = -11,
    grid_max: int = 11,
    aspect_ratio: float = ASPECT_RATIO,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the random spheres cover scene.

    Args:
        seed: Seed for the scene layout. None gives a different layout on
            every call.
        grid_min: First grid coordinate (inclusive) for the small spheres.
        grid_max: Last grid coordinate (exclusive) for the small spheres.
        aspect_ratio: Aspect ratio for the returned camera.

    Returns:
        A tuple of (SceneManager, ThinLensCamera).

    Raises:
        ValueError: If the grid is empty.

    Example:
        >>> scene, camera = create_random_spheres_scene(seed=1)
        >>> scene.get_sphere_count() > 4
        True
    """
    if grid_max <= grid_min:
        raise ValueError(f"Empty sphere grid: grid_min={grid_min}, grid_max={grid_max}")

    rng = np.random.default_rng(seed)
    scene = SceneManager()

    # =========================================================================
    # Ground and feature spheres
    # =========================================================================

    scene.add_lambertian_sphere(GROUND_CENTER, GROUND_RADIUS, GROUND_ALBEDO)
    scene.add_dielectric_sphere(GLASS_SPHERE_CENTER, LARGE_RADIUS, GLASS_IOR)
    scene.add_lambertian_sphere(DIFFUSE_SPHERE_CENTER, LARGE_RADIUS, DIFFUSE_SPHERE_ALBEDO)
    scene.add_metal_sphere(
        METAL_SPHERE_CENTER, LARGE_RADIUS, METAL_SPHERE_ALBEDO, METAL_SPHERE_FUZZ
    )

    # =========================================================================
    # Material pools
    # =========================================================================

    num_cells = (grid_max - grid_min) ** 2
    num_diffuse = max(1, int(num_cells * DIFFUSE_FRACTION))
    num_metal = max(1, int(num_cells * METAL_FRACTION))
    num_glass = max(1, num_cells - num_diffuse - num_metal)

    diffuse_pool = [
        scene.add_lambertian_material(tuple(rng.random(3).tolist()))
        for _ in range(num_diffuse)
    ]
    metal_pool = [
        scene.add_metal_material(
            tuple((0.5 + 0.5 * rng.random(3)).tolist()),
            fuzz=float(0.5 * rng.random()),
        )
        for _ in range(num_metal)
    ]
    glass_pool = [scene.add_dielectric_material(GLASS_IOR) for _ in range(num_glass)]

    # =========================================================================
    # Small spheres
    # =========================================================================

    keep_clear = np.array(KEEP_CLEAR_POINT)
    for a in range(grid_min, grid_max):
        for b in range(grid_min, grid_max):
            choose_mat = rng.random()
            center = np.array(
                [a + JITTER * rng.random(), SMALL_RADIUS, b + JITTER * rng.random()]
            )

            if np.linalg.norm(center - keep_clear) <= KEEP_CLEAR_DISTANCE:
                continue

            if choose_mat < DIFFUSE_FRACTION:
                pool = diffuse_pool
            elif choose_mat < DIFFUSE_FRACTION + METAL_FRACTION:
                pool = metal_pool
            else:
                pool = glass_pool

            material_id = pool[int(rng.random() * len(pool))]
            scene.add_sphere(tuple(center.tolist()), SMALL_RADIUS, material_id)

    logger.info(
        "Random spheres scene: %d spheres, %d materials",
        scene.get_sphere_count(),
        scene.get_material_count(),
    )

    return scene, create_random_spheres_camera(aspect_ratio)


def create_three_spheres_scene(
    aspect_ratio: float = ASPECT_RATIO,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create a small scene of three spheres on a ground sphere.

    The left sphere is hollow glass: a glass shell whose inside is modelled by
    a slightly smaller sphere with the inverse index of refraction.

    Returns:
        A tuple of (SceneManager, ThinLensCamera). The camera is a pinhole at
        the origin looking down -z.
    """
    scene = SceneManager()

    scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, (0.8, 0.8, 0.0))
    scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.1, 0.2, 0.5))
    scene.add_dielectric_sphere((-1.0, 0.0, -1.0), 0.5, GLASS_IOR)
    scene.add_dielectric_sphere((-1.0, 0.0, -1.0), 0.4, 1.0 / GLASS_IOR)
    scene.add_metal_sphere((1.0, 0.0, -1.0), 0.5, (0.8, 0.6, 0.2), 0.0)

    camera = ThinLensCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
    )

    logger.info("Three spheres scene: %d spheres", scene.get_sphere_count())

    return scene, camera
