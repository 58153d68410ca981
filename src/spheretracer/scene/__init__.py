"""Scene module for world storage and scene management.

Components:
    intersection: Sphere storage in Taichi fields and the nearest-hit query
    manager: Unified scene manager coordinating spheres and materials
    random_spheres: Demo scene factories

Scene data is organized for efficient GPU access:
    - Structure-of-Arrays layout for sphere data
    - Contiguous material ID arrays
"""

from .intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere,
    get_sphere_count,
    intersect_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneConfig,
    SceneManager,
    SphereInfo,
    get_material_type,
    get_material_type_index,
)
from .random_spheres import (
    create_random_spheres_camera,
    create_random_spheres_scene,
    create_three_spheres_scene,
)

__all__ = [
    # Intersection module
    "add_sphere",
    "clear_scene",
    "get_sphere",
    "get_sphere_count",
    "intersect_scene",
    "MAX_SPHERES",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "SceneConfig",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    # Demo scenes
    "create_random_spheres_scene",
    "create_random_spheres_camera",
    "create_three_spheres_scene",
]
