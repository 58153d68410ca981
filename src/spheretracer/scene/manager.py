"""Scene building: material IDs, spheres and JSON scene files.

Each material family keeps its own parameter registry (albedos, fuzz
values, refractive indices). Spheres instead carry a single scene-wide
material ID, and the integrator resolves it to a family and a slot in that
family's registry. SceneManager hands out those IDs, keeps a host-side copy
of everything it has added, and reads and writes the scene description.

Example:
    >>> scene = SceneManager()
    >>> ground = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
    >>> scene.add_sphere(center=(0, -1000, 0), radius=1000, material_id=ground)
    >>> scene.add_dielectric_sphere((0, 1, 0), 1.0, ior=1.5)
"""

import json
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any

import taichi as ti
import taichi.math as tm

from spheretracer.materials.dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
)
from spheretracer.materials.lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
)
from spheretracer.materials.metal import (
    add_metal_material,
    clear_metal_materials,
)
from spheretracer.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)

logger = logging.getLogger(__name__)

vec3 = tm.vec3


class MaterialType(IntEnum):
    """Material family tag stored per material ID and switched on in kernels."""

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


# Each family registry holds 512 entries
MAX_MATERIALS = 1536

# Material ID -> MaterialType value
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# Material ID -> slot in that family's registry
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Look up the family of a material ID inside a kernel.

    Returns:
        A MaterialType value, or -1 when the ID was never registered.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Look up the family registry slot of a material ID (-1 if unknown)."""
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Host-side record of one registered material.

    Attributes:
        material_id: Scene-wide ID that spheres refer to.
        material_type: Which family registry holds the parameters.
        type_index: Slot in that registry.
        params: Parameters as passed in, used for serialization.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Host-side record of one sphere."""

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class SceneConfig:
    """Plain-data scene description, the shape of a scene JSON file.

    Attributes:
        materials: One dict per material with a "type" key ("lambertian",
            "metal" or "dielectric") and that family's parameters.
        spheres: One dict per sphere with "center", "radius" and a
            "material_id" indexing into ``materials``.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)


def _as_triple(values: Any, name: str) -> tuple[float, float, float]:
    if len(values) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


def _parse_material(mat_config: dict[str, Any]) -> tuple[MaterialType, dict[str, Any]]:
    """Normalize one material entry to (type, keyword arguments)."""
    mat_type = str(mat_config.get("type", "")).lower()
    if mat_type == "lambertian":
        albedo = _as_triple(mat_config.get("albedo", [0.5, 0.5, 0.5]), "albedo")
        return MaterialType.LAMBERTIAN, {"albedo": albedo}
    if mat_type == "metal":
        albedo = _as_triple(mat_config.get("albedo", [0.8, 0.8, 0.8]), "albedo")
        return MaterialType.METAL, {"albedo": albedo, "fuzz": float(mat_config.get("fuzz", 0.0))}
    if mat_type == "dielectric":
        return MaterialType.DIELECTRIC, {"ior": float(mat_config.get("ior", 1.5))}
    raise ValueError(f"Unknown material type: {mat_type!r}")


def _parse_sphere(sphere_config: dict[str, Any], num_mats: int) -> tuple[tuple, float, int]:
    """Normalize one sphere entry to (center, radius, material_id)."""
    center = _as_triple(sphere_config.get("center", [0.0, 0.0, 0.0]), "center")
    radius = float(sphere_config.get("radius", 1.0))
    material_id = int(sphere_config.get("material_id", 0))
    if radius <= 0.0:
        raise ValueError(f"Sphere radius = {radius} must be positive")
    if not 0 <= material_id < num_mats:
        raise ValueError(f"Invalid material_id: {material_id}")
    return center, radius, material_id


class SceneManager:
    """Builds the one global scene the kernels render.

    Sphere and material storage lives in module-level Taichi fields, so
    there is only ever one scene. Constructing a SceneManager empties it.

    Attributes:
        materials: MaterialInfo per material ID, in ID order.
        spheres: SphereInfo per sphere, in insertion order.

    Example:
        >>> scene = SceneManager()
        >>> glass = scene.add_dielectric_material(ior=1.5)
        >>> scene.add_sphere((0, 1, 0), 1.0, glass)
        >>> scene.add_sphere((0, 1, 0), -0.9, glass)  # raises ValueError
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.clear()

    def clear(self) -> None:
        """Remove every sphere and material, host and device side."""
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.spheres.clear()

    # Materials

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(MaterialInfo(material_id, material_type, type_index, params))
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Register a diffuse material and return its material ID.

        Raises:
            ValueError: If an albedo channel is outside [0, 1].
            RuntimeError: If a registry is full.
        """
        type_index = add_lambertian_material(albedo)
        return self._register_material(
            MaterialType.LAMBERTIAN, type_index, {"albedo": tuple(albedo)}
        )

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Register a metal material and return its material ID.

        Args:
            albedo: Reflectance per channel, each in [0, 1].
            fuzz: Blur of the mirror direction. Values above 1 are rejected
                by the registry rather than clamped.

        Raises:
            ValueError: If albedo or fuzz is out of range.
            RuntimeError: If a registry is full.
        """
        type_index = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": tuple(albedo), "fuzz": fuzz}
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Register a clear refractive material and return its material ID.

        An ior below 1 models the inside of a hollow shell, e.g. 1/1.5 for
        an air bubble in glass.

        Raises:
            ValueError: If ior is not positive.
            RuntimeError: If a registry is full.
        """
        type_index = add_dielectric_material(ior)
        return self._register_material(MaterialType.DIELECTRIC, type_index, {"ior": ior})

    def get_material_count(self) -> int:
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Return the record for a material ID, or None if it is unknown."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Host-side counterpart of get_material_type()."""
        info = self.get_material_info(material_id)
        return None if info is None else info.material_type

    # Spheres

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere using an already registered material.

        Returns:
            The sphere's index in the scene.

        Raises:
            ValueError: If radius is not positive or material_id is unknown.
            RuntimeError: If the scene is full.
        """
        if radius <= 0.0:
            raise ValueError(f"Sphere radius = {radius} must be positive")
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

        sphere_index = add_sphere(vec3(center[0], center[1], center[2]), radius, material_id)
        self.spheres.append(SphereInfo(sphere_index, tuple(center), radius, material_id))
        return sphere_index

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Add a sphere with its own diffuse material.

        Returns:
            (sphere_index, material_id)
        """
        material_id = self.add_lambertian_material(albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        """Add a sphere with its own metal material."""
        material_id = self.add_metal_material(albedo, fuzz)
        return self.add_sphere(center, radius, material_id), material_id

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        ior: float = 1.5,
    ) -> tuple[int, int]:
        """Add a sphere with its own dielectric material."""
        material_id = self.add_dielectric_material(ior)
        return self.add_sphere(center, radius, material_id), material_id

    def get_sphere_count(self) -> int:
        return get_sphere_count()

    @staticmethod
    def get_max_spheres() -> int:
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS

    # Scene files

    def to_config(self) -> SceneConfig:
        """Describe the current scene as plain data."""
        config = SceneConfig()
        for mat in self.materials:
            mat_config: dict[str, Any] = {"type": mat.material_type.name.lower()}
            for key, value in mat.params.items():
                mat_config[key] = list(value) if isinstance(value, tuple) else value
            config.materials.append(mat_config)

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )
        return config

    def from_config(self, config: SceneConfig) -> None:
        """Replace the current scene with the one described by ``config``.

        The current scene is dropped first. If any entry is rejected, the
        entries loaded before it are cleared again, so a failed load leaves
        an empty scene rather than part of the new one.

        Raises:
            ValueError: If an entry is malformed or out of range.
            RuntimeError: If the scene does not fit in the registries.
        """
        self.clear()
        adders = {
            MaterialType.LAMBERTIAN: self.add_lambertian_material,
            MaterialType.METAL: self.add_metal_material,
            MaterialType.DIELECTRIC: self.add_dielectric_material,
        }
        try:
            for mat_config in config.materials:
                mat_type, kwargs = _parse_material(mat_config)
                adders[mat_type](**kwargs)
            for sphere_config in config.spheres:
                center, radius, material_id = _parse_sphere(sphere_config, len(self.materials))
                self.add_sphere(center, radius, material_id)
        except (ValueError, RuntimeError):
            self.clear()
            raise

        logger.info(
            "Loaded scene: %d materials, %d spheres",
            len(self.materials),
            len(self.spheres),
        )

    def to_dict(self) -> dict[str, Any]:
        config = self.to_config()
        return {"materials": config.materials, "spheres": config.spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dict with "materials" and "spheres" lists."""
        self.from_config(
            SceneConfig(
                materials=data.get("materials", []),
                spheres=data.get("spheres", []),
            )
        )

    def to_json_file(self, filepath: str | Path) -> None:
        Path(filepath).write_text(json.dumps(self.to_dict(), indent=2))

    @classmethod
    def from_json_file(cls, filepath: str | Path) -> "SceneManager":
        """Build a scene from a file written by to_json_file().

        Raises:
            ValueError: If the file does not describe a valid scene.
        """
        data = json.loads(Path(filepath).read_text())
        if not isinstance(data, dict):
            raise ValueError(f"Scene file {filepath} must contain a JSON object")

        scene = cls()
        scene.from_dict(data)
        return scene
