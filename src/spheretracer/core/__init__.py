"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    ray: Vector, point, color and ray utilities
    sampler: Explicit random streams and geometric sampling
    integrator: Path tracing and the render target
    progressive: Sample accumulation driver

All compute-intensive operations use Taichi kernels for GPU acceleration.
"""

from .ray import (
    Ray,
    color3,
    cross,
    dot,
    gamma_correct,
    length,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    point3,
    ray_at,
    reflect,
    refract,
    schlick_reflectance,
    vec3,
)
from .sampler import (
    make_seed,
    next_float,
    random_in_unit_disk,
    random_in_unit_sphere,
    seed_stream,
    uniform,
)

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from spheretracer.core.integrator or spheretracer.core.progressive.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "point3",
    "color3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "refract",
    "schlick_reflectance",
    "near_zero",
    "gamma_correct",
    "seed_stream",
    "next_float",
    "uniform",
    "random_in_unit_sphere",
    "random_in_unit_disk",
    "make_seed",
]
