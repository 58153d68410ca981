"""Geometry module for the sphere primitive.

Intersection routines are Taichi functions (@ti.func) returning a HitRecord:
    rec = hit_sphere(ray, sphere, t_min, t_max)
"""

from .sphere import HitRecord, Sphere, hit_sphere, make_miss_record, make_sphere

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "make_sphere",
    "make_miss_record",
]
