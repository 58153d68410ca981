"""Sphere primitive with ray-sphere intersection.

This module provides the Sphere and HitRecord dataclasses and the ray/sphere
intersection test used by the world's nearest-hit query.

The intersection solves the half-b quadratic and accepts the nearer root
first, falling back to the farther root when the nearer one lies outside the
query interval. The stored normal always opposes the incoming ray; materials
rely on that orientation together with the front_face flag.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from spheretracer.geometry.sphere import Sphere, HitRecord, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5, material_id=0)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from spheretracer.core.ray import Ray, point3, ray_at, vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (point3).
        radius: The radius of the sphere (positive float).
        material_id: The unified material ID shared with other spheres.
    """

    center: point3
    radius: ti.f32
    material_id: ti.i32


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: Whether the ray intersected the primitive (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
            Only valid if hit == 1.
        point: The 3D point where the ray intersected the surface.
            Only valid if hit == 1.
        normal: The unit surface normal at the intersection point, flipped so
            that it always points against the incoming ray.
            Only valid if hit == 1.
        front_face: Whether the ray hit the outside (1) or inside (0) of the
            surface. Only valid if hit == 1.
        material_id: The material of the struck primitive, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: point3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32


@ti.func
def make_miss_record() -> HitRecord:
    """Create a HitRecord indicating no intersection."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=point3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
    )


@ti.func
def hit_sphere(
    ray: Ray,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection within [t_min, t_max].

    The ray-sphere intersection is found by solving:
        |origin + t * direction - center|^2 = radius^2

    which expands to a*t^2 + 2*h*t + c = 0 with:
        a = dot(direction, direction)
        h = dot(direction, origin - center)  (half of the usual b)
        c = dot(oc, oc) - radius^2

    Args:
        ray: The ray to test (direction need not be normalized).
        sphere: The sphere to test intersection against.
        t_min: Smallest accepted t (avoids self-intersection).
        t_max: Largest accepted t (closest hit found so far).

    Returns:
        A HitRecord; check the hit field to determine if intersection occurred.
    """
    oc = ray.origin - sphere.center
    a = tm.dot(ray.direction, ray.direction)
    h = tm.dot(ray.direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = h * h - a * c

    # Taichi requires outer-scope declaration
    result = make_miss_record()

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)

        t = (-h - sqrt_d) / a
        valid = t_min <= t and t <= t_max

        if not valid:
            t = (-h + sqrt_d) / a
            valid = t_min <= t and t <= t_max

        if valid:
            hit_point = ray_at(ray, t)
            outward_normal = (hit_point - sphere.center) / sphere.radius

            is_front_face = 0
            hit_normal = -outward_normal
            if tm.dot(ray.direction, outward_normal) < 0.0:
                is_front_face = 1
                hit_normal = outward_normal

            result = HitRecord(
                hit=1,
                t=t,
                point=hit_point,
                normal=hit_normal,
                front_face=is_front_face,
                material_id=sphere.material_id,
            )

    return result


@ti.func
def make_sphere(center: point3, radius: ti.f32, material_id: ti.i32) -> Sphere:
    """Create a sphere from center, radius and material ID."""
    return Sphere(center=center, radius=radius, material_id=material_id)
