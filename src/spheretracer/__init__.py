"""Taichi-based stochastic path tracer for scenes of spheres.

This package renders images of spheres lit by a sky gradient, with support for:
- Monte Carlo path tracing with a bounce budget
- Lambertian, metal and dielectric (glass) materials
- A thin-lens camera with depth of field
- Progressive sample accumulation with reproducible per-sample random streams
- Plain-text PPM and Pillow image output

Subpackages:
    core: Vector/ray utilities, random streams, integrator and rendering loop
    geometry: Sphere primitive and intersection
    materials: Scattering laws and material registries
    scene: World storage, scene management and demo scenes
    camera: Thin-lens camera with ray generation
    preview: Image export and preview utilities
"""

__version__ = "0.1.0"
