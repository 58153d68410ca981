"""Explicit random streams for Monte Carlo sampling.

Every function here that consumes randomness takes the stream state as an
argument and returns the advanced state as the last element of its result.
The state is a single ``ti.u32``; each pixel sample derives its own stream
from the render seed, so parallel threads never share a generator and a
render is reproducible for a fixed seed.

The generator steps a 32-bit linear congruential state and whitens the output
with the PCG RXS-M-XS permutation. Floats carry 24 random mantissa bits and
lie in [0, 1).

Example:
    >>> @ti.kernel
    ... def draw() -> ti.f32:
    ...     rng = seed_stream(ti.u32(7), 0, 0)
    ...     x, rng = next_float(rng)
    ...     return x
"""

import numpy as np
import taichi as ti

from spheretracer.core.ray import length_squared, vec3

# 2^-24, maps the top 24 bits of a 32-bit word onto [0, 1)
INV_2_POW_24 = 1.0 / 16777216.0


@ti.func
def _step(state: ti.u32) -> ti.u32:
    """Advance the LCG state (Numerical Recipes constants)."""
    return state * ti.u32(1664525) + ti.u32(1013904223)


@ti.func
def _permute(state: ti.u32) -> ti.u32:
    """PCG RXS-M-XS output permutation."""
    word = ((state >> ((state >> ti.u32(28)) + ti.u32(4))) ^ state) * ti.u32(277803737)
    return (word >> ti.u32(22)) ^ word


@ti.func
def seed_stream(seed: ti.u32, stream_id: ti.i32, sample_index: ti.i32) -> ti.u32:
    """Derive an independent stream for one (seed, stream, sample) triple.

    Args:
        seed: The render seed.
        stream_id: Identifies the execution context, e.g. the pixel index.
        sample_index: The sample number within the stream.

    Returns:
        The initial stream state.
    """
    h = _permute(_step(seed))
    h = _permute(_step(h ^ ti.cast(stream_id, ti.u32)))
    h = _permute(_step(h ^ ti.cast(sample_index, ti.u32)))
    return h


@ti.func
def next_float(rng: ti.u32):
    """Draw a uniform float in [0, 1).

    Args:
        rng: The stream state.

    Returns:
        A tuple of (value, rng).
    """
    state = _step(rng)
    value = ti.cast(_permute(state) >> ti.u32(8), ti.f32) * INV_2_POW_24
    return value, state


@ti.func
def uniform(low: ti.f32, high: ti.f32, rng: ti.u32):
    """Draw a uniform float in [low, high).

    Returns:
        A tuple of (value, rng).
    """
    x, state = next_float(rng)
    return low + (high - low) * x, state


@ti.func
def random_in_unit_sphere(rng: ti.u32):
    """Generate a uniformly distributed point inside the unit sphere.

    Rejection sampling from the cube [-1, 1]^3, uncapped. The expected number
    of candidates is 6 / pi (about 1.9).

    Returns:
        A tuple of (point, rng) with length_squared(point) < 1.
    """
    state = rng
    p = vec3(1.0, 1.0, 1.0)
    while length_squared(p) >= 1.0:
        x, state = uniform(-1.0, 1.0, state)
        y, state = uniform(-1.0, 1.0, state)
        z, state = uniform(-1.0, 1.0, state)
        p = vec3(x, y, z)
    return p, state


@ti.func
def random_in_unit_disk(rng: ti.u32):
    """Generate a uniformly distributed point inside the unit disk (z = 0).

    Rejection sampling from the square [-1, 1]^2, uncapped. The expected
    number of candidates is 4 / pi (about 1.27).

    Returns:
        A tuple of (point, rng) with x^2 + y^2 < 1.
    """
    state = rng
    p = vec3(1.0, 1.0, 0.0)
    while p.x * p.x + p.y * p.y >= 1.0:
        x, state = uniform(-1.0, 1.0, state)
        y, state = uniform(-1.0, 1.0, state)
        p = vec3(x, y, 0.0)
    return p, state


def make_seed(seed: int | None = None) -> int:
    """Turn an optional user seed into a 32-bit render seed.

    Args:
        seed: Any non-negative integer, or None for fresh OS entropy.

    Returns:
        An integer in [0, 2^32).
    """
    sequence = np.random.SeedSequence(seed)
    return int(sequence.generate_state(1, dtype=np.uint32)[0])
