"""Path tracing integrator for Monte Carlo light transport.

This module implements the main rendering kernel: recursive path tracing over
a world of spheres lit only by a sky gradient, with per-material scattering
and averaging of many jittered samples per pixel.

The recursive estimator

    trace(ray, depth) = black                                   if depth == 0
                      = attenuation * trace(scattered, depth-1) on scatter
                      = black                                   on absorption
                      = sky(ray.direction)                      on miss

is evaluated as a loop that carries the product of attenuations (the path
throughput), since Taichi functions cannot recurse.

Key features:
    - Closed material dispatch (Lambertian, Metal, Dielectric)
    - Depth budget truncation (an energy cut-off, not a physical event)
    - Self-intersection avoidance through t_min = 0.001
    - Explicit per-sample random streams; renders are reproducible per seed

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from spheretracer.core.integrator import render_image, setup_render_target
    >>> from spheretracer.scene.random_spheres import create_random_spheres_scene
    >>> from spheretracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_random_spheres_scene(seed=1)
    >>> setup_camera(camera)
    >>> setup_render_target(400, 225)
    >>> render_image(num_samples=100, seed=7)
"""

import logging

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from spheretracer.camera.thin_lens import get_ray_jittered
from spheretracer.core.ray import Ray, color3, make_ray, normalize, vec3
from spheretracer.core.sampler import seed_stream
from spheretracer.geometry.sphere import HitRecord
from spheretracer.materials.dielectric import scatter_dielectric_by_id
from spheretracer.materials.lambertian import scatter_lambertian_by_id
from spheretracer.materials.metal import scatter_metal_by_id
from spheretracer.scene.intersection import intersect_scene
from spheretracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Rendering Constants
# =============================================================================

# Default bounce budget per path
MAX_DEPTH = 50

# Default samples per pixel
DEFAULT_SAMPLES = 100

# Nearest accepted hit along a bounced ray, avoids "shadow acne"
T_MIN = 0.001
T_MAX = tm.inf

# Sky gradient end points (horizon to zenith)
SKY_WHITE = color3(1.0, 1.0, 1.0)
SKY_BLUE = color3(0.5, 0.7, 1.0)

# Largest quantized value is floor(255.999 * 1.0) = 255
QUANTIZE_SCALE = 255.999

# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Smallest size for which (width - 1) and (height - 1) are valid divisors
MIN_IMAGE_SIZE = 2

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Sum of all sample colors per pixel (preallocated to max size)
_color_sum = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Sample count per pixel (preallocated to max size)
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffers.

    Sets the active image dimensions and clears the buffers.
    The buffers are preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT
    to avoid Taichi kernel recompilation issues.

    Args:
        width: Image width in pixels (2 to MAX_IMAGE_WIDTH).
        height: Image height in pixels (2 to MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are outside the supported range.
    """
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )
    if width < MIN_IMAGE_SIZE or height < MIN_IMAGE_SIZE:
        raise ValueError(
            f"Image dimensions ({width}x{height}) are below the minimum "
            f"({MIN_IMAGE_SIZE}x{MIN_IMAGE_SIZE})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()
    logger.info("Render target set up: %dx%d", width, height)


def clear_render_target() -> None:
    """Clear the render target buffers to zero."""
    _color_sum.fill(0.0)
    _sample_count.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions.

    Returns:
        Tuple of (width, height).
    """
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def get_total_samples() -> int:
    """Get the number of samples accumulated per pixel.

    Every pixel receives the same number of samples, so pixel (0, 0) is
    representative.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    return int(_sample_count[0, 0])


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def scatter_material(material_id: ti.i32, ray: Ray, rec: HitRecord, rng: ti.u32):
    """Dispatch to the scattering law of the struck material.

    A single switch over the closed set of material variants.

    Args:
        material_id: The unified material ID.
        ray: The incoming ray.
        rec: The hit record of the intersection.
        rng: The random stream state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, rng) where:
        - scattered_direction: The new ray direction (not normalized).
        - attenuation: The color attenuation for this bounce.
        - did_scatter: 1 if the ray scattered, 0 if absorbed.
        - rng: The advanced stream state.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = color3(0.0, 0.0, 0.0)
    did_scatter = 0
    state = rng

    if mat_type == int(MaterialType.LAMBERTIAN):
        scattered_direction, attenuation, did_scatter, state = scatter_lambertian_by_id(
            type_index, rec.normal, state
        )

    elif mat_type == int(MaterialType.METAL):
        scattered_direction, attenuation, did_scatter, state = scatter_metal_by_id(
            type_index, ray.direction, rec.normal, state
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        scattered_direction, attenuation, did_scatter, state = scatter_dielectric_by_id(
            type_index, ray.direction, rec.normal, rec.front_face, state
        )

    return scattered_direction, attenuation, did_scatter, state


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def background_color(direction: vec3) -> color3:
    """Sky gradient seen by rays that escape the scene.

    Linear blend from white at the nadir-facing end to sky blue at the zenith,
    driven by t = (unit_y + 1) / 2.
    """
    t = 0.5 * (normalize(direction).y + 1.0)
    return (1.0 - t) * SKY_WHITE + t * SKY_BLUE


@ti.func
def trace_ray(ray: Ray, max_depth: ti.i32, rng: ti.u32):
    """Estimate the radiance arriving along a ray.

    Args:
        ray: The ray to trace (direction need not be normalized).
        max_depth: The bounce budget. A budget of 0 returns black.
        rng: The random stream state.

    Returns:
        A tuple of (color, rng).
    """
    origin = ray.origin
    direction = ray.direction
    state = rng

    radiance = color3(0.0, 0.0, 0.0)
    throughput = color3(1.0, 1.0, 1.0)

    # Active flag for path continuation (single exit point per Taichi func)
    active = 1

    for _ in range(max_depth):
        if active == 1:
            current = make_ray(origin, direction)
            rec = intersect_scene(current, T_MIN, T_MAX)

            if rec.hit == 0:
                radiance = throughput * background_color(direction)
                active = 0
            else:
                scattered_direction, attenuation, did_scatter, state = scatter_material(
                    rec.material_id, current, rec, state
                )

                if did_scatter == 0:
                    # Ray absorbed
                    active = 0
                else:
                    throughput *= attenuation
                    origin = rec.point
                    direction = scattered_direction

    # A path still active here ran out of budget and contributes black
    return radiance, state


@ti.func
def render_sample_impl(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    seed: ti.u32,
    sample_index: ti.i32,
    max_depth: ti.i32,
) -> color3:
    """Render one jittered sample for a pixel.

    The pixel's random stream is derived from (seed, pixel index, sample
    index), so the result does not depend on how pixels are scheduled across
    threads.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.
        seed: The render seed.
        sample_index: The index of this sample within the pixel.
        max_depth: The bounce budget.

    Returns:
        The radiance estimate (RGB) for this sample.
    """
    rng = seed_stream(seed, pixel_j * width + pixel_i, sample_index)
    ray, rng = get_ray_jittered(pixel_i, pixel_j, width, height, rng)
    color, rng = trace_ray(ray, max_depth, rng)
    return color


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_one_spp(
    width: ti.i32,
    height: ti.i32,
    seed: ti.u32,
    sample_index: ti.i32,
    max_depth: ti.i32,
):
    """Render one sample per pixel and add it to the color sums."""
    for i, j in ti.ndrange(width, height):
        color = render_sample_impl(i, j, width, height, seed, sample_index, max_depth)
        _color_sum[i, j] += color
        _sample_count[i, j] += 1


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    seed: ti.u32,
    num_samples: ti.i32,
    max_depth: ti.i32,
) -> color3:
    """Average num_samples samples of one pixel."""
    total = color3(0.0, 0.0, 0.0)
    for sample in range(num_samples):
        total += render_sample_impl(pixel_i, pixel_j, width, height, seed, sample, max_depth)
    return total / ti.cast(num_samples, ti.f32)


@ti.kernel
def _trace_single_ray(
    origin: vec3,
    direction: vec3,
    max_depth: ti.i32,
    seed: ti.u32,
) -> color3:
    """Trace one explicit ray."""
    rng = seed_stream(seed, 0, 0)
    color, rng = trace_ray(make_ray(origin, direction), max_depth, rng)
    return color


# =============================================================================
# Public Rendering API
# =============================================================================


def render_image(num_samples: int = 1, seed: int = 0, max_depth: int = MAX_DEPTH) -> None:
    """Add num_samples jittered samples to every pixel.

    Samples are numbered from the current per-pixel count, so calling this
    repeatedly with the same seed continues the same sequence of streams:
    two calls of 5 samples give the same image as one call of 10.

    Args:
        num_samples: Number of samples to render per pixel.
        seed: The render seed (any integer in [0, 2^32)).
        max_depth: The bounce budget per path.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If max_depth is negative.
    """
    _check_render_target_initialized()
    if max_depth < 0:
        raise ValueError(f"max_depth = {max_depth} must be non-negative")

    width, height = get_image_dimensions()
    start = get_total_samples()

    for sample_index in range(start, start + num_samples):
        _render_one_spp(width, height, seed, sample_index, max_depth)


def render_pixel(
    pixel_i: int,
    pixel_j: int,
    num_samples: int = DEFAULT_SAMPLES,
    seed: int = 0,
    max_depth: int = MAX_DEPTH,
) -> tuple[float, float, float]:
    """Average num_samples samples of a single pixel.

    Uses the same sampling policy as render_image but leaves the color
    buffers untouched. Useful for testing convergence at one pixel.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        num_samples: Number of samples to average (positive).
        seed: The render seed.
        max_depth: The bounce budget per path.

    Returns:
        Tuple of linear (R, G, B) averages.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If num_samples is not positive.
    """
    _check_render_target_initialized()
    if num_samples <= 0:
        raise ValueError(f"num_samples = {num_samples} must be positive")

    width, height = get_image_dimensions()
    color = _render_single_pixel(pixel_i, pixel_j, width, height, seed, num_samples, max_depth)

    return (float(color[0]), float(color[1]), float(color[2]))


def trace_single_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_depth: int = MAX_DEPTH,
    seed: int = 0,
) -> tuple[float, float, float]:
    """Compute one radiance estimate for an explicit ray.

    Args:
        origin: Ray origin (x, y, z).
        direction: Ray direction (x, y, z), need not be normalized.
        max_depth: The bounce budget.
        seed: Seed of the random stream used along the path.

    Returns:
        Tuple of (R, G, B) radiance.
    """
    color = _trace_single_ray(vec3(*origin), vec3(*direction), max_depth, seed)
    return (float(color[0]), float(color[1]), float(color[2]))


# =============================================================================
# Image Read-back
# =============================================================================


def gamma_correct_array(image: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Gamma-correct a linear image for a display gamma of 2.0 (square root)."""
    return np.sqrt(np.maximum(image, 0.0)).astype(np.float32)


def quantize_to_uint8(image: npt.NDArray[np.float32]) -> npt.NDArray[np.uint8]:
    """Quantize [0, 1] channel values to 8 bits as floor(255.999 * c).

    Values outside [0, 1] are clamped first.
    """
    clamped = np.clip(image, 0.0, 1.0)
    return np.floor(QUANTIZE_SCALE * clamped).astype(np.uint8)


def get_averaged_image_numpy() -> npt.NDArray[np.float32]:
    """Get the per-pixel averages as a NumPy array.

    The array shape is (height, width, 3) with the top image row first.
    Values are linear and unclamped. Pixels without samples are black.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()

    sums = _color_sum.to_numpy()[:width, :height, :]
    counts = _sample_count.to_numpy()[:width, :height].astype(np.float32)

    averaged = sums / np.maximum(counts, 1.0)[:, :, np.newaxis]

    # Transpose from (width, height, 3) to (height, width, 3) for standard image format
    image = np.transpose(averaged, (1, 0, 2))

    # Flip vertically (pixel row 0 is the bottom of the image)
    image = np.flipud(image)

    return np.ascontiguousarray(image, dtype=np.float32)


def get_image_uint8() -> npt.NDArray[np.uint8]:
    """Get the finished 8-bit image: averaged, gamma corrected, quantized.

    Returns:
        Array of shape (height, width, 3), dtype uint8, top row first.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    return quantize_to_uint8(gamma_correct_array(get_averaged_image_numpy()))
