"""Image export utilities for rendered images.

This module provides functions for saving rendered images to files.

Supported formats:
    - PPM (plain-text P3, written directly)
    - PNG and any other format Pillow can write (8-bit RGB)

The P3 layout is a three-line header followed by one "R G B" line per
pixel, top row first:

    P3
    <width> <height>
    255
    R G B
    ...

Example:
    >>> from spheretracer.preview.export import save_ppm
    >>> from spheretracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(400, 225, seed=1)
    >>> renderer.render(100)
    >>> save_ppm(renderer.get_image_uint8(), "output.ppm")
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, TextIO

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from spheretracer.core.integrator import gamma_correct_array, quantize_to_uint8

if TYPE_CHECKING:
    from spheretracer.core.progressive import ProgressiveRenderer

PPM_MAX_VALUE = 255


def _check_rgb_uint8(image: npt.NDArray[np.uint8]) -> None:
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")
    if image.dtype != np.uint8:
        raise ValueError(f"Expected a uint8 image, got dtype {image.dtype}")


def write_ppm(image: npt.NDArray[np.uint8], stream: TextIO) -> None:
    """Write an 8-bit RGB image to a text stream in plain PPM (P3) format.

    Args:
        image: Array of shape (H, W, 3), dtype uint8, top row first.
        stream: Writable text stream (e.g. sys.stdout or an open file).

    Raises:
        ValueError: If the array is not an (H, W, 3) uint8 image.
    """
    _check_rgb_uint8(image)
    height, width, _ = image.shape

    stream.write(f"P3\n{width} {height}\n{PPM_MAX_VALUE}\n")
    for row in image:
        stream.writelines(f"{r} {g} {b}\n" for r, g, b in row.tolist())


def save_ppm(image: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Save an 8-bit RGB image as a plain PPM (P3) file."""
    with open(filepath, "w", encoding="ascii") as f:
        write_ppm(image, f)


def save_png_from_array(image: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Save an 8-bit RGB image with Pillow.

    The output format follows the file suffix (".png" for PNG).

    Raises:
        ValueError: If the array is not an (H, W, 3) uint8 image.
    """
    _check_rgb_uint8(image)
    pil_image = PILImage.fromarray(image)
    pil_image.save(filepath)


def save_png(renderer: ProgressiveRenderer, filepath: str | Path) -> None:
    """Save the renderer's finished image as a PNG file.

    Example:
        >>> renderer = ProgressiveRenderer(400, 225)
        >>> renderer.render(100)
        >>> save_png(renderer, "output.png")
    """
    save_png_from_array(renderer.get_image_uint8(), filepath)


def image_to_uint8(image: npt.NDArray[np.float32]) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to 8 bits for display/export.

    Applies the square-root gamma and quantizes as floor(255.999 * c).

    Args:
        image: Linear image array of shape (H, W, 3).

    Returns:
        8-bit image array of shape (H, W, 3) with dtype uint8.
    """
    return quantize_to_uint8(gamma_correct_array(image))


def read_ppm(filepath: str | Path) -> npt.NDArray[np.uint8]:
    """Read a plain PPM (P3) file written by save_ppm().

    Returns:
        Array of shape (H, W, 3), dtype uint8, top row first.

    Raises:
        ValueError: If the file is not a P3 image with max value 255.
    """
    tokens = Path(filepath).read_text(encoding="ascii").split()
    if len(tokens) < 4 or tokens[0] != "P3":
        raise ValueError(f"{filepath} is not a plain PPM (P3) file")

    width, height, max_value = int(tokens[1]), int(tokens[2]), int(tokens[3])
    if max_value != PPM_MAX_VALUE:
        raise ValueError(f"Unsupported PPM max value {max_value}")

    values = np.array(tokens[4:], dtype=np.int64)
    if values.size != width * height * 3:
        raise ValueError(
            f"Expected {width * height * 3} samples in {filepath}, found {values.size}"
        )
    return values.reshape(height, width, 3).astype(np.uint8)


def compute_rmse(
    image_a: npt.NDArray[np.floating[npt.NBitBase]],
    image_b: npt.NDArray[np.floating[npt.NBitBase]],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
