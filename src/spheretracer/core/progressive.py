"""Progressive renderer for iterative sample accumulation.

This module provides a convenient wrapper around the core integrator that supports:
- Progressive rendering that refines over time
- Batch rendering (multiple SPP in one call)
- Progress callbacks for UI updates
- Easy reset and re-render functionality

The ProgressiveRenderer class encapsulates the render target state, the
render seed and the bounce budget, and provides a clean interface for
interactive rendering workflows.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from spheretracer.core.progressive import ProgressiveRenderer
    >>> from spheretracer.scene.random_spheres import create_random_spheres_scene
    >>> from spheretracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_random_spheres_scene(seed=1)
    >>> setup_camera(camera)
    >>>
    >>> renderer = ProgressiveRenderer(400, 225, seed=7)
    >>> renderer.render(100)  # Render 100 SPP
    >>> renderer.save_image("random_spheres.ppm")
"""

import logging
from collections.abc import Callable, Generator
from pathlib import Path

import numpy as np
import numpy.typing as npt

from spheretracer.core.integrator import (
    MAX_DEPTH,
    clear_render_target,
    gamma_correct_array,
    get_averaged_image_numpy,
    get_total_samples,
    quantize_to_uint8,
    render_image,
    setup_render_target,
)
from spheretracer.core.sampler import make_seed

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates samples over time.

    This class wraps the core integrator functions to provide a convenient
    interface for progressive rendering with support for:
    - Incremental sample accumulation
    - Batch rendering (multiple SPP per call)
    - Progress callbacks
    - Reset functionality

    The renderer maintains its own state for width/height/seed and delegates
    to the global integrator buffers (which are Taichi fields). For a fixed
    seed the image depends only on the total number of samples, not on how
    they were split into batches.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        seed: The render seed.
        max_depth: The bounce budget per path.
    """

    def __init__(
        self,
        width: int,
        height: int,
        seed: int | None = None,
        max_depth: int = MAX_DEPTH,
    ) -> None:
        """Initialize the progressive renderer.

        Args:
            width: Image width in pixels (2 to 2048).
            height: Image height in pixels (2 to 2048).
            seed: Render seed. None draws one from OS entropy.
            max_depth: The bounce budget per path.

        Raises:
            ValueError: If dimensions are outside the supported range or
                max_depth is negative.
        """
        if max_depth < 0:
            raise ValueError(f"max_depth = {max_depth} must be non-negative")

        self._width = width
        self._height = height
        # The public seed is what a caller passes back in to repeat a render
        self.seed = make_seed(None) if seed is None else seed
        self._render_seed = make_seed(self.seed)
        self.max_depth = max_depth
        setup_render_target(width, height)
        logger.debug("Progressive renderer seed: %d (stream seed %d)", self.seed, self._render_seed)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    def reset(self) -> None:
        """Reset the accumulator for a new render.

        Clears the color sums and sample counts, allowing a fresh render
        without changing the image dimensions.
        """
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and reset accumulator.

        Raises:
            ValueError: If dimensions are outside the supported range.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render samples progressively with optional progress callback.

        Accumulates the specified number of samples into the existing buffer.
        Can be called multiple times to continue refining the image.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each callback.
                A larger batch size reduces callback overhead but provides
                less frequent updates.
            callback: Optional callback function called after each batch.
                Receives (current_total_samples, target_total_samples).

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} samples")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        for current, target in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples progressively, yielding progress after each batch.

        This is a generator-based alternative to render() with callbacks,
        useful for integration with asyncio or iterative processing.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each yield.

        Yields:
            Tuple of (current_total_samples, target_total_samples).
        """
        if num_samples <= 0:
            return

        batch_size = max(1, batch_size)
        target_samples = self.sample_count + num_samples

        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            render_image(batch, seed=self._render_seed, max_depth=self.max_depth)
            remaining -= batch
            logger.debug("Rendered %d/%d samples", self.sample_count, target_samples)
            yield (self.sample_count, target_samples)

    def get_image_numpy(self, gamma_correct: bool = False) -> npt.NDArray[np.float32]:
        """Get the averaged image as a NumPy array.

        Args:
            gamma_correct: Apply the square-root display gamma. Default False
                (linear, unclamped averages).

        Returns:
            NumPy array of shape (height, width, 3) with dtype float32,
            top row first.
        """
        image = get_averaged_image_numpy()

        if gamma_correct:
            image = gamma_correct_array(image)

        return image

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the finished 8-bit image (gamma corrected and quantized).

        Returns:
            NumPy array of shape (height, width, 3) with dtype uint8.
        """
        return quantize_to_uint8(self.get_image_numpy(gamma_correct=True))

    def save_image(self, filepath: str | Path) -> None:
        """Save the rendered image to a file.

        A ".ppm" suffix writes the plain-text PPM (P3) format; any other
        suffix is handed to Pillow.

        Args:
            filepath: Path to save the image (e.g., "output.ppm", "output.png").
        """
        from spheretracer.preview.export import save_png_from_array, save_ppm

        path = Path(filepath)
        image_uint8 = self.get_image_uint8()

        if path.suffix.lower() == ".ppm":
            save_ppm(image_uint8, path)
        else:
            save_png_from_array(image_uint8, path)

        logger.info("Saved %dx%d image to %s", self.width, self.height, path)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count}, seed={self.seed})"
        )
