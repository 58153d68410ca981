"""Matplotlib-based preview display for rendered images.

This module provides functions for displaying rendered images using Matplotlib.

Features:
    - Preview window with sample count
    - Gamma correction (square root, i.e. display gamma 2.0)
    - Side-by-side comparison with a difference view

Example:
    >>> from spheretracer.preview.display import show_preview
    >>> from spheretracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(400, 225)
    >>> renderer.render(100)
    >>> show_preview(renderer)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from spheretracer.core.progressive import ProgressiveRenderer

DISPLAY_GAMMA = 2.0


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = DISPLAY_GAMMA,
) -> npt.NDArray[np.float32]:
    """Apply gamma correction for display.

    Args:
        image: Linear image array of shape (H, W, 3).
        gamma: Gamma value. The default 2.0 is a square root.

    Returns:
        Gamma corrected image clamped to [0, 1].
    """
    if gamma <= 0.0:
        raise ValueError(f"Gamma = {gamma} must be positive")

    # Clamp to [0, 1] before gamma to avoid NaN from negative values
    image = np.clip(image, 0.0, 1.0)

    if gamma == DISPLAY_GAMMA:
        result = np.sqrt(image)
    else:
        result = np.power(image, 1.0 / gamma)

    return result.astype(np.float32)


def show_preview(
    renderer: ProgressiveRenderer,
    *,
    gamma: float = DISPLAY_GAMMA,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 4.5),
    block: bool = True,
) -> None:
    """Display the current render as a Matplotlib figure.

    Args:
        renderer: The ProgressiveRenderer instance to display.
        gamma: Gamma correction value (default 2.0).
        title: Custom title (default shows sample count).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until figure is closed.
    """
    import matplotlib.pyplot as plt

    display_image = apply_gamma(renderer.get_image_numpy(), gamma)

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")

    if title is None:
        title = f"Render Preview - {renderer.sample_count} SPP"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)


def show_comparison(
    image_a: npt.NDArray[np.float32],
    image_b: npt.NDArray[np.float32],
    *,
    labels: tuple[str, str] = ("A", "B"),
    gamma: float = DISPLAY_GAMMA,
    diff_scale: float = 10.0,
    figsize: tuple[float, float] = (16, 4),
    block: bool = True,
) -> float:
    """Display side-by-side comparison of two images with difference view.

    Useful for eyeballing convergence, e.g. a 10 SPP render against a
    1000 SPP reference.

    Args:
        image_a: First image array (H, W, 3) in linear space.
        image_b: Second image array (H, W, 3) in linear space.
        labels: Labels for the two images.
        gamma: Gamma correction value.
        diff_scale: Scale factor for difference amplification.
        figsize: Figure size in inches.
        block: Whether to block execution until figure is closed.

    Returns:
        RMSE between the two images in display space.
    """
    import matplotlib.pyplot as plt

    display_a = apply_gamma(image_a, gamma)
    display_b = apply_gamma(image_b, gamma)

    diff = display_a.astype(np.float64) - display_b.astype(np.float64)
    rmse = float(np.sqrt(np.mean(diff**2)))

    diff_amplified = np.clip(np.abs(diff) * diff_scale, 0.0, 1.0)

    fig, axes = plt.subplots(1, 3, figsize=figsize)

    axes[0].imshow(display_a)
    axes[0].set_title(labels[0])
    axes[0].axis("off")

    axes[1].imshow(display_b)
    axes[1].set_title(labels[1])
    axes[1].axis("off")

    axes[2].imshow(diff_amplified)
    axes[2].set_title(f"Difference ({diff_scale}x) - RMSE: {rmse:.6f}")
    axes[2].axis("off")

    plt.tight_layout()
    plt.show(block=block)

    return rmse
