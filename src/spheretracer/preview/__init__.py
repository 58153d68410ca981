"""Preview module for output and visualization.

This module handles rendering output and static preview:

Components:
    display: Matplotlib-based preview display
    export: PPM/PNG image export utilities

Example:
    >>> from spheretracer.preview import save_ppm, show_preview
    >>> from spheretracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(400, 225)
    >>> renderer.render(100)
    >>> show_preview(renderer)
    >>> save_ppm(renderer.get_image_uint8(), "output.ppm")
"""

from spheretracer.preview.display import (
    apply_gamma,
    show_comparison,
    show_preview,
)
from spheretracer.preview.export import (
    compute_rmse,
    image_to_uint8,
    read_ppm,
    save_png,
    save_png_from_array,
    save_ppm,
    write_ppm,
)

__all__ = [
    # Display functions
    "show_preview",
    "show_comparison",
    "apply_gamma",
    # Export functions
    "write_ppm",
    "save_ppm",
    "read_ppm",
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
    "compute_rmse",
]
