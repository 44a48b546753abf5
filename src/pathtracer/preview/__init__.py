"""Preview module: color encoding and image output.

Components:
    export: Gamma-2 color encoding, PPM (P3) and PNG writers, WriteColorError

Example:
    >>> from pathtracer.preview import encode_image, save_ppm
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(400, 225)
    >>> renderer.render(100)
    >>> save_ppm(renderer.get_image_uint8(), "spheres.ppm")
"""

from pathtracer.preview.export import (
    MAX_INTENSITY,
    WriteColorError,
    compute_rmse,
    encode_color,
    encode_image,
    save_png,
    save_ppm,
    write_ppm,
)

__all__ = [
    "WriteColorError",
    "MAX_INTENSITY",
    "encode_color",
    "encode_image",
    "write_ppm",
    "save_ppm",
    "save_png",
    "compute_rmse",
]
