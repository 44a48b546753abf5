"""Camera module for primary ray generation.

Components:
    pinhole: Fixed pinhole camera looking down -z through a flat viewport

Viewport coordinates:
    u in [0, 1]: left to right across the image
    v in [0, 1]: bottom to top across the image
"""

from .pinhole import (
    PinholeCamera,
    get_camera_info,
    get_ray,
    get_ray_jittered,
    setup_camera,
)

__all__ = [
    "PinholeCamera",
    "setup_camera",
    "get_ray",
    "get_ray_jittered",
    "get_camera_info",
]
