"""Fixed pinhole camera generating primary rays.

The camera sits at ``origin`` and looks down the -z axis at a rectangular
viewport ``focal_length`` units away. The viewport is ``viewport_height``
tall and ``viewport_height * aspect_ratio`` wide; rays are cast from the
origin through points on it. There is no look-at, field-of-view or lens
model.

Image coordinates follow the viewport: ``u = 0`` is the left edge,
``v = 0`` the bottom edge, and ``(1, 1)`` the top-right corner.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.camera.pinhole import PinholeCamera, setup_camera, get_ray
    >>> setup_camera(PinholeCamera())
    >>> @ti.kernel
    ... def center_direction() -> ti.math.vec3:
    ...     return get_ray(0.5, 0.5).direction  # (0, 0, -1)
"""

from dataclasses import dataclass

import numpy as np
import taichi as ti
from loguru import logger

from pathtracer.core.ray import Ray, make_ray
from pathtracer.core.sampler import random_float


@dataclass
class PinholeCamera:
    """Viewport geometry of the pinhole camera.

    Attributes:
        aspect_ratio: Viewport width divided by height.
        viewport_height: Height of the viewport in world units.
        focal_length: Distance from the origin to the viewport along -z.
        origin: Eye position in world space.
    """

    aspect_ratio: float = 16.0 / 9.0
    viewport_height: float = 2.0
    focal_length: float = 1.0
    origin: tuple[float, float, float] = (0.0, 0.0, 0.0)

    @property
    def viewport_width(self) -> float:
        return self.aspect_ratio * self.viewport_height


# Derived viewport, written by setup_camera() and read inside kernels
_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())


def setup_camera(camera: PinholeCamera) -> None:
    """Compute the viewport of ``camera`` and make it current for rendering.

    Raises:
        ValueError: If aspect_ratio, viewport_height or focal_length is not
            positive.
    """
    for name in ("aspect_ratio", "viewport_height", "focal_length"):
        value = getattr(camera, name)
        if value <= 0.0:
            raise ValueError(f"Camera {name} must be positive, got {value}")

    origin = np.array(camera.origin, dtype=np.float32)
    horizontal = np.array([camera.viewport_width, 0.0, 0.0], dtype=np.float32)
    vertical = np.array([0.0, camera.viewport_height, 0.0], dtype=np.float32)
    depth = np.array([0.0, 0.0, camera.focal_length], dtype=np.float32)
    lower_left = origin - horizontal / 2.0 - vertical / 2.0 - depth

    _camera_origin[None] = origin.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()

    logger.debug(
        "Camera at {} with {:.3f}x{:.3f} viewport, focal length {}",
        camera.origin,
        camera.viewport_width,
        camera.viewport_height,
        camera.focal_length,
    )


@ti.func
def get_ray(u: ti.f32, v: ti.f32) -> Ray:
    """Build the ray through viewport coordinates (u, v).

    The direction runs from the eye to the viewport point and is left
    unnormalized.
    """
    origin = _camera_origin[None]
    target = (
        _lower_left_corner[None] + u * _viewport_horizontal[None] + v * _viewport_vertical[None]
    )
    return make_ray(origin, target - origin)


@ti.func
def get_ray_jittered(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    jitter: ti.i32,
    state: ti.u32,
):
    """Generate the primary ray for one sample of pixel (i, j).

    Pixel coordinates map onto the viewport as ``u = (i + du) / (width - 1)``
    and ``v = (j + dv) / (height - 1)``, so pixel 0 lies on the left/bottom
    edge and the last pixel on the right/top edge. The offsets du and dv are
    uniform in [0, 1) when ``jitter`` is 1 and zero otherwise.

    Args:
        pixel_i: Pixel column, 0 at the left.
        pixel_j: Pixel row, 0 at the bottom.
        width: Image width in pixels.
        height: Image height in pixels.
        jitter: 1 to randomize the position inside the pixel, 0 to sample
            its lower-left corner.
        state: The current generator state.

    Returns:
        A tuple (ray, next_state).
    """
    du = 0.0
    dv = 0.0
    s = state
    if jitter == 1:
        ju, s1 = random_float(s)
        jv, s2 = random_float(s1)
        du = ju
        dv = jv
        s = s2

    u = (ti.cast(pixel_i, ti.f32) + du) / ti.cast(ti.max(width - 1, 1), ti.f32)
    v = (ti.cast(pixel_j, ti.f32) + dv) / ti.cast(ti.max(height - 1, 1), ti.f32)

    return get_ray(u, v), s


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Return the current viewport vectors as plain tuples (for inspection)."""

    def _as_tuple(field) -> tuple[float, float, float]:
        value = field[None]
        return (float(value[0]), float(value[1]), float(value[2]))

    return {
        "origin": _as_tuple(_camera_origin),
        "horizontal": _as_tuple(_viewport_horizontal),
        "vertical": _as_tuple(_viewport_vertical),
        "lower_left": _as_tuple(_lower_left_corner),
    }
