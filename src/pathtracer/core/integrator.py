"""Path tracing integrator and per-pixel sampling loop.

A camera ray is followed through the scene until it escapes, is absorbed, or
runs out of bounces. Each bounce asks the hit material for a scattered
direction and an attenuation; the attenuations multiply into a running
throughput, and a ray that escapes picks up the sky gradient scaled by that
throughput. Absorbed and exhausted paths contribute black. There are no
lights in the scene: the sky is the only source of radiance.

Samples are summed, not averaged, into an accumulation buffer together with a
per-pixel sample count. Averaging and gamma happen at encode time (see
``pathtracer.preview.export``).

Every sample seeds its own generator from (seed, pixel, running sample
index), so the accumulated image depends only on the seed and on the number
of samples taken, not on how Taichi schedules the pixel loop.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.camera.pinhole import setup_camera
    >>> from pathtracer.core.integrator import render_image, setup_render_target
    >>> from pathtracer.scene.default_scene import create_default_scene
    >>>
    >>> scene, camera = create_default_scene()
    >>> setup_camera(camera)
    >>> setup_render_target(400, 225)
    >>> render_image(num_samples=10)
"""

import math

import numpy as np
import taichi as ti
import taichi.math as tm
from loguru import logger

from pathtracer.camera.pinhole import get_ray_jittered
from pathtracer.core.ray import normalize
from pathtracer.core.sampler import seed_rng
from pathtracer.core.settings import DEFAULT_MAX_DEPTH, MAX_IMAGE_DIMENSION, check_seed
from pathtracer.materials.lambertian import scatter_lambertian_by_id
from pathtracer.materials.metal import scatter_metal_by_id
from pathtracer.scene.intersection import intersect_scene
from pathtracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Default bounce budget per camera ray
MAX_DEPTH = DEFAULT_MAX_DEPTH

# Hits closer than this are ignored so a scattered ray does not re-hit the
# surface it leaves from
T_MIN = 0.001
T_MAX = math.inf

# Sky gradient endpoints: straight-down rays see HORIZON, straight-up ZENITH
HORIZON_COLOR = vec3(1.0, 1.0, 1.0)
ZENITH_COLOR = vec3(0.5, 0.7, 1.0)

# =============================================================================
# Sampling Configuration
# =============================================================================

_sampling = {"max_depth": MAX_DEPTH, "seed": 0, "jitter": 1}


def configure_sampling(max_depth: int = MAX_DEPTH, seed: int = 0, jitter: bool = True) -> None:
    """Set the bounce budget, render seed and pixel jitter for later renders.

    Args:
        max_depth: Maximum number of bounces per camera ray. 0 renders black.
        seed: Render seed. The same seed and sample count reproduce the same
            image exactly.
        jitter: Randomize the sample position inside each pixel. With jitter
            off every sample goes through the lower-left corner of its pixel.

    Raises:
        ValueError: If max_depth is negative or seed does not fit in 32 bits.
    """
    if max_depth < 0:
        raise ValueError(f"max_depth must be non-negative, got {max_depth}")
    seed = check_seed(seed)
    _sampling["max_depth"] = int(max_depth)
    _sampling["seed"] = seed
    _sampling["jitter"] = 1 if jitter else 0


def get_sampling_config() -> dict[str, int]:
    return dict(_sampling)


# =============================================================================
# Render Target (Accumulation Buffers)
# =============================================================================

# Buffers are preallocated at the maximum size so that resizing never
# reallocates fields or recompiles kernels
MAX_IMAGE_WIDTH = MAX_IMAGE_DIMENSION
MAX_IMAGE_HEIGHT = MAX_IMAGE_DIMENSION

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Summed radiance per pixel, indexed [i, j] with j = 0 at the bottom
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))
_max_sample_count = ti.field(dtype=ti.i32, shape=())

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the accumulation buffers.

    Args:
        width: Image width in pixels, 1 to MAX_IMAGE_WIDTH.
        height: Image height in pixels, 1 to MAX_IMAGE_HEIGHT.

    Raises:
        ValueError: If either dimension is out of range.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions must be at least 1x1, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    clear_render_target()
    logger.debug("Render target set to {}x{}", width, height)


def clear_render_target() -> None:
    """Zero the accumulated radiance and sample counts."""
    _color_buffer.fill(0.0)
    _sample_count.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the active (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Radiance
# =============================================================================


@ti.func
def background_color(direction: vec3) -> vec3:
    """Sky gradient seen by a ray that leaves the scene.

    Blends linearly from HORIZON_COLOR to ZENITH_COLOR as the normalized
    direction's y component goes from -1 to 1.
    """
    t = 0.5 * (normalize(direction).y + 1.0)
    return (1.0 - t) * HORIZON_COLOR + t * ZENITH_COLOR


@ti.func
def _scatter_material(material_id: ti.i32, incident_direction: vec3, normal: vec3, state: ti.u32):
    """Route a hit to the scatter function of its material kind.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, next_state).
        Unknown material IDs absorb the ray.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0
    s = state

    if mat_type == int(MaterialType.LAMBERTIAN):
        d1, a1, f1, s1 = scatter_lambertian_by_id(type_index, normal, s)
        scattered_direction = d1
        attenuation = a1
        did_scatter = f1
        s = s1
    elif mat_type == int(MaterialType.METAL):
        d2, a2, f2, s2 = scatter_metal_by_id(type_index, incident_direction, normal, s)
        scattered_direction = d2
        attenuation = a2
        did_scatter = f2
        s = s2

    return scattered_direction, attenuation, did_scatter, s


@ti.func
def ray_color(origin: vec3, direction: vec3, depth: ti.i32, state: ti.u32):
    """Estimate the radiance arriving along a ray.

    Args:
        origin: Ray origin.
        direction: Ray direction, any non-zero length.
        depth: Remaining bounce budget. 0 yields black without tracing.
        state: The current generator state.

    Returns:
        A tuple (color, next_state).
    """
    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    o = origin
    d = direction
    s = state

    # Taichi funcs cannot recurse; the bounce chain is unrolled into a loop
    # that stops contributing once the path ends
    active = 1
    for _ in range(depth):
        if active == 1:
            rec = intersect_scene(o, d, T_MIN, T_MAX)
            if rec.hit == 0:
                color = throughput * background_color(d)
                active = 0
            else:
                scattered, attenuation, did_scatter, s1 = _scatter_material(
                    rec.material_id, d, rec.normal, s
                )
                s = s1
                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    o = rec.point
                    d = scattered

    return color, s


@ti.kernel
def _trace_ray_kernel(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    depth: ti.i32,
    seed: ti.u32,
) -> vec3:
    state = seed_rng(seed, 0, 0, 0)
    color, _ = ray_color(vec3(ox, oy, oz), vec3(dx, dy, dz), depth, state)
    return color


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    depth: int = MAX_DEPTH,
    seed: int = 0,
) -> tuple[float, float, float]:
    """Estimate the radiance along one ray against the current scene.

    Python-callable wrapper around ray_color(), mainly for tests.

    Returns:
        Tuple of (R, G, B).
    """
    seed = check_seed(seed)
    color = _trace_ray_kernel(
        origin[0], origin[1], origin[2], direction[0], direction[1], direction[2], depth, seed
    )
    return (float(color[0]), float(color[1]), float(color[2]))


# =============================================================================
# Sampling Loop
# =============================================================================


@ti.func
def _sample_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    sample_index: ti.i32,
    width: ti.i32,
    height: ti.i32,
    max_depth: ti.i32,
    seed: ti.u32,
    jitter: ti.i32,
) -> vec3:
    state = seed_rng(seed, pixel_i, pixel_j, sample_index)
    ray, s1 = get_ray_jittered(pixel_i, pixel_j, width, height, jitter, state)
    color, _ = ray_color(ray.origin, ray.direction, max_depth, s1)
    return color


@ti.kernel
def _render_row(
    row: ti.i32,
    num_samples: ti.i32,
    width: ti.i32,
    height: ti.i32,
    max_depth: ti.i32,
    seed: ti.u32,
    jitter: ti.i32,
):
    for i in range(width):
        base = _sample_count[i, row]
        total = vec3(0.0, 0.0, 0.0)
        for k in range(num_samples):
            total += _sample_pixel(i, row, base + k, width, height, max_depth, seed, jitter)
        _color_buffer[i, row] += total
        _sample_count[i, row] = base + num_samples


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    max_depth: ti.i32,
    seed: ti.u32,
    jitter: ti.i32,
) -> vec3:
    return _sample_pixel(
        pixel_i, pixel_j, _sample_count[pixel_i, pixel_j], width, height, max_depth, seed, jitter
    )


def render_scanline(row: int, num_samples: int = 1) -> None:
    """Add ``num_samples`` samples to every pixel of one image row.

    Columns are processed in parallel.

    Args:
        row: Pixel row, 0 at the bottom of the image.
        num_samples: Samples to add per pixel.

    Raises:
        RuntimeError: If the render target has not been set up.
        ValueError: If row is outside the image.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    if not 0 <= row < height:
        raise ValueError(f"Row {row} is outside the image (height {height})")
    if num_samples <= 0:
        return

    _render_row(
        row,
        num_samples,
        width,
        height,
        _sampling["max_depth"],
        _sampling["seed"],
        _sampling["jitter"],
    )


def render_image(num_samples: int = 1) -> None:
    """Add ``num_samples`` samples to every pixel, top row first.

    Can be called repeatedly; later calls continue each pixel's sample
    sequence instead of repeating it.
    """
    _check_render_target_initialized()
    _, height = get_image_dimensions()
    for row in reversed(range(height)):
        render_scanline(row, num_samples)


def render_sample(pixel_i: int, pixel_j: int) -> tuple[float, float, float]:
    """Trace one sample for one pixel without accumulating it.

    Args:
        pixel_i: Pixel column (0 = left).
        pixel_j: Pixel row (0 = bottom).

    Returns:
        Tuple of (R, G, B).

    Raises:
        RuntimeError: If the render target has not been set up.
        ValueError: If the pixel is outside the image.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    if not (0 <= pixel_i < width and 0 <= pixel_j < height):
        raise ValueError(
            f"Pixel ({pixel_i}, {pixel_j}) is outside the image ({width}x{height})"
        )
    color = _render_single_pixel(
        pixel_i,
        pixel_j,
        width,
        height,
        _sampling["max_depth"],
        _sampling["seed"],
        _sampling["jitter"],
    )
    return (float(color[0]), float(color[1]), float(color[2]))


@ti.kernel
def _reduce_max_sample_count(width: ti.i32, height: ti.i32):
    _max_sample_count[None] = 0
    for i, j in ti.ndrange(width, height):
        ti.atomic_max(_max_sample_count[None], _sample_count[i, j])


def get_total_samples() -> int:
    """Highest per-pixel sample count in the image.

    Rows are rendered top first, so partway through a pass the top rows are
    one sample ahead of the rest and this already counts the pass.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    _reduce_max_sample_count(width, height)
    return int(_max_sample_count[None])


def get_accumulated_image_numpy() -> np.ndarray:
    """Get the summed radiance as an (height, width, 3) float32 array.

    Rows run top to bottom, so the array can be written out directly.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()

    image = _color_buffer.to_numpy()[:width, :height, :]
    # [i, j] with j up -> [row, column] with row 0 at the top
    image = np.flipud(np.transpose(image, (1, 0, 2)))
    return np.ascontiguousarray(image, dtype=np.float32)


def get_sample_count_numpy() -> np.ndarray:
    """Get the per-pixel sample counts as an (height, width) int array."""
    _check_render_target_initialized()
    width, height = get_image_dimensions()

    counts = _sample_count.to_numpy()[:width, :height]
    return np.ascontiguousarray(np.flipud(counts.T))
