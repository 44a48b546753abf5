"""Core rendering module.

Components:
    ray: Ray data structure, vector helpers and random direction sampling
    sampler: Seedable per-sample random number generation
    settings: RenderSettings (image size, samples, depth, seed)
    integrator: Radiance estimation, sampling loop and accumulation buffers
    progressive: ProgressiveRenderer, the scanline render driver

Every Taichi function that draws random numbers takes a generator state and
returns the advanced one; there is no global generator.
"""

from .ray import (
    Ray,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    random_in_unit_sphere,
    random_unit_vector,
    ray_at,
    reflect,
    vec3,
)
from .sampler import random_float, random_range, rng_float, rng_next, seed_rng
from .settings import RenderSettings

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from pathtracer.core.integrator or pathtracer.core.progressive.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "near_zero",
    "random_in_unit_sphere",
    "random_unit_vector",
    "seed_rng",
    "rng_next",
    "rng_float",
    "random_float",
    "random_range",
    "RenderSettings",
]
