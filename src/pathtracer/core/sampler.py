"""Seedable random number generation for Monte Carlo sampling.

Every random draw in the renderer goes through an explicit generator state
(a ``ti.u32``) that callers thread through their Taichi functions: a function
that consumes randomness takes a state and hands back the advanced state.
There is no shared mutable generator, so a render is reproducible for a fixed
seed regardless of how Taichi schedules pixels across threads.

The initial state of each sample is derived by hashing the render seed, the
pixel coordinates, and the running per-pixel sample index. The state then
advances with a 32-bit LCG, and outputs are decorrelated with the PCG
RXS-M-XS permutation.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.sampler import seed_rng, random_float
    >>> @ti.kernel
    ... def draw() -> ti.f32:
    ...     state = seed_rng(42, 0, 0, 0)
    ...     x, state = random_float(state)
    ...     return x
"""

import taichi as ti

# LCG constants (Numerical Recipes)
LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223

# PCG RXS-M-XS output multiplier
PCG_MULTIPLIER = 277803737

# 2^-24: maps the top 24 bits of a word onto [0, 1)
FLOAT_SCALE = 1.0 / 16777216.0


@ti.func
def _permute(x: ti.u32) -> ti.u32:
    """PCG RXS-M-XS output permutation of a 32-bit word."""
    shift = (x >> ti.u32(28)) + ti.u32(4)
    word = ((x >> shift) ^ x) * ti.u32(PCG_MULTIPLIER)
    return (word >> ti.u32(22)) ^ word


@ti.func
def _hash(x: ti.u32) -> ti.u32:
    return _permute(x * ti.u32(LCG_MULTIPLIER) + ti.u32(LCG_INCREMENT))


@ti.func
def seed_rng(seed: ti.u32, pixel_i: ti.i32, pixel_j: ti.i32, sample_index: ti.i32) -> ti.u32:
    """Derive the initial generator state for one pixel sample.

    Args:
        seed: The render seed.
        pixel_i: Pixel x-coordinate.
        pixel_j: Pixel y-coordinate.
        sample_index: Running sample index for this pixel, so that successive
            render passes draw fresh sequences.

    Returns:
        A generator state unique to (seed, pixel, sample).
    """
    h = _hash(ti.cast(seed, ti.u32))
    h = _hash(h ^ ti.cast(pixel_i, ti.u32))
    h = _hash(h ^ ti.cast(pixel_j, ti.u32))
    h = _hash(h ^ ti.cast(sample_index, ti.u32))
    return h


@ti.func
def rng_next(state: ti.u32) -> ti.u32:
    """Advance the generator state by one LCG step."""
    return state * ti.u32(LCG_MULTIPLIER) + ti.u32(LCG_INCREMENT)


@ti.func
def rng_float(state: ti.u32) -> ti.f32:
    """Map a generator state to a float in [0, 1)."""
    bits = _permute(state) >> ti.u32(8)
    return ti.cast(bits, ti.f32) * FLOAT_SCALE


@ti.func
def random_float(state: ti.u32):
    """Draw a uniform float in [0, 1).

    Args:
        state: The current generator state.

    Returns:
        A tuple (value, next_state).
    """
    next_state = rng_next(state)
    return rng_float(next_state), next_state


@ti.func
def random_range(state: ti.u32, low: ti.f32, high: ti.f32):
    """Draw a uniform float in [low, high).

    Returns:
        A tuple (value, next_state).
    """
    x, next_state = random_float(state)
    return low + (high - low) * x, next_state
