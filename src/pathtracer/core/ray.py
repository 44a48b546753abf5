"""Ray data structure and vector utilities.

This module provides the Ray dataclass and the small set of vector helpers the
renderer needs on top of ``taichi.math``. Random sampling helpers take an
explicit generator state (see ``pathtracer.core.sampler``) and return the
advanced state alongside their result.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.sampler import random_range

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Rejection sampling cap for random_in_unit_sphere
MAX_REJECTION_TRIES = 100


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Not required to be
            unit length; intersection math accounts for its length.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    return tm.normalize(v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    return tm.cross(a, b)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Computes v - 2 (v . n) n. The normal should be unit length.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal.

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Used to catch degenerate scatter directions before they are normalized.

    Returns:
        1 if all components are below 1e-8 in magnitude, 0 otherwise.
    """
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def random_in_unit_sphere(state: ti.u32):
    """Generate a random point inside the unit sphere.

    Rejection-samples the [-1, 1)^3 cube until a point with squared length
    below one is found.

    Args:
        state: The current generator state.

    Returns:
        A tuple (point, next_state).
    """
    s = state
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_TRIES):
        if not found:
            x, s1 = random_range(s, -1.0, 1.0)
            y, s2 = random_range(s1, -1.0, 1.0)
            z, s3 = random_range(s2, -1.0, 1.0)
            s = s3
            p = vec3(x, y, z)
            if length_squared(p) < 1.0:
                found = True
    return p, s


@ti.func
def random_unit_vector(state: ti.u32):
    """Generate a random unit vector uniformly distributed on the sphere.

    Returns:
        A tuple (unit_vector, next_state).
    """
    p, s = random_in_unit_sphere(state)
    return normalize(p), s
