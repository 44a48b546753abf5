"""Geometry module for shape primitives.

This module provides geometric primitives and intersection algorithms:

Components:
    sphere: Sphere primitive with ray-sphere intersection

All intersection routines are implemented as Taichi functions (@ti.func)
so they can be called from the rendering kernels. Intersection follows
the pattern:
    record = hit_shape(ray_origin, ray_direction, shape, t_min, t_max)
"""

from .sphere import HitRecord, Sphere, hit_sphere, make_sphere

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "make_sphere",
]
