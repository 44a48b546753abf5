"""Sphere primitive and ray-sphere intersection.

The intersection substitutes the ray parametrization into the implicit sphere
equation |P(t) - center|^2 = radius^2 and solves the resulting quadratic with
the half-b substitution:

    a      = dot(direction, direction)
    half_b = dot(oc, direction)
    c      = dot(oc, oc) - radius^2
    disc   = half_b^2 - a*c

where oc = origin - center. The nearer root is tried first; if it falls outside
[t_min, t_max] the farther root is tried.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.geometry.sphere import Sphere, HitRecord, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-sphere intersection.

    Attributes:
        hit: Whether the ray intersected the sphere (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
        point: The 3D point where the ray intersected the sphere.
        normal: The unit surface normal at the intersection point, always
            facing against the incoming ray.
        front_face: 1 if the ray arrived from outside the sphere, 0 otherwise.

    Only hit is meaningful when hit == 0.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection within [t_min, t_max].

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        sphere: The sphere to test intersection against.
        t_min: Minimum accepted t. Callers pass a small positive epsilon so a
            scattered ray does not re-hit the surface it left.
        t_max: Maximum accepted t. The scene query narrows this to the closest
            hit found so far.

    Returns:
        A HitRecord; check the hit field to determine if intersection occurred.
    """
    oc = ray_origin - sphere.center
    a = tm.dot(ray_direction, ray_direction)
    half_b = tm.dot(oc, ray_direction)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = half_b * half_b - a * c

    # Taichi requires outer-scope declaration
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)

        # Nearest root that lies in the acceptable range
        root = (-half_b - sqrt_d) / a
        valid = t_min <= root <= t_max
        if not valid:
            root = (-half_b + sqrt_d) / a
            valid = t_min <= root <= t_max

        if valid:
            did_hit = 1
            hit_t = root
            hit_point = ray_origin + root * ray_direction

            outward_normal = (hit_point - sphere.center) / sphere.radius

            if tm.dot(ray_direction, outward_normal) < 0.0:
                is_front_face = 1
                hit_normal = outward_normal
            else:
                # Ray is leaving the sphere: flip to face the ray
                is_front_face = 0
                hit_normal = -outward_normal

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
    )


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from center and radius."""
    return Sphere(center=center, radius=radius)
