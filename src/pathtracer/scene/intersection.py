"""Sphere list and the closest-hit query the integrator runs per bounce.

Spheres live in flat Taichi fields, one per attribute, next to the material
ID each one points at. ``intersect_scene`` walks the list once and passes the
nearest t accepted so far as the upper bound of the next test, so whatever
is left in the record at the end is the closest hit.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.intersection import add_sphere, clear_scene
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, -1.0), 0.5, material_id=0)
    0
"""

import taichi as ti
import taichi.math as tm

from pathtracer.geometry.sphere import Sphere, hit_sphere

vec3 = tm.vec3


@ti.dataclass
class SceneHitRecord:
    """A sphere HitRecord plus the material ID of the sphere that was hit.

    Attributes:
        hit: 1 on a hit, 0 on a miss.
        t: Ray parameter of the hit.
        point: Hit position.
        normal: Unit normal, always opposing the ray.
        front_face: 1 if the ray arrived from outside the sphere.
        material_id: Key into the material tables; -1 when nothing was hit.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32


MAX_SPHERES = 1024

centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
sphere_total = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Forget every sphere. Slots are reused by later add_sphere calls."""
    sphere_total[None] = 0


def add_sphere(
    center: tuple[float, float, float],
    radius: float,
    material_id: int = 0,
) -> int:
    """Append a sphere and return its slot.

    The material ID is stored as given; an ID with no registered material
    makes the sphere absorb every ray that reaches it.

    Raises:
        ValueError: For a zero or negative radius.
        RuntimeError: When all MAX_SPHERES slots are taken.
    """
    if radius <= 0.0:
        raise ValueError(f"Sphere radius must be positive, got {radius}")

    slot = sphere_total[None]
    if slot >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    centers[slot] = vec3(center[0], center[1], center[2])
    radii[slot] = radius
    material_ids[slot] = material_id
    sphere_total[None] = slot + 1
    return slot


def get_sphere_count() -> int:
    return int(sphere_total[None])


@ti.func
def _miss() -> SceneHitRecord:
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
    )


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Closest sphere hit with t in [t_min, t_max], or a miss record.

    The direction does not need to be normalized.
    """
    nearest = t_max
    result = _miss()

    for i in range(sphere_total[None]):
        rec = hit_sphere(
            ray_origin, ray_direction, Sphere(center=centers[i], radius=radii[i]), t_min, nearest
        )
        if rec.hit == 1:
            nearest = rec.t
            result = SceneHitRecord(
                hit=1,
                t=rec.t,
                point=rec.point,
                normal=rec.normal,
                front_face=rec.front_face,
                material_id=material_ids[i],
            )

    return result
