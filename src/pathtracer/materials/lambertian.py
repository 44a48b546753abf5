"""Lambertian (ideal diffuse) material implementation.

A Lambertian surface scatters incoming light in a direction chosen by offsetting
the surface normal with a random unit vector. The resulting distribution of
outgoing directions is proportional to cos(theta) about the normal, so the
attenuation is simply the albedo.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.materials.lambertian import scatter_lambertian
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, state = scatter_lambertian(
    >>> #     albedo, normal, state
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import near_zero, random_unit_vector

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_lambertian(albedo: vec3, normal: vec3, state: ti.u32):
    """Sample a scattered ray direction for a Lambertian material.

    The scattered direction is normal + a random unit vector. When the random
    vector nearly cancels the normal, the direction collapses toward zero and
    would turn into NaN once normalized downstream, so the bare normal is
    used instead.

    Args:
        albedo: The diffuse reflectance color (RGB).
        normal: The unit surface normal at the hit point.
        state: The current generator state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, next_state)
        where did_scatter is always 1 (Lambertian surfaces never absorb).
    """
    offset, next_state = random_unit_vector(state)
    scattered_direction = normal + offset

    if near_zero(scattered_direction):
        scattered_direction = normal

    attenuation = albedo
    did_scatter = 1

    return scattered_direction, attenuation, did_scatter, next_state


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of Lambertian materials in the scene
MAX_LAMBERTIAN_MATERIALS = 256

# Storage for Lambertian material properties
lambertian_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Clear all Lambertian materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: tuple[float, float, float]) -> int:
    """Add a Lambertian material to the material registry.

    Args:
        albedo: The diffuse reflectance color as (R, G, B) tuple.
            Each component must be in [0, 1].

    Returns:
        The type-local index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If albedo does not have three components in [0, 1].
    """
    if len(albedo) != 3:
        raise ValueError(f"Albedo must have 3 components, got {len(albedo)}")
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(f"Albedo component {i} = {component} is outside [0, 1].")

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of Lambertian materials in the registry."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    return lambertian_albedos[material_idx]


@ti.func
def scatter_lambertian_by_id(material_idx: ti.i32, normal: vec3, state: ti.u32):
    """Scatter off a registered Lambertian material by its type-local index.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, next_state).
    """
    albedo = get_lambertian_albedo(material_idx)
    return scatter_lambertian(albedo, normal, state)
