"""Metal (specular reflective) material implementation.

This module implements the metal BSDF, which models mirror reflection with
optional fuzz. The reflection formula is:

    R = I - 2(I . N)N

where I is the normalized incident direction and N is the surface normal.
For fuzzy metals the reflected direction is offset by a random point inside
the unit sphere scaled by the fuzz parameter (0 = perfect mirror, 1 = heavy
scatter). A perturbed direction that ends up pointing into the surface is
absorbed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.materials.metal import scatter_metal
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, state = scatter_metal(
    >>> #     albedo, fuzz, incident_dir, normal, state
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import (
    normalize,
    random_in_unit_sphere,
    reflect,
)

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_metal(
    albedo: vec3,
    fuzz: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    state: ti.u32,
):
    """Compute the scattered ray direction for a metal material.

    Args:
        albedo: The reflective color (RGB).
        fuzz: The fuzz in [0, 1]. 0 = perfect mirror.
        incident_direction: The incoming ray direction (any length).
        normal: The unit surface normal, facing the incoming ray.
        state: The current generator state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, next_state)
        where did_scatter is 1 iff the scattered direction has a positive dot
        product with the normal.
    """
    reflected = reflect(normalize(incident_direction), normal)

    offset, next_state = random_in_unit_sphere(state)
    scattered_direction = reflected + fuzz * offset

    did_scatter = 0
    if tm.dot(scattered_direction, normal) > 0.0:
        did_scatter = 1

    attenuation = albedo

    return scattered_direction, attenuation, did_scatter, next_state


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of metal materials in the scene
MAX_METAL_MATERIALS = 256

# Storage for metal material properties
metal_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
metal_fuzzes = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    """Clear all metal materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_metal_materials[None] = 0


def add_metal_material(
    albedo: tuple[float, float, float],
    fuzz: float = 0.0,
) -> int:
    """Add a metal material to the material registry.

    Args:
        albedo: The reflective color as (R, G, B) tuple.
            Each component must be in [0, 1].
        fuzz: The reflection fuzz in [0, 1]. Default is 0 (perfect mirror).

    Returns:
        The type-local index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If albedo does not have three components in [0, 1].
        ValueError: If fuzz is outside [0, 1].
    """
    if len(albedo) != 3:
        raise ValueError(f"Albedo must have 3 components, got {len(albedo)}")
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(f"Albedo component {i} = {component} is outside [0, 1].")

    if fuzz < 0.0 or fuzz > 1.0:
        raise ValueError(
            f"Fuzz = {fuzz} is outside [0, 1]. "
            "Fuzz must be between 0 (perfect mirror) and 1 (maximum scatter)."
        )

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(
            f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded"
        )

    metal_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    metal_fuzzes[idx] = fuzz
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Get the number of metal materials in the registry."""
    return int(num_metal_materials[None])


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    return metal_albedos[material_idx]


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> ti.f32:
    return metal_fuzzes[material_idx]


@ti.func
def scatter_metal_by_id(
    material_idx: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    state: ti.u32,
):
    """Scatter off a registered metal material by its type-local index.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, next_state).
    """
    albedo = get_metal_albedo(material_idx)
    fuzz = get_metal_fuzz(material_idx)
    return scatter_metal(albedo, fuzz, incident_direction, normal, state)
