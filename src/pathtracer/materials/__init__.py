"""Materials module for surface scattering models.

Components:
    lambertian: Ideal diffuse (Lambertian) reflection
    metal: Mirror reflection with optional fuzz

Each material provides:
    - scatter_*(): Sample an outgoing direction and attenuation, or signal
      absorption through the did_scatter flag
    - a field-backed registry (add/clear/count/get) used by the scene manager

Scatter functions take and return an explicit generator state so that every
random draw is reproducible for a fixed render seed.
"""

from .lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
    get_lambertian_albedo,
    get_lambertian_material_count,
    scatter_lambertian,
    scatter_lambertian_by_id,
)
from .metal import (
    add_metal_material,
    clear_metal_materials,
    get_metal_albedo,
    get_metal_fuzz,
    get_metal_material_count,
    scatter_metal,
    scatter_metal_by_id,
)

__all__ = [
    # Lambertian
    "scatter_lambertian",
    "scatter_lambertian_by_id",
    "add_lambertian_material",
    "clear_lambertian_materials",
    "get_lambertian_material_count",
    "get_lambertian_albedo",
    # Metal
    "scatter_metal",
    "scatter_metal_by_id",
    "add_metal_material",
    "clear_metal_materials",
    "get_metal_material_count",
    "get_metal_albedo",
    "get_metal_fuzz",
]
