"""Scene module: sphere storage, closest-hit queries and scene building.

Components:
    intersection: Sphere fields and the closest-hit query over them
    manager: SceneManager, the shared material ID space and its lookups
    default_scene: The four-sphere demo scene

Scene data lives in Taichi fields laid out as Structure of Arrays so kernels
can loop over spheres directly.
"""

from .default_scene import create_default_scene
from .intersection import (
    MAX_SPHERES,
    SceneHitRecord,
    add_sphere,
    clear_scene,
    get_sphere_count,
    intersect_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneManager,
    SphereInfo,
    get_material_type,
    get_material_type_index,
    material_type_indices,
    material_types,
    num_materials,
)

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "intersect_scene",
    "MAX_SPHERES",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    "material_types",
    "material_type_indices",
    "num_materials",
    # Default scene
    "create_default_scene",
]
