"""Scene manager tying spheres to their materials.

Spheres only carry an integer material ID. The manager owns that ID space
and records, for every ID, which material kind it is (Lambertian or Metal)
and where its parameters live in the kind-specific registry. The integrator
reads the same mapping from Taichi fields to pick a scatter function.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> ground = scene.add_lambertian_material(albedo=(0.8, 0.8, 0.0))
    >>> scene.add_sphere(center=(0, -100.5, -1), radius=100.0, material_id=ground)
    0
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

import taichi as ti
from loguru import logger

from pathtracer.materials.lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
)
from pathtracer.materials.metal import (
    add_metal_material,
    clear_metal_materials,
)
from pathtracer.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)


class MaterialType(IntEnum):
    """Material kinds understood by the integrator's scatter dispatch."""

    LAMBERTIAN = 0
    METAL = 1


# Shared ID space across both material kinds
MAX_MATERIALS = 512

# material_types[id] is the MaterialType of material `id`;
# material_type_indices[id] is its slot in the kind-specific registry.
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Look up the MaterialType of a material ID inside a kernel.

    Returns:
        The material kind as an integer, or -1 for an unknown ID.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Look up the kind-specific registry slot of a material ID.

    Returns:
        The registry index, or -1 for an unknown ID.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Host-side record of a registered material.

    Attributes:
        material_id: The shared material ID.
        material_type: Which registry the parameters live in.
        type_index: Slot within that registry.
        params: Parameters exactly as passed when the material was added.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Host-side record of a sphere."""

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


def _as_triple(values: Any, name: str) -> tuple[float, float, float]:
    message = f"'{name}' must have 3 numeric components, got {values!r}"
    if isinstance(values, str) or not hasattr(values, "__len__") or len(values) != 3:
        raise ValueError(message)
    try:
        return (float(values[0]), float(values[1]), float(values[2]))
    except (TypeError, ValueError) as e:
        raise ValueError(message) from e


def _as_number(value: Any, name: str, cast: type = float) -> Any:
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"'{name}' must be a number, got {value!r}") from e


def _entries(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    entries = data.get(key, [])
    if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
        raise ValueError(f"'{key}' must be a list of objects, got {entries!r}")
    return entries


class SceneManager:
    """Builds a scene of spheres and keeps material IDs consistent.

    Creating a manager resets every scene and material field, so only one
    scene is live at a time. Materials must be added before the spheres that
    reference them.

    Attributes:
        materials: MaterialInfo for every registered material, indexed by ID.
        spheres: SphereInfo for every sphere, indexed by sphere index.

    Example:
        >>> scene = SceneManager()
        >>> brushed = scene.add_metal_material(albedo=(0.8, 0.8, 0.8), fuzz=0.3)
        >>> scene.add_sphere((-1.0, 0.0, -1.0), 0.5, brushed)
        0
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.spheres.clear()

    def clear(self) -> None:
        """Remove all spheres and materials."""
        self._clear_all()
        logger.debug("Scene cleared")

    # =========================================================================
    # Materials
    # =========================================================================

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        logger.debug(
            "Registered {} material {} (slot {}): {}",
            material_type.name.lower(),
            material_id,
            type_index,
            params,
        )
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Add a diffuse material.

        Args:
            albedo: Reflectance as (R, G, B), each in [0, 1].

        Returns:
            The material ID to pass to add_sphere().

        Raises:
            ValueError: If albedo is malformed or out of range.
            RuntimeError: If a material registry is full.
        """
        type_index = add_lambertian_material(albedo)
        return self._register_material(
            MaterialType.LAMBERTIAN, type_index, {"albedo": tuple(albedo)}
        )

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a reflective material.

        Args:
            albedo: Reflectance as (R, G, B), each in [0, 1].
            fuzz: Reflection perturbation in [0, 1]; 0 is a perfect mirror.

        Returns:
            The material ID to pass to add_sphere().

        Raises:
            ValueError: If albedo or fuzz is out of range.
            RuntimeError: If a material registry is full.
        """
        type_index = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": tuple(albedo), "fuzz": fuzz}
        )

    def get_material_count(self) -> int:
        """Get the number of registered materials."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Host-side counterpart of get_material_type().

        Returns:
            The MaterialType, or None for an unknown ID.
        """
        info = self.get_material_info(material_id)
        return info.material_type if info is not None else None

    # =========================================================================
    # Spheres
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere that uses an existing material.

        Args:
            center: Sphere center as (x, y, z).
            radius: Sphere radius, must be positive.
            material_id: ID returned by one of the add_*_material() methods.

        Returns:
            The index of the new sphere.

        Raises:
            ValueError: If material_id is unknown or radius is not positive.
            RuntimeError: If the sphere storage is full.
        """
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

        center = _as_triple(center, "center")
        sphere_index = add_sphere(center, radius, material_id)
        self.spheres.append(
            SphereInfo(
                sphere_index=sphere_index,
                center=center,
                radius=radius,
                material_id=material_id,
            )
        )
        logger.debug(
            "Added sphere {} at {} r={} with material {}",
            sphere_index,
            center,
            radius,
            material_id,
        )
        return sphere_index

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Add a sphere together with a new diffuse material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        """Add a sphere together with a new metal material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_metal_material(albedo, fuzz)
        return self.add_sphere(center, radius, material_id), material_id

    def get_sphere_count(self) -> int:
        return get_sphere_count()

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the scene as plain data suitable for JSON.

        Returns:
            A dict with "materials" and "spheres" lists. Sphere entries refer
            to materials by their position in the "materials" list.
        """
        materials = []
        for info in self.materials:
            entry: dict[str, Any] = {"type": info.material_type.name.lower()}
            for key, value in info.params.items():
                entry[key] = list(value) if isinstance(value, tuple) else value
            materials.append(entry)

        spheres = [
            {
                "center": list(info.center),
                "radius": info.radius,
                "material_id": info.material_id,
            }
            for info in self.spheres
        ]
        return {"materials": materials, "spheres": spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Replace the current scene with one described by to_dict() output.

        Args:
            data: Dict with "materials" and "spheres" lists.

        Raises:
            ValueError: If a material type is unknown or an entry is malformed.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Scene must be an object, got {type(data).__name__}")
        materials = _entries(data, "materials")
        spheres = _entries(data, "spheres")

        self.clear()

        for mat in materials:
            mat_type = str(mat.get("type", "")).lower()
            if mat_type == "lambertian":
                albedo = _as_triple(mat.get("albedo"), "albedo")
                self.add_lambertian_material(albedo)
            elif mat_type == "metal":
                albedo = _as_triple(mat.get("albedo"), "albedo")
                self.add_metal_material(albedo, _as_number(mat.get("fuzz", 0.0), "fuzz"))
            else:
                raise ValueError(f"Unknown material type: {mat_type!r}")

        for sphere in spheres:
            center = _as_triple(sphere.get("center"), "center")
            if "radius" not in sphere or "material_id" not in sphere:
                raise ValueError(f"Sphere entry needs 'radius' and 'material_id': {sphere!r}")
            self.add_sphere(
                center,
                _as_number(sphere["radius"], "radius"),
                _as_number(sphere["material_id"], "material_id", int),
            )

        logger.info(
            "Loaded scene with {} materials and {} spheres",
            self.get_material_count(),
            self.get_sphere_count(),
        )

    @staticmethod
    def get_max_spheres() -> int:
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS
