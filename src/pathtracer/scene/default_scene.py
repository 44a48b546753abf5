"""The four-sphere demo scene.

A large diffuse sphere acts as the ground. Three unit-diameter spheres sit
on it in a row at z = -1: a brushed metal on the left, a matte red in the
center and a rough metal on the right. The sky comes from the integrator's
background gradient; there are no lights.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.scene.default_scene import create_default_scene
    >>> scene, camera = create_default_scene()
    >>> scene.get_sphere_count()
    4
"""

from pathtracer.camera.pinhole import PinholeCamera
from pathtracer.scene.manager import SceneManager

GROUND_ALBEDO = (0.8, 0.8, 0.0)
CENTER_ALBEDO = (0.7, 0.3, 0.3)
METAL_ALBEDO = (0.8, 0.8, 0.8)

LEFT_FUZZ = 0.3
RIGHT_FUZZ = 1.0

GROUND_RADIUS = 100.0
SPHERE_RADIUS = 0.5


def create_default_scene() -> tuple[SceneManager, PinholeCamera]:
    """Populate the scene fields with the demo spheres.

    Any previously built scene is discarded.

    Returns:
        A tuple of (SceneManager, PinholeCamera) with the default camera.
    """
    scene = SceneManager()

    ground = scene.add_lambertian_material(GROUND_ALBEDO)
    center = scene.add_lambertian_material(CENTER_ALBEDO)
    left = scene.add_metal_material(METAL_ALBEDO, fuzz=LEFT_FUZZ)
    right = scene.add_metal_material(METAL_ALBEDO, fuzz=RIGHT_FUZZ)

    scene.add_sphere((0.0, -100.5, -1.0), GROUND_RADIUS, ground)
    scene.add_sphere((0.0, 0.0, -1.0), SPHERE_RADIUS, center)
    scene.add_sphere((-1.0, 0.0, -1.0), SPHERE_RADIUS, left)
    scene.add_sphere((1.0, 0.0, -1.0), SPHERE_RADIUS, right)

    return scene, PinholeCamera()
