"""Offline Monte Carlo path tracer written in Taichi.

Renders spheres with diffuse (Lambertian) and reflective (Metal) materials
under a sky gradient, seen through a fixed pinhole camera, and writes the
result as a PPM (P3) or PNG image.

Subpackages:
    core: Rays, random sampling, integrator, render driver and settings
    geometry: Sphere primitive and ray-sphere intersection
    materials: Lambertian and Metal scattering
    scene: Sphere storage, closest-hit queries and scene building
    camera: Pinhole camera ray generation
    preview: Color encoding and image export
"""

__version__ = "0.1.0"
