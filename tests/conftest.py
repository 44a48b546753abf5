"""Pytest configuration for path tracer tests.

Taichi is initialized once per session. Modules that declare Taichi fields
are imported inside fixtures and tests so that they load after ti.init().
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Repeated ti.init() calls would invalidate fields declared by modules that
    are already imported.
    """
    ti.init(arch=ti.cpu)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Reset scene, materials, sampling and render target around each test."""
    from pathtracer.core.integrator import (
        MAX_DEPTH,
        clear_render_target,
        configure_sampling,
    )
    from pathtracer.materials.lambertian import clear_lambertian_materials
    from pathtracer.materials.metal import clear_metal_materials
    from pathtracer.scene.intersection import clear_scene
    from pathtracer.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        _clear_material_tracking()
        clear_render_target()
        configure_sampling(MAX_DEPTH, seed=0, jitter=True)

    _clear_all()
    yield
    _clear_all()
