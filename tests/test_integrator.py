"""Tests for the path tracing integrator.

This module tests the core path tracing functionality including:
- The sky gradient seen by escaping rays
- Bounce budget, absorption and material dispatch in ray_color
- Render target setup and validation
- Scanline accumulation, sample counts and reproducibility
- Orientation of the image read back to numpy

Note: Imports are done inside test methods. The conftest.py fixture
initializes Taichi before tests run, so module-level imports of modules
containing ti.field() declarations would fail.
"""

import math

import numpy as np
import pytest
import taichi as ti


def _sky(direction):
    """Reference sky gradient for a direction, in plain Python."""
    y = direction[1] / math.sqrt(sum(c * c for c in direction))
    t = 0.5 * (y + 1.0)
    return tuple((1.0 - t) * 1.0 + t * z for z in (0.5, 0.7, 1.0))


def _ground_scene():
    """A single large diffuse sphere acting as the ground."""
    from pathtracer.scene.manager import SceneManager

    scene = SceneManager()
    scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, (0.5, 0.5, 0.5))
    return scene


class TestBackgroundColor:
    """Tests for the sky gradient."""

    @pytest.mark.parametrize(
        "direction, expected",
        [
            ((0.0, 1.0, 0.0), (0.5, 0.7, 1.0)),
            ((0.0, -1.0, 0.0), (1.0, 1.0, 1.0)),
            ((0.0, 0.0, -1.0), (0.75, 0.85, 1.0)),
            ((0.0, 10.0, 0.0), (0.5, 0.7, 1.0)),
        ],
    )
    def test_gradient(self, direction, expected):
        from pathtracer.core.integrator import background_color, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = background_color(vec3(direction[0], direction[1], direction[2]))

        test_kernel()
        np.testing.assert_allclose(result[None].to_numpy(), expected, atol=1e-6)


class TestRayColor:
    """Tests for ray_color through the trace_ray wrapper."""

    def test_empty_scene_returns_sky(self):
        from pathtracer.core.integrator import trace_ray

        direction = (0.3, 0.4, -1.0)
        color = trace_ray((0.0, 0.0, 0.0), direction)
        np.testing.assert_allclose(color, _sky(direction), atol=1e-5)

    def test_depth_zero_is_black(self):
        from pathtracer.core.integrator import trace_ray

        assert trace_ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), depth=0) == (0.0, 0.0, 0.0)

    def test_exhausted_bounce_budget_is_black(self):
        """A ray that still hits something on its last bounce contributes nothing."""
        from pathtracer.core.integrator import trace_ray

        _ground_scene()
        assert trace_ray((0.0, 0.0, 0.0), (0.0, -1.0, 0.0), depth=1) == (0.0, 0.0, 0.0)

    def test_enclosed_ray_never_escapes(self):
        from pathtracer.core.integrator import trace_ray
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, 0.0), 10.0, (0.9, 0.9, 0.9))
        for seed in range(5):
            color = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), seed=seed)
            assert color == (0.0, 0.0, 0.0)

    def test_mirror_floor_reflects_zenith(self):
        """A fuzz-free metal floor sends a downward ray straight up into the sky."""
        from pathtracer.core.integrator import trace_ray
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, -100.5, 0.0), 100.0, (0.8, 0.6, 0.2), fuzz=0.0)

        color = trace_ray((0.0, 0.0, 0.0), (0.0, -1.0, 0.0), depth=2)
        np.testing.assert_allclose(color, (0.8 * 0.5, 0.6 * 0.7, 0.2 * 1.0), atol=1e-4)

    def test_black_diffuse_surface_absorbs(self):
        from pathtracer.core.integrator import trace_ray
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, -100.5, 0.0), 100.0, (0.0, 0.0, 0.0))
        assert trace_ray((0.0, 0.0, 0.0), (0.0, -1.0, 0.0)) == (0.0, 0.0, 0.0)

    def test_diffuse_bounce_is_bounded_by_albedo(self):
        from pathtracer.core.integrator import trace_ray

        _ground_scene()
        for seed in range(10):
            color = trace_ray((0.0, 0.0, 0.0), (0.0, -1.0, 0.0), seed=seed)
            assert all(0.0 <= c <= 0.5 + 1e-5 for c in color)

    def test_unregistered_material_absorbs(self):
        from pathtracer.core.integrator import trace_ray
        from pathtracer.scene.intersection import add_sphere

        add_sphere((0.0, 0.0, -1.0), 0.5, material_id=7)
        assert trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0)) == (0.0, 0.0, 0.0)


class TestSamplingConfig:
    """Tests for configure_sampling."""

    def test_configure_and_read_back(self):
        from pathtracer.core.integrator import configure_sampling, get_sampling_config

        configure_sampling(max_depth=5, seed=42, jitter=False)
        assert get_sampling_config() == {"max_depth": 5, "seed": 42, "jitter": 0}

    def test_negative_depth_rejected(self):
        from pathtracer.core.integrator import configure_sampling

        with pytest.raises(ValueError, match="max_depth"):
            configure_sampling(max_depth=-1)

    @pytest.mark.parametrize("seed", [-1, 2**32, 2**40])
    def test_seed_out_of_range_rejected(self, seed):
        from pathtracer.core.integrator import configure_sampling, get_sampling_config

        with pytest.raises(ValueError, match="seed"):
            configure_sampling(seed=seed)
        assert get_sampling_config()["seed"] == 0

    def test_largest_seed_accepted(self):
        from pathtracer.core.integrator import configure_sampling, get_sampling_config
        from pathtracer.core.settings import MAX_SEED

        configure_sampling(seed=MAX_SEED)
        assert get_sampling_config()["seed"] == 2**32 - 1

    def test_trace_ray_seed_out_of_range(self):
        from pathtracer.core.integrator import trace_ray

        with pytest.raises(ValueError, match="seed"):
            trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), seed=2**32)

    def test_high_seeds_are_distinct(self):
        """Seeds above 2**31 keep all 32 bits instead of wrapping."""
        from pathtracer.camera.pinhole import setup_camera
        from pathtracer.core.integrator import (
            configure_sampling,
            get_accumulated_image_numpy,
            render_image,
            setup_render_target,
        )
        from pathtracer.scene.default_scene import create_default_scene

        _, camera = create_default_scene()
        setup_camera(camera)

        images = []
        for seed in (0, 2**31, 2**32 - 1, 2**32 - 1):
            configure_sampling(seed=seed)
            setup_render_target(16, 9)
            render_image(num_samples=1)
            images.append(get_accumulated_image_numpy())

        assert not np.array_equal(images[0], images[1])
        assert not np.array_equal(images[1], images[2])
        np.testing.assert_array_equal(images[2], images[3])
        assert np.isfinite(images[2]).all()


class TestRenderTarget:
    """Tests for render target management."""

    def test_dimensions(self):
        from pathtracer.core.integrator import get_image_dimensions, setup_render_target

        setup_render_target(64, 48)
        assert get_image_dimensions() == (64, 48)

    @pytest.mark.parametrize("size", [(0, 10), (10, 0), (2049, 1), (1, 2049)])
    def test_invalid_dimensions(self, size):
        from pathtracer.core.integrator import setup_render_target

        with pytest.raises(ValueError):
            setup_render_target(*size)

    def test_largest_size_accepted(self):
        from pathtracer.core.integrator import (
            MAX_IMAGE_HEIGHT,
            MAX_IMAGE_WIDTH,
            get_image_dimensions,
            setup_render_target,
        )

        setup_render_target(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT)
        assert get_image_dimensions() == (MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT)

    def test_setup_clears_previous_samples(self):
        from pathtracer.camera.pinhole import PinholeCamera, setup_camera
        from pathtracer.core.integrator import get_total_samples, render_image, setup_render_target

        setup_camera(PinholeCamera(aspect_ratio=1.0))
        setup_render_target(8, 8)
        render_image(num_samples=2)
        assert get_total_samples() == 2

        setup_render_target(8, 8)
        assert get_total_samples() == 0


class TestScanlines:
    """Tests for render_scanline and render_image."""

    def test_scanline_only_touches_its_row(self):
        from pathtracer.camera.pinhole import PinholeCamera, setup_camera
        from pathtracer.core.integrator import (
            get_sample_count_numpy,
            render_scanline,
            setup_render_target,
        )

        setup_camera(PinholeCamera())
        setup_render_target(16, 9)
        render_scanline(0, num_samples=3)

        counts = get_sample_count_numpy()
        # Row 0 is the bottom of the image, the last row of the array
        assert (counts[-1] == 3).all()
        assert (counts[:-1] == 0).all()

    def test_scanline_row_out_of_range(self):
        from pathtracer.core.integrator import render_scanline, setup_render_target

        setup_render_target(4, 4)
        with pytest.raises(ValueError, match="outside the image"):
            render_scanline(4)
        with pytest.raises(ValueError, match="outside the image"):
            render_scanline(-1)

    def test_zero_samples_is_a_no_op(self):
        from pathtracer.core.integrator import get_total_samples, render_scanline, setup_render_target

        setup_render_target(4, 4)
        render_scanline(0, num_samples=0)
        assert get_total_samples() == 0

    def test_sample_counts_accumulate(self):
        from pathtracer.camera.pinhole import PinholeCamera, setup_camera
        from pathtracer.core.integrator import (
            get_sample_count_numpy,
            get_total_samples,
            render_image,
            setup_render_target,
        )

        setup_camera(PinholeCamera())
        setup_render_target(8, 4)
        render_image(num_samples=2)
        render_image(num_samples=3)

        assert get_total_samples() == 5
        assert (get_sample_count_numpy() == 5).all()

    def test_split_passes_match_single_pass(self):
        """Later passes continue each pixel's sample sequence."""
        from pathtracer.camera.pinhole import setup_camera
        from pathtracer.core.integrator import (
            get_accumulated_image_numpy,
            render_image,
            setup_render_target,
        )
        from pathtracer.scene.default_scene import create_default_scene

        _, camera = create_default_scene()
        setup_camera(camera)

        setup_render_target(16, 9)
        render_image(num_samples=2)
        single = get_accumulated_image_numpy()

        setup_render_target(16, 9)
        render_image(num_samples=1)
        render_image(num_samples=1)
        split = get_accumulated_image_numpy()

        np.testing.assert_allclose(split, single, rtol=1e-5, atol=1e-6)

    def test_same_seed_reproduces_image(self):
        from pathtracer.camera.pinhole import setup_camera
        from pathtracer.core.integrator import (
            configure_sampling,
            get_accumulated_image_numpy,
            render_image,
            setup_render_target,
        )
        from pathtracer.scene.default_scene import create_default_scene

        _, camera = create_default_scene()
        setup_camera(camera)

        images = []
        for seed in (3, 3, 4):
            configure_sampling(seed=seed)
            setup_render_target(16, 9)
            render_image(num_samples=2)
            images.append(get_accumulated_image_numpy())

        np.testing.assert_array_equal(images[0], images[1])
        assert not np.array_equal(images[0], images[2])

    def test_render_sample_does_not_accumulate(self):
        from pathtracer.camera.pinhole import PinholeCamera, setup_camera
        from pathtracer.core.integrator import get_total_samples, render_sample, setup_render_target

        setup_camera(PinholeCamera())
        setup_render_target(16, 9)
        color = render_sample(8, 8)

        assert len(color) == 3
        assert all(c >= 0.0 for c in color)
        assert get_total_samples() == 0

    @pytest.mark.parametrize("pixel", [(-1, 0), (0, -1), (16, 0), (0, 9)])
    def test_render_sample_outside_image(self, pixel):
        from pathtracer.core.integrator import render_sample, setup_render_target

        setup_render_target(16, 9)
        with pytest.raises(ValueError, match="outside the image"):
            render_sample(*pixel)

    def test_render_sample_corners(self):
        from pathtracer.camera.pinhole import PinholeCamera, setup_camera
        from pathtracer.core.integrator import render_sample, setup_render_target

        setup_camera(PinholeCamera())
        setup_render_target(16, 9)
        for pixel in [(0, 0), (15, 8)]:
            assert all(c >= 0.0 for c in render_sample(*pixel))

    def test_total_samples_counts_partial_pass(self):
        """Only the top row has been sampled; pixel (0, 0) is still empty."""
        from pathtracer.camera.pinhole import PinholeCamera, setup_camera
        from pathtracer.core.integrator import (
            get_sample_count_numpy,
            get_total_samples,
            render_scanline,
            setup_render_target,
        )

        setup_camera(PinholeCamera())
        setup_render_target(8, 4)
        render_scanline(3, num_samples=2)

        assert get_sample_count_numpy()[-1, 0] == 0
        assert get_total_samples() == 2


class TestReadback:
    """Tests for reading the accumulation buffer back to numpy."""

    def test_top_row_first(self):
        """The upper rows see sky; the lower rows see the ground."""
        from pathtracer.camera.pinhole import PinholeCamera, setup_camera
        from pathtracer.core.integrator import (
            configure_sampling,
            get_accumulated_image_numpy,
            render_image,
            setup_render_target,
        )

        _ground_scene()
        setup_camera(PinholeCamera())
        configure_sampling(jitter=False)
        setup_render_target(16, 9)
        render_image(num_samples=1)

        image = get_accumulated_image_numpy()
        assert image.shape == (9, 16, 3)
        assert image.dtype == np.float32

        # Without jitter the top row samples v = 1 exactly
        w = 16.0 / 9.0
        for col in range(16):
            x = -w + col * 2.0 * w / 15.0
            np.testing.assert_allclose(image[0, col], _sky((x, 1.0, -1.0)), atol=1e-4)

        # The ground has albedo 0.5, so nothing below it can be brighter than 0.5
        assert image[-1].max() <= 0.5 + 1e-5
        assert image[0].min() >= 0.5 - 1e-5
