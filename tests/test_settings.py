"""Tests for RenderSettings."""

import pytest

from pathtracer.core.settings import (
    DEFAULT_MAX_DEPTH,
    MAX_IMAGE_DIMENSION,
    MAX_SEED,
    RenderSettings,
)


class TestRenderSettings:
    """Tests for defaults, derived height and validation."""

    def test_defaults(self):
        settings = RenderSettings()
        assert settings.image_width == 400
        assert settings.image_height == 225
        assert settings.samples_per_pixel == 100
        assert settings.max_depth == DEFAULT_MAX_DEPTH == 50
        assert settings.seed == 0
        assert settings.jitter is True

    @pytest.mark.parametrize(
        "width, aspect_ratio, height",
        [(200, 2.0, 100), (101, 2.0, 50), (10, 1.0, 10), (1, 16.0 / 9.0, 1), (100, 0.5, 200)],
    )
    def test_image_height(self, width, aspect_ratio, height):
        assert RenderSettings(image_width=width, aspect_ratio=aspect_ratio).image_height == height

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"image_width": 0}, "image_width"),
            ({"image_width": MAX_IMAGE_DIMENSION + 1}, "image_width"),
            ({"aspect_ratio": 0.0}, "aspect_ratio"),
            ({"aspect_ratio": 0.5, "image_width": 2000}, "height"),
            ({"samples_per_pixel": 0}, "samples_per_pixel"),
            ({"max_depth": -1}, "max_depth"),
            ({"seed": -1}, "seed"),
            ({"seed": MAX_SEED + 1}, "seed"),
        ],
    )
    def test_invalid(self, kwargs, message):
        with pytest.raises(ValueError, match=message):
            RenderSettings(**kwargs)

    def test_zero_depth_allowed(self):
        assert RenderSettings(max_depth=0).max_depth == 0

    def test_full_seed_range_allowed(self):
        assert RenderSettings(seed=MAX_SEED).seed == 2**32 - 1
