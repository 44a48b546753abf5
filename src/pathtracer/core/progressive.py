"""Scanline-by-scanline render driver.

ProgressiveRenderer owns the render target and sampling configuration and
walks the image from the top row down, reporting progress after every row.
Calling render() again adds more samples on top of what is already
accumulated.

Example:
    >>> import sys
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.camera.pinhole import setup_camera
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>> from pathtracer.scene.default_scene import create_default_scene
    >>>
    >>> scene, camera = create_default_scene()
    >>> setup_camera(camera)
    >>> renderer = ProgressiveRenderer(400, 225, seed=7)
    >>> renderer.render(100, callback=lambda left, total: print(left, file=sys.stderr))
    >>> renderer.save_image("spheres.png")
"""

from __future__ import annotations

import time
from collections.abc import Callable, Generator
from pathlib import Path
from typing import IO, TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from loguru import logger

from pathtracer.core.integrator import (
    MAX_DEPTH,
    clear_render_target,
    configure_sampling,
    get_accumulated_image_numpy,
    get_sample_count_numpy,
    get_total_samples,
    render_scanline,
    setup_render_target,
)
from pathtracer.preview.export import encode_image, save_png, save_ppm, write_ppm

if TYPE_CHECKING:
    from pathtracer.core.settings import RenderSettings

# Receives (rows_remaining, image_height) after each finished scanline
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """Accumulates samples into the shared render target one row at a time.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        max_depth: Bounce budget per camera ray.
        seed: Render seed.
        jitter: Whether samples are jittered inside each pixel.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        max_depth: int = MAX_DEPTH,
        seed: int = 0,
        jitter: bool = True,
    ) -> None:
        """Set up the render target and sampling configuration.

        Raises:
            ValueError: If the dimensions are out of range or max_depth is
                negative.
        """
        configure_sampling(max_depth, seed, jitter)
        setup_render_target(width, height)
        self._width = width
        self._height = height
        self.max_depth = max_depth
        self.seed = seed
        self.jitter = jitter

    @classmethod
    def from_settings(cls, settings: RenderSettings) -> ProgressiveRenderer:
        return cls(
            settings.image_width,
            settings.image_height,
            max_depth=settings.max_depth,
            seed=settings.seed,
            jitter=settings.jitter,
        )

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def sample_count(self) -> int:
        """Samples accumulated per pixel so far."""
        return get_total_samples()

    def reset(self) -> None:
        """Discard accumulated samples, keeping size and configuration."""
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Change the image size. Accumulated samples are discarded."""
        setup_render_target(width, height)
        self._width = width
        self._height = height

    def _scanlines(self, num_samples: int) -> Generator[int, None, None]:
        # Sampling state is module-global; restore ours in case another
        # renderer changed it
        configure_sampling(self.max_depth, self.seed, self.jitter)
        logger.info(
            "Rendering {}x{} at {} spp (max depth {}, seed {})",
            self._width,
            self._height,
            num_samples,
            self.max_depth,
            self.seed,
        )
        start = time.perf_counter()
        for row in reversed(range(self._height)):
            render_scanline(row, num_samples)
            yield row
        logger.info(
            "Rendered {} spp in {:.2f}s ({} spp accumulated)",
            num_samples,
            time.perf_counter() - start,
            self.sample_count,
        )

    def render(self, num_samples: int = 1, callback: ProgressCallback | None = None) -> None:
        """Add ``num_samples`` samples to every pixel.

        Args:
            num_samples: Samples to add per pixel.
            callback: Called after each scanline with (rows_remaining, height).
        """
        if num_samples <= 0:
            return
        for rows_remaining in self._scanlines(num_samples):
            if callback is not None:
                callback(rows_remaining, self._height)

    def render_progressive(self, num_samples: int = 1) -> Generator[int, None, None]:
        """Like render(), but yields the number of rows remaining after each scanline.

        Example:
            >>> for rows_remaining in renderer.render_progressive(10):
            ...     print(f"Scanlines remaining: {rows_remaining}")
        """
        if num_samples <= 0:
            return
        yield from self._scanlines(num_samples)

    def get_accumulated_numpy(self) -> npt.NDArray[np.float32]:
        """Summed radiance, shape (height, width, 3), top row first."""
        return get_accumulated_image_numpy()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Encoded image, shape (height, width, 3), top row first."""
        return encode_image(get_accumulated_image_numpy(), get_sample_count_numpy())

    def write_ppm(self, stream: IO[str]) -> None:
        """Write the encoded image to a text stream as P3 PPM.

        Raises:
            WriteColorError: If the stream rejects the output.
        """
        write_ppm(self.get_image_uint8(), stream)

    def save_image(self, filepath: str | Path) -> None:
        """Save the encoded image; ``.png`` writes PNG, anything else P3 PPM.

        Raises:
            WriteColorError: If the file cannot be written.
        """
        image = self.get_image_uint8()
        if Path(filepath).suffix.lower() == ".png":
            save_png(image, str(filepath))
        else:
            save_ppm(image, str(filepath))

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count}, seed={self.seed})"
        )
