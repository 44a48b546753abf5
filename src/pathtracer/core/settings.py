"""Render settings shared by the renderer and the command line."""

from dataclasses import dataclass

# No Taichi imports here: settings are built before ti.init() runs
MAX_IMAGE_DIMENSION = 2048
DEFAULT_MAX_DEPTH = 50
# Seeds are unsigned 32-bit on the kernel side
MAX_SEED = 2**32 - 1


def check_seed(seed: int) -> int:
    """Return seed as an int, or raise ValueError if it does not fit in 32 bits."""
    if not 0 <= seed <= MAX_SEED:
        raise ValueError(f"seed must be between 0 and {MAX_SEED}, got {seed}")
    return int(seed)


@dataclass
class RenderSettings:
    """Image size and sampling parameters for one render.

    Attributes:
        image_width: Output width in pixels.
        aspect_ratio: Width divided by height; also the camera's aspect ratio.
        samples_per_pixel: Camera rays averaged into each pixel.
        max_depth: Bounce budget per camera ray.
        seed: Render seed.
        jitter: Randomize sample positions inside each pixel.
    """

    image_width: int = 400
    aspect_ratio: float = 16.0 / 9.0
    samples_per_pixel: int = 100
    max_depth: int = DEFAULT_MAX_DEPTH
    seed: int = 0
    jitter: bool = True

    def __post_init__(self) -> None:
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if not 1 <= self.image_width <= MAX_IMAGE_DIMENSION:
            raise ValueError(
                f"image_width must be between 1 and {MAX_IMAGE_DIMENSION}, got {self.image_width}"
            )
        if self.image_height > MAX_IMAGE_DIMENSION:
            raise ValueError(
                f"image height {self.image_height} exceeds maximum {MAX_IMAGE_DIMENSION}; "
                "use a smaller width or a wider aspect ratio"
            )
        if self.samples_per_pixel < 1:
            raise ValueError(
                f"samples_per_pixel must be at least 1, got {self.samples_per_pixel}"
            )
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")
        check_seed(self.seed)

    @property
    def image_height(self) -> int:
        return max(1, int(self.image_width / self.aspect_ratio))
