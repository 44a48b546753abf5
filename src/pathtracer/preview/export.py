"""Color encoding and image export.

Accumulated pixel colors are sums over samples. Encoding divides by the
sample count, applies gamma 2 (square root), clamps to [0, 0.999] and scales
by 256, so every channel lands in 0..255 without a special case for 1.0.

Images are written as plain-text PPM (P3) or, through Pillow, as PNG. Any
failure while writing surfaces as a single error kind, WriteColorError,
naming the destination.

Example:
    >>> import io
    >>> import numpy as np
    >>> from pathtracer.preview.export import encode_image, write_ppm
    >>> accumulated = np.full((1, 2, 3), 0.25, dtype=np.float32)
    >>> counts = np.ones((1, 2), dtype=np.int32)
    >>> out = io.StringIO()
    >>> write_ppm(encode_image(accumulated, counts), out)
    >>> out.getvalue()
    'P3\\n2 1\\n255\\n128 128 128\\n128 128 128\\n'
"""

from __future__ import annotations

import math
from typing import IO, Any

import numpy as np
import numpy.typing as npt
from loguru import logger
from PIL import Image as PILImage

# Upper clamp before scaling by 256; keeps 1.0 from encoding as 256
MAX_INTENSITY = 0.999


class WriteColorError(OSError):
    """Pixel colors could not be written to their destination.

    Attributes:
        destination: File name or description of the stream that failed.
    """

    def __init__(self, destination: str) -> None:
        super().__init__(f"cannot write pixel colors into '{destination}'")
        self.destination = destination


def _describe(stream: Any) -> str:
    name = getattr(stream, "name", None)
    return str(name) if name is not None else repr(stream)


def encode_color(
    color: tuple[float, float, float],
    samples_per_pixel: int,
) -> tuple[int, int, int]:
    """Encode a summed pixel color as 8-bit gamma-2 RGB.

    Args:
        color: Sum of the pixel's sample colors.
        samples_per_pixel: Number of samples in the sum.

    Returns:
        Tuple of (r, g, b), each in [0, 255].

    Raises:
        ValueError: If samples_per_pixel is not positive.
    """
    if samples_per_pixel <= 0:
        raise ValueError(f"samples_per_pixel must be positive, got {samples_per_pixel}")

    scale = 1.0 / samples_per_pixel
    encoded = []
    for channel in color:
        value = math.sqrt(max(0.0, scale * channel))
        value = min(max(value, 0.0), MAX_INTENSITY)
        encoded.append(int(256 * value))
    return (encoded[0], encoded[1], encoded[2])


def encode_image(
    accumulated: npt.NDArray[np.floating],
    sample_counts: npt.NDArray[np.integer],
) -> npt.NDArray[np.uint8]:
    """Encode a whole accumulation buffer the way encode_color() does.

    Args:
        accumulated: Summed colors, shape (H, W, 3).
        sample_counts: Samples per pixel, shape (H, W). Pixels with no samples
            encode as black.

    Returns:
        Array of shape (H, W, 3) with dtype uint8.

    Raises:
        ValueError: If the shapes do not line up.
    """
    if accumulated.ndim != 3 or accumulated.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {accumulated.shape}")
    if sample_counts.shape != accumulated.shape[:2]:
        raise ValueError(
            f"Sample counts shape {sample_counts.shape} does not match "
            f"image shape {accumulated.shape[:2]}"
        )

    counts = sample_counts.astype(np.float64)[..., np.newaxis]
    mean = np.divide(
        accumulated.astype(np.float64),
        counts,
        out=np.zeros(accumulated.shape, dtype=np.float64),
        where=counts > 0,
    )
    gamma = np.sqrt(np.maximum(mean, 0.0))
    gamma = np.clip(gamma, 0.0, MAX_INTENSITY)
    return (256.0 * gamma).astype(np.uint8)


def write_ppm(image: npt.NDArray[np.uint8], stream: IO[str]) -> None:
    """Write an encoded image to a text stream as P3 PPM.

    The header is ``P3``, ``<width> <height>`` and ``255``, each on its own
    line, followed by one ``r g b`` line per pixel with the top row first.

    Args:
        image: Encoded image, shape (H, W, 3).
        stream: Writable text stream.

    Raises:
        WriteColorError: If the stream rejects the output.
    """
    height, width = image.shape[:2]
    try:
        stream.write(f"P3\n{width} {height}\n255\n")
        for row in image:
            stream.write("".join(f"{r} {g} {b}\n" for r, g, b in row.tolist()))
        stream.flush()
    except (OSError, ValueError) as e:
        raise WriteColorError(_describe(stream)) from e


def save_ppm(image: npt.NDArray[np.uint8], filepath: str) -> None:
    """Write an encoded image to ``filepath`` as P3 PPM.

    Raises:
        WriteColorError: If the file cannot be opened or written.
    """
    try:
        with open(filepath, "w", encoding="ascii") as f:
            write_ppm(image, f)
    except WriteColorError:
        raise
    except OSError as e:
        raise WriteColorError(str(filepath)) from e
    logger.info("Wrote {}x{} PPM to {}", image.shape[1], image.shape[0], filepath)


def save_png(image: npt.NDArray[np.uint8], filepath: str) -> None:
    """Write an encoded image to ``filepath`` as PNG.

    Raises:
        WriteColorError: If the file cannot be written.
    """
    try:
        PILImage.fromarray(np.ascontiguousarray(image)).save(filepath, format="PNG")
    except (OSError, ValueError) as e:
        raise WriteColorError(str(filepath)) from e
    logger.info("Wrote {}x{} PNG to {}", image.shape[1], image.shape[0], filepath)


def compute_rmse(
    image_a: npt.NDArray[np.floating | np.integer],
    image_b: npt.NDArray[np.floating | np.integer],
) -> float:
    """Compute the root mean squared error between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
