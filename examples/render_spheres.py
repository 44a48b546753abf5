#!/usr/bin/env python3
"""Render the four-sphere scene (or a scene loaded from JSON).

Usage:
    python -m examples.render_spheres [options] > spheres.ppm

Options:
    --width WIDTH       Image width in pixels (default: 400)
    --samples SAMPLES   Samples per pixel (default: 100)
    --depth DEPTH       Maximum bounces per camera ray (default: 50)
    --seed SEED         Render seed (default: 0)
    --no-jitter         Sample each pixel at its corner instead of randomly
    --scene FILE        JSON scene as produced by SceneManager.to_dict()
    --output FILE       Write to FILE (.ppm or .png) instead of stdout
    --quiet             Suppress progress and log output

The image height follows from the 16:9 aspect ratio. Progress is reported on
stderr as "Scanlines remaining: N"; stdout only ever carries the image.

Example:
    python -m examples.render_spheres --width 200 --samples 20 --output spheres.png
"""

from __future__ import annotations

import argparse
import contextlib
import json
import sys
from pathlib import Path

from loguru import logger

# The pathtracer package imports taichi, which prints a banner on import.
# stdout may carry the image, so the banner goes to stderr.
with contextlib.redirect_stdout(sys.stderr):
    import taichi as ti

    from pathtracer.core.settings import RenderSettings


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render spheres with a Monte Carlo path tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=400,
        help="Image width in pixels (default: 400)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=100,
        help="Samples per pixel (default: 100)",
    )
    parser.add_argument(
        "--depth",
        type=int,
        default=50,
        help="Maximum bounces per camera ray (default: 50)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Render seed, 0 to 2**32 - 1 (default: 0)",
    )
    parser.add_argument(
        "--no-jitter",
        action="store_true",
        help="Disable sub-pixel jitter (deterministic pixel positions)",
    )
    parser.add_argument(
        "--scene",
        type=Path,
        default=None,
        help="JSON scene file (default: built-in four-sphere scene)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output file, .ppm or .png (default: PPM on stdout)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> RenderSettings:
    return RenderSettings(
        image_width=args.width,
        samples_per_pixel=args.samples,
        max_depth=args.depth,
        seed=args.seed,
        jitter=not args.no_jitter,
    )


def render_spheres(
    settings: RenderSettings,
    scene_file: Path | None = None,
    output_path: Path | None = None,
    quiet: bool = False,
) -> None:
    """Build the scene, render it and write the image.

    Raises:
        ValueError: If the scene file or settings are invalid.
        WriteColorError: If the image cannot be written.
    """
    # Lazy imports: these modules declare Taichi fields and need ti.init() first
    from pathtracer.camera.pinhole import PinholeCamera, setup_camera
    from pathtracer.core.progressive import ProgressiveRenderer
    from pathtracer.scene.default_scene import create_default_scene
    from pathtracer.scene.manager import SceneManager

    if scene_file is None:
        _, camera = create_default_scene()
    else:
        with open(scene_file, encoding="utf-8") as f:
            data = json.load(f)
        SceneManager().from_dict(data)
        camera = PinholeCamera()
    camera.aspect_ratio = settings.aspect_ratio
    setup_camera(camera)

    renderer = ProgressiveRenderer.from_settings(settings)

    def progress(rows_remaining: int, height: int) -> None:
        print(f"\rScanlines remaining: {rows_remaining} ", end="", file=sys.stderr, flush=True)

    renderer.render(settings.samples_per_pixel, callback=None if quiet else progress)
    if not quiet:
        print("\nDone.", file=sys.stderr)

    if output_path is None:
        renderer.write_ppm(sys.stdout)
    else:
        renderer.save_image(output_path)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level="WARNING" if args.quiet else "INFO")

    try:
        settings = build_settings(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    with contextlib.redirect_stdout(sys.stderr):
        ti.init(arch=ti.cpu, log_level=ti.WARN)

    try:
        render_spheres(
            settings,
            scene_file=args.scene,
            output_path=args.output,
            quiet=args.quiet,
        )
        return 0
    except (OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
