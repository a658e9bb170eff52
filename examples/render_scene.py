#!/usr/bin/env python3
"""Render a scene offline and save it as a PNG.

This script renders one of the built-in scenes (or a scene loaded from a JSON
file) with progressive accumulation from the default camera, printing
progress as frames accumulate.

Usage:
    python -m examples.render_scene [options]

Options:
    --scene NAME          Built-in scene: default, lit or mesh (default: default)
    --scene-file PATH     Load the scene from a JSON file instead
    --save-scene PATH     Write the scene to a JSON file before rendering
    --width WIDTH         Image width in pixels (default: 512)
    --height HEIGHT       Image height in pixels (default: 512)
    --frames FRAMES       Frames to accumulate (default: 64)
    --rays-per-pixel N    Rays per pixel per frame (default: 1)
    --bounces N           Maximum bounces per path (default: 5)
    --seed SEED           Random seed (default: 0)
    --output OUTPUT       Output file path (default: render.png)
    --quiet               Suppress progress output
    --verbose             Enable debug logging

Example:
    python -m examples.render_scene --scene lit --width 256 --height 256 --frames 32
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a scene and save it as a PNG.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scene",
        type=str,
        default="default",
        help="Built-in scene: default, lit or mesh (default: default)",
    )
    parser.add_argument(
        "--scene-file",
        type=str,
        default=None,
        help="Load the scene from a JSON file instead of a built-in scene",
    )
    parser.add_argument(
        "--save-scene",
        type=str,
        default=None,
        help="Write the scene to a JSON file before rendering",
    )
    parser.add_argument("--width", type=int, default=512, help="Image width in pixels (default: 512)")
    parser.add_argument(
        "--height", type=int, default=512, help="Image height in pixels (default: 512)"
    )
    parser.add_argument("--frames", type=int, default=64, help="Frames to accumulate (default: 64)")
    parser.add_argument(
        "--rays-per-pixel",
        type=int,
        default=1,
        help="Rays per pixel per frame (default: 1)",
    )
    parser.add_argument("--bounces", type=int, default=5, help="Maximum bounces (default: 5)")
    parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
    parser.add_argument(
        "--output",
        type=str,
        default="render.png",
        help="Output file path (default: render.png)",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def render_scene(
    scene_name: str = "default",
    scene_file: str | None = None,
    save_scene_path: str | None = None,
    width: int = 512,
    height: int = 512,
    num_frames: int = 64,
    rays_per_pixel: int = 1,
    bounces: int = 5,
    seed: int = 0,
    output_path: str = "render.png",
    quiet: bool = False,
) -> Path:
    """Render a scene and save it to file.

    The offline render uses the full viewport resolution (render scale 1).

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.pathtracer.core.progressive import ProgressiveRenderer
    from src.pathtracer.scene.config import load_scene, save_scene
    from src.pathtracer.scene.presets import create_scene
    from src.pathtracer.settings import RenderSettings, ViewportSettings

    if scene_file is not None:
        scene = load_scene(scene_file)
        label = scene_file
    else:
        scene = create_scene(scene_name)
        label = scene_name

    if save_scene_path is not None:
        save_scene(scene, save_scene_path)

    if not quiet:
        print(f"Rendering scene '{label}' at {width}x{height}...")

    session = ProgressiveRenderer(
        scene,
        render_settings=RenderSettings(
            bounces=bounces,
            rays_per_pixel=rays_per_pixel,
            seed=seed,
            render_scale=1.0,
        ),
        viewport=ViewportSettings(
            width=width,
            height=height,
            max_width=max(width, 1),
            max_height=max(height, 1),
        ),
    )

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            fps = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} frames "
                f"({progress_pct:.1f}%) - {fps:.1f} frames/s",
                end="",
                flush=True,
            )

    session.render(num_frames, callback=progress_callback)

    if not quiet:
        print()  # Newline after progress

    output_file = session.save_image(output_path)

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(
            f"Total time: {total_time:.2f}s "
            f"(average frame {session.average_frame_time_ms:.2f} ms)"
        )

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    # Use GPU if available, fall back to CPU
    try:
        ti.init(arch=ti.gpu)
        if not args.quiet:
            print("Using GPU backend")
    except Exception:
        ti.init(arch=ti.cpu)
        if not args.quiet:
            print("Using CPU backend")

    try:
        render_scene(
            scene_name=args.scene,
            scene_file=args.scene_file,
            save_scene_path=args.save_scene,
            width=args.width,
            height=args.height,
            num_frames=args.frames,
            rays_per_pixel=args.rays_per_pixel,
            bounces=args.bounces,
            seed=args.seed,
            output_path=args.output,
            quiet=args.quiet,
        )
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
