#!/usr/bin/env python3
"""Interactive path tracer with fly-through camera and live scene editing.

This script opens a GGUI window that renders a scene progressively, one
frame per window frame, accumulating while the camera and scene are still.

Usage:
    python -m examples.interactive_scene [--scene NAME] [--scene-file PATH]

Controls:
    - Hold the right mouse button to look around with the mouse
    - While holding it: W/S forward/back, A/D strafe, Q/E down/up
    - Settings panel: bounces, accumulation, render scale, reset, PNG export
    - Scene panel: position, radius and material of the selected sphere

Any camera motion or edit restarts accumulation.
"""

from __future__ import annotations

import argparse
import logging
import platform
import sys
from pathlib import Path

# Ensure the project root is in the Python path for direct execution
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import taichi as ti  # noqa: E402


def initialize_taichi() -> str:
    """Initialize Taichi with the best available backend.

    On macOS, prefers Metal. Falls back to CPU if GPU is unavailable.

    Returns:
        Name of the backend being used.
    """
    system = platform.system()

    if system == "Darwin":
        # macOS: prefer Metal
        try:
            ti.init(arch=ti.metal)
            return "Metal (GPU)"
        except Exception:
            pass

    # Try generic GPU (CUDA on Linux/Windows, Vulkan as fallback)
    try:
        ti.init(arch=ti.gpu)
        return "GPU"
    except Exception:
        pass

    # Fall back to CPU
    ti.init(arch=ti.cpu)
    return "CPU"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interactive progressive path tracer.")
    parser.add_argument("--scene", type=str, default="default", help="Built-in scene name")
    parser.add_argument("--scene-file", type=str, default=None, help="Scene JSON file")
    parser.add_argument("--width", type=int, default=1280, help="Window width (default: 1280)")
    parser.add_argument("--height", type=int, default=720, help="Window height (default: 720)")
    parser.add_argument(
        "--render-scale",
        type=float,
        default=0.75,
        help="Render resolution as a fraction of the window (default: 0.75)",
    )
    parser.add_argument("--export-dir", type=str, default=".", help="Directory for PNG exports")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def main() -> int:
    """Main entry point for the interactive renderer.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    args = parse_args()
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    # Initialize Taichi first (before importing modules that use ti.kernel)
    backend = initialize_taichi()
    print(f"Taichi backend: {backend}")

    # Import after Taichi initialization
    from src.pathtracer.core.progressive import ProgressiveRenderer
    from src.pathtracer.preview.interactive import InteractivePreview
    from src.pathtracer.scene.config import load_scene
    from src.pathtracer.scene.presets import create_scene
    from src.pathtracer.settings import RenderSettings, ViewportSettings

    if not InteractivePreview.is_display_available():
        print("Error: No display available. Cannot run interactive preview.")
        print("This script requires a graphical display environment.")
        return 1

    try:
        scene = load_scene(args.scene_file) if args.scene_file else create_scene(args.scene)
        session = ProgressiveRenderer(
            scene,
            render_settings=RenderSettings(render_scale=args.render_scale),
            viewport=ViewportSettings(width=args.width, height=args.height),
        )
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Creating interactive preview window ({args.width}x{args.height})...")
    preview = InteractivePreview(
        session, args.width, args.height, export_dir=args.export_dir
    )

    print("Starting interactive rendering...")
    print("  - Hold right mouse button and use W/A/S/D/Q/E to fly")
    print("  - Click 'Export PNG' to save the current render")
    print("  - Close window to exit")
    print()

    try:
        preview.run()
    except KeyboardInterrupt:
        print("\nInterrupted by user.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
