"""Preview module for output and visualization.

Components:
    display: Matplotlib-based preview and comparison
    export: PNG export (Pillow) and image error metrics
    interactive: Taichi GGUI viewer with fly controls and an editing panel

Example:
    >>> from src.pathtracer.preview import save_png, show_preview
    >>> session.render(64)
    >>> show_preview(session)
    >>> save_png(session.get_image_numpy(), "output.png")
"""

from src.pathtracer.preview.display import (
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    show_comparison,
    show_preview,
    tone_map_reinhard,
)
from src.pathtracer.preview.export import compute_rmse, image_to_uint8, load_png, save_png
from src.pathtracer.preview.interactive import InteractivePreview, MouseLook

__all__ = [
    "InteractivePreview",
    "MouseLook",
    "show_preview",
    "show_comparison",
    "tone_map_reinhard",
    "apply_gamma",
    "process_image_for_display",
    "ToneMapMethod",
    "save_png",
    "load_png",
    "image_to_uint8",
    "compute_rmse",
]
