"""Camera module.

Components:
    perspective: Fly-through perspective camera that caches one world-space
        ray direction per pixel, recomputed only on movement or resize

Pixel (0, 0) is the top-left corner; directions are stored row-major.
"""

from .perspective import (
    MOVE_SPEED,
    ROTATION_SPEED,
    MovementKeys,
    PerspectiveCamera,
    look_at_rh,
    perspective_rh,
)

__all__ = [
    "PerspectiveCamera",
    "MovementKeys",
    "MOVE_SPEED",
    "ROTATION_SPEED",
    "perspective_rh",
    "look_at_rh",
]
