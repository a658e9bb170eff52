"""Image export for rendered frames.

The renderer's display image is already 8-bit RGBA (clamped, no gamma), so
PNG export writes it as-is. Float images (for example the accumulated
average) go through image_to_uint8 first.

Example:
    >>> from src.pathtracer.preview.export import save_png
    >>> save_png(session.get_image_numpy(), "output.png")
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

logger = logging.getLogger(__name__)


def image_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert a float image in [0, 1] to uint8, rounding to nearest.

    Values outside [0, 1] are clamped.
    """
    clamped = np.clip(np.asarray(image, dtype=np.float64), 0.0, 1.0)
    return (clamped * 255.0 + 0.5).astype(np.uint8)


def save_png(image: npt.NDArray, filepath: str | Path) -> Path:
    """Save an RGB or RGBA image as a PNG file.

    Args:
        image: Array of shape (H, W, 3) or (H, W, 4). uint8 data is written
            unchanged; float data is treated as [0, 1] and converted.
        filepath: Output path. Parent directories are created.

    Returns:
        The path written to.

    Raises:
        ValueError: If the image does not have 3 or 4 channels.
    """
    image = np.asarray(image)
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Expected an (H, W, 3) or (H, W, 4) image, got shape {image.shape}")
    if image.dtype != np.uint8:
        image = image_to_uint8(image)

    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    PILImage.fromarray(np.ascontiguousarray(image)).save(path)
    logger.info("Saved %dx%d image to %s", image.shape[1], image.shape[0], path)
    return path


def load_png(filepath: str | Path) -> npt.NDArray[np.uint8]:
    """Read a PNG back as an (H, W, 4) uint8 RGBA array."""
    with PILImage.open(filepath) as pil_image:
        return np.array(pil_image.convert("RGBA"))


def compute_rmse(
    image_a: npt.NDArray,
    image_b: npt.NDArray,
) -> float:
    """Root mean squared error between two images of the same shape.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
