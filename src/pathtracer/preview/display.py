"""Matplotlib preview of rendered frames.

show_preview displays a session's current image with the frame count and
frame time in the title. By default the 8-bit display image is shown as the
renderer produced it; asking for tone mapping or a gamma other than 1.0
switches to the float accumulated average, processed on the host.

Example:
    >>> from src.pathtracer.preview.display import show_preview
    >>> session.render(64)
    >>> show_preview(session, tone_map="reinhard", gamma=2.2)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import numpy as np
import numpy.typing as npt

from src.pathtracer.preview.export import compute_rmse

if TYPE_CHECKING:
    from src.pathtracer.core.progressive import ProgressiveRenderer


# Type alias for tone mapping options
ToneMapMethod = Literal["none", "reinhard"]


def tone_map_reinhard(image: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Reinhard operator, c / (1 + c), after clamping negatives to zero."""
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def apply_gamma(image: npt.NDArray[np.float32], gamma: float = 1.0) -> npt.NDArray[np.float32]:
    """Encode linear values with out = in ** (1 / gamma)."""
    if gamma == 1.0:
        return image
    # Negative values would give NaN
    image = np.clip(image, 0.0, 1.0)
    return np.power(image, 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Tone map, gamma encode and clamp a linear RGB image to [0, 1].

    Raises:
        ValueError: On an unknown tone mapping method or a non-positive gamma.
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    result = np.asarray(image, dtype=np.float32).copy()

    if tone_map == "reinhard":
        result = tone_map_reinhard(result)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    result = apply_gamma(result, gamma)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def session_display_image(
    session: ProgressiveRenderer,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
) -> npt.NDArray:
    """The image show_preview would draw for a session."""
    if tone_map == "none" and gamma == 1.0:
        return session.get_image_numpy()
    return process_image_for_display(session.renderer.get_average_numpy(), tone_map, gamma)


def show_preview(
    session: ProgressiveRenderer,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 8),
    block: bool = True,
) -> None:
    """Display the current render in a Matplotlib figure.

    Args:
        session: The ProgressiveRenderer to display.
        tone_map: "none" or "reinhard".
        gamma: Gamma encoding applied after tone mapping.
        title: Custom title (default shows frames accumulated).
        figsize: Figure size in inches (width, height).
        block: Whether to block until the figure is closed.
    """
    import matplotlib.pyplot as plt

    image = session_display_image(session, tone_map, gamma)

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(image)
    ax.axis("off")

    if title is None:
        title = (
            f"{session.width}x{session.height} - {session.sample_count} frames "
            f"({session.last_frame_time_ms:.1f} ms)"
        )
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)


def show_comparison(
    image_a: npt.NDArray,
    image_b: npt.NDArray,
    *,
    labels: tuple[str, str] = ("A", "B"),
    diff_scale: float = 10.0,
    figsize: tuple[float, float] = (16, 6),
    block: bool = True,
) -> float:
    """Show two images side by side with their amplified difference.

    uint8 images are compared on a [0, 1] scale.

    Returns:
        RMSE between the two images on a [0, 1] scale.
    """
    import matplotlib.pyplot as plt

    a = _as_unit_float(image_a)
    b = _as_unit_float(image_b)
    rmse = compute_rmse(a, b)
    diff_amplified = np.clip(np.abs(a - b) * diff_scale, 0.0, 1.0)

    fig, axes = plt.subplots(1, 3, figsize=figsize)

    axes[0].imshow(a)
    axes[0].set_title(labels[0])
    axes[0].axis("off")

    axes[1].imshow(b)
    axes[1].set_title(labels[1])
    axes[1].axis("off")

    axes[2].imshow(diff_amplified[..., :3])
    axes[2].set_title(f"Difference ({diff_scale}x) - RMSE: {rmse:.6f}")
    axes[2].axis("off")

    plt.tight_layout()
    plt.show(block=block)

    return rmse


def _as_unit_float(image: npt.NDArray) -> npt.NDArray[np.float64]:
    image = np.asarray(image)
    if image.dtype == np.uint8:
        return image.astype(np.float64) / 255.0
    return image.astype(np.float64)
