"""Configuration dataclasses for the camera, renderer and viewport.

Each settings class validates itself in __post_init__ and round-trips
through plain dictionaries (from_dict ignores unknown keys so that settings
files can carry extra entries).

Example:
    >>> from src.pathtracer.settings import RenderSettings
    >>> settings = RenderSettings(bounces=8, accumulate=False)
    >>> settings.to_dict()["bounces"]
    8
    >>> RenderSettings(bounces=0)
    Traceback (most recent call last):
        ...
    ValueError: bounces must be at least 1, got 0
"""

from dataclasses import asdict, dataclass, fields
from typing import Any


def _known_keys(cls, data: dict[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class CameraSettings:
    """Perspective camera parameters.

    Attributes:
        vertical_fov: Vertical field of view in degrees, in (0, 180).
        near_clip: Near clip distance (positive).
        far_clip: Far clip distance (greater than near_clip).
        position: Initial camera position.
        forward: Initial view direction (non-zero, normalized by the camera).
    """

    vertical_fov: float = 45.0
    near_clip: float = 0.1
    far_clip: float = 100.0
    position: tuple[float, float, float] = (0.0, 0.0, 6.0)
    forward: tuple[float, float, float] = (0.0, 0.0, -1.0)

    def __post_init__(self) -> None:
        self.position = tuple(float(c) for c in self.position)
        self.forward = tuple(float(c) for c in self.forward)
        if not 0.0 < self.vertical_fov < 180.0:
            raise ValueError(f"vertical_fov must be in (0, 180) degrees, got {self.vertical_fov}")
        if self.near_clip <= 0.0:
            raise ValueError(f"near_clip must be positive, got {self.near_clip}")
        if self.far_clip <= self.near_clip:
            raise ValueError(
                f"far_clip ({self.far_clip}) must be greater than near_clip ({self.near_clip})"
            )
        if len(self.position) != 3 or len(self.forward) != 3:
            raise ValueError("position and forward must have 3 components")
        if all(c == 0.0 for c in self.forward):
            raise ValueError("forward must be non-zero")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["position"] = list(self.position)
        data["forward"] = list(self.forward)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CameraSettings":
        return cls(**_known_keys(cls, data))


@dataclass
class RenderSettings:
    """Path tracer parameters.

    Attributes:
        bounces: Maximum path segments per ray (>= 1).
        rays_per_pixel: Primary rays per pixel per frame (>= 1).
        accumulate: Average frames while the camera and scene are still.
        seed: Base seed; a fixed seed makes renders reproducible.
        render_scale: Render resolution as a fraction of the viewport, in
            (0, 1].
    """

    bounces: int = 5
    rays_per_pixel: int = 1
    accumulate: bool = True
    seed: int = 0
    render_scale: float = 0.75

    def __post_init__(self) -> None:
        if self.bounces < 1:
            raise ValueError(f"bounces must be at least 1, got {self.bounces}")
        if self.rays_per_pixel < 1:
            raise ValueError(f"rays_per_pixel must be at least 1, got {self.rays_per_pixel}")
        if self.seed < 0:
            raise ValueError(f"seed must be non-negative, got {self.seed}")
        if not 0.0 < self.render_scale <= 1.0:
            raise ValueError(f"render_scale must be in (0, 1], got {self.render_scale}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderSettings":
        return cls(**_known_keys(cls, data))


@dataclass
class ViewportSettings:
    """Window size and framebuffer capacity.

    Attributes:
        width: Initial viewport width in pixels.
        height: Initial viewport height in pixels.
        max_width: Largest render width the buffers are allocated for.
        max_height: Largest render height the buffers are allocated for.
    """

    width: int = 512
    height: int = 512
    max_width: int = 2048
    max_height: int = 2048

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Viewport size must be non-negative, got {self.width}x{self.height}")
        if self.max_width < 1 or self.max_height < 1:
            raise ValueError(
                f"Capacity must be at least 1x1, got {self.max_width}x{self.max_height}"
            )
        if self.width > self.max_width or self.height > self.max_height:
            raise ValueError(
                f"Viewport ({self.width}x{self.height}) exceeds capacity "
                f"({self.max_width}x{self.max_height})"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ViewportSettings":
        return cls(**_known_keys(cls, data))
