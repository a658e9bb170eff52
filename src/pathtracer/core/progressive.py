"""Host-side frame loop for interactive progressive rendering.

ProgressiveRenderer plays the part of the application around the renderer:
it owns a Scene, a PerspectiveCamera and a Renderer, keeps the render
resolution at viewport size times the render scale, resets accumulation when
the camera moves or the scene is edited, and records how long each frame
took.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.core.progressive import ProgressiveRenderer
    >>> from src.pathtracer.scene.presets import create_default_scene
    >>> from src.pathtracer.settings import ViewportSettings
    >>>
    >>> session = ProgressiveRenderer(
    ...     create_default_scene(), viewport=ViewportSettings(width=320, height=240)
    ... )
    >>> session.render(16)  # Accumulate 16 frames
    >>> image = session.get_image_numpy()  # (180, 240, 4) uint8 at scale 0.75
"""

import logging
import time
from collections import deque
from collections.abc import Callable, Generator
from pathlib import Path

import numpy as np
import numpy.typing as npt
import taichi as ti

from src.pathtracer.camera.perspective import MovementKeys, PerspectiveCamera
from src.pathtracer.core.renderer import Renderer
from src.pathtracer.preview.export import save_png
from src.pathtracer.scene.intersection import SceneBuffers
from src.pathtracer.scene.model import Scene
from src.pathtracer.settings import CameraSettings, RenderSettings, ViewportSettings

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (frames_accumulated, target_frames)
ProgressCallback = Callable[[int, int], None]

# Number of recent frame times kept for averaging
FRAME_TIME_HISTORY = 120


def scaled_size(width: int, height: int, scale: float) -> tuple[int, int]:
    """Render resolution for a viewport at the given render scale."""
    return int(width * scale), int(height * scale)


class ProgressiveRenderer:
    """A camera, a scene and a renderer driven one frame at a time.

    Args:
        scene: The scene to render.
        camera_settings: Initial camera parameters.
        render_settings: Renderer parameters, including the render scale.
        viewport: Initial viewport size and buffer capacity. Capacities
            bound the render resolution, not the viewport.
        scene_buffers: Device-side scene storage to render from. A
            default-capacity SceneBuffers is created when omitted.
    """

    def __init__(
        self,
        scene: Scene,
        camera_settings: CameraSettings | None = None,
        render_settings: RenderSettings | None = None,
        viewport: ViewportSettings | None = None,
        scene_buffers: SceneBuffers | None = None,
    ) -> None:
        self.scene = scene
        self.camera_settings = camera_settings or CameraSettings()
        self.render_settings = render_settings or RenderSettings()
        viewport = viewport or ViewportSettings()

        self.camera = PerspectiveCamera(
            vertical_fov=self.camera_settings.vertical_fov,
            near_clip=self.camera_settings.near_clip,
            far_clip=self.camera_settings.far_clip,
            position=self.camera_settings.position,
            forward=self.camera_settings.forward,
            max_width=viewport.max_width,
            max_height=viewport.max_height,
        )
        self.renderer = Renderer(
            bounces=self.render_settings.bounces,
            rays_per_pixel=self.render_settings.rays_per_pixel,
            accumulate=self.render_settings.accumulate,
            seed=self.render_settings.seed,
            max_width=viewport.max_width,
            max_height=viewport.max_height,
            scene_buffers=scene_buffers,
        )

        self.viewport_width = 0
        self.viewport_height = 0
        self.frame_times: deque[float] = deque(maxlen=FRAME_TIME_HISTORY)
        self.last_frame_time_ms = 0.0

        self.set_viewport_size(viewport.width, viewport.height)

    # =========================================================================
    # Sizes
    # =========================================================================

    @property
    def width(self) -> int:
        """Render width in pixels."""
        return self.renderer.width

    @property
    def height(self) -> int:
        """Render height in pixels."""
        return self.renderer.height

    @property
    def sample_count(self) -> int:
        """Frames accumulated into the current image."""
        return self.renderer.samples_accumulated

    def set_viewport_size(self, width: int, height: int) -> bool:
        """Follow a viewport resize.

        The render resolution is the viewport size times the render scale.
        The camera and renderer are only resized when that resolution
        actually changes.

        Returns:
            True if the render resolution changed.

        Raises:
            ValueError: If the size is negative or the scaled size exceeds
                the buffer capacity.
        """
        if width < 0 or height < 0:
            raise ValueError(f"Viewport size must be non-negative, got {width}x{height}")
        self.viewport_width = width
        self.viewport_height = height

        render_width, render_height = scaled_size(width, height, self.render_settings.render_scale)
        if (
            render_width == self.renderer.width
            and render_height == self.renderer.height
            and self.camera.viewport_width == render_width
            and self.camera.viewport_height == render_height
        ):
            return False

        self.camera.resize(render_width, render_height)
        self.renderer.resize(render_width, render_height)
        logger.debug(
            "Viewport %dx%d -> render %dx%d", width, height, render_width, render_height
        )
        return True

    # =========================================================================
    # Input and edits
    # =========================================================================

    def update_camera(
        self,
        dt: float,
        keys: MovementKeys,
        mouse_delta: tuple[float, float] = (0.0, 0.0),
    ) -> bool:
        """Move the camera and restart accumulation if it moved.

        Returns:
            True if the camera moved.
        """
        moved = self.camera.update(dt, keys, mouse_delta)
        if moved:
            self.renderer.reset_frame_index()
        return moved

    def apply_scene_edits(self, reset: bool = True) -> None:
        """Publish in-place edits to the scene.

        Args:
            reset: Restart accumulation so the edits show up unblended.
        """
        self.scene.mark_changed()
        if reset:
            self.renderer.reset_frame_index()

    def set_scene(self, scene: Scene) -> None:
        """Switch to a different scene and restart accumulation."""
        self.scene = scene
        self.renderer.reset_frame_index()

    def apply_render_settings(self, settings: RenderSettings) -> None:
        """Switch to new render settings.

        Accumulation restarts when anything that affects the image changed;
        a new render scale also resizes the buffers.
        """
        old = self.render_settings
        self.render_settings = settings

        self.renderer.bounces = settings.bounces
        self.renderer.rays_per_pixel = settings.rays_per_pixel
        self.renderer.accumulate = settings.accumulate
        self.renderer.seed = settings.seed

        resized = False
        if settings.render_scale != old.render_scale:
            # A scale change can truncate to the same render size
            resized = self.set_viewport_size(self.viewport_width, self.viewport_height)

        if not resized and (
            settings.bounces != old.bounces
            or settings.rays_per_pixel != old.rays_per_pixel
            or settings.seed != old.seed
            or settings.accumulate != old.accumulate
        ):
            self.renderer.reset_frame_index()

    def reset(self) -> None:
        """Discard accumulated frames."""
        self.renderer.reset_frame_index()

    # =========================================================================
    # Rendering
    # =========================================================================

    def render_frame(self) -> float:
        """Render one frame and record its duration.

        Returns:
            The frame time in milliseconds.
        """
        start = time.perf_counter()
        self.renderer.render(self.camera, self.scene)
        ti.sync()
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        self.last_frame_time_ms = elapsed_ms
        self.frame_times.append(elapsed_ms)
        return elapsed_ms

    def render(
        self,
        num_frames: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render several frames, accumulating into the current image.

        Args:
            num_frames: Frames to render.
            callback: Optional callback called after each frame with
                (frames_accumulated, target_frames).
        """
        if num_frames <= 0:
            return

        target = self.sample_count + num_frames
        for _ in range(num_frames):
            self.render_frame()
            if callback is not None:
                callback(self.sample_count, target)

    def render_progressive(self, num_frames: int = 1) -> Generator[tuple[int, int], None, None]:
        """Render frames, yielding (frames_accumulated, target_frames) after each.

        Example:
            >>> for current, target in session.render_progressive(100):
            ...     print(f"Progress: {current}/{target} frames")
        """
        if num_frames <= 0:
            return

        target = self.sample_count + num_frames
        for _ in range(num_frames):
            self.render_frame()
            yield (self.sample_count, target)

    @property
    def average_frame_time_ms(self) -> float:
        """Mean of the recent frame times, 0.0 before the first frame."""
        if not self.frame_times:
            return 0.0
        return float(np.mean(self.frame_times))

    # =========================================================================
    # Output
    # =========================================================================

    def get_image_numpy(self) -> npt.NDArray[np.uint8]:
        """The display image as (height, width, 4) uint8 RGBA."""
        return self.renderer.get_image_numpy()

    def save_image(self, filepath: str | Path) -> Path:
        """Save the display image as a PNG file."""
        return save_png(self.get_image_numpy(), filepath)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )
