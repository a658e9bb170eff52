"""Interactive viewer using Taichi GGUI.

The viewer drives a ProgressiveRenderer one frame per window frame:

    - the window size is the viewport; the session renders at the render
      scale and the canvas stretches the result to fill the window;
    - holding the right mouse button enables fly controls: W/S move forward
      and back, A/D strafe, Q/E move down and up, and mouse motion turns the
      camera;
    - a side panel shows frame times and edits render settings and the
      selected sphere and its material. Edits restart accumulation.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from src.pathtracer.core.progressive import ProgressiveRenderer
    >>> from src.pathtracer.preview.interactive import InteractivePreview
    >>> from src.pathtracer.scene.presets import create_default_scene
    >>>
    >>> session = ProgressiveRenderer(create_default_scene())
    >>> InteractivePreview(session).run()
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING, Any

import numpy as np
import taichi as ti

from src.pathtracer.camera.perspective import MovementKeys

if TYPE_CHECKING:
    import numpy.typing as npt

    from src.pathtracer.core.progressive import ProgressiveRenderer

logger = logging.getLogger(__name__)

# Key bindings (GGUI key names)
KEY_FORWARD = "w"
KEY_BACKWARD = "s"
KEY_LEFT = "a"
KEY_RIGHT = "d"
KEY_DOWN = "q"
KEY_UP = "e"

# Slider ranges for the editing panel
POSITION_RANGE = 10.0
MAX_RADIUS = 5.0
MAX_BOUNCES = 16
MAX_EMISSIVE_INTENSITY = 20.0

_EPS = 1e-6


def read_movement_keys(window: Any) -> MovementKeys:
    """Map held keys on a GGUI window to movement flags."""
    return MovementKeys(
        forward=window.is_pressed(KEY_FORWARD),
        backward=window.is_pressed(KEY_BACKWARD),
        left=window.is_pressed(KEY_LEFT),
        right=window.is_pressed(KEY_RIGHT),
        up=window.is_pressed(KEY_UP),
        down=window.is_pressed(KEY_DOWN),
    )


class MouseLook:
    """Turns cursor positions into per-frame mouse deltas while looking.

    GGUI reports the cursor in normalized window coordinates with y pointing
    up; deltas are returned in pixels with y pointing down, the convention
    the camera expects.
    """

    def __init__(self) -> None:
        self._last: tuple[float, float] | None = None

    def update(
        self,
        looking: bool,
        cursor: tuple[float, float],
        window_size: tuple[int, int],
    ) -> tuple[float, float]:
        """Return (dx, dy) since the previous frame, or (0, 0) when not looking.

        The first frame after looking starts never produces a jump.
        """
        if not looking:
            self._last = None
            return (0.0, 0.0)

        if self._last is None:
            self._last = cursor
            return (0.0, 0.0)

        width, height = window_size
        dx = (cursor[0] - self._last[0]) * width
        dy = -(cursor[1] - self._last[1]) * height
        self._last = cursor
        return (dx, dy)


def rgba_to_display(image: npt.NDArray[np.uint8]) -> npt.NDArray[np.float32]:
    """Convert an (H, W, 4) uint8 image to a (W, H, 3) float field layout.

    Taichi fields are indexed (x, y) with y up, so rows are flipped and the
    axes swapped.
    """
    rgb = image[..., :3].astype(np.float32) / 255.0
    return np.ascontiguousarray(np.transpose(np.flipud(rgb), (1, 0, 2)))


class InteractivePreview:
    """GGUI window around a ProgressiveRenderer.

    Args:
        session: The session to render and display.
        width: Initial window width.
        height: Initial window height.
        title: Window title.
        export_dir: Directory for exported PNGs.
    """

    def __init__(
        self,
        session: ProgressiveRenderer,
        width: int | None = None,
        height: int | None = None,
        *,
        title: str = "Path Tracer",
        export_dir: str = ".",
    ) -> None:
        self.session = session
        self.width = width if width is not None else max(session.viewport_width, 1)
        self.height = height if height is not None else max(session.viewport_height, 1)
        self.export_dir = export_dir
        self._title = title

        self._window: ti.ui.Window | None = None
        self._canvas: ti.ui.Canvas | None = None
        self._display_image: ti.MatrixField | None = None
        self._display_size = (0, 0)

        self._mouse_look = MouseLook()
        self._selected_sphere = 0
        self._last_frame_dt = 0.0

    def _initialize_window(self) -> None:
        if self._window is not None:
            return
        self._window = ti.ui.Window(name=self._title, res=(self.width, self.height), vsync=False)
        self._canvas = self._window.get_canvas()

    @property
    def window(self) -> ti.ui.Window:
        if self._window is None:
            self._initialize_window()
        assert self._window is not None
        return self._window

    @property
    def canvas(self) -> ti.ui.Canvas:
        if self._canvas is None:
            self._initialize_window()
        assert self._canvas is not None
        return self._canvas

    def update_image(self, image: npt.NDArray[np.uint8]) -> None:
        """Copy an (H, W, 4) uint8 frame into the display field.

        The field is reallocated when the frame size changes.
        """
        height, width = image.shape[:2]
        if width == 0 or height == 0:
            return
        if self._display_size != (width, height):
            self._display_image = ti.Vector.field(3, dtype=ti.f32, shape=(width, height))
            self._display_size = (width, height)
        assert self._display_image is not None
        self._display_image.from_numpy(rgba_to_display(image))

    # =========================================================================
    # Main loop
    # =========================================================================

    def run(self) -> None:
        """Render and display frames until the window is closed."""
        self._initialize_window()
        last_time = time.perf_counter()

        while self.window.running:
            now = time.perf_counter()
            dt = now - last_time
            last_time = now
            self._last_frame_dt = dt

            window_width, window_height = self.window.get_window_shape()
            self.session.set_viewport_size(window_width, window_height)

            self._handle_input(dt, (window_width, window_height))
            self.session.render_frame()

            self.update_image(self.session.get_image_numpy())
            if self._display_image is not None:
                self.canvas.set_image(self._display_image)

            self._draw_gui_panel()
            self.window.show()

    def _handle_input(self, dt: float, window_size: tuple[int, int]) -> None:
        looking = self.window.is_pressed(ti.ui.RMB)
        delta = self._mouse_look.update(looking, self.window.get_cursor_pos(), window_size)
        if not looking:
            return
        self.session.update_camera(dt, read_movement_keys(self.window), delta)

    # =========================================================================
    # Editing panel
    # =========================================================================

    def _draw_gui_panel(self) -> None:
        gui = self.window.GUI
        session = self.session

        with gui.sub_window("Settings", 0.01, 0.01, 0.3, 0.3) as w:
            w.text(f"Viewport: {session.viewport_width}x{session.viewport_height}")
            w.text(f"Render: {session.width}x{session.height}")
            w.text(f"dt: {self._last_frame_dt * 1000.0:.2f} ms")
            w.text(f"render dt: {session.last_frame_time_ms:.2f} ms")
            w.text(f"Frames: {session.sample_count}")

            settings = session.render_settings
            bounces = w.slider_int("Bounces", settings.bounces, 1, MAX_BOUNCES)
            accumulate = w.checkbox("Accumulate", settings.accumulate)
            render_scale = w.slider_float("Render scale", settings.render_scale, 0.1, 1.0)
            if (
                bounces != settings.bounces
                or accumulate != settings.accumulate
                or abs(render_scale - settings.render_scale) > _EPS
            ):
                session.apply_render_settings(
                    replace(
                        settings,
                        bounces=bounces,
                        accumulate=accumulate,
                        render_scale=max(render_scale, 0.1),
                    )
                )

            if w.button("Reset"):
                session.reset()
            if w.button("Export PNG"):
                self.export_png()

        self._draw_sphere_panel()

    def _draw_sphere_panel(self) -> None:
        scene = self.session.scene
        if not scene.spheres:
            return

        with self.window.GUI.sub_window("Scene", 0.01, 0.32, 0.3, 0.45) as w:
            index = w.slider_int("Sphere", self._selected_sphere, 0, len(scene.spheres) - 1)
            self._selected_sphere = index
            sphere = scene.spheres[index]
            material = scene.materials[sphere.material_id]

            x = w.slider_float("X", sphere.center[0], -POSITION_RANGE, POSITION_RANGE)
            y = w.slider_float("Y", sphere.center[1], -POSITION_RANGE, POSITION_RANGE)
            z = w.slider_float("Z", sphere.center[2], -POSITION_RANGE, POSITION_RANGE)
            radius = w.slider_float("Radius", sphere.radius, 0.01, MAX_RADIUS)
            albedo = w.color_edit_3("Albedo", material.albedo)
            roughness = w.slider_float("Roughness", material.roughness, 0.0, 1.0)
            emissive = w.slider_float(
                "Emission", material.emissive_intensity, 0.0, MAX_EMISSIVE_INTENSITY
            )

        # Large spheres (like a ground sphere) sit outside the slider ranges,
        # so only write back values that were actually moved
        changed = False
        center = list(sphere.center)
        for axis, value in enumerate((x, y, z)):
            if abs(value - sphere.center[axis]) > _EPS:
                center[axis] = value
                changed = True
        if changed:
            sphere.center = (center[0], center[1], center[2])
        if abs(radius - sphere.radius) > _EPS:
            sphere.radius = max(radius, 0.01)
            changed = True
        if any(abs(a - b) > _EPS for a, b in zip(albedo, material.albedo)):
            material.albedo = (float(albedo[0]), float(albedo[1]), float(albedo[2]))
            changed = True
        if abs(roughness - material.roughness) > _EPS:
            material.roughness = float(roughness)
            changed = True
        if abs(emissive - material.emissive_intensity) > _EPS:
            material.emissive_intensity = float(emissive)
            if material.emissive_intensity > 0.0 and not any(material.emissive_color):
                material.emissive_color = (1.0, 1.0, 1.0)
            changed = True

        if changed:
            self.session.apply_scene_edits(reset=True)

    # =========================================================================
    # Export
    # =========================================================================

    def export_png(self) -> str:
        """Save the current frame to a timestamped PNG in export_dir."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = os.path.join(self.export_dir, f"render_{timestamp}.png")
        self.session.save_image(filename)
        print(f"Exported: {filename} ({self.session.sample_count} frames)")
        return filename

    @staticmethod
    def is_display_available() -> bool:
        """Check if a display is available for GUI rendering."""
        if os.name == "nt":
            return True
        if os.uname().sysname == "Darwin":
            return not (os.environ.get("SSH_CONNECTION") and not os.environ.get("DISPLAY"))
        return bool(os.environ.get("DISPLAY") or os.environ.get("WAYLAND_DISPLAY"))
