"""Perspective camera with cached per-pixel ray directions.

The camera keeps a right-handed view matrix (look-at from its position along
its forward direction, +Y up) and a perspective projection with a [0, 1]
depth range, plus both inverses. Primary ray directions are computed once per
pixel by unprojecting the pixel center through the inverse projection and
rotating it into world space with the inverse view. The render kernel reads
the cached directions, so they are only recomputed when the camera moves or
the viewport is resized.

Matrices are built on the host with NumPy and copied into Taichi matrix
fields; the unprojection itself runs as a Taichi kernel, one parallel
iteration per pixel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.camera.perspective import MovementKeys, PerspectiveCamera
    >>> camera = PerspectiveCamera(vertical_fov=45.0, near_clip=0.1, far_clip=100.0)
    >>> camera.resize(640, 480)
    >>> moved = camera.update(1 / 60, MovementKeys(forward=True), (0.0, 0.0))
    >>> moved
    True
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import vec3

logger = logging.getLogger(__name__)

vec4 = tm.vec4

# World units per second
MOVE_SPEED = 5.0

# Radians per second per unit of mouse delta
ROTATION_SPEED = 1.0

WORLD_UP = np.array([0.0, 1.0, 0.0])

# Default viewport capacity
MAX_VIEWPORT_WIDTH = 2048
MAX_VIEWPORT_HEIGHT = 2048


@dataclass
class MovementKeys:
    """Held movement keys for one frame.

    Opposing keys are not summed: forward beats backward, left beats right
    and down beats up.
    """

    forward: bool = False
    backward: bool = False
    left: bool = False
    right: bool = False
    up: bool = False
    down: bool = False

    def any(self) -> bool:
        return self.forward or self.backward or self.left or self.right or self.up or self.down


# =============================================================================
# Matrix helpers (host side)
# =============================================================================


def perspective_rh(vertical_fov_radians: float, aspect: float, near: float, far: float) -> np.ndarray:
    """Right-handed perspective projection mapping depth to [0, 1].

    Args:
        vertical_fov_radians: Vertical field of view.
        aspect: Width divided by height.
        near: Near clip distance (positive).
        far: Far clip distance (greater than near).

    Returns:
        A 4x4 projection matrix acting on column vectors.
    """
    h = 1.0 / math.tan(0.5 * vertical_fov_radians)
    w = h / aspect
    r = far / (near - far)
    return np.array(
        [
            [w, 0.0, 0.0, 0.0],
            [0.0, h, 0.0, 0.0],
            [0.0, 0.0, r, r * near],
            [0.0, 0.0, -1.0, 0.0],
        ]
    )


def look_at_rh(eye: npt.ArrayLike, target: npt.ArrayLike, up: npt.ArrayLike) -> np.ndarray:
    """Right-handed view matrix looking from eye toward target.

    Returns:
        A 4x4 world-to-view matrix acting on column vectors. The camera looks
        down its local -Z axis.
    """
    eye = np.asarray(eye, dtype=np.float64)
    f = np.asarray(target, dtype=np.float64) - eye
    f = f / np.linalg.norm(f)
    s = np.cross(f, up)
    s = s / np.linalg.norm(s)
    u = np.cross(s, f)
    return np.array(
        [
            [s[0], s[1], s[2], -np.dot(s, eye)],
            [u[0], u[1], u[2], -np.dot(u, eye)],
            [-f[0], -f[1], -f[2], np.dot(f, eye)],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )


def axis_angle_matrix(axis: npt.ArrayLike, angle: float) -> np.ndarray:
    """3x3 rotation of angle radians about axis (Rodrigues' formula)."""
    axis = np.asarray(axis, dtype=np.float64)
    axis = axis / np.linalg.norm(axis)
    x, y, z = axis
    k = np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])
    return np.identity(3) + math.sin(angle) * k + (1.0 - math.cos(angle)) * (k @ k)


def _right_direction(forward: np.ndarray) -> np.ndarray:
    right = np.cross(forward, WORLD_UP)
    length = np.linalg.norm(right)
    if length < 1e-8:
        # Looking straight up or down
        return np.array([1.0, 0.0, 0.0])
    return right / length


# =============================================================================
# Camera
# =============================================================================


@ti.data_oriented
class PerspectiveCamera:
    """A fly-through perspective camera.

    Attributes:
        position: Camera position (NumPy, float64).
        forward: Unit view direction (NumPy, float64).
        projection, inverse_projection, view, inverse_view: 4x4 NumPy matrices.
        ray_directions: Flat Taichi field of world-space unit directions,
            indexed x + y * viewport_width with row 0 at the top.
        viewport_width, viewport_height: Current size in pixels.
    """

    def __init__(
        self,
        vertical_fov: float = 45.0,
        near_clip: float = 0.1,
        far_clip: float = 100.0,
        position: tuple[float, float, float] = (0.0, 0.0, 6.0),
        forward: tuple[float, float, float] = (0.0, 0.0, -1.0),
        max_width: int = MAX_VIEWPORT_WIDTH,
        max_height: int = MAX_VIEWPORT_HEIGHT,
    ):
        if not 0.0 < vertical_fov < 180.0:
            raise ValueError(f"vertical_fov must be in (0, 180) degrees, got {vertical_fov}")
        if not 0.0 < near_clip < far_clip:
            raise ValueError(f"Need 0 < near_clip < far_clip, got {near_clip}, {far_clip}")
        if max_width < 1 or max_height < 1:
            raise ValueError(f"Capacity must be at least 1x1, got {max_width}x{max_height}")

        self.vertical_fov = vertical_fov
        self.near_clip = near_clip
        self.far_clip = far_clip
        self.max_width = max_width
        self.max_height = max_height

        self.position = np.array(position, dtype=np.float64)
        self.forward = np.array(forward, dtype=np.float64)
        norm = np.linalg.norm(self.forward)
        if norm == 0.0:
            raise ValueError("forward direction must be non-zero")
        self.forward /= norm

        self.viewport_width = 0
        self.viewport_height = 0

        self.projection = np.identity(4)
        self.inverse_projection = np.identity(4)
        self.view = np.identity(4)
        self.inverse_view = np.identity(4)

        self.ray_directions = ti.Vector.field(3, dtype=ti.f32, shape=max_width * max_height)
        self._position_field = ti.Vector.field(3, dtype=ti.f32, shape=())
        self._inverse_projection_field = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())
        self._inverse_view_field = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())

        self.recalculate_view()

    # =========================================================================
    # Viewport
    # =========================================================================

    def resize(self, width: int, height: int) -> None:
        """Set the viewport size, recomputing projection and rays if it changed.

        A zero width or height is stored but produces no rays.

        Raises:
            ValueError: If a dimension is negative or exceeds the capacity.
        """
        if width < 0 or height < 0:
            raise ValueError(f"Viewport size must be non-negative, got {width}x{height}")
        if width > self.max_width or height > self.max_height:
            raise ValueError(
                f"Viewport ({width}x{height}) exceeds camera capacity "
                f"({self.max_width}x{self.max_height})"
            )
        if width == self.viewport_width and height == self.viewport_height:
            return

        self.viewport_width = width
        self.viewport_height = height
        logger.debug("Camera resized to %dx%d", width, height)

        if width == 0 or height == 0:
            return
        self.recalculate_projection()
        self.recalculate_ray_directions()

    @property
    def aspect_ratio(self) -> float:
        if self.viewport_height == 0:
            return 1.0
        return self.viewport_width / self.viewport_height

    # =========================================================================
    # Matrices
    # =========================================================================

    def recalculate_projection(self) -> None:
        self.projection = perspective_rh(
            math.radians(self.vertical_fov), self.aspect_ratio, self.near_clip, self.far_clip
        )
        self.inverse_projection = np.linalg.inv(self.projection)
        self._inverse_projection_field[None] = self.inverse_projection.astype(np.float32).tolist()

    def recalculate_view(self) -> None:
        """Rebuild the view matrix from position and forward."""
        up = WORLD_UP
        if np.linalg.norm(np.cross(self.forward, up)) < 1e-8:
            up = np.array([0.0, 0.0, 1.0])
        self.view = look_at_rh(self.position, self.position + self.forward, up)
        self.inverse_view = np.linalg.inv(self.view)
        self._inverse_view_field[None] = self.inverse_view.astype(np.float32).tolist()
        self._position_field[None] = self.position.astype(np.float32).tolist()
        logger.debug("View recalculated: position=%s forward=%s", self.position, self.forward)

    def recalculate_ray_directions(self) -> None:
        """Recompute the cached primary ray direction of every pixel."""
        if self.viewport_width == 0 or self.viewport_height == 0:
            return
        self._compute_ray_directions(self.viewport_width, self.viewport_height)

    @ti.kernel
    def _compute_ray_directions(self, width: ti.i32, height: ti.i32):
        inv_proj = self._inverse_projection_field[None]
        inv_view = self._inverse_view_field[None]
        for x, y in ti.ndrange(width, height):
            ndc_x = (ti.cast(x, ti.f32) + 0.5) / ti.cast(width, ti.f32) * 2.0 - 1.0
            ndc_y = -((ti.cast(y, ti.f32) + 0.5) / ti.cast(height, ti.f32) * 2.0 - 1.0)

            target = inv_proj @ vec4(ndc_x, ndc_y, 1.0, 1.0)
            view_dir = tm.normalize(vec3(target[0], target[1], target[2]) / target[3])
            world = inv_view @ vec4(view_dir[0], view_dir[1], view_dir[2], 0.0)

            self.ray_directions[x + y * width] = vec3(world[0], world[1], world[2])

    @ti.func
    def origin(self) -> vec3:
        """Camera position, for use inside kernels."""
        return self._position_field[None]

    # =========================================================================
    # Placement and movement
    # =========================================================================

    def set_position(self, position: tuple[float, float, float]) -> None:
        self.position = np.array(position, dtype=np.float64)
        self.recalculate_view()
        self.recalculate_ray_directions()

    def look_at(self, target: tuple[float, float, float]) -> None:
        """Point the camera at a world-space target.

        Raises:
            ValueError: If the target coincides with the camera position.
        """
        direction = np.array(target, dtype=np.float64) - self.position
        norm = np.linalg.norm(direction)
        if norm == 0.0:
            raise ValueError("look_at target must differ from the camera position")
        self.forward = direction / norm
        self.recalculate_view()
        self.recalculate_ray_directions()

    def update(
        self,
        dt: float,
        keys: MovementKeys,
        mouse_delta: tuple[float, float] = (0.0, 0.0),
    ) -> bool:
        """Apply one frame of fly-through input.

        Args:
            dt: Frame time in seconds.
            keys: Held movement keys.
            mouse_delta: (dx, dy) mouse motion while looking around.

        Returns:
            True if the camera moved or turned, in which case the view and
            the ray directions have been recomputed and accumulated samples
            are stale.
        """
        moved = False
        forward = self.forward
        right = _right_direction(forward)
        up = WORLD_UP
        step = MOVE_SPEED * dt

        if keys.forward:
            self.position = self.position + forward * step
            moved = True
        elif keys.backward:
            self.position = self.position - forward * step
            moved = True

        if keys.left:
            self.position = self.position - right * step
            moved = True
        elif keys.right:
            self.position = self.position + right * step
            moved = True

        if keys.down:
            self.position = self.position - up * step
            moved = True
        elif keys.up:
            self.position = self.position + up * step
            moved = True

        dx, dy = mouse_delta
        if dx != 0.0 or dy != 0.0:
            pitch_delta = dy * ROTATION_SPEED * dt
            yaw_delta = dx * ROTATION_SPEED * dt
            rotation = axis_angle_matrix(right, -pitch_delta) @ axis_angle_matrix(up, -yaw_delta)
            turned = rotation @ forward
            self.forward = turned / np.linalg.norm(turned)
            moved = True

        if moved:
            self.recalculate_view()
            self.recalculate_ray_directions()
        return moved

    # =========================================================================
    # Inspection
    # =========================================================================

    def get_ray_directions_numpy(self) -> np.ndarray:
        """Ray directions as an array of shape (height, width, 3)."""
        count = self.viewport_width * self.viewport_height
        flat = self.ray_directions.to_numpy()[:count]
        return flat.reshape(self.viewport_height, self.viewport_width, 3)
