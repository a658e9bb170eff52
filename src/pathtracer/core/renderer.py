"""Progressive path tracing renderer.

Each call to Renderer.render() runs one Taichi kernel, parallel over pixels.
For every pixel it traces rays_per_pixel paths from the camera position along
the camera's cached ray direction, adds their average to a float RGBA
accumulation buffer, and writes the accumulated average (clamped, 8-bit) to
the display image.

Shading model per bounce (no BRDF sampling, no shadow rays):
    - a miss adds throughput * sky color and ends the path;
    - a hit adds throughput * emission and multiplier * albedo * lambert,
      where lambert sums the directional lights;
    - throughput is multiplied by the albedo and the multiplier halves;
    - the path continues from just above the surface, mirrored about the
      normal perturbed by roughness * a random unit vector.

Accumulation restarts (frame index back to 1) on resize, on
reset_frame_index(), and on every frame when accumulate is off.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.camera.perspective import PerspectiveCamera
    >>> from src.pathtracer.core.renderer import Renderer
    >>> from src.pathtracer.scene.presets import create_default_scene
    >>> camera = PerspectiveCamera()
    >>> renderer = Renderer(bounces=5)
    >>> camera.resize(64, 48)
    >>> renderer.resize(64, 48)
    >>> renderer.render(camera, create_default_scene())
    >>> renderer.get_image_numpy().shape
    (48, 64, 4)
"""

import logging

import numpy as np
import taichi as ti
import taichi.math as tm

from src.pathtracer.camera.perspective import PerspectiveCamera
from src.pathtracer.core.random import U32_MASK, mix_frame_seed, pixel_seed, random_unit_vector
from src.pathtracer.core.ray import offset_ray_origin, reflect, safe_normalize, vec3, vec4
from src.pathtracer.scene.intersection import SceneBuffers
from src.pathtracer.scene.model import Scene

logger = logging.getLogger(__name__)

# Default framebuffer capacity (preallocated; Taichi fields cannot grow)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

DEFAULT_BOUNCES = 5
DEFAULT_RAYS_PER_PIXEL = 1

# Weight of the direct lighting term halves on every bounce
MULTIPLIER_FALLOFF = 0.5


def _as_i32(value: int) -> int:
    """Reinterpret a 32-bit unsigned value as signed for kernel arguments."""
    value &= U32_MASK
    return value - (1 << 32) if value >= (1 << 31) else value


@ti.data_oriented
class Renderer:
    """Owns the accumulation and display buffers and runs the path tracer.

    Args:
        bounces: Maximum path segments per ray (>= 1).
        rays_per_pixel: Primary rays averaged per pixel per frame (>= 1).
        accumulate: Keep averaging across frames when True.
        seed: Base seed for the per-pixel random sequences.
        max_width: Framebuffer width capacity.
        max_height: Framebuffer height capacity.
        scene_buffers: Device-side scene storage. A default-capacity
            SceneBuffers is created when omitted.
    """

    def __init__(
        self,
        bounces: int = DEFAULT_BOUNCES,
        rays_per_pixel: int = DEFAULT_RAYS_PER_PIXEL,
        accumulate: bool = True,
        seed: int = 0,
        max_width: int = MAX_IMAGE_WIDTH,
        max_height: int = MAX_IMAGE_HEIGHT,
        scene_buffers: SceneBuffers | None = None,
    ):
        if max_width < 1 or max_height < 1:
            raise ValueError(f"Capacity must be at least 1x1, got {max_width}x{max_height}")

        self.bounces = bounces
        self.rays_per_pixel = rays_per_pixel
        self.accumulate = accumulate
        self.seed = seed
        self._validate_settings()

        self.max_width = max_width
        self.max_height = max_height
        self.width = 0
        self.height = 0

        self.frame_index = 1
        self.pass_counter = 0

        self.image = ti.Vector.field(4, dtype=ti.u8, shape=max_width * max_height)
        self.accumulation = ti.Vector.field(4, dtype=ti.f32, shape=max_width * max_height)

        self.scene_buffers = scene_buffers if scene_buffers is not None else SceneBuffers()

    def _validate_settings(self) -> None:
        if self.bounces < 1:
            raise ValueError(f"bounces must be at least 1, got {self.bounces}")
        if self.rays_per_pixel < 1:
            raise ValueError(f"rays_per_pixel must be at least 1, got {self.rays_per_pixel}")

    # =========================================================================
    # Buffers
    # =========================================================================

    def resize(self, width: int, height: int) -> None:
        """Set the active framebuffer size and clear both buffers.

        Raises:
            ValueError: If a dimension is negative or exceeds the capacity.
        """
        if width < 0 or height < 0:
            raise ValueError(f"Image size must be non-negative, got {width}x{height}")
        if width > self.max_width or height > self.max_height:
            raise ValueError(
                f"Image dimensions ({width}x{height}) exceed maximum supported "
                f"({self.max_width}x{self.max_height})"
            )
        self.width = width
        self.height = height
        self.image.fill(0)
        self.accumulation.fill(0.0)
        self.frame_index = 1
        logger.debug("Renderer resized to %dx%d", width, height)

    def reset_frame_index(self) -> None:
        """Restart accumulation on the next frame."""
        self.frame_index = 1

    # =========================================================================
    # Rendering
    # =========================================================================

    def render(self, camera: PerspectiveCamera, scene: Scene) -> None:
        """Render one frame.

        Args:
            camera: A PerspectiveCamera sized like this renderer.
            scene: The scene to render. It is uploaded to the scene buffers
                (and validated) whenever it changed since the last frame.

        Raises:
            RuntimeError: If the camera and renderer sizes differ.
            SceneConfigError: If the scene is invalid.
        """
        if camera.viewport_width != self.width or camera.viewport_height != self.height:
            raise RuntimeError(
                f"Camera viewport ({camera.viewport_width}x{camera.viewport_height}) does not "
                f"match renderer size ({self.width}x{self.height})"
            )
        self._validate_settings()
        self.scene_buffers.sync(scene)

        # Without accumulation every frame stands alone
        if not self.accumulate:
            self.frame_index = 1

        self.pass_counter += 1
        if self.width > 0 and self.height > 0:
            frame_seed = mix_frame_seed(self.seed, self.pass_counter)
            self._render_frame(
                camera,
                self.scene_buffers,
                self.width,
                self.height,
                self.frame_index,
                _as_i32(frame_seed),
                self.bounces,
                self.rays_per_pixel,
            )

        if self.accumulate:
            self.frame_index += 1
        else:
            self.frame_index = 1

    @ti.func
    def _trace_path(
        self,
        scene: ti.template(),
        origin: vec3,
        direction: vec3,
        seed: ti.u32,
        bounces: ti.i32,
    ):
        """Follow one path through the scene.

        Returns:
            A tuple (radiance, next_seed).
        """
        ray_origin = origin
        ray_direction = direction
        rng = seed

        radiance = vec3(0.0, 0.0, 0.0)
        throughput = vec3(1.0, 1.0, 1.0)
        multiplier = 1.0

        # Taichi doesn't support break in ti.func loops
        active = 1

        for _ in range(bounces):
            if active == 1:
                rec = scene.intersect(ray_origin, ray_direction)

                if rec.hit == 0:
                    radiance += throughput * scene.sky_color(ray_direction)
                    active = 0
                else:
                    material_id = rec.material_id
                    albedo = scene.albedo(material_id)

                    radiance += throughput * scene.emission(material_id)
                    radiance += multiplier * albedo * scene.direct_light(rec.normal)

                    throughput *= albedo
                    multiplier *= MULTIPLIER_FALLOFF

                    perturbation, rng = random_unit_vector(rng)
                    bounce_normal = safe_normalize(
                        rec.normal + scene.roughness(material_id) * perturbation, rec.normal
                    )
                    ray_origin = offset_ray_origin(rec.point, rec.normal)
                    ray_direction = tm.normalize(reflect(ray_direction, bounce_normal))

        return radiance, rng

    @ti.kernel
    def _render_frame(
        self,
        camera: ti.template(),
        scene: ti.template(),
        width: ti.i32,
        height: ti.i32,
        frame_index: ti.i32,
        frame_seed: ti.i32,
        bounces: ti.i32,
        rays_per_pixel: ti.i32,
    ):
        for idx in range(width * height):
            if frame_index == 1:
                self.accumulation[idx] = vec4(0.0, 0.0, 0.0, 0.0)

            rng = pixel_seed(idx, ti.cast(frame_seed, ti.u32))
            origin = camera.origin()
            direction = camera.ray_directions[idx]

            color = vec3(0.0, 0.0, 0.0)
            for _ in range(rays_per_pixel):
                radiance, rng = self._trace_path(scene, origin, direction, rng, bounces)
                color += radiance
            color /= ti.cast(rays_per_pixel, ti.f32)

            # NaN/Inf would poison the accumulator for the rest of the session
            for c in ti.static(range(3)):
                if tm.isnan(color[c]) or tm.isinf(color[c]):
                    color[c] = 0.0

            self.accumulation[idx] += vec4(color[0], color[1], color[2], 1.0)

            average = self.accumulation[idx] / ti.cast(frame_index, ti.f32)
            rgb = tm.clamp(vec3(average[0], average[1], average[2]), 0.0, 1.0)
            self.image[idx] = ti.cast(vec4(rgb[0], rgb[1], rgb[2], 1.0) * 255.0 + 0.5, ti.u8)

    # =========================================================================
    # Readback
    # =========================================================================

    def get_image_numpy(self) -> np.ndarray:
        """Display image as (height, width, 4) uint8 RGBA, row 0 at the top."""
        count = self.width * self.height
        return self.image.to_numpy()[:count].reshape(self.height, self.width, 4)

    def get_accumulation_numpy(self) -> np.ndarray:
        """Raw accumulation sums as (height, width, 4) float32.

        The alpha channel counts the frames accumulated into each pixel.
        """
        count = self.width * self.height
        return self.accumulation.to_numpy()[:count].reshape(self.height, self.width, 4)

    def get_average_numpy(self) -> np.ndarray:
        """Accumulated average color as (height, width, 3) float32, unclamped."""
        acc = self.get_accumulation_numpy()
        samples = np.maximum(acc[..., 3:4], 1.0)
        return acc[..., :3] / samples

    @property
    def samples_accumulated(self) -> int:
        """Frames averaged into the current image."""
        return max(self.frame_index - 1, 0)
