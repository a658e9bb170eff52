"""Host-side scene description: materials, spheres, meshes, lights and sky.

The Scene is what the host (or an editing panel) builds and mutates. It is
plain Python data; SceneBuffers in scene.intersection copies it into Taichi
fields before a frame is rendered. All structural validation happens here, at
scene-load time, so the render kernel never has to check indices.

Geometry references materials by index into Scene.materials. Every builder
method and mark_changed() bumps Scene.revision, which is how SceneBuffers
knows it has to upload again. Code that edits records in place (for example
an editing panel changing an albedo) must call mark_changed() afterwards.

Example:
    >>> from src.pathtracer.scene.model import Material, Scene, Sky
    >>> scene = Scene(sky=Sky.black())
    >>> red = scene.add_material(Material(albedo=(1.0, 0.0, 0.0), roughness=0.5))
    >>> scene.add_sphere(center=(0.0, 0.0, 0.0), radius=1.0, material_id=red)
    0
    >>> scene.validate()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt

from src.pathtracer.geometry.aabb import compute_aabb

logger = logging.getLogger(__name__)

Vec3Tuple = tuple[float, float, float]


class SceneConfigError(ValueError):
    """Raised when a scene is structurally invalid.

    Covers material indices out of range, malformed mesh index buffers,
    mismatched vertex/normal arrays and out-of-range material parameters.
    These are setup errors: they are reported before rendering starts and
    never from inside a frame.
    """


# =============================================================================
# Records
# =============================================================================


@dataclass
class Material:
    """Surface material.

    Attributes:
        albedo: Reflectance color, each component in [0, 1].
        roughness: Bounce perturbation scale in [0, 1]. 0 is a perfect mirror.
        metallic: Stored for editing; not used by the shading model.
        emissive_color: Emission color (non-negative).
        emissive_intensity: Emission strength (non-negative).
    """

    albedo: Vec3Tuple = (1.0, 1.0, 1.0)
    roughness: float = 1.0
    metallic: float = 0.0
    emissive_color: Vec3Tuple = (0.0, 0.0, 0.0)
    emissive_intensity: float = 0.0

    @property
    def emission(self) -> Vec3Tuple:
        """Emitted radiance, emissive_color * emissive_intensity."""
        r, g, b = self.emissive_color
        k = self.emissive_intensity
        return (r * k, g * k, b * k)


@dataclass
class Sphere:
    """A sphere primitive.

    Attributes:
        center: Center position.
        radius: Radius, must be positive.
        material_id: Index into Scene.materials.
    """

    center: Vec3Tuple = (0.0, 0.0, 0.0)
    radius: float = 0.5
    material_id: int = 0


@dataclass
class Transform:
    """Placement of a mesh.

    Only the translation is applied to geometry at intersection time; rotation
    (quaternion, x y z w) and scale are kept for editing but ignored by the
    renderer.
    """

    translation: Vec3Tuple = (0.0, 0.0, 0.0)
    rotation: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)
    scale: Vec3Tuple = (1.0, 1.0, 1.0)


@dataclass
class TriangleMesh:
    """An indexed triangle mesh with per-vertex normals.

    Attributes:
        positions: Vertex positions in mesh-local space, shape (N, 3).
        normals: Vertex normals, shape (N, 3), parallel to positions.
        indices: Flat triangle index list; length must be a multiple of 3.
        material_id: Index into Scene.materials.
        transform: Mesh placement (translation only is honored).
        aabb: (min, max) of the local positions. Computed on construction
            and by set_geometry(); it is not transform-adjusted.
    """

    positions: npt.NDArray[np.float32]
    normals: npt.NDArray[np.float32]
    indices: npt.NDArray[np.int32]
    material_id: int = 0
    transform: Transform = field(default_factory=Transform)
    aabb: tuple[Vec3Tuple, Vec3Tuple] = field(init=False)

    def __post_init__(self) -> None:
        self.positions = np.asarray(self.positions, dtype=np.float32).reshape(-1, 3)
        self.normals = np.asarray(self.normals, dtype=np.float32).reshape(-1, 3)
        self.indices = np.asarray(self.indices, dtype=np.int32).reshape(-1)
        self.aabb = compute_aabb(self.positions)

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.indices.shape[0] // 3)

    def set_geometry(
        self,
        positions: npt.ArrayLike,
        normals: npt.ArrayLike,
        indices: npt.ArrayLike,
    ) -> None:
        """Replace the mesh geometry and recompute its bounding box."""
        self.positions = np.asarray(positions, dtype=np.float32).reshape(-1, 3)
        self.normals = np.asarray(normals, dtype=np.float32).reshape(-1, 3)
        self.indices = np.asarray(indices, dtype=np.int32).reshape(-1)
        self.aabb = compute_aabb(self.positions)

    @classmethod
    def cube(cls, size: float = 1.0, material_id: int = 0) -> TriangleMesh:
        """Build an axis-aligned cube centered on the origin.

        Each face has its own four vertices so that the face normals stay
        flat under normal interpolation (24 vertices, 12 triangles).
        """
        h = size / 2.0
        faces = [
            # (normal, tangent u, tangent v) with u x v == normal
            ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0)),
            ((-1.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 1.0, 0.0)),
            ((0.0, 1.0, 0.0), (0.0, 0.0, 1.0), (1.0, 0.0, 0.0)),
            ((0.0, -1.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, 1.0)),
            ((0.0, 0.0, 1.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0)),
            ((0.0, 0.0, -1.0), (0.0, 1.0, 0.0), (1.0, 0.0, 0.0)),
        ]
        positions: list[list[float]] = []
        normals: list[list[float]] = []
        indices: list[int] = []
        for normal, u, v in faces:
            n = np.array(normal)
            du = np.array(u)
            dv = np.array(v)
            base = len(positions)
            for su, sv in ((-1.0, -1.0), (1.0, -1.0), (1.0, 1.0), (-1.0, 1.0)):
                corner = (n + su * du + sv * dv) * h
                positions.append(corner.tolist())
                normals.append(list(normal))
            indices.extend([base, base + 1, base + 2, base, base + 2, base + 3])

        return cls(
            positions=np.array(positions, dtype=np.float32),
            normals=np.array(normals, dtype=np.float32),
            indices=np.array(indices, dtype=np.int32),
            material_id=material_id,
        )


@dataclass
class Light:
    """Directional light.

    Attributes:
        direction: Direction the light travels (toward the scene). Any
            non-zero vector; it is normalized when shading.
        intensity: Scalar intensity.
    """

    direction: Vec3Tuple = (-1.0, -1.0, -1.0)
    intensity: float = 1.0


@dataclass
class Sky:
    """Vertical sky gradient sampled by ray direction on a miss."""

    ground_color: Vec3Tuple = (0.7, 0.7, 0.7)
    horizon_color: Vec3Tuple = (1.0, 1.0, 1.0)
    zenith_color: Vec3Tuple = (0.6, 0.7, 0.9)

    @classmethod
    def black(cls) -> Sky:
        return cls((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0))

    @classmethod
    def flat(cls, color: Vec3Tuple) -> Sky:
        """A sky of a single color in every direction."""
        return cls(color, color, color)


# =============================================================================
# Validation helpers
# =============================================================================


def _check_unit_range(name: str, values: tuple[float, ...]) -> None:
    for value in values:
        if not 0.0 <= value <= 1.0:
            raise SceneConfigError(f"{name} components must be in [0, 1], got {values}")


def _check_non_negative(name: str, values: tuple[float, ...]) -> None:
    for value in values:
        if not value >= 0.0:
            raise SceneConfigError(f"{name} must be non-negative, got {values}")


def _check_finite(name: str, values: npt.ArrayLike) -> None:
    if not np.all(np.isfinite(np.asarray(values, dtype=np.float64))):
        raise SceneConfigError(f"{name} must be finite")


def _check_material_id(owner: str, material_id: int, num_materials: int) -> None:
    if not 0 <= material_id < num_materials:
        raise SceneConfigError(
            f"{owner} references material {material_id}, "
            f"but the scene has {num_materials} materials"
        )


def validate_material(material: Material, label: str = "Material") -> None:
    """Check a material's parameter ranges.

    Raises:
        SceneConfigError: If albedo or roughness leave [0, 1], or emission
            is negative.
    """
    _check_unit_range(f"{label} albedo", tuple(material.albedo))
    _check_unit_range(f"{label} roughness", (material.roughness,))
    _check_non_negative(f"{label} emissive color", tuple(material.emissive_color))
    _check_non_negative(f"{label} emissive intensity", (material.emissive_intensity,))


def validate_mesh(mesh: TriangleMesh, label: str = "Mesh") -> None:
    """Check a mesh's buffers for structural consistency.

    Raises:
        SceneConfigError: If the index count is not a multiple of 3, an index
            is out of range, positions and normals differ in length, or a
            coordinate is not finite.
    """
    if mesh.positions.ndim != 2 or mesh.positions.shape[1] != 3:
        raise SceneConfigError(f"{label} positions must have shape (N, 3)")
    _check_finite(f"{label} positions", mesh.positions)
    _check_finite(f"{label} normals", mesh.normals)
    _check_finite(f"{label} translation", mesh.transform.translation)
    if mesh.normals.shape != mesh.positions.shape:
        raise SceneConfigError(
            f"{label} has {mesh.normals.shape[0]} normals for "
            f"{mesh.positions.shape[0]} vertices"
        )
    if mesh.indices.shape[0] % 3 != 0:
        raise SceneConfigError(
            f"{label} index count {mesh.indices.shape[0]} is not a multiple of 3"
        )
    if mesh.indices.size > 0:
        lo = int(mesh.indices.min())
        hi = int(mesh.indices.max())
        if lo < 0 or hi >= mesh.vertex_count:
            raise SceneConfigError(
                f"{label} indices must be in [0, {mesh.vertex_count}), got range [{lo}, {hi}]"
            )


# =============================================================================
# Scene
# =============================================================================


@dataclass
class Scene:
    """Everything the renderer needs to shade a frame.

    Attributes:
        materials: Materials referenced by index from geometry.
        spheres: Sphere primitives.
        meshes: Triangle meshes.
        lights: Directional lights. With no lights, only emissive materials
            and the sky illuminate the scene.
        sky: Background gradient.
        revision: Incremented on every change made through this class.
    """

    materials: list[Material] = field(default_factory=list)
    spheres: list[Sphere] = field(default_factory=list)
    meshes: list[TriangleMesh] = field(default_factory=list)
    lights: list[Light] = field(default_factory=list)
    sky: Sky = field(default_factory=Sky)
    revision: int = 0

    def mark_changed(self) -> None:
        """Record that scene data was edited in place."""
        self.revision += 1

    def add_material(self, material: Material) -> int:
        """Add a material and return its index."""
        self.materials.append(material)
        self.mark_changed()
        return len(self.materials) - 1

    def add_sphere(
        self,
        center: Vec3Tuple,
        radius: float,
        material_id: int = 0,
    ) -> int:
        """Add a sphere and return its index."""
        self.spheres.append(Sphere(center=center, radius=radius, material_id=material_id))
        self.mark_changed()
        return len(self.spheres) - 1

    def add_mesh(self, mesh: TriangleMesh) -> int:
        """Add a triangle mesh and return its index."""
        self.meshes.append(mesh)
        self.mark_changed()
        return len(self.meshes) - 1

    def add_light(self, direction: Vec3Tuple, intensity: float = 1.0) -> int:
        """Add a directional light and return its index."""
        self.lights.append(Light(direction=direction, intensity=intensity))
        self.mark_changed()
        return len(self.lights) - 1

    def set_sky(self, sky: Sky) -> None:
        self.sky = sky
        self.mark_changed()

    def clear(self) -> None:
        """Remove all materials, geometry and lights (the sky is kept)."""
        self.materials.clear()
        self.spheres.clear()
        self.meshes.clear()
        self.lights.clear()
        self.mark_changed()

    @property
    def triangle_count(self) -> int:
        return sum(mesh.triangle_count for mesh in self.meshes)

    @property
    def vertex_count(self) -> int:
        return sum(mesh.vertex_count for mesh in self.meshes)

    def validate(self) -> None:
        """Check the whole scene for configuration errors.

        Raises:
            SceneConfigError: On the first problem found.
        """
        num_materials = len(self.materials)

        for i, material in enumerate(self.materials):
            validate_material(material, f"Material {i}")

        for i, sphere in enumerate(self.spheres):
            _check_finite(f"Sphere {i} center", sphere.center)
            if not 0.0 < sphere.radius < np.inf:
                raise SceneConfigError(f"Sphere {i} radius must be positive and finite, got {sphere.radius}")
            _check_material_id(f"Sphere {i}", sphere.material_id, num_materials)

        for i, mesh in enumerate(self.meshes):
            validate_mesh(mesh, f"Mesh {i}")
            _check_material_id(f"Mesh {i}", mesh.material_id, num_materials)

        for i, light in enumerate(self.lights):
            _check_finite(f"Light {i} direction", light.direction)
            _check_finite(f"Light {i} intensity", (light.intensity,))
            if not any(abs(c) > 0.0 for c in light.direction):
                raise SceneConfigError(f"Light {i} direction must be non-zero")

        _check_unit_range("Sky ground color", tuple(self.sky.ground_color))
        _check_unit_range("Sky horizon color", tuple(self.sky.horizon_color))
        _check_unit_range("Sky zenith color", tuple(self.sky.zenith_color))

        logger.debug(
            "Validated scene: %d materials, %d spheres, %d meshes (%d triangles), %d lights",
            num_materials,
            len(self.spheres),
            len(self.meshes),
            self.triangle_count,
            len(self.lights),
        )
