"""Device-side scene storage and closest-hit queries.

SceneBuffers mirrors a host Scene in Taichi fields laid out as Structure of
Arrays. Mesh geometry from every mesh is concatenated into one vertex array
and one triangle array; each mesh keeps a (start, count) range into the
triangle array, and triangle vertex indices are rebased to the global vertex
array when uploading.

The Taichi functions on SceneBuffers (intersect, sky_color, direct_light and
the material accessors) are inlined into the render kernel, which receives
the buffers as a ti.template() argument.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.scene.intersection import SceneBuffers
    >>> from src.pathtracer.scene.presets import create_default_scene
    >>> buffers = SceneBuffers()
    >>> buffers.sync(create_default_scene())
    True
    >>> # Within a kernel taking buffers: ti.template():
    >>> # rec = buffers.intersect(origin, direction)
"""

import logging

import numpy as np
import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import lerp, ray_at, safe_inverse, smoothstep, vec3
from src.pathtracer.geometry.aabb import compute_aabb, hit_aabb
from src.pathtracer.geometry.sphere import hit_sphere, sphere_normal
from src.pathtracer.geometry.triangle import hit_triangle, interpolate_normal
from src.pathtracer.scene.model import Scene, SceneConfigError

logger = logging.getLogger(__name__)

# Upper bound on hit distances; anything beyond counts as a miss
T_MAX = 1e30

# Default capacities
MAX_MATERIALS = 256
MAX_SPHERES = 1024
MAX_MESHES = 64
MAX_VERTICES = 65536
MAX_TRIANGLES = 65536
MAX_LIGHTS = 16


@ti.dataclass
class SceneHitRecord:
    """Closest intersection of a ray with the scene.

    Attributes:
        hit: 1 if the ray hit anything, 0 on a miss.
        t: Ray parameter of the hit. Only valid if hit == 1.
        point: World-space hit point. Only valid if hit == 1.
        normal: Unit surface normal at the hit (outward for spheres,
            interpolated for meshes). Only valid if hit == 1.
        material_id: Material index of the hit primitive, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    material_id: ti.i32


@ti.data_oriented
class SceneBuffers:
    """Taichi field storage for one scene.

    Capacities are fixed at construction because Taichi fields cannot grow;
    uploading a scene that does not fit raises SceneConfigError.

    Args:
        max_materials: Material capacity.
        max_spheres: Sphere capacity.
        max_meshes: Mesh capacity.
        max_vertices: Total vertex capacity across all meshes.
        max_triangles: Total triangle capacity across all meshes.
        max_lights: Directional light capacity.
    """

    def __init__(
        self,
        max_materials: int = MAX_MATERIALS,
        max_spheres: int = MAX_SPHERES,
        max_meshes: int = MAX_MESHES,
        max_vertices: int = MAX_VERTICES,
        max_triangles: int = MAX_TRIANGLES,
        max_lights: int = MAX_LIGHTS,
    ):
        capacities = {
            "max_materials": max_materials,
            "max_spheres": max_spheres,
            "max_meshes": max_meshes,
            "max_vertices": max_vertices,
            "max_triangles": max_triangles,
            "max_lights": max_lights,
        }
        for name, value in capacities.items():
            if value < 1:
                raise ValueError(f"{name} must be at least 1, got {value}")

        self.max_materials = max_materials
        self.max_spheres = max_spheres
        self.max_meshes = max_meshes
        self.max_vertices = max_vertices
        self.max_triangles = max_triangles
        self.max_lights = max_lights

        # Materials
        self.material_albedo = ti.Vector.field(3, dtype=ti.f32, shape=max_materials)
        self.material_roughness = ti.field(dtype=ti.f32, shape=max_materials)
        self.material_emission = ti.Vector.field(3, dtype=ti.f32, shape=max_materials)

        # Spheres
        self.sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=max_spheres)
        self.sphere_radii = ti.field(dtype=ti.f32, shape=max_spheres)
        self.sphere_material_ids = ti.field(dtype=ti.i32, shape=max_spheres)
        self.num_spheres = ti.field(dtype=ti.i32, shape=())

        # Meshes: per-mesh ranges into the shared triangle array
        self.mesh_translation = ti.Vector.field(3, dtype=ti.f32, shape=max_meshes)
        self.mesh_aabb_min = ti.Vector.field(3, dtype=ti.f32, shape=max_meshes)
        self.mesh_aabb_max = ti.Vector.field(3, dtype=ti.f32, shape=max_meshes)
        self.mesh_triangle_start = ti.field(dtype=ti.i32, shape=max_meshes)
        self.mesh_triangle_count = ti.field(dtype=ti.i32, shape=max_meshes)
        self.mesh_material_ids = ti.field(dtype=ti.i32, shape=max_meshes)
        self.num_meshes = ti.field(dtype=ti.i32, shape=())

        # Shared vertex and triangle arrays
        self.vertex_positions = ti.Vector.field(3, dtype=ti.f32, shape=max_vertices)
        self.vertex_normals = ti.Vector.field(3, dtype=ti.f32, shape=max_vertices)
        self.triangle_indices = ti.Vector.field(3, dtype=ti.i32, shape=max_triangles)

        # Lights
        self.light_directions = ti.Vector.field(3, dtype=ti.f32, shape=max_lights)
        self.light_intensities = ti.field(dtype=ti.f32, shape=max_lights)
        self.num_lights = ti.field(dtype=ti.i32, shape=())

        # Sky
        self.sky_ground = ti.Vector.field(3, dtype=ti.f32, shape=())
        self.sky_horizon = ti.Vector.field(3, dtype=ti.f32, shape=())
        self.sky_zenith = ti.Vector.field(3, dtype=ti.f32, shape=())

        self._scene: Scene | None = None
        self._revision = -1

    # =========================================================================
    # Host side
    # =========================================================================

    def _check_capacity(self, what: str, count: int, capacity: int) -> None:
        if count > capacity:
            raise SceneConfigError(f"Scene has {count} {what}, capacity is {capacity}")

    def upload(self, scene: Scene) -> None:
        """Validate a scene and copy it into the device fields.

        Raises:
            SceneConfigError: If the scene is invalid or exceeds a capacity.
        """
        scene.validate()

        num_vertices = scene.vertex_count
        num_triangles = scene.triangle_count
        self._check_capacity("materials", len(scene.materials), self.max_materials)
        self._check_capacity("spheres", len(scene.spheres), self.max_spheres)
        self._check_capacity("meshes", len(scene.meshes), self.max_meshes)
        self._check_capacity("vertices", num_vertices, self.max_vertices)
        self._check_capacity("triangles", num_triangles, self.max_triangles)
        self._check_capacity("lights", len(scene.lights), self.max_lights)

        # Materials
        albedo = np.zeros((self.max_materials, 3), dtype=np.float32)
        roughness = np.zeros(self.max_materials, dtype=np.float32)
        emission = np.zeros((self.max_materials, 3), dtype=np.float32)
        for i, material in enumerate(scene.materials):
            albedo[i] = material.albedo
            roughness[i] = material.roughness
            emission[i] = material.emission
        self.material_albedo.from_numpy(albedo)
        self.material_roughness.from_numpy(roughness)
        self.material_emission.from_numpy(emission)

        # Spheres
        centers = np.zeros((self.max_spheres, 3), dtype=np.float32)
        radii = np.zeros(self.max_spheres, dtype=np.float32)
        sphere_materials = np.zeros(self.max_spheres, dtype=np.int32)
        for i, sphere in enumerate(scene.spheres):
            centers[i] = sphere.center
            radii[i] = sphere.radius
            sphere_materials[i] = sphere.material_id
        self.sphere_centers.from_numpy(centers)
        self.sphere_radii.from_numpy(radii)
        self.sphere_material_ids.from_numpy(sphere_materials)
        self.num_spheres[None] = len(scene.spheres)

        # Meshes
        translations = np.zeros((self.max_meshes, 3), dtype=np.float32)
        aabb_min = np.zeros((self.max_meshes, 3), dtype=np.float32)
        aabb_max = np.zeros((self.max_meshes, 3), dtype=np.float32)
        tri_start = np.zeros(self.max_meshes, dtype=np.int32)
        tri_count = np.zeros(self.max_meshes, dtype=np.int32)
        mesh_materials = np.zeros(self.max_meshes, dtype=np.int32)
        positions = np.zeros((self.max_vertices, 3), dtype=np.float32)
        normals = np.zeros((self.max_vertices, 3), dtype=np.float32)
        triangles = np.zeros((self.max_triangles, 3), dtype=np.int32)

        vertex_offset = 0
        triangle_offset = 0
        for i, mesh in enumerate(scene.meshes):
            n_verts = mesh.vertex_count
            n_tris = mesh.triangle_count
            translations[i] = mesh.transform.translation
            # Positions may have been edited in place since construction
            mesh.aabb = compute_aabb(mesh.positions)
            aabb_min[i] = mesh.aabb[0]
            aabb_max[i] = mesh.aabb[1]
            tri_start[i] = triangle_offset
            tri_count[i] = n_tris
            mesh_materials[i] = mesh.material_id
            positions[vertex_offset : vertex_offset + n_verts] = mesh.positions
            normals[vertex_offset : vertex_offset + n_verts] = mesh.normals
            triangles[triangle_offset : triangle_offset + n_tris] = (
                mesh.indices.reshape(-1, 3) + vertex_offset
            )
            vertex_offset += n_verts
            triangle_offset += n_tris

        self.mesh_translation.from_numpy(translations)
        self.mesh_aabb_min.from_numpy(aabb_min)
        self.mesh_aabb_max.from_numpy(aabb_max)
        self.mesh_triangle_start.from_numpy(tri_start)
        self.mesh_triangle_count.from_numpy(tri_count)
        self.mesh_material_ids.from_numpy(mesh_materials)
        self.vertex_positions.from_numpy(positions)
        self.vertex_normals.from_numpy(normals)
        self.triangle_indices.from_numpy(triangles)
        self.num_meshes[None] = len(scene.meshes)

        # Lights
        directions = np.zeros((self.max_lights, 3), dtype=np.float32)
        intensities = np.zeros(self.max_lights, dtype=np.float32)
        for i, light in enumerate(scene.lights):
            directions[i] = light.direction
            intensities[i] = light.intensity
        self.light_directions.from_numpy(directions)
        self.light_intensities.from_numpy(intensities)
        self.num_lights[None] = len(scene.lights)

        # Sky
        self.sky_ground[None] = list(scene.sky.ground_color)
        self.sky_horizon[None] = list(scene.sky.horizon_color)
        self.sky_zenith[None] = list(scene.sky.zenith_color)

        self._scene = scene
        self._revision = scene.revision

        logger.debug(
            "Uploaded scene revision %d: %d spheres, %d meshes, %d triangles, %d lights",
            scene.revision,
            len(scene.spheres),
            len(scene.meshes),
            num_triangles,
            len(scene.lights),
        )

    def sync(self, scene: Scene) -> bool:
        """Upload the scene if it differs from what the buffers hold.

        A scene is considered unchanged when it is the same object at the
        same revision as the last upload.

        Returns:
            True if an upload happened.
        """
        if self._scene is scene and self._revision == scene.revision:
            return False
        self.upload(scene)
        return True

    def invalidate(self) -> None:
        """Force the next sync() to upload."""
        self._scene = None
        self._revision = -1

    def get_sphere_count(self) -> int:
        return int(self.num_spheres[None])

    def get_mesh_count(self) -> int:
        return int(self.num_meshes[None])

    def get_light_count(self) -> int:
        return int(self.num_lights[None])

    # =========================================================================
    # Device side
    # =========================================================================

    @ti.func
    def albedo(self, material_id: ti.i32) -> vec3:
        return self.material_albedo[material_id]

    @ti.func
    def roughness(self, material_id: ti.i32) -> ti.f32:
        return self.material_roughness[material_id]

    @ti.func
    def emission(self, material_id: ti.i32) -> vec3:
        return self.material_emission[material_id]

    @ti.func
    def intersect(self, ray_origin: vec3, ray_direction: vec3) -> SceneHitRecord:
        """Find the closest hit in front of the ray origin.

        Spheres are tested first; a triangle only replaces the current hit
        when it is strictly closer, so a sphere wins an exact tie. Each mesh
        is tested in its own untranslated space, and its triangles are only
        visited when the ray enters the mesh's box before the current
        closest hit. The returned normal faces against the ray.

        Args:
            ray_origin: The starting point of the ray.
            ray_direction: The direction of the ray.

        Returns:
            A SceneHitRecord; hit == 0 and material_id == -1 on a miss.
        """
        closest_t = T_MAX
        hit = 0
        material_id = -1
        normal = vec3(0.0, 0.0, 0.0)

        sphere_index = -1
        for i in range(self.num_spheres[None]):
            did_hit, t_near, _ = hit_sphere(
                ray_origin, ray_direction, self.sphere_centers[i], self.sphere_radii[i]
            )
            if did_hit == 1 and t_near > 0.0 and t_near < closest_t:
                closest_t = t_near
                sphere_index = i

        if sphere_index >= 0:
            hit = 1
            material_id = self.sphere_material_ids[sphere_index]
            normal = sphere_normal(
                ray_at(ray_origin, ray_direction, closest_t),
                self.sphere_centers[sphere_index],
                self.sphere_radii[sphere_index],
            )

        inv_direction = safe_inverse(ray_direction)
        for m in range(self.num_meshes[None]):
            local_origin = ray_origin - self.mesh_translation[m]
            if (
                hit_aabb(
                    local_origin,
                    inv_direction,
                    self.mesh_aabb_min[m],
                    self.mesh_aabb_max[m],
                    closest_t,
                )
                == 1
            ):
                start = self.mesh_triangle_start[m]
                end = start + self.mesh_triangle_count[m]
                for k in range(start, end):
                    tri = self.triangle_indices[k]
                    did_hit, t, u, v = hit_triangle(
                        local_origin,
                        ray_direction,
                        self.vertex_positions[tri[0]],
                        self.vertex_positions[tri[1]],
                        self.vertex_positions[tri[2]],
                    )
                    if did_hit == 1 and t < closest_t:
                        closest_t = t
                        hit = 1
                        material_id = self.mesh_material_ids[m]
                        normal = interpolate_normal(
                            self.vertex_normals[tri[0]],
                            self.vertex_normals[tri[1]],
                            self.vertex_normals[tri[2]],
                            u,
                            v,
                        )

        t_hit = 0.0
        point = vec3(0.0, 0.0, 0.0)
        if hit == 1:
            t_hit = closest_t
            point = ray_at(ray_origin, ray_direction, closest_t)
            # Back-face hits on open meshes shade and offset on the ray's side
            if tm.dot(ray_direction, normal) > 0.0:
                normal = -normal

        return SceneHitRecord(
            hit=hit, t=t_hit, point=point, normal=normal, material_id=material_id
        )

    @ti.func
    def sky_color(self, direction: vec3) -> vec3:
        """Background radiance for a ray that escapes the scene.

        Blends horizon to zenith above the horizon and fades to the ground
        color just below it. Only the y component of direction is used.
        """
        y = direction.y
        t = ti.pow(smoothstep(0.0, 0.4, y), 0.35)
        gradient = lerp(self.sky_horizon[None], self.sky_zenith[None], t)
        return lerp(self.sky_ground[None], gradient, smoothstep(-0.01, 0.0, y))

    @ti.func
    def direct_light(self, normal: vec3) -> ti.f32:
        """Sum of Lambert terms over all directional lights (no shadows)."""
        total = 0.0
        for i in range(self.num_lights[None]):
            to_light = -tm.normalize(self.light_directions[i])
            total += ti.max(tm.dot(normal, to_light), 0.0) * self.light_intensities[i]
        return total
