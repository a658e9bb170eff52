"""Scene serialization to plain dictionaries and JSON files.

The dictionary layout mirrors the Scene records:

    {
        "materials": [{"albedo": [r, g, b], "roughness": 1.0, ...}, ...],
        "spheres": [{"center": [x, y, z], "radius": 0.5, "material_id": 0}, ...],
        "meshes": [{"positions": [[x, y, z], ...], "normals": [...],
                    "indices": [...], "material_id": 0,
                    "transform": {"translation": [...], ...}}, ...],
        "lights": [{"direction": [x, y, z], "intensity": 1.0}, ...],
        "sky": {"ground_color": [...], "horizon_color": [...], "zenith_color": [...]}
    }

Missing keys fall back to the record defaults. Loaded scenes are validated.
"""

import json
import logging
from pathlib import Path
from typing import Any

from src.pathtracer.scene.model import (
    Light,
    Material,
    Scene,
    SceneConfigError,
    Sky,
    Sphere,
    Transform,
    TriangleMesh,
)

logger = logging.getLogger(__name__)


def _vec3(values: Any, name: str) -> tuple[float, float, float]:
    if values is None or len(values) != 3:
        raise SceneConfigError(f"{name} must have 3 components, got {values!r}")
    return (float(values[0]), float(values[1]), float(values[2]))


# =============================================================================
# Scene -> dict
# =============================================================================


def material_to_dict(material: Material) -> dict[str, Any]:
    return {
        "albedo": list(material.albedo),
        "roughness": material.roughness,
        "metallic": material.metallic,
        "emissive_color": list(material.emissive_color),
        "emissive_intensity": material.emissive_intensity,
    }


def mesh_to_dict(mesh: TriangleMesh) -> dict[str, Any]:
    return {
        "positions": mesh.positions.tolist(),
        "normals": mesh.normals.tolist(),
        "indices": mesh.indices.tolist(),
        "material_id": mesh.material_id,
        "transform": {
            "translation": list(mesh.transform.translation),
            "rotation": list(mesh.transform.rotation),
            "scale": list(mesh.transform.scale),
        },
    }


def scene_to_dict(scene: Scene) -> dict[str, Any]:
    """Export a scene to a JSON-serializable dictionary."""
    return {
        "materials": [material_to_dict(m) for m in scene.materials],
        "spheres": [
            {"center": list(s.center), "radius": s.radius, "material_id": s.material_id}
            for s in scene.spheres
        ],
        "meshes": [mesh_to_dict(m) for m in scene.meshes],
        "lights": [
            {"direction": list(light.direction), "intensity": light.intensity}
            for light in scene.lights
        ],
        "sky": {
            "ground_color": list(scene.sky.ground_color),
            "horizon_color": list(scene.sky.horizon_color),
            "zenith_color": list(scene.sky.zenith_color),
        },
    }


# =============================================================================
# dict -> Scene
# =============================================================================


def material_from_dict(data: dict[str, Any]) -> Material:
    defaults = Material()
    return Material(
        albedo=_vec3(data.get("albedo", defaults.albedo), "albedo"),
        roughness=float(data.get("roughness", defaults.roughness)),
        metallic=float(data.get("metallic", defaults.metallic)),
        emissive_color=_vec3(data.get("emissive_color", defaults.emissive_color), "emissive_color"),
        emissive_intensity=float(data.get("emissive_intensity", defaults.emissive_intensity)),
    )


def mesh_from_dict(data: dict[str, Any]) -> TriangleMesh:
    transform_data = data.get("transform", {})
    defaults = Transform()
    rotation = transform_data.get("rotation", defaults.rotation)
    if len(rotation) != 4:
        raise SceneConfigError(f"rotation must have 4 components, got {rotation!r}")
    transform = Transform(
        translation=_vec3(transform_data.get("translation", defaults.translation), "translation"),
        rotation=(
            float(rotation[0]),
            float(rotation[1]),
            float(rotation[2]),
            float(rotation[3]),
        ),
        scale=_vec3(transform_data.get("scale", defaults.scale), "scale"),
    )
    try:
        return TriangleMesh(
            positions=data.get("positions", []),
            normals=data.get("normals", []),
            indices=data.get("indices", []),
            material_id=int(data.get("material_id", 0)),
            transform=transform,
        )
    except ValueError as e:
        raise SceneConfigError(f"Invalid mesh data: {e}") from e


def scene_from_dict(data: dict[str, Any]) -> Scene:
    """Build a scene from a dictionary produced by scene_to_dict.

    Raises:
        SceneConfigError: If the data is malformed or the scene is invalid.
    """
    scene = Scene()

    for mat_data in data.get("materials", []):
        scene.materials.append(material_from_dict(mat_data))

    sphere_defaults = Sphere()
    for sphere_data in data.get("spheres", []):
        scene.spheres.append(
            Sphere(
                center=_vec3(sphere_data.get("center", sphere_defaults.center), "center"),
                radius=float(sphere_data.get("radius", sphere_defaults.radius)),
                material_id=int(sphere_data.get("material_id", sphere_defaults.material_id)),
            )
        )

    for mesh_data in data.get("meshes", []):
        scene.meshes.append(mesh_from_dict(mesh_data))

    light_defaults = Light()
    for light_data in data.get("lights", []):
        scene.lights.append(
            Light(
                direction=_vec3(light_data.get("direction", light_defaults.direction), "direction"),
                intensity=float(light_data.get("intensity", light_defaults.intensity)),
            )
        )

    if "sky" in data:
        sky_data = data["sky"]
        sky_defaults = Sky()
        scene.sky = Sky(
            ground_color=_vec3(sky_data.get("ground_color", sky_defaults.ground_color), "ground_color"),
            horizon_color=_vec3(
                sky_data.get("horizon_color", sky_defaults.horizon_color), "horizon_color"
            ),
            zenith_color=_vec3(sky_data.get("zenith_color", sky_defaults.zenith_color), "zenith_color"),
        )

    scene.mark_changed()
    scene.validate()
    return scene


# =============================================================================
# Files
# =============================================================================


def save_scene(scene: Scene, path: str | Path) -> Path:
    """Write a scene to a JSON file.

    Returns:
        The path written to.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(scene_to_dict(scene), f, indent=2)
    logger.info("Saved scene to %s", path)
    return path


def load_scene(path: str | Path) -> Scene:
    """Read a scene from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        SceneConfigError: If the file content is not a valid scene.
    """
    path = Path(path)
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise SceneConfigError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SceneConfigError(f"{path} must contain a JSON object")
    scene = scene_from_dict(data)
    logger.info("Loaded scene from %s", path)
    return scene
