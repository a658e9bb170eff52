"""Scene module: what gets rendered.

Components:
    model: Host-side records (materials, spheres, meshes, lights, sky)
    intersection: Taichi field storage and closest-hit queries
    config: Scene <-> dictionary / JSON file
    presets: Built-in scenes

Scenes are validated on the host before upload; the render kernel never
checks indices.
"""

from .config import load_scene, save_scene, scene_from_dict, scene_to_dict
from .intersection import SceneBuffers, SceneHitRecord
from .model import (
    Light,
    Material,
    Scene,
    SceneConfigError,
    Sky,
    Sphere,
    Transform,
    TriangleMesh,
)
from .presets import (
    PRESETS,
    create_default_scene,
    create_lit_scene,
    create_mesh_scene,
    create_scene,
)

__all__ = [
    "Scene",
    "SceneConfigError",
    "Material",
    "Sphere",
    "Transform",
    "TriangleMesh",
    "Light",
    "Sky",
    "SceneBuffers",
    "SceneHitRecord",
    "scene_to_dict",
    "scene_from_dict",
    "save_scene",
    "load_scene",
    "PRESETS",
    "create_scene",
    "create_default_scene",
    "create_lit_scene",
    "create_mesh_scene",
]
