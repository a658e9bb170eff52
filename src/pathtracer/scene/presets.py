"""Built-in scenes.

Three scenes ship with the renderer:

- default: three colored spheres resting on a huge ground sphere, lit by a
  distant emissive sphere and a blue sky gradient. Seen from the default
  camera at (0, 0, 6) looking down -Z.
- lit: the same layout under a black sky with a single directional light,
  showing the direct lighting term on its own.
- mesh: a cube mesh next to a mirror sphere on the ground sphere.

Example:
    >>> from src.pathtracer.scene.presets import create_scene
    >>> scene = create_scene("default")
    >>> len(scene.spheres)
    5
"""

from typing import Callable

from src.pathtracer.scene.model import Material, Scene, Sky, Transform, TriangleMesh

# =============================================================================
# Scene Constants
# =============================================================================

# Ground: a radius-200 sphere whose top sits at y = -1
GROUND_CENTER = (0.0, -201.0, 0.0)
GROUND_RADIUS = 200.0

SMALL_SPHERE_RADIUS = 0.5
SMALL_SPHERE_CENTERS = (
    (-1.25, -0.5, 0.0),
    (0.0, -0.5, 0.0),
    (1.25, -0.5, 0.0),
)

# Distant emitter standing in for a sun
SUN_CENTER = (20.0, 20.0, 20.0)
SUN_RADIUS = 10.0
SUN_INTENSITY = 2.0

MIRROR_ALBEDO = (1.0, 0.0, 1.0)
GROUND_ALBEDO = (0.0, 0.0, 0.0)
RED_ALBEDO = (1.0, 0.0, 0.0)
GREEN_ALBEDO = (0.0, 1.0, 0.0)
BLUE_ALBEDO = (0.0, 0.0, 1.0)


def _add_ground_and_spheres(scene: Scene, ground_albedo: tuple[float, float, float]) -> None:
    ground = scene.add_material(Material(albedo=ground_albedo, roughness=1.0))
    scene.add_sphere(GROUND_CENTER, GROUND_RADIUS, ground)
    for center, albedo in zip(SMALL_SPHERE_CENTERS, (RED_ALBEDO, GREEN_ALBEDO, BLUE_ALBEDO)):
        material = scene.add_material(Material(albedo=albedo, roughness=1.0))
        scene.add_sphere(center, SMALL_SPHERE_RADIUS, material)


def create_default_scene() -> Scene:
    """Create the startup scene.

    Materials, in order: a magenta mirror (unused by geometry, kept for
    editing), the black ground, red, green and blue diffuse, and the white
    emitter.
    """
    scene = Scene(sky=Sky())
    scene.add_material(Material(albedo=MIRROR_ALBEDO, roughness=0.0))
    _add_ground_and_spheres(scene, GROUND_ALBEDO)

    sun = scene.add_material(
        Material(emissive_color=(1.0, 1.0, 1.0), emissive_intensity=SUN_INTENSITY)
    )
    scene.add_sphere(SUN_CENTER, SUN_RADIUS, sun)
    return scene


def create_lit_scene() -> Scene:
    """Create the sphere layout lit by one directional light under a black sky."""
    scene = Scene(sky=Sky.black())
    _add_ground_and_spheres(scene, (0.8, 0.8, 0.8))
    scene.add_light(direction=(-1.0, -1.0, -1.0), intensity=1.0)
    return scene


def create_mesh_scene(cube_size: float = 1.0) -> Scene:
    """Create a scene with a cube mesh beside a mirror sphere."""
    scene = Scene(sky=Sky())
    ground = scene.add_material(Material(albedo=(0.5, 0.5, 0.5), roughness=1.0))
    scene.add_sphere(GROUND_CENTER, GROUND_RADIUS, ground)

    mirror = scene.add_material(Material(albedo=(0.9, 0.9, 0.9), roughness=0.05))
    scene.add_sphere((1.0, -0.5, 0.0), SMALL_SPHERE_RADIUS, mirror)

    orange = scene.add_material(Material(albedo=(0.9, 0.5, 0.1), roughness=0.8))
    cube = TriangleMesh.cube(cube_size, material_id=orange)
    cube.transform = Transform(translation=(-0.75, -1.0 + cube_size / 2.0, 0.0))
    scene.add_mesh(cube)

    scene.add_light(direction=(-1.0, -1.0, -0.5), intensity=0.5)
    return scene


PRESETS: dict[str, Callable[[], Scene]] = {
    "default": create_default_scene,
    "lit": create_lit_scene,
    "mesh": create_mesh_scene,
}


def create_scene(name: str) -> Scene:
    """Create a built-in scene by name.

    Raises:
        ValueError: If no preset has that name.
    """
    if name not in PRESETS:
        raise ValueError(f"Unknown scene preset: {name!r} (choose from {sorted(PRESETS)})")
    return PRESETS[name]()
