"""Tests for scene serialization and the built-in presets."""

import json

import numpy as np
import pytest

from src.pathtracer.scene.config import (
    load_scene,
    material_from_dict,
    save_scene,
    scene_from_dict,
    scene_to_dict,
)
from src.pathtracer.scene.model import Material, SceneConfigError, Sky
from src.pathtracer.scene.presets import PRESETS, create_default_scene, create_mesh_scene, create_scene


class TestPresets:
    """Tests for the built-in scenes."""

    @pytest.mark.parametrize("name", sorted(PRESETS))
    def test_presets_are_valid(self, name):
        create_scene(name).validate()

    def test_unknown_preset(self):
        with pytest.raises(ValueError, match="Unknown scene preset"):
            create_scene("nope")

    def test_default_scene_layout(self):
        scene = create_default_scene()
        assert len(scene.materials) == 6
        assert len(scene.spheres) == 5
        assert scene.spheres[0].radius == 200.0
        assert scene.spheres[0].center == (0.0, -201.0, 0.0)
        sun = scene.spheres[-1]
        assert scene.materials[sun.material_id].emission == (2.0, 2.0, 2.0)
        assert scene.sky == Sky()

    def test_mesh_scene_cube_rests_on_ground(self):
        scene = create_mesh_scene(cube_size=0.5)
        cube = scene.meshes[0]
        bottom = cube.aabb[0][1] + cube.transform.translation[1]
        assert bottom == pytest.approx(-1.0)


class TestDictRoundTrip:
    """Tests for scene_to_dict and scene_from_dict."""

    @pytest.mark.parametrize("name", sorted(PRESETS))
    def test_round_trip(self, name):
        scene = create_scene(name)
        data = scene_to_dict(scene)
        restored = scene_from_dict(json.loads(json.dumps(data)))
        assert scene_to_dict(restored) == data

    def test_mesh_arrays_restored(self):
        scene = create_mesh_scene()
        restored = scene_from_dict(scene_to_dict(scene))
        np.testing.assert_array_equal(restored.meshes[0].indices, scene.meshes[0].indices)
        assert restored.meshes[0].aabb == scene.meshes[0].aabb
        assert restored.meshes[0].transform == scene.meshes[0].transform

    def test_missing_keys_use_defaults(self):
        scene = scene_from_dict({"materials": [{}], "spheres": [{}]})
        assert scene.materials[0] == Material()
        assert scene.spheres[0].radius == 0.5
        assert scene.sky == Sky()
        assert scene.lights == []

    def test_material_from_dict(self):
        material = material_from_dict({"albedo": [0.1, 0.2, 0.3], "emissive_intensity": 4})
        assert material.albedo == (0.1, 0.2, 0.3)
        assert material.emissive_intensity == 4.0

    def test_loaded_scene_is_validated(self):
        with pytest.raises(SceneConfigError, match="references material"):
            scene_from_dict({"spheres": [{"material_id": 0}]})

    def test_wrong_vector_length(self):
        with pytest.raises(SceneConfigError, match="must have 3 components"):
            scene_from_dict({"lights": [{"direction": [0.0, -1.0]}]})

    def test_wrong_rotation_length(self):
        data = {"materials": [{}], "meshes": [{"transform": {"rotation": [0.0, 0.0, 1.0]}}]}
        with pytest.raises(SceneConfigError, match="rotation must have 4 components"):
            scene_from_dict(data)

    def test_bad_mesh_indices(self):
        data = {
            "materials": [{}],
            "meshes": [
                {
                    "positions": [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]],
                    "normals": [[0.0, 0.0, 1.0]] * 3,
                    "indices": [0, 1],
                }
            ],
        }
        with pytest.raises(SceneConfigError, match="not a multiple of 3"):
            scene_from_dict(data)


class TestFiles:
    """Tests for save_scene and load_scene."""

    def test_save_and_load(self, tmp_path):
        scene = create_mesh_scene()
        path = save_scene(scene, tmp_path / "scenes" / "mesh.json")

        assert path.exists()
        restored = load_scene(path)
        assert scene_to_dict(restored) == scene_to_dict(scene)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_scene(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(SceneConfigError, match="not valid JSON"):
            load_scene(path)

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(SceneConfigError, match="must contain a JSON object"):
            load_scene(path)
