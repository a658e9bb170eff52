"""Pytest configuration for path tracer tests.

Taichi is initialized once per session on the CPU backend. Fields are
allocated inside tests (never at import time), and renderer, camera and
scene buffer capacities are kept small so each test allocates little memory.
"""

import pytest
import taichi as ti

# Small capacities used across the suite
TEST_MAX_SIZE = 64


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture
def make_scene_buffers():
    """Factory for SceneBuffers with small capacities."""
    from src.pathtracer.scene.intersection import SceneBuffers

    def _make(**overrides):
        capacities = {
            "max_materials": 8,
            "max_spheres": 8,
            "max_meshes": 4,
            "max_vertices": 64,
            "max_triangles": 64,
            "max_lights": 4,
        }
        capacities.update(overrides)
        return SceneBuffers(**capacities)

    return _make


@pytest.fixture
def make_camera():
    """Factory for a PerspectiveCamera with a small viewport capacity."""
    from src.pathtracer.camera.perspective import PerspectiveCamera

    def _make(width=0, height=0, **kwargs):
        kwargs.setdefault("max_width", TEST_MAX_SIZE)
        kwargs.setdefault("max_height", TEST_MAX_SIZE)
        camera = PerspectiveCamera(**kwargs)
        camera.resize(width, height)
        return camera

    return _make


@pytest.fixture
def make_renderer(make_scene_buffers):
    """Factory for a Renderer with small buffers, resized to (width, height)."""
    from src.pathtracer.core.renderer import Renderer

    def _make(width, height, **kwargs):
        kwargs.setdefault("max_width", TEST_MAX_SIZE)
        kwargs.setdefault("max_height", TEST_MAX_SIZE)
        kwargs.setdefault("scene_buffers", make_scene_buffers())
        renderer = Renderer(**kwargs)
        renderer.resize(width, height)
        return renderer

    return _make


@pytest.fixture
def make_session(make_scene_buffers):
    """Factory for a small ProgressiveRenderer, over the lit preset by default."""
    from src.pathtracer.core.progressive import ProgressiveRenderer
    from src.pathtracer.scene.presets import create_lit_scene
    from src.pathtracer.settings import RenderSettings, ViewportSettings

    def _make(width=16, height=16, scene=None, **settings):
        return ProgressiveRenderer(
            scene if scene is not None else create_lit_scene(),
            render_settings=RenderSettings(**settings),
            viewport=ViewportSettings(
                width=width, height=height, max_width=TEST_MAX_SIZE, max_height=TEST_MAX_SIZE
            ),
            scene_buffers=make_scene_buffers(),
        )

    return _make
