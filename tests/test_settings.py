"""Tests for the settings dataclasses."""

import pytest

from src.pathtracer.settings import CameraSettings, RenderSettings, ViewportSettings


class TestCameraSettings:
    def test_defaults(self):
        settings = CameraSettings()
        assert settings.vertical_fov == 45.0
        assert settings.near_clip == 0.1
        assert settings.far_clip == 100.0
        assert settings.position == (0.0, 0.0, 6.0)
        assert settings.forward == (0.0, 0.0, -1.0)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"vertical_fov": 0.0},
            {"vertical_fov": 180.0},
            {"near_clip": -1.0},
            {"near_clip": 1.0, "far_clip": 1.0},
            {"forward": (0.0, 0.0, 0.0)},
            {"position": (0.0, 0.0)},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            CameraSettings(**kwargs)

    def test_round_trip(self):
        settings = CameraSettings(vertical_fov=60.0, position=(1, 2, 3))
        data = settings.to_dict()
        assert data["position"] == [1.0, 2.0, 3.0]
        assert CameraSettings.from_dict(data) == settings


class TestRenderSettings:
    def test_defaults(self):
        settings = RenderSettings()
        assert settings.bounces == 5
        assert settings.rays_per_pixel == 1
        assert settings.accumulate is True
        assert settings.seed == 0
        assert settings.render_scale == 0.75

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"bounces": 0}, "bounces"),
            ({"rays_per_pixel": 0}, "rays_per_pixel"),
            ({"seed": -1}, "seed"),
            ({"render_scale": 0.0}, "render_scale"),
            ({"render_scale": 1.5}, "render_scale"),
        ],
    )
    def test_invalid(self, kwargs, message):
        with pytest.raises(ValueError, match=message):
            RenderSettings(**kwargs)

    def test_from_dict_ignores_unknown_keys(self):
        settings = RenderSettings.from_dict({"bounces": 8, "tone_map": "reinhard"})
        assert settings.bounces == 8
        assert settings == RenderSettings(bounces=8)

    def test_round_trip(self):
        settings = RenderSettings(bounces=3, accumulate=False, seed=9, render_scale=1.0)
        assert RenderSettings.from_dict(settings.to_dict()) == settings


class TestViewportSettings:
    def test_defaults(self):
        settings = ViewportSettings()
        assert (settings.width, settings.height) == (512, 512)
        assert (settings.max_width, settings.max_height) == (2048, 2048)

    def test_zero_size_allowed(self):
        ViewportSettings(width=0, height=0)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"width": -1},
            {"max_width": 0},
            {"width": 100, "max_width": 64},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            ViewportSettings(**kwargs)

    def test_round_trip(self):
        settings = ViewportSettings(width=320, height=200, max_width=640, max_height=480)
        assert ViewportSettings.from_dict(settings.to_dict()) == settings
