"""Tests for the preview module.

This module tests preview/display, preview/export and the input helpers of
preview/interactive:
- Tone mapping and gamma encoding
- PNG export and readback
- RMSE computation
- Key and mouse mapping for fly controls

Note: Tests avoid opening windows; show_preview and InteractivePreview.run
are not called. The processing functions are tested directly.
"""

import os

import numpy as np
import pytest


class TestToneMapping:
    """Test Reinhard tone mapping and gamma encoding."""

    def test_reinhard_formula(self):
        from src.pathtracer.preview.display import tone_map_reinhard

        for val in [0.0, 0.5, 1.0, 2.0, 5.0]:
            image = np.full((2, 2, 3), val, dtype=np.float32)
            assert np.allclose(tone_map_reinhard(image), val / (1.0 + val), atol=1e-6)

    def test_reinhard_clamps_negative(self):
        from src.pathtracer.preview.display import tone_map_reinhard

        image = np.full((2, 2, 3), -1.0, dtype=np.float32)
        assert np.all(tone_map_reinhard(image) == 0.0)

    def test_gamma_one_is_identity(self):
        from src.pathtracer.preview.display import apply_gamma

        image = np.array([[[0.2, 0.4, 0.6]]], dtype=np.float32)
        assert apply_gamma(image, 1.0) is image

    def test_gamma_brightens_midtones(self):
        from src.pathtracer.preview.display import apply_gamma

        image = np.full((2, 2, 3), 0.25, dtype=np.float32)
        assert np.allclose(apply_gamma(image, 2.0), 0.5)

    def test_process_rejects_bad_arguments(self):
        from src.pathtracer.preview.display import process_image_for_display

        image = np.zeros((2, 2, 3), dtype=np.float32)
        with pytest.raises(ValueError, match="Unknown tone mapping"):
            process_image_for_display(image, tone_map="filmic")
        with pytest.raises(ValueError, match="gamma must be positive"):
            process_image_for_display(image, gamma=0.0)

    def test_process_output_in_unit_range(self):
        from src.pathtracer.preview.display import process_image_for_display

        image = np.array([[[-1.0, 0.5, 20.0]]], dtype=np.float32)
        for tone_map in ("none", "reinhard"):
            result = process_image_for_display(image, tone_map=tone_map, gamma=2.2)
            assert result.dtype == np.float32
            assert np.all((result >= 0.0) & (result <= 1.0))

    def test_session_display_image(self, make_session):
        from src.pathtracer.preview.display import session_display_image

        session = make_session()
        session.render(2)

        raw = session_display_image(session)
        assert raw.dtype == np.uint8
        assert raw.shape == (12, 12, 4)

        mapped = session_display_image(session, tone_map="reinhard", gamma=2.2)
        assert mapped.dtype == np.float32
        assert mapped.shape == (12, 12, 3)


class TestExport:
    """Test PNG export and image comparison."""

    def test_image_to_uint8(self):
        from src.pathtracer.preview.export import image_to_uint8

        result = image_to_uint8(np.array([-0.5, 0.0, 0.5, 1.0, 2.0]))
        assert result.dtype == np.uint8
        np.testing.assert_array_equal(result, [0, 0, 128, 255, 255])

    def test_save_and_load_rgba(self, tmp_path):
        from src.pathtracer.preview.export import load_png, save_png

        image = np.random.default_rng(0).integers(0, 256, size=(5, 7, 4), dtype=np.uint8)
        path = save_png(image, tmp_path / "nested" / "out.png")

        assert path.exists()
        np.testing.assert_array_equal(load_png(path), image)

    def test_save_rgb_float(self, tmp_path):
        from src.pathtracer.preview.export import load_png, save_png

        image = np.full((3, 4, 3), 0.5, dtype=np.float32)
        loaded = load_png(save_png(image, tmp_path / "grey.png"))

        assert loaded.shape == (3, 4, 4)
        assert np.all(loaded[..., :3] == 128)
        assert np.all(loaded[..., 3] == 255)

    def test_save_rejects_bad_shape(self, tmp_path):
        from src.pathtracer.preview.export import save_png

        with pytest.raises(ValueError, match="Expected an"):
            save_png(np.zeros((4, 4), dtype=np.uint8), tmp_path / "bad.png")

    def test_rmse(self):
        from src.pathtracer.preview.export import compute_rmse

        a = np.zeros((4, 4, 3))
        b = np.full((4, 4, 3), 0.5)
        assert compute_rmse(a, a) == 0.0
        assert compute_rmse(a, b) == pytest.approx(0.5)
        with pytest.raises(ValueError, match="shapes must match"):
            compute_rmse(a, np.zeros((4, 4, 4)))


class _FakeWindow:
    def __init__(self, pressed):
        self.pressed = set(pressed)

    def is_pressed(self, key):
        return key in self.pressed


class TestInputMapping:
    """Test keyboard and mouse mapping for the fly camera."""

    def test_read_movement_keys(self):
        from src.pathtracer.preview.interactive import read_movement_keys

        keys = read_movement_keys(_FakeWindow({"w", "d", "q"}))
        assert keys.forward and keys.right and keys.down
        assert not (keys.backward or keys.left or keys.up)

    def test_no_keys(self):
        from src.pathtracer.preview.interactive import read_movement_keys

        assert not read_movement_keys(_FakeWindow(set())).any()

    def test_mouse_look_first_frame_has_no_jump(self):
        from src.pathtracer.preview.interactive import MouseLook

        look = MouseLook()
        assert look.update(True, (0.5, 0.5), (200, 100)) == (0.0, 0.0)

    def test_mouse_look_delta_in_pixels_y_down(self):
        from src.pathtracer.preview.interactive import MouseLook

        look = MouseLook()
        look.update(True, (0.5, 0.5), (200, 100))
        dx, dy = look.update(True, (0.6, 0.4), (200, 100))
        assert dx == pytest.approx(20.0)
        assert dy == pytest.approx(10.0)

    def test_mouse_look_release_forgets_position(self):
        from src.pathtracer.preview.interactive import MouseLook

        look = MouseLook()
        look.update(True, (0.1, 0.1), (200, 100))
        assert look.update(False, (0.9, 0.9), (200, 100)) == (0.0, 0.0)
        assert look.update(True, (0.9, 0.9), (200, 100)) == (0.0, 0.0)


class TestInteractivePreview:
    """Test the GGUI viewer without opening a window."""

    def test_rgba_to_display_layout(self):
        from src.pathtracer.preview.interactive import rgba_to_display

        image = np.zeros((2, 3, 4), dtype=np.uint8)
        image[0, 2] = [255, 0, 0, 255]  # top-right pixel
        result = rgba_to_display(image)

        assert result.shape == (3, 2, 3)
        assert result.dtype == np.float32
        # Field index (x, y) with y up: top-right is (2, 1)
        np.testing.assert_allclose(result[2, 1], [1.0, 0.0, 0.0])
        assert result.sum() == pytest.approx(1.0)

    def test_window_is_deferred(self, make_session):
        from src.pathtracer.preview.interactive import InteractivePreview

        preview = InteractivePreview(make_session(), title="Test")
        assert preview._window is None
        assert (preview.width, preview.height) == (16, 16)

    def test_update_image(self, make_session):
        from src.pathtracer.preview.interactive import InteractivePreview

        session = make_session()
        session.render(1)
        preview = InteractivePreview(session)
        preview.update_image(session.get_image_numpy())

        field = preview._display_image.to_numpy()
        assert field.shape == (12, 12, 3)
        assert np.all((field >= 0.0) & (field <= 1.0))

        session.set_viewport_size(20, 8)
        session.render(1)
        preview.update_image(session.get_image_numpy())
        assert preview._display_image.shape == (15, 6)

    def test_update_image_ignores_empty(self, make_session):
        from src.pathtracer.preview.interactive import InteractivePreview

        preview = InteractivePreview(make_session())
        preview.update_image(np.zeros((0, 0, 4), dtype=np.uint8))
        assert preview._display_image is None

    def test_export_png(self, make_session, tmp_path):
        from src.pathtracer.preview.interactive import InteractivePreview

        session = make_session()
        session.render(1)
        preview = InteractivePreview(session, export_dir=str(tmp_path))

        filename = preview.export_png()

        assert os.path.exists(filename)
        assert os.path.dirname(filename) == str(tmp_path)

    def test_is_display_available_returns_bool(self):
        from src.pathtracer.preview.interactive import InteractivePreview

        assert isinstance(InteractivePreview.is_display_available(), bool)
